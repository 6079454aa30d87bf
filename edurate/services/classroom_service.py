import enum
import secrets
from dataclasses import dataclass
from typing import Dict, List, Optional
from edurate.database import get_db
from edurate.models import Classroom, ClassroomMember, Teacher, User
from edurate.services.audit_service import AuditService
from config.config import Config
from edurate.utils.logger import get_logger

logger = get_logger(__name__)

MAX_CODE_ATTEMPTS = 20


class EnrollmentError(enum.Enum):
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    ALREADY_MEMBER = "already_member"
    NOT_MEMBER = "not_member"
    FORBIDDEN = "forbidden"


@dataclass
class EnrollmentResult:
    classroom: Optional[Dict] = None
    error: Optional[EnrollmentError] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: EnrollmentError, message: str) -> 'EnrollmentResult':
        return cls(error=error, message=message)


def generate_join_code(length: int = None) -> str:
    """Random code from an alphabet without look-alike characters"""
    length = length or Config.JOIN_CODE_LENGTH
    return ''.join(secrets.choice(Config.JOIN_CODE_ALPHABET) for _ in range(length))


def classroom_to_dict(classroom: Classroom, teacher: Teacher = None) -> Dict:
    data = {
        'id': classroom.id,
        'org_id': classroom.org_id,
        'teacher_id': classroom.teacher_id,
        'term_id': classroom.term_id,
        'subject': classroom.subject,
        'grade_level': classroom.grade_level,
        'join_code': classroom.join_code,
        'active_status': classroom.active_status
    }
    if teacher is not None:
        data['teacher_name'] = teacher.full_name
    return data


class ClassroomService:
    """Classroom creation and join-code enrollment"""

    def __init__(self, session_factory=None, audit: AuditService = None):
        self.session_factory = session_factory
        self.audit = audit or AuditService(session_factory)

    def _unique_join_code(self, db) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_join_code()
            if not db.query(Classroom.id).filter(Classroom.join_code == code).first():
                return code
        raise RuntimeError('Could not generate a unique join code')

    def create_classroom(self, teacher_id: int, subject: str, grade_level: str,
                         term_id: int = None, actor: Dict = None) -> EnrollmentResult:
        """Create a classroom owned by a teacher, with a fresh join code"""
        if not subject or not grade_level:
            return EnrollmentResult.failure(EnrollmentError.INVALID_INPUT,
                                            'Subject and grade level are required')

        with get_db(self.session_factory) as db:
            teacher = db.query(Teacher).filter_by(id=teacher_id).first()
            if not teacher:
                return EnrollmentResult.failure(EnrollmentError.NOT_FOUND, 'Teacher not found')

            classroom = Classroom(
                org_id=teacher.org_id,
                teacher_id=teacher.id,
                term_id=term_id,
                subject=subject,
                grade_level=grade_level,
                join_code=self._unique_join_code(db),
                active_status=True
            )
            db.add(classroom)
            db.flush()
            data = classroom_to_dict(classroom, teacher)

        logger.info(f"Created classroom {data['id']} ({subject}) for teacher {teacher_id}")
        self._log(actor, 'classroom_create', f"Created classroom: {subject}", data)
        return EnrollmentResult(classroom=data)

    def join_by_code(self, student_id: int, join_code: str, actor: Dict = None) -> EnrollmentResult:
        """Student self-enrollment; codes are case-insensitive"""
        if not join_code or not isinstance(join_code, str):
            return EnrollmentResult.failure(EnrollmentError.INVALID_INPUT, 'Join code is required')

        with get_db(self.session_factory) as db:
            row = db.query(Classroom, Teacher).join(
                Teacher, Classroom.teacher_id == Teacher.id
            ).filter(
                Classroom.join_code == join_code.strip().upper(),
                Classroom.active_status.is_(True)
            ).first()
            if not row:
                return EnrollmentResult.failure(EnrollmentError.NOT_FOUND, 'Invalid or inactive join code')

            classroom, teacher = row
            existing = db.query(ClassroomMember).filter_by(
                classroom_id=classroom.id, student_id=student_id
            ).first()
            if existing:
                return EnrollmentResult.failure(EnrollmentError.ALREADY_MEMBER,
                                                'You are already in this classroom')

            db.add(ClassroomMember(classroom_id=classroom.id, student_id=student_id))
            data = classroom_to_dict(classroom, teacher)

        logger.info(f"Student {student_id} joined classroom {data['id']}")
        self._log(actor, 'classroom_join',
                  f"Joined classroom: {data['subject']} with {data['teacher_name']}", data,
                  metadata={'teacher_id': data['teacher_id']})
        return EnrollmentResult(classroom=data)

    def leave(self, student_id: int, classroom_id: int, actor: Dict = None) -> EnrollmentResult:
        with get_db(self.session_factory) as db:
            membership = db.query(ClassroomMember).filter_by(
                classroom_id=classroom_id, student_id=student_id
            ).first()
            if not membership:
                return EnrollmentResult.failure(EnrollmentError.NOT_MEMBER,
                                                'You are not a member of this classroom')

            classroom = db.query(Classroom).filter_by(id=classroom_id).first()
            data = classroom_to_dict(classroom)
            db.delete(membership)

        self._log(actor, 'classroom_leave', f"Left classroom: {data['subject']}", data)
        return EnrollmentResult(classroom=data)

    def regenerate_code(self, classroom_id: int, actor: Dict = None) -> EnrollmentResult:
        """Replace the join code; teachers may only touch their own classrooms"""
        with get_db(self.session_factory) as db:
            classroom = db.query(Classroom).filter_by(id=classroom_id).first()
            if not classroom:
                return EnrollmentResult.failure(EnrollmentError.NOT_FOUND, 'Classroom not found')

            if actor and actor.get('role') == 'teacher':
                teacher = db.query(Teacher).filter_by(user_id=actor.get('user_id')).first()
                if not teacher or teacher.id != classroom.teacher_id:
                    return EnrollmentResult.failure(EnrollmentError.FORBIDDEN, 'Not your classroom')

            classroom.join_code = self._unique_join_code(db)
            db.flush()
            data = classroom_to_dict(classroom)

        self._log(actor, 'join_code_regenerate',
                  f"Regenerated join code for classroom: {data['subject']}", data)
        return EnrollmentResult(classroom=data)

    def members(self, classroom_id: int) -> List[Dict]:
        with get_db(self.session_factory) as db:
            rows = db.query(User, ClassroomMember.joined_at).join(
                ClassroomMember, ClassroomMember.student_id == User.id
            ).filter(
                ClassroomMember.classroom_id == classroom_id
            ).order_by(User.full_name).all()

            return [{
                'id': user.id,
                'full_name': user.full_name,
                'email': user.email,
                'grade_or_position': user.grade_or_position,
                'joined_at': joined_at.isoformat() if joined_at else None
            } for user, joined_at in rows]

    def _log(self, actor: Optional[Dict], action_type: str, description: str, data: Dict,
             metadata: Dict = None):
        if not actor:
            return
        try:
            self.audit.log_event(
                actor_id=actor.get('user_id'),
                actor_role=actor.get('role'),
                actor_name=actor.get('full_name') or 'Unknown',
                action_type=action_type,
                description=description,
                target_type='classroom',
                target_id=data['id'],
                metadata=metadata,
                ip_address=actor.get('ip_address'),
                org_id=data['org_id']
            )
        except Exception as e:
            logger.warning(f"Audit event {action_type} dropped: {str(e)}")
