from dataclasses import dataclass, field, asdict
from typing import Dict, List, Optional
from edurate.database import get_db
from edurate.models import Classroom, ClassroomMember, FeedbackPeriod, Review, Teacher, Term
from edurate.models.review import FlaggedStatus
from edurate.models.term import feedback_period_classrooms
from edurate.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EligibleTeacher:
    teacher_id: int
    teacher_name: str
    subject: Optional[str]
    department: Optional[str]
    classroom_id: int
    classroom_subject: str
    grade_level: str
    period_id: int
    already_reviewed: bool = False
    review_id: Optional[int] = None


@dataclass
class EligibilityResult:
    period: Optional[Dict] = None
    teachers: List[EligibleTeacher] = field(default_factory=list)
    has_classrooms: bool = False

    def to_dict(self):
        return asdict(self)


def open_periods_query(db, classroom_id=None):
    """Active periods of active terms, joined to the classrooms they cover"""
    query = db.query(FeedbackPeriod, feedback_period_classrooms.c.classroom_id).join(
        feedback_period_classrooms,
        feedback_period_classrooms.c.feedback_period_id == FeedbackPeriod.id
    ).join(
        Term, FeedbackPeriod.term_id == Term.id
    ).filter(
        FeedbackPeriod.active_status.is_(True),
        Term.active_status.is_(True)
    )
    if classroom_id is not None:
        query = query.filter(feedback_period_classrooms.c.classroom_id == classroom_id)
    return query.order_by(FeedbackPeriod.id.asc())


def find_live_review(db, teacher_id: int, student_id: int, period_id: int) -> Optional[Review]:
    """The non-rejected review for (teacher, student, period), if any"""
    return db.query(Review).filter(
        Review.teacher_id == teacher_id,
        Review.student_id == student_id,
        Review.feedback_period_id == period_id,
        Review.flagged_status != FlaggedStatus.REJECTED
    ).first()


def period_to_dict(period: FeedbackPeriod) -> Dict:
    return {
        'id': period.id,
        'term_id': period.term_id,
        'name': period.name,
        'start_date': period.start_date.isoformat() if period.start_date else None,
        'end_date': period.end_date.isoformat() if period.end_date else None,
        'active_status': period.active_status
    }


class EligibilityService:
    """Works out which teachers a student may review right now"""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    def eligible_teachers(self, student_id: int) -> EligibilityResult:
        """Open (teacher, classroom, period) triples for a student. Read only."""
        with get_db(self.session_factory) as db:
            has_classrooms = db.query(ClassroomMember).filter(
                ClassroomMember.student_id == student_id
            ).count() > 0

            if not has_classrooms:
                return EligibilityResult(has_classrooms=False)

            member_classrooms = db.query(Classroom, Teacher).join(
                ClassroomMember, ClassroomMember.classroom_id == Classroom.id
            ).join(
                Teacher, Classroom.teacher_id == Teacher.id
            ).filter(
                ClassroomMember.student_id == student_id,
                Classroom.active_status.is_(True)
            ).all()

            classroom_ids = [classroom.id for classroom, _ in member_classrooms]

            # Earliest open period per classroom
            open_period = {}
            if classroom_ids:
                rows = open_periods_query(db).filter(
                    feedback_period_classrooms.c.classroom_id.in_(classroom_ids)
                ).all()
                for period, classroom_id in rows:
                    open_period.setdefault(classroom_id, period)

            candidates = []
            for classroom, teacher in member_classrooms:
                period = open_period.get(classroom.id)
                if period is None:
                    continue

                existing = find_live_review(db, teacher.id, student_id, period.id)
                candidates.append((period, EligibleTeacher(
                    teacher_id=teacher.id,
                    teacher_name=teacher.full_name,
                    subject=teacher.subject,
                    department=teacher.department,
                    classroom_id=classroom.id,
                    classroom_subject=classroom.subject,
                    grade_level=classroom.grade_level,
                    period_id=period.id,
                    already_reviewed=existing is not None,
                    review_id=existing.id if existing else None
                )))

            if not candidates:
                logger.debug(f"Student {student_id} has classrooms but none are open for feedback")
                return EligibilityResult(has_classrooms=True)

            first_period = min((period for period, _ in candidates), key=lambda p: p.id)
            teachers = sorted(
                (candidate for _, candidate in candidates),
                key=lambda c: (c.teacher_name, c.classroom_id)
            )

            return EligibilityResult(
                period=period_to_dict(first_period),
                teachers=teachers,
                has_classrooms=True
            )
