from dataclasses import dataclass
from typing import Dict, Optional
from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from edurate.database import get_db
from edurate.models import (
    Classroom, ClassroomMember, FeedbackPeriod, Review, Teacher, TeacherResponse, Term
)
from edurate.models.review import SUB_RATING_FIELDS
from edurate.services.audit_service import AuditService
from edurate.services.classroom_service import EnrollmentError
from edurate.services.eligibility_service import period_to_dict
from edurate.services.scoring_service import ScoringService
from edurate.services.term_service import TermService
from edurate.utils.logger import get_logger

logger = get_logger(__name__)

RECENT_REVIEW_LIMIT = 50


@dataclass
class ResponseResult:
    response: Optional[Dict] = None
    error: Optional[EnrollmentError] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: EnrollmentError, message: str) -> 'ResponseResult':
        return cls(error=error, message=message)


def response_to_dict(response: TeacherResponse) -> Dict:
    return {
        'id': response.id,
        'teacher_id': response.teacher_id,
        'classroom_id': response.classroom_id,
        'feedback_period_id': response.feedback_period_id,
        'response_text': response.response_text,
        'created_at': response.created_at.isoformat() if response.created_at else None,
        'updated_at': response.updated_at.isoformat() if response.updated_at else None
    }


class DashboardService:
    """Teacher and school-head overviews, plus teacher responses to feedback"""

    def __init__(self, session_factory=None, audit: AuditService = None):
        self.session_factory = session_factory
        self.audit = audit or AuditService(session_factory)
        self.scoring = ScoringService(session_factory)
        self.terms = TermService(session_factory)

    def school_head_overview(self, org_id: int) -> Dict:
        active_term = self.terms.active_term(org_id)
        term_id = active_term['id'] if active_term else None

        with get_db(self.session_factory) as db:
            teachers = db.query(Teacher).filter(
                Teacher.org_id == org_id
            ).order_by(Teacher.full_name).all()

        teacher_performance = []
        departments = {}
        for teacher in teachers:
            teacher_performance.append({
                'id': teacher.id,
                'full_name': teacher.full_name,
                'subject': teacher.subject,
                'department': teacher.department,
                'scores': self.scoring.dashboard_scores(teacher.id, term_id=term_id).to_dict(),
                'distribution': self.scoring.rating_distribution(teacher.id, term_id=term_id),
                'trend': self.scoring.teacher_trend(teacher.id, term_id).to_dict() if term_id else None
            })
            if teacher.department:
                departments.setdefault(teacher.department, {'teachers': [], 'avg_score': 0.0})
                departments[teacher.department]['teachers'].append(teacher.id)

        for department, data in departments.items():
            data['avg_score'] = self.scoring.department_average(department, term_id=term_id, org_id=org_id)

        logger.debug(f"Built school-head overview for org {org_id} ({len(teachers)} teachers)")

        return {
            'active_term': active_term,
            'teachers': teacher_performance,
            'departments': departments
        }

    def teacher_overview(self, user_id: int) -> Optional[Dict]:
        """A teacher's own numbers; None when the user has no teacher profile"""
        with get_db(self.session_factory) as db:
            teacher = db.query(Teacher).filter_by(user_id=user_id).first()
            if not teacher:
                return None

            student_count = func.count(ClassroomMember.id)
            classroom_rows = db.query(Classroom, Term.name, student_count).outerjoin(
                Term, Classroom.term_id == Term.id
            ).outerjoin(
                ClassroomMember, ClassroomMember.classroom_id == Classroom.id
            ).filter(
                Classroom.teacher_id == teacher.id
            ).group_by(Classroom.id, Term.name).order_by(Classroom.created_at.desc(), Classroom.id.desc()).all()

            classrooms = [{
                'id': classroom.id,
                'subject': classroom.subject,
                'grade_level': classroom.grade_level,
                'join_code': classroom.join_code,
                'active_status': classroom.active_status,
                'term_id': classroom.term_id,
                'term_name': term_name,
                'student_count': count
            } for classroom, term_name, count in classroom_rows]

            active_period = None
            active_term = self.terms.active_term(teacher.org_id)
            if active_term:
                period = db.query(FeedbackPeriod).filter(
                    FeedbackPeriod.term_id == active_term['id'],
                    FeedbackPeriod.active_status.is_(True)
                ).order_by(FeedbackPeriod.id.asc()).first()
                active_period = period_to_dict(period) if period else None

            recent_reviews = self._recent_reviews(db, teacher.id)
            responses = self._responses(db, teacher.id)
            profile = {
                'id': teacher.id,
                'full_name': teacher.full_name,
                'subject': teacher.subject,
                'department': teacher.department,
                'org_id': teacher.org_id
            }

        term_id = active_term['id'] if active_term else None
        completion_rates = []
        if active_period:
            for classroom in classrooms:
                rate = self.scoring.completion_rate(classroom['id'], active_period['id']).to_dict()
                rate.update({
                    'classroom_id': classroom['id'],
                    'subject': classroom['subject'],
                    'grade_level': classroom['grade_level']
                })
                completion_rates.append(rate)

        department_average = None
        if profile['department']:
            department_average = self.scoring.department_average(
                profile['department'], term_id=term_id, org_id=profile['org_id']
            )

        return {
            'teacher': profile,
            'classrooms': classrooms,
            'active_term': active_term,
            'active_period': active_period,
            'overall_scores': self.scoring.teacher_scores(profile['id']).to_dict(),
            'term_scores': self.scoring.teacher_scores(profile['id'], term_id=term_id).to_dict() if term_id else None,
            'trend': self.scoring.teacher_trend(profile['id'], term_id).to_dict() if term_id else None,
            'distribution': self.scoring.rating_distribution(profile['id']),
            'department_average': department_average,
            'recent_reviews': recent_reviews,
            'completion_rates': completion_rates,
            'responses': responses
        }

    def respond(self, user_id: int, classroom_id: int, period_id: int, response_text: str,
                actor: Dict = None) -> ResponseResult:
        """Post or replace the teacher's response for a classroom and period"""
        if not classroom_id or not period_id or not isinstance(response_text, str) or not response_text.strip():
            return ResponseResult.failure(EnrollmentError.INVALID_INPUT, 'All fields are required')

        try:
            data, context = self._save_response(user_id, classroom_id, period_id, response_text)
        except IntegrityError:
            # Concurrent first post for the same key; the row exists now
            data, context = self._save_response(user_id, classroom_id, period_id, response_text)

        if isinstance(data, ResponseResult):
            return data

        logger.info(f"Teacher {data['teacher_id']} responded for classroom {classroom_id}, period {period_id}")
        actor = actor or {'user_id': user_id, 'role': 'teacher', 'full_name': context['teacher_name']}
        try:
            self.audit.log_event(
                actor_id=actor.get('user_id'),
                actor_role=actor.get('role'),
                actor_name=actor.get('full_name') or 'Unknown',
                action_type='teacher_respond',
                description=f"Posted response to feedback for {context['subject']}",
                target_type='teacher_response',
                target_id=data['id'],
                metadata={'classroom_id': classroom_id, 'feedback_period_id': period_id},
                ip_address=actor.get('ip_address'),
                org_id=context['org_id']
            )
        except Exception as e:
            logger.warning(f"Audit event teacher_respond dropped: {str(e)}")

        return ResponseResult(response=data)

    def _save_response(self, user_id, classroom_id, period_id, response_text):
        with get_db(self.session_factory) as db:
            teacher = db.query(Teacher).filter_by(user_id=user_id).first()
            if not teacher:
                return ResponseResult.failure(EnrollmentError.NOT_FOUND, 'Teacher profile not found'), None

            classroom = db.query(Classroom).filter_by(id=classroom_id, teacher_id=teacher.id).first()
            if not classroom:
                return ResponseResult.failure(EnrollmentError.FORBIDDEN, 'Not your classroom'), None

            if not db.query(FeedbackPeriod.id).filter_by(id=period_id).first():
                return ResponseResult.failure(EnrollmentError.NOT_FOUND, 'Feedback period not found'), None

            response = db.query(TeacherResponse).filter_by(
                teacher_id=teacher.id, classroom_id=classroom_id, feedback_period_id=period_id
            ).first()
            if response:
                response.response_text = response_text
            else:
                response = TeacherResponse(
                    teacher_id=teacher.id,
                    classroom_id=classroom_id,
                    feedback_period_id=period_id,
                    response_text=response_text
                )
                db.add(response)
            db.flush()
            return response_to_dict(response), {
                'teacher_name': teacher.full_name,
                'subject': classroom.subject,
                'org_id': classroom.org_id
            }

    @staticmethod
    def _recent_reviews(db, teacher_id: int):
        """Latest reviews of any status, without student identity"""
        rows = db.query(Review, FeedbackPeriod.name, Term.name, Classroom.subject, Classroom.grade_level).join(
            FeedbackPeriod, Review.feedback_period_id == FeedbackPeriod.id
        ).join(
            Term, Review.term_id == Term.id
        ).join(
            Classroom, Review.classroom_id == Classroom.id
        ).filter(
            Review.teacher_id == teacher_id
        ).order_by(Review.created_at.desc(), Review.id.desc()).limit(RECENT_REVIEW_LIMIT).all()

        reviews = []
        for review, period_name, term_name, subject, grade_level in rows:
            data = {field: getattr(review, field) for field in SUB_RATING_FIELDS}
            data.update({
                'overall_rating': review.overall_rating,
                'feedback_text': review.feedback_text,
                'tags': review.tags or [],
                'flagged_status': review.flagged_status.value,
                'approved_status': bool(review.approved_status),
                'created_at': review.created_at.isoformat() if review.created_at else None,
                'period_name': period_name,
                'term_name': term_name,
                'classroom_subject': subject,
                'grade_level': grade_level
            })
            reviews.append(data)
        return reviews

    @staticmethod
    def _responses(db, teacher_id: int):
        rows = db.query(TeacherResponse, FeedbackPeriod.name, Classroom.subject).join(
            FeedbackPeriod, TeacherResponse.feedback_period_id == FeedbackPeriod.id
        ).join(
            Classroom, TeacherResponse.classroom_id == Classroom.id
        ).filter(
            TeacherResponse.teacher_id == teacher_id
        ).order_by(TeacherResponse.created_at.desc(), TeacherResponse.id.desc()).all()

        results = []
        for response, period_name, subject in rows:
            data = response_to_dict(response)
            data.update({'period_name': period_name, 'classroom_subject': subject})
            results.append(data)
        return results
