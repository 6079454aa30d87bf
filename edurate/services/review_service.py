import enum
import html
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional
from sqlalchemy.exc import IntegrityError
from edurate.database import get_db
from edurate.models import Classroom, ClassroomMember, FeedbackPeriod, Review, Teacher, Term, User
from edurate.models.review import FlaggedStatus, SUB_RATING_FIELDS, VALID_TAGS
from edurate.services.audit_service import AuditService
from edurate.services.eligibility_service import find_live_review, open_periods_query
from edurate.utils.moderation import ModerationResult, moderate_text, sanitize_input
from edurate.utils.validators import calculate_overall_rating, filter_tags, validate_ratings
from edurate.utils.logger import get_logger

logger = get_logger(__name__)


class ReviewError(enum.Enum):
    INVALID_INPUT = "invalid_input"
    NOT_ENROLLED = "not_enrolled"
    INVALID_PAIRING = "invalid_pairing"
    NO_ACTIVE_PERIOD = "no_active_period"
    DUPLICATE_REVIEW = "duplicate_review"
    NOT_FOUND = "not_found"
    ALREADY_APPROVED = "already_approved"
    PERIOD_CLOSED = "period_closed"


@dataclass
class ReviewResult:
    """Outcome of a review mutation: either ``review`` or ``error`` is set"""
    review: Optional[Dict] = None
    error: Optional[ReviewError] = None
    message: Optional[str] = None
    moderation: Optional[ModerationResult] = None
    count: int = 0

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def failure(cls, error: ReviewError, message: str) -> 'ReviewResult':
        return cls(error=error, message=message)


# Serializes the duplicate check and insert per (teacher, student, period) key.
# Striped so the lock table stays bounded; the partial unique index covers other processes.
_LOCK_STRIPES = [threading.Lock() for _ in range(64)]


def _submission_lock(teacher_id: int, student_id: int, period_id: int) -> threading.Lock:
    return _LOCK_STRIPES[hash((teacher_id, student_id, period_id)) % len(_LOCK_STRIPES)]


def is_unique_violation(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return 'unique' in message or 'duplicate' in message


def flagged_status_for(moderation: ModerationResult) -> FlaggedStatus:
    if moderation.flagged or moderation.should_auto_reject:
        return FlaggedStatus.FLAGGED
    return FlaggedStatus.PENDING


def review_to_dict(review: Review) -> Dict:
    data = {
        'id': review.id,
        'org_id': review.org_id,
        'teacher_id': review.teacher_id,
        'classroom_id': review.classroom_id,
        'student_id': review.student_id,
        'term_id': review.term_id,
        'feedback_period_id': review.feedback_period_id,
        'overall_rating': review.overall_rating,
        'feedback_text': review.feedback_text,
        'tags': review.tags or [],
        'flagged_status': review.flagged_status.value if review.flagged_status else None,
        'approved_status': bool(review.approved_status),
        'created_at': review.created_at.isoformat() if review.created_at else None,
        'updated_at': review.updated_at.isoformat() if review.updated_at else None
    }
    data.update(review.sub_ratings())
    return data


class ReviewService:
    """Student review submission and editing"""

    def __init__(self, session_factory=None, audit: AuditService = None):
        self.session_factory = session_factory
        self.audit = audit or AuditService(session_factory)

    @staticmethod
    def valid_tags() -> List[str]:
        return list(VALID_TAGS)

    def submit_review(self, student_id: int, data: Dict, ip_address: str = None) -> ReviewResult:
        """Submit a review; at most one live review per (teacher, student, period)"""
        data = data or {}

        # Validation happens before touching storage
        try:
            teacher_id = int(data['teacher_id'])
            classroom_id = int(data['classroom_id'])
        except (KeyError, TypeError, ValueError):
            return ReviewResult.failure(ReviewError.INVALID_INPUT, 'Teacher and classroom are required')

        valid, error = validate_ratings(data, SUB_RATING_FIELDS)
        if not valid:
            return ReviewResult.failure(ReviewError.INVALID_INPUT, error)

        raw_text = data.get('feedback_text') or ''
        if not isinstance(raw_text, str):
            return ReviewResult.failure(ReviewError.INVALID_INPUT, 'feedback_text must be a string')

        ratings = {field: data[field] for field in SUB_RATING_FIELDS}
        overall = calculate_overall_rating(ratings.values())
        tags = filter_tags(data.get('tags'), VALID_TAGS)
        moderation = moderate_text(raw_text)
        sanitized = sanitize_input(raw_text)

        try:
            with get_db(self.session_factory) as db:
                membership = db.query(ClassroomMember).join(
                    Classroom, ClassroomMember.classroom_id == Classroom.id
                ).filter(
                    ClassroomMember.classroom_id == classroom_id,
                    ClassroomMember.student_id == student_id,
                    Classroom.active_status.is_(True)
                ).first()
                if not membership:
                    return ReviewResult.failure(ReviewError.NOT_ENROLLED,
                                                'You are not enrolled in this classroom')

                classroom = db.query(Classroom).filter(
                    Classroom.id == classroom_id,
                    Classroom.teacher_id == teacher_id
                ).first()
                if not classroom:
                    return ReviewResult.failure(ReviewError.INVALID_PAIRING,
                                                'Invalid classroom-teacher combination')

                open_period = open_periods_query(db, classroom_id=classroom_id).first()
                if not open_period:
                    return ReviewResult.failure(ReviewError.NO_ACTIVE_PERIOD,
                                                'No active feedback period for this classroom')
                period = open_period[0]

                with _submission_lock(teacher_id, student_id, period.id):
                    if find_live_review(db, teacher_id, student_id, period.id):
                        return ReviewResult.failure(
                            ReviewError.DUPLICATE_REVIEW,
                            'You already submitted a review for this teacher in this period'
                        )

                    review = Review(
                        org_id=classroom.org_id,
                        teacher_id=teacher_id,
                        classroom_id=classroom_id,
                        student_id=student_id,
                        term_id=period.term_id,
                        feedback_period_id=period.id,
                        overall_rating=overall,
                        feedback_text=sanitized,
                        tags=tags,
                        flagged_status=flagged_status_for(moderation),
                        approved_status=False,
                        **ratings
                    )
                    db.add(review)
                    db.flush()
                    db.commit()

                student = db.query(User).filter_by(id=student_id).first()
                teacher = db.query(Teacher).filter_by(id=teacher_id).first()
                review_data = review_to_dict(review)
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            logger.warning(f"Duplicate review blocked by constraint for teacher {teacher_id}, student {student_id}")
            return ReviewResult.failure(ReviewError.DUPLICATE_REVIEW, 'Duplicate review not allowed')

        logger.info(f"Review {review_data['id']} submitted for teacher {teacher_id} "
                    f"({review_data['flagged_status']})")

        self._audit(
            student,
            action_type='review_submit',
            description=f"Submitted review for {teacher.full_name if teacher else 'teacher'} "
                        f"(Rating: {overall}/5)",
            target_id=review_data['id'],
            metadata={
                'teacher_id': teacher_id,
                'classroom_id': classroom_id,
                'overall_rating': overall,
                'flagged': moderation.flagged
            },
            ip_address=ip_address,
            org_id=review_data['org_id']
        )

        return ReviewResult(review=review_data, moderation=moderation)

    def edit_review(self, review_id: int, student_id: int, data: Dict, ip_address: str = None) -> ReviewResult:
        """Edit an unapproved review while its period is active; re-enters moderation"""
        data = data or {}

        try:
            with get_db(self.session_factory) as db:
                review = db.query(Review).filter(
                    Review.id == review_id,
                    Review.student_id == student_id
                ).first()
                if not review:
                    return ReviewResult.failure(ReviewError.NOT_FOUND, 'Review not found')

                if review.approved_status:
                    return ReviewResult.failure(ReviewError.ALREADY_APPROVED,
                                                'Approved reviews can no longer be edited')

                period = db.query(FeedbackPeriod).filter_by(id=review.feedback_period_id).first()
                if not period or not period.active_status:
                    return ReviewResult.failure(ReviewError.PERIOD_CLOSED,
                                                'Feedback period is closed. Cannot edit.')

                valid, error = validate_ratings(data, SUB_RATING_FIELDS, partial=True)
                if not valid:
                    return ReviewResult.failure(ReviewError.INVALID_INPUT, error)

                if 'feedback_text' in data:
                    raw_text = data['feedback_text'] or ''
                    if not isinstance(raw_text, str):
                        return ReviewResult.failure(ReviewError.INVALID_INPUT,
                                                    'feedback_text must be a string')
                    review.feedback_text = sanitize_input(raw_text)
                else:
                    raw_text = html.unescape(review.feedback_text or '')

                for field in SUB_RATING_FIELDS:
                    if data.get(field) is not None:
                        setattr(review, field, data[field])
                review.overall_rating = calculate_overall_rating(review.sub_ratings().values())

                if 'tags' in data:
                    review.tags = filter_tags(data['tags'], VALID_TAGS)

                moderation = moderate_text(raw_text)
                review.flagged_status = flagged_status_for(moderation)
                review.approved_status = False
                db.flush()

                student = db.query(User).filter_by(id=student_id).first()
                review_data = review_to_dict(review)
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            return ReviewResult.failure(ReviewError.DUPLICATE_REVIEW,
                                        'Another review for this teacher and period already exists')

        logger.info(f"Review {review_id} edited, back in moderation as {review_data['flagged_status']}")

        self._audit(
            student,
            action_type='review_edit',
            description=f"Edited review {review_id} (Rating: {review_data['overall_rating']}/5)",
            target_id=review_id,
            metadata={'flagged': moderation.flagged},
            ip_address=ip_address,
            org_id=review_data['org_id']
        )

        return ReviewResult(review=review_data, moderation=moderation)

    def get_student_reviews(self, student_id: int) -> List[Dict]:
        """A student's own reviews, newest first"""
        with get_db(self.session_factory) as db:
            rows = db.query(Review, Teacher, Classroom, FeedbackPeriod, Term).join(
                Teacher, Review.teacher_id == Teacher.id
            ).join(
                Classroom, Review.classroom_id == Classroom.id
            ).join(
                FeedbackPeriod, Review.feedback_period_id == FeedbackPeriod.id
            ).join(
                Term, Review.term_id == Term.id
            ).filter(
                Review.student_id == student_id
            ).order_by(Review.created_at.desc(), Review.id.desc()).all()

            results = []
            for review, teacher, classroom, period, term in rows:
                data = review_to_dict(review)
                data.update({
                    'teacher_name': teacher.full_name,
                    'classroom_subject': classroom.subject,
                    'period_name': period.name,
                    'term_name': term.name
                })
                results.append(data)
            return results

    def flag_review(self, review_id: int, actor: Dict, ip_address: str = None) -> ReviewResult:
        """Send a review to the admin flag queue"""
        with get_db(self.session_factory) as db:
            review = db.query(Review).filter_by(id=review_id).first()
            if not review:
                return ReviewResult.failure(ReviewError.NOT_FOUND, 'Review not found')

            if review.flagged_status != FlaggedStatus.REJECTED:
                review.flagged_status = FlaggedStatus.FLAGGED
            db.flush()
            review_data = review_to_dict(review)

        self._log_actor_event(
            actor,
            action_type='review_flag',
            description=f"Flagged review {review_id} for admin review",
            target_id=review_id,
            ip_address=ip_address,
            org_id=review_data['org_id']
        )

        return ReviewResult(review=review_data)

    def _audit(self, user: Optional[User], **event):
        self._log_actor_event({
            'user_id': user.id if user else None,
            'role': user.role.value if user else 'student',
            'full_name': user.full_name if user else 'Unknown'
        }, **event)

    def _log_actor_event(self, actor: Dict, action_type: str, description: str,
                         target_id: int = None, metadata: Dict = None,
                         ip_address: str = None, org_id: int = None):
        # Runs after commit; a failing sink never affects the mutation
        try:
            self.audit.log_event(
                actor_id=actor.get('user_id'),
                actor_role=actor.get('role'),
                actor_name=actor.get('full_name') or 'Unknown',
                action_type=action_type,
                description=description,
                target_type='review',
                target_id=target_id,
                metadata=metadata,
                ip_address=ip_address,
                org_id=org_id
            )
        except Exception as e:
            logger.warning(f"Audit event {action_type} dropped: {str(e)}")
