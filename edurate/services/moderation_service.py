from typing import Dict, List, Optional
from sqlalchemy.exc import IntegrityError
from edurate.database import get_db
from edurate.models import Classroom, FeedbackPeriod, Review, Teacher, Term, User
from edurate.models.review import FlaggedStatus
from edurate.services.audit_service import AuditService
from edurate.services.eligibility_service import find_live_review
from edurate.services.review_service import ReviewError, ReviewResult, is_unique_violation, review_to_dict
from edurate.utils.logger import get_logger

logger = get_logger(__name__)


class ModerationService:
    """Admin moderation queue: approve, reject, delete"""

    def __init__(self, session_factory=None, audit: AuditService = None):
        self.session_factory = session_factory
        self.audit = audit or AuditService(session_factory)

    def pending_reviews(self, org_id: int = None) -> List[Dict]:
        return self._list_reviews(FlaggedStatus.PENDING, org_id, oldest_first=True)

    def flagged_reviews(self, org_id: int = None) -> List[Dict]:
        return self._list_reviews(FlaggedStatus.FLAGGED, org_id, oldest_first=True)

    def all_reviews(self, org_id: int = None) -> List[Dict]:
        return self._list_reviews(None, org_id, oldest_first=False)

    def approve(self, review_id: int, actor: Dict, ip_address: str = None) -> ReviewResult:
        """Approve a review; it becomes visible to aggregation"""
        return self._transition(review_id, actor, FlaggedStatus.APPROVED, True,
                                'review_approve', 'Approved', ip_address)

    def reject(self, review_id: int, actor: Dict, ip_address: str = None) -> ReviewResult:
        """Reject a review; the student may submit again for the same period"""
        return self._transition(review_id, actor, FlaggedStatus.REJECTED, False,
                                'review_reject', 'Rejected', ip_address)

    def delete(self, review_id: int, actor: Dict, ip_address: str = None) -> ReviewResult:
        """Permanently delete a review"""
        with get_db(self.session_factory) as db:
            row = self._review_with_names(db, review_id)
            if not row:
                return ReviewResult.failure(ReviewError.NOT_FOUND, 'Review not found')

            review, teacher_name, student_name = row
            review_data = review_to_dict(review)
            db.delete(review)

        logger.info(f"Review {review_id} deleted by user {actor.get('user_id')}")
        self._log(actor, 'review_delete',
                  f"Permanently deleted review from {student_name} for {teacher_name}",
                  review_data, ip_address)
        return ReviewResult(review=review_data)

    def bulk_approve(self, review_ids: List[int], actor: Dict, ip_address: str = None) -> ReviewResult:
        """Approve many reviews at once; unknown ids are skipped.

        A rejected review is left alone when approving it would give its
        (teacher, student, period) a second live review.
        """
        if not review_ids or not isinstance(review_ids, list):
            return ReviewResult.failure(ReviewError.INVALID_INPUT, 'review_ids array is required')

        try:
            with get_db(self.session_factory) as db:
                reviews = db.query(Review).filter(
                    Review.id.in_(review_ids)
                ).order_by(Review.id.asc()).all()

                live_keys = set()
                for review in reviews:
                    if review.flagged_status != FlaggedStatus.REJECTED:
                        live_keys.add(self._review_key(review))

                approved, skipped = [], []
                for review in reviews:
                    key = self._review_key(review)
                    if review.flagged_status == FlaggedStatus.REJECTED:
                        live = find_live_review(db, *key)
                        if key in live_keys or (live is not None and live.id != review.id):
                            skipped.append(review.id)
                            continue
                        live_keys.add(key)
                    review.flagged_status = FlaggedStatus.APPROVED
                    review.approved_status = True
                    approved.append(review.id)
                db.flush()
        except IntegrityError as e:
            if not is_unique_violation(e):
                raise
            return ReviewResult.failure(ReviewError.DUPLICATE_REVIEW,
                                        'Another review for this teacher and period already exists')

        count = len(approved)
        logger.info(f"Bulk approved {count} reviews, skipped {len(skipped)}")
        try:
            self.audit.log_event(
                actor_id=actor.get('user_id'),
                actor_role=actor.get('role'),
                actor_name=actor.get('full_name') or 'Unknown',
                action_type='review_bulk_approve',
                description=f"Bulk approved {count} reviews",
                target_type='review',
                metadata={'count': count, 'review_ids': approved, 'skipped_ids': skipped},
                ip_address=ip_address,
                org_id=actor.get('org_id')
            )
        except Exception as e:
            logger.warning(f"Audit event review_bulk_approve dropped: {str(e)}")

        message = f"{len(skipped)} rejected reviews already replaced" if skipped else None
        return ReviewResult(count=count, message=message)

    @staticmethod
    def _review_key(review: Review):
        return review.teacher_id, review.student_id, review.feedback_period_id

    def _transition(self, review_id, actor, status, approved, action_type, verb, ip_address):
        try:
            with get_db(self.session_factory) as db:
                row = self._review_with_names(db, review_id)
                if not row:
                    return ReviewResult.failure(ReviewError.NOT_FOUND, 'Review not found')

                review, teacher_name, student_name = row
                review.flagged_status = status
                review.approved_status = approved
                db.flush()
                review_data = review_to_dict(review)
        except IntegrityError as e:
            # Reviving a rejected review while a newer one is live
            if not is_unique_violation(e):
                raise
            return ReviewResult.failure(ReviewError.DUPLICATE_REVIEW,
                                        'Another review for this teacher and period already exists')

        logger.info(f"Review {review_id} {status.value} by user {actor.get('user_id')}")
        self._log(actor, action_type, f"{verb} review from {student_name} for {teacher_name}",
                  review_data, ip_address)
        return ReviewResult(review=review_data)

    @staticmethod
    def _review_with_names(db, review_id):
        return db.query(Review, Teacher.full_name, User.full_name).join(
            Teacher, Review.teacher_id == Teacher.id
        ).join(
            User, Review.student_id == User.id
        ).filter(Review.id == review_id).first()

    def _list_reviews(self, status: Optional[FlaggedStatus], org_id: int, oldest_first: bool) -> List[Dict]:
        with get_db(self.session_factory) as db:
            query = db.query(Review, Teacher, Classroom, FeedbackPeriod, Term, User).join(
                Teacher, Review.teacher_id == Teacher.id
            ).join(
                Classroom, Review.classroom_id == Classroom.id
            ).join(
                FeedbackPeriod, Review.feedback_period_id == FeedbackPeriod.id
            ).join(
                Term, Review.term_id == Term.id
            ).join(
                User, Review.student_id == User.id
            )
            if status is not None:
                query = query.filter(Review.flagged_status == status)
            if org_id:
                query = query.filter(Review.org_id == org_id)

            order = Review.created_at.asc() if oldest_first else Review.created_at.desc()
            results = []
            for review, teacher, classroom, period, term, student in query.order_by(order).all():
                data = review_to_dict(review)
                data.update({
                    'teacher_name': teacher.full_name,
                    'classroom_subject': classroom.subject,
                    'grade_level': classroom.grade_level,
                    'period_name': period.name,
                    'term_name': term.name,
                    'student_name': student.full_name,
                    'student_email': student.email
                })
                results.append(data)
            return results

    def _log(self, actor: Dict, action_type: str, description: str, review_data: Dict, ip_address: str):
        try:
            self.audit.log_event(
                actor_id=actor.get('user_id'),
                actor_role=actor.get('role'),
                actor_name=actor.get('full_name') or 'Unknown',
                action_type=action_type,
                description=description,
                target_type='review',
                target_id=review_data['id'],
                metadata={
                    'teacher_id': review_data['teacher_id'],
                    'student_id': review_data['student_id'],
                    'rating': review_data['overall_rating']
                },
                ip_address=ip_address,
                org_id=review_data['org_id']
            )
        except Exception as e:
            logger.warning(f"Audit event {action_type} dropped: {str(e)}")
