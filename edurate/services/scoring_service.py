from dataclasses import dataclass, field, asdict
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional
from sqlalchemy import func
from edurate.database import get_db
from edurate.models import ClassroomMember, FeedbackPeriod, Review, Teacher
from edurate.models.review import FlaggedStatus, SUB_RATING_FIELDS
from config.config import Config
from edurate.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class ScoreSummary:
    review_count: int = 0
    avg_overall: Optional[float] = None
    avg_clarity: Optional[float] = None
    avg_engagement: Optional[float] = None
    avg_fairness: Optional[float] = None
    avg_supportiveness: Optional[float] = None
    avg_preparation: Optional[float] = None
    avg_workload: Optional[float] = None
    final_score: Optional[float] = None

    def to_dict(self):
        return asdict(self)


@dataclass
class PeriodScore:
    id: int
    name: str
    start_date: Optional[str]
    score: Optional[float]
    review_count: int


@dataclass
class TrendResult:
    periods: List[PeriodScore] = field(default_factory=list)
    trend: str = 'stable'

    def to_dict(self):
        return asdict(self)


@dataclass
class CompletionRate:
    total: int = 0
    submitted: int = 0
    rate: int = 0

    def to_dict(self):
        return asdict(self)


def _round(value, places: int = 2) -> Optional[float]:
    return round(float(value), places) if value is not None else None


def _percent(part: int, whole: int) -> int:
    """Nearest whole percent, halves rounded up"""
    if not whole:
        return 0
    ratio = Decimal(part) * 100 / Decimal(whole)
    return int(ratio.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def classify_trend(scores: List[Optional[float]], threshold: float = None) -> str:
    """Compare the first and last non-null period averages"""
    threshold = Config.TREND_THRESHOLD if threshold is None else threshold
    points = [score for score in scores if score is not None]
    if len(points) < 2:
        return 'stable'

    diff = points[-1] - points[0]
    if diff > threshold:
        return 'improving'
    if diff < -threshold:
        return 'declining'
    return 'stable'


class ScoringService:
    """Aggregates over approved reviews. Recomputed on every call, never cached."""

    def __init__(self, session_factory=None):
        self.session_factory = session_factory

    @staticmethod
    def _approved(query, teacher_id: int, classroom_id: int = None,
                  period_id: int = None, term_id: int = None):
        query = query.filter(
            Review.teacher_id == teacher_id,
            Review.approved_status.is_(True)
        )
        if classroom_id:
            query = query.filter(Review.classroom_id == classroom_id)
        if period_id:
            query = query.filter(Review.feedback_period_id == period_id)
        if term_id:
            query = query.filter(Review.term_id == term_id)
        return query

    def _aggregate_row(self, db, teacher_id, classroom_id, period_id, term_id):
        columns = [func.count(Review.id), func.avg(Review.overall_rating)]
        columns += [func.avg(getattr(Review, name)) for name in SUB_RATING_FIELDS]
        return self._approved(db.query(*columns), teacher_id, classroom_id, period_id, term_id).one()

    @staticmethod
    def _summary(row, final_score) -> ScoreSummary:
        count, avg_overall, *sub_averages = row
        averages = {
            'avg_' + name.replace('_rating', ''): _round(value)
            for name, value in zip(SUB_RATING_FIELDS, sub_averages)
        }
        return ScoreSummary(
            review_count=count or 0,
            avg_overall=_round(avg_overall),
            final_score=_round(final_score),
            **averages
        )

    def teacher_scores(self, teacher_id: int, classroom_id: int = None,
                       period_id: int = None, term_id: int = None) -> ScoreSummary:
        """Rubric averages; final_score is the mean of the per-review (rounded) overall ratings"""
        with get_db(self.session_factory) as db:
            row = self._aggregate_row(db, teacher_id, classroom_id, period_id, term_id)
            return self._summary(row, final_score=row[1])

    def dashboard_scores(self, teacher_id: int, classroom_id: int = None,
                         period_id: int = None, term_id: int = None) -> ScoreSummary:
        """School-head variant: final_score is the mean of the six sub-rating averages"""
        with get_db(self.session_factory) as db:
            row = self._aggregate_row(db, teacher_id, classroom_id, period_id, term_id)
            sub_averages = row[2:]
            if row[0]:
                final_score = sum(float(value) for value in sub_averages) / len(sub_averages)
            else:
                final_score = None
            return self._summary(row, final_score=final_score)

    def rating_distribution(self, teacher_id: int, classroom_id: int = None,
                            period_id: int = None, term_id: int = None) -> Dict[int, int]:
        """Approved review counts per overall rating, every bucket present"""
        with get_db(self.session_factory) as db:
            rows = self._approved(
                db.query(Review.overall_rating, func.count(Review.id)),
                teacher_id, classroom_id, period_id, term_id
            ).group_by(Review.overall_rating).all()

            distribution = {rating: 0 for rating in range(Config.RATING_MIN, Config.RATING_MAX + 1)}
            for rating, count in rows:
                distribution[rating] = count
            return distribution

    def teacher_trend(self, teacher_id: int, term_id: int) -> TrendResult:
        """One score per period of the term, in chronological order.

        A period's score is the mean of its six raw sub-rating averages,
        not the average of the rounded overall ratings.
        """
        with get_db(self.session_factory) as db:
            periods = db.query(FeedbackPeriod).filter(
                FeedbackPeriod.term_id == term_id
            ).order_by(FeedbackPeriod.start_date.asc(), FeedbackPeriod.id.asc()).all()

            columns = [Review.feedback_period_id, func.count(Review.id)]
            columns += [func.avg(getattr(Review, name)) for name in SUB_RATING_FIELDS]
            rows = self._approved(
                db.query(*columns), teacher_id, term_id=term_id
            ).group_by(Review.feedback_period_id).all()

            by_period = {}
            for period_id, count, *sub_averages in rows:
                score = sum(float(value) for value in sub_averages) / len(sub_averages)
                by_period[period_id] = (score, count)

            period_scores = []
            for period in periods:
                avg, count = by_period.get(period.id, (None, 0))
                period_scores.append(PeriodScore(
                    id=period.id,
                    name=period.name,
                    start_date=period.start_date.isoformat() if period.start_date else None,
                    score=_round(avg),
                    review_count=count
                ))

            return TrendResult(
                periods=period_scores,
                trend=classify_trend([p.score for p in period_scores])
            )

    def department_average(self, department: str, term_id: int = None, org_id: int = None) -> float:
        """Mean of per-teacher average overall ratings (not weighted by review volume)"""
        with get_db(self.session_factory) as db:
            query = db.query(func.avg(Review.overall_rating)).join(
                Teacher, Review.teacher_id == Teacher.id
            ).filter(
                Teacher.department == department,
                Review.approved_status.is_(True)
            )
            if term_id:
                query = query.filter(Review.term_id == term_id)
            if org_id:
                query = query.filter(Teacher.org_id == org_id)

            teacher_averages = [float(avg) for (avg,) in query.group_by(Review.teacher_id).all()]
            if not teacher_averages:
                return 0.0
            return round(sum(teacher_averages) / len(teacher_averages), 2)

    def completion_rate(self, classroom_id: int, period_id: int) -> CompletionRate:
        """Share of classroom members with a live review in the period"""
        with get_db(self.session_factory) as db:
            total = db.query(ClassroomMember).filter(
                ClassroomMember.classroom_id == classroom_id
            ).count()

            submitted = db.query(func.count(func.distinct(Review.student_id))).filter(
                Review.classroom_id == classroom_id,
                Review.feedback_period_id == period_id,
                Review.flagged_status != FlaggedStatus.REJECTED
            ).scalar() or 0

            return CompletionRate(total=total, submitted=submitted, rate=_percent(submitted, total))
