from datetime import date
import pytest
from edurate.database import get_db
from edurate.models import Classroom, FeedbackPeriod, Review, Teacher
from edurate.models.review import FlaggedStatus
from edurate.services.scoring_service import ScoringService, _percent, classify_trend
from conftest import enroll


@pytest.fixture
def scoring_service(session_factory):
    return ScoringService(session_factory)


def add_review(session_factory, school, ratings, period_id=None, approved=True,
               status=FlaggedStatus.APPROVED, teacher_id=None, classroom_id=None, student_id=None,
               overall=None):
    """Insert a review row directly; ratings is the six sub-ratings in order"""
    clarity, engagement, fairness, supportiveness, preparation, workload = ratings
    with get_db(session_factory) as db:
        review = Review(
            org_id=school.org_id,
            teacher_id=teacher_id or school.teacher_id,
            classroom_id=classroom_id or school.classroom_id,
            student_id=student_id or school.student_id,
            term_id=school.term_id,
            feedback_period_id=period_id or school.period_id,
            clarity_rating=clarity,
            engagement_rating=engagement,
            fairness_rating=fairness,
            supportiveness_rating=supportiveness,
            preparation_rating=preparation,
            workload_rating=workload,
            overall_rating=overall or round(sum(ratings) / len(ratings)),
            flagged_status=status,
            approved_status=approved
        )
        db.add(review)
        db.flush()
        return review.id


def add_period(session_factory, school, name, start):
    with get_db(session_factory) as db:
        classroom = db.query(Classroom).filter_by(id=school.classroom_id).first()
        period = FeedbackPeriod(term_id=school.term_id, name=name, start_date=start,
                                active_status=False, classrooms=[classroom])
        db.add(period)
        db.flush()
        return period.id


class TestTeacherScores:
    """Test rubric aggregation"""
    
    def test_no_reviews(self, scoring_service, school):
        scores = scoring_service.teacher_scores(school.teacher_id)
        assert scores.review_count == 0
        assert scores.avg_overall is None
        assert scores.avg_clarity is None
        assert scores.final_score is None
    
    def test_only_approved_counted(self, scoring_service, school, session_factory):
        add_review(session_factory, school, [5, 5, 5, 5, 5, 5])
        add_review(session_factory, school, [1, 1, 1, 1, 1, 1], approved=False,
                   status=FlaggedStatus.PENDING, student_id=school.other_student_id)
        
        scores = scoring_service.teacher_scores(school.teacher_id)
        assert scores.review_count == 1
        assert scores.avg_overall == 5.0
    
    def test_averages(self, scoring_service, school, session_factory):
        add_review(session_factory, school, [5, 4, 3, 2, 1, 5])
        add_review(session_factory, school, [4, 4, 4, 4, 4, 4], student_id=school.other_student_id)
        
        scores = scoring_service.teacher_scores(school.teacher_id)
        assert scores.review_count == 2
        assert scores.avg_clarity == 4.5
        assert scores.avg_engagement == 4.0
        assert scores.avg_supportiveness == 3.0
        assert scores.avg_preparation == 2.5
    
    def test_final_score_formulas_differ(self, scoring_service, school, session_factory):
        """Test teacher view uses rounded overalls, dashboard uses raw sub-rating means"""
        add_review(session_factory, school, [5, 5, 5, 5, 5, 4], overall=5)
        add_review(session_factory, school, [3, 3, 3, 3, 3, 2], overall=3,
                   student_id=school.other_student_id)
        
        teacher_view = scoring_service.teacher_scores(school.teacher_id)
        dashboard_view = scoring_service.dashboard_scores(school.teacher_id)
        
        assert teacher_view.final_score == 4.0
        assert dashboard_view.final_score == 3.83
    
    def test_dashboard_scores_empty(self, scoring_service, school):
        assert scoring_service.dashboard_scores(school.teacher_id).final_score is None
    
    def test_scope_by_classroom(self, scoring_service, school, session_factory):
        add_review(session_factory, school, [5, 5, 5, 5, 5, 5])
        
        assert scoring_service.teacher_scores(school.teacher_id, classroom_id=school.classroom_id).review_count == 1
        assert scoring_service.teacher_scores(school.teacher_id,
                                              classroom_id=school.other_classroom_id).review_count == 0


class TestDistribution:
    
    def test_all_buckets_present(self, scoring_service, school):
        assert scoring_service.rating_distribution(school.teacher_id) == {1: 0, 2: 0, 3: 0, 4: 0, 5: 0}
    
    def test_counts(self, scoring_service, school, session_factory):
        add_review(session_factory, school, [5, 5, 5, 5, 5, 5])
        add_review(session_factory, school, [4, 4, 4, 4, 4, 4], student_id=school.other_student_id)
        add_review(session_factory, school, [4, 4, 4, 4, 4, 4], student_id=school.head_id)
        
        assert scoring_service.rating_distribution(school.teacher_id) == {1: 0, 2: 0, 3: 0, 4: 2, 5: 1}


class TestTrend:
    """Test per-period trend classification"""
    
    @pytest.mark.parametrize('scores,expected', [
        ([], 'stable'),
        ([4.0], 'stable'),
        ([3.0, 3.2], 'stable'),
        ([3.0, 3.5], 'improving'),
        ([4.5, 3.0], 'declining'),
        ([3.0, None, 4.0], 'improving'),
        ([None, 4.0], 'stable'),
    ])
    def test_classify_trend(self, scores, expected):
        assert classify_trend(scores, threshold=0.3) == expected
    
    def test_single_period(self, scoring_service, school, session_factory):
        add_review(session_factory, school, [4, 4, 4, 4, 4, 4])
        
        trend = scoring_service.teacher_trend(school.teacher_id, school.term_id)
        assert trend.trend == 'stable'
        assert len(trend.periods) == 1
        assert trend.periods[0].score == 4.0
    
    def test_improving_in_date_order(self, scoring_service, school, session_factory):
        """Test periods are ordered by start date, not creation order"""
        early = add_period(session_factory, school, 'Early check-in', date(2026, 9, 20))
        add_review(session_factory, school, [2, 2, 2, 2, 2, 2], period_id=early)
        add_review(session_factory, school, [5, 5, 5, 5, 5, 5])
        
        trend = scoring_service.teacher_trend(school.teacher_id, school.term_id)
        assert [p.name for p in trend.periods] == ['Early check-in', 'Midterm']
        assert trend.trend == 'improving'
    
    def test_period_score_uses_sub_rating_means(self, scoring_service, school, session_factory):
        """Test a period scores the raw sub-rating means, not the rounded overalls"""
        add_review(session_factory, school, [5, 5, 5, 5, 5, 4], overall=5)
        add_review(session_factory, school, [3, 3, 3, 3, 3, 2], overall=3,
                   student_id=school.other_student_id)
        
        trend = scoring_service.teacher_trend(school.teacher_id, school.term_id)
        assert trend.periods[0].score == 3.83
        assert trend.periods[0].review_count == 2
        assert scoring_service.teacher_scores(school.teacher_id).final_score == 4.0
    
    def test_declining(self, scoring_service, school, session_factory):
        late = add_period(session_factory, school, 'Final', date(2026, 12, 1))
        add_review(session_factory, school, [5, 5, 5, 5, 5, 5])
        add_review(session_factory, school, [3, 3, 3, 3, 3, 3], period_id=late)
        
        assert scoring_service.teacher_trend(school.teacher_id, school.term_id).trend == 'declining'
    
    def test_period_without_reviews(self, scoring_service, school, session_factory):
        add_period(session_factory, school, 'Final', date(2026, 12, 1))
        add_review(session_factory, school, [4, 4, 4, 4, 4, 4])
        
        trend = scoring_service.teacher_trend(school.teacher_id, school.term_id)
        assert trend.periods[1].score is None
        assert trend.periods[1].review_count == 0
        assert trend.trend == 'stable'


class TestDepartmentAverage:
    
    def test_no_reviews(self, scoring_service, school):
        assert scoring_service.department_average('Mathematics') == 0.0
    
    def test_mean_of_teacher_averages(self, scoring_service, school, session_factory):
        """Test each teacher counts once regardless of review volume"""
        with get_db(session_factory) as db:
            db.query(Teacher).filter_by(id=school.other_teacher_id).update({'department': 'Mathematics'})
        
        add_review(session_factory, school, [5, 5, 5, 5, 5, 5])
        add_review(session_factory, school, [5, 5, 5, 5, 5, 5], student_id=school.other_student_id)
        add_review(session_factory, school, [5, 5, 5, 5, 5, 5], student_id=school.head_id)
        add_review(session_factory, school, [2, 2, 2, 2, 2, 2], teacher_id=school.other_teacher_id,
                   classroom_id=school.other_classroom_id)
        
        assert scoring_service.department_average('Mathematics') == 3.5
    
    def test_scoped_to_org(self, scoring_service, school, session_factory):
        add_review(session_factory, school, [4, 4, 4, 4, 4, 4])
        
        assert scoring_service.department_average('Mathematics', org_id=school.org_id) == 4.0
        assert scoring_service.department_average('Mathematics', org_id=school.org_id + 1) == 0.0


class TestCompletionRate:
    
    def test_empty_classroom(self, scoring_service, school):
        rate = scoring_service.completion_rate(school.other_classroom_id, school.period_id)
        assert rate.to_dict() == {'total': 0, 'submitted': 0, 'rate': 0}
    
    def test_rate(self, scoring_service, school, session_factory):
        enroll(session_factory, school.classroom_id, school.other_student_id)
        enroll(session_factory, school.classroom_id, school.head_id)
        add_review(session_factory, school, [4, 4, 4, 4, 4, 4], approved=False, status=FlaggedStatus.PENDING)
        
        rate = scoring_service.completion_rate(school.classroom_id, school.period_id)
        assert rate.total == 3
        assert rate.submitted == 1
        assert rate.rate == 33
    
    def test_rejected_reviews_not_counted(self, scoring_service, school, session_factory):
        add_review(session_factory, school, [4, 4, 4, 4, 4, 4], approved=False, status=FlaggedStatus.REJECTED)
        
        rate = scoring_service.completion_rate(school.classroom_id, school.period_id)
        assert rate.submitted == 0
        assert rate.rate == 0
    
    def test_percent_rounds_half_up(self):
        assert _percent(1, 8) == 13
        assert _percent(2, 3) == 67
        assert _percent(1, 3) == 33
        assert _percent(0, 0) == 0
