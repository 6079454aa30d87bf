from datetime import date
import pytest
from edurate.database import get_db
from edurate.models import Classroom, ClassroomMember, FeedbackPeriod, Term
from edurate.services.eligibility_service import EligibilityService
from edurate.services.review_service import ReviewService
from conftest import enroll, review_payload


@pytest.fixture
def eligibility_service(session_factory):
    return EligibilityService(session_factory)


class TestEligibleTeachers:
    """Test which teachers a student may review"""
    
    def test_no_classrooms(self, eligibility_service, school, session_factory):
        with get_db(session_factory) as db:
            db.query(ClassroomMember).delete()
        
        result = eligibility_service.eligible_teachers(school.student_id)
        assert result.has_classrooms is False
        assert result.teachers == []
        assert result.period is None
    
    def test_open_classroom_listed(self, eligibility_service, school):
        result = eligibility_service.eligible_teachers(school.student_id)
        
        assert result.has_classrooms is True
        assert result.period['id'] == school.period_id
        assert len(result.teachers) == 1
        entry = result.teachers[0]
        assert entry.teacher_id == school.teacher_id
        assert entry.classroom_id == school.classroom_id
        assert entry.period_id == school.period_id
        assert entry.already_reviewed is False
    
    def test_already_reviewed_marked(self, eligibility_service, school, session_factory, audit):
        submitted = ReviewService(session_factory, audit=audit).submit_review(
            school.student_id, review_payload(school)
        )
        
        entry = eligibility_service.eligible_teachers(school.student_id).teachers[0]
        assert entry.already_reviewed is True
        assert entry.review_id == submitted.review['id']
    
    def test_closed_period_not_listed(self, eligibility_service, school, session_factory):
        with get_db(session_factory) as db:
            db.query(FeedbackPeriod).update({'active_status': False})
        
        result = eligibility_service.eligible_teachers(school.student_id)
        assert result.has_classrooms is True
        assert result.teachers == []
        assert result.period is None
    
    def test_inactive_term_not_listed(self, eligibility_service, school, session_factory):
        with get_db(session_factory) as db:
            db.query(Term).update({'active_status': False})
        
        assert eligibility_service.eligible_teachers(school.student_id).teachers == []
    
    def test_inactive_classroom_not_listed(self, eligibility_service, school, session_factory):
        with get_db(session_factory) as db:
            db.query(Classroom).filter_by(id=school.classroom_id).update({'active_status': False})
        
        result = eligibility_service.eligible_teachers(school.student_id)
        assert result.has_classrooms is True
        assert result.teachers == []
    
    def test_sorted_by_teacher_name(self, eligibility_service, school, session_factory):
        enroll(session_factory, school.other_classroom_id, school.student_id)
        
        names = [t.teacher_name for t in eligibility_service.eligible_teachers(school.student_id).teachers]
        assert names == ['Ada Byron', 'Marie Curie']
    
    def test_earliest_open_period_used(self, eligibility_service, school, session_factory):
        """Test a classroom open in two periods reports the lower-id one"""
        with get_db(session_factory) as db:
            classroom = db.query(Classroom).filter_by(id=school.classroom_id).first()
            later = FeedbackPeriod(term_id=school.term_id, name='Late check-in',
                                   start_date=date(2026, 11, 2), active_status=True,
                                   classrooms=[classroom])
            db.add(later)
        
        result = eligibility_service.eligible_teachers(school.student_id)
        assert [t.period_id for t in result.teachers] == [school.period_id]
        assert result.period['id'] == school.period_id
    
    def test_to_dict(self, eligibility_service, school):
        data = eligibility_service.eligible_teachers(school.student_id).to_dict()
        assert data['has_classrooms'] is True
        assert data['teachers'][0]['teacher_name'] == 'Ada Byron'
