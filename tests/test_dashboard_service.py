from edurate.services.dashboard_service import DashboardService
from edurate.services.moderation_service import ModerationService
from edurate.services.review_service import ReviewService
from edurate.services.term_service import TermService
from edurate.services.classroom_service import EnrollmentError
from conftest import review_payload


class TestDashboardService:
    """Test the school-head overview"""
    
    def test_overview(self, session_factory, school, audit, admin_actor):
        reviews = ReviewService(session_factory, audit=audit)
        submitted = reviews.submit_review(school.student_id, review_payload(school))
        ModerationService(session_factory, audit=audit).approve(submitted.review['id'], admin_actor)
        
        overview = DashboardService(session_factory).school_head_overview(school.org_id)
        
        assert overview['active_term']['id'] == school.term_id
        assert [t['full_name'] for t in overview['teachers']] == ['Ada Byron', 'Marie Curie']
        
        ada = overview['teachers'][0]
        assert ada['scores']['review_count'] == 1
        assert ada['scores']['final_score'] == 4.5
        assert ada['distribution'][5] == 1
        assert ada['trend']['trend'] == 'stable'
        
        assert overview['departments']['Mathematics'] == {'teachers': [school.teacher_id], 'avg_score': 5.0}
        assert overview['departments']['Science']['avg_score'] == 0.0
    
    def test_overview_without_active_term(self, session_factory, school):
        TermService(session_factory).set_term_active(school.term_id, False)
        
        overview = DashboardService(session_factory).school_head_overview(school.org_id)
        assert overview['active_term'] is None
        assert overview['teachers'][0]['trend'] is None


class TestTeacherDashboard:
    """Test the teacher's own dashboard and responses"""
    
    def test_teacher_overview(self, session_factory, school, audit, admin_actor):
        reviews = ReviewService(session_factory, audit=audit)
        submitted = reviews.submit_review(school.student_id, review_payload(school))
        ModerationService(session_factory, audit=audit).approve(submitted.review['id'], admin_actor)
        
        overview = DashboardService(session_factory, audit=audit).teacher_overview(school.teacher_user_id)
        
        assert overview['teacher']['id'] == school.teacher_id
        assert overview['active_term']['id'] == school.term_id
        assert overview['active_period']['id'] == school.period_id
        
        classroom = overview['classrooms'][0]
        assert len(overview['classrooms']) == 1
        assert classroom['id'] == school.classroom_id
        assert classroom['term_name'] == 'Fall 2026'
        assert classroom['student_count'] == 1
        
        assert overview['overall_scores']['review_count'] == 1
        assert overview['term_scores']['final_score'] == 5.0
        assert overview['distribution'][5] == 1
        assert overview['trend']['periods'][0]['score'] == 4.5
        assert overview['department_average'] == 5.0
        
        assert overview['completion_rates'] == [{
            'total': 1, 'submitted': 1, 'rate': 100,
            'classroom_id': school.classroom_id, 'subject': 'Algebra I', 'grade_level': '9'
        }]
        
        recent = overview['recent_reviews']
        assert len(recent) == 1
        assert recent[0]['period_name'] == 'Midterm'
        assert 'student_id' not in recent[0]
        assert overview['responses'] == []
    
    def test_teacher_overview_pending_reviews_not_scored(self, session_factory, school, audit):
        ReviewService(session_factory, audit=audit).submit_review(school.student_id, review_payload(school))
        
        overview = DashboardService(session_factory, audit=audit).teacher_overview(school.teacher_user_id)
        assert overview['overall_scores']['review_count'] == 0
        assert overview['recent_reviews'][0]['approved_status'] is False
        assert overview['completion_rates'][0]['submitted'] == 1
    
    def test_teacher_overview_without_profile(self, session_factory, school):
        assert DashboardService(session_factory).teacher_overview(school.student_id) is None
    
    def test_respond_then_repost_replaces(self, session_factory, school, audit):
        service = DashboardService(session_factory, audit=audit)
        
        first = service.respond(school.teacher_user_id, school.classroom_id, school.period_id,
                                'Thanks, I will slow down on proofs.')
        assert first.ok
        
        second = service.respond(school.teacher_user_id, school.classroom_id, school.period_id,
                                 'Thanks, extra review sessions on Fridays.')
        assert second.ok
        assert second.response['id'] == first.response['id']
        assert second.response['response_text'] == 'Thanks, extra review sessions on Fridays.'
        
        responses = service.teacher_overview(school.teacher_user_id)['responses']
        assert len(responses) == 1
        assert responses[0]['classroom_subject'] == 'Algebra I'
        assert responses[0]['period_name'] == 'Midterm'
        
        assert audit.actions() == ['teacher_respond', 'teacher_respond']
        assert audit.events[0]['target_type'] == 'teacher_response'
        assert audit.events[0]['org_id'] == school.org_id
    
    def test_respond_to_other_teachers_classroom(self, session_factory, school, audit):
        result = DashboardService(session_factory, audit=audit).respond(
            school.teacher_user_id, school.other_classroom_id, school.period_id, 'Not mine to answer.'
        )
        assert result.error == EnrollmentError.FORBIDDEN
        assert audit.events == []
    
    def test_respond_requires_text(self, session_factory, school, audit):
        service = DashboardService(session_factory, audit=audit)
        
        assert service.respond(school.teacher_user_id, school.classroom_id, school.period_id,
                               '   ').error == EnrollmentError.INVALID_INPUT
        assert service.respond(school.teacher_user_id, school.classroom_id, None,
                               'Thanks').error == EnrollmentError.INVALID_INPUT
    
    def test_respond_unknown_period_or_user(self, session_factory, school, audit):
        service = DashboardService(session_factory, audit=audit)
        
        assert service.respond(school.teacher_user_id, school.classroom_id, 9999,
                               'Thanks').error == EnrollmentError.NOT_FOUND
        assert service.respond(school.student_id, school.classroom_id, school.period_id,
                               'Thanks').error == EnrollmentError.NOT_FOUND
