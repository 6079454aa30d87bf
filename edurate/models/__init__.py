from .organization import Organization
from .user import User
from .teacher import Teacher
from .term import Term, FeedbackPeriod, feedback_period_classrooms
from .classroom import Classroom, ClassroomMember
from .review import Review
from .audit_log import AuditLog
from .teacher_response import TeacherResponse

__all__ = [
    'Organization', 'User', 'Teacher', 'Term', 'FeedbackPeriod',
    'feedback_period_classrooms', 'Classroom', 'ClassroomMember',
    'Review', 'AuditLog', 'TeacherResponse'
]
