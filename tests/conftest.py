import os
import tempfile

# Route tests use the application-wide engine, so point it somewhere disposable before import
_TEST_DIR = tempfile.mkdtemp(prefix='edurate-tests-')
os.environ['DATABASE_URL'] = 'sqlite:///' + os.path.join(_TEST_DIR, 'app.db')
os.environ.setdefault('LOG_FILE', os.path.join(_TEST_DIR, 'edurate.log'))

from dataclasses import dataclass
from datetime import date
import pytest
from edurate.database import create_db_engine, create_session_factory, drop_db, get_db, init_db
from edurate.models import (
    Classroom, ClassroomMember, FeedbackPeriod, Organization, Teacher, Term, User
)
from edurate.models.user import UserRole
from edurate.utils.security import hash_password

PASSWORD = 'Password123!'
PASSWORD_HASH = hash_password(PASSWORD)

GOOD_RATINGS = {
    'clarity_rating': 5,
    'engagement_rating': 4,
    'fairness_rating': 5,
    'supportiveness_rating': 4,
    'preparation_rating': 5,
    'workload_rating': 4,
}


class RecordingAudit:
    """Audit sink that keeps events in memory"""

    def __init__(self):
        self.events = []

    def log_event(self, **event):
        self.events.append(event)

    def actions(self):
        return [event['action_type'] for event in self.events]


@dataclass
class School:
    org_id: int
    admin_id: int
    head_id: int
    teacher_user_id: int
    teacher_id: int
    other_teacher_id: int
    student_id: int
    other_student_id: int
    term_id: int
    period_id: int
    classroom_id: int
    other_classroom_id: int


def seed_school(session_factory=None) -> School:
    """One school: two teachers with a classroom each, one open period.

    Only ``student_id`` is enrolled, and only in ``classroom_id``.
    """
    with get_db(session_factory) as db:
        org = Organization(name='Lakeside High', slug='lakeside', contact_email='office@lakeside.edu')
        db.add(org)
        db.flush()

        def user(email, name, role):
            return User(email=email, password_hash=PASSWORD_HASH, full_name=name, role=role, org_id=org.id)

        admin = user('admin@lakeside.edu', 'Admin User', UserRole.ADMIN)
        head = user('head@lakeside.edu', 'Pat Principal', UserRole.SCHOOL_HEAD)
        teacher_user = user('ada@lakeside.edu', 'Ada Byron', UserRole.TEACHER)
        other_teacher_user = user('marie@lakeside.edu', 'Marie Curie', UserRole.TEACHER)
        student = user('sam@lakeside.edu', 'Sam Student', UserRole.STUDENT)
        other_student = user('riley@lakeside.edu', 'Riley Student', UserRole.STUDENT)
        db.add_all([admin, head, teacher_user, other_teacher_user, student, other_student])
        db.flush()

        teacher = Teacher(user_id=teacher_user.id, org_id=org.id, full_name='Ada Byron',
                          subject='Mathematics', department='Mathematics')
        other_teacher = Teacher(user_id=other_teacher_user.id, org_id=org.id, full_name='Marie Curie',
                                subject='Chemistry', department='Science')
        db.add_all([teacher, other_teacher])
        db.flush()

        term = Term(org_id=org.id, name='Fall 2026', start_date=date(2026, 9, 1),
                    end_date=date(2026, 12, 18), active_status=True)
        db.add(term)
        db.flush()

        classroom = Classroom(org_id=org.id, teacher_id=teacher.id, term_id=term.id,
                              subject='Algebra I', grade_level='9', join_code='ABC234')
        other_classroom = Classroom(org_id=org.id, teacher_id=other_teacher.id, term_id=term.id,
                                    subject='Chemistry', grade_level='10', join_code='XYZ567')
        db.add_all([classroom, other_classroom])
        db.flush()

        period = FeedbackPeriod(term_id=term.id, name='Midterm', start_date=date(2026, 10, 12),
                                end_date=date(2026, 10, 30), active_status=True,
                                classrooms=[classroom, other_classroom])
        db.add(period)
        db.add(ClassroomMember(classroom_id=classroom.id, student_id=student.id))
        db.flush()

        return School(
            org_id=org.id,
            admin_id=admin.id,
            head_id=head.id,
            teacher_user_id=teacher_user.id,
            teacher_id=teacher.id,
            other_teacher_id=other_teacher.id,
            student_id=student.id,
            other_student_id=other_student.id,
            term_id=term.id,
            period_id=period.id,
            classroom_id=classroom.id,
            other_classroom_id=other_classroom.id
        )


@pytest.fixture
def session_factory(tmp_path):
    """Fresh file-backed SQLite database per test"""
    engine = create_db_engine(f"sqlite:///{tmp_path / 'edurate.db'}")
    init_db(bind=engine)
    yield create_session_factory(engine)
    drop_db(bind=engine)
    engine.dispose()


@pytest.fixture
def school(session_factory):
    return seed_school(session_factory)


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def admin_actor(school):
    return {'user_id': school.admin_id, 'role': 'admin', 'full_name': 'Admin User', 'org_id': school.org_id}


def review_payload(school, **overrides):
    data = {
        'teacher_id': school.teacher_id,
        'classroom_id': school.classroom_id,
        'feedback_text': 'Explains things well and keeps class moving.',
        'tags': ['Clear explanations'],
    }
    data.update(GOOD_RATINGS)
    data.update(overrides)
    return data


def enroll(session_factory, classroom_id, student_id):
    with get_db(session_factory) as db:
        db.add(ClassroomMember(classroom_id=classroom_id, student_id=student_id))
