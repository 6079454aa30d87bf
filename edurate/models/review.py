from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, JSON, Enum, Index, CheckConstraint, text
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class FlaggedStatus(enum.Enum):
    PENDING = "pending"
    FLAGGED = "flagged"
    APPROVED = "approved"
    REJECTED = "rejected"


SUB_RATING_FIELDS = (
    'clarity_rating',
    'engagement_rating',
    'fairness_rating',
    'supportiveness_rating',
    'preparation_rating',
    'workload_rating',
)

VALID_TAGS = [
    'Clear explanations', 'Engaging lessons', 'Fair grading', 'Supportive',
    'Well-prepared', 'Good examples', 'Encourages participation', 'Respectful',
    'Needs clearer explanations', 'Too fast-paced', 'Too slow-paced',
    'More examples needed', 'More interactive', 'Better organization',
    'More feedback needed', 'Challenging but good'
]


class Review(BaseModel):
    __tablename__ = 'reviews'
    __table_args__ = (
        # At most one live review per (teacher, student, period); rejected rows don't count
        Index(
            'uq_reviews_teacher_student_period',
            'teacher_id', 'student_id', 'feedback_period_id',
            unique=True,
            sqlite_where=text("flagged_status != 'rejected'"),
            postgresql_where=text("flagged_status != 'rejected'")
        ),
        *[CheckConstraint(f'{field} BETWEEN 1 AND 5', name=f'ck_reviews_{field}')
          for field in SUB_RATING_FIELDS + ('overall_rating',)],
    )
    
    org_id = Column(Integer, ForeignKey('organizations.id'), index=True)
    teacher_id = Column(Integer, ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False, index=True)
    classroom_id = Column(Integer, ForeignKey('classrooms.id', ondelete='CASCADE'), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    term_id = Column(Integer, ForeignKey('terms.id', ondelete='CASCADE'), nullable=False)
    feedback_period_id = Column(Integer, ForeignKey('feedback_periods.id', ondelete='CASCADE'),
                                nullable=False, index=True)
    
    # Rubric (1-5 scale)
    clarity_rating = Column(Integer, nullable=False)
    engagement_rating = Column(Integer, nullable=False)
    fairness_rating = Column(Integer, nullable=False)
    supportiveness_rating = Column(Integer, nullable=False)
    preparation_rating = Column(Integer, nullable=False)
    workload_rating = Column(Integer, nullable=False)
    overall_rating = Column(Integer, nullable=False)  # derived, see calculate_overall_rating
    
    feedback_text = Column(String(5000), default='')
    tags = Column(JSON, default=list)
    
    # Moderation
    flagged_status = Column(
        Enum(FlaggedStatus, values_callable=lambda statuses: [s.value for s in statuses],
             native_enum=False, length=20),
        default=FlaggedStatus.PENDING,
        nullable=False,
        index=True
    )
    approved_status = Column(Boolean, default=False, nullable=False)
    
    # Relationships
    teacher = relationship("Teacher", back_populates="reviews")
    classroom = relationship("Classroom")
    student = relationship("User")
    feedback_period = relationship("FeedbackPeriod")
    term = relationship("Term")
    
    def sub_ratings(self):
        return {field: getattr(self, field) for field in SUB_RATING_FIELDS}
