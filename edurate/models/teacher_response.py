from sqlalchemy import Column, Integer, ForeignKey, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import BaseModel


class TeacherResponse(BaseModel):
    __tablename__ = 'teacher_responses'
    __table_args__ = (
        # One response per classroom and period; reposting replaces the text
        UniqueConstraint('teacher_id', 'classroom_id', 'feedback_period_id',
                         name='uq_teacher_response'),
    )
    
    teacher_id = Column(Integer, ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False, index=True)
    classroom_id = Column(Integer, ForeignKey('classrooms.id', ondelete='CASCADE'), nullable=False)
    feedback_period_id = Column(Integer, ForeignKey('feedback_periods.id', ondelete='CASCADE'), nullable=False)
    
    response_text = Column(Text, nullable=False)
    
    # Relationships
    teacher = relationship("Teacher")
    classroom = relationship("Classroom")
    feedback_period = relationship("FeedbackPeriod")
