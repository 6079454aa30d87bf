from datetime import datetime
from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.orm import relationship
from .base import BaseModel
from .term import feedback_period_classrooms


class Classroom(BaseModel):
    __tablename__ = 'classrooms'
    
    org_id = Column(Integer, ForeignKey('organizations.id'), nullable=False, index=True)
    teacher_id = Column(Integer, ForeignKey('teachers.id', ondelete='CASCADE'), nullable=False, index=True)
    term_id = Column(Integer, ForeignKey('terms.id', ondelete='SET NULL'))  # classrooms outlive terms
    
    subject = Column(String(100), nullable=False)
    grade_level = Column(String(50), nullable=False)
    join_code = Column(String(12), unique=True, nullable=False, index=True)
    active_status = Column(Boolean, default=True, nullable=False)
    
    # Relationships
    teacher = relationship("Teacher", back_populates="classrooms")
    members = relationship("ClassroomMember", back_populates="classroom", lazy='dynamic',
                           passive_deletes=True)
    feedback_periods = relationship("FeedbackPeriod", secondary=feedback_period_classrooms,
                                    back_populates="classrooms")


class ClassroomMember(BaseModel):
    __tablename__ = 'classroom_members'
    __table_args__ = (
        UniqueConstraint('classroom_id', 'student_id', name='uq_classroom_member'),
    )
    
    classroom_id = Column(Integer, ForeignKey('classrooms.id', ondelete='CASCADE'), nullable=False, index=True)
    student_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True)
    joined_at = Column(DateTime, default=datetime.utcnow)
    
    # Relationships
    classroom = relationship("Classroom", back_populates="members")
    student = relationship("User", back_populates="memberships")
