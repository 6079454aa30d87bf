from sqlalchemy import Column, String, Integer, ForeignKey
from sqlalchemy.orm import relationship
from .base import BaseModel


class Teacher(BaseModel):
    __tablename__ = 'teachers'
    
    user_id = Column(Integer, ForeignKey('users.id', ondelete='CASCADE'), unique=True, nullable=False)
    org_id = Column(Integer, ForeignKey('organizations.id'), nullable=False, index=True)
    
    full_name = Column(String(255), nullable=False)
    subject = Column(String(100))
    department = Column(String(100), index=True)
    
    # Relationships
    user = relationship("User", back_populates="teacher_profile")
    organization = relationship("Organization", back_populates="teachers")
    classrooms = relationship("Classroom", back_populates="teacher", lazy='dynamic')
    reviews = relationship("Review", back_populates="teacher", lazy='dynamic')
