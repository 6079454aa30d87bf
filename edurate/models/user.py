from sqlalchemy import Column, String, Boolean, Enum, Integer, ForeignKey
from sqlalchemy.orm import relationship
import enum
from .base import BaseModel


class UserRole(enum.Enum):
    STUDENT = "student"
    TEACHER = "teacher"
    SCHOOL_HEAD = "school_head"
    ADMIN = "admin"


class User(BaseModel):
    __tablename__ = 'users'
    
    # Basic Info
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    full_name = Column(String(255), nullable=False)
    role = Column(Enum(UserRole), nullable=False, index=True)
    grade_or_position = Column(String(100))
    
    # Tenant
    org_id = Column(Integer, ForeignKey('organizations.id'), index=True)
    
    # Status
    is_active = Column(Boolean, default=True)
    
    # Relationships
    organization = relationship("Organization", back_populates="users")
    teacher_profile = relationship("Teacher", back_populates="user", uselist=False)
    memberships = relationship("ClassroomMember", back_populates="student", lazy='dynamic',
                               passive_deletes=True)
