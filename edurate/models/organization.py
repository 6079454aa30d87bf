from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from .base import BaseModel


class Organization(BaseModel):
    __tablename__ = 'organizations'
    
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    contact_email = Column(String(255))
    
    # Relationships
    users = relationship("User", back_populates="organization", lazy='dynamic')
    teachers = relationship("Teacher", back_populates="organization", lazy='dynamic')
    terms = relationship("Term", back_populates="organization", lazy='dynamic')
