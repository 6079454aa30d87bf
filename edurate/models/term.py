from sqlalchemy import Column, String, Integer, Boolean, ForeignKey, Date, Table
from sqlalchemy.orm import relationship
from .base import Base, BaseModel


# A period can cover several classrooms; a classroom can be open across several periods
feedback_period_classrooms = Table(
    'feedback_period_classrooms',
    Base.metadata,
    Column('feedback_period_id', Integer, ForeignKey('feedback_periods.id', ondelete='CASCADE'),
           primary_key=True),
    Column('classroom_id', Integer, ForeignKey('classrooms.id', ondelete='CASCADE'),
           primary_key=True)
)


class Term(BaseModel):
    __tablename__ = 'terms'
    
    org_id = Column(Integer, ForeignKey('organizations.id'), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    active_status = Column(Boolean, default=True, nullable=False)
    
    # Relationships
    organization = relationship("Organization", back_populates="terms")
    feedback_periods = relationship("FeedbackPeriod", back_populates="term",
                                    order_by="FeedbackPeriod.start_date",
                                    cascade="all, delete-orphan")


class FeedbackPeriod(BaseModel):
    __tablename__ = 'feedback_periods'
    
    term_id = Column(Integer, ForeignKey('terms.id', ondelete='CASCADE'), nullable=False, index=True)
    name = Column(String(100), nullable=False)
    start_date = Column(Date)
    end_date = Column(Date)
    active_status = Column(Boolean, default=False, nullable=False)
    
    # Relationships
    term = relationship("Term", back_populates="feedback_periods")
    classrooms = relationship("Classroom", secondary=feedback_period_classrooms,
                              back_populates="feedback_periods")
