from sqlalchemy import Column, String, Integer, JSON
from .base import BaseModel


class AuditLog(BaseModel):
    __tablename__ = 'audit_logs'
    
    # Actor; kept as plain columns so log rows survive user deletion
    user_id = Column(Integer, index=True)
    user_role = Column(String(50), nullable=False)
    user_name = Column(String(255), nullable=False)
    
    action_type = Column(String(100), nullable=False, index=True)
    action_description = Column(String(1000), nullable=False)
    target_type = Column(String(50))
    target_id = Column(Integer)
    
    # Extra context stored as JSON
    # Format: {"teacher_id": 3, "overall_rating": 4, ...}
    event_metadata = Column('metadata', JSON)
    ip_address = Column(String(64))
    org_id = Column(Integer, index=True)
