from datetime import datetime
from typing import Dict, List, Optional
from sqlalchemy import func
from edurate.database import get_db
from edurate.models import AuditLog
from config.config import Config
from edurate.utils.logger import get_logger

logger = get_logger(__name__)


class AuditService:
    """Append-only audit trail of state-changing actions"""
    
    def __init__(self, session_factory=None):
        self.session_factory = session_factory
    
    def log_event(self, actor_id: Optional[int], actor_role: str, actor_name: str,
                  action_type: str, description: str, target_type: str = None,
                  target_id: int = None, metadata: Dict = None, ip_address: str = None,
                  org_id: int = None):
        """Record an audit event. Never raises: logging failures must not break callers"""
        try:
            with get_db(self.session_factory) as db:
                db.add(AuditLog(
                    user_id=actor_id,
                    user_role=actor_role,
                    user_name=actor_name,
                    action_type=action_type,
                    action_description=description,
                    target_type=target_type,
                    target_id=target_id,
                    event_metadata=metadata,
                    ip_address=ip_address,
                    org_id=org_id
                ))
        except Exception as e:
            logger.error(f"Audit log error for {action_type}: {str(e)}")
    
    def get_audit_logs(self, user_id: int = None, action_type: str = None,
                       target_type: str = None, target_id: int = None,
                       start_date: datetime = None, end_date: datetime = None,
                       org_id: int = None, limit: int = None, offset: int = 0) -> List[Dict]:
        """Get audit logs, newest first"""
        with get_db(self.session_factory) as db:
            query = self._filtered(db.query(AuditLog), user_id=user_id, action_type=action_type,
                                   target_type=target_type, target_id=target_id,
                                   start_date=start_date, end_date=end_date, org_id=org_id)
            logs = query.order_by(
                AuditLog.created_at.desc(), AuditLog.id.desc()
            ).limit(limit or Config.AUDIT_LOG_PAGE_SIZE).offset(offset).all()
            
            return [self._to_dict(log) for log in logs]
    
    def get_audit_stats(self, start_date: datetime = None, end_date: datetime = None,
                        org_id: int = None) -> Dict:
        """Totals, per-action breakdown and the most active users"""
        with get_db(self.session_factory) as db:
            base = self._filtered(db.query(AuditLog), start_date=start_date,
                                  end_date=end_date, org_id=org_id)
            total_actions = base.count()
            
            count_col = func.count(AuditLog.id).label('count')
            action_breakdown = self._filtered(
                db.query(AuditLog.action_type, count_col),
                start_date=start_date, end_date=end_date, org_id=org_id
            ).group_by(AuditLog.action_type).order_by(count_col.desc()).all()
            
            top_users = self._filtered(
                db.query(AuditLog.user_id, AuditLog.user_name, AuditLog.user_role, count_col),
                start_date=start_date, end_date=end_date, org_id=org_id
            ).group_by(
                AuditLog.user_id, AuditLog.user_name, AuditLog.user_role
            ).order_by(count_col.desc()).limit(20).all()
            
            return {
                'total_actions': total_actions,
                'action_breakdown': [
                    {'action_type': action, 'count': count} for action, count in action_breakdown
                ],
                'top_users': [{
                    'user_id': user_id,
                    'user_name': user_name,
                    'user_role': user_role,
                    'action_count': count
                } for user_id, user_name, user_role, count in top_users]
            }
    
    @staticmethod
    def _filtered(query, user_id=None, action_type=None, target_type=None, target_id=None,
                  start_date=None, end_date=None, org_id=None):
        if user_id:
            query = query.filter(AuditLog.user_id == user_id)
        if action_type:
            query = query.filter(AuditLog.action_type == action_type)
        if target_type:
            query = query.filter(AuditLog.target_type == target_type)
        if target_id:
            query = query.filter(AuditLog.target_id == target_id)
        if start_date:
            query = query.filter(AuditLog.created_at >= start_date)
        if end_date:
            query = query.filter(AuditLog.created_at <= end_date)
        if org_id:
            query = query.filter(AuditLog.org_id == org_id)
        return query
    
    @staticmethod
    def _to_dict(log: AuditLog) -> Dict:
        return {
            'id': log.id,
            'user_id': log.user_id,
            'user_role': log.user_role,
            'user_name': log.user_name,
            'action_type': log.action_type,
            'action_description': log.action_description,
            'target_type': log.target_type,
            'target_id': log.target_id,
            'metadata': log.event_metadata,
            'ip_address': log.ip_address,
            'org_id': log.org_id,
            'created_at': log.created_at.isoformat() if log.created_at else None
        }
