from typing import Dict, Optional
from edurate.database import get_db
from edurate.models import User, Teacher
from edurate.utils.security import verify_password, generate_token
from edurate.utils.logger import get_logger

logger = get_logger(__name__)


def user_to_dict(user: User) -> Dict:
    return {
        'id': user.id,
        'email': user.email,
        'full_name': user.full_name,
        'role': user.role.value,
        'org_id': user.org_id,
        'grade_or_position': user.grade_or_position
    }


class AuthService:
    """Service for handling authentication"""
    
    def __init__(self, session_factory=None):
        self.session_factory = session_factory
    
    def authenticate_user(self, email: str, password: str) -> Dict:
        """Authenticate user and return token"""
        try:
            with get_db(self.session_factory) as db:
                user = db.query(User).filter(User.email == email).first()
                
                if not user or not verify_password(password, user.password_hash):
                    return {'error': 'Invalid credentials'}
                
                if not user.is_active:
                    return {'error': 'Account suspended. Contact administrator.'}
                
                token_data = {
                    'user_id': user.id,
                    'email': user.email,
                    'role': user.role.value,
                    'full_name': user.full_name,
                    'org_id': user.org_id
                }
                
                return {
                    'access_token': generate_token(token_data),
                    'user': user_to_dict(user)
                }
            
        except Exception as e:
            logger.error(f"Authentication error: {str(e)}")
            return {'error': 'Authentication failed'}
    
    def get_user(self, user_id: int) -> Optional[Dict]:
        with get_db(self.session_factory) as db:
            user = db.query(User).filter_by(id=user_id).first()
            if not user:
                return None
            data = user_to_dict(user)
            teacher = db.query(Teacher).filter_by(user_id=user.id).first()
            if teacher:
                data['teacher_id'] = teacher.id
            return data
    
    def teacher_id_for_user(self, user_id: int) -> Optional[int]:
        with get_db(self.session_factory) as db:
            teacher = db.query(Teacher).filter_by(user_id=user_id).first()
            return teacher.id if teacher else None
