from flask import Blueprint, request, jsonify
from edurate.middleware.auth import require_auth
from edurate.services.auth_service import AuthService
from edurate.utils.validators import validate_email
from edurate.utils.logger import get_logger

bp = Blueprint('auth', __name__)
logger = get_logger(__name__)
auth_service = AuthService()


@bp.route('/login', methods=['POST'])
def login():
    """Login user"""
    try:
        data = request.get_json(silent=True) or {}
        
        if not data.get('email') or not data.get('password'):
            return jsonify({'error': 'Email and password are required'}), 400
        
        valid, error = validate_email(data['email'])
        if not valid:
            return jsonify({'error': error}), 400
        
        result = auth_service.authenticate_user(data['email'].strip().lower(), data['password'])
        
        if result.get('error'):
            return jsonify({'error': result['error']}), 401
        
        return jsonify({
            'access_token': result['access_token'],
            'token_type': 'bearer',
            'user': result['user']
        }), 200
        
    except Exception as e:
        logger.error(f"Login error: {str(e)}")
        return jsonify({'error': 'Login failed'}), 500


@bp.route('/me', methods=['GET'])
@require_auth
def me(current_user):
    """Current user's profile"""
    user = auth_service.get_user(current_user['user_id'])
    if not user:
        return jsonify({'error': 'User not found'}), 404
    return jsonify(user), 200
