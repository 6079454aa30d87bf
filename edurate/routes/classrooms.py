from flask import Blueprint, request, jsonify
from edurate.middleware.auth import require_auth, require_role, require_student
from edurate.routes.responses import error_response
from edurate.services.auth_service import AuthService
from edurate.services.classroom_service import ClassroomService
from edurate.services.scoring_service import ScoringService
from edurate.utils.logger import get_logger

bp = Blueprint('classrooms', __name__)
logger = get_logger(__name__)
auth_service = AuthService()
classroom_service = ClassroomService()
scoring_service = ScoringService()


def _actor(current_user):
    actor = dict(current_user)
    actor['ip_address'] = request.remote_addr
    return actor


@bp.route('', methods=['POST'])
@require_auth
@require_role(['teacher', 'admin'])
def create_classroom(current_user):
    """Create a classroom. Teachers own the classrooms they create."""
    try:
        data = request.get_json(silent=True) or {}
        
        if current_user.get('role') == 'teacher':
            teacher_id = auth_service.teacher_id_for_user(current_user['user_id'])
            if not teacher_id:
                return jsonify({'error': 'Teacher profile not found'}), 404
        else:
            teacher_id = data.get('teacher_id')
            if not teacher_id:
                return jsonify({'error': 'teacher_id is required'}), 400
        
        result = classroom_service.create_classroom(
            teacher_id,
            data.get('subject'),
            data.get('grade_level'),
            term_id=data.get('term_id'),
            actor=_actor(current_user)
        )
        if not result.ok:
            return error_response(result)
        
        return jsonify(result.classroom), 201
        
    except Exception as e:
        logger.error(f"Error creating classroom: {str(e)}")
        return jsonify({'error': 'Failed to create classroom'}), 500


@bp.route('/join', methods=['POST'])
@require_auth
@require_student
def join_classroom(current_user):
    """Join a classroom with its code"""
    try:
        data = request.get_json(silent=True) or {}
        result = classroom_service.join_by_code(current_user['user_id'], data.get('join_code'),
                                                actor=_actor(current_user))
        if not result.ok:
            return error_response(result)
        
        return jsonify({
            'message': f"Joined {result.classroom['subject']}",
            'classroom': result.classroom
        }), 200
        
    except Exception as e:
        logger.error(f"Error joining classroom: {str(e)}")
        return jsonify({'error': 'Failed to join classroom'}), 500


@bp.route('/<int:classroom_id>/leave', methods=['DELETE'])
@require_auth
@require_student
def leave_classroom(classroom_id, current_user):
    try:
        result = classroom_service.leave(current_user['user_id'], classroom_id, actor=_actor(current_user))
        if not result.ok:
            return error_response(result)
        return jsonify({'message': 'Left classroom'}), 200
        
    except Exception as e:
        logger.error(f"Error leaving classroom: {str(e)}")
        return jsonify({'error': 'Failed to leave classroom'}), 500


@bp.route('/<int:classroom_id>/regenerate-code', methods=['POST'])
@require_auth
@require_role(['teacher', 'admin'])
def regenerate_code(classroom_id, current_user):
    """Issue a new join code"""
    try:
        result = classroom_service.regenerate_code(classroom_id, actor=_actor(current_user))
        if not result.ok:
            return error_response(result)
        return jsonify({'join_code': result.classroom['join_code']}), 200
        
    except Exception as e:
        logger.error(f"Error regenerating join code: {str(e)}")
        return jsonify({'error': 'Failed to regenerate join code'}), 500


@bp.route('/<int:classroom_id>/members', methods=['GET'])
@require_auth
@require_role(['teacher', 'school_head', 'admin'])
def classroom_members(classroom_id, current_user):
    try:
        return jsonify(classroom_service.members(classroom_id)), 200
    except Exception as e:
        logger.error(f"Error getting classroom members: {str(e)}")
        return jsonify({'error': 'Failed to fetch members'}), 500


@bp.route('/<int:classroom_id>/completion', methods=['GET'])
@require_auth
@require_role(['teacher', 'school_head', 'admin'])
def completion(classroom_id, current_user):
    """Share of members who reviewed in a period"""
    period_id = request.args.get('period_id', type=int)
    if not period_id:
        return jsonify({'error': 'period_id is required'}), 400
    
    try:
        return jsonify(scoring_service.completion_rate(classroom_id, period_id).to_dict()), 200
    except Exception as e:
        logger.error(f"Error getting completion rate: {str(e)}")
        return jsonify({'error': 'Failed to fetch completion rate'}), 500
