from flask import Blueprint, request, jsonify
from edurate.middleware.auth import require_auth, require_role, require_staff
from edurate.routes.responses import error_response
from edurate.services.auth_service import AuthService
from edurate.services.dashboard_service import DashboardService
from edurate.services.scoring_service import ScoringService
from edurate.utils.logger import get_logger

bp = Blueprint('dashboard', __name__)
logger = get_logger(__name__)
auth_service = AuthService()
scoring_service = ScoringService()
dashboard_service = DashboardService()


def _can_view_teacher(current_user, teacher_id):
    """Teachers see their own numbers; staff see everyone's"""
    if current_user.get('role') != 'teacher':
        return True
    return auth_service.teacher_id_for_user(current_user['user_id']) == teacher_id


def _scope_args():
    return {
        'classroom_id': request.args.get('classroom_id', type=int),
        'period_id': request.args.get('period_id', type=int),
        'term_id': request.args.get('term_id', type=int)
    }


@bp.route('/teachers/<int:teacher_id>/scores', methods=['GET'])
@require_auth
@require_role(['teacher', 'school_head', 'admin'])
def teacher_scores(teacher_id, current_user):
    """Rubric averages for a teacher"""
    if not _can_view_teacher(current_user, teacher_id):
        return jsonify({'error': 'Insufficient permissions'}), 403
    
    try:
        return jsonify(scoring_service.teacher_scores(teacher_id, **_scope_args()).to_dict()), 200
    except Exception as e:
        logger.error(f"Error getting teacher scores: {str(e)}")
        return jsonify({'error': 'Failed to fetch scores'}), 500


@bp.route('/teachers/<int:teacher_id>/distribution', methods=['GET'])
@require_auth
@require_role(['teacher', 'school_head', 'admin'])
def rating_distribution(teacher_id, current_user):
    if not _can_view_teacher(current_user, teacher_id):
        return jsonify({'error': 'Insufficient permissions'}), 403
    
    try:
        return jsonify(scoring_service.rating_distribution(teacher_id, **_scope_args())), 200
    except Exception as e:
        logger.error(f"Error getting rating distribution: {str(e)}")
        return jsonify({'error': 'Failed to fetch distribution'}), 500


@bp.route('/teachers/<int:teacher_id>/trend', methods=['GET'])
@require_auth
@require_role(['teacher', 'school_head', 'admin'])
def teacher_trend(teacher_id, current_user):
    """Per-period averages across a term"""
    if not _can_view_teacher(current_user, teacher_id):
        return jsonify({'error': 'Insufficient permissions'}), 403
    
    term_id = request.args.get('term_id', type=int)
    if not term_id:
        return jsonify({'error': 'term_id is required'}), 400
    
    try:
        return jsonify(scoring_service.teacher_trend(teacher_id, term_id).to_dict()), 200
    except Exception as e:
        logger.error(f"Error getting teacher trend: {str(e)}")
        return jsonify({'error': 'Failed to fetch trend'}), 500


@bp.route('/departments/<department>', methods=['GET'])
@require_auth
@require_staff
def department_average(department, current_user):
    try:
        average = scoring_service.department_average(
            department,
            term_id=request.args.get('term_id', type=int),
            org_id=current_user.get('org_id')
        )
        return jsonify({'department': department, 'avg_score': average}), 200
    except Exception as e:
        logger.error(f"Error getting department average: {str(e)}")
        return jsonify({'error': 'Failed to fetch department average'}), 500


@bp.route('/school-head', methods=['GET'])
@require_auth
@require_staff
def school_head_overview(current_user):
    """Organization overview"""
    try:
        return jsonify(dashboard_service.school_head_overview(current_user.get('org_id'))), 200
    except Exception as e:
        logger.error(f"Error building school-head overview: {str(e)}")
        return jsonify({'error': 'Failed to fetch dashboard'}), 500


@bp.route('/teacher', methods=['GET'])
@require_auth
@require_role(['teacher'])
def teacher_overview(current_user):
    """The signed-in teacher's own dashboard"""
    try:
        overview = dashboard_service.teacher_overview(current_user['user_id'])
        if overview is None:
            return jsonify({'error': 'Teacher profile not found'}), 404
        return jsonify(overview), 200
    except Exception as e:
        logger.error(f"Error building teacher dashboard: {str(e)}")
        return jsonify({'error': 'Failed to fetch dashboard'}), 500


@bp.route('/teacher/respond', methods=['POST'])
@require_auth
@require_role(['teacher'])
def teacher_respond(current_user):
    """Post or replace a response to a classroom's feedback for a period"""
    try:
        data = request.get_json(silent=True) or {}
        actor = dict(current_user)
        actor['ip_address'] = request.remote_addr
        
        result = dashboard_service.respond(
            current_user['user_id'],
            data.get('classroom_id'),
            data.get('feedback_period_id'),
            data.get('response_text'),
            actor=actor
        )
        if not result.ok:
            return error_response(result)
        
        return jsonify({'message': 'Response saved', 'response': result.response}), 200
    except Exception as e:
        logger.error(f"Error saving teacher response: {str(e)}")
        return jsonify({'error': 'Failed to save response'}), 500
