from datetime import datetime
from flask import Blueprint, request, jsonify
from edurate.middleware.auth import require_auth, require_admin
from edurate.routes.responses import error_response
from edurate.services.audit_service import AuditService
from edurate.services.moderation_service import ModerationService
from edurate.services.term_service import TermService
from edurate.utils.logger import get_logger

bp = Blueprint('admin', __name__)
logger = get_logger(__name__)
audit_service = AuditService()
moderation_service = ModerationService(audit=audit_service)
term_service = TermService()


def _parse_datetime(value):
    return datetime.fromisoformat(value) if value else None


@bp.route('/reviews/pending', methods=['GET'])
@require_auth
@require_admin
def pending_reviews(current_user):
    """Reviews awaiting moderation, oldest first"""
    try:
        return jsonify(moderation_service.pending_reviews(current_user.get('org_id'))), 200
    except Exception as e:
        logger.error(f"Error getting pending reviews: {str(e)}")
        return jsonify({'error': 'Failed to fetch pending reviews'}), 500


@bp.route('/reviews/flagged', methods=['GET'])
@require_auth
@require_admin
def flagged_reviews(current_user):
    """Reviews flagged by moderation or by users"""
    try:
        return jsonify(moderation_service.flagged_reviews(current_user.get('org_id'))), 200
    except Exception as e:
        logger.error(f"Error getting flagged reviews: {str(e)}")
        return jsonify({'error': 'Failed to fetch flagged reviews'}), 500


@bp.route('/reviews/all', methods=['GET'])
@require_auth
@require_admin
def all_reviews(current_user):
    try:
        return jsonify(moderation_service.all_reviews(current_user.get('org_id'))), 200
    except Exception as e:
        logger.error(f"Error getting reviews: {str(e)}")
        return jsonify({'error': 'Failed to fetch reviews'}), 500


@bp.route('/reviews/<int:review_id>/approve', methods=['PUT'])
@require_auth
@require_admin
def approve_review(review_id, current_user):
    """Approve a review"""
    try:
        result = moderation_service.approve(review_id, current_user, ip_address=request.remote_addr)
        if not result.ok:
            return error_response(result)
        return jsonify({'message': 'Review approved', 'review': result.review}), 200
        
    except Exception as e:
        logger.error(f"Error approving review: {str(e)}")
        return jsonify({'error': 'Failed to approve review'}), 500


@bp.route('/reviews/<int:review_id>/reject', methods=['PUT'])
@require_auth
@require_admin
def reject_review(review_id, current_user):
    """Reject a review"""
    try:
        result = moderation_service.reject(review_id, current_user, ip_address=request.remote_addr)
        if not result.ok:
            return error_response(result)
        return jsonify({'message': 'Review rejected', 'review': result.review}), 200
        
    except Exception as e:
        logger.error(f"Error rejecting review: {str(e)}")
        return jsonify({'error': 'Failed to reject review'}), 500


@bp.route('/reviews/<int:review_id>', methods=['DELETE'])
@require_auth
@require_admin
def delete_review(review_id, current_user):
    """Permanently delete a review"""
    try:
        result = moderation_service.delete(review_id, current_user, ip_address=request.remote_addr)
        if not result.ok:
            return error_response(result)
        return jsonify({'message': 'Review deleted permanently'}), 200
        
    except Exception as e:
        logger.error(f"Error deleting review: {str(e)}")
        return jsonify({'error': 'Failed to delete review'}), 500


@bp.route('/reviews/bulk-approve', methods=['POST'])
@require_auth
@require_admin
def bulk_approve(current_user):
    """Approve several reviews at once"""
    try:
        data = request.get_json(silent=True) or {}
        result = moderation_service.bulk_approve(data.get('review_ids'), current_user,
                                                 ip_address=request.remote_addr)
        if not result.ok:
            return error_response(result)
        return jsonify({
            'message': f'{result.count} reviews approved',
            'count': result.count,
            'note': result.message
        }), 200
        
    except Exception as e:
        logger.error(f"Error bulk approving reviews: {str(e)}")
        return jsonify({'error': 'Failed to bulk approve reviews'}), 500


@bp.route('/audit-logs', methods=['GET'])
@require_auth
@require_admin
def audit_logs(current_user):
    """Audit trail with optional filters"""
    try:
        logs = audit_service.get_audit_logs(
            user_id=request.args.get('user_id', type=int),
            action_type=request.args.get('action_type'),
            target_type=request.args.get('target_type'),
            target_id=request.args.get('target_id', type=int),
            start_date=_parse_datetime(request.args.get('start_date')),
            end_date=_parse_datetime(request.args.get('end_date')),
            org_id=current_user.get('org_id'),
            limit=request.args.get('limit', type=int),
            offset=request.args.get('offset', 0, type=int)
        )
        return jsonify(logs), 200
        
    except ValueError:
        return jsonify({'error': 'Invalid date format. Use ISO format'}), 400
    except Exception as e:
        logger.error(f"Error getting audit logs: {str(e)}")
        return jsonify({'error': 'Failed to fetch audit logs'}), 500


@bp.route('/audit-stats', methods=['GET'])
@require_auth
@require_admin
def audit_stats(current_user):
    try:
        stats = audit_service.get_audit_stats(
            start_date=_parse_datetime(request.args.get('start_date')),
            end_date=_parse_datetime(request.args.get('end_date')),
            org_id=current_user.get('org_id')
        )
        return jsonify(stats), 200
        
    except ValueError:
        return jsonify({'error': 'Invalid date format. Use ISO format'}), 400
    except Exception as e:
        logger.error(f"Error getting audit stats: {str(e)}")
        return jsonify({'error': 'Failed to fetch audit stats'}), 500


@bp.route('/terms', methods=['POST'])
@require_auth
@require_admin
def create_term(current_user):
    """Create a term for the admin's organization"""
    try:
        data = request.get_json(silent=True) or {}
        result = term_service.create_term(
            current_user.get('org_id'),
            data.get('name'),
            data.get('start_date'),
            data.get('end_date'),
            active_status=bool(data.get('active_status', True))
        )
        if result.get('error'):
            return jsonify({'error': result['error']}), 400
        
        _log_admin_event(current_user, 'term_create', f"Created term: {result['name']}", 'term', result['id'])
        return jsonify(result), 201
        
    except Exception as e:
        logger.error(f"Error creating term: {str(e)}")
        return jsonify({'error': 'Failed to create term'}), 500


@bp.route('/feedback-periods', methods=['POST'])
@require_auth
@require_admin
def create_period(current_user):
    """Create a feedback period, optionally opening it for classrooms"""
    try:
        data = request.get_json(silent=True) or {}
        if not data.get('term_id'):
            return jsonify({'error': 'term_id is required'}), 400
        
        result = term_service.create_period(
            data['term_id'],
            data.get('name'),
            data.get('start_date'),
            data.get('end_date'),
            active_status=bool(data.get('active_status', False)),
            classroom_ids=data.get('classroom_ids')
        )
        if result.get('error'):
            status = 404 if 'not found' in result['error'] else 400
            return jsonify({'error': result['error']}), status
        
        _log_admin_event(current_user, 'period_create', f"Created feedback period: {result['name']}",
                         'feedback_period', result['id'])
        return jsonify(result), 201
        
    except Exception as e:
        logger.error(f"Error creating feedback period: {str(e)}")
        return jsonify({'error': 'Failed to create feedback period'}), 500


@bp.route('/feedback-periods/<int:period_id>', methods=['PUT'])
@require_auth
@require_admin
def update_period(period_id, current_user):
    """Open or close a feedback period"""
    try:
        data = request.get_json(silent=True) or {}
        if 'active_status' not in data:
            return jsonify({'error': 'active_status is required'}), 400
        
        result = term_service.set_period_active(period_id, data['active_status'])
        if result.get('error'):
            return jsonify({'error': result['error']}), 404
        
        action = 'period_open' if result['active_status'] else 'period_close'
        _log_admin_event(current_user, action, f"Set feedback period {result['name']} "
                         f"{'active' if result['active_status'] else 'inactive'}",
                         'feedback_period', period_id)
        return jsonify(result), 200
        
    except Exception as e:
        logger.error(f"Error updating feedback period: {str(e)}")
        return jsonify({'error': 'Failed to update feedback period'}), 500


@bp.route('/feedback-periods/<int:period_id>/classrooms', methods=['POST'])
@require_auth
@require_admin
def link_classroom(period_id, current_user):
    """Open a feedback period for a classroom"""
    try:
        data = request.get_json(silent=True) or {}
        if not data.get('classroom_id'):
            return jsonify({'error': 'classroom_id is required'}), 400
        
        result = term_service.link_classroom(period_id, data['classroom_id'])
        if result.get('error'):
            return jsonify({'error': result['error']}), 404
        return jsonify(result), 200
        
    except Exception as e:
        logger.error(f"Error linking classroom: {str(e)}")
        return jsonify({'error': 'Failed to link classroom'}), 500


def _log_admin_event(current_user, action_type, description, target_type, target_id):
    audit_service.log_event(
        actor_id=current_user.get('user_id'),
        actor_role=current_user.get('role'),
        actor_name=current_user.get('full_name') or 'Unknown',
        action_type=action_type,
        description=description,
        target_type=target_type,
        target_id=target_id,
        ip_address=request.remote_addr,
        org_id=current_user.get('org_id')
    )
