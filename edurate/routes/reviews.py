from flask import Blueprint, request, jsonify
from edurate.middleware.auth import require_auth, require_student
from edurate.routes.responses import error_response
from edurate.services.eligibility_service import EligibilityService
from edurate.services.review_service import ReviewService
from edurate.utils.logger import get_logger

bp = Blueprint('reviews', __name__)
logger = get_logger(__name__)
review_service = ReviewService()
eligibility_service = EligibilityService()


@bp.route('/tags', methods=['GET'])
@require_auth
def get_tags(current_user):
    """Available feedback tags"""
    return jsonify(review_service.valid_tags()), 200


@bp.route('/eligible-teachers', methods=['GET'])
@require_auth
@require_student
def eligible_teachers(current_user):
    """Teachers the student can review right now"""
    try:
        result = eligibility_service.eligible_teachers(current_user['user_id'])
        return jsonify(result.to_dict()), 200
        
    except Exception as e:
        logger.error(f"Error getting eligible teachers: {str(e)}")
        return jsonify({'error': 'Failed to fetch eligible teachers'}), 500


@bp.route('', methods=['POST'])
@require_auth
@require_student
def submit_review(current_user):
    """Submit a review"""
    try:
        data = request.get_json(silent=True) or {}
        
        result = review_service.submit_review(current_user['user_id'], data, ip_address=request.remote_addr)
        if not result.ok:
            return error_response(result)
        
        return jsonify({
            'message': 'Review submitted successfully. It will be visible after admin approval.',
            'review': result.review,
            'moderation_note': 'Your review has been flagged for admin review.'
            if result.moderation and result.moderation.flagged else None
        }), 201
        
    except Exception as e:
        logger.error(f"Error submitting review: {str(e)}")
        return jsonify({'error': 'Failed to submit review'}), 500


@bp.route('/my-reviews', methods=['GET'])
@require_auth
@require_student
def my_reviews(current_user):
    """Student's own reviews"""
    try:
        return jsonify(review_service.get_student_reviews(current_user['user_id'])), 200
        
    except Exception as e:
        logger.error(f"Error getting student reviews: {str(e)}")
        return jsonify({'error': 'Failed to fetch reviews'}), 500


@bp.route('/<int:review_id>', methods=['PUT'])
@require_auth
@require_student
def edit_review(review_id, current_user):
    """Edit a review while its period is open and it is not yet approved"""
    try:
        data = request.get_json(silent=True) or {}
        
        result = review_service.edit_review(review_id, current_user['user_id'], data,
                                            ip_address=request.remote_addr)
        if not result.ok:
            return error_response(result)
        
        return jsonify({'message': 'Review updated. Awaiting re-approval.', 'review': result.review}), 200
        
    except Exception as e:
        logger.error(f"Error editing review: {str(e)}")
        return jsonify({'error': 'Failed to edit review'}), 500


@bp.route('/<int:review_id>/flag', methods=['POST'])
@require_auth
def flag_review(review_id, current_user):
    """Flag a review for admin attention"""
    try:
        result = review_service.flag_review(review_id, current_user, ip_address=request.remote_addr)
        if not result.ok:
            return error_response(result)
        
        return jsonify({'message': 'Review flagged for admin review'}), 200
        
    except Exception as e:
        logger.error(f"Error flagging review: {str(e)}")
        return jsonify({'error': 'Failed to flag review'}), 500
