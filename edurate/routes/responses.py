from flask import jsonify
from edurate.services.classroom_service import EnrollmentError
from edurate.services.review_service import ReviewError

ERROR_STATUS = {
    ReviewError.INVALID_INPUT: 400,
    ReviewError.INVALID_PAIRING: 400,
    ReviewError.NO_ACTIVE_PERIOD: 400,
    ReviewError.PERIOD_CLOSED: 400,
    ReviewError.ALREADY_APPROVED: 400,
    ReviewError.NOT_ENROLLED: 403,
    ReviewError.NOT_FOUND: 404,
    ReviewError.DUPLICATE_REVIEW: 409,
    EnrollmentError.INVALID_INPUT: 400,
    EnrollmentError.FORBIDDEN: 403,
    EnrollmentError.NOT_FOUND: 404,
    EnrollmentError.NOT_MEMBER: 404,
    EnrollmentError.ALREADY_MEMBER: 409,
}


def error_response(result):
    """JSON error body and status for a failed service result"""
    return jsonify({
        'error': result.message,
        'code': result.error.value
    }), ERROR_STATUS.get(result.error, 400)
