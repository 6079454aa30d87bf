from .logger import setup_logger, get_logger
from .security import hash_password, verify_password, generate_token, verify_token
from .validators import validate_email, validate_rating, validate_ratings, calculate_overall_rating, filter_tags
from .moderation import moderate_text, sanitize_input, ModerationResult

__all__ = [
    'setup_logger', 'get_logger',
    'hash_password', 'verify_password', 'generate_token', 'verify_token',
    'validate_email', 'validate_rating', 'validate_ratings',
    'calculate_overall_rating', 'filter_tags',
    'moderate_text', 'sanitize_input', 'ModerationResult'
]
