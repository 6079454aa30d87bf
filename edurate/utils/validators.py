import re
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple
from config.config import Config


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """Validate email format"""
    pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
    if not email:
        return False, "Email is required"
    if not re.match(pattern, email):
        return False, "Invalid email format"
    return True, None


def validate_rating(value) -> bool:
    """A rating is an integer (not bool) within the configured scale"""
    if isinstance(value, bool) or not isinstance(value, int):
        return False
    return Config.RATING_MIN <= value <= Config.RATING_MAX


def validate_ratings(ratings: Dict, required: Iterable[str], partial: bool = False) -> Tuple[bool, Optional[str]]:
    """Validate sub-ratings; with partial=True missing fields are allowed"""
    for name in required:
        value = ratings.get(name)
        if value is None:
            if partial:
                continue
            return False, f"{name} is required"
        if not validate_rating(value):
            return False, f"All ratings must be between {Config.RATING_MIN} and {Config.RATING_MAX}"
    return True, None


def calculate_overall_rating(ratings: Iterable[int]) -> int:
    """Mean of the sub-ratings rounded half up (4.5 -> 5, 2.5 -> 3)"""
    values = list(ratings)
    mean = Decimal(sum(values)) / Decimal(len(values))
    return int(mean.quantize(Decimal('1'), rounding=ROUND_HALF_UP))


def filter_tags(tags, allowed: List[str]) -> List[str]:
    """Keep known tags in submission order; unknown values are dropped silently"""
    if not isinstance(tags, (list, tuple)):
        return []
    result = []
    for tag in tags:
        if tag in allowed and tag not in result:
            result.append(tag)
    return result
