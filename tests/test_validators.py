import pytest
from edurate.utils.validators import (
    calculate_overall_rating, filter_tags, validate_email, validate_rating, validate_ratings
)
from edurate.models.review import SUB_RATING_FIELDS, VALID_TAGS


class TestRatings:
    """Test rating validation and the derived overall rating"""
    
    @pytest.mark.parametrize('value', [1, 3, 5])
    def test_valid_rating(self, value):
        assert validate_rating(value) is True
    
    @pytest.mark.parametrize('value', [0, 6, -1, 4.5, '4', None, True])
    def test_invalid_rating(self, value):
        assert validate_rating(value) is False
    
    def test_missing_rating_is_rejected(self):
        valid, error = validate_ratings({'clarity_rating': 4}, SUB_RATING_FIELDS)
        assert valid is False
        assert error == 'engagement_rating is required'
    
    def test_partial_allows_missing(self):
        valid, error = validate_ratings({'clarity_rating': 4}, SUB_RATING_FIELDS, partial=True)
        assert valid is True
        assert error is None
    
    def test_partial_still_checks_range(self):
        valid, _ = validate_ratings({'clarity_rating': 9}, SUB_RATING_FIELDS, partial=True)
        assert valid is False
    
    def test_overall_rounds_half_up(self):
        assert calculate_overall_rating([5, 5, 5, 5, 5, 4]) == 5
        assert calculate_overall_rating([3, 3, 3, 3, 3, 2]) == 3
        assert calculate_overall_rating([2, 3, 2, 3, 2, 3]) == 3
        assert calculate_overall_rating([4, 5, 4, 5, 4, 5]) == 5
    
    def test_overall_rounds_down_below_half(self):
        assert calculate_overall_rating([1, 1, 1, 1, 1, 2]) == 1
        assert calculate_overall_rating([4, 4, 4, 4, 5, 5]) == 4


class TestTags:
    
    def test_unknown_tags_dropped(self):
        assert filter_tags(['Supportive', 'Made up', 'Respectful'], VALID_TAGS) == ['Supportive', 'Respectful']
    
    def test_duplicates_dropped_order_kept(self):
        assert filter_tags(['Respectful', 'Supportive', 'Respectful'], VALID_TAGS) == ['Respectful', 'Supportive']
    
    def test_non_list_is_empty(self):
        assert filter_tags('Supportive', VALID_TAGS) == []
        assert filter_tags(None, VALID_TAGS) == []


def test_validate_email():
    assert validate_email('sam@lakeside.edu') == (True, None)
    assert validate_email('not-an-email')[0] is False
    assert validate_email('')[0] is False
