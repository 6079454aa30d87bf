import pytest
from edurate.utils.moderation import moderate_text, sanitize_input, find_profanity


class TestModerateText:
    """Test free-text moderation"""
    
    def test_clean_text(self):
        result = moderate_text('Great teacher, explains concepts clearly.')
        assert result.flagged is False
        assert result.severity == 'clean'
        assert result.should_auto_reject is False
        assert result.reasons == []
    
    @pytest.mark.parametrize('text', [None, '', 42])
    def test_empty_or_non_string_is_clean(self, text):
        result = moderate_text(text)
        assert result.flagged is False
        assert result.severity == 'clean'
    
    def test_single_profanity_is_medium(self):
        result = moderate_text('The homework load is stupid sometimes.')
        assert result.flagged is True
        assert result.severity == 'medium'
        assert result.should_auto_reject is False
        assert 'stupid' in result.reasons[0]
    
    def test_three_profanities_is_high_and_auto_rejects(self):
        result = moderate_text('stupid, useless and pathetic lessons')
        assert result.severity == 'high'
        assert result.should_auto_reject is True
    
    def test_profanity_matches_whole_words_only(self):
        assert find_profanity('Hello class, we passed the assessment') == []
        assert find_profanity('DAMN that was hard') == ['damn']
    
    def test_harmful_pattern_is_high(self):
        result = moderate_text('Honestly the worst teacher ever.')
        assert result.severity == 'high'
        assert result.should_auto_reject is True
        assert 'Contains potentially harmful or threatening language' in result.reasons
    
    def test_personal_info_is_medium(self):
        result = moderate_text('Call me at 555-123-4567 about the project')
        assert result.flagged is True
        assert result.severity == 'medium'
    
    def test_email_address_is_personal_info(self):
        result = moderate_text('Her address is someone@example.com')
        assert result.severity == 'medium'
    
    def test_excessive_caps_is_low(self):
        result = moderate_text('THIS CLASS IS GREAT')
        assert result.flagged is True
        assert result.severity == 'low'
        assert result.reasons == ['Excessive use of capital letters']
    
    def test_short_caps_is_not_flagged(self):
        assert moderate_text('GREAT JOB').flagged is False
    
    def test_caps_does_not_lower_severity(self):
        result = moderate_text('WORST TEACHER EVER!!')
        assert result.severity == 'high'
        assert len(result.reasons) == 2


class TestSanitizeInput:
    """Test HTML escaping"""
    
    def test_escapes_markup(self):
        assert sanitize_input('<script>alert("x")</script>') == \
            '&lt;script&gt;alert(&quot;x&quot;)&lt;&#x2F;script&gt;'
    
    def test_escapes_single_quote(self):
        assert sanitize_input("it's") == 'it&#x27;s'
    
    def test_empty(self):
        assert sanitize_input(None) == ''
        assert sanitize_input('') == ''
    
    def test_plain_text_unchanged(self):
        assert sanitize_input('Good pace & examples') == 'Good pace & examples'
