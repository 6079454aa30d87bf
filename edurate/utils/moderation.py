"""
Text moderation for free-text review feedback.

``moderate_text`` classifies a comment as clean/low/medium/high severity and
``sanitize_input`` escapes HTML-significant characters before storage.
"""

import re
from dataclasses import dataclass, field
from typing import List, Optional

SEVERITY_ORDER = ('clean', 'low', 'medium', 'high')

PROFANITY_LIST = [
    'damn', 'hell', 'shit', 'fuck', 'ass', 'bitch', 'bastard', 'crap',
    'dick', 'piss', 'slut', 'whore', 'idiot', 'stupid', 'dumb',
    'moron', 'retard', 'kill', 'die', 'hate', 'suck', 'loser',
    'ugly', 'fat', 'disgusting', 'worthless', 'useless', 'pathetic'
]

_PROFANITY_PATTERNS = [
    re.compile(rf'\b{re.escape(word)}\b', re.IGNORECASE) for word in PROFANITY_LIST
]

HARMFUL_PATTERNS = [
    re.compile(r'you\s+(should|need\s+to)\s+(die|kill|hurt)', re.IGNORECASE),
    re.compile(r'i\s+(hope|wish)\s+you\s+(die|get\s+hurt|fail)', re.IGNORECASE),
    re.compile(r'nobody\s+likes?\s+you', re.IGNORECASE),
    re.compile(r'worst\s+teacher\s+(ever|alive)', re.IGNORECASE),
    re.compile(r'go\s+(kill|hurt)\s+(yourself|urself)', re.IGNORECASE),
    re.compile(r'threat(en)?', re.IGNORECASE),
    re.compile(r'\b(racist|sexist|homophob)\w*', re.IGNORECASE),
]

PERSONAL_INFO_PATTERNS = [
    re.compile(r'\b\d{3}[-.]?\d{3}[-.]?\d{4}\b'),  # phone numbers
    re.compile(r'\b\d{3}-?\d{2}-?\d{4}\b'),  # SSN-like
    re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b'),  # email addresses
]

CAPS_MIN_LENGTH = 10
CAPS_RATIO_LIMIT = 0.7

_HTML_ESCAPES = {
    '<': '&lt;',
    '>': '&gt;',
    '"': '&quot;',
    "'": '&#x27;',
    '/': '&#x2F;',
}


@dataclass
class ModerationResult:
    flagged: bool = False
    severity: str = 'clean'
    should_auto_reject: bool = False
    reasons: List[str] = field(default_factory=list)


def _escalate(current: str, candidate: str) -> str:
    """Return the more severe of two levels"""
    if SEVERITY_ORDER.index(candidate) > SEVERITY_ORDER.index(current):
        return candidate
    return current


def find_profanity(text: str) -> List[str]:
    """Whole-word, case-insensitive matches from the profanity list"""
    return [
        word for word, pattern in zip(PROFANITY_LIST, _PROFANITY_PATTERNS)
        if pattern.search(text)
    ]


def moderate_text(text: Optional[str]) -> ModerationResult:
    """Classify free text; each check can only raise the severity"""
    if not text or not isinstance(text, str):
        return ModerationResult()

    reasons = []
    severity = 'clean'

    found_profanity = find_profanity(text)
    if found_profanity:
        reasons.append(f"Contains inappropriate language: {', '.join(found_profanity)}")
        severity = _escalate(severity, 'high' if len(found_profanity) > 2 else 'medium')

    if any(pattern.search(text) for pattern in HARMFUL_PATTERNS):
        reasons.append('Contains potentially harmful or threatening language')
        severity = _escalate(severity, 'high')

    if any(pattern.search(text) for pattern in PERSONAL_INFO_PATTERNS):
        reasons.append('May contain personal information (phone, email, etc.)')
        severity = _escalate(severity, 'medium')

    caps_ratio = sum(1 for ch in text if 'A' <= ch <= 'Z') / len(text)
    if len(text) > CAPS_MIN_LENGTH and caps_ratio > CAPS_RATIO_LIMIT:
        reasons.append('Excessive use of capital letters')
        severity = _escalate(severity, 'low')

    return ModerationResult(
        flagged=bool(reasons),
        severity=severity,
        should_auto_reject=severity == 'high',
        reasons=reasons
    )


def sanitize_input(text: Optional[str]) -> str:
    """Escape HTML-significant characters for safe storage and display"""
    if not text:
        return ''
    return ''.join(_HTML_ESCAPES.get(ch, ch) for ch in text)
