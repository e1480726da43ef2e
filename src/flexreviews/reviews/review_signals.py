"""
Review Text Signals (Deterministic)
===================================

Rule-based helpers run on normalized review fields:

    extract_keywords    - stopword-filtered frequency ranking of review text
    classify_sentiment  - rating thresholds, refined by a small lexicon in the 3-4 band

No ML: both functions are total and deterministic.
"""

import math
import re
from typing import Any, Dict, List, Optional

from .review_models import Sentiment


# =============================================================================
# KEYWORDS
# =============================================================================

STOPWORDS = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for",
    "was", "is", "are", "were", "been", "be", "have", "has", "had",
    "do", "does", "did", "will", "would", "could", "should", "may", "might",
    "i", "you", "he", "she", "it", "we", "they", "them", "their", "this", "that",
})

DEFAULT_KEYWORD_LIMIT = 5
MIN_KEYWORD_LENGTH = 4

_PUNCTUATION_RE = re.compile(r"[^\w\s]")


def extract_keywords(text: Optional[str], limit: int = DEFAULT_KEYWORD_LIMIT) -> List[str]:
    """
    Return up to `limit` keywords ranked by frequency.

    1. Lowercase
    2. Strip punctuation
    3. Split on whitespace, drop short tokens and stopwords
    4. Rank by count desc; ties keep first-occurrence order
    """
    if not text or not isinstance(text, str) or limit <= 0:
        return []

    cleaned = _PUNCTUATION_RE.sub("", text.lower())
    frequency: Dict[str, int] = {}
    for word in cleaned.split():
        if len(word) < MIN_KEYWORD_LENGTH or word in STOPWORDS:
            continue
        frequency[word] = frequency.get(word, 0) + 1

    # sorted() is stable and dict keeps insertion order
    ranked = sorted(frequency.items(), key=lambda item: -item[1])
    return [word for word, _ in ranked[:limit]]


# =============================================================================
# SENTIMENT
# =============================================================================

POSITIVE_THRESHOLD = 4.0
NEGATIVE_THRESHOLD = 3.0

NEGATIVE_LEXICON = ("terrible", "awful", "bad", "poor", "dirty", "broken", "disappointing")
POSITIVE_LEXICON = ("excellent", "amazing", "great", "wonderful", "perfect", "beautiful", "fantastic")

_NEGATIVE_RE = re.compile(r"\b(?:" + "|".join(NEGATIVE_LEXICON) + r")\b")
_POSITIVE_RE = re.compile(r"\b(?:" + "|".join(POSITIVE_LEXICON) + r")\b")


def _finite_rating(rating: Any) -> float:
    if isinstance(rating, bool) or rating is None:
        return 0.0
    try:
        value = float(rating)
    except (TypeError, ValueError):
        return 0.0
    return value if math.isfinite(value) else 0.0


def classify_sentiment(rating: Any, text: Optional[str] = None) -> Sentiment:
    """
    Map a 0-5 rating (plus optional text) to a sentiment label.

    Ratings >= 4 are positive and < 3 negative. In between, the text decides
    only when it hits one lexicon and not the other. Non-finite ratings count as 0.
    """
    value = _finite_rating(rating)

    if value >= POSITIVE_THRESHOLD:
        return Sentiment.POSITIVE
    if value < NEGATIVE_THRESHOLD:
        return Sentiment.NEGATIVE

    if text and isinstance(text, str):
        lowered = text.lower()
        has_negative = _NEGATIVE_RE.search(lowered) is not None
        has_positive = _POSITIVE_RE.search(lowered) is not None
        if has_negative and not has_positive:
            return Sentiment.NEGATIVE
        if has_positive and not has_negative:
            return Sentiment.POSITIVE

    return Sentiment.NEUTRAL
