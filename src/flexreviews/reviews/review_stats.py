"""
Review Statistics
=================

Aggregate analytics over a review collection (dashboard + property page):

    total_reviews        count
    average_rating       mean overall rating, 0 when empty
    category_averages    per category, mean of the 0-5 rescaled rating over
                         the reviews that report it
    sentiment_breakdown  count per sentiment
    trend_data           trailing window, one point per calendar day (UTC)
                         of the review's own date, ascending, sparse

Pure: the input sequence and its reviews are never modified.
"""

from collections import defaultdict
from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional, Sequence

from .review_models import PropertyStats, Review, Sentiment, TrendPoint

DEFAULT_TREND_WINDOW_DAYS = 30


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def compute_trend(
    reviews: Sequence[Review],
    now: Optional[datetime] = None,
    window_days: int = DEFAULT_TREND_WINDOW_DAYS,
) -> List[TrendPoint]:
    """Daily mean rating and count for reviews in the trailing window."""
    now = now or datetime.now(timezone.utc)
    cutoff = now - timedelta(days=window_days)

    daily: Dict[str, List[float]] = defaultdict(list)
    for review in reviews:
        if review.normalized_date >= cutoff:
            daily[review.day_key].append(review.overall_rating)

    return [
        TrendPoint(date=day, rating=_mean(ratings), count=len(ratings))
        for day, ratings in sorted(daily.items())
    ]


def compute_category_averages(reviews: Sequence[Review]) -> Dict[str, float]:
    """Mean rescaled rating per category; categories appear in first-seen order."""
    totals: Dict[str, List[float]] = {}
    for review in reviews:
        for category, rating in review.normalized_categories():
            totals.setdefault(category, []).append(rating)
    return {category: _mean(ratings) for category, ratings in totals.items()}


def compute_sentiment_breakdown(reviews: Sequence[Review]) -> Dict[str, int]:
    breakdown: Dict[str, int] = {}
    for review in reviews:
        sentiment = review.sentiment or Sentiment.NEUTRAL
        key = sentiment.value if isinstance(sentiment, Sentiment) else str(sentiment)
        breakdown[key] = breakdown.get(key, 0) + 1
    return breakdown


def compute_stats(
    reviews: Sequence[Review],
    now: Optional[datetime] = None,
    window_days: int = DEFAULT_TREND_WINDOW_DAYS,
) -> PropertyStats:
    """PropertyStats for a review collection. Empty input yields all-zero stats."""
    reviews = list(reviews)
    if not reviews:
        return PropertyStats()

    return PropertyStats(
        total_reviews=len(reviews),
        average_rating=_mean([r.overall_rating for r in reviews]),
        category_averages=compute_category_averages(reviews),
        trend_data=compute_trend(reviews, now=now, window_days=window_days),
        sentiment_breakdown=compute_sentiment_breakdown(reviews),
    )
