"""
Review Data Models
==================

Canonical, source-agnostic review shape plus the aggregate outputs
(PropertyStats, AggregatedReviews) produced from it.

Reviews are frozen: the only per-request field, is_approved_for_website,
is attached on copies made by Review.with_approval().
"""

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class ReviewType(str, Enum):
    """Direction of the review."""
    GUEST_TO_HOST = "guest-to-host"
    HOST_TO_GUEST = "host-to-guest"


class ReviewStatus(str, Enum):
    """Source-reported moderation state (distinct from website curation)."""
    PUBLISHED = "published"
    PENDING = "pending"
    HIDDEN = "hidden"


class Channel(str, Enum):
    """Distribution platform the booking/review came through."""
    HOSTAWAY = "hostaway"
    AIRBNB = "airbnb"
    BOOKING = "booking"
    VRBO = "vrbo"
    EXPEDIA = "expedia"
    GOOGLE = "google"
    DIRECT = "direct"


class Sentiment(str, Enum):
    """Rule-based sentiment label."""
    POSITIVE = "positive"
    NEUTRAL = "neutral"
    NEGATIVE = "negative"


def parse_enum(enum_cls, value: Any, default=None):
    """Return the enum member for value (case-insensitive) or default."""
    if isinstance(value, enum_cls):
        return value
    if not isinstance(value, str):
        return default
    try:
        return enum_cls(value.strip().lower())
    except ValueError:
        return default


@dataclass(frozen=True)
class ReviewCategory:
    """One category rating, on the source's native scale (e.g. 0-10)."""
    category: str
    rating: float

    def to_dict(self) -> Dict[str, Any]:
        return {"category": self.category, "rating": self.rating}


@dataclass(frozen=True)
class Review:
    """Canonical review, produced by a source normalizer."""
    id: str
    type: ReviewType
    status: ReviewStatus
    rating: Optional[float]          # raw source rating, scale varies by source
    average_rating: float            # derived, always within 0-5
    public_review: str
    review_category: Tuple[ReviewCategory, ...]
    submitted_at: str
    normalized_date: datetime        # aware UTC, == parse(submitted_at)
    guest_name: str
    listing_id: str
    listing_name: str
    channel: Channel
    sentiment: Sentiment
    keywords: Tuple[str, ...] = ()
    source: str = "hostaway"
    private_review: Optional[str] = None
    category_scale: float = 1.0      # divisor bringing category ratings to 0-5
    is_approved_for_website: bool = False

    @property
    def overall_rating(self) -> float:
        """Alias of average_rating (both names exist in the public shape)."""
        return self.average_rating

    @property
    def day_key(self) -> str:
        """Calendar day (UTC) of the source date, YYYY-MM-DD."""
        return self.normalized_date.date().isoformat()

    def normalized_categories(self) -> List[Tuple[str, float]]:
        """Category ratings rescaled to 0-5."""
        return [
            (c.category, c.rating / self.category_scale)
            for c in self.review_category
            if isinstance(c.rating, (int, float)) and math.isfinite(c.rating)
        ]

    def with_approval(self, approved: bool) -> "Review":
        """Return a copy carrying the website-approval flag."""
        return replace(self, is_approved_for_website=bool(approved))

    def to_dict(self) -> Dict[str, Any]:
        """Public JSON shape (camelCase)."""
        data = {
            "id": self.id,
            "type": self.type.value,
            "status": self.status.value,
            "rating": self.rating,
            "overallRating": self.average_rating,
            "averageRating": self.average_rating,
            "publicReview": self.public_review,
            "reviewCategory": [c.to_dict() for c in self.review_category],
            "submittedAt": self.submitted_at,
            "normalizedDate": self.normalized_date.isoformat(),
            "guestName": self.guest_name,
            "listingId": self.listing_id,
            "listingName": self.listing_name,
            "channel": self.channel.value,
            "isApprovedForWebsite": self.is_approved_for_website,
            "sentiment": self.sentiment.value,
            "keywords": list(self.keywords),
            "source": self.source,
        }
        if self.private_review is not None:
            data["privateReview"] = self.private_review
        return data


@dataclass(frozen=True)
class SourceContext:
    """Source metadata not present in the raw record itself."""
    source: str
    place_id: Optional[str] = None
    place_name: Optional[str] = None
    index: int = 0


@dataclass(frozen=True)
class ReviewQuery:
    """Parameters passed down to source adapters."""
    listing_id: Optional[str] = None
    limit: Optional[int] = None
    offset: Optional[int] = None


@dataclass
class TrendPoint:
    """Mean rating and review count for one calendar day."""
    date: str
    rating: float
    count: int

    def to_dict(self) -> Dict[str, Any]:
        return {"date": self.date, "rating": self.rating, "count": self.count}


@dataclass
class PropertyStats:
    """Aggregate analytics over a review collection."""
    total_reviews: int = 0
    average_rating: float = 0.0
    category_averages: Dict[str, float] = field(default_factory=dict)
    trend_data: List[TrendPoint] = field(default_factory=list)
    sentiment_breakdown: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalReviews": self.total_reviews,
            "averageRating": self.average_rating,
            "categoryAverages": dict(self.category_averages),
            "trendData": [t.to_dict() for t in self.trend_data],
            "sentimentBreakdown": dict(self.sentiment_breakdown),
        }


@dataclass
class SourceMeta:
    """Per-source aggregation outcome."""
    enabled: bool
    reviews: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"enabled": self.enabled, "reviews": self.reviews}


@dataclass
class AggregatedReviews:
    """Merged, deduplicated and sorted reviews from every source."""
    reviews: List[Review]
    sources: List[str]
    meta: Dict[str, SourceMeta]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reviews": [r.to_dict() for r in self.reviews],
            "sources": list(self.sources),
            "meta": {name: m.to_dict() for name, m in self.meta.items()},
        }
