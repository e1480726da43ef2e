"""
FlexReviews Review Pipeline
===========================

Normalization, aggregation, querying and analytics of guest reviews.

Modules:
    review_models   - Canonical Review, PropertyStats, AggregatedReviews
    review_signals  - Keyword extraction and rule-based sentiment
    listing_ids     - Listing name -> canonical listing id
    normalizers     - Per-source raw record -> Review
    aggregator      - Concurrent multi-source fetch, dedup, sort
    query_engine    - Filters and approval annotation
    review_stats    - Aggregate analytics
"""

from .review_models import (
    AggregatedReviews,
    Channel,
    PropertyStats,
    Review,
    ReviewCategory,
    ReviewQuery,
    ReviewStatus,
    ReviewType,
    Sentiment,
    SourceContext,
    SourceMeta,
    TrendPoint,
)
from .review_signals import classify_sentiment, extract_keywords
from .listing_ids import resolve_listing_id
from .normalizers import GooglePlacesNormalizer, HostawayNormalizer, ReviewNormalizer
from .aggregator import ReviewAggregator, dedupe_reviews, sort_newest_first
from .query_engine import ReviewFilters, ReviewQueryEngine, paginate, parse_paging
from .review_stats import compute_stats
