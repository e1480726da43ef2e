"""
Tests for multi-source review aggregation.

Uses in-memory fake adapters so ordering, isolation and dedup can be
checked without any upstream calls.
"""

import asyncio
from datetime import datetime, timedelta, timezone

import pytest
from flexreviews.data.adapters import SourceAdapter, SourceResult
from flexreviews.exceptions import ConfigurationError
from flexreviews.reviews.aggregator import ReviewAggregator, dedupe_reviews, sort_newest_first
from flexreviews.reviews.review_models import (
    Channel,
    Review,
    ReviewQuery,
    ReviewStatus,
    ReviewType,
    Sentiment,
)

BASE_DATE = datetime(2024, 10, 1, tzinfo=timezone.utc)


def make_review(review_id: str, days_ago: int = 0, guest: str = "Guest", source: str = "hostaway") -> Review:
    """Helper to create a canonical review."""
    moment = BASE_DATE - timedelta(days=days_ago)
    return Review(
        id=review_id,
        type=ReviewType.GUEST_TO_HOST,
        status=ReviewStatus.PUBLISHED,
        rating=None,
        average_rating=4.0,
        public_review="",
        review_category=(),
        submitted_at=moment.isoformat(),
        normalized_date=moment,
        guest_name=guest,
        listing_id="2B-N1-A",
        listing_name="2B N1 A - 29 Shoreditch Heights",
        channel=Channel.AIRBNB,
        sentiment=Sentiment.POSITIVE,
        source=source,
    )


class FakeAdapter(SourceAdapter):
    """Adapter returning canned reviews, or raising."""

    def __init__(self, name, reviews=None, available=True, always_on=False, error=None, delay=0.0):
        super().__init__(timeout=1.0)
        self.name = name
        self.always_on = always_on
        self._reviews = list(reviews or [])
        self._available = available
        self._error = error
        self._delay = delay
        self.queries = []

    def is_available(self):
        return self._available

    async def fetch(self, query=None):
        self.queries.append(query)
        if self._delay:
            await asyncio.sleep(self._delay)
        if self._error is not None:
            raise self._error
        return SourceResult(self.name, list(self._reviews))


# ============================================================================
# HELPER TESTS
# ============================================================================

class TestHelpers:
    """Tests for dedupe_reviews() and sort_newest_first()."""

    def test_dedupe_keeps_first(self):
        reviews = [make_review("1", guest="first"), make_review("2"), make_review("1", guest="second")]
        unique = dedupe_reviews(reviews)
        assert [r.id for r in unique] == ["1", "2"]
        assert unique[0].guest_name == "first"

    def test_sort_newest_first(self):
        reviews = [make_review("old", 10), make_review("new", 0), make_review("mid", 5)]
        assert [r.id for r in sort_newest_first(reviews)] == ["new", "mid", "old"]

    def test_sort_is_stable_for_ties(self):
        reviews = [make_review("a", 1), make_review("b", 1), make_review("c", 1)]
        assert [r.id for r in sort_newest_first(reviews)] == ["a", "b", "c"]


# ============================================================================
# AGGREGATOR TESTS
# ============================================================================

class TestReviewAggregator:
    """Tests for ReviewAggregator.fetch_all()."""

    def test_merges_and_sorts(self):
        primary = FakeAdapter("hostaway", [make_review("h1", 3), make_review("h2", 1)], always_on=True)
        google = FakeAdapter("google", [make_review("g1", 2, source="google")])

        result = asyncio.run(ReviewAggregator([primary, google]).fetch_all())

        assert [r.id for r in result.reviews] == ["h2", "g1", "h1"]
        assert result.sources == ["hostaway", "google"]
        assert result.meta["hostaway"].reviews == 2
        assert result.meta["google"].reviews == 1

    def test_duplicates_resolved_by_adapter_order(self):
        primary = FakeAdapter("hostaway", [make_review("dup", 1, guest="primary")], always_on=True)
        google = FakeAdapter("google", [make_review("dup", 1, guest="secondary")])

        result = asyncio.run(ReviewAggregator([primary, google]).fetch_all())

        assert len(result.reviews) == 1
        assert result.reviews[0].guest_name == "primary"

    def test_failing_source_is_isolated(self):
        primary = FakeAdapter("hostaway", [make_review("h1")], always_on=True)
        broken = FakeAdapter("google", error=RuntimeError("exploded"))

        result = asyncio.run(ReviewAggregator([primary, broken]).fetch_all())

        assert [r.id for r in result.reviews] == ["h1"]
        assert result.meta["google"].reviews == 0
        assert result.meta["google"].enabled is True
        assert "google" not in result.sources

    def test_slow_source_does_not_block_others(self):
        slow = FakeAdapter("google", [make_review("g1", source="google")], delay=0.05)
        primary = FakeAdapter("hostaway", [make_review("h1", 1)], always_on=True)

        result = asyncio.run(ReviewAggregator([primary, slow]).fetch_all())

        assert {r.id for r in result.reviews} == {"h1", "g1"}

    def test_always_on_source_listed_when_empty(self):
        primary = FakeAdapter("hostaway", [], always_on=True)
        google = FakeAdapter("google", [], available=False)

        result = asyncio.run(ReviewAggregator([primary, google]).fetch_all())

        assert result.reviews == []
        assert result.sources == ["hostaway"]
        assert result.meta["google"].enabled is False
        assert result.meta["google"].reviews == 0

    def test_query_is_passed_to_every_adapter(self):
        primary = FakeAdapter("hostaway", always_on=True)
        google = FakeAdapter("google")
        query = ReviewQuery(listing_id="2B-N1-A")

        asyncio.run(ReviewAggregator([primary, google]).fetch_all(query))

        assert primary.queries == [query]
        assert google.queries == [query]

    def test_no_available_source_is_fatal(self):
        aggregator = ReviewAggregator([
            FakeAdapter("hostaway", available=False, always_on=True),
            FakeAdapter("google", available=False),
        ])
        with pytest.raises(ConfigurationError):
            asyncio.run(aggregator.fetch_all())

    def test_to_dict(self):
        primary = FakeAdapter("hostaway", [make_review("h1")], always_on=True)
        data = asyncio.run(ReviewAggregator([primary]).fetch_all()).to_dict()

        assert data["sources"] == ["hostaway"]
        assert data["meta"] == {"hostaway": {"enabled": True, "reviews": 1}}
        assert data["reviews"][0]["id"] == "h1"

    def test_fetch_source(self):
        primary = FakeAdapter("hostaway", [make_review("h1")], always_on=True)
        aggregator = ReviewAggregator([primary])

        assert asyncio.run(aggregator.fetch_source("hostaway")).reviews[0].id == "h1"
        with pytest.raises(ConfigurationError):
            asyncio.run(aggregator.fetch_source("tripadvisor"))

    def test_integration_status(self):
        aggregator = ReviewAggregator([
            FakeAdapter("hostaway", always_on=True),
            FakeAdapter("google", available=False),
        ])

        status = aggregator.integration_status()

        assert status["sources"] == [
            {"name": "hostaway", "configured": True, "status": "active", "alwaysOn": True},
            {"name": "google", "configured": False, "status": "not_configured", "alwaysOn": False},
        ]
