"""
Tests for review filtering, pagination and approval annotation.
"""

from datetime import datetime, timedelta, timezone

import pytest
from flexreviews.data.approval_store import InMemoryApprovalStore
from flexreviews.exceptions import QueryValidationError
from flexreviews.reviews.query_engine import (
    ReviewFilters,
    ReviewQueryEngine,
    paginate,
    parse_paging,
)
from flexreviews.reviews.review_models import (
    Channel,
    Review,
    ReviewStatus,
    ReviewType,
    Sentiment,
)

NOW = datetime(2024, 11, 30, 12, 0, tzinfo=timezone.utc)


def make_review(
    review_id: str,
    rating: float = 4.5,
    channel: Channel = Channel.AIRBNB,
    sentiment: Sentiment = Sentiment.POSITIVE,
    listing_id: str = "2B-N1-A",
    days_ago: int = 1,
) -> Review:
    """Helper to create a canonical review."""
    moment = NOW - timedelta(days=days_ago)
    return Review(
        id=review_id,
        type=ReviewType.GUEST_TO_HOST,
        status=ReviewStatus.PUBLISHED,
        rating=None,
        average_rating=rating,
        public_review="",
        review_category=(),
        submitted_at=moment.isoformat(),
        normalized_date=moment,
        guest_name="Guest",
        listing_id=listing_id,
        listing_name=listing_id,
        channel=channel,
        sentiment=sentiment,
    )


REVIEWS = [
    make_review("r1", 4.8, Channel.AIRBNB, Sentiment.POSITIVE, "2B-N1-A", days_ago=2),
    make_review("r2", 3.2, Channel.BOOKING, Sentiment.NEUTRAL, "2B-N1-A", days_ago=10),
    make_review("r3", 1.5, Channel.VRBO, Sentiment.NEGATIVE, "3B-S2-A", days_ago=40),
    make_review("r4", 4.0, Channel.AIRBNB, Sentiment.POSITIVE, "3B-S2-A", days_ago=100),
]


# ============================================================================
# FILTER PARSING TESTS
# ============================================================================

class TestReviewFilters:
    """Tests for ReviewFilters.from_params()."""

    def test_camel_case_params(self):
        filters = ReviewFilters.from_params(
            listingId="2B-N1-A", channel="airbnb", minRating="4", sentiment="positive", dateRange="30",
        )
        assert filters == ReviewFilters(
            listing_id="2B-N1-A",
            channel=Channel.AIRBNB,
            min_rating=4.0,
            sentiment=Sentiment.POSITIVE,
            date_range=30,
        )

    def test_snake_case_params(self):
        filters = ReviewFilters.from_params(min_rating=3.5, date_range=7)
        assert filters.min_rating == 3.5
        assert filters.date_range == 7

    def test_empty_values_are_absent(self):
        filters = ReviewFilters.from_params(channel="", minRating=None, sentiment="  ")
        assert filters.is_empty

    def test_case_insensitive_enums(self):
        assert ReviewFilters.from_params(channel="Airbnb").channel == Channel.AIRBNB

    @pytest.mark.parametrize("params,param_name", [
        ({"minRating": "abc"}, "minRating"),
        ({"minRating": "6"}, "minRating"),
        ({"minRating": "-1"}, "minRating"),
        ({"minRating": "nan"}, "minRating"),
        ({"dateRange": "-1"}, "dateRange"),
        ({"dateRange": "0"}, "dateRange"),
        ({"dateRange": "1.5"}, "dateRange"),
        ({"dateRange": "week"}, "dateRange"),
        ({"channel": "myspace"}, "channel"),
        ({"sentiment": "furious"}, "sentiment"),
        ({"rating": "4"}, "rating"),
    ])
    def test_invalid_values_raise(self, params, param_name):
        with pytest.raises(QueryValidationError) as exc_info:
            ReviewFilters.from_params(**params)
        assert exc_info.value.param == param_name


# ============================================================================
# PAGINATION TESTS
# ============================================================================

class TestPagination:
    """Tests for paginate() and parse_paging()."""

    def test_limit_and_offset(self):
        assert [r.id for r in paginate(REVIEWS, limit=2, offset=1)] == ["r2", "r3"]

    def test_string_values(self):
        assert [r.id for r in paginate(REVIEWS, limit="1", offset="3")] == ["r4"]

    def test_no_paging(self):
        assert len(paginate(REVIEWS)) == 4

    def test_offset_past_end(self):
        assert paginate(REVIEWS, offset=10) == []

    def test_zero_limit(self):
        assert paginate(REVIEWS, limit=0) == []

    @pytest.mark.parametrize("limit,offset", [(-1, None), (None, -3), ("ten", None), (True, None)])
    def test_invalid_values_raise(self, limit, offset):
        with pytest.raises(QueryValidationError):
            parse_paging(limit, offset)


# ============================================================================
# QUERY ENGINE TESTS
# ============================================================================

class TestReviewQueryEngine:
    """Tests for ReviewQueryEngine.query()."""

    def setup_method(self):
        self.store = InMemoryApprovalStore({"r2"})
        self.engine = ReviewQueryEngine(self.store)

    def ids(self, reviews):
        return [r.id for r in reviews]

    def test_no_filters_returns_everything(self):
        assert self.ids(self.engine.query(REVIEWS, now=NOW)) == ["r1", "r2", "r3", "r4"]

    def test_listing_filter(self):
        result = self.engine.query(REVIEWS, ReviewFilters(listing_id="3B-S2-A"), now=NOW)
        assert self.ids(result) == ["r3", "r4"]

    def test_channel_filter(self):
        result = self.engine.query(REVIEWS, {"channel": "airbnb"}, now=NOW)
        assert self.ids(result) == ["r1", "r4"]

    def test_min_rating_is_inclusive(self):
        result = self.engine.query(REVIEWS, {"minRating": "4"}, now=NOW)
        assert self.ids(result) == ["r1", "r4"]

    def test_sentiment_filter(self):
        result = self.engine.query(REVIEWS, {"sentiment": "negative"}, now=NOW)
        assert self.ids(result) == ["r3"]

    def test_date_range_filter(self):
        result = self.engine.query(REVIEWS, {"dateRange": "30"}, now=NOW)
        assert self.ids(result) == ["r1", "r2"]

    def test_filters_are_and_combined(self):
        result = self.engine.query(REVIEWS, {"channel": "airbnb", "dateRange": 30}, now=NOW)
        assert self.ids(result) == ["r1"]

    def test_filters_are_subset_of_input(self):
        result = self.engine.query(REVIEWS, {"minRating": 3}, now=NOW)
        assert set(self.ids(result)) <= set(self.ids(REVIEWS))

    def test_invalid_dict_filters_raise(self):
        with pytest.raises(QueryValidationError):
            self.engine.query(REVIEWS, {"minRating": "lots"}, now=NOW)

    def test_approval_is_annotated(self):
        result = self.engine.query(REVIEWS, now=NOW)
        approved = {r.id: r.is_approved_for_website for r in result}
        assert approved == {"r1": False, "r2": True, "r3": False, "r4": False}

    def test_input_is_not_mutated(self):
        before = list(REVIEWS)
        self.engine.query(REVIEWS, {"channel": "booking"}, now=NOW)

        assert REVIEWS == before
        assert all(r.is_approved_for_website is False for r in REVIEWS)

    def test_approval_change_is_visible_on_next_query(self):
        self.store.set_approved("r1", True)
        result = self.engine.query(REVIEWS, {"listingId": "2B-N1-A"}, now=NOW)
        assert all(r.is_approved_for_website for r in result)

    def test_approved_only(self):
        assert self.ids(self.engine.approved_only(REVIEWS)) == ["r2"]

    def test_without_store_nothing_is_approved(self):
        engine = ReviewQueryEngine()
        assert not any(r.is_approved_for_website for r in engine.query(REVIEWS, now=NOW))
