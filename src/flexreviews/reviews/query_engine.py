"""
Review Query Engine
===================

Filters a review collection and attaches website-approval status.

Filters (AND-combined, absent means no constraint):
    listing_id  exact match
    channel     exact match
    min_rating  average_rating >= min_rating
    sentiment   exact match
    date_range  normalized_date >= now - date_range days

Invalid filter values raise QueryValidationError instead of being ignored.

Usage:
    engine = ReviewQueryEngine(approval_store)
    filters = ReviewFilters.from_params(channel="airbnb", minRating="4")
    results = engine.query(reviews, filters)
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from ..exceptions import QueryValidationError
from .review_models import Channel, Review, Sentiment, parse_enum

logger = logging.getLogger(__name__)

# Accepted parameter spellings -> ReviewFilters field
_PARAM_ALIASES = {
    "listing_id": "listing_id",
    "listingId": "listing_id",
    "channel": "channel",
    "min_rating": "min_rating",
    "minRating": "min_rating",
    "sentiment": "sentiment",
    "date_range": "date_range",
    "dateRange": "date_range",
}

MAX_RATING = 5.0


def _is_absent(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def _parse_min_rating(value: Any) -> float:
    if isinstance(value, bool):
        raise QueryValidationError("minRating must be a number", "minRating")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise QueryValidationError(f"minRating must be a number, got {value!r}", "minRating")
    if not math.isfinite(number) or not 0 <= number <= MAX_RATING:
        raise QueryValidationError(f"minRating must be between 0 and 5, got {value!r}", "minRating")
    return number


def _parse_date_range(value: Any) -> int:
    if isinstance(value, bool):
        raise QueryValidationError("dateRange must be a whole number of days", "dateRange")
    if isinstance(value, float):
        if not value.is_integer():
            raise QueryValidationError(f"dateRange must be a whole number of days, got {value!r}", "dateRange")
        value = int(value)
    try:
        days = int(str(value).strip()) if not isinstance(value, int) else value
    except ValueError:
        raise QueryValidationError(f"dateRange must be a whole number of days, got {value!r}", "dateRange")
    if days < 1:
        raise QueryValidationError(f"dateRange must be at least 1 day, got {value!r}", "dateRange")
    return days


@dataclass(frozen=True)
class ReviewFilters:
    """Validated filter set."""
    listing_id: Optional[str] = None
    channel: Optional[Channel] = None
    min_rating: Optional[float] = None
    sentiment: Optional[Sentiment] = None
    date_range: Optional[int] = None

    @classmethod
    def from_params(cls, **params: Any) -> "ReviewFilters":
        """
        Build filters from raw (possibly string) parameters.

        Accepts snake_case and camelCase names. Empty values are treated as
        absent.

        Raises:
            QueryValidationError: unknown parameter or invalid value
        """
        values: Dict[str, Any] = {}
        for key, raw in params.items():
            field_name = _PARAM_ALIASES.get(key)
            if field_name is None:
                raise QueryValidationError(f"Unknown filter: {key}", key)
            if _is_absent(raw):
                continue

            if field_name == "listing_id":
                values["listing_id"] = str(raw).strip()
            elif field_name == "channel":
                channel = parse_enum(Channel, raw)
                if channel is None:
                    raise QueryValidationError(f"Unknown channel: {raw!r}", "channel")
                values["channel"] = channel
            elif field_name == "sentiment":
                sentiment = parse_enum(Sentiment, raw)
                if sentiment is None:
                    raise QueryValidationError(f"Unknown sentiment: {raw!r}", "sentiment")
                values["sentiment"] = sentiment
            elif field_name == "min_rating":
                values["min_rating"] = _parse_min_rating(raw)
            elif field_name == "date_range":
                values["date_range"] = _parse_date_range(raw)

        return cls(**values)

    @property
    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (self.listing_id, self.channel, self.min_rating, self.sentiment, self.date_range)
        )

    def cutoff(self, now: datetime) -> Optional[datetime]:
        if self.date_range is None:
            return None
        return now - timedelta(days=self.date_range)

    def matches(self, review: Review, now: datetime) -> bool:
        if self.listing_id is not None and review.listing_id != self.listing_id:
            return False
        if self.channel is not None and review.channel != self.channel:
            return False
        if self.min_rating is not None and review.average_rating < self.min_rating:
            return False
        if self.sentiment is not None and review.sentiment != self.sentiment:
            return False
        cutoff = self.cutoff(now)
        if cutoff is not None and review.normalized_date < cutoff:
            return False
        return True


def _parse_non_negative(value: Any, name: str) -> Optional[int]:
    if _is_absent(value):
        return None
    if isinstance(value, bool):
        raise QueryValidationError(f"{name} must be a non-negative integer", name)
    try:
        number = int(str(value).strip()) if not isinstance(value, int) else value
    except ValueError:
        raise QueryValidationError(f"{name} must be a non-negative integer, got {value!r}", name)
    if number < 0:
        raise QueryValidationError(f"{name} must be a non-negative integer, got {value!r}", name)
    return number


def parse_paging(limit: Any = None, offset: Any = None) -> Tuple[Optional[int], int]:
    """
    Validate raw limit/offset. Returns (limit or None, offset).

    Raises:
        QueryValidationError: negative or non-integer limit/offset
    """
    return _parse_non_negative(limit, "limit"), _parse_non_negative(offset, "offset") or 0


def paginate(reviews: Sequence[Review], limit: Any = None, offset: Any = None) -> List[Review]:
    """
    Offset/limit slice.

    Raises:
        QueryValidationError: negative or non-integer limit/offset
    """
    count, start = parse_paging(limit, offset)
    end = start + count if count is not None else None
    return list(reviews[start:end])


class ReviewQueryEngine:
    """
    Side-effect-free filtering plus approval annotation.

    The approval store is read once per query (a snapshot), and approval is
    attached to copies, so Review instances shared across calls never change.
    """

    def __init__(self, approval_store=None):
        self.approval_store = approval_store

    def approved_snapshot(self) -> frozenset:
        if self.approval_store is None:
            return frozenset()
        return frozenset(self.approval_store.all_approved())

    def query(
        self,
        reviews: Iterable[Review],
        filters: Optional[Any] = None,
        now: Optional[datetime] = None,
    ) -> List[Review]:
        """
        Filter and annotate.

        Args:
            reviews: Canonical reviews (not modified)
            filters: ReviewFilters, a dict of raw params, or None
            now: Reference time for date_range (default: current UTC time)

        Raises:
            QueryValidationError: filters given as a dict with invalid values
        """
        if filters is None:
            filters = ReviewFilters()
        elif isinstance(filters, dict):
            filters = ReviewFilters.from_params(**filters)
        elif not isinstance(filters, ReviewFilters):
            raise QueryValidationError(f"Unsupported filters type: {type(filters).__name__}")

        now = now or datetime.now(timezone.utc)
        matched = [r for r in reviews if filters.matches(r, now)]
        approved = self.approved_snapshot()
        return [r.with_approval(r.id in approved) for r in matched]

    def approved_only(self, reviews: Iterable[Review]) -> List[Review]:
        """Reviews approved for the public property page."""
        approved = self.approved_snapshot()
        return [r.with_approval(True) for r in reviews if r.id in approved]
