"""
Source Normalizers
==================

Turn one source's raw review record into the canonical Review.

    HostawayNormalizer      - property-management records, 0-10 category ratings
    GooglePlacesNormalizer  - Places "details" reviews, 1-5 star rating, no categories

Normalization is a pure function of (raw record, SourceContext). Missing
optional fields get defaults; a field that cannot be parsed is logged and
defaulted instead of rejecting the record.

Usage:
    normalizer = HostawayNormalizer()
    reviews = normalizer.normalize_batch(raw_records, SourceContext(source="hostaway"))
"""

import hashlib
import logging
import math
from abc import ABC, abstractmethod
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from ..exceptions import MalformedRecordError
from .listing_ids import resolve_listing_id
from .review_models import (
    Channel,
    Review,
    ReviewCategory,
    ReviewStatus,
    ReviewType,
    SourceContext,
    parse_enum,
)
from .review_signals import classify_sentiment, extract_keywords

logger = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
MAX_RATING = 5.0

_DATE_FORMATS = ("%Y-%m-%d %H:%M:%S", "%Y-%m-%d")


# =============================================================================
# FIELD PARSERS
# =============================================================================

def parse_rating(value: Any, field_name: str = "rating") -> Optional[float]:
    """Parse a numeric rating. None stays None; garbage raises MalformedRecordError."""
    if value is None or value == "":
        return None
    if isinstance(value, bool):
        raise MalformedRecordError(f"Boolean {field_name}", field_name, value)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise MalformedRecordError(f"Non-numeric {field_name}: {value!r}", field_name, value)
    if not math.isfinite(number):
        raise MalformedRecordError(f"Non-finite {field_name}: {value!r}", field_name, value)
    return number


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a source timestamp into an aware UTC datetime.

    Accepts ISO-8601 (with or without 'Z'), Hostaway's "YYYY-MM-DD HH:MM:SS"
    and unix seconds. Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            raise MalformedRecordError(f"Timestamp out of range: {value!r}", "submittedAt", value)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        parsed = None
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _DATE_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue
        if parsed is None:
            raise MalformedRecordError(f"Unparseable date: {value!r}", "submittedAt", value)
    else:
        raise MalformedRecordError("Missing submittedAt", "submittedAt", value)

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_timestamp(moment: datetime) -> str:
    """ISO-8601 UTC string with a 'Z' suffix."""
    return moment.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)


# =============================================================================
# BASE NORMALIZER
# =============================================================================

class ReviewNormalizer(ABC):
    """
    Shared rating/sentiment/keyword derivation.

    Subclasses set `source` and `category_scale` and implement normalize().
    """

    source = "unknown"
    category_scale = 1.0

    def __init__(self, category_scale: Optional[float] = None):
        if category_scale is not None:
            if category_scale <= 0:
                raise ValueError("category_scale must be positive")
            self.category_scale = float(category_scale)

    @abstractmethod
    def normalize(self, raw: Dict[str, Any], context: SourceContext) -> Review:
        pass

    def normalize_batch(self, records: Iterable[Any], context: SourceContext) -> List[Review]:
        """Normalize a batch; records that cannot be normalized at all are skipped."""
        reviews = []
        for index, raw in enumerate(records):
            try:
                reviews.append(self.normalize(raw, replace(context, index=index)))
            except MalformedRecordError as e:
                logger.warning(
                    f"Skipping malformed {self.source} record #{index}: {e}",
                    extra={"source": self.source},
                )
        return reviews

    def compute_average_rating(
        self,
        categories: Tuple[ReviewCategory, ...],
        raw_rating: Optional[float],
    ) -> float:
        """
        Overall 0-5 rating.

        With categories: mean of category ratings divided by category_scale.
        Without: the raw rating, or 0 when absent. Result is clamped to 0-5.
        """
        if categories:
            total = sum(c.rating / self.category_scale for c in categories)
            value = total / len(categories)
        else:
            value = raw_rating if raw_rating is not None else 0.0
        return min(MAX_RATING, max(0.0, value))

    def parse_categories(self, raw_categories: Any) -> Tuple[ReviewCategory, ...]:
        """Keep well-formed {category, rating} entries, in source order."""
        if not isinstance(raw_categories, (list, tuple)):
            if raw_categories is not None:
                logger.debug(f"Ignoring non-list reviewCategory: {raw_categories!r}")
            return ()

        categories = []
        for entry in raw_categories:
            if not isinstance(entry, dict):
                continue
            name = entry.get("category")
            try:
                rating = parse_rating(entry.get("rating"), "reviewCategory.rating")
            except MalformedRecordError as e:
                logger.debug(f"Dropping category {name!r}: {e}")
                continue
            if not name or rating is None:
                continue
            categories.append(ReviewCategory(category=str(name), rating=rating))
        return tuple(categories)

    def resolve_date(self, value: Any, record_id: str) -> Tuple[str, datetime]:
        """Return (submitted_at, normalized_date); unparseable dates fall back to the epoch."""
        try:
            moment = parse_timestamp(value)
        except MalformedRecordError as e:
            logger.warning(
                f"{self.source} review {record_id}: {e}; using epoch",
                extra={"source": self.source, "review_id": record_id},
            )
            if isinstance(value, str) and value.strip():
                return value, EPOCH
            return format_timestamp(EPOCH), EPOCH
        if isinstance(value, str):
            return value, moment
        return format_timestamp(moment), moment


# =============================================================================
# HOSTAWAY
# =============================================================================

class HostawayNormalizer(ReviewNormalizer):
    """Hostaway review record -> Review."""

    source = "hostaway"
    category_scale = 2.0

    # Substrings of the raw `source` field -> channel
    CHANNEL_HINTS = (
        ("airbnb", Channel.AIRBNB),
        ("booking", Channel.BOOKING),
        ("vrbo", Channel.VRBO),
        ("expedia", Channel.EXPEDIA),
    )

    def normalize(self, raw: Dict[str, Any], context: SourceContext) -> Review:
        if not isinstance(raw, dict):
            raise MalformedRecordError(f"Expected a mapping, got {type(raw).__name__}")

        listing_name = _text(raw.get("listingName"))
        guest_name = _text(raw.get("guestName"))
        review_id = self._review_id(raw, listing_name, guest_name)

        try:
            raw_rating = parse_rating(raw.get("rating"))
        except MalformedRecordError as e:
            logger.warning(f"hostaway review {review_id}: {e}", extra={"review_id": review_id})
            raw_rating = None

        categories = self.parse_categories(raw.get("reviewCategory"))
        average = self.compute_average_rating(categories, raw_rating)
        public_review = _text(raw.get("publicReview"))
        submitted_at, normalized_date = self.resolve_date(raw.get("submittedAt"), review_id)

        private_review = raw.get("privateReview")

        return Review(
            id=review_id,
            type=parse_enum(ReviewType, raw.get("type"), ReviewType.GUEST_TO_HOST),
            status=parse_enum(ReviewStatus, raw.get("status"), ReviewStatus.PUBLISHED),
            rating=raw_rating,
            average_rating=average,
            public_review=public_review,
            private_review=_text(private_review) if private_review is not None else None,
            review_category=categories,
            submitted_at=submitted_at,
            normalized_date=normalized_date,
            guest_name=guest_name,
            listing_id=resolve_listing_id(listing_name),
            listing_name=listing_name,
            channel=self.infer_channel(raw),
            sentiment=classify_sentiment(average, public_review),
            keywords=tuple(extract_keywords(public_review)),
            source=context.source or self.source,
            category_scale=self.category_scale,
        )

    def infer_channel(self, raw: Dict[str, Any]) -> Channel:
        """Explicit channel, else a hint from the raw `source` field, else hostaway."""
        channel = parse_enum(Channel, raw.get("channel"))
        if channel is not None:
            return channel

        source = raw.get("source")
        if isinstance(source, str):
            lowered = source.lower()
            for hint, hinted_channel in self.CHANNEL_HINTS:
                if hint in lowered:
                    return hinted_channel
        return Channel.HOSTAWAY

    @staticmethod
    def _review_id(raw: Dict[str, Any], listing_name: str, guest_name: str) -> str:
        raw_id = raw.get("id")
        if raw_id is not None and str(raw_id).strip():
            return str(raw_id)
        # Stable id for records the API returned without one
        digest = hashlib.sha1(
            f"{listing_name}|{guest_name}|{raw.get('submittedAt')}".encode("utf-8")
        ).hexdigest()[:12]
        return f"hostaway-{digest}"


# =============================================================================
# GOOGLE PLACES
# =============================================================================

class GooglePlacesNormalizer(ReviewNormalizer):
    """Google Places review (from place details) -> Review."""

    source = "google"
    category_scale = 1.0

    def normalize(self, raw: Dict[str, Any], context: SourceContext) -> Review:
        if not isinstance(raw, dict):
            raise MalformedRecordError(f"Expected a mapping, got {type(raw).__name__}")

        place_name = _text(context.place_name)
        listing_id = context.place_id or resolve_listing_id(place_name)
        review_id = f"google-{listing_id}-{context.index}"

        try:
            raw_rating = parse_rating(raw.get("rating"))
        except MalformedRecordError as e:
            logger.warning(f"google review {review_id}: {e}", extra={"review_id": review_id})
            raw_rating = None

        average = self.compute_average_rating((), raw_rating)
        text = _text(raw.get("text"))
        submitted_at, normalized_date = self.resolve_date(raw.get("time"), review_id)

        return Review(
            id=review_id,
            type=ReviewType.GUEST_TO_HOST,
            status=ReviewStatus.PUBLISHED,
            rating=raw_rating,
            average_rating=average,
            public_review=text,
            review_category=(),
            submitted_at=submitted_at,
            normalized_date=normalized_date,
            guest_name=_text(raw.get("author_name")),
            listing_id=listing_id,
            listing_name=place_name,
            channel=Channel.GOOGLE,
            sentiment=classify_sentiment(average, text),
            keywords=tuple(extract_keywords(text)),
            source=context.source or self.source,
            category_scale=self.category_scale,
        )
