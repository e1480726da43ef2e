"""
FlexReviews API Services
========================

Business logic layer shared by the HTTP API and the CLI.

ReviewService wires the stateful pieces once (token cache, clients,
adapters, aggregator, approval store, query engine) and exposes the
dashboard operations on top of them. Nothing here knows about HTTP.
"""

import asyncio
import logging
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple

from ..data.adapters import GooglePlacesAdapter, HostawayAdapter
from ..data.approval_store import ApprovalState, FileApprovalStore
from ..data.config import Settings, get_settings
from ..data.google_places_client import GooglePlacesClient
from ..data.hostaway_client import HostawayClient, HostawayTokenCache, normalize_listing
from ..data.mock_data import load_mock_listings
from ..exceptions import SourceError
from ..reviews.aggregator import ReviewAggregator, sort_newest_first
from ..reviews.query_engine import ReviewFilters, ReviewQueryEngine, parse_paging
from ..reviews.review_models import PropertyStats, Review, ReviewQuery
from ..reviews.review_stats import compute_stats

logger = logging.getLogger(__name__)

# Query parameters that shape the page rather than filter the collection
PAGING_PARAMS = ("limit", "offset")

GOOGLE_NOT_CONFIGURED_FINDINGS = {
    "feasible": False,
    "reason": "API key required",
    "implementation": "Set GOOGLE_PLACES_API_KEY environment variable",
    "limitations": [
        "Requires Google Cloud Platform account",
        "Places API must be enabled",
        "Billing account required for production use",
        "Rate limits apply",
    ],
}

GOOGLE_EXPLORATION_FINDINGS = {
    "feasible": True,
    "implementation": "Google Reviews can be integrated via Places API",
    "steps": [
        "1. Enable Places API in Google Cloud Console",
        "2. Use Place Search to find property by name/address",
        "3. Use Place Details to fetch reviews",
        "4. Reviews include rating, text, author, and time",
    ],
    "dataStructure": {
        "rating": "number (1-5)",
        "text": "string",
        "author_name": "string",
        "time": "unix timestamp",
    },
    "limitations": [
        "Maximum 5 reviews per place",
        "Cannot write reviews via API",
        "Reviews are sorted by Google relevance algorithm",
        "Requires place to be listed on Google Maps",
    ],
}


def split_params(params: Dict[str, Any]) -> Tuple[ReviewFilters, Optional[int], int]:
    """
    Raw query parameters -> (filters, limit, offset).

    Raises:
        QueryValidationError: any invalid filter or paging value
    """
    filter_params = {k: v for k, v in params.items() if k not in PAGING_PARAMS}
    filters = ReviewFilters.from_params(**filter_params)
    limit, offset = parse_paging(params.get("limit"), params.get("offset"))
    return filters, limit, offset


def scoped_filters(filters: ReviewFilters) -> ReviewFilters:
    """
    Filters to apply after a listing-scoped fetch.

    The adapters already scope their fetch to the listing, and Google reviews
    carry the place id as their listing id, so the listing predicate is not
    re-applied.
    """
    return replace(filters, listing_id=None)


def _page(reviews: List[Review], limit: Optional[int], offset: int) -> List[Review]:
    end = offset + limit if limit is not None else None
    return reviews[offset:end]


class ReviewService:
    """Dashboard and property-page operations over all review sources."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        approval_store: Optional[ApprovalState] = None,
        hostaway_client: Optional[HostawayClient] = None,
        google_client: Optional[GooglePlacesClient] = None,
    ):
        self.settings = settings or get_settings()
        timeout = self.settings.aggregation.source_timeout_seconds

        self.token_cache = HostawayTokenCache()
        self.hostaway_client = hostaway_client or HostawayClient(
            config=self.settings.hostaway,
            token_cache=self.token_cache,
        )
        self.google_client = google_client or GooglePlacesClient(config=self.settings.google)

        self.hostaway_adapter = HostawayAdapter(
            self.hostaway_client,
            use_mock_fallback=self.settings.hostaway.mock_fallback,
            timeout=timeout,
        )
        self.google_adapter = GooglePlacesAdapter(self.google_client, timeout=timeout)
        self.aggregator = ReviewAggregator([self.hostaway_adapter, self.google_adapter])

        self.approval_store = approval_store or FileApprovalStore(self.settings.storage.approvals_path)
        self.query_engine = ReviewQueryEngine(self.approval_store)

    def init(self) -> None:
        """Load durable state eagerly (called at application startup)."""
        self.approval_store.init()

    # =========================================================================
    # Reviews
    # =========================================================================

    async def get_all_reviews(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """
        Aggregated reviews from every source, filtered, approval-annotated
        and paginated.

        Raises:
            QueryValidationError: invalid filter or paging value
            ConfigurationError: no review source configured
        """
        filters, limit, offset = split_params(params)
        aggregated = await self.aggregator.fetch_all(ReviewQuery(listing_id=filters.listing_id))
        matched = self.query_engine.query(aggregated.reviews, scoped_filters(filters))

        return {
            "reviews": _page(matched, limit, offset),
            "total": len(matched),
            "sources": list(aggregated.sources),
            "breakdown": {name: m.to_dict() for name, m in aggregated.meta.items()},
        }

    async def get_hostaway_reviews(self, params: Dict[str, Any]) -> Dict[str, Any]:
        """Primary source only, filtered, approval-annotated, newest first."""
        filters, limit, offset = split_params(params)
        outcome = await self.aggregator.fetch_source(
            self.hostaway_adapter.name,
            ReviewQuery(listing_id=filters.listing_id),
        )
        matched = sort_newest_first(self.query_engine.query(outcome.reviews, scoped_filters(filters)))

        return {
            "reviews": _page(matched, limit, offset),
            "total": len(matched),
            "source": "mock" if outcome.used_fallback else "api",
        }

    async def get_stats(self, params: Dict[str, Any], approved_only: bool = False) -> PropertyStats:
        """Aggregate analytics over the filtered collection."""
        filters, _, _ = split_params(params)
        aggregated = await self.aggregator.fetch_all(ReviewQuery(listing_id=filters.listing_id))
        matched = self.query_engine.query(aggregated.reviews, scoped_filters(filters))
        if approved_only:
            matched = self.query_engine.approved_only(matched)
        return compute_stats(matched, window_days=self.settings.aggregation.trend_window_days)

    async def get_google_reviews(self, place_id: Optional[str]) -> Dict[str, Any]:
        """Reviews of a single Google place, or integration findings."""
        if not self.google_client.is_configured:
            return {
                "status": "error",
                "message": "Google API key not configured",
                "findings": GOOGLE_NOT_CONFIGURED_FINDINGS,
            }
        if not place_id:
            return {"status": "success", "findings": GOOGLE_EXPLORATION_FINDINGS}

        try:
            reviews = await asyncio.wait_for(
                asyncio.to_thread(self.google_adapter.fetch_place, place_id),
                timeout=self.google_adapter.timeout,
            )
        except asyncio.TimeoutError:
            return {"status": "error", "message": f"Google API request timed out for {place_id}"}
        except SourceError as e:
            logger.warning(f"Google place fetch failed: {e}", extra={"source": "google"})
            return {"status": "error", "message": f"Google API error: {e}"}

        reviews = self.query_engine.query(reviews)
        return {
            "status": "success",
            "result": reviews,
            "meta": {
                "source": "google",
                "placeId": place_id,
                "placeName": reviews[0].listing_name if reviews else None,
                "totalReviews": len(reviews),
            },
        }

    # =========================================================================
    # Curation
    # =========================================================================

    def set_approval(self, review_id: str, approved: Optional[bool]) -> int:
        """
        Apply a website-approval decision. None leaves state untouched.

        Returns the number of approved reviews.
        """
        if approved is None:
            return self.approval_store.approved_count()
        return self.approval_store.set_approved(review_id, approved)

    # =========================================================================
    # Listings / status
    # =========================================================================

    def get_listings(self) -> Tuple[List[Dict[str, Any]], str]:
        """Listing catalog and where it came from ("api" or "mock")."""
        if self.hostaway_client.is_configured:
            try:
                raw = self.hostaway_client.fetch_listings()
            except SourceError as e:
                logger.warning(f"Hostaway listings unavailable: {e}; serving mock listings")
            else:
                if raw:
                    logger.info(f"Fetched {len(raw)} listings from Hostaway API")
                    return [normalize_listing(l) for l in raw], "api"

        return load_mock_listings(), "mock"

    def integration_status(self) -> Dict[str, Any]:
        status = self.aggregator.integration_status()
        status["approvals"] = {
            "count": self.approval_store.approved_count(),
            "isStale": self.approval_store.is_stale,
            "lastPersistError": self.approval_store.last_persist_error,
        }
        return status


# Process-wide service instance (lazy-loaded)
_service: Optional[ReviewService] = None


def get_review_service() -> ReviewService:
    """Get the shared ReviewService (singleton pattern)."""
    global _service
    if _service is None:
        _service = ReviewService()
    return _service


def reset_review_service() -> None:
    global _service
    _service = None
