"""
Review Source Adapters
======================

One adapter per upstream source. An adapter fetches raw records (real
upstream call or local fallback) and hands them to its normalizer.

    HostawayAdapter      - always-on primary source; falls back to the
                           bundled mock dataset on any upstream failure
    GooglePlacesAdapter  - optional; contributes nothing when not configured

fetch() never raises for upstream problems: the outcome, including whether
the fallback was used and why, is reported in a SourceResult. The blocking
requests call runs in a worker thread and is bounded by a timeout.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..exceptions import SourceError
from ..reviews.normalizers import GooglePlacesNormalizer, HostawayNormalizer
from ..reviews.review_models import Review, ReviewQuery, SourceContext
from .google_places_client import GooglePlacesClient, PlaceMappingRegistry
from .hostaway_client import HostawayClient
from .mock_data import load_mock_reviews

logger = logging.getLogger(__name__)

DEFAULT_SOURCE_TIMEOUT = 15.0


@dataclass
class SourceResult:
    """Outcome of one adapter fetch."""
    source: str
    reviews: List[Review] = field(default_factory=list)
    used_fallback: bool = False
    error: Optional[str] = None
    duration_seconds: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None


class SourceAdapter(ABC):
    """Fetches canonical reviews from one source."""

    name: str = "unknown"
    # Always-on sources are listed in aggregation results even when empty
    always_on: bool = False

    def __init__(self, timeout: float = DEFAULT_SOURCE_TIMEOUT):
        self.timeout = timeout

    @abstractmethod
    def is_available(self) -> bool:
        """True when the source's configuration is present."""
        pass

    @abstractmethod
    async def fetch(self, query: Optional[ReviewQuery] = None) -> SourceResult:
        pass

    async def _run_bounded(self, func, *args):
        """Run a blocking call in a worker thread, bounded by self.timeout."""
        return await asyncio.wait_for(asyncio.to_thread(func, *args), timeout=self.timeout)


class HostawayAdapter(SourceAdapter):
    """
    Primary source. The upstream call is attempted first; auth failure,
    non-2xx, empty result, timeout or any other error falls back to the
    bundled mock dataset scoped to the same query.
    """

    name = "hostaway"
    always_on = True

    def __init__(
        self,
        client: HostawayClient,
        normalizer: Optional[HostawayNormalizer] = None,
        mock_records: Optional[List[Dict[str, Any]]] = None,
        use_mock_fallback: bool = True,
        timeout: float = DEFAULT_SOURCE_TIMEOUT,
    ):
        super().__init__(timeout=timeout)
        self.client = client
        self.normalizer = normalizer or HostawayNormalizer(category_scale=client.config.category_scale)
        self.use_mock_fallback = use_mock_fallback
        self._mock_records = mock_records

    def is_available(self) -> bool:
        # The bundled dataset counts as configuration: it is the availability floor
        return self.client.is_configured or self.use_mock_fallback

    @property
    def mock_records(self) -> List[Dict[str, Any]]:
        if self._mock_records is None:
            self._mock_records = load_mock_reviews()
        return self._mock_records

    def _context(self) -> SourceContext:
        return SourceContext(source=self.name)

    def _fetch_upstream(self, query: ReviewQuery) -> List[Dict[str, Any]]:
        return self.client.fetch_reviews(
            listing_id=query.listing_id,
            limit=query.limit,
            offset=query.offset,
        )

    def fallback_reviews(self, query: Optional[ReviewQuery] = None) -> List[Review]:
        """Mock dataset, normalized and scoped to the query. Never raises."""
        query = query or ReviewQuery()
        reviews = self.normalizer.normalize_batch(self.mock_records, self._context())
        if query.listing_id:
            reviews = [r for r in reviews if r.listing_id == query.listing_id]
        start = query.offset or 0
        end = start + query.limit if query.limit else None
        return reviews[start:end]

    async def fetch(self, query: Optional[ReviewQuery] = None) -> SourceResult:
        query = query or ReviewQuery()
        started = time.monotonic()

        if not self.client.is_configured:
            error = "Hostaway credentials not configured"
        else:
            try:
                records = await self._run_bounded(self._fetch_upstream, query)
            except asyncio.TimeoutError:
                error = f"Hostaway request timed out after {self.timeout}s"
            except SourceError as e:
                error = str(e)
            except Exception as e:
                logger.exception("Unexpected Hostaway failure")
                error = f"Unexpected Hostaway failure: {e}"
            else:
                if records:
                    reviews = self.normalizer.normalize_batch(records, self._context())
                    duration = time.monotonic() - started
                    logger.info(
                        f"Fetched {len(reviews)} reviews from Hostaway API",
                        extra={"source": self.name, "count": len(reviews), "duration": round(duration, 3)},
                    )
                    return SourceResult(self.name, reviews, duration_seconds=duration)
                error = "Hostaway API returned no reviews"

        if not self.use_mock_fallback:
            logger.warning(f"{error}; mock fallback disabled", extra={"source": self.name})
            return SourceResult(self.name, [], error=error, duration_seconds=time.monotonic() - started)

        reviews = self.fallback_reviews(query)
        logger.warning(
            f"{error}; serving {len(reviews)} mock reviews",
            extra={"source": self.name, "listing_id": query.listing_id, "count": len(reviews)},
        )
        return SourceResult(
            self.name,
            reviews,
            used_fallback=True,
            error=error,
            duration_seconds=time.monotonic() - started,
        )


class GooglePlacesAdapter(SourceAdapter):
    """
    Optional source. Needs a listing id that maps to a Google place; without
    one (or without an API key) it contributes zero reviews.
    """

    name = "google"
    always_on = False

    def __init__(
        self,
        client: GooglePlacesClient,
        place_mappings: Optional[PlaceMappingRegistry] = None,
        normalizer: Optional[GooglePlacesNormalizer] = None,
        timeout: float = DEFAULT_SOURCE_TIMEOUT,
    ):
        super().__init__(timeout=timeout)
        self.client = client
        self.place_mappings = place_mappings or PlaceMappingRegistry(client)
        self.normalizer = normalizer or GooglePlacesNormalizer()

    def is_available(self) -> bool:
        return self.client.is_configured

    def _fetch_for_listing(self, listing_id: str) -> List[Review]:
        place_id = self.place_mappings.resolve(listing_id)
        if not place_id:
            logger.debug(f"No Google place mapped for listing {listing_id}")
            return []
        return self.fetch_place(place_id)

    def fetch_place(self, place_id: str) -> List[Review]:
        """Blocking fetch + normalize of one place's reviews."""
        details = self.client.fetch_place_details(place_id)
        context = SourceContext(source=self.name, place_id=place_id, place_name=details.name)
        return self.normalizer.normalize_batch(details.reviews, context)

    async def fetch(self, query: Optional[ReviewQuery] = None) -> SourceResult:
        query = query or ReviewQuery()
        started = time.monotonic()

        if not self.is_available():
            return SourceResult(self.name, [], error="Google Places API key not configured")
        if not query.listing_id:
            return SourceResult(self.name, [])

        try:
            reviews = await self._run_bounded(self._fetch_for_listing, query.listing_id)
        except asyncio.TimeoutError:
            error = f"Google Places request timed out after {self.timeout}s"
        except SourceError as e:
            error = str(e)
        except Exception as e:
            logger.exception("Unexpected Google Places failure")
            error = f"Unexpected Google Places failure: {e}"
        else:
            return SourceResult(self.name, reviews, duration_seconds=time.monotonic() - started)

        logger.warning(error, extra={"source": self.name, "listing_id": query.listing_id})
        return SourceResult(self.name, [], error=error, duration_seconds=time.monotonic() - started)
