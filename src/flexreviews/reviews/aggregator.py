"""
Review Aggregator
=================

Fans out to every configured source adapter concurrently, then merges,
deduplicates and sorts the results.

    - all-settle join: one source failing or timing out never affects the others
    - dedup by id in one pass, first occurrence (adapter order) wins
    - stable sort by normalized_date, newest first

Usage:
    aggregator = ReviewAggregator([hostaway_adapter, google_adapter])
    result = asyncio.run(aggregator.fetch_all(ReviewQuery(listing_id="2B-N1-A")))
"""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence

from ..exceptions import ConfigurationError
from .review_models import AggregatedReviews, Review, ReviewQuery, SourceMeta

if TYPE_CHECKING:
    from ..data.adapters import SourceAdapter, SourceResult

logger = logging.getLogger(__name__)


def dedupe_reviews(reviews: Iterable[Review]) -> List[Review]:
    """Keep the first review for each id, preserving order."""
    seen = set()
    unique = []
    for review in reviews:
        if review.id in seen:
            continue
        seen.add(review.id)
        unique.append(review)
    return unique


def sort_newest_first(reviews: Iterable[Review]) -> List[Review]:
    """Stable sort by normalized_date descending; ties keep their order."""
    return sorted(reviews, key=lambda r: r.normalized_date, reverse=True)


class ReviewAggregator:
    """Concurrent multi-source review fetch."""

    def __init__(self, adapters: Sequence["SourceAdapter"]):
        self.adapters = list(adapters)

    def get_adapter(self, name: str) -> Optional["SourceAdapter"]:
        for adapter in self.adapters:
            if adapter.name == name:
                return adapter
        return None

    def _is_available(self, adapter: "SourceAdapter") -> bool:
        try:
            return bool(adapter.is_available())
        except Exception as e:
            logger.error(f"Availability check failed for {adapter.name}: {e}")
            return False

    async def fetch_all(self, query: Optional[ReviewQuery] = None) -> AggregatedReviews:
        """
        Reviews from all sources.

        Raises:
            ConfigurationError: no source is configured at all
        """
        query = query or ReviewQuery()
        availability = {a.name: self._is_available(a) for a in self.adapters}
        if not any(availability.values()):
            raise ConfigurationError("No review sources configured")

        outcomes = await asyncio.gather(
            *(adapter.fetch(query) for adapter in self.adapters),
            return_exceptions=True,
        )

        merged: List[Review] = []
        sources: List[str] = []
        meta: Dict[str, SourceMeta] = {}

        for adapter, outcome in zip(self.adapters, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    f"Source {adapter.name} failed: {outcome!r}",
                    extra={"source": adapter.name},
                )
                reviews: List[Review] = []
            else:
                reviews = list(outcome.reviews)
                if outcome.used_fallback:
                    logger.info(
                        f"Source {adapter.name} served fallback data ({outcome.error})",
                        extra={"source": adapter.name},
                    )

            merged.extend(reviews)
            meta[adapter.name] = SourceMeta(enabled=availability[adapter.name], reviews=len(reviews))
            if adapter.always_on or reviews:
                sources.append(adapter.name)

        unique = dedupe_reviews(merged)
        if len(unique) != len(merged):
            logger.debug(f"Dropped {len(merged) - len(unique)} duplicate reviews")

        return AggregatedReviews(
            reviews=sort_newest_first(unique),
            sources=sources,
            meta=meta,
        )

    async def fetch_source(self, name: str, query: Optional[ReviewQuery] = None) -> "SourceResult":
        """Fetch from a single named source."""
        adapter = self.get_adapter(name)
        if adapter is None:
            raise ConfigurationError(f"Unknown review source: {name}")
        return await adapter.fetch(query or ReviewQuery())

    def integration_status(self) -> Dict[str, Any]:
        """Configured/active state of every source."""
        status: Dict[str, Any] = {"sources": []}
        for adapter in self.adapters:
            available = self._is_available(adapter)
            status["sources"].append({
                "name": adapter.name,
                "configured": available,
                "status": "active" if available else "not_configured",
                "alwaysOn": adapter.always_on,
            })
            client = getattr(adapter, "client", None)
            if client is not None and hasattr(client, "integration_info"):
                status[adapter.name] = client.integration_info()
        return status
