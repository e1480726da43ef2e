"""
Google Places Review Client
===========================

Optional review source backed by the Places API (text search + place
details). Places returns at most 5 reviews per place, with a 1-5 star
rating and no category breakdown.

Configuration:
    GOOGLE_PLACES_API_KEY: Places API key (from .env). Without it the
    source is reported as not configured and contributes no reviews.

Usage:
    client = GooglePlacesClient()
    place = client.search_place("29 Shoreditch Heights, London")
    details = client.fetch_place_details(place.place_id)
"""

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests

from ..exceptions import SourceUnavailableError
from .config import GooglePlacesConfig

logger = logging.getLogger(__name__)


@dataclass
class PlaceSummary:
    """Text-search hit."""
    place_id: str
    name: str
    address: Optional[str] = None
    rating: Optional[float] = None


@dataclass
class PlaceDetails:
    """Place details, including raw review records."""
    place_id: str
    name: str
    rating: Optional[float] = None
    user_ratings_total: Optional[int] = None
    reviews: List[Dict[str, Any]] = field(default_factory=list)


class GooglePlacesClient:
    """requests-based Places API client."""

    DETAILS_FIELDS = "name,rating,reviews,user_ratings_total"

    def __init__(
        self,
        config: Optional[GooglePlacesConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        if config is None:
            from .config import get_settings
            config = get_settings().google

        self.config = config
        self._session = session or requests.Session()
        self._requests_made = 0

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    def _call(self, endpoint: str, params: Dict[str, Any]) -> Dict[str, Any]:
        if not self.is_configured:
            raise SourceUnavailableError("Google Places API key not configured", source="google")

        url = f"{self.config.base_url.rstrip('/')}/{endpoint}/json"
        try:
            response = self._session.get(
                url,
                params={**params, "key": self.config.api_key},
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as e:
            raise SourceUnavailableError(f"Places {endpoint} request failed: {e}", source="google")
        self._requests_made += 1

        if response.status_code != 200:
            raise SourceUnavailableError(
                f"Places {endpoint} returned HTTP {response.status_code}",
                source="google",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as e:
            raise SourceUnavailableError(f"Places {endpoint} returned invalid JSON: {e}", source="google")
        if not isinstance(data, dict):
            raise SourceUnavailableError(f"Unexpected Places {endpoint} payload", source="google")
        return data

    def search_place(self, query: str) -> Optional[PlaceSummary]:
        """First text-search hit for a name/address, or None when nothing matches."""
        data = self._call("textsearch", {"query": query})
        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            logger.info(f"Place not found for {query!r}: {data.get('status')}")
            return None

        place = results[0]
        return PlaceSummary(
            place_id=place.get("place_id", ""),
            name=place.get("name", ""),
            address=place.get("formatted_address"),
            rating=place.get("rating"),
        )

    def fetch_place_details(self, place_id: str) -> PlaceDetails:
        """Place details with up to 5 raw reviews. Raises when the API status is not OK."""
        data = self._call("details", {"place_id": place_id, "fields": self.DETAILS_FIELDS})
        if data.get("status") != "OK" or not isinstance(data.get("result"), dict):
            raise SourceUnavailableError(
                f"Places details failed for {place_id}: {data.get('status')} {data.get('error_message', '')}".strip(),
                source="google",
            )

        result = data["result"]
        reviews = result.get("reviews") or []
        return PlaceDetails(
            place_id=place_id,
            name=result.get("name", ""),
            rating=result.get("rating"),
            user_ratings_total=result.get("user_ratings_total"),
            reviews=[r for r in reviews if isinstance(r, dict)],
        )

    def integration_info(self) -> Dict[str, Any]:
        """Capabilities and limitations of this source."""
        return {
            "configured": self.is_configured,
            "capabilities": [
                "Search for properties by name/address",
                "Fetch up to 5 most relevant reviews",
                "Get overall place rating",
                "Access review author names and timestamps",
            ],
            "limitations": [
                "Maximum 5 reviews per place",
                "Cannot write or respond to reviews",
                "Reviews sorted by Google's relevance algorithm",
                "Requires property to be listed on Google Maps",
                "API costs apply after free tier",
            ],
        }

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        return {"requests_made": self._requests_made}


@dataclass
class PlaceMapping:
    """A managed listing's Google presence: a search name and, once known, its place id."""
    name: str
    place_id: Optional[str] = None


DEFAULT_PLACE_MAPPINGS: Dict[str, PlaceMapping] = {
    "2B-N1-A": PlaceMapping("29 Shoreditch Heights, Shoreditch, London", "ChIJN1t_tDeuEmsRUsoyG83frY4"),
    "2B-N1-B": PlaceMapping("29 Shoreditch Heights Unit B, Shoreditch, London", "ChIJN1t_tDeuEmsRUsoyG83frY5"),
    "3B-S2-A": PlaceMapping("15 Southbank Residences, London", "ChIJN1t_tDeuEmsRUsoyG83frY6"),
}


class PlaceMappingRegistry:
    """
    listing id -> Google place id.

    Mappings with only a name are resolved through text search on first
    use and remembered for the life of the process.
    """

    def __init__(self, client: GooglePlacesClient, mappings: Optional[Dict[str, PlaceMapping]] = None):
        self.client = client
        source = DEFAULT_PLACE_MAPPINGS if mappings is None else mappings
        self._mappings = {k: PlaceMapping(v.name, v.place_id) for k, v in source.items()}
        self._lock = threading.Lock()

    def resolve(self, listing_id: str) -> Optional[str]:
        """Place id for a listing, searching by name when not yet known."""
        with self._lock:
            mapping = self._mappings.get(listing_id)
            if mapping is None:
                return None
            if mapping.place_id:
                return mapping.place_id
            name = mapping.name

        place = self.client.search_place(name)
        if place is None or not place.place_id:
            return None

        self.save(listing_id, place.place_id, name)
        logger.info(f"Mapped listing {listing_id} to Google place {place.place_id}")
        return place.place_id

    def save(self, listing_id: str, place_id: str, name: Optional[str] = None) -> None:
        with self._lock:
            existing = self._mappings.get(listing_id)
            self._mappings[listing_id] = PlaceMapping(
                name=name or (existing.name if existing else listing_id),
                place_id=place_id,
            )
