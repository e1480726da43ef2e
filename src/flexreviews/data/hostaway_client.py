"""
Hostaway API Client
===================

Authenticated access to the Hostaway property-management API.

Auth:
    OAuth2 client-credentials grant against /accessTokens. The token is
    cached in a HostawayTokenCache and refreshed `token_margin_seconds`
    before it really expires.

Configuration:
    HOSTAWAY_ACCOUNT_ID, HOSTAWAY_API_KEY (from .env)

Usage:
    client = HostawayClient()
    headers = client.auth_headers()          # None when auth is unavailable
    records = client.fetch_reviews(listing_id="2B-N1-A", limit=50)
"""

import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

import requests

from ..exceptions import SourceUnavailableError
from .config import HostawayConfig

logger = logging.getLogger(__name__)


@dataclass
class AccessToken:
    """Cached bearer token."""
    token: str
    expires_at: float  # epoch seconds, margin already subtracted


class HostawayTokenCache:
    """
    Thread-safe access-token cache.

    get_or_acquire() holds the lock while fetching, so concurrent callers
    share one token request instead of racing.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._token: Optional[AccessToken] = None
        self._lock = threading.Lock()

    def get(self) -> Optional[str]:
        """Return the cached token if it has not expired."""
        with self._lock:
            return self._valid_token()

    def set(self, token: str, expires_in: float, margin_seconds: float = 60) -> None:
        with self._lock:
            self._store(token, expires_in, margin_seconds)

    def clear(self) -> None:
        with self._lock:
            self._token = None

    def get_or_acquire(
        self,
        acquire: Callable[[], Tuple[str, float]],
        margin_seconds: float = 60,
    ) -> str:
        """Return a valid token, calling acquire() -> (token, expires_in) when needed."""
        with self._lock:
            token = self._valid_token()
            if token:
                return token
            token, expires_in = acquire()
            self._store(token, expires_in, margin_seconds)
            return token

    def _valid_token(self) -> Optional[str]:
        if self._token and self._token.expires_at > self._clock():
            return self._token.token
        return None

    def _store(self, token: str, expires_in: float, margin_seconds: float) -> None:
        self._token = AccessToken(
            token=token,
            expires_at=self._clock() + float(expires_in) - margin_seconds,
        )


class HostawayClient:
    """
    Thin requests-based client for the Hostaway v1 API.

    fetch_* methods raise SourceUnavailableError on missing auth, non-2xx
    responses, network errors and undecodable bodies. Fallback policy is
    left to the caller.
    """

    BASE_HEADERS = {
        "Content-Type": "application/json",
        "Accept": "application/json",
    }

    def __init__(
        self,
        config: Optional[HostawayConfig] = None,
        token_cache: Optional[HostawayTokenCache] = None,
        session: Optional[requests.Session] = None,
    ):
        if config is None:
            from .config import get_settings
            config = get_settings().hostaway

        self.config = config
        self.token_cache = token_cache or HostawayTokenCache()
        self._session = session or requests.Session()
        self._requests_made = 0

    @property
    def is_configured(self) -> bool:
        return self.config.is_configured

    # =========================================================================
    # Auth
    # =========================================================================

    def _acquire_token(self) -> Tuple[str, float]:
        """Client-credentials grant. Returns (access_token, expires_in)."""
        response = self._session.post(
            self.config.token_url,
            data={
                "grant_type": "client_credentials",
                "client_id": self.config.account_id,
                "client_secret": self.config.api_key,
                "scope": "general",
            },
            headers={
                "Cache-control": "no-cache",
                "Content-type": "application/x-www-form-urlencoded",
            },
            timeout=self.config.request_timeout,
        )
        self._requests_made += 1

        if response.status_code != 200:
            raise SourceUnavailableError(
                f"Hostaway token request failed: {response.status_code}",
                source="hostaway",
                status_code=response.status_code,
            )

        try:
            payload = response.json()
            token = payload["access_token"]
            expires_in = float(payload.get("expires_in", 0))
        except (ValueError, KeyError, TypeError) as e:
            raise SourceUnavailableError(f"Malformed Hostaway token response: {e}", source="hostaway")

        logger.info("Obtained Hostaway access token")
        return token, expires_in

    def auth_headers(self) -> Optional[Dict[str, str]]:
        """Request headers with a bearer token, or None when auth is unavailable."""
        if not self.is_configured:
            return None
        try:
            token = self.token_cache.get_or_acquire(
                self._acquire_token,
                margin_seconds=self.config.token_margin_seconds,
            )
        except (SourceUnavailableError, requests.RequestException) as e:
            logger.warning(f"Hostaway auth unavailable: {e}", extra={"source": "hostaway"})
            return None
        return {**self.BASE_HEADERS, "Authorization": f"Bearer {token}"}

    # =========================================================================
    # Endpoints
    # =========================================================================

    def _get(self, path: str, params: Dict[str, Any]) -> Dict[str, Any]:
        headers = self.auth_headers()
        if headers is None:
            raise SourceUnavailableError("No Hostaway authentication available", source="hostaway")

        url = f"{self.config.base_url.rstrip('/')}/{path.lstrip('/')}"
        try:
            response = self._session.get(
                url,
                params=params,
                headers=headers,
                timeout=self.config.request_timeout,
            )
        except requests.RequestException as e:
            raise SourceUnavailableError(f"Hostaway request failed: {e}", source="hostaway")
        self._requests_made += 1

        if response.status_code == 401:
            # Token revoked or expired early: drop it so the next call re-authenticates
            self.token_cache.clear()
        if not 200 <= response.status_code < 300:
            raise SourceUnavailableError(
                f"Hostaway {path} returned {response.status_code}",
                source="hostaway",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise SourceUnavailableError(f"Hostaway {path} returned invalid JSON: {e}", source="hostaway")
        if not isinstance(data, dict):
            raise SourceUnavailableError(f"Unexpected Hostaway {path} payload", source="hostaway")
        return data

    def fetch_reviews(
        self,
        listing_id: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[Dict[str, Any]]:
        """Raw review records, newest first. May be empty."""
        params: Dict[str, Any] = {"sortOrder": "desc"}
        if limit:
            params["limit"] = limit
        if offset:
            params["offset"] = offset
        if listing_id:
            params["listingId"] = listing_id

        data = self._get("reviews", params)
        result = data.get("result") or []
        if not isinstance(result, list):
            raise SourceUnavailableError("Hostaway reviews result is not a list", source="hostaway")
        logger.debug(f"Hostaway returned {len(result)} review records")
        return result

    def fetch_listings(self, limit: int = 100) -> List[Dict[str, Any]]:
        """Raw listing records."""
        data = self._get("listings", {"limit": limit})
        result = data.get("result") or []
        if not isinstance(result, list):
            raise SourceUnavailableError("Hostaway listings result is not a list", source="hostaway")
        return result

    def get_stats(self) -> Dict[str, Any]:
        """Get client statistics."""
        return {"requests_made": self._requests_made}


def normalize_listing(listing: Dict[str, Any]) -> Dict[str, Any]:
    """Hostaway listing record -> public listing shape."""
    city = listing.get("city")
    return {
        "id": str(listing.get("id", "")),
        "name": listing.get("name"),
        "internalName": listing.get("internalListingName"),
        "description": listing.get("description"),
        "location": city if city is not None else listing.get("address"),
        "address": listing.get("address"),
        "price": listing.get("price"),
        "capacity": listing.get("personCapacity"),
        "bedrooms": listing.get("bedroomsNumber"),
        "bathrooms": listing.get("bathroomsNumber"),
        "coordinates": {"lat": listing.get("lat"), "lng": listing.get("lng")},
        "type": listing.get("type") or "Entire apartment",
    }
