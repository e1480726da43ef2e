"""
FlexReviews Data Module
=======================

Upstream review sources, configuration and durable curation state.

This module provides:
    - HostawayClient: OAuth-authenticated Hostaway API client with token cache
    - GooglePlacesClient: optional Places API review source
    - HostawayAdapter / GooglePlacesAdapter: fetch + normalize, with fallback
    - FileApprovalStore: durable set of website-approved review ids

Configuration:
    Set environment variables or create a .env file.
    See flexreviews.data.config for all available options.
"""

from .config import get_settings, reset_settings, Settings
from .hostaway_client import HostawayClient, HostawayTokenCache, normalize_listing
from .google_places_client import GooglePlacesClient, PlaceMappingRegistry
from .approval_store import ApprovalState, FileApprovalStore, InMemoryApprovalStore
from .adapters import GooglePlacesAdapter, HostawayAdapter, SourceAdapter, SourceResult

__all__ = [
    "get_settings",
    "reset_settings",
    "Settings",
    "HostawayClient",
    "HostawayTokenCache",
    "normalize_listing",
    "GooglePlacesClient",
    "PlaceMappingRegistry",
    "ApprovalState",
    "FileApprovalStore",
    "InMemoryApprovalStore",
    "GooglePlacesAdapter",
    "HostawayAdapter",
    "SourceAdapter",
    "SourceResult",
]
