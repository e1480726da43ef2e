"""
Bundled mock dataset used when the Hostaway API is unavailable.
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List

logger = logging.getLogger(__name__)

FIXTURES_DIR = Path(__file__).parent / "fixtures"
MOCK_REVIEWS_FILE = FIXTURES_DIR / "mock_reviews.json"
MOCK_LISTINGS_FILE = FIXTURES_DIR / "mock_listings.json"


def _load_json(path: Path) -> Any:
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.error(f"Failed to load mock data from {path}: {e}")
        return None


def load_mock_reviews(path: Path = MOCK_REVIEWS_FILE) -> List[Dict[str, Any]]:
    """Raw Hostaway-shaped review records. Never raises; a broken file yields []."""
    data = _load_json(path)
    if isinstance(data, dict):
        data = data.get("result") or data.get("reviews") or []
    if not isinstance(data, list):
        return []
    return [r for r in data if isinstance(r, dict)]


def load_mock_listings(path: Path = MOCK_LISTINGS_FILE) -> List[Dict[str, Any]]:
    """Listing catalog used when the listings endpoint is unavailable."""
    data = _load_json(path)
    if not isinstance(data, list):
        return []
    return [l for l in data if isinstance(l, dict)]
