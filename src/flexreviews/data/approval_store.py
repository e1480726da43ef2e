"""
Website Approval State
======================

Durable set of review ids a manager approved for the public property
pages. Approval is never stored on the Review itself; the query engine
reads a snapshot via all_approved().

File format (FLEXREVIEWS_DATA_DIR/approved-reviews.json):
    {"approvedReviews": ["7453", "google-..."], "lastUpdated": "2025-..."}

Writes are best effort: when saving fails the in-memory set still changes,
the error is logged, and a `<file>.dirty` marker is left behind so the next
process start reports is_stale = True.

Usage:
    store = FileApprovalStore(Path("data/approved-reviews.json"))
    store.init()
    store.set_approved("7453", True)
    "7453" in store.all_approved()
"""

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import FrozenSet, Optional, Set

from ..exceptions import PersistenceError

logger = logging.getLogger(__name__)


class ApprovalState(ABC):
    """Approval-state capability consumed by the query engine and the API."""

    last_persist_error: Optional[str] = None
    is_stale: bool = False

    def init(self) -> None:
        """Load durable state eagerly. No-op for non-durable stores."""

    @abstractmethod
    def is_approved(self, review_id: str) -> bool:
        pass

    @abstractmethod
    def set_approved(self, review_id: str, approved: bool) -> int:
        """Apply a curation decision. Returns the number of approved reviews."""
        pass

    @abstractmethod
    def all_approved(self) -> FrozenSet[str]:
        pass

    def approved_count(self) -> int:
        return len(self.all_approved())

    def approve(self, review_id: str) -> int:
        return self.set_approved(review_id, True)

    def unapprove(self, review_id: str) -> int:
        return self.set_approved(review_id, False)


class InMemoryApprovalStore(ApprovalState):
    """Non-durable store, for tests and ephemeral runs."""

    def __init__(self, approved: Optional[Set[str]] = None):
        self._approved: Set[str] = set(approved or ())
        self._lock = threading.Lock()

    def is_approved(self, review_id: str) -> bool:
        with self._lock:
            return review_id in self._approved

    def set_approved(self, review_id: str, approved: bool) -> int:
        with self._lock:
            if approved:
                self._approved.add(review_id)
            else:
                self._approved.discard(review_id)
            return len(self._approved)

    def all_approved(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._approved)


class FileApprovalStore(ApprovalState):
    """
    JSON-file-backed approval set with an in-memory cache.

    A single lock serializes load-mutate-save so concurrent approve/unapprove
    calls for different ids never lose updates.
    """

    def __init__(self, path: Path):
        self._path = Path(path)
        self._dirty_marker = self._path.with_name(self._path.name + ".dirty")
        self._approved: Optional[Set[str]] = None
        self._lock = threading.Lock()
        self.last_persist_error: Optional[str] = None
        self.is_stale = False

    @property
    def path(self) -> Path:
        return self._path

    def init(self) -> None:
        """Load state from disk now instead of on first access."""
        with self._lock:
            self._ensure_loaded()

    def reload(self) -> None:
        """Drop the cache and re-read the file."""
        with self._lock:
            self._approved = None
            self._ensure_loaded()

    def _ensure_loaded(self) -> Set[str]:
        if self._approved is not None:
            return self._approved

        approved: Set[str] = set()
        if self._path.exists():
            try:
                with open(self._path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                approved = {str(i) for i in data.get("approvedReviews", [])}
                logger.info(f"Loaded {len(approved)} approved reviews from {self._path}")
            except (json.JSONDecodeError, OSError, AttributeError, TypeError) as e:
                logger.warning(f"Failed to load approval state, starting empty: {e}")

        if self._dirty_marker.exists():
            self.is_stale = True
            logger.warning(
                f"Approval state at {self._path} may be stale: "
                "a previous process failed to persist its last changes"
            )

        self._approved = approved
        return approved

    def _save(self, approved: Set[str]) -> None:
        """Atomically write the set (temp file + rename)."""
        payload = {
            "approvedReviews": sorted(approved),
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }
        tmp_path = self._path.with_name(self._path.name + ".tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(payload, f, indent=2)
            os.replace(tmp_path, self._path)
        except OSError as e:
            raise PersistenceError(f"Failed to save approval state to {self._path}: {e}")

        if self._dirty_marker.exists():
            try:
                self._dirty_marker.unlink()
            except OSError:
                logger.debug(f"Could not remove {self._dirty_marker}")
        self.last_persist_error = None
        self.is_stale = False

    def _mark_dirty(self) -> None:
        try:
            self._dirty_marker.parent.mkdir(parents=True, exist_ok=True)
            self._dirty_marker.write_text(datetime.now(timezone.utc).isoformat())
        except OSError as e:
            logger.error(f"Could not write dirty marker {self._dirty_marker}: {e}")

    def is_approved(self, review_id: str) -> bool:
        with self._lock:
            return review_id in self._ensure_loaded()

    def set_approved(self, review_id: str, approved: bool) -> int:
        with self._lock:
            current = self._ensure_loaded()
            if approved:
                current.add(review_id)
            else:
                current.discard(review_id)

            try:
                self._save(current)
            except PersistenceError as e:
                self.last_persist_error = str(e)
                self.is_stale = True
                logger.error(str(e), extra={"review_id": review_id})
                self._mark_dirty()

            logger.info(
                f"Review {review_id} {'approved' if approved else 'unapproved'} for website. "
                f"Total approved: {len(current)}",
                extra={"review_id": review_id},
            )
            return len(current)

    def all_approved(self) -> FrozenSet[str]:
        with self._lock:
            return frozenset(self._ensure_loaded())
