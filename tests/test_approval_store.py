"""
Tests for website approval state.

File-backed tests use pytest's tmp_path; persistence failures are simulated
by patching the atomic rename.
"""

import json
from unittest.mock import patch

import pytest
from flexreviews.data.approval_store import FileApprovalStore, InMemoryApprovalStore


class TestInMemoryApprovalStore:
    """Tests for InMemoryApprovalStore."""

    def test_approve_and_unapprove(self):
        store = InMemoryApprovalStore()

        assert store.approve("7453") == 1
        assert store.approve("7454") == 2
        assert store.is_approved("7453")
        assert store.unapprove("7453") == 1
        assert store.all_approved() == frozenset({"7454"})

    def test_idempotent(self):
        store = InMemoryApprovalStore({"7453"})
        assert store.approve("7453") == 1
        assert store.unapprove("missing") == 1


class TestFileApprovalStore:
    """Tests for FileApprovalStore."""

    def setup_method(self):
        self.path = None

    def make_store(self, tmp_path):
        self.path = tmp_path / "state" / "approved-reviews.json"
        return FileApprovalStore(self.path)

    def test_starts_empty_without_file(self, tmp_path):
        store = self.make_store(tmp_path)
        store.init()

        assert store.all_approved() == frozenset()
        assert store.is_stale is False

    def test_persists_across_instances(self, tmp_path):
        store = self.make_store(tmp_path)
        assert store.set_approved("7454", True) == 1
        assert store.set_approved("google-ChIJ1-0", True) == 2

        reopened = FileApprovalStore(self.path)
        assert reopened.all_approved() == frozenset({"7454", "google-ChIJ1-0"})

    def test_file_format(self, tmp_path):
        store = self.make_store(tmp_path)
        store.approve("b")
        store.approve("a")

        data = json.loads(self.path.read_text())
        assert data["approvedReviews"] == ["a", "b"]
        assert "lastUpdated" in data

    def test_unapprove_persists(self, tmp_path):
        store = self.make_store(tmp_path)
        store.approve("7454")
        assert store.unapprove("7454") == 0

        assert FileApprovalStore(self.path).is_approved("7454") is False

    def test_corrupt_file_starts_empty(self, tmp_path):
        store = self.make_store(tmp_path)
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{broken")

        assert store.all_approved() == frozenset()

    def test_reload_picks_up_external_changes(self, tmp_path):
        store = self.make_store(tmp_path)
        store.approve("1")
        FileApprovalStore(self.path).approve("2")

        assert store.all_approved() == frozenset({"1"})
        store.reload()
        assert store.all_approved() == frozenset({"1", "2"})

    def test_failed_save_keeps_memory_state_and_marks_stale(self, tmp_path):
        store = self.make_store(tmp_path)

        with patch("flexreviews.data.approval_store.os.replace", side_effect=OSError("disk full")):
            count = store.set_approved("7454", True)

        assert count == 1
        assert store.is_approved("7454")
        assert store.is_stale is True
        assert "disk full" in store.last_persist_error
        assert self.path.with_name(self.path.name + ".dirty").exists()

    def test_dirty_marker_detected_on_next_start(self, tmp_path):
        store = self.make_store(tmp_path)
        with patch("flexreviews.data.approval_store.os.replace", side_effect=OSError("disk full")):
            store.approve("7454")

        reopened = FileApprovalStore(self.path)
        reopened.init()

        assert reopened.is_stale is True
        assert reopened.is_approved("7454") is False

    def test_successful_save_clears_stale_state(self, tmp_path):
        store = self.make_store(tmp_path)
        with patch("flexreviews.data.approval_store.os.replace", side_effect=OSError("disk full")):
            store.approve("7454")

        store.approve("7455")

        assert store.is_stale is False
        assert store.last_persist_error is None
        assert not self.path.with_name(self.path.name + ".dirty").exists()
        assert FileApprovalStore(self.path).all_approved() == frozenset({"7454", "7455"})
