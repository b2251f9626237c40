"""Tests for write-through member create / update / delete."""

from __future__ import annotations

import json
import logging

import pytest

from conftest import FakeClock, make_member
from gym_manager.errors import CacheIOError
from gym_manager.models.enums import ErrorKind
from gym_manager.services.mutation_coordinator import MutationCoordinator


@pytest.fixture
def coordinator(remote, storage, cache, ledger, logger, db, clock) -> MutationCoordinator:
    return MutationCoordinator(
        remote=remote,
        storage=storage,
        cache=cache,
        ledger=ledger,
        logger=logger,
        audit_db=db,
        actor="desk-1",
        clock=clock,
    )


def _audit_rows(db):
    return db.sqlite.execute(
        "SELECT action, entity_id, actor, details FROM audit_log ORDER BY id"
    ).fetchall()


class TestCreateMember:
    def test_success_writes_remote_cache_and_ledger(self, coordinator, remote, cache, realtime, clock, db):
        clock.now = 4_242

        result = coordinator.create_member(make_member(None, amount_paid=1500))

        assert result.is_success
        assert result.data.message == "Member Added Successfully"
        assert result.data.revenue_recorded
        member = result.data.member
        assert member.id == "m1"
        assert member.last_update_date == 4_242

        # Two remote writes: add without id, then set with the assigned id.
        assert [c[0] for c in remote.calls] == ["add", "set"]
        assert "id" not in remote.calls[0][1]
        assert remote.documents["m1"]["id"] == "m1"

        assert [m.id for m in cache.get_all_members_snapshot()] == ["m1"]

        [entry] = realtime.lists["Revenue"]
        assert entry["amount"] == 1500
        assert entry["revenueType"] == "income"
        assert realtime.values["TotalRevenue"] == 1500

        [row] = _audit_rows(db)
        assert (row["action"], row["entity_id"], row["actor"]) == ("CREATE", "m1", "desk-1")
        assert json.loads(row["details"])["amount_paid"] == 1500

    def test_validation_failure_makes_no_remote_call(self, coordinator, remote):
        result = coordinator.create_member(make_member(None, phone="123"))

        assert result.error_kind == ErrorKind.VALIDATION
        assert result.error == "Please enter a valid phone number"
        assert remote.calls == []

    def test_photo_is_uploaded_first(self, coordinator, storage, remote):
        result = coordinator.create_member(make_member(None), photo=b"\xff\xd8jpeg")

        [(path, (data, content_type))] = storage.uploads.items()
        assert path.startswith("member_images/") and path.endswith(".jpg")
        assert content_type == "image/jpeg"
        assert result.data.member.photo_url == f"https://storage.test/{path}"
        assert remote.documents["m1"]["photoUrl"] == result.data.member.photo_url

    def test_upload_failure_writes_nothing(self, coordinator, storage, remote, cache):
        storage.fail = "bucket missing"

        result = coordinator.create_member(make_member(None), photo=b"img")

        assert result.error_kind == ErrorKind.UPLOAD
        assert "bucket missing" in result.error
        assert remote.calls == []
        assert cache.get_all_members_snapshot() == []

    def test_add_failure(self, coordinator, remote, realtime):
        remote.fail["add"] = "permission denied"

        result = coordinator.create_member(make_member(None))

        assert result.error == "Failed to add member: permission denied"
        assert result.error_kind == ErrorKind.REMOTE_WRITE
        assert "Revenue" not in realtime.lists

    def test_id_write_failure(self, coordinator, remote, cache, realtime):
        remote.fail["set"] = "deadline exceeded"

        result = coordinator.create_member(make_member(None))

        assert result.error == "Failed to update member ID: deadline exceeded"
        assert cache.get_all_members_snapshot() == []
        assert "Revenue" not in realtime.lists

    def test_ledger_entry_failure_is_still_success(self, coordinator, realtime, cache):
        realtime.fail["push"] = "offline"

        result = coordinator.create_member(make_member(None))

        assert result.is_success
        assert result.data.message == "Member added but failed to add revenue entry"
        assert not result.data.revenue_recorded
        assert len(cache.get_all_members_snapshot()) == 1

    def test_total_failure_is_still_success(self, coordinator, realtime):
        realtime.fail["set"] = "offline"

        result = coordinator.create_member(make_member(None))

        assert result.is_success
        assert result.data.message == "Member added but failed to update total revenue"

    def test_cache_failure_does_not_fail_the_create(self, coordinator, cache, monkeypatch):
        def broken_insert(member):
            raise CacheIOError("disk full")

        monkeypatch.setattr(cache, "insert", broken_insert)

        result = coordinator.create_member(make_member(None))

        assert result.is_success
        assert result.data.member.id == "m1"


class TestUpdateMember:
    def test_update_stamps_and_overwrites(self, coordinator, remote, cache, realtime, clock):
        remote.seed(make_member("a", 10))
        cache.insert(make_member("a", 10))
        clock.now = 99

        result = coordinator.update_member(make_member("a", 10, name="Renamed"))

        assert result.data.message == "Member updated successfully"
        assert remote.documents["a"]["lastUpdateDate"] == 99
        [cached] = cache.get_all_members_snapshot()
        assert cached.name == "Renamed"
        assert cached.last_update_date == 99
        assert realtime.lists == {}

    def test_update_requires_an_id(self, coordinator, remote):
        result = coordinator.update_member(make_member(None))

        assert result.is_error
        assert remote.calls == []

    def test_remote_failure(self, coordinator, remote, cache):
        cache.insert(make_member("a", 10, name="Original"))
        remote.fail["set"] = "not found"

        result = coordinator.update_member(make_member("a", 10, name="Renamed"))

        assert result.error == "Failed to update member: not found"
        assert cache.get_all_members_snapshot()[0].name == "Original"


class TestDeleteMember:
    def test_delete(self, coordinator, remote, cache, db):
        remote.seed(make_member("a", 1))
        cache.insert(make_member("a", 1))

        result = coordinator.delete_member("a")

        assert result.data.message == "Member deleted successfully"
        assert "a" not in remote.documents
        assert cache.get_all_members_snapshot() == []
        assert _audit_rows(db)[-1]["action"] == "DELETE"

    def test_remote_failure_keeps_cache(self, coordinator, remote, cache):
        cache.insert(make_member("a", 1))
        remote.fail["delete"] = "offline"

        result = coordinator.delete_member("a")

        assert result.error == "Failed to delete member: offline"
        assert len(cache.get_all_members_snapshot()) == 1


def test_created_member_is_visible_after_sync(coordinator, cache, remote, logger, clock):
    from gym_manager.services.sync_engine import SyncEngine

    coordinator.create_member(make_member(None))
    engine = SyncEngine(cache=cache, remote=remote, logger=logger, clock=FakeClock(10_000))

    final = list(engine.sync_members())[-1]

    assert [m.id for m in final.data] == ["m1"]
    assert all(m.id for m in cache.get_all_members())


def test_audit_event_is_logged(coordinator, logger, caplog):
    with caplog.at_level(logging.INFO, logger=logger.logger.name):
        coordinator.create_member(make_member(None))

    assert any(r.getMessage().startswith("AUDIT: ") for r in caplog.records)
