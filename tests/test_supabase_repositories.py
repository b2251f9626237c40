"""Tests for the Supabase-backed remote adapters, with a mocked client."""

from __future__ import annotations

import threading
from unittest.mock import MagicMock, PropertyMock

import pytest

from gym_manager.errors import RemoteQueryError, RemoteWriteError, UploadError
from gym_manager.repositories.member_repository import SupabaseMemberRepository
from gym_manager.repositories.realtime_repository import (
    PollingListener,
    SupabaseRealtimeRepository,
    new_push_key,
)
from gym_manager.repositories.storage_repository import SupabaseStorageRepository


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def online_db(client: MagicMock) -> MagicMock:
    db = MagicMock()
    db.supabase = client
    return db


@pytest.fixture
def offline_db() -> MagicMock:
    db = MagicMock()
    type(db).supabase = PropertyMock(side_effect=RuntimeError("offline mode"))
    return db


class TestMemberRepository:
    def test_add_drops_id_and_returns_assigned_id(self, online_db, client, logger):
        table = client.table.return_value
        table.insert.return_value.execute.return_value.data = [{"id": "uuid-1"}]
        repo = SupabaseMemberRepository(online_db, logger)

        member_id = repo.add({"id": "ignored", "name": "Asha"})

        assert member_id == "uuid-1"
        client.table.assert_called_with("Members")
        table.insert.assert_called_once_with({"name": "Asha"})

    def test_set_upserts_with_id(self, online_db, client, logger):
        repo = SupabaseMemberRepository(online_db, logger, table="GymMembers")

        repo.set("uuid-1", {"name": "Asha"})

        client.table.assert_called_with("GymMembers")
        client.table.return_value.upsert.assert_called_once_with({"name": "Asha", "id": "uuid-1"})

    def test_incremental_query_filters_strictly_after_watermark(self, online_db, client, logger):
        select = client.table.return_value.select.return_value
        select.gt.return_value.order.return_value.execute.return_value.data = [{"id": "a"}]
        repo = SupabaseMemberRepository(online_db, logger)

        rows = repo.query(updated_after=500)

        assert rows == [{"id": "a"}]
        select.gt.assert_called_once_with("lastUpdateDate", 500)
        select.gt.return_value.order.assert_called_once_with("lastUpdateDate", desc=True)

    def test_full_query_has_no_filter(self, online_db, client, logger):
        select = client.table.return_value.select.return_value
        select.order.return_value.execute.return_value.data = None
        repo = SupabaseMemberRepository(online_db, logger)

        assert repo.query() == []
        select.gt.assert_not_called()

    def test_errors_are_translated(self, online_db, client, logger):
        client.table.return_value.delete.return_value.eq.return_value.execute.side_effect = (
            ConnectionError("reset by peer")
        )
        repo = SupabaseMemberRepository(online_db, logger)

        with pytest.raises(RemoteWriteError, match="reset by peer"):
            repo.delete("a")

    def test_offline_query_is_a_query_error(self, offline_db, logger):
        repo = SupabaseMemberRepository(offline_db, logger)

        with pytest.raises(RemoteQueryError, match="offline mode"):
            repo.query()


class TestRealtimeRepository:
    def test_push_adds_time_ordered_key(self, online_db, client, logger):
        repo = SupabaseRealtimeRepository(online_db, logger)

        key = repo.push("Revenue", {"name": "Fees", "amount": 100})

        client.table.assert_called_with("Revenue")
        client.table.return_value.insert.assert_called_once_with(
            {"name": "Fees", "amount": 100, "key": key}
        )

    def test_push_keys_sort_by_creation(self):
        first = new_push_key()
        second = new_push_key()
        assert first[:13] <= second[:13]

    def test_get_reads_scalar_row(self, online_db, client, logger):
        chain = client.table.return_value.select.return_value.eq.return_value.limit.return_value
        chain.execute.return_value.data = [{"value": 70}]
        repo = SupabaseRealtimeRepository(online_db, logger, values_table="values")

        assert repo.get("TotalRevenue") == 70
        client.table.assert_called_with("values")

    def test_get_of_missing_path_is_none(self, online_db, client, logger):
        chain = client.table.return_value.select.return_value.eq.return_value.limit.return_value
        chain.execute.return_value.data = []
        repo = SupabaseRealtimeRepository(online_db, logger)

        assert repo.get("TotalRevenue") is None

    def test_set_upserts_scalar_row(self, online_db, client, logger):
        repo = SupabaseRealtimeRepository(online_db, logger)

        repo.set("TotalRevenue", 70)

        client.table.return_value.upsert.assert_called_once_with(
            {"path": "TotalRevenue", "value": 70}
        )

    def test_push_failure(self, offline_db, logger):
        repo = SupabaseRealtimeRepository(offline_db, logger)
        with pytest.raises(RemoteWriteError):
            repo.push("Revenue", {"amount": 1})


class TestPollingListener:
    def test_delivers_only_changes_and_stops(self, logger):
        values = iter([1, 1, 2])
        delivered: list[int] = []
        done = threading.Event()

        def fetch() -> int:
            try:
                return next(values)
            except StopIteration:
                done.set()
                return 2

        listener = PollingListener(
            fetch=fetch,
            on_change=delivered.append,
            on_error=lambda exc: None,
            interval_s=0.01,
            name="test",
            logger=logger,
        )
        sub = listener.start()
        assert done.wait(timeout=5)
        sub.unsubscribe()

        assert delivered == [1, 2]

    def test_fetch_errors_go_to_on_error(self, logger):
        errors: list[Exception] = []
        got_error = threading.Event()

        def fetch() -> int:
            raise RemoteQueryError("boom")

        def on_error(exc: Exception) -> None:
            errors.append(exc)
            got_error.set()

        sub = PollingListener(fetch, lambda v: None, on_error, 0.01, "err", logger).start()
        assert got_error.wait(timeout=5)
        sub.unsubscribe()

        assert isinstance(errors[0], RemoteQueryError)

    def test_failing_callback_is_reported_and_polling_continues(self, logger):
        values = iter([1, 2])
        delivered: list[int] = []
        errors: list[Exception] = []
        got_second = threading.Event()

        def fetch() -> int:
            return next(values, 2)

        def on_change(value: int) -> None:
            if value == 1:
                raise ValueError("bad row")
            delivered.append(value)
            got_second.set()

        sub = PollingListener(fetch, on_change, errors.append, 0.01, "cb", logger).start()
        assert got_second.wait(timeout=5)
        sub.unsubscribe()

        assert delivered == [2]
        assert len(errors) == 1
        assert isinstance(errors[0], ValueError)


class TestStorageRepository:
    def test_upload_returns_public_url(self, online_db, client, logger):
        bucket = client.storage.from_.return_value
        bucket.get_public_url.return_value = "https://cdn/member_images/x.jpg"
        repo = SupabaseStorageRepository(online_db, logger, bucket="gym-manager")

        url = repo.upload("member_images/x.jpg", b"img", "image/jpeg")

        assert url == "https://cdn/member_images/x.jpg"
        client.storage.from_.assert_called_with("gym-manager")
        bucket.upload.assert_called_once_with(
            "member_images/x.jpg", b"img", {"content-type": "image/jpeg"}
        )

    def test_upload_failure(self, online_db, client, logger):
        client.storage.from_.return_value.upload.side_effect = RuntimeError("quota")
        repo = SupabaseStorageRepository(online_db, logger, bucket="gym-manager")

        with pytest.raises(UploadError, match="quota"):
            repo.upload("p.jpg", b"img", "image/jpeg")
