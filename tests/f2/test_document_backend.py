"""Tests for the SQLite document backend (F2)."""

import sqlite3

import pytest
import pytest_asyncio

from wordmemo.storage.base import InitializationError, TransactionError
from wordmemo.storage.document import PARTITIONS, SCHEMA_VERSION, DocumentBackend


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "db" / "wordmemo.db"


@pytest_asyncio.fixture
async def backend(db_path):
    store = DocumentBackend(db_path=db_path)
    await store.init()
    yield store
    store.close()


class TestDocumentSchema:
    """Schema creation and versioning."""

    @pytest.mark.asyncio
    async def test_creates_all_partitions(self, backend):
        assert sorted(backend.list_partitions()) == sorted(PARTITIONS)

    @pytest.mark.asyncio
    async def test_partition_names(self, backend):
        assert set(backend.list_partitions()) == {"wordBanks", "examRecords", "mistakes", "settings"}

    @pytest.mark.asyncio
    async def test_sets_user_version(self, backend, db_path):
        conn = sqlite3.connect(db_path)
        try:
            version = conn.execute("PRAGMA user_version").fetchone()[0]
        finally:
            conn.close()

        assert version == SCHEMA_VERSION

    @pytest.mark.asyncio
    async def test_indexes_exist(self, backend, db_path):
        conn = sqlite3.connect(db_path)
        try:
            names = {
                row[0]
                for row in conn.execute("SELECT name FROM sqlite_master WHERE type = 'index'")
            }
        finally:
            conn.close()

        assert {"idx_wordBanks_name", "idx_examRecords_timestamp"} <= names

    @pytest.mark.asyncio
    async def test_reopen_keeps_data(self, backend, db_path):
        await backend.save("stats", {"correct": 1, "wrong": 0})
        backend.close()

        reopened = DocumentBackend(db_path=db_path)
        await reopened.init()
        try:
            assert await reopened.load("stats") == {"correct": 1, "wrong": 0}
            assert sorted(reopened.list_partitions()) == sorted(PARTITIONS)
        finally:
            reopened.close()

    @pytest.mark.asyncio
    async def test_init_twice_is_noop(self, backend):
        await backend.init()

        assert backend.is_open

    @pytest.mark.asyncio
    async def test_unopenable_path_fails_init(self, tmp_path):
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("x", encoding="utf-8")

        with pytest.raises(InitializationError):
            await DocumentBackend(db_path=blocker / "wordmemo.db").init()


class TestDocumentOperations:
    """Key-value operations in the settings partition."""

    @pytest.mark.asyncio
    async def test_round_trip_values(self, backend):
        await backend.save("taggedWordBanks", {"unit1": [{"term": "card"}]})
        await backend.save("note", "plain text")

        assert await backend.load("taggedWordBanks") == {"unit1": [{"term": "card"}]}
        assert await backend.load("note") == "plain text"

    @pytest.mark.asyncio
    async def test_save_replaces(self, backend):
        await backend.save("k", 1)
        await backend.save("k", 2)

        assert await backend.load("k") == 2

    @pytest.mark.asyncio
    async def test_missing_key(self, backend):
        assert await backend.load("missing") is None

    @pytest.mark.asyncio
    async def test_remove(self, backend):
        await backend.save("k", [1, 2])
        await backend.remove("k")
        await backend.remove("k")

        assert await backend.load("k") is None

    @pytest.mark.asyncio
    async def test_non_serializable_value(self, backend):
        with pytest.raises(TransactionError):
            await backend.save("k", object())  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_corrupt_payload(self, backend, db_path):
        conn = sqlite3.connect(db_path)
        try:
            conn.execute("INSERT INTO settings (key, value) VALUES ('bad', '{oops')")
            conn.commit()
        finally:
            conn.close()

        with pytest.raises(TransactionError, match="corrupt"):
            await backend.load("bad")

    @pytest.mark.asyncio
    async def test_operation_before_init(self, db_path):
        store = DocumentBackend(db_path=db_path)

        with pytest.raises(TransactionError, match="not initialized"):
            await store.load("k")
