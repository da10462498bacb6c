"""Unit tests for the JSON-backed credential store."""

import json
from pathlib import Path

import pytest

from app.adapters.storage.json_store import JsonCredentialStore, generate_credential_id
from app.core.errors import PersistenceAppError, ValidationAppError


def _read_collection(path: Path, name: str = "apikeys") -> dict:
    return json.loads(path.read_text(encoding="utf-8"))["collections"][name]


class TestCreateAndLookup:
    def test_create_assigns_id_and_full_quota(self, store: JsonCredentialStore) -> None:
        credential = store.upsert(None, {"apikey": "key-1", "cx": "cx-1"})

        assert credential is not None
        assert len(credential.id) == 24
        assert credential.quotas == 100
        assert credential.last_reset > 0
        assert store.find_by_id(credential.id) == credential

    def test_get_all_preserves_insertion_order(self, store: JsonCredentialStore, add_credential) -> None:
        ids = [add_credential(f"key-{i}").id for i in range(5)]

        assert [c.id for c in store.get_all()] == ids

    def test_create_requires_apikey_and_cx(self, store: JsonCredentialStore) -> None:
        with pytest.raises(ValidationAppError):
            store.upsert(None, {"apikey": "only-key"})

    def test_unknown_fields_are_rejected(self, store: JsonCredentialStore, add_credential) -> None:
        credential = add_credential("key-1")

        with pytest.raises(ValidationAppError) as exc_info:
            store.upsert(credential.id, {"quota": 5})

        assert exc_info.value.code == "credential_unknown_fields"

    def test_generated_ids_start_with_timestamp(self) -> None:
        assert generate_credential_id(now=0x65000000).startswith("65000000")


class TestMutations:
    def test_upsert_merges_fields(self, store: JsonCredentialStore, add_credential) -> None:
        credential = add_credential("key-1")

        merged = store.upsert(credential.id, {"quotas": 7})

        assert merged is not None
        assert merged.quotas == 7
        assert merged.apikey == "key-1"

    def test_upsert_unknown_id_returns_none(self, store: JsonCredentialStore) -> None:
        assert store.upsert("does-not-exist", {"quotas": 1}) is None

    def test_negative_quota_is_clamped(self, store: JsonCredentialStore, add_credential) -> None:
        credential = add_credential("key-1")

        merged = store.upsert(credential.id, {"quotas": -4})

        assert merged is not None
        assert merged.quotas == 0

    def test_try_consume_never_goes_negative(self, store: JsonCredentialStore, add_credential) -> None:
        credential = add_credential("key-1", quotas=2)

        assert store.try_consume(credential.id) == 1
        assert store.try_consume(credential.id) == 0
        assert store.try_consume(credential.id) is None
        assert store.find_by_id(credential.id).quotas == 0

    def test_try_consume_unknown_id(self, store: JsonCredentialStore) -> None:
        assert store.try_consume("missing") is None

    def test_exhaust_zeroes_quota(self, store: JsonCredentialStore, add_credential) -> None:
        credential = add_credential("key-1", quotas=40)

        exhausted = store.exhaust(credential.id)

        assert exhausted is not None
        assert exhausted.quotas == 0

    def test_delete_returns_removed_record(self, store: JsonCredentialStore, add_credential) -> None:
        credential = add_credential("key-1")

        assert store.delete(credential.id) == credential
        assert store.find_by_id(credential.id) is None
        assert store.delete(credential.id) is None

    def test_reset_all_restores_quota_and_timestamp(self, store: JsonCredentialStore, add_credential) -> None:
        add_credential("key-1", quotas=0)
        add_credential("key-2", quotas=13)

        touched = store.reset_all(100, 1_700_000_000_000)

        assert touched == 2
        assert all(c.quotas == 100 for c in store.get_all())
        assert all(c.last_reset == 1_700_000_000_000 for c in store.get_all())

    def test_returned_records_are_copies(self, store: JsonCredentialStore, add_credential) -> None:
        credential = add_credential("key-1", quotas=3)
        store.try_consume(credential.id)

        assert credential.quotas == 3
        assert store.find_by_id(credential.id).quotas == 2


class TestPersistence:
    def test_close_writes_document_with_camel_case_timestamp(
        self, store: JsonCredentialStore, store_path: Path, add_credential
    ) -> None:
        credential = add_credential("key-1", quotas=9)

        store.close()

        stored = _read_collection(store_path)[credential.id]
        assert stored["apikey"] == "key-1"
        assert stored["quotas"] == 9
        assert "lastReset" in stored

    def test_reload_restores_state(self, store: JsonCredentialStore, store_path: Path, add_credential) -> None:
        credential = add_credential("key-1", quotas=9)
        store.try_consume(credential.id)
        store.close()

        reloaded = JsonCredentialStore(store_path)
        try:
            assert reloaded.find_by_id(credential.id).quotas == 8
        finally:
            reloaded.close()

    def test_other_collections_are_preserved(self, tmp_path: Path) -> None:
        path = tmp_path / "db.json"
        path.write_text(
            json.dumps(
                {
                    "collections": {
                        "apikeys": {"abc": {"apikey": "k", "cx": "c", "quotas": -3, "lastReset": 1}},
                        "notes": {"n1": {"text": "keep me"}},
                    }
                }
            ),
            encoding="utf-8",
        )
        credential_store = JsonCredentialStore(path)
        try:
            assert credential_store.find_by_id("abc").quotas == 0
            credential_store.exhaust("abc")
            credential_store.flush()
        finally:
            credential_store.close()

        assert _read_collection(path, "notes") == {"n1": {"text": "keep me"}}

    def test_corrupt_document_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "db.json"
        path.write_text("{not json", encoding="utf-8")

        with pytest.raises(PersistenceAppError) as exc_info:
            JsonCredentialStore(path)

        assert exc_info.value.code == "store_unreadable"

    def test_rapid_mutations_are_coalesced(self, store: JsonCredentialStore, store_path: Path, add_credential) -> None:
        credential = add_credential("key-1", quotas=50)
        for _ in range(20):
            store.try_consume(credential.id)

        store.close()

        assert store.coalescer.stats()["flushes"] <= 2
        assert _read_collection(store_path)[credential.id]["quotas"] == 30

    def test_write_failure_keeps_memory_state(
        self, store_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        credential_store = JsonCredentialStore(store_path, flush_interval_seconds=60)
        credential = credential_store.upsert(None, {"apikey": "key-1", "cx": "cx-1", "quotas": 5})

        def _fail() -> None:
            raise PersistenceAppError(code="store_write_failed", message="disk full")

        monkeypatch.setattr(credential_store.coalescer, "_flush", _fail)

        assert credential_store.flush() is False
        assert credential_store.find_by_id(credential.id).quotas == 5
        assert credential_store.coalescer.dirty is True

        monkeypatch.undo()
        credential_store.close()
        assert _read_collection(store_path)[credential.id]["quotas"] == 5
