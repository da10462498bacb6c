"""Credential store backed by a single JSON document on disk.

The document keeps one object per collection::

    {"collections": {"apikeys": {"<id>": {"apikey": ..., "cx": ...,
                                           "quotas": 100, "lastReset": 1700000000000}}}}

All reads and mutations happen in memory under a lock. Mutations mark the
store dirty and a ``WriteCoalescer`` rewrites the document at most once per
flush interval. Collections other than ours are preserved verbatim.
"""

from __future__ import annotations

import json
import logging
import os
import secrets
import threading
import time
from pathlib import Path
from typing import Any, Callable, Mapping

from app.adapters.storage.base import AbstractCredentialStore
from app.core.config import StoreSettings
from app.core.errors import PersistenceAppError, ValidationAppError
from app.schemas.credential import Credential
from app.utils.write_coalescer import WriteCoalescer

logger = logging.getLogger(__name__)

_MUTABLE_FIELDS = frozenset({"apikey", "cx", "quotas", "last_reset"})

# Field names as written on disk
_DOCUMENT_NAMES = {"last_reset": "lastReset"}
_FIELD_NAMES = {v: k for k, v in _DOCUMENT_NAMES.items()}


def generate_credential_id(now: float | None = None) -> str:
    """Return 8 hex digits of the UNIX time followed by 16 random hex digits."""

    seconds = int(time.time() if now is None else now)
    return f"{seconds:08x}{secrets.token_hex(8)}"


def _now_ms() -> int:
    return int(time.time() * 1000)


def _clamp(quotas: Any) -> int:
    return max(0, int(quotas))


class JsonCredentialStore(AbstractCredentialStore):
    """In-memory credential map with coalesced JSON persistence."""

    def __init__(
        self,
        path: str | Path,
        *,
        collection: str = "apikeys",
        default_quota: int = 100,
        flush_interval_seconds: float = 0.5,
        quiet_period_seconds: float = 0.6,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Load the document at ``path`` (created empty when missing).

        Raises:
            PersistenceAppError: If the file exists but is not a valid document.
        """
        self._path = Path(path)
        self._collection = collection
        self._default_quota = default_quota
        self._lock = threading.RLock()
        self._document: dict[str, Any] = {"collections": {}}
        self._records: dict[str, dict[str, Any]] = {}
        self._load()
        self._coalescer = WriteCoalescer(
            self._write_document,
            interval_seconds=flush_interval_seconds,
            quiet_period_seconds=quiet_period_seconds,
            clock=clock,
            name=f"store:{collection}",
        )

    @classmethod
    def from_settings(cls, store_settings: StoreSettings) -> "JsonCredentialStore":
        return cls(
            store_settings.path,
            collection=store_settings.collection,
            default_quota=store_settings.default_quota,
            flush_interval_seconds=store_settings.flush_interval_seconds,
            quiet_period_seconds=store_settings.quiet_period_seconds,
        )

    @property
    def coalescer(self) -> WriteCoalescer:
        return self._coalescer

    # Reads

    def get_all(self) -> list[Credential]:
        with self._lock:
            return [self._to_credential(cid, rec) for cid, rec in self._records.items()]

    def find_by_id(self, credential_id: str) -> Credential | None:
        with self._lock:
            record = self._records.get(credential_id)
            if record is None:
                return None
            return self._to_credential(credential_id, record)

    # Mutations

    def upsert(self, credential_id: str | None, fields: Mapping[str, Any]) -> Credential | None:
        unknown = set(fields) - _MUTABLE_FIELDS
        if unknown:
            raise ValidationAppError(
                code="credential_unknown_fields",
                message=f"Unknown credential fields: {', '.join(sorted(unknown))}",
            )

        with self._lock:
            if credential_id is None:
                return self._create(fields)

            record = self._records.get(credential_id)
            if record is None:
                return None
            record.update(fields)
            record["quotas"] = _clamp(record["quotas"])
            credential = self._to_credential(credential_id, record)

        self._coalescer.mark_dirty()
        return credential

    def delete(self, credential_id: str) -> Credential | None:
        with self._lock:
            record = self._records.pop(credential_id, None)
            if record is None:
                return None
            credential = self._to_credential(credential_id, record)

        self._coalescer.mark_dirty()
        logger.info("store.credential_deleted", extra={"credential_id": credential_id})
        return credential

    def try_consume(self, credential_id: str) -> int | None:
        with self._lock:
            record = self._records.get(credential_id)
            if record is None or record["quotas"] <= 0:
                return None
            record["quotas"] -= 1
            remaining = record["quotas"]

        self._coalescer.mark_dirty()
        return remaining

    def exhaust(self, credential_id: str) -> Credential | None:
        return self.upsert(credential_id, {"quotas": 0})

    def reset_all(self, quota: int, reset_at_ms: int) -> int:
        with self._lock:
            for record in self._records.values():
                record["quotas"] = _clamp(quota)
                record["last_reset"] = reset_at_ms
            touched = len(self._records)

        if touched:
            self._coalescer.mark_dirty()
        return touched

    def flush(self) -> bool:
        return self._coalescer.flush_now()

    def close(self) -> None:
        self._coalescer.close()

    # Internals

    def _create(self, fields: Mapping[str, Any]) -> Credential:
        if not fields.get("apikey") or not fields.get("cx"):
            raise ValidationAppError(
                code="credential_missing_fields",
                message="A new credential requires both apikey and cx",
            )
        credential_id = generate_credential_id()
        while credential_id in self._records:
            credential_id = generate_credential_id()

        record = {
            "apikey": fields["apikey"],
            "cx": fields["cx"],
            "quotas": _clamp(fields.get("quotas", self._default_quota)),
            "last_reset": int(fields.get("last_reset") or _now_ms()),
        }
        self._records[credential_id] = record
        self._coalescer.mark_dirty()
        logger.info("store.credential_created", extra={"credential_id": credential_id})
        return self._to_credential(credential_id, record)

    @staticmethod
    def _to_credential(credential_id: str, record: Mapping[str, Any]) -> Credential:
        return Credential(id=credential_id, **record)

    def _load(self) -> None:
        if not self._path.exists():
            logger.info("store.created_empty", extra={"path": str(self._path)})
            return

        try:
            document = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceAppError(
                code="store_unreadable",
                message=f"Cannot load credential store: {exc}",
                details={"path": str(self._path)},
            ) from exc

        if not isinstance(document, dict) or not isinstance(document.get("collections", {}), dict):
            raise PersistenceAppError(
                code="store_malformed",
                message="Credential store document must contain a 'collections' object",
                details={"path": str(self._path)},
            )

        document.setdefault("collections", {})
        self._document = document
        raw_records = document["collections"].get(self._collection, {})
        for credential_id, raw in raw_records.items():
            record = {_FIELD_NAMES.get(k, k): v for k, v in raw.items()}
            record = {k: v for k, v in record.items() if k in _MUTABLE_FIELDS}
            record.setdefault("quotas", self._default_quota)
            record.setdefault("last_reset", 0)
            record["quotas"] = _clamp(record["quotas"])
            self._records[credential_id] = record

        logger.info(
            "store.loaded",
            extra={"path": str(self._path), "credentials": len(self._records)},
        )

    def _write_document(self) -> None:
        with self._lock:
            collection = {
                cid: {_DOCUMENT_NAMES.get(k, k): v for k, v in record.items()}
                for cid, record in self._records.items()
            }
            document = dict(self._document)
            document["collections"] = {**self._document["collections"], self._collection: collection}
            payload = json.dumps(document)

        tmp_path = self._path.with_name(f"{self._path.name}.tmp")
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise PersistenceAppError(
                code="store_write_failed",
                message=f"Cannot write credential store: {exc}",
                details={"path": str(self._path)},
            ) from exc
