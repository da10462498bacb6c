"""Credential store interface.

Quota mutations are exposed as dedicated atomic operations so callers never
write back a stale copy of a record: two concurrent aggregation calls each
decrement against the live counter.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from app.schemas.credential import Credential


class AbstractCredentialStore(ABC):
    """Interface for credential stores with durable, coalesced persistence."""

    @abstractmethod
    def get_all(self) -> list[Credential]:
        """Return every credential in insertion order."""
        raise NotImplementedError

    @abstractmethod
    def find_by_id(self, credential_id: str) -> Credential | None:
        """Return the credential with ``credential_id`` or None."""
        raise NotImplementedError

    @abstractmethod
    def upsert(self, credential_id: str | None, fields: Mapping[str, Any]) -> Credential | None:
        """Merge ``fields`` into a record, or create one when ``credential_id`` is None.

        Args:
            credential_id: Existing identifier, or None to allocate a new record.
            fields: Subset of ``apikey``, ``cx``, ``quotas``, ``last_reset``.

        Returns:
            The merged/created credential, or None when ``credential_id`` is
            unknown.

        Raises:
            ValidationAppError: If ``fields`` contains unknown keys, or a new
                record lacks ``apikey``/``cx``.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, credential_id: str) -> Credential | None:
        """Remove and return a credential, or None when unknown."""
        raise NotImplementedError

    @abstractmethod
    def try_consume(self, credential_id: str) -> int | None:
        """Atomically take one unit of quota.

        Returns:
            The remaining quota after the decrement, or None if the credential
            is unknown or already exhausted.
        """
        raise NotImplementedError

    @abstractmethod
    def exhaust(self, credential_id: str) -> Credential | None:
        """Force the quota of a credential to zero."""
        raise NotImplementedError

    @abstractmethod
    def reset_all(self, quota: int, reset_at_ms: int) -> int:
        """Restore every credential to ``quota``; return how many were touched."""
        raise NotImplementedError

    @abstractmethod
    def flush(self) -> bool:
        """Persist pending mutations synchronously."""
        raise NotImplementedError

    @abstractmethod
    def close(self) -> None:
        """Stop background persistence after a final flush."""
        raise NotImplementedError
