"""Credential rotation: pick the first credential that still has quota.

A ``CredentialRotation`` is created once per aggregation call. It captures
the credential enumeration at that moment and walks it with a forward-only
cursor. Quota is always read live from the store, so a credential drained by
another call (or restored by the daily reset) is seen as it is now.

Transitions are Active (quota > 0) → Exhausted (quota == 0); the cursor moves
past a credential when it becomes exhausted. Exhausted → Active only happens
through the daily reset, never here.
"""

from __future__ import annotations

import logging
from typing import Literal, Sequence

from app.adapters.storage.base import AbstractCredentialStore
from app.schemas.credential import Credential

logger = logging.getLogger(__name__)

RotationMode = Literal["continue", "restart"]


class CredentialRotation:
    """Candidate cursor over the credentials captured at call start.

    Modes:
        continue: one cursor for the whole call; a query starts on whatever
            credential the previous query left active.
        restart: ``begin_query`` rewinds the cursor so every query selects the
            first eligible credential again.
    """

    def __init__(
        self,
        store: AbstractCredentialStore,
        candidates: Sequence[Credential],
        *,
        mode: RotationMode = "continue",
    ) -> None:
        if mode not in ("continue", "restart"):
            raise ValueError(f"unknown rotation mode: {mode!r}")
        self._store = store
        self._candidate_ids = [c.id for c in candidates]
        self._mode = mode
        self._position = 0
        self._current_id: str | None = None

    @classmethod
    def from_store(
        cls,
        store: AbstractCredentialStore,
        *,
        mode: RotationMode = "continue",
    ) -> "CredentialRotation":
        return cls(store, store.get_all(), mode=mode)

    @property
    def mode(self) -> RotationMode:
        return self._mode

    @property
    def current_id(self) -> str | None:
        return self._current_id

    def any_available(self) -> bool:
        """True if some captured credential still has quota."""

        for credential_id in self._candidate_ids:
            credential = self._store.find_by_id(credential_id)
            if credential is not None and credential.active:
                return True
        return False

    def begin_query(self) -> None:
        if self._mode == "restart":
            self._position = 0
            self._current_id = None

    def active(self) -> Credential | None:
        """Return the credential to use next, rotating if the current one is spent.

        A current credential found with quota <= 0 is zeroed (persisted) and
        the cursor moves past it before selecting again.
        """

        if self._current_id is not None:
            live = self._store.find_by_id(self._current_id)
            if live is not None and live.active:
                return live
            if live is not None:
                self._store.exhaust(live.id)
                logger.info(
                    "rotation.exhausted",
                    extra={"credential_id": live.id, "reason": "quota_depleted"},
                )
            self._advance()

        return self._select()

    def reserve(self, credential: Credential) -> bool:
        """Take one unit of quota from ``credential`` before using it.

        Returns False when the quota was drained in the meantime; the next
        ``active()`` call then rotates away from it.
        """

        remaining = self._store.try_consume(credential.id)
        if remaining is None:
            logger.info(
                "rotation.reservation_failed",
                extra={"credential_id": credential.id},
            )
            return False
        return True

    def retire(self, credential: Credential, *, reason: str) -> None:
        """Zero ``credential`` after a failed call and move the cursor past it."""

        self._store.exhaust(credential.id)
        logger.warning(
            "rotation.exhausted",
            extra={"credential_id": credential.id, "reason": reason},
        )
        if self._current_id == credential.id:
            self._advance()

    def _advance(self) -> None:
        self._current_id = None
        self._position += 1

    def _select(self) -> Credential | None:
        while self._position < len(self._candidate_ids):
            credential = self._store.find_by_id(self._candidate_ids[self._position])
            if credential is not None and credential.active:
                self._current_id = credential.id
                logger.debug(
                    "rotation.selected",
                    extra={"credential_id": credential.id, "quotas": credential.quotas},
                )
                return credential
            self._position += 1

        self._current_id = None
        return None
