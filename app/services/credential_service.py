"""Credential management: thin operations over the credential store."""

import logging
import time

from app.adapters.storage.base import AbstractCredentialStore
from app.core.errors import NotFoundAppError, PersistenceAppError, ValidationAppError
from app.schemas.credential import Credential

logger = logging.getLogger(__name__)


class CredentialService:
    """List, register and remove search credentials."""

    def __init__(self, store: AbstractCredentialStore, *, default_quota: int = 100) -> None:
        self.store = store
        self.default_quota = default_quota

    def list_all(self) -> list[Credential]:
        return self.store.get_all()

    def create(self, cx: str, apikey: str) -> Credential:
        """Register a credential with a full quota.

        Raises:
            ValidationAppError: If ``cx`` or ``apikey`` is blank.
        """
        cx = (cx or "").strip()
        apikey = (apikey or "").strip()
        if not cx or not apikey:
            raise ValidationAppError(
                code="credential_missing_fields",
                message="Both cx and apikey are required",
            )

        credential = self.store.upsert(
            None,
            {
                "cx": cx,
                "apikey": apikey,
                "quotas": self.default_quota,
                "last_reset": int(time.time() * 1000),
            },
        )
        if credential is None:
            raise PersistenceAppError(
                code="credential_not_created",
                message="Credential store did not return the created record",
            )
        return credential

    def delete(self, credential_id: str) -> Credential:
        """Remove a credential.

        Raises:
            NotFoundAppError: If no credential has ``credential_id``.
        """
        credential = self.store.delete(credential_id)
        if credential is None:
            logger.info("credentials.delete_missing", extra={"credential_id": credential_id})
            raise NotFoundAppError(
                code="credential_not_found",
                message="Credential not found",
                details={"credential_id": credential_id},
            )
        return credential
