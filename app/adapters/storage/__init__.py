"""Credential storage adapters.

Services depend on ``AbstractCredentialStore`` only, so the JSON document
store can later be replaced by a shared database without touching them.
"""

from app.adapters.storage.base import AbstractCredentialStore
from app.adapters.storage.json_store import JsonCredentialStore

__all__ = ["AbstractCredentialStore", "JsonCredentialStore"]
