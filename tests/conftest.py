"""Pytest configuration and fixtures shared across all test modules.

Environment variables are set before anything imports ``app.core.config``
so the settings singleton is built with test values.
"""

import asyncio
import os
from pathlib import Path
from typing import Callable

import pytest

os.environ["APP_ENV"] = "testing"
os.environ.setdefault("LOG_LEVEL", "WARNING")
os.environ.setdefault("RESET_ENABLED", "false")
os.environ.setdefault("APP_ADMIN_KEY_REQUIRED", "false")

from app.adapters.search.base import AbstractSearchClient  # noqa: E402
from app.adapters.storage.json_store import JsonCredentialStore  # noqa: E402
from app.core.errors import UpstreamAppError  # noqa: E402
from app.schemas.credential import Credential  # noqa: E402
from app.schemas.search import SearchItem, SearchPage  # noqa: E402


class FakeSearchClient(AbstractSearchClient):
    """Deterministic upstream.

    ``corpus`` maps a query to the total number of results the upstream has
    for it; item ``n`` of query ``q`` lives on site ``q-n.example.org``.
    ``pages`` overrides the items of a specific ``(query, start)``.
    """

    def __init__(self, corpus: dict[str, int] | None = None, page_size: int = 10) -> None:
        self.corpus = dict(corpus or {})
        self.page_size = page_size
        self.pages: dict[tuple[str, int], list[SearchItem]] = {}
        self.failing_keys: set[str] = set()
        self.failing_calls: set[int] = set()
        self.calls: list[tuple[str, int, str]] = []
        self.on_fetch: Callable[[str, int, str], None] | None = None

    async def fetch_page(self, query: str, start: int, *, apikey: str, cx: str) -> SearchPage:
        call_index = len(self.calls)
        self.calls.append((query, start, apikey))
        if self.on_fetch is not None:
            self.on_fetch(query, start, apikey)

        # Suspension point, as with a real network call
        await asyncio.sleep(0)

        if apikey in self.failing_keys or call_index in self.failing_calls:
            raise UpstreamAppError(code="upstream_http_error", message="HTTP 429")

        if (query, start) in self.pages:
            return SearchPage(items=self.pages[(query, start)])

        total = self.corpus.get(query, 0)
        count = max(0, min(self.page_size, total - (start - 1)))
        return SearchPage(
            items=[make_item(f"{query}-{start + i}.example.org") for i in range(count)]
        )

    def keys_used(self) -> list[str]:
        return [apikey for _, _, apikey in self.calls]


def make_item(site: str, path: str = "page", title: str | None = None) -> SearchItem:
    return SearchItem(
        link=f"https://{site}/{path}",
        title=title or f"Title of {site}",
        displayLink=site,
    )


@pytest.fixture
def store_path(tmp_path: Path) -> Path:
    return tmp_path / "db.json"


@pytest.fixture
def store(store_path: Path):
    """Store with short timings so background flushes settle quickly."""
    credential_store = JsonCredentialStore(
        store_path,
        flush_interval_seconds=0.05,
        quiet_period_seconds=0.06,
    )
    yield credential_store
    credential_store.close()


@pytest.fixture
def add_credential(store: JsonCredentialStore) -> Callable[..., Credential]:
    def _add(apikey: str, quotas: int = 100, cx: str = "cx-test") -> Credential:
        credential = store.upsert(None, {"apikey": apikey, "cx": cx, "quotas": quotas})
        assert credential is not None
        return credential

    return _add


@pytest.fixture
def fake_search() -> FakeSearchClient:
    return FakeSearchClient()
