"""Search aggregation service orchestrating rotation, pagination and dedup.

This service is the core of the application. For one request it:
- captures the credential pool and fails fast when nothing has quota
- drives the pagination driver for each query, in input order
- merges every emitted result into a single first-seen-wins result set

Upstream failures and quota exhaustion never escape: they degrade to partial
or empty results. Only malformed input raises ``ValidationAppError``.

Concurrent calls share the store's quota counters. Quota is reserved with an
atomic compare-and-decrement before every fetch, so interleaved calls can
never spend more than the pool holds nor drive a counter negative. Setting
``serialize_calls`` additionally runs calls one at a time.
"""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Sequence

from app.adapters.search.base import AbstractSearchClient
from app.adapters.storage.base import AbstractCredentialStore
from app.core.errors import ValidationAppError
from app.schemas.search import SearchResult
from app.services.pagination import PAGE_SIZE, paginate
from app.services.result_set import ResultSet
from app.services.rotation import CredentialRotation, RotationMode

logger = logging.getLogger(__name__)


class AggregationService:
    """Aggregate deduplicated results for a list of queries across credentials."""

    def __init__(
        self,
        store: AbstractCredentialStore,
        client: AbstractSearchClient,
        *,
        page_size: int = PAGE_SIZE,
        rotation_mode: RotationMode = "continue",
        serialize_calls: bool = False,
    ) -> None:
        """Initialize the service.

        Args:
            store: Credential store holding the live quota counters.
            client: Upstream search client.
            page_size: Fixed upstream page size.
            rotation_mode: Whether queries continue or restart credential selection.
            serialize_calls: Run aggregation calls one at a time when True.
        """
        self.store = store
        self.client = client
        self.page_size = page_size
        self.rotation_mode = rotation_mode
        self._call_lock = asyncio.Lock() if serialize_calls else None

    def _validate_inputs(self, queries: Sequence[str] | None) -> list[str]:
        """Check inputs and drop blank queries.

        Raises:
            ValidationAppError: If the query list is missing or is a bare string.
        """
        if queries is None:
            raise ValidationAppError(
                code="queries_missing",
                message="A list of queries is required",
            )
        if isinstance(queries, str):
            raise ValidationAppError(
                code="queries_not_a_list",
                message="Queries must be a list of strings, not a single string",
            )
        return [q.strip() for q in queries if q and q.strip()]

    async def aggregate(
        self,
        queries: Sequence[str] | None,
        per_query_count: int = 100,
    ) -> list[SearchResult]:
        """Return deduplicated results for ``queries`` in first-seen order.

        Args:
            queries: Ordered query strings.
            per_query_count: Results to request per query (rounded up to full pages);
                zero or less yields no results.

        Returns:
            list[SearchResult]: Possibly empty, never raises for upstream/quota issues.

        Raises:
            ValidationAppError: For malformed input only.
        """
        cleaned = self._validate_inputs(queries)
        if per_query_count <= 0:
            return []

        if self._call_lock is None:
            return await self._aggregate(cleaned, per_query_count)
        async with self._call_lock:
            return await self._aggregate(cleaned, per_query_count)

    async def _aggregate(self, queries: list[str], per_query_count: int) -> list[SearchResult]:
        started = time.perf_counter()
        rotation = CredentialRotation.from_store(self.store, mode=self.rotation_mode)

        if not rotation.any_available():
            logger.warning(
                "aggregation.no_quota",
                extra={"query_count": len(queries)},
            )
            return []

        result_set = ResultSet()
        processed = 0
        for query in queries:
            rotation.begin_query()
            async for record in paginate(
                query,
                per_query_count,
                rotation,
                self.client,
                page_size=self.page_size,
            ):
                result_set.merge(record)
            processed += 1

            if not rotation.any_available():
                break

        logger.info(
            "aggregation.completed",
            extra={
                "query_count": len(queries),
                "queries_processed": processed,
                "results": len(result_set),
                "duration_ms": round((time.perf_counter() - started) * 1000, 2),
            },
        )
        return result_set.results()
