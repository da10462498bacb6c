"""Pagination driver: exhaust one query page by page under the quota budget."""

from __future__ import annotations

import logging
from typing import AsyncIterator
from urllib.parse import urlparse

from app.adapters.search.base import AbstractSearchClient
from app.core.errors import UpstreamAppError
from app.schemas.search import SearchItem, SearchResult
from app.services.rotation import CredentialRotation

logger = logging.getLogger(__name__)

PAGE_SIZE = 10


def canonical_identity(item: SearchItem) -> str | None:
    """Return the deduplication key of an item: its display host, lower-cased.

    Falls back to the host of ``link`` when the upstream omits ``displayLink``.
    Hosts are case-insensitive, so ``Example.com`` and ``example.com`` are
    deliberately treated as the same site.
    """

    if item.display_link and item.display_link.strip():
        return item.display_link.strip().lower()
    if item.link:
        host = urlparse(item.link).netloc
        if host:
            return host.lower()
    return None


def normalize_item(item: SearchItem) -> SearchResult | None:
    canonical = canonical_identity(item)
    if canonical is None:
        return None
    return SearchResult(url=item.link or "", title=item.title or "", canonical=canonical)


async def paginate(
    query: str,
    target_count: int,
    rotation: CredentialRotation,
    client: AbstractSearchClient,
    *,
    page_size: int = PAGE_SIZE,
) -> AsyncIterator[SearchResult]:
    """Yield normalized results for ``query`` until a stopping condition.

    Pages are fetched strictly one after another starting at offset 1. The
    loop stops when ``target_count`` results were requested, when a page is
    empty or shorter than ``page_size``, or when no credential has quota
    left. A failed fetch retires the credential and retries the same offset
    on the next one. Every item of a page is emitted, even past the target.
    """

    start = 1
    remaining = target_count

    while remaining > 0:
        credential = rotation.active()
        if credential is None:
            logger.info(
                "pagination.no_credentials",
                extra={"query": query, "start": start},
            )
            return

        if not rotation.reserve(credential):
            continue

        try:
            page = await client.fetch_page(
                query,
                start,
                apikey=credential.apikey,
                cx=credential.cx,
            )
        except UpstreamAppError as exc:
            logger.warning(
                "pagination.fetch_failed",
                extra={
                    "query": query,
                    "start": start,
                    "credential_id": credential.id,
                    "error_code": exc.code,
                    "error_message": exc.message,
                },
            )
            rotation.retire(credential, reason=exc.code)
            continue
        except Exception as exc:
            logger.exception(
                "pagination.fetch_crashed",
                extra={
                    "query": query,
                    "start": start,
                    "credential_id": credential.id,
                    "error_type": type(exc).__name__,
                },
            )
            rotation.retire(credential, reason="unexpected_error")
            continue

        if not page.items:
            return

        for item in page.items:
            record = normalize_item(item)
            if record is not None:
                yield record

        if len(page.items) < page_size:
            return

        step = min(remaining, page_size)
        start += step
        remaining -= step
