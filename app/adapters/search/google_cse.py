"""Google Custom Search JSON API client adapter."""

import logging
from typing import Any

import httpx
from pydantic import ValidationError

from app.adapters.search.base import AbstractSearchClient
from app.core.errors import UpstreamAppError
from app.schemas.search import SearchPage

logger = logging.getLogger(__name__)


class GoogleCustomSearchClient(AbstractSearchClient):
    """Client for the Custom Search JSON API (``customsearch/v1``).

    Uses one shared ``httpx.AsyncClient`` for connection pooling. Every
    failure mode is reported as ``UpstreamAppError`` so callers can retire
    the credential without caring about transport details.
    """

    def __init__(
        self,
        api_url: str,
        *,
        gl: str | None = None,
        hl: str | None = None,
        timeout_seconds: float = 15.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            api_url: Endpoint URL of the search API.
            gl: Optional geolocation parameter.
            hl: Optional interface language parameter.
            timeout_seconds: Transport timeout per request.
            http_client: Preconfigured client (tests inject a mock transport).
        """
        self.api_url = api_url
        self.gl = gl
        self.hl = hl
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    def _build_params(self, query: str, start: int, apikey: str, cx: str) -> dict[str, Any]:
        params: dict[str, Any] = {
            "key": apikey,
            "cx": cx,
            "q": query,
            "start": start,
        }
        if self.gl:
            params["gl"] = self.gl
        if self.hl:
            params["hl"] = self.hl
        return params

    async def fetch_page(
        self,
        query: str,
        start: int,
        *,
        apikey: str,
        cx: str,
    ) -> SearchPage:
        """Fetch one page and parse it into a ``SearchPage``.

        Raises:
            UpstreamAppError: Network error, non-2xx status, invalid JSON,
                unexpected payload shape, or an embedded ``error`` object.
        """
        params = self._build_params(query, start, apikey, cx)

        try:
            response = await self._client.get(self.api_url, params=params)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            status = exc.response.status_code
            raise UpstreamAppError(
                code="upstream_http_error",
                message=f"Search API returned HTTP {status}",
                details={"http_status": status},
            ) from exc
        except httpx.HTTPError as exc:
            raise UpstreamAppError(
                code="upstream_unreachable",
                message=f"Search API request failed: {type(exc).__name__}",
            ) from exc

        try:
            page = SearchPage.model_validate(response.json())
        except (ValueError, ValidationError) as exc:
            raise UpstreamAppError(
                code="upstream_malformed_payload",
                message="Search API returned an unexpected payload",
            ) from exc

        if page.error:
            error_code = page.error.get("code")
            if isinstance(error_code, bool) or not isinstance(error_code, int):
                # Some gateways report symbolic codes such as "RATE_LIMIT"
                error_code = response.status_code
            raise UpstreamAppError(
                code="upstream_api_error",
                message=str(page.error.get("message", "Search API reported an error")),
                details={"http_status": error_code},
            )

        logger.debug(
            "search.page_fetched",
            extra={"start": start, "items": len(page.items)},
        )
        return page

    async def aclose(self) -> None:
        await self._client.aclose()
