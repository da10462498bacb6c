"""Factory for the upstream search client."""

from app.adapters.search.base import AbstractSearchClient
from app.adapters.search.google_cse import GoogleCustomSearchClient
from app.core.config import SearchSettings, settings
from app.core.errors import ValidationAppError


def create_search_client(search_settings: SearchSettings | None = None) -> AbstractSearchClient:
    """Instantiate the search client from configuration.

    Args:
        search_settings: Optional override; defaults to ``settings.search``.

    Returns:
        AbstractSearchClient: Configured client instance.

    Raises:
        ValidationAppError: If the endpoint URL is not configured.
    """
    cfg = search_settings or settings.search

    if not cfg.api_url.strip():
        raise ValidationAppError(
            code="search_missing_api_url",
            message="Search client requires SEARCH_API_URL",
        )

    return GoogleCustomSearchClient(
        api_url=cfg.api_url,
        gl=cfg.gl,
        hl=cfg.hl,
        timeout_seconds=cfg.timeout_seconds,
    )
