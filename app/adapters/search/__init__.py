"""Search adapter layer - abstracts over the upstream paginated search API."""

from app.adapters.search.base import AbstractSearchClient
from app.adapters.search.factory import create_search_client
from app.adapters.search.google_cse import GoogleCustomSearchClient

__all__ = [
    "AbstractSearchClient",
    "GoogleCustomSearchClient",
    "create_search_client",
]
