from abc import ABC, abstractmethod

from app.schemas.search import SearchPage


class AbstractSearchClient(ABC):
	"""Interface for clients that fetch one page of upstream search results."""

	@abstractmethod
	async def fetch_page(
		self,
		query: str,
		start: int,
		*,
		apikey: str,
		cx: str,
	) -> SearchPage:
		"""Fetch the page of ``query`` beginning at the 1-based offset ``start``.

		Args:
			query: Search text.
			start: 1-based index of the first result on the page.
			apikey: Credential key to authenticate the call with.
			cx: Search scope of the credential.

		Returns:
			SearchPage: Parsed page; ``items`` is empty when no results remain.

		Raises:
			UpstreamAppError: On any network, HTTP or payload failure.
		"""
		...

	async def aclose(self) -> None:
		"""Release transport resources."""
		return None
