"""Ordered, first-seen-wins set of search results keyed by canonical identity."""

from __future__ import annotations

from typing import Iterator

from app.schemas.search import SearchResult


class ResultSet:
    """Insertion-ordered mapping canonical -> first result seen for it.

    A later record for a known canonical is discarded, never merged.
    """

    def __init__(self) -> None:
        self._by_canonical: dict[str, SearchResult] = {}

    def merge(self, record: SearchResult) -> bool:
        """Insert ``record`` unless its canonical is already present.

        Returns:
            True if the record was added.
        """
        if record.canonical in self._by_canonical:
            return False
        self._by_canonical[record.canonical] = record
        return True

    def results(self) -> list[SearchResult]:
        return list(self._by_canonical.values())

    def __contains__(self, canonical: object) -> bool:
        return canonical in self._by_canonical

    def __len__(self) -> int:
        return len(self._by_canonical)

    def __iter__(self) -> Iterator[SearchResult]:
        return iter(self._by_canonical.values())
