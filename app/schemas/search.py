"""Pydantic schemas for upstream search pages and aggregated results."""

from __future__ import annotations

from typing import Any, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


class SearchItem(BaseModel):
    """One item of an upstream result page (only the fields we consume)."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    link: str | None = None
    title: str | None = None
    display_link: str | None = Field(default=None, alias="displayLink")


class SearchPage(BaseModel):
    """Upstream page payload. A missing ``items`` field means no more results."""

    model_config = ConfigDict(extra="ignore")

    items: List[SearchItem] = Field(default_factory=list)
    error: dict[str, Any] | None = Field(
        default=None,
        description="Error object some upstream responses embed with a 200 status.",
    )

    @field_validator("items", mode="before")
    @classmethod
    def _null_items_is_empty(cls, value: Any) -> Any:
        return [] if value is None else value


class SearchResult(BaseModel):
    """Normalized, deduplicable result record."""

    url: str = Field(..., description="Target URL of the result.")
    title: str = Field("", description="Display title.")
    canonical: str = Field(
        ..., description="Canonical site identifier used as the deduplication key."
    )
