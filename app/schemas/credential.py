"""Pydantic schemas for search credentials."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Credential(BaseModel):
    """A rate-limited grant (key + search scope) with its remaining quota."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., description="Opaque identifier assigned at creation.")
    apikey: str = Field(..., description="Upstream API key.")
    cx: str = Field(..., description="Search engine (scope) identifier.")
    quotas: int = Field(..., description="Remaining upstream calls before exhaustion.")
    last_reset: int = Field(
        ..., description="UNIX epoch milliseconds of the last daily reset."
    )

    @field_validator("quotas", mode="before")
    @classmethod
    def _clamp_quotas(cls, value: int) -> int:
        return max(0, int(value))

    @property
    def active(self) -> bool:
        return self.quotas > 0


class CreateCredentialRequest(BaseModel):
    """Body for registering a new credential."""

    cx: str = Field(..., description="Search engine (scope) identifier.")
    apikey: str = Field(..., description="Upstream API key.")
