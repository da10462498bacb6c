"""FastAPI dependencies resolving the services built by the app lifespan."""

from __future__ import annotations

from fastapi import Request

from app.services.aggregation_service import AggregationService
from app.services.credential_service import CredentialService


def get_aggregation_service(request: Request) -> AggregationService:
    return request.app.state.aggregation_service


def get_credential_service(request: Request) -> CredentialService:
    return request.app.state.credential_service
