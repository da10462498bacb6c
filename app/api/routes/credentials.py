from __future__ import annotations

from typing import Annotated, List

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_credential_service
from app.core.auth import verify_admin_key
from app.schemas.credential import CreateCredentialRequest, Credential
from app.services.credential_service import CredentialService

router = APIRouter(tags=["Credentials"], dependencies=[Depends(verify_admin_key)])

CredentialServiceDep = Annotated[CredentialService, Depends(get_credential_service)]


@router.get("/apikeys", response_model=List[Credential])
def list_credentials(service: CredentialServiceDep) -> List[Credential]:
    """List every credential with its remaining quota."""

    return service.list_all()


@router.post("/apikey", response_model=Credential)
def create_credential(body: CreateCredentialRequest, service: CredentialServiceDep) -> Credential:
    """Register a credential with a full daily quota.

    Raises:
        ValidationAppError: 400 if ``cx`` or ``apikey`` is blank.
    """

    return service.create(cx=body.cx, apikey=body.apikey)


@router.delete("/apikey", response_model=Credential)
def delete_credential(
    service: CredentialServiceDep,
    credential_id: Annotated[str, Query(alias="id", min_length=1)],
) -> Credential:
    """Remove a credential and return it.

    Raises:
        NotFoundAppError: 404 if no credential has this id.
    """

    return service.delete(credential_id)
