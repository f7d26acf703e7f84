"""Admin endpoints for identity and email bans."""

from typing import Annotated, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from ..auth.dependencies import AdminContext, get_identity_provider
from ..database import get_db
from ..dependencies import get_view_cache
from ..domain.identity.ports.identity_provider_port import IdentityProviderPort
from ..domain.results import OperationResult
from ..infrastructure.cache.view_cache import ViewCache
from .schemas import BanEmailRequest, BanRequest
from .service import BanService

router = APIRouter(prefix="/admin", tags=["Bans"])


def get_ban_service(
    db: Session = Depends(get_db),
    provider: IdentityProviderPort = Depends(get_identity_provider),
    cache: ViewCache = Depends(get_view_cache),
) -> BanService:
    return BanService(db, provider, cache)


BanServiceDep = Annotated[BanService, Depends(get_ban_service)]


@router.get("/identities")
def list_identities(context: AdminContext, service: BanServiceDep):
    return OperationResult.success(service.list_identities(context))


@router.post("/identities/{identity_id}/ban")
def ban_identity(
    identity_id: UUID,
    context: AdminContext,
    service: BanServiceDep,
    payload: Optional[BanRequest] = Body(None),
):
    reason = payload.reason if payload else None
    return OperationResult.success(service.ban(context, identity_id, reason))


@router.post("/identities/{identity_id}/unban")
def unban_identity(identity_id: UUID, context: AdminContext, service: BanServiceDep):
    return OperationResult.success(service.unban(context, identity_id))


@router.get("/banned-emails")
def list_banned_emails(context: AdminContext, service: BanServiceDep):
    return OperationResult.success(service.list_banned_emails(context))


@router.post("/banned-emails")
def ban_email(payload: BanEmailRequest, context: AdminContext, service: BanServiceDep):
    return OperationResult.success(service.ban_email(context, payload.email, payload.reason))


@router.delete("/banned-emails/{email}")
def unban_email(email: str, context: AdminContext, service: BanServiceDep):
    return OperationResult.success(service.unban_email(context, email))
