"""Authentication endpoints: sign in, sign out, current caller."""

from typing import Annotated

from fastapi import APIRouter, Depends, Request

from ..domain.results import OperationResult
from .dependencies import CurrentContext, get_identity_gate
from .identity_gate import IdentityGate
from .jwt import get_jwt_expiry_minutes
from .schemas import IdentityResponse, LoginRequest, LoginResponse, MeResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login")
def login(
    credentials: LoginRequest,
    request: Request,
    gate: Annotated[IdentityGate, Depends(get_identity_gate)],
):
    """Authenticate and return an access token.

    Banned emails are refused before the password is checked (403 with
    redirect_to=/banned). Invalid credentials give a generic 401.
    """
    token = gate.sign_in(credentials.email, credentials.password, request=request)
    response = LoginResponse(access_token=token, expires_in=get_jwt_expiry_minutes() * 60)
    return OperationResult.success(response.model_dump())


@router.post("/logout")
def logout(context: CurrentContext, gate: Annotated[IdentityGate, Depends(get_identity_gate)]):
    return OperationResult.success({"signed_out": gate.sign_out(context)})


@router.get("/me")
def get_me(context: CurrentContext):
    me = MeResponse(identity=IdentityResponse.model_validate(context.identity), role=context.role.value)
    return OperationResult.success(me.model_dump(mode="json"))
