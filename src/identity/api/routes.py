"""FastAPI endpoints for the Identity domain: saved addresses and dev sessions."""

from fastapi import APIRouter, Cookie, Depends, HTTPException, Response
from fastapi.responses import JSONResponse

from identity.api.dependencies import SESSION_COOKIE, get_request_context
from identity.api.schemas import AddressRequest, SignInRequest
from identity.context import RequestContext
from identity.provider import get_identity_provider
from identity.provider.fake_adapter import FakeIdentityProvider
from ordering.api.operations import BuyerOperations, get_operations
from shared.api import respond
from shared.config import get_settings


# ---------------------------------------------------------------------------
# Address Router
# ---------------------------------------------------------------------------
address_router = APIRouter(prefix="/addresses", tags=["addresses"])


@address_router.get("")
def list_addresses(
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.list_addresses(ctx))


@address_router.post("")
def save_address(
    body: AddressRequest,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.save_shipping_address(ctx, body.model_dump()), success_status=201)


@address_router.put("/{address_id}")
def update_address(
    address_id: str,
    body: AddressRequest,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.update_address(ctx, address_id, body.model_dump()))


@address_router.delete("/{address_id}")
def delete_address(
    address_id: str,
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    return respond(operations.delete_address(ctx, address_id))


# ---------------------------------------------------------------------------
# Session Router (development identity provider only)
# ---------------------------------------------------------------------------
session_router = APIRouter(prefix="/session", tags=["session"])


def _fake_provider() -> FakeIdentityProvider:
    if get_settings().env == "production":
        raise HTTPException(status_code=403, detail="Development sign-in not available in production")

    provider = get_identity_provider()
    if not isinstance(provider, FakeIdentityProvider):
        raise HTTPException(status_code=404, detail="Sign-in is handled by the identity provider")
    return provider


@session_router.post("", status_code=201)
def sign_in(body: SignInRequest, response: Response) -> dict:
    token = _fake_provider().sign_in(body.user_id, body.email)
    response.set_cookie(SESSION_COOKIE, token, httponly=True, samesite="lax")
    return {"status": "signed_in"}


@session_router.delete("")
def sign_out(response: Response, session: str | None = Cookie(default=None)) -> dict:
    if session:
        _fake_provider().sign_out(session)
    response.delete_cookie(SESSION_COOKIE)
    return {"status": "signed_out"}
