"""FastAPI routes for the Payments domain: intents and fake gateway control."""

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import JSONResponse

from identity.api.dependencies import get_request_context
from identity.context import RequestContext
from ordering.api.operations import BuyerOperations, get_operations
from payments.api.schemas import ConfigureGatewayRequest, GatewayConfigResponse
from payments.gateway import get_gateway
from payments.gateway.fake_adapter import FakeGateway
from shared.api import respond
from shared.config import get_settings

# ---------------------------------------------------------------------------
# Payment Router
# ---------------------------------------------------------------------------
payment_router = APIRouter(prefix="/payments", tags=["payments"])


@payment_router.post("/intents")
def create_payment_intent(
    ctx: RequestContext = Depends(get_request_context),
    operations: BuyerOperations = Depends(get_operations),
) -> JSONResponse:
    """Create an intent for the caller's current cart total. No amount is accepted from the client."""
    return respond(operations.create_payment_intent(ctx), success_status=201)


@payment_router.post("/gateway/configure", response_model=GatewayConfigResponse)
def configure_gateway(body: ConfigureGatewayRequest) -> GatewayConfigResponse:
    """Configure the FakeGateway behavior (non-production only).

    Lets manual API testing toggle approvals, declines and 3-D Secure prompts.
    """
    if get_settings().env == "production":
        raise HTTPException(status_code=403, detail="Gateway configuration not available in production")

    gateway = get_gateway()
    if not isinstance(gateway, FakeGateway):
        raise HTTPException(status_code=400, detail="Gateway configuration only available for FakeGateway")

    gateway.configure(
        outcome=body.outcome,
        failure_reason=body.failure_reason,
        unavailable=body.unavailable,
    )
    return GatewayConfigResponse(
        gateway=type(gateway).__name__,
        outcome=gateway.outcome.value,
        failure_reason=gateway.failure_reason,
        unavailable=gateway.unavailable,
    )
