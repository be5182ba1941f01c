"""Pydantic request/response schemas for the Payments API."""

from typing import Literal

from pydantic import BaseModel


# ---------------------------------------------------------------------------
# Gateway Configuration Schemas
# ---------------------------------------------------------------------------
class ConfigureGatewayRequest(BaseModel):
    outcome: Literal["succeeded", "failed", "requires_action"] = "succeeded"
    failure_reason: str = "Your card was declined."
    unavailable: bool = False


class GatewayConfigResponse(BaseModel):
    gateway: str
    outcome: str
    failure_reason: str
    unavailable: bool
