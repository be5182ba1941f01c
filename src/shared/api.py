"""HTTP helpers shared by every router: envelope to response."""

from fastapi.responses import JSONResponse

from shared.result import OperationResult

_HTTP_STATUS = {
    "not_authenticated": 401,
    "not_found": 404,
    "validation_error": 422,
    "invalid_amount": 422,
    "missing_precondition": 422,
    "payment_failed": 402,
    "requires_action": 402,
    "upstream_error": 502,
    "order_commit_failed": 500,
    "order_create_failed": 500,
    "order_detail_failed": 500,
}


def http_status_for(result: OperationResult, success_status: int = 200) -> int:
    if result.success:
        return success_status
    return _HTTP_STATUS.get(result.error or "", 500)


def respond(result: OperationResult, success_status: int = 200) -> JSONResponse:
    return JSONResponse(status_code=http_status_for(result, success_status), content=result.model_dump(mode="json"))
