"""
Request dependencies and the Result -> HTTP response mapping.
"""

import hmac

from fastapi import Header, HTTPException, Request, status
from fastapi.responses import JSONResponse

import config
from infrastructure.service_container import ServiceContainer
from services import error_codes
from services.result import Result

_STATUS_BY_CODE = {
    error_codes.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    error_codes.PLAYER_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    error_codes.ROUND_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    error_codes.STOCK_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    error_codes.POSITION_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    error_codes.STATE_ERROR: status.HTTP_409_CONFLICT,
    error_codes.ROUND_NOT_ACTIVE: status.HTTP_409_CONFLICT,
    error_codes.DUPLICATE_WAGER: status.HTTP_409_CONFLICT,
    error_codes.ACTIVE_ROUND_EXISTS: status.HTTP_409_CONFLICT,
    error_codes.MAX_ACTIVE_ROUNDS: status.HTTP_409_CONFLICT,
    error_codes.POST_RECENTLY_USED: status.HTTP_409_CONFLICT,
    error_codes.STOCK_INACTIVE: status.HTTP_409_CONFLICT,
    error_codes.INSUFFICIENT_SHARES: status.HTTP_409_CONFLICT,
    error_codes.WELFARE_NOT_ELIGIBLE: status.HTTP_409_CONFLICT,
    error_codes.WELFARE_COOLDOWN: status.HTTP_409_CONFLICT,
    error_codes.EXTERNAL_API_ERROR: status.HTTP_502_BAD_GATEWAY,
    error_codes.NO_ELIGIBLE_POSTS: status.HTTP_503_SERVICE_UNAVAILABLE,
}


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.container


def require_scheduler_token(x_scheduler_token: str | None = Header(default=None)) -> None:
    expected = config.SCHEDULER_TOKEN
    if not expected:
        return
    if not x_scheduler_token or not hmac.compare_digest(x_scheduler_token, expected):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid scheduler token")


def status_for(result: Result) -> int:
    if result.success:
        return status.HTTP_200_OK
    return _STATUS_BY_CODE.get(result.error_code, status.HTTP_400_BAD_REQUEST)


def respond(result: Result) -> JSONResponse:
    """Render a service Result as the {success, error?} envelope."""
    return JSONResponse(status_code=status_for(result), content=result.to_response())
