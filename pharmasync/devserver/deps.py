"""Dev Server Dependencies - state lookup and bearer authentication"""
from typing import Any, Dict, Optional
from fastapi import Depends, Header, Request

from ..domain.errors import ExternalServiceError
from .state import DevState


def get_state(request: Request) -> DevState:
    return request.app.state.dev_state


async def get_current_user_id(
    authorization: Optional[str] = Header(None),
    state: DevState = Depends(get_state)
) -> str:
    """
    Resolve the caller from the Authorization header

    Raises:
        AuthenticationError: 401 if the token is missing, invalid or expired
    """
    return state.verify_access_token(authorization)


def envelope(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    """Success envelope used by every endpoint"""
    return {"success": True, "data": data, "message": message}


def maybe_fail(state: DevState, route_key: str) -> None:
    """Honour injected failures for a route"""
    if state.consume_failure(route_key):
        raise ExternalServiceError(f"Injected failure for {route_key}", error_code="INJECTED_FAILURE")
