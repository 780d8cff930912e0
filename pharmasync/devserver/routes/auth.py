"""Auth API - login, logout, token refresh and current user"""
from typing import Optional
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from ..deps import envelope, get_current_user_id, get_state, maybe_fail
from ..state import DevState
from ...utils.logger import get_logger

logger = get_logger(__name__)

router = APIRouter()


# =============================================================================
# Request Models
# =============================================================================

class LoginRequest(BaseModel):
    """Email/password login"""
    email: str
    password: str


class RefreshRequest(BaseModel):
    """Refresh token exchange"""
    refreshToken: str


class LogoutRequest(BaseModel):
    """Refresh token to revoke, if the client has one"""
    refreshToken: Optional[str] = None


# =============================================================================
# Endpoints
# =============================================================================

@router.post("/login")
async def login(body: LoginRequest, state: DevState = Depends(get_state)):
    """Authenticate and return ``{user, accessToken, refreshToken}``"""
    maybe_fail(state, "auth.login")
    user = state.authenticate(body.email, body.password)
    logger.info("User logged in", extra={"actor_id": user["id"]})
    return envelope({
        "user": state.user_payload(user["id"]),
        "accessToken": state.issue_access_token(user["id"]),
        "refreshToken": state.issue_refresh_token(user["id"]),
    }, message="Login successful")


@router.post("/logout")
async def logout(body: Optional[LogoutRequest] = None, state: DevState = Depends(get_state)):
    """Revoke the refresh token; always succeeds"""
    state.revoke_refresh_token(body.refreshToken if body else None)
    return envelope(None, message="Logged out")


@router.post("/refresh")
async def refresh(body: RefreshRequest, state: DevState = Depends(get_state)):
    """Rotate the refresh token and issue a new access token"""
    maybe_fail(state, "auth.refresh")
    user_id = state.rotate_refresh_token(body.refreshToken)
    return envelope({
        "user": state.user_payload(user_id),
        "accessToken": state.issue_access_token(user_id),
        "refreshToken": state.issue_refresh_token(user_id),
    })


@router.get("/me")
async def me(
    user_id: str = Depends(get_current_user_id),
    state: DevState = Depends(get_state)
):
    """Current user with up-to-date pharmacy status"""
    maybe_fail(state, "auth.me")
    return envelope({"user": state.user_payload(user_id)})
