"""Auth Repository - login/logout/refresh/me endpoints"""
from typing import Any, Optional

from .api_client import ApiClient
from ..domain.models import AuthGrant, LoginCredentials
from ..domain.errors import ApiResponseError


class AuthRepository:
    """Session endpoints returning ``{user, accessToken}`` payloads"""

    def __init__(self, api: ApiClient):
        self._api = api

    async def login(self, credentials: LoginCredentials) -> AuthGrant:
        data = await self._api.post("/auth/login", json=credentials.to_payload(), authenticated=False)
        grant = self._grant(data)
        if not grant.access_token:
            raise ApiResponseError("Login response has no access token")
        return grant

    async def logout(self, refresh_token: Optional[str], access_token: Optional[str] = None) -> None:
        await self._api.post(
            "/auth/logout",
            json={"refreshToken": refresh_token} if refresh_token else {},
            token=access_token,
            authenticated=access_token is not None,
        )

    async def refresh(self, refresh_token: str) -> AuthGrant:
        data = await self._api.post(
            "/auth/refresh",
            json={"refreshToken": refresh_token},
            authenticated=False,
        )
        if not isinstance(data, dict) or not data.get("accessToken"):
            raise ApiResponseError("Refresh response has no access token")
        if isinstance(data.get("user"), dict):
            return self._grant(data)
        # Token rotation only
        return AuthGrant(access_token=data["accessToken"], refresh_token=data.get("refreshToken"))

    async def me(self, access_token: Optional[str] = None) -> AuthGrant:
        """Current actor as seen by the server"""
        data = await self._api.get("/auth/me", token=access_token)
        return self._grant(data)

    @staticmethod
    def _grant(data: Any) -> AuthGrant:
        if not isinstance(data, dict):
            raise ApiResponseError("Auth payload is not an object")
        try:
            return AuthGrant.from_payload(data)
        except ValueError as e:
            raise ApiResponseError(f"Auth payload is invalid: {e}")
