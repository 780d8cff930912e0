"""API Client - httpx wrapper for the marketplace REST surface

Every response uses the envelope ``{success, data, message}``. Transport
failures and HTTP errors are mapped onto the domain error hierarchy so
callers only ever handle ``DomainError``.
"""
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple
import httpx

from ..config.settings import Settings, settings as default_settings
from ..domain.errors import (
    DomainError, AuthenticationError, AuthorizationError, NotFoundError, ConflictError,
    ValidationError, ExternalServiceError, TransportError, ApiResponseError
)
from ..utils.idgen import generate_correlation_id
from ..utils.logger import get_logger, get_correlation_id

logger = get_logger(__name__)

TokenProvider = Callable[[], Optional[str]]
UnauthorizedHandler = Callable[[Optional[str]], Awaitable[Optional[str]]]


class ApiClient:
    """Thin async HTTP client with auth header injection and error mapping"""

    # These fail legitimately with 401 and must not trigger a token refresh
    AUTH_ENDPOINTS = (
        "/auth/login",
        "/auth/logout",
        "/auth/refresh",
        "/auth/register",
        "/auth/verify-otp",
        "/auth/forgot-password",
    )

    STATUS_ERRORS = {
        400: ValidationError,
        401: AuthenticationError,
        403: AuthorizationError,
        404: NotFoundError,
        409: ConflictError,
        422: ValidationError,
    }

    def __init__(
        self,
        config: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        base_url: Optional[str] = None
    ):
        config = config or default_settings
        self.base_url = (base_url or config.api_base_url).rstrip("/")
        self.timeout = config.http_timeout_seconds
        self._transport = transport
        self._token_provider: TokenProvider = lambda: None
        self._unauthorized_handler: Optional[UnauthorizedHandler] = None

    def set_token_provider(self, provider: TokenProvider) -> None:
        """Callable returning the current access token (or None)"""
        self._token_provider = provider

    def set_unauthorized_handler(self, handler: Optional[UnauthorizedHandler]) -> None:
        """Coroutine called once on a 401 with the rejected token; returns a fresh token or None"""
        self._unauthorized_handler = handler

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
        )

    def _is_auth_endpoint(self, path: str) -> bool:
        return any(path.startswith(endpoint) for endpoint in self.AUTH_ENDPOINTS)

    async def request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json: Optional[Dict[str, Any]] = None,
        token: Optional[str] = None,
        authenticated: bool = True
    ) -> Any:
        """
        Perform a request and return the unwrapped ``data`` field

        Args:
            method: HTTP method
            path: Path relative to the API base URL
            params: Query parameters
            json: JSON body
            token: Explicit access token (defaults to the token provider)
            authenticated: Send the Authorization header

        Returns:
            Response ``data`` (or the whole body when there is no envelope)

        Raises:
            DomainError: Mapped transport/HTTP/envelope failure
        """
        access_token = token if token is not None else (self._token_provider() if authenticated else None)
        response = await self._send(method, path, params, json, access_token)

        if (
            response.status_code == 401
            and authenticated
            and token is None
            and self._unauthorized_handler is not None
            and not self._is_auth_endpoint(path)
        ):
            logger.info("Access token rejected, attempting refresh", extra={"path": path})
            fresh_token = await self._unauthorized_handler(access_token)
            if fresh_token:
                response = await self._send(method, path, params, json, fresh_token)

        return self._unwrap(response, method, path)

    async def _send(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]],
        json: Optional[Dict[str, Any]],
        access_token: Optional[str]
    ) -> httpx.Response:
        headers = {"X-Correlation-Id": get_correlation_id() or generate_correlation_id()}
        if access_token:
            headers["Authorization"] = f"Bearer {access_token}"

        try:
            async with self._new_client() as client:
                return await client.request(method, path, params=params, json=json, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out: {e}", extra={"path": path})
            raise TransportError("Request timed out", details={"path": path})
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}", extra={"path": path})
            raise TransportError("Server unreachable", details={"path": path, "error": str(e)})

    def _unwrap(self, response: httpx.Response, method: str, path: str) -> Any:
        status_code = response.status_code
        logger.debug(f"{method} {path} -> {status_code}", extra={"path": path, "status_code": status_code})

        body: Any = None
        if response.content:
            try:
                body = response.json()
            except ValueError:
                if status_code < 400:
                    raise ApiResponseError(
                        "Server returned a non-JSON response",
                        details={"path": path, "status_code": status_code}
                    )

        if status_code >= 400:
            message, code = self._error_message(body, status_code)
            error_cls = self.STATUS_ERRORS.get(
                status_code,
                ExternalServiceError if status_code >= 500 else DomainError
            )
            raise error_cls(message, details={"path": path, "status_code": status_code}, error_code=code)

        if isinstance(body, dict):
            if body.get("success") is False:
                message, code = self._error_message(body, status_code)
                raise ApiResponseError(message, details={"path": path}, error_code=code)
            if "data" in body:
                return body["data"]
        return body

    @staticmethod
    def _error_message(body: Any, status_code: int) -> Tuple[str, Optional[str]]:
        if not isinstance(body, dict):
            return f"HTTP {status_code}", None
        error = body.get("error") if isinstance(body.get("error"), dict) else {}
        message = body.get("message") or error.get("message") or body.get("detail") or f"HTTP {status_code}"
        code = body.get("code") or error.get("code")
        return str(message), code

    async def get(self, path: str, **kwargs: Any) -> Any:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> Any:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> Any:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> Any:
        return await self.request("DELETE", path, **kwargs)
