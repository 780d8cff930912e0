"""JWT Token Inspection for persisted client sessions

The client cannot verify the server's signature; it only decodes the
token to reject obviously unusable credentials (malformed or expired)
before asking the server to confirm the session.
"""
import jwt
from typing import Any, Dict

from ..domain.errors import MalformedTokenError, TokenExpiredError
from .logger import get_logger

logger = get_logger(__name__)


class TokenInspector:
    """Decode access tokens without signature verification"""

    def __init__(self, leeway_seconds: int = 0):
        self._leeway = leeway_seconds

    def inspect(self, token: str) -> Dict[str, Any]:
        """
        Decode token claims and check expiration

        Args:
            token: Access token (with or without 'Bearer ' prefix)

        Returns:
            Decoded token claims

        Raises:
            MalformedTokenError: If token is missing or undecodable
            TokenExpiredError: If token has expired
        """
        if not token:
            raise MalformedTokenError("Token is missing")

        if token.startswith("Bearer "):
            token = token[7:]

        try:
            return jwt.decode(
                token,
                options={
                    "verify_signature": False,
                    "verify_exp": True,
                    "verify_aud": False,
                    "verify_iss": False,
                },
                leeway=self._leeway,
            )
        except jwt.ExpiredSignatureError:
            logger.info("Persisted access token expired")
            raise TokenExpiredError("Token has expired")
        except jwt.PyJWTError as e:
            logger.warning(f"Persisted access token is malformed: {e}")
            raise MalformedTokenError(f"Invalid token: {str(e)}")
