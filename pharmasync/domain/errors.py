"""Domain Errors - Centralized Exception Hierarchy"""
from typing import Any, Dict, Optional


class DomainError(Exception):
    """Base domain error - all errors extend this"""

    error_code: str = "DOMAIN_ERROR"
    http_status: int = 400

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        if error_code:
            self.error_code = error_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to API response dict"""
        return {
            "success": False,
            "message": self.message,
            "code": self.error_code,
            "details": self.details
        }


# Authentication & Authorization Errors
class AuthenticationError(DomainError):
    """Token missing, invalid, or expired"""
    error_code = "AUTHENTICATION_ERROR"
    http_status = 401


class TokenExpiredError(AuthenticationError):
    """Access token is past its expiry"""
    error_code = "TOKEN_EXPIRED"


class MalformedTokenError(AuthenticationError):
    """Token cannot be decoded"""
    error_code = "MALFORMED_TOKEN"


class AuthorizationError(DomainError):
    """Actor lacks permission for action"""
    error_code = "AUTHORIZATION_ERROR"
    http_status = 403


# Session Errors
class SessionError(DomainError):
    """Client session could not be established or used"""
    error_code = "SESSION_ERROR"
    http_status = 401


class SessionRestoreError(SessionError):
    """Persisted session is missing or unusable"""
    error_code = "SESSION_RESTORE_FAILED"


class StaleSessionError(SessionError):
    """Result belongs to a session that has since changed"""
    error_code = "STALE_SESSION"


class CredentialStorageError(SessionError):
    """Persisted credentials could not be read or written"""
    error_code = "CREDENTIAL_STORAGE_ERROR"
    http_status = 500


# Validation Errors
class ValidationError(DomainError):
    """Input validation failed"""
    error_code = "VALIDATION_ERROR"
    http_status = 400


# Not Found Errors
class NotFoundError(DomainError):
    """Resource not found"""
    error_code = "NOT_FOUND"
    http_status = 404


class NotificationNotFoundError(NotFoundError):
    """Notification not found"""
    error_code = "NOTIFICATION_NOT_FOUND"


# Conflict Errors
class ConflictError(DomainError):
    """Resource conflict"""
    error_code = "CONFLICT"
    http_status = 409


class InvalidStateError(ConflictError):
    """Action not valid for current state"""
    error_code = "INVALID_STATE"


class InvalidTransitionError(InvalidStateError):
    """Workflow status transition not allowed"""
    error_code = "INVALID_TRANSITION"


# External Service Errors
class ExternalServiceError(DomainError):
    """Server failure"""
    error_code = "EXTERNAL_SERVICE_ERROR"
    http_status = 502


class TransportError(ExternalServiceError):
    """Server unreachable, timed out, or connection dropped"""
    error_code = "TRANSPORT_ERROR"
    http_status = 503


class ApiResponseError(ExternalServiceError):
    """Server answered with an unusable or unsuccessful payload"""
    error_code = "API_RESPONSE_ERROR"
