"""ID Generation Utilities"""
import uuid
from datetime import datetime, timezone
from typing import Optional


def generate_id(prefix: Optional[str] = None) -> str:
    """
    Generate a unique ID with optional prefix

    Args:
        prefix: Optional prefix for the ID (e.g., 'SES', 'NTF')

    Returns:
        Unique ID string

    Examples:
        >>> generate_id('SES')
        'SES-a1b2c3d4e5f6'
        >>> generate_id()
        'a1b2c3d4e5f6'
    """
    unique_part = uuid.uuid4().hex[:12]

    if prefix:
        return f"{prefix}-{unique_part}"
    return unique_part


def generate_session_epoch() -> str:
    """Generate session epoch token"""
    return generate_id("SES")


def generate_notification_id() -> str:
    """Generate notification ID"""
    return generate_id("NTF")


def generate_user_id() -> str:
    """Generate user ID"""
    return generate_id("USR")


def generate_correlation_id() -> str:
    """
    Generate a correlation ID for request tracing

    Returns:
        Correlation ID string with timestamp prefix
    """
    timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
    unique_part = uuid.uuid4().hex[:8]
    return f"COR-{timestamp}-{unique_part}"
