"""Utility modules"""
from .logger import get_logger, setup_logging, set_correlation_id, get_correlation_id
from .jwt import TokenInspector
from .idgen import generate_id, generate_correlation_id, generate_session_epoch
from .time import utc_now, format_iso, parse_iso

__all__ = [
    "get_logger",
    "setup_logging",
    "set_correlation_id",
    "get_correlation_id",
    "TokenInspector",
    "generate_id",
    "generate_correlation_id",
    "generate_session_epoch",
    "utc_now",
    "format_iso",
    "parse_iso",
]
