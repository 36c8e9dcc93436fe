"""Rate limiting configuration for API endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from src.config import get_settings


def get_trigger_limit() -> str:
    """Per-client limit for the stage trigger endpoints."""
    return f"{get_settings().rate_limit_per_minute}/minute"


limiter = Limiter(key_func=get_remote_address)
