"""
============================================================================
FILE: __init__.py
LOCATION: api/__init__.py
============================================================================

PURPOSE:
    Package initialization for the KeliLink API.

EXPORTS:
    - RateLimiter, RateLimitResult: Request limiting
    - KeliLinkError and subclasses: Error taxonomy rendered as {"error": ...}

USAGE:
    from api import RateLimiter
    from api.main import app
============================================================================
"""

from .errors import (
    BadRequestError,
    ConfigurationError,
    ConflictError,
    ForbiddenError,
    KeliLinkError,
    NotFoundError,
    RateLimitExceededError,
    UnauthorizedError,
)
from .limiter import RateLimiter, RateLimitResult

__all__ = [
    "BadRequestError",
    "ConfigurationError",
    "ConflictError",
    "ForbiddenError",
    "KeliLinkError",
    "NotFoundError",
    "RateLimitExceededError",
    "RateLimiter",
    "RateLimitResult",
    "UnauthorizedError",
]
