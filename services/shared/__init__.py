"""
Shared utilities and models for the WorldDAO vote service.

This package contains common code used by the API and the operator scripts:
- Data models (Vote, WinnerResult)
- Tally and tie-break logic
- Address normalization and validation
- Redis key constants
"""

from .models import (
    Vote,
    WinnerResult,
    tally_votes,
    normalize_address,
    validate_address_format,
    get_current_timestamp,
    get_redis_key,
    REDIS_KEYS,
)

__all__ = [
    'Vote',
    'WinnerResult',
    'tally_votes',
    'normalize_address',
    'validate_address_format',
    'get_current_timestamp',
    'get_redis_key',
    'REDIS_KEYS',
]

__version__ = '1.0.0'
