# shared/__init__.py
"""
Shared package - central access to constants and pure helpers.
Avoids importing models or services to prevent circular dependencies.
"""

# Constants
from .constants import (
    STANDBY_TAG,
    MAX_SEMESTER,
    TIME_OPTIONS,
    GroupKind,
    PersonRole,
    PersonStatus,
    AuditAction,
)

# Utilities
from .utils import (
    format_display_time,
    to_storage_time,
    decode_expertise,
    is_standby,
)

__all__ = [
    # Constants
    'STANDBY_TAG',
    'MAX_SEMESTER',
    'TIME_OPTIONS',
    'GroupKind',
    'PersonRole',
    'PersonStatus',
    'AuditAction',

    # Utilities
    'format_display_time',
    'to_storage_time',
    'decode_expertise',
    'is_standby',
]
