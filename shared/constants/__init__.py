# shared/constants/__init__.py
from .model_fields import (
    STANDBY_TAG,
    MAX_SEMESTER,
    TIME_OPTIONS,
    GroupKind,
    PersonRole,
    PersonStatus,
    TermSeason,
    ModuleCategory,
    NonBlockType,
    ScheduleType,
    AuditAction,
)

__all__ = [
    'STANDBY_TAG',
    'MAX_SEMESTER',
    'TIME_OPTIONS',
    'GroupKind',
    'PersonRole',
    'PersonStatus',
    'TermSeason',
    'ModuleCategory',
    'NonBlockType',
    'ScheduleType',
    'AuditAction',
]
