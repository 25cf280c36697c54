from .time_format import format_display_time, to_storage_time, is_display_time
from .expertise import decode_expertise, is_standby, matches_any

__all__ = [
    'format_display_time',
    'to_storage_time',
    'is_display_time',
    'decode_expertise',
    'is_standby',
    'matches_any',
]
