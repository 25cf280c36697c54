# core/converters.py
"""
URL converters. Term codes contain a slash (2024/1), so routes use these
instead of <str:...>.
"""
from shared.constants import GroupKind


class TermCodeConverter:
    regex = r'[\w.-]+(?:/[\w.-]+)?'

    def to_python(self, value):
        return value

    def to_url(self, value):
        return str(value)


class GroupKindConverter:
    regex = '|'.join(GroupKind.values)

    def to_python(self, value):
        return value

    def to_url(self, value):
        return value
