# roster/services.py
"""
ROSTER SERVICES - person lookups, instructor pools and the load counter.
"""
import logging
from typing import Any, Dict, Iterable, List, Tuple

from django.conf import settings
from django.db import transaction
from django.db.models import F
from django.db.models.functions import Greatest

from core.exceptions import NotFoundError
from shared.constants import PersonRole, STANDBY_TAG
from shared.utils import decode_expertise, is_standby

from .models import Person

logger = logging.getLogger(__name__)


class RosterService:
    """Read helpers over Person plus the denormalized assignment counter."""

    @staticmethod
    def get_person(person_id, role: str = None) -> Person:
        queryset = Person.objects.all()
        if role:
            queryset = queryset.filter(role=role)
        try:
            return queryset.get(pk=person_id)
        except (Person.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Person {person_id} not found", details={'person_id': person_id})

    @staticmethod
    def serialize_person(person, include_load: bool = False) -> Dict[str, Any]:
        """Boundary shape for a person row; works for model instances and .values() dicts."""
        get = person.get if isinstance(person, dict) else (lambda key: getattr(person, key, None))
        data = {
            'id': get('id'),
            'name': get('name'),
            'role': get('role'),
            'email': get('email'),
            'student_number': get('student_number'),
            'employee_number': get('employee_number'),
            'expertise': decode_expertise(get('expertise')),
        }
        if include_load:
            data['assignment_count'] = get('assignment_count') or 0
        return data

    @staticmethod
    def instructors() -> List[Dict[str, Any]]:
        """All instructors with decoded expertise, one query."""
        rows = Person.objects.filter(role=PersonRole.INSTRUCTOR).order_by('name').values(
            'id', 'name', 'role', 'email', 'student_number', 'employee_number',
            'expertise', 'assignment_count',
        )
        return [RosterService.serialize_person(row, include_load=True) for row in rows]

    @staticmethod
    def split_standby(people: Iterable[Dict[str, Any]]) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
        """Partition serialized people into (regular, standby) pools."""
        marker = getattr(settings, 'CURRICULUM_STANDBY_TAG', STANDBY_TAG)
        regular, standby = [], []
        for person in people:
            (standby if is_standby(person.get('expertise', []), marker) else regular).append(person)
        return regular, standby

    @staticmethod
    def increment_load(person_id) -> None:
        """Best-effort counter bump; drift is tolerated, failures only logged."""
        try:
            with transaction.atomic():
                Person.objects.filter(pk=person_id).update(assignment_count=F('assignment_count') + 1)
        except Exception as e:
            logger.warning(f"Could not increment load counter for person {person_id}: {e}")

    @staticmethod
    def decrement_load(person_id) -> None:
        """Counter decrement floored at zero."""
        try:
            with transaction.atomic():
                Person.objects.filter(pk=person_id).update(
                    assignment_count=Greatest(F('assignment_count') - 1, 0)
                )
        except Exception as e:
            logger.warning(f"Could not decrement load counter for person {person_id}: {e}")
