# core/services.py
"""
CORE SERVICES - Term registry, room lookups and the audit sink.
NO circular imports, PROPER error handling, WELL LOGGED
"""
import logging
from dataclasses import dataclass, field
from typing import Optional, List, Dict, Any, Iterable, Union

from django.apps import apps
from django.conf import settings
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import transaction

from shared.constants import MAX_SEMESTER, AuditAction, PersonRole, PersonStatus, TermSeason

from .exceptions import ValidationError, ConflictError, NotFoundError
from .models import Term, Room, AuditEvent, ACADEMIC_YEAR_RE

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger('audit')


# ============ HELPER FUNCTIONS ============

def _get_model(model_name: str, app_label: str = 'core'):
    """Get model lazily to avoid circular imports."""
    try:
        return apps.get_model(app_label, model_name)
    except LookupError as e:
        logger.error(f"Model not found: {app_label}.{model_name} - {e}")
        raise


def actor_name(actor) -> str:
    """Reduce whatever the caller supplied as actor to an opaque string."""
    if actor is None:
        return 'system'
    if hasattr(actor, 'get_username'):
        return actor.get_username() or 'anonymous'
    return str(actor)


# ============ AUDIT SERVICE ============

class AuditService:
    """
    Fire-and-forget audit sink.

    Events are written after the surrounding transaction commits; a failing
    write is logged and never rolls back the mutation it describes.
    """

    @staticmethod
    def record(actor, action: str, target_type: str, target_id, message: str,
               properties: Optional[Dict[str, Any]] = None) -> None:
        payload = {
            'actor': actor_name(actor),
            'action': action,
            'target_type': target_type,
            'target_id': '' if target_id is None else str(target_id),
            'message': message,
            'properties': properties or {},
        }

        def _write():
            try:
                AuditEvent.objects.create(**payload)
                audit_logger.info(
                    f"{payload['actor']} {action} {target_type}:{payload['target_id']} - {message}"
                )
            except Exception as e:
                logger.error(f"Audit write failed for {target_type}:{payload['target_id']}: {e}", exc_info=True)

        transaction.on_commit(_write)


# ============ TERM SERVICE ============

@dataclass
class StudentTermChange:
    person_id: int
    name: str
    old_semester: int
    new_semester: int
    graduates: bool = False

    def as_dict(self) -> Dict[str, Any]:
        return {
            'person_id': self.person_id,
            'name': self.name,
            'old_semester': self.old_semester,
            'new_semester': self.new_semester,
            'graduates': self.graduates,
        }


@dataclass
class ActivationPlan:
    """Diff computed by plan_activation; nothing is written until apply."""
    term: Term
    previous_term: Optional[Term]
    changes: List[StudentTermChange] = field(default_factory=list)

    @property
    def graduated_count(self) -> int:
        return sum(1 for change in self.changes if change.graduates)

    @property
    def updated_count(self) -> int:
        return len(self.changes) - self.graduated_count

    def as_dict(self) -> Dict[str, Any]:
        return {
            'term': self.term.code,
            'previous_term': self.previous_term.code if self.previous_term else None,
            'updated_count': self.updated_count,
            'graduated_count': self.graduated_count,
            'changes': [change.as_dict() for change in self.changes],
        }


class TermService:
    """Term registry: lookups, academic year creation and activation."""

    @staticmethod
    def get_active_term() -> Optional[Term]:
        return Term.objects.filter(is_active=True).first()

    @staticmethod
    def resolve(term: Union[Term, str, None]) -> Term:
        """
        Resolve a Term instance or term code. None means the active term.

        Raises:
            NotFoundError: If the term does not exist or no term is active
        """
        if isinstance(term, Term):
            return term
        if term is None or term == '':
            active = TermService.get_active_term()
            if not active:
                raise NotFoundError("No active term")
            return active
        try:
            return Term.objects.get(code=str(term))
        except Term.DoesNotExist:
            raise NotFoundError(f"Term '{term}' not found", details={'term': str(term)})

    @staticmethod
    def create_academic_year(academic_year: str, actor=None) -> List[Term]:
        """
        Create the odd and even terms of an academic year, both inactive.

        Raises:
            ValidationError: If the year is not formatted YYYY/YYYY
            ConflictError: If the academic year already exists
        """
        academic_year = (academic_year or '').strip()
        match = ACADEMIC_YEAR_RE.match(academic_year)
        if not match or int(match.group(2)) != int(match.group(1)) + 1:
            raise ValidationError(
                "Academic year must look like 2024/2025",
                details={'academic_year': academic_year},
            )

        if Term.objects.filter(academic_year=academic_year).exists():
            raise ConflictError(
                f"Academic year {academic_year} already exists",
                details={'academic_year': academic_year},
            )

        try:
            with transaction.atomic():
                terms = [
                    Term.objects.create(academic_year=academic_year, season=season)
                    for season in (TermSeason.ODD, TermSeason.EVEN)
                ]
        except DjangoValidationError as e:
            raise ConflictError(f"Cannot create academic year: {e}", details={'academic_year': academic_year})

        AuditService.record(
            actor, AuditAction.CREATE, 'academic_year', academic_year,
            f"Created academic year {academic_year} with {len(terms)} terms",
        )
        logger.info(f"Academic year created: {academic_year}")
        return terms

    @staticmethod
    def calculate_semester(entry_term: Optional[Term], active_term: Term,
                           fallback: Optional[int] = None) -> int:
        """
        Study semester of a student in active_term: terms elapsed since entry + 1.
        Not clamped; callers decide what exceeding the maximum means.
        """
        if entry_term is None:
            return fallback or 1
        return max(1, active_term.sequence - entry_term.sequence + 1)

    @staticmethod
    def plan_activation(term: Union[Term, str]) -> ActivationPlan:
        """
        Phase one of activation: compute per-student diffs without writing.
        """
        term = TermService.resolve(term)
        Person = _get_model('Person', 'roster')
        max_semester = getattr(settings, 'CURRICULUM_MAX_SEMESTER', MAX_SEMESTER)

        plan = ActivationPlan(term=term, previous_term=TermService.get_active_term())

        students = Person.objects.filter(
            role=PersonRole.STUDENT,
            status=PersonStatus.ACTIVE,
        ).select_related('entry_term').order_by('name')

        for student in students:
            old_semester = student.semester_number or 1
            new_semester = TermService.calculate_semester(student.entry_term, term, fallback=old_semester)
            graduates = new_semester > max_semester
            if graduates:
                new_semester = max_semester
            if graduates or new_semester != old_semester or student.current_term_id != term.id:
                plan.changes.append(StudentTermChange(
                    person_id=student.id,
                    name=student.name,
                    old_semester=old_semester,
                    new_semester=new_semester,
                    graduates=graduates,
                ))

        logger.debug(
            f"Activation plan for {term.code}: {plan.updated_count} updates, {plan.graduated_count} graduations"
        )
        return plan

    @staticmethod
    def apply_activation(plan: ActivationPlan, actor=None) -> Dict[str, Any]:
        """
        Phase two: flip exactly one active flag and apply the planned diffs.

        Raises:
            NotFoundError: If the planned term disappeared in the meantime
        """
        Person = _get_model('Person', 'roster')

        with transaction.atomic():
            try:
                term = Term.objects.select_for_update().get(pk=plan.term.pk)
            except Term.DoesNotExist:
                raise NotFoundError(f"Term '{plan.term.code}' not found")

            Term.objects.filter(is_active=True).exclude(pk=term.pk).update(is_active=False)
            if not term.is_active:
                term.is_active = True
                term.save(update_fields=['is_active', 'updated_at'])

            changes = {change.person_id: change for change in plan.changes}
            students = list(Person.objects.select_for_update().filter(pk__in=changes.keys()))
            for student in students:
                change = changes[student.pk]
                student.semester_number = change.new_semester
                if change.graduates:
                    student.status = PersonStatus.GRADUATED
                else:
                    student.current_term = term
            Person.objects.bulk_update(students, ['semester_number', 'status', 'current_term'])

        summary = {
            'term': term.code,
            'previous_term': plan.previous_term.code if plan.previous_term else None,
            'updated_count': plan.updated_count,
            'graduated_count': plan.graduated_count,
        }
        AuditService.record(
            actor, AuditAction.ACTIVATE, 'term', term.code,
            f"Activated term {term.code}: {plan.updated_count} students moved, "
            f"{plan.graduated_count} graduated",
            properties=summary,
        )
        logger.info(f"Term activated: {term.code} (previous: {summary['previous_term']})")
        return summary

    @staticmethod
    def activate(term: Union[Term, str], actor=None) -> Dict[str, Any]:
        return TermService.apply_activation(TermService.plan_activation(term), actor=actor)


# ============ ROOM SERVICE ============

class RoomService:
    """Pure capacity filters over the room table."""

    @staticmethod
    def _capacity_queryset(capacity, exclude_ids: Optional[Iterable[int]] = None):
        try:
            capacity = int(capacity or 0)
        except (TypeError, ValueError):
            raise ValidationError("Capacity must be an integer", details={'capacity': capacity})
        if capacity < 0:
            raise ValidationError("Capacity cannot be negative", details={'capacity': capacity})

        queryset = Room.objects.filter(capacity__gte=capacity)
        if exclude_ids:
            queryset = queryset.exclude(pk__in=list(exclude_ids))
        return queryset.order_by('capacity', 'name')

    @staticmethod
    def rooms_by_capacity(capacity, exclude_ids: Optional[Iterable[int]] = None) -> List[Dict[str, Any]]:
        """Rooms holding at least `capacity` people, smallest first."""
        return list(
            RoomService._capacity_queryset(capacity, exclude_ids)
            .values('id', 'name', 'capacity', 'building')
        )

    @staticmethod
    def room_options(capacity, exclude_ids: Optional[Iterable[int]] = None) -> List[Dict[str, Any]]:
        return [
            {'value': room.id, 'label': room.option_label}
            for room in RoomService._capacity_queryset(capacity, exclude_ids)
        ]
