# grouping/services.py
"""
GROUP STORE SERVICES - replace, generate and edit student groups per term.
Validation runs before any write; the membership unique constraint is authoritative.
"""
import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count

from core.exceptions import ValidationError, ConflictError, NotFoundError
from core.services import AuditService, TermService
from roster.models import Person
from shared.constants import AuditAction, GroupKind, PersonRole
from shared.helpers import get_group_reference_cleanup

from .models import Group, GroupMembership, IntersessionGroup, IntersessionMembership

logger = logging.getLogger(__name__)

MALE_VALUES = ('m', 'male', 'l', 'laki-laki')
FEMALE_VALUES = ('f', 'female', 'p', 'perempuan')


# ============ HELPER FUNCTIONS ============

def _validate_kind(kind) -> str:
    if kind not in GroupKind.values:
        raise ValidationError(
            f"Unknown group kind '{kind}'",
            details={'kind': kind, 'allowed': list(GroupKind.values)},
        )
    return kind


def _to_ids(values, field_name='member_ids') -> List[int]:
    """Coerce to unique ints preserving order."""
    if values is None:
        return []
    if isinstance(values, (str, bytes)) or not isinstance(values, Iterable):
        raise ValidationError(f"{field_name} must be a list", details={field_name: values})
    try:
        return list(OrderedDict.fromkeys(int(value) for value in values))
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must contain integers", details={field_name: list(values)})


def _gender_bucket(gender) -> int:
    value = (gender or '').strip().lower()
    if value in MALE_VALUES:
        return 0
    if value in FEMALE_VALUES:
        return 1
    return 2


def serialize_member(person) -> Dict[str, Any]:
    return {
        'id': person.id,
        'name': person.name,
        'student_number': person.student_number,
        'gender': person.gender,
        'gpa': float(person.gpa) if person.gpa is not None else None,
        'cohort': person.cohort,
    }


def serialize_group(group: Group, include_members: bool = True) -> Dict[str, Any]:
    memberships = list(group.memberships.all())
    data = {
        'id': group.id,
        'term': group.term.code,
        'kind': group.kind,
        'name': group.name,
        'member_ids': sorted(m.person_id for m in memberships),
        'member_count': len(memberships),
    }
    if include_members:
        data['members'] = sorted(
            (serialize_member(m.person) for m in memberships),
            key=lambda member: member['name'],
        )
    return data


# ============ GROUP SERVICE ============

class GroupService:
    """Owns Group and GroupMembership rows."""

    @staticmethod
    def _groups(term, kind):
        return (
            Group.objects.filter(term=term, kind=kind)
            .select_related('term')
            .prefetch_related('memberships__person')
            .order_by('name')
        )

    @staticmethod
    def get_by_term(term, kind: str, include_members: bool = True) -> List[Dict[str, Any]]:
        term = TermService.resolve(term)
        _validate_kind(kind)
        return [serialize_group(group, include_members) for group in GroupService._groups(term, kind)]

    @staticmethod
    def group_names(term, kind: str) -> List[str]:
        return list(
            Group.objects.filter(term=term, kind=kind).order_by('name').values_list('name', flat=True)
        )

    @staticmethod
    def get_group(group_id) -> Group:
        try:
            return Group.objects.select_related('term').get(pk=group_id)
        except (Group.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Group {group_id} not found", details={'group_id': group_id})

    @staticmethod
    def members_by_group(term, kind: str, names: Iterable[str]) -> Dict[str, List[Dict[str, Any]]]:
        """Members of several groups in one query, keyed by group name."""
        names = list(names)
        result = OrderedDict((name, []) for name in names)
        memberships = (
            GroupMembership.objects.filter(term=term, kind=kind, group__name__in=names)
            .select_related('group', 'person')
            .order_by('person__name')
        )
        for membership in memberships:
            result[membership.group.name].append(serialize_member(membership.person))
        return result

    # ============ REPLACE ============

    @staticmethod
    def _normalize_batch(groups) -> List[tuple]:
        """
        Validate a submitted batch: names present and unique, no student in two groups.

        Raises:
            ValidationError: Describing the first problem found
        """
        normalized = []
        owners: Dict[int, str] = {}
        duplicates: Dict[str, List[str]] = {}

        for index, entry in enumerate(groups or []):
            if not isinstance(entry, dict):
                raise ValidationError("Each group must be an object", details={'index': index})
            name = str(entry.get('name') or '').strip()
            if not name:
                raise ValidationError("Group name is required", details={'index': index})
            if any(name == existing for existing, _ in normalized):
                raise ValidationError(f"Group name '{name}' is used twice", details={'name': name})

            member_ids = _to_ids(entry.get('member_ids', []))
            for person_id in member_ids:
                if person_id in owners:
                    duplicates.setdefault(str(person_id), [owners[person_id]]).append(name)
                else:
                    owners[person_id] = name
            normalized.append((name, member_ids))

        if duplicates:
            logger.warning(f"Group batch rejected, students in several groups: {duplicates}")
            raise ValidationError(
                "Some students appear in more than one group",
                details={'duplicates': duplicates},
            )
        return normalized

    @staticmethod
    def _check_students(person_ids: Iterable[int]) -> None:
        person_ids = set(person_ids)
        if not person_ids:
            return
        found = set(
            Person.objects.filter(pk__in=person_ids, role=PersonRole.STUDENT).values_list('id', flat=True)
        )
        missing = sorted(person_ids - found)
        if missing:
            raise ValidationError("Unknown students", details={'person_ids': missing})

    @staticmethod
    def replace_groups(term, kind: str, groups: List[Dict[str, Any]], actor=None,
                       exclusive_across_kinds: bool = False) -> List[Dict[str, Any]]:
        """
        Atomically replace every group of `kind` in `term`.

        Args:
            groups: [{'name': str, 'member_ids': [int]}]
            exclusive_across_kinds: Also reject students already grouped under the other kind

        Returns:
            The stored groups of that kind

        Raises:
            ValidationError: Malformed batch or a student in two submitted groups
            ConflictError: Overlap with persisted groups
        """
        term = TermService.resolve(term)
        _validate_kind(kind)
        normalized = GroupService._normalize_batch(groups)
        all_ids = [person_id for _, member_ids in normalized for person_id in member_ids]
        GroupService._check_students(all_ids)

        if exclusive_across_kinds and all_ids:
            taken = list(
                GroupMembership.objects.filter(term=term, person_id__in=all_ids)
                .exclude(kind=kind)
                .values_list('person_id', 'group__name')
            )
            if taken:
                logger.warning(f"Group replace in {term.code} collides with other kinds: {taken}")
                raise ConflictError(
                    "Some students already belong to another group in this term",
                    details={'conflicts': {str(pid): name for pid, name in taken}},
                )

        new_names = {name for name, _ in normalized}
        previous_names = set(Group.objects.filter(term=term, kind=kind).values_list('name', flat=True))
        released = previous_names - new_names

        try:
            with transaction.atomic():
                Group.objects.filter(term=term, kind=kind).delete()
                if released:
                    get_group_reference_cleanup()(term, kind, released)

                memberships = []
                for name, member_ids in normalized:
                    group = Group.objects.create(term=term, kind=kind, name=name)
                    memberships.extend(
                        GroupMembership(group=group, term=term, kind=kind, person_id=person_id)
                        for person_id in member_ids
                    )
                GroupMembership.objects.bulk_create(memberships)
        except IntegrityError as e:
            logger.warning(f"Group replace in {term.code}/{kind} hit a constraint: {e}")
            raise ConflictError(
                "Group membership changed concurrently, please retry",
                details={'term': term.code, 'kind': kind},
            )

        AuditService.record(
            actor, AuditAction.REPLACE, 'group_set', f"{term.code}:{kind}",
            f"Replaced {kind} groups of {term.code}: {len(normalized)} groups, {len(all_ids)} students",
            properties={'groups': sorted(new_names), 'released': sorted(released)},
        )
        logger.info(f"{kind.title()} groups replaced for {term.code}: {len(normalized)} groups")
        return GroupService.get_by_term(term, kind)

    @staticmethod
    def generate_small_groups(term, student_ids, group_count, actor=None) -> List[Dict[str, Any]]:
        """
        Deal students into `group_count` small groups named "1".."N".

        Students are split by gender, each half sorted by GPA descending and
        dealt round robin so groups stay balanced. Replaces the term's small groups.

        Raises:
            ValidationError: Bad count, no large groups, or students outside the large groups
        """
        term = TermService.resolve(term)
        student_ids = _to_ids(student_ids, 'student_ids')
        try:
            group_count = int(group_count)
        except (TypeError, ValueError):
            raise ValidationError("group_count must be an integer", details={'group_count': group_count})

        if group_count < 1:
            raise ValidationError("group_count must be at least 1", details={'group_count': group_count})
        if not student_ids:
            raise ValidationError("No students selected")
        if group_count > len(student_ids):
            raise ValidationError(
                "More groups than students",
                details={'group_count': group_count, 'students': len(student_ids)},
            )

        if not Group.objects.filter(term=term, kind=GroupKind.LARGE).exists():
            raise ValidationError(
                f"Create the large groups of {term.code} first",
                details={'term': term.code},
            )
        in_large = set(
            GroupMembership.objects.filter(term=term, kind=GroupKind.LARGE, person_id__in=student_ids)
            .values_list('person_id', flat=True)
        )
        outside = [pid for pid in student_ids if pid not in in_large]
        if outside:
            logger.warning(f"Small group generation in {term.code} rejected, not in large groups: {outside}")
            raise ValidationError(
                "Some students are not in a large group of this term",
                details={'person_ids': outside},
            )

        students = list(Person.objects.filter(pk__in=student_ids, role=PersonRole.STUDENT))
        buckets = {0: [], 1: [], 2: []}
        for student in students:
            buckets[_gender_bucket(student.gender)].append(student)

        dealt = [[] for _ in range(group_count)]
        for bucket in (buckets[0], buckets[1], buckets[2]):
            ordered = sorted(bucket, key=lambda s: (-(s.gpa or 0), s.name, s.id))
            for index, student in enumerate(ordered):
                dealt[index % group_count].append(student.id)

        payload = [{'name': str(index + 1), 'member_ids': members} for index, members in enumerate(dealt)]
        logger.info(f"Generating {group_count} small groups for {term.code} from {len(students)} students")
        return GroupService.replace_groups(term, GroupKind.SMALL, payload, actor=actor)

    # ============ SINGLE MEMBER EDITS ============

    @staticmethod
    def add_member(term, kind: str, group_name: str, person_id, actor=None) -> Dict[str, Any]:
        """
        Put one student into a named group, creating the group if needed.

        Raises:
            NotFoundError: Unknown student
            ConflictError: Student already grouped in this term and kind
            ValidationError: Small group member missing from the large groups
        """
        term = TermService.resolve(term)
        _validate_kind(kind)
        group_name = str(group_name or '').strip()
        if not group_name:
            raise ValidationError("Group name is required")

        try:
            person = Person.objects.get(pk=person_id, role=PersonRole.STUDENT)
        except (Person.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Student {person_id} not found", details={'person_id': person_id})

        existing = GroupMembership.objects.filter(term=term, kind=kind, person=person).select_related('group').first()
        if existing:
            raise ConflictError(
                f"{person.name} is already in {kind} group {existing.group.name}",
                details={'person_id': person.id, 'group': existing.group.name},
            )
        if kind == GroupKind.SMALL and not GroupMembership.objects.filter(
            term=term, kind=GroupKind.LARGE, person=person
        ).exists():
            raise ValidationError(
                f"{person.name} must join a large group of {term.code} first",
                details={'person_id': person.id},
            )

        try:
            with transaction.atomic():
                group, _ = Group.objects.get_or_create(term=term, kind=kind, name=group_name)
                GroupMembership.objects.create(group=group, term=term, kind=kind, person=person)
        except IntegrityError:
            raise ConflictError(
                f"{person.name} was grouped concurrently, please retry",
                details={'person_id': person.id},
            )

        AuditService.record(
            actor, AuditAction.CREATE, 'group_member', person.id,
            f"Added {person.name} to {kind} group {group_name} ({term.code})",
        )
        logger.info(f"Student {person.id} added to {kind} group {group_name} in {term.code}")
        return serialize_group(GroupService._groups(term, kind).get(pk=group.pk))

    @staticmethod
    def remove_member(term, kind: str, person_id, actor=None) -> int:
        """
        Remove a student from their group of `kind`. Leaving a large group
        also drops the student from the term's small groups.

        Returns:
            Number of memberships removed
        """
        term = TermService.resolve(term)
        _validate_kind(kind)
        kinds = list(GroupKind.values) if kind == GroupKind.LARGE else [kind]

        with transaction.atomic():
            queryset = GroupMembership.objects.filter(term=term, person_id=person_id, kind__in=kinds)
            if not queryset.filter(kind=kind).exists():
                raise NotFoundError(
                    f"Student {person_id} is not in a {kind} group of {term.code}",
                    details={'person_id': person_id},
                )
            removed, _ = queryset.delete()

        AuditService.record(
            actor, AuditAction.DELETE, 'group_member', person_id,
            f"Removed student {person_id} from {kind} groups of {term.code}",
        )
        logger.info(f"Student {person_id} removed from {kind} groups in {term.code} ({removed} rows)")
        return removed

    @staticmethod
    def move_members(term, kind: str, moves: List[Dict[str, Any]], actor=None) -> List[Dict[str, Any]]:
        """
        Move several already grouped students to other named groups in one transaction.
        Target groups are created when missing; emptied groups are kept.

        Args:
            moves: [{'person_id': int, 'group_name': str}]

        Returns:
            The stored groups of that kind

        Raises:
            ValidationError: Malformed move or the same student listed twice
            NotFoundError: A student is not grouped in this term and kind
            ConflictError: Membership changed concurrently
        """
        term = TermService.resolve(term)
        _validate_kind(kind)

        targets: Dict[int, str] = OrderedDict()
        for index, move in enumerate(moves or []):
            if not isinstance(move, dict):
                raise ValidationError("Each move must be an object", details={'index': index})
            person_id = _to_ids([move.get('person_id')], 'person_id')[0]
            group_name = str(move.get('group_name') or '').strip()
            if not group_name:
                raise ValidationError("Group name is required", details={'index': index})
            if person_id in targets:
                raise ValidationError(
                    f"Student {person_id} is moved twice",
                    details={'person_id': person_id},
                )
            targets[person_id] = group_name
        if not targets:
            raise ValidationError("No moves given")

        try:
            with transaction.atomic():
                memberships = {
                    m.person_id: m
                    for m in GroupMembership.objects.select_for_update()
                    .filter(term=term, kind=kind, person_id__in=list(targets))
                    .select_related('group')
                }
                missing = [pid for pid in targets if pid not in memberships]
                if missing:
                    raise NotFoundError(
                        f"Some students are not in a {kind} group of {term.code}",
                        details={'person_ids': missing},
                    )

                groups = {}
                for name in set(targets.values()):
                    groups[name], _ = Group.objects.get_or_create(term=term, kind=kind, name=name)

                moved = []
                for person_id, name in targets.items():
                    membership = memberships[person_id]
                    if membership.group.name == name:
                        continue
                    membership.group = groups[name]
                    moved.append(membership)
                GroupMembership.objects.bulk_update(moved, ['group'])
        except IntegrityError as e:
            logger.warning(f"Member move in {term.code}/{kind} hit a constraint: {e}")
            raise ConflictError(
                "Group membership changed concurrently, please retry",
                details={'term': term.code, 'kind': kind},
            )

        AuditService.record(
            actor, AuditAction.UPDATE, 'group_set', f"{term.code}:{kind}",
            f"Moved {len(moved)} students between {kind} groups of {term.code}",
            properties={'moves': {str(pid): name for pid, name in targets.items()}},
        )
        logger.info(f"{len(moved)} students moved between {kind} groups in {term.code}")
        return GroupService.get_by_term(term, kind)

    @staticmethod
    def delete_group(group_id, actor=None) -> None:
        """
        Delete one group and, in the same transaction, every class link and
        module mapping that references it by name.
        """
        group = GroupService.get_group(group_id)
        term, kind, name = group.term, group.kind, group.name

        with transaction.atomic():
            released = get_group_reference_cleanup()(term, kind, [name])
            group.delete()

        AuditService.record(
            actor, AuditAction.DELETE, 'group', group_id,
            f"Deleted {kind} group {name} of {term.code}",
            properties={'released_links': released},
        )
        logger.info(f"Group deleted: {term.code}/{kind}/{name} ({released} links released)")

    # ============ READ MODELS ============

    @staticmethod
    def group_stats(term, kind: str) -> Dict[str, Any]:
        term = TermService.resolve(term)
        _validate_kind(kind)
        rows = list(
            Group.objects.filter(term=term, kind=kind)
            .annotate(member_count=Count('memberships'))
            .order_by('name')
            .values('id', 'name', 'member_count')
        )
        return {
            'term': term.code,
            'kind': kind,
            'group_count': len(rows),
            'member_count': sum(row['member_count'] for row in rows),
            'groups': rows,
        }

    @staticmethod
    def batch_by_terms(term_codes: Iterable[str], kind: str) -> Dict[str, List[Dict[str, Any]]]:
        """Groups of several terms in one round trip; unknown codes map to empty lists."""
        _validate_kind(kind)
        term_codes = [str(code) for code in term_codes]
        result = OrderedDict((code, []) for code in term_codes)
        groups = (
            Group.objects.filter(term__code__in=term_codes, kind=kind)
            .select_related('term')
            .prefetch_related('memberships__person')
            .order_by('term__sequence', 'name')
        )
        for group in groups:
            result[group.term.code].append(serialize_group(group))
        return result

    @staticmethod
    def batch_detail(term, names: Iterable[str], kind: str = GroupKind.SMALL) -> List[Dict[str, Any]]:
        """Summary rows for the requested names, in request order; missing names get id None."""
        term = TermService.resolve(term)
        _validate_kind(kind)
        names = [str(name) for name in names]
        found = {
            row['name']: row
            for row in Group.objects.filter(term=term, kind=kind, name__in=names)
            .annotate(member_count=Count('memberships'))
            .values('id', 'name', 'member_count')
        }
        return [
            {
                'id': found[name]['id'] if name in found else None,
                'name': name,
                'term': term.code,
                'kind': kind,
                'member_count': found[name]['member_count'] if name in found else 0,
            }
            for name in names
        ]


# ============ INTERSESSION GROUPS ============

def serialize_intersession_group(group: IntersessionGroup, include_members: bool = True) -> Dict[str, Any]:
    memberships = list(group.memberships.all())
    data = {
        'id': group.id,
        'kind': group.kind,
        'name': group.name,
        'member_ids': sorted(m.person_id for m in memberships),
        'member_count': len(memberships),
    }
    if include_members:
        data['members'] = sorted(
            (serialize_member(m.person) for m in memberships),
            key=lambda member: member['name'],
        )
    return data


class IntersessionGroupService:
    """
    Intersession semester groups. One pool per kind, no term scope; a student
    sits in at most one intersession group of each kind.
    """

    @staticmethod
    def _groups(kind):
        return IntersessionGroup.objects.filter(kind=kind).prefetch_related('memberships__person')

    @staticmethod
    def get_group(group_id) -> IntersessionGroup:
        try:
            return IntersessionGroup.objects.get(pk=group_id)
        except (IntersessionGroup.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Intersession group {group_id} not found", details={'group_id': group_id})

    @staticmethod
    def list_groups(kind: str) -> List[Dict[str, Any]]:
        _validate_kind(kind)
        return [serialize_intersession_group(group) for group in IntersessionGroupService._groups(kind)]

    @staticmethod
    def get_by_name(kind: str, name: str) -> Dict[str, Any]:
        _validate_kind(kind)
        name = str(name or '').strip()
        if not name:
            raise ValidationError("Group name is required")
        group = IntersessionGroupService._groups(kind).filter(name=name).first()
        if group is None:
            raise NotFoundError(f"Intersession group {name} not found", details={'name': name})
        return serialize_intersession_group(group)

    @staticmethod
    def _validate(kind: str, name: str, member_ids, group: Optional[IntersessionGroup] = None):
        name = str(name or '').strip()
        if not name:
            raise ValidationError("Group name is required")
        member_ids = _to_ids(member_ids)
        if not member_ids:
            raise ValidationError("An intersession group needs at least one student")
        GroupService._check_students(member_ids)

        others = IntersessionMembership.objects.filter(kind=kind, person_id__in=member_ids)
        same_name = IntersessionGroup.objects.filter(kind=kind, name=name)
        if group is not None:
            others = others.exclude(group=group)
            same_name = same_name.exclude(pk=group.pk)

        taken = dict(others.values_list('person_id', 'group__name'))
        if taken:
            logger.warning(f"Intersession {kind} group '{name}' rejected, students already grouped: {taken}")
            raise ConflictError(
                "Some students already belong to another intersession group",
                details={'conflicts': {str(pid): group_name for pid, group_name in taken.items()}},
            )
        if same_name.exists():
            raise ConflictError(
                f"Intersession {kind} group '{name}' already exists",
                details={'name': name},
            )
        return name, member_ids

    @staticmethod
    def save_group(kind: str, name: str, member_ids, group_id=None, actor=None) -> Dict[str, Any]:
        """
        Create an intersession group, or replace name and members when group_id is given.

        Raises:
            ValidationError: Blank name, no members or unknown students
            ConflictError: A student is in another group of the kind, or the name is taken
            NotFoundError: group_id does not exist
        """
        group = IntersessionGroupService.get_group(group_id) if group_id else None
        kind = group.kind if group else kind
        _validate_kind(kind)
        name, member_ids = IntersessionGroupService._validate(kind, name, member_ids, group)

        try:
            with transaction.atomic():
                if group:
                    group.name = name
                    group.save()
                    group.memberships.all().delete()
                else:
                    group = IntersessionGroup.objects.create(kind=kind, name=name)
                IntersessionMembership.objects.bulk_create([
                    IntersessionMembership(group=group, kind=kind, person_id=person_id)
                    for person_id in member_ids
                ])
        except IntegrityError as e:
            logger.warning(f"Intersession {kind} group '{name}' hit a constraint: {e}")
            raise ConflictError(
                "Intersession groups changed concurrently, please retry",
                details={'name': name},
            )

        action = AuditAction.UPDATE if group_id else AuditAction.CREATE
        AuditService.record(
            actor, action, 'intersession_group', group.id,
            f"Intersession {kind} group {name} saved with {len(member_ids)} students",
        )
        logger.info(f"Intersession {kind} group {name} saved ({len(member_ids)} students)")
        return serialize_intersession_group(IntersessionGroupService._groups(kind).get(pk=group.pk))

    @staticmethod
    def delete_group(group_id, actor=None) -> None:
        group = IntersessionGroupService.get_group(group_id)
        kind, name = group.kind, group.name
        group.delete()

        AuditService.record(
            actor, AuditAction.DELETE, 'intersession_group', group_id,
            f"Deleted intersession {kind} group {name}",
        )
        logger.info(f"Intersession {kind} group deleted: {name}")
