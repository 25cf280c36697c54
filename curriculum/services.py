# curriculum/services.py
"""
CURRICULUM SERVICES - class binding, module group mapping and expertise assignment.
Every write validates first, then replaces rows inside one transaction.
Unique constraints on the link tables are authoritative; IntegrityError becomes ConflictError.
"""
import logging
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Count

from core.exceptions import ValidationError, ConflictError, NotFoundError
from core.models import Term
from core.services import AuditService, TermService
from grouping.models import Group
from grouping.services import GroupService
from roster.services import RosterService
from shared.constants import AuditAction, GroupKind, ModuleCategory, PersonRole

from .models import (
    Module,
    ClassBinding,
    ClassGroupLink,
    ModuleGroupMapping,
    ClinicalSkillModule,
    ExpertiseAssignment,
)

logger = logging.getLogger(__name__)


# ============ HELPER FUNCTIONS ============

def _clean_names(names) -> List[str]:
    """Strip, drop blanks and de-duplicate group names preserving order."""
    if names is None:
        return []
    if isinstance(names, str) or not isinstance(names, Iterable):
        raise ValidationError("group_names must be a list", details={'group_names': names})
    return list(OrderedDict.fromkeys(str(name).strip() for name in names if str(name).strip()))


def _check_groups_exist(term, kind: str, names: List[str]) -> None:
    """
    Raises:
        ValidationError: If the term has no groups of `kind` or some names are unknown
    """
    existing = set(GroupService.group_names(term, kind))
    if not existing:
        raise ValidationError(
            f"No {kind} groups exist in {term.code}",
            details={'term': term.code, 'kind': kind},
        )
    missing = [name for name in names if name not in existing]
    if missing:
        raise ValidationError(
            "Groups not found in this term",
            details={'term': term.code, 'missing': missing},
        )


def release_group_names(term, kind: str, names: Iterable[str]) -> int:
    """
    Drop class links and module mappings that point at the given group names.
    Called by the group store inside its own transaction when groups disappear.
    """
    names = list(names)
    if not names:
        return 0
    links, _ = ClassGroupLink.objects.filter(term=term, group_kind=kind, group_name__in=names).delete()
    mappings, _ = ModuleGroupMapping.objects.filter(term=term, group_kind=kind, group_name__in=names).delete()
    if links or mappings:
        logger.info(f"Released {links} class links and {mappings} module mappings for {term.code}/{kind}: {names}")
    return links + mappings


# ============ CLASS BINDING SERVICE ============

def serialize_binding(binding: ClassBinding) -> Dict[str, Any]:
    return {
        'id': binding.id,
        'term': binding.term.code,
        'name': binding.name,
        'description': binding.description,
        'group_kind': binding.group_kind,
        'group_names': sorted(link.group_name for link in binding.links.all()),
    }


class ClassBindingService:
    """Exclusive assignment of groups to classes within a term."""

    @staticmethod
    def get_binding(binding_id) -> ClassBinding:
        try:
            return ClassBinding.objects.select_related('term').prefetch_related('links').get(pk=binding_id)
        except (ClassBinding.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(f"Class {binding_id} not found", details={'class_id': binding_id})

    @staticmethod
    def list_by_term(term) -> List[Dict[str, Any]]:
        term = TermService.resolve(term)
        bindings = (
            ClassBinding.objects.filter(term=term)
            .select_related('term')
            .prefetch_related('links')
            .order_by('name')
        )
        return [serialize_binding(binding) for binding in bindings]

    @staticmethod
    def bind(term, class_name: str, group_names, description: str = '',
             group_kind: Optional[str] = None, binding_id=None, actor=None) -> Dict[str, Any]:
        """
        Create a class, or update one when binding_id is given, replacing its group list.

        Raises:
            ValidationError: Blank class name, unknown groups or no groups in the term
            ConflictError: A group is bound to another class, or the class name is taken
            NotFoundError: binding_id does not exist
        """
        binding = ClassBindingService.get_binding(binding_id) if binding_id else None
        term = binding.term if binding else TermService.resolve(term)
        kind = group_kind or (binding.group_kind if binding else GroupKind.SMALL)
        if kind not in GroupKind.values:
            raise ValidationError(f"Unknown group kind '{kind}'", details={'group_kind': kind})

        class_name = (class_name or '').strip()
        if not class_name:
            raise ValidationError("Class name is required", details={'name': class_name})
        names = _clean_names(group_names)

        if names:
            _check_groups_exist(term, kind, names)
            taken = ClassGroupLink.objects.filter(term=term, group_kind=kind, group_name__in=names)
            if binding:
                taken = taken.exclude(binding=binding)
            taken = {link.group_name: link.binding.name for link in taken.select_related('binding')}
            if taken:
                logger.warning(f"Class bind '{class_name}' in {term.code} rejected, already bound: {taken}")
                raise ConflictError(
                    f"Groups already bound to another class: {', '.join(sorted(taken))}",
                    details={'groups': taken},
                )

        same_name = ClassBinding.objects.filter(term=term, name=class_name)
        if binding:
            same_name = same_name.exclude(pk=binding.pk)
        if same_name.exists():
            raise ConflictError(
                f"Class name '{class_name}' already exists in {term.code}",
                details={'name': class_name, 'term': term.code},
            )

        try:
            with transaction.atomic():
                if binding:
                    binding.name = class_name
                    binding.description = description or ''
                    binding.group_kind = kind
                    binding.save()
                    binding.links.all().delete()
                else:
                    binding = ClassBinding.objects.create(
                        term=term, name=class_name, description=description or '', group_kind=kind,
                    )
                ClassGroupLink.objects.bulk_create([
                    ClassGroupLink(binding=binding, term=term, group_kind=kind, group_name=name)
                    for name in names
                ])
        except IntegrityError as e:
            logger.warning(f"Class bind '{class_name}' in {term.code} hit a constraint: {e}")
            raise ConflictError(
                "Class or group binding changed concurrently, please retry",
                details={'name': class_name, 'groups': names},
            )

        action = AuditAction.UPDATE if binding_id else AuditAction.CREATE
        AuditService.record(
            actor, action, 'class', binding.id,
            f"Class {class_name} ({term.code}) bound to {len(names)} groups",
            properties={'groups': names},
        )
        logger.info(f"Class {class_name} in {term.code} bound to {len(names)} groups")
        return serialize_binding(ClassBindingService.get_binding(binding.pk))

    @staticmethod
    def unbind(binding_id, actor=None) -> None:
        binding = ClassBindingService.get_binding(binding_id)
        name, term_code = binding.name, binding.term.code
        with transaction.atomic():
            binding.links.all().delete()
            binding.delete()

        AuditService.record(
            actor, AuditAction.DELETE, 'class', binding_id,
            f"Class {name} ({term_code}) deleted",
        )
        logger.info(f"Class deleted: {name} ({term_code})")


# ============ MODULE MAPPING SERVICE ============

class ModuleMappingService:
    """Exclusive assignment of small groups to block modules within a term."""

    @staticmethod
    def get_module(code) -> Module:
        try:
            return Module.objects.get(code=code)
        except Module.DoesNotExist:
            raise NotFoundError(f"Module {code} not found", details={'module': code})

    @staticmethod
    def get_block_module(code) -> Module:
        module = ModuleMappingService.get_module(code)
        if module.category != ModuleCategory.BLOCK:
            raise NotFoundError(f"Block module {code} not found", details={'module': code})
        return module

    @staticmethod
    def get_mapping(module_code: str, term) -> Dict[str, Any]:
        module = ModuleMappingService.get_module(module_code)
        term = TermService.resolve(term)
        names = list(
            ModuleGroupMapping.objects.filter(module=module, term=term)
            .order_by('group_name')
            .values_list('group_name', flat=True)
        )
        return {'module': module.code, 'term': term.code, 'group_names': names}

    @staticmethod
    def map_groups(module_code: str, term, group_names, actor=None) -> Dict[str, Any]:
        """
        Replace the module's small groups for a term. An empty list removes all mappings.

        Raises:
            NotFoundError: Module missing or not a block module
            ValidationError: Unknown groups or no small groups in the term
            ConflictError: A group is mapped to another module in the term
        """
        module = ModuleMappingService.get_block_module(module_code)
        term = TermService.resolve(term)
        names = _clean_names(group_names)
        kind = GroupKind.SMALL

        if names:
            _check_groups_exist(term, kind, names)
            taken = {
                row['group_name']: row['module__code']
                for row in ModuleGroupMapping.objects.filter(term=term, group_kind=kind, group_name__in=names)
                .exclude(module=module)
                .values('group_name', 'module__code')
            }
            if taken:
                logger.warning(f"Mapping for {module.code} in {term.code} rejected, already used: {taken}")
                raise ConflictError(
                    f"Groups already mapped to another module: {', '.join(sorted(taken))}",
                    details={'groups': taken},
                )

        try:
            with transaction.atomic():
                ModuleGroupMapping.objects.filter(module=module, term=term).delete()
                ModuleGroupMapping.objects.bulk_create([
                    ModuleGroupMapping(module=module, term=term, group_kind=kind, group_name=name)
                    for name in names
                ])
        except IntegrityError as e:
            logger.warning(f"Mapping for {module.code} in {term.code} hit a constraint: {e}")
            raise ConflictError(
                "Group mapping changed concurrently, please retry",
                details={'module': module.code, 'groups': names},
            )

        action = AuditAction.REPLACE if names else AuditAction.DELETE
        AuditService.record(
            actor, action, 'module_mapping', module.code,
            f"Module {module.code} ({term.code}) mapped to {len(names)} small groups",
            properties={'term': term.code, 'groups': names},
        )
        logger.info(f"Module {module.code} in {term.code} mapped to {len(names)} groups")
        return ModuleMappingService.get_mapping(module.code, term)

    @staticmethod
    def unmap(module_code: str, term, group_name: str, actor=None) -> None:
        group_name = (group_name or '').strip()
        module = ModuleMappingService.get_module(module_code)
        term = TermService.resolve(term)
        deleted, _ = ModuleGroupMapping.objects.filter(module=module, term=term, group_name=group_name).delete()
        if not deleted:
            raise NotFoundError(
                f"Group {group_name} is not mapped to {module.code}",
                details={'module': module.code, 'group': group_name},
            )

        AuditService.record(
            actor, AuditAction.DELETE, 'module_mapping', module.code,
            f"Group {group_name} unmapped from {module.code} ({term.code})",
        )
        logger.info(f"Group {group_name} unmapped from {module.code} in {term.code}")

    @staticmethod
    def list_available_groups(term) -> List[Dict[str, Any]]:
        """Small groups of the term not mapped to any module."""
        term = TermService.resolve(term)
        used = ModuleGroupMapping.objects.filter(term=term, group_kind=GroupKind.SMALL).values('group_name')
        return list(
            Group.objects.filter(term=term, kind=GroupKind.SMALL)
            .exclude(name__in=used)
            .annotate(member_count=Count('memberships'))
            .order_by('name')
            .values('id', 'name', 'member_count')
        )

    @staticmethod
    def list_all_groups_with_status(term) -> List[Dict[str, Any]]:
        term = TermService.resolve(term)
        used = {
            row['group_name']: row
            for row in ModuleGroupMapping.objects.filter(term=term, group_kind=GroupKind.SMALL)
            .values('group_name', 'module__code', 'module__name')
        }
        result = []
        for group in Group.objects.filter(term=term, kind=GroupKind.SMALL).order_by('name').values('id', 'name'):
            mapping = used.get(group['name'])
            result.append({
                'id': group['id'],
                'name': group['name'],
                'is_used': mapping is not None,
                'module_code': mapping['module__code'] if mapping else None,
                'module_name': mapping['module__name'] if mapping else None,
            })
        return result

    @staticmethod
    def batch_mapping(module_codes: Iterable[str], term) -> Dict[str, List[str]]:
        """
        Group names per module for one term, one query for all modules.
        Unknown terms and modules map to empty lists, like the multi-term variant.
        """
        term_code = term.code if isinstance(term, Term) else (term or TermService.resolve(None).code)
        term_code = str(term_code)
        return ModuleMappingService.batch_mapping_multi_term({term_code: module_codes})[term_code]

    @staticmethod
    def batch_mapping_multi_term(requests: Dict[str, Iterable[str]]) -> Dict[str, Dict[str, List[str]]]:
        """Same as batch_mapping across several terms, still one query."""
        requests = OrderedDict((str(term), [str(code) for code in codes]) for term, codes in requests.items())
        result = OrderedDict(
            (term, OrderedDict((code, []) for code in codes)) for term, codes in requests.items()
        )
        all_codes = {code for codes in requests.values() for code in codes}
        rows = (
            ModuleGroupMapping.objects.filter(term__code__in=list(requests), module__code__in=all_codes)
            .order_by('group_name')
            .values_list('term__code', 'module__code', 'group_name')
        )
        for term_code, code, name in rows:
            if code in result[term_code]:
                result[term_code][code].append(name)
        return result


# ============ EXPERTISE ASSIGNMENT SERVICE ============

def serialize_assignment(assignment: ExpertiseAssignment) -> Dict[str, Any]:
    person = RosterService.serialize_person(assignment.person, include_load=True)
    return {
        'id': assignment.id,
        'skill_module_id': assignment.skill_module_id,
        'expertise_tag': assignment.expertise_tag,
        'person': person,
        'load_counter': person['assignment_count'],
    }


class ExpertiseAssignmentService:
    """Instructor to (skill module, expertise tag) assignments with load counters."""

    @staticmethod
    def get_skill_module(skill_module_id) -> ClinicalSkillModule:
        try:
            return ClinicalSkillModule.objects.select_related('module').get(pk=skill_module_id)
        except (ClinicalSkillModule.DoesNotExist, ValueError, TypeError):
            raise NotFoundError(
                f"Skill module {skill_module_id} not found",
                details={'skill_module_id': skill_module_id},
            )

    @staticmethod
    def _sync_status(skill_module: ClinicalSkillModule) -> None:
        status = 'assigned' if skill_module.assignments.exists() else 'available'
        if skill_module.status != status:
            ClinicalSkillModule.objects.filter(pk=skill_module.pk).update(status=status)

    @staticmethod
    def list_by_module(skill_module_id) -> List[Dict[str, Any]]:
        skill_module = ExpertiseAssignmentService.get_skill_module(skill_module_id)
        assignments = (
            ExpertiseAssignment.objects.filter(skill_module=skill_module)
            .select_related('person')
            .order_by('expertise_tag', 'person__name')
        )
        return [serialize_assignment(assignment) for assignment in assignments]

    @staticmethod
    def assign(skill_module_id, person_id, expertise_tag: str, actor=None) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: Blank expertise tag
            NotFoundError: Unknown skill module or instructor
            ConflictError: The (module, instructor, tag) triple already exists
        """
        expertise_tag = (expertise_tag or '').strip()
        if not expertise_tag:
            raise ValidationError("Expertise tag is required", details={'expertise_tag': expertise_tag})

        skill_module = ExpertiseAssignmentService.get_skill_module(skill_module_id)
        person = RosterService.get_person(person_id, role=PersonRole.INSTRUCTOR)

        duplicate = ExpertiseAssignment.objects.filter(
            skill_module=skill_module, person=person, expertise_tag=expertise_tag,
        ).exists()
        if duplicate:
            logger.warning(f"Duplicate assignment rejected: {person.id} -> {skill_module.number} ({expertise_tag})")
            raise ConflictError(
                f"{person.name} is already assigned to {skill_module.number} for {expertise_tag}",
                details={'person_id': person.id, 'expertise_tag': expertise_tag},
            )

        try:
            with transaction.atomic():
                assignment = ExpertiseAssignment.objects.create(
                    skill_module=skill_module, person=person, expertise_tag=expertise_tag,
                )
        except IntegrityError:
            raise ConflictError(
                f"{person.name} is already assigned to {skill_module.number} for {expertise_tag}",
                details={'person_id': person.id, 'expertise_tag': expertise_tag},
            )

        RosterService.increment_load(person.id)
        ExpertiseAssignmentService._sync_status(skill_module)

        AuditService.record(
            actor, AuditAction.ASSIGN, 'expertise_assignment', assignment.id,
            f"Assigned {person.name} to {skill_module.number} ({expertise_tag})",
            properties={'skill_module_id': skill_module.id, 'person_id': person.id},
        )
        logger.info(f"Instructor {person.id} assigned to skill module {skill_module.id} as {expertise_tag}")

        assignment = ExpertiseAssignment.objects.select_related('person').get(pk=assignment.pk)
        return serialize_assignment(assignment)

    @staticmethod
    def unassign(skill_module_id, person_id, expertise_tag: str, actor=None) -> None:
        """
        Raises:
            ValidationError: Blank expertise tag
            NotFoundError: Unknown skill module or no such assignment
        """
        expertise_tag = (expertise_tag or '').strip()
        if not expertise_tag:
            raise ValidationError("Expertise tag is required", details={'expertise_tag': expertise_tag})

        skill_module = ExpertiseAssignmentService.get_skill_module(skill_module_id)
        with transaction.atomic():
            deleted, _ = ExpertiseAssignment.objects.filter(
                skill_module=skill_module, person_id=person_id, expertise_tag=expertise_tag,
            ).delete()
        if not deleted:
            raise NotFoundError(
                "Assignment not found",
                details={'person_id': person_id, 'expertise_tag': expertise_tag},
            )

        RosterService.decrement_load(person_id)
        ExpertiseAssignmentService._sync_status(skill_module)

        AuditService.record(
            actor, AuditAction.UNASSIGN, 'expertise_assignment', f"{skill_module.id}:{person_id}",
            f"Unassigned instructor {person_id} from {skill_module.number} ({expertise_tag})",
        )
        logger.info(f"Instructor {person_id} unassigned from skill module {skill_module.id} ({expertise_tag})")

    @staticmethod
    def counts_by_tag(skill_module_ids: Iterable[int]) -> Dict[int, Dict[str, int]]:
        """Assignment counts per expertise tag per skill module, one aggregate query."""
        result: Dict[int, Dict[str, int]] = {}
        rows = (
            ExpertiseAssignment.objects.filter(skill_module_id__in=list(skill_module_ids))
            .values('skill_module_id', 'expertise_tag')
            .annotate(count=Count('id'))
            .order_by('skill_module_id', 'expertise_tag')
        )
        for row in rows:
            result.setdefault(row['skill_module_id'], {})[row['expertise_tag']] = row['count']
        return result
