# curriculum/batch.py
"""
BATCH VIEW ASSEMBLER - one round trip per detail screen.

Read only. The primary record must exist (NotFoundError otherwise); every
secondary section runs in its own savepoint and degrades to an empty
collection on failure so one broken side table never blocks the screen.
"""
import logging
from collections import OrderedDict
from typing import Any, Callable, Dict, Iterable, List, Optional

from django.conf import settings
from django.db import transaction

from core.exceptions import NotFoundError
from core.models import Room
from core.services import TermService
from grouping.services import GroupService
from roster.models import Person
from roster.services import RosterService
from shared.constants import TIME_OPTIONS, GroupKind, ModuleCategory, NonBlockType, ScheduleType
from shared.utils import format_display_time, matches_any

from .models import ClinicalSkillModule, Module, ScheduleEntry
from .services import (
    ClassBindingService,
    ExpertiseAssignmentService,
    ModuleMappingService,
    serialize_binding,
)

logger = logging.getLogger(__name__)


# ============ HELPER FUNCTIONS ============

def _section(name: str, loader: Callable[[], Any], default: Any) -> Any:
    """Run one secondary read; on any failure log and fall back to `default`."""
    try:
        with transaction.atomic():
            return loader()
    except Exception as e:
        logger.warning(f"Batch section '{name}' degraded to empty: {e}", exc_info=True)
        return default


def _instructor_ids(raw) -> List[int]:
    """Schedule rows keep instructor ids as a JSON list; tolerate junk."""
    if not isinstance(raw, (list, tuple)):
        return []
    ids = []
    for value in raw:
        try:
            ids.append(int(value))
        except (TypeError, ValueError):
            continue
    return ids


def _names_by_id(entries: Iterable[ScheduleEntry]) -> Dict[int, str]:
    """Resolve every instructor referenced by the entries in one query."""
    wanted = {pid for entry in entries for pid in _instructor_ids(entry.instructor_ids)}
    if not wanted:
        return {}
    return dict(Person.objects.filter(pk__in=wanted).values_list('id', 'name'))


def serialize_entry(entry: ScheduleEntry, names_by_id: Dict[int, str]) -> Dict[str, Any]:
    ids = _instructor_ids(entry.instructor_ids)
    return {
        'id': entry.id,
        'schedule_type': entry.schedule_type,
        'date': entry.date.isoformat() if entry.date else None,
        'start_time': format_display_time(entry.start_time),
        'end_time': format_display_time(entry.end_time),
        'session_count': entry.session_count,
        'room': {'id': entry.room.id, 'name': entry.room.name} if entry.room else None,
        'group_name': entry.group_name or None,
        'topic': entry.topic,
        'skill_module_id': entry.skill_module_id,
        'instructor_ids': ids,
        'instructor_names': ', '.join(names_by_id[pid] for pid in ids if pid in names_by_id),
    }


def serialize_module(module: Module) -> Dict[str, Any]:
    return {
        'id': module.id,
        'code': module.code,
        'name': module.name,
        'category': module.category,
        'non_block_type': module.non_block_type or None,
        'term': module.term.code if module.term_id else None,
        'study_semester': module.study_semester,
        'required_expertise': module.required_expertise_tags,
        'start_date': module.start_date.isoformat() if module.start_date else None,
        'end_date': module.end_date.isoformat() if module.end_date else None,
    }


def serialize_skill_module(skill_module: ClinicalSkillModule) -> Dict[str, Any]:
    return {
        'id': skill_module.id,
        'number': skill_module.number,
        'name': skill_module.name,
        'module_code': skill_module.module.code,
        'module_name': skill_module.module.name,
        'semester': skill_module.semester,
        'block': skill_module.block,
        'required_expertise': skill_module.required_expertise_tags,
        'status': skill_module.status,
    }


def _time_options() -> List[str]:
    return list(getattr(settings, 'CURRICULUM_TIME_OPTIONS', TIME_OPTIONS))


def _rooms() -> List[Dict[str, Any]]:
    return list(Room.objects.order_by('name').values('id', 'code', 'name', 'capacity', 'building'))


def _require_term(term):
    if term is None:
        raise NotFoundError("No term available for this view")
    return term


# ============ BATCH VIEW SERVICE ============

class BatchViewService:
    """Assembles merged read models for schedule detail screens."""

    @staticmethod
    def _term_for(module: Module, term=None):
        """Explicit term wins; otherwise the module's own term, then the active term."""
        if term:
            return TermService.resolve(term)
        if module.term_id:
            return module.term
        return TermService.get_active_term()

    @staticmethod
    def _instructor_pools(required: Optional[List[str]] = None) -> Dict[str, List[Dict[str, Any]]]:
        everyone = RosterService.instructors()
        regular, standby = RosterService.split_standby(everyone)
        pools = {'all': everyone, 'regular': regular, 'standby': standby}
        if required is not None:
            pools['matching'] = (
                [person for person in everyone if matches_any(person['expertise'], required)]
                if required else everyone
            )
        return pools

    @staticmethod
    def _schedule(module: Module, types: Iterable[str]) -> List[Dict[str, Any]]:
        entries = list(
            ScheduleEntry.objects.filter(module=module, schedule_type__in=list(types))
            .select_related('room')
            .order_by('date', 'start_time', 'id')
        )
        names = _section('instructor_names', lambda: _names_by_id(entries), {})
        return [serialize_entry(entry, names) for entry in entries]

    @staticmethod
    def block_module_detail(code: str, term=None) -> Dict[str, Any]:
        """
        Everything the block module screen needs.

        Raises:
            NotFoundError: Unknown or non-block module, or unknown explicit term
        """
        module = ModuleMappingService.get_block_module(code)
        term = BatchViewService._term_for(module, term)
        empty_pools = {'all': [], 'matching': [], 'regular': [], 'standby': []}

        def schedules():
            grouped = OrderedDict((section, []) for section in ScheduleType.BLOCK_SECTIONS)
            for entry in BatchViewService._schedule(module, ScheduleType.BLOCK_SECTIONS):
                grouped[entry['schedule_type']].append(entry)
            return grouped

        detail = {
            'module': serialize_module(module),
            'term': term.code if term else None,
            'schedules': _section(
                'schedules', schedules,
                OrderedDict((section, []) for section in ScheduleType.BLOCK_SECTIONS),
            ),
            'small_groups': _section(
                'small_groups',
                lambda: GroupService.get_by_term(_require_term(term), GroupKind.SMALL, include_members=False),
                [],
            ),
            'mapped_groups': _section(
                'mapped_groups',
                lambda: ModuleMappingService.get_mapping(module.code, _require_term(term))['group_names'],
                [],
            ),
            'instructors': _section(
                'instructors',
                lambda: BatchViewService._instructor_pools(module.required_expertise_tags),
                empty_pools,
            ),
            'rooms': _section('rooms', _rooms, []),
            'time_options': _time_options(),
        }
        logger.debug(f"Block module detail assembled for {module.code}")
        return detail

    @staticmethod
    def skill_module_detail(skill_module_id) -> Dict[str, Any]:
        """
        Skill module with instructor pools, assignments keyed by expertise tag,
        and instructors already scheduled in block modules per term.
        """
        skill_module = ExpertiseAssignmentService.get_skill_module(skill_module_id)
        required = skill_module.required_expertise_tags

        def assignments():
            keyed = OrderedDict((tag, []) for tag in required)
            for row in ExpertiseAssignmentService.list_by_module(skill_module.id):
                keyed.setdefault(row['expertise_tag'], []).append(row['person'])
            return keyed

        def scheduled_in_blocks():
            rows = (
                ScheduleEntry.objects.filter(module__category=ModuleCategory.BLOCK)
                .exclude(module__term__isnull=True)
                .values_list('module__term__code', 'instructor_ids')
            )
            ids_by_term = OrderedDict()
            for term_code, raw_ids in rows:
                ids_by_term.setdefault(term_code, set()).update(_instructor_ids(raw_ids))
            all_ids = {pid for ids in ids_by_term.values() for pid in ids}
            names = dict(Person.objects.filter(pk__in=all_ids).values_list('id', 'name'))
            return OrderedDict(
                (term_code, sorted(
                    ({'id': pid, 'name': names[pid]} for pid in ids if pid in names),
                    key=lambda person: person['name'],
                ))
                for term_code, ids in ids_by_term.items()
            )

        pools = _section('instructors', BatchViewService._instructor_pools, {'all': [], 'regular': [], 'standby': []})
        return {
            'skill_module': serialize_skill_module(skill_module),
            'instructors': pools['regular'],
            'standby_instructors': pools['standby'],
            'assignments': _section(
                'assignments', assignments, OrderedDict((tag, []) for tag in required),
            ),
            'scheduled_in_blocks': _section('scheduled_in_blocks', scheduled_in_blocks, {}),
        }

    @staticmethod
    def skill_module_overview() -> Dict[str, Any]:
        skill_modules = list(ClinicalSkillModule.objects.select_related('module').order_by('number'))

        def active_term():
            term = TermService.get_active_term()
            return {'code': term.code, 'season': term.season, 'label': term.label} if term else None

        return {
            'skill_modules': [serialize_skill_module(skill_module) for skill_module in skill_modules],
            'csr_modules': _section(
                'csr_modules',
                lambda: list(
                    Module.objects.filter(category=ModuleCategory.NON_BLOCK, non_block_type=NonBlockType.CSR)
                    .order_by('code')
                    .values('code', 'name')
                ),
                [],
            ),
            'active_term': _section('active_term', active_term, None),
            'assignment_counts': _section(
                'assignment_counts',
                lambda: ExpertiseAssignmentService.counts_by_tag(s.id for s in skill_modules),
                {},
            ),
        }

    @staticmethod
    def csr_module_detail(code: str, term=None) -> Dict[str, Any]:
        """
        Raises:
            NotFoundError: Unknown module or not a CSR module
        """
        module = ModuleMappingService.get_module(code)
        if not module.is_csr:
            raise NotFoundError(f"CSR module {code} not found", details={'module': code})
        term = BatchViewService._term_for(module, term)

        def instructors():
            people = (
                Person.objects.filter(expertise_assignments__skill_module__module=module)
                .distinct()
                .order_by('name')
            )
            return [RosterService.serialize_person(person, include_load=True) for person in people]

        return {
            'module': serialize_module(module),
            'term': term.code if term else None,
            'schedules': _section(
                'schedules', lambda: BatchViewService._schedule(module, [ScheduleType.CSR]), [],
            ),
            'instructors': _section('instructors', instructors, []),
            'rooms': _section('rooms', _rooms, []),
            'small_groups': _section(
                'small_groups',
                lambda: GroupService.group_names(_require_term(term), GroupKind.SMALL),
                [],
            ),
            'skill_modules': _section(
                'skill_modules',
                lambda: [
                    serialize_skill_module(skill_module)
                    for skill_module in module.skill_modules.select_related('module').order_by('number')
                ],
                [],
            ),
            'time_options': _time_options(),
        }

    @staticmethod
    def class_detail(binding_id) -> Dict[str, Any]:
        binding = ClassBindingService.get_binding(binding_id)
        data = serialize_binding(binding)

        def groups():
            members = GroupService.members_by_group(binding.term, binding.group_kind, data['group_names'])
            return [{'name': name, 'members': people} for name, people in members.items()]

        data['groups'] = _section('groups', groups, [])
        return data
