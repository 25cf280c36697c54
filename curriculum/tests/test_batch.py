# curriculum/tests/test_batch.py
from datetime import date
from unittest import mock

from django.db import DatabaseError
from django.test import TestCase

from core.exceptions import NotFoundError
from core.models import Room, Term
from curriculum.batch import BatchViewService
from curriculum.models import ClinicalSkillModule, Module, ScheduleEntry
from curriculum.services import ClassBindingService, ExpertiseAssignmentService, ModuleMappingService
from grouping.services import GroupService
from roster.models import Person
from shared.constants import GroupKind, ModuleCategory, NonBlockType, PersonRole, ScheduleType, TermSeason


class BatchTestMixin:
    def setUp(self):
        self.term = Term.objects.create(academic_year='2024/2025', season=TermSeason.ODD, is_active=True)
        students = [Person.objects.create(name=f'Student {i}', role=PersonRole.STUDENT) for i in range(1, 5)]
        ids = [student.id for student in students]
        GroupService.replace_groups(self.term, GroupKind.LARGE, [{'name': 'L1', 'member_ids': ids}])
        GroupService.replace_groups(self.term, GroupKind.SMALL, [
            {'name': '1', 'member_ids': ids[:2]},
            {'name': '2', 'member_ids': ids[2:]},
        ])

        self.anatomist = Person.objects.create(name='Dr. Ani', role=PersonRole.INSTRUCTOR, expertise=['Anatomy'])
        self.reserve = Person.objects.create(
            name='Dr. Bayu', role=PersonRole.INSTRUCTOR, expertise='["Anatomy", "Standby"]',
        )
        self.surgeon = Person.objects.create(name='Dr. Cahya', role=PersonRole.INSTRUCTOR, expertise='Surgery')
        self.room = Room.objects.create(code='R1', name='Tutorial 1', capacity=12)

        self.block = Module.objects.create(
            code='BLK01', name='Musculoskeletal', term=self.term, required_expertise=['anatomy'],
        )
        self.csr = Module.objects.create(
            code='CSR01', name='Clinical Skills I',
            category=ModuleCategory.NON_BLOCK, non_block_type=NonBlockType.CSR,
        )
        self.skill_module = ClinicalSkillModule.objects.create(
            module=self.csr, number='1.2', name='Suturing', required_expertise=['Surgery', 'Anatomy'],
        )


class BlockModuleDetailTest(BatchTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        ModuleMappingService.map_groups('BLK01', self.term, ['2'])
        ScheduleEntry.objects.create(
            module=self.block, schedule_type=ScheduleType.PBL, date=date(2024, 9, 2),
            start_time='07:20:00', end_time='09.00', room=self.room, group_name='1',
            instructor_ids=[self.anatomist.id, 'junk', self.surgeon.id],
        )
        ScheduleEntry.objects.create(
            module=self.block, schedule_type=ScheduleType.LECTURE, date=date(2024, 9, 3),
            start_time='10.40.00', instructor_ids='not a list',
        )

    def test_sections(self):
        detail = BatchViewService.block_module_detail('BLK01')

        self.assertEqual(detail['module']['code'], 'BLK01')
        self.assertEqual(detail['term'], '2024/1')
        self.assertEqual(list(detail['schedules']), list(ScheduleType.BLOCK_SECTIONS))
        self.assertEqual(detail['mapped_groups'], ['2'])
        self.assertEqual([group['name'] for group in detail['small_groups']], ['1', '2'])
        self.assertNotIn('members', detail['small_groups'][0])
        self.assertEqual(detail['rooms'][0]['code'], 'R1')
        self.assertIn('07.20', detail['time_options'])

    def test_schedule_times_use_display_format(self):
        detail = BatchViewService.block_module_detail('BLK01')

        pbl = detail['schedules'][ScheduleType.PBL][0]
        self.assertEqual((pbl['start_time'], pbl['end_time']), ('07.20', '09.00'))
        self.assertEqual(pbl['instructor_ids'], [self.anatomist.id, self.surgeon.id])
        self.assertEqual(pbl['instructor_names'], 'Dr. Ani, Dr. Cahya')
        self.assertEqual(pbl['room'], {'id': self.room.id, 'name': 'Tutorial 1'})

        lecture = detail['schedules'][ScheduleType.LECTURE][0]
        self.assertEqual(lecture['start_time'], '10.40')
        self.assertEqual(lecture['instructor_ids'], [])
        self.assertEqual(detail['schedules'][ScheduleType.PRACTICUM], [])

    def test_instructor_pools(self):
        pools = BatchViewService.block_module_detail('BLK01')['instructors']

        self.assertEqual([p['name'] for p in pools['all']], ['Dr. Ani', 'Dr. Bayu', 'Dr. Cahya'])
        self.assertEqual([p['name'] for p in pools['standby']], ['Dr. Bayu'])
        self.assertEqual([p['name'] for p in pools['regular']], ['Dr. Ani', 'Dr. Cahya'])
        self.assertEqual([p['name'] for p in pools['matching']], ['Dr. Ani', 'Dr. Bayu'])

    def test_failed_section_degrades_to_empty(self):
        with mock.patch('curriculum.batch._rooms', side_effect=DatabaseError('rooms table missing')):
            with self.assertLogs('curriculum.batch', level='WARNING'):
                detail = BatchViewService.block_module_detail('BLK01')

        self.assertEqual(detail['rooms'], [])
        self.assertEqual(detail['mapped_groups'], ['2'])

    def test_missing_primary_record(self):
        with self.assertRaises(NotFoundError):
            BatchViewService.block_module_detail('NOPE')
        with self.assertRaises(NotFoundError):
            BatchViewService.block_module_detail('CSR01')
        with self.assertRaises(NotFoundError):
            BatchViewService.block_module_detail('BLK01', term='1999/1')

    def test_module_without_term_falls_back_to_active_term(self):
        floating = Module.objects.create(code='BLK09', name='Elective')
        detail = BatchViewService.block_module_detail(floating.code)
        self.assertEqual(detail['term'], '2024/1')
        self.assertEqual(detail['mapped_groups'], [])


class SkillModuleViewsTest(BatchTestMixin, TestCase):
    def test_skill_module_detail(self):
        ExpertiseAssignmentService.assign(self.skill_module.id, self.surgeon.id, 'Surgery')
        block = Module.objects.create(code='BLK01B', name='Digestive', term=self.term)
        ScheduleEntry.objects.create(
            module=block, schedule_type=ScheduleType.LECTURE, date=date(2024, 9, 4),
            start_time='08:10', instructor_ids=[self.anatomist.id],
        )

        detail = BatchViewService.skill_module_detail(self.skill_module.id)

        self.assertEqual(detail['skill_module']['semester'], 1)
        self.assertEqual(detail['skill_module']['block'], 2)
        self.assertEqual([p['name'] for p in detail['standby_instructors']], ['Dr. Bayu'])
        self.assertEqual([p['name'] for p in detail['instructors']], ['Dr. Ani', 'Dr. Cahya'])
        self.assertEqual(list(detail['assignments']), ['Surgery', 'Anatomy'])
        self.assertEqual([p['id'] for p in detail['assignments']['Surgery']], [self.surgeon.id])
        self.assertEqual(detail['assignments']['Anatomy'], [])
        self.assertEqual(detail['scheduled_in_blocks']['2024/1'], [{'id': self.anatomist.id, 'name': 'Dr. Ani'}])

    def test_skill_module_detail_not_found(self):
        with self.assertRaises(NotFoundError):
            BatchViewService.skill_module_detail(99999)

    def test_overview(self):
        ExpertiseAssignmentService.assign(self.skill_module.id, self.anatomist.id, 'Anatomy')
        overview = BatchViewService.skill_module_overview()

        self.assertEqual([row['number'] for row in overview['skill_modules']], ['1.2'])
        self.assertEqual(overview['csr_modules'], [{'code': 'CSR01', 'name': 'Clinical Skills I'}])
        self.assertEqual(overview['active_term']['code'], '2024/1')
        self.assertEqual(overview['assignment_counts'], {self.skill_module.id: {'Anatomy': 1}})

    def test_csr_module_detail(self):
        ExpertiseAssignmentService.assign(self.skill_module.id, self.surgeon.id, 'Surgery')
        ScheduleEntry.objects.create(
            module=self.csr, schedule_type=ScheduleType.CSR, skill_module=self.skill_module,
            date=date(2024, 9, 5), start_time='13:25:00', group_name='1',
        )

        detail = BatchViewService.csr_module_detail('CSR01')

        self.assertEqual(detail['term'], '2024/1')
        self.assertEqual([entry['start_time'] for entry in detail['schedules']], ['13.25'])
        self.assertEqual([p['name'] for p in detail['instructors']], ['Dr. Cahya'])
        self.assertEqual(detail['instructors'][0]['assignment_count'], 1)
        self.assertEqual(detail['small_groups'], ['1', '2'])
        self.assertEqual([row['number'] for row in detail['skill_modules']], ['1.2'])

    def test_csr_detail_rejects_block_module(self):
        with self.assertRaises(NotFoundError):
            BatchViewService.csr_module_detail('BLK01')


class ClassDetailTest(BatchTestMixin, TestCase):
    def test_class_detail_lists_members_per_group(self):
        binding = ClassBindingService.bind(self.term, 'Class A', ['2', '1'])
        detail = BatchViewService.class_detail(binding['id'])

        self.assertEqual(detail['name'], 'Class A')
        self.assertEqual([group['name'] for group in detail['groups']], ['1', '2'])
        self.assertEqual([m['name'] for m in detail['groups'][0]['members']], ['Student 1', 'Student 2'])

    def test_unknown_class(self):
        with self.assertRaises(NotFoundError):
            BatchViewService.class_detail(99999)
