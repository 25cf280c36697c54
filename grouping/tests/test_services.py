# grouping/tests/test_services.py
from decimal import Decimal
from unittest import mock

from django.db.models import Count
from django.test import TestCase

from core.exceptions import ValidationError, ConflictError, NotFoundError
from core.models import AuditEvent, Term
from grouping.models import Group, GroupMembership, IntersessionGroup, IntersessionMembership
from grouping.services import GroupService, IntersessionGroupService
from roster.models import Person
from shared.constants import AuditAction, GroupKind, PersonRole, TermSeason


class GroupTestMixin:
    def setUp(self):
        self.term = Term.objects.create(academic_year='2024/2025', season=TermSeason.ODD, is_active=True)
        self.other_term = Term.objects.create(academic_year='2024/2025', season=TermSeason.EVEN)
        self.students = [
            Person.objects.create(name=f'Student {i}', role=PersonRole.STUDENT)
            for i in range(1, 7)
        ]
        self.ids = [student.id for student in self.students]

    def large_groups(self, *batches):
        groups = [{'name': chr(ord('A') + i), 'member_ids': ids} for i, ids in enumerate(batches)]
        return GroupService.replace_groups(self.term, GroupKind.LARGE, groups)


class ReplaceGroupsTest(GroupTestMixin, TestCase):
    def test_replace_stores_groups(self):
        with self.captureOnCommitCallbacks(execute=True):
            groups = GroupService.replace_groups('2024/1', GroupKind.SMALL, [
                {'name': 'A', 'member_ids': self.ids[:2]},
                {'name': 'B', 'member_ids': self.ids[2:4]},
            ], actor='coordinator')

        self.assertEqual([group['name'] for group in groups], ['A', 'B'])
        self.assertEqual(groups[0]['member_ids'], sorted(self.ids[:2]))
        self.assertEqual(groups[1]['member_count'], 2)
        self.assertTrue(AuditEvent.objects.filter(action=AuditAction.REPLACE, actor='coordinator').exists())

    def test_replace_removes_previous_groups_of_same_kind_only(self):
        self.large_groups(self.ids)
        GroupService.replace_groups(self.term, GroupKind.SMALL, [{'name': 'Old', 'member_ids': self.ids[:1]}])
        GroupService.replace_groups(self.term, GroupKind.SMALL, [{'name': 'New', 'member_ids': self.ids[:1]}])

        self.assertEqual(GroupService.group_names(self.term, GroupKind.SMALL), ['New'])
        self.assertEqual(GroupService.group_names(self.term, GroupKind.LARGE), ['A'])

    def test_student_in_two_submitted_groups_is_rejected_without_changes(self):
        GroupService.replace_groups(self.term, GroupKind.SMALL, [{'name': 'Keep', 'member_ids': self.ids[:3]}])

        with self.assertRaises(ValidationError) as ctx:
            GroupService.replace_groups(self.term, GroupKind.SMALL, [
                {'name': 'A', 'member_ids': [self.ids[0], self.ids[1]]},
                {'name': 'B', 'member_ids': [self.ids[1], self.ids[2]]},
            ])

        self.assertIn(str(self.ids[1]), ctx.exception.details['duplicates'])
        self.assertEqual(GroupService.group_names(self.term, GroupKind.SMALL), ['Keep'])

    def test_no_student_is_in_two_groups_after_replace(self):
        GroupService.replace_groups(self.term, GroupKind.SMALL, [
            {'name': '1', 'member_ids': self.ids[:3]},
            {'name': '2', 'member_ids': self.ids[3:]},
        ])
        GroupService.replace_groups(self.term, GroupKind.SMALL, [
            {'name': '1', 'member_ids': self.ids[3:]},
            {'name': '2', 'member_ids': self.ids[:3]},
        ])
        duplicated = (
            GroupMembership.objects.filter(term=self.term, kind=GroupKind.SMALL)
            .values('person_id').annotate(n=Count('id')).filter(n__gt=1)
        )
        self.assertFalse(duplicated.exists())

    def test_duplicate_group_names_and_unknown_students(self):
        with self.assertRaises(ValidationError):
            GroupService.replace_groups(self.term, GroupKind.SMALL, [
                {'name': 'A', 'member_ids': []},
                {'name': 'A', 'member_ids': []},
            ])
        with self.assertRaises(ValidationError):
            GroupService.replace_groups(self.term, GroupKind.SMALL, [{'name': 'A', 'member_ids': [99999]}])

    def test_unknown_kind(self):
        with self.assertRaises(ValidationError):
            GroupService.replace_groups(self.term, 'medium', [])

    def test_exclusive_across_kinds(self):
        self.large_groups(self.ids[:2])
        with self.assertRaises(ConflictError):
            GroupService.replace_groups(
                self.term, GroupKind.SMALL, [{'name': '1', 'member_ids': self.ids[1:3]}],
                exclusive_across_kinds=True,
            )
        self.assertFalse(Group.objects.filter(term=self.term, kind=GroupKind.SMALL).exists())

    def test_group_written_concurrently_is_a_conflict(self):
        GroupService.replace_groups(self.term, GroupKind.SMALL, [{'name': 'Old', 'member_ids': self.ids[:2]}])

        def plant_group(term, kind, names):
            Group.objects.create(term=term, kind=kind, name='A')

        with mock.patch('grouping.services.get_group_reference_cleanup', return_value=plant_group):
            with self.assertRaises(ConflictError):
                GroupService.replace_groups(self.term, GroupKind.SMALL, [{'name': 'A', 'member_ids': self.ids[2:4]}])

        self.assertEqual(GroupService.group_names(self.term, GroupKind.SMALL), ['Old'])
        self.assertEqual(
            sorted(GroupMembership.objects.filter(kind=GroupKind.SMALL).values_list('person_id', flat=True)),
            sorted(self.ids[:2]),
        )

    def test_same_student_may_be_grouped_in_another_term(self):
        GroupService.replace_groups(self.term, GroupKind.SMALL, [{'name': 'A', 'member_ids': self.ids[:1]}])
        GroupService.replace_groups(self.other_term, GroupKind.SMALL, [{'name': 'A', 'member_ids': self.ids[:1]}])
        self.assertEqual(GroupMembership.objects.filter(person_id=self.ids[0]).count(), 2)


class GenerateSmallGroupsTest(GroupTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        profiles = [('M', '3.90'), ('M', '3.50'), ('F', '3.80'), ('F', '3.20'), ('male', '3.00'), ('perempuan', '2.90')]
        for student, (gender, gpa) in zip(self.students, profiles):
            student.gender = gender[:1].upper() if len(gender) > 1 else gender
            student.gpa = Decimal(gpa)
            student.save()

    def test_requires_large_groups(self):
        with self.assertRaises(ValidationError):
            GroupService.generate_small_groups(self.term, self.ids, 2)

    def test_students_outside_large_groups_are_rejected(self):
        self.large_groups(self.ids[:4])
        with self.assertRaises(ValidationError) as ctx:
            GroupService.generate_small_groups(self.term, self.ids, 2)
        self.assertEqual(ctx.exception.details['person_ids'], self.ids[4:])

    def test_group_count_must_fit(self):
        self.large_groups(self.ids)
        with self.assertRaises(ValidationError):
            GroupService.generate_small_groups(self.term, self.ids[:2], 3)
        with self.assertRaises(ValidationError):
            GroupService.generate_small_groups(self.term, self.ids, 0)

    def test_balanced_round_robin_by_gender_and_gpa(self):
        self.large_groups(self.ids[:3], self.ids[3:])
        groups = GroupService.generate_small_groups(self.term, self.ids[:4], 2)

        self.assertEqual([group['name'] for group in groups], ['1', '2'])
        first, second = groups
        # Highest GPA of each gender lands in group 1
        self.assertEqual(first['member_ids'], sorted([self.ids[0], self.ids[2]]))
        self.assertEqual(second['member_ids'], sorted([self.ids[1], self.ids[3]]))

    def test_generation_replaces_previous_small_groups(self):
        self.large_groups(self.ids)
        GroupService.replace_groups(self.term, GroupKind.SMALL, [{'name': 'Manual', 'member_ids': self.ids[:1]}])
        GroupService.generate_small_groups(self.term, self.ids, 3)
        self.assertEqual(GroupService.group_names(self.term, GroupKind.SMALL), ['1', '2', '3'])
        self.assertEqual(
            GroupMembership.objects.filter(term=self.term, kind=GroupKind.SMALL).count(), len(self.ids),
        )


class MemberEditTest(GroupTestMixin, TestCase):
    def test_add_member_creates_group(self):
        self.large_groups(self.ids[:2])
        group = GroupService.add_member(self.term, GroupKind.SMALL, '7', self.ids[0])
        self.assertEqual(group['name'], '7')
        self.assertEqual(group['member_ids'], [self.ids[0]])

    def test_add_member_rejects_already_grouped_student(self):
        self.large_groups(self.ids[:2])
        with self.assertRaises(ConflictError):
            GroupService.add_member(self.term, GroupKind.LARGE, 'B', self.ids[0])

    def test_small_group_member_needs_large_group(self):
        with self.assertRaises(ValidationError):
            GroupService.add_member(self.term, GroupKind.SMALL, '1', self.ids[0])

    def test_add_member_unknown_student(self):
        with self.assertRaises(NotFoundError):
            GroupService.add_member(self.term, GroupKind.LARGE, 'A', 99999)

    def test_leaving_large_group_also_leaves_small_group(self):
        self.large_groups(self.ids[:2])
        GroupService.replace_groups(self.term, GroupKind.SMALL, [{'name': '1', 'member_ids': self.ids[:2]}])

        removed = GroupService.remove_member(self.term, GroupKind.LARGE, self.ids[0])

        self.assertEqual(removed, 2)
        self.assertFalse(GroupMembership.objects.filter(person_id=self.ids[0]).exists())
        self.assertTrue(GroupMembership.objects.filter(person_id=self.ids[1], kind=GroupKind.SMALL).exists())

    def test_remove_member_not_grouped(self):
        with self.assertRaises(NotFoundError):
            GroupService.remove_member(self.term, GroupKind.SMALL, self.ids[0])


class GroupReadModelTest(GroupTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        GroupService.replace_groups(self.term, GroupKind.SMALL, [
            {'name': '1', 'member_ids': self.ids[:4]},
            {'name': '2', 'member_ids': self.ids[4:]},
        ])

    def test_group_stats(self):
        stats = GroupService.group_stats(self.term, GroupKind.SMALL)
        self.assertEqual(stats['group_count'], 2)
        self.assertEqual(stats['member_count'], 6)
        self.assertEqual([row['member_count'] for row in stats['groups']], [4, 2])

    def test_batch_by_terms(self):
        result = GroupService.batch_by_terms(['2024/1', '2024/2', '1999/1'], GroupKind.SMALL)
        self.assertEqual(list(result), ['2024/1', '2024/2', '1999/1'])
        self.assertEqual([group['name'] for group in result['2024/1']], ['1', '2'])
        self.assertEqual(result['2024/2'], [])
        self.assertEqual(result['1999/1'], [])

    def test_batch_detail_keeps_request_order(self):
        rows = GroupService.batch_detail(self.term, ['2', 'missing', '1'])
        self.assertEqual([row['name'] for row in rows], ['2', 'missing', '1'])
        self.assertIsNone(rows[1]['id'])
        self.assertEqual(rows[2]['member_count'], 4)

    def test_delete_unknown_group(self):
        with self.assertRaises(NotFoundError):
            GroupService.delete_group(99999)


class MoveMembersTest(GroupTestMixin, TestCase):
    def setUp(self):
        super().setUp()
        GroupService.replace_groups(self.term, GroupKind.SMALL, [
            {'name': '1', 'member_ids': self.ids[:3]},
            {'name': '2', 'member_ids': self.ids[3:]},
        ])

    def members(self, name):
        return sorted(
            GroupMembership.objects.filter(term=self.term, kind=GroupKind.SMALL, group__name=name)
            .values_list('person_id', flat=True)
        )

    def test_moves_students_and_creates_target_group(self):
        with self.captureOnCommitCallbacks(execute=True):
            groups = GroupService.move_members(self.term, GroupKind.SMALL, [
                {'person_id': self.ids[0], 'group_name': '2'},
                {'person_id': self.ids[3], 'group_name': '3'},
                {'person_id': self.ids[1], 'group_name': '1'},
            ], actor='coordinator')

        self.assertEqual([group['name'] for group in groups], ['1', '2', '3'])
        self.assertEqual(self.members('1'), sorted(self.ids[1:3]))
        self.assertEqual(self.members('2'), sorted([self.ids[0]] + self.ids[4:]))
        self.assertEqual(self.members('3'), [self.ids[3]])
        event = AuditEvent.objects.get(action=AuditAction.UPDATE, target_type='group_set')
        self.assertEqual(event.properties['moves'][str(self.ids[3])], '3')

    def test_ungrouped_student_aborts_every_move(self):
        outsider = Person.objects.create(name='Student 7', role=PersonRole.STUDENT)
        with self.assertRaises(NotFoundError) as ctx:
            GroupService.move_members(self.term, GroupKind.SMALL, [
                {'person_id': self.ids[0], 'group_name': '2'},
                {'person_id': outsider.id, 'group_name': '2'},
            ])

        self.assertEqual(ctx.exception.details['person_ids'], [outsider.id])
        self.assertEqual(self.members('1'), sorted(self.ids[:3]))

    def test_invalid_moves(self):
        with self.assertRaises(ValidationError):
            GroupService.move_members(self.term, GroupKind.SMALL, [])
        with self.assertRaises(ValidationError):
            GroupService.move_members(self.term, GroupKind.SMALL, [
                {'person_id': self.ids[0], 'group_name': '2'},
                {'person_id': self.ids[0], 'group_name': '3'},
            ])
        with self.assertRaises(ValidationError):
            GroupService.move_members(self.term, GroupKind.SMALL, [{'person_id': self.ids[0], 'group_name': ' '}])
        self.assertEqual(GroupService.group_names(self.term, GroupKind.SMALL), ['1', '2'])


class IntersessionGroupTest(GroupTestMixin, TestCase):
    def test_create_and_lookup_by_name(self):
        with self.captureOnCommitCallbacks(execute=True):
            group = IntersessionGroupService.save_group(GroupKind.SMALL, ' K1 ', self.ids[:2], actor='coordinator')

        self.assertEqual(group['name'], 'K1')
        self.assertEqual(group['member_ids'], sorted(self.ids[:2]))
        self.assertTrue(AuditEvent.objects.filter(target_type='intersession_group', action=AuditAction.CREATE).exists())

        found = IntersessionGroupService.get_by_name(GroupKind.SMALL, 'K1')
        self.assertEqual(found['id'], group['id'])
        self.assertEqual([member['name'] for member in found['members']], ['Student 1', 'Student 2'])
        with self.assertRaises(NotFoundError):
            IntersessionGroupService.get_by_name(GroupKind.LARGE, 'K1')
        with self.assertRaises(ValidationError):
            IntersessionGroupService.get_by_name(GroupKind.SMALL, '')

    def test_student_in_one_group_per_kind(self):
        IntersessionGroupService.save_group(GroupKind.SMALL, 'K1', self.ids[:2])

        with self.assertRaises(ConflictError) as ctx:
            IntersessionGroupService.save_group(GroupKind.SMALL, 'K2', self.ids[1:3])
        self.assertEqual(ctx.exception.details['conflicts'], {str(self.ids[1]): 'K1'})
        self.assertFalse(IntersessionGroup.objects.filter(name='K2').exists())

        # Large intersession groups are a separate pool
        IntersessionGroupService.save_group(GroupKind.LARGE, 'L1', self.ids)
        self.assertEqual(IntersessionMembership.objects.filter(person_id=self.ids[1]).count(), 2)

    def test_update_excludes_itself_from_overlap(self):
        group = IntersessionGroupService.save_group(GroupKind.SMALL, 'K1', self.ids[:2])
        IntersessionGroupService.save_group(GroupKind.SMALL, 'K2', self.ids[2:4])

        updated = IntersessionGroupService.save_group(None, 'K1b', [self.ids[1], self.ids[0], self.ids[4]], group_id=group['id'])
        self.assertEqual(updated['name'], 'K1b')
        self.assertEqual(updated['member_ids'], sorted([self.ids[0], self.ids[1], self.ids[4]]))

        with self.assertRaises(ConflictError):
            IntersessionGroupService.save_group(None, 'K1b', [self.ids[2]], group_id=group['id'])
        with self.assertRaises(ConflictError):
            IntersessionGroupService.save_group(None, 'K2', [self.ids[5]], group_id=group['id'])

    def test_validation(self):
        with self.assertRaises(ValidationError):
            IntersessionGroupService.save_group(GroupKind.SMALL, 'K1', [])
        with self.assertRaises(ValidationError):
            IntersessionGroupService.save_group(GroupKind.SMALL, ' ', self.ids[:1])
        with self.assertRaises(ValidationError):
            IntersessionGroupService.save_group(GroupKind.SMALL, 'K1', [99999])
        with self.assertRaises(ValidationError):
            IntersessionGroupService.save_group('medium', 'K1', self.ids[:1])
        with self.assertRaises(NotFoundError):
            IntersessionGroupService.save_group(None, 'K1', self.ids[:1], group_id=99999)

    def test_membership_written_concurrently_is_a_conflict(self):
        IntersessionGroupService.save_group(GroupKind.SMALL, 'K1', self.ids[:2])

        checked = ('K2', [self.ids[0]])
        with mock.patch.object(IntersessionGroupService, '_validate', return_value=checked):
            with self.assertRaises(ConflictError):
                IntersessionGroupService.save_group(GroupKind.SMALL, 'K2', [self.ids[0]])

        self.assertEqual(list(IntersessionGroup.objects.values_list('name', flat=True)), ['K1'])

    def test_delete(self):
        group = IntersessionGroupService.save_group(GroupKind.SMALL, 'K1', self.ids[:2])
        IntersessionGroupService.delete_group(group['id'])

        self.assertFalse(IntersessionMembership.objects.exists())
        self.assertEqual(IntersessionGroupService.list_groups(GroupKind.SMALL), [])
        with self.assertRaises(NotFoundError):
            IntersessionGroupService.delete_group(group['id'])
