# grouping/tests/test_models.py
from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase

from core.models import Term
from grouping.models import Group, GroupMembership
from roster.models import Person
from shared.constants import GroupKind, PersonRole, TermSeason


class GroupMembershipModelTest(TestCase):
    def setUp(self):
        self.term = Term.objects.create(academic_year='2024/2025', season=TermSeason.ODD)
        self.group = Group.objects.create(term=self.term, kind=GroupKind.SMALL, name='1')
        self.student = Person.objects.create(name='Ayu', role=PersonRole.STUDENT)

    def test_one_group_per_student_per_kind(self):
        other = Group.objects.create(term=self.term, kind=GroupKind.SMALL, name='2')
        GroupMembership.objects.create(group=self.group, term=self.term, kind=GroupKind.SMALL, person=self.student)
        with self.assertRaises(IntegrityError):
            GroupMembership.objects.create(group=other, term=self.term, kind=GroupKind.SMALL, person=self.student)

    def test_membership_must_match_group(self):
        membership = GroupMembership(group=self.group, term=self.term, kind=GroupKind.LARGE, person=self.student)
        with self.assertRaises(ValidationError):
            membership.clean()

    def test_only_students(self):
        instructor = Person.objects.create(name='Dr. Dewi', role=PersonRole.INSTRUCTOR)
        membership = GroupMembership(group=self.group, term=self.term, kind=GroupKind.SMALL, person=instructor)
        with self.assertRaises(ValidationError):
            membership.clean()
