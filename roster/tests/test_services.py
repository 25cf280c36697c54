# roster/tests/test_services.py
from django.test import TestCase

from core.exceptions import NotFoundError
from roster.models import Person
from roster.services import RosterService
from shared.constants import PersonRole


class RosterServiceTest(TestCase):
    def setUp(self):
        self.regular = Person.objects.create(
            name='Dr. Andi', role=PersonRole.INSTRUCTOR, expertise=['Anatomy'],
        )
        self.reserve = Person.objects.create(
            name='Dr. Bella', role=PersonRole.INSTRUCTOR, expertise='["Standby"]',
        )
        self.broken = Person.objects.create(
            name='Dr. Cahya', role=PersonRole.INSTRUCTOR, expertise='["Anatomy",',
        )
        Person.objects.create(name='Dimas', role=PersonRole.STUDENT)

    def test_instructors_decode_expertise(self):
        instructors = RosterService.instructors()
        self.assertEqual([person['name'] for person in instructors], ['Dr. Andi', 'Dr. Bella', 'Dr. Cahya'])
        self.assertEqual(instructors[1]['expertise'], ['Standby'])
        self.assertEqual(instructors[2]['expertise'], [])

    def test_split_standby(self):
        regular, standby = RosterService.split_standby(RosterService.instructors())
        self.assertEqual([person['id'] for person in standby], [self.reserve.id])
        self.assertEqual([person['id'] for person in regular], [self.regular.id, self.broken.id])

    def test_load_counter_never_goes_negative(self):
        RosterService.increment_load(self.regular.id)
        RosterService.decrement_load(self.regular.id)
        RosterService.decrement_load(self.regular.id)
        self.regular.refresh_from_db()
        self.assertEqual(self.regular.assignment_count, 0)

    def test_get_person_with_role(self):
        self.assertEqual(RosterService.get_person(self.regular.id, role=PersonRole.INSTRUCTOR), self.regular)
        student = Person.objects.get(name='Dimas')
        with self.assertRaises(NotFoundError):
            RosterService.get_person(student.id, role=PersonRole.INSTRUCTOR)
        with self.assertRaises(NotFoundError):
            RosterService.get_person('abc')
