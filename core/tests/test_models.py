# core/tests/test_models.py
from django.test import TestCase
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction

from core.models import Term, Room
from shared.constants import TermSeason


class TermModelTest(TestCase):
    def test_code_label_and_sequence_are_derived(self):
        term = Term.objects.create(academic_year='2024/2025', season=TermSeason.EVEN)
        self.assertEqual(term.code, '2024/2')
        self.assertEqual(term.label, 'Even Semester 2024/2025')
        self.assertEqual(term.sequence, 2024 * 2 + 1)
        self.assertEqual(term.start_year, 2024)

    def test_terms_order_chronologically(self):
        later = Term.objects.create(academic_year='2025/2026', season=TermSeason.ODD)
        even = Term.objects.create(academic_year='2024/2025', season=TermSeason.EVEN)
        odd = Term.objects.create(academic_year='2024/2025', season=TermSeason.ODD)
        self.assertEqual(list(Term.objects.all()), [odd, even, later])

    def test_academic_year_format_is_validated(self):
        with self.assertRaises(DjangoValidationError):
            Term.objects.create(academic_year='2024-2025', season=TermSeason.ODD)

    def test_academic_year_must_span_consecutive_years(self):
        with self.assertRaises(DjangoValidationError):
            Term.objects.create(academic_year='2024/2026', season=TermSeason.ODD)

    def test_only_one_term_can_be_active(self):
        Term.objects.create(academic_year='2024/2025', season=TermSeason.ODD, is_active=True)
        with self.assertRaises((DjangoValidationError, IntegrityError)):
            with transaction.atomic():
                Term.objects.create(academic_year='2024/2025', season=TermSeason.EVEN, is_active=True)
        self.assertEqual(Term.objects.filter(is_active=True).count(), 1)


class RoomModelTest(TestCase):
    def test_option_label(self):
        room = Room.objects.create(code='R101', name='Lecture Hall A', capacity=120, building='Building 1')
        self.assertEqual(room.option_label, 'Lecture Hall A (capacity: 120) - Building 1')

    def test_capacity_must_be_positive(self):
        room = Room(code='R0', name='Closet', capacity=0)
        with self.assertRaises(DjangoValidationError):
            room.full_clean()
