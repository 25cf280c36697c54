# curriculum/tests/test_models.py
from datetime import date

from django.core.exceptions import ValidationError
from django.db import IntegrityError
from django.test import TestCase

from core.models import Term
from curriculum.models import ClassBinding, ClassGroupLink, ClinicalSkillModule, Module, ScheduleEntry
from shared.constants import GroupKind, ModuleCategory, NonBlockType, ScheduleType, TermSeason


class ModuleModelTest(TestCase):
    def test_category_flags(self):
        block = Module(code='BLK01', name='Cardiovascular')
        csr = Module(code='CSR01', name='Skills', category=ModuleCategory.NON_BLOCK, non_block_type=NonBlockType.CSR)
        self.assertTrue(block.is_block)
        self.assertFalse(block.is_csr)
        self.assertTrue(csr.is_csr)

    def test_expertise_tags_decoded(self):
        module = Module(code='BLK01', name='Cardiovascular', required_expertise='Cardiology, Physiology')
        self.assertEqual(module.required_expertise_tags, ['Cardiology', 'Physiology'])

    def test_block_module_has_no_non_block_type(self):
        module = Module(code='BLK01', name='Cardiovascular', non_block_type=NonBlockType.CSR)
        with self.assertRaises(ValidationError):
            module.full_clean()

    def test_dates_ordered(self):
        module = Module(code='BLK01', name='Cardiovascular', start_date=date(2024, 9, 2), end_date=date(2024, 8, 1))
        with self.assertRaises(ValidationError):
            module.full_clean()


class SkillModuleModelTest(TestCase):
    def test_number_parts(self):
        skill_module = ClinicalSkillModule(number='3.2', name='Suturing')
        self.assertEqual((skill_module.semester, skill_module.block), (3, 2))
        self.assertIsNone(ClinicalSkillModule(number='misc').block)

    def test_must_belong_to_csr_module(self):
        block = Module.objects.create(code='BLK01', name='Cardiovascular')
        with self.assertRaises(ValidationError):
            ClinicalSkillModule(module=block, number='1.1', name='Suturing').full_clean()


class ClassGroupLinkModelTest(TestCase):
    def test_group_linked_once_per_term(self):
        term = Term.objects.create(academic_year='2024/2025', season=TermSeason.ODD)
        first = ClassBinding.objects.create(term=term, name='X')
        second = ClassBinding.objects.create(term=term, name='Y')
        ClassGroupLink.objects.create(binding=first, term=term, group_kind=GroupKind.SMALL, group_name='A')
        with self.assertRaises(IntegrityError):
            ClassGroupLink.objects.create(binding=second, term=term, group_kind=GroupKind.SMALL, group_name='A')


class ScheduleEntryModelTest(TestCase):
    def test_time_format_validated(self):
        module = Module.objects.create(code='BLK01', name='Cardiovascular')
        entry = ScheduleEntry(module=module, schedule_type=ScheduleType.PBL, date=date(2024, 9, 2), start_time='7pm')
        with self.assertRaises(ValidationError) as ctx:
            entry.full_clean()
        self.assertIn('start_time', ctx.exception.message_dict)

        entry.start_time = '07:20:00'
        entry.full_clean()
