# curriculum/models.py
"""
CURRICULUM MODELS - modules, class bindings, group mappings,
clinical skill modules, expertise assignments and schedule entries.

Group references are by (term, group_kind, group_name). The compound unique
constraints on the link tables are what actually enforce exclusivity; the
service pre-checks only produce friendlier errors.
"""
import logging

from django.db import models
from django.core.exceptions import ValidationError

from shared.constants import GroupKind, ModuleCategory, NonBlockType, ScheduleType
from shared.utils import decode_expertise, is_display_time, format_display_time, to_storage_time

logger = logging.getLogger(__name__)


# ============ MODULE ============

class Module(models.Model):
    """Teaching module (course). Only block modules accept group mappings."""
    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=200)
    category = models.CharField(max_length=20, choices=ModuleCategory.choices, default=ModuleCategory.BLOCK)
    non_block_type = models.CharField(max_length=20, choices=NonBlockType.choices, blank=True)
    term = models.ForeignKey(
        'core.Term',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='modules',
        help_text="Term the module runs in, when fixed",
    )
    study_semester = models.PositiveSmallIntegerField(null=True, blank=True)
    required_expertise = models.JSONField(default=list, blank=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    description = models.TextField(blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'curriculum_module'
        ordering = ['code']
        indexes = [
            models.Index(fields=['category', 'non_block_type']),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    @property
    def is_block(self) -> bool:
        return self.category == ModuleCategory.BLOCK

    @property
    def is_csr(self) -> bool:
        return self.category == ModuleCategory.NON_BLOCK and self.non_block_type == NonBlockType.CSR

    @property
    def required_expertise_tags(self):
        return decode_expertise(self.required_expertise)

    def clean(self):
        if self.category == ModuleCategory.BLOCK and self.non_block_type:
            raise ValidationError({'non_block_type': 'Block modules have no non-block type.'})
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValidationError({'end_date': 'End date cannot be before start date.'})


# ============ CLASS BINDING ============

class ClassBinding(models.Model):
    """Class/section in a term; owns a replaceable set of group names."""
    term = models.ForeignKey('core.Term', on_delete=models.PROTECT, related_name='class_bindings')
    name = models.CharField(max_length=100)
    description = models.TextField(blank=True)
    group_kind = models.CharField(max_length=10, choices=GroupKind.choices, default=GroupKind.SMALL)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'curriculum_class_binding'
        unique_together = ['term', 'name']
        ordering = ['term', 'name']

    def __str__(self):
        return f"{self.name} ({self.term_id})"


class ClassGroupLink(models.Model):
    binding = models.ForeignKey(ClassBinding, on_delete=models.CASCADE, related_name='links')
    term = models.ForeignKey('core.Term', on_delete=models.PROTECT, related_name='+')
    group_kind = models.CharField(max_length=10, choices=GroupKind.choices)
    group_name = models.CharField(max_length=100)

    class Meta:
        db_table = 'curriculum_class_group_link'
        unique_together = ['term', 'group_kind', 'group_name']
        ordering = ['group_name']
        indexes = [
            models.Index(fields=['binding']),
        ]

    def __str__(self):
        return f"{self.group_name} -> {self.binding_id}"


# ============ MODULE MAPPING ============

class ModuleGroupMapping(models.Model):
    module = models.ForeignKey(Module, on_delete=models.CASCADE, related_name='group_mappings')
    term = models.ForeignKey('core.Term', on_delete=models.PROTECT, related_name='+')
    group_kind = models.CharField(max_length=10, choices=GroupKind.choices, default=GroupKind.SMALL)
    group_name = models.CharField(max_length=100)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'curriculum_module_group_mapping'
        unique_together = ['term', 'group_kind', 'group_name']
        ordering = ['group_name']
        indexes = [
            models.Index(fields=['module', 'term']),
        ]

    def __str__(self):
        return f"{self.group_name} -> {self.module_id}"


# ============ CLINICAL SKILL MODULE ============

class ClinicalSkillModule(models.Model):
    """Clinical skill (CSR) unit under a non-block CSR module, e.g. number 1.1."""
    STATUS_CHOICES = (
        ('available', 'Available'),
        ('assigned', 'Assigned'),
    )

    module = models.ForeignKey(Module, on_delete=models.CASCADE, related_name='skill_modules')
    number = models.CharField(max_length=20, help_text="<semester>.<block>, e.g. 1.1")
    name = models.CharField(max_length=200)
    required_expertise = models.JSONField(default=list, blank=True)
    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default='available')

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'curriculum_skill_module'
        unique_together = ['module', 'number']
        ordering = ['number']

    def __str__(self):
        return f"{self.number} {self.name}"

    def _number_part(self, index):
        parts = (self.number or '').split('.')
        try:
            return int(parts[index])
        except (IndexError, ValueError):
            return None

    @property
    def semester(self):
        return self._number_part(0)

    @property
    def block(self):
        return self._number_part(1)

    @property
    def required_expertise_tags(self):
        return decode_expertise(self.required_expertise)

    def clean(self):
        if self.module_id and not self.module.is_csr:
            raise ValidationError({'module': 'Skill modules belong to non-block CSR modules.'})


# ============ EXPERTISE ASSIGNMENT ============

class ExpertiseAssignment(models.Model):
    """Instructor assigned to a skill module under one expertise tag."""
    skill_module = models.ForeignKey(ClinicalSkillModule, on_delete=models.CASCADE, related_name='assignments')
    person = models.ForeignKey('roster.Person', on_delete=models.PROTECT, related_name='expertise_assignments')
    expertise_tag = models.CharField(max_length=100)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'curriculum_expertise_assignment'
        unique_together = ['skill_module', 'person', 'expertise_tag']
        ordering = ['expertise_tag', 'person__name']

    def __str__(self):
        return f"{self.person_id} @ {self.skill_module_id} ({self.expertise_tag})"


# ============ SCHEDULE ENTRY ============

class ScheduleEntry(models.Model):
    """
    One scheduled session of a module. Times are stored as text because
    legacy rows hold HH:MM:SS, HH:MM or HH.MM; they are normalized on read.
    """
    module = models.ForeignKey(Module, on_delete=models.CASCADE, related_name='schedule_entries')
    schedule_type = models.CharField(max_length=30, choices=ScheduleType.choices)
    skill_module = models.ForeignKey(
        ClinicalSkillModule,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='schedule_entries',
    )
    date = models.DateField()
    start_time = models.CharField(max_length=8)
    end_time = models.CharField(max_length=8, blank=True)
    session_count = models.PositiveSmallIntegerField(default=1)
    room = models.ForeignKey('core.Room', on_delete=models.SET_NULL, null=True, blank=True, related_name='+')
    group_name = models.CharField(max_length=100, blank=True)
    instructor_ids = models.JSONField(default=list, blank=True)
    topic = models.CharField(max_length=255, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'curriculum_schedule_entry'
        ordering = ['date', 'start_time']
        indexes = [
            models.Index(fields=['module', 'schedule_type']),
        ]
        verbose_name_plural = 'Schedule entries'

    def __str__(self):
        return f"{self.module_id} {self.get_schedule_type_display()} {self.date} {self.start_time}"

    def clean(self):
        for field_name in ('start_time', 'end_time'):
            value = getattr(self, field_name)
            if value and not is_display_time(format_display_time(value)):
                raise ValidationError({field_name: 'Time must look like HH:MM, HH:MM:SS or HH.MM.'})

    def save(self, *args, **kwargs):
        # Stored as HH:MM:SS whatever format the caller sent
        self.start_time = to_storage_time(self.start_time) or ''
        self.end_time = to_storage_time(self.end_time) or ''
        super().save(*args, **kwargs)
