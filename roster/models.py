# roster/models.py
"""
ROSTER MODELS - students and instructors.
Expertise is stored raw and decoded leniently at the boundary.
"""
import logging
from typing import List

from django.db import models
from django.core.exceptions import ValidationError

from shared.constants import PersonRole, PersonStatus, MAX_SEMESTER
from shared.utils import decode_expertise, is_standby

logger = logging.getLogger(__name__)


class Person(models.Model):
    """A student or instructor known to the scheduling core."""
    GENDER_CHOICES = (
        ('M', 'Male'),
        ('F', 'Female'),
    )

    name = models.CharField(max_length=200)
    role = models.CharField(max_length=20, choices=PersonRole.choices, default=PersonRole.STUDENT)
    email = models.EmailField(blank=True)
    student_number = models.CharField(max_length=30, blank=True, help_text="Students only")
    employee_number = models.CharField(max_length=30, blank=True, help_text="Instructors only")
    gender = models.CharField(max_length=1, choices=GENDER_CHOICES, blank=True)
    gpa = models.DecimalField(max_digits=3, decimal_places=2, null=True, blank=True)
    cohort = models.CharField(max_length=10, blank=True, help_text="Intake year")
    status = models.CharField(max_length=20, choices=PersonStatus.choices, default=PersonStatus.ACTIVE)

    # Term association (students)
    entry_term = models.ForeignKey(
        'core.Term',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='entrants',
    )
    current_term = models.ForeignKey(
        'core.Term',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='current_students',
    )
    semester_number = models.PositiveSmallIntegerField(null=True, blank=True)

    # Instructors: list, JSON string or comma separated string in legacy rows
    expertise = models.JSONField(default=list, blank=True)
    assignment_count = models.PositiveIntegerField(default=0, help_text="Denormalized load counter")

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'roster_person'
        ordering = ['name']
        indexes = [
            models.Index(fields=['role', 'status']),
            models.Index(fields=['current_term']),
            models.Index(fields=['student_number']),
        ]
        verbose_name = 'Person'
        verbose_name_plural = 'People'

    def __str__(self):
        number = self.student_number or self.employee_number
        return f"{self.name} ({number})" if number else self.name

    @property
    def expertise_tags(self) -> List[str]:
        return decode_expertise(self.expertise)

    @property
    def is_standby(self) -> bool:
        return is_standby(self.expertise_tags)

    @property
    def is_student(self) -> bool:
        return self.role == PersonRole.STUDENT

    def clean(self):
        if self.semester_number is not None and not 1 <= self.semester_number <= MAX_SEMESTER:
            raise ValidationError({
                'semester_number': f'Semester must be between 1 and {MAX_SEMESTER}.'
            })
        if self.gpa is not None and not 0 <= self.gpa <= 4:
            raise ValidationError({'gpa': 'GPA must be between 0 and 4.'})
