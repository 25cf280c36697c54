# core/models.py
"""
CORE MODELS - Term registry, rooms and the audit trail.
Every other app keys its data by Term.
"""
import logging
import re

from django.db import models
from django.db.models import Q
from django.core.exceptions import ValidationError

from shared.constants import TermSeason

logger = logging.getLogger(__name__)

ACADEMIC_YEAR_RE = re.compile(r'^(\d{4})/(\d{4})$')


# ============ TERM MODEL ============

class Term(models.Model):
    """
    Academic period (semester). Groups, bindings and mappings are scoped to it.
    At most one term is active system-wide.
    """
    code = models.CharField(max_length=20, unique=True, help_text="Natural key, e.g. 2024/1")
    academic_year = models.CharField(max_length=9, help_text="e.g., 2024/2025")
    season = models.CharField(max_length=4, choices=TermSeason.choices)
    label = models.CharField(max_length=100, blank=True)
    sequence = models.IntegerField(default=0, editable=False, help_text="Chronological position")
    is_active = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'core_term'
        unique_together = ['academic_year', 'season']
        ordering = ['sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['is_active'],
                condition=Q(is_active=True),
                name='core_term_single_active',
            ),
        ]
        indexes = [
            models.Index(fields=['is_active']),
        ]
        verbose_name = 'Term'
        verbose_name_plural = 'Terms'

    def __str__(self):
        return self.label or self.code

    @property
    def start_year(self) -> int:
        match = ACADEMIC_YEAR_RE.match(self.academic_year or '')
        return int(match.group(1)) if match else 0

    @staticmethod
    def compute_sequence(academic_year: str, season: str) -> int:
        match = ACADEMIC_YEAR_RE.match(academic_year or '')
        start_year = int(match.group(1)) if match else 0
        return start_year * 2 + (1 if season == TermSeason.EVEN else 0)

    @staticmethod
    def default_code(academic_year: str, season: str) -> str:
        match = ACADEMIC_YEAR_RE.match(academic_year or '')
        start_year = match.group(1) if match else academic_year
        return f"{start_year}/{2 if season == TermSeason.EVEN else 1}"

    def clean(self):
        """Validate academic year format."""
        match = ACADEMIC_YEAR_RE.match(self.academic_year or '')
        if not match:
            raise ValidationError({'academic_year': 'Academic year must look like 2024/2025.'})
        if int(match.group(2)) != int(match.group(1)) + 1:
            raise ValidationError({'academic_year': 'Academic year must span consecutive years.'})

    def save(self, *args, **kwargs):
        if not self.code:
            self.code = self.default_code(self.academic_year, self.season)
        if not self.label:
            season_label = dict(TermSeason.choices).get(self.season, self.season)
            self.label = f"{season_label} {self.academic_year}"
        self.sequence = self.compute_sequence(self.academic_year, self.season)
        self.full_clean()
        super().save(*args, **kwargs)


# ============ ROOM MODEL ============

class Room(models.Model):
    """Teaching room; only capacity lookups are needed by the scheduling core."""
    code = models.CharField(max_length=30, unique=True)
    name = models.CharField(max_length=100)
    capacity = models.PositiveIntegerField()
    building = models.CharField(max_length=100, blank=True)
    notes = models.TextField(blank=True)

    class Meta:
        db_table = 'core_room'
        ordering = ['name']
        indexes = [
            models.Index(fields=['capacity']),
        ]

    def __str__(self):
        return f"{self.name} ({self.capacity})"

    @property
    def option_label(self) -> str:
        return f"{self.name} (capacity: {self.capacity}) - {self.building}"

    def clean(self):
        if self.capacity is not None and self.capacity < 1:
            raise ValidationError({'capacity': 'Capacity must be at least 1.'})


# ============ AUDIT EVENT MODEL ============

class AuditEvent(models.Model):
    """Structured record emitted after each successful mutation."""
    actor = models.CharField(max_length=150, blank=True)
    action = models.CharField(max_length=30)
    target_type = models.CharField(max_length=50)
    target_id = models.CharField(max_length=100, blank=True)
    message = models.TextField()
    properties = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'core_audit_event'
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['target_type', 'target_id']),
            models.Index(fields=['actor']),
        ]

    def __str__(self):
        return f"[{self.action}] {self.target_type}:{self.target_id} by {self.actor or 'system'}"
