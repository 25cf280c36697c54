# grouping/models.py
"""
GROUP STORE MODELS - small and large student groups per term.
"""
import logging

from django.db import models
from django.core.exceptions import ValidationError

from shared.constants import GroupKind, PersonRole

logger = logging.getLogger(__name__)


class Group(models.Model):
    """
    Named set of students within a term.
    Bindings and mappings refer to groups by (term, kind, name), never by id.
    """
    term = models.ForeignKey('core.Term', on_delete=models.PROTECT, related_name='groups')
    kind = models.CharField(max_length=10, choices=GroupKind.choices)
    name = models.CharField(max_length=100)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'grouping_group'
        unique_together = ['term', 'kind', 'name']
        ordering = ['term', 'kind', 'name']
        indexes = [
            models.Index(fields=['term', 'kind']),
        ]

    def __str__(self):
        return f"{self.get_kind_display()} {self.name} ({self.term_id})"


class GroupMembership(models.Model):
    """
    One student in one group. term and kind are copied from the group so the
    database can enforce one group per student per (term, kind).
    """
    group = models.ForeignKey(Group, on_delete=models.CASCADE, related_name='memberships')
    term = models.ForeignKey('core.Term', on_delete=models.PROTECT, related_name='+')
    kind = models.CharField(max_length=10, choices=GroupKind.choices)
    person = models.ForeignKey('roster.Person', on_delete=models.PROTECT, related_name='group_memberships')

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'grouping_membership'
        unique_together = ['term', 'kind', 'person']
        indexes = [
            models.Index(fields=['group']),
        ]

    def __str__(self):
        return f"{self.person_id} in {self.group_id}"

    def clean(self):
        if self.group_id and (self.group.term_id != self.term_id or self.group.kind != self.kind):
            raise ValidationError("Membership term and kind must match its group.")
        if self.person_id and self.person.role != PersonRole.STUDENT:
            raise ValidationError({'person': 'Only students can join groups.'})


class IntersessionGroup(models.Model):
    """
    Group for the intersession (short) semester. Not tied to a term: there is
    one pool of small and one of large intersession groups.
    """
    kind = models.CharField(max_length=10, choices=GroupKind.choices)
    name = models.CharField(max_length=100)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        db_table = 'grouping_intersession_group'
        unique_together = ['kind', 'name']
        ordering = ['kind', 'name']

    def __str__(self):
        return f"Intersession {self.get_kind_display()} {self.name}"


class IntersessionMembership(models.Model):
    group = models.ForeignKey(IntersessionGroup, on_delete=models.CASCADE, related_name='memberships')
    kind = models.CharField(max_length=10, choices=GroupKind.choices)
    person = models.ForeignKey(
        'roster.Person', on_delete=models.PROTECT, related_name='intersession_memberships',
    )

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = 'grouping_intersession_membership'
        unique_together = ['kind', 'person']

    def __str__(self):
        return f"{self.person_id} in intersession {self.group_id}"
