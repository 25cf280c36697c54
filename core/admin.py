# core/admin.py
from django.contrib import admin
from .models import Term, Room, AuditEvent


@admin.register(Term)
class TermAdmin(admin.ModelAdmin):
    list_display = ['code', 'label', 'academic_year', 'season', 'is_active']
    list_filter = ['season', 'is_active']
    search_fields = ['code', 'academic_year', 'label']
    # Activation goes through TermService so students are re-keyed
    readonly_fields = ['is_active', 'sequence', 'created_at', 'updated_at']


@admin.register(Room)
class RoomAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'capacity', 'building']
    search_fields = ['code', 'name', 'building']
    ordering = ['capacity', 'name']


@admin.register(AuditEvent)
class AuditEventAdmin(admin.ModelAdmin):
    list_display = ['created_at', 'actor', 'action', 'target_type', 'target_id']
    list_filter = ['action', 'target_type']
    search_fields = ['actor', 'target_id', 'message']
    readonly_fields = [f.name for f in AuditEvent._meta.fields]

    def has_add_permission(self, request):
        return False
