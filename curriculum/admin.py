# curriculum/admin.py
from django.contrib import admin
from .models import (
    Module,
    ClassBinding,
    ClassGroupLink,
    ModuleGroupMapping,
    ClinicalSkillModule,
    ExpertiseAssignment,
    ScheduleEntry,
)


@admin.register(Module)
class ModuleAdmin(admin.ModelAdmin):
    list_display = ['code', 'name', 'category', 'non_block_type', 'term', 'study_semester']
    list_filter = ['category', 'non_block_type', 'term']
    search_fields = ['code', 'name']


class ClassGroupLinkInline(admin.TabularInline):
    model = ClassGroupLink
    extra = 0
    readonly_fields = ['term', 'group_kind', 'group_name']

    # Bindings are replaced through ClassBindingService
    def has_add_permission(self, request, obj=None):
        return False


@admin.register(ClassBinding)
class ClassBindingAdmin(admin.ModelAdmin):
    list_display = ['name', 'term', 'group_kind']
    list_filter = ['term', 'group_kind']
    search_fields = ['name', 'description']
    inlines = [ClassGroupLinkInline]


@admin.register(ModuleGroupMapping)
class ModuleGroupMappingAdmin(admin.ModelAdmin):
    list_display = ['group_name', 'module', 'term', 'group_kind']
    list_filter = ['term']
    search_fields = ['group_name', 'module__code']


@admin.register(ClinicalSkillModule)
class ClinicalSkillModuleAdmin(admin.ModelAdmin):
    list_display = ['number', 'name', 'module', 'status']
    list_filter = ['status', 'module']
    search_fields = ['number', 'name']


@admin.register(ExpertiseAssignment)
class ExpertiseAssignmentAdmin(admin.ModelAdmin):
    list_display = ['skill_module', 'person', 'expertise_tag', 'created_at']
    list_filter = ['expertise_tag']
    raw_id_fields = ['person']


@admin.register(ScheduleEntry)
class ScheduleEntryAdmin(admin.ModelAdmin):
    list_display = ['module', 'schedule_type', 'date', 'start_time', 'end_time', 'room', 'group_name']
    list_filter = ['schedule_type', 'module']
    date_hierarchy = 'date'
