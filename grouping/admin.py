# grouping/admin.py
from django.contrib import admin
from .models import Group, GroupMembership, IntersessionGroup, IntersessionMembership


class GroupMembershipInline(admin.TabularInline):
    model = GroupMembership
    extra = 0
    raw_id_fields = ['person']
    readonly_fields = ['term', 'kind', 'person']

    # Membership edits go through GroupService
    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Group)
class GroupAdmin(admin.ModelAdmin):
    list_display = ['name', 'kind', 'term', 'created_at']
    list_filter = ['kind', 'term']
    search_fields = ['name']
    inlines = [GroupMembershipInline]


class IntersessionMembershipInline(admin.TabularInline):
    model = IntersessionMembership
    extra = 0
    raw_id_fields = ['person']
    readonly_fields = ['kind', 'person']

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(IntersessionGroup)
class IntersessionGroupAdmin(admin.ModelAdmin):
    list_display = ['name', 'kind', 'created_at']
    list_filter = ['kind']
    search_fields = ['name']
    inlines = [IntersessionMembershipInline]
