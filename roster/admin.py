# roster/admin.py
from django.contrib import admin
from .models import Person


@admin.register(Person)
class PersonAdmin(admin.ModelAdmin):
    list_display = ['name', 'role', 'student_number', 'employee_number', 'semester_number', 'status', 'assignment_count']
    list_filter = ['role', 'status', 'gender', 'current_term']
    search_fields = ['name', 'student_number', 'employee_number', 'email']
    readonly_fields = ['assignment_count', 'created_at', 'updated_at']
    raw_id_fields = ['entry_term', 'current_term']
