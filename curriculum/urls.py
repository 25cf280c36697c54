# curriculum/urls.py
from django.urls import path
from . import views

app_name = 'curriculum'

urlpatterns = [
    # Classes (item routes first, term codes may look like paths)
    path('classes/item/<int:class_id>/', views.class_item_view, name='class_item'),
    path('classes/item/<int:class_id>/detail/', views.class_detail_view, name='class_detail'),
    path('classes/<term:term>/', views.class_list_view, name='class_list'),

    # Module group mappings (trailing names may contain '/')
    path('modules/<str:code>/groups/', views.module_groups_view, name='module_groups'),
    path('modules/<str:code>/groups/<path:group_name>/', views.module_group_unmap_view, name='module_group_unmap'),
    path('module-groups/batch/', views.batch_mapping_view, name='batch_mapping'),
    path('module-groups/batch-multi-term/', views.batch_mapping_multi_term_view, name='batch_mapping_multi_term'),
    path('module-groups/<term:term>/available/', views.available_groups_view, name='available_groups'),
    path('module-groups/<term:term>/status/', views.groups_status_view, name='groups_status'),

    # Skill modules
    path('skill-modules/overview/', views.skill_module_overview_view, name='skill_module_overview'),
    path('skill-modules/<int:skill_module_id>/detail/', views.skill_module_detail_view, name='skill_module_detail'),
    path('skill-modules/<int:skill_module_id>/assignments/', views.assignment_list_view, name='assignment_list'),
    path(
        'skill-modules/<int:skill_module_id>/assignments/<int:person_id>/<path:expertise_tag>/',
        views.assignment_delete_view,
        name='assignment_delete',
    ),

    # Batch detail screens
    path('modules/<str:code>/block-detail/', views.block_module_detail_view, name='block_module_detail'),
    path('modules/<str:code>/csr-detail/', views.csr_module_detail_view, name='csr_module_detail'),
]
