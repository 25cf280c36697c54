# grouping/urls.py
from django.urls import path
from . import views

app_name = 'grouping'

urlpatterns = [
    # Batch, single group and intersession (before the term routes, term codes may look like paths)
    path('batch/', views.groups_by_terms_view, name='groups_by_terms'),
    path('<int:group_id>/', views.group_delete_view, name='group_delete'),
    path('intersession/item/<int:group_id>/', views.intersession_group_detail_view, name='intersession_group_detail'),
    path('intersession/<kind:kind>/by-name/', views.intersession_group_by_name_view, name='intersession_group_by_name'),
    path('intersession/<kind:kind>/', views.intersession_group_list_view, name='intersession_group_list'),

    # Term scoped
    path('<term:term>/small/generate/', views.generate_small_groups_view, name='generate_small_groups'),
    path('<term:term>/<kind:kind>/stats/', views.group_stats_view, name='group_stats'),
    path('<term:term>/<kind:kind>/detail/', views.group_batch_detail_view, name='group_batch_detail'),
    path('<term:term>/<kind:kind>/members/move/', views.member_move_view, name='member_move'),
    path('<term:term>/<kind:kind>/members/', views.member_add_view, name='member_add'),
    path('<term:term>/<kind:kind>/members/<int:person_id>/', views.member_remove_view, name='member_remove'),
    path('<term:term>/<kind:kind>/', views.group_set_view, name='group_set'),
]
