# core/urls.py
from django.urls import path
from . import views

app_name = 'core'

urlpatterns = [
    # Terms
    path('terms/active/', views.active_term_view, name='active_term'),
    path('terms/academic-years/', views.academic_year_create_view, name='academic_year_create'),
    path('terms/<term:code>/activation/', views.term_activation_view, name='term_activation'),

    # Rooms
    path('rooms/by-capacity/', views.rooms_by_capacity_view, name='rooms_by_capacity'),
    path('rooms/options/', views.room_options_view, name='room_options'),
]
