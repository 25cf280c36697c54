# config/urls.py

from django.contrib import admin
from django.urls import path, include, register_converter

from core.converters import TermCodeConverter, GroupKindConverter

from . import views

# Term codes contain a slash; converters must exist before the app URLconfs load
register_converter(TermCodeConverter, 'term')
register_converter(GroupKindConverter, 'kind')

# -------------------------------------------------------------------
# URL CONFIGURATION
# -------------------------------------------------------------------

urlpatterns = [
    # ----------------------------------------------------------------
    # Health & diagnostics
    # ----------------------------------------------------------------
    path("health/", views.health_check_view, name="health_check"),

    # ----------------------------------------------------------------
    # Application namespaces
    # ----------------------------------------------------------------
    path("api/", include(("core.urls", "core"), namespace="core")),
    path("api/groups/", include(("grouping.urls", "grouping"), namespace="grouping")),
    path("api/", include(("curriculum.urls", "curriculum"), namespace="curriculum")),

    # ----------------------------------------------------------------
    # Admin
    # ----------------------------------------------------------------
    path("admin/", admin.site.urls),
]

# -------------------------------------------------------------------
# Error handlers
# -------------------------------------------------------------------

handler404 = "config.views.handler404"
handler500 = "config.views.handler500"
