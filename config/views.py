# config/views.py
"""
Project level views: health check and JSON error handlers.
"""

from django.db import connection
from django.db.utils import OperationalError
from django.http import JsonResponse
from django.utils import timezone


# ============================================================================
# HEALTH & STATUS
# ============================================================================

def health_check_view(request):
    """System health check endpoint."""
    try:
        with connection.cursor() as cursor:
            cursor.execute("SELECT 1")
        db_status = True
    except OperationalError:
        db_status = False

    status_code = 200 if db_status else 503

    return JsonResponse({
        'status': 'healthy' if db_status else 'unhealthy',
        'database': 'connected' if db_status else 'disconnected',
        'timestamp': timezone.now().isoformat(),
    }, status=status_code)


# ============================================================================
# ERROR HANDLERS
# ============================================================================

def handler404(request, exception):
    return JsonResponse({
        'success': False,
        'error': {
            'code': 'NOT_FOUND',
            'message': 'The requested resource does not exist.',
            'details': {'path': request.path},
        },
    }, status=404)


def handler500(request):
    return JsonResponse({
        'success': False,
        'error': {
            'code': 'INTERNAL_ERROR',
            'message': 'Internal error. Please try again later.',
            'details': {},
        },
    }, status=500)
