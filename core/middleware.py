# core/middleware.py
"""
MIDDLEWARE - JSON error translation and request logging.
"""
import logging

from django.conf import settings
from django.http import JsonResponse

from .exceptions import CurriculumError, InternalError

logger = logging.getLogger(__name__)


# ============ EXCEPTION HANDLING MIDDLEWARE ============

class ExceptionHandlingMiddleware:
    """Turns CurriculumError into a JSON error body; anything else becomes a logged 500."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        return self.get_response(request)

    def process_exception(self, request, exception):
        if isinstance(exception, CurriculumError):
            if exception.status_code >= 500:
                logger.error(f"Internal error on {request.path}: {exception}", exc_info=True)
            else:
                logger.warning(f"Business exception on {request.path}: {exception}")
            return JsonResponse(
                {'success': False, 'error': exception.to_dict()},
                status=exception.status_code,
            )

        logger.error(f"System exception on {request.path}: {exception}", exc_info=True)
        return JsonResponse(
            {'success': False, 'error': InternalError().to_dict()},
            status=InternalError.status_code,
        )


# ============ REQUEST LOGGING MIDDLEWARE ============

class RequestLoggingMiddleware:
    """Debug-level structured request/response logging."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        # Skip logging for static files and health checks
        if self._should_skip_logging(request):
            return self.get_response(request)

        if settings.DEBUG:
            logger.debug("Request", extra={
                "method": request.method,
                "path": request.path,
                "ip": self._get_client_ip(request),
                "user": getattr(request.user, "id", None) if hasattr(request, 'user') else None,
            })

        response = self.get_response(request)

        if settings.DEBUG:
            logger.debug("Response", extra={
                "path": request.path,
                "status": getattr(response, 'status_code', None),
                "user": getattr(request.user, "id", None) if hasattr(request, 'user') else None,
            })

        return response

    def _should_skip_logging(self, request) -> bool:
        skip_paths = ['/static/', '/media/', '/favicon.ico', '/health/']
        return any(request.path.startswith(path) for path in skip_paths)

    def _get_client_ip(self, request) -> str:
        xff = request.META.get("HTTP_X_FORWARDED_FOR")
        return xff.split(",")[0] if xff else request.META.get("REMOTE_ADDR", "unknown")
