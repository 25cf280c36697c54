# settings/development.py
"""
Development settings for the curriculum scheduling project.
"""
from .base import *

# Debug settings
DEBUG = True
ALLOWED_HOSTS = ['localhost', '127.0.0.1', '0.0.0.0']

# Database configuration for development
DATABASES['default'].update({
    'ATOMIC_REQUESTS': True,
})

# Logging configuration for development
# Ensure logs directory exists
(BASE_DIR / 'logs').mkdir(exist_ok=True)

LOGGING['handlers']['file'] = {
    'level': 'DEBUG',
    'class': 'logging.FileHandler',
    'filename': BASE_DIR / 'logs' / 'development.log',
    'formatter': 'detailed',
}

LOGGING['handlers']['audit_file'] = {
    'level': 'INFO',
    'class': 'logging.FileHandler',
    'filename': BASE_DIR / 'logs' / 'audit.log',
    'formatter': 'audit',
}

LOGGING['loggers']['django']['handlers'] = ['console', 'file']
LOGGING['loggers']['audit']['handlers'] = ['audit_console', 'audit_file']

for _name in ('core', 'roster', 'grouping', 'curriculum', 'shared'):
    LOGGING['loggers'][_name]['handlers'] = ['console', 'file']
    LOGGING['loggers'][_name]['level'] = 'DEBUG'

# Disable security settings for development
SESSION_COOKIE_SECURE = False
CSRF_COOKIE_SECURE = False
SECURE_SSL_REDIRECT = False

# Allow all origins in development
CORS_ALLOW_ALL_ORIGINS = True

# Cache configuration for development
CACHES['default'] = {
    'BACKEND': 'django.core.cache.backends.dummy.DummyCache',
}
