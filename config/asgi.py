"""
ASGI config for the curriculum scheduling project.

It exposes the ASGI callable as a module-level variable named ``application``.
"""

import os

from django.core.asgi import get_asgi_application

# settings/__init__.py picks development or production from DJANGO_ENV
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'settings')

application = get_asgi_application()
