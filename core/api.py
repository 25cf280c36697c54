# core/api.py
"""
Small helpers shared by the JSON views of every app.
"""
import logging
from typing import Any, Type

from rest_framework import serializers, status
from rest_framework.response import Response

from .exceptions import ValidationError

logger = logging.getLogger(__name__)


def validated(serializer_class: Type[serializers.Serializer], data) -> dict:
    """
    Validate a payload with a DRF serializer.

    Raises:
        ValidationError: With the serializer's field errors as details
    """
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        logger.debug(f"{serializer_class.__name__} rejected: {serializer.errors}")
        raise ValidationError("Invalid request data", details=serializer.errors)
    return serializer.validated_data


def ok(data: Any = None, status_code: int = status.HTTP_200_OK, **extra) -> Response:
    """Success envelope mirroring the error body {success, error}."""
    body = {'success': True}
    if data is not None:
        body['data'] = data
    body.update(extra)
    return Response(body, status=status_code)
