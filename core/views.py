# core/views.py
"""
CORE API VIEWS - terms, activation and room capacity lookups.
Thin wrappers: validation in serializers, rules in services.
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view

from .api import ok, validated
from .serializers import AcademicYearSerializer, CapacityQuerySerializer
from .services import TermService, RoomService

logger = logging.getLogger(__name__)


def _serialize_term(term):
    return {
        'id': term.id,
        'code': term.code,
        'academic_year': term.academic_year,
        'season': term.season,
        'label': term.label,
        'is_active': term.is_active,
    }


# ============ TERM VIEWS ============

@api_view(['GET'])
def active_term_view(request):
    """Currently active term, or null."""
    term = TermService.get_active_term()
    return ok(_serialize_term(term) if term else None)


@api_view(['POST'])
def academic_year_create_view(request):
    data = validated(AcademicYearSerializer, request.data)
    terms = TermService.create_academic_year(data['academic_year'], actor=request.user)
    return ok([_serialize_term(term) for term in terms], status_code=status.HTTP_201_CREATED)


@api_view(['GET', 'POST'])
def term_activation_view(request, code):
    """GET previews the activation diff; POST applies it."""
    if request.method == 'GET':
        return ok(TermService.plan_activation(code).as_dict())

    summary = TermService.activate(code, actor=request.user)
    logger.info(f"Term {code} activated by {request.user.get_username()}")
    return ok(summary)


# ============ ROOM VIEWS ============

@api_view(['GET'])
def rooms_by_capacity_view(request):
    data = validated(CapacityQuerySerializer, request.query_params)
    return ok(RoomService.rooms_by_capacity(data['capacity'], data['exclude_ids']))


@api_view(['GET'])
def room_options_view(request):
    data = validated(CapacityQuerySerializer, request.query_params)
    return ok(RoomService.room_options(data['capacity'], data['exclude_ids']))
