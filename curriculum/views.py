# curriculum/views.py
"""
CURRICULUM API VIEWS - classes, module mappings, skill module assignments
and the batch detail endpoints.
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view

from core.api import ok, validated
from core.exceptions import ValidationError

from .batch import BatchViewService
from .serializers import (
    ClassBindingSerializer,
    ModuleMappingSerializer,
    BatchMappingSerializer,
    MultiTermMappingSerializer,
    AssignmentSerializer,
)
from .services import ClassBindingService, ModuleMappingService, ExpertiseAssignmentService

logger = logging.getLogger(__name__)


def _term_param(request):
    term = request.query_params.get('term')
    if not term:
        raise ValidationError("Query parameter 'term' is required", details={'term': ['This field is required.']})
    return term


# ============ CLASS BINDING VIEWS ============

@api_view(['GET', 'POST'])
def class_list_view(request, term):
    if request.method == 'GET':
        return ok(ClassBindingService.list_by_term(term))

    data = validated(ClassBindingSerializer, request.data)
    binding = ClassBindingService.bind(
        term, data['name'], data['group_names'],
        description=data['description'],
        group_kind=data.get('group_kind'),
        actor=request.user,
    )
    return ok(binding, status_code=status.HTTP_201_CREATED)


@api_view(['PUT', 'DELETE'])
def class_item_view(request, class_id):
    if request.method == 'DELETE':
        ClassBindingService.unbind(class_id, actor=request.user)
        return ok(message='Class deleted')

    data = validated(ClassBindingSerializer, request.data)
    binding = ClassBindingService.bind(
        None, data['name'], data['group_names'],
        description=data['description'],
        group_kind=data.get('group_kind'),
        binding_id=class_id,
        actor=request.user,
    )
    return ok(binding)


@api_view(['GET'])
def class_detail_view(request, class_id):
    return ok(BatchViewService.class_detail(class_id))


# ============ MODULE MAPPING VIEWS ============

@api_view(['GET', 'PUT'])
def module_groups_view(request, code):
    """GET ?term=... reads the mapping; PUT replaces it (empty list clears it)."""
    if request.method == 'GET':
        return ok(ModuleMappingService.get_mapping(code, _term_param(request)))

    data = validated(ModuleMappingSerializer, request.data)
    mapping = ModuleMappingService.map_groups(code, data['term'], data['group_names'], actor=request.user)
    return ok(mapping)


@api_view(['DELETE'])
def module_group_unmap_view(request, code, group_name):
    ModuleMappingService.unmap(code, _term_param(request), group_name, actor=request.user)
    return ok(message='Group unmapped')


@api_view(['GET'])
def available_groups_view(request, term):
    return ok(ModuleMappingService.list_available_groups(term))


@api_view(['GET'])
def groups_status_view(request, term):
    return ok(ModuleMappingService.list_all_groups_with_status(term))


@api_view(['POST'])
def batch_mapping_view(request):
    data = validated(BatchMappingSerializer, request.data)
    return ok(ModuleMappingService.batch_mapping(data['module_codes'], data['term']))


@api_view(['POST'])
def batch_mapping_multi_term_view(request):
    data = validated(MultiTermMappingSerializer, request.data)
    return ok(ModuleMappingService.batch_mapping_multi_term(data['terms']))


# ============ EXPERTISE ASSIGNMENT VIEWS ============

@api_view(['GET', 'POST'])
def assignment_list_view(request, skill_module_id):
    if request.method == 'GET':
        return ok(ExpertiseAssignmentService.list_by_module(skill_module_id))

    data = validated(AssignmentSerializer, request.data)
    assignment = ExpertiseAssignmentService.assign(
        skill_module_id, data['person_id'], data['expertise_tag'], actor=request.user,
    )
    return ok(assignment, status_code=status.HTTP_201_CREATED)


@api_view(['DELETE'])
def assignment_delete_view(request, skill_module_id, person_id, expertise_tag):
    ExpertiseAssignmentService.unassign(skill_module_id, person_id, expertise_tag, actor=request.user)
    return ok(message='Assignment removed')


# ============ BATCH DETAIL VIEWS ============

@api_view(['GET'])
def skill_module_overview_view(request):
    return ok(BatchViewService.skill_module_overview())


@api_view(['GET'])
def skill_module_detail_view(request, skill_module_id):
    return ok(BatchViewService.skill_module_detail(skill_module_id))


@api_view(['GET'])
def block_module_detail_view(request, code):
    return ok(BatchViewService.block_module_detail(code, term=request.query_params.get('term')))


@api_view(['GET'])
def csr_module_detail_view(request, code):
    return ok(BatchViewService.csr_module_detail(code, term=request.query_params.get('term')))
