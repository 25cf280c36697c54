# grouping/views.py
"""
GROUP STORE API VIEWS
"""
import logging

from rest_framework import status
from rest_framework.decorators import api_view

from core.api import ok, validated

from .serializers import (
    ReplaceGroupsSerializer,
    GenerateSmallGroupsSerializer,
    AddMemberSerializer,
    GroupsByTermsSerializer,
    GroupNamesSerializer,
    MoveMembersSerializer,
    IntersessionGroupSerializer,
)
from .services import GroupService, IntersessionGroupService

logger = logging.getLogger(__name__)


# ============ GROUP SET VIEWS ============

@api_view(['GET', 'PUT'])
def group_set_view(request, term, kind):
    """GET lists the term's groups of a kind; PUT replaces them all."""
    if request.method == 'GET':
        return ok(GroupService.get_by_term(term, kind))

    data = validated(ReplaceGroupsSerializer, request.data)
    groups = GroupService.replace_groups(
        term, kind, data['groups'],
        actor=request.user,
        exclusive_across_kinds=data['exclusive_across_kinds'],
    )
    return ok(groups)


@api_view(['POST'])
def generate_small_groups_view(request, term):
    data = validated(GenerateSmallGroupsSerializer, request.data)
    groups = GroupService.generate_small_groups(
        term, data['student_ids'], data['group_count'], actor=request.user,
    )
    return ok(groups, status_code=status.HTTP_201_CREATED)


@api_view(['GET'])
def group_stats_view(request, term, kind):
    return ok(GroupService.group_stats(term, kind))


@api_view(['POST'])
def group_batch_detail_view(request, term, kind):
    data = validated(GroupNamesSerializer, request.data)
    return ok(GroupService.batch_detail(term, data['names'], kind))


# ============ MEMBER VIEWS ============

@api_view(['POST'])
def member_add_view(request, term, kind):
    data = validated(AddMemberSerializer, request.data)
    group = GroupService.add_member(term, kind, data['group_name'], data['person_id'], actor=request.user)
    return ok(group, status_code=status.HTTP_201_CREATED)


@api_view(['DELETE'])
def member_remove_view(request, term, kind, person_id):
    removed = GroupService.remove_member(term, kind, person_id, actor=request.user)
    return ok(removed=removed)


@api_view(['POST'])
def member_move_view(request, term, kind):
    """Move several students to other groups in one transaction."""
    data = validated(MoveMembersSerializer, request.data)
    groups = GroupService.move_members(term, kind, data['moves'], actor=request.user)
    return ok(groups)


# ============ SINGLE GROUP & BATCH VIEWS ============

@api_view(['DELETE'])
def group_delete_view(request, group_id):
    GroupService.delete_group(group_id, actor=request.user)
    return ok(message='Group deleted')


@api_view(['POST'])
def groups_by_terms_view(request):
    """Groups of many terms in one round trip."""
    data = validated(GroupsByTermsSerializer, request.data)
    return ok(GroupService.batch_by_terms(data['terms'], data['kind']))


# ============ INTERSESSION VIEWS ============

@api_view(['GET', 'POST'])
def intersession_group_list_view(request, kind):
    if request.method == 'GET':
        return ok(IntersessionGroupService.list_groups(kind))

    data = validated(IntersessionGroupSerializer, request.data)
    group = IntersessionGroupService.save_group(kind, data['name'], data['member_ids'], actor=request.user)
    return ok(group, status_code=status.HTTP_201_CREATED)


@api_view(['GET'])
def intersession_group_by_name_view(request, kind):
    return ok(IntersessionGroupService.get_by_name(kind, request.query_params.get('name')))


@api_view(['PUT', 'DELETE'])
def intersession_group_detail_view(request, group_id):
    if request.method == 'DELETE':
        IntersessionGroupService.delete_group(group_id, actor=request.user)
        return ok(message='Intersession group deleted')

    data = validated(IntersessionGroupSerializer, request.data)
    group = IntersessionGroupService.save_group(
        None, data['name'], data['member_ids'], group_id=group_id, actor=request.user,
    )
    return ok(group)
