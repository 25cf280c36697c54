# grouping/serializers.py
from rest_framework import serializers

from shared.constants import GroupKind


class GroupPayloadSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    member_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), default=list)


class ReplaceGroupsSerializer(serializers.Serializer):
    groups = GroupPayloadSerializer(many=True)
    exclusive_across_kinds = serializers.BooleanField(default=False)


class GenerateSmallGroupsSerializer(serializers.Serializer):
    student_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
    group_count = serializers.IntegerField(min_value=1)


class AddMemberSerializer(serializers.Serializer):
    group_name = serializers.CharField(max_length=100)
    person_id = serializers.IntegerField(min_value=1)


class GroupsByTermsSerializer(serializers.Serializer):
    terms = serializers.ListField(child=serializers.CharField(max_length=20), allow_empty=False)
    kind = serializers.ChoiceField(choices=GroupKind.choices, default=GroupKind.SMALL)


class GroupNamesSerializer(serializers.Serializer):
    names = serializers.ListField(child=serializers.CharField(max_length=100), allow_empty=False)


class MoveSerializer(serializers.Serializer):
    person_id = serializers.IntegerField(min_value=1)
    group_name = serializers.CharField(max_length=100)


class MoveMembersSerializer(serializers.Serializer):
    moves = MoveSerializer(many=True, allow_empty=False)


class IntersessionGroupSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    member_ids = serializers.ListField(child=serializers.IntegerField(min_value=1), allow_empty=False)
