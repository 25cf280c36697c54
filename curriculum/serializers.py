# curriculum/serializers.py
from rest_framework import serializers

from shared.constants import GroupKind


class ClassBindingSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=100)
    description = serializers.CharField(required=False, allow_blank=True, default='')
    group_kind = serializers.ChoiceField(choices=GroupKind.choices, required=False)
    group_names = serializers.ListField(child=serializers.CharField(max_length=100), default=list)


class ModuleMappingSerializer(serializers.Serializer):
    term = serializers.CharField(max_length=20)
    group_names = serializers.ListField(child=serializers.CharField(max_length=100), allow_empty=True)


class BatchMappingSerializer(serializers.Serializer):
    term = serializers.CharField(max_length=20)
    module_codes = serializers.ListField(child=serializers.CharField(max_length=30), allow_empty=False)


class MultiTermMappingSerializer(serializers.Serializer):
    terms = serializers.DictField(
        child=serializers.ListField(child=serializers.CharField(max_length=30)),
        allow_empty=False,
    )


class AssignmentSerializer(serializers.Serializer):
    person_id = serializers.IntegerField(min_value=1)
    expertise_tag = serializers.CharField(max_length=100)
