# core/serializers.py
from rest_framework import serializers


class AcademicYearSerializer(serializers.Serializer):
    academic_year = serializers.RegexField(r'^\d{4}/\d{4}$', max_length=9)


class CapacityQuerySerializer(serializers.Serializer):
    capacity = serializers.IntegerField(min_value=0)
    exclude_ids = serializers.CharField(required=False, allow_blank=True, default='')

    def validate_exclude_ids(self, value):
        try:
            return [int(part) for part in value.split(',') if part.strip()]
        except ValueError:
            raise serializers.ValidationError("Use comma separated room ids.")
