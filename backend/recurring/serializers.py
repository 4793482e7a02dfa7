# recurring/serializers.py
"""Serializers for recurring entry API."""

from rest_framework import serializers

from accounting.serializers import JournalLineInputSerializer
from .models import RecurringEntry


class RecurringEntrySerializer(serializers.ModelSerializer):
    created_by_email = serializers.EmailField(source="created_by.email", read_only=True, default=None)

    class Meta:
        model = RecurringEntry
        fields = [
            "id", "public_id", "name", "description", "lines",
            "schedule_type", "time_of_day", "day_of_week", "day_of_month",
            "start_at", "end_at", "auto_post", "enabled",
            "run_count", "max_runs", "next_run", "last_run", "last_error",
            "created_by_email", "created_at", "updated_at",
        ]
        read_only_fields = fields


class RecurringEntryInputSerializer(serializers.Serializer):
    """Create / update payload. On PATCH only the sent fields are applied."""
    name = serializers.CharField(max_length=255)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    lines = JournalLineInputSerializer(many=True)
    schedule_type = serializers.ChoiceField(choices=RecurringEntry.ScheduleType.choices)
    time_of_day = serializers.TimeField(required=False, allow_null=True)
    day_of_week = serializers.IntegerField(required=False, allow_null=True, min_value=0, max_value=6)
    day_of_month = serializers.IntegerField(required=False, allow_null=True, min_value=1, max_value=31)
    start_at = serializers.DateTimeField(required=False, allow_null=True)
    end_at = serializers.DateTimeField(required=False, allow_null=True)
    auto_post = serializers.BooleanField(required=False)
    enabled = serializers.BooleanField(required=False)
    max_runs = serializers.IntegerField(required=False, allow_null=True, min_value=1)
