# reports/serializers.py
"""
Input serializers for report endpoints.

Report payloads are plain dicts built by the report modules; they are
rendered by reports.views.jsonable rather than by model serializers.
"""

from decimal import Decimal

from rest_framework import serializers

from .models import ReportConfiguration


class ConfigurableReportSerializer(serializers.Serializer):
    """Body of a POSTed P&L / Cash Flow run with an ad-hoc layout."""
    config = serializers.JSONField(required=False, allow_null=True)


class ReportConfigurationInputSerializer(serializers.Serializer):
    config = serializers.JSONField()


class ReportConfigurationSerializer(serializers.ModelSerializer):
    updated_by = serializers.CharField(source="updated_by.email", read_only=True, default=None)

    class Meta:
        model = ReportConfiguration
        fields = ["kind", "config", "updated_at", "updated_by"]


class GstReconciliationSerializer(serializers.Serializer):
    file = serializers.FileField()
    tolerance_amount = serializers.DecimalField(
        max_digits=12,
        decimal_places=2,
        min_value=Decimal("0"),
        default=Decimal("1.00"),
    )
    tolerance_days = serializers.IntegerField(min_value=0, default=3)
