# reports/models.py
"""
Saved report layouts.

A company may store one P&L and one Cash Flow configuration. The stored
JSON is the serialized form produced by reports.configs (sections mapping
to ``[{label, account_codes, sign}]``).
"""

from django.conf import settings
from django.db import models

from accounts.models import Company


class ReportConfiguration(models.Model):
    """Per-company layout for a configurable report."""

    class Kind(models.TextChoices):
        PROFIT_LOSS = "PROFIT_LOSS", "Profit & Loss"
        CASH_FLOW = "CASH_FLOW", "Cash Flow"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="report_configurations",
    )
    kind = models.CharField(max_length=20, choices=Kind.choices)
    config = models.JSONField(default=dict)

    updated_at = models.DateTimeField(auto_now=True)
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="report_configurations",
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "kind"],
                name="uniq_report_config_per_company",
            )
        ]

    def __str__(self):
        return f"{self.company_id}:{self.kind}"
