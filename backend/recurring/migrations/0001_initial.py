import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("accounts", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="RecurringEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("public_id", models.UUIDField(default=uuid.uuid4, editable=False, unique=True)),
                ("name", models.CharField(max_length=255)),
                ("description", models.CharField(blank=True, default="", max_length=500)),
                ("lines", models.JSONField(default=list)),
                ("schedule_type", models.CharField(choices=[("DAILY", "Daily"), ("WEEKLY", "Weekly"), ("MONTHLY", "Monthly (day of month)"), ("CALENDAR_MONTHLY", "Monthly (last day)")], max_length=20)),
                ("time_of_day", models.TimeField(blank=True, help_text="Local time; midnight when empty", null=True)),
                ("day_of_week", models.PositiveSmallIntegerField(blank=True, help_text="0=Monday .. 6=Sunday (WEEKLY)", null=True)),
                ("day_of_month", models.PositiveSmallIntegerField(blank=True, help_text="1-31, clamped to the month's length (MONTHLY)", null=True)),
                ("start_at", models.DateTimeField(blank=True, null=True)),
                ("end_at", models.DateTimeField(blank=True, null=True)),
                ("auto_post", models.BooleanField(default=False)),
                ("enabled", models.BooleanField(default=True)),
                ("run_count", models.PositiveIntegerField(default=0)),
                ("max_runs", models.PositiveIntegerField(blank=True, null=True)),
                ("next_run", models.DateTimeField(blank=True, null=True)),
                ("last_run", models.DateTimeField(blank=True, null=True)),
                ("last_error", models.TextField(blank=True, default="")),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("company", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="recurring_entries", to="accounts.company")),
                ("created_by", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="recurring_entries", to=settings.AUTH_USER_MODEL)),
            ],
            options={
                "ordering": ["next_run", "id"],
                "indexes": [
                    models.Index(fields=["enabled", "next_run"], name="idx_recurring_due"),
                    models.Index(fields=["company", "enabled"], name="idx_recurring_company"),
                ],
            },
        ),
    ]
