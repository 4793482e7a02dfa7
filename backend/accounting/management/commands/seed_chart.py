# accounting/management/commands/seed_chart.py
"""
Seed a company's chart of accounts from an industry template.

Usage:
    python manage.py seed_chart --tenant acme --industry retail

Existing codes are left alone, so the command can be re-run safely.
"""

from django.core.management.base import BaseCommand, CommandError

from accounts.authz import owner_actor
from accounts.models import Company
from accounting.commands import seed_chart_of_accounts
from accounting.templates import INDUSTRIES


class Command(BaseCommand):
    help = "Create the template chart of accounts for a company"

    def add_arguments(self, parser):
        parser.add_argument("--tenant", type=str, required=True, help="Company slug")
        parser.add_argument(
            "--industry",
            type=str,
            choices=INDUSTRIES,
            help="Template to use (defaults to the company's industry)",
        )

    def handle(self, *args, **options):
        try:
            company = Company.objects.get(slug=options["tenant"])
        except Company.DoesNotExist:
            raise CommandError(f"Company '{options['tenant']}' not found")

        industry = options["industry"] or company.industry
        if not industry:
            raise CommandError("Company has no industry set; pass --industry")

        result = seed_chart_of_accounts(owner_actor(company), industry)
        if not result.success:
            raise CommandError(result.error)

        self.stdout.write(self.style.SUCCESS(
            f"Created {len(result.data)} account(s), skipped {result.meta['skipped']} existing"
        ))
