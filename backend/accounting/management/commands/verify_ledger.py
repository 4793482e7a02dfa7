# accounting/management/commands/verify_ledger.py
"""
Verify running account balances against the journal.

Usage:
    # Check one tenant
    python manage.py verify_ledger --tenant acme

    # Check every active tenant and fix drifted balances
    python manage.py verify_ledger --all-tenants --repair

    # Clear the quarantine flag on an entry after manual review
    python manage.py verify_ledger --tenant acme --release 42
"""

import json

from django.core.management.base import BaseCommand, CommandError

from accounts.models import Company
from accounting.verification import release_quarantine, verify_ledger_balances


class Command(BaseCommand):
    help = "Verify account running balances against posted journal lines"

    def add_arguments(self, parser):
        parser.add_argument("--tenant", type=str, help="Company slug to verify")
        parser.add_argument(
            "--all-tenants",
            action="store_true",
            help="Verify every active company",
        )
        parser.add_argument(
            "--repair",
            action="store_true",
            help="Overwrite drifted running balances with the recomputed value",
        )
        parser.add_argument(
            "--release",
            type=int,
            metavar="ENTRY_ID",
            help="Release a quarantined journal entry (requires --tenant)",
        )
        parser.add_argument("--json", action="store_true", help="Print the report as JSON")

    def handle(self, *args, **options):
        if bool(options["tenant"]) == bool(options["all_tenants"]):
            raise CommandError("Specify exactly one of --tenant <slug> or --all-tenants")

        if options["tenant"]:
            try:
                companies = [Company.objects.get(slug=options["tenant"])]
            except Company.DoesNotExist:
                raise CommandError(f"Company '{options['tenant']}' not found")
        else:
            companies = list(Company.objects.filter(is_active=True).order_by("id"))

        if options["release"] is not None:
            if options["all_tenants"]:
                raise CommandError("--release requires --tenant")
            if release_quarantine(companies[0], options["release"]):
                self.stdout.write(self.style.SUCCESS(f"Released entry {options['release']}"))
            else:
                raise CommandError(f"Entry {options['release']} is not quarantined")
            return

        problems = 0
        for company in companies:
            report = verify_ledger_balances(company, repair=options["repair"])
            if options["json"]:
                self.stdout.write(json.dumps({"company": company.slug, **report}, indent=2))
                continue

            self.stdout.write(f"\n{company.name} ({company.slug})")
            self.stdout.write(
                f"  accounts: {report['total_accounts']}  verified: {report['verified']}"
            )
            for mismatch in report["mismatches"]:
                self.stdout.write(self.style.ERROR(
                    f"  {mismatch['account_code']}: stored {mismatch['stored']} "
                    f"expected {mismatch['expected']}"
                ))
            for entry in report["unbalanced_entries"]:
                self.stdout.write(self.style.ERROR(
                    f"  unbalanced entry {entry['reference']}: "
                    f"{entry['total_debit']} / {entry['total_credit']}"
                ))
            for entry in report["quarantined_entries"]:
                self.stdout.write(self.style.WARNING(
                    f"  quarantined entry {entry['id']} {entry['reference']}: {entry['reason']}"
                ))
            if report["repaired"]:
                self.stdout.write(self.style.SUCCESS(f"  repaired {report['repaired']} account(s)"))

            problems += len(report["mismatches"]) - report["repaired"] + len(report["unbalanced_entries"])

        if problems and not options["json"]:
            self.stdout.write(self.style.ERROR(f"\n{problems} problem(s) found"))
        elif not options["json"]:
            self.stdout.write(self.style.SUCCESS("\nLedger verified"))
