"""
Celery tasks for ledger maintenance.

Tasks:
- verify_company_ledger: Verify one company's running balances
- verify_ledger_balances: Verify every active company (nightly beat)
"""
import logging

from celery import shared_task

logger = logging.getLogger(__name__)


@shared_task(bind=True, max_retries=3, default_retry_delay=60)
def verify_company_ledger(self, company_id: int, repair: bool = False) -> dict:
    """
    Verify a single company's balances.

    Returns:
        Summary with mismatch / quarantine counts
    """
    from accounts.models import Company
    from accounting.verification import verify_ledger_balances

    try:
        company = Company.objects.get(id=company_id)
    except Company.DoesNotExist:
        logger.error("Company not found for ledger verification", extra={"company_id": company_id})
        return {"error": f"Company {company_id} not found"}

    report = verify_ledger_balances(company, repair=repair)
    return {
        "company_id": company_id,
        "total_accounts": report["total_accounts"],
        "mismatches": len(report["mismatches"]),
        "repaired": report["repaired"],
        "unbalanced_entries": len(report["unbalanced_entries"]),
        "quarantined_entries": len(report["quarantined_entries"]),
    }


@shared_task(bind=True)
def verify_ledger_balances(self) -> dict:
    """
    Verify all active companies.

    Scheduled nightly through django-celery-beat.
    """
    from accounts.models import Company

    results = {}
    for company_id in Company.objects.filter(is_active=True).values_list("id", flat=True):
        results[company_id] = verify_company_ledger(company_id)

    problems = sum(
        r.get("mismatches", 0) + r.get("unbalanced_entries", 0)
        for r in results.values()
    )
    logger.info(
        "Nightly ledger verification finished",
        extra={"company_count": len(results), "problem_count": problems},
    )
    return {"companies": len(results), "problems": problems}
