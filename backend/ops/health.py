"""
Health check endpoints.

- /_health/live   liveness probe (process is up, no I/O)
- /_health/ready  readiness probe (default database reachable)
- /_health/full   databases, Celery broker and quarantined journal entries
"""
import logging
import time
from typing import Any

from django.conf import settings
from django.db import connections
from django.http import JsonResponse
from django.views import View

logger = logging.getLogger(__name__)


def _elapsed_ms(start: float) -> float:
    return round((time.monotonic() - start) * 1000, 2)


class HealthCheck:

    @staticmethod
    def check_database(alias: str = "default") -> dict[str, Any]:
        start = time.monotonic()
        try:
            with connections[alias].cursor() as cursor:
                cursor.execute("SELECT 1")
                cursor.fetchone()
        except Exception as exc:
            logger.warning("Database health check failed", extra={"alias": alias, "error": str(exc)})
            return {"status": "unhealthy", "alias": alias, "error": str(exc), "duration_ms": _elapsed_ms(start)}
        return {"status": "healthy", "alias": alias, "duration_ms": _elapsed_ms(start)}

    @staticmethod
    def check_all_databases() -> dict[str, Any]:
        results = {alias: HealthCheck.check_database(alias) for alias in settings.DATABASES}
        healthy = all(r["status"] == "healthy" for r in results.values())
        return {"status": "healthy" if healthy else "degraded", "databases": results}

    @staticmethod
    def check_broker() -> dict[str, Any]:
        """Ping the Redis broker used by Celery."""
        broker_url = getattr(settings, "CELERY_BROKER_URL", None)
        if not broker_url or not broker_url.startswith(("redis://", "rediss://")):
            return {"status": "skipped", "reason": "Redis broker not configured"}

        import redis

        start = time.monotonic()
        try:
            redis.from_url(broker_url, socket_connect_timeout=2).ping()
        except redis.RedisError as exc:
            return {"status": "unhealthy", "error": str(exc), "duration_ms": _elapsed_ms(start)}
        return {"status": "healthy", "duration_ms": _elapsed_ms(start)}

    @staticmethod
    def check_quarantine() -> dict[str, Any]:
        """Quarantined entries need manual review; any at all degrades health."""
        from accounting.models import JournalEntry

        entries = JournalEntry.objects.filter(is_quarantined=True)
        count = entries.count()
        return {
            "status": "healthy" if count == 0 else "degraded",
            "quarantined_entries": count,
            "sample": list(entries.order_by("-id").values("id", "company_id", "reference", "quarantine_reason")[:10]),
        }

    @staticmethod
    def get_full_health() -> dict[str, Any]:
        checks = {
            "databases": HealthCheck.check_all_databases(),
            "broker": HealthCheck.check_broker(),
        }
        if checks["databases"]["status"] == "healthy":
            checks["ledger"] = HealthCheck.check_quarantine()

        statuses = [c["status"] for c in checks.values()]
        if all(s in ("healthy", "skipped") for s in statuses):
            overall = "healthy"
        elif "unhealthy" in statuses:
            overall = "unhealthy"
        else:
            overall = "degraded"

        return {
            "status": overall,
            "checks": checks,
            "version": getattr(settings, "VERSION", "unknown"),
            "environment": "development" if settings.DEBUG else "production",
        }


class LivenessView(View):
    def get(self, request):
        return JsonResponse({"status": "alive"})


class ReadinessView(View):
    def get(self, request):
        db_check = HealthCheck.check_database("default")
        if db_check["status"] == "healthy":
            return JsonResponse({"status": "ready", "database": db_check})
        return JsonResponse({"status": "not_ready", "database": db_check}, status=503)


class FullHealthView(View):
    """Internal network only in production."""

    def get(self, request):
        health = HealthCheck.get_full_health()
        return JsonResponse(health, status=200 if health["status"] == "healthy" else 503)
