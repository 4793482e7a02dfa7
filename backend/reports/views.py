# reports/views.py
"""
Report endpoints.

Every report requires ``reports.view``. Adding ``?export=xlsx`` or
``?export=csv`` to a tabular report downloads it instead and additionally
requires ``reports.export``.

Point-in-time reports take ``?as_of=YYYY-MM-DD`` (default: current
balances); period reports take ``?from=`` and ``?to=``.
"""

from datetime import date, datetime
from decimal import Decimal

from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import require, resolve_actor
from accounting.exceptions import LedgerError
from accounting.views import error_response, failure_response
from .commands import reset_report_configuration, save_report_configuration
from .configs import KIND_CLASSES, resolve_config
from .configurable import cash_flow, profit_and_loss
from .exports import ExportFormat, create_export_response
from .models import ReportConfiguration
from .serializers import (
    ConfigurableReportSerializer,
    GstReconciliationSerializer,
    ReportConfigurationInputSerializer,
    ReportConfigurationSerializer,
)
from .statements import balance_sheet, inventory_valuation, net_income, trial_balance
from .tax import gst_summary, reconcile_gstr2b


def jsonable(value):
    """Decimals as strings and dates as ISO strings, recursively."""
    if isinstance(value, dict):
        return {k: jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [jsonable(v) for v in value]
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


class ReportView(APIView):
    """
    Base for read-only report endpoints.

    Subclasses implement ``build(actor, params)``; ``export_kind`` names the
    flattener in reports.exports for reports that can be downloaded.
    """
    permission_classes = [IsAuthenticated]
    export_kind = None

    def build(self, actor, params):
        raise NotImplementedError

    def render(self, request, actor, params):
        fmt = request.query_params.get("export")
        if fmt and fmt not in ExportFormat.CHOICES:
            return Response(
                {"detail": f"Unsupported format '{fmt}'.", "code": "ValidationFailed"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if fmt and self.export_kind is None:
            return Response(
                {"detail": "This report cannot be exported.", "code": "ValidationFailed"},
                status=status.HTTP_400_BAD_REQUEST,
            )
        if fmt:
            require(actor, "reports.export")

        try:
            report = self.build(actor, params)
        except LedgerError as exc:
            return error_response(exc)

        if fmt:
            return create_export_response(report, self.export_kind, fmt)
        return Response(jsonable(report))

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")
        return self.render(request, actor, request.query_params)


class TrialBalanceView(ReportView):
    """GET /api/reports/trial-balance/?as_of="""
    export_kind = "trial-balance"

    def build(self, actor, params):
        return trial_balance(actor.company, params.get("as_of"))


class BalanceSheetView(ReportView):
    """GET /api/reports/balance-sheet/?as_of="""
    export_kind = "balance-sheet"

    def build(self, actor, params):
        return balance_sheet(actor.company, params.get("as_of"))


class NetIncomeView(ReportView):
    """GET /api/reports/net-income/?from=&to="""

    def build(self, actor, params):
        return net_income(actor.company, params.get("from"), params.get("to"))


class InventoryValuationView(ReportView):
    """GET /api/reports/inventory-valuation/?as_of=&parent_code="""
    export_kind = "inventory-valuation"

    def build(self, actor, params):
        return inventory_valuation(actor.company, params.get("as_of"), params.get("parent_code") or None)


class _ConfigurableReportView(ReportView):
    """
    GET runs with the saved (or default) layout.
    POST {"config": {...}} runs once with an ad-hoc layout.
    """
    builder = None

    def build(self, actor, params):
        return type(self).builder(actor.company, params.get("from"), params.get("to"), params.get("config"))

    def post(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")

        input_serializer = ConfigurableReportSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        params = {
            "from": request.query_params.get("from") or request.data.get("from"),
            "to": request.query_params.get("to") or request.data.get("to"),
            "config": input_serializer.validated_data.get("config"),
        }
        return self.render(request, actor, params)


class ProfitLossView(_ConfigurableReportView):
    """GET|POST /api/reports/profit-loss/?from=&to="""
    export_kind = "profit-loss"
    builder = profit_and_loss


class CashFlowView(_ConfigurableReportView):
    """GET|POST /api/reports/cash-flow/?from=&to="""
    export_kind = "cash-flow"
    builder = cash_flow


class GstSummaryView(ReportView):
    """GET /api/reports/gst-summary/?from=&to="""

    def build(self, actor, params):
        return gst_summary(actor.company, params.get("from"), params.get("to"))


class GstReconciliationView(APIView):
    """POST /api/reports/gst-reconciliation/ (multipart: file, from, to, tolerance_amount, tolerance_days)"""
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def post(self, request):
        actor = resolve_actor(request)
        require(actor, "reports.view")

        input_serializer = GstReconciliationSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data

        try:
            content = data["file"].read().decode("utf-8-sig")
        except UnicodeDecodeError:
            return Response({"detail": "File must be UTF-8 encoded CSV.", "code": "ValidationFailed"}, status=400)

        try:
            report = reconcile_gstr2b(
                actor.company,
                content,
                request.data.get("from"),
                request.data.get("to"),
                tolerance_amount=data["tolerance_amount"],
                tolerance_days=data["tolerance_days"],
            )
        except LedgerError as exc:
            return error_response(exc)
        return Response(jsonable(report))


class ReportConfigurationView(APIView):
    """
    GET /api/reports/configurations/<kind>/ -> saved layout, or the default
    PUT /api/reports/configurations/<kind>/ {"config": {...}} -> save
    DELETE /api/reports/configurations/<kind>/ -> revert to default

    ``kind`` is PROFIT_LOSS or CASH_FLOW.
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, kind):
        actor = resolve_actor(request)
        require(actor, "reports.view")

        kind = kind.upper()
        if kind not in KIND_CLASSES:
            return Response({"detail": f"Unknown report kind '{kind}'.", "code": "NotFound"}, status=404)

        saved = ReportConfiguration.objects.filter(company=actor.company, kind=kind).first()
        if saved is not None:
            data = ReportConfigurationSerializer(saved).data
            data["is_default"] = False
            return Response(data)

        config, _ = resolve_config(actor.company, kind)
        return Response({"kind": kind, "config": config.to_dict(), "is_default": True})

    def put(self, request, kind):
        actor = resolve_actor(request)

        input_serializer = ReportConfigurationInputSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = save_report_configuration(actor, kind.upper(), input_serializer.validated_data["config"])
        if not result.success:
            return failure_response(result)
        data = ReportConfigurationSerializer(result.data).data
        data["is_default"] = False
        return Response(data)

    def delete(self, request, kind):
        actor = resolve_actor(request)

        result = reset_report_configuration(actor, kind.upper())
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)
