# accounting/views.py
"""
Thin views that delegate to the commands layer.

Views handle: HTTP parsing, authentication, response formatting.
Commands handle: business logic, validation, balance updates.

All mutations (create, update, delete, post, reverse) MUST go through
commands. Views never call .save() on ledger models directly.
"""

from django.http import Http404, HttpResponse
from rest_framework import status
from rest_framework.parsers import FormParser, JSONParser, MultiPartParser
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import require, resolve_actor
from .balances import account_balance, split_columns, to_date
from .commands import (
    bulk_create_journal_entries,
    create_account,
    create_journal_entry,
    delete_account,
    delete_journal_entry,
    move_account,
    post_journal_entry,
    post_many,
    reverse_journal_entry,
    reverse_many,
    seed_chart_of_accounts,
    update_account,
    update_journal_entry,
    validate_journal_entry,
)
from .exceptions import LedgerError
from .hierarchy import AccountForest
from .imports import import_journal_csv, template_csv
from .models import Account, AccountAuditLog, JournalEntry
from .policies import can_view_entry
from .queries import account_journal_entries, filter_entries, paginate, visible_entries
from .serializers import (
    AccountAuditLogSerializer,
    AccountCreateSerializer,
    AccountMoveSerializer,
    AccountSerializer,
    AccountUpdateSerializer,
    EntryIdsSerializer,
    JournalEntryBulkCreateSerializer,
    JournalEntryCreateSerializer,
    JournalEntrySerializer,
    JournalEntryUpdateSerializer,
    JournalEntryValidateSerializer,
    JournalImportSerializer,
    SeedChartSerializer,
    command_lines,
    serialize_tree,
)


def failure_response(result) -> Response:
    """Translate a failed CommandResult into an error response."""
    body = {"detail": result.error, "code": result.error_code}
    if result.meta:
        body["details"] = result.meta
    return Response(body, status=result.http_status)


def error_response(exc: LedgerError) -> Response:
    return Response(exc.to_dict(), status=exc.http_status)


def _str_decimals(data: dict) -> dict:
    return {k: str(v) if not isinstance(v, (bool, list, str)) and v is not None else v for k, v in data.items()}


# =============================================================================
# Account Views
# =============================================================================

class AccountListCreateView(APIView):
    """
    GET /api/accounting/accounts/ -> list accounts for active company
    POST /api/accounting/accounts/ -> create account in active company
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        accounts = Account.objects.filter(company=actor.company).order_by("code")
        account_type = request.query_params.get("type")
        if account_type:
            accounts = accounts.filter(account_type=account_type.upper())
        search = request.query_params.get("search")
        if search:
            accounts = accounts.filter(name__icontains=search) | accounts.filter(code__icontains=search)

        serializer = AccountSerializer(accounts, many=True)
        return Response(serializer.data)

    def post(self, request):
        actor = resolve_actor(request)
        # Permission check happens in command

        input_serializer = AccountCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_account(actor, **input_serializer.validated_data)
        if not result.success:
            return failure_response(result)

        return Response(AccountSerializer(result.data).data, status=status.HTTP_201_CREATED)


class AccountDetailView(APIView):
    """
    GET /api/accounting/accounts/<code>/ -> retrieve account
    PATCH /api/accounting/accounts/<code>/ -> update account (audited)
    DELETE /api/accounting/accounts/<code>/ -> delete account
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, code):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        account = Account.objects.filter(company=actor.company, code=code).first()
        if account is None:
            raise Http404("Account not found.")
        return Response(AccountSerializer(account).data)

    def patch(self, request, code):
        actor = resolve_actor(request)

        input_serializer = AccountUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_account(actor, code, **input_serializer.validated_data)
        if not result.success:
            return failure_response(result)

        data = AccountSerializer(result.data).data
        data["changes"] = result.meta.get("changes", {})
        return Response(data)

    def delete(self, request, code):
        actor = resolve_actor(request)

        result = delete_account(actor, code)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class AccountMoveView(APIView):
    """POST /api/accounting/accounts/<code>/move/ -> re-parent (null parent_code = root)"""
    permission_classes = [IsAuthenticated]

    def post(self, request, code):
        actor = resolve_actor(request)

        input_serializer = AccountMoveSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = move_account(actor, code, input_serializer.validated_data["parent_code"])
        if not result.success:
            return failure_response(result)
        return Response(AccountSerializer(result.data).data)


class AccountTreeView(APIView):
    """
    GET /api/accounting/accounts/tree/ -> full nested tree
    GET /api/accounting/accounts/tree/?view=roots|leaves -> flat lists
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        forest = AccountForest.for_company(actor.company)
        view = request.query_params.get("view")
        if view == "roots":
            return Response(AccountSerializer(forest.roots(), many=True).data)
        if view == "leaves":
            return Response(AccountSerializer(forest.leaves(), many=True).data)
        return Response(serialize_tree(forest.tree()))


class AccountRelativesView(APIView):
    """
    GET /api/accounting/accounts/<code>/<relation>/
    relation: children | ancestors | descendants | path
    """
    permission_classes = [IsAuthenticated]

    RELATIONS = ("children", "ancestors", "descendants", "path")

    def get(self, request, code, relation):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        if relation not in self.RELATIONS:
            raise Http404("Unknown relation.")

        forest = AccountForest.for_company(actor.company)
        try:
            accounts = getattr(forest, relation)(code)
            level = forest.level(code)
        except LedgerError as exc:
            return error_response(exc)

        return Response({
            "code": code,
            "level": level,
            "results": AccountSerializer(accounts, many=True).data,
        })


class AccountStatisticsView(APIView):
    """GET /api/accounting/accounts/statistics/"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "accounts.view")
        return Response(AccountForest.for_company(actor.company).statistics())


class AccountBalanceView(APIView):
    """GET /api/accounting/accounts/<code>/balance/?as_of=YYYY-MM-DD"""
    permission_classes = [IsAuthenticated]

    def get(self, request, code):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        account = Account.objects.filter(company=actor.company, code=code).first()
        if account is None:
            raise Http404("Account not found.")

        as_of = request.query_params.get("as_of")
        try:
            as_of = to_date(as_of)
        except ValueError:
            return Response({"detail": "Invalid as_of date.", "code": "ValidationFailed"}, status=400)

        raw = account_balance(account, as_of)
        debit, credit = split_columns(account, raw)
        return Response({
            "code": account.code,
            "as_of": as_of.isoformat() if as_of else None,
            "balance": str(raw),
            "signed_balance": str(account.signed_balance(raw)),
            "debit": str(debit),
            "credit": str(credit),
        })


class AccountJournalEntriesView(APIView):
    """
    GET /api/accounting/accounts/<code>/journal-entries/
        ?include_descendants=true&status=POSTED&from=&to=&page=&page_size=
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, code):
        actor = resolve_actor(request)
        params = request.query_params

        try:
            page = account_journal_entries(
                actor,
                code,
                include_descendants=params.get("include_descendants", "").lower() in ("1", "true", "yes"),
                status=params.get("status"),
                date_from=params.get("from"),
                date_to=params.get("to"),
                page=params.get("page", 1),
                page_size=params.get("page_size"),
            )
        except LedgerError as exc:
            return error_response(exc)
        except ValueError:
            return Response({"detail": "Invalid date filter.", "code": "ValidationFailed"}, status=400)

        page["results"] = JournalEntrySerializer(page["results"], many=True).data
        return Response(page)


class AccountAuditLogView(APIView):
    """GET /api/accounting/accounts/<code>/audit/"""
    permission_classes = [IsAuthenticated]

    def get(self, request, code):
        actor = resolve_actor(request)
        require(actor, "accounts.view")

        logs = AccountAuditLog.objects.filter(company=actor.company, account_code=code).select_related("actor")
        return Response(AccountAuditLogSerializer(logs, many=True).data)


class SeedChartView(APIView):
    """POST /api/accounting/accounts/seed/ {"industry": "retail"}"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = SeedChartSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = seed_chart_of_accounts(actor, input_serializer.validated_data["industry"])
        if not result.success:
            return failure_response(result)
        return Response(
            {"created": len(result.data), "skipped": result.meta["skipped"]},
            status=status.HTTP_201_CREATED,
        )


# =============================================================================
# Journal Entry Views
# =============================================================================

def _entry_response(result, http_status=status.HTTP_200_OK) -> Response:
    data = JournalEntrySerializer(result.data).data
    failures = result.meta.get("stock_adjustment_failures")
    if failures is not None:
        data["stock_adjustment_failures"] = failures
    return Response(data, status=http_status)


class JournalEntryListCreateView(APIView):
    """
    GET /api/accounting/journal-entries/ -> list journal entries
    POST /api/accounting/journal-entries/ -> create journal entry
    """
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        params = request.query_params
        try:
            entries = filter_entries(
                visible_entries(actor),
                status=params.get("status"),
                date_from=params.get("from"),
                date_to=params.get("to"),
                search=params.get("search"),
            )
        except ValueError:
            return Response({"detail": "Invalid date filter.", "code": "ValidationFailed"}, status=400)

        entries = entries.order_by("-date", "-id").prefetch_related("lines", "lines__account")
        page = paginate(entries, params.get("page", 1), params.get("page_size"))
        page["results"] = JournalEntrySerializer(page["results"], many=True).data
        return Response(page)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = JournalEntryCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)
        data = input_serializer.validated_data

        result = create_journal_entry(
            actor,
            date=data["date"],
            reference=data["reference"],
            lines=command_lines(data["lines"]),
            description=data["description"],
            status=data["status"],
            stock_adjustments=data["stock_adjustments"],
        )
        if not result.success:
            return failure_response(result)
        return _entry_response(result, status.HTTP_201_CREATED)


class JournalEntryDetailView(APIView):
    """
    GET /api/accounting/journal-entries/<pk>/ -> retrieve
    PATCH /api/accounting/journal-entries/<pk>/ -> update a DRAFT
    DELETE /api/accounting/journal-entries/<pk>/ -> delete a DRAFT
    """
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entry = (
            JournalEntry.objects.prefetch_related("lines", "lines__account")
            .filter(company=actor.company, pk=pk)
            .first()
        )
        if entry is None or not can_view_entry(actor, entry):
            raise Http404("Journal entry not found.")
        return Response(JournalEntrySerializer(entry).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = JournalEntryUpdateSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)
        data = dict(input_serializer.validated_data)
        if "lines" in data:
            data["lines"] = command_lines(data["lines"])

        result = update_journal_entry(actor, pk, **data)
        if not result.success:
            return failure_response(result)
        return Response(JournalEntrySerializer(result.data).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_journal_entry(actor, pk)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)


class JournalPostView(APIView):
    """POST /api/accounting/journal-entries/<pk>/post/ -> post entry"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        result = post_journal_entry(actor, pk)
        if not result.success:
            return failure_response(result)

        entry = result.data
        return Response({
            "id": entry.id,
            "reference": entry.reference,
            "status": entry.status,
            "posted_at": entry.posted_at,
            "posted_by": entry.posted_by_id,
            "stock_adjustment_failures": result.meta.get("stock_adjustment_failures", []),
        })


class JournalReverseView(APIView):
    """POST /api/accounting/journal-entries/<pk>/reverse/ -> reverse entry"""
    permission_classes = [IsAuthenticated]

    def post(self, request, pk):
        actor = resolve_actor(request)

        result = reverse_journal_entry(actor, pk)
        if not result.success:
            return failure_response(result)

        entry = result.data
        return Response({
            "id": entry.id,
            "reference": entry.reference,
            "status": entry.status,
            "reversed_at": entry.reversed_at,
            "reversed_by": entry.reversed_by_id,
        })


class JournalValidateView(APIView):
    """POST /api/accounting/journal-entries/validate/ -> advisory equation check"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = JournalEntryValidateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = validate_journal_entry(actor, command_lines(input_serializer.validated_data["lines"]))
        if not result.success:
            return failure_response(result)
        return Response(_str_decimals(result.data))


class JournalBulkCreateView(APIView):
    """POST /api/accounting/journal-entries/bulk/ {"entries": [...]}"""
    permission_classes = [IsAuthenticated]

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = JournalEntryBulkCreateSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        entries = []
        for item in input_serializer.validated_data["entries"]:
            item = dict(item)
            item["lines"] = command_lines(item["lines"])
            entries.append(item)

        result = bulk_create_journal_entries(actor, entries)
        if not result.success:
            return failure_response(result)
        return Response(
            {
                "created": JournalEntrySerializer(result.data["created"], many=True).data,
                "failed": result.data["failed"],
            },
            status=status.HTTP_201_CREATED if result.data["created"] else status.HTTP_200_OK,
        )


class _BulkTransitionView(APIView):
    permission_classes = [IsAuthenticated]
    command = None

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = EntryIdsSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = type(self).command(actor, input_serializer.validated_data["ids"])
        if not result.success:
            return failure_response(result)
        return Response(result.data)


class JournalBulkPostView(_BulkTransitionView):
    """POST /api/accounting/journal-entries/post-many/ {"ids": [...]}"""
    command = post_many


class JournalBulkReverseView(_BulkTransitionView):
    """POST /api/accounting/journal-entries/reverse-many/ {"ids": [...]}"""
    command = reverse_many


class JournalImportView(APIView):
    """POST /api/accounting/journal-entries/import/ (multipart, field "file")"""
    permission_classes = [IsAuthenticated]
    parser_classes = [MultiPartParser, FormParser, JSONParser]

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = JournalImportSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        try:
            content = input_serializer.validated_data["file"].read().decode("utf-8-sig")
        except UnicodeDecodeError:
            return Response({"detail": "File must be UTF-8 encoded CSV.", "code": "ValidationFailed"}, status=400)

        result = import_journal_csv(actor, content)
        if not result.success:
            return failure_response(result)

        data = result.data
        return Response(
            {
                "created": JournalEntrySerializer(data["created"], many=True).data,
                "count": data["count"],
                "errors": data["errors"],
            },
            status=status.HTTP_201_CREATED if data["count"] else status.HTTP_400_BAD_REQUEST,
        )


class JournalImportTemplateView(APIView):
    """GET /api/accounting/journal-entries/import/template/ -> CSV download"""
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "journal.import")

        response = HttpResponse(template_csv(), content_type="text/csv")
        response["Content-Disposition"] = 'attachment; filename="journal_import_template.csv"'
        return response
