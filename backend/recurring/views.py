# recurring/views.py
"""
Recurring entry endpoints.

GET /api/recurring/ -> list templates (journal.view)
POST /api/recurring/ -> create (recurring.manage)
GET|PATCH|DELETE /api/recurring/<pk>/
"""

from django.http import Http404
from rest_framework import status
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView

from accounts.authz import require, resolve_actor
from accounting.serializers import command_lines
from accounting.views import failure_response
from .commands import create_recurring_entry, delete_recurring_entry, update_recurring_entry
from .models import RecurringEntry
from .serializers import RecurringEntryInputSerializer, RecurringEntrySerializer


def _command_fields(validated: dict) -> dict:
    fields = dict(validated)
    if "lines" in fields:
        fields["lines"] = command_lines(fields["lines"])
    return fields


class RecurringEntryListCreateView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entries = RecurringEntry.objects.filter(company=actor.company).select_related("created_by")
        enabled = request.query_params.get("enabled")
        if enabled is not None:
            entries = entries.filter(enabled=enabled.lower() in ("1", "true", "yes"))
        return Response(RecurringEntrySerializer(entries, many=True).data)

    def post(self, request):
        actor = resolve_actor(request)

        input_serializer = RecurringEntryInputSerializer(data=request.data)
        input_serializer.is_valid(raise_exception=True)

        result = create_recurring_entry(actor, **_command_fields(input_serializer.validated_data))
        if not result.success:
            return failure_response(result)
        return Response(RecurringEntrySerializer(result.data).data, status=status.HTTP_201_CREATED)


class RecurringEntryDetailView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request, pk):
        actor = resolve_actor(request)
        require(actor, "journal.view")

        entry = RecurringEntry.objects.filter(company=actor.company, pk=pk).first()
        if entry is None:
            raise Http404("Recurring entry not found.")
        return Response(RecurringEntrySerializer(entry).data)

    def patch(self, request, pk):
        actor = resolve_actor(request)

        input_serializer = RecurringEntryInputSerializer(data=request.data, partial=True)
        input_serializer.is_valid(raise_exception=True)

        result = update_recurring_entry(actor, pk, **_command_fields(input_serializer.validated_data))
        if not result.success:
            return failure_response(result)
        return Response(RecurringEntrySerializer(result.data).data)

    def delete(self, request, pk):
        actor = resolve_actor(request)

        result = delete_recurring_entry(actor, pk)
        if not result.success:
            return failure_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)
