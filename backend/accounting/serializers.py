# accounting/serializers.py
"""
Serializers for accounting API.

Note: These serializers are used for:
1. Input validation (shape only)
2. Output formatting

Business rules (balance, line XOR, tenancy) are enforced again in
commands.py regardless of what passes here.
"""

from rest_framework import serializers

from .models import Account, AccountAuditLog, JournalEntry, JournalLine


# =============================================================================
# Account Serializers
# =============================================================================

class AccountSerializer(serializers.ModelSerializer):
    """Serializer for Account model (listing and retrieval)."""
    signed_balance = serializers.SerializerMethodField()

    class Meta:
        model = Account
        fields = [
            "id", "public_id", "code", "name", "description",
            "account_type", "normal_balance", "parent_code", "tax_role",
            "is_system", "opening_balance", "current_balance", "signed_balance",
            "created_at", "updated_at",
        ]
        read_only_fields = fields

    def get_signed_balance(self, obj):
        return str(obj.signed_balance())


class AccountCreateSerializer(serializers.Serializer):
    """Serializer for creating accounts via command."""
    code = serializers.CharField(max_length=20)
    name = serializers.CharField(max_length=255)
    account_type = serializers.ChoiceField(choices=Account.AccountType.choices)
    normal_balance = serializers.ChoiceField(
        choices=Account.NormalBalance.choices, required=False, allow_null=True, default=None,
    )
    parent_code = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True, default=None)
    description = serializers.CharField(required=False, allow_blank=True, default="")
    opening_balance = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=0)
    tax_role = serializers.ChoiceField(choices=Account.TaxRole.choices, required=False, default=Account.TaxRole.NONE)


class AccountUpdateSerializer(serializers.Serializer):
    """Serializer for updating accounts via command. Only sent fields are applied."""
    name = serializers.CharField(max_length=255, required=False)
    description = serializers.CharField(required=False, allow_blank=True)
    tax_role = serializers.ChoiceField(choices=Account.TaxRole.choices, required=False)
    opening_balance = serializers.DecimalField(max_digits=18, decimal_places=2, required=False)
    parent_code = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True)


class AccountMoveSerializer(serializers.Serializer):
    parent_code = serializers.CharField(max_length=20, required=False, allow_null=True, allow_blank=True, default=None)


class SeedChartSerializer(serializers.Serializer):
    industry = serializers.CharField(max_length=30)


class AccountAuditLogSerializer(serializers.ModelSerializer):
    actor_email = serializers.EmailField(source="actor.email", read_only=True, default=None)

    class Meta:
        model = AccountAuditLog
        fields = ["id", "account_code", "action", "changes", "actor_email", "created_at"]


def serialize_tree(nodes: list[dict]) -> list[dict]:
    """Flatten AccountForest.tree() nodes into JSON-ready dicts."""
    return [
        {
            "code": node["account"].code,
            "name": node["account"].name,
            "account_type": node["account"].account_type,
            "level": node["level"],
            "current_balance": str(node["account"].current_balance),
            "children": serialize_tree(node["children"]),
        }
        for node in nodes
    ]


# =============================================================================
# Journal Entry Serializers
# =============================================================================

class JournalLineSerializer(serializers.ModelSerializer):
    """Serializer for individual journal lines."""
    account_code = serializers.CharField(source="account.code", read_only=True)
    account_name = serializers.CharField(source="account.name", read_only=True)

    class Meta:
        model = JournalLine
        fields = ["line_no", "account", "account_code", "account_name", "narration", "debit", "credit"]
        read_only_fields = fields


class JournalLineInputSerializer(serializers.Serializer):
    """
    Journal line input.

    The account is referenced by ``account_id`` or by ``account_code``.
    """
    account_id = serializers.IntegerField(required=False, allow_null=True)
    account_code = serializers.CharField(max_length=20, required=False, allow_blank=True)
    debit = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=0)
    credit = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=0)
    narration = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs.get("account_id") is None and not attrs.get("account_code"):
            raise serializers.ValidationError("account_id or account_code is required.")
        return attrs


class StockAdjustmentInputSerializer(serializers.Serializer):
    type = serializers.ChoiceField(choices=["STOCK_IN", "STOCK_OUT", "ADJUSTED"])
    product_id = serializers.CharField(max_length=64)
    variant = serializers.CharField(max_length=64, required=False, allow_blank=True, default="")
    qty = serializers.DecimalField(max_digits=18, decimal_places=4)
    cost_price = serializers.DecimalField(max_digits=18, decimal_places=2, required=False, default=0)


class JournalEntrySerializer(serializers.ModelSerializer):
    """
    Full journal entry serializer with nested lines.
    Used for retrieval and display.
    """
    lines = JournalLineSerializer(many=True, read_only=True)
    total_debit = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)
    total_credit = serializers.DecimalField(max_digits=18, decimal_places=2, read_only=True)
    is_balanced = serializers.BooleanField(read_only=True)

    class Meta:
        model = JournalEntry
        fields = [
            "id", "public_id", "reference", "date", "description", "status", "source",
            "stock_adjustments", "is_quarantined", "quarantine_reason",
            "posted_at", "posted_by", "reversed_at", "reversed_by",
            "created_at", "created_by", "updated_at",
            "lines", "total_debit", "total_credit", "is_balanced",
        ]
        read_only_fields = fields


class JournalEntryCreateSerializer(serializers.Serializer):
    date = serializers.DateField()
    reference = serializers.CharField(max_length=100)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True, default="")
    status = serializers.ChoiceField(
        choices=[JournalEntry.Status.DRAFT, JournalEntry.Status.POSTED],
        required=False,
        allow_null=True,
        default=None,
    )
    lines = JournalLineInputSerializer(many=True)
    stock_adjustments = StockAdjustmentInputSerializer(many=True, required=False, default=list)


class JournalEntryUpdateSerializer(serializers.Serializer):
    date = serializers.DateField(required=False)
    reference = serializers.CharField(max_length=100, required=False)
    description = serializers.CharField(max_length=500, required=False, allow_blank=True)
    lines = JournalLineInputSerializer(many=True, required=False)
    stock_adjustments = StockAdjustmentInputSerializer(many=True, required=False)


class JournalEntryValidateSerializer(serializers.Serializer):
    lines = JournalLineInputSerializer(many=True)


class JournalEntryBulkCreateSerializer(serializers.Serializer):
    entries = JournalEntryCreateSerializer(many=True, allow_empty=False)


class EntryIdsSerializer(serializers.Serializer):
    ids = serializers.ListField(child=serializers.IntegerField(), allow_empty=False)


class JournalImportSerializer(serializers.Serializer):
    file = serializers.FileField()


def command_lines(lines: list) -> list[dict]:
    """Validated line dicts in the shape the command layer expects."""
    return [
        {
            "account_id": line.get("account_id"),
            "account_code": line.get("account_code") or None,
            "debit": line.get("debit", 0),
            "credit": line.get("credit", 0),
            "narration": line.get("narration", ""),
        }
        for line in lines
    ]
