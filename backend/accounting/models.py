# accounting/models.py
"""
Ledger models.

All mutations go through the command layer (accounting/commands.py).
The Journal Engine is the only writer of Account.current_balance.

Models:
- Account: Chart of Accounts entry, a parent-pointer forest keyed by code
- AccountAuditLog: before/after diff for account edits
- JournalEntry: Journal entry header with DRAFT -> POSTED -> REVERSED lifecycle
- JournalLine: Debit/credit lines
"""

import uuid
from decimal import Decimal

from django.conf import settings
from django.db import models
from django.db.models import Q, Sum

from accounts.models import Company


class Account(models.Model):
    """
    Chart of Accounts entry.

    Hierarchy is expressed through ``parent_code`` (a code in the same
    company), not a foreign key. Tree shapes are rebuilt on demand by
    accounting.hierarchy.

    ``current_balance`` is the raw running sum of (debit - credit) starting
    at ``opening_balance``. Sign interpretation by ``normal_balance`` happens
    at read time only.
    """

    class AccountType(models.TextChoices):
        ASSET = "ASSET", "Asset"
        LIABILITY = "LIABILITY", "Liability"
        EQUITY = "EQUITY", "Equity"
        INCOME = "INCOME", "Income"
        EXPENSE = "EXPENSE", "Expense"

    class NormalBalance(models.TextChoices):
        DEBIT = "DEBIT", "Debit"
        CREDIT = "CREDIT", "Credit"

    class TaxRole(models.TextChoices):
        NONE = "NONE", "None"
        OUTPUT_TAX = "OUTPUT_TAX", "Output tax (liability)"
        INPUT_TAX = "INPUT_TAX", "Input tax credit"

    # Map account types to their normal balance
    NORMAL_BALANCE_MAP = {
        AccountType.ASSET: NormalBalance.DEBIT,
        AccountType.LIABILITY: NormalBalance.CREDIT,
        AccountType.EQUITY: NormalBalance.CREDIT,
        AccountType.INCOME: NormalBalance.CREDIT,
        AccountType.EXPENSE: NormalBalance.DEBIT,
    }

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="accounts",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    code = models.CharField(max_length=20)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    account_type = models.CharField(
        max_length=20,
        choices=AccountType.choices,
        db_column="type",
    )

    normal_balance = models.CharField(
        max_length=10,
        choices=NormalBalance.choices,
    )

    # Hierarchy (parent-pointer forest, resolved per company)
    parent_code = models.CharField(max_length=20, null=True, blank=True)

    tax_role = models.CharField(
        max_length=20,
        choices=TaxRole.choices,
        default=TaxRole.NONE,
    )

    is_system = models.BooleanField(
        default=False,
        help_text="Seeded from a template; cannot be deleted",
    )

    opening_balance = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))
    current_balance = models.DecimalField(max_digits=18, decimal_places=2, default=Decimal("0.00"))

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "code"],
                name="uniq_account_code_per_company",
            )
        ]
        ordering = ["code"]
        indexes = [
            models.Index(fields=["company", "account_type"], name="idx_account_company_type"),
            models.Index(fields=["company", "parent_code"], name="idx_account_company_parent"),
        ]

    def __str__(self):
        return f"{self.code} - {self.name}"

    def save(self, *args, **kwargs):
        if not self.normal_balance:
            self.normal_balance = self.NORMAL_BALANCE_MAP.get(
                self.account_type,
                self.NormalBalance.DEBIT,
            )
        super().save(*args, **kwargs)

    @property
    def is_debit_normal(self) -> bool:
        return self.normal_balance == self.NormalBalance.DEBIT

    def signed_balance(self, raw: Decimal = None) -> Decimal:
        """Return ``raw`` (default: current balance) so that increases are positive."""
        raw = self.current_balance if raw is None else raw
        return raw if self.is_debit_normal else -raw


class AccountAuditLog(models.Model):
    """Before/after diff of an account edit."""

    class Action(models.TextChoices):
        CREATED = "CREATED", "Created"
        UPDATED = "UPDATED", "Updated"
        MOVED = "MOVED", "Moved"
        DELETED = "DELETED", "Deleted"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="account_audit_logs",
    )
    account_code = models.CharField(max_length=20)
    account_public_id = models.UUIDField()
    action = models.CharField(max_length=10, choices=Action.choices)
    changes = models.JSONField(default=dict, blank=True)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="account_audit_logs",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["company", "account_code"], name="idx_audit_company_code"),
        ]

    def __str__(self):
        return f"{self.account_code} {self.action} @ {self.created_at}"


class JournalEntry(models.Model):
    """
    Journal Entry header.

    Workflow: DRAFT -> POSTED -> REVERSED
    - DRAFT: mutable and deletable by its creator
    - POSTED: immutable, its lines are reflected in running balances
    - REVERSED: terminal, the posting effect has been negated

    Allowed transitions live in accounting.policies.STATUS_TRANSITIONS.
    """

    class Status(models.TextChoices):
        DRAFT = "DRAFT", "Draft"
        POSTED = "POSTED", "Posted"
        REVERSED = "REVERSED", "Reversed"

    class Source(models.TextChoices):
        MANUAL = "MANUAL", "Manual"
        IMPORT = "IMPORT", "Import"
        RECURRING = "RECURRING", "Recurring"
        INTEGRATION = "INTEGRATION", "Integration"

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_entries",
    )

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
    )

    reference = models.CharField(max_length=100)
    date = models.DateField()
    description = models.CharField(max_length=500, blank=True, default="")

    status = models.CharField(
        max_length=12,
        choices=Status.choices,
        default=Status.DRAFT,
    )

    source = models.CharField(
        max_length=20,
        choices=Source.choices,
        default=Source.MANUAL,
    )

    # Outbound inventory instructions, sent when the entry is posted
    stock_adjustments = models.JSONField(default=list, blank=True)

    # Set when a posting/reversal hit an internal inconsistency
    is_quarantined = models.BooleanField(default=False)
    quarantine_reason = models.CharField(max_length=500, blank=True, default="")

    # Posting metadata
    posted_at = models.DateTimeField(null=True, blank=True)
    posted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="posted_journal_entries",
    )

    # Reversal metadata
    reversed_at = models.DateTimeField(null=True, blank=True)
    reversed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="reversed_journal_entries",
    )

    # Audit
    created_at = models.DateTimeField(auto_now_add=True)
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
        related_name="created_journal_entries",
    )
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "reference"],
                name="uniq_entry_reference_per_company",
            )
        ]
        indexes = [
            models.Index(fields=["company", "date", "id"], name="idx_entry_company_date"),
            models.Index(fields=["company", "status"], name="idx_entry_company_status"),
            models.Index(fields=["company", "created_by"], name="idx_entry_company_creator"),
        ]
        ordering = ["-date", "-id"]

    def __str__(self):
        return f"JE {self.reference} ({self.date}) {self.status}"

    @property
    def total_debit(self) -> Decimal:
        return self.lines.aggregate(total=Sum("debit"))["total"] or Decimal("0.00")

    @property
    def total_credit(self) -> Decimal:
        return self.lines.aggregate(total=Sum("credit"))["total"] or Decimal("0.00")

    @property
    def is_balanced(self) -> bool:
        return abs(self.total_debit - self.total_credit) < Decimal("0.01")


class JournalLine(models.Model):
    """
    Individual line within a journal entry.
    Each line affects one account with either a debit or credit amount.
    """

    entry = models.ForeignKey(
        JournalEntry,
        on_delete=models.CASCADE,
        related_name="lines",
    )

    company = models.ForeignKey(
        Company,
        on_delete=models.CASCADE,
        related_name="journal_lines",
    )

    line_no = models.PositiveIntegerField()

    account = models.ForeignKey(
        Account,
        on_delete=models.PROTECT,
        related_name="journal_lines",
    )

    narration = models.CharField(max_length=255, blank=True, default="")

    debit = models.DecimalField(max_digits=18, decimal_places=2, default=0)
    credit = models.DecimalField(max_digits=18, decimal_places=2, default=0)

    class Meta:
        unique_together = ("entry", "line_no")
        ordering = ["entry", "line_no"]
        constraints = [
            models.CheckConstraint(
                condition=~(Q(debit__gt=0) & Q(credit__gt=0)),
                name="chk_line_not_both_debit_credit",
            ),
            models.CheckConstraint(
                condition=~(Q(debit__exact=0) & Q(credit__exact=0)),
                name="chk_line_not_both_zero",
            ),
            models.CheckConstraint(
                condition=Q(debit__gte=0) & Q(credit__gte=0),
                name="chk_line_non_negative",
            ),
        ]
        indexes = [
            models.Index(fields=["company", "entry"], name="idx_line_company_entry"),
            models.Index(fields=["company", "account"], name="idx_line_company_account"),
        ]

    def __str__(self):
        return f"JE#{self.entry_id} L{self.line_no}"

    @property
    def delta(self) -> Decimal:
        """Raw balance effect of this line when posted."""
        return self.debit - self.credit
