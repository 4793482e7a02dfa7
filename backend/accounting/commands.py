# accounting/commands.py
"""
Command layer for ledger operations.

Commands are the single point where business operations happen.
Views (and workers) call commands; commands enforce rules.

Pattern:
1. Validate permissions (require)
2. Apply business policies (can_* / assert_can_*)
3. Perform the operation (model changes, inside a transaction)
4. Return CommandResult

The Journal Engine is the only writer of Account.current_balance. A status
change and the balance updates it implies are committed together in one
transaction; a failure in between rolls both back.
"""

import logging
from collections import defaultdict
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from accounts.authz import ActorContext, require
from accounting.balances import ZERO, money, to_date
from accounting.exceptions import (
    AccountNotFound,
    ConsistencyError,
    CycleDetected,
    DuplicateCode,
    DuplicateReference,
    EntryNotFound,
    LedgerError,
    LedgerValidationError,
    ParentNotFound,
    SelfParent,
    UnbalancedEntry,
)
from accounting.hierarchy import AccountForest
from accounting.integrations import StockAdjustment, dispatch_stock_adjustments
from accounting.models import Account, AccountAuditLog, JournalEntry, JournalLine
from accounting.policies import (
    assert_can_delete_account,
    assert_can_delete_entry,
    assert_can_edit_entry,
    assert_can_post_entry,
    assert_can_reverse_entry,
)

logger = logging.getLogger(__name__)

BALANCE_TOLERANCE = Decimal("0.01")


class CommandResult:
    """
    Wrapper for command results with success/failure info.

    Usage:
        result = create_account(actor, code="1000", ...)
        if result.success:
            account = result.data
        else:
            error_message = result.error
            error_code = result.error_code
    """

    def __init__(
        self,
        success: bool,
        data=None,
        error: str = None,
        error_code: str = None,
        http_status: int = 200,
        meta: dict = None,
    ):
        self.success = success
        self.data = data
        self.error = error
        self.error_code = error_code
        self.http_status = http_status
        self.meta = meta or {}

    @classmethod
    def ok(cls, data=None, meta: dict = None):
        return cls(success=True, data=data, meta=meta)

    @classmethod
    def fail(cls, error: str, code: str = "ValidationFailed", http_status: int = 400):
        return cls(success=False, error=error, error_code=code, http_status=http_status)

    @classmethod
    def from_error(cls, exc: LedgerError):
        result = cls.fail(exc.message, code=exc.code, http_status=exc.http_status)
        result.meta = dict(exc.details)
        return result


def _bulk_limit() -> int:
    return getattr(settings, "LEDGER_BULK_LIMIT", 100)


# =============================================================================
# Account Commands
# =============================================================================

def _audit(actor: ActorContext, account: Account, action: str, changes: dict) -> AccountAuditLog:
    return AccountAuditLog.objects.create(
        company=actor.company,
        account_code=account.code,
        account_public_id=account.public_id,
        action=action,
        changes=changes,
        actor=actor.user if getattr(actor.user, "pk", None) else None,
    )


def _get_account(actor: ActorContext, code: str, lock: bool = False) -> Account:
    qs = Account.objects.filter(company=actor.company, code=code)
    if lock:
        qs = qs.select_for_update()
    account = qs.first()
    if account is None:
        raise AccountNotFound(f"Account {code} not found.", details={"code": code})
    return account


@transaction.atomic
def create_account(
    actor: ActorContext,
    code: str,
    name: str,
    account_type: str,
    normal_balance: str = None,
    parent_code: str = None,
    description: str = "",
    opening_balance=ZERO,
    tax_role: str = Account.TaxRole.NONE,
    is_system: bool = False,
) -> CommandResult:
    """
    Create a new account in the chart of accounts.

    The running balance starts at the opening balance.

    Returns:
        CommandResult with the created Account or error
    """
    require(actor, "accounts.manage")

    code = (code or "").strip()
    if not code:
        return CommandResult.fail("Account code is required.")
    if account_type not in Account.AccountType.values:
        return CommandResult.fail(f"Unknown account type: {account_type}.")

    if Account.objects.filter(company=actor.company, code=code).exists():
        return CommandResult.from_error(
            DuplicateCode(f"Account code '{code}' already exists.", details={"code": code})
        )

    parent_code = (parent_code or "").strip() or None
    if parent_code:
        if parent_code == code:
            return CommandResult.from_error(SelfParent("Account cannot be its own parent."))
        if not Account.objects.filter(company=actor.company, code=parent_code).exists():
            return CommandResult.from_error(
                ParentNotFound(f"Parent account {parent_code} not found.", details={"parent_code": parent_code})
            )

    opening = money(opening_balance)
    try:
        with transaction.atomic():
            account = Account.objects.create(
                company=actor.company,
                code=code,
                name=name,
                description=description or "",
                account_type=account_type,
                normal_balance=normal_balance or Account.NORMAL_BALANCE_MAP[account_type],
                parent_code=parent_code,
                tax_role=tax_role or Account.TaxRole.NONE,
                is_system=is_system,
                opening_balance=opening,
                current_balance=opening,
            )
    except IntegrityError:
        return CommandResult.from_error(DuplicateCode(f"Account code '{code}' already exists."))

    _audit(actor, account, AccountAuditLog.Action.CREATED, {})
    logger.info(
        "Account created",
        extra={"company_id": actor.company.id, "code": code, "account_type": account_type},
    )
    return CommandResult.ok(account)


def _validate_move(forest: AccountForest, code: str, new_parent_code) -> None:
    if new_parent_code is None:
        return
    if new_parent_code == code:
        raise SelfParent("Account cannot be its own parent.")
    if new_parent_code not in forest:
        raise ParentNotFound(
            f"Parent account {new_parent_code} not found.",
            details={"parent_code": new_parent_code},
        )
    if forest.would_create_cycle(code, new_parent_code):
        raise CycleDetected(
            "Cannot move account under its own descendant.",
            details={"code": code, "parent_code": new_parent_code},
        )


@transaction.atomic
def move_account(actor: ActorContext, code: str, new_parent_code: str = None) -> CommandResult:
    """
    Re-parent an account. ``new_parent_code=None`` makes it a root.

    Fails SelfParent when moved under itself and CycleDetected when moved
    under one of its own descendants.
    """
    require(actor, "accounts.manage")

    new_parent_code = (new_parent_code or "").strip() or None
    try:
        account = _get_account(actor, code, lock=True)
        _validate_move(AccountForest.for_company(actor.company), code, new_parent_code)
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    old_parent = account.parent_code
    if old_parent == new_parent_code:
        return CommandResult.ok(account, meta={"changes": {}})

    account.parent_code = new_parent_code
    account.save(update_fields=["parent_code", "updated_at"])

    changes = {"parent_code": {"old": old_parent, "new": new_parent_code}}
    _audit(actor, account, AccountAuditLog.Action.MOVED, changes)
    return CommandResult.ok(account, meta={"changes": changes})


UPDATABLE_ACCOUNT_FIELDS = {"name", "description", "tax_role", "opening_balance", "parent_code"}


@transaction.atomic
def update_account(actor: ActorContext, code: str, **updates) -> CommandResult:
    """
    Update an existing account.

    Changing ``opening_balance`` shifts the running balance by the same
    difference. Changing ``parent_code`` follows move semantics.

    Returns:
        CommandResult with the Account; ``meta["changes"]`` holds the
        ``{field: {"old", "new"}}`` diff that was audited.
    """
    require(actor, "accounts.manage")

    unknown = set(updates) - UPDATABLE_ACCOUNT_FIELDS
    if unknown:
        return CommandResult.fail(f"Fields cannot be updated: {', '.join(sorted(unknown))}.")

    try:
        account = _get_account(actor, code, lock=True)
        if "parent_code" in updates:
            updates["parent_code"] = (updates["parent_code"] or "").strip() or None
            if updates["parent_code"] != account.parent_code:
                _validate_move(AccountForest.for_company(actor.company), code, updates["parent_code"])
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    changes = {}
    for field, value in updates.items():
        if field == "opening_balance":
            value = money(value)
        old_value = getattr(account, field)
        if old_value != value:
            changes[field] = {"old": old_value, "new": value}

    if not changes:
        return CommandResult.ok(account, meta={"changes": {}})

    update_fields = ["updated_at"]
    for field, change in changes.items():
        if field == "opening_balance":
            continue
        setattr(account, field, change["new"])
        update_fields.append(field)
    account.save(update_fields=update_fields)

    if "opening_balance" in changes:
        shift = changes["opening_balance"]["new"] - changes["opening_balance"]["old"]
        Account.objects.filter(pk=account.pk).update(
            opening_balance=changes["opening_balance"]["new"],
            current_balance=F("current_balance") + shift,
        )
        account.refresh_from_db()

    audit_changes = {
        field: {"old": str(c["old"]) if isinstance(c["old"], Decimal) else c["old"],
                "new": str(c["new"]) if isinstance(c["new"], Decimal) else c["new"]}
        for field, c in changes.items()
    }
    _audit(actor, account, AccountAuditLog.Action.UPDATED, audit_changes)
    return CommandResult.ok(account, meta={"changes": audit_changes})


@transaction.atomic
def delete_account(actor: ActorContext, code: str) -> CommandResult:
    """
    Delete an account.

    Rejected for system accounts (Forbidden) and for accounts referenced by
    journal lines or with children (AccountInUse).
    """
    require(actor, "accounts.manage")

    try:
        account = _get_account(actor, code, lock=True)
        assert_can_delete_account(actor, account)
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    _audit(actor, account, AccountAuditLog.Action.DELETED, {"name": account.name})
    account.delete()
    return CommandResult.ok({"deleted": True, "code": code})


@transaction.atomic
def seed_chart_of_accounts(actor: ActorContext, industry: str) -> CommandResult:
    """
    Create the template chart of accounts for an industry.

    Template accounts are system accounts. Codes that already exist are
    skipped, so seeding is idempotent.
    """
    from accounting.templates import get_template

    require(actor, "accounts.manage")

    try:
        template = get_template(industry)
    except KeyError:
        return CommandResult.fail(f"Unknown industry template: {industry}.")

    existing = set(Account.objects.filter(company=actor.company).values_list("code", flat=True))
    created = []
    for row in template:
        if row["code"] in existing:
            continue
        account = Account.objects.create(
            company=actor.company,
            code=row["code"],
            name=row["name"],
            description=row.get("description", ""),
            account_type=row["type"],
            normal_balance=Account.NORMAL_BALANCE_MAP[row["type"]],
            parent_code=row.get("parent_code"),
            tax_role=row.get("tax_role", Account.TaxRole.NONE),
            is_system=True,
        )
        existing.add(account.code)
        created.append(account)

    logger.info(
        "Chart of accounts seeded",
        extra={"company_id": actor.company.id, "industry": industry, "created_count": len(created)},
    )
    return CommandResult.ok(created, meta={"skipped": len(template) - len(created)})


# =============================================================================
# Journal Entry Validation Pipeline
# =============================================================================

def _parse_amount(value, field: str, line_no: int) -> Decimal:
    if value is None or value == "":
        return ZERO
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise LedgerValidationError(
            f"Line {line_no}: {field} is not a valid amount.",
            code="InvalidLine",
            details={"line": line_no},
        )
    if not amount.is_finite():
        raise LedgerValidationError(f"Line {line_no}: {field} is not a valid amount.", code="InvalidLine")
    return money(amount)


def _check_structure(lines) -> list[dict]:
    """Structural rules: at least two lines, each debit XOR credit, non-negative."""
    if not lines or len(lines) < 2:
        raise LedgerValidationError(
            "A journal entry needs at least 2 lines.",
            code="TooFewLines",
        )

    normalized = []
    for line_no, line in enumerate(lines, start=1):
        debit = _parse_amount(line.get("debit"), "debit", line_no)
        credit = _parse_amount(line.get("credit"), "credit", line_no)
        if debit < 0 or credit < 0:
            raise LedgerValidationError(
                f"Line {line_no}: debit and credit cannot be negative.",
                code="InvalidLine",
                details={"line": line_no},
            )
        if (debit > 0) == (credit > 0):
            raise LedgerValidationError(
                f"Line {line_no}: exactly one of debit or credit must be greater than zero.",
                code="InvalidLine",
                details={"line": line_no},
            )
        normalized.append({
            "line_no": line_no,
            "account_id": line.get("account_id"),
            "account_code": line.get("account_code"),
            "debit": debit,
            "credit": credit,
            "narration": line.get("narration") or "",
        })
    return normalized


def _check_balance(lines: list[dict]) -> tuple[Decimal, Decimal]:
    total_debit = sum((l["debit"] for l in lines), ZERO)
    total_credit = sum((l["credit"] for l in lines), ZERO)
    if abs(total_debit - total_credit) >= BALANCE_TOLERANCE:
        raise UnbalancedEntry(
            f"Entry is not balanced. Debit={total_debit} Credit={total_credit}",
            details={"total_debit": str(total_debit), "total_credit": str(total_credit)},
        )
    return total_debit, total_credit


def _resolve_accounts(company, lines: list[dict]) -> None:
    """Attach the Account to every line; any unknown account aborts the entry."""
    ids = {l["account_id"] for l in lines if l["account_id"] not in (None, "")}
    codes = {str(l["account_code"]) for l in lines if l["account_id"] in (None, "") and l["account_code"]}

    by_id = {a.id: a for a in Account.objects.filter(company=company, id__in=[i for i in ids if str(i).isdigit()])}
    by_code = {a.code: a for a in Account.objects.filter(company=company, code__in=codes)}

    missing = []
    for line in lines:
        account = None
        if line["account_id"] not in (None, ""):
            if str(line["account_id"]).isdigit():
                account = by_id.get(int(line["account_id"]))
        elif line["account_code"]:
            account = by_code.get(str(line["account_code"]))
        if account is None:
            missing.append(line["account_id"] if line["account_id"] not in (None, "") else line["account_code"])
        line["account"] = account

    if missing:
        raise AccountNotFound(
            f"Accounts not found: {', '.join(str(m) for m in missing)}",
            details={"accounts": [str(m) for m in missing]},
        )


def validate_lines(company, lines) -> list[dict]:
    """
    Run the validation pipeline (structure, balance, accounts) and return
    normalized lines with their resolved ``account``.
    """
    normalized = _check_structure(lines)
    _check_balance(normalized)
    _resolve_accounts(company, normalized)
    return normalized


def _normalize_stock_adjustments(stock_adjustments) -> list[dict]:
    normalized = []
    for index, raw in enumerate(stock_adjustments or []):
        try:
            normalized.append(StockAdjustment.from_dict(raw or {}).to_dict())
        except ValueError as exc:
            raise LedgerValidationError(
                f"Stock adjustment {index + 1}: {exc}",
                code="InvalidStockAdjustment",
            )
    return normalized


def validate_journal_entry(actor: ActorContext, lines) -> CommandResult:
    """
    Advisory check of candidate lines against the accounting equation.

    Totals are signed per account type (assets and expenses grow with
    debits; liabilities, equity and revenue with credits) and the result
    reports whether Assets = Liabilities + Equity + (Revenue - Expenses)
    would still hold. Never blocks posting.
    """
    require(actor, "journal.view")

    try:
        normalized = _check_structure(lines)
        _resolve_accounts(actor.company, normalized)
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    totals = {t: ZERO for t in Account.AccountType.values}
    for line in normalized:
        account = line["account"]
        amount = line["debit"] - line["credit"]
        totals[account.account_type] += account.signed_balance(amount)

    total_assets = totals[Account.AccountType.ASSET]
    total_liabilities = totals[Account.AccountType.LIABILITY]
    total_equity = totals[Account.AccountType.EQUITY]
    total_revenue = totals[Account.AccountType.INCOME]
    total_expenses = totals[Account.AccountType.EXPENSE]

    errors = []
    total_debit = sum((l["debit"] for l in normalized), ZERO)
    total_credit = sum((l["credit"] for l in normalized), ZERO)
    if abs(total_debit - total_credit) >= BALANCE_TOLERANCE:
        errors.append(f"Entry is not balanced. Debit={total_debit} Credit={total_credit}")

    net_income = total_revenue - total_expenses
    balance_sheet_balanced = abs(total_assets - (total_liabilities + total_equity + net_income)) < BALANCE_TOLERANCE
    if not balance_sheet_balanced:
        errors.append("Accounting equation would not hold: Assets != Liabilities + Equity + Net Income.")

    return CommandResult.ok({
        "is_valid": not errors,
        "errors": errors,
        "balance_sheet_balanced": balance_sheet_balanced,
        "total_assets": total_assets,
        "total_liabilities": total_liabilities,
        "total_equity": total_equity,
        "total_revenue": total_revenue,
        "total_expenses": total_expenses,
    })


# =============================================================================
# Posting Core
# =============================================================================

def _apply_balance_effect(entry: JournalEntry, direction: int) -> None:
    """
    Add ``direction * (debit - credit)`` of every line to its account.

    Uses an atomic per-row increment (UPDATE ... SET current_balance =
    current_balance + delta) in account-id order. Must run inside the
    transaction that flips the entry status.
    """
    lines = list(entry.lines.all())
    if len(lines) < 2:
        raise ConsistencyError(f"Entry {entry.reference} has fewer than 2 stored lines.")

    total_debit = sum((l.debit for l in lines), ZERO)
    total_credit = sum((l.credit for l in lines), ZERO)
    if abs(total_debit - total_credit) >= BALANCE_TOLERANCE:
        raise ConsistencyError(
            f"Stored lines of entry {entry.reference} do not balance "
            f"(Debit={total_debit} Credit={total_credit})."
        )

    deltas = defaultdict(lambda: ZERO)
    for line in lines:
        deltas[line.account_id] += line.delta * direction

    for account_id in sorted(deltas):
        updated = Account.objects.filter(
            pk=account_id,
            company_id=entry.company_id,
        ).update(current_balance=F("current_balance") + deltas[account_id])
        if updated != 1:
            raise ConsistencyError(
                f"Balance update for account {account_id} of entry {entry.reference} failed."
            )


def _quarantine(company, entry_id: int, exc: ConsistencyError) -> None:
    JournalEntry.objects.filter(pk=entry_id, company=company).update(
        is_quarantined=True,
        quarantine_reason=exc.message[:500],
    )
    logger.error(
        "Journal entry quarantined",
        extra={"company_id": company.id, "entry_id": entry_id, "reason": exc.message},
    )


def _post_locked(actor: ActorContext, entry: JournalEntry) -> JournalEntry:
    """Post an entry that is already row-locked by the caller's transaction."""
    assert_can_post_entry(actor, entry)
    _apply_balance_effect(entry, +1)
    entry.status = JournalEntry.Status.POSTED
    entry.posted_at = timezone.now()
    entry.posted_by = actor.user
    entry.save(update_fields=["status", "posted_at", "posted_by", "updated_at"])
    return entry


def _reverse_locked(actor: ActorContext, entry: JournalEntry) -> JournalEntry:
    assert_can_reverse_entry(actor, entry)
    _apply_balance_effect(entry, -1)
    entry.status = JournalEntry.Status.REVERSED
    entry.reversed_at = timezone.now()
    entry.reversed_by = actor.user
    entry.save(update_fields=["status", "reversed_at", "reversed_by", "updated_at"])
    return entry


def _lock_entry(actor: ActorContext, entry_id) -> JournalEntry:
    try:
        return JournalEntry.objects.select_for_update().get(pk=entry_id, company=actor.company)
    except (JournalEntry.DoesNotExist, ValueError, TypeError):
        raise EntryNotFound(f"Journal entry {entry_id} not found.", details={"id": entry_id})


def _run_transition(actor: ActorContext, entry_id, step) -> CommandResult:
    try:
        with transaction.atomic():
            entry = step(actor, _lock_entry(actor, entry_id))
    except ConsistencyError as exc:
        _quarantine(actor.company, entry_id, exc)
        return CommandResult.from_error(exc)
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    meta = {}
    if entry.status == JournalEntry.Status.POSTED:
        meta["stock_adjustment_failures"] = dispatch_stock_adjustments(entry)
    logger.info(
        "Journal entry status changed",
        extra={"company_id": actor.company.id, "entry_id": entry.id, "status": entry.status},
    )
    return CommandResult.ok(entry, meta=meta)


# =============================================================================
# Journal Entry Commands
# =============================================================================

def _write_lines(entry: JournalEntry, lines: list[dict]) -> None:
    JournalLine.objects.bulk_create([
        JournalLine(
            entry=entry,
            company=entry.company,
            line_no=line["line_no"],
            account=line["account"],
            narration=line["narration"],
            debit=line["debit"],
            credit=line["credit"],
        )
        for line in lines
    ])


def _create_entry(
    actor: ActorContext,
    date,
    reference: str,
    lines,
    description: str = "",
    status: str = None,
    source: str = JournalEntry.Source.MANUAL,
    stock_adjustments=None,
) -> JournalEntry:
    """Validate and persist one entry; raises LedgerError on failure."""
    reference = (reference or "").strip()
    if not reference:
        raise LedgerValidationError("Reference is required.", code="ValidationFailed")
    try:
        entry_date = to_date(date)
    except ValueError:
        raise LedgerValidationError(f"Invalid date: {date}.")
    if entry_date is None:
        raise LedgerValidationError("Date is required.")

    if status is None:
        status = JournalEntry.Status.POSTED if actor.is_elevated else JournalEntry.Status.DRAFT
    if status not in (JournalEntry.Status.DRAFT, JournalEntry.Status.POSTED):
        raise LedgerValidationError(f"Entries cannot be created with status {status}.")
    if status == JournalEntry.Status.POSTED:
        require(actor, "journal.post")

    normalized = validate_lines(actor.company, lines)
    adjustments = _normalize_stock_adjustments(stock_adjustments)

    if JournalEntry.objects.filter(company=actor.company, reference=reference).exists():
        raise DuplicateReference(
            f"Reference '{reference}' already exists.",
            details={"reference": reference},
        )

    try:
        with transaction.atomic():
            entry = JournalEntry.objects.create(
                company=actor.company,
                reference=reference,
                date=entry_date,
                description=description or "",
                status=JournalEntry.Status.DRAFT,
                source=source,
                stock_adjustments=adjustments,
                created_by=actor.user,
            )
            _write_lines(entry, normalized)
            if status == JournalEntry.Status.POSTED:
                _post_locked(actor, entry)
    except IntegrityError:
        raise DuplicateReference(f"Reference '{reference}' already exists.")
    return entry


def create_journal_entry(
    actor: ActorContext,
    date,
    reference: str,
    lines: list = None,
    description: str = "",
    status: str = None,
    source: str = JournalEntry.Source.MANUAL,
    stock_adjustments: list = None,
) -> CommandResult:
    """
    Create a journal entry.

    Args:
        actor: The actor context
        date: Entry date (date or ISO string)
        reference: Company-unique reference
        lines: Line dicts with account_id or account_code, debit, credit, narration
        description: Free text
        status: DRAFT or POSTED; defaults to POSTED for elevated actors
        source: Where the entry came from
        stock_adjustments: Inventory instructions sent once the entry is posted

    Returns:
        CommandResult with created JournalEntry or error
    """
    require(actor, "journal.create")

    try:
        entry = _create_entry(
            actor, date, reference, lines,
            description=description,
            status=status,
            source=source,
            stock_adjustments=stock_adjustments,
        )
    except ConsistencyError as exc:
        logger.error("Journal entry creation hit an inconsistency", extra={"reference": reference, "error": exc.message})
        return CommandResult.from_error(exc)
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    meta = {}
    if entry.status == JournalEntry.Status.POSTED:
        meta["stock_adjustment_failures"] = dispatch_stock_adjustments(entry)
    logger.info(
        "Journal entry created",
        extra={
            "company_id": actor.company.id,
            "entry_id": entry.id,
            "reference": entry.reference,
            "status": entry.status,
        },
    )
    return CommandResult.ok(entry, meta=meta)


def bulk_create_journal_entries(actor: ActorContext, entries: list) -> CommandResult:
    """
    Create several entries; each one succeeds or fails on its own.

    Returns:
        CommandResult with {"created": [JournalEntry], "failed": [{index, reference, reason, detail}]}
    """
    require(actor, "journal.create")

    limit = _bulk_limit()
    if len(entries) > limit:
        return CommandResult.fail(f"At most {limit} entries can be created at once.")

    created = []
    failed = []
    for index, payload in enumerate(entries):
        result = create_journal_entry(
            actor,
            date=payload.get("date"),
            reference=payload.get("reference"),
            lines=payload.get("lines"),
            description=payload.get("description", ""),
            status=payload.get("status"),
            stock_adjustments=payload.get("stock_adjustments"),
        )
        if result.success:
            created.append(result.data)
        else:
            failed.append({
                "index": index,
                "reference": payload.get("reference"),
                "reason": result.error_code,
                "detail": result.error,
            })
    return CommandResult.ok({"created": created, "failed": failed})


@transaction.atomic
def update_journal_entry(
    actor: ActorContext,
    entry_id: int,
    date=None,
    reference: str = None,
    description: str = None,
    lines: list = None,
    stock_adjustments: list = None,
) -> CommandResult:
    """
    Update a DRAFT entry. Lines, when given, replace the existing ones and
    go through the full validation pipeline again.
    """
    require(actor, "journal.edit_draft")

    try:
        entry = _lock_entry(actor, entry_id)
        assert_can_edit_entry(actor, entry)

        update_fields = ["updated_at"]
        if date is not None:
            try:
                entry.date = to_date(date)
            except ValueError:
                raise LedgerValidationError(f"Invalid date: {date}.")
            update_fields.append("date")
        if description is not None:
            entry.description = description
            update_fields.append("description")
        if reference is not None and reference.strip() != entry.reference:
            reference = reference.strip()
            if JournalEntry.objects.filter(company=actor.company, reference=reference).exclude(pk=entry.pk).exists():
                raise DuplicateReference(f"Reference '{reference}' already exists.")
            entry.reference = reference
            update_fields.append("reference")
        if stock_adjustments is not None:
            entry.stock_adjustments = _normalize_stock_adjustments(stock_adjustments)
            update_fields.append("stock_adjustments")

        normalized = validate_lines(actor.company, lines) if lines is not None else None
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    entry.save(update_fields=update_fields)
    if normalized is not None:
        entry.lines.all().delete()
        _write_lines(entry, normalized)

    return CommandResult.ok(entry)


@transaction.atomic
def delete_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """Delete a DRAFT entry. POSTED/REVERSED entries are never deleted."""
    require(actor, "journal.create")

    try:
        entry = _lock_entry(actor, entry_id)
        assert_can_delete_entry(actor, entry)
    except LedgerError as exc:
        return CommandResult.from_error(exc)

    reference = entry.reference
    entry.delete()
    logger.info(
        "Journal entry deleted",
        extra={"company_id": actor.company.id, "entry_id": entry_id, "reference": reference},
    )
    return CommandResult.ok({"deleted": True, "id": entry_id})


def post_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """
    Post a DRAFT entry: flip the status and add every line's
    (debit - credit) to its account, as one unit.
    """
    require(actor, "journal.post")
    return _run_transition(actor, entry_id, _post_locked)


def reverse_journal_entry(actor: ActorContext, entry_id: int) -> CommandResult:
    """Reverse a POSTED entry: apply the exact negation and mark it REVERSED."""
    require(actor, "journal.reverse")
    return _run_transition(actor, entry_id, _reverse_locked)


def _run_many(actor: ActorContext, entry_ids: list, command) -> CommandResult:
    limit = _bulk_limit()
    if len(entry_ids) > limit:
        return CommandResult.fail(f"At most {limit} entries can be processed at once.")

    succeeded = []
    failed = []
    for entry_id in entry_ids:
        result = command(actor, entry_id)
        if result.success:
            succeeded.append(entry_id)
        else:
            failed.append({"id": entry_id, "reason": result.error_code, "detail": result.error})
    return CommandResult.ok({"succeeded": succeeded, "failed": failed})


def post_many(actor: ActorContext, entry_ids: list) -> CommandResult:
    """Post each entry independently; failures never abort siblings."""
    require(actor, "journal.post")
    return _run_many(actor, entry_ids, post_journal_entry)


def reverse_many(actor: ActorContext, entry_ids: list) -> CommandResult:
    """Reverse each entry independently; failures never abort siblings."""
    require(actor, "journal.reverse")
    return _run_many(actor, entry_ids, reverse_journal_entry)
