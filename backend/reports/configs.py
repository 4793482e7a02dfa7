# reports/configs.py
"""
Configuration for the configurable reports (P&L and Cash Flow).

A configuration maps each section to a list of named line items; a line
item lists account *codes* (not ids), so one layout works for every
company seeded from the standard templates.

Serialized form (what the API accepts and ReportConfiguration stores):

    {
        "revenue": [{"label": "Sales Revenue", "account_codes": ["4000"]}],
        ...
    }

Cash Flow line items also carry ``"sign": "positive" | "negative"``.
camelCase keys (``accountCodes``, ``operatingExpenses``...) are accepted
on input. ``Config.from_dict(config.to_dict()) == config`` always holds.
"""

from dataclasses import dataclass
from typing import Optional

from accounting.exceptions import LedgerValidationError

POSITIVE = "positive"
NEGATIVE = "negative"


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


@dataclass(frozen=True)
class LineItem:
    label: str
    account_codes: tuple
    sign: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "LineItem":
        if not isinstance(data, dict):
            raise LedgerValidationError("Each line item must be an object.")
        label = data.get("label")
        codes = data.get("account_codes", data.get("accountCodes"))
        if not label or not isinstance(label, str):
            raise LedgerValidationError("Line item label is required.")
        if not isinstance(codes, (list, tuple)) or not all(isinstance(c, (str, int)) for c in codes):
            raise LedgerValidationError(f"Line item '{label}': account_codes must be a list of codes.")
        sign = data.get("sign")
        if sign not in (None, POSITIVE, NEGATIVE):
            raise LedgerValidationError(f"Line item '{label}': sign must be positive or negative.")
        return cls(label=label, account_codes=tuple(str(c) for c in codes), sign=sign)

    def to_dict(self) -> dict:
        data = {"label": self.label, "account_codes": list(self.account_codes)}
        if self.sign is not None:
            data["sign"] = self.sign
        return data

    @property
    def is_negative(self) -> bool:
        return self.sign == NEGATIVE


def _section(data: dict, name: str) -> tuple:
    items = data.get(name, data.get(_camel(name))) or []
    if not isinstance(items, (list, tuple)):
        raise LedgerValidationError(f"Section '{name}' must be a list.")
    return tuple(LineItem.from_dict(item) for item in items)


class _SectionedConfig:
    SECTIONS = ()

    @classmethod
    def from_dict(cls, data: dict):
        if not isinstance(data, dict):
            raise LedgerValidationError("Report configuration must be an object.")
        return cls(**{name: _section(data, name) for name in cls.SECTIONS})

    def to_dict(self) -> dict:
        return {name: [item.to_dict() for item in getattr(self, name)] for name in self.SECTIONS}

    def all_codes(self) -> set:
        return {code for name in self.SECTIONS for item in getattr(self, name) for code in item.account_codes}


@dataclass(frozen=True)
class PnLConfig(_SectionedConfig):
    revenue: tuple = ()
    cogs: tuple = ()
    operating_expenses: tuple = ()
    other_income: tuple = ()
    other_expenses: tuple = ()

    SECTIONS = ("revenue", "cogs", "operating_expenses", "other_income", "other_expenses")


@dataclass(frozen=True)
class CashFlowConfig(_SectionedConfig):
    operating: tuple = ()
    investing: tuple = ()
    financing: tuple = ()

    SECTIONS = ("operating", "investing", "financing")

    DEFAULT_CASH_CODES = ("1001", "1002")

    @property
    def cash_account_codes(self) -> tuple:
        """The first operating line item designates the cash accounts."""
        if self.operating and self.operating[0].account_codes:
            return self.operating[0].account_codes
        return self.DEFAULT_CASH_CODES

    def section_for_code(self, code: str) -> str:
        """Section whose line items list ``code``; unlisted codes are operating."""
        for name in self.SECTIONS:
            for item in getattr(self, name):
                if code in item.account_codes:
                    return name
        return "operating"


def default_pnl_config() -> PnLConfig:
    """Layout keyed to the standard seeded chart of accounts."""
    return PnLConfig.from_dict({
        "revenue": [
            {"label": "Sales Revenue", "account_codes": ["4000"]},
            {"label": "Sales Returns", "account_codes": ["4100"]},
            {"label": "Other Income", "account_codes": ["4200"]},
        ],
        "cogs": [{"label": "Cost of Goods Sold", "account_codes": ["5000"]}],
        "operating_expenses": [
            {"label": "Salaries and Wages", "account_codes": ["5100"]},
            {"label": "Rent Expense", "account_codes": ["5200"]},
            {"label": "Utilities Expense", "account_codes": ["5300"]},
            {"label": "Advertising Expense", "account_codes": ["5400"]},
            {"label": "Depreciation Expense", "account_codes": ["5500"]},
        ],
        "other_income": [],
        "other_expenses": [{"label": "Interest Expense", "account_codes": ["5600"]}],
    })


def default_cash_flow_config() -> CashFlowConfig:
    return CashFlowConfig.from_dict({
        "operating": [
            {"label": "Cash and Bank", "account_codes": ["1001", "1002"], "sign": POSITIVE},
            {"label": "Accounts Receivable", "account_codes": ["1100"], "sign": POSITIVE},
            {"label": "Accounts Payable", "account_codes": ["2000"], "sign": NEGATIVE},
        ],
        "investing": [
            {"label": "Equipment and Assets", "account_codes": ["1400"], "sign": NEGATIVE},
        ],
        "financing": [
            {"label": "Short-Term Loans", "account_codes": ["2100"], "sign": POSITIVE},
            {"label": "Long-Term Debt", "account_codes": ["2300"], "sign": POSITIVE},
            {"label": "Owner's Capital", "account_codes": ["3000"], "sign": POSITIVE},
        ],
    })


KIND_CLASSES = {
    "PROFIT_LOSS": (PnLConfig, default_pnl_config),
    "CASH_FLOW": (CashFlowConfig, default_cash_flow_config),
}


def resolve_config(company, kind: str, supplied: dict = None):
    """
    Pick the configuration for a report run.

    Precedence: the request's own config, then the company's saved one,
    then the built-in default.

    Returns:
        (config, used_default_config)
    """
    from reports.models import ReportConfiguration

    config_cls, default_factory = KIND_CLASSES[kind]
    if supplied:
        return config_cls.from_dict(supplied), False

    saved = ReportConfiguration.objects.filter(company=company, kind=kind).first()
    if saved is not None and saved.config:
        return config_cls.from_dict(saved.config), False

    return default_factory(), True
