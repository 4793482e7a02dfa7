# accounting/integrations.py
"""
Outbound port to the inventory service.

Posting a sales or purchase entry may carry stock adjustments. Once the
entry is POSTED (and committed), each adjustment is handed to the configured
gateway. A failing adjustment is logged and reported back to the caller;
it never rolls back the posting. Ledger and stock converge eventually.

The gateway class is configured with ``settings.INVENTORY_GATEWAY``.
"""

import logging
from dataclasses import asdict, dataclass
from decimal import Decimal, InvalidOperation

from django.conf import settings
from django.utils.module_loading import import_string

logger = logging.getLogger(__name__)


class InventoryGatewayError(Exception):
    """Raised by a gateway when the inventory side rejects an adjustment."""


@dataclass(frozen=True)
class StockAdjustment:
    type: str  # STOCK_IN | STOCK_OUT | ADJUSTED
    product_id: str
    qty: Decimal
    cost_price: Decimal
    variant: str = ""

    TYPES = ("STOCK_IN", "STOCK_OUT", "ADJUSTED")

    @classmethod
    def from_dict(cls, data: dict) -> "StockAdjustment":
        adj_type = str(data.get("type", "")).upper()
        if adj_type not in cls.TYPES:
            raise ValueError(f"Unknown stock adjustment type: {data.get('type')!r}")
        product_id = str(data.get("product_id") or data.get("productId") or "")
        if not product_id:
            raise ValueError("Stock adjustment requires a product_id.")
        try:
            qty = Decimal(str(data.get("qty", "0")))
            cost_price = Decimal(str(data.get("cost_price", data.get("costPrice", "0"))))
        except InvalidOperation:
            raise ValueError("Stock adjustment qty and cost_price must be numeric.")
        return cls(
            type=adj_type,
            product_id=product_id,
            qty=qty,
            cost_price=cost_price,
            variant=str(data.get("variant") or ""),
        )

    def to_dict(self) -> dict:
        data = asdict(self)
        data["qty"] = str(self.qty)
        data["cost_price"] = str(self.cost_price)
        return data


class LoggingInventoryGateway:
    """Default gateway: records the adjustment in the application log only."""

    def adjust_stock(self, company, adjustment: StockAdjustment, *, reference: str) -> None:
        logger.info(
            "Stock adjustment dispatched",
            extra={
                "company_id": company.id,
                "reference": reference,
                **adjustment.to_dict(),
            },
        )


def get_inventory_gateway():
    path = getattr(settings, "INVENTORY_GATEWAY", "accounting.integrations.LoggingInventoryGateway")
    return import_string(path)()


def dispatch_stock_adjustments(entry) -> list[dict]:
    """
    Send every stock adjustment of a posted entry to the inventory gateway.

    Returns the failures as ``[{"index", "product_id", "reason"}]``.
    """
    if not entry.stock_adjustments:
        return []

    gateway = get_inventory_gateway()
    failures = []
    for index, raw in enumerate(entry.stock_adjustments):
        product_id = (raw or {}).get("product_id") or (raw or {}).get("productId")
        try:
            adjustment = StockAdjustment.from_dict(raw or {})
            gateway.adjust_stock(entry.company, adjustment, reference=entry.reference)
        except (InventoryGatewayError, ValueError) as exc:
            logger.warning(
                "Stock adjustment failed",
                extra={
                    "company_id": entry.company_id,
                    "entry_id": entry.id,
                    "reference": entry.reference,
                    "index": index,
                    "product_id": product_id,
                    "error": str(exc),
                },
            )
            failures.append({"index": index, "product_id": product_id, "reason": str(exc)})
    return failures
