"""Business-rule checks applied to a structured receipt extraction.

Model output that is schema-shaped can still be semantically broken: a
currency that is not an ISO code, an error reported next to a populated item
list, a negative fee. ``validate`` rejects those. Arithmetic drift between
the itemized lines and the printed total is common on real receipts (taxes,
rounding), so it is only logged.
"""
import logging
import math
from dataclasses import dataclass
from typing import Any, Union

from app.receipt.base import AdditionalCost, ReceiptAnalysisResult, ReceiptItem

logger = logging.getLogger("receipts")

TOTAL_TOLERANCE = 0.01  # one minor unit of the receipt currency

INVALID_CURRENCY = "invalid currency format"
ITEMS_WITH_ERROR = "items present alongside error"
INVALID_ADDITIONAL_COST = "invalid additional cost"
INVALID_ITEM = "invalid item"
INVALID_TOTAL = "invalid total price"


@dataclass(frozen=True)
class Accepted:
    result: ReceiptAnalysisResult


@dataclass(frozen=True)
class Rejected:
    reason: str
    detail: Any = None


ValidationOutcome = Union[Accepted, Rejected]


@dataclass(frozen=True)
class Reconciliation:
    calculated_total: float
    reported_total: float

    @property
    def difference(self) -> float:
        return abs(self.calculated_total - self.reported_total)

    @property
    def within_tolerance(self) -> bool:
        return self.difference <= TOTAL_TOLERANCE


def _is_finite(value: float) -> bool:
    return isinstance(value, (int, float)) and math.isfinite(value)


def validate_additional_cost(cost: AdditionalCost) -> str | None:
    """Return a problem description for ``cost``, or None if it is sane."""
    if not cost.name or not cost.name.strip():
        return "name is empty"
    if not _is_finite(cost.amount) or cost.amount < 0:
        return f"amount {cost.amount!r} is negative or not a number"
    return None


def validate_item(item: ReceiptItem) -> str | None:
    """Return a problem description for ``item``, or None if it is sane."""
    if not item.name or not item.name.strip():
        return "name is empty"
    if not _is_finite(item.quantity) or item.quantity <= 0:
        return f"quantity {item.quantity!r} is not positive"
    if not _is_finite(item.price) or item.price < 0:
        return f"price {item.price!r} is negative or not a number"
    return None


def reconcile_totals(result: ReceiptAnalysisResult) -> Reconciliation:
    items_subtotal = sum(item.price * item.quantity for item in result.items)
    included_extra = sum(
        cost.amount for cost in result.additional_costs if cost.included_in_subtotal
    )
    return Reconciliation(
        calculated_total=items_subtotal + included_extra,
        reported_total=result.total_price,
    )


def _check_rules(result: ReceiptAnalysisResult) -> Rejected | None:
    if result.currency is not None and len(result.currency) != 3:
        return Rejected(INVALID_CURRENCY, result.currency)

    if result.has_error and result.items:
        return Rejected(ITEMS_WITH_ERROR, {"errorText": result.error_text, "items": len(result.items)})

    for index, cost in enumerate(result.additional_costs):
        problem = validate_additional_cost(cost)
        if problem:
            return Rejected(INVALID_ADDITIONAL_COST, {"index": index, "name": cost.name, "problem": problem})

    for index, item in enumerate(result.items):
        problem = validate_item(item)
        if problem:
            return Rejected(INVALID_ITEM, {"index": index, "name": item.name, "problem": problem})

    if not _is_finite(result.total_price) or result.total_price < 0:
        return Rejected(INVALID_TOTAL, result.total_price)

    return None


def _log_advisories(result: ReceiptAnalysisResult) -> None:
    if result.has_error:
        return

    if not result.items:
        logger.warning("Receipt processed successfully but no items found")
        return

    reconciliation = reconcile_totals(result)
    if not reconciliation.within_tolerance:
        logger.warning(
            "Total price mismatch",
            extra={"extra_data": {
                "calculated_total": round(reconciliation.calculated_total, 4),
                "reported_total": reconciliation.reported_total,
                "currency": result.currency,
            }},
        )


def validate(result: ReceiptAnalysisResult) -> ValidationOutcome:
    """Check ``result`` against the receipt business rules.

    Returns ``Rejected`` for the first violated hard rule (currency format,
    error/items exclusivity, additional-cost, item and total sanity).
    Total mismatches and empty item lists are logged and still accepted.
    """
    rejected = _check_rules(result)
    if rejected is not None:
        logger.warning(
            "Receipt extraction rejected: %s",
            rejected.reason,
            extra={"extra_data": {"reason": rejected.reason, "detail": rejected.detail}},
        )
        return rejected

    _log_advisories(result)
    return Accepted(result)
