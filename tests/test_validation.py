import logging

import pytest

from app.receipt.base import AdditionalCost, ReceiptItem, safe_default
from app.receipt.validation import (
    INVALID_ADDITIONAL_COST,
    INVALID_CURRENCY,
    INVALID_ITEM,
    INVALID_TOTAL,
    ITEMS_WITH_ERROR,
    Accepted,
    Rejected,
    reconcile_totals,
    validate,
)
from conftest import make_result


def _mismatch_warnings(caplog) -> list[str]:
    return [r.getMessage() for r in caplog.records if r.getMessage() == "Total price mismatch"]


def test_matching_total_is_accepted_without_warning(caplog) -> None:
    result = make_result(totalPrice=17.99)
    with caplog.at_level(logging.WARNING, logger="receipts"):
        outcome = validate(result)
    assert outcome == Accepted(result)
    assert caplog.records == []


def test_total_mismatch_is_only_a_warning(caplog) -> None:
    result = make_result(totalPrice=20.00)
    with caplog.at_level(logging.WARNING, logger="receipts"):
        outcome = validate(result)
    assert isinstance(outcome, Accepted)
    assert outcome.result == result
    assert len(_mismatch_warnings(caplog)) == 1


def test_included_additional_cost_counts_towards_total(caplog) -> None:
    result = make_result(
        items=[{"name": "Pad thai", "quantity": 1, "price": 10.00}],
        additionalCosts=[{"name": "GST", "amount": 1.00, "includedInSubtotal": True}],
        totalPrice=11.00,
    )
    assert reconcile_totals(result).within_tolerance
    with caplog.at_level(logging.WARNING, logger="receipts"):
        assert isinstance(validate(result), Accepted)
    assert _mismatch_warnings(caplog) == []


def test_excluded_additional_cost_is_not_added_to_calculated_total() -> None:
    result = make_result(
        items=[{"name": "Pad thai", "quantity": 1, "price": 10.00}],
        additionalCosts=[{"name": "Tip", "amount": 2.00, "includedInSubtotal": False}],
        totalPrice=12.00,
    )
    reconciliation = reconcile_totals(result)
    assert reconciliation.calculated_total == pytest.approx(10.00)
    assert not reconciliation.within_tolerance
    assert isinstance(validate(result), Accepted)


def test_one_cent_drift_is_tolerated() -> None:
    result = make_result(items=[{"name": "Soup", "quantity": 3, "price": 3.33}], totalPrice=9.99)
    assert reconcile_totals(result).within_tolerance


@pytest.mark.parametrize("currency", ["US", "USDOLLAR", ""])
def test_currency_must_be_three_characters(currency) -> None:
    outcome = validate(make_result(currency=currency))
    assert outcome == Rejected(INVALID_CURRENCY, currency)


def test_error_text_with_items_is_rejected() -> None:
    outcome = validate(make_result(errorText="too blurry"))
    assert isinstance(outcome, Rejected)
    assert outcome.reason == ITEMS_WITH_ERROR


def test_currency_rule_is_reported_before_error_rule() -> None:
    outcome = validate(make_result(currency="EURO", errorText="too blurry"))
    assert outcome.reason == INVALID_CURRENCY


def test_negative_additional_cost_is_rejected() -> None:
    outcome = validate(
        make_result(additionalCosts=[
            {"name": "Tax", "amount": 1.2, "includedInSubtotal": False},
            {"name": "Discount", "amount": -2.0, "includedInSubtotal": False},
        ])
    )
    assert isinstance(outcome, Rejected)
    assert outcome.reason == INVALID_ADDITIONAL_COST
    assert outcome.detail["index"] == 1
    assert outcome.detail["name"] == "Discount"


def test_blank_additional_cost_name_is_rejected() -> None:
    outcome = validate(make_result(additionalCosts=[{"name": "   ", "amount": 1.0, "includedInSubtotal": True}]))
    assert outcome.reason == INVALID_ADDITIONAL_COST
    assert outcome.detail["index"] == 0


@pytest.mark.parametrize(
    "item",
    [
        {"name": "", "quantity": 1, "price": 1.0},
        {"name": "Milk", "quantity": 0, "price": 1.0},
        {"name": "Milk", "quantity": 1, "price": -1.0},
        {"name": "Milk", "quantity": 1, "price": float("nan")},
    ],
)
def test_insane_items_are_rejected(item) -> None:
    outcome = validate(make_result(items=[item], totalPrice=1.0))
    assert outcome.reason == INVALID_ITEM


def test_negative_total_is_rejected() -> None:
    outcome = validate(make_result(totalPrice=-5))
    assert outcome == Rejected(INVALID_TOTAL, -5)


def test_empty_items_without_error_is_accepted_with_warning(caplog) -> None:
    result = make_result(items=[], totalPrice=0)
    with caplog.at_level(logging.WARNING, logger="receipts"):
        outcome = validate(result)
    assert isinstance(outcome, Accepted)
    assert "no items found" in caplog.text


def test_not_a_receipt_is_a_well_formed_negative_result(caplog) -> None:
    result = make_result(items=[], totalPrice=0, currency="USD", errorText="not a receipt")
    with caplog.at_level(logging.WARNING, logger="receipts"):
        outcome = validate(result)
    assert outcome == Accepted(result)
    assert caplog.records == []


def test_safe_default_is_accepted() -> None:
    default = safe_default("parsing error")
    assert validate(default) == Accepted(default)


def test_validation_is_idempotent() -> None:
    first = validate(make_result(totalPrice=20.00))
    second = validate(first.result)
    assert first == second


def test_entities_are_immutable() -> None:
    item = ReceiptItem(name="Tea", quantity=1, price=2.5)
    cost = AdditionalCost(name="Tip", amount=1, included_in_subtotal=False)
    with pytest.raises(Exception):
        item.price = 3
    with pytest.raises(Exception):
        cost.amount = 0
