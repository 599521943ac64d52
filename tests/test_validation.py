import json
from decimal import Decimal

import pytest

from conftest import FIXED_NOW
from domain.errors import ValidationError
from services.validation_service import (
    REQUIRED_FIELDS,
    build_order,
    generate_order_number,
    parse_total,
)
from utils.formatting import format_money


def test_builds_canonical_order(raw_order):
    order = build_order(raw_order, now=FIXED_NOW)

    assert order.order_number == "TMW-1001"
    assert order.buyer_name == "Aroha Smith"
    assert order.employee_id == "E12345"
    assert order.site == "Hamilton"
    assert order.total == Decimal("50.00")
    assert order.payment_date == "15/08/2025"
    assert len(order.items) == 1
    item = order.items[0]
    assert (item.name, item.size, item.quantity) == ("T-Shirt", "M", 2)
    assert item.line_total == Decimal("50.00")


def test_timestamps_are_derived(raw_order):
    order = build_order(raw_order, now=FIXED_NOW)
    assert order.created_at_utc == "2025-08-01T02:30:15.123Z"
    # 02:30 UTC is 14:30 the same day in Auckland
    assert order.created_at_local == "01/08/2025"


@pytest.mark.parametrize("missing", REQUIRED_FIELDS)
def test_missing_required_field_is_named(raw_order, missing):
    raw = dict(raw_order)
    del raw[missing]

    with pytest.raises(ValidationError) as exc_info:
        build_order(raw, now=FIXED_NOW)

    assert exc_info.value.field == missing
    assert str(exc_info.value) == f"Missing required field: {missing}"


@pytest.mark.parametrize("blank", ["", "   ", None, 0])
def test_blank_required_value_counts_as_missing(raw_order, blank):
    raw = dict(raw_order, email=blank)
    with pytest.raises(ValidationError) as exc_info:
        build_order(raw, now=FIXED_NOW)
    assert exc_info.value.field == "email"


def test_accepts_order_form_field_names(raw_order):
    raw = dict(raw_order)
    raw["kaimahiName"] = raw.pop("buyerName")
    raw["employeeNumber"] = raw.pop("employeeId")
    raw["campus"] = raw.pop("site")
    raw["items"] = [{"name": "Crewneck", "size": "L", "quantity": 1, "price": 50}]

    order = build_order(raw, now=FIXED_NOW)

    assert order.buyer_name == "Aroha Smith"
    assert order.employee_id == "E12345"
    assert order.site == "Hamilton"
    assert order.items[0].unit_price == Decimal("50")


def test_items_may_arrive_as_json_text(raw_order):
    raw = dict(raw_order, items=json.dumps(raw_order["items"]))
    order = build_order(raw, now=FIXED_NOW)
    assert order.items[0].name == "T-Shirt"


def test_item_order_is_preserved(raw_order):
    items = [
        {"name": "Crewneck", "size": "XL", "quantity": 1, "unitPrice": 60},
        {"name": "T-Shirt", "size": "S", "quantity": 3, "unitPrice": 25},
        {"name": "Hoodie", "size": "M", "quantity": 1, "unitPrice": 70},
    ]
    order = build_order(dict(raw_order, items=items, total=205), now=FIXED_NOW)
    assert [i.name for i in order.items] == ["Crewneck", "T-Shirt", "Hoodie"]


def test_unparseable_items_text(raw_order):
    with pytest.raises(ValidationError) as exc_info:
        build_order(dict(raw_order, items="[{not json"), now=FIXED_NOW)
    assert exc_info.value.field == "items"


@pytest.mark.parametrize(
    "items",
    [
        {"name": "T-Shirt"},
        ["T-Shirt"],
        [{"size": "M", "quantity": 1, "unitPrice": 25}],
        [{"name": "T-Shirt", "size": "M", "quantity": 0, "unitPrice": 25}],
        [{"name": "T-Shirt", "size": "M", "quantity": 1.5, "unitPrice": 25}],
        [{"name": "T-Shirt", "size": "M", "quantity": 1, "unitPrice": -1}],
        [{"name": "T-Shirt", "size": "M", "quantity": 1, "unitPrice": "abc"}],
    ],
)
def test_malformed_items_are_rejected(raw_order, items):
    with pytest.raises(ValidationError) as exc_info:
        build_order(dict(raw_order, items=items), now=FIXED_NOW)
    assert exc_info.value.field == "items"


def test_empty_items_list_is_not_rejected(raw_order):
    order = build_order(dict(raw_order, items=[]), now=FIXED_NOW)
    assert order.items == ()


@pytest.mark.parametrize("total", ["abc", "NaN", "Infinity", "-5", True, 1e30, "1000000000.01"])
def test_bad_total_is_rejected(total):
    with pytest.raises(ValidationError) as exc_info:
        parse_total(total)
    assert exc_info.value.field == "total"


@pytest.mark.parametrize("total,expected", [("50.00", "50.00"), (50, "50"), (49.5, "49.5"), (" 12.30 ", "12.30")])
def test_total_coercion(total, expected):
    assert parse_total(total) == Decimal(expected)


def test_total_is_trusted_even_when_items_disagree(raw_order, caplog):
    order = build_order(dict(raw_order, total="45.00"), now=FIXED_NOW)
    assert order.total == Decimal("45.00")
    assert "differs from item total" in caplog.text


def test_generated_order_number_when_absent(raw_order):
    raw = dict(raw_order)
    del raw["orderNumber"]

    order = build_order(raw, now=FIXED_NOW)

    assert order.order_number.startswith("TMW-1754015415123-")
    assert len(order.order_number.rsplit("-", 1)[1]) == 4


def test_generated_order_numbers_differ_within_same_millisecond():
    numbers = {generate_order_number(FIXED_NOW) for _ in range(50)}
    assert len(numbers) > 1


def test_payment_date_defaults_to_sentinel(raw_order):
    raw = dict(raw_order)
    del raw["paymentDate"]
    assert build_order(raw, now=FIXED_NOW).payment_date == "N/A"


def test_payload_must_be_an_object():
    with pytest.raises(ValidationError):
        build_order(["not", "an", "object"], now=FIXED_NOW)


@pytest.mark.parametrize(
    "item",
    [
        {"name": "T-Shirt", "size": "M", "quantity": 1, "unitPrice": 1e30},
        {"name": "T-Shirt", "size": "M", "quantity": 10**30, "unitPrice": 25},
        {"name": "T-Shirt", "size": "M", "quantity": 10001, "unitPrice": 25},
    ],
)
def test_oversized_item_amounts_are_rejected(raw_order, item):
    with pytest.raises(ValidationError) as exc_info:
        build_order(dict(raw_order, items=[item]), now=FIXED_NOW)
    assert exc_info.value.field == "items"


def test_largest_accepted_amounts_still_format(raw_order):
    item = {"name": "T-Shirt", "size": "M", "quantity": 10000, "unitPrice": "1000000000"}
    order = build_order(dict(raw_order, items=[item], total="1000000000"), now=FIXED_NOW)

    assert format_money(order.total) == "1000000000.00"
    assert format_money(order.items[0].line_total) == "10000000000000.00"
