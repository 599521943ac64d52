# services/validation_service.py

import json
import logging
import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, List, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo

from domain.errors import ValidationError
from domain.models import NO_PAYMENT_DATE, Order, OrderItem

logger = logging.getLogger(__name__)

ORDER_NUMBER_PREFIX = "TMW"

# Upper bounds keep every amount and line total quantizable to cents
MAX_AMOUNT = Decimal("1000000000")
MAX_QUANTITY = 10000

REQUIRED_FIELDS = [
    "buyerName",
    "employeeId",
    "site",
    "email",
    "items",
    "total",
    "paymentType",
]

# Field names used by the deployed order form
FIELD_ALIASES = {
    "buyerName": "kaimahiName",
    "employeeId": "employeeNumber",
    "site": "campus",
}


def build_order(
        raw: Mapping[str, Any],
        *,
        timezone_name: str = "Pacific/Auckland",
        now: Optional[datetime] = None,
) -> Order:
    """
    Validate one raw form submission and turn it into an Order.

    `items` may be a list of objects or that same list JSON-encoded as text.
    Raises ValidationError naming the first missing or malformed field.
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("Order payload must be a JSON object")

    for name in REQUIRED_FIELDS:
        if _is_blank(_field(raw, name)):
            raise ValidationError(f"Missing required field: {name}", field=name)

    now = now or datetime.now(timezone.utc)
    items = parse_items(_field(raw, "items"))
    total = parse_total(_field(raw, "total"))

    order_number = raw.get("orderNumber")
    if _is_blank(order_number):
        order_number = generate_order_number(now)

    payment_date = raw.get("paymentDate")
    if _is_blank(payment_date):
        payment_date = NO_PAYMENT_DATE

    created_at_utc, created_at_local = _timestamps(now, timezone_name)

    order = Order(
        order_number=str(order_number),
        buyer_name=str(_field(raw, "buyerName")).strip(),
        employee_id=str(_field(raw, "employeeId")).strip(),
        site=str(_field(raw, "site")).strip(),
        email=str(_field(raw, "email")).strip(),
        items=tuple(items),
        total=total,
        payment_type=str(_field(raw, "paymentType")).strip(),
        payment_date=str(payment_date).strip(),
        created_at_utc=created_at_utc,
        created_at_local=created_at_local,
    )

    if order.items_total != total:
        logger.warning(
            "Order %s: submitted total %s differs from item total %s",
            order.order_number,
            total,
            order.items_total,
        )

    return order


def parse_items(value: Any) -> List[OrderItem]:
    if isinstance(value, str):
        try:
            value = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ValidationError(f"Invalid items: {exc.msg}", field="items") from exc

    if not isinstance(value, list):
        raise ValidationError("Invalid items: expected a list", field="items")

    return [_parse_item(position, entry) for position, entry in enumerate(value, start=1)]


def parse_total(value: Any) -> Decimal:
    """
    Coerce the submitted total to a Decimal. Anything that is not a finite
    amount between 0 and MAX_AMOUNT is rejected.
    """
    amount = _to_money(value)
    if amount is None:
        raise ValidationError(f"Invalid total: {value!r}", field="total")
    return amount


def generate_order_number(now: Optional[datetime] = None) -> str:
    """
    "TMW-<epoch millis>-<4 hex>". The suffix keeps two submissions in the
    same millisecond apart.
    """
    now = now or datetime.now(timezone.utc)
    millis = round(now.timestamp() * 1000)
    return f"{ORDER_NUMBER_PREFIX}-{millis}-{uuid.uuid4().hex[:4].upper()}"


def _parse_item(position: int, entry: Any) -> OrderItem:
    if not isinstance(entry, Mapping):
        raise ValidationError(f"Invalid items: entry {position} is not an object", field="items")

    name = entry.get("name")
    if _is_blank(name):
        raise ValidationError(f"Invalid items: entry {position} has no name", field="items")

    quantity = _to_quantity(entry.get("quantity"))
    if quantity is None:
        raise ValidationError(
            f"Invalid items: entry {position} quantity must be a whole number from 1 to {MAX_QUANTITY}",
            field="items",
        )

    raw_price = entry.get("unitPrice", entry.get("price"))
    unit_price = _to_money(raw_price)
    if unit_price is None:
        raise ValidationError(
            f"Invalid items: entry {position} price must be a number between 0 and {MAX_AMOUNT}",
            field="items",
        )

    size = entry.get("size")
    return OrderItem(
        name=str(name).strip(),
        size="" if size is None else str(size).strip(),
        quantity=quantity,
        unit_price=unit_price,
    )


def _field(raw: Mapping[str, Any], name: str) -> Any:
    value = raw.get(name)
    alias = FIELD_ALIASES.get(name)
    if _is_blank(value) and alias:
        value = raw.get(alias)
    return value


def _is_blank(value: Any) -> bool:
    if value is None or value is False:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (int, float)):
        return value == 0 or value != value  # zero or NaN
    return False


def _to_decimal(value: Any) -> Optional[Decimal]:
    if isinstance(value, bool) or value is None:
        return None
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return None
    if not amount.is_finite():
        return None
    return amount


def _to_money(value: Any) -> Optional[Decimal]:
    amount = _to_decimal(value)
    if amount is None or amount < 0 or amount > MAX_AMOUNT:
        return None
    return amount


def _to_quantity(value: Any) -> Optional[int]:
    amount = _to_decimal(value)
    if amount is None or amount != amount.to_integral_value() or amount <= 0:
        return None
    if amount > MAX_QUANTITY:
        return None
    return int(amount)


def _timestamps(now: datetime, timezone_name: str) -> Tuple[str, str]:
    utc = now.astimezone(timezone.utc)
    created_at_utc = utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")
    created_at_local = utc.astimezone(ZoneInfo(timezone_name)).strftime("%d/%m/%Y")
    return created_at_utc, created_at_local
