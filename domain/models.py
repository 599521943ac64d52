# domain/models.py

from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional, Tuple


NO_PAYMENT_DATE = "N/A"


@dataclass(frozen=True)
class OrderItem:
    """
    One apparel line as submitted on the form.
    """
    name: str  # catalog short name, e.g. "T-Shirt"
    size: str
    quantity: int
    unit_price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.unit_price * self.quantity


@dataclass(frozen=True)
class Order:
    """
    Canonical, validated order. Built once per submission and discarded
    when the submission completes.
    """
    order_number: str
    buyer_name: str
    employee_id: str
    site: str
    email: str
    items: Tuple[OrderItem, ...]
    total: Decimal  # as supplied by the buyer, never recomputed
    payment_type: str  # "plan", "full" or anything else
    payment_date: str  # NO_PAYMENT_DATE when absent
    created_at_utc: str  # ISO-8601
    created_at_local: str  # dd/mm/yyyy in the order timezone

    @property
    def items_total(self) -> Decimal:
        return sum((item.line_total for item in self.items), Decimal("0"))

    @property
    def has_payment_date(self) -> bool:
        return bool(self.payment_date) and self.payment_date != NO_PAYMENT_DATE


@dataclass(frozen=True)
class Installment:
    number: int  # 1-based
    date: str
    amount: Decimal
    share_label: str  # e.g. "33%"


@dataclass(frozen=True)
class PaymentSchedule:
    """
    Result of the payment-schedule policy.

    kind is one of:
      - "plan": three installments, amounts sum exactly to the total
      - "full": single payment of the total on payment_date
      - "none": no schedule known yet
    """
    kind: str
    total: Decimal
    installments: List[Installment] = field(default_factory=list)
    payment_date: Optional[str] = None

    @property
    def is_plan(self) -> bool:
        return self.kind == "plan"

    @property
    def is_full(self) -> bool:
        return self.kind == "full"


@dataclass(frozen=True)
class DeductionFormLine:
    description: str
    size: str
    quantity: str
    line_total_display: str


@dataclass(frozen=True)
class DeductionForm:
    """
    Named fields of the printable salary/wage deduction form.
    """
    title_lines: List[str]
    notice: str
    buyer_name: str
    employee_id: str
    site: str
    lines: List[DeductionFormLine]
    total_display: str
    payment_commencement: str


@dataclass(frozen=True)
class RenderedDocument:
    content: bytes
    filename: str
    media_type: str


@dataclass(frozen=True)
class LedgerResult:
    """
    Outcome of a ledger append. The pipeline logs it and moves on; a failed
    result never changes the submission outcome.
    """
    ok: bool
    message: str
