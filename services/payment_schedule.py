# services/payment_schedule.py

from decimal import Decimal
from typing import List, Sequence

from domain.models import NO_PAYMENT_DATE, Installment, PaymentSchedule
from utils.formatting import to_cents

PLAN = "plan"
PLAN_SHARE_LABELS = ("33%", "33%", "34%")


def build_payment_schedule(
        payment_type: str,
        payment_date: str,
        total: Decimal,
        plan_dates: Sequence[str],
) -> PaymentSchedule:
    """
    The one rule both the deduction form and the email use.

      - payment_type == "plan" -> three installments on plan_dates; the
        first two are total / 3 rounded to cents, the last takes the rest
      - otherwise, with a real payment_date -> one full payment
      - otherwise -> "none"
    """
    total = to_cents(total)

    if payment_type == PLAN:
        if len(plan_dates) != len(PLAN_SHARE_LABELS):
            raise ValueError(
                f"A payment plan needs exactly {len(PLAN_SHARE_LABELS)} dates, got {len(plan_dates)}"
            )
        return PaymentSchedule(
            kind="plan",
            total=total,
            installments=split_into_installments(total, plan_dates),
        )

    if payment_date and payment_date != NO_PAYMENT_DATE:
        return PaymentSchedule(kind="full", total=total, payment_date=payment_date)

    return PaymentSchedule(kind="none", total=total)


def split_into_installments(total: Decimal, plan_dates: Sequence[str]) -> List[Installment]:
    third = to_cents(total / 3)
    remainder = total - third * 2
    amounts = [third, third, remainder]

    return [
        Installment(number=i, date=date, amount=amount, share_label=label)
        for i, (date, amount, label) in enumerate(
            zip(plan_dates, amounts, PLAN_SHARE_LABELS), start=1
        )
    ]


def commencement_text(schedule: PaymentSchedule) -> str:
    """Text for the 'Date to commence payments' box on the form."""
    if schedule.is_plan:
        first = schedule.installments[0]
        return f"{first.date} (First Payment - {len(schedule.installments)} installments)"
    if schedule.is_full:
        return f"{schedule.payment_date} (Payment in Full)"
    return "To be determined"
