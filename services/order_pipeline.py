# services/order_pipeline.py

import logging
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from config import Settings
from domain.errors import RenderError
from domain.models import LedgerResult, Order, PaymentSchedule, RenderedDocument
from services.document_service import DocxRenderer
from services.email_service import SendGridNotifier
from services.ledger_service import SheetsLedger
from services.payment_schedule import build_payment_schedule
from services.validation_service import build_order

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    RECEIVED = "received"
    VALIDATED = "validated"
    RENDERING = "rendering"
    NOTIFYING = "notifying"
    RECORDING = "recording"
    RESPONDED = "responded"


@dataclass(frozen=True)
class SubmissionResult:
    order: Order
    schedule: PaymentSchedule
    document_attached: bool
    ledger: LedgerResult
    state: PipelineState = PipelineState.RESPONDED

    @property
    def order_number(self) -> str:
        return self.order.order_number


class OrderPipeline:
    """
    validate -> render form -> send confirmation -> record in ledger.

    Only validation and the confirmation email can fail a submission. A
    missing form downgrades the email; a ledger failure is only logged.
    """

    def __init__(
            self,
            settings: Settings,
            renderer,
            notifier,
            ledger,
            clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self.renderer = renderer
        self.notifier = notifier
        self.ledger = ledger
        self.clock = clock

    def submit(self, raw: Mapping[str, Any]) -> SubmissionResult:
        state = PipelineState.RECEIVED
        logger.info("Processing order submission (%d fields)", len(raw) if isinstance(raw, Mapping) else 0)

        now = self.clock() if self.clock else None
        order = build_order(raw, timezone_name=self.settings.order_timezone, now=now)
        schedule = build_payment_schedule(
            order.payment_type,
            order.payment_date,
            order.total,
            self.settings.plan_installment_dates,
        )
        state = self._advance(order, state, PipelineState.VALIDATED)

        state = self._advance(order, state, PipelineState.RENDERING)
        document = self._render(order, schedule)

        state = self._advance(order, state, PipelineState.NOTIFYING)
        self.notifier.send(order, schedule, document)

        state = self._advance(order, state, PipelineState.RECORDING)
        ledger_result = self._record(order)

        state = self._advance(order, state, PipelineState.RESPONDED)
        return SubmissionResult(
            order=order,
            schedule=schedule,
            document_attached=document is not None,
            ledger=ledger_result,
            state=state,
        )

    def _render(self, order: Order, schedule: PaymentSchedule) -> Optional[RenderedDocument]:
        try:
            return self.renderer.render(order, schedule)
        except RenderError as e:
            logger.warning(
                "Order %s: deduction form not rendered, sending without attachment: %s",
                order.order_number,
                e,
            )
            return None

    def _record(self, order: Order) -> LedgerResult:
        try:
            result = self.ledger.record(order)
        except Exception as e:
            result = LedgerResult(ok=False, message=f"Ledger raised {type(e).__name__}: {e}")

        if result.ok:
            logger.info("Order %s recorded in ledger", order.order_number)
        else:
            logger.error("Order %s not recorded in ledger: %s", order.order_number, result.message)
        return result

    @staticmethod
    def _advance(order: Order, current: PipelineState, target: PipelineState) -> PipelineState:
        logger.info("Order %s: %s -> %s", order.order_number, current.value, target.value)
        return target


def build_pipeline(settings: Settings) -> OrderPipeline:
    return OrderPipeline(
        settings=settings,
        renderer=DocxRenderer(
            payroll_email=settings.payroll_email,
            timeout_seconds=settings.render_timeout_seconds,
        ),
        notifier=SendGridNotifier(settings),
        ledger=SheetsLedger(settings),
    )
