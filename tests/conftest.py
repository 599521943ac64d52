import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure project root is on sys.path so tests can import the top-level modules
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from config import Settings
from domain.errors import NotificationError, RenderError
from domain.models import LedgerResult, RenderedDocument
from services.order_pipeline import OrderPipeline

FIXED_NOW = datetime(2025, 8, 1, 2, 30, 15, 123000, tzinfo=timezone.utc)


class FakeRenderer:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def render(self, order, schedule):
        self.calls.append((order, schedule))
        if self.fail:
            raise RenderError("renderer unavailable")
        return RenderedDocument(
            content=b"form-bytes",
            filename=f"Salary_Deduction_Form_{order.order_number}.docx",
            media_type="application/octet-stream",
        )


class FakeNotifier:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def send(self, order, schedule, document=None):
        self.calls.append((order, schedule, document))
        if self.fail:
            raise NotificationError("provider rejected the message")


class FakeLedger:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []

    def record(self, order):
        self.calls.append(order)
        if self.fail:
            return LedgerResult(ok=False, message="quota exceeded")
        return LedgerResult(ok=True, message="ok")


@pytest.fixture
def settings():
    return Settings(
        sendgrid_api_key="SG.test",
        google_sheets_id="sheet-123",
        google_sheets_credentials="{}",
        environment="production",
    )


@pytest.fixture
def raw_order():
    return {
        "orderNumber": "TMW-1001",
        "buyerName": "Aroha Smith",
        "employeeId": "E12345",
        "site": "Hamilton",
        "email": "aroha@example.com",
        "items": [{"name": "T-Shirt", "size": "M", "quantity": 2, "unitPrice": 25.00}],
        "total": "50.00",
        "paymentType": "full",
        "paymentDate": "15/08/2025",
    }


@pytest.fixture
def make_pipeline(settings):
    def _make(renderer=None, notifier=None, ledger=None):
        return OrderPipeline(
            settings=settings,
            renderer=renderer or FakeRenderer(),
            notifier=notifier or FakeNotifier(),
            ledger=ledger or FakeLedger(),
            clock=lambda: FIXED_NOW,
        )

    return _make


@pytest.fixture
def build_test_order(raw_order):
    from services.validation_service import build_order

    def _build(**overrides):
        raw = dict(raw_order)
        raw.update(overrides)
        return build_order(raw, now=FIXED_NOW)

    return _build
