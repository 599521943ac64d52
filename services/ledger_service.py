# services/ledger_service.py

import logging
from typing import List, Optional

from googleapiclient.discovery import Resource

from config import Settings
from domain.errors import LedgerError
from domain.models import LedgerResult, Order
from google_client import get_sheets_service
from utils.formatting import format_money

PENDING_STATUS = "Pending"

logger = logging.getLogger(__name__)


def items_summary(order: Order) -> str:
    """
    Example: "T-Shirt (M) x2, Crewneck (L) x1"
    """
    return ", ".join(f"{item.name} ({item.size}) x{item.quantity}" for item in order.items)


def build_ledger_row(order: Order, trailing_columns: int = 3) -> List[str]:
    """
    Positional row for the Orders sheet. The blank columns at the end are
    filled in by hand (notes, payroll received, order fulfilled).
    """
    row = [
        order.order_number,
        order.created_at_utc,
        order.created_at_local,
        order.buyer_name,
        order.employee_id,
        order.site,
        order.email,
        items_summary(order),
        format_money(order.total),
        order.payment_type,
        order.payment_date,
        PENDING_STATUS,
    ]
    row.extend([""] * trailing_columns)
    return row


class SheetsLedger:
    """
    Appends one row per order to a Google Sheet.

    record() never raises: every failure comes back as a failed LedgerResult.
    """

    def __init__(self, settings: Settings, sheets: Optional[Resource] = None):
        self.settings = settings
        self._sheets = sheets

    def append_row(self, row: List[str]) -> None:
        if not self.settings.google_sheets_id:
            raise LedgerError("GOOGLE_SHEETS_ID is not set")

        try:
            sheets = self._get_sheets()
            sheets.spreadsheets().values().append(
                spreadsheetId=self.settings.google_sheets_id,
                range=self.settings.ledger_range,
                valueInputOption="USER_ENTERED",
                body={"values": [row]},
            ).execute()
        except LedgerError:
            raise
        except Exception as e:
            raise LedgerError(f"Append failed: {e}") from e

    def record(self, order: Order) -> LedgerResult:
        try:
            row = build_ledger_row(order, self.settings.ledger_trailing_columns)
            self.append_row(row)
        except Exception as e:
            return LedgerResult(ok=False, message=str(e))

        return LedgerResult(ok=True, message=f"Appended to {self.settings.ledger_range}")

    def _get_sheets(self) -> Resource:
        if self._sheets is None:
            if not self.settings.google_sheets_credentials:
                raise LedgerError("GOOGLE_SHEETS_CREDENTIALS is not set")
            self._sheets = get_sheets_service(self.settings.google_sheets_credentials)
        return self._sheets
