import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_PLAN_DATES = "13/08/2025,27/08/2025,10/09/2025"
PLAN_INSTALLMENT_COUNT = 3


def _get_int(name: str, fallback: int) -> int:
    raw_value = os.getenv(name)
    if not raw_value:
        return fallback
    try:
        return int(raw_value)
    except ValueError as exc:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw_value!r}") from exc


def _get_list(name: str, fallback: str = "") -> List[str]:
    raw_value = os.getenv(name, fallback)
    if not raw_value:
        return []
    return [item.strip() for item in raw_value.split(",") if item.strip()]


def _get_plan_dates(name: str, fallback: str) -> List[str]:
    dates = _get_list(name) or _get_list(name, fallback)
    if len(dates) != PLAN_INSTALLMENT_COUNT:
        raise RuntimeError(
            f"Environment variable {name} must list {PLAN_INSTALLMENT_COUNT} dates, got {os.getenv(name)!r}"
        )
    return dates


@dataclass(frozen=True)
class Settings:
    """
    Process-wide configuration, fixed at startup and handed to the pipeline.
    """
    sendgrid_api_key: Optional[str] = None
    from_email: str = "orders@twoa.ac.nz"
    from_name: str = "Te Mata Wānanga - Apakura"
    payroll_email: str = "payroll@twoa.ac.nz"
    orders_email: str = "orders@twoa.ac.nz"
    deduction_form_url: str = "https://www.twoa.ac.nz"

    google_sheets_credentials: Optional[str] = None  # service account JSON text
    google_sheets_id: Optional[str] = None
    ledger_range: str = "Orders!A:O"
    ledger_trailing_columns: int = 3

    environment: str = "production"
    render_timeout_seconds: int = 30
    email_timeout_seconds: int = 15
    order_timezone: str = "Pacific/Auckland"
    plan_installment_dates: List[str] = field(
        default_factory=lambda: DEFAULT_PLAN_DATES.split(",")
    )
    allowed_origins: List[str] = field(default_factory=lambda: ["*"])

    @property
    def expose_error_details(self) -> bool:
        return self.environment.lower() != "production"

    @property
    def ledger_configured(self) -> bool:
        return bool(self.google_sheets_id and self.google_sheets_credentials)

    @classmethod
    def from_env(cls) -> "Settings":
        load_dotenv(BASE_DIR / ".env")
        defaults = cls()
        return cls(
            sendgrid_api_key=os.getenv("SENDGRID_API_KEY"),
            from_email=os.getenv("FROM_EMAIL") or defaults.from_email,
            from_name=os.getenv("FROM_NAME") or defaults.from_name,
            payroll_email=os.getenv("PAYROLL_EMAIL") or defaults.payroll_email,
            orders_email=os.getenv("ORDERS_EMAIL") or defaults.orders_email,
            deduction_form_url=os.getenv("DEDUCTION_FORM_URL") or defaults.deduction_form_url,
            google_sheets_credentials=os.getenv("GOOGLE_SHEETS_CREDENTIALS"),
            google_sheets_id=os.getenv("GOOGLE_SHEETS_ID"),
            ledger_range=os.getenv("LEDGER_RANGE") or defaults.ledger_range,
            ledger_trailing_columns=_get_int("LEDGER_TRAILING_COLUMNS", defaults.ledger_trailing_columns),
            environment=os.getenv("APP_ENV") or defaults.environment,
            render_timeout_seconds=_get_int("RENDER_TIMEOUT_SECONDS", defaults.render_timeout_seconds),
            email_timeout_seconds=_get_int("EMAIL_TIMEOUT_SECONDS", defaults.email_timeout_seconds),
            order_timezone=os.getenv("ORDER_TIMEZONE") or defaults.order_timezone,
            plan_installment_dates=_get_plan_dates("PLAN_INSTALLMENT_DATES", DEFAULT_PLAN_DATES),
            allowed_origins=_get_list("ALLOWED_ORIGINS", "*"),
        )
