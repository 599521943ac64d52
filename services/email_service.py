# services/email_service.py

import base64
import logging
from typing import Any, Dict, List, Optional

import requests
from jinja2 import Environment, FileSystemLoader, select_autoescape

from config import BASE_DIR, Settings
from domain.errors import NotificationError
from domain.models import Order, PaymentSchedule, RenderedDocument
from utils.formatting import format_money

SENDGRID_SEND_URL = "https://api.sendgrid.com/v3/mail/send"
TEMPLATE_DIR = BASE_DIR / "templates"
CONFIRMATION_TEMPLATE = "confirmation_email.html"

logger = logging.getLogger(__name__)

_templates = Environment(
    loader=FileSystemLoader(str(TEMPLATE_DIR)),
    autoescape=select_autoescape(["html"]),
    trim_blocks=True,
    lstrip_blocks=True,
)
_templates.filters["money"] = format_money


def confirmation_subject(order: Order) -> str:
    return f"Order Confirmation - {order.order_number} - Te Mata Wānanga Apparel"


def render_confirmation_body(
        order: Order,
        schedule: PaymentSchedule,
        *,
        document_attached: bool,
        payroll_email: str,
        orders_email: str,
        deduction_form_url: str,
) -> str:
    """
    Fill the confirmation email template.

    The payment block is left out entirely when the schedule is "none", and
    the next-steps wording depends on whether the form is attached.
    """
    template = _templates.get_template(CONFIRMATION_TEMPLATE)
    return template.render(
        order=order,
        schedule=schedule,
        document_attached=document_attached,
        payroll_email=payroll_email,
        orders_email=orders_email,
        deduction_form_url=deduction_form_url,
    )


def build_sendgrid_message(
        order: Order,
        schedule: PaymentSchedule,
        document: Optional[RenderedDocument],
        settings: Settings,
) -> Dict[str, Any]:
    """
    Build the SendGrid v3 mail/send payload. The attachment is only present
    when a document was rendered.
    """
    body = render_confirmation_body(
        order,
        schedule,
        document_attached=document is not None,
        payroll_email=settings.payroll_email,
        orders_email=settings.orders_email,
        deduction_form_url=settings.deduction_form_url,
    )

    message: Dict[str, Any] = {
        "personalizations": [{"to": [{"email": order.email}]}],
        "from": {"email": settings.from_email, "name": settings.from_name},
        "subject": confirmation_subject(order),
        "content": [{"type": "text/html", "value": body}],
    }

    if document is not None:
        attachments: List[Dict[str, str]] = [
            {
                "content": base64.b64encode(document.content).decode("ascii"),
                "filename": document.filename,
                "type": document.media_type,
                "disposition": "attachment",
            }
        ]
        message["attachments"] = attachments

    return message


class SendGridNotifier:
    """
    Sends the order confirmation through SendGrid's REST API.
    Any failure to hand the message over is a NotificationError.
    """

    def __init__(self, settings: Settings, session: Optional[requests.Session] = None):
        self.settings = settings
        self.session = session or requests.Session()

    def send(
            self,
            order: Order,
            schedule: PaymentSchedule,
            document: Optional[RenderedDocument] = None,
    ) -> None:
        if not self.settings.sendgrid_api_key:
            raise NotificationError("SENDGRID_API_KEY is not set")

        message = build_sendgrid_message(order, schedule, document, self.settings)

        try:
            resp = self.session.post(
                SENDGRID_SEND_URL,
                json=message,
                headers={"Authorization": f"Bearer {self.settings.sendgrid_api_key}"},
                timeout=self.settings.email_timeout_seconds,
            )
        except requests.RequestException as exc:
            raise NotificationError(f"Could not reach email provider: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            raise NotificationError(
                f"Email provider rejected the message ({resp.status_code}): {resp.text[:200]}"
            )

        logger.info(
            "Confirmation for %s accepted by email provider (attachment=%s)",
            order.order_number,
            document is not None,
        )
