# services/document_service.py

import io
import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Dict, List

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Mm, Pt

from domain.errors import RenderError
from domain.models import (
    DeductionForm,
    DeductionFormLine,
    Order,
    PaymentSchedule,
    RenderedDocument,
)
from services.payment_schedule import commencement_text
from utils.docx_helpers import add_labelled_value, set_cell_text
from utils.formatting import format_money

DOCX_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

CATALOG_PREFIX = "Apakura - Te Mata Wānanga"

# Short catalog names as they appear on the order form
ITEM_DESCRIPTIONS: Dict[str, str] = {
    "T-Shirt": f"{CATALOG_PREFIX} T-Shirt",
    "Crewneck": f"{CATALOG_PREFIX} Crew Jersey",
}

FORM_TITLE_LINES = [
    "APAKURA TE MATA",
    "WĀNANGA KĀKAHU",
    "SALARY/WAGE DEDUCTION",
    "FORM",
]

# A4 with print margins
PAGE_WIDTH = Mm(210)
PAGE_HEIGHT = Mm(297)
MARGIN_VERTICAL = Mm(20)
MARGIN_HORIZONTAL = Mm(15)

logger = logging.getLogger(__name__)


def item_description(name: str) -> str:
    return ITEM_DESCRIPTIONS.get(name, f"{CATALOG_PREFIX} {name}")


def deduction_form_filename(order_number: str) -> str:
    return f"Salary_Deduction_Form_{order_number}.docx"


def build_deduction_form(
        order: Order,
        schedule: PaymentSchedule,
        payroll_email: str,
) -> DeductionForm:
    """
    Bind an Order to the named fields of the deduction form.

    Line totals are quantity x unit price; the overall total is the total the
    buyer submitted.
    """
    lines: List[DeductionFormLine] = [
        DeductionFormLine(
            description=item_description(item.name),
            size=item.size,
            quantity=str(item.quantity),
            line_total_display=format_money(item.line_total),
        )
        for item in order.items
    ]

    return DeductionForm(
        title_lines=list(FORM_TITLE_LINES),
        notice=(
            "Please ensure you have filled the online form to order your kākahu "
            f"and that this form is sent to {payroll_email}"
        ),
        buyer_name=order.buyer_name,
        employee_id=order.employee_id,
        site=order.site,
        lines=lines,
        total_display=format_money(order.total),
        payment_commencement=commencement_text(schedule),
    )


def render_deduction_form(form: DeductionForm) -> bytes:
    """
    Lay the form out on a single A4 page:

      title / notice / name + employee # / campus / items table /
      date to commence payments / signature + date
    """
    doc = Document()

    section = doc.sections[0]
    section.page_width = PAGE_WIDTH
    section.page_height = PAGE_HEIGHT
    section.top_margin = MARGIN_VERTICAL
    section.bottom_margin = MARGIN_VERTICAL
    section.left_margin = MARGIN_HORIZONTAL
    section.right_margin = MARGIN_HORIZONTAL

    normal = doc.styles["Normal"]
    normal.font.name = "Times New Roman"
    normal.font.size = Pt(12)

    _add_title(doc, form.title_lines)
    _add_notice(doc, form.notice)
    _add_identity_block(doc, form)
    _add_items_table(doc, form)
    _add_payment_section(doc, form.payment_commencement)
    _add_signature_block(doc)

    with io.BytesIO() as buffer:
        doc.save(buffer)
        return buffer.getvalue()


class DocxRenderer:
    """
    Produces the deduction form for an order. Rendering runs on a worker
    thread so a stuck render cannot hold the submission past the timeout.
    """

    def __init__(self, payroll_email: str, timeout_seconds: int = 30):
        self.payroll_email = payroll_email
        self.timeout_seconds = timeout_seconds

    def render(self, order: Order, schedule: PaymentSchedule) -> RenderedDocument:
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="deduction-form")
        try:
            form = build_deduction_form(order, schedule, self.payroll_email)
            future = executor.submit(render_deduction_form, form)
            content = future.result(timeout=self.timeout_seconds)
        except FutureTimeoutError as exc:
            raise RenderError(
                f"Rendering timed out after {self.timeout_seconds}s"
            ) from exc
        except Exception as exc:
            raise RenderError(f"Rendering failed: {exc}") from exc
        finally:
            executor.shutdown(wait=False, cancel_futures=True)

        logger.info(
            "Rendered deduction form for %s (%d bytes)", order.order_number, len(content)
        )
        return RenderedDocument(
            content=content,
            filename=deduction_form_filename(order.order_number),
            media_type=DOCX_MEDIA_TYPE,
        )


# ---------- layout blocks ----------

def _add_title(doc, title_lines: List[str]) -> None:
    heading = doc.add_paragraph()
    heading.alignment = WD_ALIGN_PARAGRAPH.CENTER

    for i, line in enumerate(title_lines):
        run = heading.add_run(line)
        run.bold = True
        run.font.size = Pt(16)
        if i < len(title_lines) - 1:
            run.add_break()


def _add_notice(doc, notice: str) -> None:
    table = doc.add_table(rows=1, cols=1)
    table.style = "Table Grid"

    cell = table.cell(0, 0)
    set_cell_text(cell, notice, bold=True, italic=True)
    cell.paragraphs[0].alignment = WD_ALIGN_PARAGRAPH.CENTER


def _add_identity_block(doc, form: DeductionForm) -> None:
    table = doc.add_table(rows=2, cols=2)

    add_labelled_value(table.cell(0, 0), "Kaimahi Name", form.buyer_name)
    add_labelled_value(table.cell(0, 1), "Employee #", form.employee_id)

    # Campus spans the full width
    site_cell = table.cell(1, 0).merge(table.cell(1, 1))
    add_labelled_value(site_cell, "Campus", form.site)


def _add_items_table(doc, form: DeductionForm) -> None:
    table = doc.add_table(rows=1, cols=4)
    table.style = "Table Grid"

    for cell, heading in zip(table.rows[0].cells, ["Description", "Size", "Quantity", "Total"]):
        set_cell_text(cell, heading, bold=True)

    for line in form.lines:
        cells = table.add_row().cells
        set_cell_text(cells[0], line.description, italic=True)
        set_cell_text(cells[1], line.size)
        set_cell_text(cells[2], line.quantity)
        set_cell_text(cells[3], line.line_total_display)

    total_cells = table.add_row().cells
    label_cell = total_cells[0].merge(total_cells[2])
    set_cell_text(label_cell, "Overall Total", bold=True)
    set_cell_text(total_cells[3], form.total_display, bold=True)


def _add_payment_section(doc, payment_commencement: str) -> None:
    table = doc.add_table(rows=1, cols=1)
    table.style = "Table Grid"
    add_labelled_value(table.cell(0, 0), "Date to commence payments", payment_commencement)


def _add_signature_block(doc) -> None:
    doc.add_paragraph()
    table = doc.add_table(rows=1, cols=2)

    # Left blank for a wet signature
    add_labelled_value(table.cell(0, 0), "Kaimahi signature", "_" * 40)
    add_labelled_value(table.cell(0, 1), "Date", "_" * 20)
