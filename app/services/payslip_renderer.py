"""
Payslip PDF rendering with reportlab.

Rendering runs in a worker thread so a stuck render surfaces as a retryable
RenderingFailure after ``PAYSLIP_RENDER_TIMEOUT_SECONDS`` instead of hanging
the request.
"""
import logging
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FutureTimeout
from datetime import date
from io import BytesIO
from typing import Any, Callable, Dict, Optional

from reportlab.lib.pagesizes import A4
from reportlab.pdfgen import canvas

from app.core.config import settings
from app.core.exceptions import RenderingFailure
from app.core.timeutils import utcnow

logger = logging.getLogger(__name__)

Renderer = Callable[[Dict[str, Any]], bytes]


def format_currency(value: float, currency: Optional[str] = None) -> str:
    """IDR style: 'Rp 1.250.000'. Other currencies keep the code as prefix."""
    currency = currency or settings.payroll.currency
    amount = f"{value:,.0f}".replace(",", ".")
    if currency == "IDR":
        return f"Rp {amount}"
    return f"{currency} {amount}"


def _fmt_date(value: date) -> str:
    return value.strftime("%d/%m/%Y") if value else "-"


def build_payslip_model(computation) -> Dict[str, Any]:
    employee = computation.employee
    return {
        "company": settings.payroll.company_name,
        "payslip_id": f"PS-{employee.staff_id or employee.id}-{computation.month}{computation.year}",
        "employee_name": employee.name,
        "staff_id": employee.staff_id or "-",
        "period_start": _fmt_date(computation.window.start_date),
        "period_end": _fmt_date(computation.window.end_date),
        "generated_at": utcnow().strftime("%d/%m/%Y %H:%M UTC"),
        "base_salary": computation.base_salary,
        "overtime_hours": computation.overtime_hours,
        "overtime_total": computation.overtime_total,
        "claim_total": computation.claim_total,
        "earnings": [(a.label, a.amount) for a in computation.earnings],
        "deductions": [(a.label, a.amount) for a in computation.deductions],
        "gross_pay": computation.gross_pay,
        "total_deductions": computation.total_deductions,
        "net_pay": computation.net_pay,
    }


def render_payslip_pdf(model: Dict[str, Any]) -> bytes:
    buf = BytesIO()
    c = canvas.Canvas(buf, pagesize=A4)
    width, height = A4

    x = 40
    right = width - 40
    y = height - 50
    line_h = 16

    def row(label: str, amount: float, bold: bool = False):
        nonlocal y
        c.setFont("Helvetica-Bold" if bold else "Helvetica", 10)
        c.drawString(x + 10, y, label)
        c.drawRightString(right, y, format_currency(amount))
        y -= line_h

    # Header
    c.setFont("Helvetica-Bold", 16)
    c.drawString(x, y, f"{model['company']} Payslip")
    c.setFont("Helvetica", 9)
    c.drawRightString(right, y, model["payslip_id"])
    y -= 2 * line_h

    c.setFont("Helvetica", 10)
    c.drawString(x, y, f"Employee: {model['employee_name']}")
    c.drawRightString(right, y, f"Staff ID: {model['staff_id']}")
    y -= line_h
    c.drawString(x, y, f"Period: {model['period_start']} - {model['period_end']}")
    y -= 2 * line_h

    # Earnings
    c.setFont("Helvetica-Bold", 11)
    c.drawString(x, y, "Earnings")
    y -= line_h
    row("Base salary", model["base_salary"])
    row(f"Overtime ({model['overtime_hours']:g} h)", model["overtime_total"])
    row("Reimbursed claims", model["claim_total"])
    for label, amount in model["earnings"]:
        row(label, amount)
    row("Gross pay", model["gross_pay"], bold=True)
    y -= line_h

    # Deductions
    c.setFont("Helvetica-Bold", 11)
    c.drawString(x, y, "Deductions")
    y -= line_h
    for label, amount in model["deductions"]:
        row(label, amount)
    row("Total deductions", model["total_deductions"], bold=True)
    y -= line_h

    c.line(x, y + line_h / 2, right, y + line_h / 2)
    c.setFont("Helvetica-Bold", 13)
    c.drawString(x, y - 4, "Net pay")
    c.drawRightString(right, y - 4, format_currency(model["net_pay"]))

    # Footer
    c.setFont("Helvetica-Oblique", 8)
    c.drawString(x, 40, f"Generated electronically on {model['generated_at']}. No signature required.")
    c.showPage()
    c.save()

    return buf.getvalue()


def render_with_timeout(
    model: Dict[str, Any],
    renderer: Renderer = render_payslip_pdf,
    timeout: Optional[float] = None,
) -> bytes:
    timeout = timeout if timeout is not None else settings.payroll.render_timeout_seconds
    executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="payslip-render")
    try:
        future = executor.submit(renderer, model)
        return future.result(timeout=timeout)
    except FutureTimeout as e:
        # A running thread cannot be cancelled; it is abandoned and exits when the renderer returns
        abandoned = not future.cancel()
        logger.error(
            f"Payslip rendering exceeded {timeout}s"
            + ("; render thread abandoned and still running" if abandoned else ""),
            extra={"payslip_id": model.get("payslip_id"), "render_thread_abandoned": abandoned},
        )
        raise RenderingFailure() from e
    except Exception as e:
        logger.exception(f"Payslip rendering failed for {model.get('payslip_id')}")
        raise RenderingFailure() from e
    finally:
        # Do not block on a stuck render; the thread finishes on its own
        executor.shutdown(wait=False)
