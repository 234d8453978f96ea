"""
Payslip Composer

Recomputes one employee's pay for a settlement window, renders it, locks the
PDF to the employee's birth date and mails it. Every successful send leaves an
immutable Payslip row holding exactly the figures that went out.
"""
import html
import os
import re
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.exceptions import EncryptionFailure, NotFoundError, StorageFailure, ValidationError
from app.models.line_items import LineItemStatus
from app.models.payslip import Payslip
from app.models.user import User
from app.schemas.payslip import AdjustmentType, ManualAdjustment
from app.services.audit import AuditService
from app.services.base import BaseService
from app.services.cutoff import SettlementWindow, resolve_cutoff_window
from app.services.mailer import Attachment, Mailer, OutgoingMail
from app.services.payroll_service import (
    EmployeeRef,
    PayableLineItem,
    SqlLineItemSource,
    SummaryBuilder,
    WindowBasis,
)
from app.services.payslip_renderer import Renderer, build_payslip_model, format_currency, render_payslip_pdf, render_with_timeout
from app.services.pdf_encryption import PdfEncryptor, get_encryptor


def birth_date_password(birth_date: Optional[date]) -> Optional[str]:
    """DDMMYYYY, or None when no birth date is on file."""
    if birth_date is None:
        return None
    return birth_date.strftime("%d%m%Y")


def payslip_filename(employee: EmployeeRef, month: int, year: int) -> str:
    ident = re.sub(r"[^A-Za-z0-9_-]", "_", employee.staff_id or str(employee.id))
    return f"Payslip-{ident}-{month}-{year}.pdf"


def stored_copy_name(filename: str) -> str:
    """Attachment name plus a unique suffix, so a resend never replaces an earlier copy."""
    stem, ext = os.path.splitext(filename)
    return f"{stem}-{uuid.uuid4().hex[:12]}{ext}"


@dataclass
class PayslipComputation:
    employee: EmployeeRef
    month: int
    year: int
    window: SettlementWindow
    overtime_hours: float = 0.0
    overtime_total: float = 0.0
    claim_total: float = 0.0
    adjustments: List[ManualAdjustment] = field(default_factory=list)
    overtimes: List[PayableLineItem] = field(default_factory=list)
    claims: List[PayableLineItem] = field(default_factory=list)

    @property
    def base_salary(self) -> float:
        return self.employee.base_salary

    @property
    def earnings(self) -> List[ManualAdjustment]:
        return [a for a in self.adjustments if a.type == AdjustmentType.EARNING]

    @property
    def deductions(self) -> List[ManualAdjustment]:
        return [a for a in self.adjustments if a.type == AdjustmentType.DEDUCTION]

    @property
    def total_earnings(self) -> float:
        return sum(a.amount for a in self.earnings)

    @property
    def total_deductions(self) -> float:
        return sum(a.amount for a in self.deductions)

    @property
    def gross_pay(self) -> float:
        return self.base_salary + self.overtime_total + self.claim_total + self.total_earnings

    @property
    def net_pay(self) -> float:
        return self.gross_pay - self.total_deductions


class PayslipComposer(BaseService):
    def __init__(
        self,
        db: Session,
        mailer: Mailer,
        encryptor: Optional[PdfEncryptor] = None,
        renderer: Renderer = render_payslip_pdf,
        payslip_dir: Optional[str] = None,
        render_timeout: Optional[float] = None,
    ):
        super().__init__(db)
        self.mailer = mailer
        self.encryptor = encryptor or get_encryptor()
        self.renderer = renderer
        self.payslip_dir = payslip_dir or settings.payroll.payslip_dir
        self.render_timeout = render_timeout

    def compute(
        self,
        employee_id: int,
        month,
        year,
        adjustments: Sequence[ManualAdjustment] = (),
    ) -> PayslipComputation:
        """
        Figures for one employee. Only Approved items count: a payslip shows
        what is about to be paid, not what already was.
        """
        window = resolve_cutoff_window(month, year)
        user = self.db.get(User, employee_id)
        if user is None:
            raise NotFoundError("Employee not found")
        employee = EmployeeRef.from_user(user)

        items = SqlLineItemSource(self.db).load(
            window,
            WindowBasis.SUBMISSION,
            employee_ids=[employee.id],
            statuses=[LineItemStatus.APPROVED.value],
        )
        computation = PayslipComputation(
            employee=employee,
            month=int(month),
            year=int(year),
            window=window,
            adjustments=list(adjustments),
        )
        if items:
            builder = SummaryBuilder({employee.id: employee})
            for item in items:
                builder.add(item)
            summary = builder.build()[0]
            computation.overtime_hours = summary.overtime_hours
            computation.overtime_total = summary.overtime_total
            computation.claim_total = summary.claim_total
            computation.overtimes = summary.overtimes
            computation.claims = summary.claims
        return computation

    def _render(self, computation: PayslipComputation) -> bytes:
        return render_with_timeout(build_payslip_model(computation), self.renderer, self.render_timeout)

    def preview(self, employee_id: int, month, year, adjustments: Sequence[ManualAdjustment] = ()) -> bytes:
        return self._render(self.compute(employee_id, month, year, adjustments))

    def _lock_document(self, computation: PayslipComputation, document: bytes):
        """Returns (bytes to send, is_encrypted). Never blocks delivery."""
        employee = computation.employee
        password = birth_date_password(employee.birth_date)
        if password is None:
            self._logger.warning(
                f"Employee {employee.id} has no birth date on file; payslip will be sent UNENCRYPTED",
                extra={"employee_id": employee.id, "month": computation.month, "year": computation.year},
            )
            return document, False
        try:
            return self.encryptor.encrypt(document, password, secrets.token_urlsafe(24)), True
        except EncryptionFailure as e:
            self._logger.error(
                f"Encrypting payslip for employee {employee.id} failed ({e.message}); sending UNENCRYPTED",
                extra={"employee_id": employee.id, "month": computation.month, "year": computation.year},
            )
            return document, False

    def _store_copy(self, filename: str, document: bytes) -> str:
        """Writes the admin copy under a fresh name. Existing copies are never replaced."""
        path = os.path.join(self.payslip_dir, stored_copy_name(filename))
        try:
            os.makedirs(self.payslip_dir, exist_ok=True)
            with open(path, "xb") as f:
                f.write(document)
        except OSError as e:
            self._logger.error(f"Storing payslip copy {path} failed: {e}")
            raise StorageFailure() from e
        return path

    def _discard_copy(self, path: str) -> None:
        try:
            os.remove(path)
        except OSError as e:
            self._logger.warning(f"Could not remove unsent payslip copy {path}: {e}")

    def _build_mail(self, computation: PayslipComputation, filename: str, content: bytes, encrypted: bool) -> OutgoingMail:
        employee = computation.employee
        start = computation.window.start_date.isoformat()
        end = computation.window.end_date.isoformat()
        password_hint = (
            "<p>The attachment is protected. The password is your date of birth (DDMMYYYY).</p>"
            if encrypted else ""
        )
        body = (
            f"<h3>Dear {html.escape(employee.name or '')},</h3>"
            f"<p>Please find attached your payslip for the period {start} to {end}.</p>"
            f"<p><strong>Net Pay: {format_currency(computation.net_pay)}</strong></p>"
            f"{password_hint}"
            f"<br><p>Best Regards,<br>{settings.payroll.company_name} Finance Team</p>"
        )
        return OutgoingMail(
            to=employee.email,
            subject=f"Payslip for Period {start} - {end}",
            html=body,
            attachments=[Attachment(filename=filename, content=content)],
        )

    def send(
        self,
        employee_id: int,
        month,
        year,
        adjustments: Sequence[ManualAdjustment] = (),
        actor: Optional[User] = None,
        ip_address: Optional[str] = None,
    ) -> Payslip:
        """
        Render, store the admin copy, encrypt, mail, then snapshot.

        Raises:
            RenderingFailure: rendering failed or timed out (retryable)
            StorageFailure: admin copy could not be written; nothing is sent (retryable)
            DeliveryFailure: mail could not be sent; nothing is recorded
        """
        computation = self.compute(employee_id, month, year, adjustments)
        employee = computation.employee
        if not employee.email:
            raise ValidationError("Employee has no email address on file", error_code="NO_RECIPIENT")

        document = self._render(computation)
        filename = payslip_filename(employee, computation.month, computation.year)

        # Admin copy stays unencrypted
        path = self._store_copy(filename, document)
        outgoing, encrypted = self._lock_document(computation, document)

        try:
            self.mailer.send(self._build_mail(computation, filename, outgoing, encrypted))
        except Exception:
            self._discard_copy(path)
            raise

        payslip = Payslip(
            employee_id=employee.id,
            month=computation.month,
            year=computation.year,
            period_start=computation.window.start_date,
            period_end=computation.window.end_date,
            base_salary=computation.base_salary,
            overtime_hours=computation.overtime_hours,
            overtime_total=computation.overtime_total,
            claim_total=computation.claim_total,
            adjustments=[a.model_dump(mode="json") for a in computation.adjustments],
            gross_pay=computation.gross_pay,
            net_pay=computation.net_pay,
            document_path=path,
            is_encrypted=encrypted,
            recipient_email=employee.email,
            status="Sent",
        )
        try:
            self.db.add(payslip)
            self.db.flush()
            AuditService(self.db).log_action(
                action="PAYSLIP_SENT",
                entity_type="Payslip",
                entity_id=payslip.id,
                user_id=actor.id if actor else None,
                user_role=actor.role if actor else None,
                details={
                    "employee_id": employee.id,
                    "month": computation.month,
                    "year": computation.year,
                    "net_pay": computation.net_pay,
                    "encrypted": encrypted,
                },
                ip_address=ip_address,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            self._logger.exception(f"Payslip for employee {employee.id} was mailed but its snapshot failed to save")
            raise
        self.db.refresh(payslip)

        self.log_info(
            f"Payslip {payslip.id} sent to employee {employee.id} for {computation.month}/{computation.year}",
            employee_id=employee.id,
            encrypted=encrypted,
        )
        return payslip

