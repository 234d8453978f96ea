"""
Payslip Router

Preview returns the rendered PDF without recording anything. Send mails the
encrypted PDF and returns the stored snapshot.
"""
from fastapi import APIRouter, Depends, Request, Response
from sqlalchemy.orm import Session

from app.database import get_db
from app.dependencies import get_encryptor, get_mailer
from app.models.user import User
from app.routers.auth_deps import require_admin
from app.schemas.payslip import PayslipRequest, PayslipResponse
from app.services.mailer import Mailer
from app.services.payslip_service import PayslipComposer
from app.services.pdf_encryption import PdfEncryptor

router = APIRouter(
    prefix="/admin/payslip",
    tags=["payslip"],
)


@router.post("/preview", response_class=Response)
def preview_payslip(
    payload: PayslipRequest,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    encryptor: PdfEncryptor = Depends(get_encryptor),
    current_user: User = Depends(require_admin())
):
    composer = PayslipComposer(db, mailer, encryptor)
    document = composer.preview(payload.employee_id, payload.month, payload.year, payload.adjustments)
    return Response(
        content=document,
        media_type="application/pdf",
        headers={"Content-Disposition": "inline; filename=payslip-preview.pdf"},
    )


@router.post("/send", response_model=PayslipResponse)
def send_payslip(
    payload: PayslipRequest,
    request: Request,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    encryptor: PdfEncryptor = Depends(get_encryptor),
    current_user: User = Depends(require_admin())
):
    composer = PayslipComposer(db, mailer, encryptor)
    return composer.send(
        payload.employee_id,
        payload.month,
        payload.year,
        payload.adjustments,
        actor=current_user,
        ip_address=request.client.host if request.client else None,
    )
