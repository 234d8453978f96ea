"""
Payout Processor - moves Approved line items to Paid.

The transition is a conditional bulk UPDATE per table. Rows already Paid
fall outside the WHERE clause, so a repeated or concurrent call for the same
employees cannot pay anything twice.
"""
from typing import Optional, Sequence

from app.core.exceptions import NoSelectionError
from app.models.line_items import Claim, LineItemStatus, Overtime
from app.models.user import User
from app.services.audit import AuditService
from app.services.base import BaseService
from app.services.cutoff import SettlementWindow
from app.services.payroll_service import WindowBasis, window_clause


class PayoutProcessor(BaseService):
    def mark_paid(
        self,
        employee_ids: Sequence[int],
        window: SettlementWindow,
        basis: WindowBasis = WindowBasis.SUBMISSION,
        actor: Optional[User] = None,
        ip_address: Optional[str] = None,
    ) -> int:
        """
        Mark every Approved overtime and claim of ``employee_ids`` inside
        ``window`` as Paid. Returns the number of rows changed.

        Raises:
            NoSelectionError: ``employee_ids`` is empty
        """
        ids = sorted({int(i) for i in employee_ids or []})
        if not ids:
            raise NoSelectionError()

        counts = {}
        try:
            for name, model in (("overtimes", Overtime), ("claims", Claim)):
                counts[name] = (
                    self.db.query(model)
                    .filter(
                        model.status == LineItemStatus.APPROVED.value,
                        model.employee_id.in_(ids),
                        window_clause(model, window, basis),
                    )
                    .update({model.status: LineItemStatus.PAID.value}, synchronize_session=False)
                )
            updated = sum(counts.values())

            AuditService(self.db).log_action(
                action="PAYOUT",
                entity_type="Payroll",
                entity_id=None,
                user_id=actor.id if actor else None,
                user_role=actor.role if actor else None,
                details={
                    "employee_ids": ids,
                    "window_start": window.start,
                    "window_end": window.end,
                    "basis": WindowBasis(basis).value,
                    "updated": counts,
                },
                ip_address=ip_address,
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.log_info(
            f"Payout marked {updated} line item(s) Paid for {len(ids)} employee(s)",
            employee_ids=ids,
            **counts,
        )
        return updated
