"""
Payroll Aggregation Service

Turns Overtime and Claim records into one payable summary per employee for a
settlement window.

Architecture:
- Router -> PayrollAggregator (this module) -> LineItemSource -> Models
- A LineItemSource hides where line items come from; the SQL source is used
  by the API, the in-memory source by pure unit tests
- Summaries are rebuilt on every call and never cached
"""

import enum
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Protocol, Sequence

from sqlalchemy.orm import Session

from app.core.timeutils import as_utc
from app.models.line_items import Claim, LineItemStatus, Overtime, PAYABLE_STATUSES
from app.models.user import User
from app.services.cutoff import SettlementWindow

logger = logging.getLogger(__name__)

UNKNOWN_EMPLOYEE_NAME = "Unknown User"


class WindowBasis(str, enum.Enum):
    """Which date of a line item decides whether it belongs to a window."""
    SUBMISSION = "submission"  # created_at; the only basis used for payout decisions
    ACTIVITY = "activity"  # the day the work or expense happened; reporting only


class LineItemKind(str, enum.Enum):
    OVERTIME = "overtime"
    CLAIM = "claim"


class SummaryStatus(str, enum.Enum):
    PROCESSING = "Processing"
    PENDING = "Pending"
    PAID = "Paid"
    NO_DATA = "No Data"


@dataclass(frozen=True)
class PayableLineItem:
    id: int
    employee_id: int
    kind: LineItemKind
    activity_date: date
    submitted_at: datetime
    amount: float
    status: str
    hours: Optional[float] = None
    title: Optional[str] = None

    @property
    def is_payable(self) -> bool:
        return self.status in PAYABLE_STATUSES

    @classmethod
    def from_overtime(cls, row: Overtime) -> "PayableLineItem":
        return cls(
            id=row.id,
            employee_id=row.employee_id,
            kind=LineItemKind.OVERTIME,
            activity_date=row.date,
            submitted_at=as_utc(row.created_at),
            amount=row.payable_amount or 0.0,
            status=row.status,
            hours=row.hours or 0.0,
            title=row.activity,
        )

    @classmethod
    def from_claim(cls, row: Claim) -> "PayableLineItem":
        return cls(
            id=row.id,
            employee_id=row.employee_id,
            kind=LineItemKind.CLAIM,
            activity_date=row.date,
            submitted_at=as_utc(row.created_at),
            amount=row.amount or 0.0,
            status=row.status,
            title=row.title,
        )


@dataclass(frozen=True)
class EmployeeRef:
    id: int
    staff_id: Optional[str]
    name: str
    email: Optional[str] = None
    base_salary: float = 0.0
    birth_date: Optional[date] = None

    @classmethod
    def from_user(cls, user: User) -> "EmployeeRef":
        return cls(
            id=user.id,
            staff_id=user.staff_id,
            name=user.display_name,
            email=user.email,
            base_salary=user.base_salary or 0.0,
            birth_date=user.birth_date,
        )


class LineItemSource(Protocol):
    def load(
        self,
        window: SettlementWindow,
        basis: WindowBasis = WindowBasis.SUBMISSION,
        employee_ids: Optional[Sequence[int]] = None,
        statuses: Optional[Sequence[str]] = None,
    ) -> List[PayableLineItem]:
        ...

    def directory(self, employee_ids: Iterable[int]) -> Dict[int, EmployeeRef]:
        ...


def window_clause(model, window: SettlementWindow, basis: WindowBasis):
    """SQL condition selecting rows of ``model`` inside ``window``."""
    basis = WindowBasis(basis)
    if basis is WindowBasis.SUBMISSION:
        start, end = window.utc_bounds()
        return model.created_at.between(start, end)
    return model.date.between(window.start_date, window.end_date)


def item_in_window(item: PayableLineItem, window: SettlementWindow, basis: WindowBasis) -> bool:
    basis = WindowBasis(basis)
    if basis is WindowBasis.SUBMISSION:
        start, end = window.utc_bounds()
        return start <= as_utc(item.submitted_at) <= end
    return window.contains_date(item.activity_date)


class SqlLineItemSource:
    def __init__(self, db: Session):
        self.db = db

    def load(
        self,
        window: SettlementWindow,
        basis: WindowBasis = WindowBasis.SUBMISSION,
        employee_ids: Optional[Sequence[int]] = None,
        statuses: Optional[Sequence[str]] = None,
    ) -> List[PayableLineItem]:
        items: List[PayableLineItem] = []
        for model, convert in ((Overtime, PayableLineItem.from_overtime), (Claim, PayableLineItem.from_claim)):
            query = self.db.query(model).filter(window_clause(model, window, basis))
            if employee_ids is not None:
                query = query.filter(model.employee_id.in_(list(employee_ids)))
            if statuses is not None:
                query = query.filter(model.status.in_(list(statuses)))
            items.extend(convert(row) for row in query.order_by(model.id).all())
        return items

    def directory(self, employee_ids: Iterable[int]) -> Dict[int, EmployeeRef]:
        ids = set(employee_ids)
        if not ids:
            return {}
        users = self.db.query(User).filter(User.id.in_(ids)).all()
        return {user.id: EmployeeRef.from_user(user) for user in users}


class InMemoryLineItemSource:
    """Line items and employees held in plain lists, for tests and dry runs."""

    def __init__(self, items: Iterable[PayableLineItem], employees: Iterable[EmployeeRef] = ()):
        self._items = list(items)
        self._employees = {employee.id: employee for employee in employees}

    def load(
        self,
        window: SettlementWindow,
        basis: WindowBasis = WindowBasis.SUBMISSION,
        employee_ids: Optional[Sequence[int]] = None,
        statuses: Optional[Sequence[str]] = None,
    ) -> List[PayableLineItem]:
        wanted = set(employee_ids) if employee_ids is not None else None
        return [
            item for item in self._items
            if item_in_window(item, window, basis)
            and (wanted is None or item.employee_id in wanted)
            and (statuses is None or item.status in statuses)
        ]

    def directory(self, employee_ids: Iterable[int]) -> Dict[int, EmployeeRef]:
        return {i: self._employees[i] for i in employee_ids if i in self._employees}


def resolve_status(statuses: Iterable[str]) -> SummaryStatus:
    """Processing beats Pending beats Paid; anything else is No Data."""
    seen = set(statuses)
    if LineItemStatus.APPROVED.value in seen:
        return SummaryStatus.PROCESSING
    if LineItemStatus.PENDING.value in seen:
        return SummaryStatus.PENDING
    if LineItemStatus.PAID.value in seen:
        return SummaryStatus.PAID
    return SummaryStatus.NO_DATA


@dataclass(frozen=True)
class SummaryKey:
    employee_id: int
    is_unknown: bool


@dataclass
class EmployeePayableSummary:
    employee_id: int
    display_name: str
    staff_id: Optional[str] = None
    email: Optional[str] = None
    overtime_hours: float = 0.0
    overtime_total: float = 0.0
    claim_total: float = 0.0
    status: SummaryStatus = SummaryStatus.NO_DATA
    is_unknown_employee: bool = False
    overtimes: List[PayableLineItem] = field(default_factory=list)
    claims: List[PayableLineItem] = field(default_factory=list)

    @property
    def total_payable(self) -> float:
        return self.overtime_total + self.claim_total


class SummaryBuilder:
    """
    Accumulates line items into per-employee summaries.

    A bucket is created the first time an employee id is seen. Ids missing
    from the directory get an "Unknown User" bucket keyed by the original id,
    so a deleted account never makes its money disappear.
    """

    def __init__(self, directory: Dict[int, EmployeeRef]):
        self._directory = directory
        self._summaries: Dict[SummaryKey, EmployeePayableSummary] = {}
        self._statuses: Dict[SummaryKey, List[str]] = {}

    def _bucket(self, employee_id: int) -> SummaryKey:
        employee = self._directory.get(employee_id)
        key = SummaryKey(employee_id=employee_id, is_unknown=employee is None)
        if key not in self._summaries:
            if employee is None:
                summary = EmployeePayableSummary(
                    employee_id=employee_id,
                    display_name=UNKNOWN_EMPLOYEE_NAME,
                    is_unknown_employee=True,
                )
            else:
                summary = EmployeePayableSummary(
                    employee_id=employee_id,
                    display_name=employee.name,
                    staff_id=employee.staff_id,
                    email=employee.email,
                )
            self._summaries[key] = summary
            self._statuses[key] = []
        return key

    def add(self, item: PayableLineItem) -> None:
        key = self._bucket(item.employee_id)
        summary = self._summaries[key]
        self._statuses[key].append(item.status)
        if not item.is_payable:
            return
        if item.kind is LineItemKind.OVERTIME:
            summary.overtime_total += item.amount
            summary.overtime_hours += item.hours or 0.0
            summary.overtimes.append(item)
        else:
            summary.claim_total += item.amount
            summary.claims.append(item)

    def build(self) -> List[EmployeePayableSummary]:
        for key, summary in self._summaries.items():
            summary.status = resolve_status(self._statuses[key])
        return sorted(self._summaries.values(), key=lambda s: (-s.total_payable, s.employee_id))


class PayrollAggregator:
    def summarize(
        self,
        window: SettlementWindow,
        source: LineItemSource,
        basis: WindowBasis = WindowBasis.SUBMISSION,
    ) -> List[EmployeePayableSummary]:
        items = source.load(window, basis)
        if not items:
            return []

        builder = SummaryBuilder(source.directory({item.employee_id for item in items}))
        for item in items:
            builder.add(item)
        summaries = builder.build()

        unknown = [s.employee_id for s in summaries if s.is_unknown_employee]
        if unknown:
            logger.warning(
                f"Line items reference {len(unknown)} missing employee(s); kept under '{UNKNOWN_EMPLOYEE_NAME}'",
                extra={"employee_ids": unknown},
            )
        logger.info(
            f"Summarized {len(items)} line items into {len(summaries)} employee rows",
            extra={"window_start": window.start.isoformat(), "basis": WindowBasis(basis).value},
        )
        return summaries
