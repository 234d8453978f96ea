import pytest
from datetime import datetime, timezone

from app.core.exceptions import NoSelectionError
from app.models.audit_log import AuditLog
from app.models.line_items import Claim, Overtime
from app.services.cutoff import resolve_cutoff_window
from app.services.payout_service import PayoutProcessor

JAN_2026 = resolve_cutoff_window(1, 2026)


def statuses(db_session, model):
    db_session.expire_all()
    return {row.id: row.status for row in db_session.query(model).all()}


def test_marks_approved_items_paid(db_session, staff_user, add_overtime, add_claim):
    ot = add_overtime(staff_user.id, 200000)
    claim = add_claim(staff_user.id, 50000)

    updated = PayoutProcessor(db_session).mark_paid([staff_user.id], JAN_2026)

    assert updated == 2
    assert statuses(db_session, Overtime)[ot.id] == "Paid"
    assert statuses(db_session, Claim)[claim.id] == "Paid"


def test_second_identical_call_changes_nothing(db_session, staff_user, add_overtime, add_claim):
    add_overtime(staff_user.id, 200000)
    add_claim(staff_user.id, 50000)
    processor = PayoutProcessor(db_session)

    assert processor.mark_paid([staff_user.id], JAN_2026) == 2
    after_first = statuses(db_session, Overtime), statuses(db_session, Claim)

    assert processor.mark_paid([staff_user.id], JAN_2026) == 0
    assert (statuses(db_session, Overtime), statuses(db_session, Claim)) == after_first


def test_only_approved_rows_transition(db_session, staff_user, add_claim):
    pending = add_claim(staff_user.id, 1000, status="Pending")
    rejected = add_claim(staff_user.id, 2000, status="Rejected")

    assert PayoutProcessor(db_session).mark_paid([staff_user.id], JAN_2026) == 0
    current = statuses(db_session, Claim)
    assert current[pending.id] == "Pending"
    assert current[rejected.id] == "Rejected"


def test_other_employees_are_untouched(db_session, staff_user, make_user, add_claim):
    other = make_user()
    mine = add_claim(staff_user.id, 1000)
    theirs = add_claim(other.id, 1000)

    PayoutProcessor(db_session).mark_paid([staff_user.id], JAN_2026)

    current = statuses(db_session, Claim)
    assert current[mine.id] == "Paid"
    assert current[theirs.id] == "Approved"


def test_items_filed_outside_window_are_untouched(db_session, staff_user, add_overtime):
    february = add_overtime(staff_user.id, 40000, created_at=datetime(2026, 1, 28, 8, 0, tzinfo=timezone.utc))

    assert PayoutProcessor(db_session).mark_paid([staff_user.id], JAN_2026) == 0
    assert statuses(db_session, Overtime)[february.id] == "Approved"


def test_deleted_employee_items_can_still_be_paid(db_session, add_claim):
    ghost = add_claim(4040, 65000)

    assert PayoutProcessor(db_session).mark_paid([4040], JAN_2026) == 1
    assert statuses(db_session, Claim)[ghost.id] == "Paid"


@pytest.mark.parametrize("ids", [[], None])
def test_empty_selection_is_rejected(db_session, ids):
    with pytest.raises(NoSelectionError) as exc:
        PayoutProcessor(db_session).mark_paid(ids, JAN_2026)
    assert exc.value.status_code == 400
    assert exc.value.error_code == "NO_SELECTION"


def test_payout_is_audited(db_session, staff_user, admin_user, add_claim):
    add_claim(staff_user.id, 1000)

    PayoutProcessor(db_session).mark_paid([staff_user.id], JAN_2026, actor=admin_user)

    entry = db_session.query(AuditLog).filter_by(action="PAYOUT").one()
    assert entry.user_id == admin_user.id
    assert entry.details["employee_ids"] == [staff_user.id]
    assert entry.details["updated"] == {"overtimes": 0, "claims": 1}
