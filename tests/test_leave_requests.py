import pytest
from datetime import date, timedelta

from hr_approvals.core.exceptions import InvalidDateRange
from hr_approvals.models.approval_workflow import ApprovalWorkflow
from hr_approvals.models.audit_log import AuditLog
from hr_approvals.models.leave_balance import LeaveBalance
from hr_approvals.models.leave_request import LeaveRequest
from hr_approvals.services.leave_engine import inclusive_day_count

START = date(2026, 3, 2)


def _days(n, start=START):
    return start, start + timedelta(days=n - 1)


def _submit(service, ctx, leave_type, n, start=START, **kwargs):
    start_date, end_date = _days(n, start)
    return service.submit_leave_request(ctx, leave_type.id, start_date, end_date, **kwargs)


def _balance(db_session, employee, leave_type, year=2026):
    db_session.expire_all()
    return db_session.query(LeaveBalance).filter_by(
        employee_id=employee.id, leave_type_id=leave_type.id, year=year
    ).first()


@pytest.mark.parametrize("length", [1, 2, 7, 31, 366])
def test_inclusive_day_count(length):
    start = date(2024, 12, 20)
    assert inclusive_day_count(start, start + timedelta(days=length - 1)) == length


def test_inclusive_day_count_rejects_reversed_range():
    with pytest.raises(InvalidDateRange):
        inclusive_day_count(date(2026, 1, 2), date(2026, 1, 1))


def test_submit_reserves_and_starts_pending(service, db_session, employee, annual_leave, ctx_for):
    result = _submit(service, ctx_for(employee), annual_leave, 5, reason="  Family trip  ")

    assert result.success is True
    req = result.data
    assert req.status == "pending"
    assert req.days_requested == 5
    assert req.balance_year == 2026
    assert req.reason == "Family trip"
    balance = _balance(db_session, employee, annual_leave)
    assert (balance.used_days, balance.pending_days, balance.available) == (0, 5, 5)


def test_second_submit_exceeding_balance_fails(service, db_session, employee, annual_leave, ctx_for):
    ctx = ctx_for(employee)
    assert _submit(service, ctx, annual_leave, 5).success

    result = _submit(service, ctx, annual_leave, 6, start=date(2026, 6, 1))
    assert result.success is False
    assert result.error.code == "INSUFFICIENT_BALANCE"
    assert result.error.details == {"requested": 6, "available": 5}

    balance = _balance(db_session, employee, annual_leave)
    assert (balance.used_days, balance.pending_days) == (0, 5)
    assert db_session.query(LeaveRequest).count() == 1


def test_approve_moves_pending_to_used(service, db_session, employee, approver, annual_leave, ctx_for):
    req = _submit(service, ctx_for(employee), annual_leave, 5).data

    result = service.approve_leave_request(ctx_for(approver), req.id)
    assert result.success is True
    assert result.data.status == "approved"
    assert result.data.approved_by == approver.id
    assert result.data.approved_at is not None

    balance = _balance(db_session, employee, annual_leave)
    assert (balance.used_days, balance.pending_days, balance.available) == (5, 0, 5)


def test_withdraw_releases_reservation(service, db_session, employee, annual_leave, ctx_for):
    ctx = ctx_for(employee)
    req = _submit(service, ctx, annual_leave, 5).data

    result = service.withdraw_leave_request(ctx, req.id)
    assert result.success is True
    assert result.data.status == "withdrawn"
    assert result.data.withdrawn_at is not None

    balance = _balance(db_session, employee, annual_leave)
    assert (balance.used_days, balance.pending_days, balance.available) == (0, 0, 10)


def test_leave_rejection_without_reason(service, db_session, employee, approver, annual_leave, ctx_for):
    req = _submit(service, ctx_for(employee), annual_leave, 3).data

    result = service.reject_leave_request(ctx_for(approver), req.id)
    assert result.success is True
    assert result.data.status == "rejected"
    assert result.data.rejected_by == approver.id
    assert result.data.rejection_reason is None

    balance = _balance(db_session, employee, annual_leave)
    assert (balance.used_days, balance.pending_days) == (0, 0)


def test_rejection_reason_is_recorded(service, employee, approver, annual_leave, ctx_for):
    req = _submit(service, ctx_for(employee), annual_leave, 1).data
    result = service.reject_leave_request(ctx_for(approver), req.id, "Peak season")
    assert result.data.rejection_reason == "Peak season"


@pytest.mark.parametrize("decide", ["approve", "reject", "withdraw"])
def test_terminal_states_refuse_every_transition(service, db_session, employee, approver, annual_leave, ctx_for, decide):
    ctx = ctx_for(employee)
    req = _submit(service, ctx, annual_leave, 4).data
    if decide == "approve":
        service.approve_leave_request(ctx_for(approver), req.id)
    elif decide == "reject":
        service.reject_leave_request(ctx_for(approver), req.id)
    else:
        service.withdraw_leave_request(ctx, req.id)

    before = _balance(db_session, employee, annual_leave)
    snapshot = (before.used_days, before.pending_days)

    attempts = [
        service.approve_leave_request(ctx_for(approver), req.id),
        service.reject_leave_request(ctx_for(approver), req.id, "late"),
        service.withdraw_leave_request(ctx, req.id),
    ]
    for result in attempts:
        assert result.success is False
        assert result.error.code == "INVALID_TRANSITION"
        assert result.error.message == "This request has already been decided"

    after = _balance(db_session, employee, annual_leave)
    assert (after.used_days, after.pending_days) == snapshot


def test_only_requester_may_withdraw(service, db_session, employee, approver, annual_leave, ctx_for):
    req = _submit(service, ctx_for(employee), annual_leave, 2).data

    result = service.withdraw_leave_request(ctx_for(approver), req.id)
    assert result.success is False
    assert result.error.code == "INVALID_TRANSITION"

    assert service.get_leave_request(ctx_for(employee), req.id).data.status == "pending"
    assert _balance(db_session, employee, annual_leave).pending_days == 2


def test_invalid_date_range(service, db_session, employee, annual_leave, ctx_for):
    result = service.submit_leave_request(ctx_for(employee), annual_leave.id, date(2026, 5, 2), date(2026, 5, 1))
    assert result.error.code == "INVALID_DATE_RANGE"
    assert db_session.query(LeaveBalance).count() == 0


def test_unknown_leave_type_and_foreign_company(service, employee, outsider, annual_leave, ctx_for):
    assert service.submit_leave_request(ctx_for(employee), 999, *_days(1)).error.code == "NOT_FOUND"
    # A leave type of another company is invisible
    assert service.submit_leave_request(ctx_for(outsider), annual_leave.id, *_days(1)).error.code == "NOT_FOUND"


def test_inactive_leave_type_is_refused(service, db_session, employee, annual_leave, ctx_for):
    annual_leave.status = "inactive"
    db_session.commit()
    result = _submit(service, ctx_for(employee), annual_leave, 1)
    assert result.error.code == "VALIDATION_ERROR"


def test_documentation_required(service, employee, sick_leave, ctx_for):
    ctx = ctx_for(employee)
    assert _submit(service, ctx, sick_leave, 2).error.code == "VALIDATION_ERROR"

    result = _submit(service, ctx, sick_leave, 2, attachment="certificates/doctor-note.pdf")
    assert result.success is True
    assert result.data.attachment == "certificates/doctor-note.pdf"


def test_cross_year_request_is_charged_to_start_year(service, db_session, employee, annual_leave, ctx_for):
    result = service.submit_leave_request(ctx_for(employee), annual_leave.id, date(2026, 12, 30), date(2027, 1, 2))
    assert result.data.days_requested == 4
    assert result.data.balance_year == 2026
    assert _balance(db_session, employee, annual_leave, 2026).pending_days == 4
    assert _balance(db_session, employee, annual_leave, 2027) is None


def test_single_approval_finalizes_even_with_multi_step_workflow(
    service, db_session, employee, approver, department, annual_leave, ctx_for
):
    service.create_approval_workflow(ctx_for(approver), department.id, "leave", [1, 2, 3])
    req = _submit(service, ctx_for(employee), annual_leave, 2).data

    result = service.approve_leave_request(ctx_for(approver), req.id)
    assert result.data.status == "approved"
    assert result.data.approval_level == 1
    assert result.data.required_levels == 3


def test_multi_step_needs_distinct_approvers(
    multi_step_service, db_session, employee, approver, second_approver, department, annual_leave, ctx_for
):
    service = multi_step_service
    service.create_approval_workflow(ctx_for(approver), department.id, "leave", [1, 2])
    req = _submit(service, ctx_for(employee), annual_leave, 3).data

    first = service.approve_leave_request(ctx_for(approver), req.id)
    assert first.data.status == "pending"
    assert first.data.approval_level == 1
    assert _balance(db_session, employee, annual_leave).pending_days == 3

    repeat = service.approve_leave_request(ctx_for(approver), req.id)
    assert repeat.error.code == "INVALID_TRANSITION"

    final = service.approve_leave_request(ctx_for(second_approver), req.id)
    assert final.data.status == "approved"
    assert final.data.approver_ids == [approver.id, second_approver.id]
    balance = _balance(db_session, employee, annual_leave)
    assert (balance.used_days, balance.pending_days) == (3, 0)


def test_step_count_is_frozen_once_evaluated(
    multi_step_service, db_session, employee, approver, second_approver, department, annual_leave, ctx_for
):
    service = multi_step_service
    created = service.create_approval_workflow(ctx_for(approver), department.id, "leave", [1, 2])
    req = _submit(service, ctx_for(employee), annual_leave, 1).data
    service.approve_leave_request(ctx_for(approver), req.id)

    # Workflow grows to three steps while the request is in flight
    workflow = db_session.get(ApprovalWorkflow, created.data.id)
    workflow.steps = [1, 2, 3]
    db_session.commit()

    final = service.approve_leave_request(ctx_for(second_approver), req.id)
    assert final.data.status == "approved"
    assert final.data.required_levels == 2


def test_multi_step_without_workflow_is_single_step(multi_step_service, employee, approver, annual_leave, ctx_for):
    req = _submit(multi_step_service, ctx_for(employee), annual_leave, 1).data
    result = multi_step_service.approve_leave_request(ctx_for(approver), req.id)
    assert result.data.status == "approved"
    assert result.data.required_levels == 1


def test_ledger_invariant_holds_across_a_sequence(service, db_session, employee, approver, annual_leave, ctx_for):
    ctx, boss = ctx_for(employee), ctx_for(approver)
    ids = []
    for offset in range(4):
        result = _submit(service, ctx, annual_leave, 3, start=START + timedelta(days=10 * offset))
        if result.success:
            ids.append(result.data.id)
    # 10 days allowed: only three 3-day requests fit
    assert len(ids) == 3

    service.approve_leave_request(boss, ids[0])
    service.reject_leave_request(boss, ids[1])
    service.withdraw_leave_request(ctx, ids[2])
    service.approve_leave_request(boss, ids[2])

    balance = _balance(db_session, employee, annual_leave)
    assert 0 <= balance.used_days + balance.pending_days <= balance.total_days + balance.carried_forward_days
    assert (balance.used_days, balance.pending_days) == (3, 0)


def test_transitions_are_audited(service, db_session, employee, approver, annual_leave, ctx_for):
    req = _submit(service, ctx_for(employee), annual_leave, 2).data
    service.approve_leave_request(ctx_for(approver), req.id)

    actions = [a.action for a in db_session.query(AuditLog).order_by(AuditLog.id).all()]
    assert actions == ["submit_leave", "approve_leave_final"]
    final = db_session.query(AuditLog).filter_by(action="approve_leave_final").one()
    assert final.actor_id == approver.id
    assert final.before_state["status"] == "pending"
    assert final.after_state["status"] == "approved"


def test_failed_transition_leaves_no_audit_entry(service, db_session, employee, approver, annual_leave, ctx_for):
    req = _submit(service, ctx_for(employee), annual_leave, 2).data
    service.withdraw_leave_request(ctx_for(approver), req.id)
    assert db_session.query(AuditLog).filter_by(action="withdraw_leave").count() == 0


def test_list_and_get_are_company_scoped(service, employee, approver, outsider, annual_leave, ctx_for):
    ctx = ctx_for(employee)
    first = _submit(service, ctx, annual_leave, 1).data
    second = _submit(service, ctx, annual_leave, 1, start=date(2026, 4, 1)).data
    service.approve_leave_request(ctx_for(approver), second.id)

    page = service.list_leave_requests(ctx, employee_id=employee.id).data
    assert page.total == 2
    assert {r.id for r in page.data} == {first.id, second.id}

    pending = service.list_leave_requests(ctx, status="pending").data
    assert [r.id for r in pending.data] == [first.id]

    assert service.list_leave_requests(ctx, status="bogus").error.code == "VALIDATION_ERROR"
    assert service.list_leave_requests(ctx_for(outsider)).data.total == 0
    assert service.get_leave_request(ctx_for(outsider), first.id).error.code == "NOT_FOUND"


def test_pagination(service, employee, annual_leave, ctx_for):
    ctx = ctx_for(employee)
    for offset in range(5):
        _submit(service, ctx, annual_leave, 1, start=START + timedelta(days=offset))

    page = service.list_leave_requests(ctx, page=2, page_size=2).data
    assert page.total == 5
    assert page.total_pages == 3
    assert len(page.data) == 2
    assert page.has_prev is True
    assert page.has_next is True


@pytest.mark.parametrize("page, page_size, field", [
    (1, 0, "page_size"),
    (1, -5, "page_size"),
    (0, 10, "page"),
])
def test_list_rejects_bad_paging(service, employee, ctx_for, page, page_size, field):
    result = service.list_leave_requests(ctx_for(employee), page=page, page_size=page_size)
    assert result.success is False
    assert result.error.code == "VALIDATION_ERROR"
    assert result.error.details == {"field": field}


def test_requester_cannot_approve_own_request(service, db_session, employee, annual_leave, ctx_for):
    ctx = ctx_for(employee)
    req = _submit(service, ctx, annual_leave, 2).data

    result = service.approve_leave_request(ctx, req.id)
    assert result.success is False
    assert result.error.code == "INVALID_TRANSITION"

    assert service.get_leave_request(ctx, req.id).data.status == "pending"
    balance = _balance(db_session, employee, annual_leave)
    assert (balance.used_days, balance.pending_days) == (0, 2)
