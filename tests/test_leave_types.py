import pytest
from datetime import date

from hr_approvals.models.leave_type import LeaveType

COMPANY_ID = 1


def _create(service, ctx, **overrides):
    data = {"name": "Parental Leave", "code": "pl", "days_allowed": 20}
    data.update(overrides)
    return service.create_leave_type(ctx, COMPANY_ID, data)


def test_create_leave_type(service, approver, ctx_for):
    result = _create(service, ctx_for(approver))
    assert result.success is True
    assert result.data.name == "Parental Leave"
    assert result.data.code == "PL"
    assert result.data.days_allowed == 20
    assert result.data.status == "active"
    assert result.data.company_id == COMPANY_ID


@pytest.mark.parametrize("overrides", [
    {"name": "  "},
    {"days_allowed": -1},
    {"max_carry_forward_days": -3},
    {"status": "archived"},
])
def test_create_leave_type_validation(service, approver, ctx_for, overrides):
    assert _create(service, ctx_for(approver), **overrides).error.code == "VALIDATION_ERROR"


def test_code_is_unique_per_company(service, approver, ctx_for, annual_leave):
    result = _create(service, ctx_for(approver), code="al")
    assert result.error.code == "VALIDATION_ERROR"


def test_create_in_another_company_is_not_found(service, approver, ctx_for):
    result = service.create_leave_type(ctx_for(approver), 2, {"name": "Other", "days_allowed": 1})
    assert result.error.code == "NOT_FOUND"


def test_update_leave_type(service, approver, ctx_for, annual_leave):
    result = service.update_leave_type(ctx_for(approver), annual_leave.id, {"days_allowed": 15, "status": "inactive"})
    assert result.data.days_allowed == 15
    assert result.data.status == "inactive"
    assert result.data.name == "Annual Leave"


def test_update_to_taken_code_fails(service, approver, ctx_for, annual_leave, sick_leave):
    result = service.update_leave_type(ctx_for(approver), sick_leave.id, {"code": "AL"})
    assert result.error.code == "VALIDATION_ERROR"


def test_list_and_search(service, approver, ctx_for, annual_leave, sick_leave):
    ctx = ctx_for(approver)
    page = service.list_leave_types(ctx, COMPANY_ID).data
    assert page.total == 2
    assert [t.name for t in page.data] == ["Annual Leave", "Sick Leave"]

    found = service.list_leave_types(ctx, COMPANY_ID, search="sick").data
    assert [t.code for t in found.data] == ["SL"]


def test_delete_unused_leave_type(service, db_session, approver, ctx_for, annual_leave):
    leave_type_id = annual_leave.id
    result = service.delete_leave_type(ctx_for(approver), leave_type_id)
    assert result.success is True
    assert db_session.query(LeaveType).count() == 0
    assert service.get_leave_type(ctx_for(approver), leave_type_id).error.code == "NOT_FOUND"


def test_delete_referenced_leave_type_fails(service, db_session, employee, approver, ctx_for, annual_leave):
    service.submit_leave_request(ctx_for(employee), annual_leave.id, date(2026, 2, 2), date(2026, 2, 3))

    result = service.delete_leave_type(ctx_for(approver), annual_leave.id)
    assert result.error.code == "LEAVE_TYPE_IN_USE"
    assert db_session.query(LeaveType).count() == 1


def test_list_rejects_bad_paging(service, approver, ctx_for, annual_leave):
    result = service.list_leave_types(ctx_for(approver), COMPANY_ID, page_size=0)
    assert result.success is False
    assert result.error.code == "VALIDATION_ERROR"
