import re
import pytest

from hr_approvals.models.memo import MemoRead
from hr_approvals.services.approvals import ApprovalService


def _memo(service, ctx, recipients, **kwargs):
    payload = {"title": "Office closure", "content": "The office is closed on Friday."}
    payload.update(kwargs)
    return service.create_memo(ctx, recipient_ids=recipients, **payload)


def test_create_memo_defaults(service, employee, approver, ctx_for):
    result = _memo(service, ctx_for(employee), [approver.id, approver.id])

    assert result.success is True
    memo = result.data
    assert memo.status == "pending"
    assert memo.memo_type == "general"
    assert memo.priority == "low"
    assert memo.sender_id == employee.id
    assert memo.recipient_ids == [approver.id]
    assert memo.read_by == []
    assert re.fullmatch(r"MEM-\d{13}", memo.reference_number)


def test_create_memo_keeps_given_fields(service, employee, approver, ctx_for):
    memo = _memo(
        service, ctx_for(employee), [approver.id],
        memo_type="policy", priority="high", reference_number="HR-2026-001"
    ).data
    assert (memo.memo_type, memo.priority, memo.reference_number) == ("policy", "high", "HR-2026-001")


@pytest.mark.parametrize("overrides, code", [
    ({"title": "   "}, "VALIDATION_ERROR"),
    ({"content": ""}, "VALIDATION_ERROR"),
    ({"memo_type": "gossip"}, "VALIDATION_ERROR"),
    ({"priority": "urgent"}, "VALIDATION_ERROR"),
])
def test_create_memo_validation(service, employee, approver, ctx_for, overrides, code):
    assert _memo(service, ctx_for(employee), [approver.id], **overrides).error.code == code


def test_create_memo_needs_recipients_in_company(service, employee, outsider, ctx_for):
    assert _memo(service, ctx_for(employee), []).error.code == "VALIDATION_ERROR"
    assert _memo(service, ctx_for(employee), [outsider.id]).error.code == "NOT_FOUND"


def test_memo_created_approved_when_approval_not_required(db_session, employee, approver, ctx_for):
    service = ApprovalService(db_session, memo_requires_approval=False)
    memo = _memo(service, ctx_for(employee), [approver.id]).data
    assert memo.status == "approved"
    assert memo.approved_at is not None


def test_single_step_policy_finalizes_memo(
    service, employee, approver, department, ctx_for
):
    # Sender's department has a two-step memo workflow
    service.create_approval_workflow(ctx_for(approver), department.id, "memo", [1, 2])
    memo = _memo(service, ctx_for(employee), [approver.id]).data

    result = service.approve_memo(ctx_for(approver), memo.id, comments=" Looks good ")
    assert result.data.status == "approved"
    assert result.data.required_levels == 2
    assert result.data.approved_by == approver.id
    assert result.data.approval_comments == "Looks good"


def test_memo_multi_step_accumulates(multi_step_service, employee, approver, second_approver, department, ctx_for):
    service = multi_step_service
    service.create_approval_workflow(ctx_for(approver), department.id, "memo", [1, 2])
    memo = _memo(service, ctx_for(employee), [approver.id]).data

    assert service.approve_memo(ctx_for(approver), memo.id).data.status == "pending"
    assert service.approve_memo(ctx_for(approver), memo.id).error.code == "INVALID_TRANSITION"
    assert service.approve_memo(ctx_for(second_approver), memo.id).data.status == "approved"


def test_memo_rejection_requires_reason(service, employee, approver, ctx_for):
    memo = _memo(service, ctx_for(employee), [approver.id]).data

    for reason in (None, "", "   "):
        result = service.reject_memo(ctx_for(approver), memo.id, reason)
        assert result.error.code == "VALIDATION_ERROR"

    result = service.reject_memo(ctx_for(approver), memo.id, "Wrong audience")
    assert result.data.status == "rejected"
    assert result.data.rejection_reason == "Wrong audience"
    assert result.data.rejected_by == approver.id


def test_decided_memo_is_terminal(service, employee, approver, ctx_for):
    memo = _memo(service, ctx_for(employee), [approver.id]).data
    service.approve_memo(ctx_for(approver), memo.id)

    assert service.approve_memo(ctx_for(approver), memo.id).error.code == "INVALID_TRANSITION"
    assert service.reject_memo(ctx_for(approver), memo.id, "too late").error.code == "INVALID_TRANSITION"


def test_mark_as_read_is_idempotent(service, db_session, employee, approver, ctx_for):
    memo = _memo(service, ctx_for(employee), [approver.id]).data

    first = service.mark_memo_read(ctx_for(approver), memo.id)
    second = service.mark_memo_read(ctx_for(approver), memo.id)

    assert first.data.read_by == [approver.id]
    assert second.data.read_by == [approver.id]
    assert db_session.query(MemoRead).count() == 1


def test_read_tracking_is_independent_of_approval(service, employee, approver, ctx_for):
    memo = _memo(service, ctx_for(employee), [approver.id]).data
    read = service.mark_memo_read(ctx_for(approver), memo.id).data
    assert read.status == "pending"

    rejected = service.reject_memo(ctx_for(approver), memo.id, "Duplicate").data
    assert rejected.read_by == [approver.id]

    # Sender may mark too, even after the decision
    assert service.mark_memo_read(ctx_for(employee), memo.id).data.read_by == sorted([employee.id, approver.id])


def test_only_recipients_or_sender_may_mark_read(service, employee, approver, second_approver, outsider, ctx_for):
    memo = _memo(service, ctx_for(employee), [approver.id]).data
    assert service.mark_memo_read(ctx_for(second_approver), memo.id).error.code == "NOT_FOUND"
    assert service.mark_memo_read(ctx_for(outsider), memo.id).error.code == "NOT_FOUND"


def test_list_memos_filters(service, employee, approver, second_approver, ctx_for):
    ctx = ctx_for(employee)
    to_approver = _memo(service, ctx, [approver.id], memo_type="announcement").data
    to_both = _memo(service, ctx, [approver.id, second_approver.id]).data
    service.approve_memo(ctx_for(approver), to_both.id)

    assert service.list_memos(ctx).data.total == 2
    assert [m.id for m in service.list_memos(ctx, status="approved").data.data] == [to_both.id]
    assert [m.id for m in service.list_memos(ctx, memo_type="announcement").data.data] == [to_approver.id]
    assert [m.id for m in service.list_memos(ctx, employee_id=second_approver.id).data.data] == [to_both.id]
    assert service.list_memos(ctx, status="archived").error.code == "VALIDATION_ERROR"


@pytest.mark.parametrize("recipients", [["abc"], [None], [1, "2x"]])
def test_non_integer_recipient_ids_fail_validation(service, employee, ctx_for, recipients):
    result = _memo(service, ctx_for(employee), recipients)
    assert result.success is False
    assert result.error.code == "VALIDATION_ERROR"
    assert result.error.details == {"field": "recipient_ids"}


@pytest.mark.parametrize("page, page_size", [(1, 0), (0, 10)])
def test_list_memos_rejects_bad_paging(service, employee, ctx_for, page, page_size):
    result = service.list_memos(ctx_for(employee), page=page, page_size=page_size)
    assert result.success is False
    assert result.error.code == "VALIDATION_ERROR"
