"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Approval engine services. Submission, role-gated decisions
             and resubmission of expenditures, each in one transaction.
             Lock order: FinancialYear -> Expenditure -> Allocation.
-------------------------------------------------------------------------
"""
from decimal import Decimal
from typing import Any, Dict, Optional

from django.conf import settings
from django.core.exceptions import ValidationError
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from apps.core.events import EventType, emit_event
from apps.core.exceptions import (
    DuplicateBillException,
    RemarksRequiredException,
    SelfApprovalException,
    UnauthorizedRoleException,
    WorkflowTransitionException,
    YearClosedException,
    YearLockedException,
)
from apps.budgeting.lifecycle import lock_year_row
from apps.budgeting.logging import BudgetLogger
from apps.budgeting.models import Allocation, FinancialYearStatus, ZERO
from apps.budgeting.services import check_overspend, ensure_active, to_amount
from apps.expenditure.models import (
    ApprovalDecision,
    ApprovalStep,
    Expenditure,
    ExpenditureStatus,
)
from apps.expenditure.workflows import next_status, validate_decision
from apps.reporting.services import utilization_percentage
from apps.users.models import UserRole


DECISION_EVENTS = {
    ApprovalDecision.VERIFY: EventType.EXPENDITURE_VERIFIED,
    ApprovalDecision.APPROVE: EventType.EXPENDITURE_APPROVED,
    ApprovalDecision.REJECT: EventType.EXPENDITURE_REJECTED,
}

BILL_FIELDS = (
    'bill_number', 'bill_date', 'bill_amount', 'party_name', 'expense_details',
    'reference_budget_register_no', 'attachments',
)

DEFAULT_ALERT_THRESHOLD = 90


def _block_decisions_when_locked() -> bool:
    return getattr(settings, 'CBMS_BLOCK_DECISIONS_WHEN_LOCKED', False)


def budget_alert_threshold() -> Decimal:
    """Utilization percentage at which the budget alert fires."""
    return Decimal(str(getattr(settings, 'CBMS_BUDGET_ALERT_THRESHOLD', DEFAULT_ALERT_THRESHOLD)))


def _clean_bill_details(details: Dict[str, Any]) -> Dict[str, Any]:
    """
    Validate submitted bill fields.

    Raises:
        ValidationError: Missing fields or a non-positive amount.
    """
    missing = [f for f in ('bill_number', 'bill_date', 'bill_amount', 'party_name', 'expense_details')
               if not details.get(f)]
    if missing:
        raise ValidationError({f: 'This field is required.' for f in missing})

    amount = to_amount(details['bill_amount'], 'bill_amount')
    if amount <= ZERO:
        raise ValidationError({'bill_amount': 'Bill amount must be greater than zero.'})

    attachments = details.get('attachments') or []
    if not isinstance(attachments, (list, tuple)):
        raise ValidationError({'attachments': 'Attachments must be a list of file references.'})

    return {
        'bill_number': str(details['bill_number']).strip(),
        'bill_date': details['bill_date'],
        'bill_amount': amount,
        'party_name': details['party_name'],
        'expense_details': details['expense_details'],
        'reference_budget_register_no': details.get('reference_budget_register_no') or '',
        'attachments': list(attachments),
    }


def _ensure_unique_bill(department_id: int, bill_number: str) -> None:
    duplicate = Expenditure.objects.filter(
        department_id=department_id,
        bill_number=bill_number,
    ).exclude(status=ExpenditureStatus.REJECTED).exists()
    if duplicate:
        raise DuplicateBillException(
            f"Bill number {bill_number} already exists for this department.",
            details={'bill_number': bill_number}
        )


def _create_expenditure(actor, allocation_id: int, bill_details: Dict[str, Any],
                        original: Optional[Expenditure] = None) -> Expenditure:
    """Shared body of submit and resubmit. Caller holds a transaction."""
    year_id = Allocation.objects.values_list('financial_year_id', flat=True).get(pk=allocation_id)
    fy = lock_year_row(year_id)
    if fy.status == FinancialYearStatus.CLOSED:
        raise YearClosedException(
            f"Financial year {fy.year_name} is closed. Expenditures cannot be submitted."
        )

    allocation = Allocation.objects.select_related('department', 'budget_head').get(pk=allocation_id)
    ensure_active(allocation.department)
    ensure_active(allocation.budget_head)

    fields = _clean_bill_details(bill_details)
    _ensure_unique_bill(allocation.department_id, fields['bill_number'])
    check_overspend(allocation, fields['bill_amount'])

    expenditure = Expenditure(
        department=allocation.department,
        budget_head=allocation.budget_head,
        allocation=allocation,
        financial_year=fy,
        status=ExpenditureStatus.PENDING,
        submitted_by=actor,
        submitted_at=timezone.now(),
        is_resubmission=original is not None,
        original_expenditure=original,
        **fields
    )
    try:
        with transaction.atomic():
            expenditure.save_with_user(actor)
    except IntegrityError as e:
        raise DuplicateBillException(
            f"Bill number {fields['bill_number']} already exists for this department.",
            details={'bill_number': fields['bill_number']}
        ) from e
    return expenditure


@transaction.atomic
def submit_expenditure(actor, allocation_id: int, bill_details: Dict[str, Any]) -> Expenditure:
    """
    Submit a bill against an allocation. The new expenditure is pending.

    Args:
        actor: User submitting the bill.
        allocation_id: Allocation to charge on approval.
        bill_details: bill_number, bill_date, bill_amount, party_name,
                      expense_details, and optionally
                      reference_budget_register_no and attachments.

    Raises:
        YearClosedException: The allocation's year is closed.
        InactiveRecordException: Department or budget head deactivated.
        DuplicateBillException: Bill number already used in the department.
        BudgetExceededException: Amount exceeds remaining budget under
            the disallow overspend policy.
        ValidationError: Missing fields or non-positive amount.
    """
    expenditure = _create_expenditure(actor, allocation_id, bill_details)

    BudgetLogger.log_expenditure_submitted(expenditure, actor)
    emit_event(
        EventType.EXPENDITURE_SUBMITTED, expenditure, actor=actor,
        actor_role=getattr(actor, 'role', ''),
        payload={
            'bill_number': expenditure.bill_number,
            'bill_amount': expenditure.bill_amount,
            'department': expenditure.department.code,
        }
    )
    return expenditure


@transaction.atomic
def apply_decision(
    expenditure_id: int,
    actor,
    role: str,
    decision: str,
    remarks: str = ''
) -> Expenditure:
    """
    Apply a verify, approve or reject decision to an expenditure.

    Appends one ApprovalStep and moves the status. On approve, the bill
    amount is added to the allocation's spent_amount exactly once.

    Args:
        expenditure_id: Expenditure to decide on.
        actor: User taking the decision.
        role: Role the user acts in.
        decision: ApprovalDecision value.
        remarks: Mandatory for reject.

    Raises:
        YearClosedException: The year is closed.
        YearLockedException: The year is locked and decisions in locked
            years are blocked by CBMS_BLOCK_DECISIONS_WHEN_LOCKED.
        WorkflowTransitionException: No edge for decision from the current status.
        UnauthorizedRoleException: Role not allowed, HOD outside their
            department, or amount above the role's approval limit.
        SelfApprovalException: Actor submitted the bill.
        RemarksRequiredException: Reject without remarks.
        BudgetExceededException: Approval would overspend under the
            disallow policy.
    """
    year_id = Expenditure.objects.values_list('financial_year_id', flat=True).get(pk=expenditure_id)
    fy = lock_year_row(year_id)
    expenditure = Expenditure.objects.select_for_update().get(pk=expenditure_id)

    if fy.status == FinancialYearStatus.CLOSED:
        raise YearClosedException(
            f"Financial year {fy.year_name} is closed. No further decisions are permitted."
        )
    if fy.status == FinancialYearStatus.LOCKED and _block_decisions_when_locked():
        raise YearLockedException(
            f"Financial year {fy.year_name} is locked. No further decisions are permitted."
        )

    new_status = next_status(expenditure.status, decision)

    if role not in UserRole.values or not actor.has_role(role):
        raise UnauthorizedRoleException(
            f"You cannot act as '{role}'.",
            details={'role': role}
        )
    is_valid, error = validate_decision(expenditure.status, decision, role, expenditure.bill_amount)
    if not is_valid:
        raise UnauthorizedRoleException(error, details={'role': role, 'decision': decision})
    if role == UserRole.HOD and expenditure.department_id != actor.department_id:
        raise UnauthorizedRoleException(
            "A Head of Department can only act on bills of their own department.",
            details={'department_id': expenditure.department_id}
        )
    if expenditure.submitted_by_id == actor.pk:
        raise SelfApprovalException()

    remarks = (remarks or '').strip()
    if decision == ApprovalDecision.REJECT and not remarks:
        raise RemarksRequiredException()

    charge = None
    if decision == ApprovalDecision.APPROVE and not expenditure.spend_applied:
        charge = _charge_allocation(expenditure)

    ApprovalStep.objects.create(
        expenditure=expenditure,
        sequence=expenditure.approval_steps.count() + 1,
        role=role,
        decision=decision,
        actor=actor,
        remarks=remarks,
    )
    expenditure.status = new_status
    expenditure.updated_by = actor
    expenditure.save(update_fields=['status', 'spend_applied', 'updated_by', 'updated_at'])

    BudgetLogger.log_decision(expenditure, actor, role, decision)
    payload = {
        'bill_number': expenditure.bill_number,
        'bill_amount': expenditure.bill_amount,
        'status': expenditure.status,
        'remarks': remarks,
    }
    if charge is not None:
        payload.update(charge)
    emit_event(DECISION_EVENTS[decision], expenditure, actor=actor, actor_role=role, payload=payload)
    return expenditure


def _charge_allocation(expenditure: Expenditure) -> Dict[str, Any]:
    """
    Add the bill amount to the allocation's spent_amount with an atomic
    F() update and mark the expenditure as charged (not yet saved).

    Utilization before and after the charge is read under the allocation
    row lock, so exactly one approval sees the alert threshold crossed.

    Returns:
        utilization_percentage, remaining_amount and threshold_crossed
        for the event payload.
    """
    allocation = Allocation.objects.select_for_update().get(pk=expenditure.allocation_id)
    check_overspend(allocation, expenditure.bill_amount)
    Allocation.objects.filter(pk=allocation.pk).update(
        spent_amount=F('spent_amount') + expenditure.bill_amount,
        updated_at=timezone.now(),
    )
    expenditure.spend_applied = True

    spent_after = allocation.spent_amount + expenditure.bill_amount
    before = utilization_percentage(allocation.allocated_amount, allocation.spent_amount, precision=2)
    after = utilization_percentage(allocation.allocated_amount, spent_after, precision=2)
    threshold = budget_alert_threshold()
    return {
        'utilization_percentage': after,
        'remaining_amount': allocation.allocated_amount - spent_after,
        'threshold': threshold,
        'threshold_crossed': before < threshold <= after,
    }


@transaction.atomic
def resubmit_expenditure(original_id: int, actor, revised_details: Dict[str, Any]) -> Expenditure:
    """
    Resubmit a rejected expenditure as a new pending one.

    The original is never modified. Fields missing from revised_details
    are copied from the original; the allocation may be changed with
    'allocation_id'.

    Raises:
        WorkflowTransitionException: Original is not rejected.
        UnauthorizedRoleException: Actor is not the original submitter.
    """
    original = Expenditure.objects.get(pk=original_id)
    if original.status != ExpenditureStatus.REJECTED:
        raise WorkflowTransitionException(
            "Only rejected expenditures can be resubmitted.",
            details={'status': original.status}
        )
    if original.submitted_by_id != actor.pk and not actor.is_admin():
        raise UnauthorizedRoleException(
            "Only the original submitter can resubmit this expenditure."
        )

    details = {field: getattr(original, field) for field in BILL_FIELDS}
    details.update({k: v for k, v in revised_details.items() if k in BILL_FIELDS})
    allocation_id = revised_details.get('allocation_id') or original.allocation_id

    expenditure = _create_expenditure(actor, allocation_id, details, original=original)

    BudgetLogger.log_expenditure_submitted(expenditure, actor)
    payload = {
        'bill_number': expenditure.bill_number,
        'bill_amount': expenditure.bill_amount,
        'department': expenditure.department.code,
        'original_expenditure_id': original.pk,
    }
    role = getattr(actor, 'role', '')
    emit_event(EventType.EXPENDITURE_RESUBMITTED, expenditure, actor=actor, actor_role=role, payload=payload)
    emit_event(EventType.EXPENDITURE_SUBMITTED, expenditure, actor=actor, actor_role=role, payload=payload)
    return expenditure


def get_expenditure_history(expenditure: Expenditure) -> Dict[str, Any]:
    """Approval steps and resubmission chain of an expenditure."""
    chain = []
    current: Optional[Expenditure] = expenditure.original_expenditure
    while current is not None:
        chain.append(current)
        current = current.original_expenditure
    return {
        'steps': expenditure.get_steps(),
        'previous_submissions': chain,
        'resubmissions': list(expenditure.resubmissions.order_by('submitted_at')),
    }
