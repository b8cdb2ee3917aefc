"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Budget proposal services. Departments prepare proposals,
             reviewers verify, approve or reject them, and approval
             creates the allocations. Lock order: FinancialYear ->
             BudgetProposal -> Allocation.
-------------------------------------------------------------------------
"""
from typing import Any, Dict, Iterable, List, Optional

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from apps.core.events import EventType, emit_event
from apps.core.exceptions import (
    RemarksRequiredException,
    SelfApprovalException,
    UnauthorizedRoleException,
    WorkflowTransitionException,
)
from apps.budgeting.lifecycle import lock_year_row, previous_financial_year_label
from apps.budgeting.logging import BudgetLogger
from apps.budgeting.models import (
    Allocation,
    BudgetHead,
    BudgetProposal,
    BudgetProposalItem,
    Department,
    FinancialYear,
    ProposalDecision,
    ProposalStatus,
    ProposalStep,
    ZERO,
)
from apps.budgeting.services import (
    create_allocation,
    ensure_active,
    ensure_year_accepts_allocations,
    to_amount,
)
from apps.budgeting.workflows import (
    EDITABLE_STATUSES,
    PROPOSER_ROLES,
    acts_outside_department,
    next_status,
    validate_decision,
)
from apps.users.models import UserRole


DECISION_EVENTS = {
    ProposalDecision.VERIFY: EventType.PROPOSAL_VERIFIED,
    ProposalDecision.APPROVE: EventType.PROPOSAL_APPROVED,
    ProposalDecision.REJECT: EventType.PROPOSAL_REJECTED,
}


def _ensure_can_prepare(actor, department_id: int) -> None:
    role = getattr(actor, 'role', '')
    if not (actor.is_admin() or role in PROPOSER_ROLES):
        raise UnauthorizedRoleException(
            f"Only {', '.join(PROPOSER_ROLES)} can prepare budget proposals.",
            details={'role': role}
        )
    if acts_outside_department(actor, role, department_id):
        raise UnauthorizedRoleException(
            "You can only prepare proposals for your own department.",
            details={'department_id': department_id}
        )


def _previous_year_utilization(fy: FinancialYear, department_id: int, budget_head_id: int) -> Optional[int]:
    previous = Allocation.objects.filter(
        financial_year__year_name=previous_financial_year_label(fy.year_name),
        department_id=department_id,
        budget_head_id=budget_head_id,
    ).first()
    return previous.utilization_percentage if previous else None


def _clean_items(items: Optional[Iterable[Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Validate proposal items.

    Raises:
        ValidationError: No items, a repeated or unknown budget head, a
            negative amount or a missing justification.
        InactiveRecordException: Budget head is deactivated.
    """
    items = list(items or [])
    if not items:
        raise ValidationError({'items': 'A proposal needs at least one budget head.'})

    cleaned, seen = [], set()
    for item in items:
        head_id = item.get('budget_head_id') or item.get('budget_head')
        if not head_id:
            raise ValidationError({'items': 'Each item needs a budget_head_id.'})
        if head_id in seen:
            raise ValidationError({'items': f"Budget head {head_id} is listed more than once."})
        seen.add(head_id)

        amount = to_amount(item.get('proposed_amount'), 'proposed_amount')
        if amount < ZERO:
            raise ValidationError({'proposed_amount': 'Proposed amount cannot be negative.'})
        justification = (item.get('justification') or '').strip()
        if not justification:
            raise ValidationError({'justification': 'Every proposed amount needs a justification.'})

        try:
            budget_head = BudgetHead.objects.get(pk=head_id)
        except (BudgetHead.DoesNotExist, ValueError, TypeError):
            raise ValidationError({'items': f"Budget head {head_id} does not exist."})
        ensure_active(budget_head)
        cleaned.append({
            'budget_head': budget_head,
            'proposed_amount': amount,
            'justification': justification,
        })
    return cleaned


def _replace_items(proposal: BudgetProposal, items: List[Dict[str, Any]]) -> None:
    proposal.items.all().delete()
    BudgetProposalItem.objects.bulk_create([
        BudgetProposalItem(
            proposal=proposal,
            previous_year_utilization=_previous_year_utilization(
                proposal.financial_year, proposal.department_id, item['budget_head'].pk
            ),
            **item
        )
        for item in items
    ])
    proposal.total_proposed_amount = sum((item['proposed_amount'] for item in items), ZERO)


@transaction.atomic
def create_proposal(
    actor,
    financial_year_id: int,
    department_id: int,
    items: Iterable[Dict[str, Any]],
    notes: str = ''
) -> BudgetProposal:
    """
    Create a draft proposal.

    Args:
        items: Dicts with budget_head_id, proposed_amount and justification.

    Raises:
        UnauthorizedRoleException: Role cannot propose, or a department
            user or HOD proposes for another department.
        YearLockedException / YearClosedException: Year no longer open.
        InactiveRecordException: Department or budget head deactivated.
        ValidationError: Invalid items.
    """
    _ensure_can_prepare(actor, department_id)
    fy = lock_year_row(financial_year_id)
    ensure_year_accepts_allocations(fy)
    department = Department.objects.get(pk=department_id)
    ensure_active(department)
    cleaned = _clean_items(items)

    proposal = BudgetProposal(financial_year=fy, department=department, notes=notes or '')
    proposal.save_with_user(actor)
    _replace_items(proposal, cleaned)
    proposal.save_with_user(actor)
    return proposal


@transaction.atomic
def update_proposal(
    proposal_id: int,
    actor,
    items: Optional[Iterable[Dict[str, Any]]] = None,
    notes: Optional[str] = None
) -> BudgetProposal:
    """
    Replace the items or notes of a draft proposal.

    Raises:
        WorkflowTransitionException: Proposal is no longer a draft.
    """
    proposal = BudgetProposal.objects.select_for_update().get(pk=proposal_id)
    _ensure_can_prepare(actor, proposal.department_id)
    if proposal.status not in EDITABLE_STATUSES:
        raise WorkflowTransitionException(
            "Only draft proposals can be edited.",
            details={'status': proposal.status}
        )
    if items is not None:
        _replace_items(proposal, _clean_items(items))
    if notes is not None:
        proposal.notes = notes
    proposal.save_with_user(actor)
    return proposal


@transaction.atomic
def submit_proposal(proposal_id: int, actor) -> BudgetProposal:
    """
    Send a draft proposal for review.

    Raises:
        WorkflowTransitionException: Proposal is not a draft.
        YearLockedException / YearClosedException: Year no longer open.
    """
    year_id = BudgetProposal.objects.values_list('financial_year_id', flat=True).get(pk=proposal_id)
    fy = lock_year_row(year_id)
    proposal = BudgetProposal.objects.select_for_update().get(pk=proposal_id)
    _ensure_can_prepare(actor, proposal.department_id)
    if proposal.status != ProposalStatus.DRAFT:
        raise WorkflowTransitionException(
            f"Cannot submit a proposal in '{proposal.status}' status.",
            details={'status': proposal.status}
        )
    ensure_year_accepts_allocations(fy)
    if not proposal.items.exists():
        raise ValidationError({'items': 'A proposal needs at least one budget head.'})

    previous_status = proposal.status
    proposal.status = ProposalStatus.SUBMITTED
    proposal.submitted_by = actor
    proposal.submitted_at = timezone.now()
    proposal.save_with_user(actor)

    BudgetLogger.log_proposal_transition(proposal, previous_status, actor)
    emit_event(
        EventType.PROPOSAL_SUBMITTED, proposal, actor=actor,
        actor_role=getattr(actor, 'role', ''),
        payload={
            'financial_year': fy.year_name,
            'department': proposal.department.code,
            'total_proposed_amount': proposal.total_proposed_amount,
        }
    )
    return proposal


def _create_allocations(proposal: BudgetProposal, actor) -> Dict[str, List[Dict[str, Any]]]:
    """Create one allocation per item; heads that already have one are skipped."""
    created, skipped = [], []
    reason = f"Approved from budget proposal #{proposal.pk}"
    for item in proposal.items.select_related('budget_head'):
        existing = Allocation.objects.filter(
            financial_year_id=proposal.financial_year_id,
            department_id=proposal.department_id,
            budget_head_id=item.budget_head_id,
        ).first()
        if existing is not None:
            skipped.append({
                'budget_head': item.budget_head.code,
                'allocation_id': existing.pk,
                'reason': 'Allocation already exists.',
            })
            continue
        allocation = create_allocation(
            actor, proposal.department_id, item.budget_head_id, proposal.financial_year_id,
            item.proposed_amount, remarks=item.justification, change_reason=reason,
        )
        created.append({
            'budget_head': item.budget_head.code,
            'allocation_id': allocation.pk,
            'allocated_amount': allocation.allocated_amount,
        })
    return {'created': created, 'skipped': skipped}


@transaction.atomic
def apply_proposal_decision(
    proposal_id: int,
    actor,
    role: str,
    decision: str,
    remarks: str = ''
) -> Dict[str, Any]:
    """
    Verify, approve or reject a submitted proposal.

    Approval creates an allocation for every item whose department and
    budget head have none yet in the proposal's year.

    Returns:
        Dictionary with proposal, created_allocations and skipped_items.

    Raises:
        WorkflowTransitionException: No edge for decision from the current status.
        UnauthorizedRoleException: Role not allowed, or an HOD acting
            outside their department.
        SelfApprovalException: Actor submitted the proposal.
        RemarksRequiredException: Reject without remarks.
        YearLockedException / YearClosedException: Approving in a year
            that no longer accepts allocations.
    """
    year_id = BudgetProposal.objects.values_list('financial_year_id', flat=True).get(pk=proposal_id)
    fy = lock_year_row(year_id)
    proposal = BudgetProposal.objects.select_for_update().get(pk=proposal_id)

    new_status = next_status(proposal.status, decision)

    if role not in UserRole.values or not actor.has_role(role):
        raise UnauthorizedRoleException(f"You cannot act as '{role}'.", details={'role': role})
    is_valid, error = validate_decision(proposal.status, decision, role)
    if not is_valid:
        raise UnauthorizedRoleException(error, details={'role': role, 'decision': decision})
    if acts_outside_department(actor, role, proposal.department_id):
        raise UnauthorizedRoleException(
            "A Head of Department can only act on proposals of their own department.",
            details={'department_id': proposal.department_id}
        )
    if proposal.submitted_by_id == actor.pk:
        raise SelfApprovalException("You cannot review a proposal you submitted.")

    remarks = (remarks or '').strip()
    if decision == ProposalDecision.REJECT and not remarks:
        raise RemarksRequiredException()

    outcome = {'created': [], 'skipped': []}
    if decision == ProposalDecision.APPROVE:
        ensure_year_accepts_allocations(fy)
        outcome = _create_allocations(proposal, actor)
        proposal.approved_by = actor
        proposal.approved_at = timezone.now()
    elif decision == ProposalDecision.REJECT:
        proposal.rejection_reason = remarks

    ProposalStep.objects.create(
        proposal=proposal,
        sequence=proposal.approval_steps.count() + 1,
        role=role,
        decision=decision,
        actor=actor,
        remarks=remarks,
    )
    previous_status = proposal.status
    proposal.status = new_status
    proposal.save_with_user(actor)

    BudgetLogger.log_proposal_transition(proposal, previous_status, actor, role)
    emit_event(
        DECISION_EVENTS[decision], proposal, actor=actor, actor_role=role,
        payload={
            'status': proposal.status,
            'remarks': remarks,
            'created_allocations': [row['allocation_id'] for row in outcome['created']],
            'skipped_budget_heads': [row['budget_head'] for row in outcome['skipped']],
        }
    )
    return {
        'proposal': proposal,
        'created_allocations': outcome['created'],
        'skipped_items': outcome['skipped'],
    }


@transaction.atomic
def resubmit_proposal(
    proposal_id: int,
    actor,
    items: Optional[Iterable[Dict[str, Any]]] = None,
    notes: Optional[str] = None
) -> BudgetProposal:
    """
    Start a new draft from a rejected proposal and mark the rejected one
    as revised. Items are copied unless revised items are given.

    Raises:
        WorkflowTransitionException: Proposal is not rejected.
    """
    year_id = BudgetProposal.objects.values_list('financial_year_id', flat=True).get(pk=proposal_id)
    fy = lock_year_row(year_id)
    original = BudgetProposal.objects.select_for_update().get(pk=proposal_id)
    _ensure_can_prepare(actor, original.department_id)
    if original.status != ProposalStatus.REJECTED:
        raise WorkflowTransitionException(
            "Only rejected proposals can be resubmitted.",
            details={'status': original.status}
        )
    ensure_year_accepts_allocations(fy)

    if items is None:
        items = [
            {
                'budget_head_id': item.budget_head_id,
                'proposed_amount': item.proposed_amount,
                'justification': item.justification,
            }
            for item in original.items.all()
        ]
    cleaned = _clean_items(items)

    draft = BudgetProposal(
        financial_year=fy,
        department=original.department,
        notes=original.notes if notes is None else notes,
        original_proposal=original,
    )
    draft.save_with_user(actor)
    _replace_items(draft, cleaned)
    draft.save_with_user(actor)

    original.status = ProposalStatus.REVISED
    original.save_with_user(actor)

    BudgetLogger.log_proposal_transition(original, ProposalStatus.REJECTED, actor)
    emit_event(
        EventType.PROPOSAL_RESUBMITTED, draft, actor=actor,
        actor_role=getattr(actor, 'role', ''),
        payload={'original_proposal_id': original.pk}
    )
    return draft
