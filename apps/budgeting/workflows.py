"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Workflow state machine for budget proposals.
             draft -> submitted -> verified -> approved, with rejection
             from either review state and resubmission as a new draft.
-------------------------------------------------------------------------
"""
from typing import Dict, List, Optional, Tuple
from django.utils.translation import gettext_lazy as _

from apps.core.exceptions import WorkflowTransitionException
from apps.budgeting.models import ProposalDecision, ProposalStatus
from apps.users.models import UserRole


# Valid review decisions per status and the status each one leads to
TRANSITIONS: Dict[str, Dict[str, str]] = {
    ProposalStatus.DRAFT: {},
    ProposalStatus.SUBMITTED: {
        ProposalDecision.VERIFY: ProposalStatus.VERIFIED,
        ProposalDecision.APPROVE: ProposalStatus.APPROVED,
        ProposalDecision.REJECT: ProposalStatus.REJECTED,
    },
    ProposalStatus.VERIFIED: {
        ProposalDecision.APPROVE: ProposalStatus.APPROVED,
        ProposalDecision.REJECT: ProposalStatus.REJECTED,
    },
    ProposalStatus.APPROVED: {},
    ProposalStatus.REJECTED: {},
    ProposalStatus.REVISED: {},
}

DECISION_ROLES: Dict[str, List[str]] = {
    ProposalDecision.VERIFY: [UserRole.HOD, UserRole.OFFICE, UserRole.ADMIN],
    ProposalDecision.APPROVE: [UserRole.PRINCIPAL, UserRole.VICE_PRINCIPAL, UserRole.OFFICE, UserRole.ADMIN],
    ProposalDecision.REJECT: [
        UserRole.PRINCIPAL, UserRole.VICE_PRINCIPAL, UserRole.OFFICE, UserRole.HOD, UserRole.ADMIN,
    ],
}

# Roles that prepare proposals; department and HOD users only for their own department
PROPOSER_ROLES = [UserRole.DEPARTMENT, UserRole.HOD, UserRole.OFFICE, UserRole.ADMIN]
DEPARTMENT_SCOPED_ROLES = (UserRole.DEPARTMENT, UserRole.HOD)

EDITABLE_STATUSES = (ProposalStatus.DRAFT,)


def can_transition(current_status: str, decision: str) -> bool:
    return decision in TRANSITIONS.get(current_status, {})


def next_status(current_status: str, decision: str) -> str:
    """
    Status reached by applying decision to current_status.

    Raises:
        WorkflowTransitionException: If there is no such edge.
    """
    if not can_transition(current_status, decision):
        raise WorkflowTransitionException(
            _(f"Cannot {decision} a proposal in '{current_status}' status."),
            details={'status': current_status, 'decision': decision}
        )
    return TRANSITIONS[current_status][decision]


def validate_decision(current_status: str, decision: str, role: str) -> Tuple[bool, Optional[str]]:
    """
    Validate a review decision against the state machine and the roles.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not can_transition(current_status, decision):
        return False, _(f"Cannot {decision} a proposal in '{current_status}' status.")
    if role not in DECISION_ROLES.get(decision, []):
        return False, _(f"Role '{role}' is not authorized to {decision} a proposal.")
    return True, None


def acts_outside_department(user, role: str, department_id: int) -> bool:
    """True when a department-scoped role is used on another department's proposal."""
    return role in DEPARTMENT_SCOPED_ROLES and user.department_id != department_id


def get_user_allowed_actions(user, proposal) -> List[str]:
    """Review decisions the user can take on a proposal right now."""
    if not user or not user.is_authenticated:
        return []
    role = getattr(user, 'role', '')
    if acts_outside_department(user, role, proposal.department_id):
        return []
    return [
        decision for decision in TRANSITIONS.get(proposal.status, {})
        if validate_decision(proposal.status, decision, role)[0]
    ]
