"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Workflow state machine for expenditure approval.
             pending -> verified -> approved, with rejection allowed
             from either open state. Role chain and approval limits
             come from settings.
-------------------------------------------------------------------------
"""
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple
from django.conf import settings
from django.utils.translation import gettext_lazy as _

from apps.core.exceptions import WorkflowTransitionException
from apps.expenditure.models import ApprovalDecision, ExpenditureStatus


# Valid decisions per status and the status each one leads to
TRANSITIONS: Dict[str, Dict[str, str]] = {
    ExpenditureStatus.PENDING: {
        ApprovalDecision.VERIFY: ExpenditureStatus.VERIFIED,
        ApprovalDecision.REJECT: ExpenditureStatus.REJECTED,
    },
    ExpenditureStatus.VERIFIED: {
        ApprovalDecision.APPROVE: ExpenditureStatus.APPROVED,
        ApprovalDecision.REJECT: ExpenditureStatus.REJECTED,
    },
    ExpenditureStatus.APPROVED: {},
    ExpenditureStatus.REJECTED: {},
}

DEFAULT_APPROVAL_CHAIN = {
    'verify': ['hod'],
    'approve': ['vice_principal', 'principal'],
    # Extra roles that may reject at any open stage
    'reject': ['office'],
}

DEFAULT_APPROVAL_LIMITS = {
    'vice_principal': Decimal('50000'),
}


def get_approval_chain() -> Dict[str, List[str]]:
    """Role chain from CBMS_APPROVAL_CHAIN, falling back per key to defaults."""
    configured = getattr(settings, 'CBMS_APPROVAL_CHAIN', None) or {}
    chain = {}
    for key, roles in DEFAULT_APPROVAL_CHAIN.items():
        chain[key] = list(configured.get(key, roles))
    return chain


def get_approval_limits() -> Dict[str, Decimal]:
    """Maximum bill amount each role may approve. Roles not listed are unlimited."""
    configured = getattr(settings, 'CBMS_APPROVAL_LIMITS', None)
    if configured is None:
        configured = DEFAULT_APPROVAL_LIMITS
    return {role: Decimal(str(limit)) for role, limit in configured.items() if limit is not None}


def get_valid_decisions(current_status: str) -> List[str]:
    """
    Get the decisions that have an outgoing edge from current_status.

    Args:
        current_status: Current ExpenditureStatus

    Returns:
        List of ApprovalDecision values.
    """
    return list(TRANSITIONS.get(current_status, {}).keys())


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
            _(f"Cannot {decision} an expenditure in '{current_status}' status."),
            details={'status': current_status, 'decision': decision}
        )
    return TRANSITIONS[current_status][decision]


def authorized_roles(current_status: str, decision: str) -> List[str]:
    """
    Roles allowed to take `decision` on a bill in `current_status`.

    Verification belongs to the verify roles and approval to the approve
    roles. A pending bill may be rejected by either; a verified bill only
    by the approve roles. The configured extra reject roles may reject
    at both stages.
    """
    chain = get_approval_chain()
    if decision == ApprovalDecision.VERIFY:
        return chain['verify']
    if decision == ApprovalDecision.APPROVE:
        return chain['approve']
    if decision == ApprovalDecision.REJECT:
        if current_status == ExpenditureStatus.PENDING:
            roles = chain['verify'] + chain['approve']
        else:
            roles = list(chain['approve'])
        return roles + [role for role in chain['reject'] if role not in roles]
    return []


def validate_decision(
    current_status: str,
    decision: str,
    role: str,
    amount: Optional[Decimal] = None
) -> Tuple[bool, Optional[str]]:
    """
    Validate a decision against the state machine and the role chain.

    The state machine is checked first so that a replayed decision on a
    bill that has already moved on reports an invalid transition.

    Args:
        current_status: Current ExpenditureStatus
        decision: ApprovalDecision being applied
        role: Role the actor is acting in
        amount: Bill amount, checked against the role's approval limit

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not can_transition(current_status, decision):
        return False, _(
            f"Cannot {decision} an expenditure in '{current_status}' status."
        )

    if role not in authorized_roles(current_status, decision):
        return False, _(
            f"Role '{role}' is not authorized to {decision} an expenditure "
            f"in '{current_status}' status."
        )

    if decision == ApprovalDecision.APPROVE and amount is not None:
        limit = get_approval_limits().get(role)
        if limit is not None and amount > limit:
            return False, _(
                f"Role '{role}' can only approve expenditures up to Rs {limit:,.2f}. "
                f"This requires higher approval."
            )

    return True, None


def derive_status(decisions: Iterable[str]) -> str:
    """
    Replay a sequence of decisions from pending.

    Raises:
        WorkflowTransitionException: If the sequence is not a valid path.
    """
    status = ExpenditureStatus.PENDING
    for decision in decisions:
        status = next_status(status, decision)
    return status


def get_user_allowed_actions(user, expenditure) -> List[str]:
    """
    Get the list of decisions a user can take on an expenditure.

    Args:
        user: CustomUser instance
        expenditure: Expenditure instance

    Returns:
        List of ApprovalDecision values.
    """
    if not user or not user.is_authenticated:
        return []
    if expenditure.submitted_by_id == user.pk:
        return []
    role = getattr(user, 'role', '')
    actions = []
    for decision in get_valid_decisions(expenditure.status):
        is_valid, _error = validate_decision(
            expenditure.status, decision, role, expenditure.bill_amount
        )
        if not is_valid:
            continue
        if role == 'hod' and expenditure.department_id != user.department_id:
            continue
        actions.append(decision)
    return actions
