"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Domain event dispatch. Events are sent only after the
             surrounding transaction commits, so audit and notification
             receivers never observe rolled-back state.
-------------------------------------------------------------------------
"""
import logging
from typing import Any, Dict, Optional

from django.db import models, transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)


class EventType(models.TextChoices):
    """Dotted names of the events emitted by the budget core."""
    EXPENDITURE_SUBMITTED = 'expenditure.submitted'
    EXPENDITURE_VERIFIED = 'expenditure.verified'
    EXPENDITURE_APPROVED = 'expenditure.approved'
    EXPENDITURE_REJECTED = 'expenditure.rejected'
    EXPENDITURE_RESUBMITTED = 'expenditure.resubmitted'
    ALLOCATION_CREATED = 'allocation.created'
    ALLOCATION_UPDATED = 'allocation.updated'
    ALLOCATION_ROLLED_BACK = 'allocation.rolled_back'
    BUDGET_THRESHOLD_REACHED = 'allocation.threshold_reached'
    PROPOSAL_SUBMITTED = 'proposal.submitted'
    PROPOSAL_VERIFIED = 'proposal.verified'
    PROPOSAL_APPROVED = 'proposal.approved'
    PROPOSAL_REJECTED = 'proposal.rejected'
    PROPOSAL_RESUBMITTED = 'proposal.resubmitted'
    FINANCIAL_YEAR_CREATED = 'financial_year.created'
    FINANCIAL_YEAR_ACTIVATED = 'financial_year.activated'
    FINANCIAL_YEAR_LOCKED = 'financial_year.locked'
    FINANCIAL_YEAR_CLOSED = 'financial_year.closed'
    RECORD_DEACTIVATED = 'record.deactivated'


# Receivers get: sender (model class), event_type, instance, actor, actor_role, payload
domain_event = Signal()


def emit_event(
    event_type: str,
    instance: models.Model,
    actor: Optional[Any] = None,
    actor_role: str = '',
    payload: Optional[Dict[str, Any]] = None
) -> None:
    """
    Queue a domain event for dispatch after the current transaction commits.

    Args:
        event_type: One of EventType.
        instance: The affected model instance.
        actor: User who performed the action, if any.
        actor_role: Role the actor acted in.
        payload: Extra event details.
    """
    payload = payload or {}

    def _send() -> None:
        logger.debug(
            f"Dispatching {event_type} for {instance.__class__.__name__}#{instance.pk}"
        )
        domain_event.send(
            sender=instance.__class__,
            event_type=str(event_type),
            instance=instance,
            actor=actor,
            actor_role=actor_role,
            payload=payload,
        )

    transaction.on_commit(_send)
