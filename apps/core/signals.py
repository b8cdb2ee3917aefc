"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Audit trail receiver for domain events.
-------------------------------------------------------------------------
"""
import logging

from django.dispatch import receiver

from apps.core.events import domain_event
from apps.core.services import AuditService

logger = logging.getLogger(__name__)


@receiver(domain_event, dispatch_uid='core_audit_domain_event')
def record_audit_entry(sender, event_type: str, instance, actor=None, actor_role: str = '',
                       payload=None, **kwargs) -> None:
    """
    Write an AuditLog row for every domain event.

    Runs after commit; a failure here is logged and does not undo
    the already committed transition.
    """
    try:
        AuditService.record(
            event_type=event_type,
            instance=instance,
            actor=actor,
            actor_role=actor_role,
            details=payload or {},
        )
    except Exception:
        logger.error(
            f"Failed to record audit entry for {event_type}",
            exc_info=True,
            extra={
                'event_type': event_type,
                'target_entity': sender.__name__,
                'target_id': instance.pk,
            }
        )
