"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Core services for notification management and the
             audit trail.
-------------------------------------------------------------------------
"""
from typing import Any, Dict, Iterable, List, Optional
from django.db import transaction
from django.db.models import Model

from apps.core.models import AuditLog, Notification, NotificationCategory


class NotificationService:
    """
    Service class for managing in-app notifications.
    """

    @staticmethod
    @transaction.atomic
    def send_notification(
        recipient,
        title: str,
        message: str,
        link: str = '',
        category: str = NotificationCategory.WORKFLOW,
        icon: str = 'bi-bell'
    ) -> Notification:
        """
        Send a notification to a user.

        Args:
            recipient: CustomUser instance who should receive the notification.
            title: Short notification title.
            message: Detailed notification message.
            link: Optional API path to the affected record.
            category: Notification category (WORKFLOW, ALERT, SYSTEM, INFO).
            icon: Bootstrap icon class (default: 'bi-bell').

        Returns:
            The created Notification instance.

        Example:
            >>> NotificationService.send_notification(
            ...     recipient=hod,
            ...     title="Bill INV-105 Pending Verification",
            ...     message="Bill submitted by Physics department requires your review.",
            ...     link="/expenditure/api/expenditures/105/",
            ... )
        """
        return Notification.objects.create(
            recipient=recipient,
            title=title,
            message=message,
            link=link,
            category=category,
            icon=icon
        )

    @staticmethod
    def send_bulk_notification(
        recipients: Iterable,
        title: str,
        message: str,
        link: str = '',
        category: str = NotificationCategory.WORKFLOW,
        icon: str = 'bi-bell'
    ) -> List[Notification]:
        """
        Send the same notification to multiple recipients.

        Returns:
            List of created Notification instances.
        """
        notifications = []
        for recipient in recipients:
            notifications.append(
                NotificationService.send_notification(
                    recipient=recipient,
                    title=title,
                    message=message,
                    link=link,
                    category=category,
                    icon=icon
                )
            )
        return notifications

    @staticmethod
    def get_unread_count(user) -> int:
        """Get count of unread notifications for a user."""
        return Notification.objects.filter(recipient=user, is_read=False).count()

    @staticmethod
    @transaction.atomic
    def mark_all_as_read(user) -> int:
        """
        Mark all notifications for a user as read.

        Returns:
            Number of notifications marked as read.
        """
        return Notification.objects.filter(
            recipient=user,
            is_read=False
        ).update(is_read=True)


class AuditService:
    """Writes audit trail entries for domain events."""

    @staticmethod
    def record(
        event_type: str,
        instance: Model,
        actor: Optional[Any] = None,
        actor_role: str = '',
        details: Optional[Dict[str, Any]] = None
    ) -> AuditLog:
        """
        Record an audit entry for the given model instance.

        Args:
            event_type: Dotted event name.
            instance: The affected record.
            actor: User who triggered the event.
            actor_role: Role the actor acted in.
            details: Event payload.

        Returns:
            The created AuditLog instance.
        """
        if actor is not None and not getattr(actor, 'pk', None):
            actor = None
        return AuditLog.objects.create(
            event_type=event_type,
            actor=actor,
            actor_role=actor_role or getattr(actor, 'role', '') or '',
            target_entity=instance.__class__.__name__,
            target_id=str(instance.pk),
            details=details or {},
        )

    @staticmethod
    def history_for(instance: Model):
        """Return audit entries for a record, newest first."""
        return AuditLog.objects.filter(
            target_entity=instance.__class__.__name__,
            target_id=str(instance.pk),
        )
