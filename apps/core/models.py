"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Shared models for in-app notifications and the audit
             trail of domain events.
-------------------------------------------------------------------------
"""
from django.conf import settings
from django.core.serializers.json import DjangoJSONEncoder
from django.db import models
from django.utils.translation import gettext_lazy as _

from apps.core.mixins import TimeStampedMixin


class NotificationCategory(models.TextChoices):
    """Notification categories for filtering and icon display."""
    WORKFLOW = 'WORKFLOW', _('Workflow')
    ALERT = 'ALERT', _('Alert')
    SYSTEM = 'SYSTEM', _('System')
    INFO = 'INFO', _('Information')


class Notification(TimeStampedMixin):
    """
    In-app notification for a single user.

    Delivery (push, socket, email) is handled outside the core; this
    table is the inbox the dashboards read from.
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='notifications',
        verbose_name=_('Recipient')
    )
    title = models.CharField(
        max_length=200,
        verbose_name=_('Title')
    )
    message = models.TextField(
        verbose_name=_('Message')
    )
    link = models.CharField(
        max_length=255,
        blank=True,
        verbose_name=_('Link')
    )
    category = models.CharField(
        max_length=20,
        choices=NotificationCategory.choices,
        default=NotificationCategory.WORKFLOW,
        verbose_name=_('Category')
    )
    icon = models.CharField(
        max_length=50,
        default='bi-bell',
        verbose_name=_('Icon')
    )
    is_read = models.BooleanField(
        default=False,
        verbose_name=_('Read')
    )

    class Meta:
        verbose_name = _('Notification')
        verbose_name_plural = _('Notifications')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['recipient', 'is_read'], name='core_notifi_recipie_5e1f3b_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.title} -> {self.recipient}"


class AuditLog(models.Model):
    """
    Immutable audit record of a domain event.

    Attributes:
        event_type: Dotted event name (e.g., "expenditure.approved").
        actor: User who triggered the event (null for system jobs).
        actor_role: Role the actor acted in at the time of the event.
        target_entity: Model name of the affected record.
        target_id: Primary key of the affected record.
        details: Event payload.
    """

    event_type = models.CharField(
        max_length=60,
        db_index=True,
        verbose_name=_('Event Type')
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='audit_logs',
        verbose_name=_('Actor')
    )
    actor_role = models.CharField(
        max_length=30,
        blank=True,
        verbose_name=_('Actor Role')
    )
    target_entity = models.CharField(
        max_length=60,
        verbose_name=_('Target Entity')
    )
    target_id = models.CharField(
        max_length=64,
        verbose_name=_('Target ID')
    )
    details = models.JSONField(
        default=dict,
        blank=True,
        encoder=DjangoJSONEncoder,
        verbose_name=_('Details')
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        verbose_name=_('Created At')
    )

    class Meta:
        verbose_name = _('Audit Log')
        verbose_name_plural = _('Audit Logs')
        ordering = ['-created_at', '-id']
        indexes = [
            models.Index(fields=['target_entity', 'target_id'], name='core_auditl_target__8c4d2a_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.event_type} {self.target_entity}#{self.target_id}"

    def save(self, *args, **kwargs) -> None:
        if self.pk is not None:
            raise ValueError("Audit log entries are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Audit log entries cannot be deleted.")
