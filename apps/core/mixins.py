"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Reusable model mixins for public identifiers, timestamps,
             audit user tracking and soft deactivation.
-------------------------------------------------------------------------
"""
import uuid
from typing import Optional
from django.db import models
from django.conf import settings


class UUIDMixin(models.Model):
    """
    Abstract mixin that adds a public_id UUID field.

    Used for external references (API payloads, events) while keeping
    integer IDs for internal foreign keys.
    """

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        db_index=True,
        verbose_name="Public ID",
        help_text="Unique UUID for external reference."
    )

    class Meta:
        abstract = True


class TimeStampedMixin(UUIDMixin):
    """
    Abstract mixin that adds created_at and updated_at timestamps.
    """

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name="Created At"
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name="Updated At"
    )

    class Meta:
        abstract = True


class AuditLogMixin(TimeStampedMixin):
    """
    Abstract mixin that records which user created or last modified a record.

    Attributes:
        created_by: User who created the record.
        updated_by: User who last modified the record.
    """

    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="%(class)s_created",
        null=True,
        blank=True,
        verbose_name="Created By"
    )
    updated_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="%(class)s_updated",
        null=True,
        blank=True,
        verbose_name="Updated By"
    )

    class Meta:
        abstract = True

    def save_with_user(self, user: Optional[object] = None, *args, **kwargs) -> None:
        """
        Save the model while setting the audit user fields.

        Args:
            user: The user performing the save operation.
        """
        if user is not None:
            if self.pk is None:
                self.created_by = user
            self.updated_by = user
        self.save(*args, **kwargs)


class StatusMixin(models.Model):
    """
    Abstract mixin for master records that are soft-deactivated
    instead of deleted while other records reference them.
    """

    is_active = models.BooleanField(
        default=True,
        verbose_name="Is Active",
        help_text="Whether this record can be used for new transactions."
    )

    class Meta:
        abstract = True

    def deactivate(self, user: Optional[object] = None) -> None:
        """Mark the record inactive without deleting it."""
        self.is_active = False
        update_fields = ['is_active']
        if hasattr(self, 'updated_by') and user is not None:
            self.updated_by = user
            update_fields.append('updated_by')
        if hasattr(self, 'updated_at'):
            update_fields.append('updated_at')
        self.save(update_fields=update_fields)
