"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Django admin configuration for notifications and the
             audit trail.
-------------------------------------------------------------------------
"""
from django.contrib import admin

from apps.core.models import AuditLog, Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    """Admin configuration for Notification model."""

    list_display = ['title', 'recipient', 'category', 'is_read', 'created_at']
    list_filter = ['category', 'is_read']
    search_fields = ['title', 'message', 'recipient__username']
    ordering = ['-created_at']


@admin.register(AuditLog)
class AuditLogAdmin(admin.ModelAdmin):
    """Read-only admin for the audit trail."""

    list_display = ['event_type', 'target_entity', 'target_id', 'actor', 'actor_role', 'created_at']
    list_filter = ['event_type', 'target_entity']
    search_fields = ['target_id', 'actor__username']
    readonly_fields = ['event_type', 'actor', 'actor_role', 'target_entity', 'target_id', 'details', 'created_at']

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
