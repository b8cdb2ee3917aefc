"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Admin configuration for the expenditure module. Bills and
             their approval history are read-only; decisions go through
             the approval services.
-------------------------------------------------------------------------
"""
from django.contrib import admin

from apps.expenditure.models import ApprovalStep, Expenditure


class ApprovalStepInline(admin.TabularInline):
    """Read-only approval history."""
    model = ApprovalStep
    extra = 0
    fields = ['sequence', 'role', 'decision', 'actor', 'remarks', 'timestamp']
    readonly_fields = fields
    can_delete = False

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Expenditure)
class ExpenditureAdmin(admin.ModelAdmin):
    list_display = [
        'bill_number', 'department', 'budget_head', 'financial_year',
        'bill_amount', 'status', 'submitted_by', 'submitted_at'
    ]
    list_filter = ['status', 'financial_year', 'department', 'is_resubmission']
    search_fields = ['bill_number', 'party_name', 'reference_budget_register_no']
    list_select_related = ['department', 'budget_head', 'financial_year', 'submitted_by']
    ordering = ['-submitted_at']
    inlines = [ApprovalStepInline]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
