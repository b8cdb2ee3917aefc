"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Django admin configuration for the budgeting module.
-------------------------------------------------------------------------
"""
from django import forms
from django.contrib import admin, messages
from django.utils.html import format_html
from django.utils.translation import gettext_lazy as _

from apps.core.exceptions import CBMSException
from apps.budgeting.lifecycle import recalculate_financial_year
from apps.budgeting.logging import BudgetLogger
from apps.budgeting.models import (
    Allocation, AllocationHistory, BudgetHead, BudgetProposal, BudgetProposalItem,
    Department, FinancialYear, FinancialYearStatus, Income, ProposalStep
)
from apps.budgeting.services import (
    OVERSPEND_DISALLOW, create_allocation, ensure_year_accepts_allocations,
    get_overspend_policy, update_allocation
)


class AuditUserAdminMixin:
    """Stamp created_by/updated_by from the admin user."""

    def save_model(self, request, obj, form, change):
        obj.save_with_user(request.user)


@admin.register(Department)
class DepartmentAdmin(AuditUserAdminMixin, admin.ModelAdmin):
    list_display = ['code', 'name', 'hod', 'is_active']
    list_filter = ['is_active']
    search_fields = ['code', 'name']
    ordering = ['name']


@admin.register(BudgetHead)
class BudgetHeadAdmin(AuditUserAdminMixin, admin.ModelAdmin):
    list_display = ['code', 'name', 'category', 'is_active']
    list_filter = ['category', 'is_active']
    search_fields = ['code', 'name']
    ordering = ['code']


@admin.register(FinancialYear)
class FinancialYearAdmin(AuditUserAdminMixin, admin.ModelAdmin):
    """
    Admin configuration for FinancialYear model.

    Status and cached totals are read-only here; transitions go through
    the lifecycle services.
    """

    list_display = [
        'year_name', 'start_date', 'end_date', 'status_badge',
        'total_allocated', 'total_spent', 'utilization_percentage'
    ]
    list_filter = ['status']
    search_fields = ['year_name']
    readonly_fields = [
        'status', 'total_income_expected', 'total_income_received',
        'total_allocated', 'total_spent', 'utilization_percentage',
        'carryforward_amount', 'totals_recalculated_at',
        'locked_by', 'locked_at', 'closed_by', 'closed_at',
        'created_at', 'updated_at', 'created_by', 'updated_by'
    ]
    ordering = ['-start_date']

    fieldsets = (
        (None, {
            'fields': ('year_name', 'start_date', 'end_date', 'status', 'remarks')
        }),
        (_('Totals'), {
            'fields': (
                'total_income_expected', 'total_income_received', 'total_allocated',
                'total_spent', 'utilization_percentage', 'carryforward_amount',
                'totals_recalculated_at'
            )
        }),
        (_('Lock & Closure'), {
            'fields': ('locked_by', 'locked_at', 'lock_remarks',
                       'closed_by', 'closed_at', 'closure_remarks'),
            'classes': ('collapse',)
        }),
        (_('Audit Trail'), {
            'fields': ('created_at', 'updated_at', 'created_by', 'updated_by'),
            'classes': ('collapse',)
        }),
    )

    actions = ['recalculate_totals']

    def status_badge(self, obj: FinancialYear) -> str:
        """Display status as a colored badge."""
        color_map = {
            FinancialYearStatus.PLANNING: 'secondary',
            FinancialYearStatus.ACTIVE: 'success',
            FinancialYearStatus.LOCKED: 'warning',
            FinancialYearStatus.CLOSED: 'dark',
        }
        return format_html(
            '<span class="badge bg-{}">{}</span>',
            color_map.get(obj.status, 'secondary'),
            obj.get_status_display()
        )
    status_badge.short_description = _('Status')

    @admin.action(description=_('Recalculate totals'))
    def recalculate_totals(self, request, queryset):
        for fy in queryset:
            try:
                recalculate_financial_year(fy.pk)
            except CBMSException as e:
                BudgetLogger.log_error('recalculate_totals', e, {'financial_year_id': fy.pk})
                self.message_user(request, f"{fy.year_name}: {e.message}", messages.ERROR)
            else:
                self.message_user(request, f"{fy.year_name}: totals recalculated.")


class AllocationAdminForm(forms.ModelForm):
    """Applies the same year and spent checks as the allocation services."""

    class Meta:
        model = Allocation
        fields = ['financial_year', 'department', 'budget_head', 'allocated_amount', 'remarks']

    def clean(self):
        cleaned_data = super().clean()
        fy = cleaned_data.get('financial_year') or getattr(self.instance, 'financial_year', None)
        if fy is not None:
            try:
                ensure_year_accepts_allocations(fy)
            except CBMSException as e:
                raise forms.ValidationError(e.message)

        amount = cleaned_data.get('allocated_amount')
        if (self.instance.pk and amount is not None
                and amount < self.instance.spent_amount
                and get_overspend_policy() == OVERSPEND_DISALLOW):
            self.add_error(
                'allocated_amount',
                _('Allocated amount cannot be reduced below the spent amount Rs %(spent)s.')
                % {'spent': f"{self.instance.spent_amount:,.2f}"}
            )
        return cleaned_data


@admin.register(Allocation)
class AllocationAdmin(admin.ModelAdmin):
    """
    Admin configuration for Allocation model.

    Saves go through create_allocation / update_allocation so the year
    lock, history and domain events apply here as well. Allocations are
    never deleted.
    """

    form = AllocationAdminForm
    list_display = [
        'financial_year', 'department', 'budget_head',
        'allocated_amount', 'spent_amount', 'remaining_amount'
    ]
    list_filter = ['financial_year', 'department', 'budget_head__category']
    search_fields = ['department__code', 'department__name', 'budget_head__code']
    readonly_fields = ['spent_amount', 'created_at', 'updated_at', 'created_by', 'updated_by']
    list_select_related = ['financial_year', 'department', 'budget_head']

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ['financial_year', 'department', 'budget_head'] + self.readonly_fields
        return self.readonly_fields

    def has_delete_permission(self, request, obj=None):
        return False

    def save_model(self, request, obj, form, change):
        if change:
            saved = update_allocation(
                obj.pk, request.user,
                allocated_amount=obj.allocated_amount,
                remarks=obj.remarks,
                change_reason='Edited in admin',
            )
        else:
            saved = create_allocation(
                request.user, obj.department_id, obj.budget_head_id, obj.financial_year_id,
                obj.allocated_amount, remarks=obj.remarks,
            )
        obj.pk = saved.pk
        obj.refresh_from_db()


class ReadOnlyAdminMixin:
    """History and workflow records change only through services."""

    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


@admin.register(AllocationHistory)
class AllocationHistoryAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['allocation', 'version', 'change_type', 'allocated_amount', 'changed_by', 'changed_at']
    list_filter = ['change_type']
    search_fields = ['allocation__department__code', 'allocation__budget_head__code']
    list_select_related = ['allocation__department', 'allocation__budget_head', 'allocation__financial_year']


class BudgetProposalItemInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = BudgetProposalItem
    fields = ['budget_head', 'proposed_amount', 'justification', 'previous_year_utilization']
    extra = 0


class ProposalStepInline(ReadOnlyAdminMixin, admin.TabularInline):
    model = ProposalStep
    fields = ['sequence', 'role', 'decision', 'actor', 'remarks', 'timestamp']
    extra = 0


@admin.register(BudgetProposal)
class BudgetProposalAdmin(ReadOnlyAdminMixin, admin.ModelAdmin):
    list_display = ['financial_year', 'department', 'status', 'total_proposed_amount', 'submitted_at']
    list_filter = ['financial_year', 'status']
    search_fields = ['department__code', 'department__name']
    inlines = [BudgetProposalItemInline, ProposalStepInline]


@admin.register(Income)
class IncomeAdmin(AuditUserAdminMixin, admin.ModelAdmin):
    list_display = ['financial_year', 'source', 'category', 'amount', 'status', 'received_date']
    list_filter = ['financial_year', 'source', 'status']
    search_fields = ['description', 'reference_number']
