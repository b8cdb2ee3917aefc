"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Database models for the budgeting module including
             Department, BudgetHead, FinancialYear, Allocation, Income,
             allocation history and budget proposals.
-------------------------------------------------------------------------
"""
import re
from decimal import Decimal
from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, RegexValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from apps.core.mixins import AuditLogMixin, StatusMixin
from apps.core.exceptions import (
    WorkflowTransitionException,
    YearClosedException,
    YearLockedException,
)


YEAR_LABEL_PATTERN = re.compile(r'^(\d{4})-(\d{2})$')

ZERO = Decimal('0.00')


class Department(AuditLogMixin, StatusMixin):
    """
    Academic or administrative department of the college.

    Departments are never deleted while allocations reference them;
    they are deactivated instead.

    Attributes:
        name: Department name (e.g., "Physics")
        code: Unique short code (e.g., "PHY")
        hod: Head of Department who verifies the department's bills
    """

    name = models.CharField(
        max_length=150,
        verbose_name=_('Department Name')
    )
    code = models.CharField(
        max_length=20,
        unique=True,
        verbose_name=_('Department Code')
    )
    hod = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='headed_departments',
        verbose_name=_('Head of Department')
    )
    description = models.TextField(
        blank=True,
        verbose_name=_('Description')
    )

    class Meta:
        verbose_name = _('Department')
        verbose_name_plural = _('Departments')
        ordering = ['name']

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"

    def save(self, *args, **kwargs) -> None:
        """Normalize code to upper case."""
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)


class BudgetHeadCategory(models.TextChoices):
    """Broad grouping of budget heads for reporting."""
    RECURRING = 'recurring', _('Recurring')
    NON_RECURRING = 'non_recurring', _('Non-Recurring')
    CAPITAL = 'capital', _('Capital')


class BudgetHead(AuditLogMixin, StatusMixin):
    """
    Head of account against which money is allocated and spent
    (e.g., "Laboratory Consumables", "Library Books").
    """

    name = models.CharField(
        max_length=150,
        verbose_name=_('Budget Head')
    )
    code = models.CharField(
        max_length=20,
        unique=True,
        verbose_name=_('Budget Head Code')
    )
    category = models.CharField(
        max_length=20,
        choices=BudgetHeadCategory.choices,
        default=BudgetHeadCategory.RECURRING,
        verbose_name=_('Category')
    )
    description = models.TextField(
        blank=True,
        verbose_name=_('Description')
    )

    class Meta:
        verbose_name = _('Budget Head')
        verbose_name_plural = _('Budget Heads')
        ordering = ['code']

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"

    def save(self, *args, **kwargs) -> None:
        if self.code:
            self.code = self.code.strip().upper()
        super().save(*args, **kwargs)


class FinancialYearStatus(models.TextChoices):
    """
    Lifecycle states of a financial year, in their only allowed order.
    """
    PLANNING = 'planning', _('Planning')
    ACTIVE = 'active', _('Active')
    LOCKED = 'locked', _('Locked')
    CLOSED = 'closed', _('Closed')


# Position of each state in the lifecycle; transitions never decrease it.
STATUS_ORDER = {
    FinancialYearStatus.PLANNING: 0,
    FinancialYearStatus.ACTIVE: 1,
    FinancialYearStatus.LOCKED: 2,
    FinancialYearStatus.CLOSED: 3,
}


def validate_year_label(value: str) -> None:
    """
    Validate a YYYY-YY financial year label (e.g., "2025-26").

    Raises:
        ValidationError: If the format is wrong or the years are not consecutive.
    """
    match = YEAR_LABEL_PATTERN.match(value or '')
    if not match:
        raise ValidationError(_('Financial year must be in format YYYY-YY (e.g., 2025-26).'))
    start_year, end_suffix = int(match.group(1)), int(match.group(2))
    if (start_year + 1) % 100 != end_suffix:
        raise ValidationError(
            _('Financial year %(value)s must span two consecutive years.'),
            params={'value': value}
        )


class FinancialYear(AuditLogMixin):
    """
    Represents a college financial year (April 1 to March 31).

    Status moves strictly forward: planning -> active -> locked -> closed.
    Totals are cached by recalculation and frozen on closure.

    Attributes:
        year_name: Display label (e.g., "2025-26")
        start_date: First day of the financial year
        end_date: Last day of the financial year
        status: Current lifecycle status
        carryforward_amount: Balance carried forward, set on closure only
    """

    year_name = models.CharField(
        max_length=7,
        unique=True,
        validators=[validate_year_label],
        verbose_name=_('Financial Year'),
        help_text=_('Label for the financial year (e.g., "2025-26").')
    )
    start_date = models.DateField(
        verbose_name=_('Start Date')
    )
    end_date = models.DateField(
        verbose_name=_('End Date')
    )
    status = models.CharField(
        max_length=10,
        choices=FinancialYearStatus.choices,
        default=FinancialYearStatus.PLANNING,
        db_index=True,
        verbose_name=_('Status')
    )
    total_income_expected = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=ZERO,
        verbose_name=_('Total Income Expected')
    )
    total_income_received = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=ZERO,
        verbose_name=_('Total Income Received')
    )
    total_allocated = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=ZERO,
        verbose_name=_('Total Allocated')
    )
    total_spent = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=ZERO,
        verbose_name=_('Total Spent')
    )
    utilization_percentage = models.DecimalField(
        max_digits=7,
        decimal_places=2,
        default=ZERO,
        verbose_name=_('Utilization %')
    )
    carryforward_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=ZERO,
        verbose_name=_('Carryforward Amount'),
        help_text=_('Computed when the year is closed.')
    )
    totals_recalculated_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Totals Recalculated At')
    )
    locked_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='locked_financial_years',
        verbose_name=_('Locked By')
    )
    locked_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Locked At')
    )
    lock_remarks = models.TextField(
        blank=True,
        verbose_name=_('Lock Remarks')
    )
    closed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='closed_financial_years',
        verbose_name=_('Closed By')
    )
    closed_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Closed At')
    )
    closure_remarks = models.TextField(
        blank=True,
        verbose_name=_('Closure Remarks')
    )
    remarks = models.TextField(
        blank=True,
        verbose_name=_('Remarks')
    )

    class Meta:
        verbose_name = _('Financial Year')
        verbose_name_plural = _('Financial Years')
        ordering = ['-start_date']

    def __str__(self) -> str:
        return f"FY {self.year_name}"

    def clean(self) -> None:
        """Validate that start_date is before end_date."""
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValidationError({
                'end_date': _('End date must be after start date.')
            })

    def save(self, *args, **kwargs) -> None:
        """Refuse to move the stored status backwards."""
        if not self._state.adding and self.pk:
            stored = FinancialYear.objects.filter(pk=self.pk).values_list('status', flat=True).first()
            if stored is not None and self.status_index < STATUS_ORDER[stored]:
                raise WorkflowTransitionException(
                    f"Financial year {self.year_name} cannot move from {stored} back to {self.status}.",
                    details={'from': stored, 'to': self.status}
                )
        super().save(*args, **kwargs)

    @property
    def status_index(self) -> int:
        return STATUS_ORDER[self.status]

    @property
    def is_locked(self) -> bool:
        """True once the year is locked or closed."""
        return self.status in (FinancialYearStatus.LOCKED, FinancialYearStatus.CLOSED)

    @property
    def is_closed(self) -> bool:
        return self.status == FinancialYearStatus.CLOSED


class Allocation(AuditLogMixin):
    """
    Budget granted to a department under a budget head for a financial year.

    spent_amount only grows, and only when an Expenditure against this
    allocation is approved. remaining_amount is derived, so
    allocated - spent == remaining always holds.

    Attributes:
        department: Department receiving the budget
        budget_head: Head of account
        financial_year: Year of the allocation
        allocated_amount: Sanctioned amount
        spent_amount: Approved expenditure to date
    """

    department = models.ForeignKey(
        Department,
        on_delete=models.PROTECT,
        related_name='allocations',
        verbose_name=_('Department')
    )
    budget_head = models.ForeignKey(
        BudgetHead,
        on_delete=models.PROTECT,
        related_name='allocations',
        verbose_name=_('Budget Head')
    )
    financial_year = models.ForeignKey(
        FinancialYear,
        on_delete=models.PROTECT,
        related_name='allocations',
        verbose_name=_('Financial Year')
    )
    allocated_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(ZERO)],
        verbose_name=_('Allocated Amount')
    )
    spent_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=ZERO,
        validators=[MinValueValidator(ZERO)],
        verbose_name=_('Spent Amount'),
        help_text=_('Sum of approved expenditures.')
    )
    remarks = models.TextField(
        blank=True,
        verbose_name=_('Remarks')
    )

    class Meta:
        verbose_name = _('Allocation')
        verbose_name_plural = _('Allocations')
        ordering = ['financial_year', 'department__name', 'budget_head__code']
        constraints = [
            models.UniqueConstraint(
                fields=['financial_year', 'department', 'budget_head'],
                name='unique_allocation_per_department_head_year',
            ),
            models.CheckConstraint(
                condition=Q(allocated_amount__gte=0),
                name='allocation_allocated_non_negative',
            ),
            models.CheckConstraint(
                condition=Q(spent_amount__gte=0),
                name='allocation_spent_non_negative',
            ),
        ]
        indexes = [
            models.Index(fields=['financial_year', 'department'], name='budgeting_a_financi_1c0a2e_idx'),
            models.Index(fields=['financial_year', 'budget_head'], name='budgeting_a_financi_6f4b1d_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.financial_year} - {self.department.code} / {self.budget_head.code}"

    def save(self, *args, **kwargs) -> None:
        """Refuse writes once the owning year is locked or closed."""
        if self.financial_year_id:
            status = FinancialYear.objects.filter(
                pk=self.financial_year_id
            ).values_list('status', flat=True).first()
            if status == FinancialYearStatus.CLOSED:
                raise YearClosedException(
                    f"Cannot create or modify allocations for closed financial year "
                    f"{self.financial_year.year_name}."
                )
            if status == FinancialYearStatus.LOCKED:
                raise YearLockedException(
                    f"Cannot create or modify allocations for locked financial year "
                    f"{self.financial_year.year_name}."
                )
        super().save(*args, **kwargs)

    @property
    def remaining_amount(self) -> Decimal:
        """Allocated minus spent. Negative only when overspend is permitted."""
        return self.allocated_amount - self.spent_amount

    @property
    def utilization_percentage(self) -> int:
        """Whole-number utilization for dashboards."""
        from apps.reporting.services import utilization_percentage
        return utilization_percentage(self.allocated_amount, self.spent_amount)

    def can_spend(self, amount: Decimal) -> bool:
        """
        Check if the given amount fits in the remaining budget.

        Args:
            amount: Amount to check.
        """
        return (self.spent_amount + amount) <= self.allocated_amount


class IncomeSource(models.TextChoices):
    GOVERNMENT_GRANT = 'government_grant', _('Government Grant')
    STUDENT_FEES = 'student_fees', _('Student Fees')
    DONATION = 'donation', _('Donation')
    RESEARCH_GRANT = 'research_grant', _('Research Grant')
    ENDOWMENT = 'endowment', _('Endowment')
    CONSULTANCY = 'consultancy', _('Consultancy')
    OTHER = 'other', _('Other')


class IncomeCategory(models.TextChoices):
    RECURRING = 'recurring', _('Recurring')
    NON_RECURRING = 'non_recurring', _('Non-Recurring')


class IncomeStatus(models.TextChoices):
    """
    EXPECTED: Budgeted, not yet received
    RECEIVED: Money received
    VERIFIED: Receipt verified by the office
    """
    EXPECTED = 'expected', _('Expected')
    RECEIVED = 'received', _('Received')
    VERIFIED = 'verified', _('Verified')


RECEIVED_INCOME_STATUSES = (IncomeStatus.RECEIVED, IncomeStatus.VERIFIED)


class Income(AuditLogMixin):
    """
    Income expected or received by the college in a financial year.
    Feeds total_income_expected/received on recalculation.
    """

    financial_year = models.ForeignKey(
        FinancialYear,
        on_delete=models.PROTECT,
        related_name='incomes',
        verbose_name=_('Financial Year')
    )
    source = models.CharField(
        max_length=20,
        choices=IncomeSource.choices,
        verbose_name=_('Source')
    )
    category = models.CharField(
        max_length=20,
        choices=IncomeCategory.choices,
        default=IncomeCategory.RECURRING,
        verbose_name=_('Category')
    )
    amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(ZERO)],
        verbose_name=_('Amount')
    )
    status = models.CharField(
        max_length=10,
        choices=IncomeStatus.choices,
        default=IncomeStatus.EXPECTED,
        db_index=True,
        verbose_name=_('Status')
    )
    expected_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Expected Date')
    )
    received_date = models.DateField(
        null=True,
        blank=True,
        verbose_name=_('Received Date')
    )
    reference_number = models.CharField(
        max_length=50,
        blank=True,
        verbose_name=_('Reference Number')
    )
    description = models.CharField(
        max_length=255,
        verbose_name=_('Description')
    )
    remarks = models.TextField(
        blank=True,
        verbose_name=_('Remarks')
    )

    class Meta:
        verbose_name = _('Income')
        verbose_name_plural = _('Income Records')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['financial_year', 'status'], name='budgeting_i_financi_9d3e7a_idx'),
        ]

    def __str__(self) -> str:
        return f"{self.get_source_display()} - Rs {self.amount:,.2f} ({self.financial_year})"

    @property
    def is_received(self) -> bool:
        return self.status in RECEIVED_INCOME_STATUSES


class AllocationChangeType(models.TextChoices):
    CREATED = 'created', _('Created')
    UPDATED = 'updated', _('Updated')
    ROLLBACK = 'rollback', _('Rollback')


class AppendOnlyQuerySet(models.QuerySet):
    """History rows are never edited or removed in bulk."""

    def update(self, **kwargs):
        raise ValueError(f"{self.model._meta.verbose_name} records are append-only and cannot be updated.")

    def delete(self):
        raise ValueError(f"{self.model._meta.verbose_name} records are append-only and cannot be deleted.")


class AppendOnlyMixin(models.Model):
    """Rows are inserted once; later saves and deletes raise ValueError."""

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise ValueError(f"{self._meta.verbose_name} records are append-only and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError(f"{self._meta.verbose_name} records are append-only and cannot be deleted.")


class AllocationHistory(AppendOnlyMixin):
    """
    Versioned snapshot of an allocation, written on every create, update
    and rollback. Version 1 is the allocation as created.

    Attributes:
        version: 1-based, contiguous per allocation
        allocated_amount: Allocated amount after the change
        spent_amount: Spent amount at the time of the change
        previous_allocated_amount: Amount before the change (None for version 1)
    """

    allocation = models.ForeignKey(
        Allocation,
        on_delete=models.PROTECT,
        related_name='history',
        verbose_name=_('Allocation')
    )
    version = models.PositiveIntegerField(
        verbose_name=_('Version')
    )
    change_type = models.CharField(
        max_length=10,
        choices=AllocationChangeType.choices,
        verbose_name=_('Change Type')
    )
    allocated_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        verbose_name=_('Allocated Amount')
    )
    spent_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        verbose_name=_('Spent Amount')
    )
    remarks = models.TextField(
        blank=True,
        verbose_name=_('Remarks')
    )
    previous_allocated_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        null=True,
        blank=True,
        verbose_name=_('Previous Allocated Amount')
    )
    previous_remarks = models.TextField(
        blank=True,
        verbose_name=_('Previous Remarks')
    )
    change_reason = models.TextField(
        blank=True,
        verbose_name=_('Change Reason')
    )
    changed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='allocation_changes',
        verbose_name=_('Changed By')
    )
    changed_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_('Changed At')
    )

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        verbose_name = _('Allocation History')
        verbose_name_plural = _('Allocation History')
        ordering = ['allocation', '-version']
        constraints = [
            models.UniqueConstraint(
                fields=['allocation', 'version'],
                name='unique_allocation_history_version',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.allocation} v{self.version} ({self.change_type})"


class ProposalStatus(models.TextChoices):
    """
    DRAFT: Being prepared by the department; items may be edited
    SUBMITTED: Sent to the budget office
    VERIFIED: Checked by the HOD or the office
    APPROVED: Allocations created from the items
    REJECTED: Returned with a reason; may be resubmitted
    REVISED: Superseded by a resubmitted draft
    """
    DRAFT = 'draft', _('Draft')
    SUBMITTED = 'submitted', _('Submitted')
    VERIFIED = 'verified', _('Verified')
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')
    REVISED = 'revised', _('Revised')


class ProposalDecision(models.TextChoices):
    VERIFY = 'verify', _('Verify')
    APPROVE = 'approve', _('Approve')
    REJECT = 'reject', _('Reject')


class BudgetProposal(AuditLogMixin):
    """
    A department's request for budget in a financial year, one item per
    budget head. Approval turns the items into Allocations.
    """

    financial_year = models.ForeignKey(
        FinancialYear,
        on_delete=models.PROTECT,
        related_name='proposals',
        verbose_name=_('Financial Year')
    )
    department = models.ForeignKey(
        Department,
        on_delete=models.PROTECT,
        related_name='proposals',
        verbose_name=_('Department')
    )
    status = models.CharField(
        max_length=10,
        choices=ProposalStatus.choices,
        default=ProposalStatus.DRAFT,
        db_index=True,
        verbose_name=_('Status')
    )
    total_proposed_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        default=ZERO,
        verbose_name=_('Total Proposed Amount')
    )
    notes = models.TextField(
        blank=True,
        verbose_name=_('Notes')
    )
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='submitted_proposals',
        verbose_name=_('Submitted By')
    )
    submitted_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Submitted At')
    )
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='approved_proposals',
        verbose_name=_('Approved By')
    )
    approved_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_('Approved At')
    )
    rejection_reason = models.TextField(
        blank=True,
        verbose_name=_('Rejection Reason')
    )
    original_proposal = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='revisions',
        verbose_name=_('Original Proposal')
    )

    class Meta:
        verbose_name = _('Budget Proposal')
        verbose_name_plural = _('Budget Proposals')
        ordering = ['-created_at']
        indexes = [
            models.Index(fields=['financial_year', 'status'], name='budgeting_p_financi_3e8b5c_idx'),
            models.Index(fields=['department', 'status'], name='budgeting_p_departm_a47d02_idx'),
        ]

    def __str__(self) -> str:
        return f"Proposal {self.department.code} {self.financial_year} ({self.status})"

    def get_steps(self):
        return list(self.approval_steps.order_by('sequence'))


class BudgetProposalItem(models.Model):
    """
    One budget head requested in a proposal.

    previous_year_utilization is the whole-number utilization of the same
    department and head in the preceding year, when one exists.
    """

    proposal = models.ForeignKey(
        BudgetProposal,
        on_delete=models.CASCADE,
        related_name='items',
        verbose_name=_('Proposal')
    )
    budget_head = models.ForeignKey(
        BudgetHead,
        on_delete=models.PROTECT,
        related_name='proposal_items',
        verbose_name=_('Budget Head')
    )
    proposed_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(ZERO)],
        verbose_name=_('Proposed Amount')
    )
    justification = models.TextField(
        verbose_name=_('Justification')
    )
    previous_year_utilization = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name=_('Previous Year Utilization %')
    )

    class Meta:
        verbose_name = _('Proposal Item')
        verbose_name_plural = _('Proposal Items')
        ordering = ['proposal', 'budget_head__code']
        constraints = [
            models.UniqueConstraint(
                fields=['proposal', 'budget_head'],
                name='unique_proposal_item_per_head',
            ),
            models.CheckConstraint(
                condition=Q(proposed_amount__gte=0),
                name='proposal_item_amount_non_negative',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.budget_head.code}: Rs {self.proposed_amount:,.2f}"


class ProposalStep(AppendOnlyMixin):
    """One decision in a proposal's review history."""

    proposal = models.ForeignKey(
        BudgetProposal,
        on_delete=models.PROTECT,
        related_name='approval_steps',
        verbose_name=_('Proposal')
    )
    sequence = models.PositiveIntegerField(
        verbose_name=_('Sequence')
    )
    role = models.CharField(
        max_length=20,
        verbose_name=_('Role')
    )
    decision = models.CharField(
        max_length=10,
        choices=ProposalDecision.choices,
        verbose_name=_('Decision')
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='proposal_steps',
        verbose_name=_('Actor')
    )
    remarks = models.TextField(
        blank=True,
        verbose_name=_('Remarks')
    )
    timestamp = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_('Timestamp')
    )

    objects = AppendOnlyQuerySet.as_manager()

    class Meta:
        verbose_name = _('Proposal Step')
        verbose_name_plural = _('Proposal Steps')
        ordering = ['proposal', 'sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['proposal', 'sequence'],
                name='unique_proposal_step_sequence',
            ),
        ]

    def __str__(self) -> str:
        return f"Proposal {self.proposal_id} #{self.sequence}: {self.decision} by {self.role}"
