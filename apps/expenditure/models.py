"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Expenditure models. A bill submitted against an allocation
             moves pending -> verified -> approved (or rejected) and keeps
             an append-only history of approval steps.
-------------------------------------------------------------------------
"""
from decimal import Decimal
from typing import List, TYPE_CHECKING
from django.conf import settings
from django.core.validators import MinValueValidator
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _

from apps.core.mixins import AuditLogMixin
from apps.core.exceptions import YearClosedException

if TYPE_CHECKING:
    from apps.users.models import CustomUser


class ExpenditureStatus(models.TextChoices):
    """
    Status choices for the expenditure workflow.

    PENDING: Submitted, awaiting HOD verification
    VERIFIED: Verified by HOD, awaiting approval
    APPROVED: Approved, amount charged to the allocation
    REJECTED: Rejected at any stage; may be resubmitted as a new bill
    """
    PENDING = 'pending', _('Pending')
    VERIFIED = 'verified', _('Verified')
    APPROVED = 'approved', _('Approved')
    REJECTED = 'rejected', _('Rejected')


class ApprovalDecision(models.TextChoices):
    VERIFY = 'verify', _('Verify')
    APPROVE = 'approve', _('Approve')
    REJECT = 'reject', _('Reject')


# Bills still awaiting a decision
OPEN_STATUSES = (ExpenditureStatus.PENDING, ExpenditureStatus.VERIFIED)


class Expenditure(AuditLogMixin):
    """
    Bill submitted by a department against an Allocation.

    The financial year, department and budget head always match the
    allocation. status is a pure function of the approval steps and is
    kept in sync by apps.expenditure.services.apply_decision.

    Attributes:
        bill_number: Vendor bill number, unique per department among
                     bills that are not rejected
        bill_amount: Amount claimed (> 0)
        allocation: Allocation charged when the bill is approved
        spend_applied: Set once the amount has been added to the
                       allocation's spent_amount
        original_expenditure: Rejected bill this one resubmits
    """

    bill_number = models.CharField(
        max_length=50,
        verbose_name=_('Bill Number')
    )
    bill_date = models.DateField(
        verbose_name=_('Bill Date')
    )
    bill_amount = models.DecimalField(
        max_digits=15,
        decimal_places=2,
        validators=[MinValueValidator(Decimal('0.01'))],
        verbose_name=_('Bill Amount')
    )
    party_name = models.CharField(
        max_length=200,
        verbose_name=_('Party Name'),
        help_text=_('Vendor or supplier named on the bill.')
    )
    expense_details = models.TextField(
        verbose_name=_('Expense Details')
    )
    reference_budget_register_no = models.CharField(
        max_length=50,
        blank=True,
        verbose_name=_('Budget Register Reference No.')
    )
    attachments = models.JSONField(
        default=list,
        blank=True,
        verbose_name=_('Attachments'),
        help_text=_('List of stored file references.')
    )
    department = models.ForeignKey(
        'budgeting.Department',
        on_delete=models.PROTECT,
        related_name='expenditures',
        verbose_name=_('Department')
    )
    budget_head = models.ForeignKey(
        'budgeting.BudgetHead',
        on_delete=models.PROTECT,
        related_name='expenditures',
        verbose_name=_('Budget Head')
    )
    allocation = models.ForeignKey(
        'budgeting.Allocation',
        on_delete=models.PROTECT,
        related_name='expenditures',
        verbose_name=_('Allocation')
    )
    financial_year = models.ForeignKey(
        'budgeting.FinancialYear',
        on_delete=models.PROTECT,
        related_name='expenditures',
        verbose_name=_('Financial Year')
    )
    status = models.CharField(
        max_length=10,
        choices=ExpenditureStatus.choices,
        default=ExpenditureStatus.PENDING,
        db_index=True,
        verbose_name=_('Status')
    )
    submitted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='submitted_expenditures',
        verbose_name=_('Submitted By')
    )
    submitted_at = models.DateTimeField(
        verbose_name=_('Submitted At')
    )
    spend_applied = models.BooleanField(
        default=False,
        verbose_name=_('Spend Applied'),
        help_text=_('Whether the bill amount has been charged to the allocation.')
    )
    is_resubmission = models.BooleanField(
        default=False,
        verbose_name=_('Is Resubmission')
    )
    original_expenditure = models.ForeignKey(
        'self',
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name='resubmissions',
        verbose_name=_('Original Expenditure')
    )

    class Meta:
        verbose_name = _('Expenditure')
        verbose_name_plural = _('Expenditures')
        ordering = ['-submitted_at']
        constraints = [
            models.UniqueConstraint(
                fields=['department', 'bill_number'],
                condition=~Q(status='rejected'),
                name='unique_open_bill_number_per_department',
            ),
            models.CheckConstraint(
                condition=Q(bill_amount__gt=0),
                name='expenditure_bill_amount_positive',
            ),
        ]
        indexes = [
            models.Index(fields=['financial_year', 'status'], name='expenditur_financi_4a8c21_idx'),
            models.Index(fields=['department', 'status'], name='expenditur_departm_7b2e90_idx'),
        ]

    def __str__(self) -> str:
        return f"Bill {self.bill_number} - {self.party_name} - Rs {self.bill_amount}"

    def save(self, *args, **kwargs) -> None:
        """Refuse writes once the owning year is closed."""
        if self.financial_year_id:
            from apps.budgeting.models import FinancialYear, FinancialYearStatus
            status = FinancialYear.objects.filter(
                pk=self.financial_year_id
            ).values_list('status', flat=True).first()
            if status == FinancialYearStatus.CLOSED:
                raise YearClosedException(
                    "Cannot create or modify expenditures in a closed financial year."
                )
        super().save(*args, **kwargs)

    def get_steps(self) -> List['ApprovalStep']:
        return list(self.approval_steps.order_by('sequence'))

    def derived_status(self) -> str:
        """Status recomputed from the approval history."""
        from apps.expenditure.workflows import derive_status
        return derive_status(step.decision for step in self.get_steps())


class ApprovalStepQuerySet(models.QuerySet):
    """Approval history is append-only; bulk edits are refused."""

    def update(self, **kwargs):
        raise ValueError("Approval steps are append-only and cannot be updated.")

    def delete(self):
        raise ValueError("Approval steps are append-only and cannot be deleted.")


class ApprovalStep(models.Model):
    """
    One decision in an expenditure's approval history.

    Rows are only ever inserted, in sequence order; updates and deletes
    raise ValueError.
    """

    expenditure = models.ForeignKey(
        Expenditure,
        on_delete=models.PROTECT,
        related_name='approval_steps',
        verbose_name=_('Expenditure')
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
        choices=ApprovalDecision.choices,
        verbose_name=_('Decision')
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name='approval_steps',
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

    objects = ApprovalStepQuerySet.as_manager()

    class Meta:
        verbose_name = _('Approval Step')
        verbose_name_plural = _('Approval Steps')
        ordering = ['expenditure', 'sequence']
        constraints = [
            models.UniqueConstraint(
                fields=['expenditure', 'sequence'],
                name='unique_approval_step_sequence',
            ),
        ]

    def __str__(self) -> str:
        return f"{self.expenditure.bill_number} #{self.sequence}: {self.decision} by {self.role}"

    def save(self, *args, **kwargs) -> None:
        if not self._state.adding:
            raise ValueError("Approval steps are append-only and cannot be updated.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Approval steps are append-only and cannot be deleted.")
