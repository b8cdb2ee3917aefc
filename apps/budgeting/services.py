"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Business logic services for the budgeting module.
             Master data, allocations, income records and the
             overspend policy used by the approval engine.
-------------------------------------------------------------------------
"""
from decimal import Decimal, InvalidOperation
from typing import Optional

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.db import IntegrityError, transaction

from apps.core.events import EventType, emit_event
from apps.core.exceptions import (
    BudgetExceededException,
    DuplicateAllocationException,
    InactiveRecordException,
    WorkflowTransitionException,
    YearClosedException,
    YearLockedException,
)
from apps.budgeting.lifecycle import lock_year_row
from apps.budgeting.logging import BudgetLogger
from apps.budgeting.models import (
    Allocation,
    AllocationChangeType,
    AllocationHistory,
    BudgetHead,
    BudgetHeadCategory,
    Department,
    FinancialYear,
    FinancialYearStatus,
    Income,
    IncomeCategory,
    IncomeStatus,
    ZERO,
)


# Overspend policies
OVERSPEND_DISALLOW = 'disallow'
OVERSPEND_WARN = 'warn'
OVERSPEND_ALLOW = 'allow'
OVERSPEND_POLICIES = (OVERSPEND_DISALLOW, OVERSPEND_WARN, OVERSPEND_ALLOW)

INCOME_STATUS_ORDER = {
    IncomeStatus.EXPECTED: 0,
    IncomeStatus.RECEIVED: 1,
    IncomeStatus.VERIFIED: 2,
}


def get_overspend_policy() -> str:
    """Return the configured overspend policy (disallow, warn or allow)."""
    policy = getattr(settings, 'CBMS_BUDGET_OVERSPEND_POLICY', OVERSPEND_DISALLOW)
    if policy not in OVERSPEND_POLICIES:
        raise ImproperlyConfigured(
            f"CBMS_BUDGET_OVERSPEND_POLICY must be one of {', '.join(OVERSPEND_POLICIES)}."
        )
    return policy


def check_overspend(allocation: Allocation, amount: Decimal) -> bool:
    """
    Apply the overspend policy to spending `amount` against an allocation.

    Returns:
        True if the amount exceeds the remaining budget and the policy
        lets it through, False if it fits.

    Raises:
        BudgetExceededException: If it does not fit and the policy is disallow.
    """
    if allocation.can_spend(amount):
        return False
    policy = get_overspend_policy()
    if policy == OVERSPEND_DISALLOW:
        raise BudgetExceededException(
            f"Amount Rs {amount:,.2f} exceeds the remaining budget of "
            f"Rs {allocation.remaining_amount:,.2f}.",
            details={
                'allocation_id': allocation.pk,
                'requested': str(amount),
                'remaining': str(allocation.remaining_amount),
            }
        )
    if policy == OVERSPEND_WARN:
        BudgetLogger.log_overspend(allocation, amount, policy)
    return True


def to_amount(value, field: str = 'amount') -> Decimal:
    """Coerce a value to a 2 dp Decimal or raise ValidationError."""
    try:
        amount = Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise ValidationError({field: f"'{value}' is not a valid amount."})
    if not amount.is_finite():
        raise ValidationError({field: f"'{value}' is not a valid amount."})
    return amount.quantize(Decimal('0.01'))


def ensure_year_accepts_allocations(fy: FinancialYear) -> None:
    """
    Raises:
        YearClosedException: Year is closed.
        YearLockedException: Year is locked.
    """
    if fy.status == FinancialYearStatus.CLOSED:
        raise YearClosedException(
            f"Financial year {fy.year_name} is closed. Allocations cannot be created or modified."
        )
    if fy.status == FinancialYearStatus.LOCKED:
        raise YearLockedException(
            f"Financial year {fy.year_name} is locked. New allocations cannot be created."
        )


def ensure_active(record) -> None:
    """Raise InactiveRecordException for a deactivated master record."""
    if not record.is_active:
        raise InactiveRecordException(
            f"{record._meta.verbose_name} {record} is not active.",
            details={'model': record.__class__.__name__, 'id': record.pk}
        )


# Master data

@transaction.atomic
def create_department(name: str, code: str, hod=None, description: str = '', user=None) -> Department:
    department = Department(name=name, code=(code or '').strip().upper(), hod=hod, description=description)
    department.full_clean()
    department.save_with_user(user)
    return department


@transaction.atomic
def create_budget_head(
    name: str,
    code: str,
    category: str = BudgetHeadCategory.RECURRING,
    description: str = '',
    user=None
) -> BudgetHead:
    budget_head = BudgetHead(name=name, code=(code or '').strip().upper(), category=category, description=description)
    budget_head.full_clean()
    budget_head.save_with_user(user)
    return budget_head


def _deactivate(record, user) -> None:
    if not record.is_active:
        return
    record.deactivate(user)
    emit_event(
        EventType.RECORD_DEACTIVATED, record, actor=user,
        payload={'model': record.__class__.__name__, 'code': record.code}
    )


@transaction.atomic
def deactivate_department(department_id: int, user=None) -> Department:
    """
    Soft-deactivate a department. Existing allocations keep pointing at
    it; new allocations and bills are refused.
    """
    department = Department.objects.select_for_update().get(pk=department_id)
    _deactivate(department, user)
    return department


@transaction.atomic
def deactivate_budget_head(budget_head_id: int, user=None) -> BudgetHead:
    budget_head = BudgetHead.objects.select_for_update().get(pk=budget_head_id)
    _deactivate(budget_head, user)
    return budget_head


# Allocations

@transaction.atomic
def create_allocation(
    user,
    department_id: int,
    budget_head_id: int,
    financial_year_id: int,
    allocated_amount,
    remarks: str = '',
    change_reason: str = ''
) -> Allocation:
    """
    Create an allocation for a department under a budget head.

    The financial year row is locked first so that a concurrent lock or
    close of the year is either observed here or waits for this insert.

    Raises:
        YearLockedException: Year is locked.
        YearClosedException: Year is closed.
        InactiveRecordException: Department or budget head is deactivated.
        DuplicateAllocationException: Allocation already exists.
        ValidationError: Amount is negative or invalid.
    """
    fy = lock_year_row(financial_year_id)
    ensure_year_accepts_allocations(fy)

    amount = to_amount(allocated_amount, 'allocated_amount')
    if amount < ZERO:
        raise ValidationError({'allocated_amount': 'Allocated amount cannot be negative.'})

    department = Department.objects.get(pk=department_id)
    budget_head = BudgetHead.objects.get(pk=budget_head_id)
    ensure_active(department)
    ensure_active(budget_head)

    duplicate = Allocation.objects.filter(
        financial_year=fy, department=department, budget_head=budget_head
    ).exists()
    if duplicate:
        raise DuplicateAllocationException(
            f"{department.code} already has an allocation under {budget_head.code} for {fy.year_name}.",
            details={'department': department.code, 'budget_head': budget_head.code}
        )

    allocation = Allocation(
        department=department,
        budget_head=budget_head,
        financial_year=fy,
        allocated_amount=amount,
        remarks=remarks or '',
    )
    try:
        with transaction.atomic():
            allocation.save_with_user(user)
    except IntegrityError as e:
        raise DuplicateAllocationException() from e
    _record_history(allocation, user, AllocationChangeType.CREATED, change_reason=change_reason or 'Initial allocation')

    BudgetLogger.log_allocation_saved(allocation, user, created=True)
    emit_event(
        EventType.ALLOCATION_CREATED, allocation, actor=user,
        payload={
            'financial_year': fy.year_name,
            'department': department.code,
            'budget_head': budget_head.code,
            'allocated_amount': amount,
        }
    )
    return allocation


@transaction.atomic
def update_allocation(
    allocation_id: int,
    user,
    allocated_amount=None,
    remarks: Optional[str] = None,
    change_reason: str = ''
) -> Allocation:
    """
    Revise an allocation's amount or remarks.

    Raises:
        YearLockedException / YearClosedException: Year no longer open.
        BudgetExceededException: New amount is below what is already spent
            and the overspend policy is disallow.
    """
    year_id = Allocation.objects.values_list('financial_year_id', flat=True).get(pk=allocation_id)
    fy = lock_year_row(year_id)
    ensure_year_accepts_allocations(fy)
    allocation = Allocation.objects.select_for_update().get(pk=allocation_id)

    previous_amount = allocation.allocated_amount
    previous_remarks = allocation.remarks
    if allocated_amount is not None:
        amount = to_amount(allocated_amount, 'allocated_amount')
        if amount < ZERO:
            raise ValidationError({'allocated_amount': 'Allocated amount cannot be negative.'})
        if amount < allocation.spent_amount and get_overspend_policy() == OVERSPEND_DISALLOW:
            raise BudgetExceededException(
                f"Allocated amount cannot be reduced below the spent amount "
                f"Rs {allocation.spent_amount:,.2f}.",
                details={'spent_amount': str(allocation.spent_amount)}
            )
        allocation.allocated_amount = amount
    if remarks is not None:
        allocation.remarks = remarks

    allocation.save_with_user(user)
    _record_history(
        allocation, user, AllocationChangeType.UPDATED,
        previous_amount=previous_amount, previous_remarks=previous_remarks,
        change_reason=change_reason,
    )

    BudgetLogger.log_allocation_saved(allocation, user, created=False)
    emit_event(
        EventType.ALLOCATION_UPDATED, allocation, actor=user,
        payload={
            'previous_amount': previous_amount,
            'allocated_amount': allocation.allocated_amount,
        }
    )
    return allocation


def _record_history(
    allocation: Allocation,
    user,
    change_type: str,
    previous_amount: Optional[Decimal] = None,
    previous_remarks: str = '',
    change_reason: str = ''
) -> AllocationHistory:
    """Append the next version snapshot. Caller holds the allocation row lock."""
    last_version = allocation.history.order_by('-version').values_list('version', flat=True).first() or 0
    return AllocationHistory.objects.create(
        allocation=allocation,
        version=last_version + 1,
        change_type=change_type,
        allocated_amount=allocation.allocated_amount,
        spent_amount=allocation.spent_amount,
        remarks=allocation.remarks,
        previous_allocated_amount=previous_amount,
        previous_remarks=previous_remarks or '',
        change_reason=change_reason or '',
        changed_by=user if getattr(user, 'pk', None) else None,
    )


def get_allocation_history(allocation_id: int):
    """Versions of an allocation, newest first."""
    Allocation.objects.only('pk').get(pk=allocation_id)
    return list(
        AllocationHistory.objects.filter(allocation_id=allocation_id)
        .select_related('changed_by')
        .order_by('-version')
    )


@transaction.atomic
def rollback_allocation(allocation_id: int, version: int, user, reason: str = '') -> AllocationHistory:
    """
    Restore the amount and remarks recorded in an earlier version.

    The rollback is itself appended as a new version; nothing in the
    history is rewritten.

    Raises:
        YearLockedException / YearClosedException: Year no longer open.
        AllocationHistory.DoesNotExist: No such version.
        BudgetExceededException: Restored amount is below what is already
            spent and the overspend policy is disallow.
    """
    year_id = Allocation.objects.values_list('financial_year_id', flat=True).get(pk=allocation_id)
    fy = lock_year_row(year_id)
    ensure_year_accepts_allocations(fy)
    allocation = Allocation.objects.select_for_update().get(pk=allocation_id)
    target = AllocationHistory.objects.get(allocation=allocation, version=version)

    if target.allocated_amount < allocation.spent_amount and get_overspend_policy() == OVERSPEND_DISALLOW:
        raise BudgetExceededException(
            f"Cannot roll back to Rs {target.allocated_amount:,.2f}; "
            f"Rs {allocation.spent_amount:,.2f} is already spent.",
            details={
                'version': version,
                'allocated_amount': str(target.allocated_amount),
                'spent_amount': str(allocation.spent_amount),
            }
        )

    previous_amount = allocation.allocated_amount
    previous_remarks = allocation.remarks
    allocation.allocated_amount = target.allocated_amount
    allocation.remarks = target.remarks
    allocation.save_with_user(user)
    entry = _record_history(
        allocation, user, AllocationChangeType.ROLLBACK,
        previous_amount=previous_amount, previous_remarks=previous_remarks,
        change_reason=reason or f"Rolled back to version {version}",
    )

    BudgetLogger.log_allocation_rollback(allocation, version, entry.version, user)
    emit_event(
        EventType.ALLOCATION_ROLLED_BACK, allocation, actor=user,
        payload={
            'rolled_back_to_version': version,
            'new_version': entry.version,
            'previous_amount': previous_amount,
            'allocated_amount': allocation.allocated_amount,
        }
    )
    return entry


# Income

@transaction.atomic
def record_income(
    user,
    financial_year_id: int,
    source: str,
    amount,
    description: str,
    category: str = IncomeCategory.RECURRING,
    status: str = IncomeStatus.EXPECTED,
    expected_date=None,
    received_date=None,
    reference_number: str = '',
    remarks: str = ''
) -> Income:
    """
    Record expected or received income for a financial year.

    Raises:
        YearClosedException: Year is closed.
        ValidationError: Invalid amount, source or status.
    """
    fy = lock_year_row(financial_year_id)
    if fy.is_closed:
        raise YearClosedException(
            f"Financial year {fy.year_name} is closed. Income cannot be recorded."
        )
    value = to_amount(amount)
    if value < ZERO:
        raise ValidationError({'amount': 'Amount cannot be negative.'})

    income = Income(
        financial_year=fy,
        source=source,
        category=category,
        amount=value,
        status=status,
        expected_date=expected_date,
        received_date=received_date,
        reference_number=reference_number or '',
        description=description,
        remarks=remarks or '',
    )
    income.full_clean()
    income.save_with_user(user)
    return income


@transaction.atomic
def update_income_status(income_id: int, status: str, user=None, received_date=None) -> Income:
    """
    Move an income record forward: expected -> received -> verified.

    Raises:
        YearClosedException: Year is closed.
        WorkflowTransitionException: Status would move backwards.
    """
    year_id = Income.objects.values_list('financial_year_id', flat=True).get(pk=income_id)
    fy = lock_year_row(year_id)
    if fy.is_closed:
        raise YearClosedException(
            f"Financial year {fy.year_name} is closed. Income cannot be modified."
        )
    income = Income.objects.select_for_update().get(pk=income_id)
    if status not in INCOME_STATUS_ORDER:
        raise ValidationError({'status': f"'{status}' is not a valid income status."})
    if INCOME_STATUS_ORDER[status] <= INCOME_STATUS_ORDER[income.status]:
        raise WorkflowTransitionException(
            f"Income cannot move from {income.status} to {status}."
        )
    income.status = status
    if received_date is not None:
        income.received_date = received_date
    income.save_with_user(user)
    return income
