"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Financial year lifecycle manager. Drives a FinancialYear
             through planning -> active -> locked -> closed, recomputes
             its cached totals and computes the closing carryforward.
-------------------------------------------------------------------------
"""
from datetime import date
from typing import Optional, Tuple

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Sum
from django.utils import timezone

from apps.core.events import EventType, emit_event
from apps.core.exceptions import (
    ActiveYearConflictException,
    AlreadyClosedException,
    AlreadyLockedException,
    DuplicateYearException,
    InvalidRangeException,
    InvalidYearLabelException,
    NotLockedException,
    PendingExpendituresException,
    WorkflowTransitionException,
    YearClosedException,
)
from apps.budgeting.carryforward import compute_carryforward
from apps.budgeting.logging import BudgetLogger
from apps.budgeting.models import (
    Allocation,
    FinancialYear,
    FinancialYearStatus,
    Income,
    RECEIVED_INCOME_STATUSES,
    YEAR_LABEL_PATTERN,
    ZERO,
)


INITIAL_STATUSES = (FinancialYearStatus.PLANNING, FinancialYearStatus.ACTIVE)

# Financial year runs April 1 to March 31.
FY_START_MONTH = 4


def parse_year_label(year_name: str) -> int:
    """
    Return the starting calendar year of a YYYY-YY label.

    Raises:
        InvalidYearLabelException: If the label is malformed or the two
            years are not consecutive.
    """
    match = YEAR_LABEL_PATTERN.match(year_name or '')
    if not match:
        raise InvalidYearLabelException(details={'year_name': year_name})
    start_year = int(match.group(1))
    if (start_year + 1) % 100 != int(match.group(2)):
        raise InvalidYearLabelException(
            f"Financial year {year_name} must span two consecutive years.",
            details={'year_name': year_name}
        )
    return start_year


def format_year_label(start_year: int) -> str:
    return f"{start_year}-{(start_year + 1) % 100:02d}"


def current_financial_year_label(today: date) -> str:
    """
    Map a date to its financial year label (April to March).

    >>> current_financial_year_label(date(2026, 3, 31))
    '2025-26'
    >>> current_financial_year_label(date(2026, 4, 1))
    '2026-27'
    """
    start_year = today.year if today.month >= FY_START_MONTH else today.year - 1
    return format_year_label(start_year)


def previous_financial_year_label(year_name: str) -> str:
    """Label of the financial year before the given one (2025-26 -> 2024-25)."""
    return format_year_label(parse_year_label(year_name) - 1)


def financial_year_dates(year_name: str) -> Tuple[date, date]:
    """Default start and end dates for a label: 1 April to 31 March."""
    start_year = parse_year_label(year_name)
    return date(start_year, FY_START_MONTH, 1), date(start_year + 1, FY_START_MONTH - 1, 31)


def get_current_financial_year(today: Optional[date] = None) -> Optional[FinancialYear]:
    """
    Return the active financial year, falling back to the year whose
    label matches the given date.
    """
    active = FinancialYear.objects.filter(status=FinancialYearStatus.ACTIVE).order_by('-start_date').first()
    if active:
        return active
    today = today or timezone.localdate()
    return FinancialYear.objects.filter(year_name=current_financial_year_label(today)).first()


def _single_active_year_enforced() -> bool:
    return getattr(settings, 'CBMS_ENFORCE_SINGLE_ACTIVE_YEAR', True)


def _check_active_conflict(exclude_pk: Optional[int] = None) -> None:
    others = FinancialYear.objects.select_for_update().filter(status=FinancialYearStatus.ACTIVE)
    if exclude_pk is not None:
        others = others.exclude(pk=exclude_pk)
    active = others.first()
    if active is not None:
        raise ActiveYearConflictException(
            f"Financial year {active.year_name} is already active.",
            details={'active_year': active.year_name}
        )


def lock_year_row(year_id: int) -> FinancialYear:
    """
    Fetch a financial year with a row lock held until the surrounding
    transaction ends. Must be called inside transaction.atomic().
    """
    return FinancialYear.objects.select_for_update().get(pk=year_id)


@transaction.atomic
def create_financial_year(
    year_name: str,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    status: str = FinancialYearStatus.PLANNING,
    user=None,
    remarks: str = ''
) -> FinancialYear:
    """
    Create a new financial year.

    Args:
        year_name: Label in YYYY-YY format.
        start_date: Defaults to 1 April of the first year.
        end_date: Defaults to 31 March of the second year.
        status: Initial status, planning or active.
        user: User creating the year.
        remarks: Optional remarks.

    Raises:
        InvalidYearLabelException: Malformed label.
        InvalidRangeException: end_date is not after start_date.
        DuplicateYearException: Label already exists.
        WorkflowTransitionException: Initial status is locked or closed.
        ActiveYearConflictException: Another year is already active.
    """
    default_start, default_end = financial_year_dates(year_name)
    start_date = start_date or default_start
    end_date = end_date or default_end

    if end_date <= start_date:
        raise InvalidRangeException(
            details={'start_date': start_date.isoformat(), 'end_date': end_date.isoformat()}
        )
    if status not in INITIAL_STATUSES:
        raise WorkflowTransitionException(
            f"A financial year cannot be created in '{status}' status."
        )
    if FinancialYear.objects.filter(year_name=year_name).exists():
        raise DuplicateYearException(
            f"Financial year {year_name} already exists.",
            details={'year_name': year_name}
        )
    if status == FinancialYearStatus.ACTIVE and _single_active_year_enforced():
        _check_active_conflict()

    fy = FinancialYear(
        year_name=year_name,
        start_date=start_date,
        end_date=end_date,
        status=status,
        remarks=remarks,
    )
    try:
        with transaction.atomic():
            fy.save_with_user(user)
    except IntegrityError as e:
        raise DuplicateYearException(
            f"Financial year {year_name} already exists.",
            details={'year_name': year_name}
        ) from e

    BudgetLogger.log_year_created(fy, user)
    emit_event(
        EventType.FINANCIAL_YEAR_CREATED, fy, actor=user,
        payload={'year_name': fy.year_name, 'status': fy.status}
    )
    return fy


@transaction.atomic
def activate_financial_year(year_id: int, user=None) -> FinancialYear:
    """
    Move a financial year from planning to active.

    Raises:
        AlreadyClosedException / AlreadyLockedException: Year is past active.
        WorkflowTransitionException: Year is already active.
        ActiveYearConflictException: Another year is active.
    """
    fy = lock_year_row(year_id)
    if fy.status == FinancialYearStatus.CLOSED:
        raise AlreadyClosedException(f"Financial year {fy.year_name} is already closed.")
    if fy.status == FinancialYearStatus.LOCKED:
        raise AlreadyLockedException(f"Financial year {fy.year_name} is already locked.")
    if fy.status == FinancialYearStatus.ACTIVE:
        raise WorkflowTransitionException(f"Financial year {fy.year_name} is already active.")
    if _single_active_year_enforced():
        _check_active_conflict(exclude_pk=fy.pk)

    from_status = fy.status
    fy.status = FinancialYearStatus.ACTIVE
    fy.updated_by = user
    fy.save(update_fields=['status', 'updated_by', 'updated_at'])

    BudgetLogger.log_year_transition(fy, from_status, user)
    emit_event(
        EventType.FINANCIAL_YEAR_ACTIVATED, fy, actor=user,
        payload={'from_status': from_status, 'to_status': fy.status}
    )
    return fy


@transaction.atomic
def lock_financial_year(year_id: int, user=None, remarks: str = '') -> FinancialYear:
    """
    Lock a financial year. New allocations are refused afterwards;
    bills already in flight may still be decided.

    Raises:
        AlreadyLockedException: Year is already locked.
        AlreadyClosedException: Year is closed.
    """
    fy = lock_year_row(year_id)
    if fy.status == FinancialYearStatus.CLOSED:
        raise AlreadyClosedException(f"Financial year {fy.year_name} is already closed.")
    if fy.status == FinancialYearStatus.LOCKED:
        raise AlreadyLockedException(f"Financial year {fy.year_name} is already locked.")

    from_status = fy.status
    fy.status = FinancialYearStatus.LOCKED
    fy.locked_by = user
    fy.locked_at = timezone.now()
    fy.lock_remarks = remarks or ''
    fy.updated_by = user
    fy.save(update_fields=[
        'status', 'locked_by', 'locked_at', 'lock_remarks', 'updated_by', 'updated_at'
    ])

    BudgetLogger.log_year_transition(fy, from_status, user, remarks)
    emit_event(
        EventType.FINANCIAL_YEAR_LOCKED, fy, actor=user,
        payload={'from_status': from_status, 'remarks': fy.lock_remarks}
    )
    return fy


@transaction.atomic
def close_financial_year(year_id: int, user=None, remarks: str = '') -> FinancialYear:
    """
    Close a locked financial year: recalculate, compute carryforward and
    freeze. Nothing under the year can be created, edited or decided
    afterwards.

    Raises:
        AlreadyClosedException: Year is already closed.
        NotLockedException: Year has not been locked.
        PendingExpendituresException: Bills are still awaiting a decision.
    """
    from apps.expenditure.models import Expenditure, OPEN_STATUSES

    fy = lock_year_row(year_id)
    if fy.status == FinancialYearStatus.CLOSED:
        raise AlreadyClosedException(f"Financial year {fy.year_name} is already closed.")
    if fy.status != FinancialYearStatus.LOCKED:
        raise NotLockedException(
            f"Financial year {fy.year_name} must be locked before closing.",
            details={'status': fy.status}
        )

    open_count = Expenditure.objects.filter(financial_year=fy, status__in=OPEN_STATUSES).count()
    if open_count:
        raise PendingExpendituresException(
            f"{open_count} expenditure(s) in {fy.year_name} are still pending or verified.",
            details={'open_count': open_count}
        )

    _apply_totals(fy)
    fy.carryforward_amount = compute_carryforward(fy)
    fy.status = FinancialYearStatus.CLOSED
    fy.closed_by = user
    fy.closed_at = timezone.now()
    fy.closure_remarks = remarks or ''
    fy.updated_by = user
    fy.save()

    BudgetLogger.log_year_transition(fy, FinancialYearStatus.LOCKED, user, remarks)
    emit_event(
        EventType.FINANCIAL_YEAR_CLOSED, fy, actor=user,
        payload={
            'total_allocated': fy.total_allocated,
            'total_spent': fy.total_spent,
            'total_income_received': fy.total_income_received,
            'carryforward_amount': fy.carryforward_amount,
            'remarks': fy.closure_remarks,
        }
    )
    return fy


@transaction.atomic
def recalculate_financial_year(year_id: int) -> FinancialYear:
    """
    Re-sum the cached totals of a financial year from its allocations and
    income records. Idempotent; only the cached totals are overwritten.

    Raises:
        YearClosedException: Closed years keep their frozen totals.
    """
    fy = lock_year_row(year_id)
    if fy.status == FinancialYearStatus.CLOSED:
        raise YearClosedException(
            f"Financial year {fy.year_name} is closed; its totals are frozen."
        )
    _apply_totals(fy)
    fy.save(update_fields=[
        'total_income_expected', 'total_income_received', 'total_allocated',
        'total_spent', 'utilization_percentage', 'totals_recalculated_at',
    ])
    BudgetLogger.log_year_recalculated(fy)
    return fy


def _apply_totals(fy: FinancialYear) -> FinancialYear:
    """Overwrite the cached totals on the instance (not saved)."""
    from apps.reporting.services import utilization_percentage

    allocation_totals = Allocation.objects.filter(financial_year=fy).aggregate(
        allocated=Sum('allocated_amount'),
        spent=Sum('spent_amount'),
    )
    incomes = Income.objects.filter(financial_year=fy)
    expected = incomes.aggregate(total=Sum('amount'))['total']
    received = incomes.filter(status__in=RECEIVED_INCOME_STATUSES).aggregate(total=Sum('amount'))['total']

    fy.total_allocated = allocation_totals['allocated'] or ZERO
    fy.total_spent = allocation_totals['spent'] or ZERO
    fy.total_income_expected = expected or ZERO
    fy.total_income_received = received or ZERO
    fy.utilization_percentage = utilization_percentage(
        fy.total_allocated, fy.total_spent, precision=2
    )
    fy.totals_recalculated_at = timezone.now()
    return fy
