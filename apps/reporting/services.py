"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Aggregation and comparison services. Read-only rollups of
             allocation and spend per department and budget head,
             utilization bands and year over year changes.
-------------------------------------------------------------------------
"""
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Callable, Dict, List, Optional, Union

from django.db.models import Count, Q, Sum
from django.db.models.functions import TruncMonth

from apps.core.exceptions import DivisionGuard
from apps.budgeting.models import Allocation, BudgetHead, Department, FinancialYear
from apps.expenditure.models import Expenditure, ExpenditureStatus


ZERO = Decimal('0.00')
HUNDRED = Decimal('100')

HIGH_UTILIZATION = Decimal('90')
LOW_UTILIZATION = Decimal('50')

# Upper bound (inclusive) of each utilization band; the last band is open.
UTILIZATION_RANGES = (
    ('0-25', Decimal('25')),
    ('25-50', Decimal('50')),
    ('50-75', Decimal('75')),
    ('75-90', Decimal('90')),
    ('90+', None),
)

METRICS = ('allocated', 'spent', 'utilization')

NO_DATA_MESSAGE = 'No data'

Number = Union[int, float, Decimal, str, None]


def _to_decimal(value: Number) -> Decimal:
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _round(value: Decimal, precision: int) -> Union[int, Decimal]:
    """Half-up rounding. Precision 0 gives an int, otherwise a Decimal."""
    quantum = Decimal(1).scaleb(-precision)
    rounded = value.quantize(quantum, rounding=ROUND_HALF_UP)
    return int(rounded) if precision == 0 else rounded


def _zero(precision: int) -> Union[int, Decimal]:
    return 0 if precision == 0 else _round(ZERO, precision)


def _percentage(numerator: Decimal, denominator: Decimal) -> Decimal:
    """numerator / denominator * 100. Raises DivisionGuard on a zero denominator."""
    if denominator == 0:
        raise DivisionGuard(details={'numerator': str(numerator)})
    return numerator / denominator * HUNDRED


def utilization_percentage(allocated: Number, spent: Number, precision: int = 0) -> Union[int, Decimal]:
    """
    Spent as a percentage of allocated.

    Args:
        allocated: Allocated amount.
        spent: Spent amount.
        precision: 0 for whole-number dashboard display, 2 for reports.

    Returns:
        int for precision 0, Decimal otherwise. 0 when allocated <= 0.

    >>> utilization_percentage(100000, 30000)
    30
    >>> utilization_percentage(0, 500)
    0
    """
    allocated = _to_decimal(allocated)
    if allocated < 0:
        return _zero(precision)
    try:
        value = _percentage(_to_decimal(spent), allocated)
    except DivisionGuard:
        return _zero(precision)
    return _round(value, precision)


def change_percentage(current: Number, previous: Number) -> Decimal:
    """(current - previous) / previous * 100 to 2 dp; 0 when previous is 0."""
    current, previous = _to_decimal(current), _to_decimal(previous)
    try:
        value = _percentage(current - previous, previous)
    except DivisionGuard:
        return _round(ZERO, 2)
    return _round(value, 2)


def utilization_band(percentage: Number) -> str:
    """Name of the utilization range a percentage falls in."""
    percentage = _to_decimal(percentage)
    for name, upper in UTILIZATION_RANGES:
        if upper is None or percentage <= upper:
            return name
    return UTILIZATION_RANGES[-1][0]


def _rollup(allocations, expenditures) -> Dict[str, Any]:
    totals = allocations.aggregate(
        allocated=Sum('allocated_amount'),
        spent=Sum('spent_amount'),
        allocation_count=Count('id'),
    )
    allocated = totals['allocated'] or ZERO
    spent = totals['spent'] or ZERO
    return {
        'allocated': allocated,
        'spent': spent,
        'remaining': allocated - spent,
        'utilization': utilization_percentage(allocated, spent),
        'allocation_count': totals['allocation_count'],
        'expenditure_count': expenditures.count(),
    }


def department_rollup(department: Department, financial_year: FinancialYear) -> Dict[str, Any]:
    """
    Allocation and spend totals of one department in a financial year.

    Returns:
        Dictionary with allocated, spent, remaining, utilization,
        allocation_count and expenditure_count.
    """
    rollup = _rollup(
        Allocation.objects.filter(department=department, financial_year=financial_year),
        Expenditure.objects.filter(department=department, financial_year=financial_year),
    )
    rollup.update({'department_id': department.pk, 'code': department.code, 'name': department.name})
    return rollup


def budget_head_rollup(budget_head: BudgetHead, financial_year: FinancialYear) -> Dict[str, Any]:
    """Same shape as department_rollup, grouped by budget head."""
    rollup = _rollup(
        Allocation.objects.filter(budget_head=budget_head, financial_year=financial_year),
        Expenditure.objects.filter(budget_head=budget_head, financial_year=financial_year),
    )
    rollup.update({'budget_head_id': budget_head.pk, 'code': budget_head.code, 'name': budget_head.name})
    return rollup


def year_totals(financial_year: Optional[FinancialYear]) -> Optional[Dict[str, Any]]:
    """
    Totals of a financial year for comparison. None when the year does
    not exist.
    """
    if financial_year is None:
        return None
    rollup = _rollup(
        Allocation.objects.filter(financial_year=financial_year),
        Expenditure.objects.filter(financial_year=financial_year),
    )
    rollup['utilization'] = utilization_percentage(rollup['allocated'], rollup['spent'], precision=2)
    return rollup


def _metric_value(totals: Any, metric: Union[str, Callable]) -> Decimal:
    if callable(metric):
        return _to_decimal(metric(totals))
    if isinstance(totals, FinancialYear):
        totals = year_totals(totals)
    return _to_decimal(totals[metric])


def year_over_year_change(current: Any, previous: Any, metric: Union[str, Callable] = 'allocated') -> Dict[str, Any]:
    """
    Change of a metric between two years.

    Args:
        current: Totals of the current year (a year_totals() dict or a FinancialYear).
        previous: Totals of the previous year, or None if absent.
        metric: 'allocated', 'spent', 'utilization', or a callable that
                picks the value from the totals.

    Returns:
        Dictionary with current, previous, change, change_percentage and
        has_data. Absent previous totals give has_data False and a
        'No data' message instead of an error.
    """
    name = metric if isinstance(metric, str) else getattr(metric, '__name__', 'custom')
    if isinstance(metric, str) and metric not in METRICS:
        raise ValueError(f"Unknown metric '{metric}'. Use one of {', '.join(METRICS)}.")

    current_value = _metric_value(current, metric) if current is not None else None
    if previous is None or current is None:
        return {
            'metric': name,
            'current': current_value,
            'previous': None,
            'change': None,
            'change_percentage': None,
            'has_data': False,
            'message': NO_DATA_MESSAGE,
        }

    previous_value = _metric_value(previous, metric)
    return {
        'metric': name,
        'current': current_value,
        'previous': previous_value,
        'change': current_value - previous_value,
        'change_percentage': change_percentage(current_value, previous_value),
        'has_data': True,
        'message': '',
    }


def _breakdown(allocations, group_fields: List[str]) -> List[Dict[str, Any]]:
    rows = allocations.values(*group_fields).annotate(
        allocated=Sum('allocated_amount'),
        spent=Sum('spent_amount'),
        allocation_count=Count('id'),
    ).order_by(*group_fields)
    result = []
    for row in rows:
        allocated = row['allocated'] or ZERO
        spent = row['spent'] or ZERO
        row.update({
            'allocated': allocated,
            'spent': spent,
            'remaining': allocated - spent,
            'utilization': utilization_percentage(allocated, spent, precision=2),
        })
        result.append(row)
    return result


def _department_breakdown(allocations) -> List[Dict[str, Any]]:
    return _breakdown(allocations, ['department_id', 'department__code', 'department__name'])


def _budget_head_breakdown(allocations) -> List[Dict[str, Any]]:
    return _breakdown(allocations, ['budget_head_id', 'budget_head__code', 'budget_head__name'])


def get_allocation_stats(
    financial_year: Optional[FinancialYear] = None,
    department: Optional[Department] = None,
    budget_head: Optional[BudgetHead] = None
) -> Dict[str, Any]:
    """
    Allocation summary with a department breakdown.

    Args:
        financial_year: Restrict to a year (all years if None).
        department: Restrict to a department.
        budget_head: Restrict to a budget head.

    Returns:
        Dictionary with 'summary' (allocated, spent, remaining,
        utilization, allocation_count) and 'department_breakdown'.
    """
    allocations = Allocation.objects.all()
    if financial_year is not None:
        allocations = allocations.filter(financial_year=financial_year)
    if department is not None:
        allocations = allocations.filter(department=department)
    if budget_head is not None:
        allocations = allocations.filter(budget_head=budget_head)

    totals = allocations.aggregate(
        allocated=Sum('allocated_amount'),
        spent=Sum('spent_amount'),
        allocation_count=Count('id'),
    )
    allocated = totals['allocated'] or ZERO
    spent = totals['spent'] or ZERO
    return {
        'summary': {
            'allocated': allocated,
            'spent': spent,
            'remaining': allocated - spent,
            'utilization': utilization_percentage(allocated, spent, precision=2),
            'allocation_count': totals['allocation_count'],
        },
        'department_breakdown': _department_breakdown(allocations),
    }


def _status_breakdown(expenditures) -> Dict[str, Dict[str, Any]]:
    breakdown = {status: {'count': 0, 'amount': ZERO} for status in ExpenditureStatus.values}
    rows = expenditures.values('status').annotate(count=Count('id'), amount=Sum('bill_amount')).order_by()
    for row in rows:
        breakdown[row['status']] = {'count': row['count'], 'amount': row['amount'] or ZERO}
    return breakdown


def _monthly_trend(expenditures) -> List[Dict[str, Any]]:
    """Approved spend per bill month."""
    rows = expenditures.filter(status=ExpenditureStatus.APPROVED).annotate(
        month=TruncMonth('bill_date')
    ).values('month').annotate(
        amount=Sum('bill_amount'),
        count=Count('id'),
    ).order_by('month')
    return [
        {'month': row['month'].strftime('%Y-%m'), 'amount': row['amount'] or ZERO, 'count': row['count']}
        for row in rows
    ]


def _utilization_ranges(allocations) -> Dict[str, Dict[str, Any]]:
    ranges = {name: {'count': 0, 'allocated': ZERO, 'departments': []} for name, _upper in UTILIZATION_RANGES}
    for allocation in allocations.select_related('department'):
        band = ranges[utilization_band(
            utilization_percentage(allocation.allocated_amount, allocation.spent_amount, precision=2)
        )]
        band['count'] += 1
        band['allocated'] += allocation.allocated_amount
        if allocation.department.name not in band['departments']:
            band['departments'].append(allocation.department.name)
    return ranges


def get_dashboard_report(financial_year: FinancialYear, include_comparison: bool = False) -> Dict[str, Any]:
    """
    Consolidated dashboard figures for a financial year.

    Returns:
        Dictionary containing:
            - totals: allocated, spent, remaining, utilization, pending and
              verified amounts
            - status_breakdown: count and amount per expenditure status
            - department_breakdown / budget_head_breakdown
            - monthly_trend: approved spend per month
            - utilization_ranges: allocations per utilization band
            - high_utilization_count / low_utilization_count: departments
              at or above 90% and below 50%
            - year_comparison: get_year_comparison() against the previous
              year when include_comparison is True
    """
    allocations = Allocation.objects.filter(financial_year=financial_year)
    expenditures = Expenditure.objects.filter(financial_year=financial_year)

    totals = year_totals(financial_year)
    amounts = expenditures.aggregate(
        pending=Sum('bill_amount', filter=Q(status=ExpenditureStatus.PENDING)),
        verified=Sum('bill_amount', filter=Q(status=ExpenditureStatus.VERIFIED)),
    )
    totals['pending_amount'] = amounts['pending'] or ZERO
    totals['verified_amount'] = amounts['verified'] or ZERO

    departments = _department_breakdown(allocations)
    report = {
        'financial_year': financial_year.year_name,
        'status': financial_year.status,
        'totals': totals,
        'status_breakdown': _status_breakdown(expenditures),
        'department_breakdown': departments,
        'budget_head_breakdown': _budget_head_breakdown(allocations),
        'monthly_trend': _monthly_trend(expenditures),
        'utilization_ranges': _utilization_ranges(allocations),
        'high_utilization_count': sum(1 for d in departments if d['utilization'] >= HIGH_UTILIZATION),
        'low_utilization_count': sum(1 for d in departments if d['utilization'] < LOW_UTILIZATION),
        'year_comparison': None,
    }

    if include_comparison:
        from apps.budgeting.lifecycle import previous_financial_year_label
        report['year_comparison'] = get_year_comparison(
            financial_year.year_name, previous_financial_year_label(financial_year.year_name)
        )
    return report


def _compare_groups(current_rows, previous_rows, key: str, label_fields) -> List[Dict[str, Any]]:
    current_map = {row[key]: row for row in current_rows}
    previous_map = {row[key]: row for row in previous_rows}
    result = []
    for group_id in sorted(set(current_map) | set(previous_map)):
        current = current_map.get(group_id)
        previous = previous_map.get(group_id)
        source = current or previous
        entry = {field: source[name] for field, name in label_fields}
        for metric in METRICS:
            entry[f'{metric}_change'] = year_over_year_change(
                current or _empty_totals(), previous, metric
            )
        result.append(entry)
    return result


def _empty_totals() -> Dict[str, Any]:
    return {'allocated': ZERO, 'spent': ZERO, 'utilization': ZERO}


def get_year_comparison(current_label: str, previous_label: str) -> Dict[str, Any]:
    """
    Compare two financial years overall, per department and per budget head.

    A missing year is reported with has_data False rather than an error.
    """
    current_fy = FinancialYear.objects.filter(year_name=current_label).first()
    previous_fy = FinancialYear.objects.filter(year_name=previous_label).first()

    current_totals = year_totals(current_fy)
    previous_totals = year_totals(previous_fy)

    overall = {
        metric: year_over_year_change(current_totals, previous_totals, metric)
        for metric in METRICS
    }

    def rows(fy, breakdown):
        if fy is None:
            return []
        return breakdown(Allocation.objects.filter(financial_year=fy))

    department_labels = (('department_id', 'department_id'), ('code', 'department__code'),
                         ('name', 'department__name'))
    head_labels = (('budget_head_id', 'budget_head_id'), ('code', 'budget_head__code'),
                   ('name', 'budget_head__name'))

    if previous_fy is None:
        department_comparison = []
        budget_head_comparison = []
    else:
        department_comparison = _compare_groups(
            rows(current_fy, _department_breakdown), rows(previous_fy, _department_breakdown),
            'department_id', department_labels
        )
        budget_head_comparison = _compare_groups(
            rows(current_fy, _budget_head_breakdown), rows(previous_fy, _budget_head_breakdown),
            'budget_head_id', head_labels
        )

    return {
        'current_year': current_label,
        'previous_year': previous_label,
        'has_data': current_totals is not None and previous_totals is not None,
        'overall': overall,
        'department_comparison': department_comparison,
        'budget_head_comparison': budget_head_comparison,
    }
