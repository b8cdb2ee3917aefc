"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: JSON API views for allocation statistics, the dashboard
             report, rollups and year comparison.
-------------------------------------------------------------------------
"""
from typing import Optional

from django.http import HttpRequest, JsonResponse
from django.shortcuts import get_object_or_404

from apps.core.api import JsonApiView, api_response
from apps.budgeting.lifecycle import get_current_financial_year, previous_financial_year_label
from apps.budgeting.models import BudgetHead, Department, FinancialYear
from apps.reporting import services
from apps.users.models import UserRole


def _financial_year(request: HttpRequest) -> Optional[FinancialYear]:
    """Year from ?year=YYYY-YY, else the current year."""
    label = request.GET.get('year')
    if label:
        return get_object_or_404(FinancialYear, year_name=label)
    return get_current_financial_year()


def _scoped_department(request: HttpRequest) -> Optional[Department]:
    """Department users only ever see their own department."""
    user = request.user
    if user.role in (UserRole.DEPARTMENT, UserRole.HOD) and not user.is_superuser:
        return user.department
    if request.GET.get('department'):
        return get_object_or_404(Department, pk=request.GET['department'])
    return None


class AllocationStatsApiView(JsonApiView):
    """GET ?year=&department=&budget_head="""

    def get(self, request: HttpRequest) -> JsonResponse:
        label = request.GET.get('year')
        fy = get_object_or_404(FinancialYear, year_name=label) if label else None
        budget_head = None
        if request.GET.get('budget_head'):
            budget_head = get_object_or_404(BudgetHead, pk=request.GET['budget_head'])
        stats = services.get_allocation_stats(
            financial_year=fy,
            department=_scoped_department(request),
            budget_head=budget_head,
        )
        return api_response(stats)


class DashboardReportApiView(JsonApiView):
    """GET ?year=&include_comparison=true"""

    def get(self, request: HttpRequest) -> JsonResponse:
        fy = _financial_year(request)
        if fy is None:
            return api_response(None, message='No financial year found.')
        include_comparison = request.GET.get('include_comparison') == 'true'
        return api_response(services.get_dashboard_report(fy, include_comparison=include_comparison))


class YearComparisonApiView(JsonApiView):
    """GET ?current=YYYY-YY&previous=YYYY-YY (previous defaults to the year before)."""

    def get(self, request: HttpRequest) -> JsonResponse:
        current = request.GET.get('current')
        if not current:
            fy = get_current_financial_year()
            if fy is None:
                return api_response(None, message='No financial year found.')
            current = fy.year_name
        previous = request.GET.get('previous') or previous_financial_year_label(current)
        return api_response(services.get_year_comparison(current, previous))


class DepartmentRollupApiView(JsonApiView):

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        department = get_object_or_404(Department, pk=pk)
        scoped = _scoped_department(request)
        if scoped is not None and scoped.pk != department.pk:
            return api_response(None, status=404, message='Department not found.')
        fy = _financial_year(request)
        if fy is None:
            return api_response(None, message='No financial year found.')
        return api_response(services.department_rollup(department, fy))


class BudgetHeadRollupApiView(JsonApiView):

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        budget_head = get_object_or_404(BudgetHead, pk=pk)
        fy = _financial_year(request)
        if fy is None:
            return api_response(None, message='No financial year found.')
        return api_response(services.budget_head_rollup(budget_head, fy))
