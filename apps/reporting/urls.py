"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: URL configuration for the reporting module.
-------------------------------------------------------------------------
"""
from django.urls import path

from apps.reporting.views_api import (
    AllocationStatsApiView,
    BudgetHeadRollupApiView,
    DashboardReportApiView,
    DepartmentRollupApiView,
    YearComparisonApiView,
)

app_name = 'reporting'

urlpatterns = [
    path('api/allocation-stats/', AllocationStatsApiView.as_view(), name='allocation_stats'),
    path('api/dashboard/', DashboardReportApiView.as_view(), name='dashboard_report'),
    path('api/year-comparison/', YearComparisonApiView.as_view(), name='year_comparison'),
    path('api/departments/<int:pk>/rollup/', DepartmentRollupApiView.as_view(), name='department_rollup'),
    path('api/budget-heads/<int:pk>/rollup/', BudgetHeadRollupApiView.as_view(), name='budget_head_rollup'),
]
