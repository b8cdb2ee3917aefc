"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: URL configuration for the budgeting module.
-------------------------------------------------------------------------
"""
from django.urls import path

from apps.budgeting.views_api import (
    AllocationDetailApiView,
    AllocationHistoryApiView,
    AllocationListApiView,
    AllocationRollbackApiView,
    BudgetHeadDeactivateApiView,
    BudgetHeadListApiView,
    CurrentFinancialYearApiView,
    DepartmentDeactivateApiView,
    DepartmentListApiView,
    FinancialYearDetailApiView,
    FinancialYearListApiView,
    FinancialYearTransitionApiView,
    IncomeListApiView,
    IncomeStatusApiView,
    ProposalDecisionApiView,
    ProposalDetailApiView,
    ProposalListApiView,
    ProposalResubmitApiView,
    ProposalSubmitApiView,
)

app_name = 'budgeting'

urlpatterns = [
    # Financial Years
    path('api/financial-years/', FinancialYearListApiView.as_view(), name='financial_year_list'),
    path('api/financial-years/current/', CurrentFinancialYearApiView.as_view(), name='financial_year_current'),
    path('api/financial-years/<int:pk>/', FinancialYearDetailApiView.as_view(), name='financial_year_detail'),
    path('api/financial-years/<int:pk>/activate/',
         FinancialYearTransitionApiView.as_view(action='activate'), name='financial_year_activate'),
    path('api/financial-years/<int:pk>/lock/',
         FinancialYearTransitionApiView.as_view(action='lock'), name='financial_year_lock'),
    path('api/financial-years/<int:pk>/close/',
         FinancialYearTransitionApiView.as_view(action='close'), name='financial_year_close'),
    path('api/financial-years/<int:pk>/recalculate/',
         FinancialYearTransitionApiView.as_view(action='recalculate'), name='financial_year_recalculate'),

    # Master Data
    path('api/departments/', DepartmentListApiView.as_view(), name='department_list'),
    path('api/departments/<int:pk>/deactivate/', DepartmentDeactivateApiView.as_view(), name='department_deactivate'),
    path('api/budget-heads/', BudgetHeadListApiView.as_view(), name='budget_head_list'),
    path('api/budget-heads/<int:pk>/deactivate/', BudgetHeadDeactivateApiView.as_view(), name='budget_head_deactivate'),

    # Allocations
    path('api/allocations/', AllocationListApiView.as_view(), name='allocation_list'),
    path('api/allocations/<int:pk>/', AllocationDetailApiView.as_view(), name='allocation_detail'),
    path('api/allocations/<int:pk>/history/', AllocationHistoryApiView.as_view(), name='allocation_history'),
    path('api/allocations/<int:pk>/rollback/<int:version>/',
         AllocationRollbackApiView.as_view(), name='allocation_rollback'),

    # Budget Proposals
    path('api/proposals/', ProposalListApiView.as_view(), name='proposal_list'),
    path('api/proposals/<int:pk>/', ProposalDetailApiView.as_view(), name='proposal_detail'),
    path('api/proposals/<int:pk>/submit/', ProposalSubmitApiView.as_view(), name='proposal_submit'),
    path('api/proposals/<int:pk>/decision/', ProposalDecisionApiView.as_view(), name='proposal_decision'),
    path('api/proposals/<int:pk>/resubmit/', ProposalResubmitApiView.as_view(), name='proposal_resubmit'),

    # Income
    path('api/incomes/', IncomeListApiView.as_view(), name='income_list'),
    path('api/incomes/<int:pk>/status/', IncomeStatusApiView.as_view(), name='income_status'),
]
