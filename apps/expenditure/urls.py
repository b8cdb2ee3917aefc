"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: URL configuration for the expenditure module.
-------------------------------------------------------------------------
"""
from django.urls import path

from apps.expenditure.views_api import (
    ApprovalQueueApiView,
    ExpenditureDecisionApiView,
    ExpenditureDetailApiView,
    ExpenditureListApiView,
    ExpenditureResubmitApiView,
)

app_name = 'expenditure'

urlpatterns = [
    path('api/expenditures/', ExpenditureListApiView.as_view(), name='expenditure_list'),
    path('api/expenditures/queue/', ApprovalQueueApiView.as_view(), name='approval_queue'),
    path('api/expenditures/<int:pk>/', ExpenditureDetailApiView.as_view(), name='expenditure_detail'),
    path('api/expenditures/<int:pk>/decision/', ExpenditureDecisionApiView.as_view(), name='expenditure_decision'),
    path('api/expenditures/<int:pk>/resubmit/', ExpenditureResubmitApiView.as_view(), name='expenditure_resubmit'),
]
