"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: URL routing for core app (notifications).
-------------------------------------------------------------------------
"""
from django.urls import path

from apps.core.views import NotificationListApiView, NotificationMarkAllReadApiView

app_name = 'core'

urlpatterns = [
    path('api/notifications/', NotificationListApiView.as_view(), name='notification_list'),
    path('api/notifications/mark-all-read/', NotificationMarkAllReadApiView.as_view(), name='notification_mark_all_read'),
]
