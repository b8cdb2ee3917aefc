"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Notification inbox API for the current user.
-------------------------------------------------------------------------
"""
from apps.core.api import JsonApiView, api_response
from apps.core.models import Notification
from apps.core.services import NotificationService


class NotificationListApiView(JsonApiView):
    """Recent notifications and unread count for the current user."""

    def get(self, request):
        limit = min(int(request.GET.get('limit', 20)), 100)
        notifications = Notification.objects.filter(recipient=request.user)[:limit]
        return api_response({
            'unread_count': NotificationService.get_unread_count(request.user),
            'notifications': [
                {
                    'id': n.pk,
                    'title': n.title,
                    'message': n.message,
                    'link': n.link,
                    'category': n.category,
                    'icon': n.icon,
                    'is_read': n.is_read,
                    'created_at': n.created_at,
                }
                for n in notifications
            ],
        })


class NotificationMarkAllReadApiView(JsonApiView):
    """Mark every notification of the current user as read."""

    def post(self, request):
        count = NotificationService.mark_all_as_read(request.user)
        return api_response({'marked': count})
