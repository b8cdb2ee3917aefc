"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Unit tests for the core module - notification service,
             audit trail, domain events and the JSON API base.
-------------------------------------------------------------------------
"""
from django.test import TestCase
from django.contrib.auth import get_user_model

from apps.core.events import EventType, domain_event, emit_event
from apps.core.exceptions import (
    BudgetExceededException,
    CBMSException,
    SelfApprovalException,
    UnauthorizedRoleException,
    YearClosedException,
    YearLockedException,
)
from apps.core.models import AuditLog, Notification, NotificationCategory
from apps.core.services import AuditService, NotificationService
from apps.users.models import UserRole


User = get_user_model()


class NotificationServiceTests(TestCase):
    """Tests for NotificationService class."""

    def setUp(self):
        """Set up test data."""
        self.office = User.objects.create_user(
            username='office', password='pass', role=UserRole.OFFICE
        )
        self.principal = User.objects.create_user(
            username='principal', password='pass', role=UserRole.PRINCIPAL
        )
        self.hod = User.objects.create_user(
            username='hod', password='pass', role=UserRole.HOD
        )

    def test_send_notification_creates_notification(self):
        """Test that send_notification creates a notification."""
        notification = NotificationService.send_notification(
            recipient=self.office,
            title="Test Notification",
            message="This is a test notification",
            link="/test/link/",
            category=NotificationCategory.ALERT,
            icon='bi-exclamation-triangle'
        )

        self.assertIsNotNone(notification.pk)
        self.assertEqual(notification.recipient, self.office)
        self.assertEqual(notification.title, "Test Notification")
        self.assertEqual(notification.link, "/test/link/")
        self.assertEqual(notification.category, NotificationCategory.ALERT)
        self.assertFalse(notification.is_read)

    def test_send_notification_defaults(self):
        """Test that send_notification uses default values."""
        notification = NotificationService.send_notification(
            recipient=self.office,
            title="Simple Notification",
            message="Simple message"
        )

        self.assertEqual(notification.link, '')
        self.assertEqual(notification.category, NotificationCategory.WORKFLOW)
        self.assertEqual(notification.icon, 'bi-bell')

    def test_send_bulk_notification(self):
        """Test sending notifications to multiple recipients."""
        notifications = NotificationService.send_bulk_notification(
            recipients=[self.office, self.principal, self.hod],
            title="Bulk Notification",
            message="This is sent to multiple users",
            category=NotificationCategory.SYSTEM,
        )

        self.assertEqual(len(notifications), 3)
        self.assertEqual({n.recipient for n in notifications}, {self.office, self.principal, self.hod})
        for notification in notifications:
            self.assertEqual(notification.category, NotificationCategory.SYSTEM)

    def test_get_unread_count(self):
        """Test getting unread notification count."""
        NotificationService.send_notification(recipient=self.office, title="One", message="1")
        NotificationService.send_notification(recipient=self.office, title="Two", message="2")
        read = NotificationService.send_notification(recipient=self.office, title="Three", message="3")
        read.is_read = True
        read.save()

        self.assertEqual(NotificationService.get_unread_count(self.office), 2)
        self.assertEqual(NotificationService.get_unread_count(self.principal), 0)

    def test_mark_all_as_read_idempotent(self):
        """Test that marking all as read is idempotent."""
        for i in range(3):
            NotificationService.send_notification(
                recipient=self.office, title=f"Notification {i}", message="..."
            )

        self.assertEqual(NotificationService.mark_all_as_read(self.office), 3)
        self.assertEqual(NotificationService.mark_all_as_read(self.office), 0)
        self.assertEqual(NotificationService.get_unread_count(self.office), 0)


class AuditTrailTests(TestCase):
    """Tests for AuditService, AuditLog immutability and the event receiver."""

    def setUp(self):
        self.user = User.objects.create_user(
            username='principal', password='pass', role=UserRole.PRINCIPAL
        )

    def test_record_uses_actor_role_when_not_given(self):
        """Test that the actor's own role is stored when none is passed."""
        entry = AuditService.record('financial_year.locked', self.user, actor=self.user)

        self.assertEqual(entry.actor_role, UserRole.PRINCIPAL)
        self.assertEqual(entry.target_entity, 'CustomUser')
        self.assertEqual(entry.target_id, str(self.user.pk))

    def test_audit_log_cannot_be_modified(self):
        """Test that saved audit entries are immutable."""
        entry = AuditService.record('record.deactivated', self.user)
        entry.event_type = 'tampered'

        with self.assertRaises(ValueError):
            entry.save()
        with self.assertRaises(ValueError):
            entry.delete()

    def test_history_for_returns_entries_of_one_record(self):
        other = User.objects.create_user(username='other', password='pass')
        AuditService.record('record.deactivated', self.user)
        AuditService.record('record.deactivated', other)

        self.assertEqual(AuditService.history_for(self.user).count(), 1)

    def test_emit_event_dispatches_after_commit(self):
        """Test that events are held until commit and then audited."""
        received = []

        def listener(sender, event_type, instance, **kwargs):
            received.append(event_type)

        domain_event.connect(listener, dispatch_uid='test_listener')
        self.addCleanup(domain_event.disconnect, dispatch_uid='test_listener')

        with self.captureOnCommitCallbacks(execute=False) as callbacks:
            emit_event(EventType.RECORD_DEACTIVATED, self.user, actor=self.user,
                       payload={'reason': 'test'})
        self.assertEqual(received, [])
        self.assertEqual(len(callbacks), 1)

        callbacks[0]()
        self.assertEqual(received, ['record.deactivated'])
        entry = AuditLog.objects.get(event_type=EventType.RECORD_DEACTIVATED)
        self.assertEqual(entry.actor, self.user)
        self.assertEqual(entry.details, {'reason': 'test'})


class ExceptionTests(TestCase):
    """Tests for the domain exception hierarchy."""

    def test_to_dict(self):
        exc = BudgetExceededException("Too much", details={'remaining': '10.00'})

        self.assertEqual(exc.to_dict(), {
            'error_code': 'ERR_BUDGET_EXCEEDED',
            'message': 'Too much',
            'details': {'remaining': '10.00'},
        })

    def test_default_message(self):
        exc = UnauthorizedRoleException()

        self.assertTrue(exc.message)
        self.assertIsInstance(exc, CBMSException)

    def test_hierarchy(self):
        """Closed years are a stricter form of locked years."""
        self.assertTrue(issubclass(YearClosedException, YearLockedException))
        self.assertTrue(issubclass(SelfApprovalException, UnauthorizedRoleException))


class NotificationApiTests(TestCase):
    """Tests for the notification inbox endpoints."""

    def setUp(self):
        self.user = User.objects.create_user(username='office', password='pass', role=UserRole.OFFICE)
        NotificationService.send_notification(recipient=self.user, title="Hello", message="World")

    def test_requires_login(self):
        response = self.client.get('/core/api/notifications/')
        self.assertEqual(response.status_code, 403)

    def test_list_and_mark_read(self):
        self.client.force_login(self.user)

        response = self.client.get('/core/api/notifications/')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['unread_count'], 1)

        response = self.client.post('/core/api/notifications/mark-all-read/')
        self.assertEqual(response.json()['data']['marked'], 1)
        self.assertFalse(Notification.objects.filter(is_read=False).exists())
