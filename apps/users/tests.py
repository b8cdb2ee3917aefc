"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Unit tests for user roles and permission helpers.
-------------------------------------------------------------------------
"""
from django.contrib.auth import get_user_model
from django.contrib.auth.models import AnonymousUser
from django.test import TestCase

from apps.core.exceptions import UnauthorizedRoleException
from apps.users.models import UserRole
from apps.users.permissions import has_role, require_role


User = get_user_model()


class CustomUserRoleTests(TestCase):
    """Tests for role checks on CustomUser."""

    def setUp(self):
        self.hod = User.objects.create_user(username='hod', password='pass', role=UserRole.HOD)
        self.superuser = User.objects.create_superuser(username='root', password='pass')

    def test_default_role_is_department(self):
        user = User.objects.create_user(username='clerk', password='pass')
        self.assertEqual(user.role, UserRole.DEPARTMENT)

    def test_has_role(self):
        self.assertTrue(self.hod.has_role(UserRole.HOD))
        self.assertFalse(self.hod.has_role(UserRole.PRINCIPAL))

    def test_has_any_role(self):
        self.assertTrue(self.hod.has_any_role([UserRole.PRINCIPAL, UserRole.HOD]))
        self.assertFalse(self.hod.has_any_role([UserRole.OFFICE]))

    def test_superuser_acts_as_admin_only(self):
        """Test that superusers are admins but do not inherit workflow roles."""
        self.assertTrue(self.superuser.is_admin())
        self.assertTrue(self.superuser.has_role(UserRole.ADMIN))
        self.assertFalse(self.superuser.has_role(UserRole.HOD))
        self.assertFalse(self.hod.is_admin())

    def test_str_uses_full_name_and_role(self):
        self.hod.first_name = 'Sana'
        self.hod.last_name = 'Khan'
        self.assertEqual(str(self.hod), 'Sana Khan (Head of Department)')


class PermissionHelperTests(TestCase):
    """Tests for has_role and require_role."""

    def setUp(self):
        self.office = User.objects.create_user(username='office', password='pass', role=UserRole.OFFICE)

    def test_anonymous_user_has_no_role(self):
        self.assertFalse(has_role(AnonymousUser(), [UserRole.OFFICE]))

    def test_superuser_passes_every_check(self):
        root = User.objects.create_superuser(username='root', password='pass')
        self.assertTrue(has_role(root, [UserRole.PRINCIPAL]))

    def test_require_role_passes(self):
        require_role(self.office, [UserRole.OFFICE, UserRole.PRINCIPAL], "create allocations")

    def test_require_role_raises_with_details(self):
        with self.assertRaises(UnauthorizedRoleException) as ctx:
            require_role(self.office, [UserRole.PRINCIPAL], "lock financial years")

        self.assertIn('lock financial years', ctx.exception.message)
        self.assertEqual(ctx.exception.details['role'], UserRole.OFFICE)
