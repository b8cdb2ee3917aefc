"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Custom User model with role-based access control.
             Implements the Submitter/Verifier/Approver hierarchy of the
             college (Department -> HOD -> Vice Principal/Principal).
-------------------------------------------------------------------------
"""
import uuid
from typing import Iterable
from django.contrib.auth.models import AbstractUser
from django.db import models
from django.utils.translation import gettext_lazy as _


class UserRole(models.TextChoices):
    """
    Enumeration of user roles in the college hierarchy.

    - Department: Submits bills against its allocations (Maker)
    - HOD: Verifies bills of their own department (Checker)
    - Vice Principal: Approves bills up to the configured limit
    - Principal: Final approval authority, manages the financial year
    - Office: Budget office, creates allocations and records income
    - Auditor: Read-only access to reports and the audit trail
    - Admin: System configuration
    """

    ADMIN = 'admin', _('System Administrator')
    PRINCIPAL = 'principal', _('Principal')
    VICE_PRINCIPAL = 'vice_principal', _('Vice Principal')
    OFFICE = 'office', _('Budget Office')
    HOD = 'hod', _('Head of Department')
    DEPARTMENT = 'department', _('Department User')
    AUDITOR = 'auditor', _('Auditor')


class CustomUser(AbstractUser):
    """
    Custom User model for CBMS.

    Attributes:
        role: User's role in the college hierarchy.
        department: Department this user belongs to (department and hod roles).
        designation: Official job title.
        phone: Contact phone number.
    """

    public_id = models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        unique=True,
        db_index=True,
        verbose_name=_('Public ID')
    )
    role = models.CharField(
        max_length=20,
        choices=UserRole.choices,
        default=UserRole.DEPARTMENT,
        db_index=True,
        verbose_name=_('Role')
    )
    department = models.ForeignKey(
        'budgeting.Department',
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name='users',
        verbose_name=_('Department'),
        help_text=_('Department this user submits or verifies bills for.')
    )
    designation = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_('Designation')
    )
    phone = models.CharField(
        max_length=20,
        blank=True,
        verbose_name=_('Phone Number')
    )

    class Meta:
        verbose_name = _('User')
        verbose_name_plural = _('Users')
        ordering = ['username']

    def __str__(self) -> str:
        full_name = self.get_full_name()
        return f"{full_name} ({self.get_role_display()})" if full_name else self.username

    def has_role(self, role: str) -> bool:
        """Check the user's role. Superusers act as admin."""
        if self.is_superuser and role == UserRole.ADMIN:
            return True
        return self.role == role

    def has_any_role(self, roles: Iterable[str]) -> bool:
        """Check if the user holds any of the given roles."""
        return any(self.has_role(role) for role in roles)

    def is_admin(self) -> bool:
        return self.is_superuser or self.role == UserRole.ADMIN
