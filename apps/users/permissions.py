"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Role checks for the JSON API views. Workflow-level role
             rules for bills live in apps.expenditure.workflows.
-------------------------------------------------------------------------
"""
from typing import Any, List

from apps.core.exceptions import UnauthorizedRoleException


def has_role(user: Any, roles: List[str]) -> bool:
    """
    Check if user has any of the specified roles.

    Args:
        user: The user object to check.
        roles: List of role codes to check against.

    Returns:
        True if user has any of the specified roles or is superuser.
    """
    if not user.is_authenticated:
        return False
    if user.is_superuser:
        return True
    return user.has_any_role(roles)


def require_role(user: Any, roles: List[str], action: str = "perform this action") -> None:
    """
    Raise UnauthorizedRoleException unless the user holds one of the roles.

    Args:
        user: The acting user.
        roles: Allowed role codes.
        action: Description used in the error message.
    """
    if not has_role(user, roles):
        raise UnauthorizedRoleException(
            f"Only {', '.join(roles)} can {action}.",
            details={'required_roles': list(roles), 'role': getattr(user, 'role', None)}
        )

