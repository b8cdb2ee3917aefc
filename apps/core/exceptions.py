"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Custom exceptions for the CBMS system. These provide
             specific error codes for budget, lifecycle and approval
             workflow violations.
-------------------------------------------------------------------------
"""
from typing import Optional


class CBMSException(Exception):
    """Base exception for all CBMS specific errors."""

    error_code: str = "ERR_CBMS_GENERIC"
    default_message: str = "An error occurred in the CBMS system."

    def __init__(self, message: Optional[str] = None, details: Optional[dict] = None) -> None:
        """
        Initialize CBMS exception.

        Args:
            message: Custom error message. If None, uses default_message.
            details: Additional context dictionary for debugging.
        """
        self.message = message or self.default_message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> dict:
        """Convert exception to dictionary for API responses."""
        return {
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details
        }


# Budget-related Exceptions
class BudgetExceededException(CBMSException):
    """Raised when a transaction exceeds the remaining allocation."""

    error_code = "ERR_BUDGET_EXCEEDED"
    default_message = "The requested amount exceeds the remaining budget for this allocation."


class DuplicateAllocationException(CBMSException):
    """Raised when an allocation already exists for department, head and year."""

    error_code = "ERR_DUPLICATE_ALLOCATION"
    default_message = "An allocation already exists for this department and budget head in this financial year."


class InactiveRecordException(CBMSException):
    """Raised when a deactivated department or budget head is referenced."""

    error_code = "ERR_INACTIVE_RECORD"
    default_message = "The selected department or budget head is not active."


# Financial Year Lifecycle Exceptions
class YearLockedException(CBMSException):
    """Raised when an operation is blocked because the financial year is locked."""

    error_code = "ERR_YEAR_LOCKED"
    default_message = "This financial year is locked. New allocations cannot be created."


class YearClosedException(YearLockedException):
    """Raised when an operation targets a closed (immutable) financial year."""

    error_code = "ERR_YEAR_CLOSED"
    default_message = "This financial year is closed. All data is immutable."


class AlreadyLockedException(CBMSException):
    """Raised when locking a financial year that is already locked."""

    error_code = "ERR_ALREADY_LOCKED"
    default_message = "Financial year is already locked."


class AlreadyClosedException(CBMSException):
    """Raised when locking or closing a financial year that is already closed."""

    error_code = "ERR_ALREADY_CLOSED"
    default_message = "Financial year is already closed."


class NotLockedException(CBMSException):
    """Raised when closing a financial year that has not been locked."""

    error_code = "ERR_NOT_LOCKED"
    default_message = "Financial year must be locked before it can be closed."


class DuplicateYearException(CBMSException):
    """Raised when a financial year label already exists."""

    error_code = "ERR_DUPLICATE_YEAR"
    default_message = "This financial year already exists."


class InvalidRangeException(CBMSException):
    """Raised when a financial year's end date is not after its start date."""

    error_code = "ERR_INVALID_RANGE"
    default_message = "End date must be after start date."


class InvalidYearLabelException(CBMSException):
    """Raised when a financial year label does not follow YYYY-YY."""

    error_code = "ERR_INVALID_YEAR_LABEL"
    default_message = "Financial year must be in format YYYY-YY (e.g., 2025-26)."


class ActiveYearConflictException(CBMSException):
    """Raised when activating a year while another year is active."""

    error_code = "ERR_ACTIVE_YEAR_CONFLICT"
    default_message = "Another financial year is already active."


class PendingExpendituresException(CBMSException):
    """Raised when closing a year that still has bills awaiting a decision."""

    error_code = "ERR_PENDING_EXPENDITURES"
    default_message = "Pending expenditures must be approved or rejected before closing the year."


# Workflow-related Exceptions
class WorkflowTransitionException(CBMSException):
    """Raised when an invalid state transition is attempted."""

    error_code = "ERR_INVALID_TRANSITION"
    default_message = "Invalid workflow transition attempted."


class UnauthorizedRoleException(CBMSException):
    """Raised when a user lacks the required role for an action."""

    error_code = "ERR_UNAUTHORIZED_ROLE"
    default_message = "You do not have the required role to perform this action."


class SelfApprovalException(UnauthorizedRoleException):
    """Raised when a user tries to decide on a bill they submitted."""

    error_code = "ERR_SELF_APPROVAL"
    default_message = "You cannot verify or approve your own expenditure (Segregation of Duties)."


class RemarksRequiredException(CBMSException):
    """Raised when a rejection is recorded without remarks."""

    error_code = "ERR_REMARKS_REQUIRED"
    default_message = "Remarks are required when rejecting an expenditure."


class DuplicateBillException(CBMSException):
    """Raised when a bill number is reused within a department."""

    error_code = "ERR_DUPLICATE_BILL"
    default_message = "Bill number already exists for this department."


# Internal Exceptions
class DivisionGuard(CBMSException):
    """
    Raised internally when a percentage has a zero denominator.

    Always caught inside the reporting layer and converted to 0.
    """

    error_code = "ERR_DIVISION_GUARD"
    default_message = "Division by zero guarded."
