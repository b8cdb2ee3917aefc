"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Centralized logging for budget lifecycle, allocation and
             approval operations.
-------------------------------------------------------------------------
"""
import logging
from typing import Any, Dict

logger = logging.getLogger('budgeting')


def _username(user) -> str:
    return getattr(user, 'username', None) or 'system'


class BudgetLogger:
    """Centralized logging for budget operations"""

    @staticmethod
    def log_year_created(fy, user):
        logger.info(
            f"Financial year created: {fy.year_name} | "
            f"Status: {fy.status} | "
            f"Created by: {_username(user)}",
            extra={
                'financial_year_id': fy.pk,
                'status': fy.status,
                'user_id': getattr(user, 'pk', None),
            }
        )

    @staticmethod
    def log_year_transition(fy, from_status: str, user, remarks: str = ''):
        """Log a lifecycle transition (activate, lock or close)"""
        logger.warning(
            f"Financial year {fy.year_name}: {from_status} -> {fy.status} | "
            f"Remarks: {remarks or '-'} | "
            f"By: {_username(user)}",
            extra={
                'financial_year_id': fy.pk,
                'from_status': from_status,
                'to_status': fy.status,
                'user_id': getattr(user, 'pk', None),
            }
        )

    @staticmethod
    def log_year_recalculated(fy):
        logger.info(
            f"Financial year recalculated: {fy.year_name} | "
            f"Allocated: Rs {fy.total_allocated} | "
            f"Spent: Rs {fy.total_spent} | "
            f"Utilization: {fy.utilization_percentage}%",
            extra={
                'financial_year_id': fy.pk,
                'total_allocated': str(fy.total_allocated),
                'total_spent': str(fy.total_spent),
            }
        )

    @staticmethod
    def log_allocation_saved(allocation, user, created: bool):
        """Log allocation creation or revision"""
        action = 'created' if created else 'updated'
        logger.info(
            f"Allocation {action}: {allocation.department.code}/{allocation.budget_head.code} | "
            f"Year: {allocation.financial_year.year_name} | "
            f"Amount: Rs {allocation.allocated_amount} | "
            f"By: {_username(user)}",
            extra={
                'allocation_id': allocation.pk,
                'amount': str(allocation.allocated_amount),
                'user_id': getattr(user, 'pk', None),
            }
        )

    @staticmethod
    def log_allocation_rollback(allocation, to_version: int, new_version: int, user):
        logger.warning(
            f"Allocation rolled back: {allocation.department.code}/{allocation.budget_head.code} | "
            f"To version: {to_version} (now v{new_version}) | "
            f"Amount: Rs {allocation.allocated_amount} | "
            f"By: {_username(user)}",
            extra={
                'allocation_id': allocation.pk,
                'rolled_back_to_version': to_version,
                'user_id': getattr(user, 'pk', None),
            }
        )

    @staticmethod
    def log_proposal_transition(proposal, from_status: str, user, role: str = ''):
        """Log a budget proposal moving between statuses"""
        log = logger.warning if proposal.status == 'rejected' else logger.info
        log(
            f"Proposal #{proposal.pk} ({proposal.department.code}, {proposal.financial_year.year_name}): "
            f"{from_status} -> {proposal.status} | "
            f"Total: Rs {proposal.total_proposed_amount} | "
            f"By: {_username(user)}{f' ({role})' if role else ''}",
            extra={
                'proposal_id': proposal.pk,
                'from_status': from_status,
                'to_status': proposal.status,
                'user_id': getattr(user, 'pk', None),
            }
        )

    @staticmethod
    def log_expenditure_submitted(expenditure, user):
        logger.info(
            f"Expenditure submitted: {expenditure.bill_number} | "
            f"Department: {expenditure.department.code} | "
            f"Amount: Rs {expenditure.bill_amount} | "
            f"Submitted by: {_username(user)}",
            extra={
                'expenditure_id': expenditure.pk,
                'allocation_id': expenditure.allocation_id,
                'amount': str(expenditure.bill_amount),
                'user_id': getattr(user, 'pk', None),
                'is_resubmission': expenditure.is_resubmission,
            }
        )

    @staticmethod
    def log_decision(expenditure, user, role: str, decision: str):
        """Log an approval chain decision"""
        log = logger.warning if decision == 'reject' else logger.info
        log(
            f"Expenditure {decision}: {expenditure.bill_number} | "
            f"Status: {expenditure.status} | "
            f"Amount: Rs {expenditure.bill_amount} | "
            f"By: {_username(user)} ({role})",
            extra={
                'expenditure_id': expenditure.pk,
                'decision': decision,
                'role': role,
                'user_id': getattr(user, 'pk', None),
            }
        )

    @staticmethod
    def log_overspend(allocation, amount, policy: str):
        logger.warning(
            f"Overspend on allocation #{allocation.pk}: "
            f"Remaining Rs {allocation.remaining_amount}, requested Rs {amount} | "
            f"Policy: {policy}",
            extra={
                'allocation_id': allocation.pk,
                'amount': str(amount),
                'policy': policy,
            }
        )

    @staticmethod
    def log_error(operation: str, error: Exception, context: Dict[str, Any]):
        """Log errors with context"""
        logger.error(
            f"Budget error in {operation}: {str(error)}",
            extra=context,
            exc_info=True
        )
