"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Notification receivers for expenditure workflow events and
             the budget utilization alert. Runs after commit; failures
             are logged and never undo the decision that raised them.
-------------------------------------------------------------------------
"""
import logging
from django.contrib.auth import get_user_model
from django.dispatch import receiver
from django.urls import reverse

from apps.core.events import EventType, domain_event, emit_event
from apps.core.models import NotificationCategory
from apps.core.services import NotificationService
from apps.expenditure.models import Expenditure
from apps.expenditure.workflows import get_approval_chain
from apps.users.models import UserRole

logger = logging.getLogger(__name__)


@receiver(domain_event, dispatch_uid='expenditure_workflow_notifications')
def expenditure_workflow_notification(sender, event_type: str, instance, actor=None,
                                      actor_role: str = '', payload=None, **kwargs):
    """
    Send notifications when an expenditure moves through the workflow.

    Triggers on:
    - submitted: Notify the department's HOD
    - verified: Notify approvers
    - approved: Notify the submitter, then check the budget alert
    - rejected: Notify the submitter with the remarks
    """
    if sender is not Expenditure:
        return

    handlers = {
        EventType.EXPENDITURE_SUBMITTED: _notify_on_submit,
        EventType.EXPENDITURE_VERIFIED: _notify_on_verified,
        EventType.EXPENDITURE_APPROVED: _notify_on_approved,
        EventType.EXPENDITURE_REJECTED: _notify_on_rejected,
    }
    handler = handlers.get(event_type)
    if handler is None:
        return

    try:
        link = reverse('expenditure:expenditure_detail', kwargs={'pk': instance.pk})
        handler(instance, link, actor, payload or {})
        logger.info(
            f"Notification sent for bill {instance.bill_number}: {event_type}",
            extra={
                'expenditure_id': instance.pk,
                'bill_number': instance.bill_number,
                'event_type': event_type,
            }
        )
    except Exception as e:
        logger.error(
            f"Failed to send notification for bill {instance.bill_number} (ID: {instance.pk})",
            exc_info=True,
            extra={
                'expenditure_id': instance.pk,
                'event_type': event_type,
                'error': str(e),
            }
        )


def _active_users(**filters):
    return get_user_model().objects.filter(is_active=True, **filters)


def _notify_on_submit(expenditure: Expenditure, link: str, actor, payload: dict) -> None:
    department = expenditure.department
    recipients = list(_active_users(department=department, role=UserRole.HOD))
    if department.hod_id and all(u.pk != department.hod_id for u in recipients):
        recipients.append(department.hod)
    if not recipients:
        logger.warning(f"No HOD found for department {department.code}; submit notification skipped")
        return

    title = "Resubmitted Bill Pending Verification" if expenditure.is_resubmission else "Bill Pending Verification"
    NotificationService.send_bulk_notification(
        recipients=recipients,
        title=f"{title}: {expenditure.bill_number}",
        message=(
            f"Bill {expenditure.bill_number} from {expenditure.party_name} "
            f"for Rs {expenditure.bill_amount:,.2f} requires your verification."
        ),
        link=link,
        category=NotificationCategory.WORKFLOW,
        icon='bi-file-earmark-text'
    )


def _notify_on_verified(expenditure: Expenditure, link: str, actor, payload: dict) -> None:
    approvers = _active_users(role__in=get_approval_chain()['approve'])
    NotificationService.send_bulk_notification(
        recipients=approvers,
        title=f"Bill Pending Approval: {expenditure.bill_number}",
        message=(
            f"Bill {expenditure.bill_number} of {expenditure.department.name} "
            f"for Rs {expenditure.bill_amount:,.2f} has been verified and awaits approval."
        ),
        link=link,
        category=NotificationCategory.WORKFLOW,
        icon='bi-check2-square'
    )


def _notify_on_approved(expenditure: Expenditure, link: str, actor, payload: dict) -> None:
    NotificationService.send_notification(
        recipient=expenditure.submitted_by,
        title=f"Bill Approved: {expenditure.bill_number}",
        message=(
            f"Your bill {expenditure.bill_number} for Rs {expenditure.bill_amount:,.2f} "
            f"has been approved."
        ),
        link=link,
        category=NotificationCategory.WORKFLOW,
        icon='bi-check-circle'
    )
    check_budget_threshold(expenditure, payload)


def _notify_on_rejected(expenditure: Expenditure, link: str, actor, payload: dict) -> None:
    remarks = payload.get('remarks') or ''
    NotificationService.send_notification(
        recipient=expenditure.submitted_by,
        title=f"Bill Rejected: {expenditure.bill_number}",
        message=(
            f"Your bill {expenditure.bill_number} was rejected. Remarks: {remarks}. "
            f"You may correct and resubmit it."
        ),
        link=link,
        category=NotificationCategory.ALERT,
        icon='bi-x-circle'
    )


def check_budget_threshold(expenditure: Expenditure, payload: dict) -> bool:
    """
    Alert the budget office and principal when this approval pushed the
    allocation's utilization to or past CBMS_BUDGET_ALERT_THRESHOLD.

    The crossing is decided by the approval itself under the allocation
    row lock and arrives as payload['threshold_crossed'].

    Returns:
        True if the alert was raised.
    """
    if not payload.get('threshold_crossed'):
        return False

    allocation = expenditure.allocation
    current = payload.get('utilization_percentage')
    recipients = _active_users(role__in=[UserRole.OFFICE, UserRole.PRINCIPAL])
    NotificationService.send_bulk_notification(
        recipients=recipients,
        title=f"Budget Alert: {allocation.department.code} / {allocation.budget_head.code}",
        message=(
            f"{allocation.department.name} has used {current}% of its "
            f"{allocation.budget_head.name} allocation for {allocation.financial_year.year_name}. "
            f"Remaining: Rs {payload.get('remaining_amount'):,.2f}."
        ),
        link='',
        category=NotificationCategory.ALERT,
        icon='bi-exclamation-triangle'
    )
    emit_event(
        EventType.BUDGET_THRESHOLD_REACHED, allocation,
        payload={
            'utilization_percentage': current,
            'threshold': payload.get('threshold'),
            'remaining_amount': payload.get('remaining_amount'),
        }
    )
    return True
