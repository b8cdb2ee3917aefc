"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: JSON API views for bill submission, approval decisions,
             resubmission and the approvals queue.
-------------------------------------------------------------------------
"""
from typing import Any, Dict

from django.http import HttpRequest, JsonResponse
from django.shortcuts import get_object_or_404

from apps.core.api import JsonApiView, api_response, parse_iso_date
from apps.core.exceptions import UnauthorizedRoleException
from apps.budgeting.models import Allocation
from apps.expenditure.models import ApprovalStep, Expenditure, ExpenditureStatus
from apps.expenditure.services import (
    apply_decision,
    get_expenditure_history,
    resubmit_expenditure,
    submit_expenditure,
)
from apps.expenditure.workflows import get_user_allowed_actions
from apps.users.models import UserRole
from apps.users.permissions import require_role


SUBMITTER_ROLES = [UserRole.DEPARTMENT, UserRole.HOD]

# Roles limited to their own department's bills
DEPARTMENT_SCOPED_ROLES = (UserRole.DEPARTMENT, UserRole.HOD)


def serialize_step(step: ApprovalStep) -> Dict[str, Any]:
    return {
        'sequence': step.sequence,
        'role': step.role,
        'decision': step.decision,
        'actor': step.actor_id,
        'remarks': step.remarks,
        'timestamp': step.timestamp,
    }


def serialize_expenditure(expenditure: Expenditure, user=None, with_history: bool = False) -> Dict[str, Any]:
    data = {
        'id': expenditure.pk,
        'public_id': expenditure.public_id,
        'bill_number': expenditure.bill_number,
        'bill_date': expenditure.bill_date,
        'bill_amount': expenditure.bill_amount,
        'party_name': expenditure.party_name,
        'expense_details': expenditure.expense_details,
        'reference_budget_register_no': expenditure.reference_budget_register_no,
        'attachments': expenditure.attachments,
        'department': {'id': expenditure.department_id, 'code': expenditure.department.code},
        'budget_head': {'id': expenditure.budget_head_id, 'code': expenditure.budget_head.code},
        'allocation': expenditure.allocation_id,
        'financial_year': expenditure.financial_year.year_name,
        'status': expenditure.status,
        'submitted_by': expenditure.submitted_by_id,
        'submitted_at': expenditure.submitted_at,
        'is_resubmission': expenditure.is_resubmission,
        'original_expenditure': expenditure.original_expenditure_id,
    }
    if user is not None:
        data['allowed_actions'] = get_user_allowed_actions(user, expenditure)
    if with_history:
        history = get_expenditure_history(expenditure)
        data['approval_steps'] = [serialize_step(s) for s in history['steps']]
        data['previous_submissions'] = [e.pk for e in history['previous_submissions']]
        data['resubmissions'] = [e.pk for e in history['resubmissions']]
    return data


def visible_expenditures(user):
    """Bills a user may see: department roles see their own department only."""
    expenditures = Expenditure.objects.select_related(
        'department', 'budget_head', 'financial_year'
    )
    if user.role in DEPARTMENT_SCOPED_ROLES and not user.is_superuser:
        expenditures = expenditures.filter(department_id=user.department_id)
    return expenditures


def _bill_details(body: Dict[str, Any]) -> Dict[str, Any]:
    details = {k: body[k] for k in (
        'bill_number', 'bill_amount', 'party_name', 'expense_details',
        'reference_budget_register_no', 'attachments',
    ) if k in body}
    if body.get('bill_date'):
        details['bill_date'] = parse_iso_date(body['bill_date'], 'bill_date')
    return details


class ExpenditureListApiView(JsonApiView):
    """GET: list bills (?status=, ?year=). POST: submit a bill."""

    def get(self, request: HttpRequest) -> JsonResponse:
        expenditures = visible_expenditures(request.user)
        if request.GET.get('status'):
            expenditures = expenditures.filter(status=request.GET['status'])
        if request.GET.get('year'):
            expenditures = expenditures.filter(financial_year__year_name=request.GET['year'])
        return api_response([serialize_expenditure(e) for e in expenditures[:500]])

    def post(self, request: HttpRequest) -> JsonResponse:
        require_role(request.user, SUBMITTER_ROLES, "submit expenditures")
        body = self.get_body()
        allocation_id = body.get('allocation')
        user = request.user
        if user.role in DEPARTMENT_SCOPED_ROLES and not user.is_superuser:
            allocation = get_object_or_404(Allocation, pk=allocation_id)
            if allocation.department_id != user.department_id:
                raise UnauthorizedRoleException(
                    "You can only submit bills against your own department's allocations."
                )
        expenditure = submit_expenditure(user, allocation_id, _bill_details(body))
        return api_response(
            serialize_expenditure(expenditure, user),
            status=201,
            message='Expenditure submitted successfully.'
        )


class ExpenditureDetailApiView(JsonApiView):

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        expenditure = get_object_or_404(visible_expenditures(request.user), pk=pk)
        return api_response(serialize_expenditure(expenditure, request.user, with_history=True))


class ExpenditureDecisionApiView(JsonApiView):
    """
    POST {decision: verify|approve|reject, remarks, role?}.

    The role defaults to the user's own role.
    """

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        body = self.get_body()
        expenditure = apply_decision(
            pk,
            request.user,
            body.get('role') or request.user.role,
            body.get('decision', ''),
            body.get('remarks', ''),
        )
        expenditure.refresh_from_db()
        return api_response(
            serialize_expenditure(expenditure, request.user, with_history=True),
            message=f"Expenditure {expenditure.status}."
        )


class ExpenditureResubmitApiView(JsonApiView):

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        body = self.get_body()
        revised = _bill_details(body)
        if body.get('allocation'):
            revised['allocation_id'] = body['allocation']
        expenditure = resubmit_expenditure(pk, request.user, revised)
        return api_response(
            serialize_expenditure(expenditure, request.user),
            status=201,
            message='Expenditure resubmitted successfully.'
        )


class ApprovalQueueApiView(JsonApiView):
    """Open bills the current user can act on."""

    def get(self, request: HttpRequest) -> JsonResponse:
        open_bills = visible_expenditures(request.user).filter(
            status__in=[ExpenditureStatus.PENDING, ExpenditureStatus.VERIFIED]
        )
        queue = []
        for expenditure in open_bills:
            data = serialize_expenditure(expenditure, request.user)
            if data['allowed_actions']:
                queue.append(data)
        return api_response(queue)
