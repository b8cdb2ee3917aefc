"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: JSON API views for financial years, master data,
             allocations, allocation history, budget proposals and
             income.
-------------------------------------------------------------------------
"""
from typing import Any, Dict

from django.contrib.auth import get_user_model
from django.http import HttpRequest, JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.dateparse import parse_date

from apps.core.api import JsonApiView, api_response, parse_iso_date
from apps.budgeting import lifecycle, proposals, services
from apps.budgeting.models import (
    Allocation,
    AllocationHistory,
    BudgetHead,
    BudgetProposal,
    Department,
    FinancialYear,
    FinancialYearStatus,
    Income,
)
from apps.budgeting.workflows import DEPARTMENT_SCOPED_ROLES, get_user_allowed_actions
from apps.users.models import UserRole
from apps.users.permissions import require_role


YEAR_MANAGER_ROLES = [UserRole.PRINCIPAL, UserRole.ADMIN]
BUDGET_OFFICE_ROLES = [UserRole.OFFICE, UserRole.PRINCIPAL, UserRole.ADMIN]
MASTER_DATA_ROLES = [UserRole.ADMIN]
ROLLBACK_ROLES = [UserRole.OFFICE, UserRole.ADMIN]


def serialize_financial_year(fy: FinancialYear) -> Dict[str, Any]:
    return {
        'id': fy.pk,
        'public_id': fy.public_id,
        'year_name': fy.year_name,
        'start_date': fy.start_date,
        'end_date': fy.end_date,
        'status': fy.status,
        'total_income_expected': fy.total_income_expected,
        'total_income_received': fy.total_income_received,
        'total_allocated': fy.total_allocated,
        'total_spent': fy.total_spent,
        'utilization_percentage': fy.utilization_percentage,
        'carryforward_amount': fy.carryforward_amount,
        'locked_by': fy.locked_by_id,
        'locked_at': fy.locked_at,
        'closed_by': fy.closed_by_id,
        'closed_at': fy.closed_at,
        'remarks': fy.remarks,
    }


def serialize_department(department: Department) -> Dict[str, Any]:
    return {
        'id': department.pk,
        'name': department.name,
        'code': department.code,
        'hod': department.hod_id,
        'is_active': department.is_active,
    }


def serialize_budget_head(budget_head: BudgetHead) -> Dict[str, Any]:
    return {
        'id': budget_head.pk,
        'name': budget_head.name,
        'code': budget_head.code,
        'category': budget_head.category,
        'is_active': budget_head.is_active,
    }


def serialize_allocation(allocation: Allocation) -> Dict[str, Any]:
    return {
        'id': allocation.pk,
        'financial_year': allocation.financial_year.year_name,
        'department': {'id': allocation.department_id, 'code': allocation.department.code,
                       'name': allocation.department.name},
        'budget_head': {'id': allocation.budget_head_id, 'code': allocation.budget_head.code,
                        'name': allocation.budget_head.name},
        'allocated_amount': allocation.allocated_amount,
        'spent_amount': allocation.spent_amount,
        'remaining_amount': allocation.remaining_amount,
        'utilization_percentage': allocation.utilization_percentage,
        'remarks': allocation.remarks,
    }


def serialize_history(entry: AllocationHistory) -> Dict[str, Any]:
    return {
        'version': entry.version,
        'change_type': entry.change_type,
        'allocated_amount': entry.allocated_amount,
        'spent_amount': entry.spent_amount,
        'remarks': entry.remarks,
        'previous_allocated_amount': entry.previous_allocated_amount,
        'previous_remarks': entry.previous_remarks,
        'change_reason': entry.change_reason,
        'changed_by': entry.changed_by.username if entry.changed_by else None,
        'changed_at': entry.changed_at,
    }


def serialize_proposal(proposal: BudgetProposal, user=None) -> Dict[str, Any]:
    data = {
        'id': proposal.pk,
        'public_id': proposal.public_id,
        'financial_year': proposal.financial_year.year_name,
        'department': {'id': proposal.department_id, 'code': proposal.department.code},
        'status': proposal.status,
        'total_proposed_amount': proposal.total_proposed_amount,
        'notes': proposal.notes,
        'items': [
            {
                'budget_head': {'id': item.budget_head_id, 'code': item.budget_head.code},
                'proposed_amount': item.proposed_amount,
                'justification': item.justification,
                'previous_year_utilization': item.previous_year_utilization,
            }
            for item in proposal.items.select_related('budget_head')
        ],
        'approval_steps': [
            {'sequence': step.sequence, 'role': step.role, 'decision': step.decision,
             'actor': step.actor_id, 'remarks': step.remarks, 'timestamp': step.timestamp}
            for step in proposal.get_steps()
        ],
        'submitted_at': proposal.submitted_at,
        'approved_at': proposal.approved_at,
        'rejection_reason': proposal.rejection_reason,
        'original_proposal': proposal.original_proposal_id,
    }
    if user is not None:
        data['allowed_actions'] = get_user_allowed_actions(user, proposal)
    return data


def serialize_income(income: Income) -> Dict[str, Any]:
    return {
        'id': income.pk,
        'financial_year': income.financial_year.year_name,
        'source': income.source,
        'category': income.category,
        'amount': income.amount,
        'status': income.status,
        'expected_date': income.expected_date,
        'received_date': income.received_date,
        'reference_number': income.reference_number,
        'description': income.description,
    }


def _optional_date(body: Dict[str, Any], field: str):
    return parse_iso_date(body[field], field) if body.get(field) else None


# Financial years

class FinancialYearListApiView(JsonApiView):
    """GET: list years. POST: create a year (Principal/Admin)."""

    def get(self, request: HttpRequest) -> JsonResponse:
        years = FinancialYear.objects.all()
        status = request.GET.get('status')
        if status:
            years = years.filter(status=status)
        return api_response([serialize_financial_year(fy) for fy in years])

    def post(self, request: HttpRequest) -> JsonResponse:
        require_role(request.user, YEAR_MANAGER_ROLES, "create financial years")
        body = self.get_body()
        fy = lifecycle.create_financial_year(
            year_name=body.get('year_name', ''),
            start_date=_optional_date(body, 'start_date'),
            end_date=_optional_date(body, 'end_date'),
            status=body.get('status') or FinancialYearStatus.PLANNING,
            user=request.user,
            remarks=body.get('remarks', ''),
        )
        return api_response(serialize_financial_year(fy), status=201, message='Financial year created.')


class FinancialYearDetailApiView(JsonApiView):

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        fy = get_object_or_404(FinancialYear, pk=pk)
        return api_response(serialize_financial_year(fy))


class CurrentFinancialYearApiView(JsonApiView):
    """Active year, or the year matching ?date=YYYY-MM-DD (default today)."""

    def get(self, request: HttpRequest) -> JsonResponse:
        today = parse_date(request.GET['date']) if request.GET.get('date') else None
        fy = lifecycle.get_current_financial_year(today)
        label = fy.year_name if fy else None
        if today is not None and fy is None:
            label = lifecycle.current_financial_year_label(today)
        return api_response({
            'label': label,
            'financial_year': serialize_financial_year(fy) if fy else None,
        })


class FinancialYearTransitionApiView(JsonApiView):
    """
    POST: run a lifecycle transition (activate, lock, close, recalculate).
    """

    action = ''

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        require_role(request.user, YEAR_MANAGER_ROLES, f"{self.action} financial years")
        body = self.get_body()
        remarks = body.get('remarks', '')
        if self.action == 'activate':
            fy = lifecycle.activate_financial_year(pk, request.user)
        elif self.action == 'lock':
            fy = lifecycle.lock_financial_year(pk, request.user, remarks)
        elif self.action == 'close':
            fy = lifecycle.close_financial_year(pk, request.user, remarks)
        else:
            fy = lifecycle.recalculate_financial_year(pk)
        return api_response(
            serialize_financial_year(fy),
            message=f"Financial year {fy.year_name}: {self.action} completed."
        )


# Master data

class DepartmentListApiView(JsonApiView):

    def get(self, request: HttpRequest) -> JsonResponse:
        departments = Department.objects.all()
        if request.GET.get('active') == 'true':
            departments = departments.filter(is_active=True)
        return api_response([serialize_department(d) for d in departments])

    def post(self, request: HttpRequest) -> JsonResponse:
        require_role(request.user, MASTER_DATA_ROLES, "create departments")
        body = self.get_body()
        hod = None
        if body.get('hod'):
            hod = get_user_model().objects.get(pk=body['hod'])
        department = services.create_department(
            name=body.get('name', ''),
            code=body.get('code', ''),
            hod=hod,
            description=body.get('description', ''),
            user=request.user,
        )
        return api_response(serialize_department(department), status=201)


class DepartmentDeactivateApiView(JsonApiView):

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        require_role(request.user, MASTER_DATA_ROLES, "deactivate departments")
        department = services.deactivate_department(pk, request.user)
        return api_response(serialize_department(department), message='Department deactivated.')


class BudgetHeadListApiView(JsonApiView):

    def get(self, request: HttpRequest) -> JsonResponse:
        heads = BudgetHead.objects.all()
        if request.GET.get('active') == 'true':
            heads = heads.filter(is_active=True)
        return api_response([serialize_budget_head(h) for h in heads])

    def post(self, request: HttpRequest) -> JsonResponse:
        require_role(request.user, MASTER_DATA_ROLES, "create budget heads")
        body = self.get_body()
        head = services.create_budget_head(
            name=body.get('name', ''),
            code=body.get('code', ''),
            category=body.get('category') or 'recurring',
            description=body.get('description', ''),
            user=request.user,
        )
        return api_response(serialize_budget_head(head), status=201)


class BudgetHeadDeactivateApiView(JsonApiView):

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        require_role(request.user, MASTER_DATA_ROLES, "deactivate budget heads")
        head = services.deactivate_budget_head(pk, request.user)
        return api_response(serialize_budget_head(head), message='Budget head deactivated.')


# Allocations

class AllocationListApiView(JsonApiView):
    """GET: list allocations (?year=, ?department=). POST: create (Budget Office)."""

    def get(self, request: HttpRequest) -> JsonResponse:
        allocations = Allocation.objects.select_related('financial_year', 'department', 'budget_head')
        if request.GET.get('year'):
            allocations = allocations.filter(financial_year__year_name=request.GET['year'])
        if request.GET.get('department'):
            allocations = allocations.filter(department_id=request.GET['department'])
        user = request.user
        if user.role in (UserRole.DEPARTMENT, UserRole.HOD) and not user.is_superuser:
            allocations = allocations.filter(department_id=user.department_id)
        return api_response([serialize_allocation(a) for a in allocations])

    def post(self, request: HttpRequest) -> JsonResponse:
        require_role(request.user, BUDGET_OFFICE_ROLES, "create allocations")
        body = self.get_body()
        allocation = services.create_allocation(
            user=request.user,
            department_id=body.get('department'),
            budget_head_id=body.get('budget_head'),
            financial_year_id=body.get('financial_year'),
            allocated_amount=body.get('allocated_amount'),
            remarks=body.get('remarks', ''),
        )
        return api_response(serialize_allocation(allocation), status=201, message='Allocation created.')


class AllocationDetailApiView(JsonApiView):
    """GET: allocation. POST: revise amount or remarks (Budget Office)."""

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        allocation = get_object_or_404(
            Allocation.objects.select_related('financial_year', 'department', 'budget_head'), pk=pk
        )
        return api_response(serialize_allocation(allocation))

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        require_role(request.user, BUDGET_OFFICE_ROLES, "update allocations")
        body = self.get_body()
        allocation = services.update_allocation(
            pk,
            request.user,
            allocated_amount=body.get('allocated_amount'),
            remarks=body.get('remarks'),
            change_reason=body.get('change_reason', ''),
        )
        return api_response(serialize_allocation(allocation), message='Allocation updated.')


class AllocationHistoryApiView(JsonApiView):
    """GET: versions of an allocation, newest first."""

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        history = services.get_allocation_history(pk)
        return api_response([serialize_history(entry) for entry in history])


class AllocationRollbackApiView(JsonApiView):
    """POST {reason?}: restore an earlier version (Office/Admin)."""

    def post(self, request: HttpRequest, pk: int, version: int) -> JsonResponse:
        require_role(request.user, ROLLBACK_ROLES, "roll back allocations")
        body = self.get_body()
        entry = services.rollback_allocation(pk, version, request.user, reason=body.get('reason', ''))
        allocation = Allocation.objects.select_related('financial_year', 'department', 'budget_head').get(pk=pk)
        return api_response(
            {'allocation': serialize_allocation(allocation), 'history': serialize_history(entry)},
            message=f"Allocation rolled back to version {version}."
        )


# Budget proposals

def _proposal_queryset(user):
    queryset = BudgetProposal.objects.select_related('financial_year', 'department')
    if user.role in DEPARTMENT_SCOPED_ROLES and not user.is_superuser:
        queryset = queryset.filter(department_id=user.department_id)
    return queryset


class ProposalListApiView(JsonApiView):
    """GET: list proposals (?year=, ?status=). POST: create a draft."""

    def get(self, request: HttpRequest) -> JsonResponse:
        queryset = _proposal_queryset(request.user)
        if request.GET.get('year'):
            queryset = queryset.filter(financial_year__year_name=request.GET['year'])
        if request.GET.get('status'):
            queryset = queryset.filter(status=request.GET['status'])
        return api_response([serialize_proposal(p) for p in queryset])

    def post(self, request: HttpRequest) -> JsonResponse:
        body = self.get_body()
        department_id = body.get('department') or request.user.department_id
        proposal = proposals.create_proposal(
            request.user,
            financial_year_id=body.get('financial_year'),
            department_id=department_id,
            items=body.get('items') or [],
            notes=body.get('notes', ''),
        )
        return api_response(serialize_proposal(proposal, request.user), status=201, message='Proposal created.')


class ProposalDetailApiView(JsonApiView):
    """GET: proposal with items and steps. POST: edit a draft."""

    def get(self, request: HttpRequest, pk: int) -> JsonResponse:
        proposal = get_object_or_404(_proposal_queryset(request.user), pk=pk)
        return api_response(serialize_proposal(proposal, request.user))

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        body = self.get_body()
        proposal = proposals.update_proposal(pk, request.user, items=body.get('items'), notes=body.get('notes'))
        return api_response(serialize_proposal(proposal, request.user), message='Proposal updated.')


class ProposalSubmitApiView(JsonApiView):

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        proposal = proposals.submit_proposal(pk, request.user)
        return api_response(serialize_proposal(proposal, request.user), message='Proposal submitted.')


class ProposalDecisionApiView(JsonApiView):
    """
    POST {decision: verify|approve|reject, remarks, role?}.

    The role defaults to the user's own role.
    """

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        body = self.get_body()
        result = proposals.apply_proposal_decision(
            pk,
            request.user,
            body.get('role') or request.user.role,
            body.get('decision', ''),
            remarks=body.get('remarks', ''),
        )
        data = serialize_proposal(result['proposal'], request.user)
        data['created_allocations'] = result['created_allocations']
        data['skipped_items'] = result['skipped_items']
        return api_response(data, message=f"Proposal {result['proposal'].status}.")


class ProposalResubmitApiView(JsonApiView):
    """POST {items?, notes?}: new draft from a rejected proposal."""

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        body = self.get_body()
        draft = proposals.resubmit_proposal(pk, request.user, items=body.get('items'), notes=body.get('notes'))
        return api_response(serialize_proposal(draft, request.user), status=201, message='Proposal resubmitted as a new draft.')


# Income

class IncomeListApiView(JsonApiView):

    def get(self, request: HttpRequest) -> JsonResponse:
        incomes = Income.objects.select_related('financial_year')
        if request.GET.get('year'):
            incomes = incomes.filter(financial_year__year_name=request.GET['year'])
        return api_response([serialize_income(i) for i in incomes])

    def post(self, request: HttpRequest) -> JsonResponse:
        require_role(request.user, BUDGET_OFFICE_ROLES, "record income")
        body = self.get_body()
        income = services.record_income(
            user=request.user,
            financial_year_id=body.get('financial_year'),
            source=body.get('source', ''),
            amount=body.get('amount'),
            description=body.get('description', ''),
            category=body.get('category') or 'recurring',
            status=body.get('status') or 'expected',
            expected_date=_optional_date(body, 'expected_date'),
            received_date=_optional_date(body, 'received_date'),
            reference_number=body.get('reference_number', ''),
            remarks=body.get('remarks', ''),
        )
        return api_response(serialize_income(income), status=201, message='Income recorded.')


class IncomeStatusApiView(JsonApiView):

    def post(self, request: HttpRequest, pk: int) -> JsonResponse:
        require_role(request.user, BUDGET_OFFICE_ROLES, "update income")
        body = self.get_body()
        income = services.update_income_status(
            pk,
            body.get('status', ''),
            user=request.user,
            received_date=_optional_date(body, 'received_date'),
        )
        return api_response(serialize_income(income))
