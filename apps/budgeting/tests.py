"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Unit tests for the budgeting module.
-------------------------------------------------------------------------
"""
import json
from decimal import Decimal
from datetime import date
from io import StringIO

from django.contrib.auth import get_user_model
from django.core.exceptions import ImproperlyConfigured, ValidationError
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import TestCase, override_settings

from apps.core.events import EventType
from apps.core.exceptions import (
    ActiveYearConflictException,
    AlreadyClosedException,
    AlreadyLockedException,
    BudgetExceededException,
    DuplicateAllocationException,
    DuplicateYearException,
    InactiveRecordException,
    InvalidRangeException,
    InvalidYearLabelException,
    NotLockedException,
    PendingExpendituresException,
    RemarksRequiredException,
    SelfApprovalException,
    UnauthorizedRoleException,
    WorkflowTransitionException,
    YearClosedException,
    YearLockedException,
)
from apps.core.models import AuditLog
from apps.budgeting import lifecycle, proposals, services
from apps.budgeting.carryforward import compute_carryforward, get_carryforward_strategy
from apps.budgeting.models import (
    Allocation,
    AllocationChangeType,
    AllocationHistory,
    FinancialYear,
    FinancialYearStatus,
    IncomeSource,
    IncomeStatus,
    ProposalDecision,
    ProposalStatus,
    ProposalStep,
)
from apps.users.models import UserRole


User = get_user_model()


def half_of_spent(financial_year) -> Decimal:
    """Custom carryforward strategy used through a dotted path."""
    return financial_year.total_spent / 2


class BudgetFixtureMixin:
    """
    Shared fixture: users for every role, two departments, two budget
    heads, an active 2025-26 year and a 100,000 allocation for Physics
    under Laboratory Consumables.
    """

    def setUp(self):
        super().setUp()
        self.admin = User.objects.create_user(username='admin', password='pass', role=UserRole.ADMIN)
        self.principal = User.objects.create_user(username='principal', password='pass', role=UserRole.PRINCIPAL)
        self.vice_principal = User.objects.create_user(
            username='vp', password='pass', role=UserRole.VICE_PRINCIPAL
        )
        self.office = User.objects.create_user(username='office', password='pass', role=UserRole.OFFICE)
        self.auditor = User.objects.create_user(username='auditor', password='pass', role=UserRole.AUDITOR)

        self.physics = services.create_department(name='Physics', code='phy', user=self.admin)
        self.chemistry = services.create_department(name='Chemistry', code='CHE', user=self.admin)

        self.hod = User.objects.create_user(
            username='hod_phy', password='pass', role=UserRole.HOD, department=self.physics
        )
        self.other_hod = User.objects.create_user(
            username='hod_che', password='pass', role=UserRole.HOD, department=self.chemistry
        )
        self.clerk = User.objects.create_user(
            username='clerk_phy', password='pass', role=UserRole.DEPARTMENT, department=self.physics
        )
        self.physics.hod = self.hod
        self.physics.save()

        self.lab = services.create_budget_head(name='Laboratory Consumables', code='LAB', user=self.admin)
        self.library = services.create_budget_head(name='Library Books', code='LIB', user=self.admin)

        self.fy = lifecycle.create_financial_year(
            '2025-26', status=FinancialYearStatus.ACTIVE, user=self.principal
        )
        self.allocation = services.create_allocation(
            user=self.office,
            department_id=self.physics.pk,
            budget_head_id=self.lab.pk,
            financial_year_id=self.fy.pk,
            allocated_amount='100000',
        )

    def bill(self, number: str = 'INV-001', amount: str = '30000', **overrides) -> dict:
        details = {
            'bill_number': number,
            'bill_date': date(2025, 8, 14),
            'bill_amount': amount,
            'party_name': 'Scientific Traders',
            'expense_details': 'Glassware and reagents',
        }
        details.update(overrides)
        return details

    def refresh(self, *instances) -> None:
        for instance in instances:
            instance.refresh_from_db()


class FinancialYearLabelTests(TestCase):
    """Tests for the date to label mapping."""

    def test_current_label_last_day_of_march(self) -> None:
        self.assertEqual(lifecycle.current_financial_year_label(date(2026, 3, 31)), '2025-26')

    def test_current_label_first_day_of_april(self) -> None:
        self.assertEqual(lifecycle.current_financial_year_label(date(2026, 4, 1)), '2026-27')

    def test_current_label_century_rollover(self) -> None:
        self.assertEqual(lifecycle.current_financial_year_label(date(2099, 12, 1)), '2099-00')

    def test_previous_label(self) -> None:
        self.assertEqual(lifecycle.previous_financial_year_label('2025-26'), '2024-25')

    def test_default_dates(self) -> None:
        start, end = lifecycle.financial_year_dates('2025-26')

        self.assertEqual(start, date(2025, 4, 1))
        self.assertEqual(end, date(2026, 3, 31))

    def test_invalid_labels(self) -> None:
        for label in ('2025', '2025-2026', '2025-27', 'abcd-ef', ''):
            with self.subTest(label=label):
                with self.assertRaises(InvalidYearLabelException):
                    lifecycle.parse_year_label(label)


class FinancialYearLifecycleTests(TestCase):
    """Tests for create, activate, lock and close."""

    def setUp(self):
        self.principal = User.objects.create_user(
            username='principal', password='pass', role=UserRole.PRINCIPAL
        )

    def test_create_uses_default_dates(self) -> None:
        fy = lifecycle.create_financial_year('2025-26', user=self.principal)

        self.assertEqual(fy.status, FinancialYearStatus.PLANNING)
        self.assertEqual(fy.start_date, date(2025, 4, 1))
        self.assertEqual(fy.end_date, date(2026, 3, 31))
        self.assertEqual(fy.created_by, self.principal)

    def test_create_duplicate_label_fails(self) -> None:
        lifecycle.create_financial_year('2025-26')

        with self.assertRaises(DuplicateYearException):
            lifecycle.create_financial_year('2025-26')

    def test_create_invalid_range_fails(self) -> None:
        with self.assertRaises(InvalidRangeException):
            lifecycle.create_financial_year(
                '2025-26', start_date=date(2026, 3, 31), end_date=date(2025, 4, 1)
            )

    def test_create_in_locked_status_fails(self) -> None:
        with self.assertRaises(WorkflowTransitionException):
            lifecycle.create_financial_year('2025-26', status=FinancialYearStatus.LOCKED)

    def test_only_one_active_year(self) -> None:
        lifecycle.create_financial_year('2024-25', status=FinancialYearStatus.ACTIVE)
        planned = lifecycle.create_financial_year('2025-26')

        with self.assertRaises(ActiveYearConflictException):
            lifecycle.create_financial_year('2026-27', status=FinancialYearStatus.ACTIVE)
        with self.assertRaises(ActiveYearConflictException):
            lifecycle.activate_financial_year(planned.pk)

    @override_settings(CBMS_ENFORCE_SINGLE_ACTIVE_YEAR=False)
    def test_multiple_active_years_when_not_enforced(self) -> None:
        lifecycle.create_financial_year('2024-25', status=FinancialYearStatus.ACTIVE)
        fy = lifecycle.create_financial_year('2025-26', status=FinancialYearStatus.ACTIVE)

        self.assertEqual(fy.status, FinancialYearStatus.ACTIVE)

    def test_activate(self) -> None:
        fy = lifecycle.create_financial_year('2025-26')

        fy = lifecycle.activate_financial_year(fy.pk, self.principal)

        self.assertEqual(fy.status, FinancialYearStatus.ACTIVE)
        with self.assertRaises(WorkflowTransitionException):
            lifecycle.activate_financial_year(fy.pk, self.principal)

    def test_lock_from_planning(self) -> None:
        """A planning year can be locked directly."""
        fy = lifecycle.create_financial_year('2025-26')

        fy = lifecycle.lock_financial_year(fy.pk, self.principal, remarks='Budget frozen')

        self.assertEqual(fy.status, FinancialYearStatus.LOCKED)
        self.assertEqual(fy.locked_by, self.principal)
        self.assertIsNotNone(fy.locked_at)
        self.assertEqual(fy.lock_remarks, 'Budget frozen')

    def test_lock_twice_fails(self) -> None:
        fy = lifecycle.create_financial_year('2025-26')
        lifecycle.lock_financial_year(fy.pk)

        with self.assertRaises(AlreadyLockedException):
            lifecycle.lock_financial_year(fy.pk)

    def test_locked_year_cannot_be_reactivated(self) -> None:
        fy = lifecycle.create_financial_year('2025-26')
        lifecycle.lock_financial_year(fy.pk)

        with self.assertRaises(AlreadyLockedException):
            lifecycle.activate_financial_year(fy.pk)

    def test_close_requires_lock(self) -> None:
        fy = lifecycle.create_financial_year('2025-26', status=FinancialYearStatus.ACTIVE)

        with self.assertRaises(NotLockedException):
            lifecycle.close_financial_year(fy.pk)

    def test_close_twice_fails(self) -> None:
        fy = lifecycle.create_financial_year('2025-26')
        lifecycle.lock_financial_year(fy.pk)
        lifecycle.close_financial_year(fy.pk, self.principal)

        with self.assertRaises(AlreadyClosedException):
            lifecycle.close_financial_year(fy.pk)
        with self.assertRaises(AlreadyClosedException):
            lifecycle.lock_financial_year(fy.pk)

    def test_transitions_are_audited(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            fy = lifecycle.create_financial_year('2025-26', user=self.principal)
            lifecycle.activate_financial_year(fy.pk, self.principal)
            lifecycle.lock_financial_year(fy.pk, self.principal)

        events = list(AuditLog.objects.filter(target_entity='FinancialYear').values_list('event_type', flat=True))
        self.assertCountEqual(events, [
            EventType.FINANCIAL_YEAR_CREATED,
            EventType.FINANCIAL_YEAR_ACTIVATED,
            EventType.FINANCIAL_YEAR_LOCKED,
        ])

    def test_saved_status_cannot_move_backwards(self) -> None:
        fy = lifecycle.create_financial_year('2025-26', status=FinancialYearStatus.ACTIVE)
        lifecycle.lock_financial_year(fy.pk, self.principal)
        fy.refresh_from_db()

        fy.status = FinancialYearStatus.ACTIVE
        with self.assertRaises(WorkflowTransitionException):
            fy.save()

        fy.refresh_from_db()
        self.assertEqual(fy.status, FinancialYearStatus.LOCKED)

    def test_saved_status_can_move_forward(self) -> None:
        fy = lifecycle.create_financial_year('2025-26')

        fy.status = FinancialYearStatus.ACTIVE
        fy.save()

        fy.refresh_from_db()
        self.assertEqual(fy.status, FinancialYearStatus.ACTIVE)

    def test_get_current_financial_year(self) -> None:
        planned = lifecycle.create_financial_year('2026-27')
        self.assertEqual(lifecycle.get_current_financial_year(date(2026, 5, 1)), planned)
        self.assertIsNone(lifecycle.get_current_financial_year(date(2030, 5, 1)))

        active = lifecycle.create_financial_year('2025-26', status=FinancialYearStatus.ACTIVE)
        self.assertEqual(lifecycle.get_current_financial_year(date(2026, 5, 1)), active)


class ClosureTests(BudgetFixtureMixin, TestCase):
    """Tests for year closure, totals and carryforward."""

    def approve_bill(self, number: str, amount: str):
        from apps.expenditure.services import apply_decision, submit_expenditure

        expenditure = submit_expenditure(self.clerk, self.allocation.pk, self.bill(number, amount))
        apply_decision(expenditure.pk, self.hod, UserRole.HOD, 'verify')
        return apply_decision(expenditure.pk, self.principal, UserRole.PRINCIPAL, 'approve')

    def test_close_freezes_totals_and_computes_carryforward(self) -> None:
        self.approve_bill('INV-001', '30000')
        services.record_income(
            self.office, self.fy.pk, IncomeSource.GOVERNMENT_GRANT, '150000',
            'Annual grant', status=IncomeStatus.RECEIVED
        )
        services.record_income(
            self.office, self.fy.pk, IncomeSource.STUDENT_FEES, '20000', 'Fee arrears'
        )
        lifecycle.lock_financial_year(self.fy.pk, self.principal)

        fy = lifecycle.close_financial_year(self.fy.pk, self.principal, remarks='Year end')

        self.assertEqual(fy.status, FinancialYearStatus.CLOSED)
        self.assertEqual(fy.total_allocated, Decimal('100000.00'))
        self.assertEqual(fy.total_spent, Decimal('30000.00'))
        self.assertEqual(fy.total_income_expected, Decimal('170000.00'))
        self.assertEqual(fy.total_income_received, Decimal('150000.00'))
        self.assertEqual(fy.utilization_percentage, Decimal('30.00'))
        self.assertEqual(fy.carryforward_amount, Decimal('70000.00'))
        self.assertEqual(fy.closed_by, self.principal)
        self.assertEqual(fy.closure_remarks, 'Year end')

    @override_settings(CBMS_CARRYFORWARD_STRATEGY='income_minus_spent')
    def test_close_with_income_strategy(self) -> None:
        self.approve_bill('INV-001', '30000')
        services.record_income(
            self.office, self.fy.pk, IncomeSource.GOVERNMENT_GRANT, '50000',
            'Annual grant', status=IncomeStatus.RECEIVED
        )
        lifecycle.lock_financial_year(self.fy.pk)

        fy = lifecycle.close_financial_year(self.fy.pk)

        self.assertEqual(fy.carryforward_amount, Decimal('20000.00'))

    def test_close_with_pending_bill_fails(self) -> None:
        from apps.expenditure.services import submit_expenditure

        submit_expenditure(self.clerk, self.allocation.pk, self.bill())
        lifecycle.lock_financial_year(self.fy.pk)

        with self.assertRaises(PendingExpendituresException):
            lifecycle.close_financial_year(self.fy.pk)
        self.refresh(self.fy)
        self.assertEqual(self.fy.status, FinancialYearStatus.LOCKED)

    def test_closed_year_refuses_every_mutation(self) -> None:
        lifecycle.lock_financial_year(self.fy.pk)
        lifecycle.close_financial_year(self.fy.pk)

        with self.assertRaises(YearClosedException):
            services.create_allocation(
                self.office, self.chemistry.pk, self.lab.pk, self.fy.pk, '5000'
            )
        with self.assertRaises(YearClosedException):
            services.update_allocation(self.allocation.pk, self.office, allocated_amount='1')
        with self.assertRaises(YearClosedException):
            services.record_income(self.office, self.fy.pk, IncomeSource.DONATION, '10', 'Gift')
        with self.assertRaises(YearClosedException):
            lifecycle.recalculate_financial_year(self.fy.pk)

        self.allocation.refresh_from_db()
        self.allocation.remarks = 'edited directly'
        with self.assertRaises(YearClosedException):
            self.allocation.save()

    def test_recalculate_is_idempotent(self) -> None:
        self.approve_bill('INV-001', '12500.50')

        first = lifecycle.recalculate_financial_year(self.fy.pk)
        second = lifecycle.recalculate_financial_year(self.fy.pk)

        self.assertEqual(first.total_spent, Decimal('12500.50'))
        self.assertEqual(second.total_spent, first.total_spent)
        self.assertEqual(second.total_allocated, first.total_allocated)
        self.assertEqual(second.utilization_percentage, Decimal('12.50'))
        self.assertEqual(second.status, FinancialYearStatus.ACTIVE)


class CarryforwardStrategyTests(TestCase):
    """Tests for carryforward strategy resolution."""

    def setUp(self):
        self.fy = FinancialYear(
            year_name='2025-26',
            total_allocated=Decimal('100000'),
            total_spent=Decimal('40000'),
            total_income_received=Decimal('90000'),
        )

    def test_default_strategy(self) -> None:
        self.assertEqual(compute_carryforward(self.fy), Decimal('60000.00'))

    def test_named_strategies(self) -> None:
        self.assertEqual(compute_carryforward(self.fy, 'income_minus_spent'), Decimal('50000.00'))
        self.assertEqual(compute_carryforward(self.fy, 'none'), Decimal('0.00'))

    def test_dotted_path_strategy(self) -> None:
        self.assertEqual(
            compute_carryforward(self.fy, 'apps.budgeting.tests.half_of_spent'),
            Decimal('20000.00')
        )

    def test_unknown_strategy(self) -> None:
        with self.assertRaises(ImproperlyConfigured):
            get_carryforward_strategy('apps.budgeting.tests.no_such_strategy')


class AllocationServiceTests(BudgetFixtureMixin, TestCase):
    """Tests for allocation creation and revision."""

    def test_create_allocation(self) -> None:
        self.assertEqual(self.allocation.allocated_amount, Decimal('100000.00'))
        self.assertEqual(self.allocation.spent_amount, Decimal('0.00'))
        self.assertEqual(self.allocation.remaining_amount, Decimal('100000.00'))
        self.assertEqual(self.allocation.created_by, self.office)

    def test_department_code_is_upper_cased(self) -> None:
        self.assertEqual(self.physics.code, 'PHY')

    def test_duplicate_allocation_fails(self) -> None:
        with self.assertRaises(DuplicateAllocationException):
            services.create_allocation(
                self.office, self.physics.pk, self.lab.pk, self.fy.pk, '5000'
            )

    def test_negative_amount_fails(self) -> None:
        with self.assertRaises(ValidationError):
            services.create_allocation(
                self.office, self.chemistry.pk, self.lab.pk, self.fy.pk, '-1'
            )

    def test_invalid_amount_fails(self) -> None:
        with self.assertRaises(ValidationError):
            services.create_allocation(
                self.office, self.chemistry.pk, self.lab.pk, self.fy.pk, 'lots'
            )

    def test_inactive_department_fails(self) -> None:
        services.deactivate_department(self.chemistry.pk, self.admin)

        with self.assertRaises(InactiveRecordException):
            services.create_allocation(
                self.office, self.chemistry.pk, self.lab.pk, self.fy.pk, '5000'
            )

    def test_deactivation_keeps_existing_allocations(self) -> None:
        services.deactivate_budget_head(self.lab.pk, self.admin)

        self.allocation.refresh_from_db()
        self.assertFalse(self.allocation.budget_head.is_active)
        self.assertTrue(Allocation.objects.filter(pk=self.allocation.pk).exists())

    def test_locked_year_refuses_allocations(self) -> None:
        """Planning year locked, then createAllocation fails with YearLocked."""
        planned = lifecycle.create_financial_year('2026-27')
        lifecycle.lock_financial_year(planned.pk, self.principal)

        with self.assertRaises(YearLockedException) as ctx:
            services.create_allocation(
                self.office, self.physics.pk, self.lab.pk, planned.pk, '5000'
            )
        self.assertNotIsInstance(ctx.exception, YearClosedException)

    def test_locked_year_refuses_direct_allocation_writes(self) -> None:
        lifecycle.lock_financial_year(self.fy.pk, self.principal)

        with self.assertRaises(YearLockedException):
            Allocation(
                department=self.physics,
                budget_head=self.library,
                financial_year=self.fy,
                allocated_amount=Decimal('5000'),
            ).save()

        self.allocation.refresh_from_db()
        self.allocation.allocated_amount = Decimal('1')
        with self.assertRaises(YearLockedException):
            self.allocation.save()

        self.assertEqual(Allocation.objects.filter(financial_year=self.fy).count(), 1)
        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.allocated_amount, Decimal('100000.00'))

    def test_update_allocation_amount(self) -> None:
        allocation = services.update_allocation(
            self.allocation.pk, self.office, allocated_amount='120000', remarks='Supplementary grant'
        )

        self.assertEqual(allocation.allocated_amount, Decimal('120000.00'))
        self.assertEqual(allocation.remarks, 'Supplementary grant')
        self.assertEqual(allocation.remaining_amount, Decimal('120000.00'))

    def test_update_below_spent_fails(self) -> None:
        Allocation.objects.filter(pk=self.allocation.pk).update(spent_amount=Decimal('50000'))

        with self.assertRaises(BudgetExceededException):
            services.update_allocation(self.allocation.pk, self.office, allocated_amount='40000')

    @override_settings(CBMS_BUDGET_OVERSPEND_POLICY='warn')
    def test_check_overspend_warn_policy(self) -> None:
        self.assertTrue(services.check_overspend(self.allocation, Decimal('100000.01')))
        self.assertFalse(services.check_overspend(self.allocation, Decimal('100000.00')))

    def test_check_overspend_disallow_policy(self) -> None:
        with self.assertRaises(BudgetExceededException):
            services.check_overspend(self.allocation, Decimal('100000.01'))

    @override_settings(CBMS_BUDGET_OVERSPEND_POLICY='sometimes')
    def test_invalid_overspend_policy(self) -> None:
        with self.assertRaises(ImproperlyConfigured):
            services.get_overspend_policy()

    def test_allocation_created_event_is_audited(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            allocation = services.create_allocation(
                self.office, self.chemistry.pk, self.library.pk, self.fy.pk, '25000'
            )

        entry = AuditLog.objects.get(event_type=EventType.ALLOCATION_CREATED, target_id=str(allocation.pk))
        self.assertEqual(entry.actor, self.office)
        self.assertEqual(entry.details['department'], 'CHE')


class IncomeServiceTests(BudgetFixtureMixin, TestCase):
    """Tests for income records."""

    def test_income_moves_forward_only(self) -> None:
        income = services.record_income(
            self.office, self.fy.pk, IncomeSource.STUDENT_FEES, '45000', 'Semester fees'
        )

        income = services.update_income_status(
            income.pk, IncomeStatus.RECEIVED, self.office, received_date=date(2025, 9, 1)
        )
        self.assertTrue(income.is_received)
        self.assertEqual(income.received_date, date(2025, 9, 1))

        with self.assertRaises(WorkflowTransitionException):
            services.update_income_status(income.pk, IncomeStatus.EXPECTED, self.office)

    def test_invalid_source(self) -> None:
        with self.assertRaises(ValidationError):
            services.record_income(self.office, self.fy.pk, 'lottery', '10', 'Lucky')


class BudgetingApiTests(BudgetFixtureMixin, TestCase):
    """Tests for the budgeting JSON endpoints."""

    def post_json(self, url: str, data: dict):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')

    def test_create_financial_year_as_principal(self) -> None:
        self.client.force_login(self.principal)

        response = self.post_json('/budgeting/api/financial-years/', {'year_name': '2026-27'})

        self.assertEqual(response.status_code, 201)
        self.assertEqual(response.json()['data']['status'], FinancialYearStatus.PLANNING)

    def test_create_financial_year_as_office_is_forbidden(self) -> None:
        self.client.force_login(self.office)

        response = self.post_json('/budgeting/api/financial-years/', {'year_name': '2026-27'})

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()['error_code'], 'ERR_UNAUTHORIZED_ROLE')

    def test_lock_then_allocate_returns_error_code(self) -> None:
        self.client.force_login(self.principal)
        response = self.post_json(f'/budgeting/api/financial-years/{self.fy.pk}/lock/', {'remarks': 'Freeze'})
        self.assertEqual(response.status_code, 200)

        self.client.force_login(self.office)
        response = self.post_json('/budgeting/api/allocations/', {
            'department': self.chemistry.pk,
            'budget_head': self.lab.pk,
            'financial_year': self.fy.pk,
            'allocated_amount': '1000',
        })

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()['error_code'], 'ERR_YEAR_LOCKED')

    def test_department_user_sees_own_allocations_only(self) -> None:
        services.create_allocation(self.office, self.chemistry.pk, self.lab.pk, self.fy.pk, '1000')
        self.client.force_login(self.clerk)

        response = self.client.get('/budgeting/api/allocations/', {'year': '2025-26'})

        rows = response.json()['data']
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0]['department']['code'], 'PHY')
        self.assertEqual(rows[0]['remaining_amount'], '100000.00')

    def test_current_financial_year(self) -> None:
        self.client.force_login(self.auditor)

        response = self.client.get('/budgeting/api/financial-years/current/')

        self.assertEqual(response.json()['data']['label'], '2025-26')


class ManagementCommandTests(BudgetFixtureMixin, TestCase):
    """Tests for recalculate_financial_year and close_financial_year."""

    def test_recalculate_command(self) -> None:
        out = StringIO()
        call_command('recalculate_financial_year', '--year', '2025-26', stdout=out)

        self.refresh(self.fy)
        self.assertEqual(self.fy.total_allocated, Decimal('100000.00'))
        self.assertIn('2025-26', out.getvalue())

    def test_recalculate_unknown_year(self) -> None:
        with self.assertRaises(CommandError):
            call_command('recalculate_financial_year', '--year', '1999-00', stdout=StringIO())

    def test_close_command_with_lock(self) -> None:
        call_command('close_financial_year', '--year', '2025-26', '--lock', stdout=StringIO())

        self.refresh(self.fy)
        self.assertEqual(self.fy.status, FinancialYearStatus.CLOSED)
        self.assertEqual(self.fy.carryforward_amount, Decimal('100000.00'))

    def test_close_command_requires_lock(self) -> None:
        with self.assertRaises(CommandError):
            call_command('close_financial_year', '--year', '2025-26', stdout=StringIO())

    def test_close_command_failure_is_logged(self) -> None:
        with self.assertLogs('budgeting', level='ERROR') as logs:
            with self.assertRaises(CommandError):
                call_command('close_financial_year', '--year', '2025-26', stdout=StringIO())

        self.assertIn('close_financial_year', logs.output[0])


class AllocationHistoryTests(BudgetFixtureMixin, TestCase):
    """Tests for allocation versions and rollback."""

    def test_create_writes_first_version(self) -> None:
        history = services.get_allocation_history(self.allocation.pk)

        self.assertEqual(len(history), 1)
        self.assertEqual(history[0].version, 1)
        self.assertEqual(history[0].change_type, AllocationChangeType.CREATED)
        self.assertEqual(history[0].allocated_amount, Decimal('100000.00'))
        self.assertIsNone(history[0].previous_allocated_amount)
        self.assertEqual(history[0].changed_by, self.office)

    def test_update_appends_version(self) -> None:
        services.update_allocation(
            self.allocation.pk, self.office, allocated_amount='120000',
            remarks='Supplementary grant', change_reason='Mid-year revision'
        )

        latest, first = services.get_allocation_history(self.allocation.pk)
        self.assertEqual(latest.version, 2)
        self.assertEqual(latest.change_type, AllocationChangeType.UPDATED)
        self.assertEqual(latest.allocated_amount, Decimal('120000.00'))
        self.assertEqual(latest.previous_allocated_amount, Decimal('100000.00'))
        self.assertEqual(latest.remarks, 'Supplementary grant')
        self.assertEqual(latest.change_reason, 'Mid-year revision')
        self.assertEqual(first.allocated_amount, Decimal('100000.00'))

    def test_rollback_restores_earlier_version(self) -> None:
        services.update_allocation(self.allocation.pk, self.office, allocated_amount='120000', remarks='Extra')

        entry = services.rollback_allocation(self.allocation.pk, 1, self.office)

        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.allocated_amount, Decimal('100000.00'))
        self.assertEqual(self.allocation.remarks, '')
        self.assertEqual(entry.version, 3)
        self.assertEqual(entry.change_type, AllocationChangeType.ROLLBACK)
        self.assertEqual(entry.change_reason, 'Rolled back to version 1')
        self.assertEqual(entry.previous_allocated_amount, Decimal('120000.00'))
        versions = [h.version for h in services.get_allocation_history(self.allocation.pk)]
        self.assertEqual(versions, [3, 2, 1])

    def test_rollback_below_spent_fails(self) -> None:
        services.update_allocation(self.allocation.pk, self.office, allocated_amount='150000')
        Allocation.objects.filter(pk=self.allocation.pk).update(spent_amount=Decimal('120000'))

        with self.assertRaises(BudgetExceededException):
            services.rollback_allocation(self.allocation.pk, 1, self.office)

        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.allocated_amount, Decimal('150000.00'))
        self.assertEqual(AllocationHistory.objects.filter(allocation=self.allocation).count(), 2)

    def test_rollback_in_locked_year_fails(self) -> None:
        services.update_allocation(self.allocation.pk, self.office, allocated_amount='120000')
        lifecycle.lock_financial_year(self.fy.pk, self.principal)

        with self.assertRaises(YearLockedException):
            services.rollback_allocation(self.allocation.pk, 1, self.office)

    def test_rollback_to_unknown_version(self) -> None:
        with self.assertRaises(AllocationHistory.DoesNotExist):
            services.rollback_allocation(self.allocation.pk, 9, self.office)

    def test_history_is_append_only(self) -> None:
        entry = AllocationHistory.objects.get(allocation=self.allocation)

        with self.assertRaises(ValueError):
            AllocationHistory.objects.filter(pk=entry.pk).update(allocated_amount=Decimal('1'))
        with self.assertRaises(ValueError):
            entry.save()
        with self.assertRaises(ValueError):
            entry.delete()

    def test_rollback_is_audited(self) -> None:
        services.update_allocation(self.allocation.pk, self.office, allocated_amount='120000')

        with self.captureOnCommitCallbacks(execute=True):
            services.rollback_allocation(self.allocation.pk, 1, self.office, reason='Revision withdrawn')

        entry = AuditLog.objects.get(event_type=EventType.ALLOCATION_ROLLED_BACK)
        self.assertEqual(entry.details['rolled_back_to_version'], 1)
        self.assertEqual(entry.details['new_version'], 3)
        self.assertEqual(AllocationHistory.objects.get(allocation=self.allocation, version=3).change_reason,
                         'Revision withdrawn')


class AllocationAdminTests(BudgetFixtureMixin, TestCase):
    """Admin saves go through the allocation services."""

    def setUp(self):
        super().setUp()
        self.superuser = User.objects.create_superuser(
            username='root', password='pass', email='root@example.com', role=UserRole.ADMIN
        )
        self.client.force_login(self.superuser)
        self.add_url = '/admin/budgeting/allocation/add/'
        self.change_url = f'/admin/budgeting/allocation/{self.allocation.pk}/change/'

    def add_form(self, **overrides) -> dict:
        data = {
            'financial_year': self.fy.pk,
            'department': self.physics.pk,
            'budget_head': self.library.pk,
            'allocated_amount': '5000',
            'remarks': '',
        }
        data.update(overrides)
        return data

    def test_add_in_locked_year_is_refused(self) -> None:
        lifecycle.lock_financial_year(self.fy.pk, self.principal)

        response = self.client.post(self.add_url, self.add_form())

        self.assertEqual(response.status_code, 200)
        self.assertEqual(Allocation.objects.filter(financial_year=self.fy).count(), 1)

    def test_change_in_locked_year_is_refused(self) -> None:
        lifecycle.lock_financial_year(self.fy.pk, self.principal)

        response = self.client.post(self.change_url, {'allocated_amount': '1', 'remarks': ''})

        self.assertEqual(response.status_code, 200)
        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.allocated_amount, Decimal('100000.00'))

    def test_change_below_spent_is_refused(self) -> None:
        Allocation.objects.filter(pk=self.allocation.pk).update(spent_amount=Decimal('50000'))

        response = self.client.post(self.change_url, {'allocated_amount': '40000', 'remarks': ''})

        self.assertEqual(response.status_code, 200)
        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.allocated_amount, Decimal('100000.00'))

    def test_add_in_active_year_uses_service(self) -> None:
        with self.captureOnCommitCallbacks(execute=True):
            response = self.client.post(self.add_url, self.add_form())

        self.assertEqual(response.status_code, 302)
        allocation = Allocation.objects.get(financial_year=self.fy, department=self.physics, budget_head=self.library)
        self.assertEqual(allocation.allocated_amount, Decimal('5000.00'))
        self.assertEqual(allocation.created_by, self.superuser)
        self.assertEqual(allocation.history.get().version, 1)
        self.assertTrue(
            AuditLog.objects.filter(event_type=EventType.ALLOCATION_CREATED, target_id=str(allocation.pk)).exists()
        )

    def test_change_records_history(self) -> None:
        response = self.client.post(self.change_url, {'allocated_amount': '120000', 'remarks': 'Revised'})

        self.assertEqual(response.status_code, 302)
        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.allocated_amount, Decimal('120000.00'))
        latest = services.get_allocation_history(self.allocation.pk)[0]
        self.assertEqual(latest.version, 2)
        self.assertEqual(latest.change_reason, 'Edited in admin')


class BudgetProposalTests(BudgetFixtureMixin, TestCase):
    """Tests for the budget proposal workflow."""

    def setUp(self):
        super().setUp()
        self.items = [
            {'budget_head_id': self.library.pk, 'proposed_amount': '40000', 'justification': 'New journals'},
            {'budget_head_id': self.lab.pk, 'proposed_amount': '150000', 'justification': 'Spectrometer'},
        ]

    def submitted(self, actor=None):
        proposal = proposals.create_proposal(actor or self.clerk, self.fy.pk, self.physics.pk, self.items)
        return proposals.submit_proposal(proposal.pk, actor or self.clerk)

    def test_create_draft(self) -> None:
        proposal = proposals.create_proposal(self.clerk, self.fy.pk, self.physics.pk, self.items, notes='FY plan')

        self.assertEqual(proposal.status, ProposalStatus.DRAFT)
        self.assertEqual(proposal.total_proposed_amount, Decimal('190000.00'))
        self.assertEqual(proposal.items.count(), 2)
        self.assertEqual(proposal.created_by, self.clerk)

    def test_previous_year_utilization_recorded(self) -> None:
        previous = lifecycle.create_financial_year('2024-25')
        earlier = services.create_allocation(self.office, self.physics.pk, self.library.pk, previous.pk, '10000')
        Allocation.objects.filter(pk=earlier.pk).update(spent_amount=Decimal('7500'))

        proposal = proposals.create_proposal(self.clerk, self.fy.pk, self.physics.pk, self.items)

        self.assertEqual(proposal.items.get(budget_head=self.library).previous_year_utilization, 75)
        self.assertIsNone(proposal.items.get(budget_head=self.lab).previous_year_utilization)

    def test_department_user_limited_to_own_department(self) -> None:
        with self.assertRaises(UnauthorizedRoleException):
            proposals.create_proposal(self.clerk, self.fy.pk, self.chemistry.pk, self.items)

    def test_item_requires_justification(self) -> None:
        self.items[0]['justification'] = ' '

        with self.assertRaises(ValidationError):
            proposals.create_proposal(self.clerk, self.fy.pk, self.physics.pk, self.items)

    def test_repeated_budget_head_fails(self) -> None:
        with self.assertRaises(ValidationError):
            proposals.create_proposal(self.clerk, self.fy.pk, self.physics.pk, [self.items[0], self.items[0]])

    def test_only_drafts_are_editable(self) -> None:
        proposal = self.submitted()

        with self.assertRaises(WorkflowTransitionException):
            proposals.update_proposal(proposal.pk, self.clerk, notes='late edit')

    def test_verify_then_approve_creates_allocations(self) -> None:
        proposal = self.submitted()
        proposals.apply_proposal_decision(proposal.pk, self.hod, UserRole.HOD, ProposalDecision.VERIFY)

        result = proposals.apply_proposal_decision(
            proposal.pk, self.principal, UserRole.PRINCIPAL, ProposalDecision.APPROVE
        )

        proposal = result['proposal']
        self.assertEqual(proposal.status, ProposalStatus.APPROVED)
        self.assertEqual(proposal.approved_by, self.principal)
        self.assertEqual([row['budget_head'] for row in result['created_allocations']], ['LIB'])
        self.assertEqual([row['budget_head'] for row in result['skipped_items']], ['LAB'])
        created = Allocation.objects.get(financial_year=self.fy, department=self.physics, budget_head=self.library)
        self.assertEqual(created.allocated_amount, Decimal('40000.00'))
        self.assertIn(f'#{proposal.pk}', created.history.get().change_reason)
        self.allocation.refresh_from_db()
        self.assertEqual(self.allocation.allocated_amount, Decimal('100000.00'))
        self.assertEqual([s.decision for s in proposal.get_steps()], ['verify', 'approve'])

    def test_office_can_approve_without_verification(self) -> None:
        proposal = self.submitted()

        result = proposals.apply_proposal_decision(proposal.pk, self.office, UserRole.OFFICE, ProposalDecision.APPROVE)

        self.assertEqual(result['proposal'].status, ProposalStatus.APPROVED)

    def test_hod_cannot_review_other_department(self) -> None:
        proposal = self.submitted()

        with self.assertRaises(UnauthorizedRoleException):
            proposals.apply_proposal_decision(proposal.pk, self.other_hod, UserRole.HOD, ProposalDecision.VERIFY)

    def test_hod_cannot_approve(self) -> None:
        proposal = self.submitted()

        with self.assertRaises(UnauthorizedRoleException):
            proposals.apply_proposal_decision(proposal.pk, self.hod, UserRole.HOD, ProposalDecision.APPROVE)

    def test_submitter_cannot_review(self) -> None:
        proposal = self.submitted(actor=self.office)

        with self.assertRaises(SelfApprovalException):
            proposals.apply_proposal_decision(proposal.pk, self.office, UserRole.OFFICE, ProposalDecision.APPROVE)

    def test_draft_cannot_be_approved(self) -> None:
        proposal = proposals.create_proposal(self.clerk, self.fy.pk, self.physics.pk, self.items)

        with self.assertRaises(WorkflowTransitionException):
            proposals.apply_proposal_decision(
                proposal.pk, self.principal, UserRole.PRINCIPAL, ProposalDecision.APPROVE
            )

    def test_reject_requires_remarks(self) -> None:
        proposal = self.submitted()

        with self.assertRaises(RemarksRequiredException):
            proposals.apply_proposal_decision(proposal.pk, self.principal, UserRole.PRINCIPAL, ProposalDecision.REJECT)

    def test_approve_in_locked_year_fails(self) -> None:
        proposal = self.submitted()
        lifecycle.lock_financial_year(self.fy.pk, self.principal)

        with self.assertRaises(YearLockedException):
            proposals.apply_proposal_decision(
                proposal.pk, self.principal, UserRole.PRINCIPAL, ProposalDecision.APPROVE
            )

        proposal.refresh_from_db()
        self.assertEqual(proposal.status, ProposalStatus.SUBMITTED)
        self.assertFalse(Allocation.objects.filter(budget_head=self.library).exists())

    def test_reject_then_resubmit(self) -> None:
        proposal = self.submitted()
        proposals.apply_proposal_decision(
            proposal.pk, self.principal, UserRole.PRINCIPAL, ProposalDecision.REJECT, remarks='Too high'
        )

        draft = proposals.resubmit_proposal(proposal.pk, self.clerk)

        proposal.refresh_from_db()
        self.assertEqual(proposal.status, ProposalStatus.REVISED)
        self.assertEqual(proposal.rejection_reason, 'Too high')
        self.assertEqual(draft.status, ProposalStatus.DRAFT)
        self.assertEqual(draft.original_proposal, proposal)
        self.assertEqual(draft.total_proposed_amount, Decimal('190000.00'))
        self.assertEqual(draft.items.count(), 2)

    def test_only_rejected_proposals_can_be_resubmitted(self) -> None:
        proposal = self.submitted()

        with self.assertRaises(WorkflowTransitionException):
            proposals.resubmit_proposal(proposal.pk, self.clerk)

    def test_review_steps_are_append_only(self) -> None:
        proposal = self.submitted()
        proposals.apply_proposal_decision(proposal.pk, self.hod, UserRole.HOD, ProposalDecision.VERIFY)

        with self.assertRaises(ValueError):
            ProposalStep.objects.filter(proposal=proposal).delete()

    def test_approval_is_audited(self) -> None:
        proposal = self.submitted()

        with self.captureOnCommitCallbacks(execute=True):
            proposals.apply_proposal_decision(proposal.pk, self.office, UserRole.OFFICE, ProposalDecision.APPROVE)

        entry = AuditLog.objects.get(event_type=EventType.PROPOSAL_APPROVED)
        self.assertEqual(entry.actor, self.office)
        self.assertEqual(entry.details['skipped_budget_heads'], ['LAB'])
        self.assertEqual(len(entry.details['created_allocations']), 1)


class ProposalAndHistoryApiTests(BudgetFixtureMixin, TestCase):
    """Tests for the proposal and allocation history endpoints."""

    def post_json(self, url: str, data: dict):
        return self.client.post(url, data=json.dumps(data), content_type='application/json')

    def test_proposal_flow_over_api(self) -> None:
        self.client.force_login(self.clerk)
        response = self.post_json('/budgeting/api/proposals/', {
            'financial_year': self.fy.pk,
            'items': [{'budget_head_id': self.library.pk, 'proposed_amount': '40000',
                       'justification': 'New journals'}],
        })
        self.assertEqual(response.status_code, 201)
        proposal_id = response.json()['data']['id']
        self.assertEqual(response.json()['data']['department']['code'], 'PHY')

        response = self.post_json(f'/budgeting/api/proposals/{proposal_id}/submit/', {})
        self.assertEqual(response.json()['data']['status'], ProposalStatus.SUBMITTED)

        self.client.force_login(self.principal)
        response = self.post_json(f'/budgeting/api/proposals/{proposal_id}/decision/', {'decision': 'approve'})

        self.assertEqual(response.status_code, 200)
        data = response.json()['data']
        self.assertEqual(data['status'], ProposalStatus.APPROVED)
        self.assertEqual(data['created_allocations'][0]['budget_head'], 'LIB')

    def test_other_department_cannot_see_proposal(self) -> None:
        proposal = proposals.create_proposal(self.clerk, self.fy.pk, self.physics.pk, [
            {'budget_head_id': self.library.pk, 'proposed_amount': '40000', 'justification': 'Journals'},
        ])
        self.client.force_login(self.other_hod)

        response = self.client.get(f'/budgeting/api/proposals/{proposal.pk}/')

        self.assertEqual(response.status_code, 404)

    def test_history_and_rollback_endpoints(self) -> None:
        services.update_allocation(self.allocation.pk, self.office, allocated_amount='120000')
        self.client.force_login(self.office)

        response = self.client.get(f'/budgeting/api/allocations/{self.allocation.pk}/history/')
        self.assertEqual([row['version'] for row in response.json()['data']], [2, 1])

        response = self.post_json(f'/budgeting/api/allocations/{self.allocation.pk}/rollback/1/', {})
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()['data']['allocation']['allocated_amount'], '100000.00')
        self.assertEqual(response.json()['data']['history']['version'], 3)

    def test_rollback_forbidden_for_department_user(self) -> None:
        self.client.force_login(self.clerk)

        response = self.post_json(f'/budgeting/api/allocations/{self.allocation.pk}/rollback/1/', {})

        self.assertEqual(response.status_code, 403)
