"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Unit tests for utilization, rollup and year comparison
             services and the reporting API.
-------------------------------------------------------------------------
"""
from decimal import Decimal

from django.test import SimpleTestCase, TestCase

from apps.budgeting import lifecycle, services as budget_services
from apps.budgeting.models import Allocation
from apps.budgeting.tests import BudgetFixtureMixin
from apps.expenditure.models import ApprovalDecision, ExpenditureStatus
from apps.expenditure.services import apply_decision, submit_expenditure
from apps.reporting.services import (
    budget_head_rollup,
    change_percentage,
    department_rollup,
    get_allocation_stats,
    get_dashboard_report,
    get_year_comparison,
    utilization_band,
    utilization_percentage,
    year_over_year_change,
)
from apps.users.models import UserRole


class UtilizationPercentageTests(SimpleTestCase):
    """Tests for utilization_percentage and the utilization bands."""

    def test_whole_number_display(self) -> None:
        self.assertEqual(utilization_percentage(100000, 30000), 30)
        self.assertIsInstance(utilization_percentage(100000, 30000), int)

    def test_zero_or_negative_allocation(self) -> None:
        """Test that nothing allocated means zero utilization, never an error."""
        self.assertEqual(utilization_percentage(0, 500), 0)
        self.assertEqual(utilization_percentage(Decimal('-10'), 5), 0)
        self.assertEqual(utilization_percentage(0, 0, precision=2), Decimal('0.00'))

    def test_half_up_rounding(self) -> None:
        self.assertEqual(utilization_percentage(200, 1), 1)
        self.assertEqual(utilization_percentage(3, 1, precision=2), Decimal('33.33'))
        self.assertEqual(utilization_percentage(3, 2, precision=2), Decimal('66.67'))

    def test_overspent_allocation(self) -> None:
        self.assertEqual(utilization_percentage(100, 150), 150)

    def test_accepts_strings_and_none(self) -> None:
        self.assertEqual(utilization_percentage('1000.00', None), 0)
        self.assertEqual(utilization_percentage('1000.00', '250.00', precision=2), Decimal('25.00'))

    def test_bands(self) -> None:
        self.assertEqual(utilization_band(0), '0-25')
        self.assertEqual(utilization_band(25), '0-25')
        self.assertEqual(utilization_band(Decimal('25.01')), '25-50')
        self.assertEqual(utilization_band(90), '75-90')
        self.assertEqual(utilization_band(Decimal('90.01')), '90+')
        self.assertEqual(utilization_band(140), '90+')


class YearOverYearChangeTests(SimpleTestCase):
    """Tests for change_percentage and year_over_year_change."""

    def test_change_percentage(self) -> None:
        self.assertEqual(change_percentage(110, 100), Decimal('10.00'))
        self.assertEqual(change_percentage(50, 150), Decimal('-66.67'))

    def test_previous_zero(self) -> None:
        result = year_over_year_change({'allocated': Decimal('100')}, {'allocated': Decimal('0')})

        self.assertTrue(result['has_data'])
        self.assertEqual(result['change'], Decimal('100'))
        self.assertEqual(result['change_percentage'], Decimal('0.00'))

    def test_previous_absent(self) -> None:
        result = year_over_year_change({'allocated': Decimal('100')}, None)

        self.assertFalse(result['has_data'])
        self.assertEqual(result['current'], Decimal('100'))
        self.assertIsNone(result['change_percentage'])
        self.assertEqual(result['message'], 'No data')

    def test_callable_metric(self) -> None:
        def remaining(totals):
            return totals['allocated'] - totals['spent']

        result = year_over_year_change(
            {'allocated': Decimal('100'), 'spent': Decimal('40')},
            {'allocated': Decimal('100'), 'spent': Decimal('70')},
            remaining
        )

        self.assertEqual(result['metric'], 'remaining')
        self.assertEqual(result['change'], Decimal('30'))
        self.assertEqual(result['change_percentage'], Decimal('100.00'))

    def test_unknown_metric(self) -> None:
        with self.assertRaises(ValueError):
            year_over_year_change({'allocated': 1}, {'allocated': 1}, 'income')


class ReportingFixtureMixin(BudgetFixtureMixin):
    """
    2025-26: Physics/LAB 100,000 with a 30,000 approved and a 5,000
    pending bill, Physics/LIB 20,000 and Chemistry/LIB 50,000.
    2024-25: Physics/LAB 80,000 with 60,000 spent.
    """

    def setUp(self):
        super().setUp()
        self.physics_library = budget_services.create_allocation(
            self.office, self.physics.pk, self.library.pk, self.fy.pk, '20000'
        )
        self.chemistry_library = budget_services.create_allocation(
            self.office, self.chemistry.pk, self.library.pk, self.fy.pk, '50000'
        )

        approved = submit_expenditure(self.clerk, self.allocation.pk, self.bill())
        apply_decision(approved.pk, self.hod, UserRole.HOD, ApprovalDecision.VERIFY)
        apply_decision(approved.pk, self.principal, UserRole.PRINCIPAL, ApprovalDecision.APPROVE)
        submit_expenditure(self.clerk, self.allocation.pk, self.bill('INV-002', '5000'))

        self.previous_fy = lifecycle.create_financial_year('2024-25', user=self.principal)
        previous = budget_services.create_allocation(
            self.office, self.physics.pk, self.lab.pk, self.previous_fy.pk, '80000'
        )
        Allocation.objects.filter(pk=previous.pk).update(spent_amount=Decimal('60000'))


class RollupTests(ReportingFixtureMixin, TestCase):
    """Tests for department and budget head rollups and allocation stats."""

    def test_department_rollup(self) -> None:
        rollup = department_rollup(self.physics, self.fy)

        self.assertEqual(rollup['allocated'], Decimal('120000'))
        self.assertEqual(rollup['spent'], Decimal('30000'))
        self.assertEqual(rollup['remaining'], Decimal('90000'))
        self.assertEqual(rollup['utilization'], 25)
        self.assertEqual(rollup['allocation_count'], 2)
        self.assertEqual(rollup['expenditure_count'], 2)
        self.assertEqual(rollup['code'], 'PHY')

    def test_department_rollup_other_year(self) -> None:
        rollup = department_rollup(self.physics, self.previous_fy)

        self.assertEqual(rollup['allocated'], Decimal('80000'))
        self.assertEqual(rollup['utilization'], 75)
        self.assertEqual(rollup['expenditure_count'], 0)

    def test_empty_department_rollup(self) -> None:
        rollup = department_rollup(self.chemistry, self.previous_fy)

        self.assertEqual(rollup['allocated'], Decimal('0.00'))
        self.assertEqual(rollup['utilization'], 0)
        self.assertEqual(rollup['allocation_count'], 0)

    def test_budget_head_rollup(self) -> None:
        rollup = budget_head_rollup(self.lab, self.fy)

        self.assertEqual(rollup['allocated'], Decimal('100000'))
        self.assertEqual(rollup['spent'], Decimal('30000'))
        self.assertEqual(rollup['utilization'], 30)
        self.assertEqual(rollup['expenditure_count'], 2)

    def test_allocation_stats_for_year(self) -> None:
        stats = get_allocation_stats(financial_year=self.fy)

        summary = stats['summary']
        self.assertEqual(summary['allocated'], Decimal('170000'))
        self.assertEqual(summary['spent'], Decimal('30000'))
        self.assertEqual(summary['remaining'], Decimal('140000'))
        self.assertEqual(summary['utilization'], Decimal('17.65'))
        self.assertEqual(summary['allocation_count'], 3)

        breakdown = {row['department__code']: row for row in stats['department_breakdown']}
        self.assertEqual(breakdown['PHY']['allocated'], Decimal('120000'))
        self.assertEqual(breakdown['PHY']['utilization'], Decimal('25.00'))
        self.assertEqual(breakdown['CHE']['spent'], Decimal('0'))

    def test_allocation_stats_filters(self) -> None:
        stats = get_allocation_stats(department=self.physics)
        self.assertEqual(stats['summary']['allocated'], Decimal('200000'))

        stats = get_allocation_stats(financial_year=self.fy, budget_head=self.library)
        self.assertEqual(stats['summary']['allocated'], Decimal('70000'))
        self.assertEqual(len(stats['department_breakdown']), 2)


class DashboardReportTests(ReportingFixtureMixin, TestCase):
    """Tests for get_dashboard_report."""

    def test_totals_and_status_breakdown(self) -> None:
        report = get_dashboard_report(self.fy)

        self.assertEqual(report['financial_year'], '2025-26')
        self.assertEqual(report['totals']['allocated'], Decimal('170000'))
        self.assertEqual(report['totals']['pending_amount'], Decimal('5000'))
        self.assertEqual(report['totals']['verified_amount'], Decimal('0'))
        self.assertEqual(report['status_breakdown'][ExpenditureStatus.APPROVED]['count'], 1)
        self.assertEqual(report['status_breakdown'][ExpenditureStatus.APPROVED]['amount'], Decimal('30000'))
        self.assertEqual(report['status_breakdown'][ExpenditureStatus.REJECTED]['count'], 0)
        self.assertIsNone(report['year_comparison'])

    def test_monthly_trend_counts_approved_only(self) -> None:
        report = get_dashboard_report(self.fy)

        self.assertEqual(len(report['monthly_trend']), 1)
        self.assertEqual(report['monthly_trend'][0]['month'], '2025-08')
        self.assertEqual(report['monthly_trend'][0]['amount'], Decimal('30000'))

    def test_utilization_ranges(self) -> None:
        report = get_dashboard_report(self.fy)

        ranges = report['utilization_ranges']
        self.assertEqual(ranges['0-25']['count'], 2)
        self.assertEqual(ranges['25-50']['count'], 1)
        self.assertEqual(ranges['25-50']['departments'], ['Physics'])
        self.assertEqual(ranges['90+']['count'], 0)
        self.assertEqual(report['high_utilization_count'], 0)
        self.assertEqual(report['low_utilization_count'], 2)

    def test_with_comparison(self) -> None:
        report = get_dashboard_report(self.fy, include_comparison=True)

        self.assertEqual(report['year_comparison']['previous_year'], '2024-25')
        self.assertTrue(report['year_comparison']['has_data'])


class YearComparisonTests(ReportingFixtureMixin, TestCase):
    """Tests for get_year_comparison."""

    def test_overall_changes(self) -> None:
        comparison = get_year_comparison('2025-26', '2024-25')
        overall = comparison['overall']

        self.assertTrue(comparison['has_data'])
        self.assertEqual(overall['allocated']['change'], Decimal('90000'))
        self.assertEqual(overall['allocated']['change_percentage'], Decimal('112.50'))
        self.assertEqual(overall['spent']['change_percentage'], Decimal('-50.00'))
        self.assertEqual(overall['utilization']['current'], Decimal('17.65'))
        self.assertEqual(overall['utilization']['previous'], Decimal('75.00'))
        self.assertEqual(overall['utilization']['change_percentage'], Decimal('-76.47'))

    def test_department_comparison(self) -> None:
        comparison = get_year_comparison('2025-26', '2024-25')
        rows = {row['code']: row for row in comparison['department_comparison']}

        self.assertEqual(rows['PHY']['allocated_change']['change_percentage'], Decimal('50.00'))
        self.assertFalse(rows['CHE']['allocated_change']['has_data'])

    def test_budget_head_comparison(self) -> None:
        comparison = get_year_comparison('2025-26', '2024-25')
        rows = {row['code']: row for row in comparison['budget_head_comparison']}

        self.assertEqual(rows['LAB']['allocated_change']['change'], Decimal('20000'))
        self.assertFalse(rows['LIB']['allocated_change']['has_data'])

    def test_missing_previous_year(self) -> None:
        comparison = get_year_comparison('2025-26', '2023-24')

        self.assertFalse(comparison['has_data'])
        self.assertEqual(comparison['overall']['allocated']['message'], 'No data')
        self.assertEqual(comparison['overall']['allocated']['current'], Decimal('170000'))
        self.assertEqual(comparison['department_comparison'], [])


class ReportingApiTests(ReportingFixtureMixin, TestCase):
    """Tests for the reporting JSON endpoints."""

    def test_requires_login(self) -> None:
        response = self.client.get('/reports/api/dashboard/')
        self.assertEqual(response.status_code, 403)

    def test_dashboard_defaults_to_active_year(self) -> None:
        self.client.force_login(self.principal)

        response = self.client.get('/reports/api/dashboard/')

        data = response.json()['data']
        self.assertEqual(response.status_code, 200)
        self.assertEqual(data['financial_year'], '2025-26')
        self.assertEqual(Decimal(data['totals']['allocated']), Decimal('170000'))
        self.assertIsNone(data['year_comparison'])

    def test_dashboard_with_comparison(self) -> None:
        self.client.force_login(self.principal)

        response = self.client.get('/reports/api/dashboard/?year=2025-26&include_comparison=true')

        self.assertEqual(response.json()['data']['year_comparison']['previous_year'], '2024-25')

    def test_allocation_stats_scoped_for_hod(self) -> None:
        self.client.force_login(self.hod)

        response = self.client.get(f'/reports/api/allocation-stats/?year=2025-26&department={self.chemistry.pk}')

        summary = response.json()['data']['summary']
        self.assertEqual(Decimal(summary['allocated']), Decimal('120000'))

    def test_year_comparison_default_previous(self) -> None:
        self.client.force_login(self.auditor)

        response = self.client.get('/reports/api/year-comparison/?current=2025-26')

        data = response.json()['data']
        self.assertEqual(data['previous_year'], '2024-25')
        self.assertTrue(data['has_data'])

    def test_department_rollup_outside_scope(self) -> None:
        self.client.force_login(self.hod)

        response = self.client.get(f'/reports/api/departments/{self.chemistry.pk}/rollup/')

        self.assertEqual(response.status_code, 404)

    def test_budget_head_rollup(self) -> None:
        self.client.force_login(self.office)

        response = self.client.get(f'/reports/api/budget-heads/{self.lab.pk}/rollup/?year=2025-26')

        data = response.json()['data']
        self.assertEqual(Decimal(data['spent']), Decimal('30000'))
        self.assertEqual(data['utilization'], 30)

    def test_unknown_year(self) -> None:
        self.client.force_login(self.office)

        response = self.client.get('/reports/api/dashboard/?year=2019-20')

        self.assertEqual(response.status_code, 404)
