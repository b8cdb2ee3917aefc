"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Management command to recalculate the cached totals of
             one or all open financial years.
-------------------------------------------------------------------------
"""
from django.core.management.base import BaseCommand, CommandError

from apps.core.exceptions import CBMSException
from apps.budgeting.lifecycle import recalculate_financial_year
from apps.budgeting.logging import BudgetLogger
from apps.budgeting.models import FinancialYear, FinancialYearStatus


class Command(BaseCommand):
    help = 'Recalculate cached totals of financial years'

    def add_arguments(self, parser):
        parser.add_argument(
            '--year',
            type=str,
            help='Financial year label (e.g., 2025-26)',
        )
        parser.add_argument(
            '--all',
            action='store_true',
            help='Recalculate every financial year that is not closed',
        )

    def handle(self, *args, **options):
        year_name = options.get('year')

        if options.get('all'):
            years = FinancialYear.objects.exclude(status=FinancialYearStatus.CLOSED)
        elif year_name:
            years = FinancialYear.objects.filter(year_name=year_name)
            if not years.exists():
                raise CommandError(f'Financial year "{year_name}" not found')
        else:
            raise CommandError('Pass --year "2025-26" or --all')

        for fy in years.order_by('start_date'):
            try:
                fy = recalculate_financial_year(fy.pk)
            except CBMSException as e:
                BudgetLogger.log_error('recalculate_financial_year', e, {'financial_year_id': fy.pk})
                raise CommandError(f'{fy.year_name}: {e.message}') from e
            self.stdout.write(self.style.SUCCESS(
                f'{fy.year_name}: allocated {fy.total_allocated}, spent {fy.total_spent}, '
                f'utilization {fy.utilization_percentage}%'
            ))
