"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Management command to lock and close a financial year at
             year end.
-------------------------------------------------------------------------
"""
from django.core.management.base import BaseCommand, CommandError

from apps.core.exceptions import CBMSException
from apps.budgeting.lifecycle import close_financial_year, lock_financial_year
from apps.budgeting.logging import BudgetLogger
from apps.budgeting.models import FinancialYear, FinancialYearStatus


class Command(BaseCommand):
    help = 'Close a financial year and compute its carryforward'

    def add_arguments(self, parser):
        parser.add_argument(
            '--year',
            type=str,
            required=True,
            help='Financial year label (e.g., 2025-26)',
        )
        parser.add_argument(
            '--remarks',
            type=str,
            default='',
            help='Closure remarks',
        )
        parser.add_argument(
            '--lock',
            action='store_true',
            help='Lock the year first if it is still active',
        )

    def handle(self, *args, **options):
        year_name = options['year']
        try:
            fy = FinancialYear.objects.get(year_name=year_name)
        except FinancialYear.DoesNotExist:
            raise CommandError(f'Financial year "{year_name}" not found')

        try:
            if options['lock'] and fy.status == FinancialYearStatus.ACTIVE:
                lock_financial_year(fy.pk, remarks=options['remarks'])
                self.stdout.write(f'Locked financial year {year_name}')
            fy = close_financial_year(fy.pk, remarks=options['remarks'])
        except CBMSException as e:
            BudgetLogger.log_error('close_financial_year', e, {'financial_year_id': fy.pk})
            raise CommandError(f'{year_name}: {e.message}') from e

        self.stdout.write(self.style.SUCCESS(
            f'Closed financial year {fy.year_name}. Carryforward: {fy.carryforward_amount}'
        ))
