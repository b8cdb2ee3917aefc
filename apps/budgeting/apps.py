"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: App configuration for the budgeting module.
             Handles departments, budget heads, the financial year
             lifecycle, allocations and income.
-------------------------------------------------------------------------
"""
from django.apps import AppConfig


class BudgetingConfig(AppConfig):
    """
    Configuration class for the budgeting application.

    This app manages:
    - Departments and budget heads
    - Financial year lifecycle (planning, active, locked, closed)
    - Allocations and income records
    """

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.budgeting'
    verbose_name = 'Budgeting Module'
