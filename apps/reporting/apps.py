"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Reporting app configuration.
-------------------------------------------------------------------------
"""
from django.apps import AppConfig


class ReportingConfig(AppConfig):
    """Read-only utilization rollups and year comparisons."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.reporting'
    verbose_name = 'Reports'
