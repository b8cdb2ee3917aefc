"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Expenditure app configuration.
-------------------------------------------------------------------------
"""
from django.apps import AppConfig


class ExpenditureConfig(AppConfig):
    """Configuration for the expenditure application."""

    default_auto_field = 'django.db.models.BigAutoField'
    name = 'apps.expenditure'
    verbose_name = 'Expenditure Management'

    def ready(self):
        """Import signal handlers when app is ready."""
        import apps.expenditure.signals  # noqa
