"""
-------------------------------------------------------------------------
System: CBMS (College Budget Management System)
Client: College Finance & Accounts Office
Team Lead: College IT Cell
Developers: CBMS Development Team
Description: Carryforward strategies applied when a financial year is
             closed. The active strategy is chosen with the
             CBMS_CARRYFORWARD_STRATEGY setting.
-------------------------------------------------------------------------
"""
from decimal import Decimal
from typing import Callable, Dict

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured
from django.utils.module_loading import import_string


CarryforwardStrategy = Callable[[object], Decimal]

DEFAULT_STRATEGY = 'allocated_minus_spent'


def allocated_minus_spent(financial_year) -> Decimal:
    """Unspent allocation: total_allocated - total_spent."""
    return financial_year.total_allocated - financial_year.total_spent


def income_minus_spent(financial_year) -> Decimal:
    """Cash balance: total_income_received - total_spent."""
    return financial_year.total_income_received - financial_year.total_spent


def no_carryforward(financial_year) -> Decimal:
    return Decimal('0.00')


STRATEGIES: Dict[str, CarryforwardStrategy] = {
    'allocated_minus_spent': allocated_minus_spent,
    'income_minus_spent': income_minus_spent,
    'none': no_carryforward,
}


def get_carryforward_strategy(name: str = None) -> CarryforwardStrategy:
    """
    Resolve a carryforward strategy.

    Args:
        name: Registered strategy name or dotted path to a callable that
              takes a FinancialYear and returns a Decimal. Defaults to
              the CBMS_CARRYFORWARD_STRATEGY setting.

    Raises:
        ImproperlyConfigured: If the strategy cannot be resolved.
    """
    name = name or getattr(settings, 'CBMS_CARRYFORWARD_STRATEGY', DEFAULT_STRATEGY)
    if name in STRATEGIES:
        return STRATEGIES[name]
    try:
        strategy = import_string(name)
    except ImportError as e:
        raise ImproperlyConfigured(f"Unknown carryforward strategy '{name}'.") from e
    if not callable(strategy):
        raise ImproperlyConfigured(f"Carryforward strategy '{name}' is not callable.")
    return strategy


def compute_carryforward(financial_year, name: str = None) -> Decimal:
    """Apply the configured strategy and quantize to paisa."""
    amount = Decimal(get_carryforward_strategy(name)(financial_year))
    return amount.quantize(Decimal('0.01'))
