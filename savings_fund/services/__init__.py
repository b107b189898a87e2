"""Services package for the savings fund rules engine.

Leaf-first: the calendar resolver feeds the period state machine, which the
eligibility guard and amortization calculator build on. The fund ledger reads
settled state independently.
"""

from . import calendar_resolver
from . import penalty_policy
from . import period_state
from . import eligibility
from . import amortization
from . import fund_ledger
from . import period_generator
from . import reminders

from .eligibility import check_loan_eligibility
from .amortization import calculate_amortization, record_payment
from .fund_ledger import calculate_available_funds, build_fund_report
from .period_generator import generate_next_period

__all__ = ['calendar_resolver', 'penalty_policy', 'period_state', 'eligibility',
           'amortization', 'fund_ledger', 'period_generator', 'reminders',
           'check_loan_eligibility', 'calculate_amortization', 'record_payment',
           'calculate_available_funds', 'build_fund_report', 'generate_next_period']
