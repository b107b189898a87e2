"""Centralized configuration for the savings fund ledger.

This module contains the business rule constants, default values and
formats shared by the rules engine and its persistence layer.
"""

# =============================================================================
# HALF-MONTH DUES
# =============================================================================

# Day of the month by which the first half-month due must be paid
Q1_DEADLINE_DAY = 3

# Day of the month by which the second half-month due must be paid
Q2_DEADLINE_DAY = 18

# Days on which the advisory reminder fires
REMINDER_DAYS = (Q1_DEADLINE_DAY, Q2_DEADLINE_DAY)

# =============================================================================
# FUND DEFAULTS
# =============================================================================

# Default monthly interest rate, as a percentage (5 means 5%)
DEFAULT_INTEREST_RATE = 5.0

# Reminders are on for a fresh account
DEFAULT_ENABLE_REMINDERS = True

# =============================================================================
# BUSINESS RULES
# =============================================================================

# Minimum loan duration in months
MIN_LOAN_DURATION = 1

# Money is rounded to this many decimal places
CURRENCY_DECIMALS = 2

# Loan status values
LOAN_STATUS_ACTIVE = "active"
LOAN_STATUS_PAID = "paid"

# =============================================================================
# FORMATS
# =============================================================================

# Date format for storage (ISO 8601)
DATE_FORMAT_STORAGE = "%Y-%m-%d"

# Month identifier format
MONTH_ID_FORMAT = "%Y-%m"

# Month label for display
MONTH_LABEL_FORMAT = "%B %Y"

# =============================================================================
# STORAGE AND LOGGING
# =============================================================================

DEFAULT_DB_NAME = "savings_fund.db"

LOGGER_NAME = "savings_fund"

DEFAULT_LOG_LEVEL = "INFO"
