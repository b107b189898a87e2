"""Ledger and rules engine for a community savings-and-lending fund."""

__version__ = "1.0.0"

from .database import DatabaseManager
from .engine import FundEngine
from .session import FundSession

__all__ = ['DatabaseManager', 'FundEngine', 'FundSession', '__version__']
