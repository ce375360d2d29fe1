"""Exceptions raised by the ledger.

Every failure is caller-correctable and leaves the ledger untouched.
"""

from __future__ import annotations


class LedgerError(ValueError):
    """Base class for rejected ledger operations."""


class InvalidAmount(LedgerError):
    """A non-positive or non-numeric amount was supplied."""


class InvalidAllocation(LedgerError):
    """Malformed allocation input: empty name, bad amount or unknown kind."""


class DuplicateCategory(LedgerError):
    def __init__(self, name: str):
        super().__init__(f'Budget category "{name}" already exists')
        self.name = name


class CategoryNotFound(LedgerError):
    def __init__(self, name: str):
        super().__init__(f'Budget category "{name}" not found')
        self.name = name


class BudgetExceedsIncome(LedgerError):
    def __init__(self, total, income):
        super().__init__(f"Total allocations ({total}) would exceed monthly income ({income})")
        self.total = total
        self.income = income


class InsufficientFunds(LedgerError):
    def __init__(self, name: str, remaining, requested):
        super().__init__(
            f'Insufficient funds in "{name}". Remaining: {remaining}, Expense: {requested}'
        )
        self.name = name
        self.remaining = remaining
        self.requested = requested
