from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from enum import Enum
from typing import List, Union

from envelopes.config import get_money_quantum
from envelopes.errors import InvalidAmount


Money = Decimal
MoneyLike = Union[Decimal, int, float, str]


class CategoryKind(str, Enum):
    EXPENSE = "EXPENSE"
    SAVING = "SAVING"
    BILLS = "BILLS"

    @classmethod
    def parse(cls, value) -> CategoryKind:
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"Unknown category kind: {value!r}") from None


def to_money(value: MoneyLike) -> Money:
    """Convert a user-supplied amount to a quantized Decimal.

    Floats go through ``str`` so that 124.75 stays 124.75. Values with more
    precision than the money quantum are rejected rather than rounded.
    """
    if isinstance(value, bool):
        raise InvalidAmount(f"Not a monetary amount: {value!r}")
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidAmount(f"Not a monetary amount: {value!r}") from None
    if not amount.is_finite():
        raise InvalidAmount(f"Not a monetary amount: {value!r}")
    try:
        quantized = amount.quantize(get_money_quantum(), rounding=ROUND_HALF_UP)
    except InvalidOperation:
        raise InvalidAmount(f"Amount out of range: {value!r}") from None
    if quantized != amount:
        raise InvalidAmount(f"Amount is finer than {get_money_quantum()}: {value!r}")
    return quantized


@dataclass(frozen=True)
class Allocation:
    name: str
    amount: Money
    kind: CategoryKind
    remaining: Money

    @property
    def spent(self) -> Money:
        return self.amount - self.remaining


@dataclass(frozen=True)
class Transaction:
    id: str
    category_name: str
    amount: Money
    description: str
    timestamp: datetime


@dataclass
class BudgetSummary:
    total_income: Money
    total_allocated: Money
    total_remaining: Money
    unallocated: Money
    allocations: List[Allocation] = field(default_factory=list)
