"""Display-only projections of a budget summary.

Nothing here is stored back into the ledger: ids, colours and percentages
are derived fresh from each summary snapshot.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List

from envelopes.models import Allocation, BudgetSummary, CategoryKind, Money

PALETTE = (
    "#4299E1",
    "#48BB78",
    "#ED8936",
    "#9F7AEA",
    "#F56565",
    "#38B2AC",
    "#ED64A6",
    "#667EEA",
    "#F6AD55",
    "#4FD1C5",
)

_HUNDRED = Decimal(100)


@dataclass(frozen=True)
class ExtendedAllocation:
    id: str
    name: str
    kind: CategoryKind
    amount: Money
    remaining: Money
    spent: Money
    color: str
    percent_used: Decimal
    percent_remaining: Decimal
    status: str


@dataclass(frozen=True)
class ExtendedSummary:
    total_income: Money
    total_allocated: Money
    total_remaining: Money
    unallocated: Money
    total_amount: Money
    total_spent: Money
    allocations: List[ExtendedAllocation] = field(default_factory=list)


def slugify(name: str) -> str:
    return re.sub(r"\s+", "-", name.strip().lower())


def _percent(part: Money, whole: Money) -> Decimal:
    if whole == 0:
        return Decimal(0)
    return (part / whole * _HUNDRED).quantize(Decimal("0.01"))


def envelope_status(percent_remaining: Decimal) -> str:
    if percent_remaining > 75:
        return "Full"
    if percent_remaining > 50:
        return "Good"
    if percent_remaining > 25:
        return "Low"
    return "Empty"


def extend_allocation(allocation: Allocation, index: int) -> ExtendedAllocation:
    spent = allocation.amount - allocation.remaining
    percent_remaining = _percent(allocation.remaining, allocation.amount)
    return ExtendedAllocation(
        id=f"allocation-{index}-{slugify(allocation.name)}",
        name=allocation.name,
        kind=allocation.kind,
        amount=allocation.amount,
        remaining=allocation.remaining,
        spent=spent,
        color=PALETTE[index % len(PALETTE)],
        percent_used=_percent(spent, allocation.amount),
        percent_remaining=percent_remaining,
        status=envelope_status(percent_remaining),
    )


def extend_summary(summary: BudgetSummary) -> ExtendedSummary:
    allocations = [extend_allocation(a, i) for i, a in enumerate(summary.allocations)]
    return ExtendedSummary(
        total_income=summary.total_income,
        total_allocated=summary.total_allocated,
        total_remaining=summary.total_remaining,
        unallocated=summary.unallocated,
        total_amount=summary.total_allocated,
        total_spent=sum((a.spent for a in allocations), Decimal(0)),
        allocations=allocations,
    )


def kind_breakdown(summary: BudgetSummary) -> Dict[str, Dict[str, Decimal]]:
    """Totals per category kind, keyed by kind value.

    Every kind is present even when no allocation uses it.
    """
    breakdown = {
        kind.value: {
            "amount": Decimal(0),
            "spent": Decimal(0),
            "remaining": Decimal(0),
            "spent_percent": Decimal(0),
        } for kind in CategoryKind
    }

    for a in summary.allocations:
        row = breakdown[a.kind.value]
        row["amount"] += a.amount
        row["spent"] += a.amount - a.remaining
        row["remaining"] += a.remaining

    for row in breakdown.values():
        row["spent_percent"] = _percent(row["spent"], row["amount"])

    return breakdown
