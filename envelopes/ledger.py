"""Envelope-budget ledger.

A fixed monthly income is split across named categories ("envelopes").
Expenses are recorded against a category and drawn from its remaining
balance; the transaction log is append-only until ``reset_budget``.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Mapping, Optional

from envelopes import config
from envelopes.errors import (
    BudgetExceedsIncome,
    CategoryNotFound,
    DuplicateCategory,
    InsufficientFunds,
    InvalidAllocation,
    InvalidAmount,
)
from envelopes.models import (
    Allocation, BudgetSummary, CategoryKind, Money, MoneyLike, Transaction, to_money
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


def _field(entry: Any, *names: str) -> Any:
    for name in names:
        if isinstance(entry, Mapping):
            if name in entry:
                return entry[name]
        elif hasattr(entry, name):
            return getattr(entry, name)
    raise InvalidAllocation(f"Allocation is missing '{names[0]}': {entry!r}")


def _parse_allocation(entry: Any) -> Allocation:
    """Validate one ``{name, amount, kind}`` input and build a fresh Allocation."""
    name = _field(entry, "name")
    if not isinstance(name, str) or not name.strip():
        raise InvalidAllocation(f"Allocation name must be a non-empty string: {name!r}")

    try:
        amount = to_money(_field(entry, "amount"))
    except InvalidAmount as e:
        raise InvalidAllocation(str(e)) from None
    if amount <= 0:
        raise InvalidAllocation(f'Allocation "{name}" must have a positive amount, got {amount}')

    try:
        kind = CategoryKind.parse(_field(entry, "kind", "type"))
    except ValueError as e:
        raise InvalidAllocation(str(e)) from None

    return Allocation(name=name, amount=amount, kind=kind, remaining=amount)


def _positive(value: MoneyLike, what: str) -> Money:
    amount = to_money(value)
    if amount <= 0:
        raise InvalidAmount(f"{what} must be greater than zero, got {amount}")
    return amount


class Ledger:
    """Zero-based budget: income, ordered allocations and an expense log.

    Every public method is a single atomic transition. On failure it raises
    a :class:`~envelopes.errors.LedgerError` subclass and leaves income,
    allocations and transactions exactly as they were.
    """

    def __init__(
            self,
            income: MoneyLike,
            *,
            clock: Optional[Callable[[], datetime]] = None,
            id_factory: Optional[Callable[[], str]] = None,
            strict_income: Optional[bool] = None,
    ):
        self._income = _positive(income, "Monthly income")
        self._allocations: List[Allocation] = []
        self._transactions: List[Transaction] = []
        self._clock = clock or _utcnow
        self._id_factory = id_factory or _new_id
        self.strict_income = config.STRICT_INCOME if strict_income is None else strict_income
        # check-then-act guards below must not interleave
        self._lock = threading.RLock()

    def __repr__(self) -> str:
        return (f"Ledger(income={self._income}, allocations={len(self._allocations)}, "
                f"transactions={len(self._transactions)})")

    # ===== HELPERS =====
    def _index_of(self, name: str) -> int:
        for i, allocation in enumerate(self._allocations):
            if allocation.name == name:
                return i
        return -1

    def _require(self, name: str) -> int:
        index = self._index_of(name)
        if index == -1:
            logger.warning("Category %r not found", name)
            raise CategoryNotFound(name)
        return index

    def _total_allocated(self) -> Money:
        return sum((a.amount for a in self._allocations), to_money(0))

    def _guard_income(self, total: Money) -> None:
        if total > self._income:
            logger.warning("Rejected allocation total %s above income %s", total, self._income)
            raise BudgetExceedsIncome(total, self._income)

    # ===== PROPERTIES =====
    @property
    def income(self) -> Money:
        return self._income

    def has_category(self, name: str) -> bool:
        with self._lock:
            return self._index_of(name) != -1

    # ===== BUDGET DEFINITION =====
    def create_budget(self, allocations: Iterable[Any]) -> bool:
        """Replace the whole allocation set.

        Each entry needs ``name``, ``amount`` and ``kind`` (mapping keys or
        attributes). Remaining balances start at the allocated amount. The
        transaction log is left alone.
        """
        parsed: List[Allocation] = []
        seen = set()
        for entry in allocations:
            allocation = _parse_allocation(entry)
            if allocation.name in seen:
                logger.warning("Duplicate category %r in budget definition", allocation.name)
                raise DuplicateCategory(allocation.name)
            seen.add(allocation.name)
            parsed.append(allocation)

        total = sum((a.amount for a in parsed), to_money(0))
        with self._lock:
            self._guard_income(total)
            self._allocations = parsed
        logger.info("Created budget with %d categories totalling %s", len(parsed), total)
        return True

    def add_allocation(self, allocation: Any) -> bool:
        new = _parse_allocation(allocation)
        with self._lock:
            if self._index_of(new.name) != -1:
                logger.warning("Category %r already exists", new.name)
                raise DuplicateCategory(new.name)
            self._guard_income(self._total_allocated() + new.amount)
            self._allocations.append(new)
        logger.info("Added category %r (%s, %s)", new.name, new.amount, new.kind.value)
        return True

    def remove_allocation(self, name: str) -> bool:
        """Drop a category. Its past transactions stay in the log."""
        with self._lock:
            index = self._require(name)
            self._allocations.pop(index)
        logger.info("Removed category %r", name)
        return True

    def update_allocation(
            self,
            name: str,
            updates: Optional[Mapping[str, Any]] = None,
            **changes: Any,
    ) -> bool:
        """Change a category's ``name``, ``amount`` and/or ``kind``.

        Updates may be passed as a mapping, as keyword arguments, or both.
        When the amount changes the income guard is re-checked and
        ``remaining`` becomes ``max(0, new_amount - spent)``; otherwise
        ``remaining`` is kept as is.
        """
        changes = {**(updates or {}), **changes}
        if "type" in changes and "kind" not in changes:
            changes["kind"] = changes.pop("type")
        unknown = set(changes) - {"name", "amount", "kind"}
        if unknown:
            raise InvalidAllocation(f"Unknown allocation fields: {', '.join(sorted(unknown))}")

        with self._lock:
            index = self._require(name)
            current = self._allocations[index]
            updated = current

            if changes.get("name") is not None:
                new_name = changes["name"]
                if not isinstance(new_name, str) or not new_name.strip():
                    raise InvalidAllocation(f"Allocation name must be a non-empty string: {new_name!r}")
                if new_name != name and self._index_of(new_name) != -1:
                    logger.warning("Cannot rename %r to existing category %r", name, new_name)
                    raise DuplicateCategory(new_name)
                updated = replace(updated, name=new_name)

            if changes.get("kind") is not None:
                try:
                    updated = replace(updated, kind=CategoryKind.parse(changes["kind"]))
                except ValueError as e:
                    raise InvalidAllocation(str(e)) from None

            if changes.get("amount") is not None:
                new_amount = _positive(changes["amount"], "Allocation amount")
                if new_amount != current.amount:
                    others = self._total_allocated() - current.amount
                    self._guard_income(others + new_amount)
                    spent = current.amount - current.remaining
                    remaining = max(to_money(0), new_amount - spent)
                    updated = replace(updated, amount=new_amount, remaining=remaining)

            self._allocations[index] = updated
        logger.info("Updated category %r -> %r", name, updated)
        return True

    # ===== SPENDING =====
    def record_expense(
            self,
            category_name: str,
            amount: MoneyLike,
            description: str = "",
            allow_overspend: bool = False,
    ) -> str:
        """Spend ``amount`` from a category and return the new transaction id.

        Raises InsufficientFunds when the amount exceeds the remaining
        balance, unless ``allow_overspend`` is set, in which case the
        balance goes negative.
        """
        value = _positive(amount, "Expense amount")
        with self._lock:
            index = self._require(category_name)
            category = self._allocations[index]

            if value > category.remaining:
                if not allow_overspend:
                    logger.warning("Rejected %s expense on %r: %s remaining",
                                   value, category_name, category.remaining)
                    raise InsufficientFunds(category_name, category.remaining, value)
                logger.info("Overspending %r by %s", category_name, value - category.remaining)

            transaction = Transaction(
                id=self._id_factory(),
                category_name=category_name,
                amount=value,
                description=description,
                timestamp=self._clock(),
            )
            self._allocations[index] = replace(category, remaining=category.remaining - value)
            self._transactions.append(transaction)

        logger.info("Recorded %s on %r (%s)", value, category_name, transaction.id)
        return transaction.id

    def force_record_expense(self, category_name: str, amount: MoneyLike, description: str = "") -> str:
        return self.record_expense(category_name, amount, description, allow_overspend=True)

    # ===== READS =====
    def get_allocation(self, name: str) -> Allocation:
        with self._lock:
            return self._allocations[self._require(name)]

    def get_remaining_amount(self, category_name: str) -> Money:
        return self.get_allocation(category_name).remaining

    def get_budget_summary(self) -> BudgetSummary:
        with self._lock:
            allocations = list(self._allocations)
            income = self._income
        total_allocated = sum((a.amount for a in allocations), to_money(0))
        total_remaining = sum((a.remaining for a in allocations), to_money(0))
        logger.debug("Summary: allocated=%s remaining=%s", total_allocated, total_remaining)
        return BudgetSummary(
            total_income=income,
            total_allocated=total_allocated,
            total_remaining=total_remaining,
            unallocated=income - total_allocated,
            allocations=allocations,
        )

    def get_transactions(self) -> List[Transaction]:
        with self._lock:
            return list(self._transactions)

    def get_category_transactions(self, category_name: str) -> List[Transaction]:
        with self._lock:
            return [t for t in self._transactions if t.category_name == category_name]

    # ===== PERIOD =====
    def update_monthly_income(self, new_income: MoneyLike, strict: Optional[bool] = None) -> bool:
        """Replace the income.

        Existing allocations are not re-checked unless ``strict`` (or the
        ledger's ``strict_income``) is set.
        """
        value = _positive(new_income, "Monthly income")
        strict = self.strict_income if strict is None else strict
        with self._lock:
            if strict:
                total = self._total_allocated()
                if total > value:
                    logger.warning("Rejected income %s below allocated total %s", value, total)
                    raise BudgetExceedsIncome(total, value)
            self._income = value
        logger.info("Monthly income set to %s", value)
        return True

    def reset_budget(self) -> bool:
        """Refill every envelope and clear the transaction log."""
        with self._lock:
            self._allocations = [replace(a, remaining=a.amount) for a in self._allocations]
            cleared = len(self._transactions)
            self._transactions = []
        logger.info("Budget reset, %d transactions cleared", cleared)
        return True
