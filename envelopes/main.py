import logging
from typing import Optional

from envelopes import config
from envelopes.cli import EnvelopeCLI
from envelopes.ledger import Ledger
from envelopes.models import CategoryKind, MoneyLike


DEMO_BUDGET = [
    {"name": "Groceries", "amount": 600, "kind": CategoryKind.EXPENSE},
    {"name": "Coffee & Dining", "amount": 250, "kind": CategoryKind.EXPENSE},
    {"name": "Transportation", "amount": 300, "kind": CategoryKind.EXPENSE},
    {"name": "Entertainment", "amount": 150, "kind": CategoryKind.EXPENSE},
    {"name": "Emergency Fund", "amount": 700, "kind": CategoryKind.SAVING},
    {"name": "Rent", "amount": 2000, "kind": CategoryKind.BILLS},
    {"name": "Utilities", "amount": 200, "kind": CategoryKind.BILLS},
    {"name": "Phone", "amount": 100, "kind": CategoryKind.BILLS},
    {"name": "Internet", "amount": 100, "kind": CategoryKind.BILLS},
    {"name": "Vacation Fund", "amount": 600, "kind": CategoryKind.SAVING},
]

DEMO_EXPENSES = [
    ("Coffee & Dining", "45.50", "Coffee with friends"),
    ("Groceries", "124.75", "Weekly grocery shopping"),
    ("Transportation", "15.00", "Bus fare"),
]


def build_demo_ledger(income: Optional[MoneyLike] = None) -> Ledger:
    """Sample month: ten envelopes out of a 5000 income and three expenses."""
    ledger = Ledger(config.DEMO_INCOME if income is None else income)
    ledger.create_budget(DEMO_BUDGET)
    for category, amount, desc in DEMO_EXPENSES:
        ledger.record_expense(category, amount, desc)
    return ledger


def main():
    logging.basicConfig(
        level=config.get_log_level(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    EnvelopeCLI(build_demo_ledger()).cmdloop()


if __name__ == "__main__":
    main()
