import io
import random
import threading
import unittest
from contextlib import redirect_stdout
from dataclasses import FrozenInstanceError
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import patch

from envelopes import config
from envelopes.cli import EnvelopeCLI
from envelopes.errors import (
    BudgetExceedsIncome, CategoryNotFound, DuplicateCategory,
    InsufficientFunds, InvalidAllocation, InvalidAmount, LedgerError
)
from envelopes.ledger import Ledger
from envelopes.main import build_demo_ledger
from envelopes.models import Allocation, CategoryKind, to_money
from envelopes.presentation import extend_allocation, extend_summary, kind_breakdown


def D(value):
    return Decimal(value)


class FixedClock:
    """Deterministic clock advancing one minute per call"""

    def __init__(self, start=datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc)):
        self.now = start

    def __call__(self):
        current = self.now
        self.now += timedelta(minutes=1)
        return current


def snapshot(ledger):
    return (ledger.income, ledger.get_budget_summary(), ledger.get_transactions())


class TestMoney(unittest.TestCase):
    def test_float_is_exact(self):
        self.assertEqual(to_money(124.75), D("124.75"))
        self.assertEqual(to_money(0.1) + to_money(0.2), D("0.30"))

    def test_accepts_str_and_int(self):
        self.assertEqual(to_money("600"), D("600.00"))
        self.assertEqual(to_money(5000), D("5000"))

    def test_rejects_garbage(self):
        for bad in ("abc", None, True, "NaN", float("inf")):
            with self.assertRaises(InvalidAmount):
                to_money(bad)

    def test_kind_parse(self):
        self.assertIs(CategoryKind.parse("saving"), CategoryKind.SAVING)
        self.assertIs(CategoryKind.parse(CategoryKind.BILLS), CategoryKind.BILLS)
        with self.assertRaises(ValueError):
            CategoryKind.parse("luxury")

    def test_rejects_amounts_beyond_precision(self):
        for big in ("1e30", 10**27, "123456789012345678901234567.5"):
            with self.subTest(amount=big):
                with self.assertRaises(InvalidAmount):
                    to_money(big)

    def test_rejects_fractions_of_a_cent(self):
        for fine in ("0.005", "0.004", "12.345", 0.125):
            with self.subTest(amount=fine):
                with self.assertRaises(InvalidAmount):
                    to_money(fine)
        self.assertEqual(to_money("1.50"), D("1.5"))
        self.assertEqual(to_money("1E+2"), D("100.00"))


class TestLedgerBasics(unittest.TestCase):
    def setUp(self):
        self.ledger = Ledger(5000, clock=FixedClock())
        self.ledger.create_budget([
            {"name": "Groceries", "amount": 600, "kind": CategoryKind.EXPENSE},
            {"name": "EmergencyFund", "amount": 700, "kind": "SAVING"},
        ])

    def test_income_must_be_positive(self):
        with self.assertRaises(InvalidAmount):
            Ledger(0)
        with self.assertRaises(InvalidAmount):
            Ledger(-10)

    def test_example_scenario(self):
        self.ledger.record_expense("Groceries", 124.75, "Weekly shop")
        self.assertEqual(self.ledger.get_remaining_amount("Groceries"), D("475.25"))
        self.assertEqual(self.ledger.get_budget_summary().total_remaining, D("1175.25"))
        self.assertEqual(len(self.ledger.get_transactions()), 1)

        before = snapshot(self.ledger)
        with self.assertRaises(InsufficientFunds):
            self.ledger.record_expense("Groceries", 600, "too much", False)
        self.assertEqual(snapshot(self.ledger), before)

        self.ledger.force_record_expense("Groceries", 600, "override")
        self.assertEqual(self.ledger.get_remaining_amount("Groceries"), D("-124.75"))
        self.assertEqual(len(self.ledger.get_transactions()), 2)

    def test_create_budget_initialises_remaining(self):
        summary = self.ledger.get_budget_summary()
        self.assertEqual([a.name for a in summary.allocations], ["Groceries", "EmergencyFund"])
        for a in summary.allocations:
            self.assertEqual(a.remaining, a.amount)
        self.assertEqual(summary.total_allocated, D("1300"))
        self.assertEqual(summary.unallocated, D("3700"))
        self.assertIs(summary.allocations[1].kind, CategoryKind.SAVING)

    def test_create_budget_replaces_but_keeps_log(self):
        self.ledger.record_expense("Groceries", 10, "milk")
        self.ledger.create_budget([{"name": "Rent", "amount": 2000, "kind": "BILLS"}])
        self.assertFalse(self.ledger.has_category("Groceries"))
        self.assertEqual(len(self.ledger.get_transactions()), 1)

    def test_create_budget_accepts_allocation_objects_and_type_key(self):
        self.ledger.create_budget([
            Allocation("Phone", D("100"), CategoryKind.BILLS, D("0")),
            {"name": "Fun", "amount": "50", "type": "expense"},
        ])
        self.assertEqual(self.ledger.get_remaining_amount("Phone"), D("100"))
        self.assertIs(self.ledger.get_allocation("Fun").kind, CategoryKind.EXPENSE)

    def test_create_budget_rejections_are_atomic(self):
        before = snapshot(self.ledger)
        cases = [
            ([{"name": "A", "amount": 3000, "kind": "EXPENSE"},
              {"name": "B", "amount": 2001, "kind": "EXPENSE"}], BudgetExceedsIncome),
            ([{"name": "", "amount": 10, "kind": "EXPENSE"}], InvalidAllocation),
            ([{"name": "A", "amount": 0, "kind": "EXPENSE"}], InvalidAllocation),
            ([{"name": "A", "amount": -5, "kind": "EXPENSE"}], InvalidAllocation),
            ([{"name": "A", "amount": 10, "kind": "LUXURY"}], InvalidAllocation),
            ([{"amount": 10, "kind": "EXPENSE"}], InvalidAllocation),
            ([{"name": "A", "amount": 10}], InvalidAllocation),
            ([{"name": "A", "amount": 10**27, "kind": "EXPENSE"}], InvalidAllocation),
            ([{"name": "A", "amount": 10, "kind": "EXPENSE"},
              {"name": "A", "amount": 20, "kind": "SAVING"}], DuplicateCategory),
        ]
        for allocations, error in cases:
            with self.subTest(allocations=allocations):
                with self.assertRaises(error):
                    self.ledger.create_budget(allocations)
                self.assertEqual(snapshot(self.ledger), before)

    def test_create_budget_exactly_income(self):
        self.assertTrue(self.ledger.create_budget([{"name": "All", "amount": 5000, "kind": "SAVING"}]))
        self.assertEqual(self.ledger.get_budget_summary().unallocated, D("0"))

    def test_add_allocation(self):
        self.assertTrue(self.ledger.add_allocation({"name": "Rent", "amount": 2000, "kind": "BILLS"}))
        names = [a.name for a in self.ledger.get_budget_summary().allocations]
        self.assertEqual(names, ["Groceries", "EmergencyFund", "Rent"])
        self.assertEqual(self.ledger.get_remaining_amount("Rent"), D("2000"))

    def test_add_allocation_rejections(self):
        before = snapshot(self.ledger)
        with self.assertRaises(DuplicateCategory):
            self.ledger.add_allocation({"name": "Groceries", "amount": 1, "kind": "EXPENSE"})
        with self.assertRaises(BudgetExceedsIncome):
            self.ledger.add_allocation({"name": "Car", "amount": "3700.01", "kind": "EXPENSE"})
        with self.assertRaises(InvalidAllocation):
            self.ledger.add_allocation({"name": "Car", "amount": 0, "kind": "EXPENSE"})
        with self.assertRaises(InvalidAllocation):
            self.ledger.add_allocation({"name": "Car", "amount": 10})
        with self.assertRaises(InvalidAllocation):
            self.ledger.add_allocation({"name": "Car", "amount": 10**27, "kind": "EXPENSE"})
        self.assertEqual(snapshot(self.ledger), before)
        self.assertTrue(self.ledger.add_allocation({"name": "Car", "amount": 3700, "kind": "EXPENSE"}))

    def test_remove_allocation_keeps_orphaned_transactions(self):
        self.ledger.record_expense("Groceries", 20, "bread")
        self.assertTrue(self.ledger.remove_allocation("Groceries"))
        self.assertFalse(self.ledger.has_category("Groceries"))
        orphans = self.ledger.get_category_transactions("Groceries")
        self.assertEqual(len(orphans), 1)
        self.assertEqual(orphans[0].description, "bread")

        with self.assertRaises(CategoryNotFound):
            self.ledger.remove_allocation("Groceries")

    def test_unknown_category(self):
        with self.assertRaises(CategoryNotFound) as ctx:
            self.ledger.get_remaining_amount("Nope")
        self.assertEqual(ctx.exception.name, "Nope")
        with self.assertRaises(CategoryNotFound):
            self.ledger.record_expense("Nope", 1, "x")
        with self.assertRaises(CategoryNotFound):
            self.ledger.update_allocation("Nope", amount=1)

    def test_errors_are_value_errors(self):
        self.assertTrue(issubclass(LedgerError, ValueError))
        for error in (InvalidAmount, InvalidAllocation, DuplicateCategory,
                      CategoryNotFound, BudgetExceedsIncome, InsufficientFunds):
            self.assertTrue(issubclass(error, LedgerError))


class TestRecordExpense(unittest.TestCase):
    def setUp(self):
        self.clock = FixedClock()
        self.ids = iter(f"tx-{i}" for i in range(1, 100))
        self.ledger = Ledger(1000, clock=self.clock, id_factory=lambda: next(self.ids))
        self.ledger.create_budget([{"name": "Food", "amount": 300, "kind": "EXPENSE"}])

    def test_returns_transaction_id_and_records(self):
        tx_id = self.ledger.record_expense("Food", "12.30", "lunch")
        self.assertEqual(tx_id, "tx-1")
        tx = self.ledger.get_transactions()[0]
        self.assertEqual(tx.id, "tx-1")
        self.assertEqual(tx.category_name, "Food")
        self.assertEqual(tx.amount, D("12.30"))
        self.assertEqual(tx.description, "lunch")
        self.assertEqual(tx.timestamp, datetime(2025, 6, 1, 9, 0, tzinfo=timezone.utc))

    def test_default_ids_are_unique(self):
        ledger = Ledger(100)
        ledger.create_budget([{"name": "A", "amount": 100, "kind": "EXPENSE"}])
        ids = {ledger.record_expense("A", 1, "") for _ in range(20)}
        self.assertEqual(len(ids), 20)

    def test_spend_exactly_remaining(self):
        self.ledger.record_expense("Food", 300, "all of it")
        self.assertEqual(self.ledger.get_remaining_amount("Food"), D("0"))

    def test_invalid_amount(self):
        before = snapshot(self.ledger)
        for bad in (0, -1, "-0.01", "lots"):
            with self.subTest(amount=bad):
                with self.assertRaises(InvalidAmount):
                    self.ledger.record_expense("Food", bad, "x")
                with self.assertRaises(InvalidAmount):
                    self.ledger.force_record_expense("Food", bad, "x")
        self.assertEqual(snapshot(self.ledger), before)

    def test_huge_and_sub_cent_amounts_are_typed_errors(self):
        before = snapshot(self.ledger)
        for bad in ("1e30", 10**27, "0.005"):
            with self.subTest(amount=bad):
                with self.assertRaises(InvalidAmount):
                    self.ledger.record_expense("Food", bad, "x")
                with self.assertRaises(InvalidAmount):
                    self.ledger.update_allocation("Food", amount=bad)
        with self.assertRaises(InvalidAmount):
            self.ledger.update_monthly_income("1e30")
        with self.assertRaises(InvalidAmount):
            Ledger("1e30")
        self.assertEqual(snapshot(self.ledger), before)

    def test_insufficient_funds_details(self):
        self.ledger.record_expense("Food", 250, "")
        with self.assertRaises(InsufficientFunds) as ctx:
            self.ledger.record_expense("Food", "50.01", "")
        self.assertEqual(ctx.exception.remaining, D("50"))
        self.assertEqual(ctx.exception.requested, D("50.01"))
        self.assertEqual(len(self.ledger.get_transactions()), 1)

    def test_override_goes_negative(self):
        self.ledger.record_expense("Food", 400, "party", allow_overspend=True)
        self.assertEqual(self.ledger.get_remaining_amount("Food"), D("-100"))
        self.assertEqual(self.ledger.get_budget_summary().total_remaining, D("-100"))
        self.assertEqual(self.ledger.get_allocation("Food").spent, D("400"))

    def test_category_transactions_filter(self):
        self.ledger.add_allocation({"name": "Bus", "amount": 50, "kind": "EXPENSE"})
        self.ledger.record_expense("Food", 10, "a")
        self.ledger.record_expense("Bus", 2, "b")
        self.ledger.record_expense("Food", 5, "c")
        self.assertEqual([t.description for t in self.ledger.get_category_transactions("Food")], ["a", "c"])
        self.assertEqual([t.description for t in self.ledger.get_transactions()], ["a", "b", "c"])


class TestUpdateAllocation(unittest.TestCase):
    def setUp(self):
        self.ledger = Ledger(1000)
        self.ledger.create_budget([
            {"name": "Food", "amount": 300, "kind": "EXPENSE"},
            {"name": "Fun", "amount": 200, "kind": "EXPENSE"},
        ])
        self.ledger.record_expense("Food", 100, "groceries")

    def test_raise_amount_keeps_spent(self):
        self.ledger.update_allocation("Food", {"amount": 500})
        food = self.ledger.get_allocation("Food")
        self.assertEqual(food.amount, D("500"))
        self.assertEqual(food.remaining, D("400"))

    def test_lower_amount_below_spent_clamps_to_zero(self):
        self.ledger.update_allocation("Food", amount=50)
        food = self.ledger.get_allocation("Food")
        self.assertEqual(food.amount, D("50"))
        self.assertEqual(food.remaining, D("0"))
        self.assertEqual(len(self.ledger.get_transactions()), 1)

    def test_income_guard_uses_other_categories(self):
        before = snapshot(self.ledger)
        with self.assertRaises(BudgetExceedsIncome):
            self.ledger.update_allocation("Food", amount="800.01")
        self.assertEqual(snapshot(self.ledger), before)
        self.assertTrue(self.ledger.update_allocation("Food", amount=800))

    def test_rename_and_kind_preserve_remaining(self):
        self.ledger.force_record_expense("Fun", 250, "concert")
        self.ledger.update_allocation("Fun", name="Leisure", kind="saving")
        leisure = self.ledger.get_allocation("Leisure")
        self.assertEqual(leisure.remaining, D("-50"))
        self.assertIs(leisure.kind, CategoryKind.SAVING)
        self.assertFalse(self.ledger.has_category("Fun"))
        # log keeps the old name
        self.assertEqual(len(self.ledger.get_category_transactions("Fun")), 1)
        self.assertEqual(self.ledger.get_category_transactions("Leisure"), [])

    def test_rename_collision(self):
        with self.assertRaises(DuplicateCategory):
            self.ledger.update_allocation("Food", name="Fun")
        self.assertTrue(self.ledger.update_allocation("Food", name="Food"))

    def test_rejections_are_atomic(self):
        before = snapshot(self.ledger)
        bad_updates = [
            ({"amount": 0}, InvalidAmount),
            ({"amount": -10}, InvalidAmount),
            ({"name": ""}, InvalidAllocation),
            ({"kind": "LUXURY"}, InvalidAllocation),
            ({"colour": "red"}, InvalidAllocation),
            ({"name": "Renamed", "amount": 5000}, BudgetExceedsIncome),
        ]
        for updates, error in bad_updates:
            with self.subTest(updates=updates):
                with self.assertRaises(error):
                    self.ledger.update_allocation("Food", updates)
                self.assertEqual(snapshot(self.ledger), before)

    def test_position_preserved(self):
        self.ledger.update_allocation("Food", name="Groceries")
        names = [a.name for a in self.ledger.get_budget_summary().allocations]
        self.assertEqual(names, ["Groceries", "Fun"])


class TestIncomeAndReset(unittest.TestCase):
    def setUp(self):
        self.ledger = Ledger(1000)
        self.ledger.create_budget([{"name": "Food", "amount": 800, "kind": "EXPENSE"}])

    def test_lower_income_is_not_revalidated_by_default(self):
        self.assertTrue(self.ledger.update_monthly_income(500))
        summary = self.ledger.get_budget_summary()
        self.assertEqual(summary.total_income, D("500"))
        self.assertEqual(summary.unallocated, D("-300"))
        # only future allocation changes are guarded
        with self.assertRaises(BudgetExceedsIncome):
            self.ledger.add_allocation({"name": "Fun", "amount": 1, "kind": "EXPENSE"})

    def test_strict_income(self):
        before = snapshot(self.ledger)
        with self.assertRaises(BudgetExceedsIncome):
            self.ledger.update_monthly_income(500, strict=True)
        self.assertEqual(snapshot(self.ledger), before)
        self.assertTrue(self.ledger.update_monthly_income(800, strict=True))

    def test_strict_income_ledger_default(self):
        ledger = Ledger(1000, strict_income=True)
        ledger.create_budget([{"name": "Food", "amount": 800, "kind": "EXPENSE"}])
        with self.assertRaises(BudgetExceedsIncome):
            ledger.update_monthly_income(500)
        self.assertTrue(ledger.update_monthly_income(500, strict=False))

    @patch.object(config, "STRICT_INCOME", True)
    def test_strict_income_from_config(self):
        ledger = Ledger(100)
        self.assertTrue(ledger.strict_income)

    def test_invalid_income(self):
        with self.assertRaises(InvalidAmount):
            self.ledger.update_monthly_income(0)
        self.assertEqual(self.ledger.income, D("1000"))

    def test_reset(self):
        self.ledger.record_expense("Food", 100, "a")
        self.ledger.force_record_expense("Food", 900, "b")
        self.assertTrue(self.ledger.reset_budget())
        self.assertEqual(self.ledger.get_transactions(), [])
        for a in self.ledger.get_budget_summary().allocations:
            self.assertEqual(a.remaining, a.amount)


class TestReadsAreCopies(unittest.TestCase):
    def setUp(self):
        self.ledger = build_demo_ledger()

    def test_summary_idempotent(self):
        self.assertEqual(self.ledger.get_budget_summary(), self.ledger.get_budget_summary())

    def test_mutating_summary_does_not_leak(self):
        first = self.ledger.get_budget_summary()
        first.allocations.clear()
        first.total_income = D("1")
        with self.assertRaises(FrozenInstanceError):
            self.ledger.get_budget_summary().allocations[0].remaining = D("0")
        second = self.ledger.get_budget_summary()
        self.assertEqual(len(second.allocations), 10)
        self.assertEqual(second.total_income, D("5000"))

    def test_mutating_transaction_list_does_not_leak(self):
        self.ledger.get_transactions().clear()
        self.ledger.get_category_transactions("Groceries").clear()
        self.assertEqual(len(self.ledger.get_transactions()), 3)

    def test_demo_ledger(self):
        summary = self.ledger.get_budget_summary()
        self.assertEqual(summary.total_allocated, D("5000"))
        self.assertEqual(summary.unallocated, D("0"))
        self.assertEqual(summary.total_remaining, D("4814.75"))


class TestConservation(unittest.TestCase):
    def test_long_random_sequence_is_exact(self):
        rng = random.Random(20240601)
        ledger = Ledger("10000.00")
        names = [f"cat{i}" for i in range(8)]
        ledger.create_budget([
            {"name": n, "amount": D(rng.randint(10000, 120000)) / 100, "kind": rng.choice(list(CategoryKind))}
            for n in names
        ])

        for _ in range(2000):
            name = rng.choice(names)
            amount = D(rng.randint(1, 2500)) / 100
            try:
                ledger.record_expense(name, amount, "random")
            except InsufficientFunds:
                pass

        for a in ledger.get_budget_summary().allocations:
            spent = sum((t.amount for t in ledger.get_category_transactions(a.name)), D(0))
            self.assertEqual(a.remaining, a.amount - spent)
            self.assertGreaterEqual(a.remaining, 0)

        summary = ledger.get_budget_summary()
        total_spent = sum((t.amount for t in ledger.get_transactions()), D(0))
        self.assertEqual(summary.total_remaining, summary.total_allocated - total_spent)

    def test_concurrent_expenses_never_overdraw(self):
        ledger = Ledger(1000)
        ledger.create_budget([{"name": "Food", "amount": 100, "kind": "EXPENSE"}])
        workers = 40
        start = threading.Barrier(workers)
        accepted = []
        rejected = []

        def spend():
            start.wait()
            try:
                accepted.append(ledger.record_expense("Food", "10.00", "shared card"))
            except InsufficientFunds:
                rejected.append(1)

        threads = [threading.Thread(target=spend) for _ in range(workers)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        self.assertEqual(len(accepted), 10)
        self.assertEqual(len(rejected), workers - 10)
        self.assertEqual(len(set(accepted)), 10)
        food = ledger.get_allocation("Food")
        self.assertEqual(food.remaining, D("0"))
        spent = sum((t.amount for t in ledger.get_transactions()), D(0))
        self.assertEqual(food.remaining, food.amount - spent)

    def test_float_inputs_do_not_drift(self):
        ledger = Ledger(100)
        ledger.create_budget([{"name": "Coffee", "amount": 100, "kind": "EXPENSE"}])
        for _ in range(1000):
            ledger.record_expense("Coffee", 0.1, "sip")
        self.assertEqual(ledger.get_remaining_amount("Coffee"), D("0.00"))
        with self.assertRaises(InsufficientFunds):
            ledger.record_expense("Coffee", 0.01, "one more")


class TestPresentation(unittest.TestCase):
    def setUp(self):
        self.ledger = build_demo_ledger()

    def test_extend_allocation(self):
        groceries = self.ledger.get_allocation("Groceries")
        ext = extend_allocation(groceries, 0)
        self.assertEqual(ext.id, "allocation-0-groceries")
        self.assertEqual(ext.color, "#4299E1")
        self.assertEqual(ext.spent, D("124.75"))
        self.assertEqual(ext.percent_used, D("20.79"))
        self.assertEqual(ext.percent_remaining, D("79.21"))
        self.assertEqual(ext.status, "Full")

    def test_extend_summary(self):
        summary = extend_summary(self.ledger.get_budget_summary())
        self.assertEqual(summary.total_amount, D("5000"))
        self.assertEqual(summary.total_spent, D("185.25"))
        self.assertEqual(summary.allocations[1].id, "allocation-1-coffee-&-dining")
        self.assertEqual(summary.allocations[9].color, "#4FD1C5")
        self.assertEqual(len({a.id for a in summary.allocations}), 10)

    def test_projection_does_not_touch_ledger(self):
        before = snapshot(self.ledger)
        extend_summary(self.ledger.get_budget_summary())
        self.assertEqual(snapshot(self.ledger), before)
        self.assertFalse(hasattr(self.ledger.get_allocation("Groceries"), "color"))

    def test_status_overspent(self):
        self.ledger.force_record_expense("Phone", 150, "new handset")
        ext = extend_allocation(self.ledger.get_allocation("Phone"), 7)
        self.assertEqual(ext.status, "Empty")
        self.assertEqual(ext.percent_remaining, D("-50.00"))

    def test_kind_breakdown(self):
        breakdown = kind_breakdown(self.ledger.get_budget_summary())
        self.assertEqual(set(breakdown), {"EXPENSE", "SAVING", "BILLS"})
        self.assertEqual(breakdown["EXPENSE"]["amount"], D("1300"))
        self.assertEqual(breakdown["EXPENSE"]["spent"], D("185.25"))
        self.assertEqual(breakdown["SAVING"]["spent_percent"], D("0"))
        self.assertEqual(breakdown["BILLS"]["remaining"], D("2400"))


class TestCLI(unittest.TestCase):
    def setUp(self):
        self.ledger = Ledger(1000, clock=FixedClock())
        self.ledger.create_budget([{"name": "Food", "amount": 300, "kind": "EXPENSE"}])
        self.cli = EnvelopeCLI(self.ledger)

    def run_cmd(self, line):
        out = io.StringIO()
        with redirect_stdout(out):
            stop = self.cli.onecmd(line)
        return out.getvalue(), stop

    def test_spend_and_remaining(self):
        out, _ = self.run_cmd('spend Food 12.50 --desc weekly shop')
        self.assertIn("✓ Spent $12.50 from Food", out)
        self.assertIn("Remaining: $287.50", out)
        self.assertEqual(self.ledger.get_transactions()[0].description, "weekly shop")
        out, _ = self.run_cmd("remaining Food")
        self.assertIn("Food: $287.50", out)

    def test_spend_rejected_then_forced(self):
        out, _ = self.run_cmd("spend Food 400")
        self.assertIn("Rejected: Insufficient funds", out)
        self.assertEqual(self.ledger.get_transactions(), [])
        out, _ = self.run_cmd("spend Food 400 --force")
        self.assertIn("(override)", out)
        self.assertEqual(self.ledger.get_remaining_amount("Food"), D("-100"))

    def test_budget_commands(self):
        out, _ = self.run_cmd('budget add "Coffee & Dining" 250 expense')
        self.assertIn("✓ Added envelope: Coffee & Dining", out)
        out, _ = self.run_cmd('budget update "Coffee & Dining" --amount 100 --kind saving')
        self.assertIn("✓ Updated", out)
        self.assertEqual(self.ledger.get_allocation("Coffee & Dining").amount, D("100"))
        out, _ = self.run_cmd("budget add Rent 5000 bills")
        self.assertIn("Error: Total allocations", out)
        out, _ = self.run_cmd("budget list")
        self.assertIn("Coffee & Dining: $100.00 (SAVING)", out)
        out, _ = self.run_cmd("budget remove Missing")
        self.assertIn('Error: Budget category "Missing" not found', out)
        out, _ = self.run_cmd("budget remove")
        self.assertIn("Missing envelope name", out)

    def test_summary(self):
        self.run_cmd("spend Food 30")
        out, _ = self.run_cmd("summary")
        self.assertIn("Income:      $1,000.00", out)
        self.assertIn("Spent:       $30.00", out)
        self.assertIn("Food [EXPENSE]: $270.00 of $300.00 (90.00% left, Full)", out)
        self.assertIn("EXPENSE: $30.00 spent of $300.00 (10.00%)", out)

    def test_log_with_since(self):
        self.run_cmd("spend Food 5 --desc tea")
        out, _ = self.run_cmd("log")
        self.assertIn("2025-06-01 09:00 Food: $5.00 tea", out)
        out, _ = self.run_cmd("log Food --since 2025-05-31")
        self.assertIn("tea", out)
        out, _ = self.run_cmd("log --since 2025-06-02")
        self.assertIn("No transactions", out)
        out, _ = self.run_cmd("log --since notadate")
        self.assertIn("Invalid input", out)

    def test_income_and_reset(self):
        out, _ = self.run_cmd("income")
        self.assertIn("$1,000.00", out)
        out, _ = self.run_cmd("income 200 --strict")
        self.assertIn("Error:", out)
        self.assertEqual(self.ledger.income, D("1000"))
        out, _ = self.run_cmd("income 200")
        self.assertIn("✓ Monthly income set to $200.00", out)
        self.run_cmd("spend Food 10")
        out, _ = self.run_cmd("reset")
        self.assertIn("✓ Budget reset", out)
        self.assertEqual(self.ledger.get_transactions(), [])

    def test_out_of_range_amounts_stay_in_the_loop(self):
        out, stop = self.run_cmd("spend Food 1e30")
        self.assertIn("Rejected:", out)
        self.assertFalse(stop)
        out, _ = self.run_cmd("spend Food 0.005")
        self.assertIn("Rejected:", out)
        out, _ = self.run_cmd("budget add Big 1e30 saving")
        self.assertIn("Error:", out)
        out, _ = self.run_cmd("income 1e30")
        self.assertIn("Error:", out)
        self.assertEqual(self.ledger.get_transactions(), [])
        self.assertFalse(self.ledger.has_category("Big"))

    def test_summary_reads_ledger_once(self):
        with patch.object(self.ledger, "get_budget_summary", wraps=self.ledger.get_budget_summary) as read:
            self.run_cmd("summary")
        self.assertEqual(read.call_count, 1)

    def test_exit(self):
        out, stop = self.run_cmd("exit")
        self.assertTrue(stop)
        self.assertIn("Goodbye!", out)


if __name__ == '__main__':
    unittest.main()
