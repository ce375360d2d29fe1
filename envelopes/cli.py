import cmd
import shlex
from datetime import datetime
from typing import Optional

from dateutil import parser as date_parser
from dateutil import tz

from envelopes.ledger import Ledger
from envelopes.models import CategoryKind
from envelopes.presentation import extend_summary, kind_breakdown


class EnvelopeCLI(cmd.Cmd):
    prompt = "(envelopes) "

    def __init__(self, ledger: Ledger):
        super().__init__()
        self.ledger = ledger
        self.intro = "Welcome to Envelope Budget. Type 'help' for commands."

    # ===== SPENDING =====
    def do_spend(self, arg):
        """Record an expense: spend <category> <amount> [--force] [--desc "description"]"""
        try:
            args = self._parse_spend_args(arg)
            self.ledger.record_expense(
                args['category'],
                args['amount'],
                args['desc'],
                allow_overspend=args['force'],
            )
            remaining = self.ledger.get_remaining_amount(args['category'])
            confirmation = f"✓ Spent ${args['amount']} from {args['category']}"
            if args['force']:
                confirmation += " (override)"
            print(confirmation)
            print(f"  Remaining: ${remaining:,.2f}")
        except ValueError as e:
            print(f"Rejected: {e}")

    def do_remaining(self, arg):
        """Show what is left in a category: remaining <category>"""
        try:
            name = " ".join(shlex.split(arg))
            if not name:
                print("Usage: remaining <category>")
                return
            print(f"{name}: ${self.ledger.get_remaining_amount(name):,.2f}")
        except ValueError as e:
            print(f"Error: {e}")

    def do_summary(self, arg):
        """Show the budget summary"""
        snapshot = self.ledger.get_budget_summary()
        summary = extend_summary(snapshot)

        print(f"\n{' Monthly Budget ':-^50}")
        print(f"  Income:      ${summary.total_income:,.2f}")
        print(f"  Allocated:   ${summary.total_allocated:,.2f}")
        print(f"  Spent:       ${summary.total_spent:,.2f}")
        print(f"  Remaining:   ${summary.total_remaining:,.2f}")
        print(f"  Unallocated: ${summary.unallocated:,.2f}")

        if summary.allocations:
            print("\nEnvelopes:")
            for a in summary.allocations:
                print(f"  {a.name} [{a.kind.value}]: ${a.remaining:,.2f} of ${a.amount:,.2f} "
                      f"({a.percent_remaining}% left, {a.status})")

            print("\nBy Kind:")
            for kind, row in kind_breakdown(snapshot).items():
                if row['amount']:
                    print(f"  {kind}: ${row['spent']:,.2f} spent of ${row['amount']:,.2f} "
                          f"({row['spent_percent']}%)")

    def do_log(self, arg):
        """List transactions: log [category] [--since DATE]"""
        try:
            category, since = self._parse_log_args(arg)
        except ValueError as e:
            print(f"Invalid input: {e}")
            return

        if category:
            items = self.ledger.get_category_transactions(category)
        else:
            items = self.ledger.get_transactions()
        if since is not None:
            items = [t for t in items if t.timestamp >= since]

        if not items:
            print("No transactions")
            return
        for t in items:
            print(f"  {t.timestamp:%Y-%m-%d %H:%M} {t.category_name}: ${t.amount:,.2f} {t.description}".rstrip())

    # ===== BUDGET MANAGEMENT =====
    def do_budget(self, arg):
        """Manage envelopes: budget <add|remove|update|list> ...
        budget add <name> <amount> [expense|saving|bills]
        budget remove <name>
        budget update <name> [--amount X] [--kind K] [--name NEW]
        budget list"""
        try:
            args = shlex.split(arg)
            if not args:
                print(self.do_budget.__doc__)
                return

            if args[0] == "add":
                if len(args) < 3:
                    raise ValueError("Usage: budget add <name> <amount> [kind]")
                kind = args[3] if len(args) > 3 else CategoryKind.EXPENSE
                self.ledger.add_allocation({'name': args[1], 'amount': args[2], 'kind': kind})
                print(f"✓ Added envelope: {args[1]}")
            elif args[0] == "remove":
                self.ledger.remove_allocation(args[1])
                print(f"✓ Removed envelope: {args[1]}")
            elif args[0] == "update":
                changes = self._parse_update_args(args[2:])
                self.ledger.update_allocation(args[1], changes)
                print(f"✓ Updated envelope: {args[1]}")
            elif args[0] == "list":
                allocations = self.ledger.get_budget_summary().allocations
                if not allocations:
                    print("No envelopes defined")
                    return
                print("\nEnvelopes:")
                for a in allocations:
                    print(f"  {a.name}: ${a.amount:,.2f} ({a.kind.value})")
            else:
                print(self.do_budget.__doc__)
        except IndexError:
            print("Missing envelope name")
        except ValueError as e:
            print(f"Error: {e}")

    def do_income(self, arg):
        """Show or set monthly income: income [AMOUNT] [--strict]"""
        try:
            args = shlex.split(arg)
            if not args:
                print(f"Monthly income: ${self.ledger.income:,.2f}")
                return
            self.ledger.update_monthly_income(args[0], strict=True if "--strict" in args else None)
            print(f"✓ Monthly income set to ${self.ledger.income:,.2f}")
        except ValueError as e:
            print(f"Error: {e}")

    def do_reset(self, arg):
        """Start a new month: refill every envelope and clear the log"""
        self.ledger.reset_budget()
        print("✓ Budget reset")

    # ===== UTILITIES =====
    def do_exit(self, arg):
        """Exit the program"""
        print("Goodbye!")
        return True

    # ===== HELPERS =====
    @staticmethod
    def _parse_spend_args(arg):
        """Parse spend command arguments"""
        args = shlex.split(arg)
        if len(args) < 2:
            raise ValueError("Missing required arguments (category and amount)")

        result = {
            'category': args[0],
            'amount': args[1],
            'force': False,
            'desc': "",
        }

        i = 2
        while i < len(args):
            if args[i] == '--force':
                result['force'] = True
                i += 1
            elif args[i] == '--desc':
                result['desc'] = ' '.join(args[i+1:])
                break
            else:
                raise ValueError(f"Unexpected argument: {args[i]}")

        return result

    @staticmethod
    def _parse_update_args(args):
        """Parse --amount/--kind/--name flags for budget update"""
        flags = {'--amount': 'amount', '--kind': 'kind', '--name': 'name'}
        changes = {}
        i = 0
        while i < len(args):
            if args[i] not in flags:
                raise ValueError(f"Unknown flag: {args[i]}")
            if i+1 >= len(args):
                raise ValueError(f"Missing value after {args[i]}")
            changes[flags[args[i]]] = args[i+1]
            i += 2
        if not changes:
            raise ValueError("Nothing to update")
        return changes

    @staticmethod
    def _parse_log_args(arg) -> tuple[Optional[str], Optional[datetime]]:
        """Parse log arguments; naive dates are taken as UTC"""
        args = shlex.split(arg)
        category = None
        since = None

        i = 0
        while i < len(args):
            if args[i] == '--since':
                if i+1 >= len(args):
                    raise ValueError("Missing date after --since")
                try:
                    since = date_parser.parse(args[i+1])
                except (ValueError, OverflowError):
                    raise ValueError(f"Unrecognised date: {args[i+1]}")
                if since.tzinfo is None:
                    since = since.replace(tzinfo=tz.tzutc())
                i += 2
            elif category is None:
                category = args[i]
                i += 1
            else:
                raise ValueError(f"Unexpected argument: {args[i]}")

        return category, since
