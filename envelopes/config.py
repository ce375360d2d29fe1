"""Settings for the envelope ledger.

Values come from environment variables so the shell and tests can
override them without touching code.
"""

from __future__ import annotations

import os
from decimal import Decimal

LOG_LEVEL = os.getenv("ENVELOPES_LOG_LEVEL", "WARNING").upper()
MONEY_QUANTUM = os.getenv("ENVELOPES_MONEY_QUANTUM", "0.01")
DEMO_INCOME = os.getenv("ENVELOPES_DEMO_INCOME", "5000")
STRICT_INCOME = os.getenv("ENVELOPES_STRICT_INCOME", "").strip().lower() in ("1", "true", "yes", "on")


def get_money_quantum() -> Decimal:
    """Smallest representable monetary step, e.g. Decimal('0.01')."""
    return Decimal(MONEY_QUANTUM)


def get_log_level() -> str:
    return LOG_LEVEL
