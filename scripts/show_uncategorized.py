#!/usr/bin/env python3
"""Show a user's uncategorized expenses to help tidy up categories."""

from __future__ import annotations

import argparse
import getpass
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from finance_tracker import actions
from finance_tracker.aggregation import expenses_frame, total_spent
from finance_tracker.app_state import AppState
from finance_tracker.config import configure_logging, load_settings
from finance_tracker.store import create_store


def main(email: str, password: str, limit: int = 20) -> int:
    settings = load_settings()
    configure_logging(settings.log_level)
    state = AppState(store=create_store(settings))

    signed_in = actions.sign_in(state, email, password)
    if not signed_in.ok:
        print(signed_in.error, file=sys.stderr)
        return 1

    result = actions.load_expenses(state)
    if not result.ok:
        print(result.error, file=sys.stderr)
        return 1

    uncategorized = [expense for expense in result.data if expense.category is None]
    if not uncategorized:
        print("All expenses are categorized. 🎉")
        return 0

    print(f"Total uncategorized: {len(uncategorized)} (${total_spent(uncategorized)})")
    frame = expenses_frame(uncategorized)
    print("\nTop descriptions:")
    print(frame["Description"].fillna("").value_counts().head(limit).to_string())

    print("\nSample rows:")
    print(frame[["Date", "Description", "Amount", "Payment Method"]].head(limit).to_string(index=False))
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Show uncategorized expense stats.")
    parser.add_argument("--email", required=True, help="Account email")
    parser.add_argument("--limit", type=int, default=20, help="How many rows to show")
    args = parser.parse_args()
    sys.exit(main(args.email, getpass.getpass("Password: "), limit=args.limit))
