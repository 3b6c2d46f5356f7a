#!/usr/bin/env python3
"""Export a user's expenses for a date range as CSV or PDF."""

from __future__ import annotations

import argparse
import getpass
import sys
from datetime import date
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from finance_tracker import actions
from finance_tracker.app_state import AppState
from finance_tracker.config import configure_logging, load_settings
from finance_tracker.export import expenses_to_csv, expenses_to_pdf, report_filename
from finance_tracker.store import create_store


def main(email: str, password: str, start: date, end: date, kind: str, out: Path | None) -> int:
    if start > end:
        print("Start date must be on or before the end date.", file=sys.stderr)
        return 2

    settings = load_settings()
    configure_logging(settings.log_level)
    state = AppState(store=create_store(settings))

    signed_in = actions.sign_in(state, email, password)
    if not signed_in.ok:
        print(signed_in.error, file=sys.stderr)
        return 1

    result = actions.load_report(state, start, end)
    if not result.ok:
        print(result.error, file=sys.stderr)
        return 1
    expenses, summary = result.data

    out = out or Path(report_filename(kind))
    if kind == "csv":
        out.write_text(expenses_to_csv(expenses), encoding="utf-8")
    else:
        out.write_bytes(expenses_to_pdf(expenses, start, end))
    print(f"Wrote {summary.count} expenses (${summary.total}) to {out}")
    return 0


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Export expenses to CSV or PDF.")
    parser.add_argument("--email", required=True, help="Account email")
    parser.add_argument("--start", type=date.fromisoformat, required=True, help="First day, YYYY-MM-DD")
    parser.add_argument("--end", type=date.fromisoformat, required=True, help="Last day, YYYY-MM-DD")
    parser.add_argument("--format", dest="kind", choices=["csv", "pdf"], default="csv")
    parser.add_argument("--out", type=Path, default=None, help="Output file (default: dated name)")
    args = parser.parse_args()
    sys.exit(main(args.email, getpass.getpass("Password: "), args.start, args.end, args.kind, args.out))
