#!/usr/bin/env python3
"""
Recompute the fund, loan, payment and inspection snapshots for one date.

Meant to be run once a day by an external scheduler (cron or similar); it is
the batch backstop for the incremental per-event recompute.  The database
URL comes from --database-url, else the DATABASE_URL environment variable,
else the active configuration.

Usage:
    python3 scripts/compute_snapshots.py [--date YYYY-MM-DD] [--database-url URL]
                                         [--config PATH] [--create-tables]

Examples:
    # Today's snapshots against the configured database
    python3 scripts/compute_snapshots.py

    # Backfill one day on a scratch SQLite file
    python3 scripts/compute_snapshots.py --date 2024-06-30 \\
        --database-url sqlite:///analytics.db --create-tables

Exit status:
    0 on success, 1 on a configuration or database error, 2 when a snapshot
    computation fails (the caller should retry).
"""

from __future__ import annotations

import argparse
import sys
from datetime import date
from pathlib import Path

# Project root on sys.path
ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Recompute all snapshot variants for one date.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument(
        "--date",
        type=lambda s: date.fromisoformat(s),
        default=None,
        help="Snapshot date (YYYY-MM-DD). Default: today (UTC).",
    )
    parser.add_argument(
        "--database-url",
        default=None,
        help="SQLAlchemy database URL. Overrides DATABASE_URL and the config file.",
    )
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="YAML file merged over the packaged defaults.",
    )
    parser.add_argument(
        "--create-tables",
        action="store_true",
        help="Create missing tables before computing.",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(argv)

    # Lazy imports so we fail fast on args first
    from lending_config import get_active_config
    from lending_config.bridges import init_engine_from_config
    from lending_kernel.db.engine import create_tables, init_engine_from_url, session_scope
    from lending_kernel.domain.clock import SystemClock
    from lending_kernel.exceptions import ConfigurationError, SnapshotComputationError
    from lending_kernel.logging_config import configure_logging
    from lending_kernel.services.snapshot_service import SnapshotAggregator

    configure_logging()

    try:
        config = get_active_config(args.config)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"ERROR: Failed to load config: {e}", file=sys.stderr)
        return 1

    try:
        if args.database_url:
            init_engine_from_url(args.database_url)
        else:
            init_engine_from_config(config)
        if args.create_tables:
            create_tables()
    except Exception as e:
        print(f"ERROR: Database init failed: {e}", file=sys.stderr)
        return 1

    try:
        with session_scope() as session:
            snapshots = SnapshotAggregator(session, SystemClock()).compute_all(args.date)
    except SnapshotComputationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    day = snapshots.snapshot_date.isoformat()
    fund, loan = snapshots.fund, snapshots.loan
    payment, inspection = snapshots.payment, snapshots.inspection
    print(
        f"{day} fund: commitments={fund.total_commitments} "
        f"deployed={fund.capital_deployed} avg_yield={fund.avg_investor_yield}"
    )
    print(
        f"{day} loan: active={loan.active_count} delinquent={loan.delinquent_count} "
        f"principal={loan.total_principal} avg_ltv={loan.avg_ltv} "
        f"interest_accrued={loan.interest_accrued}"
    )
    print(
        f"{day} payment: received={payment.amount_received} "
        f"scheduled={payment.amount_scheduled} late={payment.late_count} "
        f"avg_collection_days={payment.avg_collection_days}"
    )
    print(
        f"{day} inspection: scheduled={inspection.scheduled_count} "
        f"completed={inspection.completed_count} "
        f"avg_completion_hours={inspection.avg_completion_hours}"
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
