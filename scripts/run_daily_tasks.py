#!/usr/bin/env python3
"""
Run the tool lending daily reconciliation pass.

Intended for cron, once a day:
1. Purges old cancelled reservations
2. Accrues late fees on overdue checkouts
3. Updates tool conditions from recent usage and repairs
4. Schedules maintenance for worn or heavily used tools
5. Sends overdue notifications
6. Logs a daily summary

Usage:
    python scripts/run_daily_tasks.py [--date YYYY-MM-DD] [--database-url URL]

Cron:
    0 6 * * * python /opt/tool-lending/scripts/run_daily_tasks.py
"""

import argparse
import logging
import sys
from datetime import date

from tool_lending.config import get_config
from tool_lending.database import DatabaseManager
from tool_lending.lending import LendingEngine
from tool_lending.observability import initialize_observability, setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the tool lending daily tasks")
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Run date (YYYY-MM-DD); defaults to today",
    )
    parser.add_argument(
        "--database-url",
        help="Override the configured database URL",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    config = get_config()
    setup_logging(config)
    initialize_observability(config)

    db_manager = DatabaseManager(args.database_url)
    try:
        if not db_manager.verify_connection():
            logger.error("Failed to connect to database")
            return 1

        engine = LendingEngine(db_manager, config=config)
        report = engine.run_daily_reconciliation(args.date)

        logger.info("Daily tasks for %s:", report.run_date.isoformat())
        logger.info("- Cancelled reservations removed: %d", report.cancelled_reservations_removed)
        logger.info("- Late fees updated: %d", report.late_fees_accrued)
        logger.info("- Condition changes: %d", len(report.condition_changes))
        logger.info("- Maintenance scheduled: %d", len(report.maintenance_scheduled))
        logger.info("- Overdue notifications sent: %d", report.overdue_notifications)
        if report.statistics is not None:
            logger.info(
                "- Utilization: %.1f%% of %d tools",
                report.statistics.utilization_rate * 100,
                report.statistics.total_tools,
            )

        if not report.succeeded:
            for error in report.errors:
                logger.error("Step failed: %s", error)
            return 1
        return 0
    except Exception:
        logger.exception("Daily tasks failed")
        return 1
    finally:
        db_manager.close()


if __name__ == "__main__":
    sys.exit(main())
