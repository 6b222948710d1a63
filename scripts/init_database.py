#!/usr/bin/env python3
"""
Initialize the Tool Lending database.

This script:
1. Creates all database tables
2. Optionally registers a sample inventory
3. Verifies the expected tables exist

Usage:
    python scripts/init_database.py [--drop-existing] [--sample-data] [--database-url URL]
"""

import argparse
import logging
import sys
from decimal import Decimal

from sqlalchemy import inspect

from tool_lending.database import DatabaseManager, ToolCreateSchema, ToolRepository
from tool_lending.models import ToolCondition
from tool_lending.observability import setup_logging

logger = logging.getLogger(__name__)

EXPECTED_TABLES = {"tools", "reservations", "maintenance_windows"}

SAMPLE_TOOLS = [
    ToolCreateSchema(name="Cordless Drill", category="power_tools", daily_rate=Decimal("15.00")),
    ToolCreateSchema(
        name="Tile Saw",
        category="power_tools",
        daily_rate=Decimal("45.00"),
        requires_training=True,
    ),
    ToolCreateSchema(name="Laser Level", category="measuring_tools", daily_rate=Decimal("20.00")),
    ToolCreateSchema(
        name="Pressure Washer",
        category="outdoor",
        daily_rate=Decimal("35.00"),
        condition=ToolCondition.GOOD,
    ),
    ToolCreateSchema(name="Extension Ladder", category="access", daily_rate=Decimal("10.00")),
]


def load_sample_data(db_manager: DatabaseManager) -> None:
    with db_manager.session_scope() as session:
        repo = ToolRepository(session)
        for data in SAMPLE_TOOLS:
            tool = repo.create(data)
            logger.info("Registered %s (%s)", tool.name, tool.id)


def main():
    parser = argparse.ArgumentParser(description="Initialize the Tool Lending database")
    parser.add_argument(
        "--drop-existing",
        action="store_true",
        help="Drop existing tables before creating new ones",
    )
    parser.add_argument(
        "--sample-data",
        action="store_true",
        help="Register a sample tool inventory after creating tables",
    )
    parser.add_argument(
        "--database-url",
        help="Override default database URL",
    )
    args = parser.parse_args()

    setup_logging()
    db_manager = DatabaseManager(args.database_url)

    if not db_manager.verify_connection():
        logger.error("Failed to connect to database")
        sys.exit(1)

    try:
        db_manager.init_database(drop_existing=args.drop_existing)

        if args.sample_data:
            load_sample_data(db_manager)

        tables = set(inspect(db_manager.engine).get_table_names())
        missing_tables = EXPECTED_TABLES - tables
        if missing_tables:
            logger.error("Missing expected tables: %s", ", ".join(sorted(missing_tables)))
            sys.exit(1)

        logger.info("Database initialization complete: %s", ", ".join(sorted(tables)))
    except Exception:
        logger.exception("Database initialization failed")
        sys.exit(1)
    finally:
        db_manager.close()


if __name__ == "__main__":
    main()
