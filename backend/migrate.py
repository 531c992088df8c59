#!/usr/bin/env python3
"""
Standalone runner for the 4.4.2 -> 4.5.0 database upgrade step.

Workflow (single transaction):
1. Resolve prepare and cleanup scripts (missing script aborts before any change)
2. Run the prepare script
3. Run the data migration
4. Run the cleanup script

Any failure rolls the whole transaction back.

Exit codes:
    0: Upgrade completed successfully
    1: Upgrade failed
"""

import sys
import logging
from pathlib import Path
from typing import List, Optional

import sqlparse
from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

from config.settings import UpgradeConfig, setup_logging
from upgrade.base import DbUpgrade
from upgrade.upgrade_442_to_450 import Upgrade442to450

logger = logging.getLogger('migrate')


def _split_statements(sql: str) -> List[str]:
    """
    Split an upgrade script into statements.

    Comments are stripped and empty statements dropped; the trailing ';' is removed
    since drivers execute one statement at a time.
    """
    statements = []
    for statement in sqlparse.split(sqlparse.format(sql, strip_comments=True)):
        statement = statement.strip().rstrip(';').strip()
        if statement:
            statements.append(statement)
    return statements


def _run_script(conn: Connection, script: Path):
    statements = _split_statements(script.read_text(encoding='utf-8'))
    logger.info(f"Running {script.name} ({len(statements)} statement(s))")
    for statement in statements:
        conn.exec_driver_sql(statement)


def run_upgrade(engine: Engine, step: DbUpgrade) -> bool:
    """
    Apply one upgrade step to the database behind engine.

    Returns:
        bool: True if successful, False otherwise
    """
    from_version, to_version = step.get_upgradable_version_range()
    logger.info(f"Upgrading database from {from_version} to {step.get_upgraded_version()}")

    if not step.supports_rolling_upgrade():
        logger.info("Rolling upgrade not supported: stop all management servers before upgrading")

    try:
        prepare_scripts = step.get_prepare_scripts()
        cleanup_scripts = step.get_cleanup_scripts()

        with engine.begin() as conn:
            for script in prepare_scripts:
                _run_script(conn, script)

            logger.info("Performing data migration...")
            step.perform_data_migration(conn)

            for script in cleanup_scripts:
                _run_script(conn, script)

        logger.info(f"Database upgraded to {to_version}")
        return True

    except Exception as e:
        logger.error(f"Upgrade failed: {e}", exc_info=True)
        logger.error("Transaction rolled back, database left at previous version")
        return False


def main(database_url: Optional[str] = None):
    """Main entry point"""
    try:
        UpgradeConfig.validate()
    except ValueError as e:
        print(f"ERROR: {e}")
        sys.exit(1)

    setup_logging()

    logger.info("=" * 60)
    logger.info("Cloud Database Upgrade")
    logger.info("=" * 60)

    engine = create_engine(database_url or UpgradeConfig.DATABASE_URL)
    step = Upgrade442to450(schema=UpgradeConfig.DB_SCHEMA)

    try:
        success = run_upgrade(engine, step)
    finally:
        engine.dispose()

    if success:
        logger.info("Upgrade completed successfully")
        sys.exit(0)
    else:
        logger.error("Upgrade failed")
        sys.exit(1)


if __name__ == "__main__":
    main(sys.argv[1] if len(sys.argv) > 1 else None)
