"""
Shared helpers for upgrade steps: idempotent key removal.

Dropping a key that does not exist is an error on most engines, so every
drop is preceded by a reflection check.
"""

import logging
from typing import List, Optional, Set

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy import inspect
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from upgrade.exceptions import SqlExecutionError

logger = logging.getLogger(__name__)


def _table_exists(inspector, table_name: str, schema: Optional[str]) -> bool:
    return table_name in inspector.get_table_names(schema=schema)


def _foreign_key_names(inspector, table_name: str, schema: Optional[str]) -> Set[str]:
    return {fk['name'] for fk in inspector.get_foreign_keys(table_name, schema=schema) if fk.get('name')}


def _index_names(inspector, table_name: str, schema: Optional[str]) -> Set[str]:
    return {idx['name'] for idx in inspector.get_indexes(table_name, schema=schema) if idx.get('name')}


def _unique_constraint_names(inspector, table_name: str, schema: Optional[str]) -> Set[str]:
    return {uc['name'] for uc in inspector.get_unique_constraints(table_name, schema=schema) if uc.get('name')}


def drop_keys_if_exist(
    conn: Connection,
    table_name: str,
    keys: List[str],
    is_foreign_key: bool,
    schema: Optional[str] = None,
) -> None:
    """
    Drop the named keys from a table, skipping the ones that are not there.

    Args:
        conn: Open connection; the caller owns the transaction
        table_name: Table to drop keys from
        keys: Key names
        is_foreign_key: True for foreign keys, False for unique keys/indexes
        schema: Schema of the table, None for the connection default

    Raises:
        SqlExecutionError: If reflection or a DROP fails
    """
    op = Operations(MigrationContext.configure(connection=conn))

    for key in keys:
        try:
            # Fresh inspector per key: reflection results are cached and
            # a previous drop may have changed the table
            inspector = inspect(conn)
            if not _table_exists(inspector, table_name, schema):
                logger.debug(f"Table {table_name} does not exist, skipping key {key}")
                continue

            if is_foreign_key:
                if key not in _foreign_key_names(inspector, table_name, schema):
                    logger.debug(f"Foreign key {key} not present on {table_name}, nothing to drop")
                    continue
                with op.batch_alter_table(table_name, schema=schema) as batch_op:
                    batch_op.drop_constraint(key, type_='foreignkey')
            else:
                if key in _index_names(inspector, table_name, schema):
                    op.drop_index(key, table_name=table_name, schema=schema)
                elif key in _unique_constraint_names(inspector, table_name, schema):
                    with op.batch_alter_table(table_name, schema=schema) as batch_op:
                        batch_op.drop_constraint(key, type_='unique')
                else:
                    logger.debug(f"Key {key} not present on {table_name}, nothing to drop")
                    continue

            logger.info(f"Dropped {'foreign key' if is_foreign_key else 'key'} {key} from {table_name}")

        except SQLAlchemyError as e:
            raise SqlExecutionError(f"Unable to drop key {key} from table {table_name}") from e
