"""
Helper utilities for creating idempotent Alembic migrations.

Databases created before migrations existed (tables made straight from the
models) already hold some of the schema, so every helper checks the live
database first and only emits DDL for what is missing.

Usage Examples
--------------

1. Create a table idempotently:

    from alembic import op
    import sqlalchemy as sa
    from migration_helpers import create_table_if_not_exists

    def upgrade():
        create_table_if_not_exists(
            'webhooks',
            sa.Column('id', sa.Uuid(), nullable=False),
            sa.PrimaryKeyConstraint('id', name=op.f('pk_webhooks')),
        )
"""
from typing import List

from alembic import op
import sqlalchemy as sa


def _inspector() -> sa.engine.Inspector:
    return sa.inspect(op.get_bind())


def table_exists(table_name: str) -> bool:
    return _inspector().has_table(table_name)


def index_exists(table_name: str, index_name: str) -> bool:
    if not table_exists(table_name):
        return False
    return any(i["name"] == index_name for i in _inspector().get_indexes(table_name))


def create_table_if_not_exists(table_name: str, *elements, **kwargs) -> bool:
    """
    Create a table only if it doesn't already exist.

    Args:
        table_name: Name of the table
        *elements: Columns and constraints, as for op.create_table
        **kwargs: Passed through to op.create_table

    Returns:
        True if the table was created, False if it already existed
    """
    if table_exists(table_name):
        return False
    op.create_table(table_name, *elements, **kwargs)
    return True


def create_index_if_not_exists(index_name: str, table_name: str, columns: List[str], unique: bool = False) -> bool:
    """
    Create an index only if it doesn't already exist.

    Returns:
        True if the index was created, False if it already existed
    """
    if index_exists(table_name, index_name):
        return False
    op.create_index(index_name, table_name, columns, unique=unique)
    return True


def drop_table_if_exists(table_name: str) -> bool:
    if not table_exists(table_name):
        return False
    op.drop_table(table_name)
    return True
