"""
Dialect-aware INSERT ... ON CONFLICT support.

PostgreSQL in production, SQLite in tests; both expose on_conflict_do_update
and on_conflict_do_nothing on their own insert constructs.
"""
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession


def dialect_insert(db: AsyncSession, model):
    """Return an insert() construct for model that supports ON CONFLICT."""
    dialect = db.get_bind().dialect.name
    if dialect == "postgresql":
        return postgresql.insert(model)
    if dialect == "sqlite":
        return sqlite.insert(model)
    raise NotImplementedError(f"Upserts are not supported on {dialect}")
