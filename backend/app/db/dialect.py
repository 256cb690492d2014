"""
Dialect-specific INSERT for ON CONFLICT (insert-or-skip / conditional upsert).

PostgreSQL in production, SQLite in tests; both support ON CONFLICT with index_elements.
"""
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": pg_insert,
    "sqlite": sqlite_insert,
}


def insert_for(db: Session):
    """Return the `insert` construct for the session's bound dialect."""
    name = db.get_bind().dialect.name
    try:
        return _INSERTS[name]
    except KeyError:
        raise RuntimeError(f"ON CONFLICT inserts not supported for dialect {name!r}") from None
