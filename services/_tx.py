from __future__ import annotations
from contextlib import contextmanager
from typing import Iterator
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}

@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """All-or-nothing unit of work: commit on success, roll back on any error."""
    try:
        yield db
        db.commit()
    except BaseException:
        db.rollback()
        raise

def dialect_name(db: Session) -> str:
    return db.get_bind().dialect.name

def upsert_insert(db: Session, model):
    """Dialect INSERT supporting ON CONFLICT DO NOTHING / DO UPDATE."""
    name = dialect_name(db)
    if name not in _INSERTS:
        raise RuntimeError(f"upserts are not supported on {name}")
    return _INSERTS[name](model)
