from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session, DeclarativeBase

from .settings import settings

class Base(DeclarativeBase):
    pass

_engine = None
_SessionLocal = None

def init_db() -> None:
    global _engine, _SessionLocal
    if _engine is not None:
        return
    connect_args = {"check_same_thread": False} if settings.RACEKIT_DB_URL.startswith("sqlite") else {}
    _engine = create_engine(settings.RACEKIT_DB_URL, future=True, echo=False, connect_args=connect_args)
    _SessionLocal = sessionmaker(bind=_engine, autoflush=False, autocommit=False, future=True)
    from . import models  # noqa
    Base.metadata.create_all(bind=_engine)

@contextmanager
def session_scope() -> Iterator[Session]:
    """A session that is closed on exit; commits stay with the caller."""
    if _SessionLocal is None:
        init_db()
    session = _SessionLocal()
    try:
        yield session
    finally:
        session.close()

def get_session() -> Iterator[Session]:
    with session_scope() as db:
        yield db
