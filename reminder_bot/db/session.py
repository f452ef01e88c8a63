"""Database session management."""

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from contextlib import contextmanager
from pathlib import Path

from .models import Base


def init_db(db_path: str):
    """Create the engine and tables, returning a session factory."""
    # Ensure directory exists
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    Base.metadata.create_all(engine)

    return sessionmaker(bind=engine)


@contextmanager
def session_scope(session_factory):
    """Get a database session as a context manager."""
    session = session_factory()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
