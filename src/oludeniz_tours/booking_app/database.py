# booking_app/database.py
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker, declarative_base

from oludeniz_tours.config import Config
from .errors import PersistenceError

DATABASE_URL = Config.DATABASE_URL
engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {})
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
Base = declarative_base()


def utcnow() -> datetime:
    # naive UTC, the form SQLite hands back
    return datetime.now(timezone.utc).replace(tzinfo=None)


def commit_or_raise(db: Session, action: str):
    """Commit, translating store failures into PersistenceError (session rolled back)."""
    try:
        db.commit()
    except IntegrityError as e:
        db.rollback()
        raise PersistenceError(f"Failed to {action}: {e.orig}", status_code=400) from e
    except SQLAlchemyError as e:
        db.rollback()
        raise PersistenceError(f"Failed to {action}: {e}") from e


def init_db(bind=None):
    from . import models  # noqa: F401  registers tables on Base.metadata
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
