"""
Database connection setup (sync SQLAlchemy + psycopg2).
"""

from collections.abc import Generator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from apps.api.config import get_settings
from packages.shared.exceptions import ConflictError

# --- Configuration ---
DATABASE_URL = get_settings().database_url

# --- Engine with short timeouts ---
_connect_args = {"connect_timeout": 1} if DATABASE_URL.startswith("postgresql") else {}

engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args,
)

SessionLocal = sessionmaker(bind=engine)


# --- Dependency ---
def get_db() -> Generator[Session, None, None]:
    """Yield a database session. Use as FastAPI dependency."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# --- Helpers ---
def commit_or_conflict(db: Session, message: str) -> None:
    """Commit, turning a unique-constraint violation into ConflictError."""
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError(message) from None
