"""Engine construction and schema management for the build manifest"""

from sqlmodel import SQLModel, create_engine

from mdsite.crud.models import BuildRecord  # noqa: F401  (registers the table)


def make_engine(db_url: str):
    return create_engine(db_url, echo=False, connect_args={"check_same_thread": False} if db_url.startswith("sqlite") else {})


def init_db(engine) -> None:
    """Create all tables if they do not exist."""
    SQLModel.metadata.create_all(engine)


def reset_db(engine) -> None:
    """Drop and recreate all tables."""
    SQLModel.metadata.drop_all(engine)
    SQLModel.metadata.create_all(engine)
