"""Unit tests for crud/database.py"""

from sqlalchemy import inspect
from sqlmodel import Session

from mdsite.crud.builds import get_all_records, upsert_record
from mdsite.crud.database import init_db, make_engine, reset_db


def test_init_db_creates_tables(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path}/test.db")
    init_db(engine)
    assert "build_records" in inspect(engine).get_table_names()


def test_init_db_is_idempotent(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path}/test.db")
    init_db(engine)
    init_db(engine)
    assert "build_records" in inspect(engine).get_table_names()


def test_reset_db_clears_records(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path}/test.db")
    init_db(engine)
    with Session(engine) as session:
        upsert_record(session, "a.md", "a.html", "s", "h")
        session.commit()
    reset_db(engine)
    with Session(engine) as session:
        assert get_all_records(session) == []
