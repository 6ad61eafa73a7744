"""Build manifest persistence: upsert, lookup, and removal of build records"""

from datetime import datetime

from sqlmodel import Session, select

from mdsite.crud.models import BuildRecord


def get_by_path(session: Session, path: str) -> BuildRecord | None:
    """Return the BuildRecord for the given source path, or None if not found."""
    return session.exec(select(BuildRecord).where(BuildRecord.path == path)).one_or_none()


def get_all_records(session: Session) -> list[BuildRecord]:
    """Return all build records ordered by source path."""
    return list(session.exec(select(BuildRecord).order_by(BuildRecord.path)).all())


def upsert_record(
    session: Session,
    path: str,
    output_path: str,
    source_hash: str,
    html_hash: str,
    built_at: datetime | None = None,
    ) -> tuple[BuildRecord, str]:
    """Insert or update the record for path.

    Returns (record, status) where status is 'created', 'updated', or 'unchanged'.
    A record is unchanged when both the rendered HTML and its output path match.
    Flushes but does not commit; caller controls the transaction.
    """
    record = get_by_path(session, path)

    if record:
        if record.html_hash == html_hash and record.output_path == output_path:
            return record, 'unchanged'
        record.output_path = output_path
        record.source_hash = source_hash
        record.html_hash = html_hash
        record.built_at = built_at or datetime.now()
        session.add(record)
        session.flush()
        return record, 'updated'

    record = BuildRecord(
        path=path,
        output_path=output_path,
        source_hash=source_hash,
        html_hash=html_hash,
        built_at=built_at or datetime.now(),
    )
    session.add(record)
    session.flush()
    return record, 'created'


def delete_record(session: Session, record: BuildRecord) -> None:
    session.delete(record)
    session.flush()
