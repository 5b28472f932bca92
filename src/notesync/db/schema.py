"""
Destination schema for archived notes.

    obsidian.file (
        path              text,
        timestamp         timestamp,
        file_metadata     json,
        dataview_metadata json,
        file_content      text
    )

The table is an append-only log: no primary key, and several versions of
the same path may coexist.
"""
from sqlalchemy import JSON, Column, DateTime, MetaData, Table, Text, text

SCHEMA = "obsidian"
TABLE = "file"

metadata = MetaData(schema=SCHEMA)

file_table = Table(
    TABLE,
    metadata,
    Column("path", Text),
    Column("timestamp", DateTime),
    Column("file_metadata", JSON),
    Column("dataview_metadata", JSON),
    Column("file_content", Text),
)


def bootstrap(engine) -> None:
    """Create the ``obsidian`` namespace and ``file`` table if absent.

    Safe to call multiple times. SQLite has no CREATE SCHEMA; there the
    namespace is an attached database set up when the engine connects.

    Args:
        engine: SQLAlchemy engine for the destination database.
    """
    with engine.begin() as conn:
        if conn.dialect.name != "sqlite":
            conn.execute(text(f"CREATE SCHEMA IF NOT EXISTS {SCHEMA}"))
        metadata.create_all(conn, checkfirst=True)
