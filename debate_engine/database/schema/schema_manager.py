"""Applies the SQL table definitions shipped beside this module."""

import logging
from collections.abc import Iterator
from pathlib import Path
import sqlite3

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

# Parents before children; indexes reference every table
TABLE_FILES = (
    "rooms.sql",
    "participants.sql",
    "motions.sql",
    "speeches.sql",
    "pois.sql",
    "feedback.sql",
    "indexes.sql",
)


class SchemaManager:
    """Creates the room tables and stamps the schema version into `PRAGMA user_version`."""

    def __init__(self, tables_dir: Path | None = None):
        self.tables_dir = tables_dir or Path(__file__).parent / "tables"

    def missing_files(self) -> list[str]:
        return [name for name in TABLE_FILES if not (self.tables_dir / name).exists()]

    def statements(self) -> Iterator[tuple[str, str]]:
        """Yield (file name, statement) pairs in creation order."""
        for name in TABLE_FILES:
            sql = (self.tables_dir / name).read_text(encoding="utf-8")
            for statement in sql.split(";"):
                if statement.strip():
                    yield name, statement.strip()

    @staticmethod
    def current_version(conn: sqlite3.Connection) -> int:
        return conn.execute("PRAGMA user_version").fetchone()[0]

    def apply(self, conn: sqlite3.Connection) -> None:
        """Create any missing tables and indexes.

        Raises:
            RuntimeError: If schema files are missing or the database was
                written by a newer schema.
        """
        missing = self.missing_files()
        if missing:
            raise RuntimeError(f"Missing schema files: {', '.join(missing)}")

        version = self.current_version(conn)
        if version > SCHEMA_VERSION:
            raise RuntimeError(
                f"Database schema version {version} is newer than supported version {SCHEMA_VERSION}"
            )

        for name, statement in self.statements():
            try:
                conn.execute(statement)
            except sqlite3.Error as e:
                logger.error(f"Failed to apply {name}: {e}")
                raise

        if version < SCHEMA_VERSION:
            conn.execute(f"PRAGMA user_version = {SCHEMA_VERSION}")
            logger.info(f"Database schema upgraded from version {version} to {SCHEMA_VERSION}")
