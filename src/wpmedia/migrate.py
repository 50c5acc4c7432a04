import sqlite3
from datetime import datetime, UTC
from pathlib import Path
from typing import Set

MIGRATIONS_DIR = Path(__file__).parent / "migrations"


def ensure_migration_table(conn: sqlite3.Connection) -> None:
    conn.execute("""
    CREATE TABLE IF NOT EXISTS schema_migrations (
        filename TEXT PRIMARY KEY,
        applied_at TEXT DEFAULT CURRENT_TIMESTAMP
    )
    """)
    conn.commit()


def get_applied_migrations(conn: sqlite3.Connection) -> Set[str]:
    ensure_migration_table(conn)
    return {row[0] for row in conn.execute("SELECT filename FROM schema_migrations")}


def apply_migrations(conn: sqlite3.Connection, migrations_path: Path = MIGRATIONS_DIR) -> int:
    """
    Apply pending *.sql migrations in filename order.

    A failing migration is reported and re-raised; earlier ones stay applied.

    Returns:
        Number of migrations newly recorded.
    """
    applied = get_applied_migrations(conn)
    count = 0

    for sql_file in sorted(migrations_path.glob("*.sql")):
        name = sql_file.name
        if name in applied:
            continue

        try:
            conn.executescript(sql_file.read_text())
            conn.execute(
                "INSERT INTO schema_migrations (filename, applied_at) VALUES (?, ?)",
                (name, datetime.now(UTC).isoformat())
            )
            conn.commit()
        except sqlite3.Error as e:
            print(f"❌ Migration failed: {name}\n{e}")
            raise
        count += 1

    return count
