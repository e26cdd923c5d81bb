"""Apply the SQL files stored under `db/migrations` in lexical order."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional

import psycopg2
from psycopg2.extensions import cursor as PsycopgCursor
from rich.console import Console
from rich.table import Table

from vidcat.db.connection import connection_from_dsn
from vidcat.db.store import StorageError

MIGRATIONS_ROOT = Path(__file__).resolve().parent / "migrations"


def load_migration_files(directory: Path = MIGRATIONS_ROOT) -> List[Path]:
    return sorted(directory.glob("*.sql"))


def _execute_sql_file(db_cursor: PsycopgCursor, migration_file: Path) -> None:
    db_cursor.execute(migration_file.read_text(encoding="utf-8"))


def run_migrations(console: Console | None = None, *, dsn: Optional[str] = None) -> List[str]:
    """Execute every migration in one transaction and return the applied file names.

    The bundled migrations are idempotent, so running them against an existing schema is safe.

    Raises
    ------
    StorageError
        If the database is not configured or a migration fails; the transaction is rolled back.
    """

    console = console or Console()
    migrations = load_migration_files()

    if not migrations:
        console.print("[yellow]No migrations found.[/yellow]")
        return []

    try:
        connection = connection_from_dsn(dsn)
    except psycopg2.Error as exc:
        raise StorageError(f"Unable to connect for migrations: {exc}") from exc

    table = Table(title="Database Migrations")
    table.add_column("Migration", style="cyan")
    table.add_column("Status", style="green")

    applied: List[str] = []
    try:
        with connection.cursor() as db_cursor:
            for migration in migrations:
                _execute_sql_file(db_cursor, migration)
                applied.append(migration.name)
                table.add_row(migration.name, "applied")
        connection.commit()
    except psycopg2.Error as exc:
        connection.rollback()
        console.print(f"[red]Migration failed:[/red] {exc}")
        raise StorageError(f"Failed to run database migrations: {exc}") from exc
    finally:
        connection.close()

    console.print(table)
    return applied


def main() -> None:
    """Entry point for running migrations via `python -m vidcat.db.migrate`."""

    run_migrations()


if __name__ == "__main__":  # pragma: no cover
    main()
