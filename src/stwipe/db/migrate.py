"""Apply the SQL files under ``db/migrations`` once each, in filename order."""

from __future__ import annotations

from pathlib import Path
from typing import List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from stwipe.config.settings import Settings
from stwipe.db.connection import pooled_connection_factory
from stwipe.db.repositories import ConnectionFactory

MIGRATIONS_ROOT = Path(__file__).resolve().parent / "migrations"

_CREATE_LEDGER = """
CREATE TABLE IF NOT EXISTS schema_migrations (
    name TEXT PRIMARY KEY,
    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def migration_files(directory: Path = MIGRATIONS_ROOT) -> List[Path]:
    return sorted(directory.glob("*.sql"))


def apply_migrations(
    connection_factory: ConnectionFactory,
    *,
    console: Optional[Console] = None,
    migrations: Optional[Sequence[Path]] = None,
) -> List[str]:
    """Run pending migrations in a single transaction and return the names applied.

    Applied files are recorded in ``schema_migrations`` so reruns only execute new files.
    """

    console = console or Console()
    pending_files = list(migrations) if migrations is not None else migration_files()

    applied: List[str] = []
    table = Table(title="Database Migrations")
    table.add_column("Migration", style="cyan")
    table.add_column("Status", style="green")

    with connection_factory() as connection:
        with connection.cursor() as cursor:
            cursor.execute(_CREATE_LEDGER)
            cursor.execute("SELECT name FROM schema_migrations")
            done = {row[0] for row in cursor.fetchall()}
            for migration in pending_files:
                if migration.name in done:
                    table.add_row(migration.name, "[dim]already applied[/dim]")
                    continue
                cursor.execute(migration.read_text(encoding="utf-8"))
                cursor.execute("INSERT INTO schema_migrations (name) VALUES (%(name)s)", {"name": migration.name})
                applied.append(migration.name)
                table.add_row(migration.name, "applied")

    console.print(table)
    return applied


def run_migrations(console: Optional[Console] = None, *, settings: Optional[Settings] = None) -> List[str]:
    """Apply pending migrations against the configured ``DATABASE_URL``."""

    return apply_migrations(pooled_connection_factory(settings), console=console)


__all__ = ["MIGRATIONS_ROOT", "apply_migrations", "migration_files", "run_migrations"]
