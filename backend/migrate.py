#!/usr/bin/env python3
"""
Create all tables, add columns introduced after the first release and make
sure the uniqueness guarantees exist.

Tables created by older builds may lack the unique keys the submission
workflow relies on (create_all() never alters existing tables). Run:

    python backend/migrate.py
"""

import logging
import sys
from pathlib import Path

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine

# Make `backend.ats` importable when run as a script.
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from backend.ats.config import Settings, configure_logging  # noqa: E402
from backend.ats.database import build_engine, init_db  # noqa: E402

logger = logging.getLogger("migrate")

# Columns added after the first release: table -> {column: DDL type}.
# JSON columns are added nullable; NULL reads back as an empty value.
REQUIRED_COLUMNS = {
    "notes": {"reactions": "TEXT"},
}

REQUIRED_UNIQUE_KEYS = {
    "applications": ("uq_applications_candidate_job", ["candidate_id", "job_id"]),
    "candidates": ("uq_candidates_email", ["email"]),
}


def _has_unique(engine: Engine, table: str, columns: list[str]) -> bool:
    inspector = inspect(engine)
    for uc in inspector.get_unique_constraints(table):
        if list(uc.get("column_names") or []) == columns:
            return True
    for ix in inspector.get_indexes(table):
        if ix.get("unique") and list(ix.get("column_names") or []) == columns:
            return True
    return False


def migrate(engine: Engine) -> list[str]:
    init_db(engine)
    logger.info("Database initialized")

    added: list[str] = []
    inspector = inspect(engine)
    for table, columns in REQUIRED_COLUMNS.items():
        existing = {c["name"] for c in inspector.get_columns(table)}
        for column, ddl_type in columns.items():
            if column in existing:
                continue
            logger.info("Adding column %s.%s", table, column)
            with engine.begin() as conn:
                conn.execute(text(f"ALTER TABLE {table} ADD COLUMN {column} {ddl_type}"))
            added.append(f"{table}.{column}")

    for table, (name, columns) in REQUIRED_UNIQUE_KEYS.items():
        if _has_unique(engine, table, columns):
            continue
        cols = ", ".join(columns)
        logger.info("Adding unique index %s on %s(%s)", name, table, cols)
        # Fails loudly if existing rows already violate the key; those must be merged by hand.
        with engine.begin() as conn:
            conn.execute(text(f"CREATE UNIQUE INDEX {name} ON {table} ({cols})"))
        added.append(name)
    return added


if __name__ == "__main__":
    settings = Settings.from_env()
    configure_logging(settings.log_level)
    created = migrate(build_engine(settings.database_url))
    logger.info("Migration complete; added: %s", ", ".join(created) or "nothing")
