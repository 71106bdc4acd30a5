"""
Minimal migrations module.

Tables are created by SQLModel.metadata.create_all(); this only patches
databases that were created by an older version of the schema.
PostgreSQL only: SQLite databases are dev/test and are recreated instead.
"""

from __future__ import annotations

import logging

from sqlalchemy import text
from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

# (table, column, DDL type + default) added after the first release
ADDED_COLUMNS = [
    ("pickup_requests", "points_awarded", "BOOLEAN NOT NULL DEFAULT FALSE"),
    ("pickup_requests", "actual_points", "INTEGER"),
    ("pickup_requests", "actual_total_weight", "DOUBLE PRECISION"),
    ("pickup_requests", "cancellation_reason", "VARCHAR"),
    ("pickup_requests", "driver_notes", "TEXT"),
    ("reviews", "moderation_note", "VARCHAR"),
    ("reviews", "moderated_by", "INTEGER"),
    ("reviews", "moderated_at", "TIMESTAMP WITHOUT TIME ZONE"),
    ("notifications", "is_read", "BOOLEAN NOT NULL DEFAULT FALSE"),
]


def run_minimal_migrations(engine: Engine) -> None:
    """
    Run small idempotent migrations for already-created tables.
    """
    if engine.dialect.name != "postgresql":
        log.info("Skipping migrations for dialect %s", engine.dialect.name)
        return

    with engine.begin() as conn:
        # ---------------------------------------------------------------
        # 1) Columns introduced after the first deployment
        # ---------------------------------------------------------------
        for table, column, ddl in ADDED_COLUMNS:
            conn.execute(
                text(f"ALTER TABLE {table} ADD COLUMN IF NOT EXISTS {column} {ddl};")
            )

        # ---------------------------------------------------------------
        # 2) Ensure enum type reviewstatus has value 'flagged'
        #
        # Early databases only knew 'active' and 'hidden'. The block is
        # idempotent: if 'flagged' already exists, ALTER TYPE is skipped.
        # ---------------------------------------------------------------
        conn.execute(
            text(
                """
                DO $$
                BEGIN
                    IF EXISTS (SELECT 1 FROM pg_type WHERE typname = 'reviewstatus')
                       AND NOT EXISTS (
                        SELECT 1
                        FROM pg_type t
                        JOIN pg_enum e ON t.oid = e.enumtypid
                        WHERE t.typname = 'reviewstatus'
                          AND e.enumlabel = 'flagged'
                    ) THEN
                        ALTER TYPE reviewstatus ADD VALUE 'flagged';
                    END IF;
                END$$;
                """
            )
        )

        # ---------------------------------------------------------------
        # 3) Backfill: completed pickups with points but no flag
        # ---------------------------------------------------------------
        conn.execute(
            text(
                """
                UPDATE pickup_requests
                SET points_awarded = TRUE
                WHERE status = 'completed'
                  AND actual_points IS NOT NULL
                  AND points_awarded = FALSE;
                """
            )
        )
