"""
db.py
SQLite helpers + initialization (creates DB/tables for members and attendance).
"""

from __future__ import annotations

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path

logger = logging.getLogger(__name__)

DB_FILE = Path(__file__).with_name("gym.db")


@contextmanager
def get_conn(db_file=DB_FILE):
    conn = sqlite3.connect(db_file, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    # Needed for ON DELETE CASCADE on attendance rows
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


def execute(db_file, sql: str, params: tuple = ()) -> int:
    """Run one statement and return the number of rows it changed."""
    with get_conn(db_file) as conn:
        cur = conn.execute(sql, params)
        return cur.rowcount


def executemany(db_file, sql: str, seq_of_params: list[tuple]) -> None:
    with get_conn(db_file) as conn:
        conn.executemany(sql, seq_of_params)


def fetch_one(db_file, sql: str, params: tuple = ()):
    with get_conn(db_file) as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(db_file, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn(db_file) as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def init_db(db_file=DB_FILE) -> None:
    """
    Initialize the database.
    - Create members table
    - Create attendance table (rows removed with their member)
    """
    Path(db_file).parent.mkdir(parents=True, exist_ok=True)
    with get_conn(db_file) as conn:
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS members (
                id TEXT PRIMARY KEY,
                name TEXT NOT NULL,
                contact TEXT NOT NULL,
                admission_date TEXT NOT NULL,
                plan TEXT NOT NULL,
                fee_status TEXT NOT NULL CHECK(fee_status IN ('paid','unpaid')),
                next_payment_due TEXT NOT NULL
            )
            """
        )
        conn.execute(
            """
            CREATE TABLE IF NOT EXISTS attendance (
                id TEXT PRIMARY KEY,
                member_id TEXT NOT NULL,
                check_in_time TEXT NOT NULL,
                check_out_time TEXT,
                FOREIGN KEY(member_id) REFERENCES members(id) ON DELETE CASCADE
            )
            """
        )
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_attendance_member ON attendance(member_id, check_in_time)"
        )
    logger.debug("Initialized SQLite database at %s", db_file)
