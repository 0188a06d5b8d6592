"""
db.py
SQLite helpers + initialization (creates DB/tables, inserts default admin, etc.)

Bills and followups are stored as JSON documents, one row per document.
The embedded histories live inside the document; picture bytes sit in a
BLOB column next to it.
"""

from __future__ import annotations

import json
import sqlite3
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone

import config

DB_FILE = config.DB_FILE


def _connect(**kwargs) -> sqlite3.Connection:
    conn = sqlite3.connect(DB_FILE, check_same_thread=False, **kwargs)
    conn.row_factory = sqlite3.Row
    return conn


@contextmanager
def get_conn():
    conn = _connect()
    try:
        yield conn
        conn.commit()
    finally:
        conn.close()


@contextmanager
def transaction():
    """
    Read-modify-write scope. BEGIN IMMEDIATE takes the write lock up front so
    two writers on the same document are serialized instead of interleaved.
    """
    conn = _connect(isolation_level=None)
    try:
        conn.execute("BEGIN IMMEDIATE")
        yield conn
        conn.execute("COMMIT")
    except BaseException:
        if conn.in_transaction:
            conn.execute("ROLLBACK")
        raise
    finally:
        conn.close()


def execute(sql: str, params: tuple = ()) -> int:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.lastrowid


def fetch_one(sql: str, params: tuple = ()):
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchone()


def fetch_all(sql: str, params: tuple = ()) -> list[sqlite3.Row]:
    with get_conn() as conn:
        cur = conn.execute(sql, params)
        return cur.fetchall()


def new_id() -> str:
    return uuid.uuid4().hex


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds")


def dumps(doc: dict) -> str:
    return json.dumps(doc, separators=(",", ":"))


def loads(text: str) -> dict:
    return json.loads(text)


def _create_tables() -> None:
    execute(
        """
        CREATE TABLE IF NOT EXISTS admin_users (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            username TEXT NOT NULL UNIQUE,
            password_hash TEXT NOT NULL,
            created_at TEXT NOT NULL
        )
        """
    )

    # seq keeps insertion order for newest-first listing
    execute(
        """
        CREATE TABLE IF NOT EXISTS gym_bills (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            id TEXT NOT NULL UNIQUE,
            member_id TEXT NOT NULL UNIQUE,
            doc TEXT NOT NULL,
            picture BLOB,
            picture_type TEXT
        )
        """
    )

    # No foreign key to gym_bills: followups outlive their bill
    execute(
        """
        CREATE TABLE IF NOT EXISTS followups (
            seq INTEGER PRIMARY KEY AUTOINCREMENT,
            id TEXT NOT NULL UNIQUE,
            bill_id TEXT NOT NULL,
            doc TEXT NOT NULL
        )
        """
    )

    # Small settings table (used to force password change on first login)
    execute(
        """
        CREATE TABLE IF NOT EXISTS app_settings (
            key TEXT PRIMARY KEY,
            value TEXT NOT NULL
        )
        """
    )


def _get_setting(key: str, default: str | None = None) -> str | None:
    row = fetch_one("SELECT value FROM app_settings WHERE key = ?", (key,))
    if row:
        return str(row["value"])
    return default


def _set_setting(key: str, value: str) -> None:
    execute(
        """
        INSERT INTO app_settings(key, value) VALUES(?, ?)
        ON CONFLICT(key) DO UPDATE SET value=excluded.value
        """,
        (key, value),
    )


def init_db(default_admin_hash: str | None = None, admin_username: str = "admin") -> bool:
    """
    Initialize the database.
    - Create tables
    - Insert the default admin if a hash is given and that admin does not exist
    - Force password change on first login

    Returns True when an admin row was created.
    """
    _create_tables()

    if default_admin_hash is None:
        return False

    admin = fetch_one("SELECT id FROM admin_users WHERE username = ?", (admin_username,))
    if not admin:
        execute(
            "INSERT INTO admin_users(username, password_hash, created_at) VALUES(?,?,?)",
            (admin_username, default_admin_hash, now_iso()),
        )
        _set_setting("force_password_change", "1")
        return True

    if _get_setting("force_password_change") is None:
        _set_setting("force_password_change", "0")
    return False


def is_force_password_change() -> bool:
    return _get_setting("force_password_change") == "1"


def clear_force_password_change() -> None:
    _set_setting("force_password_change", "0")
