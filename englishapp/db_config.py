"""Database selection and the thin cursor layer shared by every data module.

PostgreSQL is reached through pg8000 when ``DATABASE_URL`` is set; otherwise a
local SQLite file is used. Queries are written once with ``?`` placeholders
and rewritten to ``%s`` for pg8000.
"""

from __future__ import annotations

import os
import sqlite3
from typing import Any, Iterable
from urllib.parse import urlparse, unquote

import pg8000.dbapi as pg8000

APP_ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_SQLITE_PATH = os.path.join(APP_ROOT, 'english_app.db')

# Exceptions the data layer treats as storage failures
DB_ERRORS = (sqlite3.Error, pg8000.Error)
INTEGRITY_ERRORS = (sqlite3.IntegrityError, pg8000.IntegrityError)


def _is_sqlite_forced() -> bool:
    return os.getenv('FORCE_SQLITE') == '1'


def _build_sqlite_config() -> dict:
    return {
        'type': 'sqlite',
        'path': os.getenv('SQLITE_PATH') or DEFAULT_SQLITE_PATH,
    }


def _parse_database_url(database_url: str) -> dict:
    parsed = urlparse(database_url)
    if parsed.scheme not in {'postgres', 'postgresql'}:
        raise ValueError(f"Unsupported DATABASE_URL scheme: {parsed.scheme}")
    connect_kwargs: dict = {
        'host': parsed.hostname or 'localhost',
        'port': parsed.port or 5432,
        'database': (parsed.path[1:] if parsed.path else '') or None,
    }
    if parsed.username:
        connect_kwargs['user'] = unquote(parsed.username)
    if parsed.password:
        connect_kwargs['password'] = unquote(parsed.password)
    if parsed.query:
        # Extra options such as application_name
        for option in parsed.query.split('&'):
            if not option:
                continue
            key, _, value = option.partition('=')
            if key and value:
                connect_kwargs[key] = unquote(value)
    return connect_kwargs


def get_database_config() -> dict:
    """Get database configuration based on environment"""
    if _is_sqlite_forced():
        return _build_sqlite_config()

    database_url = os.getenv('DATABASE_URL')
    if database_url:
        return {
            'type': 'postgresql',
            'url': database_url,
            'connect_kwargs': _parse_database_url(database_url),
        }
    return _build_sqlite_config()


def get_db_connection(config: dict | None = None):
    """Open a raw DB-API connection for the configured backend.

    There is no fallback between backends: a PostgreSQL connection failure is
    raised to the caller.
    """
    config = config or get_database_config()

    if config['type'] == 'postgresql':
        conn = pg8000.connect(**config['connect_kwargs'])
        conn.autocommit = False
        return conn

    conn = sqlite3.connect(config['path'])
    conn.row_factory = sqlite3.Row
    # Cascades on user/vocabulary deletes rely on this
    conn.execute('PRAGMA foreign_keys = ON')
    return conn


def _dict_row(description, row) -> dict | None:
    if row is None:
        return None
    if isinstance(row, sqlite3.Row):
        return dict(row)
    return {description[idx][0]: row[idx] for idx in range(len(row))}


class CursorWrapper:
    """Cursor returning plain dict rows for both backends."""

    def __init__(self, cursor):
        self._cursor = cursor

    def execute(self, query: str, params: Iterable | None = None):
        if params is not None:
            self._cursor.execute(query, tuple(params))
        else:
            self._cursor.execute(query)
        return self

    def fetchone(self) -> dict | None:
        return _dict_row(self._cursor.description, self._cursor.fetchone())

    def fetchall(self) -> list[dict]:
        description = self._cursor.description
        return [_dict_row(description, row) for row in self._cursor.fetchall()]

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    @property
    def lastrowid(self):
        return getattr(self._cursor, 'lastrowid', None)

    @property
    def description(self):
        return self._cursor.description

    def close(self) -> None:
        self._cursor.close()


def execute_query(conn, query: str, params: Iterable | None = None,
                  db_type: str = 'sqlite') -> CursorWrapper:
    """Execute query with the parameter style of the backend"""
    if db_type == 'postgresql':
        query = query.replace('?', '%s')
    cursor = CursorWrapper(conn.cursor())
    return cursor.execute(query, params)


def get_lastrowid(cursor: CursorWrapper, db_type: str = 'sqlite') -> Any:
    """Get last inserted row ID (PostgreSQL inserts use ``RETURNING id``)"""
    if db_type == 'postgresql':
        row = cursor.fetchone()
        return row.get('id') if row else None
    return cursor.lastrowid
