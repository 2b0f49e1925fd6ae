import logging
from datetime import datetime, timedelta, UTC
from functools import wraps

from .db_config import (
    DB_ERRORS, get_database_config, get_db_connection, execute_query, get_lastrowid,
)
from .errors import AppError, StorageError

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = '%Y-%m-%d %H:%M:%S'


def utc_timestamp(delta: timedelta | None = None) -> str:
    """UTC timestamp string comparable with CURRENT_TIMESTAMP on both backends"""
    now = datetime.now(UTC)
    if delta is not None:
        now = now + delta
    return now.strftime(TIMESTAMP_FORMAT)


class ConnectionWrapper:
    """One connection per operation; SQL uses ``?`` placeholders throughout."""

    def __init__(self, conn, db_type: str):
        self.conn = conn
        self.db_type = db_type

    def execute(self, query, params=None):
        return execute_query(self.conn, query, params, db_type=self.db_type)

    def fetchone(self, query, params=None):
        return self.execute(query, params).fetchone()

    def fetchall(self, query, params=None):
        return self.execute(query, params).fetchall()

    def scalar(self, query, params=None, default=0):
        row = self.fetchone(query, params)
        if not row:
            return default
        value = next(iter(row.values()))
        return default if value is None else value

    def insert(self, query, params=None) -> int:
        """Run an INSERT and return the generated primary key"""
        if self.db_type == 'postgresql':
            query = f"{query} RETURNING id"
        cursor = self.execute(query, params)
        return int(get_lastrowid(cursor, db_type=self.db_type))

    def commit(self):
        self.conn.commit()

    def rollback(self):
        self.conn.rollback()

    def close(self):
        self.conn.close()


def get_db() -> ConnectionWrapper:
    """Get database connection - supports both SQLite and PostgreSQL"""
    config = get_database_config()
    try:
        conn = get_db_connection(config)
    except DB_ERRORS as e:
        raise StorageError("Database connection failed", e) from e
    return ConnectionWrapper(conn, config['type'])


def db_operation(description: str):
    """Run the wrapped data function with a fresh connection passed as ``conn``.

    Storage failures are rolled back, logged and re-raised as StorageError.
    Application errors raised inside pass through unchanged.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            conn = get_db()
            try:
                result = func(conn, *args, **kwargs)
                conn.commit()
                return result
            except AppError:
                conn.rollback()
                raise
            except DB_ERRORS as e:
                conn.rollback()
                logger.error("%s: %s", description, e)
                raise StorageError(description, e) from e
            finally:
                conn.close()
        return wrapper
    return decorator


############################
# Schema
############################

_SCHEMA = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id {pk},
        username VARCHAR(255) NOT NULL,
        email VARCHAR(255) UNIQUE NOT NULL,
        password_hash VARCHAR(255) NOT NULL,
        is_admin BOOLEAN NOT NULL DEFAULT FALSE,
        reset_token VARCHAR(255),
        reset_token_expiry TIMESTAMP,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        last_login TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_sessions (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        session_token VARCHAR(255) UNIQUE NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        expires_at TIMESTAMP NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS vocabulary (
        id {pk},
        headword TEXT NOT NULL UNIQUE,
        cefr_level TEXT NOT NULL,
        vietnamese_meaning TEXT,
        topic TEXT,
        image_url TEXT,
        audio_url TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS vocabulary_topics (
        id {pk},
        name TEXT NOT NULL,
        description TEXT,
        image_url TEXT,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_favorite_words (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        vocabulary_id INTEGER NOT NULL REFERENCES vocabulary(id) ON DELETE CASCADE,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(user_id, vocabulary_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_learned_words (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        vocabulary_id INTEGER NOT NULL REFERENCES vocabulary(id) ON DELETE CASCADE,
        mastery_level INTEGER DEFAULT 0,
        last_reviewed TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
        UNIQUE(user_id, vocabulary_id)
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS quiz_attempts (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        topic TEXT,
        score INTEGER NOT NULL,
        total_questions INTEGER NOT NULL,
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS speech_practice_sentences (
        id {pk},
        sentence TEXT NOT NULL UNIQUE,
        translation TEXT,
        difficulty VARCHAR(10) DEFAULT 'medium' CHECK (difficulty IN ('easy', 'medium', 'hard')),
        category VARCHAR(50) DEFAULT 'general',
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS user_speech_practice (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        sentence_id INTEGER NOT NULL REFERENCES speech_practice_sentences(id) ON DELETE CASCADE,
        accuracy FLOAT NOT NULL,
        audio_url TEXT,
        practiced_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS chat_history (
        id {pk},
        user_id INTEGER NOT NULL REFERENCES users(id) ON DELETE CASCADE,
        message TEXT NOT NULL,
        response TEXT NOT NULL,
        model_id VARCHAR(255),
        created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_user_sessions_user_id ON user_sessions(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_vocabulary_cefr_level ON vocabulary(cefr_level)",
    "CREATE INDEX IF NOT EXISTS idx_vocabulary_topic ON vocabulary(topic)",
    "CREATE INDEX IF NOT EXISTS idx_quiz_attempts_user_id ON quiz_attempts(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_user_speech_practice_user_id ON user_speech_practice(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_speech_practice_sentences_category ON speech_practice_sentences(category)",
    "CREATE INDEX IF NOT EXISTS idx_speech_practice_sentences_difficulty ON speech_practice_sentences(difficulty)",
    "CREATE INDEX IF NOT EXISTS idx_chat_history_user_id ON chat_history(user_id)",
]

_PRIMARY_KEYS = {
    'postgresql': 'SERIAL PRIMARY KEY',
    'sqlite': 'INTEGER PRIMARY KEY AUTOINCREMENT',
}


def init_db():
    """Create all tables and indexes. Idempotent; run once at process start."""
    conn = get_db()
    try:
        pk = _PRIMARY_KEYS[conn.db_type]
        for statement in _SCHEMA:
            conn.execute(statement.format(pk=pk))
        conn.commit()
        logger.info("Database schema ready (%s)", conn.db_type)
    except DB_ERRORS as e:
        conn.rollback()
        logger.error("Schema migration failed: %s", e)
        raise StorageError("Schema migration failed", e) from e
    finally:
        conn.close()


############################
# Users & sessions
############################

USER_PUBLIC_COLUMNS = 'id, username, email, is_admin, created_at, last_login'


@db_operation("Error creating user")
def create_user(conn, username: str, email: str, password_hash: str, is_admin: bool = False) -> dict:
    user_id = conn.insert(
        'INSERT INTO users (username, email, password_hash, is_admin) VALUES (?, ?, ?, ?)',
        (username, email, password_hash, is_admin)
    )
    return conn.fetchone(f'SELECT {USER_PUBLIC_COLUMNS} FROM users WHERE id = ?', (user_id,))


@db_operation("Error getting user by email")
def get_user_by_email(conn, email: str, admin_only: bool = False):
    query = 'SELECT * FROM users WHERE email = ?'
    if admin_only:
        query += ' AND is_admin = ?'
        return conn.fetchone(query, (email, True))
    return conn.fetchone(query, (email,))


@db_operation("Error getting user by id")
def get_user_by_id(conn, user_id: int):
    return conn.fetchone(f'SELECT {USER_PUBLIC_COLUMNS} FROM users WHERE id = ?', (user_id,))


@db_operation("Error listing users")
def list_users(conn) -> list[dict]:
    return conn.fetchall(f'SELECT {USER_PUBLIC_COLUMNS} FROM users ORDER BY created_at DESC, id DESC')


@db_operation("Error deleting user")
def delete_user(conn, user_id: int) -> bool:
    cursor = conn.execute('DELETE FROM users WHERE id = ?', (user_id,))
    return cursor.rowcount > 0


@db_operation("Error updating last login")
def update_user_last_login(conn, user_id: int) -> None:
    conn.execute('UPDATE users SET last_login = ? WHERE id = ?', (utc_timestamp(), user_id))


@db_operation("Error storing reset token")
def set_reset_token(conn, user_id: int, token: str, expires_at: str) -> None:
    conn.execute(
        'UPDATE users SET reset_token = ?, reset_token_expiry = ? WHERE id = ?',
        (token, expires_at, user_id)
    )


@db_operation("Error resetting password")
def reset_password_with_token(conn, token: str, password_hash: str) -> bool:
    """Swap the password of the user holding a live reset token; False if none"""
    user = conn.fetchone(
        'SELECT id FROM users WHERE reset_token = ? AND reset_token_expiry > ?',
        (token, utc_timestamp())
    )
    if not user:
        return False
    conn.execute(
        'UPDATE users SET password_hash = ?, reset_token = NULL, reset_token_expiry = NULL WHERE id = ?',
        (password_hash, user['id'])
    )
    return True


@db_operation("Error getting dashboard counts")
def count_users(conn, since: str | None = None) -> int:
    if since:
        return int(conn.scalar(
            'SELECT COUNT(*) AS count FROM users WHERE is_admin = ? AND created_at > ?',
            (False, since)
        ))
    return int(conn.scalar('SELECT COUNT(*) AS count FROM users WHERE is_admin = ?', (False,)))


@db_operation("Error creating session")
def create_user_session(conn, user_id: int, session_token: str, expires_at: str) -> int:
    return conn.insert(
        'INSERT INTO user_sessions (user_id, session_token, expires_at) VALUES (?, ?, ?)',
        (user_id, session_token, expires_at)
    )


@db_operation("Error getting user by session")
def get_user_by_session(conn, session_token: str):
    return conn.fetchone(
        '''
        SELECT u.id, u.username, u.email, u.is_admin, u.created_at, u.last_login
        FROM users u
        JOIN user_sessions s ON u.id = s.user_id
        WHERE s.session_token = ? AND s.expires_at > ?
        ''',
        (session_token, utc_timestamp())
    )


@db_operation("Error deleting session")
def delete_user_session(conn, session_token: str) -> bool:
    cursor = conn.execute('DELETE FROM user_sessions WHERE session_token = ?', (session_token,))
    return cursor.rowcount > 0


@db_operation("Error cleaning up sessions")
def cleanup_expired_sessions(conn) -> None:
    conn.execute('DELETE FROM user_sessions WHERE expires_at <= ?', (utc_timestamp(),))
