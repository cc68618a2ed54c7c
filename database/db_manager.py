import logging
import sqlite3
import os
import threading
import uuid
from contextlib import contextmanager
from utils.constants import DB_FILE
from utils.exceptions import StoreUnavailable

logger = logging.getLogger(__name__)


def new_id() -> str:
    """Opaque row identifier, same shape as the hosted backend's UUID keys."""
    return str(uuid.uuid4())


class DatabaseManager:
    def __init__(self, db_path: str | None = None):
        self.db_path = db_path or DB_FILE
        self._conn: sqlite3.Connection | None = None
        # Serializes writers on the shared connection
        self.lock = threading.RLock()

    def get_connection(self) -> sqlite3.Connection:
        with self.lock:
            return self._open_connection()

    def _open_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            try:
                self._conn = sqlite3.connect(self.db_path, check_same_thread=False)
            except sqlite3.Error as exc:
                raise StoreUnavailable(str(exc), "connect") from exc
            self._conn.row_factory = sqlite3.Row
            self._conn.execute("PRAGMA foreign_keys = ON")
            if self.db_path != ":memory:":
                self._conn.execute("PRAGMA journal_mode = WAL")
        return self._conn

    def initialize(self):
        """Create schema. Safe to call on an existing database."""
        with self.lock:
            conn = self.get_connection()
            self._create_schema(conn)
            conn.commit()

    @contextmanager
    def transaction(self):
        """Hold the connection lock around one unit of writes.

        The writes run inside a SAVEPOINT, so a failure undoes only this
        block and leaves any other pending work on the connection alone.
        Commits on success; re-raises the original error on failure.
        """
        with self.lock:
            conn = self.get_connection()
            name = f"sp_{uuid.uuid4().hex}"
            conn.execute(f"SAVEPOINT {name}")
            try:
                yield conn
                conn.execute(f"RELEASE SAVEPOINT {name}")
                conn.commit()
            except BaseException:
                self._undo(conn, name)
                raise

    def _undo(self, conn: sqlite3.Connection, savepoint: str):
        try:
            conn.execute(f"ROLLBACK TO SAVEPOINT {savepoint}")
            conn.execute(f"RELEASE SAVEPOINT {savepoint}")
        except sqlite3.Error as exc:
            # Savepoint already gone (released before a failed commit)
            logger.warning("Rollback to %s failed, rolling back connection: %s", savepoint, exc)
            if conn.in_transaction:
                conn.rollback()

    def _create_schema(self, conn: sqlite3.Connection):
        conn.executescript("""
            CREATE TABLE IF NOT EXISTS categories (
                id               TEXT PRIMARY KEY,
                user_id          TEXT NOT NULL,
                name             TEXT NOT NULL,
                icon             TEXT NOT NULL DEFAULT '',
                color            TEXT NOT NULL DEFAULT '#666666',
                is_custom        INTEGER NOT NULL DEFAULT 0,
                transaction_type TEXT NOT NULL CHECK(transaction_type IN ('expense','income')),
                created_at       TEXT NOT NULL DEFAULT (datetime('now')),
                UNIQUE(user_id, name, transaction_type)
            );

            CREATE TABLE IF NOT EXISTS recurring_templates (
                id                  TEXT PRIMARY KEY,
                user_id             TEXT NOT NULL,
                category_id         TEXT NOT NULL REFERENCES categories(id),
                type                TEXT NOT NULL CHECK(type IN ('expense','income')),
                amount              REAL NOT NULL,
                currency            TEXT NOT NULL DEFAULT 'USD',
                exchange_rate_to_usd REAL NOT NULL DEFAULT 1.0,
                description         TEXT NOT NULL DEFAULT '',
                start_date          TEXT NOT NULL,
                frequency           TEXT NOT NULL CHECK(frequency IN
                    ('daily','weekly','biweekly','monthly','quarterly','annually')),
                end_date            TEXT,
                is_active           INTEGER NOT NULL DEFAULT 1,
                created_at          TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at          TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS transactions (
                id                    TEXT PRIMARY KEY,
                user_id               TEXT NOT NULL,
                category_id           TEXT NOT NULL REFERENCES categories(id),
                type                  TEXT NOT NULL CHECK(type IN ('expense','income')),
                amount                REAL NOT NULL,
                currency              TEXT NOT NULL DEFAULT 'USD',
                exchange_rate_to_usd  REAL NOT NULL DEFAULT 1.0,
                description           TEXT NOT NULL DEFAULT '',
                date                  TEXT NOT NULL,
                recurring_template_id TEXT REFERENCES recurring_templates(id) ON DELETE SET NULL,
                created_at            TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at            TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS goals (
                id            TEXT PRIMARY KEY,
                user_id       TEXT NOT NULL,
                category_id   TEXT NOT NULL REFERENCES categories(id),
                type          TEXT NOT NULL CHECK(type IN ('expense','income')),
                target_amount REAL NOT NULL,
                currency      TEXT NOT NULL DEFAULT 'USD',
                timeframe     TEXT CHECK(timeframe IN ('daily','weekly','monthly','yearly')),
                start_date    TEXT,
                end_date      TEXT,
                is_active     INTEGER NOT NULL DEFAULT 1,
                created_at    TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE TABLE IF NOT EXISTS user_profiles (
                id               TEXT PRIMARY KEY,
                default_currency TEXT NOT NULL DEFAULT 'USD',
                created_at       TEXT NOT NULL DEFAULT (datetime('now')),
                updated_at       TEXT NOT NULL DEFAULT (datetime('now'))
            );

            CREATE INDEX IF NOT EXISTS idx_templates_user_id     ON recurring_templates(user_id);
            CREATE INDEX IF NOT EXISTS idx_transactions_user_date ON transactions(user_id, date);
            CREATE INDEX IF NOT EXISTS idx_categories_user_id    ON categories(user_id);
            CREATE INDEX IF NOT EXISTS idx_goals_user_id         ON goals(user_id);

            -- One materialized instance per (user, template, date).
            -- Rows without a template (NULL) never collide.
            CREATE UNIQUE INDEX IF NOT EXISTS uq_transactions_template_date
                ON transactions(user_id, recurring_template_id, date);
        """)

    @staticmethod
    def open(db_folder: str | None = None) -> "DatabaseManager":
        """Startup factory: opens (and creates if needed) the ledger DB.

        db_folder: if provided, the DB file is stored in that directory instead of CWD.
        """
        if db_folder:
            os.makedirs(db_folder, exist_ok=True)
            db_path = os.path.join(db_folder, DB_FILE)
        else:
            db_path = DB_FILE
        db = DatabaseManager(db_path)
        db.initialize()
        return db

    def close(self):
        with self.lock:
            if self._conn:
                self._conn.close()
                self._conn = None


@contextmanager
def store_errors(operation: str):
    """Re-raise sqlite3 failures inside the block as StoreUnavailable."""
    try:
        yield
    except sqlite3.Error as exc:
        raise StoreUnavailable(str(exc), operation) from exc
