"""Database engine setup and initialization."""

import logging
from pathlib import Path

import aiosqlite

from ..config import DATA_DIR

logger = logging.getLogger(__name__)


def get_db_path(data_dir: Path | None = None) -> Path:
    """Get the database file path."""
    if data_dir is None:
        data_dir = DATA_DIR
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir / "gymkeeper.db"


async def init_db(db_path: Path | None = None) -> None:
    """Initialize the database schema."""
    if db_path is None:
        db_path = get_db_path()

    async with aiosqlite.connect(db_path) as db:
        # Staff users
        await db.execute("""
            CREATE TABLE IF NOT EXISTS users (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                phone TEXT NOT NULL UNIQUE,
                password_hash TEXT NOT NULL,
                role TEXT NOT NULL CHECK(role IN ('super-admin', 'admin', 'coach')),
                user_id TEXT NOT NULL UNIQUE,
                salary REAL,
                days_off TEXT,
                days_off_history TEXT DEFAULT '[]',
                password_reset_token TEXT,
                password_reset_expires TIMESTAMP,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """)

        # Subscription plan catalog
        await db.execute("""
            CREATE TABLE IF NOT EXISTS subscription_plans (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL UNIQUE,
                type TEXT NOT NULL CHECK(type IN ('main', 'private')),
                duration_days INTEGER,
                total_sessions INTEGER DEFAULT 0,
                price REAL NOT NULL,
                description TEXT DEFAULT '',
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """)

        # Clients (subscription and private plan are embedded JSON documents)
        await db.execute("""
            CREATE TABLE IF NOT EXISTS clients (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                name TEXT NOT NULL,
                phone TEXT NOT NULL UNIQUE,
                national_id TEXT NOT NULL UNIQUE,
                client_id TEXT NOT NULL UNIQUE,
                subscription TEXT NOT NULL,
                private_plan TEXT,
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """)

        # Training sessions; client/coach references are not enforced
        await db.execute("""
            CREATE TABLE IF NOT EXISTS sessions (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                client INTEGER NOT NULL,
                coach INTEGER NOT NULL,
                date TIMESTAMP NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending'
                    CHECK(status IN ('pending', 'completed', 'canceled')),
                notes TEXT DEFAULT '',
                status_change_history TEXT DEFAULT '[]',
                created_at TIMESTAMP NOT NULL,
                updated_at TIMESTAMP NOT NULL
            )
        """)

        # Create indexes for common queries
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_users_role
            ON users(role)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_client
            ON sessions(client)
        """)
        await db.execute("""
            CREATE INDEX IF NOT EXISTS idx_sessions_coach
            ON sessions(coach)
        """)

        await db.commit()

    logger.info(f"Database schema ready at {db_path}")
