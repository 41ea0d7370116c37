from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from typing import Iterable, Sequence
from urllib.parse import urlparse

import aiosqlite

from carevault.config import DATABASE_MAX_CONNECTIONS, DATABASE_PATH, DATABASE_URL, SEED_DEMO_DATA

try:  # Optional: only required when DATABASE_URL is set (Postgres)
    import asyncpg  # type: ignore
except Exception:  # pragma: no cover - optional dependency
    asyncpg = None

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(UTC)


def to_timestamp(value: datetime) -> str:
    """Serialize a datetime for storage.

    Fixed microsecond precision in UTC keeps lexical order equal to
    chronological order, which the token expiry filters rely on.
    """
    if value.tzinfo is None:
        value = value.replace(tzinfo=UTC)
    return value.astimezone(UTC).isoformat(timespec="microseconds")


def parse_timestamp(value: str | datetime | date | None) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def today_iso() -> str:
    return utcnow().date().isoformat()


def load_json_list(raw: str | None) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except json.JSONDecodeError:
        logger.debug("Failed to parse JSON list column: %r", raw[:80])
        return []
    return value if isinstance(value, list) else []


class DatabaseAdapter:
    engine: str

    async def execute(self, query: str, params: Sequence | None = None) -> int:  # pragma: no cover - interface
        """Run a statement and return the number of affected rows."""
        raise NotImplementedError

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_one(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def fetch_all(self, query: str, params: Sequence | None = None):  # pragma: no cover - interface
        raise NotImplementedError

    async def commit(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def close(self) -> None:  # pragma: no cover - interface
        raise NotImplementedError

    async def executescript(self, script: str) -> None:  # pragma: no cover - interface
        raise NotImplementedError


@dataclass
class SQLiteAdapter(DatabaseAdapter):
    conn: aiosqlite.Connection
    engine: str = "sqlite"

    async def execute(self, query: str, params: Sequence | None = None) -> int:
        cursor = await self.conn.execute(query, params or ())
        return cursor.rowcount

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:
        await self.conn.executemany(query, seq_params)

    async def fetch_one(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchone()

    async def fetch_all(self, query: str, params: Sequence | None = None):
        cursor = await self.conn.execute(query, params or ())
        return await cursor.fetchall()

    async def commit(self) -> None:
        await self.conn.commit()

    async def close(self) -> None:
        await self.conn.close()

    async def executescript(self, script: str) -> None:
        await self.conn.executescript(script)


@dataclass
class PostgresAdapter(DatabaseAdapter):
    pool: "asyncpg.Pool"  # type: ignore[name-defined]
    engine: str = "postgres"

    @staticmethod
    def _translate_query(query: str) -> str:
        # Convert SQLite-style ? placeholders to asyncpg-style $1, $2, ...
        if "$1" in query:
            return query
        idx = 1
        out = []
        for ch in query:
            if ch == "?":
                out.append(f"${idx}")
                idx += 1
            else:
                out.append(ch)
        return "".join(out)

    @staticmethod
    def _rowcount(status: str) -> int:
        # asyncpg returns a command tag such as "UPDATE 1" or "INSERT 0 1"
        try:
            return int(status.rsplit(" ", 1)[-1])
        except (ValueError, AttributeError):
            return 0

    async def execute(self, query: str, params: Sequence | None = None) -> int:
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            status = await conn.execute(q, *(params or ()))
        return self._rowcount(status)

    async def executemany(self, query: str, seq_params: Iterable[Sequence]) -> None:
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            await conn.executemany(q, seq_params)

    async def fetch_one(self, query: str, params: Sequence | None = None):
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            return await conn.fetchrow(q, *(params or ()))

    async def fetch_all(self, query: str, params: Sequence | None = None):
        q = self._translate_query(query)
        async with self.pool.acquire() as conn:
            return await conn.fetch(q, *(params or ()))

    async def commit(self) -> None:
        # asyncpg autocommits per statement unless an explicit transaction is used.
        return

    async def close(self) -> None:
        await self.pool.close()

    async def executescript(self, script: str) -> None:
        # Not supported for Postgres; callers should split statements.
        raise NotImplementedError


_db: DatabaseAdapter | None = None


async def get_db() -> DatabaseAdapter:
    global _db
    if _db is None:
        if DATABASE_URL:
            if DATABASE_URL.startswith("sqlite"):
                sqlite_path = _sqlite_path_from_url(DATABASE_URL) or DATABASE_PATH
                conn = await aiosqlite.connect(sqlite_path)
                conn.row_factory = aiosqlite.Row
                _db = SQLiteAdapter(conn)
                logger.info("Connected to SQLite database at %s", sqlite_path)
            else:
                if asyncpg is None:
                    raise RuntimeError(
                        "DATABASE_URL is set but asyncpg is not installed. "
                        "Install asyncpg or unset DATABASE_URL."
                    )
                pool = await asyncpg.create_pool(
                    dsn=DATABASE_URL,
                    min_size=1,
                    max_size=DATABASE_MAX_CONNECTIONS,
                )
                _db = PostgresAdapter(pool)
                logger.info("Connected to Postgres database")
        else:
            conn = await aiosqlite.connect(DATABASE_PATH)
            conn.row_factory = aiosqlite.Row
            _db = SQLiteAdapter(conn)
            logger.info("Connected to SQLite database at %s", DATABASE_PATH)
    return _db


def _sqlite_path_from_url(url: str) -> str:
    parsed = urlparse(url)
    path = parsed.path or ""
    if not path or path == "/":
        return ""
    # sqlite:////absolute/path.db -> keep absolute path
    if url.startswith("sqlite:////"):
        return path
    # sqlite:///relative.db -> strip leading slash
    if path.startswith("/"):
        return path[1:]
    return path


# Timestamps are TEXT on both engines; see to_timestamp().
_TABLES = [
    """
    CREATE TABLE IF NOT EXISTS profiles (
        user_id TEXT PRIMARY KEY,
        role TEXT NOT NULL DEFAULT 'patient',
        name TEXT,
        age INTEGER,
        gender TEXT,
        blood_group TEXT,
        phone TEXT,
        emergency_contact TEXT,
        emergency_contact_name TEXT,
        allergies TEXT NOT NULL DEFAULT '[]',
        chronic_conditions TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS access_tokens (
        token TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL REFERENCES profiles(user_id),
        expires_at TEXT NOT NULL,
        used_by TEXT,
        used_at TEXT,
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS prescriptions (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        doctor_id TEXT,
        title TEXT NOT NULL,
        description TEXT,
        medications TEXT NOT NULL DEFAULT '[]',
        file_url TEXT,
        file_type TEXT,
        is_verified INTEGER NOT NULL DEFAULT 0,
        upload_source TEXT NOT NULL DEFAULT 'user',
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS medical_history (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        recorded_by TEXT,
        record_type TEXT NOT NULL,
        title TEXT NOT NULL,
        description TEXT,
        date_recorded TEXT NOT NULL,
        attachments TEXT NOT NULL DEFAULT '[]',
        created_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS refill_requests (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        prescription_id TEXT,
        medication_name TEXT NOT NULL,
        status TEXT NOT NULL DEFAULT 'pending',
        request_notes TEXT,
        doctor_response TEXT,
        doctor_id TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
    """
    CREATE TABLE IF NOT EXISTS medication_reminders (
        id TEXT PRIMARY KEY,
        patient_id TEXT NOT NULL,
        prescription_id TEXT,
        medication_name TEXT NOT NULL,
        dosage TEXT,
        frequency TEXT NOT NULL,
        reminder_times TEXT NOT NULL DEFAULT '[]',
        start_date TEXT NOT NULL,
        end_date TEXT,
        is_active INTEGER NOT NULL DEFAULT 1,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL
    );
    """,
]

_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_prescriptions_patient ON prescriptions(patient_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_history_patient ON medical_history(patient_id, date_recorded)",
    "CREATE INDEX IF NOT EXISTS idx_reminders_patient ON medication_reminders(patient_id)",
]

SQLITE_SCHEMA = "\n".join(_TABLES) + "\n" + ";\n".join(_INDEXES) + ";\n"


async def init_db() -> None:
    db = await get_db()

    if db.engine == "sqlite":
        await db.executescript(SQLITE_SCHEMA)
    else:
        for stmt in [*_TABLES, *_INDEXES]:
            await db.execute(stmt)

    await db.commit()

    if SEED_DEMO_DATA:
        await _seed_demo_profiles(db)


async def close_db() -> None:
    global _db
    if _db is not None:
        await _db.close()
        _db = None


async def _seed_demo_profiles(db: DatabaseAdapter) -> None:
    """Seed a demo patient and doctor for local previews."""
    now = to_timestamp(utcnow())
    demo_profiles = [
        (
            "demo-patient",
            "patient",
            "Maria Lopez",
            68,
            "Female",
            "O+",
            "+1-555-0142",
            "+1-555-0199",
            "Daniel Lopez",
            json.dumps(["Penicillin", "Sulfa"]),
            json.dumps(["Type 2 Diabetes", "Hypertension"]),
            now,
            now,
        ),
        (
            "demo-doctor",
            "doctor",
            "Dr. Ethan Brooks",
            None,
            None,
            None,
            "+1-555-0100",
            None,
            None,
            "[]",
            "[]",
            now,
            now,
        ),
    ]

    existing_rows = await db.fetch_all(
        "SELECT user_id FROM profiles WHERE user_id IN ('demo-patient', 'demo-doctor')"
    )
    existing = {row["user_id"] for row in existing_rows}
    demo_profiles = [p for p in demo_profiles if p[0] not in existing]
    if not demo_profiles:
        return

    await db.executemany(
        """INSERT INTO profiles (
            user_id, role, name, age, gender, blood_group, phone,
            emergency_contact, emergency_contact_name, allergies,
            chronic_conditions, created_at, updated_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)""",
        demo_profiles,
    )
    await db.commit()
    logger.info("Seeded %d demo profile(s)", len(demo_profiles))
