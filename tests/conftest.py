"""Shared fixtures: a throwaway SQLite database and a small resource registry."""

import sqlite3
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.core.resources import ResourceRegistry, col, fld, resource
from app.core.store import SessionStore

SCHEMA = """
CREATE TABLE kanji (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    character TEXT NOT NULL,
    meaning_en TEXT NOT NULL,
    jlpt_level TEXT,
    stroke_count INTEGER,
    onyomi TEXT,
    is_common BOOLEAN DEFAULT 0,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT
);
CREATE TABLE strict_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    code TEXT NOT NULL CHECK (length(code) <= 3),
    note TEXT,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT
);
CREATE TABLE quiz_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER,
    score INTEGER,
    passed BOOLEAN,
    created_at TEXT DEFAULT CURRENT_TIMESTAMP,
    updated_at TEXT
);
"""

KANJI_ROWS = [
    ("水", "water", "N5", 4, 1),
    ("火", "fire", "N5", 4, 1),
    ("木", "tree", "N5", 4, 1),
    ("金", "gold", "N4", 8, 1),
    ("土", "earth", "N4", 3, 1),
    ("日", "sun", "N3", 4, 0),
    ("月", "moon", "N3", 4, 0),
    ("山", "mountain", "N2", 3, 0),
    ("川", "river", "N2", 3, 0),
    ("田", "rice field", "N1", 5, 0),
]

KANJI = resource(
    "kanji", "Kanji",
    columns=[
        col("character", "Char", filterable=True),
        col("meaning_en", "Meaning", filterable=True),
        col("jlpt_level", "JLPT", filterable=True, options=("N5", "N4", "N3", "N2", "N1")),
        col("stroke_count", "Strokes", type="number"),
        col("is_common", "Common", type="boolean", filterable=True),
    ],
    fields=[
        fld("character", "Character", required=True),
        fld("meaning_en", "Meaning", required=True),
        fld("jlpt_level", "JLPT Level", options=("N5", "N4", "N3", "N2", "N1")),
        fld("stroke_count", "Stroke Count", type="number"),
        fld("onyomi", "Onyomi (JSON)", type="json"),
        fld("is_common", "Common", type="boolean"),
    ],
    unique_key="character",
)

STRICT_ITEMS = resource(
    "strict_items", "Strict Items",
    columns=[col("code", "Code", filterable=True), col("note", "Note")],
    fields=[fld("code", "Code"), fld("note", "Note")],
)

QUIZ_RESULTS = resource(
    "quiz_results", "Quiz Results", read_only=True,
    columns=[
        col("user_id", "User ID", filterable=True),
        col("score", "Score"),
        col("passed", "Passed", type="boolean", filterable=True),
    ],
)

TEST_REGISTRY = ResourceRegistry([KANJI, STRICT_ITEMS, QUIZ_RESULTS])


def query_db(db_path: Path, sql: str, params=()):
    """Read straight from the SQLite file, bypassing the engine under test"""
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(sql, params).fetchall()
    finally:
        conn.close()


@pytest.fixture(autouse=True)
def audit_logs_dir(tmp_path, monkeypatch):
    logs_dir = tmp_path / "logs"
    monkeypatch.setattr(settings, "LOGS_DIR", logs_dir)
    return logs_dir


@pytest.fixture
def db_path(tmp_path) -> Path:
    path = tmp_path / "admin_test.db"
    conn = sqlite3.connect(path)
    try:
        conn.executescript(SCHEMA)
        conn.executemany(
            "INSERT INTO kanji (character, meaning_en, jlpt_level, stroke_count, is_common) VALUES (?, ?, ?, ?, ?)",
            KANJI_ROWS,
        )
        conn.executemany(
            "INSERT INTO quiz_results (user_id, score, passed) VALUES (?, ?, ?)",
            [(1, 80, 1), (2, 40, 0)],
        )
        conn.commit()
    finally:
        conn.close()
    return path


@pytest_asyncio.fixture
async def store(db_path):
    engine = create_async_engine(f"sqlite+aiosqlite:///{db_path}")
    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    session = session_factory()
    try:
        yield SessionStore(session)
    finally:
        await session.close()
        await engine.dispose()
