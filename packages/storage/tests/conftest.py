"""Fixtures for storage tests backed by a temporary SQLite database."""

from typing import AsyncGenerator

import aiosqlite
import pytest_asyncio

from oracle_kb_storage import DatabaseConfig, DocumentStore, close_database, open_database


@pytest_asyncio.fixture(scope="function")
async def db(tmp_path) -> AsyncGenerator[aiosqlite.Connection, None]:
    """Fresh database with the full schema for each test."""
    conn = await open_database(DatabaseConfig(path=tmp_path / "oracle.db"))
    yield conn
    await close_database(conn)


@pytest_asyncio.fixture
async def store(db, document) -> DocumentStore:
    """DocumentStore seeded with a small vault."""
    store = DocumentStore(db)
    await store.upsert(
        document(
            "principle_nothing_deleted",
            type="principle",
            content="Nothing is deleted. History is append only; supersede instead of removing.",
            concepts=["history", "safety"],
        )
    )
    await store.upsert(
        document(
            "learning_force_push",
            type="learning",
            content="Never force push to main. A force push rewrites history others depend on.",
            concepts=["git", "safety"],
            project="Oracle",
        )
    )
    await store.upsert(
        document(
            "retro_2025_01_10",
            type="retro",
            content="Session retro: pairing on the search ranking went well.",
            concepts=["retro"],
        )
    )
    return store
