"""
Shared fixtures for the SQLite integration tests.

Source and destination are two SQLite files accessed through
``sqlite+aiosqlite``. Both carry the identity schema with foreign keys
enforced, so copying out of dependency order would fail here.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import event, func, insert, select, text
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from identitymigrator.entities import COPY_ORDER, EntityType
from identitymigrator.stores.sql import entity_table

IDENTITY_SCHEMA: dict[EntityType, str] = {
    EntityType.ROLE: """
        CREATE TABLE "AspNetRoles" (
            "Id" TEXT NOT NULL PRIMARY KEY,
            "Name" TEXT,
            "NormalizedName" TEXT,
            "ConcurrencyStamp" TEXT
        )
    """,
    EntityType.USER: """
        CREATE TABLE "AspNetUsers" (
            "Id" TEXT NOT NULL PRIMARY KEY,
            "FirstName" TEXT,
            "LastName" TEXT,
            "Class" TEXT,
            "Company" TEXT,
            "ProfilePicture" BLOB,
            "Resume" BLOB,
            "UserName" TEXT,
            "NormalizedUserName" TEXT,
            "Email" TEXT,
            "NormalizedEmail" TEXT,
            "EmailConfirmed" INTEGER NOT NULL,
            "PasswordHash" TEXT,
            "SecurityStamp" TEXT,
            "ConcurrencyStamp" TEXT,
            "PhoneNumber" TEXT,
            "PhoneNumberConfirmed" INTEGER NOT NULL,
            "TwoFactorEnabled" INTEGER NOT NULL,
            "LockoutEnd" TEXT,
            "LockoutEnabled" INTEGER NOT NULL,
            "AccessFailedCount" INTEGER NOT NULL
        )
    """,
    EntityType.ROLE_CLAIM: """
        CREATE TABLE "AspNetRoleClaims" (
            "Id" INTEGER NOT NULL PRIMARY KEY,
            "RoleId" TEXT NOT NULL REFERENCES "AspNetRoles" ("Id"),
            "ClaimType" TEXT,
            "ClaimValue" TEXT
        )
    """,
    EntityType.USER_CLAIM: """
        CREATE TABLE "AspNetUserClaims" (
            "Id" INTEGER NOT NULL PRIMARY KEY,
            "UserId" TEXT NOT NULL REFERENCES "AspNetUsers" ("Id"),
            "ClaimType" TEXT,
            "ClaimValue" TEXT
        )
    """,
    EntityType.USER_LOGIN: """
        CREATE TABLE "AspNetUserLogins" (
            "LoginProvider" TEXT NOT NULL,
            "ProviderKey" TEXT NOT NULL,
            "ProviderDisplayName" TEXT,
            "UserId" TEXT NOT NULL REFERENCES "AspNetUsers" ("Id"),
            PRIMARY KEY ("LoginProvider", "ProviderKey")
        )
    """,
    EntityType.USER_ROLE: """
        CREATE TABLE "AspNetUserRoles" (
            "UserId" TEXT NOT NULL REFERENCES "AspNetUsers" ("Id"),
            "RoleId" TEXT NOT NULL REFERENCES "AspNetRoles" ("Id"),
            PRIMARY KEY ("UserId", "RoleId")
        )
    """,
    EntityType.USER_TOKEN: """
        CREATE TABLE "AspNetUserTokens" (
            "UserId" TEXT NOT NULL REFERENCES "AspNetUsers" ("Id"),
            "LoginProvider" TEXT NOT NULL,
            "Name" TEXT NOT NULL,
            "Value" TEXT,
            PRIMARY KEY ("UserId", "LoginProvider", "Name")
        )
    """,
}


def _sqlite_url(path: Path) -> str:
    return f"sqlite+aiosqlite:///{path}"


def _enable_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


async def _create_schema(engine: AsyncEngine, skip: tuple[EntityType, ...] = ()) -> None:
    """Create the identity tables, leaving out the ones in ``skip``."""
    async with engine.begin() as conn:
        for entity in COPY_ORDER:
            if entity not in skip:
                await conn.execute(text(IDENTITY_SCHEMA[entity]))


async def _count_rows(engine: AsyncEngine, entity: EntityType) -> int:
    async with engine.connect() as conn:
        result = await conn.execute(select(func.count()).select_from(entity_table(entity)))
        return result.scalar_one()


async def _fetch_all(engine: AsyncEngine, entity: EntityType) -> list[dict]:
    tbl = entity_table(entity)
    query = select(*tbl.c).order_by(*(tbl.c[name] for name in entity.sort_key))
    async with engine.connect() as conn:
        result = await conn.execute(query)
        return [dict(row) for row in result.mappings().all()]


def _engine(path: Path) -> AsyncEngine:
    engine = create_async_engine(_sqlite_url(path))
    event.listen(engine.sync_engine, "connect", _enable_foreign_keys)
    return engine


@pytest.fixture
def source_path(tmp_path: Path) -> Path:
    return tmp_path / "source.db"


@pytest.fixture
def destination_path(tmp_path: Path) -> Path:
    return tmp_path / "destination.db"


@pytest_asyncio.fixture
async def source_engine(source_path: Path, make_identity_tables) -> AsyncGenerator[AsyncEngine, None]:
    """
    Source database seeded with the shared identity graph.

    LockoutEnd is left NULL so no datetime adapter is involved.
    """
    engine = _engine(source_path)
    await _create_schema(engine)

    tables = make_identity_tables()
    for user in tables[EntityType.USER]:
        user["LockoutEnd"] = None

    async with engine.begin() as conn:
        for entity in COPY_ORDER:
            rows = tables.get(entity)
            if rows:
                await conn.execute(insert(entity_table(entity)), rows)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def destination_engine(destination_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Empty destination database with the identity schema."""
    engine = _engine(destination_path)
    await _create_schema(engine)

    yield engine

    await engine.dispose()


@pytest.fixture
def count_rows():
    """Count the rows of one identity table: ``await count_rows(engine, entity)``."""
    return _count_rows


@pytest.fixture
def fetch_all():
    """Read one identity table in sort-key order: ``await fetch_all(engine, entity)``."""
    return _fetch_all


@pytest_asyncio.fixture
async def make_engine(tmp_path: Path) -> AsyncGenerator:
    """
    Factory for extra SQLite databases with the identity schema.

    ``await make_engine("name.db", skip=(EntityType.USER_TOKEN,))`` leaves
    the skipped tables out. Engines are disposed on teardown.
    """
    engines: list[AsyncEngine] = []

    async def _make(name: str, skip: tuple[EntityType, ...] = ()) -> AsyncEngine:
        engine = _engine(tmp_path / name)
        engines.append(engine)
        await _create_schema(engine, skip)
        return engine

    yield _make

    for engine in engines:
        await engine.dispose()


@pytest.fixture
def sqlite_url():
    """Build the ``sqlite+aiosqlite`` URL of a database file."""
    return _sqlite_url
