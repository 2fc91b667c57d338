"""
Shared pytest fixtures for the identitymigrator tests.

This module provides:
- Row factories (make_role, make_user, ...) producing source rows with
  every credential and blob column populated
- A populated in-memory source covering all seven entity types
- An empty in-memory destination
- A MockTracer for span assertions
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import pytest

from identitymigrator.entities import EntityType, Row
from identitymigrator.observability import MockTracer
from identitymigrator.stores.in_memory import InMemoryDestinationStore, InMemoryRowSource

# ============================================================================
# Row Factories
# ============================================================================


def _role(role_id: str, name: str | None = None) -> Row:
    name = name or role_id.title()
    return {
        "Id": role_id,
        "Name": name,
        "NormalizedName": name.upper(),
        "ConcurrencyStamp": f"stamp-{role_id}",
    }


def _user(user_id: str, first: str | None = "Jane", last: str | None = "Doe", **overrides: Any) -> Row:
    email = f"{(first or 'x').lower()}.{(last or 'y').lower()}@realmail.example"
    row: Row = {
        "Id": user_id,
        "FirstName": first,
        "LastName": last,
        "Class": "MIS 421",
        "Company": "Acme",
        "ProfilePicture": b"\x89PNG-picture",
        "Resume": b"%PDF-resume",
        "UserName": email,
        "NormalizedUserName": email.upper(),
        "Email": email,
        "NormalizedEmail": email.upper(),
        "EmailConfirmed": True,
        "PasswordHash": "AQAAAAEAACcQAAAAE-hash",
        "SecurityStamp": "SECURITY-STAMP",
        "ConcurrencyStamp": "CONCURRENCY-STAMP",
        "PhoneNumber": "+1 205 555 0100",
        "PhoneNumberConfirmed": True,
        "TwoFactorEnabled": True,
        "LockoutEnd": datetime(2030, 1, 1, tzinfo=UTC),
        "LockoutEnabled": True,
        "AccessFailedCount": 3,
    }
    row.update(overrides)
    return row


@pytest.fixture
def make_role() -> Callable[..., Row]:
    """Factory for AspNetRoles rows."""
    return _role


@pytest.fixture
def make_user() -> Callable[..., Row]:
    """Factory for AspNetUsers rows with every sensitive column populated."""
    return _user


# ============================================================================
# Stores
# ============================================================================


def identity_tables() -> dict[EntityType, list[Row]]:
    """A small identity graph touching every entity type."""
    return {
        EntityType.ROLE: [_role("r-admin", "Admin"), _role("r-student", "Student")],
        EntityType.USER: [
            _user("u1", "Jane", "Doe"),
            _user("u2", "John", "Smith"),
            _user("u3", None, None),
        ],
        EntityType.ROLE_CLAIM: [
            {"Id": 1, "RoleId": "r-admin", "ClaimType": "perm", "ClaimValue": "all"},
            {"Id": 2, "RoleId": "r-student", "ClaimType": "perm", "ClaimValue": "read"},
        ],
        EntityType.USER_CLAIM: [
            {"Id": 1, "UserId": "u1", "ClaimType": "given_name", "ClaimValue": "Jane"},
        ],
        EntityType.USER_LOGIN: [
            {
                "LoginProvider": "Google",
                "ProviderKey": "g-123",
                "ProviderDisplayName": "Google",
                "UserId": "u2",
            },
        ],
        EntityType.USER_ROLE: [
            {"UserId": "u1", "RoleId": "r-admin"},
            {"UserId": "u1", "RoleId": "r-student"},
            {"UserId": "u2", "RoleId": "r-student"},
        ],
        EntityType.USER_TOKEN: [
            {
                "UserId": "u1",
                "LoginProvider": "[AspNetUserStore]",
                "Name": "AuthenticatorKey",
                "Value": "SECRET",
            },
        ],
    }


@pytest.fixture
def make_identity_tables() -> Callable[[], dict[EntityType, list[Row]]]:
    """Factory returning a fresh copy of the identity graph on each call."""
    return identity_tables


@pytest.fixture
def populated_source() -> InMemoryRowSource:
    """In-memory source holding one row or more of every entity type."""
    return InMemoryRowSource(identity_tables(), enable_tracing=False)


@pytest.fixture
def empty_source() -> InMemoryRowSource:
    """In-memory source with no rows."""
    return InMemoryRowSource(enable_tracing=False)


@pytest.fixture
def destination() -> InMemoryDestinationStore:
    """Empty in-memory destination."""
    return InMemoryDestinationStore()


@pytest.fixture
def mock_tracer() -> MockTracer:
    """Tracer that records span names and attributes."""
    return MockTracer()
