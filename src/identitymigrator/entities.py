"""
Entity types of the identity schema and their row models.

The migrator copies a fixed set of seven ASP.NET Identity tables. Each
table is described by a pydantic row model that knows its table name,
its column order and the key it is paged by. Rows travel between the
stores and the copier as plain ``dict[str, Any]`` keyed by column name;
the models are used where a row has to be validated or rebuilt.

Copy order (parents before children):
    Role -> User -> RoleClaim -> UserClaim -> UserLogin -> UserRole -> UserToken
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, ConfigDict, Field

Row = dict[str, Any]
"""A single table row keyed by column name."""


class IdentityRow(BaseModel):
    """
    Base class for identity table rows.

    Field names are snake_case; aliases carry the exact column names of
    the identity schema so rows can be validated from, and dumped back
    to, database mappings.

    Example:
        >>> role = Role.model_validate({"Id": "r1", "Name": "Admin"})
        >>> role.to_row()["Name"]
        'Admin'
        >>> Role.table_name()
        'AspNetRoles'
    """

    model_config = ConfigDict(
        populate_by_name=True,
        from_attributes=True,
    )

    __table_name__: ClassVar[str]
    __sort_key__: ClassVar[tuple[str, ...]]
    __primary_key__: ClassVar[tuple[str, ...]]

    @classmethod
    def table_name(cls) -> str:
        """Get the table this row model is stored in."""
        return cls.__table_name__

    @classmethod
    def column_names(cls) -> list[str]:
        """Get the table's column names in declaration order."""
        return [field.alias or name for name, field in cls.model_fields.items()]

    @classmethod
    def sort_key(cls) -> tuple[str, ...]:
        """Get the columns that give the table a stable total order."""
        return cls.__sort_key__

    @classmethod
    def primary_key(cls) -> tuple[str, ...]:
        """Get the columns of the table's primary key."""
        return cls.__primary_key__

    def to_row(self) -> Row:
        """Dump the model as a row keyed by column name."""
        return self.model_dump(by_alias=True)


class Role(IdentityRow):
    """Row of ``AspNetRoles``."""

    __table_name__ = "AspNetRoles"
    __sort_key__ = ("Id",)
    __primary_key__ = ("Id",)

    id: str = Field(..., alias="Id")
    name: str | None = Field(default=None, alias="Name")
    normalized_name: str | None = Field(default=None, alias="NormalizedName")
    concurrency_stamp: str | None = Field(default=None, alias="ConcurrencyStamp")


class ApplicationUser(IdentityRow):
    """
    Row of ``AspNetUsers``.

    Carries the application fields (names, class, company and the two
    blob columns) next to the standard Identity credential and state
    columns.
    """

    __table_name__ = "AspNetUsers"
    __sort_key__ = ("Id",)
    __primary_key__ = ("Id",)

    id: str = Field(..., alias="Id", min_length=1)
    first_name: str | None = Field(default=None, alias="FirstName")
    last_name: str | None = Field(default=None, alias="LastName")
    class_: str | None = Field(default=None, alias="Class")
    company: str | None = Field(default=None, alias="Company")
    profile_picture: bytes | None = Field(default=None, alias="ProfilePicture")
    resume: bytes | None = Field(default=None, alias="Resume")

    # Identity columns
    user_name: str | None = Field(default=None, alias="UserName")
    normalized_user_name: str | None = Field(default=None, alias="NormalizedUserName")
    email: str | None = Field(default=None, alias="Email")
    normalized_email: str | None = Field(default=None, alias="NormalizedEmail")
    email_confirmed: bool = Field(default=False, alias="EmailConfirmed")
    password_hash: str | None = Field(default=None, alias="PasswordHash")
    security_stamp: str | None = Field(default=None, alias="SecurityStamp")
    concurrency_stamp: str | None = Field(default=None, alias="ConcurrencyStamp")
    phone_number: str | None = Field(default=None, alias="PhoneNumber")
    phone_number_confirmed: bool = Field(default=False, alias="PhoneNumberConfirmed")
    two_factor_enabled: bool = Field(default=False, alias="TwoFactorEnabled")
    lockout_end: datetime | None = Field(default=None, alias="LockoutEnd")
    lockout_enabled: bool = Field(default=False, alias="LockoutEnabled")
    access_failed_count: int = Field(default=0, alias="AccessFailedCount")


class RoleClaim(IdentityRow):
    """Row of ``AspNetRoleClaims``."""

    __table_name__ = "AspNetRoleClaims"
    __sort_key__ = ("Id",)
    __primary_key__ = ("Id",)

    id: int = Field(..., alias="Id")
    role_id: str = Field(..., alias="RoleId")
    claim_type: str | None = Field(default=None, alias="ClaimType")
    claim_value: str | None = Field(default=None, alias="ClaimValue")


class UserClaim(IdentityRow):
    """Row of ``AspNetUserClaims``."""

    __table_name__ = "AspNetUserClaims"
    __sort_key__ = ("Id",)
    __primary_key__ = ("Id",)

    id: int = Field(..., alias="Id")
    user_id: str = Field(..., alias="UserId")
    claim_type: str | None = Field(default=None, alias="ClaimType")
    claim_value: str | None = Field(default=None, alias="ClaimValue")


class UserLogin(IdentityRow):
    """Row of ``AspNetUserLogins``, keyed by (LoginProvider, ProviderKey)."""

    __table_name__ = "AspNetUserLogins"
    __sort_key__ = ("UserId", "LoginProvider", "ProviderKey")
    __primary_key__ = ("LoginProvider", "ProviderKey")

    login_provider: str = Field(..., alias="LoginProvider")
    provider_key: str = Field(..., alias="ProviderKey")
    provider_display_name: str | None = Field(default=None, alias="ProviderDisplayName")
    user_id: str = Field(..., alias="UserId")


class UserRole(IdentityRow):
    """Row of ``AspNetUserRoles``, keyed by (UserId, RoleId)."""

    __table_name__ = "AspNetUserRoles"
    __sort_key__ = ("UserId", "RoleId")
    __primary_key__ = ("UserId", "RoleId")

    user_id: str = Field(..., alias="UserId")
    role_id: str = Field(..., alias="RoleId")


class UserToken(IdentityRow):
    """Row of ``AspNetUserTokens``, keyed by (UserId, LoginProvider, Name)."""

    __table_name__ = "AspNetUserTokens"
    __sort_key__ = ("UserId", "LoginProvider", "Name")
    __primary_key__ = ("UserId", "LoginProvider", "Name")

    user_id: str = Field(..., alias="UserId")
    login_provider: str = Field(..., alias="LoginProvider")
    name: str = Field(..., alias="Name")
    value: str | None = Field(default=None, alias="Value")


class EntityType(Enum):
    """
    The seven entity types moved by a migration.

    Each member exposes the row model, table, columns, sort key and primary key of
    its table so that the stores can build queries generically.
    """

    ROLE = "Role"
    USER = "User"
    ROLE_CLAIM = "RoleClaim"
    USER_CLAIM = "UserClaim"
    USER_LOGIN = "UserLogin"
    USER_ROLE = "UserRole"
    USER_TOKEN = "UserToken"

    @property
    def model(self) -> type[IdentityRow]:
        """Row model for this entity type."""
        return _MODELS[self]

    @property
    def table_name(self) -> str:
        """Table holding this entity type."""
        return self.model.table_name()

    @property
    def columns(self) -> list[str]:
        """Column names of the table, in declaration order."""
        return self.model.column_names()

    @property
    def sort_key(self) -> tuple[str, ...]:
        """Columns the table is paged by, in order."""
        return self.model.sort_key()

    @property
    def primary_key(self) -> tuple[str, ...]:
        """Columns of the table's primary key."""
        return self.model.primary_key()


_MODELS: dict[EntityType, type[IdentityRow]] = {
    EntityType.ROLE: Role,
    EntityType.USER: ApplicationUser,
    EntityType.ROLE_CLAIM: RoleClaim,
    EntityType.USER_CLAIM: UserClaim,
    EntityType.USER_LOGIN: UserLogin,
    EntityType.USER_ROLE: UserRole,
    EntityType.USER_TOKEN: UserToken,
}

COPY_ORDER: tuple[EntityType, ...] = (
    EntityType.ROLE,
    EntityType.USER,
    EntityType.ROLE_CLAIM,
    EntityType.USER_CLAIM,
    EntityType.USER_LOGIN,
    EntityType.USER_ROLE,
    EntityType.USER_TOKEN,
)
"""Foreign-key-safe order in which entity types are copied."""


__all__ = [
    "Row",
    "IdentityRow",
    "Role",
    "ApplicationUser",
    "RoleClaim",
    "UserClaim",
    "UserLogin",
    "UserRole",
    "UserToken",
    "EntityType",
    "COPY_ORDER",
]
