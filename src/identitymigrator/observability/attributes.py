"""
Standard span attributes for identitymigrator.

Attribute constants used across components for consistent span naming.
Database attributes follow OpenTelemetry semantic conventions.

Example:
    >>> from identitymigrator.observability.attributes import (
    ...     ATTR_ENTITY_TYPE,
    ...     ATTR_BATCH_SIZE,
    ... )
    >>>
    >>> with tracer.span(
    ...     "identitymigrator.copy_entity",
    ...     {ATTR_ENTITY_TYPE: "User", ATTR_BATCH_SIZE: 500},
    ... ):
    ...     pass
"""

# =============================================================================
# Entity Attributes
# =============================================================================

ATTR_ENTITY_TYPE = "identitymigrator.entity.type"
"""Entity type being copied (e.g., 'Role', 'User')."""

ATTR_TABLE_NAME = "identitymigrator.entity.table"
"""Relational table backing the entity type (e.g., 'AspNetUsers')."""

# =============================================================================
# Paging Attributes
# =============================================================================

ATTR_BATCH_SIZE = "identitymigrator.batch.size"
"""Maximum rows per page or batch (integer)."""

ATTR_PAGE_OFFSET = "identitymigrator.page.offset"
"""Row offset of a requested page (integer)."""

ATTR_ROW_COUNT = "identitymigrator.row.count"
"""Number of rows in a page, batch or copy (integer)."""

# =============================================================================
# Migration Attributes
# =============================================================================

ATTR_MIGRATION_STAGE = "identitymigrator.migration.stage"
"""Stage the run reached (e.g., 'copying_users', 'committed')."""

ATTR_ENTITY_COUNT = "identitymigrator.migration.entity_count"
"""Number of entity types in the run (integer)."""

ATTR_EMAIL_DOMAIN = "identitymigrator.migration.email_domain"
"""Domain used for pseudonymized email addresses."""

# =============================================================================
# Database Attributes (OpenTelemetry semantic conventions)
# =============================================================================

ATTR_DB_SYSTEM = "db.system"
"""Database system (e.g., 'postgresql', 'mssql', 'sqlite')."""

ATTR_DB_OPERATION = "db.operation"
"""Database operation (e.g., 'SELECT', 'INSERT')."""

# =============================================================================
# Error Attributes
# =============================================================================

ATTR_ERROR_TYPE = "error.type"
"""Exception class name when an operation fails."""


__all__ = [
    "ATTR_ENTITY_TYPE",
    "ATTR_TABLE_NAME",
    "ATTR_BATCH_SIZE",
    "ATTR_PAGE_OFFSET",
    "ATTR_ROW_COUNT",
    "ATTR_MIGRATION_STAGE",
    "ATTR_ENTITY_COUNT",
    "ATTR_EMAIL_DOMAIN",
    "ATTR_DB_SYSTEM",
    "ATTR_DB_OPERATION",
    "ATTR_ERROR_TYPE",
]
