"""
Exceptions raised by the identity migrator.

Every failure during a run is fatal: nothing is retried and the
destination transaction is rolled back. The exceptions exist to tell
the operator which kind of failure stopped the run and which stage it
had reached.

Exception Hierarchy:
    MigrationError (base)
    +-- SourceReadError
    +-- TransformError
    +-- DestinationWriteError
    +-- CommitError
    +-- MigrationCancelledError
    +-- MigrationStateError
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from identitymigrator.entities import EntityType
    from identitymigrator.models import MigrationStage


class MigrationError(Exception):
    """
    Base exception for all migration errors.

    The orchestrator attaches the stage the run had reached before
    re-raising, so a caught error always says how far the run got.

    Attributes:
        message: Human-readable error description.
        entity: The entity type being processed, if applicable.
        stage: The stage the run had reached when it failed, if known.
        suggested_action: Guidance for the operator.
    """

    error_code: str = "MIGRATION_ERROR"
    suggested_action: str = "Fix the root cause and re-run the migration from the start"

    def __init__(
        self,
        message: str,
        *,
        entity: EntityType | None = None,
        stage: MigrationStage | None = None,
    ) -> None:
        self.message = message
        self.entity = entity
        self.stage = stage
        super().__init__(message)

    def __str__(self) -> str:
        """Return formatted error string with context."""
        parts = [self.message]
        if self.entity is not None:
            parts.append(f"entity={self.entity.value}")
        if self.stage is not None:
            parts.append(f"stage={self.stage.value}")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert the exception to a dictionary for reporting.

        Returns:
            Dictionary representation of the error.
        """
        return {
            "message": self.message,
            "error_code": self.error_code,
            "entity": self.entity.value if self.entity is not None else None,
            "stage": self.stage.value if self.stage is not None else None,
            "suggested_action": self.suggested_action,
        }


class SourceReadError(MigrationError):
    """
    Raised when a page fetch from the source store fails.

    Covers connectivity and permission errors as well as rows the
    source driver could not decode.

    Attributes:
        offset: Row offset of the page that failed.
    """

    error_code = "SOURCE_READ_FAILED"
    suggested_action = "Check source connectivity and permissions, then re-run"

    def __init__(self, entity: EntityType, offset: int, error: str) -> None:
        self.offset = offset
        self.original_error = error
        super().__init__(
            f"Reading {entity.table_name} at offset {offset} failed: {error}",
            entity=entity,
        )


class TransformError(MigrationError):
    """
    Raised when a row cannot be turned into its destination record.

    Attributes:
        row_key: Primary key of the offending row, if it could be read.
    """

    error_code = "TRANSFORM_FAILED"
    suggested_action = "Inspect the offending source row, then re-run"

    def __init__(self, entity: EntityType, row_key: Any, error: str) -> None:
        self.row_key = row_key
        self.original_error = error
        super().__init__(
            f"Transforming {entity.table_name} row {row_key!r} failed: {error}",
            entity=entity,
        )


class DestinationWriteError(MigrationError):
    """
    Raised when a batch insert into the destination fails.

    Attributes:
        batch_size: Number of rows in the rejected batch.
    """

    error_code = "DESTINATION_WRITE_FAILED"
    suggested_action = (
        "Check destination constraints and connectivity; the destination "
        "must be empty before a re-run"
    )

    def __init__(self, entity: EntityType, batch_size: int, error: str) -> None:
        self.batch_size = batch_size
        self.original_error = error
        super().__init__(
            f"Writing {batch_size} rows to {entity.table_name} failed: {error}",
            entity=entity,
        )


class CommitError(MigrationError):
    """Raised when the final commit of the destination transaction fails."""

    error_code = "COMMIT_FAILED"
    suggested_action = "Check destination connectivity and re-run; nothing was committed"

    def __init__(self, error: str) -> None:
        self.original_error = error
        super().__init__(f"Committing the migration failed: {error}")


class MigrationCancelledError(MigrationError):
    """Raised when a run stops because cancel() was requested."""

    error_code = "MIGRATION_CANCELLED"
    suggested_action = "Re-run the migration from the start"

    def __init__(self) -> None:
        super().__init__("Migration cancelled before commit")


class MigrationStateError(MigrationError):
    """
    Raised when a run is driven through an invalid stage transition.

    Attributes:
        current: The stage the run is in.
        target: The stage that was requested.
    """

    error_code = "INVALID_STAGE_TRANSITION"
    suggested_action = "Create a new migrator for each run"

    def __init__(self, current: MigrationStage, target: MigrationStage) -> None:
        self.current = current
        self.target = target
        super().__init__(
            f"Invalid stage transition from {current.value} to {target.value}",
            stage=current,
        )


__all__ = [
    "MigrationError",
    "SourceReadError",
    "TransformError",
    "DestinationWriteError",
    "CommitError",
    "MigrationCancelledError",
    "MigrationStateError",
]
