"""
Data models for the identity migration run.

Models in this module:

Enums:
    - MigrationStage: Run lifecycle stages

Configuration:
    - MigrationSettings: Tunables for a migration run

Results:
    - EntityCopyResult: Outcome of copying one entity type
    - MigrationResult: Outcome of a whole run
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from identitymigrator.entities import EntityType

DEFAULT_USER_BATCH_SIZE = 500
DEFAULT_BATCH_SIZE = 2000
DEFAULT_EMAIL_DOMAIN = "samriddle.online"


class MigrationStage(Enum):
    """
    Migration run stages.

    State machine transitions:
        NOT_STARTED -> COPYING_ROLES -> COPYING_USERS -> COPYING_ROLE_CLAIMS
            -> COPYING_USER_CLAIMS -> COPYING_USER_LOGINS -> COPYING_USER_ROLES
            -> COPYING_USER_TOKENS -> COMMITTED
        Any non-terminal stage -> ABORTED

    There is no resume: an aborted run starts over from NOT_STARTED
    with a fresh migrator.
    """

    NOT_STARTED = "not_started"
    COPYING_ROLES = "copying_roles"
    COPYING_USERS = "copying_users"
    COPYING_ROLE_CLAIMS = "copying_role_claims"
    COPYING_USER_CLAIMS = "copying_user_claims"
    COPYING_USER_LOGINS = "copying_user_logins"
    COPYING_USER_ROLES = "copying_user_roles"
    COPYING_USER_TOKENS = "copying_user_tokens"

    COMMITTED = "committed"
    """Every entity type was copied and the transaction committed."""

    ABORTED = "aborted"
    """The run failed or was cancelled; nothing was committed."""

    @property
    def is_terminal(self) -> bool:
        """
        Check if this is a terminal (final) stage.

        Returns:
            True for COMMITTED and ABORTED.
        """
        return self in (MigrationStage.COMMITTED, MigrationStage.ABORTED)

    @classmethod
    def for_entity(cls, entity: EntityType) -> MigrationStage:
        """
        Get the copying stage of an entity type.

        Args:
            entity: The entity type being copied.

        Returns:
            The stage the run is in while copying that entity type.
        """
        return _ENTITY_STAGES[entity]

    def can_transition_to(self, target: MigrationStage) -> bool:
        """
        Check if transition to target stage is valid.

        Args:
            target: The target stage to transition to.

        Returns:
            True if the transition is valid.
        """
        if self.is_terminal:
            return False

        if target is MigrationStage.ABORTED:
            return True

        return _NEXT_STAGE.get(self) is target


_ENTITY_STAGES: dict[EntityType, MigrationStage] = {
    EntityType.ROLE: MigrationStage.COPYING_ROLES,
    EntityType.USER: MigrationStage.COPYING_USERS,
    EntityType.ROLE_CLAIM: MigrationStage.COPYING_ROLE_CLAIMS,
    EntityType.USER_CLAIM: MigrationStage.COPYING_USER_CLAIMS,
    EntityType.USER_LOGIN: MigrationStage.COPYING_USER_LOGINS,
    EntityType.USER_ROLE: MigrationStage.COPYING_USER_ROLES,
    EntityType.USER_TOKEN: MigrationStage.COPYING_USER_TOKENS,
}

_NEXT_STAGE: dict[MigrationStage, MigrationStage] = {
    MigrationStage.NOT_STARTED: MigrationStage.COPYING_ROLES,
    MigrationStage.COPYING_ROLES: MigrationStage.COPYING_USERS,
    MigrationStage.COPYING_USERS: MigrationStage.COPYING_ROLE_CLAIMS,
    MigrationStage.COPYING_ROLE_CLAIMS: MigrationStage.COPYING_USER_CLAIMS,
    MigrationStage.COPYING_USER_CLAIMS: MigrationStage.COPYING_USER_LOGINS,
    MigrationStage.COPYING_USER_LOGINS: MigrationStage.COPYING_USER_ROLES,
    MigrationStage.COPYING_USER_ROLES: MigrationStage.COPYING_USER_TOKENS,
    MigrationStage.COPYING_USER_TOKENS: MigrationStage.COMMITTED,
}


@dataclass(frozen=True)
class MigrationSettings:
    """
    Tunables for a migration run.

    Attributes:
        user_batch_size: Rows per page for the user table. Kept small
            because every user row is rebuilt in memory.
        batch_size: Rows per page for every other table.
        email_domain: Domain of the pseudonymized email addresses.

    Example:
        >>> settings = MigrationSettings(user_batch_size=100, batch_size=1000)
        >>> settings.batch_size_for(EntityType.USER)
        100
    """

    user_batch_size: int = DEFAULT_USER_BATCH_SIZE
    batch_size: int = DEFAULT_BATCH_SIZE
    email_domain: str = DEFAULT_EMAIL_DOMAIN

    def __post_init__(self) -> None:
        if self.user_batch_size <= 0:
            raise ValueError(f"user_batch_size must be positive, got {self.user_batch_size}")
        if self.batch_size <= 0:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if not self.email_domain:
            raise ValueError("email_domain must not be empty")

    def batch_size_for(self, entity: EntityType) -> int:
        """
        Get the page size used for an entity type.

        Args:
            entity: The entity type being copied.

        Returns:
            user_batch_size for users, batch_size otherwise.
        """
        if entity is EntityType.USER:
            return self.user_batch_size
        return self.batch_size


@dataclass(frozen=True)
class EntityCopyResult:
    """
    Outcome of copying one entity type.

    Attributes:
        entity: The entity type that was copied.
        rows_copied: Rows written to the destination transaction.
        pages_fetched: Page requests made against the source.
        duration_seconds: Time spent on the entity type.
    """

    entity: EntityType
    rows_copied: int
    pages_fetched: int
    duration_seconds: float


@dataclass
class MigrationResult:
    """
    Outcome of a whole migration run.

    Attributes:
        success: Whether the run committed.
        stage: The stage the run ended in (COMMITTED or ABORTED).
        entities: Results of the entity types that finished copying.
        duration_seconds: Total time taken for the run.
        error_message: Error message if the run aborted.
    """

    success: bool
    stage: MigrationStage
    entities: list[EntityCopyResult] = field(default_factory=list)
    duration_seconds: float = 0.0
    error_message: str | None = None

    @property
    def rows_copied(self) -> int:
        """Total rows copied across all entity types."""
        return sum(result.rows_copied for result in self.entities)


__all__ = [
    "DEFAULT_USER_BATCH_SIZE",
    "DEFAULT_BATCH_SIZE",
    "DEFAULT_EMAIL_DOMAIN",
    "MigrationStage",
    "MigrationSettings",
    "EntityCopyResult",
    "MigrationResult",
]
