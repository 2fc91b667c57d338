"""
IdentityMigrator - Orchestrates a de-identifying identity schema copy.

The migrator owns the single destination transaction of a run. It walks
the entity types in foreign-key-safe order, copies each one through the
EntityCopier (pseudonymizing users on the way), and commits once at the
very end. Any failure, including task cancellation or a cancel()
request, rolls the transaction back so the destination is left exactly
as it was.

Run stages:
    NOT_STARTED -> COPYING_ROLES -> COPYING_USERS -> COPYING_ROLE_CLAIMS
        -> COPYING_USER_CLAIMS -> COPYING_USER_LOGINS -> COPYING_USER_ROLES
        -> COPYING_USER_TOKENS -> COMMITTED
    any non-terminal stage -> ABORTED

Usage:
    >>> migrator = IdentityMigrator(source, destination)
    >>> result = await migrator.run()
    >>> print(f"Copied {result.rows_copied} rows")
"""

from __future__ import annotations

import asyncio
import functools
import logging
import time
from collections.abc import Callable

from identitymigrator.copier import EntityCopier, RowTransform
from identitymigrator.entities import COPY_ORDER, EntityType
from identitymigrator.exceptions import (
    CommitError,
    MigrationCancelledError,
    MigrationError,
    MigrationStateError,
)
from identitymigrator.models import (
    EntityCopyResult,
    MigrationResult,
    MigrationSettings,
    MigrationStage,
)
from identitymigrator.observability import (
    ATTR_EMAIL_DOMAIN,
    ATTR_ENTITY_COUNT,
    ATTR_ERROR_TYPE,
    ATTR_MIGRATION_STAGE,
    ATTR_ROW_COUNT,
    Tracer,
    create_tracer,
)
from identitymigrator.pseudonymizer import deidentify_user
from identitymigrator.stores.interface import (
    DestinationStore,
    DestinationTransaction,
    RowSource,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[EntityCopyResult], None]


class IdentityMigrator:
    """
    Copies the identity schema from a source to a destination store.

    A migrator performs exactly one run. Re-running after a failure
    means creating a new migrator; because pseudonyms are deterministic
    and primary keys are preserved, a re-run produces identical rows.

    Example:
        >>> migrator = IdentityMigrator(
        ...     source=SQLAlchemyRowSource(source_engine),
        ...     destination=SQLAlchemyDestinationStore(destination_engine),
        ...     settings=MigrationSettings(user_batch_size=500, batch_size=2000),
        ... )
        >>> try:
        ...     result = await migrator.run()
        ... except MigrationError as e:
        ...     print(f"Aborted at {e.stage}: {e}")

    Attributes:
        _source: Source store to read from.
        _destination: Destination store to write to.
        _settings: Run tunables.
        _stage: Current run stage.
        _result: Result of the run, once it has ended.
    """

    def __init__(
        self,
        source: RowSource,
        destination: DestinationStore,
        settings: MigrationSettings | None = None,
        *,
        tracer: Tracer | None = None,
        enable_tracing: bool = True,
    ) -> None:
        """
        Initialize the migrator.

        Args:
            source: RowSource over the origin store.
            destination: DestinationStore over the target store.
            settings: Run tunables (defaults to MigrationSettings()).
            tracer: Optional custom Tracer instance. If not provided, one is
                   created based on enable_tracing setting.
            enable_tracing: Whether to enable OpenTelemetry tracing.
                          Ignored if tracer is explicitly provided.
        """
        self._tracer = tracer or create_tracer(__name__, enable_tracing)
        self._enable_tracing = self._tracer.enabled
        self._source = source
        self._destination = destination
        self._settings = settings or MigrationSettings()
        self._copier = EntityCopier(source, tracer=self._tracer)

        self._stage = MigrationStage.NOT_STARTED
        self._result: MigrationResult | None = None

    @property
    def stage(self) -> MigrationStage:
        """Current run stage."""
        return self._stage

    @property
    def result(self) -> MigrationResult | None:
        """Result of the run, or None while it has not ended."""
        return self._result

    @property
    def is_cancelled(self) -> bool:
        """Check if cancellation has been requested."""
        return self._copier.is_cancelled

    def cancel(self) -> None:
        """
        Request cancellation of the run.

        The run stops at the next page boundary, rolls back and raises
        MigrationCancelledError. Nothing is committed.
        """
        self._copier.cancel()

    async def run(self, progress_callback: ProgressCallback | None = None) -> MigrationResult:
        """
        Run the migration.

        Args:
            progress_callback: Optional callback invoked after each entity
                type has been copied.

        Returns:
            MigrationResult of the committed run.

        Raises:
            MigrationStateError: If this migrator has already run.
            MigrationError: If the run aborted. The error's ``stage``
                names the stage that was reached.
        """
        if self._stage is not MigrationStage.NOT_STARTED:
            raise MigrationStateError(self._stage, MigrationStage.COPYING_ROLES)

        with self._tracer.span(
            "identitymigrator.migration.run",
            {
                ATTR_ENTITY_COUNT: len(COPY_ORDER),
                ATTR_EMAIL_DOMAIN: self._settings.email_domain,
            },
        ) as span:
            start_time = time.monotonic()
            entities: list[EntityCopyResult] = []
            transaction: DestinationTransaction | None = None

            try:
                transaction = await self._begin()

                for entity in COPY_ORDER:
                    self._transition(MigrationStage.for_entity(entity))
                    logger.info("Migrating %s...", entity.table_name)

                    result = await self._copier.copy(
                        entity,
                        transaction,
                        self._settings.batch_size_for(entity),
                        self._transform_for(entity),
                    )
                    entities.append(result)
                    logger.info(
                        "Copied %d rows to %s in %d pages",
                        result.rows_copied,
                        entity.table_name,
                        result.pages_fetched,
                    )

                    if progress_callback:
                        progress_callback(result)

                if self._copier.is_cancelled:
                    raise MigrationCancelledError()

                await self._commit(transaction)
                self._transition(MigrationStage.COMMITTED)

            except (Exception, asyncio.CancelledError) as e:
                await self._abort(transaction, e)
                self._result = MigrationResult(
                    success=False,
                    stage=self._stage,
                    entities=entities,
                    duration_seconds=time.monotonic() - start_time,
                    error_message=str(e),
                )
                if span:
                    span.set_attribute(ATTR_MIGRATION_STAGE, self._stage.value)
                    span.set_attribute(ATTR_ERROR_TYPE, type(e).__name__)
                raise

            self._result = MigrationResult(
                success=True,
                stage=self._stage,
                entities=entities,
                duration_seconds=time.monotonic() - start_time,
            )
            if span:
                span.set_attribute(ATTR_MIGRATION_STAGE, self._stage.value)
                span.set_attribute(ATTR_ROW_COUNT, self._result.rows_copied)

            logger.info(
                "Migration committed: %d rows across %d entity types in %.1fs",
                self._result.rows_copied,
                len(entities),
                self._result.duration_seconds,
            )
            return self._result

    def _transform_for(self, entity: EntityType) -> RowTransform | None:
        if entity is EntityType.USER:
            return functools.partial(deidentify_user, email_domain=self._settings.email_domain)
        return None

    def _transition(self, target: MigrationStage) -> None:
        if not self._stage.can_transition_to(target):
            raise MigrationStateError(self._stage, target)
        logger.debug("Migration stage %s -> %s", self._stage.value, target.value)
        self._stage = target

    async def _begin(self) -> DestinationTransaction:
        try:
            return await self._destination.begin()
        except Exception as e:
            raise MigrationError(f"Opening the destination transaction failed: {e}") from e

    async def _commit(self, transaction: DestinationTransaction) -> None:
        try:
            await transaction.commit()
        except Exception as e:
            raise CommitError(str(e)) from e

    async def _abort(
        self,
        transaction: DestinationTransaction | None,
        error: BaseException,
    ) -> None:
        """Roll back, record the stage reached and move to ABORTED."""
        reached = self._stage
        if isinstance(error, MigrationError) and error.stage is None:
            error.stage = reached

        if not reached.is_terminal:
            self._stage = MigrationStage.ABORTED

        if transaction is not None and transaction.is_active:
            try:
                await transaction.rollback()
            except Exception:
                logger.exception("Rolling back the destination transaction failed")

        logger.error("Migration aborted at %s: %s", reached.value, error)


__all__ = [
    "ProgressCallback",
    "IdentityMigrator",
]
