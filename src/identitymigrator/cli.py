"""
Command-line entry point.

Copies the identity schema from the source database to the destination
database, de-identifying users on the way.

Usage:
    identitymigrator --source-url mssql+aioodbc://... --destination-url postgresql+asyncpg://...
    python -m identitymigrator                      # URLs from IDENTITY_MIGRATOR_* variables
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from collections.abc import Sequence

from pydantic import ValidationError
from sqlalchemy.exc import ArgumentError, NoSuchModuleError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from identitymigrator.config import MigratorEnvironment
from identitymigrator.exceptions import MigrationError
from identitymigrator.migrator import IdentityMigrator
from identitymigrator.models import EntityCopyResult
from identitymigrator.stores.sql import SQLAlchemyDestinationStore, SQLAlchemyRowSource

logger = logging.getLogger("identitymigrator")


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser; unset options fall back to the environment."""
    parser = argparse.ArgumentParser(
        prog="identitymigrator",
        description="Copy an ASP.NET Identity schema to another database, de-identifying users.",
    )
    parser.add_argument("--source-url", help="SQLAlchemy async URL of the source database")
    parser.add_argument(
        "--destination-url", help="SQLAlchemy async URL of the destination database"
    )
    parser.add_argument("--user-batch-size", type=int, help="Rows per page for users")
    parser.add_argument("--batch-size", type=int, help="Rows per page for other tables")
    parser.add_argument("--email-domain", help="Domain of the generated email addresses")
    parser.add_argument(
        "--log-level",
        choices=["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"],
        help="Logging level",
    )
    parser.add_argument(
        "--no-tracing",
        action="store_true",
        help="Do not emit OpenTelemetry spans",
    )
    return parser


def load_environment(args: argparse.Namespace) -> MigratorEnvironment:
    """
    Merge command-line options over the environment.

    Args:
        args: Parsed command-line options.

    Returns:
        The effective configuration.
    """
    overrides = {
        "source_url": args.source_url,
        "destination_url": args.destination_url,
        "user_batch_size": args.user_batch_size,
        "batch_size": args.batch_size,
        "email_domain": args.email_domain,
        "log_level": args.log_level,
    }
    if args.no_tracing:
        overrides["enable_tracing"] = False
    return MigratorEnvironment(**{k: v for k, v in overrides.items() if v is not None})


def _report(result: EntityCopyResult) -> None:
    logger.info(
        "%s: %d rows (%.1fs)",
        result.entity.table_name,
        result.rows_copied,
        result.duration_seconds,
    )


def create_engines(env: MigratorEnvironment) -> tuple[AsyncEngine, AsyncEngine]:
    """
    Create the source and destination engines.

    No connection is opened here, but the URLs are parsed and their
    dialect and driver are loaded.

    Raises:
        ArgumentError: If a URL cannot be parsed.
        NoSuchModuleError: If a URL names an unknown dialect or driver.
        ImportError: If the driver package is not installed.
    """
    return create_async_engine(env.source_url), create_async_engine(env.destination_url)


async def run_migration(
    env: MigratorEnvironment,
    engines: tuple[AsyncEngine, AsyncEngine] | None = None,
) -> None:
    """
    Run one migration with the given configuration.

    Args:
        env: Effective configuration; both URLs must be set.
        engines: Source and destination engines; created from the URLs
            when omitted. They are disposed when the run ends.

    Raises:
        MigrationError: If the run aborted.
    """
    source_engine, destination_engine = engines or create_engines(env)
    try:
        migrator = IdentityMigrator(
            SQLAlchemyRowSource(source_engine, enable_tracing=env.enable_tracing),
            SQLAlchemyDestinationStore(destination_engine, enable_tracing=env.enable_tracing),
            env.to_settings(),
            enable_tracing=env.enable_tracing,
        )
        await migrator.run(progress_callback=_report)
    finally:
        await source_engine.dispose()
        await destination_engine.dispose()


def main(argv: Sequence[str] | None = None) -> int:
    """
    Entry point.

    Returns:
        Process exit code: 0 on commit, 1 on an aborted run, 2 on
        invalid configuration, 130 when interrupted.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        env = load_environment(args)
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    logging.basicConfig(
        level=env.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    if not env.source_url or not env.destination_url:
        parser.print_usage(sys.stderr)
        print(
            "Both the source and destination URLs are required "
            "(--source-url/--destination-url or IDENTITY_MIGRATOR_SOURCE_URL/"
            "IDENTITY_MIGRATOR_DESTINATION_URL)",
            file=sys.stderr,
        )
        return 2

    try:
        engines = create_engines(env)
    except (ArgumentError, NoSuchModuleError, ImportError) as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 2

    try:
        asyncio.run(run_migration(env, engines))
    except MigrationError as e:
        logger.error("Migration failed [%s]: %s", e.error_code, e)
        return 1
    except KeyboardInterrupt:
        # the run task was cancelled and rolled back before this surfaces
        logger.error("Migration cancelled")
        return 130

    print("Done.")
    return 0


__all__ = ["build_parser", "load_environment", "create_engines", "run_migration", "main"]
