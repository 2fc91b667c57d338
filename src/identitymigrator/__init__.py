"""
identitymigrator - De-identifying migration of ASP.NET Identity schemas.

This library provides:
- A migrator that copies roles, users and their claim/login/role/token
  tables from one relational store to another inside one transaction
- Deterministic pseudonymization of user names and contact fields
- Reset of every credential and session field, and removal of blobs
- Row sources and destinations for SQLAlchemy async engines and memory
"""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("identitymigrator")
except PackageNotFoundError:
    # Package not installed (running from source without install)
    __version__ = "0.0.0.dev0"

from identitymigrator.copier import EntityCopier, RowTransform
from identitymigrator.entities import (
    COPY_ORDER,
    ApplicationUser,
    EntityType,
    IdentityRow,
    Role,
    RoleClaim,
    Row,
    UserClaim,
    UserLogin,
    UserRole,
    UserToken,
)
from identitymigrator.exceptions import (
    CommitError,
    DestinationWriteError,
    MigrationCancelledError,
    MigrationError,
    MigrationStateError,
    SourceReadError,
    TransformError,
)
from identitymigrator.migrator import IdentityMigrator, ProgressCallback
from identitymigrator.models import (
    EntityCopyResult,
    MigrationResult,
    MigrationSettings,
    MigrationStage,
)
from identitymigrator.pseudonymizer import (
    FIRST_NAMES,
    LAST_NAMES,
    Pseudonym,
    deidentify_user,
    pseudonymize,
)
from identitymigrator.stores import (
    DestinationStore,
    DestinationTransaction,
    InMemoryDestinationStore,
    InMemoryRowSource,
    RowSource,
    SQLAlchemyDestinationStore,
    SQLAlchemyRowSource,
)

__all__ = [
    "__version__",
    # Entities
    "COPY_ORDER",
    "EntityType",
    "IdentityRow",
    "Row",
    "Role",
    "ApplicationUser",
    "RoleClaim",
    "UserClaim",
    "UserLogin",
    "UserRole",
    "UserToken",
    # Pseudonymization
    "FIRST_NAMES",
    "LAST_NAMES",
    "Pseudonym",
    "pseudonymize",
    "deidentify_user",
    # Stores
    "RowSource",
    "DestinationStore",
    "DestinationTransaction",
    "InMemoryRowSource",
    "InMemoryDestinationStore",
    "SQLAlchemyRowSource",
    "SQLAlchemyDestinationStore",
    # Copy and orchestration
    "EntityCopier",
    "RowTransform",
    "IdentityMigrator",
    "ProgressCallback",
    # Models
    "MigrationStage",
    "MigrationSettings",
    "EntityCopyResult",
    "MigrationResult",
    # Exceptions
    "MigrationError",
    "SourceReadError",
    "TransformError",
    "DestinationWriteError",
    "CommitError",
    "MigrationCancelledError",
    "MigrationStateError",
]
