"""
Observability utilities for identitymigrator.

Provides the composition-based tracer and the standard span attribute
names used by the stores, the copier and the migrator.

Example:
    >>> from identitymigrator.observability import create_tracer
    >>>
    >>> class MyStore:
    ...     def __init__(self, enable_tracing: bool = True):
    ...         self._tracer = create_tracer(__name__, enable_tracing)
    ...         self._enable_tracing = self._tracer.enabled
"""

from identitymigrator.observability.attributes import (
    ATTR_BATCH_SIZE,
    ATTR_DB_OPERATION,
    ATTR_DB_SYSTEM,
    ATTR_EMAIL_DOMAIN,
    ATTR_ENTITY_COUNT,
    ATTR_ENTITY_TYPE,
    ATTR_ERROR_TYPE,
    ATTR_MIGRATION_STAGE,
    ATTR_PAGE_OFFSET,
    ATTR_ROW_COUNT,
    ATTR_TABLE_NAME,
)
from identitymigrator.observability.tracer import (
    MockTracer,
    NullTracer,
    OpenTelemetryTracer,
    Tracer,
    create_tracer,
)

__all__ = [
    # Tracers
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
    # Attributes
    "ATTR_BATCH_SIZE",
    "ATTR_DB_OPERATION",
    "ATTR_DB_SYSTEM",
    "ATTR_EMAIL_DOMAIN",
    "ATTR_ENTITY_COUNT",
    "ATTR_ENTITY_TYPE",
    "ATTR_ERROR_TYPE",
    "ATTR_MIGRATION_STAGE",
    "ATTR_PAGE_OFFSET",
    "ATTR_ROW_COUNT",
    "ATTR_TABLE_NAME",
]
