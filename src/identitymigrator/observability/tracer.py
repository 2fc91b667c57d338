"""
Tracers handed to the stores, the copier and the migrator.

Every component takes an optional ``tracer`` and falls back to
``create_tracer(__name__, enable_tracing)``. A migration emits:

    identitymigrator.migration.run            one per run
    identitymigrator.copy_entity              one per entity type
    identitymigrator.source.fetch_page        one per page request
    identitymigrator.destination.insert_batch one per inserted batch

Attribute keys live in ``identitymigrator.observability.attributes``.

Example:
    >>> source = InMemoryRowSource(tracer=MockTracer())
    >>> await source.fetch_page(EntityType.ROLE, 0, 2000)
    >>> source._tracer.span_names
    ['identitymigrator.source.fetch_page']
"""

from __future__ import annotations

import contextlib
from collections.abc import Generator
from contextlib import AbstractContextManager
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from opentelemetry import trace

if TYPE_CHECKING:
    from opentelemetry.trace import Span


@runtime_checkable
class Tracer(Protocol):
    """What the migration components need from a tracer."""

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        """
        Open a span around one migration step.

        Args:
            name: Span name, e.g. "identitymigrator.copy_entity"
            attributes: Initial attributes such as the entity type and batch size

        Returns:
            Context manager yielding the span, or None when nothing is recorded
        """
        ...

    @property
    def enabled(self) -> bool:
        """Whether spans are recorded, so callers can skip set_attribute()."""
        ...


class NullTracer:
    """Tracer used with ``enable_tracing=False``; records nothing."""

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        yield None

    @property
    def enabled(self) -> bool:
        return False


class OpenTelemetryTracer:
    """
    Tracer backed by the OpenTelemetry API.

    Spans go to whatever TracerProvider the process configured; without
    one the API hands out non-recording spans.

    Args:
        tracer_name: Instrumentation scope, the module's ``__name__``
    """

    def __init__(self, tracer_name: str) -> None:
        self._tracer = trace.get_tracer(tracer_name)

    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> AbstractContextManager[Span | None]:
        return self._tracer.start_as_current_span(
            name,
            attributes=attributes or {},
        )

    @property
    def enabled(self) -> bool:
        return True


class MockTracer:
    """
    Tracer for tests; keeps every span name with its initial attributes.

    Example:
        >>> tracer = MockTracer()
        >>> migrator = IdentityMigrator(source, destination, tracer=tracer)
        >>> await migrator.run()
        >>> tracer.span_names[0]
        'identitymigrator.migration.run'
    """

    def __init__(self) -> None:
        self.spans: list[tuple[str, dict[str, Any] | None]] = []

    @contextlib.contextmanager
    def span(
        self,
        name: str,
        attributes: dict[str, Any] | None = None,
    ) -> Generator[None, None, None]:
        self.spans.append((name, attributes))
        yield None

    @property
    def enabled(self) -> bool:
        return True

    @property
    def span_names(self) -> list[str]:
        """Names of the recorded spans, in order."""
        return [name for name, _ in self.spans]

    def clear(self) -> None:
        """Forget the recorded spans."""
        self.spans.clear()


def create_tracer(
    name: str,
    enable_tracing: bool = True,
) -> Tracer:
    """
    Pick the tracer for a component.

    Args:
        name: Instrumentation scope, the module's ``__name__``
        enable_tracing: False for a NullTracer

    Returns:
        OpenTelemetryTracer if enabled, NullTracer otherwise
    """
    if enable_tracing:
        return OpenTelemetryTracer(name)
    return NullTracer()


__all__ = [
    "Tracer",
    "NullTracer",
    "OpenTelemetryTracer",
    "MockTracer",
    "create_tracer",
]
