"""Call-scoped context for correlation and tenant identity.

Values live in ``contextvars.ContextVar`` instances, one per slot. Every
asyncio task (and every thread) runs in its own context, so concurrent calls
never observe each other's values, and values survive ``await`` points
because they follow the task rather than the worker thread.

Entering a slot returns the value it replaces; exiting restores exactly that
value. Nothing is ever removed unconditionally, which keeps an outer call's
values intact when the pipeline is re-entered (internal sub-requests, test
harnesses driving the app in-process).

Usage:
    with call_context.scoped(ContextSlot.TENANT_ID, tenant_id):
        ...  # call_context.get(ContextSlot.TENANT_ID) == tenant_id

    # equivalent, for code that cannot use a with-block
    prior = call_context.enter(ContextSlot.TENANT_ID, tenant_id)
    try:
        ...
    finally:
        call_context.exit(ContextSlot.TENANT_ID, prior)
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from enum import StrEnum


class ContextSlot(StrEnum):
    """Slots carried by the call context.

    The value of each member is the key used when the slot is rendered
    into log events.
    """

    CORRELATION_ID = "request_id"
    TENANT_ID = "tenant_id"


@dataclass(frozen=True)
class CallContext:
    """Immutable snapshot of the call context.

    Attributes:
        correlation_id: The call's correlation id, or None outside a call.
        tenant_id: The validated tenant identifier (canonical UUID string),
            or None for tenant-less calls.
    """

    correlation_id: str | None = None
    tenant_id: str | None = None

    def as_log_fields(self) -> dict[str, str]:
        """Return the non-empty slots keyed by their log field name."""
        fields = {
            ContextSlot.CORRELATION_ID.value: self.correlation_id,
            ContextSlot.TENANT_ID.value: self.tenant_id,
        }
        return {key: value for key, value in fields.items() if value is not None}


class ScopedContext:
    """Save/restore key-value store scoped to the current execution context.

    The instance itself holds no per-call state; all values live in the
    context variables, which the runtime copies per task.
    """

    def __init__(self, namespace: str = "tagservice") -> None:
        self._vars: dict[ContextSlot, ContextVar[str | None]] = {
            slot: ContextVar(f"{namespace}_{slot.value}", default=None)
            for slot in ContextSlot
        }

    def enter(self, slot: ContextSlot, value: str | None) -> str | None:
        """Set ``slot`` to ``value`` and return the value it replaced."""
        var = self._vars[slot]
        prior = var.get()
        var.set(value)
        return prior

    def exit(self, slot: ContextSlot, prior: str | None) -> None:
        """Restore ``slot`` to the value returned by the matching ``enter``."""
        self._vars[slot].set(prior)

    def get(self, slot: ContextSlot) -> str | None:
        """Return the nearest enclosing value of ``slot``, or None."""
        return self._vars[slot].get()

    @contextmanager
    def scoped(self, slot: ContextSlot, value: str | None) -> Iterator[str | None]:
        """Enter ``slot`` for the duration of the block, restoring on any exit."""
        prior = self.enter(slot, value)
        try:
            yield value
        finally:
            self.exit(slot, prior)

    def snapshot(self) -> CallContext:
        """Capture the current values as an immutable CallContext."""
        return CallContext(
            correlation_id=self.get(ContextSlot.CORRELATION_ID),
            tenant_id=self.get(ContextSlot.TENANT_ID),
        )


call_context = ScopedContext()
