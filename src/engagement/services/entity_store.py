"""
Process-local cache of the last-known-good server state.

Each entry keeps the value the server last confirmed plus the queue of
speculative mutations that are still in flight. Readers always see the server
value with every pending mutation replayed on top of it, so the UI shows the
newest speculative value while requests are outstanding and converges to the
server value once the queue drains.

The store is created when a session starts and closed at logout. After
`close()` new mutations are rejected and late resolutions are dropped.
"""
import itertools
import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from typing import Any

from engagement.services.exceptions import StoreClosedError
from engagement.services.subscription_bus import SubscriptionBus

logger = logging.getLogger(__name__)

MutateFn = Callable[[Any], Any]


@dataclass
class PendingMutation:
    """A speculative transition waiting for its request to resolve."""

    mutation_id: int
    mutate: MutateFn


@dataclass
class StoreEntry:
    """Snapshot wrapper for one entity."""

    server_value: Any = None
    pending: list[PendingMutation] = field(default_factory=list)
    current: Any = None

    def recompute(self) -> Any:
        """Replay pending mutations over the server value."""
        value = self.server_value
        for mutation in self.pending:
            value = mutation.mutate(value)
        self.current = value
        return value

    @property
    def is_empty(self) -> bool:
        return self.server_value is None and not self.pending


class EntityStore:
    """In-memory entity cache keyed by (kind, entity id)."""

    def __init__(self, bus: SubscriptionBus) -> None:
        self._bus = bus
        self._entries: dict[tuple[str, str], StoreEntry] = {}
        self._mutation_ids = itertools.count(1)
        self._closed = False

    @property
    def closed(self) -> bool:
        """True after logout teardown."""
        return self._closed

    # Reads

    def get(self, kind: str, entity_id: str) -> Any:
        """Value currently visible for the entity (speculative while in flight), or None."""
        entry = self._entries.get((str(kind), entity_id))
        return entry.current if entry else None

    def get_server_value(self, kind: str, entity_id: str) -> Any:
        """Last value confirmed by the server, ignoring pending mutations."""
        entry = self._entries.get((str(kind), entity_id))
        return entry.server_value if entry else None

    def has_pending(self, kind: str, entity_id: str) -> bool:
        """True when a mutation of the entity is in flight."""
        entry = self._entries.get((str(kind), entity_id))
        return bool(entry and entry.pending)

    def pending_count(self, kind: str, entity_id: str) -> int:
        """Number of in-flight mutations queued on the entity."""
        entry = self._entries.get((str(kind), entity_id))
        return len(entry.pending) if entry else 0

    def items(self, kind: str) -> Iterator[tuple[str, Any]]:
        """(entity id, visible value) pairs of a kind, skipping absent entities."""
        kind = str(kind)
        for (k, entity_id), entry in list(self._entries.items()):
            if k == kind and entry.current is not None:
                yield entity_id, entry.current

    def values(self, kind: str) -> list[Any]:
        """Visible values of a kind."""
        return [value for _, value in self.items(kind)]

    # Speculative mutations

    def push_mutation(self, kind: str, entity_id: str, mutate: MutateFn) -> int:
        """
        Apply a speculative mutation and notify observers.

        `mutate` is computed against the currently visible value before
        anything is written, so a failing `mutate` leaves the store untouched.

        Returns:
            Id used to resolve or discard the mutation later.

        Raises:
            StoreClosedError: If the store was closed at logout.
        """
        self._ensure_open()
        key = (str(kind), entity_id)
        entry = self._entries.get(key) or StoreEntry()
        speculative = mutate(entry.current)
        mutation_id = next(self._mutation_ids)
        entry.pending.append(PendingMutation(mutation_id=mutation_id, mutate=mutate))
        entry.current = speculative
        self._entries[key] = entry
        logger.debug(
            "speculative_write kind=%s entity_id=%s mutation_id=%s",
            key[0], entity_id, mutation_id,
        )
        self._bus.publish(key[0], entity_id, speculative)
        return mutation_id

    def resolve_mutation(
        self, kind: str, entity_id: str, mutation_id: int, server_value: Any,
    ) -> None:
        """Replace the server value with the authoritative result of a mutation."""
        entry = self._pop_pending(kind, entity_id, mutation_id)
        if entry is None:
            return
        entry.server_value = server_value
        self._settle(str(kind), entity_id, entry)

    def discard_mutation(self, kind: str, entity_id: str, mutation_id: int) -> None:
        """Roll a failed mutation back; the server value is left as it was."""
        entry = self._pop_pending(kind, entity_id, mutation_id)
        if entry is None:
            return
        self._settle(str(kind), entity_id, entry)

    # Server snapshots

    def set_server_value(self, kind: str, entity_id: str, value: Any) -> None:
        """Record a freshly fetched server value (None when the entity is gone)."""
        self._ensure_open()
        key = (str(kind), entity_id)
        entry = self._entries.get(key) or StoreEntry()
        self._entries[key] = entry
        entry.server_value = value
        self._settle(key[0], entity_id, entry)

    def replace_kind(self, kind: str, values: Mapping[str, Any]) -> None:
        """
        Replace every server value of a kind with a fetched list.

        Entities missing from `values` are treated as deleted on the server.
        Entities with in-flight mutations keep their pending queue and are
        rebased onto the new server value.
        """
        self._ensure_open()
        kind = str(kind)
        known = {entity_id for (k, entity_id) in self._entries if k == kind}
        for entity_id in known - set(values):
            self.set_server_value(kind, entity_id, None)
        for entity_id, value in values.items():
            self.set_server_value(kind, entity_id, value)

    # Lifecycle

    def close(self) -> None:
        """Tear the store down at logout."""
        self._closed = True
        self._entries.clear()
        logger.info("entity_store_closed")

    def _ensure_open(self) -> None:
        if self._closed:
            raise StoreClosedError()

    def _pop_pending(self, kind: str, entity_id: str, mutation_id: int) -> StoreEntry | None:
        if self._closed:
            logger.debug(
                "late_resolution_dropped kind=%s entity_id=%s mutation_id=%s",
                kind, entity_id, mutation_id,
            )
            return None
        entry = self._entries.get((str(kind), entity_id))
        if entry is None:
            return None
        remaining = [m for m in entry.pending if m.mutation_id != mutation_id]
        if len(remaining) == len(entry.pending):
            return None
        entry.pending = remaining
        return entry

    def _settle(self, kind: str, entity_id: str, entry: StoreEntry) -> None:
        """Recompute the visible value and notify observers when it changed."""
        previous = entry.current
        current = entry.recompute()
        if entry.is_empty:
            self._entries.pop((kind, entity_id), None)
        if current != previous:
            self._bus.publish(kind, entity_id, current)
