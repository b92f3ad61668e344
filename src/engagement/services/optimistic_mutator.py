"""
Optimistic apply/rollback engine.

A mutation is written into the entity store before its request is sent, then
reconciled with the server's answer or rolled back when the request fails.
Requests for the same entity are serialized in submission order; mutations
on different entities run independently.
"""
import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from engagement.services.entity_store import EntityStore, MutateFn

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OptimisticMutator:
    """Applies speculative mutations through an `EntityStore`."""

    def __init__(self, store: EntityStore) -> None:
        self._store = store
        self._locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._queued: dict[tuple[str, str], int] = {}
        # Strong references so running mutations are not garbage collected
        self._tasks: set[asyncio.Task] = set()

    @property
    def in_flight(self) -> int:
        """Number of mutations not yet resolved."""
        return len(self._tasks)

    def apply(
        self,
        kind: str,
        entity_id: str,
        mutate_fn: MutateFn,
        request_fn: Callable[[], Awaitable[T]],
        reconcile: Callable[[T], Any] | None = None,
    ) -> "asyncio.Task[T]":
        """
        Apply a mutation optimistically and send its request.

        The speculative value `mutate_fn(current)` is visible to every reader
        (and published to every observer) by the time this method returns.
        `request_fn` is awaited once all earlier mutations of the same entity
        have resolved. Its result, passed through `reconcile` when given,
        becomes the entity's server value. If it raises, the mutation is
        rolled back and the returned task re-raises the error.

        Must be called from a running event loop.

        Args:
            kind: Entity kind.
            entity_id: Entity id.
            mutate_fn: Pure function from the visible value to the new value.
            request_fn: Issues the request and returns the server's answer.
            reconcile: Maps the request result to the stored server value.

        Returns:
            Task resolving to the request result.
        """
        key = (str(kind), entity_id)
        mutation_id = self._store.push_mutation(kind, entity_id, mutate_fn)
        self._queued[key] = self._queued.get(key, 0) + 1
        lock = self._locks.setdefault(key, asyncio.Lock())
        task = asyncio.create_task(
            self._run(key, mutation_id, lock, request_fn, reconcile),
            name=f"mutation:{key[0]}:{entity_id}:{mutation_id}",
        )
        self._tasks.add(task)
        task.add_done_callback(self._settled)
        return task

    def _settled(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        # Shielded callers may have stopped waiting; _run already logged the failure
        if not task.cancelled():
            task.exception()

    async def _run(
        self,
        key: tuple[str, str],
        mutation_id: int,
        lock: asyncio.Lock,
        request_fn: Callable[[], Awaitable[T]],
        reconcile: Callable[[T], Any] | None,
    ) -> T:
        kind, entity_id = key
        try:
            async with lock:
                result = await request_fn()
                server_value = reconcile(result) if reconcile is not None else result
                self._store.resolve_mutation(kind, entity_id, mutation_id, server_value)
        except (Exception, asyncio.CancelledError) as e:
            self._store.discard_mutation(kind, entity_id, mutation_id)
            logger.warning(
                "optimistic_mutation_rolled_back kind=%s entity_id=%s mutation_id=%s error=%r",
                kind, entity_id, mutation_id, e,
            )
            raise
        finally:
            self._release(key)
        logger.debug(
            "optimistic_mutation_reconciled kind=%s entity_id=%s mutation_id=%s",
            kind, entity_id, mutation_id,
        )
        return result

    def _release(self, key: tuple[str, str]) -> None:
        remaining = self._queued.get(key, 1) - 1
        if remaining <= 0:
            self._queued.pop(key, None)
            self._locks.pop(key, None)
        else:
            self._queued[key] = remaining

    async def drain(self) -> None:
        """Wait for every in-flight mutation to settle, successfully or not."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
