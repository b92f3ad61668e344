"""
Observer registry shared by every UI surface.

A grid card, a detail page and the bookmark panel can all watch the same
entity. Whichever of them mutates it, all of them are told synchronously,
within the same event-loop turn, with the complete new value.
"""
import logging
from collections import defaultdict
from collections.abc import Callable
from dataclasses import dataclass
from enum import StrEnum
from types import TracebackType
from typing import Any, Protocol

logger = logging.getLogger(__name__)

# Subscribe with this id to observe every entity of a kind
ALL_ENTITIES = "*"


class EntityKind(StrEnum):
    """Kinds of entities published on the bus."""

    BOOKMARK = "bookmark"
    CATEGORY = "category"
    LIKE = "like"
    TRENDING = "trending"
    CELEBRATION = "celebration"


@dataclass(frozen=True)
class EntityEvent:
    """
    Notification delivered to subscribers.

    `value` is the full value now visible for the entity (None when the entity
    no longer exists). Values are immutable, so a subscriber can never see a
    half-applied write.
    """

    kind: str
    entity_id: str
    value: Any


Callback = Callable[[EntityEvent], None]


class Subscription:
    """Handle returned by `SubscriptionBus.subscribe`."""

    def __init__(self, bus: "SubscriptionBus", kind: str, entity_id: str, callback: Callback) -> None:
        self._bus = bus
        self.kind = kind
        self.entity_id = entity_id
        self.callback = callback
        self._active = True

    @property
    def active(self) -> bool:
        """False once unsubscribed."""
        return self._active

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        if not self._active:
            return
        self._active = False
        self._bus._remove(self)

    def cancel(self) -> None:
        """Alias of `unsubscribe` so subscriptions can be adopted by a `ViewScope`."""
        self.unsubscribe()

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.unsubscribe()


class SubscriptionBus:
    """Synchronous publish/subscribe keyed by (kind, entity id)."""

    def __init__(self) -> None:
        self._subscribers: dict[tuple[str, str], list[Subscription]] = defaultdict(list)

    def subscribe(self, kind: str, entity_id: str, callback: Callback) -> Subscription:
        """
        Observe an entity.

        Args:
            kind: Entity kind (see `EntityKind`).
            entity_id: Entity id, or `ALL_ENTITIES` for every entity of the kind.
            callback: Called with an `EntityEvent` on every change.

        Returns:
            The subscription; release it when the owning view goes away.
        """
        subscription = Subscription(self, str(kind), entity_id, callback)
        self._subscribers[(subscription.kind, entity_id)].append(subscription)
        return subscription

    def publish(self, kind: str, entity_id: str, value: Any) -> int:
        """
        Deliver a change to every subscriber of the entity and of its kind.

        Subscribers added or removed by a callback during delivery take effect
        for the next publish. A failing callback is logged and does not stop
        delivery to the others.

        Returns:
            Number of callbacks invoked.
        """
        kind = str(kind)
        event = EntityEvent(kind=kind, entity_id=entity_id, value=value)
        targets = list(self._subscribers.get((kind, entity_id), ()))
        if entity_id != ALL_ENTITIES:
            targets.extend(self._subscribers.get((kind, ALL_ENTITIES), ()))
        delivered = 0
        for subscription in targets:
            if not subscription.active:
                continue
            try:
                subscription.callback(event)
            except Exception:
                logger.exception(
                    "subscriber_callback_failed kind=%s entity_id=%s", kind, entity_id,
                )
            delivered += 1
        return delivered

    def subscriber_count(self, kind: str | None = None, entity_id: str | None = None) -> int:
        """Number of live subscriptions, optionally filtered by kind and id."""
        return sum(
            len(subs)
            for (k, eid), subs in self._subscribers.items()
            if (kind is None or k == str(kind)) and (entity_id is None or eid == entity_id)
        )

    def clear(self) -> None:
        """Drop every subscription."""
        for subs in list(self._subscribers.values()):
            for subscription in list(subs):
                subscription.unsubscribe()
        self._subscribers.clear()

    def _remove(self, subscription: Subscription) -> None:
        key = (subscription.kind, subscription.entity_id)
        subs = self._subscribers.get(key)
        if subs is None:
            return
        if subscription in subs:
            subs.remove(subscription)
        if not subs:
            del self._subscribers[key]


class Cancelable(Protocol):
    """Anything a view scope can release: subscriptions and scheduled tasks."""

    def cancel(self) -> None: ...  # noqa: D102


class ViewScope:
    """
    Resources held by one mounted UI surface.

    Subscriptions and scheduled tasks acquired through the scope are all
    released when the scope exits, so a view that unmounts mid-request never
    receives the late resolution.

        with ViewScope(bus) as scope:
            scope.subscribe(EntityKind.LIKE, "7", render)
            scope.adopt(ranker.start_auto_refresh())
    """

    def __init__(self, bus: SubscriptionBus) -> None:
        self._bus = bus
        self._subscriptions: list[Subscription] = []
        self._cancelables: list[Cancelable] = []
        self._closed = False

    @property
    def closed(self) -> bool:
        """True once the scope released its resources."""
        return self._closed

    def subscribe(self, kind: str, entity_id: str, callback: Callback) -> Subscription:
        """Subscribe on the bus for the lifetime of this scope."""
        if self._closed:
            raise RuntimeError("View scope is closed")
        subscription = self._bus.subscribe(kind, entity_id, callback)
        self._subscriptions.append(subscription)
        return subscription

    def adopt(self, resource: Cancelable) -> Cancelable:
        """Cancel `resource` when the scope closes."""
        if self._closed:
            resource.cancel()
            raise RuntimeError("View scope is closed")
        self._cancelables.append(resource)
        return resource

    def close(self) -> None:
        """Release everything acquired through the scope."""
        if self._closed:
            return
        self._closed = True
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        for resource in self._cancelables:
            resource.cancel()
        self._subscriptions.clear()
        self._cancelables.clear()

    def __enter__(self) -> "ViewScope":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    async def __aenter__(self) -> "ViewScope":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
