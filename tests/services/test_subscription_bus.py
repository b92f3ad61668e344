"""Tests for the subscription bus and view scopes."""
import logging
from unittest.mock import MagicMock

import pytest

from engagement.services.subscription_bus import (
    ALL_ENTITIES,
    EntityEvent,
    EntityKind,
    SubscriptionBus,
    ViewScope,
)


class TestSubscriptionBus:
    def test__publish__delivers_to_every_subscriber_of_the_entity(
        self, bus: SubscriptionBus,
    ) -> None:
        """A card, a detail page and a panel watching the same prompt all see the change."""
        received: dict[str, list[EntityEvent]] = {"card": [], "detail": [], "panel": []}
        for events in received.values():
            bus.subscribe(EntityKind.LIKE, "7", events.append)

        delivered = bus.publish(EntityKind.LIKE, "7", {"is_liked": True})

        assert delivered == 3
        for events in received.values():
            assert events == [EntityEvent(kind="like", entity_id="7", value={"is_liked": True})]

    def test__publish__other_entities_not_notified(self, bus: SubscriptionBus) -> None:
        callback = MagicMock()
        bus.subscribe(EntityKind.LIKE, "7", callback)

        bus.publish(EntityKind.LIKE, "8", None)
        bus.publish(EntityKind.BOOKMARK, "7", None)

        callback.assert_not_called()

    def test__publish__wildcard_subscriber_sees_whole_kind(self, bus: SubscriptionBus) -> None:
        events: list[EntityEvent] = []
        bus.subscribe(EntityKind.BOOKMARK, ALL_ENTITIES, events.append)

        bus.publish(EntityKind.BOOKMARK, "42", "a")
        bus.publish(EntityKind.BOOKMARK, "43", "b")
        bus.publish(EntityKind.LIKE, "42", "c")

        assert [(e.entity_id, e.value) for e in events] == [("42", "a"), ("43", "b")]

    def test__publish__failing_callback_isolated(
        self, bus: SubscriptionBus, caplog: pytest.LogCaptureFixture,
    ) -> None:
        """One broken observer does not stop delivery to the others."""
        healthy = MagicMock()
        bus.subscribe(EntityKind.LIKE, "7", MagicMock(side_effect=RuntimeError("render failed")))
        bus.subscribe(EntityKind.LIKE, "7", healthy)

        with caplog.at_level(logging.ERROR):
            bus.publish(EntityKind.LIKE, "7", None)

        healthy.assert_called_once()
        assert "subscriber_callback_failed" in caplog.text

    def test__unsubscribe__idempotent(self, bus: SubscriptionBus) -> None:
        callback = MagicMock()
        subscription = bus.subscribe(EntityKind.LIKE, "7", callback)

        subscription.unsubscribe()
        subscription.unsubscribe()
        bus.publish(EntityKind.LIKE, "7", None)

        callback.assert_not_called()
        assert subscription.active is False
        assert bus.subscriber_count() == 0

    def test__subscription__context_manager_releases(self, bus: SubscriptionBus) -> None:
        with bus.subscribe(EntityKind.LIKE, "7", MagicMock()):
            assert bus.subscriber_count(EntityKind.LIKE, "7") == 1

        assert bus.subscriber_count(EntityKind.LIKE, "7") == 0

    def test__publish__unsubscribe_during_delivery(self, bus: SubscriptionBus) -> None:
        """A subscriber removed by an earlier callback is not called in the same publish."""
        second = MagicMock()
        second_subscription = None

        def first(_event: EntityEvent) -> None:
            second_subscription.unsubscribe()

        bus.subscribe(EntityKind.LIKE, "7", first)
        second_subscription = bus.subscribe(EntityKind.LIKE, "7", second)

        bus.publish(EntityKind.LIKE, "7", None)

        second.assert_not_called()

    def test__clear__drops_everything(self, bus: SubscriptionBus) -> None:
        subscription = bus.subscribe(EntityKind.LIKE, "7", MagicMock())
        bus.subscribe(EntityKind.BOOKMARK, ALL_ENTITIES, MagicMock())

        bus.clear()

        assert bus.subscriber_count() == 0
        assert subscription.active is False


class TestViewScope:
    def test__view_scope__releases_subscriptions_and_timers(self, bus: SubscriptionBus) -> None:
        callback = MagicMock()
        timer = MagicMock()

        with ViewScope(bus) as scope:
            scope.subscribe(EntityKind.LIKE, "7", callback)
            scope.adopt(timer)
            bus.publish(EntityKind.LIKE, "7", None)

        bus.publish(EntityKind.LIKE, "7", None)

        assert callback.call_count == 1
        timer.cancel.assert_called_once()
        assert scope.closed is True
        assert bus.subscriber_count() == 0

    @pytest.mark.asyncio
    async def test__view_scope__async_context_manager(self, bus: SubscriptionBus) -> None:
        async with ViewScope(bus) as scope:
            scope.subscribe(EntityKind.BOOKMARK, "42", MagicMock())

        assert bus.subscriber_count() == 0

    def test__view_scope__closed_scope_rejects_new_resources(self, bus: SubscriptionBus) -> None:
        scope = ViewScope(bus)
        scope.close()
        timer = MagicMock()

        with pytest.raises(RuntimeError):
            scope.subscribe(EntityKind.LIKE, "7", MagicMock())
        with pytest.raises(RuntimeError):
            scope.adopt(timer)

        timer.cancel.assert_called_once()

    def test__view_scope__close_twice(self, bus: SubscriptionBus) -> None:
        timer = MagicMock()
        scope = ViewScope(bus)
        scope.adopt(timer)

        scope.close()
        scope.close()

        timer.cancel.assert_called_once()
