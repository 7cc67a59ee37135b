"""
Unit tests for EventBus.

Covers subscription, ordered delivery of sync and async listeners,
listener error isolation, unsubscription during publish and metrics.
"""

from typing import Any, List

import pytest

from studyforge.core.config.manager import ConfigManager
from studyforge.core.event.bus import EventBus
from studyforge.domain.models.events import ExperienceAwarded, LevelUp


@pytest.mark.unit
class TestSubscription:
    def test_rejects_non_callable(self):
        bus = EventBus()

        with pytest.raises(ValueError):
            bus.subscribe("not a function")  # type: ignore[arg-type]

    def test_rejects_wrong_arity(self):
        bus = EventBus()

        def two_args(event, extra):
            pass

        def no_args():
            pass

        def keyword_only(event, *, source):
            pass

        for handler in (two_args, no_args, keyword_only):
            with pytest.raises(ValueError, match="only required argument"):
                bus.subscribe(handler)

    def test_accepts_optional_extra_parameters(self):
        bus = EventBus()

        def with_default(event, ctx=None):
            pass

        def variadic(event, *args, **kwargs):
            pass

        async def catch_all(*args):
            pass

        for handler in (with_default, variadic, catch_all):
            bus.subscribe(handler)

        assert bus.get_listener_count() == 3

    def test_unsubscribe_is_idempotent(self):
        bus = EventBus()
        unsubscribe = bus.subscribe(lambda event: None)

        assert bus.get_listener_count() == 1
        assert unsubscribe() is True
        assert unsubscribe() is False
        assert bus.get_listener_count() == 0


@pytest.mark.unit
@pytest.mark.asyncio
class TestPublish:
    async def test_delivers_in_registration_order(self):
        # Arrange
        bus = EventBus()
        calls: List[str] = []

        def first(event):
            calls.append("first")

        async def second(event):
            calls.append("second")

        def third(event):
            calls.append("third")

        for handler in (first, second, third):
            bus.subscribe(handler)

        # Act
        await bus.publish(LevelUp(new_level=2, total_experience=300))

        # Assert
        assert calls == ["first", "second", "third"]

    async def test_failing_listener_does_not_stop_others(self):
        # Arrange
        bus = EventBus()
        received: List[Any] = []

        def broken(event):
            raise RuntimeError("boom")

        async def broken_async(event):
            raise KeyError("missing")

        def healthy(event):
            received.append(event)

        bus.subscribe(broken)
        bus.subscribe(broken_async)
        bus.subscribe(healthy)
        event = ExperienceAwarded(requested=10, effective=10, reason="Study")

        # Act
        await bus.publish(event)

        # Assert
        assert received == [event]
        metrics = bus.get_metrics()
        assert metrics is not None
        assert metrics.listener_errors == {"forge.experience_awarded": 2}

    async def test_unsubscribe_during_publish_applies_to_next_event(self):
        # Arrange
        bus = EventBus()
        calls: List[str] = []
        unsubscribe_second = None

        def first(event):
            calls.append("first")
            unsubscribe_second()

        def second(event):
            calls.append("second")

        bus.subscribe(first)
        unsubscribe_second = bus.subscribe(second)

        # Act
        await bus.publish(LevelUp(new_level=2, total_experience=300))
        await bus.publish(LevelUp(new_level=3, total_experience=600))

        # Assert
        assert calls == ["first", "second", "first"]

    async def test_publish_without_listeners(self):
        bus = EventBus()

        await bus.publish(LevelUp(new_level=2, total_experience=300))

        assert bus.get_metrics().events_published == {"forge.level_up": 1}

    async def test_metrics_can_be_disabled_by_config(self):
        manager = ConfigManager(overrides={"core": {"event": {"metrics_enabled": False}}})
        manager.initialize()
        bus = EventBus(manager)

        await bus.publish(LevelUp(new_level=2, total_experience=300))

        assert bus.get_metrics() is None
        assert bus.get_metrics_summary() == {}

    async def test_clear_removes_all_listeners(self):
        bus = EventBus()
        calls: List[Any] = []
        bus.subscribe(lambda event: calls.append(event))

        bus.clear()
        await bus.publish(LevelUp(new_level=2, total_experience=300))

        assert calls == []
        assert bus.get_metrics().total_listeners == 0
