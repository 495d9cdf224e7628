"""Tests for the in-process event dispatcher."""

import pytest

from neo_authz.features.events.entities import Granted, Revoked
from neo_authz.features.events.services import EventDispatcher
from neo_authz.features.permissions.entities import EntityRef, Relation


def granted(*names):
    return Granted(Relation.SUBJECT_PERMISSION, EntityRef("user", "1"), names)


class TestEventDispatcher:

    @pytest.mark.asyncio
    async def test_sync_and_async_handlers(self):
        dispatcher = EventDispatcher()
        seen = []

        async def async_handler(event):
            seen.append(("async", event.names))

        dispatcher.subscribe(Granted, lambda event: seen.append(("sync", event.names)))
        dispatcher.subscribe(Granted, async_handler)

        assert await dispatcher.dispatch(granted("articles.edit")) == 2
        assert seen == [("sync", ("articles.edit",)), ("async", ("articles.edit",))]

    @pytest.mark.asyncio
    async def test_only_matching_type(self):
        dispatcher = EventDispatcher()
        seen = []
        dispatcher.subscribe(Revoked, seen.append)

        assert await dispatcher.dispatch(granted("a")) == 0
        assert seen == []

    @pytest.mark.asyncio
    async def test_base_class_subscription(self):
        dispatcher = EventDispatcher()
        seen = []
        dispatcher.subscribe(object, seen.append)

        await dispatcher.dispatch(granted("a"))

        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_failing_handler_does_not_stop_others(self, caplog):
        dispatcher = EventDispatcher()
        seen = []

        def broken(event):
            raise RuntimeError("boom")

        dispatcher.subscribe(Granted, broken)
        dispatcher.subscribe(Granted, seen.append)

        assert await dispatcher.dispatch(granted("a")) == 1
        assert len(seen) == 1
        assert "boom" in caplog.text

    def test_subscribe_is_idempotent_and_unsubscribe(self):
        dispatcher = EventDispatcher()
        handler = print

        dispatcher.subscribe(Granted, handler)
        dispatcher.subscribe(Granted, handler)
        assert dispatcher.handlers_for(granted("a")) == [handler]

        dispatcher.unsubscribe(Granted, handler)
        dispatcher.unsubscribe(Granted, handler)
        assert dispatcher.handlers_for(granted("a")) == []
