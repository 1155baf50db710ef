"""Tests for the message bus and notification fanout."""

import asyncio
from datetime import datetime, timezone
from unittest.mock import AsyncMock

import pytest

from recognition.constants.constants import RECOGNITION_CREATED_CHANNEL, Visibility, recipient_channel
from recognition.core.exceptions import NotificationError
from recognition.schemas.recognitionSchema import RecognitionResponse, UserSummary
from recognition.services.NotificationFanout import InMemoryMessageBus, NotificationFanout


def response(visibility=Visibility.public, recipient_id="bob", sender_id="alice"):
    return RecognitionResponse(
        id="rec-1",
        message="Great work on the launch",
        visibility=visibility,
        keywords=["great", "work", "launch"],
        created_at=datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc),
        sender=UserSummary(id=sender_id, name=sender_id.capitalize()) if sender_id else None,
        recipient=UserSummary(id=recipient_id, name=recipient_id.capitalize()),
    )


def published_channels(bus):
    return [call.args[0] for call in bus.publish.await_args_list]


class TestPublishCreated:

    @pytest.mark.asyncio
    async def test_public_goes_to_recipient_and_public_channels(self):
        bus = AsyncMock()
        await NotificationFanout(bus).publish_created(response(Visibility.public))

        assert published_channels(bus) == [recipient_channel("bob"), RECOGNITION_CREATED_CHANNEL]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("visibility", [Visibility.private, Visibility.anonymous])
    async def test_non_public_goes_to_recipient_only(self, visibility):
        bus = AsyncMock()
        await NotificationFanout(bus).publish_created(response(visibility))

        assert published_channels(bus) == [recipient_channel("bob")]

    @pytest.mark.asyncio
    async def test_anonymous_payload_has_no_sender(self):
        bus = AsyncMock()
        await NotificationFanout(bus).publish_created(response(Visibility.anonymous, sender_id="alice"))

        payload = bus.publish.await_args.args[1]
        assert payload["sender"] is None
        assert payload["recipient"]["id"] == "bob"

    @pytest.mark.asyncio
    async def test_payload_is_json_ready(self):
        bus = AsyncMock()
        await NotificationFanout(bus).publish_created(response(Visibility.public))

        payload = bus.publish.await_args.args[1]
        assert payload["visibility"] == "PUBLIC"
        assert isinstance(payload["created_at"], str)

    @pytest.mark.asyncio
    async def test_bus_failure_raises_notification_error(self):
        bus = AsyncMock()
        bus.publish.side_effect = RuntimeError("bus down")

        with pytest.raises(NotificationError):
            await NotificationFanout(bus).publish_created(response())


class TestSubscriptions:

    @pytest.mark.asyncio
    async def test_recipient_receives_own_events(self, bus, fanout):
        subscription = fanout.subscribe_received("bob")
        await fanout.publish_created(response(Visibility.private))

        payload = await asyncio.wait_for(subscription.__anext__(), timeout=1)
        assert payload["id"] == "rec-1"
        subscription.close()

    @pytest.mark.asyncio
    async def test_other_users_receive_nothing(self, bus, fanout):
        subscription = fanout.subscribe_received("carol")
        await fanout.publish_created(response(Visibility.public))

        assert bus.subscriber_count(recipient_channel("carol")) == 1
        subscription.close()
        assert [payload async for payload in subscription] == []

    @pytest.mark.asyncio
    async def test_public_subscriber_sees_only_public(self, bus, fanout):
        subscription = fanout.subscribe_public()
        await fanout.publish_created(response(Visibility.private))
        await fanout.publish_created(response(Visibility.anonymous))
        await fanout.publish_created(response(Visibility.public))

        payload = await asyncio.wait_for(subscription.__anext__(), timeout=1)
        assert payload["visibility"] == "PUBLIC"
        subscription.close()

    @pytest.mark.asyncio
    async def test_misrouted_events_are_discarded_by_subscriber(self, bus, fanout):
        subscription = fanout.subscribe_received("bob")
        misrouted = response(Visibility.private, recipient_id="frank").model_dump(mode="json")
        await bus.publish(recipient_channel("bob"), misrouted)
        await fanout.publish_created(response(Visibility.private))

        payload = await asyncio.wait_for(subscription.__anext__(), timeout=1)
        assert payload["recipient"]["id"] == "bob"
        subscription.close()

    @pytest.mark.asyncio
    async def test_public_channel_discards_non_public_payloads(self, bus, fanout):
        subscription = fanout.subscribe_public()
        await bus.publish(RECOGNITION_CREATED_CHANNEL, {"id": "rec-9", "visibility": "PRIVATE"})
        subscription.close()

        assert [payload async for payload in subscription] == []

    @pytest.mark.asyncio
    async def test_close_unregisters(self, bus, fanout):
        async with fanout.subscribe_public() as subscription:
            assert bus.subscriber_count(RECOGNITION_CREATED_CHANNEL) == 1

        assert subscription.closed
        assert bus.subscriber_count(RECOGNITION_CREATED_CHANNEL) == 0
        assert await bus.publish(RECOGNITION_CREATED_CHANNEL, {"visibility": "PUBLIC"}) == 0


class TestInMemoryMessageBus:

    @pytest.mark.asyncio
    async def test_publish_without_subscribers(self):
        assert await InMemoryMessageBus().publish("nobody", {"id": "x"}) == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops_events(self):
        bus = InMemoryMessageBus(queue_size=2)
        subscription = bus.subscribe("channel")

        delivered = [await bus.publish("channel", {"n": n}) for n in range(3)]

        assert delivered == [1, 1, 0]
        subscription.close()
        assert [payload["n"] async for payload in subscription] == [0, 1]

    @pytest.mark.asyncio
    async def test_every_subscriber_gets_a_copy(self):
        bus = InMemoryMessageBus()
        first = bus.subscribe("channel")
        second = bus.subscribe("channel")

        assert await bus.publish("channel", {"n": 1}) == 2
        first.close()
        second.close()
        assert [p async for p in first] == [{"n": 1}]
        assert [p async for p in second] == [{"n": 1}]
