"""
Tests for the event dispatcher.

Covers every event kind, sender resolution and the handling of malformed
or unknown frames.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest

from chat_relay.dispatcher import EventDispatcher, unix_millis
from tests.mocks.websocket_mocks import (
    create_mock_connection_manager,
    sent_frames,
)


def frame(message_type: str, data) -> str:
    return json.dumps({"messageType": message_type, "data": data})


async def handle(dispatcher: EventDispatcher, websocket, raw) -> None:
    """Handle a frame and wait until its broadcast has been sent."""
    await dispatcher.handle_frame(websocket, raw)
    await dispatcher.connections.drain()


class TestRegister:
    """Tests for register events."""

    @pytest.mark.asyncio
    async def test_register_broadcasts_users(self, dispatcher, connect):
        ws_a = connect("a")

        await handle(dispatcher, ws_a, frame("register", "alice"))

        assert sent_frames(ws_a) == [
            {"messageType": "users", "dataArray": ["alice"]}
        ]

    @pytest.mark.asyncio
    async def test_users_lists_all_registrations_in_order(
        self, dispatcher, connect
    ):
        """Test the Nth users broadcast lists the N nicknames in order."""
        nicknames = ["alice", "bob", "alice", "dave"]
        sockets = [connect(str(i)) for i in range(len(nicknames))]

        for n, (ws, nickname) in enumerate(zip(sockets, nicknames), start=1):
            await handle(dispatcher, ws, frame("register", nickname))

            last = sent_frames(sockets[0])[-1]
            assert last == {
                "messageType": "users",
                "dataArray": nicknames[:n],
            }

    @pytest.mark.asyncio
    async def test_unregistered_connection_receives_users(
        self, dispatcher, connect
    ):
        """Test broadcasts also reach connections that never registered."""
        ws_a = connect("a")
        ws_lurker = connect("lurker")

        await handle(dispatcher, ws_a, frame("register", "alice"))

        assert sent_frames(ws_lurker) == [
            {"messageType": "users", "dataArray": ["alice"]}
        ]

    @pytest.mark.asyncio
    async def test_register_twice_renames(self, dispatcher, registry, connect):
        ws_a = connect("a")
        ws_b = connect("b")
        await handle(dispatcher, ws_a, frame("register", "alice"))
        await handle(dispatcher, ws_b, frame("register", "bob"))

        await handle(dispatcher, ws_a, frame("register", "alicia"))

        assert registry.current_nicknames() == ["alicia", "bob"]
        assert sent_frames(ws_b)[-1]["dataArray"] == ["alicia", "bob"]


class TestMessage:
    """Tests for message events."""

    @pytest.mark.asyncio
    async def test_message_from_registered_sender(
        self, dispatcher, connect, clock
    ):
        ws_a = connect("a")
        ws_b = connect("b")
        await handle(dispatcher, ws_a, frame("register", "alice"))
        await handle(dispatcher, ws_b, frame("register", "bob"))

        await handle(dispatcher, ws_a, frame("message", "hi"))

        for ws in (ws_a, ws_b):
            last = sent_frames(ws)[-1]
            assert last["messageType"] == "message"
            assert json.loads(last["data"]) == {
                "from": "alice",
                "message": "hi",
                "time": clock.now,
            }

    @pytest.mark.asyncio
    async def test_message_uses_latest_nickname(self, dispatcher, connect):
        ws_a = connect("a")
        await handle(dispatcher, ws_a, frame("register", "alice"))
        await handle(dispatcher, ws_a, frame("register", "alicia"))

        await handle(dispatcher, ws_a, frame("message", "hi"))

        payload = json.loads(sent_frames(ws_a)[-1]["data"])
        assert payload["from"] == "alicia"

    @pytest.mark.asyncio
    async def test_message_from_unregistered_sender_dropped(
        self, dispatcher, connect
    ):
        ws_a = connect("a")

        await handle(dispatcher, ws_a, frame("message", "hi"))

        ws_a.send_text.assert_not_called()

    @pytest.mark.asyncio
    async def test_message_time_is_non_decreasing(
        self, dispatcher, connect, clock
    ):
        """Test a wall clock stepping backwards never reorders times."""
        ws_a = connect("a")
        ws_b = connect("b")
        await handle(dispatcher, ws_a, frame("register", "alice"))
        await handle(dispatcher, ws_b, frame("register", "bob"))

        times = []
        for ws, now in [(ws_a, 1000), (ws_b, 900), (ws_a, 1500)]:
            clock.now = now
            await handle(dispatcher, ws, frame("message", "x"))
            times.append(json.loads(sent_frames(ws_a)[-1]["data"])["time"])

        assert times == [1000, 1000, 1500]


class TestReactionAndReadReceipt:
    """Tests for reaction and readReceipt events."""

    @pytest.mark.asyncio
    async def test_reaction_from_registered_sender(self, dispatcher, connect):
        ws_a = connect("a")
        await handle(dispatcher, ws_a, frame("register", "alice"))

        await handle(dispatcher, 
            ws_a, frame("reaction", json.dumps([0, "👍"]))
        )

        last = sent_frames(ws_a)[-1]
        assert last["messageType"] == "reaction"
        assert json.loads(last["data"]) == {
            "messageIndex": 0,
            "emoji": "👍",
            "from": "alice",
        }

    @pytest.mark.asyncio
    async def test_reaction_from_unregistered_sender_has_null_from(
        self, dispatcher, connect
    ):
        ws_a = connect("a")

        await handle(dispatcher, 
            ws_a, frame("reaction", json.dumps([5, "❤"]))
        )

        last = sent_frames(ws_a)[-1]
        assert json.loads(last["data"]) == {
            "messageIndex": 5,
            "emoji": "❤",
            "from": None,
        }

    @pytest.mark.asyncio
    async def test_read_receipt_from_registered_sender(
        self, dispatcher, connect
    ):
        ws_a = connect("a")
        ws_b = connect("b")
        await handle(dispatcher, ws_a, frame("register", "alice"))

        await handle(dispatcher, ws_a, frame("readReceipt", 3))

        last = sent_frames(ws_b)[-1]
        assert last["messageType"] == "readReceipt"
        assert json.loads(last["data"]) == {"messageIndex": 3, "user": "alice"}

    @pytest.mark.asyncio
    async def test_read_receipt_from_unregistered_sender_has_null_user(
        self, dispatcher, connect
    ):
        ws_a = connect("a")

        await handle(dispatcher, ws_a, frame("readReceipt", "3"))

        last = sent_frames(ws_a)[-1]
        assert json.loads(last["data"]) == {"messageIndex": "3", "user": None}


class TestBadFrames:
    """Tests for frames that must be dropped without a broadcast."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "raw",
        [
            '{"messageType":"register","da',
            b"\xc3\x28",
            '{"messageType":"reaction","data":"[1"}',
            '{"messageType":"typing","data":"x"}',
            '{"messageType":"users","data":"x"}',
        ],
    )
    async def test_bad_frame_dropped(self, dispatcher, connect, raw):
        ws_a = connect("a")

        await handle(dispatcher, ws_a, raw)

        ws_a.send_text.assert_not_called()
        ws_a.close.assert_not_called()

    @pytest.mark.asyncio
    async def test_next_valid_frame_processed(self, dispatcher, connect):
        ws_a = connect("a")

        await handle(dispatcher, ws_a, '{"messageType":')
        await handle(dispatcher, ws_a, frame("register", "alice"))

        assert sent_frames(ws_a) == [
            {"messageType": "users", "dataArray": ["alice"]}
        ]


class TestDispatcherWiring:
    """Tests for dispatcher construction."""

    def test_announce_users_uses_registry(self, registry):
        manager = create_mock_connection_manager()
        dispatcher = EventDispatcher(registry, manager)

        dispatcher.announce_users()

        manager.broadcast.assert_called_once()
        envelope = manager.broadcast.call_args.args[0]
        assert envelope.data_array == []

    def test_unix_millis(self):
        assert unix_millis() > 1_600_000_000_000


class TestSlowPeers:
    """Tests that a stuck recipient never holds up the sender."""

    @pytest.mark.asyncio
    async def test_hung_peer_does_not_block_handle_frame(
        self, dispatcher, connection_manager, connect
    ):
        ws_a = connect("a")
        ws_slow = connect("slow")
        release = asyncio.Event()

        async def hang(text):
            await release.wait()

        ws_slow.send_text = AsyncMock(side_effect=hang)

        task = asyncio.create_task(
            dispatcher.handle_frame(ws_a, frame("register", "alice"))
        )
        await asyncio.sleep(0.05)

        assert task.done()
        assert sent_frames(ws_a) == [
            {"messageType": "users", "dataArray": ["alice"]}
        ]

        await dispatcher.handle_frame(ws_a, frame("message", "hi"))
        await asyncio.sleep(0.05)
        assert sent_frames(ws_a)[-1]["messageType"] == "message"

        release.set()
        await connection_manager.drain()

        assert [f["messageType"] for f in sent_frames(ws_slow)] == [
            "users",
            "message",
        ]
