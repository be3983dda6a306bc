"""
Tests for the network providers with the transport mocked out.
"""

import asyncio
import json
import time
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from conftest import make_specs
from typhoon_bot.interfaces import BulletinFetchError, RelayError, RelayRejectedError
from typhoon_bot.models import SignedMessage
from typhoon_bot.providers.bulletin import JmaBulletinSource
from typhoon_bot.providers.genmap import GenmapClient
from typhoon_bot.providers.relay import WebSocketRelay


EVENT_ID = "a" * 64


def text(frame):
    return SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data=json.dumps(frame))


class FakeWebSocket:
    """Replays queued frames, then reports a closed socket."""

    def __init__(self, frames):
        self.frames = list(frames)
        self.sent = []
        self.closed = False

    async def send_str(self, data):
        self.sent.append(json.loads(data))

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self.frames:
            raise StopAsyncIteration
        return self.frames.pop(0)

    async def close(self):
        self.closed = True


def make_message():
    return SignedMessage(
        id=EVENT_ID, pubkey="b" * 64, created_at=1722474000, kind=1,
        tags=(), content="台風", sig="c" * 128,
    )


def attach(relay, frames):
    ws = FakeWebSocket(frames)
    relay._ws = ws
    return ws


class TestWebSocketRelay:

    @pytest.mark.asyncio
    async def test_publish_waits_for_matching_ok(self):
        relay = WebSocketRelay("wss://relay.example")
        ws = attach(relay, [
            text(["NOTICE", "hello"]),
            text(["OK", "f" * 64, True, ""]),
            SimpleNamespace(type=aiohttp.WSMsgType.TEXT, data="not json"),
            text(["OK", EVENT_ID, True, "duplicate: already have it"]),
        ])

        reason = await relay.publish(make_message())

        assert reason == "duplicate: already have it"
        assert ws.sent[0][0] == "EVENT"
        assert ws.sent[0][1]["id"] == EVENT_ID

    @pytest.mark.asyncio
    async def test_publish_rejected(self):
        relay = WebSocketRelay("wss://relay.example")
        attach(relay, [text(["OK", EVENT_ID, False, "blocked: not allowed"])])

        with pytest.raises(RelayRejectedError) as exc_info:
            await relay.publish(make_message())

        assert exc_info.value.reason == "blocked: not allowed"

    @pytest.mark.asyncio
    async def test_publish_closed_before_ok(self):
        relay = WebSocketRelay("wss://relay.example")
        attach(relay, [])

        with pytest.raises(RelayError):
            await relay.publish(make_message())

    @pytest.mark.asyncio
    async def test_publish_without_connection(self):
        with pytest.raises(RelayError):
            await WebSocketRelay("wss://relay.example").publish(make_message())

    @pytest.mark.asyncio
    async def test_subscribe_sends_req_and_close(self):
        relay = WebSocketRelay("wss://relay.example")
        event_frame = ["EVENT", "x", {"id": EVENT_ID}]
        ws = attach(relay, [text(event_frame), text(["EOSE", "x"])])

        frames = [f async for f in relay.subscribe([{"kinds": [1]}])]

        assert frames == [event_frame, ["EOSE", "x"]]
        assert ws.sent[0][0] == "REQ"
        assert ws.sent[0][2] == {"kinds": [1]}
        assert ws.sent[-1] == ["CLOSE", ws.sent[0][1]]

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self):
        relay = WebSocketRelay("wss://relay.example")
        ws = attach(relay, [])

        await relay.close()
        await relay.close()

        assert ws.closed
        assert not relay.is_connected

    @pytest.mark.asyncio
    async def test_close_gives_up_on_silent_peer(self):
        relay = WebSocketRelay("wss://relay.example", close_timeout=0.05)
        ws = attach(relay, [])

        async def never_closes():
            await asyncio.Event().wait()

        ws.close = never_closes
        session = MagicMock(closed=False)
        session.close = AsyncMock()
        relay._session = session

        started = time.monotonic()
        await relay.close()

        assert time.monotonic() - started < 0.5
        session.close.assert_awaited_once()


class TestJmaBulletinSource:

    @pytest.mark.asyncio
    async def test_snapshot_from_targets(self):
        source = JmaBulletinSource({'base_url': "https://jma.example/data/"})
        payloads = {
            "https://jma.example/data/targetTc.json": [
                {"tropicalCyclone": "TC2411"}, {"tropicalCyclone": "TC2410"},
            ],
            "https://jma.example/data/TC2410/specifications.json": make_specs("2024-08-29T09:00:00+09:00", "2410"),
            "https://jma.example/data/TC2411/specifications.json": make_specs("2024-08-29T12:00:00+09:00", "2411"),
        }

        with patch.object(source, '_get_json', AsyncMock(side_effect=lambda url: payloads[url])):
            snapshot = await source.fetch_snapshot()

        assert [r.tc_id for r in snapshot.records] == ["TC2410", "TC2411"]
        assert snapshot.max_issue_time == "2024-08-29T12:00:00+09:00"

    @pytest.mark.asyncio
    async def test_no_targets_gives_empty_snapshot(self):
        source = JmaBulletinSource({})
        with patch.object(source, '_get_json', AsyncMock(return_value=[])):
            snapshot = await source.fetch_snapshot()
        assert snapshot.is_empty

    @pytest.mark.asyncio
    async def test_malformed_specifications(self):
        source = JmaBulletinSource({})
        payloads = [[{"tropicalCyclone": "TC2410"}], [{"unexpected": True}]]
        with patch.object(source, '_get_json', AsyncMock(side_effect=payloads)):
            with pytest.raises(BulletinFetchError):
                await source.fetch_snapshot()


class TestGenmapClient:

    def test_requires_base_url(self):
        with pytest.raises(ValueError):
            GenmapClient({'base_url': None})

    def test_endpoint(self):
        assert GenmapClient({'base_url': "https://genmap.example/"}).endpoint == "https://genmap.example/genmap"
