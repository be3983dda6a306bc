"""
Pytest configuration and shared fixtures for typhoon bot tests.
"""

import asyncio
import hashlib
import sys
from pathlib import Path
from typing import Any, Dict, List

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from typhoon_bot.config_models import BotConfig, NostrConfig, RelayConfig, ScheduleConfig
from typhoon_bot.interfaces import RelayInterface, RelayRejectedError, SignerInterface
from typhoon_bot.models import CycloneRecord, OutboundMessage, SignedMessage, Snapshot


BOT_PUBKEY = "b" * 64
# NIP-19 test vector
TEST_NSEC = "nsec1vl029mgpspedva04g90vltkh6fvh240zqtv9k0t9af8935ke9laqsnlfe5"


class FakeSigner(SignerInterface):
    """Deterministic signer: id is sha256 of the payload, signature is fixed."""

    def __init__(self, pubkey: str = BOT_PUBKEY, fail: bool = False):
        self.pubkey = pubkey
        self.fail = fail
        self.signed: List[SignedMessage] = []

    async def get_public_key(self) -> str:
        return self.pubkey

    async def sign(self, message: OutboundMessage) -> SignedMessage:
        if self.fail:
            raise RuntimeError("signer unavailable")
        digest = hashlib.sha256(
            f"{message.kind}:{message.created_at}:{message.tags}:{message.content}:{len(self.signed)}".encode()
        ).hexdigest()
        signed = SignedMessage(
            id=digest,
            pubkey=self.pubkey,
            created_at=message.created_at,
            kind=message.kind,
            tags=tuple(tuple(t) for t in message.tags),
            content=message.content,
            sig="c" * 128,
        )
        self.signed.append(signed)
        return signed


class FakeRelay(RelayInterface):
    """
    In-memory relay.

    behavior: "ok" acks after `delay`, "reject" answers OK=false, "hang" never
    answers, "error" fails to connect.
    """

    def __init__(self, url: str, behavior: str = "ok", delay: float = 0.0,
                 messages: List[Any] = None, end_stream: bool = True, close_delay: float = 0.0):
        self.url = url
        self.close_delay = close_delay
        self.behavior = behavior
        self.delay = delay
        self.messages = list(messages or [])
        self.end_stream = end_stream
        self.connect_calls = 0
        self.publish_calls = 0
        self.close_calls = 0
        self.published: List[SignedMessage] = []
        self.filters: List[Dict[str, Any]] = []

    async def connect(self) -> None:
        self.connect_calls += 1
        if self.behavior == "error":
            raise ConnectionError("connection refused")

    async def publish(self, message: SignedMessage) -> str:
        self.publish_calls += 1
        if self.behavior == "hang":
            await asyncio.Event().wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.behavior == "reject":
            raise RelayRejectedError(self.url, "blocked: spam")
        self.published.append(message)
        return ""

    async def subscribe(self, filters):
        self.filters = list(filters)
        for raw in self.messages:
            await asyncio.sleep(0)
            yield raw
        if not self.end_stream:
            await asyncio.Event().wait()

    async def close(self) -> None:
        self.close_calls += 1
        if self.close_delay:
            await asyncio.sleep(self.close_delay)


class RelayPool:
    """Relay factory that hands out preconfigured FakeRelays and remembers them."""

    def __init__(self, **behaviors: Dict[str, Any]):
        self.behaviors = behaviors
        self.opened: List[FakeRelay] = []

    def __call__(self, url: str) -> FakeRelay:
        relay = FakeRelay(url, **self.behaviors.get(url, {}))
        self.opened.append(relay)
        return relay

    def opened_for(self, url: str) -> List[FakeRelay]:
        return [r for r in self.opened if r.url == url]


def make_specs(issue_jst: str, typhoon_number: str = "2410", named: bool = True) -> List[Dict[str, Any]]:
    """A JMA specifications.json payload with one current body."""
    header = {
        "category": {"jp": "台風", "en": "TY"},
        "typhoonNumber": typhoon_number,
        "issue": {"JST": issue_jst},
    }
    if named:
        header["name"] = {"jp": "サンサン", "en": "Shanshan"}
    body = {
        "validtime": {"JST": issue_jst},
        "intensity": "強い",
        "location": "屋久島の南西約90km",
        "position": {"deg": [29.9, 129.9]},
        "course": "北北西",
        "speed": {"km/h": "15"},
        "pressure": "950",
        "maximumWind": {"sustained": {"m/s": "40"}, "gust": {"m/s": "60"}},
    }
    return [header, body]


def make_snapshot(*issue_times: str) -> Snapshot:
    records = tuple(
        CycloneRecord.from_specs(f"TC24{i:02d}", make_specs(t, f"24{i:02d}"))
        for i, t in enumerate(issue_times, start=1)
    )
    return Snapshot(records=records)


@pytest.fixture
def fake_signer():
    return FakeSigner()


@pytest.fixture
def bot_config():
    """Configuration with fast timeouts and an immediate launch post disabled."""
    return BotConfig(
        nostr=NostrConfig(secret_key=TEST_NSEC),
        relays=RelayConfig(
            read_relays=["wss://read-1.example", "wss://read-2.example"],
            write_relays=["wss://write-1.example", "wss://write-2.example", "wss://write-3.example"],
            publish_timeout=0.5,
        ),
        schedule=ScheduleConfig(post_on_launch=False),
    )
