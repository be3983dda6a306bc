"""
Response watcher: answers "where is the typhoon?" posts with a pointer to the
latest announcement.
"""

import asyncio
import re
import time
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from .fanout import PublishFanout
from .interfaces.relay import RelayFactory
from .interfaces.signer import SignerInterface
from .models.data_models import KIND_TEXT_NOTE, AnnouncementState, OutboundMessage, SignedMessage
from .utils.logging_config import get_logger
from .utils.nip19 import encode_nevent
from .utils.seen_ids import SeenIdSet


logger = get_logger("responder")


HEX32 = re.compile(r"[0-9a-f]{64}")
HEX64 = re.compile(r"[0-9a-f]{128}")


class InboundEvent(BaseModel):
    """A well-formed event as delivered inside a relay `EVENT` message."""
    model_config = ConfigDict(strict=True)

    id: str
    pubkey: str
    created_at: int
    kind: int
    tags: List[List[str]]
    content: str
    sig: str

    @field_validator('id', 'pubkey')
    @classmethod
    def validate_hex32(cls, v):
        if not HEX32.fullmatch(v):
            raise ValueError("must be 32 bytes of lowercase hex")
        return v

    @field_validator('sig')
    @classmethod
    def validate_sig(cls, v):
        if not HEX64.fullmatch(v):
            raise ValueError("must be 64 bytes of lowercase hex")
        return v


def parse_relay_event(raw: Any) -> Optional[InboundEvent]:
    """
    Extract the event from a raw `["EVENT", <sub id>, <event>]` relay message.

    Returns:
        The event, or None for anything else (EOSE, NOTICE, malformed frames)
    """
    if not isinstance(raw, (list, tuple)) or len(raw) != 3:
        return None
    if raw[0] != "EVENT" or not isinstance(raw[1], str) or not isinstance(raw[2], dict):
        return None
    try:
        return InboundEvent.model_validate(raw[2])
    except ValidationError:
        return None


@dataclass(frozen=True)
class QueryMatcher:
    """Content heuristic deciding whether a post asks for the typhoon position."""
    required: Tuple[str, ...]
    markers: Tuple[str, ...]

    def matches(self, content: str) -> bool:
        return (
            all(word in content for word in self.required)
            and any(mark in content for mark in self.markers)
        )


async def merge_subscriptions(
    relay_factory: RelayFactory,
    relay_urls: Sequence[str],
    filters: List[Dict[str, Any]],
) -> AsyncIterator[Tuple[str, Any]]:
    """
    Subscribe to every relay and yield `(relay_url, raw_message)` as they arrive.

    Each relay is pumped by its own task into one queue. A relay whose stream
    fails is logged and dropped; the merged stream ends once all pumps end.
    """
    queue: asyncio.Queue = asyncio.Queue()
    done = object()

    async def pump(url: str):
        log = logger.bind(relay_url=url)
        relay = relay_factory(url)
        try:
            await relay.connect()
            log.info("subscribed")
            async for raw in relay.subscribe(filters):
                await queue.put((url, raw))
            log.warning("subscription ended")
        except asyncio.CancelledError:
            raise
        except Exception as e:
            log.error(f"subscription failed: {e}")
        finally:
            try:
                await relay.close()
            except Exception as e:
                log.warning(f"error while closing: {e}")
            await queue.put((url, done))

    tasks = [asyncio.create_task(pump(url)) for url in relay_urls]
    remaining = len(tasks)
    try:
        while remaining:
            url, raw = await queue.get()
            if raw is done:
                remaining -= 1
                continue
            yield url, raw
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


class ResponseWatcher:
    """
    Long-lived consumer of public posts from the read relays.

    Each event id is handled at most once no matter how many relays deliver
    it. Matching posts get a reply that mentions the latest announcement.
    """

    def __init__(
        self,
        signer: SignerInterface,
        fanout: PublishFanout,
        relay_factory: RelayFactory,
        read_relays: Sequence[str],
        write_relays: Sequence[str],
        state: AnnouncementState,
        matcher: QueryMatcher,
        publish_timeout: float = 5.0,
        no_announcement_reply: str = "",
        seen: Optional[SeenIdSet] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.signer = signer
        self.fanout = fanout
        self.relay_factory = relay_factory
        self.read_relays = list(read_relays)
        self.write_relays = list(write_relays)
        self.state = state
        self.matcher = matcher
        self.publish_timeout = publish_timeout
        self.no_announcement_reply = no_announcement_reply
        self.seen = seen if seen is not None else SeenIdSet()
        self._clock = clock
        self._bot_pubkey: Optional[str] = None

    def _now(self) -> int:
        return int(self._clock())

    async def run(self) -> None:
        """Consume the read relays until the merged stream ends."""
        self._bot_pubkey = await self.signer.get_public_key()
        filters = [{"kinds": [KIND_TEXT_NOTE], "since": self._now()}]
        logger.info(f"👂 Watching {len(self.read_relays)} relays for queries")

        try:
            async for relay_url, raw in merge_subscriptions(self.relay_factory, self.read_relays, filters):
                await self.handle_message(raw, relay_url)
        except asyncio.CancelledError:
            logger.info("Response watcher stopped")
            raise
        except Exception as e:
            logger.exception(f"Subscription stream failed: {e}")
            return
        logger.error("Subscription stream terminated; restart the process to resume replies")

    async def handle_message(self, raw: Any, relay_url: str = "") -> Optional[SignedMessage]:
        """
        Process one raw relay message.

        Returns:
            The published reply, or None if the message was ignored
        """
        event = parse_relay_event(raw)
        if event is None:
            return None

        if not self.seen.add_if_new(event.id, event.created_at):
            return None

        log = logger.bind(relay_url=relay_url or None, event_id=event.id)
        try:
            if self._bot_pubkey is None:
                self._bot_pubkey = await self.signer.get_public_key()
            if not self.is_query(event):
                return None

            log.info(f"Received query from {event.pubkey}")
            reply = self.build_reply(event)
            signed = await self.signer.sign(reply)
            await self.fanout.publish(signed, self.write_relays, self.publish_timeout)
            return signed
        except Exception as e:
            log.exception(f"Failed to answer query: {e}")
            return None

    def is_query(self, event: InboundEvent) -> bool:
        return event.pubkey != self._bot_pubkey and self.matcher.matches(event.content)

    def build_reply(self, event: InboundEvent) -> OutboundMessage:
        """Compose a threaded reply to `event`."""
        tags = [
            ["p", event.pubkey, ""],
            ["e", event.id, "", "root", event.pubkey],
        ]
        latest_id = self.state.last_message_id
        if latest_id:
            nevent = encode_nevent(latest_id, author=self._bot_pubkey, kind=KIND_TEXT_NOTE)
            content = f"nostr:{nevent}"
            tags.append(["e", latest_id, "", "mention", self._bot_pubkey])
        else:
            content = self.no_announcement_reply

        return OutboundMessage(
            kind=KIND_TEXT_NOTE,
            content=content,
            created_at=max(self._now(), event.created_at + 1),
            tags=tags,
        )
