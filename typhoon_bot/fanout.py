"""
Concurrent publish of one signed message to many independent relays.
"""

import asyncio
from typing import List, Optional, Sequence

from .interfaces.relay import RelayFactory, RelayInterface, RelayRejectedError
from .models.data_models import DeliveryResult, DeliveryStatus, SignedMessage
from .utils.logging_config import get_logger


logger = get_logger("fanout")


class PublishFanout:
    """
    Scatter/gather publisher.

    Every relay gets its own connection, its own publish and its own timeout.
    A slow or failing relay never affects the others, and `publish` returns
    only after every relay has settled. Failures are reported through the
    returned results, never raised.
    """

    def __init__(self, relay_factory: RelayFactory, default_timeout: float = 5.0,
                 close_timeout: float = 0.5):
        """
        Args:
            relay_factory: `open(url)` callable returning an unconnected relay
            default_timeout: Per-relay timeout used when none is given
            close_timeout: Upper bound on closing one relay after its outcome is known
        """
        self._open_relay = relay_factory
        self.default_timeout = default_timeout
        self.close_timeout = close_timeout

    async def publish(
        self,
        message: SignedMessage,
        relay_urls: Sequence[str],
        timeout: Optional[float] = None,
    ) -> List[DeliveryResult]:
        """
        Publish `message` to every relay concurrently.

        Args:
            message: Signed message to deliver
            relay_urls: Destination relays
            timeout: Per-relay bound covering connect and publish

        Returns:
            One DeliveryResult per relay, in the order of `relay_urls`
        """
        timeout = self.default_timeout if timeout is None else timeout
        log = logger.bind(event_id=message.id)
        log.info(f"📡 Publishing to {len(relay_urls)} relays...")

        results = await asyncio.gather(
            *[self._deliver(url, message, timeout) for url in relay_urls]
        )

        ok_count = sum(1 for r in results if r.ok)
        log.info(f"{ok_count}/{len(results)} relays accepted")
        return list(results)

    async def _deliver(self, relay_url: str, message: SignedMessage, timeout: float) -> DeliveryResult:
        """Open, publish and close one relay; every outcome becomes a result."""
        log = logger.bind(relay_url=relay_url, event_id=message.id)
        relay = None
        try:
            relay = self._open_relay(relay_url)
            ack = await asyncio.wait_for(self._connect_and_publish(relay, message), timeout=timeout)
            log.debug(f"accepted {ack}".rstrip())
            result = DeliveryResult(relay_url, DeliveryStatus.OK)
        except asyncio.TimeoutError:
            log.error(f"publish timed out after {timeout}s")
            result = DeliveryResult(relay_url, DeliveryStatus.TIMED_OUT)
        except RelayRejectedError as e:
            log.error(f"rejected: {e.reason}")
            result = DeliveryResult(relay_url, DeliveryStatus.REJECTED, e.reason)
        except Exception as e:
            log.error(f"publish failed: {e}")
            result = DeliveryResult(relay_url, DeliveryStatus.REJECTED, str(e) or type(e).__name__)
        finally:
            if relay is not None:
                await self._close_bounded(relay, log)
        return result

    async def _close_bounded(self, relay: RelayInterface, log) -> None:
        # a peer that went silent may never finish the close handshake
        try:
            await asyncio.wait_for(relay.close(), timeout=self.close_timeout)
        except asyncio.TimeoutError:
            log.warning(f"close did not finish within {self.close_timeout}s, dropped")
        except Exception as e:
            log.warning(f"error while closing: {e}")

    @staticmethod
    async def _connect_and_publish(relay: RelayInterface, message: SignedMessage) -> str:
        await relay.connect()
        return await relay.publish(message)
