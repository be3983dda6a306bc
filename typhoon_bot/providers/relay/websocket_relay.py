"""
NIP-01 relay client over aiohttp websockets.
"""

import asyncio
import json
import uuid
from typing import Any, AsyncIterator, Dict, List, Optional

import aiohttp

from ...interfaces.relay import RelayError, RelayInterface, RelayRejectedError
from ...models.data_models import SignedMessage
from ...utils.logging_config import get_logger


logger = get_logger("relay")


class WebSocketRelay(RelayInterface):
    """
    One websocket connection to one relay.

    The relay owns its aiohttp session unless one is passed in, and `close`
    releases both the websocket and an owned session.
    """

    def __init__(self, url: str, session: Optional[aiohttp.ClientSession] = None,
                 connect_timeout: float = 10.0, close_timeout: float = 1.0, heartbeat: float = 20.0):
        self.url = url
        self._session = session
        self._owns_session = session is None
        self._connect_timeout = connect_timeout
        self._close_timeout = close_timeout
        self._log = logger.bind(relay_url=url)
        self._heartbeat = heartbeat
        self._ws: Optional[aiohttp.ClientWebSocketResponse] = None

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and not self._ws.closed

    async def connect(self) -> None:
        if self.is_connected:
            return
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None, connect=self._connect_timeout)
            )
            self._owns_session = True
        try:
            self._ws = await self._session.ws_connect(
                self.url,
                heartbeat=self._heartbeat,
            )
        except aiohttp.ClientError as e:
            raise RelayError(self.url, f"connection failed: {e}") from e

    async def _send(self, frame: List[Any]) -> None:
        if not self.is_connected:
            raise RelayError(self.url, "not connected")
        await self._ws.send_str(json.dumps(frame, ensure_ascii=False))

    async def _receive(self) -> AsyncIterator[Any]:
        """Yield decoded JSON frames until the socket closes."""
        async for msg in self._ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                try:
                    yield json.loads(msg.data)
                except json.JSONDecodeError:
                    self._log.debug("dropped non-JSON frame")
                    continue
            elif msg.type in (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSED, aiohttp.WSMsgType.ERROR):
                break

    async def publish(self, message: SignedMessage) -> str:
        await self._send(["EVENT", message.to_dict()])

        async for frame in self._receive():
            if not isinstance(frame, list) or not frame:
                continue
            if frame[0] == "OK" and len(frame) >= 3 and frame[1] == message.id:
                reason = frame[3] if len(frame) > 3 and isinstance(frame[3], str) else ""
                if frame[2] is True:
                    return reason
                raise RelayRejectedError(self.url, reason or "no reason given")
            if frame[0] == "NOTICE" and len(frame) > 1:
                self._log.info(f"NOTICE: {frame[1]}")

        raise RelayError(self.url, "connection closed before OK")

    async def subscribe(self, filters: List[Dict[str, Any]]) -> AsyncIterator[Any]:
        sub_id = uuid.uuid4().hex[:16]
        await self._send(["REQ", sub_id, *filters])
        try:
            async for frame in self._receive():
                if isinstance(frame, list) and frame and frame[0] == "CLOSED" and len(frame) > 1 and frame[1] == sub_id:
                    self._log.warning(f"subscription closed by relay: {frame[2:] or ''}")
                    break
                yield frame
        finally:
            if self.is_connected:
                try:
                    await self._send(["CLOSE", sub_id])
                except (RelayError, ConnectionError, RuntimeError):
                    # socket may already be gone
                    pass

    async def close(self) -> None:
        ws, self._ws = self._ws, None
        try:
            if ws is not None and not ws.closed:
                try:
                    await asyncio.wait_for(ws.close(), timeout=self._close_timeout)
                except (asyncio.TimeoutError, aiohttp.ClientError):
                    self._log.debug("websocket close did not complete cleanly")
        finally:
            # the session goes even when the caller cancels the close
            session = self._session if self._owns_session else None
            if self._owns_session:
                self._session = None
            if session is not None and not session.closed:
                await session.close()


def open_relay(url: str) -> WebSocketRelay:
    """Relay factory: `open(url) -> Endpoint`."""
    return WebSocketRelay(url)
