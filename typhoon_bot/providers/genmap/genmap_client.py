"""
Client for the map image generation service.
"""

import asyncio
from typing import Any, Dict, Optional, Tuple

import aiohttp

from ...interfaces.map_renderer import MapGenerationError, MapRendererInterface


class GenmapClient(MapRendererInterface):
    """POSTs a cyclone position to `<base_url>/genmap` and returns the image URL."""

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: Configuration dictionary containing:
                - base_url: Service base URL
                - request_timeout: Seconds allowed per request
        """
        base_url = config.get('base_url')
        if not base_url:
            raise ValueError("genmap base URL is required")
        self.endpoint = f"{base_url.rstrip('/')}/genmap"
        self.request_timeout = config.get('request_timeout', 60)
        self._session: Optional[aiohttp.ClientSession] = None

    async def render(self, typhoon_number: str, validtime: str, lat_lng: Tuple[float, float]) -> str:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )

        body = {
            "typhoonNumber": typhoon_number,
            "validtime": validtime,
            "latLng": list(lat_lng),
        }
        try:
            async with self._session.post(self.endpoint, json=body) as resp:
                if resp.status >= 400:
                    raise MapGenerationError(f"genmap returned HTTP {resp.status}")
                data = await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise MapGenerationError(f"failed to generate map image: {e}") from e

        url = data.get("url") if isinstance(data, dict) else None
        if not url:
            raise MapGenerationError("genmap response has no url")
        return url

    async def cleanup(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
