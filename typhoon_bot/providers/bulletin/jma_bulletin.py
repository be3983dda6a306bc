"""
JMA typhoon JSON API bulletin source.
"""

import asyncio
from typing import Any, Dict, List, Optional

import aiohttp

from ...interfaces.bulletin_source import BulletinFetchError, BulletinSourceInterface
from ...models.data_models import CycloneRecord, Snapshot
from ...utils.logging_config import get_logger


logger = get_logger("jma")

DEFAULT_BASE_URL = "https://www.jma.go.jp/bosai/typhoon/data"


class JmaBulletinSource(BulletinSourceInterface):
    """Fetches `targetTc.json` and every cyclone's `specifications.json`."""

    def __init__(self, config: Dict[str, Any]):
        """
        Args:
            config: Configuration dictionary containing:
                - base_url: JMA typhoon data base URL
                - request_timeout: Seconds allowed for each HTTP request
        """
        self.base_url = config.get('base_url', DEFAULT_BASE_URL).rstrip('/')
        self.request_timeout = config.get('request_timeout', 30)
        self._session: Optional[aiohttp.ClientSession] = None

    async def initialize(self) -> bool:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.request_timeout)
            )
        return True

    async def _get_json(self, url: str) -> Any:
        if self._session is None or self._session.closed:
            await self.initialize()
        try:
            async with self._session.get(url) as resp:
                resp.raise_for_status()
                return await resp.json(content_type=None)
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            raise BulletinFetchError(f"failed to fetch {url}: {e}") from e

    async def fetch_target_cyclones(self) -> List[Dict[str, str]]:
        """Currently tracked cyclones, sorted by id."""
        targets = await self._get_json(f"{self.base_url}/targetTc.json")
        if not isinstance(targets, list):
            raise BulletinFetchError("targetTc.json is not a list")
        try:
            return sorted(targets, key=lambda tc: tc["tropicalCyclone"])
        except (KeyError, TypeError) as e:
            raise BulletinFetchError(f"malformed targetTc.json entry: {e}") from e

    async def fetch_specifications(self, tc_id: str) -> CycloneRecord:
        specs = await self._get_json(f"{self.base_url}/{tc_id}/specifications.json")
        try:
            return CycloneRecord.from_specs(tc_id, specs)
        except (ValueError, TypeError, AttributeError) as e:
            raise BulletinFetchError(f"malformed specifications for {tc_id}: {e}") from e

    async def fetch_snapshot(self) -> Snapshot:
        targets = await self.fetch_target_cyclones()
        if not targets:
            return Snapshot.empty()

        records = await asyncio.gather(
            *[self.fetch_specifications(tc["tropicalCyclone"]) for tc in targets]
        )
        snapshot = Snapshot(records=tuple(records))
        logger.debug(f"Fetched {len(records)} cyclones, latest issue {snapshot.max_issue_time}")
        return snapshot

    async def cleanup(self) -> None:
        if self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None
