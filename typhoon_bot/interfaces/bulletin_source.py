"""
Abstract interface for upstream cyclone bulletin sources.
"""

from abc import ABC, abstractmethod
from ..models.data_models import Snapshot


class BulletinFetchError(Exception):
    """The upstream data source was unreachable or returned malformed data."""


class BulletinSourceInterface(ABC):
    """Abstract base class for bulletin sources."""

    @abstractmethod
    async def initialize(self) -> bool:
        """
        Prepare HTTP sessions or other resources.

        Returns:
            bool: True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    async def fetch_snapshot(self) -> Snapshot:
        """
        Fetch every currently tracked cyclone.

        Returns:
            Snapshot: Possibly empty aggregate of the current bulletins

        Raises:
            BulletinFetchError: If the source is unreachable or malformed
        """
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources used by the source."""
        pass
