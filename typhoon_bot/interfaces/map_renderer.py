"""
Abstract interface for cyclone map image renderers.
"""

from abc import ABC, abstractmethod
from typing import Tuple


class MapGenerationError(Exception):
    """The renderer failed to produce a map image."""


class MapRendererInterface(ABC):
    """Abstract base class for map renderers."""

    @abstractmethod
    async def render(self, typhoon_number: str, validtime: str, lat_lng: Tuple[float, float]) -> str:
        """
        Render a map of the cyclone position.

        Args:
            typhoon_number: JMA typhoon number (e.g. "TC2410")
            validtime: Validity time of the position (JST, ISO 8601)
            lat_lng: Cyclone center in degrees

        Returns:
            Public URL of the rendered image

        Raises:
            MapGenerationError: If rendering fails
        """
        pass

    @abstractmethod
    async def cleanup(self) -> None:
        """Clean up resources used by the renderer."""
        pass
