"""
Abstract interface for relay endpoints.
"""

from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, Callable, Dict, List

from ..models.data_models import SignedMessage


class RelayError(Exception):
    """A relay could not be reached or broke the protocol."""

    def __init__(self, relay_url: str, message: str):
        super().__init__(f"[{relay_url}] {message}")
        self.relay_url = relay_url


class RelayRejectedError(RelayError):
    """A relay answered a publish with an explicit rejection."""

    def __init__(self, relay_url: str, reason: str):
        super().__init__(relay_url, f"rejected: {reason}")
        self.reason = reason


class RelayInterface(ABC):
    """
    One connection to one relay.

    A relay instance is owned by exactly one task at a time and is never
    shared between concurrent deliveries.
    """

    url: str

    @abstractmethod
    async def connect(self) -> None:
        """Open the connection."""
        pass

    @abstractmethod
    async def publish(self, message: SignedMessage) -> str:
        """
        Publish a signed message.

        Args:
            message: Message to publish

        Returns:
            The relay's acknowledgement text (may be empty)

        Raises:
            RelayRejectedError: If the relay refuses the message
            RelayError: If the connection fails before an answer arrives
        """
        pass

    @abstractmethod
    def subscribe(self, filters: List[Dict[str, Any]]) -> AsyncIterator[Any]:
        """
        Subscribe with the given filters.

        Args:
            filters: Relay filters (e.g. `{"kinds": [1], "since": 1700000000}`)

        Yields:
            Raw decoded relay messages, unvalidated
        """
        pass

    @abstractmethod
    async def close(self) -> None:
        """
        Close the connection.

        This MUST be safe to call multiple times and on a relay that never
        connected.
        """
        pass


# open(url) -> Endpoint
RelayFactory = Callable[[str], RelayInterface]
