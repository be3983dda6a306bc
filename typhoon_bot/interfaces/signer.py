"""
Abstract interface for event signers.
"""

from abc import ABC, abstractmethod
from ..models.data_models import OutboundMessage, SignedMessage


class SignerInterface(ABC):
    """Abstract base class for all event signers."""

    @abstractmethod
    async def get_public_key(self) -> str:
        """
        Get the signing identity.

        Returns:
            Hex-encoded public key that authors every signed message
        """
        pass

    @abstractmethod
    async def sign(self, message: OutboundMessage) -> SignedMessage:
        """
        Sign an outbound message.

        Args:
            message: Unsigned payload

        Returns:
            SignedMessage: Immutable message with content-derived id and signature
        """
        pass
