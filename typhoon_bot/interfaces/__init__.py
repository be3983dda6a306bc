"""
Abstract interfaces for the typhoon bot collaborators.
"""

from .signer import SignerInterface
from .relay import RelayInterface, RelayFactory, RelayError, RelayRejectedError
from .bulletin_source import BulletinSourceInterface, BulletinFetchError
from .map_renderer import MapRendererInterface, MapGenerationError

__all__ = [
    'SignerInterface',
    'RelayInterface',
    'RelayFactory',
    'RelayError',
    'RelayRejectedError',
    'BulletinSourceInterface',
    'BulletinFetchError',
    'MapRendererInterface',
    'MapGenerationError',
]
