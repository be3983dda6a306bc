"""
Factory for creating provider instances based on configuration.
"""

from typing import Dict, Any, Optional

try:
    # Try relative imports first (when used as package)
    from .interfaces import (
        SignerInterface,
        BulletinSourceInterface,
        MapRendererInterface,
        RelayFactory,
    )
    from .providers.signer import NsecSigner
    from .providers.relay import open_relay
    from .providers.bulletin import JmaBulletinSource
    from .providers.genmap import GenmapClient
except ImportError:
    # Fall back to absolute imports (when run as module)
    from typhoon_bot.interfaces import (
        SignerInterface,
        BulletinSourceInterface,
        MapRendererInterface,
        RelayFactory,
    )
    from typhoon_bot.providers.signer import NsecSigner
    from typhoon_bot.providers.relay import open_relay
    from typhoon_bot.providers.bulletin import JmaBulletinSource
    from typhoon_bot.providers.genmap import GenmapClient


class ProviderFactory:
    """Factory for creating provider instances."""

    SIGNER_PROVIDERS = {
        'nsec': NsecSigner,
    }

    RELAY_PROVIDERS = {
        'websocket': open_relay,
    }

    BULLETIN_PROVIDERS = {
        'jma': JmaBulletinSource,
    }

    MAP_PROVIDERS = {
        'genmap': GenmapClient,
    }

    @staticmethod
    def _lookup(registry: Dict[str, Any], kind: str, provider_name: str):
        if provider_name not in registry:
            available = ', '.join(registry.keys())
            raise ValueError(f"Unsupported {kind} provider: {provider_name}. Available: {available}")
        return registry[provider_name]

    @classmethod
    def create_signer(cls, provider_name: str, config: Dict[str, Any]) -> SignerInterface:
        """
        Create a signer instance.

        Raises:
            ValueError: If provider name is not supported
        """
        return cls._lookup(cls.SIGNER_PROVIDERS, 'signer', provider_name)(config)

    @classmethod
    def create_relay_factory(cls, provider_name: str) -> RelayFactory:
        """Return the `open(url)` callable for a relay provider."""
        return cls._lookup(cls.RELAY_PROVIDERS, 'relay', provider_name)

    @classmethod
    def create_bulletin_source(cls, provider_name: str, config: Dict[str, Any]) -> BulletinSourceInterface:
        return cls._lookup(cls.BULLETIN_PROVIDERS, 'bulletin', provider_name)(config)

    @classmethod
    def create_map_renderer(cls, provider_name: Optional[str], config: Dict[str, Any]) -> Optional[MapRendererInterface]:
        """Map rendering is optional; `None` disables it."""
        if provider_name is None:
            return None
        return cls._lookup(cls.MAP_PROVIDERS, 'map', provider_name)(config)

    @classmethod
    def create_all_providers(cls, providers_config: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create all providers from a provider configuration dictionary.

        Args:
            providers_config: Output of `config.get_provider_config`

        Returns:
            Dictionary with 'signer', 'relay_factory', 'bulletin' and 'map' entries
        """
        return {
            'signer': cls.create_signer(
                providers_config['signer']['provider'],
                providers_config['signer']['config'],
            ),
            'relay_factory': cls.create_relay_factory(providers_config['relay']['provider']),
            'bulletin': cls.create_bulletin_source(
                providers_config['bulletin']['provider'],
                providers_config['bulletin']['config'],
            ),
            'map': cls.create_map_renderer(
                providers_config['map']['provider'],
                providers_config['map']['config'],
            ),
        }
