"""
Typhoon Bot - posts JMA tropical cyclone bulletins to Nostr relays.

This package provides:
- Update detection over JMA typhoon bulletins (UpdateGate)
- Concurrent, failure-tolerant publishing to many relays (PublishFanout)
- A watcher that answers "where is the typhoon?" posts (ResponseWatcher)

Usage:
    from typhoon_bot.orchestrator import TyphoonBotOrchestrator
    from typhoon_bot.config import get_bot_config, get_provider_config

    config = get_bot_config()
    bot = TyphoonBotOrchestrator.from_config(config, get_provider_config(config))
    await bot.run()
"""

from .update_gate import UpdateGate
from .fanout import PublishFanout
from .responder import ResponseWatcher, QueryMatcher
from .orchestrator import TyphoonBotOrchestrator
from .factory import ProviderFactory
from . import interfaces
from . import models
from . import providers

__version__ = "1.0.0"

__all__ = [
    'UpdateGate',
    'PublishFanout',
    'ResponseWatcher',
    'QueryMatcher',
    'TyphoonBotOrchestrator',
    'ProviderFactory',
    'interfaces',
    'models',
    'providers'
]
