"""
Configuration for the typhoon bot.
Organized into discrete feature sections for clarity.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict

from dotenv import load_dotenv

from typhoon_bot.config_models import BotConfig


# =============================================================================
# SECTION 1: ENVIRONMENT & CREDENTIALS
# =============================================================================

# Load environment variables from the project root
parent_dir = Path(__file__).parent.parent
env_path = parent_dir / ".env"
if env_path.exists():
    load_dotenv(env_path)

# NOSTR_SECRET_KEY   (required) nsec1... signing key
# GENMAP_BASE_URL    (optional) map image service; bulletins omit the map when unset
# READ_RELAYS / WRITE_RELAYS (optional) comma-separated overrides
# PUBLISH_TIMEOUT_SECONDS, LOG_LEVEL


# =============================================================================
# SECTION 2: PROVIDER SELECTION
# =============================================================================

SIGNER_PROVIDER = "nsec"
RELAY_PROVIDER = "websocket"
BULLETIN_PROVIDER = "jma"
MAP_PROVIDER = "genmap"


# =============================================================================
# SECTION 3: RELAYS
# =============================================================================

READ_RELAY_URLS = [
    "wss://yabu.me",
    "wss://relay-jp.nostr.wirednet.jp",
    "wss://nrelay.c-stellar.net",
    "wss://nrelay-jp.c-stellar.net",
]

WRITE_RELAY_URLS = [
    "wss://yabu.me",
    "wss://relay-jp.nostr.wirednet.jp",
    "wss://nrelay-jp.c-stellar.net",
]


# =============================================================================
# SECTION 4: ACCOUNT PROFILE (kind 0 metadata)
# =============================================================================

PROFILE = {
    "name": "where_is_typhoon",
    "display_name": "どこどこ台風bot",
    "about": (
        "現在発生中の台風の現在位置などの情報をお伝えします。情報の更新は毎時50分頃。\n"
        "管理者: かすてらふぃ(NIP-05: jiftechnify@c-stellar.net)\n"
    ),
    "picture": "https://pubimgs.c-stellar.net/where_is_typhoon.webp",
    "nip05": "where_is_typhoon@c-stellar.net",
    "bot": True,
}


# =============================================================================
# CONFIGURATION ASSEMBLY
# =============================================================================

def get_bot_config() -> BotConfig:
    """
    Assemble and validate the complete bot configuration.

    Raises:
        pydantic.ValidationError: If a required setting is missing or invalid
    """
    return BotConfig.from_env(
        default_read_relays=READ_RELAY_URLS,
        default_write_relays=WRITE_RELAY_URLS,
    )


def get_provider_config(config: BotConfig) -> Dict[str, Any]:
    """Per-provider configuration with the selected provider names filled in."""
    providers = config.to_provider_dict()
    providers['signer']['provider'] = SIGNER_PROVIDER
    providers['relay']['provider'] = RELAY_PROVIDER
    providers['bulletin']['provider'] = BULLETIN_PROVIDER
    if providers['map']['provider']:
        providers['map']['provider'] = MAP_PROVIDER
    return providers


def print_config_summary(config: BotConfig) -> None:
    """Print a configuration summary with secrets masked."""
    summary = config.model_dump()
    summary['nostr']['secret_key'] = "nsec1****"
    print("=" * 60)
    print("Typhoon Bot Configuration")
    print("=" * 60)
    print(json.dumps(summary, ensure_ascii=False, indent=2))
    print(f"Working directory: {os.getcwd()}")
