"""
CLI for the typhoon bot.
"""

import asyncio
import argparse
import os
import sys

from pydantic import ValidationError

try:
    from .orchestrator import TyphoonBotOrchestrator
    from .config import PROFILE, get_bot_config, get_provider_config, print_config_summary
    from .utils.logging_config import setup_logging, get_logger
except ImportError:
    from typhoon_bot.orchestrator import TyphoonBotOrchestrator
    from typhoon_bot.config import PROFILE, get_bot_config, get_provider_config, print_config_summary
    from typhoon_bot.utils.logging_config import setup_logging, get_logger


logger = get_logger("main")


def create_parser() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        description="Typhoon position bot for Nostr",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument('--log-level', default=None, help='Override LOG_LEVEL')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    subparsers.add_parser(
        'run',
        help='Post on launch, then post on schedule and answer queries'
    )
    subparsers.add_parser(
        'post-once',
        help='Run a single announcement cycle and exit'
    )
    subparsers.add_parser(
        'set-profile',
        help='Publish the account profile (kind 0 metadata)'
    )
    subparsers.add_parser(
        'config',
        help='Show configuration'
    )

    return parser


async def cmd_run(orchestrator: TyphoonBotOrchestrator) -> int:
    await orchestrator.run()
    return 0


async def cmd_post_once(orchestrator: TyphoonBotOrchestrator) -> int:
    if not await orchestrator.initialize():
        return 1
    signed = await orchestrator.run_announcement_cycle()
    if signed is None:
        print("No update")
    else:
        print(f"Published {signed.id}")
        for line in orchestrator.get_status()['last_delivery']:
            print(f"  {line}")
    return 0


async def cmd_set_profile(orchestrator: TyphoonBotOrchestrator) -> int:
    results = await orchestrator.publish_profile(PROFILE)
    for result in results:
        print(f"  {result}")
    return 0 if any(r.ok for r in results) else 1


COMMANDS = {
    'run': cmd_run,
    'post-once': cmd_post_once,
    'set-profile': cmd_set_profile,
}


async def async_main(args: argparse.Namespace) -> int:
    setup_logging(level=args.log_level or os.getenv('LOG_LEVEL', 'INFO'))
    try:
        config = get_bot_config()
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if args.log_level is None:
        setup_logging(level=config.log_level)

    if args.command == 'config':
        print_config_summary(config)
        return 0

    orchestrator = TyphoonBotOrchestrator.from_config(config, get_provider_config(config))
    try:
        return await COMMANDS[args.command](orchestrator)
    finally:
        await orchestrator.cleanup()


def main() -> int:
    parser = create_parser()
    args = parser.parse_args()
    if not args.command:
        parser.print_help()
        return 1

    try:
        return asyncio.run(async_main(args))
    except KeyboardInterrupt:
        print("\n⚠️  Stopped by user")
        return 0
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
