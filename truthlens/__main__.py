"""
TruthLens CLI entry point.

Provides a command-line interface to the inference layer for operators:
inspect configuration, chat through a provider, analyze a product, and
check an API key before handing it to a user.
"""

import argparse
import asyncio
import sys
from pathlib import Path

from truthlens import __version__
from truthlens.components import InferenceComponents
from truthlens.config.logging import get_logger, mask_secret, setup_logging
from truthlens.config.settings import Settings, load_settings
from truthlens.inference.credentials import InMemoryCredentialStore
from truthlens.inference.errors import ClassifiedError
from truthlens.inference.models import Provider, Tier

PROVIDER_CHOICES = [p.value for p in Provider]
TIER_CHOICES = [t.value for t in Tier]


def create_parser() -> argparse.ArgumentParser:
    """Create and configure argument parser."""
    parser = argparse.ArgumentParser(
        prog="truthlens",
        description="Multi-provider AI inference for TruthLens product analysis and chat",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"TruthLens {__version__}",
    )

    parser.add_argument(
        "--env-file",
        type=Path,
        default=None,
        help="Path to .env file (default: .env in current directory)",
    )

    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Override logging level from config",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Config command
    subparsers.add_parser(
        "config",
        help="Show current configuration",
    )

    # Chat command
    chat_parser = subparsers.add_parser(
        "chat",
        help="Send one chat message through a provider",
    )
    chat_parser.add_argument(
        "message",
        help='Message to send, e.g. "Is palm oil bad for me?"',
    )
    chat_parser.add_argument(
        "--provider",
        choices=PROVIDER_CHOICES,
        default=Provider.GROQ.value,
        help="Provider to use (default: groq)",
    )
    chat_parser.add_argument(
        "--tier",
        choices=TIER_CHOICES,
        default=Tier.FREE.value,
        help="Subscription tier to act as (default: free)",
    )
    chat_parser.add_argument(
        "--user-id",
        default="cli",
        help="User id to resolve credentials for (default: cli)",
    )
    chat_parser.add_argument(
        "--user-key",
        default=None,
        help="Use this as the user's own API key for the chosen provider",
    )
    chat_parser.add_argument(
        "--language",
        default="en",
        help="Response language code (default: en)",
    )

    # Analyze command
    analyze_parser = subparsers.add_parser(
        "analyze",
        help="Analyze a product by racing the tier's provider lineup",
    )
    analyze_parser.add_argument(
        "name",
        help='Product name, e.g. "Chocolate Hazelnut Spread"',
    )
    analyze_parser.add_argument(
        "--ingredients",
        default="",
        help="Comma-separated ingredient list",
    )
    analyze_parser.add_argument(
        "--tier",
        choices=TIER_CHOICES,
        default=Tier.PRO.value,
        help="Subscription tier to act as (default: pro)",
    )
    analyze_parser.add_argument(
        "--user-id",
        default="cli",
        help="User id to resolve credentials for (default: cli)",
    )

    # Verify-key command
    verify_parser = subparsers.add_parser(
        "verify-key",
        help="Check an API key with one cheap call",
    )
    verify_parser.add_argument(
        "provider",
        choices=PROVIDER_CHOICES,
        help="Provider the key belongs to",
    )
    verify_parser.add_argument(
        "key",
        help="API key to verify",
    )

    return parser


def cmd_config(settings: Settings) -> int:
    """Show current configuration."""
    logger = get_logger(__name__)
    providers = settings.providers
    inference = settings.inference

    logger.info("\n=== TruthLens Configuration ===\n")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Log Level: {settings.log_level}")
    logger.info(f"Log File: {settings.log_file or 'None (console only)'}")
    logger.info("\nPlatform Keys:")
    platform_keys = providers.platform_keys()
    for provider in Provider:
        if not provider.requires_auth:
            continue
        logger.info(f"  {provider.display_name}: {mask_secret(platform_keys.get(provider.value))}")
    logger.info(f"\nDeepSeek Base URL: {providers.deepseek_base_url}")
    logger.info(f"OpenRouter Model: {providers.openrouter_model}")
    logger.info(f"Self-Hosted URL: {providers.self_hosted_url}")
    logger.info(f"Self-Hosted Model: {providers.self_hosted_model}")
    if providers.fallback_models:
        logger.info("\nModel Overrides:")
        for name, models in providers.fallback_models.items():
            logger.info(f"  {name}: {models}")
    logger.info(f"\nTemperature: {inference.temperature}")
    logger.info(f"Max Tokens: {inference.max_tokens}")
    logger.info(f"Request Timeout: {inference.request_timeout}s")
    logger.info(f"Chain Timeout: {inference.chain_timeout or 'None'}")
    logger.info(f"Credential Cache TTL: {inference.credential_cache_ttl}s")
    logger.info(f"Cancel Race Losers: {inference.cancel_race_losers}")

    return 0


async def cmd_chat(args, settings: Settings) -> int:
    """Send one chat turn and print the reply."""
    provider = Provider(args.provider)
    tier = Tier(args.tier)

    store = InMemoryCredentialStore.from_settings(settings.providers)
    if args.user_key:
        store.set_user_secret(args.user_id, provider, args.user_key)

    gateway = InferenceComponents(settings).create_gateway(store)
    try:
        reply = await gateway.chat(args.user_id, tier, provider, args.message, language=args.language)
    except ClassifiedError as e:
        print(f"\n[{e.kind.value}] {e.message}", file=sys.stderr)
        return 1
    except ValueError as e:
        print(f"\n{e}", file=sys.stderr)
        return 1

    print(f"\n=== {provider.display_name} ===")
    print(reply)
    return 0


async def cmd_analyze(args, settings: Settings) -> int:
    """Analyze a product and print the verdict."""
    tier = Tier(args.tier)
    ingredients = [i.strip() for i in args.ingredients.split(",") if i.strip()]

    factory = InferenceComponents(settings)
    gateway = factory.create_gateway(InMemoryCredentialStore.from_settings(settings.providers))
    analyzer = factory.create_analyzer(gateway)

    try:
        verdict = await analyzer.analyze(args.user_id, tier, args.name, ingredients)
    except ClassifiedError as e:
        print(f"\n[{e.kind.value}] {e.message}", file=sys.stderr)
        return 1

    print(f"\n=== {args.name} ===")
    print(f"Grade: {verdict.grade}   Health Score: {verdict.health_score}/100\n")
    print(verdict.summary)
    if verdict.pros:
        print("\nPros:")
        for pro in verdict.pros:
            print(f"  + {pro}")
    if verdict.cons:
        print("\nCons:")
        for con in verdict.cons:
            print(f"  - {con}")
    return 0


async def cmd_verify_key(args, settings: Settings) -> int:
    """Verify a key. Exit code 0 when valid, 1 otherwise."""
    provider = Provider(args.provider)
    gateway = InferenceComponents(settings).create_gateway(InMemoryCredentialStore())

    valid = await gateway.verify_credential(provider, args.key)
    status = "valid" if valid else "invalid"
    print(f"{provider.display_name} key {mask_secret(args.key)} is {status}")
    return 0 if valid else 1


def main() -> int:
    """Main entry point."""
    parser = create_parser()
    args = parser.parse_args()

    # Load settings
    try:
        settings = load_settings(env_file=args.env_file)
    except Exception as e:
        print(f"Error loading settings: {e}", file=sys.stderr)
        return 1

    # Override log level if specified
    if args.log_level:
        settings.log_level = args.log_level

    setup_logging(settings)

    if args.command == "config":
        return cmd_config(settings)
    elif args.command == "chat":
        return asyncio.run(cmd_chat(args, settings))
    elif args.command == "analyze":
        return asyncio.run(cmd_analyze(args, settings))
    elif args.command == "verify-key":
        return asyncio.run(cmd_verify_key(args, settings))
    else:
        # Default: show help
        parser.print_help()
        return 0


if __name__ == "__main__":
    sys.exit(main())
