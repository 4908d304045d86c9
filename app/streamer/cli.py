"""
CLI entry point for index administration.

Usage:
    python -m app.streamer.cli create|delete|verify [--profile NAME] [--region REGION] [--index NAME]
"""

import argparse
import asyncio
import logging
import sys
from dataclasses import replace
from typing import Optional

from .config import OpenSearchConfig, StreamerConfig
from .exceptions import StreamerException
from .index_admin import IndexAdmin
from .opensearch_client import OpenSearchClient
from .utils.logging import setup_streamer_logger

COMMANDS = ("create", "delete", "verify")


async def run_command(command: str, opensearch_config: OpenSearchConfig, index_name: str) -> bool:
    """Run one admin command against the configured endpoint."""
    async with OpenSearchClient(opensearch_config) as client:
        admin = IndexAdmin(client)
        if command == "create":
            return await admin.create(index_name)
        if command == "delete":
            return await admin.delete(index_name)
        return await admin.verify(index_name)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stream indexer index administration")

    parser.add_argument("command", choices=COMMANDS, help="Command to execute")
    parser.add_argument("--profile", "-p", help="AWS profile used to sign requests")
    parser.add_argument("--region", "-r", help="AWS region used to sign requests")
    parser.add_argument("--index", "-i", help="Index name (defaults to the primary index)")
    parser.add_argument(
        "--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level"
    )
    parser.add_argument("--json-logs", action="store_true", help="Output logs in JSON format")

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    args = build_parser().parse_args(argv)

    setup_streamer_logger("streamer.cli", level=args.log_level, json_logs=args.json_logs)

    try:
        config = StreamerConfig.from_environment()
        opensearch_config = config.opensearch_config
        if args.region:
            opensearch_config = replace(opensearch_config, region=args.region)
        if args.profile:
            opensearch_config = replace(opensearch_config, profile=args.profile)

        index_name = args.index or opensearch_config.index_name
        success = asyncio.run(run_command(args.command, opensearch_config, index_name))
    except StreamerException as e:
        logging.error(f"Index {args.command} failed: {e}")
        return 1

    return 0 if success else 1


if __name__ == "__main__":
    sys.exit(main())
