"""
CLI — Command interface

    rulemind ask "hello there" [-n 3] [--client host_localhost]
    rulemind chat
    rulemind stats
    rulemind config

Knowledge directories come from the config hierarchy and can be
overridden with --init / --watch.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .config import ConfigManager, MindConfig
from .core.identity import ClientIdentity
from .mind import Mind
from . import __version__


def build_config(args: argparse.Namespace) -> MindConfig:
    manager = ConfigManager(Path(args.project), Path(args.config) if args.config else None)
    config = manager.load()
    if args.init:
        config.init_path = args.init
    if args.watch:
        config.watch_path = args.watch
    return config


def cmd_ask(mind: Mind, args: argparse.Namespace) -> int:
    identity = ClientIdentity.from_client(args.client or mind.config.default_client)
    interaction = mind.interaction(args.query, args.count, identity)
    if not interaction.expressions:
        print("(no answer)")
        return 1
    for expression in interaction.expressions:
        print(expression)
    return 0


def cmd_chat(mind: Mind, args: argparse.Namespace) -> int:
    identity = ClientIdentity.from_client(args.client or mind.config.default_client)
    mind.watch()
    try:
        while True:
            try:
                query = input("> ").strip()
            except EOFError:
                break
            if not query:
                continue
            if query in ("exit", "quit"):
                break
            interaction = mind.interaction(query, 1, identity)
            print(interaction.answer if interaction.answer is not None else "(no answer)")
    except KeyboardInterrupt:
        print()
    finally:
        mind.close()
    return 0


def cmd_stats(mind: Mind, args: argparse.Namespace) -> int:
    print(json.dumps(mind.stats(), indent=2))
    return 0


COMMANDS = {
    "ask": cmd_ask,
    "chat": cmd_chat,
    "stats": cmd_stats,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rulemind",
        description="rulemind -- Rule-based conversational reasoning",
    )
    parser.add_argument('--project', '-p', default=".", help='Project directory (default: current)')
    parser.add_argument('--config', '-c', help='Explicit YAML config file')
    parser.add_argument('--init', help='Static knowledge directory')
    parser.add_argument('--watch', help='Watched knowledge directory')
    parser.add_argument('--version', '-V', action='version', version=f'rulemind {__version__}')

    subparsers = parser.add_subparsers(dest='command', help='Commands')

    ask = subparsers.add_parser('ask', help='Answer a single query')
    ask.add_argument('query', help='The query text')
    ask.add_argument('-n', '--count', type=int, default=1, help='Maximum answers (default: 1)')
    ask.add_argument('--client', help='Client key "<type>_<name>"')

    chat = subparsers.add_parser('chat', help='Interactive conversation')
    chat.add_argument('--client', help='Client key "<type>_<name>"')

    subparsers.add_parser('stats', help='Knowledge base statistics')
    subparsers.add_parser('config', help='Show effective configuration')

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the rulemind CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 0

    try:
        if args.command == 'config':
            manager = ConfigManager(Path(args.project), Path(args.config) if args.config else None)
            print(manager.display())
            return 0

        config = build_config(args)
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2
    logging.basicConfig(level=config.log_level.upper(), format="%(levelname)s %(name)s: %(message)s")

    mind = Mind(config)
    return COMMANDS[args.command](mind, args)


if __name__ == '__main__':
    sys.exit(main())
