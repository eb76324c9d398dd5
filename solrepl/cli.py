#!/usr/bin/env python3
"""Command line entry point for solrepl session management.

Usage:
    solrepl list
    solrepl show [NAME]
    solrepl compose "uint256 x = 1;" "function f() {}" --save
    solrepl clear
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .config import ReplConfig
from .environment import ReplEnvironment
from .errors import SolReplError
from .session_cache import SessionCache


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="solrepl", description="Manage solrepl sessions")
    parser.add_argument("--cache-dir", type=Path, help="Snapshot directory (overrides config)")
    parser.add_argument("--config", type=Path, help="Config file path")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("list", help="List cached sessions, newest first")
    sub.add_parser("clear", help="Delete every cached session")

    show = sub.add_parser("show", help="Print the synthesized source of a cached session")
    show.add_argument("name", nargs="?", help="Snapshot file name or id (default: latest)")

    compose = sub.add_parser("compose", help="Build a session from snippets and print its source")
    compose.add_argument("snippets", nargs="+", help="Solidity snippets, in order")
    compose.add_argument("--solc", help="Compiler version for the session")
    compose.add_argument("--save", action="store_true", help="Persist the session to the cache")

    return parser


def _load_config(args: argparse.Namespace) -> ReplConfig:
    env_file = Path.cwd() / ".env"
    if env_file.exists():
        load_dotenv(env_file)

    config = ReplConfig.load(args.config)
    if args.cache_dir is not None:
        config.cache_dir = str(args.cache_dir)
    return config


def _log_level(args: argparse.Namespace, config: ReplConfig) -> int | str:
    if args.verbose:
        return logging.DEBUG
    level = config.log_level.upper()
    if not isinstance(logging.getLevelName(level), int):
        raise ValueError(f"Unknown log level: {config.log_level}")
    return level


def run(args: argparse.Namespace, config: ReplConfig) -> None:
    cache = SessionCache(config.resolved_cache_dir, prefix=config.snapshot_prefix)

    if args.command == "list":
        sessions = cache.list_sessions()
        if not sessions:
            print(f"No cached sessions in {cache.cache_dir}")
        for modified, name in sessions:
            print(f"{modified:%Y-%m-%d %H:%M:%S}  {name}")

    elif args.command == "clear":
        removed = cache.clear()
        print(f"Removed {removed} cached entr{'y' if removed == 1 else 'ies'}")

    elif args.command == "show":
        if args.name is None:
            env = ReplEnvironment.restore_latest(cache=cache)
        else:
            env = ReplEnvironment.restore(args.name, cache=cache)
        print(env.contract_source())

    elif args.command == "compose":
        env = ReplEnvironment(args.solc, cache=cache, config=config)
        env.submit_all(args.snippets)
        print(env.contract_source())
        if args.save:
            path = env.persist()
            print(f"Saved session {env.cache_id} to {path}", file=sys.stderr)


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = _load_config(args)
        logging.basicConfig(level=_log_level(args, config), format="%(levelname)s %(name)s: %(message)s")
        run(args, config)
    except (SolReplError, OSError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
