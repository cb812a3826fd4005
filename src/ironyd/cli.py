#!/usr/bin/env python3
"""
ironyd CLI - C/C++ completion and diagnostics server for editors.

Usage:
    ironyd -i                           Interactive mode, one command per stdin line
    ironyd parse FILE -- FLAGS...       Run a single command and exit
    ironyd --version                    Show server and libclang versions
"""
from __future__ import annotations

import argparse
import logging
import sys

from . import __version__
from .config import ServerConfig, logging_sink
from .modules.core.commands import APP_NAME, Dispatcher, stdin_commands, usage_text
from .modules.core.scratch import ScratchFile
from .modules.core.session import Irony

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog=APP_NAME, add_help=False)
    parser.add_argument("-h", "--help", action="store_true")
    parser.add_argument("-v", "--version", action="store_true")
    parser.add_argument("-i", "--interactive", action="store_true")
    parser.add_argument("-d", "--debug", action="store_true")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("--builtin-dir", default=None, help="clang builtin header directory")
    parser.add_argument("--libclang", default=None, help="path to the libclang shared library")
    return parser


_VALUE_OPTIONS = {"--log-file", "--builtin-dir", "--libclang"}


def split_argv(argv: list[str]) -> tuple[list[str], list[str]]:
    """Split startup options from the trailing single-shot command."""
    i = 0
    while i < len(argv) and argv[i].startswith("-"):
        i += 2 if argv[i] in _VALUE_OPTIONS else 1
    return argv[:i], argv[i:]


def _make_engine(args: argparse.Namespace):
    from .modules.core.clang_engine import ClangEngine

    return ClangEngine(library_file=args.libclang)


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if not argv:
        print(usage_text(), end="")
        return 0

    options, command = split_argv(argv)
    args = build_parser().parse_args(options)
    if args.help:
        print(usage_text(), end="")
        return 0

    config = ServerConfig.from_env()
    config.debug = config.debug or args.debug
    config.interactive = args.interactive
    if args.log_file:
        config.log_file = args.log_file
    if args.builtin_dir:
        config.builtin_header_dir = args.builtin_dir

    if args.version:
        engine = _make_engine(args)
        print(f"{APP_NAME} version {__version__}")
        print(engine.version())
        engine.close()
        return 0

    with logging_sink(config):
        logger.info("Builtin dir: %s", config.builtin_header_dir or "")
        session = Irony(_make_engine(args), config)
        scratch = ScratchFile()
        dispatcher = Dispatcher(session, config, scratch)
        if config.interactive:
            commands = stdin_commands(sys.stdin)
        else:
            commands = iter([command])
        try:
            return dispatcher.run(commands)
        except KeyboardInterrupt:
            return 130
        except Exception:
            logger.exception("Unhandled error")
            raise
        finally:
            session.dispose()
            scratch.close()


if __name__ == "__main__":
    sys.exit(main())
