"""Server configuration and log sink setup.

Logging goes to stderr (rich) or to ``--log-file``; stdout is reserved for
protocol responses read by the editor.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

LOGGER_NAME = "ironyd"
LOG_FORMAT = "%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s"
LOG_DATEFMT = "%H:%M:%S"

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class ServerConfig:
    debug: bool = False
    log_file: str | None = None
    builtin_header_dir: str | None = None
    program_name: str = "clang"
    parse_attempts: int = 3
    retry_delay: float = 0.1
    interactive: bool = False

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """Defaults overridden by IRONYD_* environment variables."""
        return cls(
            debug=os.environ.get("IRONYD_DEBUG", "").lower() in _TRUTHY,
            log_file=os.environ.get("IRONYD_LOG_FILE") or None,
            builtin_header_dir=os.environ.get("IRONYD_CLANG_HEADER_DIR") or None,
        )

    def set_debug(self, on: bool) -> None:
        self.debug = on
        logging.getLogger(LOGGER_NAME).setLevel(logging.DEBUG if on else logging.INFO)


def _make_handler(config: ServerConfig) -> logging.Handler:
    if config.log_file:
        handler: logging.Handler = logging.FileHandler(config.log_file, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATEFMT))
        return handler

    from rich.console import Console
    from rich.logging import RichHandler

    handler = RichHandler(
        console=Console(stderr=True),
        show_path=False,
        log_time_format="[%X]",
    )
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    return handler


@contextmanager
def logging_sink(config: ServerConfig) -> Iterator[logging.Logger]:
    """Attach the configured handler to the package logger for the block."""
    logger = logging.getLogger(LOGGER_NAME)
    handler = _make_handler(config)
    logger.addHandler(handler)
    logger.propagate = False
    config.set_debug(config.debug)
    try:
        yield logger
    finally:
        logger.removeHandler(handler)
        handler.close()
        logger.propagate = True
