"""
ironyd: C/C++ code intelligence server for editors.

A long-running process that answers editor requests (parse, diagnostics,
code completion, type lookup) over a line-based text protocol, backed by
libclang.

Modules:
- core: translation unit cache, completion decoding, session, command loop
"""

try:
    from importlib.metadata import version
    __version__ = version("ironyd")
except Exception:
    __version__ = "1.0.0"

from .config import ServerConfig
from .modules.core import (
    Candidate,
    Dispatcher,
    Irony,
    TranslationUnitCache,
    decode_candidate,
)

__all__ = [
    "ServerConfig",
    "Candidate",
    "Dispatcher",
    "Irony",
    "TranslationUnitCache",
    "decode_candidate",
]
