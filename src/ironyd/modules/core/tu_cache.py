"""In-memory translation unit cache.

Keeps one parsed translation unit per source file so that repeated parse and
complete requests only pay for a reparse instead of a full parse.

Key: file path. A cached unit is reused only when the (normalized) compile
flags match exactly; any difference evicts the old unit.
Lifetime: reference counted. The cache holds one reference itself, every
successful ``parse``/``gen_tu`` hands out another, and each must be returned
through ``dispose``.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Sequence

from .engine import (
    DEFAULT_PARSE_OPTIONS,
    ERROR_CRASHED,
    ERROR_SUCCESS,
    Engine,
    Overlay,
    UnitHandle,
)
from .errors import ParseFailed

logger = logging.getLogger(__name__)

PARSE_ATTEMPTS = 3
RETRY_DELAY = 0.1


@dataclass
class TranslationUnitRecord:
    file: str
    flags: list[str]
    handle: UnitHandle
    ref_count: int = 1
    released: bool = field(default=False, repr=False)


def flags_match(flags1: Sequence[str], flags2: Sequence[str]) -> bool:
    if len(flags1) != len(flags2):
        return False
    return all(a == b for a, b in zip(flags1, flags2))


class TranslationUnitCache:
    """Reference-counted store of parsed translation units."""

    def __init__(
        self,
        engine: Engine,
        builtin_header_dir: str | None = None,
        program_name: str = "clang",
        parse_options: int = DEFAULT_PARSE_OPTIONS,
        attempts: int = PARSE_ATTEMPTS,
        retry_delay: float = RETRY_DELAY,
    ):
        self._engine = engine
        self._builtin_header_dir = builtin_header_dir
        self._program_name = program_name
        self.parse_options = parse_options
        self._attempts = attempts
        self._retry_delay = retry_delay
        self._units: dict[str, TranslationUnitRecord] = {}
        self._closed = False
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._retries = 0

    def __len__(self) -> int:
        return len(self._units)

    def __contains__(self, file: str) -> bool:
        return file in self._units

    def normalize_flags(self, flags: Sequence[str]) -> list[str]:
        """Prefix the program name and append the builtin header directory."""
        normalized = [self._program_name, *flags]
        if self._builtin_header_dir:
            normalized += ["-isystem", self._builtin_header_dir]
        return normalized

    def _find(self, file: str, flags: list[str]) -> TranslationUnitRecord | None:
        record = self._units.get(file)
        if record is None:
            return None
        if not flags_match(record.flags, flags):
            logger.debug("tu_cache: flags changed for %s, evicting", file)
            del self._units[file]
            self._evictions += 1
            self.dispose(record)
            return None
        return record

    def _add(self, file: str, flags: list[str], handle: UnitHandle) -> TranslationUnitRecord:
        assert file not in self._units, f"translation unit for {file} already cached"
        record = TranslationUnitRecord(file=file, flags=flags, handle=handle)
        self._units[file] = record
        return record

    def _delete(self, file: str) -> None:
        record = self._units.pop(file, None)
        if record is not None:
            self.dispose(record)

    def _parse_with_retry(
        self, file: str, flags: list[str], overlays: Sequence[Overlay]
    ) -> UnitHandle:
        code, handle = ERROR_SUCCESS, None
        for attempt in range(1, self._attempts + 1):
            code, handle = self._engine.parse(file, flags, overlays, self.parse_options)
            if handle is not None or code != ERROR_CRASHED:
                break
            logger.info("Engine crashed parsing %s (attempt %d/%d)", file, attempt, self._attempts)
            if attempt < self._attempts:
                self._retries += 1
                time.sleep(self._retry_delay)
        if handle is None:
            logger.info("Parse failed: %d", code)
            raise ParseFailed(file, code)
        return handle

    def parse(
        self, file: str, flags: Sequence[str], overlays: Sequence[Overlay]
    ) -> TranslationUnitRecord:
        """Parse (or reuse) ``file`` and reparse it against ``overlays``.

        Raises ParseFailed. The returned record carries a reference owned by
        the caller.
        """
        normalized = self.normalize_flags(flags)
        record = self._find(file, normalized)
        if record is None:
            self._misses += 1
            handle = self._parse_with_retry(file, normalized, overlays)
            record = self._add(file, normalized, handle)
        else:
            self._hits += 1

        code = self._engine.reparse(record.handle, overlays)
        if code != ERROR_SUCCESS:
            logger.info("ReParse failed, err %d", code)
            self._delete(file)
            raise ParseFailed(file, code, reason="reparse")
        record.ref_count += 1
        return record

    def gen_tu(
        self, file: str, flags: Sequence[str], overlays: Sequence[Overlay]
    ) -> TranslationUnitRecord:
        """Like ``parse`` but a cached unit is handed out without reparsing."""
        record = self._find(file, self.normalize_flags(flags))
        if record is not None:
            self._hits += 1
            record.ref_count += 1
            return record
        return self.parse(file, flags, overlays)

    def dispose(self, record: TranslationUnitRecord) -> None:
        record.ref_count -= 1
        if record.ref_count < 0:
            raise AssertionError(
                f"tu for file {record.file}, ref {record.ref_count}"
            )
        if record.ref_count == 0:
            self._release(record)

    def _release(self, record: TranslationUnitRecord) -> None:
        if record.released:
            return
        record.released = True
        self._engine.dispose_unit(record.handle)

    def teardown(self) -> None:
        """Release every cached unit regardless of references, then the index."""
        if self._closed:
            return
        self._closed = True
        for record in self._units.values():
            record.ref_count = 0
            self._release(record)
        self._units.clear()
        self._engine.close()

    @property
    def stats(self) -> dict[str, int]:
        return {
            "hits": self._hits,
            "misses": self._misses,
            "evictions": self._evictions,
            "retries": self._retries,
        }
