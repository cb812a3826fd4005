from __future__ import annotations

import logging
import os
import tempfile

logger = logging.getLogger(__name__)

SCRATCH_PREFIX = "irony-temp"


class ScratchFile:
    """Process-wide temp file standing in for a ``-`` filename.

    Created on first use and reused until ``close``.
    """

    def __init__(self, prefix: str = SCRATCH_PREFIX, directory: str | None = None) -> None:
        self._prefix = prefix
        self._directory = directory
        self._file = None

    @property
    def path(self) -> str:
        if self._file is None:
            self._file = tempfile.NamedTemporaryFile(
                prefix=self._prefix, dir=self._directory, delete=False
            )
            logger.debug("Created scratch file %s", self._file.name)
        return self._file.name

    def resolve(self, filename: str) -> str:
        if filename == "-":
            path = self.path
            logger.debug("Convert - to %s", path)
            return path
        return filename

    def close(self) -> None:
        if self._file is None:
            return
        name = self._file.name
        self._file.close()
        self._file = None
        try:
            os.unlink(name)
        except OSError as exc:
            logger.debug("scratch: could not remove %s: %s", name, exc)
