"""Line-at-a-time text source over plain or gzip-compressed VCF files."""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)


class LineSource:
    """Supplies successive lines without their terminators.

    ``readline`` returns ``None`` once the underlying handle is exhausted;
    I/O errors propagate unchanged.
    """

    def __init__(self, handle: Iterable[str], *, name: Optional[str] = None) -> None:
        self._it: Iterator[str] = iter(handle)
        self.name = name
        self.line_no = 0

    @classmethod
    @contextmanager
    def open(cls, path: str | Path) -> Iterator["LineSource"]:
        logger.debug("Opening %s", path)
        with open_textmaybe_gzip(path, "rt") as fh:
            yield cls(fh, name=str(path))

    def readline(self) -> Optional[str]:
        line = next(self._it, None)
        if line is None:
            return None
        self.line_no += 1
        return line.rstrip("\r\n")

    def __iter__(self) -> Iterator[str]:
        while True:
            line = self.readline()
            if line is None:
                return
            yield line
