from __future__ import annotations

from typing import Optional


class VCFFormatError(ValueError):
    """Raised when VCF input cannot be parsed; parsing of the stream stops."""

    def __init__(
        self,
        message: str,
        *,
        source: Optional[str] = None,
        line_no: Optional[int] = None,
    ) -> None:
        self.message = message
        self.source = source
        self.line_no = line_no
        where = ""
        if source is not None and line_no is not None:
            where = f"{source}:{line_no}: "
        elif line_no is not None:
            where = f"line {line_no}: "
        super().__init__(where + message)
