from __future__ import annotations

from .models import FORMAT_NOT_FOUND


def get_format_index(format_str: str, label: str) -> int:
    """Return the 0-based position of ``label`` in a ':'-delimited FORMAT string.

    Returns ``FORMAT_NOT_FOUND`` (-1) when the label is absent.

    >>> get_format_index("GT:GL:DP", "GL")
    1
    """
    for i, tok in enumerate(format_str.split(":")):
        if tok == label:
            return i
    return FORMAT_NOT_FOUND
