from __future__ import annotations

import gzip
import json
from pathlib import Path
from typing import Any, TextIO


def ensure_outdir(path: str | Path) -> Path:
    p = Path(path)
    p.mkdir(parents=True, exist_ok=True)
    return p


def open_textmaybe_gzip(path: str | Path, mode: str = "rt") -> TextIO:
    p = str(path)
    if p.endswith(".gz"):
        return gzip.open(p, mode)  # type: ignore[return-value]
    return open(p, mode)


def write_json(path: str | Path, obj: Any) -> None:
    with open(path, "wt", encoding="utf-8") as f:
        json.dump(obj, f, indent=2, sort_keys=True)


def format_float(x: float, digits: int = 6) -> str:
    # NaN marks an undecodable probability triple
    if x != x:
        return "nan"
    return f"{x:.{digits}g}"
