# FILE: sundries/utils/text.py
from __future__ import annotations

import re
from typing import List, Optional, Tuple, Union

_CHUNK = re.compile(r"(\d+)")


def natural_key(s: Optional[str]) -> Tuple[Tuple[int, Union[int, str]], ...]:
    """
    Sort key that orders embedded numbers numerically.
    Example: ["10", "2", "1a"] -> ["1a", "2", "10"]
    """
    parts: List[Tuple[int, Union[int, str]]] = []
    for p in _CHUNK.split((s or "").strip().lower()):
        if not p:
            continue
        # (0, n) before (1, text) keeps int/str from being compared directly
        parts.append((0, int(p)) if p.isdigit() else (1, p))
    return tuple(parts)


def clean_name(*parts: Optional[str]) -> Optional[str]:
    """Join name parts with single spaces; None when nothing is left."""
    s = re.sub(r"\s+", " ", " ".join(p for p in parts if p).strip())
    return s or None
