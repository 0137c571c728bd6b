from __future__ import annotations

import re
from typing import Optional

_INTERVAL_RE = re.compile(r"^(\d+)([mh])$")
_UNIT_MS = {"m": 60_000, "h": 3_600_000}


def parse_interval_ms(interval: str) -> Optional[int]:
    """
    Parse a bucket interval such as "1m", "5m" or "1h" into milliseconds.

    Returns None for anything else (including zero-length intervals).
    """
    m = _INTERVAL_RE.match((interval or "").strip().lower())
    if not m:
        return None
    amount = int(m.group(1))
    if amount <= 0:
        return None
    return amount * _UNIT_MS[m.group(2)]
