"""Validation helpers for numeric strings, addresses and transaction hashes."""

from __future__ import annotations

import re
from typing import Any

_NUMERIC_STRING_RE = re.compile(r"^\d+(\.\d+)?$")


def is_numeric_string(x: Any) -> bool:
    """Return True for unsigned decimal strings such as '21000' or '1.5' (gas fields)."""
    return isinstance(x, str) and bool(_NUMERIC_STRING_RE.match(x.strip()))


def normalize_hex(value: str | None) -> str | None:
    """Strip and lower-case an address or hash. None and blank stay None."""
    if value is None:
        return None
    s = value.strip()
    return s.lower() if s else None


def mask_address(addr: str | None) -> str:
    """Return a masked address or hash for logging (e.g. 0x1234...abcd)."""
    if not addr or len(addr) < 10:
        return "***"
    return f"{addr[:6]}...{addr[-4:]}"
