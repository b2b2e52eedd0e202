"""
Text normalization into lowercase alphanumeric tokens.
"""

import re
from typing import Iterable, Optional

_SPLIT_RE = re.compile(r"[^a-z0-9]+")


def tokenize(text: Optional[str]) -> list[str]:
    """Split text into lowercase [a-z0-9]+ tokens, keeping order and duplicates."""
    if not text:
        return []
    return [token for token in _SPLIT_RE.split(text.lower()) if token]


def token_set(parts: Iterable[Optional[str]]) -> frozenset:
    """Distinct tokens across all non-empty parts."""
    return frozenset(tokenize(" ".join(part for part in parts if part)))
