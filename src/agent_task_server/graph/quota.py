"""Detect billing and quota exhaustion in coding-agent output."""

from __future__ import annotations

import re
from collections.abc import Iterable


def detect_quota_exhaustion(output: str, patterns: Iterable[str]) -> str | None:
    """Return the first pattern found in `output` (case-insensitive), else None.

    Patterns are regular expressions, so `rate.limit` also matches
    `rate-limit` and `rate_limit`.
    """
    for pattern in patterns:
        if re.search(pattern, output, flags=re.IGNORECASE):
            return pattern
    return None
