"""
Commit message composition.

Every commit created by the gatekeeper carries a local-time prefix in
the form ``MMdd:HHmm`` followed by a one-line summary, for example
``1017:0930 - UI update: LoginButton.tsx``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional


PREFIX_FORMAT = "%m%d:%H%M"
SEPARATOR = " - "


def timestamp_prefix(now: Optional[datetime] = None) -> str:
    """Return the ``MMdd:HHmm`` prefix for ``now`` (local time by default)."""
    moment = now if now is not None else datetime.now()
    return moment.strftime(PREFIX_FORMAT)


def _normalize(summary: Optional[str]) -> str:
    if not summary:
        return ""
    return " ".join(summary.split())


def choose_summary(user_summary: Optional[str], auto_summary: Optional[str]) -> Optional[str]:
    """Pick the summary to use: a non-blank user summary wins."""
    for candidate in (user_summary, auto_summary):
        normalized = _normalize(candidate)
        if normalized:
            return normalized
    return None


def compose_message(prefix: str, summary: str) -> str:
    """Join ``prefix`` and ``summary`` into a single-line commit message.

    Raises
    ------
    ValueError
        If the summary is empty after trimming.
    """
    normalized = _normalize(summary)
    if not normalized:
        raise ValueError("Commit summary must not be empty")
    return f"{prefix}{SEPARATOR}{normalized}"
