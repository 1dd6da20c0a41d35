"""
Detection of changed paths that should not usually be committed.

The detector applies a fixed, ordered list of regular expressions to each
path exactly as the repository inspector reported it. Matching is
case-sensitive and uses forward slashes, so ``.ENV`` or a path reported
with backslashes is not flagged. The result is advisory: callers warn
about flagged paths but never block on them.
"""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Pattern, Set, Tuple


# (rule name, pattern) in evaluation order.
SENSITIVE_RULES: List[Tuple[str, Pattern[str]]] = [
    ("secret file", re.compile(r"(^|/)(\.env(\.[^/]+)?|secrets?\.[^/]+|credentials(\.[^/]+)?)$")),
    (
        "key or credential file",
        re.compile(r"(\.(pem|key|p12|pfx|keystore|jks)$)|(^|/)id_(rsa|dsa|ecdsa|ed25519)$"),
    ),
    ("local override config", re.compile(r"(^|/)[^/]*\.local(\.[^/]+)?$")),
    ("build output", re.compile(r"(^|/)(dist|build|out|\.next|node_modules|coverage)/")),
    ("log file", re.compile(r"\.log$")),
]


def matching_rule(path: str) -> Optional[str]:
    """Return the name of the first rule flagging ``path``, or None."""
    for name, pattern in SENSITIVE_RULES:
        if pattern.search(path):
            return name
    return None


def flag_sensitive_paths(paths: Iterable[str]) -> Set[str]:
    """Return the subset of ``paths`` matching any sensitive rule."""
    return {path for path in paths if matching_rule(path) is not None}
