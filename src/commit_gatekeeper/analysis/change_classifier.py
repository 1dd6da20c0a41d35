"""
Heuristics for classifying a change set into a single category.

The classifier looks only at path names, never at file contents. It is
an ordered list of ``(predicate, category)`` rules evaluated top to
bottom where the first matching rule wins, so each rule can be unit
tested on its own and the outcome for a given change set is fully
reproducible. The order matters: a bug-fix token anywhere beats every
other signal, and the narrow test/docs/config categories only apply to
small change sets.
"""

from __future__ import annotations

import re
from enum import Enum
from pathlib import PurePosixPath
from typing import Callable, List, Pattern, Sequence, Tuple


class ChangeCategory(Enum):
    """Category tag produced for a change set, with its display label."""

    BUG_FIX = "Bug fix"
    TEST_UPDATE = "Test update"
    DOCS_UPDATE = "Docs update"
    CONFIG_UPDATE = "Config update"
    UI_API_INTEGRATION = "UI and API integration"
    UI_ONLY = "UI update"
    API_ONLY = "API update"
    STATE_MANAGEMENT = "State management update"
    GENERIC = "General update"

    @property
    def label(self) -> str:
        return self.value


_SEP = r"(?:^|[/._-])"
_END = r"(?:[/._-]|$)"

BUGFIX_PATTERN = re.compile(_SEP + r"(?:bug|bugs|bugfix|fix|fixes|hotfix|patch|patches)" + _END, re.IGNORECASE)
TEST_PATTERN = re.compile(
    r"(^|/)(tests?|__tests__|specs?)/"
    r"|\.(test|spec)\.[^/]+$"
    r"|(^|/)test_[^/]+\.py$"
    r"|_test\.(py|go)$",
    re.IGNORECASE,
)
DOCS_PATTERN = re.compile(r"\.(md|mdx|rst|adoc|txt)$|(^|/)docs?/", re.IGNORECASE)
CONFIG_PATTERN = re.compile(
    r"(^|/)(package(-lock)?\.json|yarn\.lock|pnpm-lock\.yaml|tsconfig[^/]*\.json"
    r"|\.eslintrc[^/]*|\.prettierrc[^/]*|\.editorconfig|\.gitignore"
    r"|pyproject\.toml|setup\.cfg|Dockerfile|docker-compose\.ya?ml)$"
    r"|\.(ya?ml|toml|ini|cfg|conf)$"
    r"|\.config\.[cm]?[jt]s$",
    re.IGNORECASE,
)
UI_PATTERN = re.compile(
    r"\.(tsx|jsx|vue|svelte|css|scss|sass|less|html)$"
    r"|(^|/)(components?|pages|views|screens|layouts|ui|styles)/",
    re.IGNORECASE,
)
API_PATTERN = re.compile(
    r"(^|/)(api|apis|services?|clients?|routes|endpoints|server|controllers?)/"
    r"|(api|client|service)\.[cm]?[jt]s$",
    re.IGNORECASE,
)
STATE_PATTERN = re.compile(
    r"(^|/)(store|stores|redux|state|slices?|reducers?|contexts?)/"
    r"|(store|slice|reducer|context|atoms?)\.[cm]?[jt]sx?$",
    re.IGNORECASE,
)


def _any_match(pattern: Pattern[str], paths: Sequence[str]) -> bool:
    return any(pattern.search(path) for path in paths)


def is_bug_fix(paths: Sequence[str]) -> bool:
    return _any_match(BUGFIX_PATTERN, paths)


def is_test_update(paths: Sequence[str]) -> bool:
    return _any_match(TEST_PATTERN, paths) and len(paths) <= 5


def is_docs_update(paths: Sequence[str]) -> bool:
    return _any_match(DOCS_PATTERN, paths) and len(paths) <= 5


def is_config_update(paths: Sequence[str]) -> bool:
    return _any_match(CONFIG_PATTERN, paths) and len(paths) <= 6


def is_ui_api_integration(paths: Sequence[str]) -> bool:
    return _any_match(UI_PATTERN, paths) and _any_match(API_PATTERN, paths)


def is_ui_only(paths: Sequence[str]) -> bool:
    return _any_match(UI_PATTERN, paths) and not _any_match(API_PATTERN, paths)


def is_api_only(paths: Sequence[str]) -> bool:
    return _any_match(API_PATTERN, paths) and not _any_match(UI_PATTERN, paths)


def is_state_management(paths: Sequence[str]) -> bool:
    return (
        _any_match(STATE_PATTERN, paths)
        and not _any_match(UI_PATTERN, paths)
        and not _any_match(API_PATTERN, paths)
    )


CLASSIFICATION_RULES: List[Tuple[Callable[[Sequence[str]], bool], ChangeCategory]] = [
    (is_bug_fix, ChangeCategory.BUG_FIX),
    (is_test_update, ChangeCategory.TEST_UPDATE),
    (is_docs_update, ChangeCategory.DOCS_UPDATE),
    (is_config_update, ChangeCategory.CONFIG_UPDATE),
    (is_ui_api_integration, ChangeCategory.UI_API_INTEGRATION),
    (is_ui_only, ChangeCategory.UI_ONLY),
    (is_api_only, ChangeCategory.API_ONLY),
    (is_state_management, ChangeCategory.STATE_MANAGEMENT),
]


def classify_changes(paths: Sequence[str]) -> ChangeCategory:
    """Classify a change set into exactly one :class:`ChangeCategory`.

    Parameters
    ----------
    paths : Sequence[str]
        Changed paths relative to the repository root.

    Returns
    -------
    ChangeCategory
        The category of the first matching rule, or ``GENERIC``.

    Raises
    ------
    ValueError
        If ``paths`` is empty. Callers are expected to stop earlier when
        there is nothing to commit.
    """
    if not paths:
        raise ValueError("Cannot classify an empty change set")
    for predicate, category in CLASSIFICATION_RULES:
        if predicate(paths):
            return category
    return ChangeCategory.GENERIC


def summarize_category(category: ChangeCategory, paths: Sequence[str], max_names: int = 3) -> str:
    """Build a one-line summary such as ``UI update: Button.tsx, Card.tsx``."""
    names = [PurePosixPath(path).name or path for path in paths[:max_names]]
    summary = f"{category.label}: {', '.join(names)}"
    remaining = len(paths) - len(names)
    if remaining > 0:
        summary += f" and {remaining} more"
    return summary
