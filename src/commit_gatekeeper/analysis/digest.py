"""
Build a :class:`ChangeDigest` from a change set.

The digest is meant for a human reviewing what is about to be committed:
the number of files, the ``--stat`` block exactly as Git prints it, and a
short preview of added and removed lines for the first few files.
"""

from __future__ import annotations

import logging
from typing import List, Sequence

from commit_gatekeeper.analysis.change_model import ChangeDigest, FilePreview


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


MAX_PREVIEW_FILES = 10
MAX_PREVIEW_LINES = 12


def is_binary_diff(diff: str) -> bool:
    """Return True when Git reported the file as binary instead of a patch."""
    for line in diff.splitlines():
        if line.startswith("Binary files ") and line.endswith(" differ"):
            return True
        if line == "GIT binary patch":
            return True
    return False


def extract_changed_lines(diff: str, max_lines: int = MAX_PREVIEW_LINES) -> List[str]:
    """Return up to ``max_lines`` added/removed lines of a unified diff.

    File headers (``+++``/``---`` before the first hunk of each file) and
    hunk markers are excluded. Inside a hunk, a changed line whose content
    itself starts with ``--`` or ``++`` is kept.
    """
    lines: List[str] = []
    in_header = True
    for line in diff.splitlines():
        if line.startswith("diff --git "):
            in_header = True
            continue
        if line.startswith("@@"):
            in_header = False
            continue
        if in_header and line.startswith(("+++", "---")):
            continue
        if line.startswith(("+", "-")):
            lines.append(line)
            if len(lines) >= max_lines:
                break
    return lines


def build_digest(
    client,
    paths: Sequence[str],
    detailed: bool = True,
    max_files: int = MAX_PREVIEW_FILES,
    max_lines: int = MAX_PREVIEW_LINES,
) -> ChangeDigest:
    """Compose the digest for ``paths``.

    Parameters
    ----------
    client : GitClient
        Any object exposing ``get_diff_stat()`` and ``get_diff(path)``.
    paths : Sequence[str]
        The change set.
    detailed : bool
        When False only the file count and diff stat are produced.
    max_files : int
        Maximum number of files previewed.
    max_lines : int
        Maximum number of changed lines previewed per file.
    """
    digest = ChangeDigest(file_count=len(paths))
    if not paths:
        return digest

    digest.stat = client.get_diff_stat()
    if not detailed:
        return digest

    for path in paths[:max_files]:
        diff = client.get_diff(path)
        if not diff.strip() or is_binary_diff(diff):
            digest.previews.append(FilePreview(path=path, has_diff=False))
            continue
        digest.previews.append(FilePreview(path=path, lines=extract_changed_lines(diff, max_lines)))

    digest.omitted = max(0, len(paths) - max_files)
    logger.debug(
        "Digest built: %d file(s), %d previewed, %d omitted",
        digest.file_count,
        len(digest.previews),
        digest.omitted,
    )
    return digest
