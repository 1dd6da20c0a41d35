"""
Data models for change analysis.

A :data:`ChangeSet` is the ordered, immutable tuple of changed paths
reported by the repository inspector. :class:`ChangeDigest` is the
textual summary built from it for display and review, composed of one
:class:`FilePreview` per previewed path.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Tuple


ChangeSet = Tuple[str, ...]


@dataclass
class FilePreview:
    """Bounded extract of the added and removed lines of one file.

    Attributes
    ----------
    path : str
        Path of the changed file relative to the repository root.
    lines : List[str]
        Added/removed lines, including their ``+``/``-`` marker.
    has_diff : bool
        False when no textual diff could be obtained (binary, untracked
        or otherwise missing).
    """

    path: str
    lines: List[str] = field(default_factory=list)
    has_diff: bool = True

    @property
    def context_only(self) -> bool:
        """True when a diff exists but contains no added or removed lines."""
        return self.has_diff and not self.lines


@dataclass
class ChangeDigest:
    """Composed description of a change set."""

    file_count: int
    stat: str = ""
    previews: List[FilePreview] = field(default_factory=list)
    omitted: int = 0

    def render(self) -> str:
        """Render the digest as a plain text block."""
        parts = [f"Files changed: {self.file_count}"]
        if self.stat:
            parts.append("Diff stat:")
            parts.append(self.stat)
        for preview in self.previews:
            parts.append(f"--- {preview.path}")
            if not preview.has_diff:
                parts.append("    (no extractable diff: binary, untracked or empty)")
            elif preview.context_only:
                parts.append("    (diff has no added or removed lines)")
            else:
                parts.extend(f"    {line}" for line in preview.lines)
        if self.omitted:
            noun = "file" if self.omitted == 1 else "files"
            parts.append(f"... and {self.omitted} more {noun} not previewed")
        return "\n".join(parts)
