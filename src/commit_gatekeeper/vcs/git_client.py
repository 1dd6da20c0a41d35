"""
Git client implementation for commit_gatekeeper.

This module wraps the Git operations the gatekeeper needs: reading the
current branch, listing pending changes, collecting diff text and
statistics, and finally staging and committing. All subprocess calls go
through :meth:`GitClient._run` so that unit tests can mock a single
seam. Nothing in this module ever talks to a remote.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import List, Optional, Tuple


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# Porcelain lines are "XY path": two status characters and a separator.
STATUS_PREFIX_WIDTH = 3


class GitError(Exception):
    """Raised when a Git command fails."""

    pass


_C_ESCAPES = {
    "a": 0x07,
    "b": 0x08,
    "t": 0x09,
    "n": 0x0A,
    "v": 0x0B,
    "f": 0x0C,
    "r": 0x0D,
    '"': 0x22,
    "\\": 0x5C,
}


def _unquote_path(path: str) -> str:
    """Decode a path Git quoted because it holds special characters.

    Git wraps such paths in double quotes and writes them with C-style
    escapes, non-ASCII bytes as three-digit octal (``"caf\\303\\251.txt"``).
    The escaped bytes are UTF-8.
    """
    if not (len(path) >= 2 and path.startswith('"') and path.endswith('"')):
        return path
    inner = path[1:-1]
    raw = bytearray()
    i = 0
    while i < len(inner):
        char = inner[i]
        if char != "\\" or i + 1 >= len(inner):
            raw.extend(char.encode("utf-8"))
            i += 1
            continue
        escape = inner[i + 1]
        octal = inner[i + 1 : i + 4]
        if len(octal) == 3 and all(c in "01234567" for c in octal):
            raw.append(int(octal, 8) & 0xFF)
            i += 4
        elif escape in _C_ESCAPES:
            raw.append(_C_ESCAPES[escape])
            i += 2
        else:
            raw.extend(escape.encode("utf-8"))
            i += 2
    return raw.decode("utf-8", errors="replace")


def parse_porcelain(output: str) -> Tuple[str, ...]:
    """Parse ``git status --porcelain`` output into an ordered change set.

    Lines that are blank or shorter than the status prefix are skipped.
    For renames and copies (``old -> new``) the new path is reported.

    Parameters
    ----------
    output : str
        Raw stdout of ``git status --porcelain``.

    Returns
    -------
    Tuple[str, ...]
        Changed paths in the order Git listed them.
    """
    paths: List[str] = []
    for line in output.splitlines():
        if not line.strip():
            continue
        if len(line) <= STATUS_PREFIX_WIDTH:
            logger.debug("Skipping short status line: %r", line)
            continue

        status_code = line[:2]
        path = line[STATUS_PREFIX_WIDTH:]
        if status_code[0] in ("R", "C") and " -> " in path:
            path = path.split(" -> ", 1)[1]
        path = _unquote_path(path.strip())
        if path:
            paths.append(path)
    return tuple(paths)


class GitClient:
    """Client for interacting with a Git repository."""

    def __init__(self, repo_root: Path) -> None:
        self.repo_root = repo_root

    # ------------------------------------------------------------------
    # Static helpers
    # ------------------------------------------------------------------
    @staticmethod
    def is_repo(path: Path) -> bool:
        """Return True if the given path is the root of a Git repository."""
        return (path / ".git").exists()

    @staticmethod
    def find_repo_root(start: Path) -> Optional[Path]:
        """Find the root of the Git repository starting from ``start``.

        Walk upwards until a ``.git`` entry is found or the filesystem
        root is reached.
        """
        current = start.resolve()
        while True:
            if (current / ".git").exists():
                return current
            if current.parent == current:
                return None
            current = current.parent

    # ------------------------------------------------------------------
    # Basic Git commands
    # ------------------------------------------------------------------
    def _run(self, args: List[str], check: bool = True) -> subprocess.CompletedProcess:
        """Run a Git command in the repository root.

        Raises
        ------
        GitError
            If the command exits with a non-zero status when ``check`` is True,
            or if the ``git`` executable cannot be started.
        """
        full_cmd = ["git"] + args
        logger.debug("Executing Git command: %s", " ".join(full_cmd))
        try:
            result = subprocess.run(
                full_cmd,
                cwd=self.repo_root,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
                encoding="utf-8",
                errors="replace",
            )
        except OSError as e:
            logger.error("Unable to launch git: %s", e)
            raise GitError(f"Unable to launch git: {e}") from e

        if check and result.returncode != 0:
            logger.error(
                "Git command failed: %s\nSTDOUT: %s\nSTDERR: %s",
                " ".join(full_cmd),
                result.stdout,
                result.stderr,
            )
            raise GitError(result.stderr.strip() or result.stdout.strip())
        return result

    # ------------------------------------------------------------------
    # Status and change detection
    # ------------------------------------------------------------------
    def get_current_branch(self) -> str:
        """Return the name of the checked-out branch."""
        result = self._run(["rev-parse", "--abbrev-ref", "HEAD"], check=True)
        return result.stdout.strip()

    def get_changes(self) -> Tuple[str, ...]:
        """Return the changed paths of the working tree.

        Tracked modifications, staged changes and untracked files are all
        included, in ``git status --porcelain`` order.

        Raises
        ------
        GitError
            If the git status command fails.
        """
        result = self._run(["status", "--porcelain"], check=True)
        return parse_porcelain(result.stdout)

    def has_pending_changes(self) -> bool:
        """Return True when the working tree has anything to commit."""
        return bool(self.get_changes())

    # ------------------------------------------------------------------
    # Diff queries
    # ------------------------------------------------------------------
    def get_diff_stat(self) -> str:
        """Return ``git diff HEAD --stat`` for the working tree.

        A repository without any commit yet has no HEAD; an empty string is
        returned in that case rather than an error.
        """
        result = self._run(["diff", "HEAD", "--stat"], check=False)
        if result.returncode != 0:
            logger.debug("Diff stat unavailable: %s", result.stderr.strip())
            return ""
        return result.stdout.rstrip()

    def get_diff(self, path: str) -> str:
        """Return the unified diff of ``path`` against HEAD.

        Untracked and binary files have no textual diff; an empty string is
        returned for them.
        """
        result = self._run(["diff", "HEAD", "--", path], check=False)
        if result.returncode != 0:
            logger.debug("Diff unavailable for %s: %s", path, result.stderr.strip())
            return ""
        return result.stdout

    def get_staged_stat(self) -> str:
        """Return ``git diff --cached --stat`` for the index."""
        result = self._run(["diff", "--cached", "--stat"], check=False)
        return result.stdout.rstrip() if result.returncode == 0 else ""

    # ------------------------------------------------------------------
    # Staging and committing
    # ------------------------------------------------------------------
    def stage_all(self) -> None:
        """Stage every change in the working tree, including deletions."""
        self._run(["add", "-A"], check=True)

    def commit(self, message: str) -> None:
        """Create a commit with the given literal message."""
        self._run(["commit", "-m", message], check=True)
