"""
Version control system (VCS) integration.

This package contains the Git client used by the gatekeeper to detect
the repository root, list local changes, read diffs, stage and commit.
"""

from .git_client import GitClient, GitError  # noqa: F401
