"""
Change analysis for the gatekeeper.

This package turns the set of changed paths into a category, a derived
summary and a reviewable digest, and flags paths that look sensitive.
See :mod:`commit_gatekeeper.analysis.change_classifier`,
:mod:`commit_gatekeeper.analysis.digest` and
:mod:`commit_gatekeeper.analysis.sensitive_paths` for details.
"""

from .change_classifier import ChangeCategory, classify_changes, summarize_category  # noqa: F401
from .change_model import ChangeDigest, ChangeSet, FilePreview  # noqa: F401
from .digest import build_digest  # noqa: F401
from .sensitive_paths import flag_sensitive_paths  # noqa: F401
