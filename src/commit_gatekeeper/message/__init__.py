"""Commit message composition. See :mod:`commit_gatekeeper.message.composer`."""

from .composer import choose_summary, compose_message, timestamp_prefix  # noqa: F401
