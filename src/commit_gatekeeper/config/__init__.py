"""
Configuration loading for commit_gatekeeper.

Provides the immutable :class:`RunConfig` snapshot and its loader. See
:mod:`commit_gatekeeper.config.loader` for implementation details.
"""

from .loader import ConfigError, RunConfig, load_config  # noqa: F401
