"""
Gate execution and self-healing.

:mod:`commit_gatekeeper.gate.executor` holds the bounded retry loop,
:mod:`commit_gatekeeper.gate.remediation` the strategies invoked between
attempts and :mod:`commit_gatekeeper.gate.process` the subprocess seam.
"""

from .executor import GateExecutor, GateExhausted, GateKind, GateResult  # noqa: F401
from .process import CommandResult, CommandRunner  # noqa: F401
from .remediation import Remediator, RemediationFailure, resolve_hook  # noqa: F401
