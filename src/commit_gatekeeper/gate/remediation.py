"""
Remediation strategies invoked between gate attempts.

Remediation is best effort. A strategy may fail, or succeed without
changing the gate's outcome; either way the executor re-runs the
original gate command to verify. Failures inside a strategy are raised
as :class:`RemediationFailure` and absorbed by :class:`Remediator`, which
logs them and carries on.

Two kinds of strategy exist:

* the built-in fix variant of the lint command (``npm run lint -- --fix``),
  enabled by the legacy "apply auto-fix" switch;
* an external hook that receives the full failure output. The hook is
  never configured as a literal command here; its identifier is read
  from an environment variable, and it may be a command (fed on stdin)
  or an ``http(s)://`` URL (fed as the body of a POST request).
"""

from __future__ import annotations

import logging
import os
from typing import List, Mapping, Optional

import requests

from commit_gatekeeper.gate.executor import GateKind
from commit_gatekeeper.gate.process import CommandRunner


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


DEFAULT_HOOK_ENV = "GATEKEEPER_HEAL_HOOK"
DEFAULT_WEBHOOK_TIMEOUT = 30.0


class RemediationFailure(Exception):
    """Raised when a remediation strategy cannot be invoked or applied."""

    pass


class RemediationStrategy:
    """Base class for remediation strategies."""

    name = "remediation"

    def attempt(self, kind: GateKind, failure_output: str, fix_command: Optional[str] = None) -> None:
        raise NotImplementedError


class FixCommandRemediation(RemediationStrategy):
    """Run the fix variant of the lint command once per heal step.

    Only applies to the lint gate, and only when ``enabled`` is set.
    ``last_succeeded`` records whether the most recent invocation exited
    cleanly (None if it never ran).
    """

    name = "fix command"

    def __init__(self, runner: CommandRunner, enabled: bool) -> None:
        self.runner = runner
        self.enabled = enabled
        self.last_succeeded: Optional[bool] = None
        self.invocations = 0

    def attempt(self, kind: GateKind, failure_output: str, fix_command: Optional[str] = None) -> None:
        if not self.enabled or kind is not GateKind.LINT or not fix_command:
            return
        self.invocations += 1
        result = self.runner.run(fix_command)
        self.last_succeeded = result.succeeded
        if not result.succeeded:
            raise RemediationFailure(f"Fix command {fix_command!r} exited with {result.exit_code}")
        logger.info("Fix command %r applied cleanly", fix_command)


class CommandHookRemediation(RemediationStrategy):
    """Pipe the failure output into an external command's standard input."""

    name = "hook command"

    def __init__(self, runner: CommandRunner, command: str) -> None:
        self.runner = runner
        self.command = command

    def attempt(self, kind: GateKind, failure_output: str, fix_command: Optional[str] = None) -> None:
        result = self.runner.run(self.command, input_text=failure_output)
        # The hook's own status is informational only.
        logger.debug("Remediation hook %r exited with %d", self.command, result.exit_code)


class WebhookRemediation(RemediationStrategy):
    """POST the failure output to an HTTP remediation hook."""

    name = "webhook"

    def __init__(self, url: str, timeout: float = DEFAULT_WEBHOOK_TIMEOUT) -> None:
        self.url = url
        self.timeout = timeout

    def attempt(self, kind: GateKind, failure_output: str, fix_command: Optional[str] = None) -> None:
        logger.debug("Posting %s failure output to %s", kind.value, self.url)
        try:
            response = requests.post(
                self.url,
                data=failure_output.encode("utf-8"),
                headers={
                    "Content-Type": "text/plain; charset=utf-8",
                    "X-Gate-Kind": kind.value,
                },
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as exc:
            raise RemediationFailure(f"Webhook {self.url} unreachable: {exc}") from exc
        logger.debug("Webhook %s answered HTTP %s", self.url, response.status_code)


def resolve_hook(
    env_var: str,
    runner: CommandRunner,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[RemediationStrategy]:
    """Build the external hook strategy named by ``env_var``, if any.

    An unset or blank variable means no hook is configured.
    """
    env = os.environ if environ is None else environ
    identifier = (env.get(env_var) or "").strip()
    if not identifier:
        logger.debug("No remediation hook configured in %s", env_var)
        return None
    if identifier.startswith(("http://", "https://")):
        return WebhookRemediation(identifier)
    return CommandHookRemediation(runner, identifier)


class Remediator:
    """Apply remediation strategies in order, absorbing their failures."""

    def __init__(self, strategies: List[RemediationStrategy]) -> None:
        self.strategies = list(strategies)
        self.failures: List[RemediationFailure] = []

    def attempt(self, kind: GateKind, failure_output: str, fix_command: Optional[str] = None) -> None:
        for strategy in self.strategies:
            try:
                strategy.attempt(kind, failure_output, fix_command)
            except RemediationFailure as exc:
                self.failures.append(exc)
                logger.warning("Remediation via %s failed: %s", strategy.name, exc)
            except OSError as exc:
                failure = RemediationFailure(f"{strategy.name} could not be invoked: {exc}")
                self.failures.append(failure)
                logger.warning("Remediation via %s failed: %s", strategy.name, exc)
            except Exception as exc:
                failure = RemediationFailure(f"{strategy.name} raised unexpectedly: {exc}")
                self.failures.append(failure)
                logger.warning("Remediation via %s raised unexpectedly", strategy.name, exc_info=True)
