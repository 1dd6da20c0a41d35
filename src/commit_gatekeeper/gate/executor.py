"""
Gate-and-heal execution.

A *gate* is an external validation command (lint or build) that must
exit with status 0 before a commit may be created. :class:`GateExecutor`
runs a gate with a bounded number of attempts. Between a failed attempt
and the next one it *heals*: the failure output is handed to the
configured remediation strategies, and the original gate command is then
run again to verify. The executor knows nothing about why a command
failed beyond its exit status and raw output.

State transitions::

    IDLE -> RUNNING -> SUCCESS
                    -> FAILING -> HEALING -> RUNNING (attempt + 1)
                               -> EXHAUSTED
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Pattern

from commit_gatekeeper.gate.process import CommandRunner


logger = logging.getLogger(__name__)
# Attach a null handler to avoid logging errors when the root logger is not
# configured. Logs will propagate to the root when configured by the CLI.
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


MAX_HINT_LINES = 10

# Marker groups in priority order; the first group with any match wins.
HINT_MARKERS: List[Pattern[str]] = [
    re.compile(r"\berror\b|\bERR!|✖|×", re.IGNORECASE),
    re.compile(r"\bfail(ed|ure)?\b|\bexception\b|\btraceback\b", re.IGNORECASE),
    re.compile(r"\bwarn(ing)?\b", re.IGNORECASE),
]


class GateKind(Enum):
    """The two gates a commit has to pass."""

    LINT = "lint"
    BUILD = "build"


class GateState(Enum):
    IDLE = "idle"
    RUNNING = "running"
    FAILING = "failing"
    HEALING = "healing"
    SUCCESS = "success"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class GateResult:
    """Outcome of a single gate attempt."""

    kind: GateKind
    exit_code: int
    output: str
    attempt: int

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0


@dataclass
class GateOutcome:
    """Summary of a gate that reached the SUCCESS state."""

    kind: GateKind
    attempts: int
    heal_count: int
    result: GateResult
    history: List[GateResult] = field(default_factory=list)


def extract_failure_hint(output: str, max_lines: int = MAX_HINT_LINES) -> List[str]:
    """Pick the most relevant lines of a failed command's output.

    Lines matching the highest-priority marker group are returned in
    output order. If no marker matches, the last non-empty lines are
    returned instead.
    """
    lines = [line.rstrip() for line in output.splitlines() if line.strip()]
    for pattern in HINT_MARKERS:
        matched = [line for line in lines if pattern.search(line)]
        if matched:
            return matched[:max_lines]
    return lines[-max_lines:]


class GateExhausted(Exception):
    """Raised when a gate still fails after its last permitted attempt."""

    def __init__(self, kind: GateKind, result: GateResult, attempts: int) -> None:
        self.kind = kind
        self.result = result
        self.attempts = attempts
        noun = "attempt" if attempts == 1 else "attempts"
        super().__init__(
            f"{kind.value} gate failed after {attempts} {noun} (exit code {result.exit_code})"
        )

    @property
    def output(self) -> str:
        return self.result.output

    @property
    def hint(self) -> List[str]:
        return extract_failure_hint(self.result.output)

    def tail(self, lines: int = 40) -> str:
        """Return the last ``lines`` lines of the final attempt's output."""
        return "\n".join(self.result.output.splitlines()[-lines:])


Listener = Callable[[GateState, GateKind, int, Optional[GateResult]], None]


class GateExecutor:
    """Run gates with bounded retries and remediation between attempts.

    Parameters
    ----------
    runner : CommandRunner
        Used to execute the gate command.
    remediator : Remediator
        Invoked with the failure output before each retry.
    listener : Optional[Listener]
        Called on every state transition, e.g. to drive progress output.
    """

    def __init__(self, runner: CommandRunner, remediator, listener: Optional[Listener] = None) -> None:
        self.runner = runner
        self.remediator = remediator
        self.listener = listener

    def _notify(self, state: GateState, kind: GateKind, attempt: int, result: Optional[GateResult] = None) -> None:
        logger.debug("%s gate -> %s (attempt %d)", kind.value, state.value, attempt)
        if self.listener is not None:
            self.listener(state, kind, attempt, result)

    def run_gate(
        self,
        kind: GateKind,
        command: str,
        fix_command: Optional[str],
        max_attempts: int,
        heal_enabled: bool,
    ) -> GateOutcome:
        """Run ``command`` until it passes or the attempt budget is spent.

        Parameters
        ----------
        kind : GateKind
            Which gate is being run.
        command : str
            The gate command line.
        fix_command : Optional[str]
            Fix variant handed to the remediation strategies.
        max_attempts : int
            Total number of attempts allowed for this gate, at least 1.
        heal_enabled : bool
            When False the first failure is final.

        Returns
        -------
        GateOutcome
            Details of the successful run.

        Raises
        ------
        GateExhausted
            If the final permitted attempt fails.
        ValueError
            If ``max_attempts`` is below 1.
        """
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        history: List[GateResult] = []
        heal_count = 0
        attempt = 1
        self._notify(GateState.IDLE, kind, attempt)
        while True:
            self._notify(GateState.RUNNING, kind, attempt)
            completed = self.runner.run(command)
            result = GateResult(kind=kind, exit_code=completed.exit_code, output=completed.output, attempt=attempt)
            history.append(result)

            if result.succeeded:
                self._notify(GateState.SUCCESS, kind, attempt, result)
                logger.info("%s gate passed on attempt %d", kind.value, attempt)
                return GateOutcome(kind=kind, attempts=attempt, heal_count=heal_count, result=result, history=history)

            self._notify(GateState.FAILING, kind, attempt, result)
            if not heal_enabled or attempt >= max_attempts:
                self._notify(GateState.EXHAUSTED, kind, attempt, result)
                logger.error("%s gate exhausted after %d attempt(s)", kind.value, attempt)
                raise GateExhausted(kind, result, attempt)

            heal_count += 1
            hint = extract_failure_hint(result.output)
            logger.info(
                "%s gate failed on attempt %d/%d, healing. Hint:\n%s",
                kind.value,
                attempt,
                max_attempts,
                "\n".join(hint),
            )
            self._notify(GateState.HEALING, kind, attempt, result)
            self.remediator.attempt(kind, result.output, fix_command)
            attempt += 1
