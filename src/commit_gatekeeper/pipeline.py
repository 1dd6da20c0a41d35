"""
Top-level orchestration of a gatekeeper run.

:class:`Gatekeeper` strings the components together in a fixed order:

1. preconditions: required tools are available and there is something
   to commit on a branch that may be committed to;
2. analysis: category, derived summary, digest and sensitive paths;
3. composition of the commit message;
4. the lint gate, then the build gate unless skipped;
5. staging and committing, only after both gates succeeded.

Each step is a separate method so the CLI can report progress between
them; :meth:`Gatekeeper.run` performs the whole sequence. Any fatal error
aborts before step 5, so no partial commit is ever created.
"""

from __future__ import annotations

import logging
import shlex
import shutil
from dataclasses import dataclass, field
from typing import Callable, List, Mapping, Optional, Set, Tuple

from commit_gatekeeper.analysis.change_classifier import ChangeCategory, classify_changes, summarize_category
from commit_gatekeeper.analysis.change_model import ChangeDigest, ChangeSet
from commit_gatekeeper.analysis.digest import build_digest
from commit_gatekeeper.analysis.sensitive_paths import flag_sensitive_paths
from commit_gatekeeper.config.loader import RunConfig
from commit_gatekeeper.gate.executor import GateExecutor, GateKind, GateOutcome, Listener
from commit_gatekeeper.gate.process import CommandRunner
from commit_gatekeeper.gate.remediation import FixCommandRemediation, Remediator, resolve_hook
from commit_gatekeeper.message.composer import choose_summary, compose_message, timestamp_prefix


logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


class PreconditionError(Exception):
    """Raised when the run cannot start: missing tool or no repository."""

    pass


class NothingToCommit(PreconditionError):
    """Raised when the working tree has no pending changes."""

    pass


class ProtectedBranchError(Exception):
    """Raised when committing on a protected branch without override."""

    pass


class EmptySummaryError(Exception):
    """Raised when no commit summary could be obtained."""

    pass


def program_of(command: str) -> Optional[str]:
    """Return the executable a command line starts with.

    Leading ``NAME=value`` environment assignments are skipped.
    """
    try:
        tokens = shlex.split(command)
    except ValueError:
        tokens = command.split()
    for token in tokens:
        if "=" in token and not token.startswith(("/", ".")):
            continue
        return token
    return None


def require_tools(commands: List[str], which: Optional[Callable[[str], Optional[str]]] = None) -> None:
    """Ensure the program of every command line can be found.

    Raises
    ------
    PreconditionError
        Naming the first missing program.
    """
    which = which or shutil.which
    for command in commands:
        program = program_of(command)
        if program is None:
            raise PreconditionError(f"Empty command configured: {command!r}")
        if which(program) is None:
            raise PreconditionError(f"Required tool not found on PATH: {program}")


@dataclass
class Analysis:
    """What the gatekeeper learned about the pending changes."""

    changes: ChangeSet
    category: ChangeCategory
    auto_summary: Optional[str]
    digest: ChangeDigest
    sensitive: Set[str] = field(default_factory=set)


@dataclass
class RunReport:
    """Result of a completed run."""

    branch: str
    analysis: Analysis
    message: str
    gates: List[GateOutcome]
    staged_stat: str = ""


SummaryPrompt = Callable[[Optional[str]], Optional[str]]


class Gatekeeper:
    """Run the full inspect, gate and commit sequence for one repository.

    Parameters
    ----------
    client : GitClient
        Version-control collaborator.
    config : RunConfig
        Settings snapshot for this run, never modified.
    runner : CommandRunner
        Executes gate, fix and hook commands.
    environ : Optional[Mapping[str, str]]
        Environment used to resolve the remediation hook; defaults to
        ``os.environ``.
    """

    def __init__(
        self,
        client,
        config: RunConfig,
        runner: CommandRunner,
        environ: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.client = client
        self.config = config
        self.runner = runner
        strategies = [FixCommandRemediation(runner, config.autofix_once)]
        hook = resolve_hook(config.heal_hook_env, runner, environ)
        if hook is not None:
            strategies.append(hook)
        self.remediator = Remediator(strategies)

    # ------------------------------------------------------------------
    # Preconditions
    # ------------------------------------------------------------------
    def check_tools(self, which: Optional[Callable[[str], Optional[str]]] = None) -> None:
        commands = [self.config.lint_command]
        if not self.config.skip_build:
            commands.append(self.config.build_command)
        require_tools(commands, which)

    def inspect(self) -> Tuple[str, ChangeSet]:
        """Return the current branch and pending changes.

        Raises
        ------
        NothingToCommit
            If the working tree is clean.
        ProtectedBranchError
            If the current branch is protected and no override is set.
        """
        changes = self.client.get_changes()
        if not changes:
            raise NothingToCommit("No changes to commit")
        branch = self.client.get_current_branch()
        if branch in self.config.protected_branches and not self.config.allow_protected_branch:
            raise ProtectedBranchError(
                f"Refusing to commit on protected branch '{branch}' (use --force to override)"
            )
        return branch, changes

    # ------------------------------------------------------------------
    # Analysis and message
    # ------------------------------------------------------------------
    def analyze(self, changes: ChangeSet) -> Analysis:
        category = classify_changes(changes)
        auto_summary = summarize_category(category, changes) if self.config.auto_summary else None
        digest = build_digest(self.client, changes, detailed=self.config.detailed_digest)
        sensitive = flag_sensitive_paths(changes)
        if sensitive:
            logger.info("Sensitive paths in change set: %s", ", ".join(sorted(sensitive)))
        return Analysis(
            changes=changes,
            category=category,
            auto_summary=auto_summary,
            digest=digest,
            sensitive=sensitive,
        )

    def resolve_summary(self, auto_summary: Optional[str], prompt: Optional[SummaryPrompt] = None) -> str:
        """Pick the commit summary.

        An explicit summary from the configuration wins. Otherwise an
        interactive prompt is offered the derived summary as its default;
        in non-interactive mode the derived summary is used directly.

        Raises
        ------
        EmptySummaryError
            If every source is empty.
        """
        answer = None
        if not self.config.summary and not self.config.non_interactive and prompt is not None:
            answer = prompt(auto_summary)
        summary = choose_summary(self.config.summary or answer, auto_summary)
        if summary is None:
            raise EmptySummaryError("No commit summary available; pass --summary")
        return summary

    def compose(self, summary: str) -> str:
        return compose_message(timestamp_prefix(), summary)

    # ------------------------------------------------------------------
    # Gates
    # ------------------------------------------------------------------
    def run_gates(self, listener: Optional[Listener] = None) -> List[GateOutcome]:
        """Run the lint gate and then, unless skipped, the build gate.

        Raises
        ------
        GateExhausted
            From the first gate that cannot be made to pass.
        """
        executor = GateExecutor(self.runner, self.remediator, listener)
        outcomes = [
            executor.run_gate(
                GateKind.LINT,
                self.config.lint_command,
                self.config.lint_fix_command,
                self.config.lint_max_attempts,
                self.config.heal_enabled,
            )
        ]
        if self.config.skip_build:
            logger.info("Build gate skipped by configuration")
            return outcomes
        outcomes.append(
            executor.run_gate(
                GateKind.BUILD,
                self.config.build_command,
                None,
                self.config.build_max_attempts,
                self.config.heal_enabled,
            )
        )
        return outcomes

    # ------------------------------------------------------------------
    # Commit
    # ------------------------------------------------------------------
    def commit(self, message: str) -> str:
        """Stage everything and commit; return the staged diff stat."""
        self.client.stage_all()
        staged_stat = self.client.get_staged_stat()
        self.client.commit(message)
        logger.info("Committed: %s", message)
        return staged_stat

    def run(self, prompt: Optional[SummaryPrompt] = None, listener: Optional[Listener] = None) -> RunReport:
        """Perform the whole sequence and return a report."""
        branch, changes = self.inspect()
        analysis = self.analyze(changes)
        message = self.compose(self.resolve_summary(analysis.auto_summary, prompt))
        gates = self.run_gates(listener)
        staged_stat = self.commit(message)
        return RunReport(branch=branch, analysis=analysis, message=message, gates=gates, staged_stat=staged_stat)
