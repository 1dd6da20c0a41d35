"""
Command line interface for the commit_gatekeeper tool.

This module defines the ``main`` function which is used as the entry
point when executing the ``gatekeep`` command. It orchestrates
repository detection, configuration loading, change analysis, message
composition, the lint and build gates with self-healing, and finally the
commit. Nothing is ever pushed. Exit codes are listed below.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

import click

from commit_gatekeeper import __version__
from commit_gatekeeper.analysis.sensitive_paths import matching_rule
from commit_gatekeeper.config.loader import ConfigError, load_config
from commit_gatekeeper.gate.executor import GateExhausted, GateKind, GateResult, GateState, extract_failure_hint
from commit_gatekeeper.gate.process import CommandRunner
from commit_gatekeeper.pipeline import (
    EmptySummaryError,
    Gatekeeper,
    NothingToCommit,
    PreconditionError,
    ProtectedBranchError,
)
from commit_gatekeeper.vcs.git_client import GitClient, GitError

# Create a module-level logger. Attach a null handler and disable
# propagation to avoid logging errors when the root logger's stream is
# closed (such as during unit tests). When logging is configured by
# the CLI, root handlers will be added and messages will propagate.
logger = logging.getLogger(__name__)
if not logger.handlers:
    logger.addHandler(logging.NullHandler())
    logger.propagate = False


# ---------------------------------------------------------------------------
# Exit codes
# ---------------------------------------------------------------------------
EXIT_SUCCESS = 0
EXIT_GENERIC_ERROR = 1
EXIT_NO_REPO = 3
EXIT_NO_CHANGES = 4
EXIT_CONFIG_ERROR = 5
EXIT_VCS_FAILURE = 6
EXIT_PROTECTED_BRANCH = 7
EXIT_EMPTY_SUMMARY = 8
EXIT_GATE_FAILED = 9

TOTAL_STEPS = 7
OUTPUT_TAIL_LINES = 40
MAX_LISTED_FILES = 5


# ---------------------------------------------------------------------------
# Progress and status display utilities
# ---------------------------------------------------------------------------

class ProgressIndicator:
    """Context manager printing a message and the time a step took."""

    def __init__(self, message: str):
        self.message = message
        self.start_time = 0.0

    def __enter__(self):
        self.start_time = time.time()
        click.echo(f"→ {self.message}...")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type is None:
            elapsed = time.time() - self.start_time
            click.echo(f"  ✓ Done ({elapsed:.1f}s)")
        return False


def print_step(step_num: int, total_steps: int, message: str):
    """Print a step indicator."""
    click.echo(f"\n{'='*60}")
    click.echo(f"Step {step_num}/{total_steps}: {message}")
    click.echo(f"{'='*60}")


def print_info(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}ℹ {message}")


def print_success(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✓ {message}")


def print_warning(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}⚠ {message}")


def print_error(message: str, indent: int = 0):
    prefix = "  " * indent
    click.echo(f"{prefix}✗ {message}", err=True)


def print_block(text: str, indent: int = 1):
    """Echo a multi-line block with a fixed indentation."""
    prefix = "  " * indent
    for line in text.splitlines():
        click.echo(f"{prefix}{line}")


def report_gate_progress(state: GateState, kind: GateKind, attempt: int, result: Optional[GateResult]) -> None:
    """Listener printing gate state transitions."""
    name = kind.value
    if state is GateState.RUNNING:
        print_info(f"Running {name} gate (attempt {attempt})", indent=1)
    elif state is GateState.SUCCESS:
        print_success(f"{name} gate passed on attempt {attempt}", indent=1)
    elif state is GateState.FAILING and result is not None:
        print_warning(f"{name} gate failed with exit code {result.exit_code}", indent=1)
    elif state is GateState.HEALING and result is not None:
        print_info("Attempting remediation before retry. Failure hint:", indent=1)
        for line in extract_failure_hint(result.output):
            click.echo(f"      {line}")


def prompt_for_summary(default: Optional[str]) -> Optional[str]:
    """Ask the user for a one-line summary, offering the derived one."""
    click.echo("")
    return click.prompt(
        "   Commit summary",
        default=default or "",
        show_default=bool(default),
    )


def report_gate_failure(exc: GateExhausted) -> None:
    print_error(f"{exc.kind.value.capitalize()} gate failed: {exc}")
    hint = exc.hint
    if hint:
        click.echo("\n  Most relevant output:", err=True)
        for line in hint:
            click.echo(f"    {line}", err=True)
    click.echo(f"\n  Last {OUTPUT_TAIL_LINES} lines of output:", err=True)
    for line in exc.tail(OUTPUT_TAIL_LINES).splitlines():
        click.echo(f"    {line}", err=True)
    print_info("No commit was created.")


def configure_logging(verbose: bool) -> None:
    """Send package log records to stderr; DEBUG with --verbose, else WARNING."""
    # force=True so repeated invocations (tests) replace the root handlers.
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
        force=True,
    )
    for name, item in logging.root.manager.loggerDict.items():
        if name.startswith("commit_gatekeeper") and isinstance(item, logging.Logger):
            item.propagate = True


def _collect_overrides(**options: Any) -> Dict[str, Any]:
    """Keep only the options the user actually passed."""
    return {key: value for key, value in options.items() if value is not None}


@click.command()
@click.option("--summary", "-m", "summary", help="Commit summary; overrides the derived one.")
@click.option("--no-heal", "no_heal", is_flag=True, help="Fail on the first gate failure instead of healing.")
@click.option("--autofix-once", "autofix_once", is_flag=True, help="Run the lint fix command while healing the lint gate.")
@click.option("--lint-retries", type=click.IntRange(min=1), help="Maximum attempts for the lint gate.")
@click.option("--build-retries", type=click.IntRange(min=1), help="Maximum attempts for the build gate.")
@click.option("--skip-build", "skip_build", is_flag=True, help="Only run the lint gate.")
@click.option("--lint-cmd", help="Command line of the lint gate.")
@click.option("--build-cmd", help="Command line of the build gate.")
@click.option("--fix-cmd", help="Fix variant of the lint command.")
@click.option("--no-digest", "no_digest", is_flag=True, help="Do not preview per-file changes.")
@click.option("--no-auto-summary", "no_auto_summary", is_flag=True, help="Do not derive a summary from the changes.")
@click.option("--force", "force", is_flag=True, help="Allow committing on a protected branch.")
@click.option("--yes", "yes", is_flag=True, help="Non-interactive mode: never prompt.")
@click.option("--verbose", is_flag=True, help="Enable verbose (debug) output.")
@click.version_option(version=__version__, prog_name="gatekeep")
def main(
    summary: Optional[str],
    no_heal: bool,
    autofix_once: bool,
    lint_retries: Optional[int],
    build_retries: Optional[int],
    skip_build: bool,
    lint_cmd: Optional[str],
    build_cmd: Optional[str],
    fix_cmd: Optional[str],
    no_digest: bool,
    no_auto_summary: bool,
    force: bool,
    yes: bool,
    verbose: bool,
) -> None:
    """🚦 Lint, build and commit: only when both gates pass.

    Inspects the pending changes of the current Git repository, derives
    a commit summary, runs the lint and build commands with bounded
    self-healing retries and commits everything once both succeed.
    """
    configure_logging(verbose)

    click.echo("\n" + "=" * 60)
    click.echo("🚦 Commit Gatekeeper".center(60))
    click.echo("=" * 60)

    ctx = click.get_current_context(silent=True)
    current_step = 0

    try:
        # Step 1: Detect repository
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Detecting Repository")

        with ProgressIndicator("Looking for git and the repository root"):
            git_available = shutil.which("git") is not None
            repo_root = GitClient.find_repo_root(Path.cwd()) if git_available else None
        if not git_available:
            print_error("The 'git' executable was not found on PATH.")
            raise click.exceptions.Exit(EXIT_NO_REPO)
        if repo_root is None:
            print_error("No Git repository found in current directory or parent directories.")
            raise click.exceptions.Exit(EXIT_NO_REPO)
        print_success(f"Found Git repository at: {repo_root}")

        # Step 2: Load configuration
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Loading Configuration")

        overrides = _collect_overrides(
            summary=summary,
            heal_enabled=False if no_heal else None,
            autofix_once=True if autofix_once else None,
            lint_max_attempts=lint_retries,
            build_max_attempts=build_retries,
            skip_build=True if skip_build else None,
            lint_command=lint_cmd,
            build_command=build_cmd,
            lint_fix_command=fix_cmd,
            detailed_digest=False if no_digest else None,
            auto_summary=False if no_auto_summary else None,
            allow_protected_branch=True if force else None,
            non_interactive=True if yes else None,
        )
        try:
            config = load_config(repo_root, overrides)
        except ConfigError as exc:
            print_error(f"Configuration error: {exc}")
            raise click.exceptions.Exit(EXIT_CONFIG_ERROR)

        print_success("Configuration loaded")
        print_info(f"Lint: {config.lint_command} (max {config.lint_max_attempts} attempts)", indent=1)
        if config.skip_build:
            print_info("Build: skipped", indent=1)
        else:
            print_info(f"Build: {config.build_command} (max {config.build_max_attempts} attempts)", indent=1)
        print_info(f"Auto-heal: {'enabled' if config.heal_enabled else 'disabled'}", indent=1)

        gatekeeper = Gatekeeper(GitClient(repo_root), config, CommandRunner(repo_root))
        try:
            gatekeeper.check_tools()
        except PreconditionError as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_NO_REPO)

        # Step 3: Inspect changes
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Analyzing Changes")

        try:
            with ProgressIndicator("Scanning for changed files"):
                branch, changes = gatekeeper.inspect()
        except NothingToCommit:
            print_warning("No changes detected to commit.")
            raise click.exceptions.Exit(EXIT_NO_CHANGES)
        except ProtectedBranchError as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_PROTECTED_BRANCH)
        except GitError as exc:
            print_error(f"VCS error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        print_info(f"Branch: {click.style(branch, fg='cyan', bold=True)}")
        print_success(f"Found {len(changes)} changed file{'s' if len(changes) != 1 else ''}")
        for path in changes[:MAX_LISTED_FILES]:
            print_info(path, indent=1)
        if len(changes) > MAX_LISTED_FILES:
            print_info(f"... and {len(changes) - MAX_LISTED_FILES} more", indent=1)

        # Step 4: Classify
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Classifying Changes")

        try:
            analysis = gatekeeper.analyze(changes)
        except GitError as exc:
            print_error(f"VCS error: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)

        print_success(f"Category: {analysis.category.label}")
        if analysis.sensitive:
            print_warning("These paths look sensitive; review them before committing:")
            for path in sorted(analysis.sensitive):
                print_warning(f"{path} ({matching_rule(path)})", indent=1)
        click.echo("")
        print_block(analysis.digest.render())

        # Step 5: Compose commit message
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Composing Commit Message")

        try:
            chosen = gatekeeper.resolve_summary(analysis.auto_summary, prompt_for_summary)
        except EmptySummaryError as exc:
            print_error(str(exc))
            raise click.exceptions.Exit(EXIT_EMPTY_SUMMARY)
        message = gatekeeper.compose(chosen)
        print_success(f"Message: {message}")

        # Step 6: Gates
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Running Gates")

        try:
            outcomes = gatekeeper.run_gates(report_gate_progress)
        except GateExhausted as exc:
            report_gate_failure(exc)
            raise click.exceptions.Exit(EXIT_GATE_FAILED)

        # Step 7: Commit
        current_step += 1
        print_step(current_step, TOTAL_STEPS, "Committing")

        try:
            with ProgressIndicator("Staging and committing all changes"):
                staged_stat = gatekeeper.commit(message)
        except GitError as exc:
            print_error(f"Failed to commit changes: {exc}")
            raise click.exceptions.Exit(EXIT_VCS_FAILURE)
        if staged_stat:
            print_block(staged_stat)

        click.echo(f"\n{'='*60}")
        click.echo("✨ Summary")
        click.echo(f"{'='*60}\n")
        summary_items: List[str] = [
            f"✓ Branch: {branch}",
            f"✓ Commit: {message}",
            f"✓ Files changed: {len(changes)}",
        ]
        for outcome in outcomes:
            healed = f", healed {outcome.heal_count}x" if outcome.heal_count else ""
            summary_items.append(f"✓ {outcome.kind.value}: passed in {outcome.attempts} attempt(s){healed}")
        for item in summary_items:
            click.echo(f"  {item}")
        click.echo("\n🎉 Committed locally. Nothing was pushed.\n")

        raise click.exceptions.Exit(EXIT_SUCCESS)

    except click.exceptions.Exit:
        raise
    except Exception as exc:
        logging.exception("Unhandled error: %s", exc)
        print_error(f"Unexpected error: {exc}")
        ctx.exit(EXIT_GENERIC_ERROR)
