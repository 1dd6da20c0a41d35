import logging

import pytest

from commit_gatekeeper.gate.process import CommandResult


class FakeGitClient:
    """In-memory stand-in for GitClient."""

    def __init__(self, changes=(), branch="feature/login", diffs=None):
        self.changes = tuple(changes)
        self.branch = branch
        self.diffs = diffs or {}
        self.staged = False
        self.commits = []

    def get_changes(self):
        return self.changes

    def has_pending_changes(self):
        return bool(self.changes)

    def get_current_branch(self):
        return self.branch

    def get_diff_stat(self):
        return f" {len(self.changes)} files changed"

    def get_diff(self, path):
        return self.diffs.get(path, "")

    def get_staged_stat(self):
        return " staged" if self.staged else ""

    def stage_all(self):
        self.staged = True

    def commit(self, message):
        self.commits.append(message)


class FakeRunner:
    """Scripted command runner keyed by command line.

    ``script`` maps a command to a list of exit codes; the last code
    repeats once the list is exhausted. Unknown commands succeed.
    """

    def __init__(self, script=None):
        self.script = {command: list(codes) for command, codes in (script or {}).items()}
        self.calls = []

    def run(self, command, input_text=None):
        self.calls.append((command, input_text))
        codes = self.script.get(command, [0])
        code = codes.pop(0) if len(codes) > 1 else codes[0]
        output = "" if code == 0 else f"{command}: error TS2304: Cannot find name 'foo'"
        return CommandResult(exit_code=code, output=output)

    def count(self, command):
        return sum(1 for called, _ in self.calls if called == command)


@pytest.fixture
def fake_git():
    return FakeGitClient


@pytest.fixture
def fake_runner():
    return FakeRunner


@pytest.fixture(autouse=True)
def isolate_heal_hook(monkeypatch):
    """Make sure a developer's own remediation hook never runs during tests."""
    monkeypatch.delenv("GATEKEEPER_HEAL_HOOK", raising=False)


@pytest.fixture(autouse=True)
def reset_root_logging():
    """Drop handlers the CLI installed so later tests never write to a closed stream."""
    yield
    for handler in list(logging.root.handlers):
        logging.root.removeHandler(handler)
