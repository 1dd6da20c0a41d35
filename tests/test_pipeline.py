import re

import pytest

from commit_gatekeeper.analysis.change_classifier import ChangeCategory
from commit_gatekeeper.config.loader import RunConfig
from commit_gatekeeper.gate.executor import GateExhausted, GateKind
from commit_gatekeeper.pipeline import (
    EmptySummaryError,
    Gatekeeper,
    NothingToCommit,
    PreconditionError,
    ProtectedBranchError,
    program_of,
    require_tools,
)


MESSAGE_PATTERN = re.compile(r"^\d{4}:\d{4} - .+$")
LOGIN_CHANGES = ("src/LoginButton.tsx", "src/api/authClient.ts")


def make_gatekeeper(client, runner, **settings):
    settings.setdefault("non_interactive", True)
    return Gatekeeper(client, RunConfig(**settings), runner, environ={})


def test_end_to_end_build_heals_and_commits(fake_git, fake_runner):
    client = fake_git(LOGIN_CHANGES)
    runner = fake_runner({"npm run lint": [0], "npm run build": [1, 1, 0]})
    gatekeeper = make_gatekeeper(client, runner, build_max_attempts=3)

    report = gatekeeper.run()

    assert report.analysis.category is ChangeCategory.UI_API_INTEGRATION
    lint, build = report.gates
    assert lint.attempts == 1
    assert build.attempts == 3
    assert build.heal_count == 2
    assert runner.count("npm run lint") == 1
    assert runner.count("npm run build") == 3
    assert client.staged
    assert client.commits == [report.message]
    assert MESSAGE_PATTERN.match(report.message)
    assert report.message.endswith("UI and API integration: LoginButton.tsx, authClient.ts")


def test_protected_branch_aborts_before_any_gate(fake_git, fake_runner):
    client = fake_git(LOGIN_CHANGES, branch="main")
    runner = fake_runner()
    gatekeeper = make_gatekeeper(client, runner)

    with pytest.raises(ProtectedBranchError):
        gatekeeper.run()
    assert runner.calls == []
    assert client.commits == []


def test_protected_branch_override(fake_git, fake_runner):
    client = fake_git(LOGIN_CHANGES, branch="main")
    report = make_gatekeeper(client, fake_runner(), allow_protected_branch=True).run()
    assert report.branch == "main"
    assert len(client.commits) == 1


def test_nothing_to_commit_is_a_precondition(fake_git, fake_runner):
    gatekeeper = make_gatekeeper(fake_git(()), fake_runner())
    with pytest.raises(NothingToCommit) as excinfo:
        gatekeeper.run()
    assert isinstance(excinfo.value, PreconditionError)


def test_gate_failure_prevents_commit(fake_git, fake_runner):
    client = fake_git(LOGIN_CHANGES)
    runner = fake_runner({"npm run lint": [1]})
    gatekeeper = make_gatekeeper(client, runner, lint_max_attempts=2)

    with pytest.raises(GateExhausted) as excinfo:
        gatekeeper.run()
    assert excinfo.value.kind is GateKind.LINT
    assert runner.count("npm run lint") == 2
    assert runner.count("npm run build") == 0
    assert not client.staged
    assert client.commits == []


def test_heal_disabled_single_attempt(fake_git, fake_runner):
    runner = fake_runner({"npm run build": [1, 0]})
    gatekeeper = make_gatekeeper(fake_git(LOGIN_CHANGES), runner, heal_enabled=False)
    with pytest.raises(GateExhausted):
        gatekeeper.run()
    assert runner.count("npm run build") == 1


def test_skip_build(fake_git, fake_runner):
    runner = fake_runner()
    report = make_gatekeeper(fake_git(LOGIN_CHANGES), runner, skip_build=True).run()
    assert [outcome.kind for outcome in report.gates] == [GateKind.LINT]
    assert runner.count("npm run build") == 0


def test_autofix_runs_fix_command_between_lint_attempts(fake_git, fake_runner):
    runner = fake_runner({"npm run lint": [1, 0]})
    make_gatekeeper(fake_git(LOGIN_CHANGES), runner, autofix_once=True).run()
    commands = [command for command, _ in runner.calls]
    assert commands[:3] == ["npm run lint", "npm run lint -- --fix", "npm run lint"]


def test_hook_from_environment_receives_failure_output(fake_git, fake_runner):
    runner = fake_runner({"npm run build": [1, 0]})
    gatekeeper = Gatekeeper(
        fake_git(LOGIN_CHANGES),
        RunConfig(non_interactive=True),
        runner,
        environ={"GATEKEEPER_HEAL_HOOK": "./heal.sh"},
    )
    gatekeeper.run()
    hook_calls = [(command, stdin) for command, stdin in runner.calls if command == "./heal.sh"]
    assert len(hook_calls) == 1
    assert "error TS2304" in hook_calls[0][1]


def test_user_summary_wins_over_derived(fake_git, fake_runner):
    report = make_gatekeeper(fake_git(LOGIN_CHANGES), fake_runner(), summary="Add login flow").run()
    assert report.message.endswith(" - Add login flow")


def test_interactive_prompt_gets_derived_default(fake_git, fake_runner):
    seen = []

    def prompt(default):
        seen.append(default)
        return "Typed summary"

    gatekeeper = make_gatekeeper(fake_git(LOGIN_CHANGES), fake_runner(), non_interactive=False)
    assert gatekeeper.resolve_summary("UI update: a.tsx", prompt) == "Typed summary"
    assert seen == ["UI update: a.tsx"]


def test_blank_prompt_answer_falls_back_to_derived(fake_git, fake_runner):
    gatekeeper = make_gatekeeper(fake_git(LOGIN_CHANGES), fake_runner(), non_interactive=False)
    assert gatekeeper.resolve_summary("UI update: a.tsx", lambda default: "  ") == "UI update: a.tsx"


def test_empty_summary_in_non_interactive_mode(fake_git, fake_runner):
    runner = fake_runner()
    gatekeeper = make_gatekeeper(fake_git(LOGIN_CHANGES), runner, auto_summary=False)
    with pytest.raises(EmptySummaryError):
        gatekeeper.run()
    assert runner.calls == []


def test_analyze_flags_sensitive_paths(fake_git, fake_runner):
    gatekeeper = make_gatekeeper(fake_git(), fake_runner())
    analysis = gatekeeper.analyze(("src/app.ts", ".env", "app.log"))
    assert analysis.sensitive == {".env", "app.log"}
    assert analysis.digest.file_count == 3


def test_check_tools(fake_git, fake_runner):
    gatekeeper = make_gatekeeper(fake_git(), fake_runner(), build_command="make build")
    found = {"npm": "/usr/bin/npm"}
    with pytest.raises(PreconditionError, match="make"):
        gatekeeper.check_tools(found.get)
    skip = make_gatekeeper(fake_git(), fake_runner(), build_command="make build", skip_build=True)
    skip.check_tools(found.get)


def test_program_of():
    assert program_of("npm run lint") == "npm"
    assert program_of("CI=1 NODE_ENV=test yarn build") == "yarn"
    assert program_of("./scripts/lint.sh --fix") == "./scripts/lint.sh"
    assert program_of("   ") is None


def test_require_tools_rejects_empty_command():
    with pytest.raises(PreconditionError):
        require_tools([""], lambda name: "/bin/" + name)
