import re

import pytest
from click.testing import CliRunner

import commit_gatekeeper.cli as cli


MESSAGE_PATTERN = re.compile(r"^\d{4}:\d{4} - .+$")
LOGIN_CHANGES = ("src/LoginButton.tsx", "src/api/authClient.ts")


@pytest.fixture
def setup_cli(monkeypatch, tmp_path, fake_git, fake_runner):
    """Wire fake git and command collaborators into the CLI module."""

    def _setup(changes=LOGIN_CHANGES, branch="feature/login", script=None, tools=None, repo_found=True):
        clients = []
        runner = fake_runner(script)

        class CliGitClient(fake_git):
            @staticmethod
            def find_repo_root(start):
                return tmp_path if repo_found else None

            def __init__(self, repo_root):
                super().__init__(changes, branch)
                clients.append(self)

        available = tools if tools is not None else {"git", "npm"}
        monkeypatch.setattr(cli, "GitClient", CliGitClient)
        monkeypatch.setattr(cli, "CommandRunner", lambda repo_root: runner)
        monkeypatch.setattr(cli.shutil, "which", lambda name: f"/usr/bin/{name}" if name in available else None)
        return clients, runner

    return _setup


def test_cli_end_to_end_commits_after_healing(setup_cli):
    clients, runner = setup_cli(script={"npm run build": [1, 1, 0]})
    result = CliRunner().invoke(cli.main, ["--yes", "--build-retries", "3"])

    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert "UI and API integration" in result.output
    assert runner.count("npm run lint") == 1
    assert runner.count("npm run build") == 3
    (client,) = clients
    assert len(client.commits) == 1
    assert MESSAGE_PATTERN.match(client.commits[0])
    assert "healed 2x" in result.output


def test_cli_protected_branch(setup_cli):
    clients, runner = setup_cli(branch="main")
    result = CliRunner().invoke(cli.main, ["--yes"])
    assert result.exit_code == cli.EXIT_PROTECTED_BRANCH
    assert "protected branch 'main'" in result.output
    assert runner.calls == []
    assert clients[0].commits == []


def test_cli_force_allows_protected_branch(setup_cli):
    clients, _runner = setup_cli(branch="main")
    result = CliRunner().invoke(cli.main, ["--yes", "--force"])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert len(clients[0].commits) == 1


def test_cli_no_changes(setup_cli):
    setup_cli(changes=())
    result = CliRunner().invoke(cli.main, ["--yes"])
    assert result.exit_code == cli.EXIT_NO_CHANGES
    assert "No changes detected" in result.output


def test_cli_gate_failure_reports_output(setup_cli):
    clients, runner = setup_cli(script={"npm run lint": [1]})
    result = CliRunner().invoke(cli.main, ["--yes", "--lint-retries", "2"])
    assert result.exit_code == cli.EXIT_GATE_FAILED
    assert "Lint gate failed" in result.output
    assert "error TS2304" in result.output
    assert "No commit was created." in result.output
    assert runner.count("npm run lint") == 2
    assert clients[0].commits == []


def test_cli_no_heal_single_attempt(setup_cli):
    _clients, runner = setup_cli(script={"npm run lint": [1, 0]})
    result = CliRunner().invoke(cli.main, ["--yes", "--no-heal"])
    assert result.exit_code == cli.EXIT_GATE_FAILED
    assert runner.count("npm run lint") == 1


def test_cli_skip_build_and_custom_commands(setup_cli):
    _clients, runner = setup_cli(tools={"git", "ruff"})
    result = CliRunner().invoke(cli.main, ["--yes", "--skip-build", "--lint-cmd", "ruff check ."])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert [command for command, _ in runner.calls] == ["ruff check ."]


def test_cli_missing_git(setup_cli):
    setup_cli(tools={"npm"})
    result = CliRunner().invoke(cli.main, ["--yes"])
    assert result.exit_code == cli.EXIT_NO_REPO
    assert "'git' executable was not found" in result.output


def test_cli_no_repository(setup_cli):
    setup_cli(repo_found=False)
    result = CliRunner().invoke(cli.main, ["--yes"])
    assert result.exit_code == cli.EXIT_NO_REPO


def test_cli_missing_gate_tool(setup_cli):
    _clients, runner = setup_cli(tools={"git"})
    result = CliRunner().invoke(cli.main, ["--yes"])
    assert result.exit_code == cli.EXIT_NO_REPO
    assert "Required tool not found on PATH: npm" in result.output
    assert runner.calls == []


def test_cli_config_error(setup_cli, tmp_path):
    setup_cli()
    (tmp_path / ".gatekeeper.json").write_text("{broken", encoding="utf-8")
    result = CliRunner().invoke(cli.main, ["--yes"])
    assert result.exit_code == cli.EXIT_CONFIG_ERROR
    assert "Configuration error" in result.output


def test_cli_interactive_summary(setup_cli):
    clients, _runner = setup_cli()
    result = CliRunner().invoke(cli.main, [], input="Wire login button to auth API\n")
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert clients[0].commits[0].endswith(" - Wire login button to auth API")


def test_cli_summary_option(setup_cli):
    clients, _runner = setup_cli()
    result = CliRunner().invoke(cli.main, ["--yes", "-m", "Add login"])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert clients[0].commits[0].endswith(" - Add login")


def test_cli_empty_summary(setup_cli):
    _clients, runner = setup_cli()
    result = CliRunner().invoke(cli.main, ["--yes", "--no-auto-summary"])
    assert result.exit_code == cli.EXIT_EMPTY_SUMMARY
    assert runner.calls == []


def test_cli_warns_about_sensitive_paths(setup_cli):
    setup_cli(changes=("src/app.ts", ".env"))
    result = CliRunner().invoke(cli.main, ["--yes"])
    assert result.exit_code == cli.EXIT_SUCCESS, result.output
    assert ".env (secret file)" in result.output


def test_cli_version():
    result = CliRunner().invoke(cli.main, ["--version"])
    assert result.exit_code == 0
    assert "gatekeep" in result.output
