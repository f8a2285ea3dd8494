import logging
from pathlib import Path
from unittest.mock import MagicMock

import pytest
from typer.testing import CliRunner

from fueltrakr.main import app

# These fixtures are defined in tests/conftest.py:
# runner: CliRunner
# isolated_environment: empty FUELTRAKR_* env, session store under tmp_path


@pytest.fixture(autouse=True)
def restore_root_logger():
    """setup_logging binds the runner's stdout; put the previous handlers back."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def mock_console_display(mocker) -> MagicMock:
    """Patches ConsoleDisplay in the composition root with one shared mock."""
    display = MagicMock()
    mocker.patch("fueltrakr.main.ConsoleDisplay", return_value=display)
    return display


def invoke(runner: CliRunner, *args: str):
    return runner.invoke(app, ["--demo", *args])


def test_demo_porter_session_flow(runner: CliRunner, mock_console_display: MagicMock):
    """login, whoami, submit, entries and logout against demo fixtures."""
    result = invoke(runner, "login", "-e", "porter@napleton.com", "-p", "porter123")
    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    mock_console_display.display_success.assert_called_with("Signed in as John Porter (porter).")

    result = invoke(runner, "whoami")
    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    profile = mock_console_display.display_mapping.call_args.args[0]
    assert profile["Email"] == "porter@napleton.com"

    result = invoke(runner, "submit", "-m", "51000", "-g", "11.2", "-c", "39.99", "-s", "STK789")
    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    assert "STK789" in mock_console_display.display_success.call_args.args[0]

    result = invoke(runner, "entries")
    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    listed = mock_console_display.display_entries.call_args.args[0]
    # Demo entries live in memory; each invocation starts from the seeded pair
    assert [entry.id for entry in listed] == ["demo-entry-1", "demo-entry-2"]

    result = invoke(runner, "logout")
    assert result.exit_code == 0

    mock_console_display.display_error.reset_mock()
    result = invoke(runner, "whoami")
    assert result.exit_code == 1
    mock_console_display.display_error.assert_called_once_with("Please log in first (fueltrakr login).")


def test_wrong_password_exits_with_error(runner: CliRunner, mock_console_display: MagicMock):
    result = invoke(runner, "login", "-e", "admin@napleton.com", "-p", "wrong")

    assert result.exit_code == 1
    message = mock_console_display.display_error.call_args.args[0]
    assert message == "Invalid demo credentials. Please check your email and password."


def test_submit_validation_error(runner: CliRunner, mock_console_display: MagicMock):
    invoke(runner, "login", "-e", "porter@napleton.com", "-p", "porter123")

    result = invoke(runner, "submit", "-m", "51000", "-g", "11.2", "-c", "39.99")

    assert result.exit_code == 1
    assert "Either stock number or VIN is required" in mock_console_display.display_error.call_args.args[0]


def test_admin_lists_users_and_cannot_export_in_demo(runner: CliRunner, mock_console_display: MagicMock, tmp_path: Path):
    invoke(runner, "login", "-e", "admin@napleton.com", "-p", "admin123")

    result = invoke(runner, "users")
    assert result.exit_code == 0, f"CLI command failed: {result.stdout}"
    listed = mock_console_display.display_users.call_args.args[0]
    assert {user.role for user in listed} == {"admin", "porter"}

    result = invoke(runner, "export", "--output-dir", str(tmp_path / "out"))
    assert result.exit_code == 1
    assert "demo mode" in mock_console_display.display_error.call_args.args[0]


def test_porter_cannot_list_users(runner: CliRunner, mock_console_display: MagicMock):
    invoke(runner, "login", "-e", "porter@napleton.com", "-p", "porter123")

    result = invoke(runner, "users")

    assert result.exit_code == 1
    mock_console_display.display_error.assert_called_with("This command requires an admin account.")


def test_live_mode_without_backend_settings_exits_2(runner: CliRunner, mock_console_display: MagicMock):
    result = runner.invoke(app, ["--live", "whoami"])

    assert result.exit_code == 2
    assert "FUELTRAKR_SUPABASE_PROJECT_ID" in mock_console_display.display_error.call_args.args[0]


def test_schemeless_supabase_url_exits_2(runner: CliRunner, mock_console_display: MagicMock, monkeypatch):
    monkeypatch.setenv("FUELTRAKR_SUPABASE_URL", "testproj.supabase.co")
    monkeypatch.setenv("FUELTRAKR_SUPABASE_ANON_KEY", "anon-key")

    result = runner.invoke(app, ["--live", "login", "--email", "pat@example.com", "--password", "secret123"])

    assert result.exit_code == 2
    assert "FUELTRAKR_SUPABASE_URL" in mock_console_display.display_error.call_args.args[0]


@pytest.mark.parametrize("flag, level", [("--no-debug", logging.WARNING), ("--debug", logging.DEBUG)])
def test_debug_flag_sets_log_level_in_development_mode(
    runner: CliRunner, mock_console_display: MagicMock, monkeypatch, flag: str, level: int
):
    monkeypatch.setenv("FUELTRAKR_MODE", "development")

    runner.invoke(app, ["--demo", flag, "whoami"])

    assert logging.getLogger().level == level


def test_help_needs_no_configuration(runner: CliRunner):
    result = runner.invoke(app, ["--live", "--help"])

    assert result.exit_code == 0
    assert "submit" in result.stdout
