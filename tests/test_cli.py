"""测试命令行入口."""

from typer.testing import CliRunner

from feedsync.main import app

runner = CliRunner()


def test_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("feeds", "items", "search", "login", "logout", "mark"):
        assert command in result.output


def test_mark_rejects_unknown_field_before_connecting() -> None:
    result = runner.invoke(app, ["mark", "item-1", "pinned"])

    assert result.exit_code == 2
