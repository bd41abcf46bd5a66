from __future__ import annotations

from typer.testing import CliRunner

from surveyor.cli import app


def test_cli_help() -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    assert "Usage:" in result.output
    assert "--help" in result.output


def test_cli_debug_storage(clock, tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(app, ["debug", "storage", "--cache-dir", str(tmp_path)])

    assert result.exit_code == 0
    assert "storage ok" in result.output
    assert not (tmp_path / "debug_storage_probe.csv").exists()
