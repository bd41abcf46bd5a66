from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

import surveyor.cli as cli_module
from surveyor_cache.storage import COUNTER_FILENAME

FIXTURE_DIR = Path(__file__).resolve().parent / "fixtures"
SESSION_FILE = "survey_Gas_Sniffer_3c5a7f_session_001_2027-01-15_08-00-00Z.csv"


def _record(runner: CliRunner, cache_dir: Path, *extra: str, stdin: str | None = None):
    return runner.invoke(
        cli_module.app,
        [
            "record",
            "--cache-dir",
            str(cache_dir),
            "--device-id",
            "AA:BB:CC:3C:5A:7F",
            "--device-name",
            "Gas Sniffer",
            *extra,
        ],
        input=stdin,
    )


def test_cli_init_reports_empty_cache(clock, tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli_module.app, ["init", "--cache-dir", str(tmp_path / "c")])

    assert result.exit_code == 0
    assert "entries=0 bytes=0 session_counter=0" in result.output
    assert (tmp_path / "c" / COUNTER_FILENAME).exists()


def test_cli_record_from_packets_file(clock, tmp_path) -> None:
    runner = CliRunner()
    result = _record(
        runner,
        tmp_path,
        "--packets-file",
        str(FIXTURE_DIR / "packets.sample.txt"),
        "--lat",
        "52.3702",
        "--lon",
        "4.8952",
    )

    assert result.exit_code == 0
    assert f"recorded=3 rejected=2 failed=0 session=1 file={SESSION_FILE}" in result.output

    lines = (tmp_path / SESSION_FILE).read_text(encoding="utf-8").splitlines()
    assert len(lines) == 4
    assert lines[1] == "2027-01-15T08:00:00Z,0,2.41,0.05,52.3702,4.8952"
    assert lines[3].endswith(",0,2.50,0.06,52.3702,4.8952")


def test_cli_record_from_stdin_then_list_and_preview(clock, tmp_path) -> None:
    runner = CliRunner()
    recorded = _record(runner, tmp_path, stdin="1,0,2.0,0.1\n2,0,2.1,0.1\n")
    assert recorded.exit_code == 0
    assert "recorded=2" in recorded.output

    listed = runner.invoke(cli_module.app, ["list", "--cache-dir", str(tmp_path)])
    assert listed.exit_code == 0
    assert SESSION_FILE in listed.output
    assert "files=1" in listed.output

    preview = runner.invoke(
        cli_module.app,
        ["preview", SESSION_FILE, "--max-lines", "2", "--cache-dir", str(tmp_path)],
    )
    assert preview.exit_code == 0
    output_lines = [line for line in preview.output.splitlines() if " | " in line]
    assert output_lines[0].startswith("GPS UTC | Error Code")
    assert output_lines[1] == "2027-01-15T08:00:00Z | 0 | 2.0 | 0.1 |  | "
    assert len(output_lines) == 2


def test_cli_list_empty_cache(clock, tmp_path) -> None:
    runner = CliRunner()
    result = runner.invoke(cli_module.app, ["list", "--cache-dir", str(tmp_path)])

    assert result.exit_code == 0
    assert "no pending files" in result.output
    assert "files=0 bytes=0" in result.output


def test_cli_export_with_remove(clock, tmp_path) -> None:
    runner = CliRunner()
    cache_dir = tmp_path / "cache"
    dest = tmp_path / "out"
    dest.mkdir()
    assert _record(runner, cache_dir, stdin="1,0,2.0,0.1\n").exit_code == 0

    result = runner.invoke(
        cli_module.app,
        ["export", SESSION_FILE, "--dest", str(dest), "--remove", "--cache-dir", str(cache_dir)],
    )

    assert result.exit_code == 0
    assert "removed=True" in result.output
    assert (dest / SESSION_FILE).exists()
    assert not (cache_dir / SESSION_FILE).exists()

    missing = runner.invoke(
        cli_module.app,
        ["export", SESSION_FILE, "--dest", str(dest), "--cache-dir", str(cache_dir)],
    )
    assert missing.exit_code == 1


def test_cli_remove_purge_and_enforce(clock, tmp_path) -> None:
    runner = CliRunner()
    assert _record(runner, tmp_path, stdin="1,0,2.0,0.1\n").exit_code == 0

    enforced = runner.invoke(
        cli_module.app, ["enforce", "--max-bytes", "0", "--cache-dir", str(tmp_path)]
    )
    assert enforced.exit_code == 0
    assert f"evicted {SESSION_FILE}" in enforced.output
    assert "evicted=1 bytes=0 limit=0" in enforced.output

    removed = runner.invoke(cli_module.app, ["remove", SESSION_FILE, "--cache-dir", str(tmp_path)])
    assert removed.exit_code == 0
    assert "removed=False" in removed.output

    purged = runner.invoke(cli_module.app, ["purge", "--cache-dir", str(tmp_path)])
    assert purged.exit_code == 0
    assert "purged=0" in purged.output


def test_cli_next_session_and_corrupt_counter(clock, tmp_path) -> None:
    runner = CliRunner()
    first = runner.invoke(cli_module.app, ["next-session", "--cache-dir", str(tmp_path)])
    assert first.exit_code == 0
    assert first.output.strip().splitlines()[-1] == "1"

    (tmp_path / COUNTER_FILENAME).write_text("not-a-number", encoding="utf-8")

    broken = runner.invoke(cli_module.app, ["next-session", "--cache-dir", str(tmp_path)])
    assert broken.exit_code == 1
    recorded = _record(runner, tmp_path, stdin="1,0,2.0,0.1\n")
    assert recorded.exit_code == 1
    assert (tmp_path / COUNTER_FILENAME).read_text(encoding="utf-8") == "not-a-number"


def test_cli_undecodable_counter_exits_with_error(clock, tmp_path) -> None:
    (tmp_path / COUNTER_FILENAME).write_bytes(b"\xff")
    runner = CliRunner()

    for command in ("init", "next-session"):
        result = runner.invoke(cli_module.app, [command, "--cache-dir", str(tmp_path)])
        assert result.exit_code == 1
        assert not isinstance(result.exception, UnicodeDecodeError)

    assert (tmp_path / COUNTER_FILENAME).read_bytes() == b"\xff"


def test_cli_uses_config_file(clock, tmp_path) -> None:
    cache_dir = tmp_path / "configured"
    config_path = tmp_path / "config.yaml"
    config_path.write_text(
        f"cache:\n  directory: {cache_dir}\n  max_bytes: 10\nlogging:\n  level: WARNING\n",
        encoding="utf-8",
    )
    runner = CliRunner()

    assert runner.invoke(
        cli_module.app, ["init", "--config", str(config_path)]
    ).exit_code == 0
    assert (cache_dir / COUNTER_FILENAME).exists()

    (cache_dir / "big.csv").write_text("x" * 20, encoding="utf-8")
    enforced = runner.invoke(cli_module.app, ["enforce", "--config", str(config_path)])
    assert enforced.exit_code == 0
    assert "evicted=1 bytes=0 limit=10" in enforced.output


def test_cli_invalid_config_exits_with_error(tmp_path) -> None:
    config_path = tmp_path / "config.yaml"
    config_path.write_text("cache:\n  retention: 3\n", encoding="utf-8")

    runner = CliRunner()
    result = runner.invoke(
        cli_module.app,
        ["init", "--config", str(config_path), "--cache-dir", str(tmp_path / "c")],
    )

    assert result.exit_code == 1
    assert not (tmp_path / "c").exists()
