from __future__ import annotations

import logging
from datetime import timedelta
from pathlib import Path
from typing import Any

import typer

from surveyor.sensor import LocationFix, build_reading, parse_packet
from surveyor_cache import (
    AppConfig,
    CounterUnreadableError,
    SessionRecorder,
    TTLFileCache,
    load_config,
)
from surveyor_cache.schemas import FileMeta

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = typer.Typer(help="Surveyor session cache CLI")
debug_app = typer.Typer(help="Debug commands")
app.add_typer(debug_app, name="debug")


def _cache_dir_option() -> Any:
    return typer.Option(
        None,
        "--cache-dir",
        help="Cache directory. Defaults to cache.directory from config.",
    )


def _config_option() -> Any:
    return typer.Option(
        None,
        "--config",
        help="Config file path (YAML or JSON).",
        exists=True,
        dir_okay=False,
        readable=True,
    )


@app.command("init")
def init_cache(
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Open (or create) the cache directory and report its state."""
    _, cache = _open_cache(cache_dir, config_path)
    try:
        counter = cache.session_counter_value()
    except CounterUnreadableError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(
        f"root={cache.root} entries={len(cache)} "
        f"bytes={cache.total_bytes()} session_counter={counter}"
    )


@app.command("next-session")
def next_session(
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Advance the durable session counter and print the new value."""
    _, cache = _open_cache(cache_dir, config_path)
    try:
        typer.echo(str(cache.next_session_number()))
    except (CounterUnreadableError, OSError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc


@app.command("record")
def record_session(
    device_id: str = typer.Option(
        ...,
        "--device-id",
        help="Device identifier, e.g. a BLE MAC address.",
    ),
    device_name: str = typer.Option(
        "device",
        "--device-name",
        help="Human-readable device name used in the session filename.",
    ),
    packets_file: Path | None = typer.Option(
        None,
        "--packets-file",
        help="Text file with one device packet per line. Reads stdin when omitted.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    latitude: str = typer.Option("", "--lat", help="Latest phone latitude."),
    longitude: str = typer.Option("", "--lon", help="Latest phone longitude."),
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Record device packets into a new session file."""
    config, cache = _open_cache(cache_dir, config_path)
    recorder = SessionRecorder.from_config(cache, config)
    location = LocationFix.from_options(latitude, longitude)

    if packets_file is not None:
        raw_lines = packets_file.read_text(encoding="utf-8").splitlines()
    else:
        raw_lines = typer.get_text_stream("stdin").read().splitlines()

    try:
        session = recorder.start(device_name=device_name, device_id=device_id)
    except (ValueError, OSError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    recorded = 0
    rejected = 0
    failed = 0
    for raw_line in raw_lines:
        if not raw_line.strip():
            continue
        packet = parse_packet(raw_line)
        if packet is None:
            rejected += 1
            continue
        try:
            recorder.record(build_reading(packet, location))
            recorded += 1
        except (ValueError, OSError):
            logging.exception("failed to record reading file=%s", session.filename)
            failed += 1
    recorder.stop()

    typer.echo(
        f"recorded={recorded} rejected={rejected} failed={failed} "
        f"session={session.session_number} file={session.filename}"
    )


@app.command("list")
def list_files(
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """List active (unexpired) cache files."""
    _, cache = _open_cache(cache_dir, config_path)
    metas = cache.describe_active()
    typer.echo(_render_file_table(metas))
    typer.echo(
        f"files={len(metas)} bytes={sum(meta.size_bytes for meta in metas)}"
    )


@app.command("preview")
def preview_file(
    name: str = typer.Argument(..., help="Cache filename."),
    max_lines: int = typer.Option(
        300,
        "--max-lines",
        help="Show at most N lines including the header.",
        min=1,
    ),
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Print the first lines of a cache file."""
    _, cache = _open_cache(cache_dir, config_path)
    try:
        rows = cache.preview(name, max_lines=max_lines)
    except (ValueError, OSError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    for row in rows:
        typer.echo(" | ".join(row))


@app.command("export")
def export_file(
    name: str = typer.Argument(..., help="Cache filename."),
    destination: Path = typer.Option(
        ...,
        "--dest",
        help="Destination directory or file path.",
    ),
    remove: bool = typer.Option(
        False,
        "--remove",
        help="Remove the file from the cache after a successful copy.",
    ),
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Copy a cache file out of the cache directory."""
    _, cache = _open_cache(cache_dir, config_path)
    try:
        target = cache.export(name, destination, remove=remove)
    except (ValueError, OSError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"exported={target} removed={remove}")


@app.command("remove")
def remove_file(
    name: str = typer.Argument(..., help="Cache filename."),
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Delete a file and its index entry (mark as uploaded)."""
    _, cache = _open_cache(cache_dir, config_path)
    try:
        existed = cache.mark_uploaded(name)
    except (ValueError, OSError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"removed={existed}")


@app.command("purge")
def purge_expired(
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Delete every expired cache file."""
    _, cache = _open_cache(cache_dir, config_path)
    try:
        purged = cache.purge_expired()
    except OSError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"purged={purged}")


@app.command("enforce")
def enforce_max_bytes(
    max_bytes: int | None = typer.Option(
        None,
        "--max-bytes",
        help="Byte budget. Defaults to cache.max_bytes from config.",
        min=0,
    ),
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Evict files, soonest-expiring first, until the cache fits the budget."""
    config, cache = _open_cache(cache_dir, config_path)
    limit = config.cache.max_bytes if max_bytes is None else max_bytes
    try:
        evicted = cache.enforce_max_bytes(limit)
    except (ValueError, OSError) as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    for filename in evicted:
        typer.echo(f"evicted {filename}")
    typer.echo(f"evicted={len(evicted)} bytes={cache.total_bytes()} limit={limit}")


@debug_app.command("storage")
def debug_storage(
    cache_dir: Path | None = _cache_dir_option(),
    config_path: Path | None = _config_option(),
) -> None:
    """Run cache storage smoke test."""
    _, cache = _open_cache(cache_dir, config_path)

    probe = "debug_storage_probe.csv"
    cache.ensure_header(probe, "probe", timedelta(seconds=60))
    cache.append_line(probe, "smoke_ok", timedelta(seconds=60))
    rows = cache.preview(probe)
    entry = cache.entry(probe)
    cache.mark_uploaded(probe)

    if rows != [["probe"], ["smoke_ok"]] or entry is None or cache.entry(probe) is not None:
        typer.echo("storage smoke test failed", err=True)
        raise typer.Exit(code=1)

    typer.echo("storage ok")


def _open_cache(
    cache_dir: Path | None,
    config_path: Path | None,
) -> tuple[AppConfig, TTLFileCache]:
    try:
        config = load_config(config_path) if config_path is not None else AppConfig()
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    logging.getLogger().setLevel(config.logging.level)
    root = cache_dir if cache_dir is not None else Path(config.cache.directory)
    try:
        cache = TTLFileCache.open(root)
    except OSError as exc:
        typer.echo(f"failed to open cache root={root}: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    return config, cache


def _render_file_table(metas: list[FileMeta]) -> str:
    if not metas:
        return "no pending files"

    headers = ("name", "records", "size", "modified")
    rows = [
        (
            meta.name if meta.error is None else f"{meta.name} (error: {_truncate(meta.error, limit=40)})",
            str(meta.record_count),
            _format_bytes(meta.size_bytes),
            meta.modified.strftime("%Y-%m-%d %H:%M:%S"),
        )
        for meta in metas
    ]

    widths = [
        max(len(headers[column]), *(len(row[column]) for row in rows))
        for column in range(len(headers))
    ]

    def _line(values: tuple[str, str, str, str]) -> str:
        return " | ".join(
            value.ljust(widths[index]) for index, value in enumerate(values)
        )

    divider = "-+-".join("-" * width for width in widths)
    body = [_line(headers), divider]
    body.extend(_line(row) for row in rows)
    return "\n".join(body)


def _format_bytes(size: int) -> str:
    kb = 1024
    mb = 1024 * kb
    gb = 1024 * mb
    if size >= gb:
        return f"{size / gb:.2f} GB"
    if size >= mb:
        return f"{size / mb:.2f} MB"
    if size >= kb:
        return f"{size / kb:.2f} KB"
    return f"{size} B"


def _truncate(text: str, *, limit: int) -> str:
    if len(text) <= limit:
        return text
    return f"{text[: limit - 3]}..."


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
