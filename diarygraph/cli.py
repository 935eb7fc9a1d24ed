"""
CLI interface for the entry index.

Usage:
    diarygraph load entries.jsonl
    diarygraph show entries.jsonl 1681300000000
    diarygraph day entries.jsonl 2023-04-12
    diarygraph tags entries.jsonl
"""

import json
import os
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from typing_extensions import Annotated

from . import query
from .config import CONFIG_FILENAME, IndexConfig, get_home_directory, load_config, load_or_create_config
from .index import EntryIndex
from .loader import load_entries
from .logging_config import configure_ops_log, configure_quiet_mode, enable_debug_mode
from .types import TIMELINE_DAY, FacetKey, timestamp_to_datetime

# Maximum length of the body preview in one-line listings
PREVIEW_WIDTH = 60


# Configure quiet mode by default (suppress verbose output)
# Set DIARYGRAPH_VERBOSE=1 to enable debug mode via environment
if os.environ.get("DIARYGRAPH_VERBOSE") == "1":
    enable_debug_mode()
else:
    configure_quiet_mode(quiet=True)


def _verbose_callback(value: bool):
    if value:
        enable_debug_mode()


# Global state for CLI options
_json_output = False
_home_override: Optional[Path] = None


def _json_callback(value: bool):
    global _json_output
    _json_output = value


def _get_json_output() -> bool:
    return _json_output


def _home_callback(value: Optional[Path]):
    global _home_override
    _home_override = value


def _get_home() -> Path:
    return _home_override or get_home_directory()


app = typer.Typer(
    name="diarygraph",
    help="Index timestamped journal entries by tag, mention, day and visit.",
    no_args_is_help=True,
    rich_markup_mode=None,
)


@app.callback()
def main_callback(
    verbose: Annotated[bool, typer.Option(
        "--verbose", "-v",
        help="Enable debug-level logging to stderr",
        callback=_verbose_callback,
        is_eager=True,
    )] = False,
    output_json: Annotated[bool, typer.Option(
        "--json", "-j",
        help="Output as JSON",
        callback=_json_callback,
        is_eager=True,
    )] = False,
    home: Annotated[Optional[Path], typer.Option(
        "--home",
        envvar="DIARYGRAPH_HOME",
        help="Directory holding diarygraph.toml and logs",
        callback=_home_callback,
        is_eager=True,
    )] = None,
):
    """Index timestamped journal entries by tag, mention, day and visit."""


# -----------------------------------------------------------------------------
# Helpers
# -----------------------------------------------------------------------------

EntriesArgument = Annotated[
    Path,
    typer.Argument(help="Entries file (JSON array or JSON Lines)", exists=True, dir_okay=False),
]


def _get_config() -> IndexConfig:
    """Config from the home directory, or defaults if none was saved."""
    home = _get_home()
    if (home / CONFIG_FILENAME).exists():
        return load_config(home)
    return IndexConfig(path=home)


def _build_index(entries_file: Path) -> tuple[EntryIndex, int]:
    """Index every entry in the file. Returns (index, entries read)."""
    try:
        config = _get_config()
        entries = load_entries(entries_file)
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    if (config.path / CONFIG_FILENAME).exists():
        configure_ops_log(config.path)
    index = EntryIndex(config)
    index.add_many(entries)
    return index, len(entries)


def _format_time(ts: int, index: EntryIndex) -> str:
    return timestamp_to_datetime(ts, index.config.tzinfo).strftime("%Y-%m-%d %H:%M")


def _format_entry_line(ts: int, entry: dict, index: EntryIndex) -> str:
    """One-line summary: timestamp, local time, body preview, tags."""
    body = (entry.get("md") or "").strip().splitlines()
    preview = body[0] if body else ""
    if len(preview) > PREVIEW_WIDTH:
        preview = preview[:PREVIEW_WIDTH - 3] + "..."
    tags = " ".join(str(t) for t in entry.get("tags") or [])
    parts = [str(ts), _format_time(ts, index), preview]
    if tags:
        parts.append(tags)
    return "  ".join(p for p in parts if p)


def _echo_entries(ids: list[int], index: EntryIndex) -> None:
    entries = [(ts, index.get(ts) or {}) for ts in ids]
    if _get_json_output():
        typer.echo(json.dumps([e for _, e in entries], ensure_ascii=False, indent=2))
        return
    for ts, entry in entries:
        typer.echo(_format_entry_line(ts, entry, index))


def _echo_counts(counts: list[tuple[str, int]]) -> None:
    if _get_json_output():
        typer.echo(json.dumps([{"value": v, "count": c} for v, c in counts], ensure_ascii=False, indent=2))
        return
    for value, count in counts:
        typer.echo(f"{count:5d}  {value}")


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@app.command()
def load(entries_file: EntriesArgument):
    """Index an entries file and print a summary."""
    index, total = _build_index(entries_file)
    graph = index.graph
    stats = {
        "entries": len(index),
        "skipped": total - len(index),
        "hashtags": len(query.hashtags(graph)),
        "private_hashtags": len(query.hashtags(graph, private=True)),
        "mentions": len(query.mentions(graph)),
        "days": sum(1 for k in graph.nodes() if isinstance(k, FacetKey) and k.kind == TIMELINE_DAY),
    }
    if _get_json_output():
        typer.echo(json.dumps(stats, indent=2))
        return
    for key, value in stats.items():
        typer.echo(f"{key.replace('_', ' ')}: {value}")


@app.command()
def show(
    entries_file: EntriesArgument,
    timestamp: Annotated[int, typer.Argument(help="Entry timestamp (ms since epoch)")],
):
    """Show one entry with its tags, comments and links."""
    index, _ = _build_index(entries_file)
    entry = index.get(timestamp)
    if entry is None:
        typer.echo(f"Not found: {timestamp}", err=True)
        raise typer.Exit(1)

    graph = index.graph
    context = {
        "entry": entry,
        "tags": query.tags_of(graph, timestamp),
        "comments": query.comments_for(graph, timestamp),
        "links": query.linked_from(graph, timestamp),
        "linked_by": query.linked_to(graph, timestamp),
        "pending_parent": [e.dest for e in graph.pending_edges(src=timestamp)],
    }
    if _get_json_output():
        typer.echo(json.dumps(context, ensure_ascii=False, indent=2))
        return

    typer.echo(_format_entry_line(timestamp, entry, index))
    if entry.get("md"):
        typer.echo("")
        typer.echo(entry["md"])
        typer.echo("")
    for label in ("tags", "comments", "links", "linked_by", "pending_parent"):
        values = context[label]
        if values:
            typer.echo(f"{label.replace('_', ' ')}: {', '.join(str(v) for v in values)}")


@app.command()
def day(
    entries_file: EntriesArgument,
    date: Annotated[str, typer.Argument(help="Calendar day, YYYY-MM-DD")],
):
    """List the entries on one calendar day."""
    try:
        datetime.strptime(date, "%Y-%m-%d")
    except ValueError:
        raise typer.BadParameter(f"Invalid date: {date}. Use YYYY-MM-DD", param_hint="DATE")
    index, _ = _build_index(entries_file)
    _echo_entries(query.entries_for_day(index.graph, date), index)


@app.command()
def tags(
    entries_file: EntriesArgument,
    private: Annotated[bool, typer.Option(
        "--private", "-p", help="List private hashtags instead"
    )] = False,
):
    """List hashtags with entry counts."""
    index, _ = _build_index(entries_file)
    _echo_counts(query.hashtags(index.graph, private=private))


@app.command()
def mentions(entries_file: EntriesArgument):
    """List mentions with entry counts."""
    index, _ = _build_index(entries_file)
    _echo_counts(query.mentions(index.graph))


@app.command("range")
def range_(
    entries_file: EntriesArgument,
    since: Annotated[Optional[int], typer.Option(help="Earliest timestamp (inclusive)")] = None,
    until: Annotated[Optional[int], typer.Option(help="Latest timestamp (exclusive)")] = None,
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum entries to list")] = 50,
):
    """List entries in chronological order."""
    index, _ = _build_index(entries_file)
    ids = query.entries_between(index.state, since, until)
    _echo_entries(ids[:limit] if limit > 0 else ids, index)


@app.command()
def config(
    init: Annotated[bool, typer.Option(
        "--init", help="Write a default diarygraph.toml if none exists"
    )] = False,
):
    """Show the effective configuration."""
    try:
        cfg = load_or_create_config(_get_home()) if init else _get_config()
    except (OSError, ValueError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)
    data = {
        "path": str(cfg.config_path),
        "saved": cfg.exists(),
        "private_tags": list(cfg.private_tags),
        "timezone": cfg.timezone,
        "derive_from": cfg.derive_from,
        "min_timestamp": cfg.min_timestamp,
        "max_timestamp": cfg.max_timestamp,
    }
    if _get_json_output():
        typer.echo(json.dumps(data, indent=2))
        return
    for key, value in data.items():
        typer.echo(f"{key}: {value}")


# -----------------------------------------------------------------------------

def main():
    try:
        app()
    except SystemExit:
        raise  # Let typer handle exit codes
    except KeyboardInterrupt:
        raise SystemExit(130)  # Standard exit code for Ctrl+C
    except Exception as e:
        # Log full traceback to file, show clean message to user
        from .errors import log_exception
        log_path = log_exception(e, context="diarygraph CLI", home=_get_home())
        typer.echo(f"Error: {e}", err=True)
        typer.echo(f"Details logged to {log_path}", err=True)
        raise SystemExit(1)


if __name__ == "__main__":
    main()
