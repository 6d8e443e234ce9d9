"""Prompt Library CLI — plib command."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

import click

from prompt_library.cli.client import LibraryClient
from prompt_library.config import get_settings
from prompt_library.core.transfer import ImportMode

MODES = [m.value for m in ImportMode]


def _format_table(rows: list[dict], columns: list[str]) -> str:
    """Simple table formatter."""
    if not rows:
        return "No results."
    widths = {c: len(c) for c in columns}
    for row in rows:
        for c in columns:
            widths[c] = max(widths[c], len(str(row.get(c, ""))))

    header = "  ".join(c.upper().ljust(widths[c]) for c in columns)
    separator = "  ".join("-" * widths[c] for c in columns)
    lines = [header, separator]
    for row in rows:
        lines.append("  ".join(str(row.get(c, "")).ljust(widths[c]) for c in columns))
    return "\n".join(lines)


@click.group()
@click.option("--api", default="http://localhost:8500", envvar="PLIB_API", help="API base URL")
@click.option("--format", "output_format", type=click.Choice(["table", "json"]), default="table")
@click.pass_context
def cli(ctx: click.Context, api: str, output_format: str) -> None:
    """Prompt Library CLI — manage prompts, notes, and import/export."""
    ctx.ensure_object(dict)
    ctx.obj = LibraryClient(base_url=api)
    ctx.meta["output_format"] = output_format


def _output(ctx: click.Context, data: Any, columns: list[str] | None = None) -> None:
    fmt = ctx.meta.get("output_format", "table")
    if fmt == "json":
        click.echo(json.dumps(data, indent=2, default=str))
    elif isinstance(data, list) and columns:
        click.echo(_format_table(data, columns))
    else:
        click.echo(json.dumps(data, indent=2, default=str))


# --- Prompt commands ---


@cli.group()
def prompt() -> None:
    """Manage prompts."""


@prompt.command("list")
@click.option("--search", default=None)
@click.pass_context
def prompt_list(ctx: click.Context, search: str | None) -> None:
    """List all prompts, newest first."""
    client: LibraryClient = ctx.obj
    params: dict[str, Any] = {}
    if search:
        params["search"] = search
    data = client.list_prompts(**params)
    _output(ctx, data, ["id", "title", "rating"])


@prompt.command("add")
@click.option("--title", required=True)
@click.option("--content", default=None, help="Prompt text; read from stdin when omitted")
@click.option("--model", default=None, help="Model the prompt was written for")
@click.option("--code", "is_code", is_flag=True, help="Estimate tokens at code density")
@click.pass_context
def prompt_add(
    ctx: click.Context, title: str, content: str | None, model: str | None, is_code: bool
) -> None:
    """Add a prompt."""
    client: LibraryClient = ctx.obj
    if content is None:
        content = sys.stdin.read()
    data: dict[str, Any] = {"title": title, "content": content}
    if model:
        data["model"] = model
    if is_code:
        data["isCode"] = True
    _output(ctx, client.create_prompt(data))


@prompt.command("show")
@click.argument("prompt_id")
@click.pass_context
def prompt_show(ctx: click.Context, prompt_id: str) -> None:
    """Show prompt details."""
    client: LibraryClient = ctx.obj
    _output(ctx, client.get_prompt(prompt_id))


@prompt.command("delete")
@click.argument("prompt_id")
@click.pass_context
def prompt_delete(ctx: click.Context, prompt_id: str) -> None:
    """Delete a prompt."""
    client: LibraryClient = ctx.obj
    client.delete_prompt(prompt_id)
    click.echo(f"Deleted prompt '{prompt_id}'")


@prompt.command("rate")
@click.argument("prompt_id")
@click.argument("rating", type=click.IntRange(0, 5))
@click.pass_context
def prompt_rate(ctx: click.Context, prompt_id: str, rating: int) -> None:
    """Rate a prompt 1-5 (0 clears the rating)."""
    client: LibraryClient = ctx.obj
    client.set_rating(prompt_id, rating)
    click.echo(f"Rated prompt '{prompt_id}' {rating}/5" if rating else f"Cleared rating for '{prompt_id}'")


# --- Note commands ---


@cli.group()
def note() -> None:
    """Manage notes attached to prompts."""


@note.command("list")
@click.argument("prompt_id")
@click.pass_context
def note_list(ctx: click.Context, prompt_id: str) -> None:
    client: LibraryClient = ctx.obj
    _output(ctx, client.list_notes(prompt_id), ["id", "content", "updatedAt"])


@note.command("add")
@click.argument("prompt_id")
@click.argument("content")
@click.pass_context
def note_add(ctx: click.Context, prompt_id: str, content: str) -> None:
    client: LibraryClient = ctx.obj
    _output(ctx, client.add_note(prompt_id, content))


# --- Export / import ---


@cli.command("export")
@click.option("--out", "out_dir", default=None, help="Directory for the export file")
@click.pass_context
def export_cmd(ctx: click.Context, out_dir: str | None) -> None:
    """Export all prompts to a JSON file."""
    client: LibraryClient = ctx.obj
    filename, text = client.export()
    directory = Path(out_dir or get_settings().export_dir)
    directory.mkdir(parents=True, exist_ok=True)
    path = directory / (filename or "prompts-export.json")
    path.write_text(text, encoding="utf-8")
    click.echo(f"Exported to {path}")


@cli.command("import")
@click.argument("file_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--mode", type=click.Choice(MODES), default=None, help="Conflict strategy")
@click.option("--yes", "-y", is_flag=True, help="Apply without asking")
@click.pass_context
def import_cmd(ctx: click.Context, file_path: str, mode: str | None, yes: bool) -> None:
    """Import prompts from an export file.

    The file is analysed first; conflicts with existing prompts are listed
    before anything is written.
    """
    client: LibraryClient = ctx.obj
    response = client.analyze_import(Path(file_path).read_bytes())
    analysis = response["analysis"]
    if not analysis["valid"]:
        raise click.ClickException(analysis.get("reason") or "Invalid import file")

    click.echo(f"File contains {analysis['importedCount']} prompts. Version {analysis['version']}.")
    if analysis.get("hasInternalDuplicates"):
        click.echo(f"Warning: duplicate IDs in file: {', '.join(analysis['duplicateIds'])}", err=True)

    conflicts = analysis.get("conflicts") or []
    if conflicts:
        click.echo(f"{len(conflicts)} ID conflicts with existing prompts found:")
        for c in conflicts:
            click.echo(f"  - ID {c['id']}: existing '{c['existingTitle']}' | incoming '{c['incomingTitle']}'")

    suggested = ImportMode.MERGE_OVERWRITE.value if conflicts else ImportMode.MERGE_SKIP.value
    if mode is None:
        mode = suggested if yes else click.prompt(
            "Conflict strategy", type=click.Choice(MODES), default=suggested
        )

    result = client.apply_import(response["payload"], mode)
    if not result["applied"]:
        errors = result.get("errors") or []
        raise click.ClickException(errors[0] if errors else "Import failed")

    click.echo(
        f"Import complete: {result['imported']} added, {result['overwritten']} overwritten, "
        f"{result['skipped']} skipped, {result['duplicated']} duplicated."
    )


# --- Backups ---


@cli.group()
def backup() -> None:
    """Inspect and restore pre-import backups."""


@backup.command("list")
@click.pass_context
def backup_list(ctx: click.Context) -> None:
    client: LibraryClient = ctx.obj
    _output(ctx, client.list_backups(), ["key", "createdAt", "promptCount"])


@backup.command("restore")
@click.argument("key")
@click.confirmation_option(prompt="Replace all current prompts with this backup?")
@click.pass_context
def backup_restore(ctx: click.Context, key: str) -> None:
    """Restore the prompt collection from a backup."""
    client: LibraryClient = ctx.obj
    result = client.restore_backup(key)
    click.echo(f"Restored {result['restored']} prompts from {key}")


# --- Server ---


@cli.command()
@click.option("--host", default="127.0.0.1")
@click.option("--port", type=int, default=None, help="Defaults to PLIB_PORT")
def serve(host: str, port: int | None) -> None:
    """Start the HTTP API server."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "prompt_library.main:app",
        host=host,
        port=port or settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    cli()
