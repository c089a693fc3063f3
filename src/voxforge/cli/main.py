"""Click CLI group: serve, improve, reset and capabilities commands."""

from __future__ import annotations

import asyncio
import json
from typing import TextIO

import click

from voxforge.config import get_settings
from voxforge.errors import PipelineAbort, ProviderError, VoxforgeError
from voxforge.improve.types import ImprovementRecord
from voxforge.logging import configure_logging
from voxforge.profile.baseline import reset_to_baseline
from voxforge.services import build_services


def _profile_id(explicit: str | None) -> str:
    profile_id = (explicit or get_settings().voice_assistant_id).strip()
    if not profile_id:
        raise click.UsageError("no profile id: pass --profile-id or set VOICE_ASSISTANT_ID")
    return profile_id


def _print_record(record: ImprovementRecord, json_output: bool) -> None:
    if json_output:
        click.echo(json.dumps(record.to_dict(), indent=2))
        return
    click.echo(f"run: {record.run_id} ({record.state.value})")
    for step in record.step_log:
        click.echo(f"  [{step.status.value}] {step.step}: {step.detail}")
    for change in record.changes:
        click.echo(f"change: {change}")
    if record.capabilities_created:
        click.echo(f"capabilities created: {', '.join(record.capabilities_created)}")


@click.group()
def cli() -> None:
    """Voxforge self-improving voice agent CLI."""


@cli.command()
@click.option("--host", type=str, default=None, help="Bind host (default: BIND_HOST).")
@click.option("--port", type=int, default=None, help="Bind port (default: BIND_PORT).")
@click.option("--reload", is_flag=True, help="Reload on code changes.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Run the HTTP service under uvicorn."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "voxforge.main:app",
        host=host or settings.bind_host,
        port=port or settings.bind_port,
        reload=reload,
    )


@cli.command()
@click.option("--outcome-id", type=str, default=None, help="Interaction to fetch and analyse.")
@click.option("--transcript", type=str, default=None, help="Raw transcript text to analyse.")
@click.option(
    "--transcript-file",
    type=click.File("r"),
    default=None,
    help="Read the transcript from a file ('-' for stdin).",
)
@click.option("--contact", type=str, default=None, help="Contact address for the callback.")
@click.option("--profile-id", type=str, default=None, help="Override VOICE_ASSISTANT_ID.")
@click.option("--json", "json_output", is_flag=True, help="Print the full record as JSON.")
def improve(
    outcome_id: str | None,
    transcript: str | None,
    transcript_file: TextIO | None,
    contact: str | None,
    profile_id: str | None,
    json_output: bool,
) -> None:
    """Run one self-improvement pass in-process."""
    if transcript_file is not None:
        transcript = transcript_file.read()
    if not outcome_id and not (transcript and transcript.strip()):
        raise click.UsageError("provide --outcome-id or --transcript/--transcript-file")
    settings = get_settings()
    configure_logging(settings.log_level)
    target = _profile_id(profile_id)
    services = build_services(settings)

    async def run() -> ImprovementRecord:
        if outcome_id:
            return await services.pipeline.run_for_outcome(outcome_id, target, contact)
        return await services.pipeline.run_for_transcript(str(transcript), target, contact)

    try:
        record = asyncio.run(services.runner.run_exclusive(target, run))
    except (PipelineAbort, ProviderError) as exc:
        raise click.ClickException(f"improvement aborted: {exc}") from exc
    _print_record(record, json_output)


@cli.command()
@click.option("--profile-id", type=str, default=None, help="Override VOICE_ASSISTANT_ID.")
@click.confirmation_option(prompt="Overwrite the live profile with the baseline?")
def reset(profile_id: str | None) -> None:
    """Restore the baseline profile."""
    settings = get_settings()
    target = _profile_id(profile_id)
    services = build_services(settings)
    try:
        result = asyncio.run(
            reset_to_baseline(target, services.tuning, services.registry, services.history)
        )
    except VoxforgeError as exc:
        raise click.ClickException(f"reset failed: {exc}") from exc
    click.echo(f"profile {target} reset to baseline")
    click.echo(f"cleared records: {result['clearedRecords']}")


@cli.command()
@click.option("--json", "json_output", is_flag=True, help="Print JSON output.")
def capabilities(json_output: bool) -> None:
    """List the capabilities registered at startup."""
    services = build_services(get_settings())
    items = [item.summary() for item in services.registry.list_all()]
    if json_output:
        click.echo(json.dumps(items, indent=2))
        return
    if not items:
        click.echo("no capabilities")
        return
    for item in items:
        params = ", ".join(str(name) for name in item.get("params", []))
        click.echo(f"{item['name']} [{item['origin']}] ({params}): {item['description']}")
