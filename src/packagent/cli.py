"""CLI entry point for packagent."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from typing import TYPE_CHECKING

import typer
from pydantic import ValidationError

from packagent.config import MissingCredentialError, PackagentConfig

if TYPE_CHECKING:
    from packagent.model.trip import TripRequest

app = typer.Typer(
    name="packagent",
    help="Travel packing assistant: weather-aware packing lists from a local LLM.",
    no_args_is_help=True,
)

EXIT_TRANSPORT = 1
EXIT_MISSING_CREDENTIAL = 2
EXIT_ABORTED = 3
EXIT_BAD_INPUT = 4
EXIT_BAD_CONFIG = 5


def setup_logging(verbose: bool = False) -> None:
    # stdout carries only the final JSON, so stay quiet unless asked
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )


def _parse_date(value: str, label: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        typer.echo(f"Error: {label} must be YYYY-MM-DD, got {value!r}", err=True)
        raise typer.Exit(EXIT_BAD_INPUT)


@app.command()
def plan(
    city: str | None = typer.Option(
        None, "--city", help="Destination city (e.g. Lisbon)."
    ),
    start: str | None = typer.Option(
        None, "--start", help="First day of the trip (YYYY-MM-DD)."
    ),
    end: str | None = typer.Option(
        None, "--end", help="Last day of the trip (YYYY-MM-DD)."
    ),
    trip_type: str | None = typer.Option(
        None,
        "--trip-type",
        "-t",
        help="business, beach, city, hiking, ski, family or romantic.",
    ),
    model: str | None = typer.Option(
        None,
        "--model",
        "-m",
        help="LLM model to use (default: from env/config).",
    ),
    config_file: str | None = typer.Option(
        None, "--config", "-c", help="Config file path."
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable debug logging and print the run transcript to stderr.",
    ),
) -> None:
    """Plan a packing list for one trip."""
    from packagent.model.trip import TripRequest, TripType

    setup_logging(verbose)

    try:
        config = PackagentConfig.load(config_file)
    except (OSError, ValueError, ValidationError) as e:
        typer.echo(f"Error: invalid configuration: {e}", err=True)
        raise typer.Exit(EXIT_BAD_CONFIG)
    if model:
        config.llm.model = model
    try:
        config.require_weather_key()
    except MissingCredentialError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(EXIT_MISSING_CREDENTIAL)

    if city is None:
        city = typer.prompt("City (e.g., Lisbon)")
    if start is None:
        start = typer.prompt("Start date (YYYY-MM-DD)")
    if end is None:
        end = typer.prompt("End date   (YYYY-MM-DD)")
    if trip_type is None:
        choices = "|".join(t.value.upper() for t in TripType)
        trip_type = typer.prompt(f"Trip type [{choices}]", default="CITY")

    try:
        trip = TripRequest(
            city=city,
            start_date=_parse_date(start, "start date"),
            end_date=_parse_date(end, "end date"),
            trip_type=TripType.parse(trip_type),
        )
    except ValidationError as e:
        typer.echo(f"Error: invalid trip: {e}", err=True)
        raise typer.Exit(EXIT_BAD_INPUT)

    typer.echo(f"Trip: {trip.city}, {trip.start_date}..{trip.end_date}", err=True)
    typer.echo(f"Trip type: {trip.trip_type.value} ({trip.days} days)", err=True)
    typer.echo(f"Model: {config.llm.litellm_model}", err=True)
    typer.echo("---", err=True)

    asyncio.run(_run_plan(trip, config, dump_transcript=verbose))


async def _run_plan(
    trip: TripRequest, config: PackagentConfig, dump_transcript: bool = False
) -> None:
    """Run the packing agent with progress on stderr."""
    from packagent.agent.orchestrator import RunOutcome
    from packagent.agent.packing import plan_packing
    from packagent.context import to_dicts
    from packagent.llm.provider import ModelTransportError
    from packagent.session.wire import EventType, Wire

    wire = Wire()

    # Subscribe before the run starts so RUN_BEGIN is not missed
    queue = wire.subscribe()

    # --- Wire consumer (async background task) ---
    async def _consume_wire() -> None:
        while True:
            event = await queue.get()
            if event is None:
                break

            d = event.data

            if event.type == EventType.MODEL_TURN:
                calls = d.get("tool_calls") or []
                detail = f" -> {', '.join(calls)}" if calls else ""
                typer.echo(f"[model call {d.get('call', '?')}]{detail}", err=True)

            elif event.type == EventType.TOOL_CALL:
                typer.echo(
                    f"  > {d.get('name', '?')} {d.get('arguments', '')}", err=True
                )

            elif event.type == EventType.TOOL_RESULT:
                content = d.get("content", "")
                status = "ERROR" if d.get("is_error") else "OK"
                first_line = content.split("\n")[0][:100] if content else status
                typer.echo(f"  < {d.get('name', '?')}: {first_line}", err=True)

            elif event.type == EventType.DUPLICATE_TOOL_CALL:
                typer.echo(
                    f"  [ignored repeat call to {d.get('name', '?')}]", err=True
                )

            elif event.type == EventType.REASK:
                typer.echo(
                    f"[re-ask {d.get('reasks')}/{d.get('max_reasks')}]", err=True
                )

            elif event.type == EventType.ABORTED:
                typer.echo(
                    f"Aborted: no final answer after {d.get('reasks')} re-asks",
                    err=True,
                )

            elif event.type == EventType.ERROR:
                typer.echo(f"ERROR: {d.get('error', 'Unknown error')}", err=True)

        wire.unsubscribe(queue)

    consumer_task = asyncio.create_task(_consume_wire())

    try:
        result = await plan_packing(trip, config, wire=wire)
    except ModelTransportError:
        result = None
    finally:
        wire.close()
        await consumer_task

    if result is None:
        raise typer.Exit(EXIT_TRANSPORT)
    if dump_transcript:
        typer.echo("--- TRANSCRIPT ---", err=True)
        typer.echo(
            json.dumps(to_dicts(result.conversation), indent=2, ensure_ascii=False),
            err=True,
        )
    if result.outcome is RunOutcome.ABORTED or result.answer is None:
        raise typer.Exit(EXIT_ABORTED)

    typer.echo("\n--- PACKING LIST (JSON) ---")
    typer.echo(result.answer.text)


@app.command()
def tools() -> None:
    """List the tool schemas declared to the model."""
    from packagent.agent.agent import load_builtin_agent
    from packagent.agent.packing import build_tool_registry
    from packagent.weather import WeatherService

    agent = load_builtin_agent("packing")
    # Schemas only; no lookup is made, so no key is needed.
    registry = build_tool_registry(WeatherService(api_key="")).subset(agent.tools)
    typer.echo(json.dumps(registry.get_specs(), indent=2))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
