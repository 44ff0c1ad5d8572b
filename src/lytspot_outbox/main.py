"""CLI entrypoint for lytspot-outbox."""

import logging
from pathlib import Path

import rich_click as click

from lytspot_outbox import __version__
from lytspot_outbox.outbox.controllers import (
    OutboxCliController,
    OutboxProbeCommand,
    OutboxQueueCommand,
    OutboxSubmitCommand,
)
from lytspot_outbox.outbox.submitter import InvalidSubmissionError

click.rich_click.USE_MARKDOWN = True
OUTBOX_CONTROLLER = OutboxCliController()

KIND_CHOICE = click.Choice(["contact", "budget"], case_sensitive=False)


@click.group()
@click.version_option(version=__version__, prog_name="lytspot-outbox")
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default="WARNING",
    show_default=True,
    help="Logging verbosity.",
)
def lytspot_outbox(log_level: str) -> None:
    """LytSpot form submission outbox."""

    logging.basicConfig(
        level=log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@lytspot_outbox.command("submit")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--kind", type=KIND_CHOICE, required=True, help="Form kind.")
@click.option(
    "--field",
    "fields",
    multiple=True,
    required=True,
    help="Form field as name=value. Can be repeated.",
)
def submit(db_path: Path | None, kind: str, fields: tuple[str, ...]) -> None:
    """Send a form submission now, queueing it if the API is unavailable."""

    try:
        lines = OUTBOX_CONTROLLER.submit(
            OutboxSubmitCommand(db_path=db_path, kind=kind.lower(), fields=_parse_fields(fields)),
        )
    except InvalidSubmissionError as error:
        raise click.ClickException(str(error)) from error
    _emit_lines(lines)


@lytspot_outbox.command("enqueue")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option("--kind", type=KIND_CHOICE, required=True, help="Form kind.")
@click.option(
    "--field",
    "fields",
    multiple=True,
    help="Form field as name=value. Can be repeated.",
)
def enqueue(db_path: Path | None, kind: str, fields: tuple[str, ...]) -> None:
    """Queue a submission without attempting delivery."""

    _emit_lines(
        OUTBOX_CONTROLLER.enqueue(
            OutboxSubmitCommand(db_path=db_path, kind=kind.lower(), fields=_parse_fields(fields)),
        ),
    )


@lytspot_outbox.command("list")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def list_pending(db_path: Path | None) -> None:
    """List queued submissions in delivery order."""

    _emit_lines(OUTBOX_CONTROLLER.list_pending(OutboxQueueCommand(db_path=db_path)))


@lytspot_outbox.command("status")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def status(db_path: Path | None) -> None:
    """Show pending count and the age of the oldest entry."""

    _emit_lines(OUTBOX_CONTROLLER.status(OutboxQueueCommand(db_path=db_path)))


@lytspot_outbox.command("flush")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
def flush(db_path: Path | None) -> None:
    """Deliver queued submissions now."""

    _emit_lines(OUTBOX_CONTROLLER.flush(OutboxQueueCommand(db_path=db_path)))


@lytspot_outbox.command("probe")
@click.option("--db-path", type=click.Path(path_type=Path), default=None, help="SQLite DB path.")
@click.option(
    "--once/--loop",
    default=True,
    show_default=True,
    help="Probe a single time or keep probing on the configured interval.",
)
@click.option(
    "--max-probes",
    type=click.IntRange(min=1),
    default=None,
    help="Optional cap for probes in loop mode.",
)
@click.option(
    "--interval-seconds",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Probe interval. Defaults to LYTSPOT_PROBE_INTERVAL_SECONDS.",
)
def probe(
    db_path: Path | None,
    once: bool,
    max_probes: int | None,
    interval_seconds: float | None,
) -> None:
    """Ping the API and flush the queue whenever it is reachable."""

    _emit_lines(
        OUTBOX_CONTROLLER.probe(
            OutboxProbeCommand(
                db_path=db_path,
                once=once,
                max_probes=max_probes,
                interval_seconds=interval_seconds,
            ),
        ),
    )


def _parse_fields(values: tuple[str, ...]) -> dict[str, str]:
    fields: dict[str, str] = {}
    for value in values:
        if "=" not in value:
            raise click.BadParameter(
                f"Invalid field {value!r}. Expected format 'name=value'.",
                param_hint="--field",
            )
        name, field_value = value.split("=", 1)
        name = name.strip()
        if not name:
            raise click.BadParameter(f"Empty field name in {value!r}.", param_hint="--field")
        fields[name] = field_value
    return fields


def _emit_lines(lines: list[str]) -> None:
    for line in lines:
        click.echo(line)


if __name__ == "__main__":  # pragma: no cover
    lytspot_outbox()
