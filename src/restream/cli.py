"""CLI interface for restream"""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional

import click
import yaml

from restream.application.retry_stream import RetryStream
from restream.application.run_service import RunService
from restream.domain.models.run_result import RunResult
from restream.infrastructure.config.config_manager import ConfigManager, ConfigurationError
from restream.infrastructure.sources.factory import SourceFactoryRegistry

logger = logging.getLogger(__name__)

_MISSING = object()


def setup_logging(verbose: bool = False) -> None:
    """Setup logging configuration"""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        force=True,
    )
    logging.getLogger().setLevel(level)


def _die(message: str, verbose: bool = False, exc: Optional[Exception] = None) -> None:
    """Exit with a user-friendly error message"""
    if exc is not None:
        logger.error(message, exc_info=verbose)
    else:
        logger.error(message)
    raise click.ClickException(message)


def parse_items(raw: str) -> List[Any]:
    """Parse a comma separated item list, keeping integers as ints

    Args:
        raw: Items string, e.g. "1,2,three"

    Returns:
        List of parsed items
    """
    items: List[Any] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            items.append(int(part))
        except ValueError:
            items.append(part)
    return items


def _load_config(ctx: click.Context) -> ConfigManager:
    try:
        return ConfigManager(config_path=ctx.obj.get("config_path"))
    except ConfigurationError as e:
        _die(str(e), verbose=ctx.obj.get("verbose", False), exc=e)


def _echo_event(kind: str, value: Any) -> None:
    if kind == "data":
        click.echo(f"data: {value}")
    elif kind == "done":
        click.echo("done")


def _output_run_result(result: RunResult) -> None:
    """Output the run outcome and exit non-zero on failure

    Args:
        result: Run result
    """
    click.echo("\n" + "=" * 80)
    click.echo(f"Items received: {len(result.items)}")

    if result.cancelled:
        click.echo("Run timed out and was cancelled", err=True)
        sys.exit(1)

    retry_error = result.retry_error
    if retry_error is not None:
        click.echo(f"ERROR: {retry_error}", err=True)
        for index, entry in enumerate(retry_error.errors, start=1):
            click.echo(f"  attempt {index}: {entry}", err=True)
        sys.exit(1)

    if result.error is not None:
        click.echo(f"ERROR: {result.error}", err=True)
        sys.exit(1)

    click.echo("Source completed successfully")


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
@click.option(
    "--config",
    type=click.Path(exists=True, path_type=Path),
    help="Path to .restream.yml config file",
)
@click.pass_context
def cli(ctx, verbose: bool, config: Path):
    """restream - retry a re-creatable stream until it succeeds"""
    ctx.ensure_object(dict)
    setup_logging(verbose)
    ctx.obj["config_path"] = config
    ctx.obj["verbose"] = verbose


@cli.command()
@click.option("--count", type=click.IntRange(min=0), help="Retries after the first attempt. Overrides config.")
@click.option("--unbounded", is_flag=True, help="Retry forever. Overrides config.")
@click.option(
    "--kind",
    type=click.Choice(list(SourceFactoryRegistry.SOURCES), case_sensitive=False),
    help="Source kind. Overrides config.",
)
@click.option("--fail-times", type=click.IntRange(min=0), help="Failing attempts before success (flaky).")
@click.option("--items", type=str, help="Comma separated items emitted on success, e.g. 1,2,3")
@click.option("--emit-before-error", is_flag=True, help="Emit items before failing (flaky).")
@click.option("--timeout", type=click.FloatRange(min=0, min_open=True), help="Cancel the run after N seconds.")
@click.pass_context
def run(
    ctx,
    count: Optional[int],
    unbounded: bool,
    kind: Optional[str],
    fail_times: Optional[int],
    items: Optional[str],
    emit_before_error: bool,
    timeout: Optional[float],
):
    """Run the configured source through a retry stream and print its events"""
    verbose = ctx.obj.get("verbose", False)
    if count is not None and unbounded:
        _die("--count and --unbounded are mutually exclusive", verbose=verbose)

    config_manager = _load_config(ctx)
    source_config = config_manager.get_source_config().model_copy()
    if fail_times is not None:
        source_config.fail_times = fail_times
    if items is not None:
        source_config.items = parse_items(items)
    if emit_before_error:
        source_config.emit_before_error = True

    retry_count = config_manager.get_retry_config().count
    if unbounded:
        retry_count = None
    elif count is not None:
        retry_count = count

    run_timeout = timeout if timeout is not None else config_manager.get_run_config().timeout
    source_kind = kind or source_config.kind

    try:
        source_factory = SourceFactoryRegistry.create(source_kind, source_config)
    except ValueError as e:
        _die(str(e), verbose=verbose, exc=e)

    budget = "unbounded" if retry_count is None else str(retry_count)
    logger.info(f"Running {source_kind} source with retry count: {budget}")

    stream = RetryStream(source_factory, retry_count)
    service = RunService(timeout=run_timeout, on_event=_echo_event)
    try:
        result = asyncio.run(service.run(stream))
    except Exception as e:
        _die(f"Fatal error: {e}", verbose=verbose, exc=e)

    _output_run_result(result)


@cli.command("show-config")
@click.option("--key", "-k", help="Print a single value by dotted key (e.g. retry.count)")
@click.pass_context
def show_config(ctx, key):
    """Print the effective configuration as YAML"""
    config_manager = _load_config(ctx)
    if key is None:
        click.echo(yaml.safe_dump(config_manager.config.model_dump(), sort_keys=False), nl=False)
        return

    value = config_manager.get(key, _MISSING)
    if value is _MISSING:
        _die(f"Unknown configuration key: {key}", verbose=ctx.obj.get("verbose", False))
    if isinstance(value, dict):
        click.echo(yaml.safe_dump(value, sort_keys=False), nl=False)
    else:
        click.echo("null" if value is None else value)


def main():
    """Main entry point"""
    cli(obj={})


if __name__ == "__main__":
    main()
