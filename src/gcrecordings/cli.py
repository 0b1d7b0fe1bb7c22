"""
gcrec – unified CLI entrypoint (Click group)

Subcommands:
- download: export, download and optionally convert queue recordings
- queues: list routing queues visible to the OAuth client
- regions: list known Genesys Cloud regions
"""

import logging
import sys
from pathlib import Path

import rich_click as click
from rich.console import Console

from gcrecordings import __version__
from gcrecordings import prompts
from gcrecordings.config import Config
from gcrecordings.exceptions import GcrecError
from gcrecordings.genesys_client import REGIONS, GenesysAPIError, GenesysClient
from gcrecordings.logger import setup_logging
from gcrecordings.models import FINAL_FORMATS
from gcrecordings.output import OutputFormatter
from gcrecordings.pipeline import ExportPipeline, needs_conversion
from gcrecordings.transcoder import ScriptTranscoder

click.rich_click.TEXT_MARKUP = "rich"
click.rich_click.SHOW_ARGUMENTS = True
click.rich_click.GROUP_ARGUMENTS_OPTIONS = True

console = Console()

logger = logging.getLogger(__name__)


def _autoload_dotenv() -> None:
    """Load a local .env file for CLI usage.

    Skipped when GCREC_NO_DOTENV is set (e.g., tests). Existing environment
    variables are not overridden.
    """
    import os

    try:
        if os.getenv("GCREC_NO_DOTENV"):
            return
        from dotenv import find_dotenv, load_dotenv

        dotenv_path = find_dotenv(usecwd=True)
        if dotenv_path:
            load_dotenv(dotenv_path, override=False)
    except Exception:
        # Best-effort only; never fail CLI due to dotenv load issues
        pass


def _validate_region(ctx: click.Context, param: click.Parameter, value: str | None) -> str | None:
    if value is None:
        return None
    region = GenesysClient.normalize_region(value)
    if region not in REGIONS:
        raise click.BadParameter(
            f"Unknown region {value!r}. Run 'gcrec regions' to list valid regions."
        )
    return region


def _load_config(config: str | None) -> Config:
    cfg = Config(env_file=config) if config else Config()
    cfg.validate()
    return cfg


def _resolve_region(region: str | None, cfg: Config, formatter: OutputFormatter) -> str:
    if region:
        return region
    if cfg.genesys_region:
        configured = GenesysClient.normalize_region(cfg.genesys_region)
        if configured in REGIONS:
            return configured
        logger.warning(f"Ignoring unknown GENESYS_REGION {cfg.genesys_region!r}")
    return prompts.select_region(REGIONS, formatter)


def _connect(cfg: Config, region: str, formatter: OutputFormatter) -> GenesysClient:
    """Create a client and obtain a token; AuthenticationError propagates"""
    client = GenesysClient(
        str(cfg.genesys_client_id), str(cfg.genesys_client_secret), region=region
    )
    client.authenticate()
    formatter.output_success(f"Authenticated against {region}")
    return client


def _report_fatal(e: Exception, formatter: OutputFormatter, debug: bool) -> None:
    """Print a fatal error and exit 1 (re-raise under --debug)"""
    logger.debug(f"{type(e).__name__} exception caught:", exc_info=True)
    if isinstance(e, GcrecError):
        formatter.output_error(f"{e.code}: {e.message}")
        if e.details:
            formatter.output_info(e.details)
    elif isinstance(e, GenesysAPIError):
        formatter.output_error(f"Genesys Cloud API error: {e}")
    else:
        formatter.output_error(f"Unexpected error: {e}")
    if debug:
        raise e
    sys.exit(1)


@click.group(help="gcrec – Export and download Genesys Cloud call recordings")
@click.version_option(version=__version__)
def cli() -> None:
    """Top-level Click group."""
    _autoload_dotenv()


@cli.command(name="regions", help="List known Genesys Cloud regions")
def regions() -> None:
    OutputFormatter(console).output_regions(REGIONS)


@cli.command(name="queues", help="List routing queues")
@click.option("--region", callback=_validate_region, help="Region domain, e.g. sae1.pure.cloud")
@click.option("--config", type=click.Path(exists=True), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--debug", "-d", is_flag=True, help="Debug output")
def queues(region: str | None, config: str | None, verbose: bool, debug: bool) -> None:
    log_level = "DEBUG" if debug else ("INFO" if verbose else "WARNING")
    setup_logging(level=log_level, verbose=debug)
    formatter = OutputFormatter(console)

    try:
        cfg = _load_config(config)
        client = _connect(cfg, _resolve_region(region, cfg, formatter), formatter)
        formatter.output_queues(client.list_queues())
    except (GcrecError, GenesysAPIError) as e:
        _report_fatal(e, formatter, debug)


@cli.command(name="download", help="Export, download and optionally convert queue recordings")
@click.option("--region", callback=_validate_region, help="Region domain, e.g. sae1.pure.cloud")
@click.option("--from-date", callback=prompts.validate_date_option, help="Start date (YYYY-MM-DD)")
@click.option("--to-date", callback=prompts.validate_date_option, help="End date (YYYY-MM-DD)")
@click.option("--queue-id", help="Routing queue ID (skips the queue prompt)")
@click.option(
    "--format",
    "target_format",
    type=click.Choice(FINAL_FORMATS, case_sensitive=False),
    help="Final audio format; WAV and MP3 run the conversion script",
)
@click.option(
    "--output-dir",
    "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for downloaded recordings (default: ./Recordings)",
)
@click.option(
    "--poll-attempts",
    type=click.IntRange(min=1),
    help="Batch status checks before giving up (default: 60)",
)
@click.option(
    "--poll-interval",
    type=click.FloatRange(min=0),
    help="Seconds between batch status checks (default: 10)",
)
@click.option(
    "--transcode-command",
    help="Conversion command; receives the directory and format as its last two arguments",
)
@click.option("--no-progress", is_flag=True, help="Disable download progress bars")
@click.option("--config", type=click.Path(exists=True), help="Path to config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.option("--debug", "-d", is_flag=True, help="Debug output")
def download(
    region: str | None,
    from_date: str | None,
    to_date: str | None,
    queue_id: str | None,
    target_format: str | None,
    output_dir: Path | None,
    poll_attempts: int | None,
    poll_interval: float | None,
    transcode_command: str | None,
    no_progress: bool,
    config: str | None,
    verbose: bool,
    debug: bool,
) -> None:
    """Download call recordings for a queue and date range."""
    log_level = "DEBUG" if debug else ("INFO" if verbose else "WARNING")
    setup_logging(level=log_level, verbose=debug)
    formatter = OutputFormatter(console)

    console.print("[bold]GENESYS CLOUD RECORDING DOWNLOADER[/bold]")

    try:
        cfg = _load_config(config)
        if output_dir:
            cfg.output_dir = Path(output_dir).expanduser()

        client = _connect(cfg, _resolve_region(region, cfg, formatter), formatter)

        formatter.output_header("DATE RANGE")
        if from_date and to_date:
            prompts.check_date_order(from_date, to_date)
        elif from_date or to_date:
            raise click.UsageError("Both --from-date and --to-date must be provided together")
        else:
            from_date, to_date = prompts.select_date_range()
        formatter.output_success(f"Range selected: {from_date} to {to_date}")

        if not queue_id:
            formatter.output_header("AVAILABLE QUEUES")
            queue_id = str(prompts.select_queue(client.list_queues(), formatter)["id"])

        if target_format:
            target_format = target_format.upper()
        else:
            target_format = prompts.select_format(formatter)

        # OGG is final as exported; no conversion command is involved
        transcoder = None
        if needs_conversion(target_format):
            transcoder = ScriptTranscoder(transcode_command or cfg.transcode_command)

        pipeline = ExportPipeline(
            client,
            cfg.output_dir,
            transcoder=transcoder,
            formatter=formatter,
            max_attempts=poll_attempts or cfg.poll_max_attempts,
            interval_seconds=(
                poll_interval if poll_interval is not None else cfg.poll_interval_seconds
            ),
            show_progress=not no_progress,
        )
        result = pipeline.run(queue_id, from_date, to_date, target_format)

    except (click.ClickException, click.Abort):
        raise
    except (GcrecError, GenesysAPIError) as e:
        _report_fatal(e, formatter, debug)
        return
    except Exception as e:
        _report_fatal(e, formatter, debug or verbose)
        return

    if pipeline.transcode_error is not None:
        # Downloads stay valid when conversion fails
        formatter.output_warning("Recordings were downloaded but not converted.")
    logger.info(f"Run finished with status {result.status}")


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
