"""Command-line interface for Folio."""

import asyncio
from pathlib import Path

import click

from folio import __version__
from folio.config import Config
from folio.logging import get_logger, setup_logging

log = get_logger("cli")


@click.group()
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=False, path_type=Path),
    default=None,
    help="YAML config; config.yaml in the working directory if omitted.",
)
@click.option(
    "--log-level",
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    default=None,
    help="Minimum log level, replacing log_level from the config.",
)
@click.option(
    "--log-json/--no-log-json",
    default=None,
    help="JSON log lines or console rendering, replacing log_json from the config.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config_file: Path | None,
    log_level: str | None,
    log_json: bool | None,
) -> None:
    """Folio - Discord reader for image galleries."""
    config = Config.load_or_default(config_file)
    ctx.obj = {"config": config}

    setup_logging(
        json_output=config.log_json if log_json is None else log_json,
        level=log_level or config.log_level,
    )


@cli.command()
def version() -> None:
    """Print version information."""
    click.echo(f"folio {__version__}")


@cli.command()
@click.pass_context
def run(ctx: click.Context) -> None:
    """Connect to Discord and serve /gallery and the reader.

    Requires DISCORD_TOKEN environment variable to be set.
    """
    from folio.bot import run_bot

    config = ctx.obj["config"]

    if not config.discord_token:
        click.echo("Error: DISCORD_TOKEN environment variable not set", err=True)
        click.echo("Set DISCORD_TOKEN to your bot token to connect to Discord.", err=True)
        raise SystemExit(1)

    log.info("run_command_invoked", download_dir=str(config.download_dir))
    asyncio.run(run_bot(config))


@cli.command()
@click.argument("code")
@click.option(
    "--download/--no-download",
    default=True,
    help="Download the cover and pages after fetching metadata.",
)
@click.pass_context
def fetch(ctx: click.Context, code: str, download: bool) -> None:
    """Look up a gallery by CODE and optionally download it."""
    from folio.downloads import AcquisitionPipeline
    from folio.errors import GalleryError
    from folio.models import is_valid_code

    code = code.strip()
    if not is_valid_code(code):
        click.echo("Please provide a valid code", err=True)
        raise SystemExit(1)

    config = ctx.obj["config"]
    pipeline = AcquisitionPipeline.from_config(config)

    async def _fetch():
        if download:
            return await pipeline.acquire(code, config.download_dir)
        return await pipeline.gallery_client.fetch_metadata(code)

    try:
        outcome = asyncio.run(_fetch())
    except GalleryError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)

    if not download:
        record = outcome
        click.echo(f"{record.display_title}")
        click.echo(f"  Pages: {len(record.pages)}")
        return

    if outcome.record is None:
        click.echo(f"Error: {outcome.error}", err=True)
        raise SystemExit(1)

    click.echo(f"{outcome.record.display_title}")
    click.echo(f"  Pages: {len(outcome.record.pages)}")
    if outcome.directory is not None:
        click.echo(f"  Directory: {outcome.directory}")
    click.echo(f"  Files downloaded: {len(outcome.downloaded)}")

    if outcome.error is not None:
        click.echo(f"Download incomplete: {outcome.error}", err=True)
        raise SystemExit(1)


@cli.group()
def config() -> None:
    """Configuration management commands."""
    pass


@config.command(name="check")
@click.option(
    "-c",
    "--config-file",
    type=click.Path(exists=True, path_type=Path),
    default="config.yaml",
    help="Path to configuration file.",
)
def config_check(config_file: Path) -> None:
    """Validate configuration file."""
    try:
        cfg = Config.load(config_file)
        click.echo(f"Configuration valid: {config_file}")
        click.echo(f"  Data directory: {cfg.data_dir}")
        click.echo(f"  Download directory: {cfg.download_dir}")
        click.echo(f"  Downloads enabled: {cfg.downloads.enabled}")
        click.echo(f"  Gallery API host: {cfg.gallery.api_host}")
        click.echo(f"  Log level: {cfg.log_level}")
        if cfg.discord.guild_id:
            click.echo(f"  Command guild: {cfg.discord.guild_id}")

    except FileNotFoundError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(1)
    except Exception as e:
        click.echo(f"Configuration error: {e}", err=True)
        raise SystemExit(1)
