"""Command-line entry point: ``notion-site run`` and ``notion-site init``."""

from __future__ import annotations

import click

from notionsite.config import DEFAULT_CONFIG_FILENAME, load_config, write_default_config
from notionsite.errors import NotionSiteError
from notionsite.generator import SiteGenerator
from notionsite.observability import set_level


@click.group()
@click.version_option(package_name="notion-site")
def cli() -> None:
    """Publish a Notion database as a Hugo site."""


@cli.command(name="run")
@click.option(
    "--config", "config_path",
    default=DEFAULT_CONFIG_FILENAME, show_default=True,
    type=click.Path(dir_okay=False),
    help="Path to the YAML configuration file.",
)
@click.option("--workers", type=click.IntRange(min=1), help="Pages rendered concurrently.")
@click.option(
    "--extended-syntax/--no-extended-syntax", default=None,
    help="Render bookmark and callout blocks as shortcodes.",
)
@click.option(
    "--log-level", default="INFO", show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
)
def run_command(
    config_path: str,
    workers: int | None,
    extended_syntax: bool | None,
    log_level: str,
) -> None:
    """Render every matching database entry into the site."""
    set_level(log_level.upper())
    try:
        config = load_config(config_path, max_workers=workers, extended_syntax=extended_syntax)
        with SiteGenerator(config) as generator:
            result = generator.run()
    except NotionSiteError as exc:
        code = getattr(exc.code, "value", exc.code)
        raise click.ClickException(f"[{code}] {exc.message}") from exc

    tally = result.tally()
    click.echo(
        f"succeeded: {tally['succeeded']}  failed: {tally['failed']}  "
        f"skipped: {tally['skipped']}"
    )


@cli.command(name="init")
@click.option(
    "--path", "directory", default=".", show_default=True,
    type=click.Path(file_okay=False),
    help="Directory receiving the starter files.",
)
def init_command(directory: str) -> None:
    """Write a starter configuration and .env file."""
    config_path, env_path = write_default_config(directory)
    click.echo(f"Configuration: {config_path}")
    click.echo(f"Secrets:       {env_path}")


if __name__ == "__main__":
    cli()
