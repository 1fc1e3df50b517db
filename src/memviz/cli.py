"""CLI commands for memviz."""

from dataclasses import replace
from pathlib import Path

import click

from memviz.config import MIN_INTERVAL, Config


def _load_config(path: Path | None) -> Config:
    """Load config, turning validation errors into CLI errors."""
    try:
        return Config.load(path)
    except ValueError as e:
        raise click.ClickException(str(e)) from e


def _open_source(config: Config):
    """Create the counter source, failing fast if /proc is unusable."""
    from memviz.source import ProcfsSource, SourceUnavailableError, use_procfs

    use_procfs(config.source.procfs_path)
    source = ProcfsSource(config.source.procfs_path)
    try:
        source.probe()
    except SourceUnavailableError as e:
        raise click.ClickException(str(e)) from e
    return source


config_option = click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Path to config file.",
)


@click.group(invoke_without_command=True)
@click.version_option(package_name="memviz")
@click.pass_context
def main(ctx: click.Context) -> None:
    """Visualize per-process memory and CPU usage."""
    if ctx.invoked_subcommand is None:
        ctx.invoke(tui)


@main.command()
@config_option
@click.option(
    "--interval",
    type=click.FloatRange(min=MIN_INTERVAL),
    default=None,
    help="Seconds between samples for every panel.",
)
def tui(config_path: Path | None = None, interval: float | None = None) -> None:
    """Launch interactive dashboard."""
    from memviz import logging as memviz_logging
    from memviz.app import run_tui

    config = _load_config(config_path)
    if interval is not None:
        config = replace(
            config,
            processes=replace(config.processes, interval=interval),
            memory=replace(config.memory, interval=interval),
            ram=replace(config.ram, interval=interval),
        )

    memviz_logging.configure(config)
    source = _open_source(config)
    run_tui(config, source)


@main.command()
@config_option
@click.option("--limit", "-n", default=20, type=click.IntRange(min=1), help="Rows to show.")
def snapshot(config_path: Path | None, limit: int) -> None:
    """Print one ranked sampling pass and exit."""
    from rich.console import Console
    from rich.table import Table

    from memviz import logging as memviz_logging
    from memviz.monitor import sample_process_rows, sample_used_memory
    from memviz.panels import COLUMNS
    from memviz.source import SourceError, lookup_username

    config = _load_config(config_path)
    # Events go to the log file so they never mix with the table
    memviz_logging.configure(config)
    source = _open_source(config)

    try:
        rows = sample_process_rows(source, lookup_username)
        used = sample_used_memory(source)
    except SourceError as e:
        raise click.ClickException(f"Sample failed: {e}") from e

    table = Table(title=f"Used RAM {used:.1f}%")
    for title, _ in COLUMNS:
        justify = "left" if title in ("USER", "NAME") else "right"
        table.add_column(title, justify=justify)
    for row in rows[:limit]:
        table.add_row(row.user, row.name, row.count, row.cpu, row.memory)

    Console().print(table)


@main.group()
def config() -> None:
    """Manage the config file."""


@config.command("init")
@config_option
@click.option("--force", is_flag=True, help="Overwrite an existing file.")
def config_init(config_path: Path | None, force: bool) -> None:
    """Write a config file with default values."""
    defaults = Config()
    path = config_path or defaults.config_path
    if path.exists() and not force:
        raise click.ClickException(f"{path} already exists (use --force to overwrite)")
    defaults.save(path)
    click.echo(f"Created config at {path}")


@config.command("show")
@config_option
def config_show(config_path: Path | None) -> None:
    """Print the effective configuration."""
    click.echo(_load_config(config_path).to_toml(), nl=False)
