"""Configuration commands.

Shows, locates and initialises the scan defaults file.
"""

from pathlib import Path
from typing import Annotated

import typer
from rich.table import Table

from dirscan.core.config import ConfigError, ScanConfig, load_config_or_default, save_config
from dirscan.core.paths import get_config_path
from dirscan.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage scan defaults.",
    no_args_is_help=True,
)

ConfigPathOption = Annotated[
    Path | None,
    typer.Option("--config", "-c", help="Config file to use instead of the default."),
]


@app.command()
def show(config_path: ConfigPathOption = None) -> None:
    """Show the effective scan defaults."""
    target = config_path or get_config_path()
    try:
        config = load_config_or_default(target)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    source = str(target) if target.exists() else "built-in defaults"
    table = Table(
        title=f"Scan defaults ({source})",
        show_header=True,
        header_style="bold_header",
        border_style="border",
    )
    table.add_column("Setting", style="header", no_wrap=True)
    table.add_column("Value")

    for name, value in config.model_dump(mode="json").items():
        if isinstance(value, list):
            shown = ", ".join(str(v) for v in value) or "-"
        elif value is None:
            shown = "-"
        else:
            shown = str(value)
        table.add_row(name, shown)

    console.print(table)


@app.command()
def init(
    config_path: ConfigPathOption = None,
    force: Annotated[
        bool,
        typer.Option("--force", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a config file with the default settings."""
    target = config_path or get_config_path()
    if target.exists() and not force:
        print_info(f"Config already exists: {target} (use --force to overwrite)")
        raise typer.Exit(code=1)

    try:
        written = save_config(ScanConfig(), target)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e

    print_success(f"Config written to {written}")


@app.command()
def path() -> None:
    """Print the default config file location."""
    console.print(str(get_config_path()), highlight=False, soft_wrap=True)
