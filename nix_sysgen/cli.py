"""Thin CLI wrapper for nix_sysgen.

This module provides the command-line interface using Typer.
All business logic is delegated to core modules.
"""

import json
import logging
from typing import Annotated, Any, NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from nix_sysgen import __version__
from nix_sysgen.config import get_settings, print_settings_json
from nix_sysgen.errors import SysgenError
from nix_sysgen.types import LogLevel, StorePath

app = typer.Typer(
    name="sysgen",
    help="nix-sysgen - build and activate system generations with Nix",
    no_args_is_help=True,
)
console = Console()
err_console = Console(stderr=True)


def configure_logging(level: str) -> None:
    """Send log records to stderr through Rich."""
    root = logging.getLogger()
    root.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in root.handlers):
        handler = RichHandler(console=err_console, show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        root.addHandler(handler)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"nix-sysgen version {__version__}")
        raise typer.Exit()


def _print_json(data: Any) -> None:
    """Print data as JSON without Rich markup or line wrapping."""
    console.print(
        json.dumps(data, indent=2), soft_wrap=True, markup=False, highlight=False
    )


def _fail(error: SysgenError, json_output: bool, **extra: Any) -> NoReturn:
    """Report a domain error and exit with code 1."""
    if json_output:
        output: dict[str, Any] = {
            "success": False,
            "error_code": error.error_code,
            "message": error.message,
        }
        output.update(extra)
        _print_json(output)
    else:
        console.print(f"[red]{escape(error.message)}[/red]")
    raise typer.Exit(code=1) from None


@app.callback()
def main(
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            help="Show version and exit",
            callback=version_callback,
            is_eager=True,
        ),
    ] = None,
    log_level: Annotated[
        LogLevel | None,
        typer.Option(
            "--log-level",
            "-l",
            help="Override the configured log level",
            case_sensitive=False,
        ),
    ] = None,
) -> None:
    """nix-sysgen - build and activate system generations with Nix."""
    level = log_level.value if log_level else get_settings().log_level
    configure_logging(level)


@app.command()
def config(
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Show effective configuration."""
    settings = get_settings()
    if json_output:
        console.print(print_settings_json(settings), soft_wrap=True, markup=False)
    else:
        console.print("[bold]Effective Configuration:[/bold]")
        console.print()
        console.print("[bold]Flake:[/bold]")
        console.print(f"  Flake attribute:     {settings.flake_attr}")
        console.print()
        console.print("[bold]Paths:[/bold]")
        console.print(f"  Profile directory:   {settings.profile_dir}")
        console.print(f"  Profile name:        {settings.profile_name}")
        console.print(f"  GC root:             {settings.gcroot_path}")
        console.print()
        console.print("[bold]Tools:[/bold]")
        console.print(f"  nix:                 {settings.nix_bin}")
        console.print(f"  nix-env:             {settings.nix_env_bin}")
        console.print()
        console.print("[bold]Operational:[/bold]")
        console.print(f"  Log level:           {settings.log_level}")


@app.command()
def build(
    flake_uri: Annotated[str, typer.Argument(help="Flake to build, e.g. /etc/nixos")],
    hostname: Annotated[
        str | None,
        typer.Option("--hostname", "-H", help="Build for this host name"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build a new generation without activating it."""
    from nix_sysgen.builds.service import build_generation

    try:
        store_path = build_generation(
            flake_uri, settings=get_settings(), hostname=hostname
        )
    except SysgenError as e:
        _fail(e, json_output)

    if json_output:
        _print_json({"success": True, "store_path": str(store_path)})
    else:
        console.print(f"[green]✓ Built {store_path}[/green]")


def _install(store_path: StorePath, json_output: bool) -> None:
    """Install a store path and report the outcome."""
    from nix_sysgen.generations.installer import install_generation

    try:
        result = install_generation(store_path, settings=get_settings())
    except SysgenError as e:
        _fail(e, json_output, store_path=str(store_path))

    if json_output:
        output = {
            "success": True,
            "store_path": str(result.store_path),
            "profile_path": str(result.profile_path),
            "gcroot_path": str(result.gcroot_path),
            "gcroot_target": str(result.gcroot_target),
            "state": result.state.value,
        }
        _print_json(output)
    else:
        console.print(f"[green]✓ Activated {result.store_path}[/green]")
        console.print(f"  Profile: {result.profile_path}")
        console.print(f"  GC root: {result.gcroot_path} -> {result.gcroot_target}")


@app.command()
def install(
    store_path: Annotated[str, typer.Argument(help="Store path to activate")],
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Activate an already built store path as the current generation."""
    _install(StorePath(store_path), json_output)


@app.command()
def switch(
    flake_uri: Annotated[str, typer.Argument(help="Flake to build, e.g. /etc/nixos")],
    hostname: Annotated[
        str | None,
        typer.Option("--hostname", "-H", help="Build for this host name"),
    ] = None,
    json_output: Annotated[
        bool,
        typer.Option("--json", help="Output as JSON"),
    ] = False,
) -> None:
    """Build a new generation and activate it."""
    from nix_sysgen.builds.service import build_generation

    try:
        store_path = build_generation(
            flake_uri, settings=get_settings(), hostname=hostname
        )
    except SysgenError as e:
        _fail(e, json_output)

    _install(store_path, json_output)
