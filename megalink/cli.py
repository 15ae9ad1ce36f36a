"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import typer

from megalink.device import Everdrive
from megalink.errors import MegalinkError
from megalink.models import DeviceMode, ResetMode
from megalink.transport import SerialPortProvider

logger = logging.getLogger(__name__)

app = typer.Typer(help="Control a Mega Everdrive Pro over its USB serial port")


@dataclass(frozen=True)
class CliOptions:
    port: Optional[str]
    settle_delay: float


def _open_everdrive(ctx: typer.Context) -> Everdrive:
    options: CliOptions = ctx.obj
    return Everdrive(
        SerialPortProvider(port=options.port),
        settle_delay=options.settle_delay,
    )


def _fail(exc: Exception) -> typer.Exit:
    typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


@app.callback()
def main(
    ctx: typer.Context,
    port: Optional[str] = typer.Option(
        None, "--port", "-p", envvar="MEGALINK_PORT",
        help="Serial port path; auto-detected when exactly one port exists",
    ),
    settle_ms: float = typer.Option(
        0.0, "--settle-ms", help="Delay after each flush, in milliseconds",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log wire traffic"),
) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
    ctx.obj = CliOptions(port=port, settle_delay=settle_ms / 1000.0)


@app.command("status")
def show_status(ctx: typer.Context) -> None:
    """Print the cartridge's status code and firmware mode."""
    try:
        with _open_everdrive(ctx) as everdrive:
            status = everdrive.get_status()
            mode = everdrive.get_mode()
    except MegalinkError as exc:
        raise _fail(exc) from None
    typer.echo(f"status: {status}")
    typer.echo(f"mode: {mode.lower_name}")


@app.command("mode")
def change_mode(
    ctx: typer.Context,
    target: Optional[DeviceMode] = typer.Argument(
        None, help="Mode to switch to; prints the current mode if omitted",
    ),
) -> None:
    """Show or switch the cartridge's firmware mode."""
    try:
        with _open_everdrive(ctx) as everdrive:
            if target is not None:
                everdrive.set_mode(target)
            mode = everdrive.get_mode()
    except MegalinkError as exc:
        raise _fail(exc) from None
    typer.echo(f"mode: {mode.lower_name}")


@app.command("reset")
def reset(
    ctx: typer.Context,
    hard: bool = typer.Option(False, "--hard", help="Reset the target entirely"),
) -> None:
    """Reset the target system."""
    mode = ResetMode.HARD if hard else ResetMode.SOFT
    try:
        with _open_everdrive(ctx) as everdrive:
            logger.info("Resetting")
            everdrive.reset_host(mode)
    except MegalinkError as exc:
        raise _fail(exc) from None


@app.command("run")
def run_game(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="ROM image to load"),
    skip_fpga: bool = typer.Option(
        False, "--skip-fpga", help="Keep the current FPGA configuration",
    ),
) -> None:
    """Load a ROM image and boot it."""
    try:
        image = path.read_bytes()
        with _open_everdrive(ctx) as everdrive:
            everdrive.load_game(path.name, image, skip_fpga=skip_fpga)
    except (MegalinkError, OSError, ValueError) as exc:
        raise _fail(exc) from None


@app.command("fpga")
def load_fpga(
    ctx: typer.Context,
    path: Optional[Path] = typer.Argument(None, help="FPGA image to upload"),
    flash: Optional[str] = typer.Option(
        None, "--flash", help="Load from cartridge flash at this address (e.g. 0x40000)",
    ),
    sd: Optional[str] = typer.Option(None, "--sd", help="Load from this SD card path"),
) -> None:
    """Configure the cartridge FPGA from a file, flash or the SD card."""
    sources = [s for s in (path, flash, sd) if s is not None]
    if len(sources) != 1:
        typer.echo("Error: give exactly one of PATH, --flash or --sd", err=True)
        raise typer.Exit(code=2)

    try:
        address = int(flash, 0) if flash is not None else None
        data = path.read_bytes() if path is not None else None
        with _open_everdrive(ctx) as everdrive:
            if data is not None:
                everdrive.load_fpga_from_bytes(data)
            elif address is not None:
                everdrive.load_fpga_from_flash(address)
            else:
                everdrive.load_fpga_from_sd(sd)
    except (MegalinkError, OSError, ValueError) as exc:
        raise _fail(exc) from None


@app.command("info")
def file_info(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Path on the SD card"),
) -> None:
    """Print metadata for a file on the SD card."""
    try:
        with _open_everdrive(ctx) as everdrive:
            info = everdrive.get_file_metadata(path)
    except MegalinkError as exc:
        raise _fail(exc) from None

    typer.echo(f"name: {info.name}")
    typer.echo(f"size: {info.size}")
    modified = info.modified
    typer.echo(f"modified: {modified.isoformat() if modified else 'unknown'}")
    typer.echo(f"attrib: 0x{info.attrib:02X}{' (dir)' if info.is_directory else ''}")


if __name__ == "__main__":
    app()
