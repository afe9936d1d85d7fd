"""Typer CLI entrypoint."""

from __future__ import annotations

import logging
import threading
from dataclasses import asdict
from pathlib import Path

import typer

from volroute.core.config import default_config_path, log_path_for, update_config
from volroute.core.errors import (
    BindingMismatchError,
    NotPairedError,
    TransportError,
    VolrouteError,
)
from volroute.core.service import VolumeProxyService

app = typer.Typer(help="Route volume keys to a paired TV over its remote-control WebSocket API")
config_app = typer.Typer(help="Show or edit the configuration")
app.add_typer(config_app, name="config")

_options: dict[str, object] = {"config_path": None}


@app.callback()
def main(
    config: Path | None = typer.Option(None, "--config", help="Path to config.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    _options["config_path"] = config
    _configure_logging(verbose, config or default_config_path())


def _configure_logging(verbose: bool, config_path: Path) -> None:
    root = logging.getLogger("volroute")
    root.setLevel(logging.DEBUG if verbose else logging.INFO)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()
    formatter = logging.Formatter("[%(asctime)s][%(levelname)s] %(name)s: %(message)s", "%Y-%m-%d %H:%M:%S")

    console = logging.StreamHandler()
    console.setLevel(logging.DEBUG if verbose else logging.WARNING)
    console.setFormatter(formatter)
    root.addHandler(console)

    log_path = log_path_for(config_path)
    try:
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError as exc:
        root.warning("Log file %s unavailable: %s", log_path, exc)
        return
    file_handler.setFormatter(formatter)
    root.addHandler(file_handler)


def _build_service() -> VolumeProxyService:
    config_path = _options.get("config_path")
    return VolumeProxyService(config_path if isinstance(config_path, Path) else None)


def _fail(exc: VolrouteError) -> typer.Exit:
    if isinstance(exc, BindingMismatchError):
        typer.echo(f"Error: MAC verification failed. {exc}", err=True)
        typer.echo("Warning: the device at the configured IP may not be your TV.", err=True)
    elif isinstance(exc, TransportError):
        typer.echo(f"Error: {exc}", err=True)
        typer.echo("Check TV IP / port / ws vs wss, and that the TV is on and on the same network.", err=True)
    else:
        typer.echo(f"Error: {exc}", err=True)
    return typer.Exit(code=1)


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


@app.command("status")
def status() -> None:
    """Show the default device, pairing, and routing state."""
    try:
        service = _build_service()
        current = service.probe_status()
        typer.echo(f"TV: {service.config.tv_ip or '<not set>'} ({service.config.tv_mac or '<no MAC>'})")
        typer.echo(f"Default device: {current.device_name or '<unknown>'}")
        typer.echo(f"Matches hint '{service.config.device_hint}': {_yes_no(current.device_is_target)}")
        typer.echo(f"Dolby Atmos: {_yes_no(current.spatial_audio_active)}")
        typer.echo(f"Paired: {_yes_no(current.paired)}")
        typer.echo(f"Routing to TV: {_yes_no(current.routing)}")
    except VolrouteError as exc:
        raise _fail(exc) from None


@app.command("verify")
def verify() -> None:
    """Check that the configured IP answers with the configured MAC."""
    try:
        service = _build_service()
        service.verify_binding()
        typer.echo(f"MAC binding verified: {service.config.tv_ip} is {service.config.tv_mac}")
    except VolrouteError as exc:
        raise _fail(exc) from None


def _prompt_accept() -> None:
    typer.echo("Check your TV and ACCEPT the pairing prompt.")
    typer.prompt("Press Enter here after accepting on the TV", default="", show_default=False)


@app.command("pair")
def pair() -> None:
    """Pair with the TV; requires accepting a prompt on the TV."""
    try:
        service = _build_service()
        result = service.pair(_prompt_accept)
        typer.echo("Successfully paired with TV.")
        if result.safe_volume_applied:
            typer.echo(f"TV volume set to {service.config.safe_tv_volume}.")
    except VolrouteError as exc:
        raise _fail(exc) from None


@app.command("unpair")
def unpair(
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove the stored pairing information."""
    try:
        service = _build_service()
        if not service.store.has_key():
            typer.echo("The app is not currently paired with a TV.")
            return
        if not yes and not typer.confirm("This will remove the stored pairing information for the TV. Continue?"):
            raise typer.Exit(code=1)
        service.unpair()
        typer.echo("Pairing removed.")
    except VolrouteError as exc:
        raise _fail(exc) from None


@app.command("up")
def volume_up() -> None:
    """Raise the TV volume one step."""
    try:
        _build_service().volume_up()
        typer.echo("Sent volumeUp")
    except VolrouteError as exc:
        raise _fail(exc) from None


@app.command("down")
def volume_down() -> None:
    """Lower the TV volume one step."""
    try:
        _build_service().volume_down()
        typer.echo("Sent volumeDown")
    except VolrouteError as exc:
        raise _fail(exc) from None


@app.command("set-volume")
def set_volume(level: int = typer.Argument(..., help="Volume 0-100")) -> None:
    """Set the TV volume to an absolute level."""
    try:
        _build_service().set_volume(level)
        typer.echo(f"Sent setVolume {max(0, min(100, level))}")
    except VolrouteError as exc:
        raise _fail(exc) from None


@app.command("mute")
def mute(state: str = typer.Argument("toggle", help="on, off, or toggle")) -> None:
    """Mute, unmute, or toggle mute on the TV."""
    normalized = state.strip().lower()
    if normalized not in ("on", "off", "toggle"):
        typer.echo(f"Error: unknown mute state '{state}'. Use on, off, or toggle.", err=True)
        raise typer.Exit(code=1)
    try:
        service = _build_service()
        if normalized == "toggle":
            muted = service.toggle_mute()
        else:
            muted = normalized == "on"
            service.set_mute(muted)
        typer.echo(f"Sent setMute {'true' if muted else 'false'}")
    except VolrouteError as exc:
        raise _fail(exc) from None


@app.command("run")
def run_proxy() -> None:
    """Route volume keys to the TV until interrupted."""
    try:
        service = _build_service()
        if not service.store.has_key():
            raise NotPairedError("Not paired with the TV. Run 'volroute pair' first.")
        for warning in service.start():
            typer.echo(f"Warning: {warning}", err=True)
    except VolrouteError as exc:
        raise _fail(exc) from None

    current = service.status()
    typer.echo(f"Running. Routing to TV: {_yes_no(current.routing)}. Press Ctrl+C to stop.")
    stopped = threading.Event()
    try:
        # Timed waits keep Ctrl+C deliverable on Windows.
        while not stopped.wait(0.5):
            pass
    except KeyboardInterrupt:
        pass
    finally:
        service.stop()
        typer.echo("Stopped.")


@config_app.command("show")
def config_show() -> None:
    """Print the effective configuration."""
    try:
        service = _build_service()
        typer.echo(f"# {service.config_path}")
        for key, value in asdict(service.config).items():
            typer.echo(f"{key}: {value}")
    except VolrouteError as exc:
        raise _fail(exc) from None


@config_app.command("set")
def config_set(key: str, value: str) -> None:
    """Set one configuration key and save the file."""
    try:
        service = _build_service()
        updated = update_config(service.config, key, value)
        service.apply_config(updated)
        typer.echo(f"{key}: {getattr(updated, key)}")
    except VolrouteError as exc:
        raise _fail(exc) from None


def run() -> None:
    app()


if __name__ == "__main__":
    run()
