"""CLI entry point for debloat-agent."""

from __future__ import annotations

import logging
from typing import List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

import debloat_agent

app = typer.Typer(
    name="debloat-agent",
    help="Enable, disable or uninstall Android packages over adb.",
    no_args_is_help=True,
)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _build(adb_path: Optional[str]):
    from debloat_agent.core.config import Settings
    from debloat_agent.core.discovery import DeviceDiscovery
    from debloat_agent.transport.adb import AdbTransport

    try:
        settings = Settings.from_env()
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(1)
    if adb_path:
        settings.adb_path = adb_path
    transport = AdbTransport(settings.adb_path, timeout=settings.command_timeout)
    discovery = DeviceDiscovery(
        transport,
        max_attempts=settings.discovery_attempts,
        delay=settings.discovery_delay,
    )
    return settings, transport, discovery


def _select_device(discovery, serial: Optional[str]):
    if not discovery.initial_load():
        console.print("[red]Error: adb is not available or not working.[/]")
        raise typer.Exit(1)
    console.print("[dim]Looking for devices...[/]")
    devices = discovery.get_devices_list()
    if not devices:
        console.print("[red]No authorized device found.[/]")
        raise typer.Exit(1)
    if serial is None:
        return devices[0]
    for device in devices:
        if device.adb_id == serial:
            return device
    console.print(f"[red]Device {serial} not found.[/]")
    raise typer.Exit(1)


def _select_user(device, user_id: Optional[int]):
    if user_id is None:
        for user in device.user_list:
            if not user.protected:
                return user
        if device.user_list:
            console.print(
                f"[red]Every user on {escape(str(device))} is protected.[/]"
            )
            raise typer.Exit(1)
        from debloat_agent.core.models import User

        return User(id=0)
    user = device.get_user(user_id)
    if user is None:
        console.print(f"[red]User {user_id} not found on {device}.[/]")
        raise typer.Exit(1)
    if user.protected:
        console.print(f"[red]{user} is protected and cannot be modified.[/]")
        raise typer.Exit(1)
    return user


def _parse_state(value: str):
    from debloat_agent.core.models import PackageState

    try:
        return PackageState.parse(value)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(1)


def _parse_removal(value: str):
    from debloat_agent.core.models import Removal

    try:
        return Removal.parse(value)
    except ValueError as e:
        console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(1)


def _print_result(result) -> None:
    for outcome in result.outcomes:
        mark = "[green]ok[/]" if outcome.success else "[red]failed[/]"
        console.print(f"  {escape(outcome.command)}: {mark}")
    console.print(f"{result.package} on {result.user}: [bold]{result.actual_state}[/]")
    if result.cross_user_note:
        console.print(f"[yellow]{escape(result.cross_user_note)}[/]")
    if result.fallback:
        color = "green" if result.fallback.success else "red"
        console.print(f"[{color}]Fallback: {escape(result.fallback.message)}[/]")
    if result.error:
        console.print(f"[red]{escape(result.error)}[/]")


@app.command()
def devices(
    adb: Optional[str] = typer.Option(None, "--adb", help="Path to the adb binary"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Discover connected devices and their users."""
    _setup_logging(verbose)
    _, _, discovery = _build(adb)
    if not discovery.initial_load():
        console.print("[red]Error: adb is not available or not working.[/]")
        raise typer.Exit(1)

    found = discovery.get_devices_list()
    if not found:
        console.print("[yellow]No authorized device found.[/]")
        raise typer.Exit(1)

    table = Table(title="Devices")
    table.add_column("Serial", style="cyan")
    table.add_column("Model", style="green")
    table.add_column("API level")
    table.add_column("Users")
    for device in found:
        users = ", ".join(
            f"{u.id} (protected)" if u.protected else str(u.id)
            for u in device.user_list
        )
        table.add_row(device.adb_id, device.model, str(device.android_sdk), users)
    console.print(table)


@app.command()
def state(
    package: str = typer.Argument(..., help="Package name"),
    device_serial: Optional[str] = typer.Option(
        None, "--device", "-d", help="Device serial"
    ),
    user_id: Optional[int] = typer.Option(None, "--user", "-u", help="User id"),
    adb: Optional[str] = typer.Option(None, "--adb", help="Path to the adb binary"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Show the current state of a package."""
    from debloat_agent.core.commands import supports_multi_user
    from debloat_agent.core.verifier import verify_package_state

    _setup_logging(verbose)
    _, transport, discovery = _build(adb)
    device = _select_device(discovery, device_serial)
    query_user = user_id if supports_multi_user(device) else None
    current = verify_package_state(transport, device.adb_id, package, query_user)
    console.print(f"{package}: [bold]{current}[/]")


@app.command()
def apply(
    package: str = typer.Argument(..., help="Package name"),
    wanted: str = typer.Argument(..., help="Enabled, Disabled or Uninstalled"),
    device_serial: Optional[str] = typer.Option(
        None, "--device", "-d", help="Device serial"
    ),
    user_id: Optional[int] = typer.Option(None, "--user", "-u", help="User id"),
    current: Optional[str] = typer.Option(
        None, "--current", help="Known current state (queried when omitted)"
    ),
    removal: str = typer.Option(
        "Unlisted", "--removal", help="Removal class of the package"
    ),
    expert: bool = typer.Option(False, "--expert", help="Allow unsafe packages"),
    adb: Optional[str] = typer.Option(None, "--adb", help="Path to the adb binary"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Move a package to the wanted state for one user."""
    from debloat_agent.core.commands import supports_multi_user
    from debloat_agent.core.errors import TransportError
    from debloat_agent.core.models import CorePackage
    from debloat_agent.core.reconciler import Reconciler
    from debloat_agent.core.verifier import verify_package_state

    _setup_logging(verbose)
    wanted_state = _parse_state(wanted)
    removal_class = _parse_removal(removal)
    settings, transport, discovery = _build(adb)
    settings.expert_mode = settings.expert_mode or expert
    device = _select_device(discovery, device_serial)
    user = _select_user(device, user_id)

    if current is not None:
        current_state = _parse_state(current)
    else:
        query_user = user.id if supports_multi_user(device) else None
        current_state = verify_package_state(
            transport, device.adb_id, package, query_user
        )

    reconciler = Reconciler(transport, settings)
    try:
        result = reconciler.change_state(
            device,
            CorePackage(name=package, state=current_state, removal=removal_class),
            wanted_state,
            user,
        )
    except (TransportError, ValueError) as e:
        console.print(f"[red]{escape(str(e))}[/]")
        raise typer.Exit(1)

    _print_result(result)
    raise typer.Exit(0 if result.success else 1)


@app.command()
def toggle(
    package: str = typer.Argument(..., help="Package name"),
    device_serial: Optional[str] = typer.Option(
        None, "--device", "-d", help="Device serial"
    ),
    user_ids: Optional[List[int]] = typer.Option(
        None, "--user", "-u", help="Selected user id (repeatable)"
    ),
    removal: str = typer.Option(
        "Unlisted", "--removal", help="Removal class of the package"
    ),
    expert: bool = typer.Option(False, "--expert", help="Allow unsafe packages"),
    disable_mode: bool = typer.Option(
        False, "--disable-mode", help="Disable instead of uninstalling"
    ),
    adb: Optional[str] = typer.Option(None, "--adb", help="Path to the adb binary"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Flip a package to its opposite state, across users in multi-user mode."""
    import dataclasses

    from debloat_agent.core.commands import supports_multi_user
    from debloat_agent.core.errors import TransportError
    from debloat_agent.core.models import CorePackage, Removal
    from debloat_agent.core.reconciler import Reconciler
    from debloat_agent.core.verifier import verify_package_state

    _setup_logging(verbose)
    removal_class = _parse_removal(removal)
    settings, transport, discovery = _build(adb)
    settings.expert_mode = settings.expert_mode or expert
    settings.disable_mode = settings.disable_mode or disable_mode
    if removal_class == Removal.UNSAFE and not settings.expert_mode:
        console.print(
            f"[red]{escape(package)} is unsafe to change outside expert mode.[/]"
        )
        raise typer.Exit(1)

    device = _select_device(discovery, device_serial)
    selected = [_select_user(device, uid) for uid in user_ids or []]
    primary_user = selected[0] if selected else _select_user(device, None)
    if not device.user_list:
        device = dataclasses.replace(device, user_list=(primary_user,))

    per_user = {}
    for user in device.user_list:
        if user.protected:
            continue
        query_user = user.id if supports_multi_user(device) else None
        per_user[user.id] = CorePackage(
            name=package,
            state=verify_package_state(transport, device.adb_id, package, query_user),
            removal=removal_class,
        )

    reconciler = Reconciler(transport, settings)
    plans = reconciler.plan(
        device,
        per_user[primary_user.id],
        per_user,
        {u.id for u in selected} or {primary_user.id},
    )
    if not plans:
        console.print(f"[yellow]Nothing to do for {escape(package)}.[/]")
        return

    failed = False
    for plan in plans:
        try:
            result = reconciler.apply(device, plan)
        except TransportError as e:
            console.print(f"[red]{escape(str(e))}[/]")
            failed = True
            continue
        _print_result(result)
        failed = failed or not result.success
    if failed:
        raise typer.Exit(1)


@app.command()
def explain(
    action: str = typer.Argument(..., help="Command that failed"),
    error: str = typer.Argument(..., help="Raw error text"),
) -> None:
    """Explain a raw adb error message."""
    from debloat_agent.core.error_translator import make_friendly_error_message

    console.print(make_friendly_error_message(error, action), markup=False)


@app.command()
def version() -> None:
    """Print version."""
    console.print(f"debloat-agent {debloat_agent.__version__}")


if __name__ == "__main__":
    app()
