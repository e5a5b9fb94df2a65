"""Fallback engine — corrective actions when a package ends up in the wrong state."""

from __future__ import annotations

import logging

from debloat_agent.core.commands import apply_pkg_state_commands
from debloat_agent.core.errors import (
    ClassifiedTransportError,
    NoFallbackAvailable,
    TransportError,
)
from debloat_agent.core.executor import CommandExecutor
from debloat_agent.core.models import (
    CorePackage,
    Device,
    FallbackResult,
    PackageState,
    User,
)

logger = logging.getLogger(__name__)


def _raw(error: TransportError) -> str:
    if isinstance(error, ClassifiedTransportError):
        return error.raw
    return error.message


class FallbackEngine:
    """Picks and runs one corrective action for a (wanted, actual) mismatch."""

    def __init__(self, executor: CommandExecutor):
        self.executor = executor

    def attempt(
        self,
        package: CorePackage,
        wanted_state: PackageState,
        actual_state: PackageState,
        user: User,
        device: Device,
    ) -> FallbackResult:
        """Run the corrective action for ``package`` on ``user``.

        Raises NoFallbackAvailable when no action exists for the pair.
        """
        pair = (wanted_state, actual_state)
        logger.info(
            "Fallback for %s on %s: wanted %s, got %s",
            package.name, user, wanted_state, actual_state,
        )
        if pair == (PackageState.UNINSTALLED, PackageState.ENABLED):
            return self._substitute(
                package, PackageState.DISABLED, user, device,
                done="disabled package instead of uninstalling",
                verb="disable",
            )
        if pair == (PackageState.DISABLED, PackageState.ENABLED):
            return self._substitute(
                package, PackageState.UNINSTALLED, user, device,
                done="uninstalled package instead of disabling",
                verb="uninstall",
            )
        if pair == (PackageState.ENABLED, PackageState.DISABLED):
            return self._reinstall(package, user, device)
        raise NoFallbackAvailable(wanted_state, actual_state)

    def _commands(
        self,
        package: CorePackage,
        current: PackageState,
        wanted: PackageState,
        user: User,
        device: Device,
    ) -> list[str]:
        view = CorePackage(
            name=package.name,
            state=current,
            removal=package.removal,
            description=package.description,
        )
        return apply_pkg_state_commands(view, wanted, device, user)

    def _substitute(
        self,
        package: CorePackage,
        target: PackageState,
        user: User,
        device: Device,
        done: str,
        verb: str,
    ) -> FallbackResult:
        commands = self._commands(package, PackageState.ENABLED, target, user, device)
        if not commands:
            return FallbackResult(
                success=False,
                message=f"No {verb} command available for this Android version",
            )
        try:
            self.executor.run_sequence(device.adb_id, commands)
        except TransportError as e:
            return FallbackResult(
                success=False, message=f"Failed to {verb} package: {_raw(e)}"
            )
        return FallbackResult(success=True, message=done)

    def _reinstall(
        self, package: CorePackage, user: User, device: Device
    ) -> FallbackResult:
        uninstall = self._commands(
            package, PackageState.DISABLED, PackageState.UNINSTALLED, user, device
        )
        if not uninstall:
            return FallbackResult(
                success=False,
                message="No uninstall command available for reinstall attempt",
            )
        try:
            self.executor.run_sequence(device.adb_id, uninstall)
        except TransportError as e:
            return FallbackResult(
                success=False,
                message=f"Failed to uninstall package for reinstall: {_raw(e)}",
            )

        try:
            enable = self._commands(
                package, PackageState.UNINSTALLED, PackageState.ENABLED, user, device
            )
        except ValueError:
            # API levels below 19 cannot restore an uninstalled package
            enable = []
        if not enable:
            return FallbackResult(
                success=True,
                message="uninstalled package but couldn't reinstall",
                partial=True,
            )
        try:
            self.executor.run_sequence(device.adb_id, enable)
        except TransportError as e:
            return FallbackResult(
                success=False,
                message=f"Failed to reinstall package: {_raw(e)}",
                partial=True,
            )
        return FallbackResult(
            success=True, message="uninstalled and reinstalled package to enable it"
        )
