"""Cross-user detector — spots OEM firmware propagating changes across users.

Some firmware restores a package on sibling profiles after it was
uninstalled on one, or removes it from every profile at once. These checks
only ever produce an informational note; they never undo the operation.
"""

from __future__ import annotations

import logging
from typing import Optional

from debloat_agent.core.models import Device, PackageState
from debloat_agent.core.verifier import verify_package_state
from debloat_agent.transport.base import Transport

logger = logging.getLogger(__name__)


def check_cross_user_package_existence(
    transport: Transport,
    package_name: str,
    device: Device,
    target_user_id: int,
) -> list[tuple[int, PackageState]]:
    """Return ``(user_id, state)`` for every other unprotected user still holding the package."""
    found = []
    for user in device.user_list:
        if user.id == target_user_id or user.protected:
            continue
        state = verify_package_state(transport, device.adb_id, package_name, user.id)
        if state != PackageState.UNINSTALLED:
            found.append((user.id, state))
    return found


def _format_states(states: list[tuple[int, PackageState]]) -> str:
    return ", ".join(f"user {uid} ({state})" for uid, state in states)


def detect_cross_user_behavior(
    transport: Transport,
    package_name: str,
    device: Device,
    target_user_id: int,
    wanted_state: PackageState,
    actual_state: PackageState,
) -> Optional[str]:
    """Describe unexpected package changes on sibling users, or return None."""
    if actual_state != wanted_state:
        return None
    if len(device.user_list) < 2:
        return None
    if wanted_state not in (
        PackageState.UNINSTALLED, PackageState.ENABLED, PackageState.DISABLED
    ):
        return None

    others = check_cross_user_package_existence(
        transport, package_name, device, target_user_id
    )

    if wanted_state == PackageState.UNINSTALLED:
        if others:
            return (
                f"Detected cross-user restoration: package exists on "
                f"{_format_states(others)} after uninstalling from user "
                f"{target_user_id}"
            )
        affected = [
            user.id
            for user in device.user_list
            if not user.protected
            and user.id != target_user_id
            and verify_package_state(
                transport, device.adb_id, package_name, user.id
            ) == PackageState.UNINSTALLED
        ]
        if not affected:
            return None
        logger.info(
            "%s was also removed from users %s", package_name, affected
        )
        users = ", ".join(f"user {uid}" for uid in affected)
        return (
            f"Detected cross-user uninstall: package was also uninstalled "
            f"from {users} after uninstalling from user {target_user_id}"
        )

    if not others:
        return None
    verb = "enabling" if wanted_state == PackageState.ENABLED else "disabling"
    return (
        f"Detected cross-user restoration: package exists on "
        f"{_format_states(others)} after {verb} from user {target_user_id}"
    )
