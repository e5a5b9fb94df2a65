"""Command synthesis — maps a package state transition to adb shell commands.

The first command of every non-empty sequence is the one that changes the
package state. Anything after it is cleanup, so only the first command's
result is authoritative.
"""

from __future__ import annotations

from typing import Optional, Sequence

from debloat_agent.core.models import CorePackage, Device, PackageState, User

# Lollipop 5.0 is the first release that may support multiple users.
MULTI_USER_SDK = 21

PM_CLEAR_PACK = "pm clear"

_UNREACHABLE: tuple[str, ...] = ("<unreachable>",)

# (wanted, current) -> [(min_sdk, max_sdk, commands)], first matching bracket wins.
# max_sdk of None means "and above".
_TRANSITIONS: dict[
    tuple[PackageState, PackageState],
    list[tuple[int, Optional[int], tuple[str, ...]]],
] = {
    (PackageState.ENABLED, PackageState.DISABLED): [
        (0, None, ("pm enable",)),
    ],
    (PackageState.ENABLED, PackageState.UNINSTALLED): [
        (23, None, ("cmd package install-existing",)),
        (21, 22, ("pm unhide",)),
        (19, 20, ("pm unblock", PM_CLEAR_PACK)),
        (0, 18, _UNREACHABLE),
    ],
    (PackageState.DISABLED, PackageState.ENABLED): [
        (23, None, ("pm disable-user", "am force-stop", PM_CLEAR_PACK)),
        (0, 22, ()),
    ],
    (PackageState.DISABLED, PackageState.UNINSTALLED): [
        (23, None, ("pm disable-user", "am force-stop", PM_CLEAR_PACK)),
        (0, 22, ()),
    ],
    (PackageState.UNINSTALLED, PackageState.ENABLED): [
        (23, None, ("pm uninstall",)),
        (21, 22, ("pm hide", PM_CLEAR_PACK)),
        (0, 20, ("pm block", PM_CLEAR_PACK)),
    ],
    (PackageState.UNINSTALLED, PackageState.DISABLED): [
        (23, None, ("pm uninstall",)),
        (21, 22, ("pm hide", PM_CLEAR_PACK)),
        (0, 20, ("pm block", PM_CLEAR_PACK)),
    ],
}


def supports_multi_user(device: Device) -> bool:
    """Whether the device might support multiple users.

    Only ``False`` is reliable; a recent API level does not guarantee the
    firmware enables multi-user mode.
    """
    return device.android_sdk >= MULTI_USER_SDK


def user_flag(user: Optional[User]) -> str:
    """Return ``" --user <id>"``, or an empty string (not ``" --user 0"``) for None."""
    if user is None:
        return ""
    return f" --user {user.id}"


def request_builder(
    commands: Sequence[str], package: str, user: Optional[User] = None
) -> list[str]:
    """Attach the user flag and the package name to each command verb."""
    flag = user_flag(user)
    return [f"{verb}{flag} {package}" for verb in commands]


def transition_verbs(
    current: PackageState, wanted: PackageState, android_sdk: int
) -> tuple[str, ...]:
    """Look up the ordered command verbs for a transition."""
    brackets = _TRANSITIONS.get((wanted, current))
    if brackets is None:
        return ()
    for min_sdk, max_sdk, verbs in brackets:
        if android_sdk < min_sdk:
            continue
        if max_sdk is not None and android_sdk > max_sdk:
            continue
        if verbs is _UNREACHABLE:
            raise ValueError(
                f"Cannot go from {current} to {wanted} on API level {android_sdk}"
            )
        return verbs
    return ()


def synthesize(
    package: str,
    current: PackageState,
    wanted: PackageState,
    android_sdk: int,
    user: Optional[User] = None,
) -> list[str]:
    """Build the ordered shell commands moving ``package`` to ``wanted``.

    ``user`` must already reflect whether per-user targeting is active;
    pass None to address the package without a ``--user`` flag.
    """
    verbs = transition_verbs(current, wanted, android_sdk)
    return request_builder(verbs, package, user)


def apply_pkg_state_commands(
    package: CorePackage,
    wanted_state: PackageState,
    device: Device,
    selected_user: Optional[User] = None,
) -> list[str]:
    """Synthesize commands for a package on a device.

    The user flag is only added when a user is selected and the device
    supports multiple users.
    """
    user = selected_user if supports_multi_user(device) else None
    return synthesize(
        package.name, package.state, wanted_state, device.android_sdk, user
    )
