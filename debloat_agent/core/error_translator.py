"""Error translator — turns raw adb error text into actionable diagnostics."""

from __future__ import annotations

# (markers, explanation, tip). First entry with a marker found in the raw
# error wins.
KNOWN_ERRORS: list[tuple[tuple[str, ...], str, str]] = [
    (
        ("DELETE_FAILED_USER_RESTRICTED",),
        "Cannot uninstall: This package is restricted by the device "
        "manufacturer (Samsung Knox or similar).",
        "Try disabling the package instead, or check device settings for "
        "Knox/security restrictions.",
    ),
    (
        ("NOT_INSTALLED_FOR_USER",),
        "Package is not installed for the current user.",
        "The package may be installed for a different user profile or "
        "work profile.",
    ),
    (
        ("Shell cannot change component state for null",),
        "Invalid package: Empty package name detected.",
        "Please refresh the package list and try again.",
    ),
    (
        ("Permission denied", "INSTALL_FAILED_PERMISSION_MODEL_DOWNGRADE"),
        "Permission denied: Insufficient privileges to perform this action.",
        "This may require root access or the package is protected by the "
        "system.",
    ),
    (
        ("DELETE_FAILED_DEVICE_POLICY_MANAGER",),
        "Cannot modify: Package is managed by device policy (MDM/EMM).",
        "Contact your IT administrator if this is a work device.",
    ),
]


def make_friendly_error_message(error_output: str, action: str) -> str:
    """Explain a known OEM/adb error, keeping the raw text verbatim."""
    for markers, explanation, tip in KNOWN_ERRORS:
        if any(marker in error_output for marker in markers):
            return f"{explanation}\nError: {error_output}\nTip: {tip}"
    return f"{action} -> {error_output}"
