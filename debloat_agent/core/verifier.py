"""State verifier — reads the current lifecycle state of a package."""

from __future__ import annotations

import logging
from typing import Optional

from debloat_agent.core.errors import TransportError
from debloat_agent.core.models import PackageState
from debloat_agent.transport.base import PackageFilter, Transport

logger = logging.getLogger(__name__)


def _listed(
    transport: Transport,
    serial: str,
    package_name: str,
    package_filter: PackageFilter,
    user_id: Optional[int],
) -> bool:
    try:
        packages = transport.list_packages(serial, package_filter, user_id)
    except TransportError as e:
        # A failed listing counts as absence.
        logger.warning(
            "Listing %s packages for user %s failed, treating %s as absent: %s",
            package_filter.name, user_id, package_name, e.message,
        )
        return False
    return package_name in packages


def verify_package_state(
    transport: Transport,
    serial: str,
    package_name: str,
    user_id: Optional[int] = None,
) -> PackageState:
    """Return Enabled, Disabled or Uninstalled for ``package_name``.

    A package found in neither the enabled nor the disabled listing is
    reported as Uninstalled, including when a listing query failed. This
    can report a failed query as a successful uninstall.
    """
    if _listed(transport, serial, package_name, PackageFilter.ENABLED_ONLY, user_id):
        return PackageState.ENABLED
    if _listed(transport, serial, package_name, PackageFilter.DISABLED_ONLY, user_id):
        return PackageState.DISABLED
    return PackageState.UNINSTALLED
