"""Device discovery — enumerates connected devices with bounded retries."""

from __future__ import annotations

import logging
import time
from typing import Callable, Optional

from debloat_agent.core.errors import TransportError
from debloat_agent.core.models import Device, User
from debloat_agent.transport.base import PackageFilter, Transport

logger = logging.getLogger(__name__)

READY_STATUS = "device"

DEV_BUILD_ATTEMPTS = 3
RELEASE_ATTEMPTS = 10
RETRY_DELAY_SECONDS = 0.5


def get_device_model(transport: Transport, serial: str) -> str:
    try:
        return transport.get_property(serial, "ro.product.model").strip()
    except TransportError as e:
        logger.error("Reading model of %s failed: %s", serial, e.message)
        if "adb: no devices/emulators found" in e.message:
            return "no devices/emulators found"
        return e.message


def get_device_brand(transport: Transport, serial: str) -> str:
    try:
        return transport.get_property(serial, "ro.product.brand").strip()
    except TransportError:
        return ""


def get_android_sdk(transport: Transport, serial: str) -> int:
    """Return the API level of the device, or 0 when it cannot be read."""
    try:
        return int(transport.get_property(serial, "ro.build.version.sdk").strip())
    except (TransportError, ValueError) as e:
        logger.warning("Could not read API level of %s: %s", serial, e)
        return 0


def is_protected_user(transport: Transport, serial: str, user_id: int) -> bool:
    """Probe a user by listing its packages.

    Any failure counts as protected, including transient transport
    errors, so a flaky connection can hide a regular user.
    """
    try:
        transport.list_packages(serial, PackageFilter.NONE, user_id)
    except TransportError as e:
        logger.debug("User %d on %s treated as protected: %s", user_id, serial, e.message)
        return True
    return False


def list_users_idx_prot(transport: Transport, serial: str) -> tuple[User, ...]:
    try:
        descriptors = transport.list_users(serial)
    except TransportError as e:
        logger.warning("Listing users on %s failed: %s", serial, e.message)
        return ()
    return tuple(
        User(
            id=desc.id,
            index=i,
            protected=is_protected_user(transport, serial, desc.id),
        )
        for i, desc in enumerate(descriptors)
    )


class DeviceDiscovery:
    """Polls the transport until at least one device is ready.

    An empty result after the last attempt is the failure signal.
    """

    def __init__(
        self,
        transport: Transport,
        max_attempts: int = RELEASE_ATTEMPTS,
        delay: float = RETRY_DELAY_SECONDS,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        self.transport = transport
        self.max_attempts = max_attempts
        self.delay = delay
        self.sleep = sleep or time.sleep

    def initial_load(self) -> bool:
        """Whether the transport can enumerate devices at all."""
        try:
            self.transport.list_devices()
        except TransportError:
            return False
        return True

    def get_devices_list(self) -> list[Device]:
        for attempt in range(1, self.max_attempts + 1):
            try:
                entries = self.transport.list_devices()
            except TransportError as e:
                logger.error("get_devices_list() -> %s", e.message)
                entries = None

            if entries is not None:
                ready = [serial for serial, status in entries if status == READY_STATUS]
                if ready:
                    devices = [self._build_device(serial) for serial in ready]
                    logger.info(
                        "Found %d device(s) on attempt %d", len(devices), attempt
                    )
                    return devices

            if attempt < self.max_attempts:
                logger.warning(
                    "No ready device (attempt %d/%d), retrying in %.1fs",
                    attempt, self.max_attempts, self.delay,
                )
                self.sleep(self.delay)
        return []

    def _build_device(self, serial: str) -> Device:
        brand = get_device_brand(self.transport, serial)
        model = get_device_model(self.transport, serial)
        return Device(
            model=f"{brand} {model}",
            android_sdk=get_android_sdk(self.transport, serial),
            user_list=list_users_idx_prot(self.transport, serial),
            adb_id=serial,
        )
