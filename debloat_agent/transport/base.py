"""Transport — abstract bridge used to talk to a device."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional


class PackageFilter(Enum):
    ENABLED_ONLY = "-e"
    DISABLED_ONLY = "-d"
    NONE = ""


@dataclass(frozen=True)
class UserDescriptor:
    id: int
    name: str = ""


class Transport(ABC):
    """Executes one request against one device.

    Every method raises ``TransportError`` with the raw failure text. Calls
    may block for a long time (subprocess invocations); a call that times
    out or is cancelled must raise as well.
    """

    @abstractmethod
    def list_devices(self) -> list[tuple[str, str]]:
        """Return ``(serial, status)`` pairs. May be empty."""

    @abstractmethod
    def shell(self, serial: str, command: str) -> str: ...

    @abstractmethod
    def get_property(self, serial: str, name: str) -> str: ...

    @abstractmethod
    def list_users(self, serial: str) -> list[UserDescriptor]: ...

    @abstractmethod
    def list_packages(
        self,
        serial: str,
        package_filter: PackageFilter = PackageFilter.NONE,
        user_id: Optional[int] = None,
    ) -> list[str]: ...
