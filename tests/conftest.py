"""Shared test fixtures for debloat-agent tests."""

from __future__ import annotations

from typing import Callable, Optional, Union

import pytest

from debloat_agent.core.errors import TransportError
from debloat_agent.core.models import Device, PackageState, User
from debloat_agent.transport.base import PackageFilter, Transport, UserDescriptor

Response = Union[str, Exception]


class FakeTransport(Transport):
    """In-memory device driven by a per-user package state table."""

    def __init__(
        self,
        states: Optional[dict[int, dict[str, PackageState]]] = None,
        devices: Optional[list] = None,
        props: Optional[dict[str, Response]] = None,
        users: Union[list[UserDescriptor], Exception, None] = None,
        failing_users: Optional[set[int]] = None,
        shell_results: Optional[dict[str, Response]] = None,
    ):
        self.states = states if states is not None else {0: {}}
        # Each call to list_devices pops the next entry; the last one repeats.
        self.devices = devices if devices is not None else [[("SERIAL1", "device")]]
        self.props = props or {}
        self.users = users
        self.failing_users = failing_users or set()
        self.shell_results = shell_results or {}
        self.effects: dict[str, Callable[[], None]] = {}
        self.commands: list[str] = []
        self.list_devices_calls = 0

    def list_devices(self) -> list[tuple[str, str]]:
        self.list_devices_calls += 1
        index = min(self.list_devices_calls, len(self.devices)) - 1
        entry = self.devices[index]
        if isinstance(entry, Exception):
            raise entry
        return list(entry)

    def shell(self, serial: str, command: str) -> str:
        self.commands.append(command)
        result = self.shell_results.get(command, "Success")
        if isinstance(result, Exception):
            raise result
        effect = self.effects.get(command)
        if effect is not None:
            effect()
        return result

    def get_property(self, serial: str, name: str) -> str:
        value = self.props.get(name, "")
        if isinstance(value, Exception):
            raise value
        return value

    def list_users(self, serial: str) -> list[UserDescriptor]:
        if isinstance(self.users, Exception):
            raise self.users
        if self.users is not None:
            return list(self.users)
        return [UserDescriptor(id=uid) for uid in self.states]

    def list_packages(
        self,
        serial: str,
        package_filter: PackageFilter = PackageFilter.NONE,
        user_id: Optional[int] = None,
    ) -> list[str]:
        uid = 0 if user_id is None else user_id
        if uid in self.failing_users:
            raise TransportError(f"Error: user {uid} is locked")
        packages = self.states.get(uid, {})
        wanted = {
            PackageFilter.ENABLED_ONLY: {PackageState.ENABLED},
            PackageFilter.DISABLED_ONLY: {PackageState.DISABLED},
            PackageFilter.NONE: {PackageState.ENABLED, PackageState.DISABLED},
        }[package_filter]
        return [name for name, state in packages.items() if state in wanted]

    def set_state(self, user_id: int, package: str, state: PackageState) -> None:
        self.states.setdefault(user_id, {})[package] = state


def make_device(
    sdk: int = 30,
    users: Optional[list[User]] = None,
    serial: str = "SERIAL1",
) -> Device:
    return Device(
        model="Samsung SM-G991B",
        android_sdk=sdk,
        user_list=tuple(users if users is not None else [User(id=0, index=0)]),
        adb_id=serial,
    )


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def two_user_device() -> Device:
    return make_device(users=[User(id=0, index=0), User(id=10, index=1)])


@pytest.fixture
def transport_factory():
    return FakeTransport


@pytest.fixture
def device_factory():
    return make_device


@pytest.fixture
def recorded_sleeps() -> list[float]:
    """Delays requested by code under test; pass ``recorded_sleeps.append`` as sleep."""
    return []
