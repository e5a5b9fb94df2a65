"""Core data models for debloat-agent."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class PackageState(Enum):
    ENABLED = "Enabled"
    DISABLED = "Disabled"
    UNINSTALLED = "Uninstalled"
    ALL = "All"  # filter-only, never reported by a device

    def opposite(self, disable_mode: bool) -> PackageState:
        """Return the state a package row toggles to."""
        if self is PackageState.ENABLED:
            return PackageState.DISABLED if disable_mode else PackageState.UNINSTALLED
        if self in (PackageState.DISABLED, PackageState.UNINSTALLED):
            return PackageState.ENABLED
        return PackageState.ALL

    @classmethod
    def parse(cls, value: str) -> PackageState:
        for state in cls:
            if state.value.lower() == value.strip().lower():
                return state
        valid = ", ".join(s.value for s in cls)
        raise ValueError(f"Unknown package state: {value!r}. Valid: {valid}")

    def __str__(self) -> str:
        return self.value


class Removal(Enum):
    RECOMMENDED = "Recommended"
    ADVANCED = "Advanced"
    EXPERT = "Expert"
    UNSAFE = "Unsafe"
    UNLISTED = "Unlisted"
    ALL = "All"

    @classmethod
    def parse(cls, value: str) -> Removal:
        for removal in cls:
            if removal.value.lower() == value.strip().lower():
                return removal
        valid = ", ".join(r.value for r in cls)
        raise ValueError(f"Unknown removal class: {value!r}. Valid: {valid}")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class User:
    id: int
    index: int = 0
    protected: bool = False

    def __str__(self) -> str:
        return f"user {self.id}"


@dataclass(frozen=True)
class Device:
    """A discovered device. Replaced wholesale on every discovery poll."""

    model: str = "fetching devices..."
    android_sdk: int = 0
    user_list: tuple[User, ...] = ()
    adb_id: str = ""

    def __str__(self) -> str:
        return self.model

    def get_user(self, user_id: int) -> Optional[User]:
        for user in self.user_list:
            if user.id == user_id:
                return user
        return None


@dataclass
class CorePackage:
    """Minimal read-only view of a caller-owned package record."""

    name: str
    state: PackageState
    removal: Removal = Removal.UNLISTED
    description: str = ""


@dataclass
class CommandOutcome:
    command: str
    success: bool
    output: str = ""
    error: str = ""


@dataclass
class FallbackResult:
    success: bool
    message: str
    partial: bool = False  # first corrective phase succeeded, second did not


@dataclass
class ActionPlan:
    """Ordered commands for one package on one user."""

    package: CorePackage
    user: User
    wanted_state: PackageState
    commands: list[str] = field(default_factory=list)


@dataclass
class ReconcileResult:
    package: str
    user: Optional[User]
    wanted_state: PackageState
    actual_state: PackageState
    outcomes: list[CommandOutcome] = field(default_factory=list)
    cross_user_note: Optional[str] = None
    fallback: Optional[FallbackResult] = None
    error: str = ""

    @property
    def success(self) -> bool:
        if self.actual_state == self.wanted_state:
            return True
        return self.fallback is not None and self.fallback.success
