"""Settings resolved from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

from debloat_agent.core.discovery import (
    DEV_BUILD_ATTEMPTS,
    RELEASE_ATTEMPTS,
    RETRY_DELAY_SECONDS,
)

_TRUTHY = {"1", "true", "yes", "on"}


def _env_bool(env: Mapping[str, str], key: str) -> Optional[bool]:
    value = env.get(key)
    if value is None or not value.strip():
        return None
    return value.strip().lower() in _TRUTHY


@dataclass
class Settings:
    adb_path: str = "adb"
    command_timeout: float = 30.0
    dev_build: bool = False
    discovery_delay: float = RETRY_DELAY_SECONDS
    expert_mode: bool = False
    disable_mode: bool = False
    multi_user_mode: Optional[bool] = None  # None: follow the device

    @property
    def discovery_attempts(self) -> int:
        return DEV_BUILD_ATTEMPTS if self.dev_build else RELEASE_ATTEMPTS

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> Settings:
        env = os.environ if env is None else env
        settings = cls()
        if env.get("DEBLOAT_AGENT_ADB"):
            settings.adb_path = env["DEBLOAT_AGENT_ADB"]
        timeout = env.get("DEBLOAT_AGENT_TIMEOUT")
        if timeout:
            try:
                settings.command_timeout = float(timeout)
            except ValueError:
                raise ValueError(
                    f"DEBLOAT_AGENT_TIMEOUT must be a number, got {timeout!r}"
                )
        settings.dev_build = bool(_env_bool(env, "DEBLOAT_AGENT_DEV"))
        settings.expert_mode = bool(_env_bool(env, "DEBLOAT_AGENT_EXPERT"))
        settings.disable_mode = bool(_env_bool(env, "DEBLOAT_AGENT_DISABLE_MODE"))
        settings.multi_user_mode = _env_bool(env, "DEBLOAT_AGENT_MULTI_USER")
        return settings
