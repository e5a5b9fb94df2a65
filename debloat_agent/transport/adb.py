"""AdbTransport — runs requests through the adb binary in a subprocess."""

from __future__ import annotations

import logging
import re
import subprocess
from typing import Optional

from debloat_agent.core.errors import TransportError
from debloat_agent.transport.base import PackageFilter, Transport, UserDescriptor

logger = logging.getLogger(__name__)

_USER_INFO_RE = re.compile(r"UserInfo\{(\d+):([^:}]*)")


class AdbTransport(Transport):
    """Thin wrapper around the ``adb`` command line client."""

    def __init__(self, adb_path: str = "adb", timeout: float = 30.0):
        self.adb_path = adb_path
        self.timeout = timeout

    def _run(self, args: list[str], serial: Optional[str] = None) -> str:
        cmd = [self.adb_path]
        if serial:
            cmd += ["-s", serial]
        cmd += args
        logger.debug("Running %s", " ".join(cmd))
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise TransportError(
                f"adb command timed out after {self.timeout} seconds",
                command=" ".join(args),
            )
        except OSError as e:
            raise TransportError(str(e), command=" ".join(args))

        if result.returncode != 0:
            message = (result.stderr or result.stdout).strip()
            raise TransportError(
                message or f"adb exited with code {result.returncode}",
                command=" ".join(args),
            )
        return result.stdout.strip()

    def list_devices(self) -> list[tuple[str, str]]:
        output = self._run(["devices"])
        devices = []
        for line in output.splitlines():
            line = line.strip()
            if not line or line.startswith("List of devices") or line.startswith("*"):
                continue
            parts = line.split()
            if len(parts) >= 2:
                devices.append((parts[0], parts[1]))
        return devices

    def shell(self, serial: str, command: str) -> str:
        return self._run(["shell", command], serial=serial)

    def get_property(self, serial: str, name: str) -> str:
        return self.shell(serial, f"getprop {name}").strip()

    def list_users(self, serial: str) -> list[UserDescriptor]:
        output = self.shell(serial, "pm list users")
        return [
            UserDescriptor(id=int(m.group(1)), name=m.group(2))
            for m in _USER_INFO_RE.finditer(output)
        ]

    def list_packages(
        self,
        serial: str,
        package_filter: PackageFilter = PackageFilter.NONE,
        user_id: Optional[int] = None,
    ) -> list[str]:
        command = "pm list packages"
        if package_filter is not PackageFilter.NONE:
            command += f" {package_filter.value}"
        if user_id is not None:
            command += f" --user {user_id}"
        output = self.shell(serial, command)
        # pm reports some failures on stdout with a zero exit code
        if output.startswith("Error") or "Exception" in output:
            raise TransportError(output, command=command)
        return [
            line.strip()[len("package:"):]
            for line in output.splitlines()
            if line.strip().startswith("package:")
        ]
