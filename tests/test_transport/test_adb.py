"""Tests for debloat_agent.transport.adb — AdbTransport."""

from __future__ import annotations

import subprocess
from unittest.mock import MagicMock, patch

import pytest

from debloat_agent.core.errors import TransportError
from debloat_agent.transport.adb import AdbTransport
from debloat_agent.transport.base import PackageFilter, UserDescriptor


def _completed(stdout="", stderr="", returncode=0):
    return MagicMock(stdout=stdout, stderr=stderr, returncode=returncode)


class TestRun:
    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_shell_command_line(self, mock_run):
        mock_run.return_value = _completed("Success\n")
        out = AdbTransport("/usr/bin/adb", timeout=5).shell(
            "R58M", "pm uninstall --user 0 com.x"
        )
        assert out == "Success"
        mock_run.assert_called_once_with(
            ["/usr/bin/adb", "-s", "R58M", "shell", "pm uninstall --user 0 com.x"],
            capture_output=True, text=True, timeout=5,
        )

    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_nonzero_exit_raises_stderr(self, mock_run):
        mock_run.return_value = _completed(stderr="error: device offline\n", returncode=1)
        with pytest.raises(TransportError, match="device offline"):
            AdbTransport().shell("R58M", "pm list users")

    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_timeout_raises(self, mock_run):
        mock_run.side_effect = subprocess.TimeoutExpired(cmd="adb", timeout=30)
        with pytest.raises(TransportError, match="timed out"):
            AdbTransport().shell("R58M", "pm list users")

    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_missing_binary_raises(self, mock_run):
        mock_run.side_effect = FileNotFoundError("No such file or directory: 'adb'")
        with pytest.raises(TransportError, match="No such file"):
            AdbTransport().list_devices()


class TestParsing:
    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_list_devices(self, mock_run):
        mock_run.return_value = _completed(
            "* daemon started successfully\n"
            "List of devices attached\n"
            "R58M123\tdevice\n"
            "emulator-5554\tunauthorized\n\n"
        )
        assert AdbTransport().list_devices() == [
            ("R58M123", "device"),
            ("emulator-5554", "unauthorized"),
        ]
        assert mock_run.call_args.args[0] == ["adb", "devices"]

    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_get_property(self, mock_run):
        mock_run.return_value = _completed("33\n")
        assert AdbTransport().get_property("R58M", "ro.build.version.sdk") == "33"
        assert mock_run.call_args.args[0][-1] == "getprop ro.build.version.sdk"

    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_list_users(self, mock_run):
        mock_run.return_value = _completed(
            "Users:\n"
            "\tUserInfo{0:Owner:c13} running\n"
            "\tUserInfo{95:Secure Folder:10001030} running\n"
        )
        assert AdbTransport().list_users("R58M") == [
            UserDescriptor(id=0, name="Owner"),
            UserDescriptor(id=95, name="Secure Folder"),
        ]

    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_list_packages_with_filter_and_user(self, mock_run):
        mock_run.return_value = _completed(
            "package:com.android.chrome\npackage:com.samsung.android.bixby\n"
        )
        packages = AdbTransport().list_packages(
            "R58M", PackageFilter.DISABLED_ONLY, 10
        )
        assert packages == ["com.android.chrome", "com.samsung.android.bixby"]
        assert mock_run.call_args.args[0][-1] == "pm list packages -d --user 10"

    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_list_packages_no_filter(self, mock_run):
        mock_run.return_value = _completed("")
        assert AdbTransport().list_packages("R58M") == []
        assert mock_run.call_args.args[0][-1] == "pm list packages"

    @patch("debloat_agent.transport.adb.subprocess.run")
    def test_list_packages_error_on_stdout(self, mock_run):
        mock_run.return_value = _completed(
            "Exception occurred while executing 'list':\n"
            "java.lang.SecurityException: Shell does not have permission"
        )
        with pytest.raises(TransportError, match="SecurityException"):
            AdbTransport().list_packages("R58M", PackageFilter.NONE, 95)
