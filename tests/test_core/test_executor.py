"""Tests for debloat_agent.core.executor — ordered command execution."""

from __future__ import annotations

import pytest

from debloat_agent.core.errors import ClassifiedTransportError, TransportError
from debloat_agent.core.executor import CommandExecutor

PKG = "com.example.bloat"


class TestRunShell:
    def test_returns_output(self, transport_factory):
        t = transport_factory(shell_results={f"pm uninstall {PKG}": "Success"})
        assert CommandExecutor(t).run_shell("SERIAL1", f"pm uninstall {PKG}") == "Success"

    def test_failure_marker_in_output_is_classified(self, transport_factory):
        cmd = f"pm uninstall --user 0 {PKG}"
        raw = "Failure [DELETE_FAILED_USER_RESTRICTED]"
        t = transport_factory(shell_results={cmd: raw})
        with pytest.raises(ClassifiedTransportError) as exc:
            CommandExecutor(t).run_shell("SERIAL1", cmd)
        assert exc.value.raw == raw
        assert raw in str(exc.value)
        assert "Knox" in str(exc.value)
        assert exc.value.command == cmd

    def test_error_marker_in_output_unknown_error(self, transport_factory):
        cmd = f"pm enable {PKG}"
        t = transport_factory(shell_results={cmd: "Error: unknown"})
        with pytest.raises(ClassifiedTransportError, match="pm enable"):
            CommandExecutor(t).run_shell("SERIAL1", cmd)

    def test_transport_error_is_classified(self, transport_factory):
        cmd = f"pm uninstall {PKG}"
        t = transport_factory(shell_results={cmd: TransportError("Permission denied")})
        with pytest.raises(ClassifiedTransportError) as exc:
            CommandExecutor(t).run_shell("SERIAL1", cmd)
        assert str(exc.value).startswith("Permission denied:")
        assert exc.value.raw == "Permission denied"

    def test_not_installed_for_user_propagates_raw(self, transport_factory):
        cmd = f"pm uninstall --user 10 {PKG}"
        err = TransportError("Failure [not installed for 10]")
        t = transport_factory(shell_results={cmd: err})
        with pytest.raises(TransportError) as exc:
            CommandExecutor(t).run_shell("SERIAL1", cmd)
        assert exc.value is err
        assert not isinstance(exc.value, ClassifiedTransportError)


class TestRunSequence:
    def test_runs_in_order(self, transport_factory):
        t = transport_factory()
        cmds = ["pm disable-user x", "am force-stop x", "pm clear x"]
        outcomes = CommandExecutor(t).run_sequence("SERIAL1", cmds)
        assert t.commands == cmds
        assert [o.command for o in outcomes] == cmds
        assert all(o.success for o in outcomes)

    def test_first_failure_raises_and_stops(self, transport_factory):
        t = transport_factory(shell_results={"pm hide x": TransportError("closed")})
        with pytest.raises(TransportError):
            CommandExecutor(t).run_sequence("SERIAL1", ["pm hide x", "pm clear x"])
        assert t.commands == ["pm hide x"]

    def test_cleanup_failure_recorded_and_stops(self, transport_factory):
        t = transport_factory(
            shell_results={"am force-stop x": TransportError("timed out")}
        )
        cmds = ["pm disable-user x", "am force-stop x", "pm clear x"]
        outcomes = CommandExecutor(t).run_sequence("SERIAL1", cmds)
        assert t.commands == cmds[:2]
        assert outcomes[0].success is True
        assert outcomes[1].success is False
        assert "timed out" in outcomes[1].error

    def test_empty_sequence(self, transport_factory):
        t = transport_factory()
        assert CommandExecutor(t).run_sequence("SERIAL1", []) == []
        assert t.commands == []
