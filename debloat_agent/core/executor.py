"""Command executor — runs synthesized command sequences in order."""

from __future__ import annotations

import logging

from debloat_agent.core.error_translator import make_friendly_error_message
from debloat_agent.core.errors import ClassifiedTransportError, TransportError
from debloat_agent.core.models import CommandOutcome
from debloat_agent.transport.base import Transport

logger = logging.getLogger(__name__)

# pm prints these on stdout and still exits 0
FAILURE_MARKERS = ("Error", "Failure")


class CommandExecutor:
    """Sends shell commands through a transport and classifies failures."""

    def __init__(self, transport: Transport):
        self.transport = transport

    def run_shell(self, serial: str, command: str) -> str:
        """Run one command. Raises TransportError on any failure."""
        try:
            output = self.transport.shell(serial, command)
        except ClassifiedTransportError:
            raise
        except TransportError as e:
            if "[not installed for" in e.message:
                raise
            raise ClassifiedTransportError(
                make_friendly_error_message(e.message, command),
                raw=e.message,
                command=command,
            ) from e

        if any(marker in output for marker in FAILURE_MARKERS):
            raise ClassifiedTransportError(
                make_friendly_error_message(output, command),
                raw=output,
                command=command,
            )
        logger.info("%s -> %s", command, output)
        return output

    def run_sequence(self, serial: str, commands: list[str]) -> list[CommandOutcome]:
        """Run ``commands`` strictly in order.

        A failure of the first command is raised, since it decides the
        package state. A failing cleanup command is recorded and stops the
        sequence without raising.
        """
        outcomes: list[CommandOutcome] = []
        for i, command in enumerate(commands):
            try:
                output = self.run_shell(serial, command)
            except TransportError as e:
                if i == 0:
                    raise
                logger.warning("Cleanup command %r failed: %s", command, e.message)
                outcomes.append(
                    CommandOutcome(command=command, success=False, error=e.message)
                )
                break
            outcomes.append(CommandOutcome(command=command, success=True, output=output))
        return outcomes
