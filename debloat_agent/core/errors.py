"""Exception types raised by the reconciliation core."""

from __future__ import annotations

from typing import Optional

from debloat_agent.core.models import PackageState


class TransportError(Exception):
    """Raw failure text returned by the transport."""

    def __init__(self, message: str, command: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.command = command


class ClassifiedTransportError(TransportError):
    """A transport failure rewritten into a human-readable diagnostic.

    ``raw`` keeps the original transport text; the friendly message always
    contains it verbatim.
    """

    def __init__(self, friendly: str, raw: str, command: Optional[str] = None):
        super().__init__(friendly, command=command)
        self.raw = raw


class NoFallbackAvailable(Exception):
    def __init__(self, wanted: PackageState, actual: PackageState):
        super().__init__(
            f"No fallback available for wanted state {wanted} "
            f"and actual state {actual}"
        )
        self.wanted = wanted
        self.actual = actual
