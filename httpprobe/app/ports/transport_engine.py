"""Transport engine port: contract for the external HTTP/TLS engine.

The pipeline and result extraction depend on this port only; infrastructure
(pycurl, httpx) implements it. Every call reports an engine error code instead
of raising, so failures can be recorded on the response.
"""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from httpprobe.app.constants import EngineInfo, EngineOption


class ContractViolationError(RuntimeError):
    """A required reference was None. Not recoverable; never caught by the library."""


@runtime_checkable
class TransportHandle(Protocol):
    """One freshly initialised engine handle, owned by a single transaction."""

    def setopt(self, option: EngineOption, value: Any) -> int:
        """Apply one option; return EngineError.OK or the engine's failure code."""
        ...

    def perform(self) -> int:
        """Run the transaction to completion, invoking registered callbacks."""
        ...

    def getinfo(self, info: EngineInfo) -> tuple[int, Any]:
        """Read back metadata; return (code, value). value is meaningless unless code is OK."""
        ...

    def close(self) -> None: ...


@runtime_checkable
class TransportEngine(Protocol):
    """Port: creates handles and builds header lists. Implementations live in infrastructure."""

    def create_handle(self) -> TransportHandle | None:
        """Return a new handle or None when the engine cannot allocate one."""
        ...

    def append_header(self, headers: list[str] | None, line: str) -> list[str] | None:
        """Return the list with line appended, or None on allocation failure."""
        ...
