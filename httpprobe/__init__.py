"""HTTP transactions with a wire-level transcript, byte estimates and the peer certificate chain."""
from __future__ import annotations

from httpprobe.app.composition import create_performer, create_request
from httpprobe.app.constants import EngineError, Method
from httpprobe.app.domain.models import FrozenRequest, RequestDescriptor, Response
from httpprobe.app.ports.transport_engine import ContractViolationError, TransportEngine

__all__ = [
    "ContractViolationError",
    "EngineError",
    "FrozenRequest",
    "Method",
    "RequestDescriptor",
    "Response",
    "aperform",
    "create_request",
    "perform",
]


def perform(request: RequestDescriptor | FrozenRequest, *, engine: TransportEngine | None = None) -> Response:
    """Run one blocking transaction. Failures are reported on the Response, never raised."""
    return create_performer(engine=engine).perform(request)


async def aperform(request: RequestDescriptor | FrozenRequest, *, engine: TransportEngine | None = None) -> Response:
    return await create_performer(engine=engine).aperform(request)
