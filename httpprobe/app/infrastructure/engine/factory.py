"""Transport engine factory: selects the engine adapter from settings. Only place that imports concrete engines."""
from __future__ import annotations

from httpprobe.app.config.settings import Settings
from httpprobe.app.ports.transport_engine import TransportEngine


def create_transport_engine(settings: Settings) -> TransportEngine:
    backend = settings.engine_backend.strip().lower()

    if backend == "pycurl":
        from httpprobe.app.infrastructure.engine.pycurl_engine import PycurlTransportEngine

        return PycurlTransportEngine()

    if backend == "httpx":
        from httpprobe.app.infrastructure.engine.httpx_engine import HttpxTransportEngine

        return HttpxTransportEngine()

    raise ValueError(f"Unsupported engine backend: {backend}")
