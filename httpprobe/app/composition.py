"""Composition root: build the performer and default requests from settings.

Composition may: import concrete classes, call factories, store interface types.
"""
from __future__ import annotations

from httpprobe.app.application.performer import RequestPerformer
from httpprobe.app.config.settings import Settings
from httpprobe.app.domain.models import RequestDescriptor
from httpprobe.app.infrastructure.engine.factory import create_transport_engine
from httpprobe.app.ports.transport_engine import TransportEngine


def create_performer(
    settings: Settings | None = None,
    *,
    engine: TransportEngine | None = None,
) -> RequestPerformer:
    if engine is None:
        engine = create_transport_engine(settings or Settings())
    return RequestPerformer(engine)


def create_request(url: str, settings: Settings | None = None) -> RequestDescriptor:
    """RequestDescriptor for url, pre-populated with the configured defaults."""
    settings = settings or Settings()
    request = RequestDescriptor()
    request.set_url(url)
    request.set_timeout(settings.default_timeout_seconds)
    if settings.user_agent:
        request.add_header(f"User-Agent: {settings.user_agent}")
    if settings.ca_bundle_path:
        request.set_ca_bundle_path(settings.ca_bundle_path)
    if settings.proxy_url:
        request.set_proxy_url(settings.proxy_url)
    if settings.follow_redirects:
        request.enable_follow_redirect()
    if settings.enable_http2:
        request.enable_http2()
    return request
