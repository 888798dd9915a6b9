"""
Dependency injection providers for FastAPI.

Services are built once per application session in the lifespan handler and
stored on ``app.state``. These providers hand them to endpoints, and tests can
swap any of them through ``app.dependency_overrides``.
"""

from dataclasses import dataclass
from typing import Optional

import httpx
from fastapi import Request

from config.app_config import AppConfig
from services.download_service import DownloadService
from services.entry_registry import EntryRegistry
from services.entry_service import EntryService
from services.event_broadcaster import EventBroadcaster
from services.fetch_pipeline import StreamingFetcher, make_http_client
from services.websocket import ConnectionManager, WebSocketEventListener


@dataclass
class ServiceContainer:
    """Everything scoped to one application session."""

    config: AppConfig
    registry: EntryRegistry
    broadcaster: EventBroadcaster
    http_client: httpx.AsyncClient
    downloads: DownloadService
    entries: EntryService
    connections: ConnectionManager

    async def aclose(self) -> None:
        await self.downloads.shutdown()
        await self.http_client.aclose()


def build_services(
    config: AppConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ServiceContainer:
    """
    Factory function wiring the registry, pipeline and services together.

    Args:
        config: Resolved application configuration
        transport: Optional httpx transport (tests pass httpx.MockTransport)

    Returns:
        ServiceContainer ready for use inside a running event loop
    """
    registry = EntryRegistry()
    broadcaster = EventBroadcaster()
    connections = ConnectionManager()
    broadcaster.subscribe(WebSocketEventListener(connections))

    http_client = make_http_client(transport)
    downloads = DownloadService(
        registry,
        StreamingFetcher(http_client),
        broadcaster,
        timeout_seconds=config.download_timeout_seconds,
    )
    entries = EntryService(
        registry,
        broadcaster,
        downloads=downloads,
        accept_unknown_media=config.accept_unknown_media,
    )
    return ServiceContainer(
        config=config,
        registry=registry,
        broadcaster=broadcaster,
        http_client=http_client,
        downloads=downloads,
        entries=entries,
        connections=connections,
    )


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_entry_service(request: Request) -> EntryService:
    """Provider for the EntryService of the current session."""
    return get_services(request).entries


def get_download_service(request: Request) -> DownloadService:
    """Provider for the DownloadService of the current session."""
    return get_services(request).downloads


def get_app_config(request: Request) -> AppConfig:
    return get_services(request).config
