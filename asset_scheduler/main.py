"""Asset scheduler entry point."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass

from asset_scheduler.api.server import AdminServer
from asset_scheduler.config import settings
from asset_scheduler.domain import AssetStore, InventoryStore, MaintenanceStore
from asset_scheduler.handlers import HandlerMap, build_handlers
from asset_scheduler.notifications import (
    LogChannel,
    NotificationChannel,
    NotificationGateway,
    NotificationRouter,
    WebhookChannel,
)
from asset_scheduler.scheduler import (
    ExecutionStore,
    SchedulerRegistry,
    TaskExecutionRecorder,
    TaskService,
    TaskStore,
)

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=getattr(logging, settings.log_level),
)
logger = logging.getLogger(__name__)


@dataclass
class Components:
    """Everything ``run()`` starts and stops, wired together."""

    router: NotificationRouter
    handlers: HandlerMap
    registry: SchedulerRegistry
    service: TaskService
    server: AdminServer
    webhook: WebhookChannel | None = None


def build_components() -> Components:
    """Construct stores, handlers, the registry and the admin server."""
    channels: list[NotificationChannel] = [LogChannel()]
    webhook = None
    if settings.webhook_enabled:
        webhook = WebhookChannel()
        channels.append(webhook)
    router = NotificationRouter(channels, default=settings.default_notification_channel)

    handlers = build_handlers(
        AssetStore(),
        MaintenanceStore(),
        InventoryStore(),
        NotificationGateway(router),
    )
    task_store = TaskStore()
    execution_store = ExecutionStore()
    registry = SchedulerRegistry(handlers, TaskExecutionRecorder(task_store, execution_store))
    service = TaskService(task_store, execution_store, registry)
    return Components(
        router=router,
        handlers=handlers,
        registry=registry,
        service=service,
        server=AdminServer(service, handlers),
        webhook=webhook,
    )


async def run() -> None:
    """Start the scheduler and admin API, then wait until cancelled."""
    components = build_components()
    await components.service.start()
    await components.server.start()
    logger.info(
        "Asset scheduler running (channels: %s)", ", ".join(components.router.list_channels())
    )
    try:
        await asyncio.Event().wait()
    finally:
        await components.server.stop()
        await components.service.stop()
        if components.webhook is not None:
            await components.webhook.close()


def main() -> None:
    """Run until interrupted."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(run())
    logger.info("Asset scheduler stopped")


if __name__ == "__main__":
    main()
