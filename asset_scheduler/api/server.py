"""Admin HTTP API — thin JSON pass-through over TaskService and the handlers.

Uses aiohttp's AppRunner/TCPSite so it can share the scheduler's event loop.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from aiohttp import web
from pydantic import ValidationError

from asset_scheduler.api.schemas import StockUpdate, TaskCreate, TaskPatch
from asset_scheduler.config import settings
from asset_scheduler.errors import HandlerExecutionError, InvalidScheduleError, NotFoundError
from asset_scheduler.handlers.base import HandlerMap
from asset_scheduler.scheduler.models import TaskType
from asset_scheduler.scheduler.service import TaskService

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SERVICE_KEY = web.AppKey("service", TaskService)
HANDLERS_KEY = web.AppKey("handlers", HandlerMap)


# -- Middleware ------------------------------------------------------------------


@web.middleware
async def _auth_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Require ``Authorization: Bearer <admin_token>`` when a token is configured."""
    if settings.admin_token and request.path != "/health":
        if request.headers.get("Authorization", "") != f"Bearer {settings.admin_token}":
            logger.warning(
                "Admin request rejected: bad token (%s %s)", request.method, request.path
            )
            return web.json_response({"error": "unauthorized"}, status=401)
    return await handler(request)


@web.middleware
async def _error_middleware(
    request: web.Request, handler: Callable[[web.Request], Awaitable[web.StreamResponse]]
) -> web.StreamResponse:
    """Translate domain errors into JSON error responses."""
    try:
        return await handler(request)
    except NotFoundError as exc:
        return web.json_response({"error": str(exc)}, status=404)
    except InvalidScheduleError as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except HandlerExecutionError as exc:
        return web.json_response({"error": str(exc)}, status=400)
    except ValidationError as exc:
        errors = json.loads(exc.json(include_url=False))
        return web.json_response({"error": "invalid request", "details": errors}, status=400)
    except ValueError as exc:
        return web.json_response({"error": str(exc)}, status=400)


# -- Helpers ---------------------------------------------------------------------


async def _json_body(request: web.Request) -> dict[str, Any]:
    """Parse a JSON object body; an empty body reads as ``{}``."""
    if not request.body_exists:
        return {}
    try:
        payload = await request.json()
    except json.JSONDecodeError as exc:
        msg = "invalid JSON"
        raise ValueError(msg) from exc
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        msg = "JSON body must be an object"
        raise ValueError(msg)
    return payload


def _handler(request: web.Request, task_type: TaskType) -> Any:
    return request.app[HANDLERS_KEY].resolve(task_type)


def _records(records: list) -> web.Response:
    return web.json_response([r.to_dict() for r in records])


# -- Tasks -----------------------------------------------------------------------


async def _health(request: web.Request) -> web.Response:
    """GET /health — basic liveness check."""
    return web.json_response({"status": "ok"})


async def _create_task(request: web.Request) -> web.Response:
    body = TaskCreate.model_validate(await _json_body(request))
    task = await request.app[SERVICE_KEY].create(body.model_dump())
    return web.json_response(task.to_dict(), status=201)


async def _list_tasks(request: web.Request) -> web.Response:
    return _records(await request.app[SERVICE_KEY].find_all())


async def _get_task(request: web.Request) -> web.Response:
    task = await request.app[SERVICE_KEY].find_one(request.match_info["task_id"])
    return web.json_response(task.to_dict())


async def _update_task(request: web.Request) -> web.Response:
    patch = TaskPatch.model_validate(await _json_body(request))
    task = await request.app[SERVICE_KEY].update(request.match_info["task_id"], patch.changes())
    return web.json_response(task.to_dict())


async def _delete_task(request: web.Request) -> web.Response:
    await request.app[SERVICE_KEY].remove(request.match_info["task_id"])
    return web.Response(status=204)


async def _toggle_task(request: web.Request) -> web.Response:
    task = await request.app[SERVICE_KEY].toggle_status(request.match_info["task_id"])
    return web.json_response(task.to_dict())


async def _run_task(request: web.Request) -> web.Response:
    execution = await request.app[SERVICE_KEY].run_task(request.match_info["task_id"])
    if execution is None:
        return web.json_response({"error": "task is already running"}, status=409)
    return web.json_response(execution.to_dict())


async def _task_executions(request: web.Request) -> web.Response:
    service = request.app[SERVICE_KEY]
    return _records(await service.get_task_executions(request.match_info["task_id"]))


# -- Assets ----------------------------------------------------------------------


async def _overdue_assets(request: web.Request) -> web.Response:
    return _records(await _handler(request, TaskType.OVERDUE_ASSET_DETECTION).list_overdue())


async def _detect_overdue(request: web.Request) -> web.Response:
    handler = _handler(request, TaskType.OVERDUE_ASSET_DETECTION)
    return web.json_response(await handler.handle(await _json_body(request)))


async def _mark_overdue(request: web.Request) -> web.Response:
    handler = _handler(request, TaskType.OVERDUE_ASSET_DETECTION)
    asset = await handler.mark_overdue(request.match_info["asset_id"])
    return web.json_response(asset.to_dict())


# -- Maintenance -----------------------------------------------------------------


async def _upcoming_maintenance(request: web.Request) -> web.Response:
    raw_days = request.query.get("days", "30")
    try:
        days = int(raw_days)
    except ValueError as exc:
        msg = f"days must be an integer, got {raw_days!r}"
        raise ValueError(msg) from exc
    handler = _handler(request, TaskType.MAINTENANCE_REMINDER)
    return _records(await handler.list_upcoming(days))


async def _overdue_maintenance(request: web.Request) -> web.Response:
    return _records(await _handler(request, TaskType.MAINTENANCE_REMINDER).list_overdue())


async def _send_reminders(request: web.Request) -> web.Response:
    handler = _handler(request, TaskType.MAINTENANCE_REMINDER)
    return web.json_response(await handler.handle(await _json_body(request)))


async def _complete_maintenance(request: web.Request) -> web.Response:
    handler = _handler(request, TaskType.MAINTENANCE_REMINDER)
    item = await handler.complete(request.match_info["item_id"])
    return web.json_response(item.to_dict())


# -- Inventory -------------------------------------------------------------------


async def _low_stock(request: web.Request) -> web.Response:
    return _records(await _handler(request, TaskType.LOW_STOCK_DETECTION).list_low_stock())


async def _critical_stock(request: web.Request) -> web.Response:
    return _records(await _handler(request, TaskType.LOW_STOCK_DETECTION).list_critical())


async def _detect_low_stock(request: web.Request) -> web.Response:
    handler = _handler(request, TaskType.LOW_STOCK_DETECTION)
    return web.json_response(await handler.handle(await _json_body(request)))


async def _restock_report(request: web.Request) -> web.Response:
    handler = _handler(request, TaskType.LOW_STOCK_DETECTION)
    return web.json_response(await handler.restock_report())


async def _update_stock(request: web.Request) -> web.Response:
    body = StockUpdate.model_validate(await _json_body(request))
    handler = _handler(request, TaskType.LOW_STOCK_DETECTION)
    item = await handler.update_stock(request.match_info["item_id"], body.stock)
    return web.json_response(item.to_dict())


def create_admin_app(service: TaskService, handlers: HandlerMap) -> web.Application:
    """Build the aiohttp Application with routes."""
    app = web.Application(middlewares=[_auth_middleware, _error_middleware])
    app[SERVICE_KEY] = service
    app[HANDLERS_KEY] = handlers

    app.router.add_get("/health", _health)

    app.router.add_post("/tasks", _create_task)
    app.router.add_get("/tasks", _list_tasks)
    app.router.add_get("/tasks/{task_id}", _get_task)
    app.router.add_patch("/tasks/{task_id}", _update_task)
    app.router.add_delete("/tasks/{task_id}", _delete_task)
    app.router.add_patch("/tasks/{task_id}/toggle", _toggle_task)
    app.router.add_post("/tasks/{task_id}/run", _run_task)
    app.router.add_get("/tasks/{task_id}/executions", _task_executions)

    app.router.add_get("/assets/overdue", _overdue_assets)
    app.router.add_post("/assets/detect-overdue", _detect_overdue)
    app.router.add_patch("/assets/{asset_id}/mark-overdue", _mark_overdue)

    app.router.add_get("/maintenance/upcoming", _upcoming_maintenance)
    app.router.add_get("/maintenance/overdue", _overdue_maintenance)
    app.router.add_post("/maintenance/send-reminders", _send_reminders)
    app.router.add_patch("/maintenance/{item_id}/complete", _complete_maintenance)

    app.router.add_get("/inventory/low-stock", _low_stock)
    app.router.add_get("/inventory/critical-stock", _critical_stock)
    app.router.add_post("/inventory/detect-low-stock", _detect_low_stock)
    app.router.add_get("/inventory/restock-report", _restock_report)
    app.router.add_patch("/inventory/{item_id}/update-stock", _update_stock)
    return app


class AdminServer:
    """Manages the aiohttp server lifecycle."""

    def __init__(
        self,
        service: TaskService,
        handlers: HandlerMap,
        host: str | None = None,
        port: int | None = None,
    ) -> None:
        self._service = service
        self._handlers = handlers
        self.host = host or settings.admin_host
        self.port = port or settings.admin_port
        self._runner: web.AppRunner | None = None

    async def start(self) -> None:
        app = create_admin_app(self._service, self._handlers)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, self.host, self.port)
        await site.start()
        logger.info("Admin API listening on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Shut down the server gracefully."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            logger.info("Admin API stopped")
