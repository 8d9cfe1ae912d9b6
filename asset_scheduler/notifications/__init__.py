"""Notification channels, routing and the task alert gateway."""

from asset_scheduler.notifications.channels import NotificationChannel
from asset_scheduler.notifications.gateway import NotificationGateway
from asset_scheduler.notifications.log_channel import LogChannel
from asset_scheduler.notifications.router import NotificationRouter
from asset_scheduler.notifications.webhook_channel import WebhookChannel

__all__ = [
    "LogChannel",
    "NotificationChannel",
    "NotificationGateway",
    "NotificationRouter",
    "WebhookChannel",
]
