"""Domain records and stores consumed by the task handlers."""

from asset_scheduler.domain.assets import AssetStore
from asset_scheduler.domain.inventory import InventoryStore
from asset_scheduler.domain.maintenance import MaintenanceStore
from asset_scheduler.domain.models import (
    Asset,
    AssetStatus,
    InventoryItem,
    MaintenanceItem,
    MaintenancePriority,
    MaintenanceType,
)

__all__ = [
    "Asset",
    "AssetStatus",
    "AssetStore",
    "InventoryItem",
    "InventoryStore",
    "MaintenanceItem",
    "MaintenancePriority",
    "MaintenanceStore",
    "MaintenanceType",
]
