"""Domain records queried and updated by the task handlers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any

from asset_scheduler.clock import parse_iso, to_iso


class AssetStatus(StrEnum):
    ACTIVE = "active"
    CHECKED_OUT = "checked_out"
    MAINTENANCE = "maintenance"
    RETIRED = "retired"


class MaintenanceType(StrEnum):
    PREVENTIVE = "preventive"
    CORRECTIVE = "corrective"
    PREDICTIVE = "predictive"


class MaintenancePriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


def _iso_or_none(value: datetime | None) -> str | None:
    return to_iso(value) if value else None


@dataclass
class Asset:
    """A trackable asset with an optional return/due date."""

    id: str
    name: str
    asset_code: str
    status: AssetStatus = AssetStatus.ACTIVE
    due_date: datetime | None = None
    assigned_to: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def days_past_due(self, now: datetime) -> int:
        """Whole days elapsed since the due date (floored)."""
        if self.due_date is None:
            return 0
        return (now - self.due_date).days

    def to_row(self) -> tuple:
        return (
            self.id,
            self.name,
            self.asset_code,
            AssetStatus(self.status).value,
            _iso_or_none(self.due_date),
            self.assigned_to,
            json.dumps(self.metadata),
        )

    @classmethod
    def from_row(cls, row: tuple) -> Asset:
        return cls(
            id=row[0],
            name=row[1],
            asset_code=row[2],
            status=AssetStatus(row[3]),
            due_date=parse_iso(row[4]),
            assigned_to=row[5],
            metadata=json.loads(row[6]) if row[6] else {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "assetCode": self.asset_code,
            "status": AssetStatus(self.status).value,
            "dueDate": _iso_or_none(self.due_date),
            "assignedTo": self.assigned_to,
            "metadata": self.metadata,
        }


@dataclass
class MaintenanceItem:
    """A scheduled maintenance job for one asset."""

    id: str
    asset_id: str
    title: str
    scheduled_date: datetime
    type: MaintenanceType = MaintenanceType.PREVENTIVE
    priority: MaintenancePriority = MaintenancePriority.MEDIUM
    description: str | None = None
    completed_date: datetime | None = None
    assigned_to: str | None = None
    estimated_duration: int = 240  # minutes
    is_completed: bool = False
    is_active: bool = True
    checklist: list[str] = field(default_factory=list)
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_row(self) -> tuple:
        return (
            self.id,
            self.asset_id,
            self.title,
            self.description,
            MaintenanceType(self.type).value,
            MaintenancePriority(self.priority).value,
            to_iso(self.scheduled_date),
            _iso_or_none(self.completed_date),
            self.assigned_to,
            self.estimated_duration,
            int(self.is_completed),
            int(self.is_active),
            json.dumps(self.checklist),
            json.dumps(self.metadata),
        )

    @classmethod
    def from_row(cls, row: tuple) -> MaintenanceItem:
        return cls(
            id=row[0],
            asset_id=row[1],
            title=row[2],
            description=row[3],
            type=MaintenanceType(row[4]),
            priority=MaintenancePriority(row[5]),
            scheduled_date=parse_iso(row[6]),
            completed_date=parse_iso(row[7]),
            assigned_to=row[8],
            estimated_duration=row[9],
            is_completed=bool(row[10]),
            is_active=bool(row[11]),
            checklist=json.loads(row[12]) if row[12] else [],
            metadata=json.loads(row[13]) if row[13] else {},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "assetId": self.asset_id,
            "title": self.title,
            "description": self.description,
            "type": MaintenanceType(self.type).value,
            "priority": MaintenancePriority(self.priority).value,
            "scheduledDate": to_iso(self.scheduled_date),
            "completedDate": _iso_or_none(self.completed_date),
            "assignedTo": self.assigned_to,
            "estimatedDuration": self.estimated_duration,
            "isCompleted": self.is_completed,
            "isActive": self.is_active,
            "checklist": self.checklist,
        }


@dataclass
class InventoryItem:
    """A stocked inventory line with reorder thresholds."""

    id: str
    name: str
    sku: str
    current_stock: int
    minimum_threshold: int
    critical_threshold: int
    category: str | None = None
    supplier: str | None = None
    maximum_stock: int | None = None
    is_active: bool = True
    last_restocked_at: datetime | None = None

    def recommended_order_quantity(self) -> int:
        if self.maximum_stock:
            top_up = self.maximum_stock - self.current_stock
        else:
            top_up = self.minimum_threshold
        return max(self.minimum_threshold - self.current_stock, top_up)

    def to_row(self) -> tuple:
        return (
            self.id,
            self.name,
            self.sku,
            self.category,
            self.supplier,
            self.current_stock,
            self.minimum_threshold,
            self.critical_threshold,
            self.maximum_stock,
            int(self.is_active),
            _iso_or_none(self.last_restocked_at),
        )

    @classmethod
    def from_row(cls, row: tuple) -> InventoryItem:
        return cls(
            id=row[0],
            name=row[1],
            sku=row[2],
            category=row[3],
            supplier=row[4],
            current_stock=row[5],
            minimum_threshold=row[6],
            critical_threshold=row[7],
            maximum_stock=row[8],
            is_active=bool(row[9]),
            last_restocked_at=parse_iso(row[10]),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "sku": self.sku,
            "category": self.category,
            "supplier": self.supplier,
            "currentStock": self.current_stock,
            "minimumThreshold": self.minimum_threshold,
            "criticalThreshold": self.critical_threshold,
            "maximumStock": self.maximum_stock,
            "isActive": self.is_active,
            "lastRestockedAt": _iso_or_none(self.last_restocked_at),
        }
