"""Analytics schemas."""

from __future__ import annotations

from pydantic import BaseModel


class NamedCount(BaseModel):
    name: str
    count: int


class AdminLoad(NamedCount):
    threshold: str


class PatchShare(BaseModel):
    status: str
    count: int
    percentage: float


class GrowthPoint(BaseModel):
    label: str
    count: int


class HardwarePoint(BaseModel):
    label: str
    virtual: int
    physical: int


class ResourcePoint(BaseModel):
    name: str
    cores: int
    ram_gb: int
    storage_gb: int
    location: str


class InventorySummary(BaseModel):
    total: int
    cpu_usage_percent: float
    backup_enabled: int
    backup_disabled: int
    alarm_total: int
