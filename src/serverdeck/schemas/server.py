"""Server schemas.

Enum-closed fields are normalised here, so every gateway that builds records
through these models rejects values outside the fixed sets.
"""

from __future__ import annotations

import ipaddress
from datetime import datetime, timezone
from enum import StrEnum
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, model_validator

CPU_TREND_WINDOW = 24


class HardwareType(StrEnum):
    VIRTUALIZED = "VMware"
    BARE_METAL = "Bare-Metal"


class ServerType(StrEnum):
    PRODUCTION = "Production"
    TEST = "Test"
    DEVELOPMENT = "Development"
    STAGING = "Staging"
    QA = "QA"


class BackupStatus(StrEnum):
    YES = "Yes"
    NO = "No"


class PatchStatus(StrEnum):
    CURRENT = "current"
    OUTDATED = "outdated"
    CRITICAL = "critical"


_HARDWARE_ALIASES = {
    "vmware": HardwareType.VIRTUALIZED,
    "virtualized": HardwareType.VIRTUALIZED,
    "virtual": HardwareType.VIRTUALIZED,
    "vm": HardwareType.VIRTUALIZED,
    "bare-metal": HardwareType.BARE_METAL,
    "baremetal": HardwareType.BARE_METAL,
    "bare metal": HardwareType.BARE_METAL,
    "physical": HardwareType.BARE_METAL,
}

_SERVER_TYPE_ALIASES = {
    "production": ServerType.PRODUCTION,
    "prod": ServerType.PRODUCTION,
    "test": ServerType.TEST,
    "development": ServerType.DEVELOPMENT,
    "dev": ServerType.DEVELOPMENT,
    "staging": ServerType.STAGING,
    "qa": ServerType.QA,
}

_BACKUP_ALIASES = {
    "yes": BackupStatus.YES,
    "y": BackupStatus.YES,
    "ja": BackupStatus.YES,
    "true": BackupStatus.YES,
    "no": BackupStatus.NO,
    "n": BackupStatus.NO,
    "nein": BackupStatus.NO,
    "false": BackupStatus.NO,
}

_PATCH_ALIASES = {
    "current": PatchStatus.CURRENT,
    "aktuell": PatchStatus.CURRENT,
    "outdated": PatchStatus.OUTDATED,
    "veraltet": PatchStatus.OUTDATED,
    "critical": PatchStatus.CRITICAL,
    "kritisch": PatchStatus.CRITICAL,
}


def _alias_lookup(aliases: dict[str, StrEnum], label: str):
    def normalize(value: Any) -> Any:
        if isinstance(value, bool) and label == "backup":
            return BackupStatus.YES if value else BackupStatus.NO
        if isinstance(value, str):
            member = aliases.get(value.strip().lower())
            if member is None:
                raise ValueError(f"unrecognised {label} value: {value!r}")
            return member
        return value

    return normalize


def _check_ipv4(value: str) -> str:
    value = value.strip()
    try:
        ipaddress.IPv4Address(value)
    except ValueError:
        raise ValueError(f"not a dotted-quad IPv4 address: {value!r}") from None
    return value


def _as_utc(value: datetime | None) -> datetime | None:
    # SQLite hands back naive datetimes even for timezone-aware columns
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _unique_tags(value: list[str]) -> list[str]:
    seen: list[str] = []
    for tag in value:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _trend_window(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return list(value)[-CPU_TREND_WINDOW:]
    return value


HardwareTypeField = Annotated[HardwareType, BeforeValidator(_alias_lookup(_HARDWARE_ALIASES, "hardware type"))]
ServerTypeField = Annotated[ServerType, BeforeValidator(_alias_lookup(_SERVER_TYPE_ALIASES, "server type"))]
BackupField = Annotated[BackupStatus, BeforeValidator(_alias_lookup(_BACKUP_ALIASES, "backup"))]
PatchStatusField = Annotated[PatchStatus, BeforeValidator(_alias_lookup(_PATCH_ALIASES, "patch status"))]
IPv4Field = Annotated[str, AfterValidator(_check_ipv4)]
Timestamp = Annotated[datetime, AfterValidator(_as_utc)]
TagList = Annotated[list[str], AfterValidator(_unique_tags)]
CpuTrend = Annotated[
    list[Annotated[float, Field(ge=0, le=100)]],
    BeforeValidator(_trend_window),
]
Count = Annotated[int, Field(ge=0)]

_NULLABLE_FIELDS = frozenset({"last_patch_date"})


class ServerFields(BaseModel):
    """Descriptive and metric attributes shared by drafts and stored records."""

    server_name: str = Field(min_length=1)
    operating_system: str = ""
    hardware_type: HardwareTypeField = HardwareType.VIRTUALIZED
    company: str = ""
    server_type: ServerTypeField = ServerType.PRODUCTION
    location: str = ""
    system_admin: str = ""
    backup_admin: str = ""
    hardware_admin: str = ""
    description: str = ""
    domain: str = ""
    maintenance_window: str = ""
    ip_address: IPv4Field
    application_zone: str = ""
    operational_zone: str = ""
    backup: BackupField = BackupStatus.NO
    tags: TagList = Field(default_factory=list)

    cores: Count = 0
    ram_gb: Count = 0
    storage_gb: Count = 0
    vsphere_cluster: str = ""
    application: str = ""
    patch_status: PatchStatusField = PatchStatus.CURRENT
    last_patch_date: Timestamp | None = None
    cpu_load_trend: CpuTrend = Field(default_factory=list)
    alarm_count: Count = 0


class ServerCreate(ServerFields):
    """Draft of a new server; the gateway assigns whatever is missing."""

    id: str | None = None
    created_at: Timestamp | None = None
    updated_at: Timestamp | None = None
    updated_by: str = ""


class ServerRecord(ServerFields):
    model_config = ConfigDict(from_attributes=True)

    id: str
    created_at: Timestamp
    updated_at: Timestamp
    updated_by: str = ""

    @model_validator(mode="after")
    def _check_timestamps(self) -> ServerRecord:
        if self.updated_at < self.created_at:
            raise ValueError("updated_at must not precede created_at")
        return self


class ServerUpdate(BaseModel):
    """Partial update. Only fields explicitly set are applied."""

    model_config = ConfigDict(extra="forbid")

    server_name: str | None = Field(default=None, min_length=1)
    operating_system: str | None = None
    hardware_type: HardwareTypeField | None = None
    company: str | None = None
    server_type: ServerTypeField | None = None
    location: str | None = None
    system_admin: str | None = None
    backup_admin: str | None = None
    hardware_admin: str | None = None
    description: str | None = None
    domain: str | None = None
    maintenance_window: str | None = None
    ip_address: IPv4Field | None = None
    application_zone: str | None = None
    operational_zone: str | None = None
    backup: BackupField | None = None
    tags: TagList | None = None
    cores: Count | None = None
    ram_gb: Count | None = None
    storage_gb: Count | None = None
    vsphere_cluster: str | None = None
    application: str | None = None
    patch_status: PatchStatusField | None = None
    last_patch_date: Timestamp | None = None
    cpu_load_trend: CpuTrend | None = None
    alarm_count: Count | None = None
    updated_at: Timestamp | None = None
    updated_by: str | None = None

    def changes(self) -> dict[str, Any]:
        data = self.model_dump(exclude_unset=True)
        return {k: v for k, v in data.items() if v is not None or k in _NULLABLE_FIELDS}


class ServerImport(BaseModel):
    servers: list[ServerRecord]


class ServerListResponse(BaseModel):
    items: list[ServerRecord]
    total: int


SERVER_FIELDS: tuple[str, ...] = tuple(ServerRecord.model_fields)
