"""
Dashboard analytics.

Aggregations over a list of server records: distributions, growth over
time, resource usage and admin load. Everything here is a pure function of
its inputs; callers pass ``now`` when they need reproducible time windows.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timezone
from typing import Iterable, Sequence

from serverdeck.core.gateway import utcnow
from serverdeck.schemas.analytics import (
    AdminLoad,
    GrowthPoint,
    HardwarePoint,
    InventorySummary,
    NamedCount,
    PatchShare,
    ResourcePoint,
)
from serverdeck.schemas.server import BackupStatus, HardwareType, PatchStatus, ServerRecord, ServerType

ANY = "all"
ADMIN_WARNING_THRESHOLD = 8
ADMIN_CRITICAL_THRESHOLD = 12
_UNKNOWN_WINDOWS = frozenset({"unknown", "unbekannt"})


def os_family(operating_system: str) -> str:
    if "Windows" in operating_system:
        return "Windows"
    if "Ubuntu" in operating_system or "Debian" in operating_system:
        return "Debian-based"
    if "Red Hat" in operating_system or "CentOS" in operating_system:
        return "RHEL-based"
    return operating_system


def dashboard_filter(
    records: Iterable[ServerRecord],
    location: str = ANY,
    company: str = ANY,
    server_type: str = ANY,
) -> list[ServerRecord]:
    """Exact-match dashboard filters; ``all`` disables a criterion."""
    return [
        r for r in records
        if (location == ANY or r.location == location)
        and (company == ANY or r.company == company)
        and (server_type == ANY or r.server_type == server_type)
    ]


def distinct_values(records: Iterable[ServerRecord], field: str) -> list[str]:
    seen: dict[str, None] = {}
    for record in records:
        seen.setdefault(str(getattr(record, field)), None)
    return list(seen)


def _counts(names: Iterable[str]) -> list[NamedCount]:
    return [NamedCount(name=name, count=count) for name, count in Counter(names).items()]


def os_distribution(records: Iterable[ServerRecord]) -> list[NamedCount]:
    counts = _counts(os_family(r.operating_system) for r in records)
    return sorted(counts, key=lambda c: c.count, reverse=True)


def _enum_distribution(values: Iterable[str], members: Iterable[str]) -> list[NamedCount]:
    counter = Counter(values)
    return [NamedCount(name=str(m), count=counter[m]) for m in members if counter[m] > 0]


def environment_distribution(records: Iterable[ServerRecord]) -> list[NamedCount]:
    return _enum_distribution((r.server_type for r in records), ServerType)


def hardware_distribution(records: Iterable[ServerRecord]) -> list[NamedCount]:
    return _enum_distribution((r.hardware_type for r in records), HardwareType)


def backup_distribution(records: Iterable[ServerRecord]) -> list[NamedCount]:
    return _enum_distribution((r.backup for r in records), BackupStatus)


def patch_distribution(records: Sequence[ServerRecord]) -> list[PatchShare]:
    counter = Counter(r.patch_status for r in records)
    total = len(records)
    return [
        PatchShare(
            status=str(status),
            count=counter[status],
            percentage=(counter[status] / total * 100) if total else 0.0,
        )
        for status in PatchStatus
    ]


def _shift_month(year: int, month: int, delta: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) + delta
    return index // 12, index % 12 + 1


def growth_by_month(records: Iterable[ServerRecord], now: datetime | None = None) -> list[GrowthPoint]:
    """Cumulative count of servers created in each of the last 12 months."""
    now = now or utcnow()
    months = [_shift_month(now.year, now.month, -i) for i in range(11, -1, -1)]
    window_start = datetime(months[0][0], months[0][1], 1, tzinfo=timezone.utc)

    created = Counter(
        (r.created_at.year, r.created_at.month)
        for r in records
        if window_start <= r.created_at <= now
    )
    points = []
    running = 0
    for year, month in months:
        running += created[(year, month)]
        points.append(GrowthPoint(label=f"{month}/{year % 100:02d}", count=running))
    return points


def hardware_by_quarter(
    records: Sequence[ServerRecord], now: datetime | None = None, quarters: int = 8
) -> list[HardwarePoint]:
    """Virtual vs physical servers existing at the start of each quarter, from one year back."""
    now = now or utcnow()
    start_year, start_month = _shift_month(now.year, now.month, -12)

    points = []
    for i in range(quarters):
        year, month = _shift_month(start_year, start_month, 3 * i)
        quarter = (month - 1) // 3 + 1
        quarter_start = datetime(year, 3 * (quarter - 1) + 1, 1, tzinfo=timezone.utc)
        existing = [r for r in records if r.created_at <= quarter_start]
        virtual = sum(1 for r in existing if r.hardware_type == HardwareType.VIRTUALIZED)
        points.append(
            HardwarePoint(
                label=f"Q{quarter}/{year % 100:02d}",
                virtual=virtual,
                physical=len(existing) - virtual,
            )
        )
    return points


def resource_points(records: Iterable[ServerRecord]) -> list[ResourcePoint]:
    return [
        ResourcePoint(
            name=r.server_name,
            cores=r.cores,
            ram_gb=r.ram_gb,
            storage_gb=r.storage_gb,
            location=r.location,
        )
        for r in records
    ]


def admin_threshold(count: int) -> str:
    if count > ADMIN_CRITICAL_THRESHOLD:
        return "critical"
    if count > ADMIN_WARNING_THRESHOLD:
        return "warning"
    return "ok"


def servers_per_admin(records: Iterable[ServerRecord]) -> list[AdminLoad]:
    counter = Counter(r.system_admin for r in records)
    loads = [
        AdminLoad(name=name, count=count, threshold=admin_threshold(count))
        for name, count in counter.items()
    ]
    return sorted(loads, key=lambda a: a.count, reverse=True)


def servers_by_location(records: Iterable[ServerRecord]) -> list[NamedCount]:
    return _counts(r.location for r in records)


def missing_maintenance_by_os(records: Iterable[ServerRecord]) -> list[NamedCount]:
    return _counts(
        os_family(r.operating_system)
        for r in records
        if not r.maintenance_window.strip() or r.maintenance_window.strip().lower() in _UNKNOWN_WINDOWS
    )


def application_groups(records: Iterable[ServerRecord]) -> dict[str, list[ServerRecord]]:
    """Servers grouped by application name, applications in alphabetical order."""
    groups: dict[str, list[ServerRecord]] = {}
    for record in records:
        if record.application:
            groups.setdefault(record.application, []).append(record)
    return {name: groups[name] for name in sorted(groups, key=str.casefold)}


def alarmed_servers(records: Iterable[ServerRecord]) -> list[ServerRecord]:
    return sorted((r for r in records if r.alarm_count > 0), key=lambda r: r.alarm_count, reverse=True)


def summary(records: Sequence[ServerRecord]) -> InventorySummary:
    total_cores = sum(r.cores for r in records)
    used_cores = sum(r.cpu_load_trend[-1] / 100 * r.cores for r in records if r.cpu_load_trend)
    return InventorySummary(
        total=len(records),
        cpu_usage_percent=(used_cores / total_cores * 100) if total_cores else 0.0,
        backup_enabled=sum(1 for r in records if r.backup == BackupStatus.YES),
        backup_disabled=sum(1 for r in records if r.backup == BackupStatus.NO),
        alarm_total=sum(r.alarm_count for r in records),
    )
