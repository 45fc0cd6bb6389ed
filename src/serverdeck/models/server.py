"""Server model."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import JSON, DateTime, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column

from serverdeck.db.session import Base


class Server(Base):
    __tablename__ = "servers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    server_name: Mapped[str] = mapped_column(String(255), nullable=False)
    operating_system: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    hardware_type: Mapped[str] = mapped_column(String(20), nullable=False)
    company: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    server_type: Mapped[str] = mapped_column(String(20), nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    system_admin: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    backup_admin: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    hardware_admin: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    domain: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    maintenance_window: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    ip_address: Mapped[str] = mapped_column(String(45), nullable=False)
    application_zone: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    operational_zone: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    backup: Mapped[str] = mapped_column(String(5), nullable=False, default="No")
    tags: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    cores: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    ram_gb: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    storage_gb: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    vsphere_cluster: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    application: Mapped[str] = mapped_column(String(255), nullable=False, default="")
    patch_status: Mapped[str] = mapped_column(String(20), nullable=False, default="current")
    last_patch_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    cpu_load_trend: Mapped[list[float]] = mapped_column(JSON, nullable=False, default=list)
    alarm_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=func.now()
    )
    updated_by: Mapped[str] = mapped_column(String(100), nullable=False, default="")

    __table_args__ = (
        Index("idx_servers_name", "server_name"),
        Index("idx_servers_ip", "ip_address"),
    )
