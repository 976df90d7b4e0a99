from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, Integer, String, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


class IpInterface(Base):
    """Known (location, ip) -> node mapping used to attach a nodeid to syslog events."""

    __tablename__ = "ip_interfaces"
    __table_args__ = (
        UniqueConstraint("node_id", "location", "ip_addr", name="uq_ip_interface_node_location_ip"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    node_id: Mapped[int] = mapped_column(Integer, index=True)
    location: Mapped[str] = mapped_column(String(255), index=True, default="Default")
    ip_addr: Mapped[str] = mapped_column(String(64), index=True)
    node_label: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
    )
