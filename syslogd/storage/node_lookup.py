"""Node lookup by (location, ip). Tolerant of duplicates: returns the lowest node id."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..config import DEFAULT_LOCATION
from .models import IpInterface

logger = logging.getLogger("syslogd.storage.node_lookup")


class NodeLocationIndex(Protocol):
    def first_node_id(self, location: Optional[str], address: str) -> Optional[int]:
        ...


class SqlNodeLocationIndex:
    def __init__(self, session_factory: sessionmaker) -> None:
        self.session_factory = session_factory

    def first_node_id(self, location: Optional[str], address: str) -> Optional[int]:
        """Return one node id for (location, ip), or None. Database errors are logged, never raised."""
        if not address:
            return None
        stmt = (
            select(IpInterface.node_id)
            .where(
                IpInterface.location == (location or DEFAULT_LOCATION),
                IpInterface.ip_addr == address,
            )
            .order_by(IpInterface.node_id.asc())
            .limit(1)
        )
        db = self.session_factory()
        try:
            return db.execute(stmt).scalars().first()
        except SQLAlchemyError as exc:
            logger.warning("Node lookup failed for %s at location %s: %s", address, location, exc)
            return None
        finally:
            db.close()
