"""Ingest pipeline statistics for troubleshooting (datagrams, conversions, discards)."""

from __future__ import annotations

import logging
import time
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

logger = logging.getLogger("syslogd.ingest.stats")

# Max length of sample datagram / discard reason included in stats
SAMPLE_MAX = 600


def _truncate(text: str) -> str:
    return text[:SAMPLE_MAX] + ("..." if len(text) > SAMPLE_MAX else "")


@dataclass
class IngestStats:
    """Counters updated by the UDP receiver and SyslogIngestor. No locking (updated from the asyncio thread only)."""

    udp_packets: int = 0
    udp_bytes: int = 0

    events_converted: int = 0
    messages_discarded: int = 0
    conversion_errors: int = 0
    events_by_uei: Counter = field(default_factory=Counter)

    sample_datagram: Optional[str] = None
    last_discard_reason: Optional[str] = None

    started_at: float = field(default_factory=time.monotonic)
    last_updated: Optional[datetime] = None

    def touch(self) -> None:
        """Update last_updated (call whenever counters change)."""
        self.last_updated = datetime.now(timezone.utc)

    def record_datagram(self, data: bytes) -> None:
        self.udp_packets += 1
        self.udp_bytes += len(data)
        self.sample_datagram = _truncate(data.decode(errors="replace"))
        self.touch()

    def record_event(self, uei: str) -> None:
        self.events_converted += 1
        self.events_by_uei[uei] += 1
        self.touch()

    def record_discard(self, reason: Optional[str]) -> None:
        self.messages_discarded += 1
        self.last_discard_reason = _truncate(reason or "")
        self.touch()

    def record_error(self) -> None:
        self.conversion_errors += 1
        self.touch()

    def snapshot(self) -> dict:
        """Lightweight snapshot for GET /api/stats."""
        return {
            "udp_packets": self.udp_packets,
            "udp_bytes": self.udp_bytes,
            "events": self.events_converted,
            "discarded": self.messages_discarded,
            "errors": self.conversion_errors,
            "top_ueis": dict(self.events_by_uei.most_common(10)),
            "sample_datagram": self.sample_datagram,
            "last_discard_reason": self.last_discard_reason,
            "uptime_seconds": round(time.monotonic() - self.started_at, 1),
            "last_updated": self.last_updated.isoformat() if self.last_updated else None,
        }

    def log_summary(self) -> None:
        logger.info(
            "Ingest stats | UDP: %d packets, %d bytes | events: %d | discarded: %d | errors: %d",
            self.udp_packets,
            self.udp_bytes,
            self.events_converted,
            self.messages_discarded,
            self.conversion_errors,
        )
        if self.udp_packets > 0 and self.events_converted == 0 and self.sample_datagram:
            logger.warning(
                "No events produced. Sample datagram (first %d chars): %s",
                SAMPLE_MAX,
                self.sample_datagram,
            )
