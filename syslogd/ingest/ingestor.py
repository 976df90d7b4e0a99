from __future__ import annotations

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Optional

from ..model import Event
from .convert import ConversionResult, SyslogConverter
from .stats import IngestStats

logger = logging.getLogger("syslogd.ingest")

EventSink = Callable[[Event], Awaitable[None]]


async def log_event_sink(event: Event) -> None:
    """Default sink: log the event. Delivery to an event bus plugs in here."""
    logger.info(
        "Event uei=%s interface=%s nodeid=%s logmsg=%s",
        event.uei,
        event.interface,
        event.nodeid,
        event.logmsg,
    )


@dataclass
class SyslogIngestor:
    """Runs conversions on a bounded worker pool and forwards produced events to the sink."""

    converter: SyslogConverter
    sink: EventSink = log_event_sink
    stats: IngestStats = field(default_factory=IngestStats)
    workers: int = 4
    executor: Optional[ThreadPoolExecutor] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.executor is None:
            self.executor = ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="syslog-convert")

    async def handle_datagram(self, data: bytes, source_ip: str, received_at: datetime) -> None:
        self.stats.record_datagram(data)
        loop = asyncio.get_running_loop()
        try:
            result: ConversionResult = await loop.run_in_executor(
                self.executor, self.converter.convert, data, source_ip, received_at
            )
        except Exception as exc:  # noqa: BLE001
            self.stats.record_error()
            logger.exception("Conversion of datagram from %s failed: %s", source_ip, exc)
            return

        if result.discarded:
            self.stats.record_discard(result.discard_reason)
            logger.debug("Message from %s discarded: %s", source_ip, result.discard_reason)
            return

        self.stats.record_event(result.event.uei)
        try:
            await self.sink(result.event)
        except Exception as exc:  # noqa: BLE001
            self.stats.record_error()
            logger.exception("Event sink failed for uei=%s: %s", result.event.uei, exc)

    def close(self) -> None:
        if self.executor is not None:
            self.executor.shutdown(wait=True)
        if self.converter.resolution_cache is not None:
            self.converter.resolution_cache.close()
