from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Awaitable, Callable

logger = logging.getLogger("syslogd.syslog")


DatagramHandler = Callable[[bytes, str, datetime], Awaitable[None]]


async def default_datagram_handler(data: bytes, source_ip: str, received_at: datetime) -> None:
    """Placeholder handler; main wires in SyslogIngestor.handle_datagram."""
    logger.debug("Received %d bytes from %s", len(data), source_ip)


async def run_syslog_udp_server(
    host: str,
    port: int,
    shutdown_event: asyncio.Event,
    handler: DatagramHandler = default_datagram_handler,
) -> None:
    """Run a UDP server that hands every datagram, unsplit, to handler."""

    loop = asyncio.get_running_loop()
    tasks: set[asyncio.Task] = set()

    class SyslogProtocol(asyncio.DatagramProtocol):
        def datagram_received(self, data: bytes, addr) -> None:  # type: ignore[override]
            if not data.strip(b"\x00 \r\n\t"):
                return
            task = asyncio.create_task(handler(data, addr[0], datetime.now(timezone.utc)))
            tasks.add(task)
            task.add_done_callback(tasks.discard)

        def error_received(self, exc: Exception) -> None:  # type: ignore[override]
            logger.error("Syslog UDP error: %s", exc)

    transport, protocol = await loop.create_datagram_endpoint(
        lambda: SyslogProtocol(),
        local_addr=(host, port),
    )

    try:
        await shutdown_event.wait()
    finally:
        transport.close()
