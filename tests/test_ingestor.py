"""SyslogIngestor: worker-pool conversion, stats accounting, sink failures."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

import pytest

from syslogd.config import SyslogdConfig
from syslogd.enrichment.resolution import ResolutionCache, ThreadedDnsLookupClient
from syslogd.ingest.convert import SyslogConverter
from syslogd.ingest.ingestor import SyslogIngestor


def _ingestor(sink, **rules) -> SyslogIngestor:
    converter = SyslogConverter(config=SyslogdConfig.model_validate(rules), system_id="sys-1")
    return SyslogIngestor(converter=converter, sink=sink, workers=2)


def _feed(ingestor: SyslogIngestor, *datagrams: bytes) -> None:
    async def run() -> None:
        now = datetime.now(timezone.utc)
        await asyncio.gather(*(ingestor.handle_datagram(d, "192.0.2.1", now) for d in datagrams))

    try:
        asyncio.run(run())
    finally:
        ingestor.close()


def test_events_reach_sink_and_discards_are_counted():
    received = []

    async def sink(event):
        received.append(event)

    ingestor = _ingestor(
        sink,
        uei_matches=[{"uei": "DISCARD-MATCHING-MESSAGES", "match": {"type": "substr", "expression": "noisy"}}],
    )
    _feed(
        ingestor,
        b"<36>Jan 15 10:30:45 web01 sshd: login failed",
        b"<36>Jan 15 10:30:46 web01 sshd: noisy chatter",
        b"garbage",
    )

    assert [e.logmsg for e in received] == ["login failed"]
    snap = ingestor.stats.snapshot()
    assert snap["udp_packets"] == 3
    assert snap["events"] == 1
    assert snap["discarded"] == 2
    assert snap["errors"] == 0


def test_sink_failure_is_counted_as_error(caplog):
    async def sink(event):
        raise RuntimeError("bus down")

    ingestor = _ingestor(sink)
    _feed(ingestor, b"<36>Jan 15 10:30:45 web01 sshd: login failed")

    assert ingestor.stats.events_converted == 1
    assert ingestor.stats.conversion_errors == 1
    assert "Event sink failed" in caplog.text


def test_converter_exception_is_counted_as_error(caplog):
    class ExplodingParser:
        def parse(self, text):
            raise ValueError("boom")

    async def sink(event):
        raise AssertionError("no event expected")

    ingestor = _ingestor(sink)
    ingestor.converter.parser = ExplodingParser()
    _feed(ingestor, b"<36>Jan 15 10:30:45 web01 sshd: login failed")

    assert ingestor.stats.conversion_errors == 1
    assert ingestor.stats.events_converted == 0
    assert "Conversion of datagram from 192.0.2.1 failed" in caplog.text


def test_close_shuts_down_dns_lookup_pool():
    async def sink(event):
        pass

    client = ThreadedDnsLookupClient(max_workers=1)
    converter = SyslogConverter(
        config=SyslogdConfig(),
        system_id="sys-1",
        location="Branch",
        resolution_cache=ResolutionCache(client, timeout=1),
    )
    ingestor = SyslogIngestor(converter=converter, sink=sink, workers=1)
    ingestor.close()

    with pytest.raises(RuntimeError):
        client.lookup("localhost", "Branch", "sys-1")
