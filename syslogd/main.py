from __future__ import annotations

import asyncio
import logging
import signal
from typing import Optional

import uvicorn
from fastapi import FastAPI

from .api import routes_stats
from .config import AppConfig, load_syslogd_config, parse_args
from .enrichment.event_builder import is_default_location
from .enrichment.patterns import PatternCache
from .enrichment.resolution import ResolutionCache, ThreadedDnsLookupClient
from .ingest.convert import SyslogConverter
from .ingest.ingestor import SyslogIngestor
from .ingest.syslog_udp import run_syslog_udp_server
from .storage.db import init_engine_and_sessionmaker
from .storage.node_lookup import SqlNodeLocationIndex

logger = logging.getLogger("syslogd")

STATS_LOG_INTERVAL_SEC = 300


def create_app(config: AppConfig) -> FastAPI:
    app = FastAPI(title="Syslog Event Translator")
    app.include_router(routes_stats.router, prefix="/api")
    return app


def build_ingestor(config: AppConfig) -> SyslogIngestor:
    """Wire parser, caches, node index and worker pool from AppConfig and the rules file."""
    rules = load_syslogd_config(config.rules_file)
    logger.info(
        "Loaded %d uei-match and %d hide-match rule(s); discard uei=%s",
        len(rules.uei_matches),
        len(rules.hide_matches),
        rules.discard_uei,
    )

    _, session_factory = init_engine_and_sessionmaker(config.database_url)

    resolution_cache = None
    if not is_default_location(config.location):
        resolution_cache = ResolutionCache(ThreadedDnsLookupClient(), timeout=config.dns_lookup_timeout)

    converter = SyslogConverter(
        config=rules,
        system_id=config.system_id,
        location=config.location,
        pattern_cache=PatternCache(),
        resolution_cache=resolution_cache,
        node_index=SqlNodeLocationIndex(session_factory),
    )
    return SyslogIngestor(converter=converter, workers=config.workers)


async def _run_uvicorn(app: FastAPI, config: AppConfig, shutdown_event: asyncio.Event) -> None:
    """Run Uvicorn server until shutdown_event is set."""
    server = uvicorn.Server(
        uvicorn.Config(app, host=config.web_host, port=config.web_port, log_level=config.log_level, loop="asyncio")
    )

    async def serve() -> None:
        logger.info("Starting HTTP server on %s:%s", config.web_host, config.web_port)
        await server.serve()

    server_task = asyncio.create_task(serve(), name="uvicorn-server")

    await shutdown_event.wait()
    logger.info("Shutdown event received, stopping HTTP server...")
    server.should_exit = True
    await server_task


async def _run_syslog(config: AppConfig, shutdown_event: asyncio.Event, ingestor: SyslogIngestor) -> None:
    logger.info("Starting UDP syslog receiver on %s:%s", config.syslog_host, config.syslog_port)
    await run_syslog_udp_server(
        host=config.syslog_host,
        port=config.syslog_port,
        shutdown_event=shutdown_event,
        handler=ingestor.handle_datagram,
    )


async def _run_stats_logger(shutdown_event: asyncio.Event, ingestor: SyslogIngestor) -> None:
    while not shutdown_event.is_set():
        try:
            await asyncio.wait_for(shutdown_event.wait(), timeout=STATS_LOG_INTERVAL_SEC)
            return
        except asyncio.TimeoutError:
            ingestor.stats.log_summary()


async def main_async(config: AppConfig) -> None:
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    ingestor = build_ingestor(config)

    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, shutdown_event.set)

    tasks = [
        _run_syslog(config, shutdown_event, ingestor),
        _run_stats_logger(shutdown_event, ingestor),
    ]
    if config.serve_api:
        app = create_app(config)
        app.state.syslog_ingestor = ingestor
        app.state.app_config = config
        tasks.append(_run_uvicorn(app, config, shutdown_event))

    try:
        await asyncio.gather(*tasks)
    finally:
        ingestor.close()
        ingestor.stats.log_summary()


def cli(argv: Optional[list[str]] = None) -> None:
    """Console entrypoint defined in pyproject."""
    config = parse_args(argv)
    asyncio.run(main_async(config))


def main() -> None:
    """Entrypoint for `python -m syslogd.main`."""
    cli()


if __name__ == "__main__":
    main()
