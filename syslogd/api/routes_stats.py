"""Read-only monitoring endpoints for the syslog translator."""

from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, HTTPException, Request

router = APIRouter(tags=["stats"])


def _ingestor(request: Request):
    ingestor = getattr(request.app.state, "syslog_ingestor", None)
    if ingestor is None:
        raise HTTPException(status_code=503, detail="Syslog ingestor not running")
    return ingestor


@router.get("/health")
def get_health() -> Dict[str, str]:
    return {"status": "ok"}


@router.get("/stats")
def get_stats_snapshot(request: Request) -> Dict[str, Any]:
    """Counters from the UDP receiver and converter, plus cache sizes."""
    ingestor = _ingestor(request)
    converter = ingestor.converter
    snapshot = ingestor.stats.snapshot()
    snapshot["pattern_cache_size"] = len(converter.pattern_cache)
    snapshot["dns_cache_size"] = len(converter.resolution_cache) if converter.resolution_cache is not None else 0
    snapshot["uei_matches"] = len(converter.config.uei_matches)
    snapshot["hide_matches"] = len(converter.config.hide_matches)
    return snapshot
