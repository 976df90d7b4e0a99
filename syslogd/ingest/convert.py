"""One datagram in, at most one event out."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from ..config import DEFAULT_LOCATION, SyslogdConfig
from ..enrichment.classification import Discarded, apply_classification, classify
from ..enrichment.event_builder import build_event_draft
from ..enrichment.patterns import PatternCache
from ..enrichment.redaction import apply_hide_rules
from ..enrichment.resolution import ResolutionCache
from ..model import Event
from ..storage.node_lookup import NodeLocationIndex
from .parser import ParseError, RegexSyslogParser, SyslogNoMatch, SyslogParser, host_address_of

logger = logging.getLogger("syslogd.convert")

RAW_MESSAGE_PARM = "rawSyslogmessage"


def trim_trailing_nulls(data: bytes) -> bytes:
    return data.rstrip(b"\x00")


@dataclass(frozen=True)
class ConversionResult:
    event: Optional[Event] = None
    discard_reason: Optional[str] = None

    @property
    def discarded(self) -> bool:
        return self.event is None

    @classmethod
    def discard(cls, reason: str) -> "ConversionResult":
        return cls(discard_reason=reason)


@dataclass
class SyslogConverter:
    """Parse, enrich, classify and redact one message. Safe to share between worker threads."""

    config: SyslogdConfig
    system_id: str
    location: str = DEFAULT_LOCATION
    parser: SyslogParser = field(default_factory=RegexSyslogParser)
    pattern_cache: PatternCache = field(default_factory=PatternCache)
    resolution_cache: Optional[ResolutionCache] = None
    node_index: Optional[NodeLocationIndex] = None

    def convert(
        self,
        data: bytes,
        source_address: str,
        received_timestamp: Optional[datetime] = None,
    ) -> ConversionResult:
        text = trim_trailing_nulls(data).decode("utf-8", errors="replace")
        logger.debug("Converting to event: %s", text)

        try:
            message = self.parser.parse(text)
        except SyslogNoMatch as exc:
            return ConversionResult.discard(str(exc))
        except ParseError as exc:
            logger.debug("Unable to parse '%s': %s", text, exc)
            return ConversionResult.discard(f"Unable to parse message: '{text}': {exc}")
        if message is None:
            return ConversionResult.discard(f"Unable to parse message: '{text}'")

        if not message.hostname:
            message.hostname = source_address
            message.host_address = host_address_of(source_address)

        extra = {RAW_MESSAGE_PARM: text} if self.config.include_raw_message else None
        draft = build_event_draft(
            message,
            system_id=self.system_id,
            location=self.location,
            received_timestamp=received_timestamp,
            resolution_cache=self.resolution_cache,
            node_index=self.node_index,
            extra_parameters=extra,
        )

        result = classify(message, self.config.uei_matches, self.config.discard_uei, self.pattern_cache)
        if isinstance(result, Discarded):
            return ConversionResult.discard(result.reason)
        apply_classification(draft, result)

        apply_hide_rules(draft, message, self.config.hide_matches, self.pattern_cache)

        return ConversionResult(event=draft.finalize())
