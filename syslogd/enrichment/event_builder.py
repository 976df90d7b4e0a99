from __future__ import annotations

import logging
import socket
from datetime import datetime
from typing import Dict, Optional

from ..config import DEFAULT_LOCATION
from ..model import (
    DEFAULT_LOG_DEST,
    EVENT_SOURCE,
    UEI_PREFIX,
    EventDraft,
    ParsedMessage,
    format_rfc3164_date,
)
from ..storage.node_lookup import NodeLocationIndex
from .resolution import ResolutionCache

logger = logging.getLogger("syslogd.event_builder")

_PARTIAL_DATE_FIELDS = (
    "year",
    "month",
    "day_of_month",
    "hour_of_day",
    "minute",
    "second",
    "millisecond",
    "zone_id",
)


def default_uei(message: ParsedMessage) -> str:
    return f"{UEI_PREFIX}/{message.facility}/{message.severity}"


def is_default_location(location: Optional[str]) -> bool:
    return not location or location == DEFAULT_LOCATION


def local_host_name() -> str:
    try:
        return socket.gethostname()
    except OSError:
        return "localhost"


def resolve_host_address(
    message: ParsedMessage,
    location: Optional[str],
    system_id: str,
    resolution_cache: Optional[ResolutionCache],
) -> Optional[str]:
    """Default location trusts the address embedded in the message; other locations go through DNS."""
    if is_default_location(location):
        return message.host_address
    if not message.hostname or resolution_cache is None:
        return None
    return resolution_cache.resolve(message.hostname, location, system_id)


def _apply_time(draft: EventDraft, message: ParsedMessage, received_timestamp: Optional[datetime]) -> None:
    if message.date is not None:
        draft.time = message.date
        return

    did_set_partial_date = False
    for name in _PARTIAL_DATE_FIELDS:
        value = getattr(message, name)
        if value is not None:
            setattr(draft, name, value)
            did_set_partial_date = True

    if not did_set_partial_date and received_timestamp is not None:
        draft.time = received_timestamp


def build_event_draft(
    message: ParsedMessage,
    system_id: str,
    location: Optional[str],
    received_timestamp: Optional[datetime] = None,
    resolution_cache: Optional[ResolutionCache] = None,
    node_index: Optional[NodeLocationIndex] = None,
    extra_parameters: Optional[Dict[str, str]] = None,
) -> EventDraft:
    """Build the baseline event for ``message`` before any uei/hide rule is applied."""
    severity_txt = str(message.severity)
    facility_txt = str(message.facility)

    draft = EventDraft(
        uei=default_uei(message),
        source=EVENT_SOURCE,
        distpoller=system_id,
        host=local_host_name(),
        log_dest=DEFAULT_LOG_DEST,
    )

    draft.add_parm("hostname", message.hostname)
    for key, value in message.parameters.items():
        draft.add_parm(str(key), value)
    for key, value in (extra_parameters or {}).items():
        draft.add_parm(key, value)

    address = resolve_host_address(message, location, system_id, resolution_cache)
    if address is not None:
        if node_index is not None:
            nodeid = node_index.first_node_id(location, address)
            if nodeid is not None:
                draft.nodeid = nodeid
        draft.interface = address

    _apply_time(draft, message, received_timestamp)

    draft.logmsg = message.message
    draft.add_parm("syslogmessage", message.message)
    draft.add_parm("severity", severity_txt)
    draft.add_parm("timestamp", format_rfc3164_date(draft.current_event_time()))
    if message.message_id is not None:
        draft.add_parm("messageid", message.message_id)
    if message.process_name is not None:
        draft.add_parm("process", message.process_name)
    draft.add_parm("service", facility_txt)
    if message.process_id is not None:
        draft.add_parm("processid", str(message.process_id))

    logger.debug("Built event draft uei=%s interface=%s nodeid=%s", draft.uei, draft.interface, draft.nodeid)
    return draft
