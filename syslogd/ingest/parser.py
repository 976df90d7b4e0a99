"""Default syslog header parser producing ParsedMessage records.

RFC 5424 lines carry a full timestamp; BSD (RFC 3164) lines have no year, so
their month/day/time are handed on as discrete date fields.
"""

from __future__ import annotations

import ipaddress
import re
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional, Protocol

from ..model import ParsedMessage, SyslogFacility, SyslogSeverity

NIL = "-"

# "<PRI>1 ISO-TIMESTAMP HOSTNAME APP-NAME PROCID MSGID STRUCTURED-DATA MSG"
RFC5424_RE = re.compile(
    r'^<(?P<pri>\d{1,3})>1\s+'
    r'(?P<timestamp>\S+)\s+'
    r'(?P<host>\S+)\s+'
    r'(?P<app>\S+)\s+'
    r'(?P<procid>\S+)\s+'
    r'(?P<msgid>\S+)\s+'
    r'(?P<sd>-|(?:\[(?:[^\]"]|"(?:[^"\\]|\\.)*")*\])+)'
    r'(?:\s(?P<msg>.*))?$',
    re.DOTALL,
)

# "<PRI>Mmm dd hh:mm:ss HOSTNAME TAG[PID]: MSG"
BSD_RE = re.compile(
    r'^<(?P<pri>\d{1,3})>\s*'
    r'(?P<month>[A-Z][a-z]{2})\s+'
    r'(?P<day>\d{1,2})\s+'
    r'(?P<hour>\d{2}):(?P<minute>\d{2}):(?P<second>\d{2})\s+'
    r'(?P<host>\S+)\s+'
    r'(?:(?P<tag>[^\s\[:]+)(?:\[(?P<pid>\d+)\])?:\s*)?'
    r'(?P<msg>.*)$',
    re.DOTALL,
)

SD_ELEMENT_RE = re.compile(r'\[(?P<id>[^\s\]]+)(?P<params>(?:\s+[^\s=\]]+="(?:[^"\\]|\\.)*")*)\s*\]')
SD_PARAM_RE = re.compile(r'(?P<key>[^\s=\]]+)="(?P<val>(?:[^"\\]|\\.)*)"')

MONTHS = {
    "Jan": 1,
    "Feb": 2,
    "Mar": 3,
    "Apr": 4,
    "May": 5,
    "Jun": 6,
    "Jul": 7,
    "Aug": 8,
    "Sep": 9,
    "Oct": 10,
    "Nov": 11,
    "Dec": 12,
}

MAX_PRIORITY = 191


class SyslogNoMatch(Exception):
    """The text does not look like any supported syslog format."""


class ParseError(Exception):
    """The header matched but a field could not be decoded."""


class SyslogParser(Protocol):
    def parse(self, text: str) -> Optional[ParsedMessage]:
        ...


def _split_priority(pri_text: str) -> tuple[SyslogFacility, SyslogSeverity]:
    pri = int(pri_text)
    if pri > MAX_PRIORITY:
        raise ParseError(f"priority {pri} out of range")
    return SyslogFacility.from_code(pri >> 3), SyslogSeverity.from_code(pri & 0x07)


def _nil(value: Optional[str]) -> Optional[str]:
    if value is None or value == NIL:
        return None
    return value


def host_address_of(host: Optional[str]) -> Optional[str]:
    if not host:
        return None
    try:
        return str(ipaddress.ip_address(host))
    except ValueError:
        return None


def parse_iso_timestamp(ts_str: str) -> datetime:
    """Parse an RFC 3339 timestamp and normalise it to UTC."""
    try:
        dt = datetime.fromisoformat(ts_str)
    except ValueError:
        tz_match = re.search(r'([+-])(\d{2}):(\d{2})$', ts_str)
        try:
            if tz_match:
                base = ts_str[: tz_match.start()]
                sign = 1 if tz_match.group(1) == '+' else -1
                offset = timedelta(hours=int(tz_match.group(2)), minutes=int(tz_match.group(3)))
                dt = datetime.fromisoformat(base).replace(tzinfo=timezone(sign * offset))
            elif ts_str.endswith('Z'):
                dt = datetime.fromisoformat(ts_str[:-1]).replace(tzinfo=timezone.utc)
            else:
                raise
        except ValueError as exc:
            raise ParseError(f"invalid timestamp '{ts_str}'") from exc
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_structured_data(sd: Optional[str]) -> Dict[str, str]:
    """Flatten SD elements into parameters. Keys are ``param`` and ``sdid.param``; last write wins."""
    params: Dict[str, str] = {}
    if not sd or sd == NIL:
        return params
    for element in SD_ELEMENT_RE.finditer(sd):
        sd_id = element.group("id")
        for m in SD_PARAM_RE.finditer(element.group("params")):
            value = re.sub(r'\\(["\\\]])', r'\1', m.group("val"))
            params[m.group("key")] = value
            params[f"{sd_id}.{m.group('key')}"] = value
    return params


class RegexSyslogParser:
    """RFC 5424 first, then BSD."""

    def parse(self, text: str) -> Optional[ParsedMessage]:
        text = text.rstrip("\r\n")
        m = RFC5424_RE.match(text)
        if m:
            return self._parse_rfc5424(m)
        m = BSD_RE.match(text)
        if m:
            return self._parse_bsd(m)
        raise SyslogNoMatch(f"Message does not match regex: '{text}'")

    def _parse_rfc5424(self, m: re.Match[str]) -> ParsedMessage:
        facility, severity = _split_priority(m.group("pri"))
        ts = _nil(m.group("timestamp"))
        host = _nil(m.group("host"))
        procid = _nil(m.group("procid"))
        process_id: Optional[int] = None
        if procid is not None and procid.isdigit():
            process_id = int(procid)
        msg = m.group("msg") or ""
        if msg.startswith("\ufeff"):
            msg = msg[1:]
        return ParsedMessage(
            facility=facility,
            severity=severity,
            message=msg,
            date=parse_iso_timestamp(ts) if ts else None,
            hostname=host,
            host_address=host_address_of(host),
            process_name=_nil(m.group("app")),
            process_id=process_id,
            message_id=_nil(m.group("msgid")),
            parameters=parse_structured_data(m.group("sd")),
        )

    def _parse_bsd(self, m: re.Match[str]) -> ParsedMessage:
        facility, severity = _split_priority(m.group("pri"))
        month = MONTHS.get(m.group("month"))
        if month is None:
            raise ParseError(f"invalid month '{m.group('month')}'")
        host = m.group("host")
        pid = m.group("pid")
        return ParsedMessage(
            facility=facility,
            severity=severity,
            message=m.group("msg") or "",
            month=month,
            day_of_month=int(m.group("day")),
            hour_of_day=int(m.group("hour")),
            minute=int(m.group("minute")),
            second=int(m.group("second")),
            hostname=host,
            host_address=host_address_of(host),
            process_name=m.group("tag"),
            process_id=int(pid) if pid else None,
        )
