"""Syslog message and event records shared by the parser, the enrichment steps and the converter."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Tuple

UEI_PREFIX = "uei.opennms.org/syslogd"
EVENT_SOURCE = "syslogd"
DEFAULT_LOG_DEST = "logndisplay"

RFC3164_DATE_FORMAT = "%b %d %H:%M:%S"


class SyslogFacility(Enum):
    KERNEL = (0, "kernel")
    USER = (1, "user")
    MAIL = (2, "mail")
    SYSTEM = (3, "system")
    AUTH = (4, "auth")
    SYSLOG = (5, "syslog")
    LPD = (6, "lpd")
    NEWS = (7, "news")
    UUCP = (8, "uucp")
    CLOCK = (9, "clock")
    AUTHPRIV = (10, "authpriv")
    FTP = (11, "ftp")
    NTP = (12, "ntp")
    AUDIT = (13, "audit")
    ALERT = (14, "alert")
    CRON2 = (15, "cron2")
    LOCAL0 = (16, "local0")
    LOCAL1 = (17, "local1")
    LOCAL2 = (18, "local2")
    LOCAL3 = (19, "local3")
    LOCAL4 = (20, "local4")
    LOCAL5 = (21, "local5")
    LOCAL6 = (22, "local6")
    LOCAL7 = (23, "local7")

    def __init__(self, code: int, text: str) -> None:
        self.code = code
        self.text = text

    def __str__(self) -> str:
        return self.text

    @classmethod
    def from_code(cls, code: int) -> "SyslogFacility":
        for member in cls:
            if member.code == code:
                return member
        raise ValueError(f"invalid syslog facility code: {code}")


class SyslogSeverity(Enum):
    EMERGENCY = (0, "Emergency")
    ALERT = (1, "Alert")
    CRITICAL = (2, "Critical")
    ERROR = (3, "Error")
    WARNING = (4, "Warning")
    NOTICE = (5, "Notice")
    INFO = (6, "Info")
    DEBUG = (7, "Debug")

    def __init__(self, code: int, text: str) -> None:
        self.code = code
        self.text = text

    def __str__(self) -> str:
        return self.text

    @classmethod
    def from_code(cls, code: int) -> "SyslogSeverity":
        for member in cls:
            if member.code == code:
                return member
        raise ValueError(f"invalid syslog severity code: {code}")


def format_rfc3164_date(dt: datetime) -> str:
    return dt.strftime(RFC3164_DATE_FORMAT)


def overlay_date_fields(
    base: datetime,
    year: Optional[int] = None,
    month: Optional[int] = None,
    day: Optional[int] = None,
    hour: Optional[int] = None,
    minute: Optional[int] = None,
    second: Optional[int] = None,
    millisecond: Optional[int] = None,
) -> datetime:
    """Replace the given fields on ``base``; an impossible combination leaves ``base`` unchanged."""
    changes = {
        "year": year,
        "month": month,
        "day": day,
        "hour": hour,
        "minute": minute,
        "second": second,
        "microsecond": millisecond * 1000 if millisecond is not None else None,
    }
    try:
        return base.replace(**{k: v for k, v in changes.items() if v is not None})
    except ValueError:
        return base


@dataclass
class ParsedMessage:
    """One syslog message as produced by a parser.

    Either ``date`` is set, or any subset of the discrete date fields is.
    ``hostname`` is the only field the converter writes to (source address fallback).
    """

    facility: SyslogFacility
    severity: SyslogSeverity
    message: str = ""
    date: Optional[datetime] = None
    year: Optional[int] = None
    month: Optional[int] = None
    day_of_month: Optional[int] = None
    hour_of_day: Optional[int] = None
    minute: Optional[int] = None
    second: Optional[int] = None
    millisecond: Optional[int] = None
    zone_id: Optional[str] = None
    hostname: Optional[str] = None
    host_address: Optional[str] = None
    process_name: Optional[str] = None
    process_id: Optional[int] = None
    message_id: Optional[str] = None
    parameters: Dict[str, str] = field(default_factory=dict)

    @property
    def priority(self) -> int:
        return (self.facility.code << 3) | self.severity.code

    def syslog_formatted_date(self) -> str:
        if self.date is not None:
            return format_rfc3164_date(self.date)
        dt = overlay_date_fields(
            datetime.now(timezone.utc),
            month=self.month,
            day=self.day_of_month,
            hour=self.hour_of_day,
            minute=self.minute,
            second=self.second,
        )
        return format_rfc3164_date(dt)

    def as_rfc3164_message(self) -> str:
        """Render the message back into BSD syslog form (used for hide-match evaluation)."""
        host = f"{self.hostname} " if self.hostname else ""
        tag = self.process_name or ""
        if self.process_id is not None:
            tag += f"[{self.process_id}]"
        header = f"<{self.priority}>{self.syslog_formatted_date()} {host}"
        if tag:
            return f"{header}{tag}: {self.message}"
        return f"{header}{self.message}"


@dataclass(frozen=True)
class Event:
    """Finalized event handed to the sink. Immutable."""

    uei: str
    source: str
    distpoller: Optional[str]
    host: Optional[str]
    interface: Optional[str]
    nodeid: Optional[int]
    time: Optional[datetime]
    year: Optional[int]
    month: Optional[int]
    day_of_month: Optional[int]
    hour_of_day: Optional[int]
    minute: Optional[int]
    second: Optional[int]
    millisecond: Optional[int]
    zone_id: Optional[str]
    logmsg: Optional[str]
    log_dest: str
    parms: Tuple[Tuple[str, str], ...]

    def get_parm(self, name: str) -> Optional[str]:
        for key, value in self.parms:
            if key == name:
                return value
        return None

    def parm_names(self) -> List[str]:
        return [key for key, _ in self.parms]

    def has_partial_time(self) -> bool:
        return any(
            v is not None
            for v in (
                self.year,
                self.month,
                self.day_of_month,
                self.hour_of_day,
                self.minute,
                self.second,
                self.millisecond,
                self.zone_id,
            )
        )


@dataclass
class EventDraft:
    """Mutable accumulator filled by the enrichment steps, frozen by ``finalize``."""

    uei: str
    source: str = EVENT_SOURCE
    distpoller: Optional[str] = None
    host: Optional[str] = None
    interface: Optional[str] = None
    nodeid: Optional[int] = None
    time: Optional[datetime] = None
    year: Optional[int] = None
    month: Optional[int] = None
    day_of_month: Optional[int] = None
    hour_of_day: Optional[int] = None
    minute: Optional[int] = None
    second: Optional[int] = None
    millisecond: Optional[int] = None
    zone_id: Optional[str] = None
    logmsg: Optional[str] = None
    log_dest: str = DEFAULT_LOG_DEST
    parms: List[Tuple[str, str]] = field(default_factory=list)

    def add_parm(self, name: str, value: Optional[str]) -> None:
        self.parms.append((name, "" if value is None else str(value)))

    def set_parm(self, name: str, value: str) -> None:
        """Replace every value of ``name``; append it if it is not present yet."""
        replaced = False
        for i, (key, _) in enumerate(self.parms):
            if key == name:
                self.parms[i] = (key, value)
                replaced = True
        if not replaced:
            self.parms.append((name, value))

    def get_parm(self, name: str) -> Optional[str]:
        for key, value in self.parms:
            if key == name:
                return value
        return None

    def current_event_time(self) -> datetime:
        """Effective event time: explicit time, else now overlaid with any discrete fields."""
        if self.time is not None:
            return self.time
        return overlay_date_fields(
            datetime.now(timezone.utc),
            year=self.year,
            month=self.month,
            day=self.day_of_month,
            hour=self.hour_of_day,
            minute=self.minute,
            second=self.second,
            millisecond=self.millisecond,
        )

    def finalize(self) -> Event:
        return Event(
            uei=self.uei,
            source=self.source,
            distpoller=self.distpoller,
            host=self.host,
            interface=self.interface,
            nodeid=self.nodeid,
            time=self.time,
            year=self.year,
            month=self.month,
            day_of_month=self.day_of_month,
            hour_of_day=self.hour_of_day,
            minute=self.minute,
            second=self.second,
            millisecond=self.millisecond,
            zone_id=self.zone_id,
            logmsg=self.logmsg,
            log_dest=self.log_dest,
            parms=tuple(self.parms),
        )
