from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

DEFAULT_LOCATION = "Default"
DEFAULT_DISCARD_UEI = "DISCARD-MATCHING-MESSAGES"


class ConfigError(Exception):
    """Raised when the rules file cannot be read or does not validate."""


class MatchType(str, Enum):
    SUBSTR = "substr"
    REGEX = "regex"


class Match(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: MatchType
    expression: str = Field(min_length=1)
    default_parameter_mapping: bool = False


class ParameterAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    matching_group: int = Field(ge=0)
    parameter_name: str = Field(min_length=1)


class UeiMatch(BaseModel):
    """One classification rule. Position in SyslogdConfig.uei_matches is its evaluation order."""

    model_config = ConfigDict(frozen=True)

    facilities: List[str] = Field(default_factory=list)
    severities: List[str] = Field(default_factory=list)
    process_match: Optional[str] = None
    hostname_match: Optional[str] = None
    hostaddr_match: Optional[str] = None
    match: Match
    uei: str = Field(min_length=1)
    parameter_assignments: List[ParameterAssignment] = Field(default_factory=list)


class HideMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    match: Match


class SyslogdConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    uei_matches: List[UeiMatch] = Field(default_factory=list)
    hide_matches: List[HideMatch] = Field(default_factory=list)
    discard_uei: str = DEFAULT_DISCARD_UEI
    include_raw_message: bool = False


def load_syslogd_config(path: Optional[str]) -> SyslogdConfig:
    """Load and validate the JSON rules file. No path means no rules."""
    if not path:
        return SyslogdConfig()
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise ConfigError(f"Unable to read rules file {path}: {exc}") from exc
    try:
        return SyslogdConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid rules file {path}: {exc}") from exc


@dataclass
class AppConfig:
    syslog_host: str = "0.0.0.0"
    syslog_port: int = 10514
    web_host: str = "0.0.0.0"
    web_port: int = 8080
    serve_api: bool = False
    database_url: str = "sqlite:///./syslogd.db"
    log_level: str = "info"
    system_id: str = "00000000-0000-0000-0000-000000000000"
    location: str = DEFAULT_LOCATION
    rules_file: Optional[str] = None
    dns_lookup_timeout: Optional[float] = 10.0
    workers: int = 4


def parse_args(argv: Optional[list[str]] = None) -> AppConfig:
    """Parse CLI arguments into AppConfig.

    Exposed via `python -m syslogd.main` and `syslogd`.
    """
    import argparse

    parser = argparse.ArgumentParser(description="Syslog to event translator")
    parser.add_argument("--syslog-host", default="0.0.0.0")
    parser.add_argument("--syslog-port", type=int, default=10514)
    parser.add_argument("--web-host", default="0.0.0.0")
    parser.add_argument("--web-port", type=int, default=8080)
    parser.add_argument(
        "--serve-api",
        action="store_true",
        help="Serve the read-only stats API next to the syslog receiver",
    )
    parser.add_argument(
        "--database-url",
        default="sqlite:///./syslogd.db",
        help="SQLAlchemy database URL holding the ip_interfaces node index",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error"],
    )
    parser.add_argument("--system-id", default="00000000-0000-0000-0000-000000000000")
    parser.add_argument(
        "--location",
        default=DEFAULT_LOCATION,
        help="Monitoring location; anything but Default resolves hostnames through DNS",
    )
    parser.add_argument("--rules-file", default=None, help="JSON file with uei/hide match rules")
    parser.add_argument(
        "--dns-lookup-timeout",
        type=float,
        default=10.0,
        help="Seconds to wait for one hostname lookup; 0 waits forever",
    )
    parser.add_argument("--workers", type=int, default=4, help="Conversion worker threads")

    args = parser.parse_args(argv)
    if args.dns_lookup_timeout < 0:
        parser.error("--dns-lookup-timeout must be >= 0")

    return AppConfig(
        syslog_host=args.syslog_host,
        syslog_port=args.syslog_port,
        web_host=args.web_host,
        web_port=args.web_port,
        serve_api=bool(args.serve_api),
        database_url=args.database_url,
        log_level=args.log_level,
        system_id=args.system_id,
        location=args.location,
        rules_file=args.rules_file,
        dns_lookup_timeout=args.dns_lookup_timeout or None,
        workers=max(1, args.workers),
    )
