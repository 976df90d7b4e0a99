from __future__ import annotations

import json
from pathlib import Path

import pytest

from syslogd.config import (
    DEFAULT_DISCARD_UEI,
    ConfigError,
    MatchType,
    load_syslogd_config,
    parse_args,
)


def _write(tmp_path: Path, data) -> str:
    path = tmp_path / "syslogd-rules.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


def test_load_rules_file_preserves_order(tmp_path: Path):
    path = _write(
        tmp_path,
        {
            "uei_matches": [
                {"uei": "uei.first", "match": {"type": "substr", "expression": "login"}},
                {
                    "uei": "uei.second",
                    "facilities": ["auth"],
                    "match": {"type": "regex", "expression": "(\\d+)", "default_parameter_mapping": True},
                    "parameter_assignments": [{"matching_group": 1, "parameter_name": "num"}],
                },
            ],
            "hide_matches": [{"match": {"type": "substr", "expression": "password"}}],
            "include_raw_message": True,
        },
    )
    config = load_syslogd_config(path)
    assert [r.uei for r in config.uei_matches] == ["uei.first", "uei.second"]
    assert config.uei_matches[1].match.type is MatchType.REGEX
    assert config.uei_matches[1].parameter_assignments[0].parameter_name == "num"
    assert config.hide_matches[0].match.expression == "password"
    assert config.discard_uei == DEFAULT_DISCARD_UEI
    assert config.include_raw_message is True


@pytest.mark.parametrize("path", [None, ""])
def test_no_rules_file_gives_empty_config(path):
    config = load_syslogd_config(path)
    assert config.uei_matches == []
    assert config.hide_matches == []
    assert config.discard_uei == DEFAULT_DISCARD_UEI


@pytest.mark.parametrize(
    "data",
    [
        {"uei_matches": [{"uei": "x", "match": {"type": "glob", "expression": "a*"}}]},
        {"uei_matches": [{"uei": "x", "match": {"type": "substr", "expression": ""}}]},
        {"uei_matches": [{"match": {"type": "substr", "expression": "a"}}]},
        {
            "uei_matches": [
                {
                    "uei": "x",
                    "match": {"type": "regex", "expression": "(a)"},
                    "parameter_assignments": [{"matching_group": -1, "parameter_name": "p"}],
                }
            ]
        },
    ],
)
def test_invalid_rules_raise_config_error(tmp_path: Path, data):
    with pytest.raises(ConfigError, match="Invalid rules file"):
        load_syslogd_config(_write(tmp_path, data))


def test_missing_or_malformed_file_raises_config_error(tmp_path: Path):
    with pytest.raises(ConfigError, match="Unable to read"):
        load_syslogd_config(str(tmp_path / "missing.json"))
    bad = tmp_path / "bad.json"
    bad.write_text("{not json", encoding="utf-8")
    with pytest.raises(ConfigError, match="Unable to read"):
        load_syslogd_config(str(bad))


def test_parse_args_defaults():
    config = parse_args([])
    assert config.syslog_port == 10514
    assert config.location == "Default"
    assert config.serve_api is False
    assert config.dns_lookup_timeout == 10.0
    assert config.workers == 4


def test_parse_args_overrides():
    config = parse_args(
        [
            "--location",
            "Branch",
            "--serve-api",
            "--dns-lookup-timeout",
            "0",
            "--workers",
            "0",
            "--rules-file",
            "/etc/syslogd.json",
        ]
    )
    assert config.location == "Branch"
    assert config.serve_api is True
    assert config.dns_lookup_timeout is None
    assert config.workers == 1
    assert config.rules_file == "/etc/syslogd.json"


def test_parse_args_rejects_negative_dns_timeout():
    with pytest.raises(SystemExit):
        parse_args(["--dns-lookup-timeout", "-1"])
