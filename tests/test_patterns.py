"""PatternCache: multiline compile, cached invalid sentinel, one compile per expression under threads."""

from __future__ import annotations

import logging
import re
import threading
import time

from syslogd.enrichment import patterns
from syslogd.enrichment.patterns import PatternCache


def test_returns_same_compiled_pattern():
    cache = PatternCache()
    first = cache.get_pattern(r"disk (\S+)")
    second = cache.get_pattern(r"disk (\S+)")
    assert first is not None
    assert first is second
    assert first.flags & re.MULTILINE


def test_multiline_anchor_matches_later_line():
    cache = PatternCache()
    pat = cache.get_pattern(r"^second$")
    assert pat.search("first\nsecond\nthird") is not None


def test_malformed_expression_warns_once_and_returns_none(caplog):
    cache = PatternCache()
    with caplog.at_level(logging.WARNING, logger="syslogd.patterns"):
        assert cache.get_pattern("disk (unclosed") is None
        assert cache.get_pattern("disk (unclosed") is None
    warnings = [r for r in caplog.records if "Failed to compile regex pattern" in r.getMessage()]
    assert len(warnings) == 1
    assert "disk (unclosed" in cache


def test_concurrent_requests_compile_once(monkeypatch):
    calls = []
    real_compile = patterns._compile

    def slow_compile(expression):
        calls.append(expression)
        time.sleep(0.05)
        return real_compile(expression)

    monkeypatch.setattr(patterns, "_compile", slow_compile)
    cache = PatternCache()
    results = []
    start = threading.Barrier(8)

    def worker():
        start.wait()
        results.append(cache.get_pattern(r"login (\w+)"))

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert calls == [r"login (\w+)"]
    assert len(results) == 8
    assert all(r is results[0] for r in results)


def test_slow_key_does_not_block_other_keys(monkeypatch):
    release = threading.Event()
    real_compile = patterns._compile

    def gated_compile(expression):
        if expression == "slow":
            release.wait(timeout=5)
        return real_compile(expression)

    monkeypatch.setattr(patterns, "_compile", gated_compile)
    cache = PatternCache()
    slow = threading.Thread(target=cache.get_pattern, args=("slow",))
    slow.start()
    try:
        time.sleep(0.05)
        assert cache.get_pattern("fast") is not None
        assert "slow" not in cache
    finally:
        release.set()
        slow.join()
    assert "slow" in cache
