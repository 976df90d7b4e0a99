"""Node index lookups against a throwaway SQLite database."""

from __future__ import annotations

from pathlib import Path

import pytest

from syslogd.storage.db import init_engine_and_sessionmaker
from syslogd.storage.models import IpInterface
from syslogd.storage.node_lookup import SqlNodeLocationIndex


@pytest.fixture
def session_factory(tmp_path: Path):
    engine, factory = init_engine_and_sessionmaker(f"sqlite:///{tmp_path / 'nodes.db'}")
    with factory() as session:
        session.add_all(
            [
                IpInterface(node_id=12, location="Default", ip_addr="10.0.0.7", node_label="web01"),
                IpInterface(node_id=3, location="Default", ip_addr="10.0.0.7", node_label="web01-dup"),
                IpInterface(node_id=40, location="Branch", ip_addr="10.0.0.7", node_label="branch-web"),
            ]
        )
        session.commit()
    yield factory
    engine.dispose()


def test_lowest_node_id_wins_for_duplicates(session_factory):
    index = SqlNodeLocationIndex(session_factory)
    assert index.first_node_id("Default", "10.0.0.7") == 3


def test_location_is_part_of_the_key(session_factory):
    index = SqlNodeLocationIndex(session_factory)
    assert index.first_node_id("Branch", "10.0.0.7") == 40
    assert index.first_node_id("Elsewhere", "10.0.0.7") is None


def test_missing_location_means_default(session_factory):
    index = SqlNodeLocationIndex(session_factory)
    assert index.first_node_id(None, "10.0.0.7") == 3


def test_unknown_or_empty_address_returns_none(session_factory):
    index = SqlNodeLocationIndex(session_factory)
    assert index.first_node_id("Default", "10.9.9.9") is None
    assert index.first_node_id("Default", "") is None


def test_database_error_is_logged_not_raised(tmp_path: Path, caplog):
    engine, factory = init_engine_and_sessionmaker(f"sqlite:///{tmp_path / 'broken.db'}")
    IpInterface.__table__.drop(engine)
    index = SqlNodeLocationIndex(factory)
    assert index.first_node_id("Default", "10.0.0.7") is None
    assert "Node lookup failed" in caplog.text
    engine.dispose()
