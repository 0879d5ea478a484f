"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
The in-memory persistence service lives in tests/fakes.py.
"""
from __future__ import annotations

import sys
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tests.fakes import FakeStore, make_rounds  # noqa: E402
from study_tracker.tracker.notifications import NoticeCollector  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture
def subject_records():
    """Two subjects, out of sort order on purpose."""
    return [
        {"id": "s2", "key": "physics", "label": "Physics", "icon": "⚛️", "sort_order": 1},
        {"id": "s1", "key": "chemistry", "label": "Chemistry", "icon": "⚗️", "sort_order": 0},
    ]


@pytest.fixture
def row_records():
    """Rows for both subjects plus one orphan."""
    return [
        {"id": "c1", "subject_id": "s1", "name": "2015", "rounds": make_rounds((True, False)), "sort_order": 0},
        {"id": "c2", "subject_id": "s1", "name": "2016", "rounds": make_rounds(), "sort_order": 1},
        {"id": "p1", "subject_id": "s2", "name": "2015", "rounds": [{"mcq": True, "essay": True}], "sort_order": 0},
        {"id": "x1", "subject_id": "gone", "name": "orphan", "rounds": make_rounds(), "sort_order": 2},
    ]


@pytest.fixture
def store(subject_records, row_records):
    """FakeStore seeded with two subjects and their rows."""
    return FakeStore(subject_records, row_records)


@pytest.fixture
def empty_store():
    return FakeStore()


@pytest.fixture
def notices():
    """Collects notices raised by the engine."""
    return NoticeCollector()
