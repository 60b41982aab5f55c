"""Shared fixtures for trustanchor tests."""

import json
from pathlib import Path

import pytest

from trustanchor import build_bundle

FIXTURES_PATH = Path(__file__).parent / "fixtures"


@pytest.fixture(scope="session")
def golden() -> dict:
    """Golden vectors pinned with independently computed SHA-256/HMAC values."""
    with open(FIXTURES_PATH / "golden-vectors.json", "r", encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def raw_items() -> list[dict]:
    return [
        {"item_id": "i1", "content_type": "test/a", "content": {"val": 1}},
        {"item_id": "i2", "content_type": "test/b", "content": {"val": 2}},
        {"item_id": "i3", "content_type": "test/c", "content": {"val": 3}},
    ]


@pytest.fixture
def sealed_bundle(raw_items) -> dict:
    """A freshly sealed, unsigned three-item bundle."""
    return build_bundle(
        raw_items,
        bundle_id="test-bundle-001",
        created_at="2026-01-29T00:00:00Z",
    )
