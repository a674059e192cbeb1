from __future__ import annotations

import copy
from pathlib import Path

import pytest

from sidebery_mcp.models import StorageConfiguration
from sidebery_mcp.snapshot import SnapshotService, SnapshotStore


def tab(url: str, lvl: int = 0, panel: str | None = None, **extra):
    record = {"url": url, "title": url.rsplit("/", 1)[-1], "lvl": lvl}
    if panel is not None:
        record["panelId"] = panel
    record.update(extra)
    return record


SAMPLE_DOCUMENT = {
    "id": "snap-1",
    "time": 1700000000000,
    "containers": {"c1": {"name": "Work", "color": "blue"}},
    "sidebar": {
        "panels": {
            "p1": {"id": "p1", "name": "Main"},
            "p2": {"id": "p2", "name": "Research"},
        },
        "nav": ["p2", "p1"],
    },
    "tabs": [
        [
            [
                [
                    tab("https://example.com/a", 0, "p1", cookieStoreId="firefox-default"),
                    tab("https://example.com/b", 1),
                    tab("https://example.com/c", 2),
                    tab("https://example.com/d", 1),
                    tab("https://example.com/e", 0),
                ],
            ],
            [
                [tab("https://example.org/r1", 0, "p2", containerId="c1")],
            ],
        ],
    ],
}


@pytest.fixture
def document():
    return copy.deepcopy(SAMPLE_DOCUMENT)


@pytest.fixture
def store(tmp_path: Path):
    snapshot_store = SnapshotStore(StorageConfiguration(db_path=tmp_path / "snapshots.db"))
    snapshot_store.open()
    yield snapshot_store
    snapshot_store.close()


@pytest.fixture
def service(store):
    return SnapshotService(store)
