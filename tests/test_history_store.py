from __future__ import annotations

import asyncio
import io
import json
import logging
from pathlib import Path

import pytest
from PIL import Image

from atelier_engine.codec import EncodedImage
from atelier_engine.history import HistoryItem, HistoryStore


def _item(idx: int) -> HistoryItem:
    return HistoryItem(id=str(1000 + idx), prompt=f"prompt {idx}", image_url="data:image/jpeg;base64,AAAA", timestamp=1000 + idx)


def test_insert_prepends_and_caps_at_five(tmp_path: Path) -> None:
    store = HistoryStore(tmp_path / "history.json")
    for idx in range(5):
        store.insert(_item(idx))
    assert [item.prompt for item in store.items] == [f"prompt {idx}" for idx in (4, 3, 2, 1, 0)]

    store.insert(_item(5))

    items = store.items
    assert len(items) == 5
    assert items[0].prompt == "prompt 5"
    assert "prompt 0" not in [item.prompt for item in items]


def test_insert_persists_json_array(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    store = HistoryStore(path)
    store.insert(_item(1))

    payload = json.loads(path.read_text(encoding="utf-8"))

    assert payload == [
        {"id": "1001", "prompt": "prompt 1", "imageUrl": "data:image/jpeg;base64,AAAA", "timestamp": 1001}
    ]
    assert HistoryStore(path).load() == [_item(1)]


def test_clear_empties_and_persists(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    store = HistoryStore(path)
    store.insert(_item(1))

    store.clear()

    assert store.items == []
    assert json.loads(path.read_text(encoding="utf-8")) == []


def test_load_missing_file_returns_empty(tmp_path: Path) -> None:
    assert HistoryStore(tmp_path / "absent.json").load() == []


@pytest.mark.parametrize(
    "content",
    [
        "{not json",
        '{"id": "1"}',
        '[{"id": "1", "prompt": "x"}]',
        '[{"id": 1, "prompt": "x", "imageUrl": "data:,", "timestamp": 1}]',
        '[{"id": "1", "prompt": "x", "imageUrl": "data:,", "timestamp": "soon"}]',
        '[{"id": "1", "prompt": "x", "imageUrl": "data:,", "timestamp": Infinity}]',
        '[{"id": "1", "prompt": "x", "imageUrl": "data:,", "timestamp": 1e400}]',
    ],
)
def test_load_malformed_history_returns_empty(tmp_path: Path, content: str) -> None:
    path = tmp_path / "history.json"
    path.write_text(content, encoding="utf-8")

    assert HistoryStore(path).load() == []


def test_load_truncates_to_capacity(tmp_path: Path) -> None:
    path = tmp_path / "history.json"
    path.write_text(json.dumps([_item(idx).to_dict() for idx in range(8)]), encoding="utf-8")

    items = HistoryStore(path).load()

    assert [item.prompt for item in items] == [f"prompt {idx}" for idx in range(5)]


def test_write_failure_is_logged_not_raised(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    blocked = tmp_path / "history.json"
    blocked.mkdir()
    store = HistoryStore(blocked)

    with caplog.at_level(logging.WARNING, logger="atelier_engine.history"):
        store.insert(_item(1))

    assert store.items == [_item(1)]
    assert any("Failed to save history" in record.message for record in caplog.records)


def test_next_id_stays_distinct_within_one_millisecond(tmp_path: Path) -> None:
    store = HistoryStore(tmp_path / "history.json")
    store.insert(HistoryItem(id="5000", prompt="a", image_url="data:,", timestamp=5000))

    assert store.next_id(5000) == "5001"
    assert store.next_id(4000) == "5001"
    assert store.next_id(6000) == "6000"


def test_add_generation_stores_thumbnail_copy(tmp_path: Path) -> None:
    buffer = io.BytesIO()
    Image.new("RGB", (512, 256), (255, 0, 0)).save(buffer, format="PNG")
    image = EncodedImage.from_bytes(buffer.getvalue(), "image/png")
    store = HistoryStore(tmp_path / "history.json", thumbnail_size=64)

    item = asyncio.run(store.add_generation("a red banner", image, 1234))

    assert item.id == "1234"
    assert item.timestamp == 1234
    assert item.prompt == "a red banner"
    assert item.image_url != image.to_data_url()
    thumb = Image.open(io.BytesIO(EncodedImage.from_data_url(item.image_url).to_bytes()))
    assert thumb.size == (64, 32)
    assert store.items == [item]
