from __future__ import annotations

from aether_bridge.store import JsonFileStore, MemoryStore


def test_memory_store_copies_values() -> None:
    store = MemoryStore()
    value = {"networks": [1, 2]}

    store.set("key", value)
    value["networks"].append(3)

    assert store.get("key") == {"networks": [1, 2]}
    assert store.get("missing", "default") == "default"
    assert store.writes == 1


def test_json_store_rewrites_wholesale(tmp_path) -> None:
    path = tmp_path / "nested" / "store.json"
    store = JsonFileStore(path)

    store.set("a", [1])
    store.set("b", {"x": True})

    reopened = JsonFileStore(path)
    assert reopened.get("a") == [1]
    assert reopened.get("b") == {"x": True}
    assert not path.with_suffix(".json.tmp").exists()


def test_json_store_ignores_corrupt_file(tmp_path) -> None:
    path = tmp_path / "store.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonFileStore(path).get("a", []) == []
