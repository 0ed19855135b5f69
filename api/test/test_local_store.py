import pytest

from utils.local_store import KeyValueStore, MemoryStore, JsonFileStore, DeviceStore, AuthStorageAdapter


def test_memory_store():
    store = MemoryStore({"a": "1"})
    assert store.get("a") == "1"
    store.set("b", "2")
    store.delete("a")
    store.delete("missing")
    assert store.keys() == ["b"]


def test_json_file_store_persists(tmp_path):
    path = tmp_path / "device" / "store.json"
    store = JsonFileStore(str(path))
    assert store.get("x") is None

    store.set("x", "[1, 2]")
    assert JsonFileStore(str(path)).get("x") == "[1, 2]"

    store.delete("x")
    assert JsonFileStore(str(path)).get("x") is None


def test_json_file_store_ignores_broken_file(tmp_path):
    path = tmp_path / "store.json"
    path.write_text("{broken", encoding="utf-8")
    assert JsonFileStore(str(path)).get("x") is None


def test_device_store_namespaces_keys():
    backend = MemoryStore()
    first = DeviceStore(backend, "device-1")
    second = DeviceStore(backend, "device-2")

    first.set("coffee-map-favorites", "[1]")

    assert second.get("coffee-map-favorites") is None
    assert backend.get("device-1:coffee-map-favorites") == "[1]"


def test_auth_storage_adapter():
    store = MemoryStore()
    adapter = AuthStorageAdapter(store)
    adapter.set_item("sb-code-verifier", "abc")
    assert adapter.get_item("sb-code-verifier") == "abc"
    adapter.remove_item("sb-code-verifier")
    assert store.get("sb-code-verifier") is None


def test_partial_store_cannot_be_created():
    class ReadOnlyStore(KeyValueStore):
        def get(self, key):
            return None

    with pytest.raises(TypeError):
        ReadOnlyStore()
