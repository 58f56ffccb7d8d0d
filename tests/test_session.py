from __future__ import annotations

import json

from taskboard.session import USERNAME_KEY, JsonFileStorage, MemoryStorage, UserContext


class CountingStorage(MemoryStorage):
    def __init__(self, initial=None):
        super().__init__(initial)
        self.reads = 0

    def get(self, key):
        self.reads += 1
        return super().get(key)


def test_hydrates_from_storage():
    ctx = UserContext(MemoryStorage({USERNAME_KEY: "alice"}))
    assert ctx.username == "alice"
    assert ctx.logged_in


def test_empty_storage_means_logged_out():
    ctx = UserContext(MemoryStorage())
    assert ctx.username == ""
    assert not ctx.logged_in


def test_writes_through_and_removes_on_empty():
    storage = MemoryStorage()
    ctx = UserContext(storage)
    ctx.set_username("bob")
    assert storage.data == {USERNAME_KEY: "bob"}
    ctx.clear()
    assert storage.data == {}
    assert not ctx.logged_in


def test_storage_read_only_once():
    storage = CountingStorage({USERNAME_KEY: "alice"})
    ctx = UserContext(storage)
    storage.data[USERNAME_KEY] = "mallory"
    ctx.set_username("bob")
    assert ctx.username == "bob"
    ctx.set_username("")
    assert ctx.username == ""
    assert storage.reads == 1


def test_subscribe_and_unsubscribe():
    ctx = UserContext(MemoryStorage())
    seen = []
    unsubscribe = ctx.subscribe(seen.append)
    ctx.set_username("alice")
    ctx.set_username("alice")
    ctx.set_username("")
    unsubscribe()
    ctx.set_username("bob")
    assert seen == ["alice", ""]


def test_json_file_storage_survives_reload(tmp_path):
    path = tmp_path / "nested" / "storage.json"
    UserContext(JsonFileStorage(path)).set_username("alice")
    assert json.loads(path.read_text(encoding="utf-8")) == {USERNAME_KEY: "alice"}

    reloaded = UserContext(JsonFileStorage(path))
    assert reloaded.username == "alice"
    reloaded.clear()
    assert UserContext(JsonFileStorage(path)).username == ""


def test_json_file_storage_tolerates_garbage(tmp_path):
    path = tmp_path / "storage.json"
    path.write_text("{not json", encoding="utf-8")
    storage = JsonFileStorage(path)
    assert storage.get(USERNAME_KEY) is None
    storage.set(USERNAME_KEY, "alice")
    assert storage.get(USERNAME_KEY) == "alice"


def test_context_from_settings_uses_storage_file(settings):
    UserContext.from_settings(settings).set_username("alice")
    assert settings.storage_file.exists()
    assert UserContext.from_settings(settings).username == "alice"
