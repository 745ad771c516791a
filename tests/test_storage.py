import pytest
from cryptography.fernet import Fernet

from resumind.storage import (
    FileStore, MemoryKV, UserKV, _literal_prefix, build_kv, owner_dir,
)


def test_memory_kv_glob_listing():
    kv = MemoryKV()
    kv.set("ns", "resume:2", "b")
    kv.set("ns", "resume:1", "a")
    kv.set("ns", "user:1", "c")
    assert kv.list("ns", "resume:*") == [("resume:1", "a"), ("resume:2", "b")]
    assert kv.list("ns", "resume:?") == [("resume:1", "a"), ("resume:2", "b")]
    assert kv.list("ns", "*") == [("resume:1", "a"), ("resume:2", "b"), ("user:1", "c")]
    assert kv.get("ns", "nope") is None


def test_user_kv_namespaces_are_isolated():
    backend = MemoryKV()
    ada = UserKV(backend, "ada@example.com")
    bob = UserKV(backend, "bob@example.com")
    ada.set("resume:1", "{}")
    assert bob.list("resume:*") == []
    assert bob.get("resume:1") is None
    assert ada.list("resume:*") == ["resume:1"]
    assert ada.list("resume:*", return_values=True) == [{"key": "resume:1", "value": "{}"}]


def test_literal_prefix():
    assert _literal_prefix("resume:*") == "resume:"
    assert _literal_prefix("resume:[ab]") == "resume:"
    assert _literal_prefix("*") == ""
    assert _literal_prefix("exact") == "exact"


def test_build_kv_rejects_unknown_backend():
    assert isinstance(build_kv({"KV_BACKEND": "memory"}), MemoryKV)
    with pytest.raises(RuntimeError):
        build_kv({"KV_BACKEND": "redis"})


def test_file_store_round_trip(tmp_path):
    files = FileStore(str(tmp_path)).for_user("ada@example.com")
    stored = files.upload("My CV.pdf", b"%PDF-1.4 data")
    assert stored["name"] == "My_CV.pdf"
    assert stored["size"] == len(b"%PDF-1.4 data")
    assert stored["path"].startswith(owner_dir("ada@example.com") + "/")
    assert stored["path"].endswith("_My_CV.pdf")
    assert files.read(stored["path"]) == b"%PDF-1.4 data"


def test_file_store_keeps_users_apart(tmp_path):
    store = FileStore(str(tmp_path))
    stored = store.for_user("ada@example.com").upload("cv.pdf", b"secret")
    assert store.for_user("bob@example.com").read(stored["path"]) is None
    assert store.for_user("ada@example.com").read("../../etc/passwd") is None
    assert store.for_user("ada@example.com").read("") is None


def test_file_store_encrypts_at_rest(tmp_path):
    key = Fernet.generate_key().decode()
    files = FileStore(str(tmp_path), key).for_user("ada@example.com")
    stored = files.upload("cv.pdf", b"%PDF-1.4 plain")
    on_disk = (tmp_path / stored["path"]).read_bytes()
    assert b"plain" not in on_disk
    assert files.read(stored["path"]) == b"%PDF-1.4 plain"

    other_key = FileStore(str(tmp_path), Fernet.generate_key().decode()).for_user("ada@example.com")
    assert other_key.read(stored["path"]) is None
