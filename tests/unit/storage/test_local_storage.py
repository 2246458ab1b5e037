"""Unit tests for LocalStorageBackend."""

import os
import types

import pytest

from skill_builder.storage.exceptions import (
    InvalidKeyError,
    StorageNotFoundError,
    StorageTransientError,
)
from skill_builder.storage.local_storage import LocalStorageBackend


@pytest.fixture()
def backend(tmp_path) -> LocalStorageBackend:
    return LocalStorageBackend(tmp_path / "repo")


class TestPutGet:
    def test_round_trip(self, backend):
        backend.put("skills/foo/1.0.0/foo.skill", b"zip-bytes")
        assert backend.get("skills/foo/1.0.0/foo.skill") == b"zip-bytes"

    def test_creates_file_at_key_path(self, backend):
        backend.put("skills/foo/1.0.0/foo.skill", b"x")
        assert (backend.root / "skills" / "foo" / "1.0.0" / "foo.skill").read_bytes() == b"x"

    def test_overwrite_replaces_content(self, backend):
        backend.put("a/b.txt", b"old")
        backend.put("a/b.txt", b"new")
        assert backend.get("a/b.txt") == b"new"

    def test_empty_content(self, backend):
        backend.put("empty", b"")
        assert backend.get("empty") == b""
        assert backend.exists("empty")

    def test_get_missing_raises_not_found(self, backend):
        with pytest.raises(StorageNotFoundError) as exc_info:
            backend.get("skills/missing/1.0.0/missing.skill")
        assert exc_info.value.key == "skills/missing/1.0.0/missing.skill"

    def test_get_directory_raises_not_found(self, backend):
        backend.put("skills/foo/1.0.0/foo.skill", b"x")
        with pytest.raises(StorageNotFoundError):
            backend.get("skills/foo")


def _failing_replace(src, dst):
    raise OSError("disk went away")


class TestAtomicPut:
    def test_interrupted_put_keeps_previous_object(self, backend, monkeypatch):
        backend.put("skills_index.json", b'{"old": true}')

        with monkeypatch.context() as m:
            m.setattr(os, "replace", _failing_replace)
            with pytest.raises(StorageTransientError):
                backend.put("skills_index.json", b'{"new": true}')

        assert backend.get("skills_index.json") == b'{"old": true}'

    def test_interrupted_put_removes_temp_file(self, backend, monkeypatch):
        backend.put("a/b.txt", b"old")

        with monkeypatch.context() as m:
            m.setattr(os, "replace", _failing_replace)
            with pytest.raises(StorageTransientError):
                backend.put("a/b.txt", b"new")

        assert sorted(p.name for p in (backend.root / "a").iterdir()) == ["b.txt"]

    def test_temp_files_are_invisible(self, backend):
        backend.put("a/b.txt", b"x")
        (backend.root / "a" / ".b.txt.abc123.tmp").write_bytes(b"partial")

        assert list(backend.list("a/")) == ["a/b.txt"]
        assert not backend.exists("a/.b.txt.abc123.tmp")


class TestExists:
    def test_true_after_put(self, backend):
        backend.put("x/y", b"1")
        assert backend.exists("x/y") is True

    def test_false_when_missing(self, backend):
        assert backend.exists("x/y") is False

    def test_false_for_directory(self, backend):
        backend.put("x/y", b"1")
        assert backend.exists("x") is False


class TestList:
    def test_lists_keys_under_prefix(self, backend):
        backend.put("skills/foo/1.0.0/foo.skill", b"1")
        backend.put("skills/foo/1.0.0/CHANGELOG.md", b"2")
        backend.put("skills/bar/1.0.0/bar.skill", b"3")
        backend.put("skills_index.json", b"{}")

        assert sorted(backend.list("skills/foo/")) == [
            "skills/foo/1.0.0/CHANGELOG.md",
            "skills/foo/1.0.0/foo.skill",
        ]

    def test_prefix_is_plain_string_match(self, backend):
        backend.put("skills/foo/1.0.0/foo.skill", b"1")
        backend.put("skills/foobar/1.0.0/foobar.skill", b"2")

        assert sorted(backend.list("skills/foo")) == [
            "skills/foo/1.0.0/foo.skill",
            "skills/foobar/1.0.0/foobar.skill",
        ]

    def test_empty_prefix_lists_everything(self, backend):
        backend.put("a", b"1")
        backend.put("b/c", b"2")
        assert sorted(backend.list("")) == ["a", "b/c"]

    def test_missing_root_yields_nothing(self, backend):
        assert list(backend.list("skills/")) == []

    def test_list_is_a_generator(self, backend):
        assert isinstance(backend.list("a/"), types.GeneratorType)


class TestDelete:
    def test_removes_object(self, backend):
        backend.put("skills/foo/1.0.0/foo.skill", b"1")
        backend.delete("skills/foo/1.0.0/foo.skill")
        assert not backend.exists("skills/foo/1.0.0/foo.skill")

    def test_missing_key_is_noop(self, backend):
        backend.delete("skills/never/1.0.0/never.skill")

    def test_prunes_empty_directories(self, backend):
        backend.put("skills/foo/1.0.0/foo.skill", b"1")
        backend.put("skills/bar/1.0.0/bar.skill", b"2")
        backend.delete("skills/foo/1.0.0/foo.skill")

        assert not (backend.root / "skills" / "foo").exists()
        assert (backend.root / "skills" / "bar" / "1.0.0").is_dir()
        assert backend.root.is_dir()


class TestKeyValidation:
    @pytest.mark.parametrize(
        "key",
        ["", "/etc/passwd", "../outside", "skills/../../x", "a//b", "a\\b", "skills/./x"],
    )
    def test_rejects_unsafe_keys(self, backend, key):
        with pytest.raises(InvalidKeyError):
            backend.put(key, b"x")

    def test_rejects_unsafe_list_prefix(self, backend):
        with pytest.raises(InvalidKeyError):
            list(backend.list("../"))

    def test_empty_root_rejected(self):
        with pytest.raises(ValueError):
            LocalStorageBackend("")
