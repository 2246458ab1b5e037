from datetime import datetime, timedelta, timezone

import pytest

from skill_builder.storage.base import StorageBackend, validate_key
from skill_builder.storage.exceptions import StorageNotFoundError


class InMemoryStorageBackend(StorageBackend):
    """Dictionary-backed backend for repository and resolver tests."""

    def __init__(self):
        self.objects = {}
        self.calls = []

    def put(self, key, content):
        self.calls.append(("put", key))
        self.objects[validate_key(key)] = bytes(content)

    def get(self, key):
        self.calls.append(("get", key))
        try:
            return self.objects[validate_key(key)]
        except KeyError:
            raise StorageNotFoundError(f"Object not found: {key}", key=key)

    def exists(self, key):
        return validate_key(key) in self.objects

    def list(self, prefix):
        for key in sorted(self.objects):
            if key.startswith(prefix):
                yield key

    def delete(self, key):
        self.calls.append(("delete", key))
        self.objects.pop(validate_key(key), None)


class FakeClock:
    """Monotonic clock advancing one second per call."""

    def __init__(self, start=None):
        self.now = start or datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now += timedelta(seconds=1)
        return current


@pytest.fixture
def memory_backend():
    return InMemoryStorageBackend()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def isolated_home(tmp_path, monkeypatch):
    """Keep the global config and default local repository inside tmp_path."""
    home = tmp_path / "sb-home"
    monkeypatch.setenv("SKILL_BUILDER_HOME", str(home))
    for var in ("S3_BUCKET_NAME", "S3_REGION", "S3_ENDPOINT_URL"):
        monkeypatch.delenv(var, raising=False)
    return home


@pytest.fixture
def backend_factory():
    """Build extra in-memory backends when a test needs more than one root."""
    return InMemoryStorageBackend
