"""Unit tests for skill-builder configuration."""

import json
from pathlib import Path

import pytest

from skill_builder.config import (
    Config,
    ConfigError,
    RepositoryConfig,
    default_local_repo_path,
    global_config_path,
)
from skill_builder.storage.factory import create_local_backend, create_remote_backend


def _write(path: Path, document: dict) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(document), encoding="utf-8")
    return path


class TestParse:
    def test_full_document(self):
        config = Config.parse(
            json.dumps(
                {
                    "skills": [{"name": "svelte", "description": "Svelte docs", "llms_txt_url": "https://svelte.dev/llms.txt"}],
                    "repository": {
                        "bucket_name": "skills",
                        "region": "eu-west-1",
                        "endpoint": "http://localhost:9000",
                        "local": {"path": "/tmp/sb", "cache": True},
                    },
                }
            )
        )
        assert config.skill_names() == ["svelte"]
        assert config.find_skill("svelte").llms_txt_url == "https://svelte.dev/llms.txt"
        assert config.find_skill("react") is None

        repo = config.repository
        assert repo.has_remote() and repo.has_local() and repo.cache_enabled()
        assert repo.local_repo_path() == Path("/tmp/sb")

    def test_defaults(self):
        config = Config.parse("{}")
        assert config.skills == []
        assert config.repository is None

        repo = RepositoryConfig()
        assert repo.region == "us-east-1"
        assert not repo.has_remote()
        assert not repo.has_local()
        assert not repo.cache_enabled()

    def test_invalid_json(self):
        with pytest.raises(ConfigError):
            Config.parse("{nope")

    def test_invalid_shape(self):
        with pytest.raises(ConfigError):
            Config.parse(json.dumps({"skills": [{"description": "missing name"}]}))


class TestPaths:
    def test_home_override(self, isolated_home):
        assert global_config_path() == isolated_home / "skills.config.json"
        assert default_local_repo_path() == isolated_home / "local"

    def test_local_path_defaults_to_home(self, isolated_home):
        repo = RepositoryConfig.model_validate({"local": {}})
        assert repo.local_repo_path() == isolated_home / "local"


class TestLoadWithFallback:
    def test_explicit_path(self, tmp_path):
        path = _write(tmp_path / "custom.json", {"skills": [{"name": "a"}]})
        assert Config.load_with_fallback(path).skill_names() == ["a"]

    def test_missing_explicit_path(self, tmp_path):
        with pytest.raises(ConfigError):
            Config.load_with_fallback(tmp_path / "missing.json")

    def test_project_config_preferred_over_global(self, tmp_path, isolated_home, monkeypatch):
        _write(tmp_path / "project" / "skills.json", {"skills": [{"name": "project"}]})
        _write(isolated_home / "skills.config.json", {"skills": [{"name": "global"}]})
        monkeypatch.chdir(tmp_path / "project")

        assert Config.load_with_fallback().skill_names() == ["project"]

    def test_global_config(self, tmp_path, isolated_home, monkeypatch):
        _write(isolated_home / "skills.config.json", {"skills": [{"name": "global"}]})
        monkeypatch.chdir(tmp_path)

        assert Config.load_with_fallback().skill_names() == ["global"]

    def test_no_config_anywhere(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert Config.load_with_fallback() == Config()


class TestEnvironmentOverrides:
    def test_env_overrides_repository(self, monkeypatch):
        monkeypatch.setenv("S3_BUCKET_NAME", "env-bucket")
        monkeypatch.setenv("S3_REGION", "ap-south-1")
        monkeypatch.setenv("S3_ENDPOINT_URL", "http://minio:9000")

        repo = Config.parse(json.dumps({"repository": {"bucket_name": "file-bucket"}})).effective_repository()
        assert repo.bucket_name == "env-bucket"
        assert repo.region == "ap-south-1"
        assert repo.endpoint == "http://minio:9000"

    def test_env_alone_enables_remote(self, monkeypatch):
        monkeypatch.setenv("S3_BUCKET_NAME", "env-bucket")
        assert Config().effective_repository().has_remote()

    def test_without_env_config_is_unchanged(self):
        repo = RepositoryConfig(bucket_name="b")
        assert repo.with_env_overrides() is repo


class TestBackendFactory:
    def test_remote_requires_bucket(self):
        with pytest.raises(ValueError):
            create_remote_backend(RepositoryConfig())

    def test_remote_backend_from_config(self, monkeypatch):
        created = {}

        class FakeS3Backend:
            def __init__(self, **kwargs):
                created.update(kwargs)

        monkeypatch.setattr("skill_builder.storage.s3_storage.S3StorageBackend", FakeS3Backend)
        create_remote_backend(RepositoryConfig(bucket_name="b", region="eu-west-1", endpoint="http://s3", prefix="team"))

        assert created["bucket_name"] == "b"
        assert created["region"] == "eu-west-1"
        assert created["endpoint_url"] == "http://s3"
        assert created["prefix"] == "team"

    def test_local_backend_root(self, tmp_path):
        repo = RepositoryConfig.model_validate({"local": {"path": str(tmp_path / "repo")}})
        assert create_local_backend(repo).root == tmp_path / "repo"
