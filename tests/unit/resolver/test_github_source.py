"""Unit tests for GitHubReleaseSource."""

import httpx
import pytest

from skill_builder.resolver.github_source import GitHubReleaseSource, get_release_url
from skill_builder.storage.exceptions import (
    StorageCorruptError,
    StorageError,
    StorageNotFoundError,
    StoragePermissionError,
    StorageTransientError,
)
from skill_builder.storage.retry import RetryPolicy


def _source(handler, attempts: int = 3) -> GitHubReleaseSource:
    client = httpx.Client(transport=httpx.MockTransport(handler), follow_redirects=True)
    return GitHubReleaseSource(
        repo="acme/skills",
        client=client,
        retry_policy=RetryPolicy(max_attempts=attempts, sleep=lambda _: None),
    )


class TestReleaseUrls:
    def test_latest(self):
        assert get_release_url("shadcn-svelte") == (
            "https://github.com/antstanley/skill-builder/releases/latest/download/shadcn-svelte.skill"
        )

    def test_with_version(self):
        assert get_release_url("shadcn-svelte", "1.0.0") == (
            "https://github.com/antstanley/skill-builder/releases/download/v1.0.0/shadcn-svelte.skill"
        )

    def test_custom_repo(self):
        assert get_release_url("my-skill", "2.0.0", "user/repo") == (
            "https://github.com/user/repo/releases/download/v2.0.0/my-skill.skill"
        )


class TestGetArtifact:
    def test_explicit_version(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, content=b"skill-zip")

        artifact = _source(handler).get_artifact("foo", "1.2.0")
        assert artifact.name == "foo"
        assert artifact.version == "1.2.0"
        assert artifact.content == b"skill-zip"
        assert seen == ["https://github.com/acme/skills/releases/download/v1.2.0/foo.skill"]

    def test_latest_uses_release_tag(self):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "api.github.com":
                assert request.url.path == "/repos/acme/skills/releases/latest"
                return httpx.Response(200, json={"tag_name": "v2.3.4"})
            assert request.url.path == "/acme/skills/releases/download/v2.3.4/foo.skill"
            return httpx.Response(200, content=b"latest-zip")

        artifact = _source(handler).get_artifact("foo")
        assert artifact.version == "2.3.4"
        assert artifact.content == b"latest-zip"

    def test_missing_asset_is_not_found(self):
        source = _source(lambda request: httpx.Response(404))
        with pytest.raises(StorageNotFoundError):
            source.get_artifact("foo", "1.0.0")

    def test_release_without_tag_is_not_found(self):
        source = _source(lambda request: httpx.Response(200, json={}))
        with pytest.raises(StorageNotFoundError):
            source.get_artifact("foo")

    def test_non_json_release_is_corrupt(self):
        source = _source(lambda request: httpx.Response(200, text="<html>not json</html>"))
        with pytest.raises(StorageCorruptError):
            source.get_artifact("foo")

    @pytest.mark.parametrize("payload", [{"tag_name": 123}, ["v1.0.0"]])
    def test_malformed_release_is_corrupt(self, payload):
        source = _source(lambda request: httpx.Response(200, json=payload))
        with pytest.raises(StorageCorruptError):
            source.latest_version()

    def test_redirect_loop_is_storage_error(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(302, headers={"Location": str(request.url)})

        with pytest.raises(StorageError) as exc_info:
            _source(handler).get_artifact("foo", "1.0.0")
        assert isinstance(exc_info.value.cause, httpx.TooManyRedirects)
        assert not isinstance(exc_info.value, StorageTransientError)

    @pytest.mark.parametrize("status", [401, 403])
    def test_auth_failures_are_permission_errors(self, status):
        source = _source(lambda request: httpx.Response(status))
        with pytest.raises(StoragePermissionError):
            source.get_artifact("foo", "1.0.0")

    def test_unexpected_status(self):
        source = _source(lambda request: httpx.Response(418))
        with pytest.raises(StorageError) as exc_info:
            source.get_artifact("foo", "1.0.0")
        assert type(exc_info.value) is StorageError


class TestRetries:
    def test_server_error_is_retried(self):
        responses = iter([httpx.Response(503), httpx.Response(200, content=b"ok")])
        source = _source(lambda request: next(responses))
        assert source.get_artifact("foo", "1.0.0").content == b"ok"

    def test_transport_error_exhausts_retries(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(StorageTransientError):
            _source(handler, attempts=2).get_artifact("foo", "1.0.0")
        assert len(calls) == 2

    def test_not_found_is_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(404)

        with pytest.raises(StorageNotFoundError):
            _source(handler).get_artifact("foo", "1.0.0")
        assert len(calls) == 1
