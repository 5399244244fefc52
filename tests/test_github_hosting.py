"""Tests for the GitHub hosting collaborator."""

from unittest.mock import MagicMock

import pytest
import requests
from github import GithubException, UnknownObjectException

from specwright.errors import PublishFailure
from specwright.hosting.github_hosting import GitHubHosting
from specwright.models.config import HostingConfig


@pytest.fixture
def repo() -> MagicMock:
    return MagicMock()


@pytest.fixture
def hosting(hosting_config, repo) -> GitHubHosting:
    client = MagicMock()
    client.get_repo.return_value = repo
    return GitHubHosting(hosting_config, client=client)


def _content(path, text, sha="abc", kind="file"):
    c = MagicMock()
    c.path = path
    c.decoded_content = text.encode("utf-8")
    c.sha = sha
    c.type = kind
    return c


class TestReads:

    @pytest.mark.asyncio
    async def test_read_file(self, hosting, repo):
        repo.get_contents.return_value = _content("tests/specs/a.spec.ts", "test('a')", sha="s1")

        result = await hosting.read_file("tests/specs/a.spec.ts")

        assert result.content == "test('a')"
        assert result.sha == "s1"
        repo.get_contents.assert_called_once_with("tests/specs/a.spec.ts", ref="main")

    @pytest.mark.asyncio
    async def test_read_missing_file(self, hosting, repo):
        repo.get_contents.side_effect = UnknownObjectException(404, {"message": "Not Found"}, None)
        assert await hosting.read_file("nope.ts") is None

    @pytest.mark.asyncio
    async def test_read_directory_returns_none(self, hosting, repo):
        repo.get_contents.return_value = [_content("a/b.ts", "")]
        assert await hosting.read_file("a") is None

    @pytest.mark.asyncio
    async def test_list_directory_files_only(self, hosting, repo):
        repo.get_contents.return_value = [
            _content("pages/homePage.ts", ""),
            _content("pages/nested", "", kind="dir"),
        ]
        assert await hosting.list_directory("pages") == ["pages/homePage.ts"]


class TestWrites:

    @pytest.mark.asyncio
    async def test_create_branch_from_base(self, hosting, repo):
        base = MagicMock()
        base.commit.sha = "base-sha"

        def get_branch(name):
            if name == "main":
                return base
            raise UnknownObjectException(404, {"message": "Branch not found"}, None)

        repo.get_branch.side_effect = get_branch

        await hosting.create_branch("feature/QA-1-auto-test")

        assert [c.args[0] for c in repo.get_branch.call_args_list] == ["feature/QA-1-auto-test", "main"]
        repo.create_git_ref.assert_called_once_with(ref="refs/heads/feature/QA-1-auto-test", sha="base-sha")

    @pytest.mark.asyncio
    async def test_existing_branch_is_reused(self, hosting, repo):
        await hosting.create_branch("feature/QA-1-auto-test")

        repo.get_branch.assert_called_once_with("feature/QA-1-auto-test")
        repo.create_git_ref.assert_not_called()

    @pytest.mark.asyncio
    async def test_create_new_file(self, hosting, repo):
        repo.create_file.return_value = {"commit": MagicMock(sha="c0ffee1234")}

        sha = await hosting.create_or_update_file("a.ts", "x", "msg", "branch")

        assert sha == "c0ffee1234"
        repo.create_file.assert_called_once_with("a.ts", "msg", "x", branch="branch")
        repo.update_file.assert_not_called()

    @pytest.mark.asyncio
    async def test_update_is_sha_conditional(self, hosting, repo):
        repo.update_file.return_value = {"commit": MagicMock(sha="beef123456")}

        await hosting.create_or_update_file("a.ts", "x", "msg", "branch", sha="old-sha")

        repo.update_file.assert_called_once_with("a.ts", "msg", "x", "old-sha", branch="branch")

    @pytest.mark.asyncio
    async def test_conflict_becomes_publish_failure(self, hosting, repo):
        repo.update_file.side_effect = GithubException(409, {"message": "sha does not match"}, None)

        with pytest.raises(PublishFailure) as exc_info:
            await hosting.create_or_update_file("a.ts", "x", "msg", "branch", sha="stale")

        assert exc_info.value.diagnostics["status"] == 409

    @pytest.mark.asyncio
    async def test_network_error_becomes_publish_failure(self, hosting, repo):
        repo.get_branch.side_effect = requests.ConnectionError("connection reset")

        with pytest.raises(PublishFailure) as exc_info:
            await hosting.create_branch("feature/QA-1-auto-test-1")

        assert "connection reset" in str(exc_info.value)
        assert exc_info.value.diagnostics == {"branch": "feature/QA-1-auto-test-1"}

    @pytest.mark.asyncio
    async def test_open_pull_request(self, hosting, repo):
        repo.get_pulls.return_value = []
        repo.create_pull.return_value.html_url = "https://github.com/acme/e2e-tests/pull/3"

        url = await hosting.open_pull_request("QA-1: t", "body", "feature/x")

        assert url == "https://github.com/acme/e2e-tests/pull/3"
        repo.create_pull.assert_called_once_with(
            title="QA-1: t", body="body", head="feature/x", base="main", draft=True,
        )

    @pytest.mark.asyncio
    async def test_open_pull_request_for_same_branch_is_reused(self, hosting, repo):
        repo.get_pulls.return_value = [MagicMock(html_url="https://github.com/acme/e2e-tests/pull/2")]

        url = await hosting.open_pull_request("QA-1: t", "body", "feature/QA-1-auto-test")

        assert url == "https://github.com/acme/e2e-tests/pull/2"
        repo.get_pulls.assert_called_once_with(state="open", head="acme:feature/QA-1-auto-test")
        repo.create_pull.assert_not_called()


def test_repository_required():
    with pytest.raises(ValueError):
        GitHubHosting(HostingConfig())
