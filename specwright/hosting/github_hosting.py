"""Hosting collaborator backed by the GitHub REST API (PyGithub).

Only five operations are exposed: read_file, list_directory,
create_or_update_file, create_branch and open_pull_request. PyGithub is
synchronous, so each call runs in a worker thread under its own timeout.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional

from github import Auth, Github, UnknownObjectException

from specwright.errors import PublishFailure
from specwright.models.config import HostingConfig

logger = logging.getLogger(__name__)


@dataclass
class RepoFile:
    path: str
    content: str
    sha: str


class GitHubHosting:
    """Thin async facade over a single GitHub repository."""

    def __init__(self, config: HostingConfig, client: Optional[Github] = None):
        if not config.repository:
            raise ValueError("hosting.repository is not configured")
        self.config = config
        self.timeout = config.request_timeout_seconds
        self._client = client
        self._repo = None

    def _get_repo(self):
        if self._repo is None:
            if self._client is None:
                self._client = Github(auth=Auth.Token(self.config.token), timeout=int(self.timeout))
            self._repo = self._client.get_repo(self.config.repository)
        return self._repo

    async def _call(self, fn, *args, **kwargs):
        return await asyncio.wait_for(asyncio.to_thread(fn, *args, **kwargs), timeout=self.timeout)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def read_file(self, path: str, ref: Optional[str] = None) -> Optional[RepoFile]:
        """Return the file at ``path`` or None if it does not exist."""

        def _read():
            repo = self._get_repo()
            try:
                contents = repo.get_contents(path, ref=ref or self.config.base_branch)
            except UnknownObjectException:
                return None
            if isinstance(contents, list):
                return None
            return RepoFile(
                path=contents.path,
                content=contents.decoded_content.decode("utf-8"),
                sha=contents.sha,
            )

        return await self._call(_read)

    async def list_directory(self, path: str, ref: Optional[str] = None) -> list[str]:
        """Return file paths directly under ``path`` (empty if missing)."""

        def _list():
            repo = self._get_repo()
            try:
                contents = repo.get_contents(path, ref=ref or self.config.base_branch)
            except UnknownObjectException:
                return []
            if not isinstance(contents, list):
                contents = [contents]
            return [c.path for c in contents if c.type == "file"]

        return await self._call(_list)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def create_branch(self, name: str, from_branch: Optional[str] = None) -> None:
        base = from_branch or self.config.base_branch

        def _branch():
            repo = self._get_repo()
            try:
                repo.get_branch(name)
                return False
            except UnknownObjectException:
                pass
            head_sha = repo.get_branch(base).commit.sha
            repo.create_git_ref(ref=f"refs/heads/{name}", sha=head_sha)
            return True

        try:
            created = await self._call(_branch)
        except Exception as e:
            raise PublishFailure(f"Could not create branch {name}: {e}", {"branch": name}) from e
        if created:
            logger.info("Created branch %s from %s", name, base)
        else:
            logger.info("Branch %s already exists; reusing it", name)

    async def create_or_update_file(
        self,
        path: str,
        content: str,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> str:
        """Write ``content`` to ``path`` on ``branch``; returns the commit sha.

        When ``sha`` is given the write only succeeds if the file still has
        that blob sha (the API answers 409 otherwise).
        """

        def _write():
            repo = self._get_repo()
            if sha:
                result = repo.update_file(path, message, content, sha, branch=branch)
            else:
                result = repo.create_file(path, message, content, branch=branch)
            return result["commit"].sha

        try:
            commit_sha = await self._call(_write)
        except Exception as e:
            raise PublishFailure(
                f"Could not write {path}: {e}",
                {"path": path, "branch": branch, "status": getattr(e, "status", None)},
            ) from e
        logger.info("Committed %s to %s (%s)", path, branch, commit_sha[:7])
        return commit_sha

    async def open_pull_request(
        self, title: str, body: str, head: str, base: Optional[str] = None, draft: bool = True,
    ) -> str:
        """Open a pull request and return its URL; an open one for ``head`` is reused."""
        owner = self.config.repository.split("/")[0]

        def _open():
            repo = self._get_repo()
            for pr in repo.get_pulls(state="open", head=f"{owner}:{head}"):
                return pr.html_url, False
            pr = repo.create_pull(
                title=title, body=body, head=head,
                base=base or self.config.base_branch, draft=draft,
            )
            return pr.html_url, True

        try:
            url, opened = await self._call(_open)
        except Exception as e:
            raise PublishFailure(f"Could not open pull request: {e}", {"head": head}) from e
        if opened:
            logger.info("Opened %spull request %s", "draft " if draft else "", url)
        else:
            logger.info("Pull request %s is already open for %s", url, head)
        return url
