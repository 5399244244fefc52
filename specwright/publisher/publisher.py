"""Artifact publishing: puts the generated test into the right spec file via a draft PR."""

from __future__ import annotations

import asyncio
import logging
import re
import time
from typing import Optional

from specwright.errors import PublishFailure
from specwright.hosting.github_hosting import GitHubHosting, RepoFile
from specwright.models.config import ExecutionConfig
from specwright.models.synthesis import GeneratedTest, Interaction, PublishResult
from specwright.publisher.workflow_template import BRANCH_MARKER, render_workflow
from specwright.synthesizer.renderer import FILE_HEADER

logger = logging.getLogger(__name__)

# Sub-sections share the file of the page they live on
CONTEXT_FILES: dict[str, str] = {
    "home": "homePage.spec.ts",
    "menu": "homePage.spec.ts",
    "search": "homePage.spec.ts",
    "cart": "homePage.spec.ts",
    "ordersHub": "ordersHub.spec.ts",
    "pastOrders": "ordersHub.spec.ts",
    "signup": "signup.spec.ts",
}
DEFAULT_FILE = "homePage.spec.ts"

# Number of leading significant title words compared by the duplicate check
TITLE_WORDS_COMPARED = 4
MIN_TITLE_WORDS = 3

_STOP_WORDS = frozenset({
    "a", "an", "the", "and", "or", "of", "on", "in", "to", "for", "with", "is",
    "are", "be", "user", "users", "should", "can", "when", "then", "that", "it",
})

_TEST_TITLE_RE = re.compile(r"\btest(?:\.(?:only|skip|fixme))?\(\s*(['\"`])((?:\\.|(?!\1).)*)\1", re.DOTALL)


def normalize_ticket_id(ticket_id: str) -> str:
    """'qa 123', 'QA_123' and 'qa-123' all normalize to 'QA-123'."""
    return re.sub(r"[\s_]+", "-", ticket_id.strip()).upper()


def existing_test_titles(source: str) -> list[str]:
    return [m.group(2) for m in _TEST_TITLE_RE.finditer(source)]


def significant_words(title: str, ticket_id: Optional[str] = None) -> list[str]:
    text = title
    if ticket_id:
        text = re.sub(re.escape(ticket_id), " ", text, flags=re.IGNORECASE)
    # Drop leading ticket-like tokens (ABC-123)
    text = re.sub(r"\b[A-Za-z]+[-_ ]\d+\b", " ", text)
    words = re.findall(r"[a-z0-9]+", text.lower())
    return [w for w in words if w not in _STOP_WORDS]


def find_duplicate(source: str, title: str, ticket_id: Optional[str]) -> Optional[str]:
    """Return the title of an existing test that duplicates the new one, if any."""
    titles = existing_test_titles(source)
    if ticket_id:
        nid = normalize_ticket_id(ticket_id)
        pattern = re.compile(rf"(?<![A-Z0-9]){re.escape(nid)}(?![0-9])")
        for existing in titles:
            if pattern.search(normalize_ticket_id(existing)):
                return existing

    new_words = significant_words(title, ticket_id)[:TITLE_WORDS_COMPARED]
    if len(new_words) >= MIN_TITLE_WORDS:
        for existing in titles:
            if significant_words(existing)[:TITLE_WORDS_COMPARED] == new_words:
                return existing
    return None


def branch_name(ticket_id: Optional[str], timestamp: Optional[int] = None) -> str:
    """One branch per ticket, so a repeat run lands on the open pull request."""
    if ticket_id:
        slug = re.sub(r"[^A-Za-z0-9-]+", "-", normalize_ticket_id(ticket_id)).strip("-")
        return f"feature/{slug}{BRANCH_MARKER}"
    return f"feature/manual{BRANCH_MARKER}-{timestamp or int(time.time())}"


class ArtifactPublisher:
    """Writes a generated test at most once per ticket per spec file."""

    def __init__(self, config: ExecutionConfig, hosting: Optional[GitHubHosting]):
        self.config = config
        self.hosting = hosting

    def target_file(self, context: str) -> str:
        name = CONTEXT_FILES.get(context, DEFAULT_FILE)
        return f"{self.config.hosting.spec_dir.rstrip('/')}/{name}"

    async def _read_latest(self, path: str, branch: str) -> Optional[RepoFile]:
        """The file as the ticket branch has it, else as the base branch has it."""
        on_branch = await self.hosting.read_file(path, ref=branch)
        if on_branch is not None:
            return on_branch
        return await self.hosting.read_file(path)

    async def publish(
        self,
        test: GeneratedTest,
        context: str,
        ticket_id: Optional[str],
        ticket_title: Optional[str],
        interactions: Optional[list[Interaction]] = None,
        dry_run: bool = False,
    ) -> PublishResult:
        file_path = self.target_file(context)
        branch = branch_name(ticket_id)
        message = f"{ticket_id + ': ' if ticket_id else ''}add generated test '{test.title}'"

        if self.hosting is None:
            logger.warning("No hosting repository configured; returning manual commands")
            return PublishResult(
                status="failed", file_path=file_path, mode="create", branch=branch,
                reason="No hosting repository configured",
                manual_commands=manual_commands(file_path, branch, message, test, None, self.config),
            )

        workflow_path = self.config.hosting.workflow_path
        try:
            existing, existing_workflow = await asyncio.gather(
                self._read_latest(file_path, branch),
                self._read_latest(workflow_path, branch),
            )
        except Exception as e:
            logger.error("Could not read %s: %s", file_path, e)
            return PublishResult(
                status="failed", file_path=file_path, branch=branch, reason=str(e),
                manual_commands=manual_commands(file_path, branch, message, test, None, self.config),
            )

        if existing is not None:
            duplicate = find_duplicate(existing.content, test.title, ticket_id)
            if duplicate is not None:
                logger.info("Skipping publish: %s already contains '%s'", file_path, duplicate)
                return PublishResult(
                    status="skipped", file_path=file_path,
                    reason=f"Duplicate of existing test '{duplicate}'",
                )

        mode = "append" if existing is not None else "create"
        content = compose_content(existing, test)
        if dry_run:
            logger.info("Dry run: would %s %s on %s", mode, file_path, branch)
            return PublishResult(status="dry-run", file_path=file_path, mode=mode, branch=branch)

        try:
            await self.hosting.create_branch(branch)
            await self.hosting.create_or_update_file(
                file_path, content, message, branch, sha=existing.sha if existing else None,
            )
            if existing_workflow is None:
                await self.hosting.create_or_update_file(
                    workflow_path, render_workflow(self.config.hosting.spec_dir),
                    "Add workflow for generated tests", branch,
                )
            pr_url = await self.hosting.open_pull_request(
                title=f"{ticket_id}: {ticket_title or test.title}" if ticket_id else test.title,
                body=pull_request_body(test, file_path, mode, ticket_id, interactions),
                head=branch,
                draft=self.config.hosting.draft,
            )
        except PublishFailure as e:
            logger.error("Publishing failed: %s", e)
            return PublishResult(
                status="failed", file_path=file_path, mode=mode, branch=branch, reason=str(e),
                manual_commands=manual_commands(file_path, branch, message, test, existing, self.config),
            )

        return PublishResult(
            status="appended" if mode == "append" else "created",
            file_path=file_path, mode=mode, branch=branch, pull_request_url=pr_url,
        )


def compose_content(existing: Optional[RepoFile], test: GeneratedTest) -> str:
    if existing is None:
        return FILE_HEADER + "\n" + test.code
    return existing.content.rstrip("\n") + "\n\n" + test.code


def pull_request_body(
    test: GeneratedTest,
    file_path: str,
    mode: str,
    ticket_id: Optional[str],
    interactions: Optional[list[Interaction]],
) -> str:
    lines = ["## Generated end-to-end test", ""]
    if ticket_id:
        lines.append(f"**Ticket:** {ticket_id}")
    lines.append(f"**Test:** {test.title}")
    lines.append(f"**File:** `{file_path}` ({mode})")
    lines.append(f"**Tags:** {' '.join(test.tags)}")
    lines.append("")
    if interactions:
        lines += ["| # | Kind | Element | Resolved by | Method |", "|---|---|---|---|---|"]
        for i, step in enumerate(interactions, 1):
            lines.append(f"| {i} | {step.kind} | {step.step.element} | {step.found_by} | `{step.method_name}` |")
        lines.append("")
    if test.stubs:
        lines += ["### Page-object methods to add", "", "```ts", test.stubs.rstrip(), "```", ""]
    lines.append("The draft is marked ready for review when the generated test passes in CI.")
    return "\n".join(lines)


def manual_commands(
    file_path: str,
    branch: str,
    message: str,
    test: GeneratedTest,
    existing: Optional[RepoFile],
    config: ExecutionConfig,
) -> list[str]:
    """Shell commands that reproduce the change by hand."""
    directory = file_path.rsplit("/", 1)[0] if "/" in file_path else "."
    commands = [
        f"git fetch origin {config.hosting.base_branch}",
        f"git checkout -b {branch} origin/{config.hosting.base_branch}",
        f"mkdir -p {directory}",
    ]
    if existing is None:
        commands.append(f"test -f {file_path} || cat > {file_path} <<'EOF'\n{FILE_HEADER}EOF")
    commands.append(f"cat >> {file_path} <<'EOF'\n\n{test.code}EOF")
    commands += [
        f"git add {file_path}",
        f"git commit -m \"{message.replace(chr(34), chr(39))}\"",
        f"git push -u origin {branch}",
        f"gh pr create --draft --base {config.hosting.base_branch} --head {branch} "
        f"--title \"{test.title.replace(chr(34), chr(39))}\"",
    ]
    return commands
