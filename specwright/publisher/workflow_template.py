"""CI workflow that runs only the generated test of a pull request."""

from __future__ import annotations

from typing import Any

import yaml

BRANCH_MARKER = "-auto-test"


def build_workflow(spec_dir: str = "tests/specs", node_version: str = "20") -> dict[str, Any]:
    """Workflow triggered by generated-test branches; promotes the draft PR when the test passes."""
    return {
        "name": "Auto-generated test",
        "on": {
            "pull_request": {
                "types": ["opened", "synchronize", "reopened"],
            },
        },
        "jobs": {
            "run-generated-test": {
                "name": "Run generated test",
                "if": f"startsWith(github.head_ref, 'feature/') && contains(github.head_ref, '{BRANCH_MARKER}')",
                "runs-on": "ubuntu-latest",
                "steps": [
                    {"name": "Checkout code", "uses": "actions/checkout@v4"},
                    {
                        "name": "Setup Node.js",
                        "uses": "actions/setup-node@v4",
                        "with": {"node-version": node_version, "cache": "npm"},
                    },
                    {"name": "Install dependencies", "run": "npm ci"},
                    {"name": "Install Playwright browsers", "run": "npx playwright install --with-deps chromium"},
                    {
                        "name": "Extract ticket id",
                        "id": "ticket",
                        "run": (
                            "echo \"id=$(echo '${{ github.head_ref }}' "
                            f"| sed -E 's#^feature/(.*){BRANCH_MARKER}.*#\\1#')\" >> \"$GITHUB_OUTPUT\""
                        ),
                    },
                    {
                        "name": "Run generated test",
                        "run": f"npx playwright test {spec_dir} --grep \"${{{{ steps.ticket.outputs.id }}}}\"",
                        "env": {
                            "CI": "true",
                            "VALID_LOGIN_PASSWORD": "${{ secrets.VALID_LOGIN_PASSWORD }}",
                        },
                    },
                    {
                        "name": "Mark pull request ready for review",
                        "if": "success() && github.event.pull_request.draft",
                        "run": "gh pr ready ${{ github.event.pull_request.number }}",
                        "env": {"GH_TOKEN": "${{ secrets.GITHUB_TOKEN }}"},
                    },
                    {
                        "name": "Upload Playwright report",
                        "uses": "actions/upload-artifact@v4",
                        "if": "always()",
                        "with": {"name": "playwright-report", "path": "playwright-report/", "retention-days": 14},
                    },
                ],
            },
        },
    }


def render_workflow(spec_dir: str = "tests/specs") -> str:
    return yaml.dump(build_workflow(spec_dir), default_flow_style=False, sort_keys=False, indent=2)
