"""
GitHub issues used as the sync relay.

Each open issue carrying the sync label holds one serialized event in its
body. Closing the issue acknowledges the event.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
import structlog

from .events import SyncError

logger = structlog.get_logger()


class RelayError(SyncError):
    """The relay could not be listed or a unit could not be closed."""


@dataclass(frozen=True)
class RelayUnit:
    """One pending unit of work on the relay."""

    number: int
    body: Optional[str]
    updated_at: Optional[str]
    unit_id: str

    @classmethod
    def from_issue(cls, issue: Dict[str, Any], owner: str, repo: str) -> "RelayUnit":
        number = int(issue["number"])
        return cls(
            number=number,
            body=issue.get("body"),
            updated_at=issue.get("updated_at"),
            unit_id=f"github:{owner}/{repo}#{number}",
        )


class GitHubRelay:
    """Client for the GitHub issues API acting as the event relay."""

    def __init__(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        label: str = "type:sync",
        page_size: int = 50,
        api_url: str = "https://api.github.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        if not owner or not repo:
            raise ValueError("relay owner and repo are required")
        self.owner = owner
        self.repo = repo
        self.label = label
        self.page_size = page_size
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self.client = httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @classmethod
    def from_settings(cls, settings, transport: Optional[httpx.AsyncBaseTransport] = None) -> "GitHubRelay":
        return cls(
            owner=settings.sync_relay_owner,
            repo=settings.sync_relay_repo,
            token=settings.sync_relay_token,
            label=settings.sync_label,
            page_size=settings.sync_page_size,
            api_url=settings.sync_relay_api_url,
            timeout=settings.sync_request_timeout_seconds,
            transport=transport,
        )

    @property
    def _issues_path(self) -> str:
        return f"/repos/{self.owner}/{self.repo}/issues"

    async def close(self) -> None:
        """Close the HTTP client."""
        await self.client.aclose()

    async def list_pending(self) -> List[RelayUnit]:
        """List open sync units, most recently updated first."""
        params = {
            "state": "open",
            "labels": self.label,
            "per_page": self.page_size,
            "sort": "updated",
            "direction": "desc",
        }
        try:
            response = await self.client.get(self._issues_path, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RelayError(f"failed to list relay units: {e}") from e

        # The issues endpoint also returns pull requests.
        return [
            RelayUnit.from_issue(issue, self.owner, self.repo)
            for issue in response.json()
            if "pull_request" not in issue
        ]

    async def acknowledge(self, unit: RelayUnit) -> None:
        """Close a unit so it is not listed again."""
        try:
            response = await self.client.patch(
                f"{self._issues_path}/{unit.number}", json={"state": "closed"}
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RelayError(f"failed to close relay unit {unit.number}: {e}") from e
