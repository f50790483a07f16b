import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol

import httpx
import structlog
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from woc.core.config import settings
from woc.core.exceptions import UpstreamError
from woc.db.models.project import Project
from woc.db.models.pull_request import PullRequestStatus

logger = structlog.get_logger()

# GitHub caps per_page for the pulls endpoint.
GITHUB_MAX_PAGE_SIZE = 100

REPO_URL_PATTERN = re.compile(
    r"github\.com[/:](?P<owner>[A-Za-z0-9_.-]+)/(?P<name>[A-Za-z0-9_.-]+?)(?:\.git)?/?$"
)


@dataclass
class SourcePullRequest:
    """A pull request as reported by the external source."""

    external_id: int
    number: int
    title: str
    html_url: str | None
    author_login: str | None
    status: PullRequestStatus
    created_at: datetime
    merged_at: datetime | None = None
    closed_at: datetime | None = None
    additions: int = 0
    deletions: int = 0
    raw: dict[str, Any] = field(default_factory=dict)


class PullRequestSource(Protocol):
    """Anything that can list a project's pull requests with diff stats."""

    async def list_pull_requests(self, project: Project) -> list[SourcePullRequest]: ...


def parse_repo_url(url: str) -> tuple[str, str]:
    """Extract (owner, name) from a GitHub repository URL."""
    match = REPO_URL_PATTERN.search(url.strip())
    if not match:
        raise UpstreamError(f"Not a GitHub repository URL: {url}")
    return match.group("owner"), match.group("name")


def _parse_timestamp(value: str | None) -> datetime | None:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _status_from_payload(payload: dict) -> PullRequestStatus:
    if payload.get("merged_at") or payload.get("merged"):
        return PullRequestStatus.MERGED
    if payload.get("state") == "closed":
        return PullRequestStatus.CLOSED
    return PullRequestStatus.OPEN


def to_source_pull_request(payload: dict) -> SourcePullRequest:
    """Map a GitHub pull request payload onto the fields the store keeps."""
    return SourcePullRequest(
        external_id=int(payload["id"]),
        number=int(payload["number"]),
        title=payload.get("title") or "",
        html_url=payload.get("html_url"),
        author_login=(payload.get("user") or {}).get("login"),
        status=_status_from_payload(payload),
        created_at=_parse_timestamp(payload["created_at"]),
        merged_at=_parse_timestamp(payload.get("merged_at")),
        closed_at=_parse_timestamp(payload.get("closed_at")),
        additions=max(int(payload.get("additions") or 0), 0),
        deletions=max(int(payload.get("deletions") or 0), 0),
        raw={
            "head_ref": (payload.get("head") or {}).get("ref"),
            "base_ref": (payload.get("base") or {}).get("ref"),
            "changed_files": payload.get("changed_files"),
            "commits": payload.get("commits"),
            "labels": [label.get("name") for label in payload.get("labels") or []],
            "updated_at": payload.get("updated_at"),
        },
    )


_retry_policy = retry(
    retry=retry_if_exception_type(httpx.HTTPError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
)


class GitHubService:
    """Service for interacting with the GitHub API."""

    def __init__(
        self,
        token: str | None = None,
        base_url: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url or settings.github_api_base_url
        self.headers = {"Accept": "application/vnd.github.v3+json"}
        token = token or settings.github_token
        if token:
            self.headers["Authorization"] = f"token {token}"
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            transport=self.transport,
            timeout=30.0,
        )

    @_retry_policy
    async def get_pull_requests(
        self,
        owner: str,
        name: str,
        state: str = "all",
        per_page: int = 100,
        page: int = 1,
    ) -> list[dict] | None:
        """Fetch one page of pull requests for a repository."""
        async with self._client() as client:
            response = await client.get(
                f"/repos/{owner}/{name}/pulls",
                params={"state": state, "per_page": per_page, "page": page},
            )
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()

    @_retry_policy
    async def get_pull_request(self, owner: str, name: str, number: int) -> dict:
        """Fetch a single pull request; the list endpoint omits diff stats."""
        async with self._client() as client:
            response = await client.get(f"/repos/{owner}/{name}/pulls/{number}")
            response.raise_for_status()
            return response.json()


class GitHubPullRequestSource:
    """Pull request source backed by the GitHub REST API."""

    def __init__(self, github: GitHubService | None = None, per_page: int | None = None) -> None:
        self.github = github or GitHubService()
        self.per_page = min(per_page or settings.github_page_size, GITHUB_MAX_PAGE_SIZE)

    async def list_pull_requests(self, project: Project) -> list[SourcePullRequest]:
        owner, name = parse_repo_url(project.github_repo_url)
        try:
            return await self._fetch_all(owner, name)
        except (httpx.HTTPError, RetryError) as exc:
            logger.error(
                "GitHub request failed",
                project_id=project.id,
                repository=f"{owner}/{name}",
                error=str(exc),
            )
            raise UpstreamError(f"Could not fetch pull requests for {owner}/{name}") from exc

    async def _fetch_all(self, owner: str, name: str) -> list[SourcePullRequest]:
        pulls: list[SourcePullRequest] = []
        page = 1
        while True:
            batch = await self.github.get_pull_requests(owner, name, per_page=self.per_page, page=page)
            if batch is None:
                raise UpstreamError(f"Repository {owner}/{name} not found on GitHub")

            for summary in batch:
                detail = await self.github.get_pull_request(owner, name, summary["number"])
                pulls.append(to_source_pull_request(detail))

            if len(batch) < self.per_page:
                break
            page += 1

        logger.info("Fetched pull requests from GitHub", repository=f"{owner}/{name}", count=len(pulls))
        return pulls
