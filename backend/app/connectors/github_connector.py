import base64
import httpx
import logging
from typing import Dict, Any, List, Optional
from datetime import datetime

import app.logging_config  # noqa: F401  (registers Logger.trace)
from app.config import settings
from app.connectors.exceptions import GitHubAPIError

log = logging.getLogger(__name__)

CONTRIBUTIONS_QUERY = """
query($username: String!, $from: DateTime!, $to: DateTime!) {
  user(login: $username) {
    contributionsCollection(from: $from, to: $to) {
      totalCommitContributions
      totalIssueContributions
      totalPullRequestContributions
      totalPullRequestReviewContributions
      totalRepositoriesWithContributedCommits
      contributionCalendar {
        totalContributions
        weeks {
          contributionDays {
            date
            contributionCount
            color
            weekday
          }
        }
      }
    }
  }
}
"""


class GitHubConnector:
    """
    Connector for the GitHub REST and GraphQL APIs, authenticated with a user's
    OAuth access token.

    Covers the Git Data API (blobs, trees, commits, refs) used for backdated
    multi-file commits, the Contents API used for single-file commits and
    repository browsing, and the contribution calendar query.
    """

    def __init__(self, config: Dict[str, Any]):
        self.config = config
        self.access_token = self.config["access_token"]  # Already decrypted by the caller
        self.base_url = self.config.get("api_url", settings.github_api_url).rstrip("/")
        self.graphql_url = self.config.get("graphql_url", settings.github_graphql_url)
        self.client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.config.get("timeout", settings.github_timeout_seconds),
            follow_redirects=True
        )
        self.headers = {
            "Authorization": f"Bearer {self.access_token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28"
        }
        log.debug(f"GitHub connector initialized with base URL: {self.base_url}")

    async def aclose(self) -> None:
        await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        """Helper to make authenticated requests; raises GitHubAPIError on failure."""
        try:
            log.trace(f"GitHub API {method} {path}")
            response = await self.client.request(method, path, headers=self.headers, **kwargs)
            log.trace(f"GitHub API response for {path}: {response.status_code}")
            response.raise_for_status()
            if response.status_code == 204 or not response.content:
                return None
            return response.json()
        except httpx.HTTPStatusError as e:
            status = e.response.status_code
            try:
                detail = e.response.json().get("message", e.response.text)
            except ValueError:
                detail = e.response.text
            log.error(f"GitHub HTTP error for {method} {path}: {status} - {detail}")
            raise GitHubAPIError(f"GitHub API {method} {path} failed ({status}): {detail}", status_code=status) from e
        except httpx.RequestError as e:
            log.error(f"GitHub request error for {method} {path}: {e}")
            raise GitHubAPIError(f"GitHub API {method} {path} unreachable: {e}") from e

    # Users and repositories

    async def get_authenticated_user(self) -> Dict[str, Any]:
        return await self._request("GET", "/user")

    async def list_repositories(self, per_page: int = 100) -> List[Dict[str, Any]]:
        """Repositories the token owner can push to, most recently updated first."""
        repos = await self._request(
            "GET", "/user/repos",
            params={"per_page": min(per_page, 100), "sort": "updated", "affiliation": "owner,collaborator"}
        )
        log.info(f"Fetched {len(repos)} repositories from GitHub")
        return repos

    async def get_repository(self, owner: str, repo: str) -> Dict[str, Any]:
        return await self._request("GET", f"/repos/{owner}/{repo}")

    async def get_default_branch(self, owner: str, repo: str) -> str:
        repository = await self.get_repository(owner, repo)
        return repository.get("default_branch") or "main"

    # Git Data API

    async def get_branch_head(self, owner: str, repo: str, branch: str) -> str:
        """SHA of the commit the branch currently points to."""
        ref = await self._request("GET", f"/repos/{owner}/{repo}/git/ref/heads/{branch}")
        return ref["object"]["sha"]

    async def get_commit(self, owner: str, repo: str, sha: str) -> Dict[str, Any]:
        return await self._request("GET", f"/repos/{owner}/{repo}/git/commits/{sha}")

    async def create_blob(self, owner: str, repo: str, content: str) -> str:
        blob = await self._request(
            "POST", f"/repos/{owner}/{repo}/git/blobs",
            json={"content": content, "encoding": "utf-8"}
        )
        return blob["sha"]

    async def create_tree(self, owner: str, repo: str, base_tree: str, blobs: Dict[str, str]) -> str:
        """Create a tree layering `blobs` (path -> blob SHA) over `base_tree`."""
        tree = await self._request(
            "POST", f"/repos/{owner}/{repo}/git/trees",
            json={
                "base_tree": base_tree,
                "tree": [
                    {"path": path, "mode": "100644", "type": "blob", "sha": sha}
                    for path, sha in blobs.items()
                ]
            }
        )
        return tree["sha"]

    async def create_commit(
        self,
        owner: str,
        repo: str,
        message: str,
        tree_sha: str,
        parents: List[str],
        author: Dict[str, str],
        committer: Optional[Dict[str, str]] = None
    ) -> Dict[str, Any]:
        """Create a commit object. `author`/`committer` carry name, email and ISO-8601 date."""
        return await self._request(
            "POST", f"/repos/{owner}/{repo}/git/commits",
            json={
                "message": message,
                "tree": tree_sha,
                "parents": parents,
                "author": author,
                "committer": committer or author
            }
        )

    async def update_branch_ref(self, owner: str, repo: str, branch: str, sha: str, force: bool = True) -> Dict[str, Any]:
        return await self._request(
            "PATCH", f"/repos/{owner}/{repo}/git/refs/heads/{branch}",
            json={"sha": sha, "force": force}
        )

    # Contents API

    async def list_directory(self, owner: str, repo: str, path: str = "", ref: Optional[str] = None) -> List[Dict[str, Any]]:
        """Entries of a directory, or an empty list when `path` is a file."""
        params = {"ref": ref} if ref else None
        data = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path.strip('/')}", params=params)
        if not isinstance(data, list):
            return []
        return [
            {
                "name": item["name"],
                "path": item["path"],
                "type": item["type"],
                "sha": item["sha"],
                "size": item.get("size", 0)
            }
            for item in data
        ]

    async def get_file_content(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> Dict[str, Any]:
        """Decoded text of a file. Directories and non-file entries raise a 400 GitHubAPIError."""
        params = {"ref": ref} if ref else None
        data = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path.strip('/')}", params=params)
        if isinstance(data, list):
            raise GitHubAPIError(f"Path '{path}' in {owner}/{repo} is a directory, not a file", status_code=400)
        if data.get("type") != "file" or not isinstance(data.get("content"), str):
            raise GitHubAPIError(f"Path '{path}' in {owner}/{repo} has no file content", status_code=400)
        content = base64.b64decode(data["content"]).decode("utf-8", errors="replace")
        log.trace(f"Read {len(content)} characters from {owner}/{repo}/{data['path']}")
        return {
            "content": content,
            "sha": data["sha"],
            "name": data["name"],
            "path": data["path"],
            "size": data.get("size", 0)
        }

    async def get_file_sha(self, owner: str, repo: str, path: str, ref: Optional[str] = None) -> Optional[str]:
        """Blob SHA of an existing file, or None when the file does not exist yet."""
        params = {"ref": ref} if ref else None
        try:
            data = await self._request("GET", f"/repos/{owner}/{repo}/contents/{path}", params=params)
        except GitHubAPIError as e:
            if e.status_code == 404:
                log.debug(f"File {path} does not exist in {owner}/{repo}, it will be created")
                return None
            raise
        if isinstance(data, list):
            raise GitHubAPIError(f"Path '{path}' in {owner}/{repo} is a directory", status_code=422)
        return data.get("sha")

    async def put_file(
        self,
        owner: str,
        repo: str,
        path: str,
        content: str,
        message: str,
        sha: Optional[str] = None,
        author: Optional[Dict[str, str]] = None,
        committer: Optional[Dict[str, str]] = None,
        branch: Optional[str] = None
    ) -> Dict[str, Any]:
        """Create or update a single file in one commit; returns the `commit` object."""
        payload: Dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii")
        }
        if sha:
            payload["sha"] = sha
        if author:
            payload["author"] = author
        if committer:
            payload["committer"] = committer
        if branch:
            payload["branch"] = branch
        data = await self._request("PUT", f"/repos/{owner}/{repo}/contents/{path}", json=payload)
        return data["commit"]

    # GraphQL

    async def fetch_contributions(self, username: str, from_dt: datetime, to_dt: datetime) -> Dict[str, Any]:
        """Raw `contributionsCollection` for a user between two instants."""
        log.info(f"Fetching contributions for {username} from {from_dt.date()} to {to_dt.date()}")
        data = await self._request(
            "POST", self.graphql_url,
            json={
                "query": CONTRIBUTIONS_QUERY,
                "variables": {
                    "username": username,
                    "from": from_dt.isoformat(),
                    "to": to_dt.isoformat()
                }
            }
        )
        errors = data.get("errors") if data else None
        if errors:
            error = errors[0]
            status = 404 if error.get("type") == "NOT_FOUND" else 502
            raise GitHubAPIError(f"GitHub GraphQL error: {error.get('message', 'unknown error')}", status_code=status)
        user = (data.get("data") or {}).get("user")
        if not user or not user.get("contributionsCollection"):
            raise GitHubAPIError(f"GitHub user '{username}' or their contributions not found", status_code=404)
        return user["contributionsCollection"]
