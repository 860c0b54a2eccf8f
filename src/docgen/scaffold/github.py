"""GitHub REST client used by the repository scaffolder.

Only the two calls the pipeline needs: create a repository and create a
file through the contents API. Every failure surfaces as
``RemoteServiceError``; rate-limited responses carry the host's advertised
wait in ``retry_after_seconds``.

Example usage:
    >>> from docgen.config import GitHubConfig
    >>> async with GitHubClient(GitHubConfig(token="ghp_...", owner="acme")) as github:
    ...     repo = await github.create_repository("todo-app", "A todo app", private=True)
    ...     await github.create_file(repo, "src/README.md", "# src", "Add src/README.md")
"""

from __future__ import annotations

import base64
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import httpx
import structlog

from docgen.config import GitHubConfig
from docgen.errors import RemoteServiceError
from docgen.scaffold.rate_limiter import parse_rate_limit_headers

logger = structlog.get_logger(__name__)

GITHUB_API_VERSION = "2022-11-28"


def _contents_path(path: str) -> str:
    """Quote a repository-relative file path for the contents endpoint.

    Raises:
        RemoteServiceError: If the path is absolute or has an empty, ``.``
            or ``..`` segment.
    """
    segments = path.replace("\\", "/").split("/")
    if any(segment in ("", ".", "..") for segment in segments):
        logger.error("github_unsafe_path", path=path)
        raise RemoteServiceError(f"Refusing to write outside the repository: {path!r}")
    return quote(path)


@dataclass(frozen=True)
class RepositoryHandle:
    """A repository created on the host.

    Attributes:
        owner: Owning user or organization login
        name: Repository name
        full_name: ``owner/name``
        html_url: Browser URL of the repository
        default_branch: Branch commits land on
    """

    owner: str
    name: str
    full_name: str
    html_url: str
    default_branch: str = "main"


class GitHubClient:
    """Async client for the GitHub REST API.

    Attributes:
        config: GitHub configuration (token, owner, API URL)
    """

    def __init__(self, config: GitHubConfig) -> None:
        self.config = config
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": GITHUB_API_VERSION,
            "User-Agent": "docgen",
        }
        if config.token:
            headers["Authorization"] = f"Bearer {config.token}"
        self._client = httpx.AsyncClient(
            base_url=config.api_url,
            headers=headers,
            timeout=httpx.Timeout(config.timeout_seconds),
        )

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def create_repository(
        self,
        name: str,
        description: str,
        private: bool = True,
        auto_init: bool = False,
    ) -> RepositoryHandle:
        """Create a repository for the configured owner.

        Args:
            name: Repository name.
            description: Repository description.
            private: Create as a private repository.
            auto_init: Let the host create an initial commit.

        Returns:
            Handle of the created repository.

        Raises:
            RemoteServiceError: On authentication failure, rate limiting,
                name collision (HTTP 422) or transport failure.
        """
        if not self.config.token:
            raise RemoteServiceError("GitHub token is not configured")

        if self.config.owner_is_org:
            if not self.config.owner:
                raise RemoteServiceError("GitHub organization owner is not configured")
            endpoint = f"/orgs/{quote(self.config.owner)}/repos"
        else:
            endpoint = "/user/repos"

        payload = {
            "name": name,
            "description": description,
            "private": private,
            "auto_init": auto_init,
        }
        response = await self._request("POST", endpoint, json=payload)

        if response.status_code == 422:
            raise RemoteServiceError(
                f"Repository {name} could not be created: {_error_message(response)}",
                status_code=422,
            )
        self._raise_for_status(response, f"create repository {name}")

        data = response.json()
        handle = RepositoryHandle(
            owner=data["owner"]["login"],
            name=data["name"],
            full_name=data["full_name"],
            html_url=data["html_url"],
            default_branch=data.get("default_branch") or "main",
        )
        logger.info(
            "github_repository_created",
            full_name=handle.full_name,
            private=private,
        )
        return handle

    async def create_file(self, repo: RepositoryHandle, path: str, content: str, message: str) -> str:
        """Create a file with one commit through the contents API.

        Args:
            repo: Target repository.
            path: Repository-relative file path.
            content: File text (UTF-8).
            message: Commit message.

        Returns:
            SHA of the created commit.

        Raises:
            RemoteServiceError: On any failed response or transport failure,
                or if ``path`` is not a plain repository-relative path.
        """
        endpoint = (
            f"/repos/{quote(repo.owner)}/{quote(repo.name)}/contents/{_contents_path(path)}"
        )
        payload = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
        }
        response = await self._request("PUT", endpoint, json=payload)
        self._raise_for_status(response, f"create file {path}")

        sha = response.json().get("commit", {}).get("sha", "")
        logger.debug("github_file_created", repository=repo.full_name, path=path, sha=sha)
        return sha

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        try:
            return await self._client.request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("github_timeout", endpoint=endpoint)
            raise RemoteServiceError(f"GitHub request timed out: {method} {endpoint}") from e
        except httpx.HTTPError as e:
            logger.error("github_transport_error", endpoint=endpoint, error=str(e))
            raise RemoteServiceError(f"GitHub request failed: {e}") from e

    def _raise_for_status(self, response: httpx.Response, action: str) -> None:
        if response.is_success:
            return

        info = parse_rate_limit_headers(response.status_code, response.headers)
        logger.error(
            "github_api_error",
            action=action,
            status_code=response.status_code,
            retry_after=info.retry_after_seconds,
            remaining=info.rate_limit_remaining,
        )
        raise RemoteServiceError(
            f"GitHub could not {action}: HTTP {response.status_code}: {_error_message(response)}",
            status_code=response.status_code,
            retry_after_seconds=info.retry_after_seconds,
        )


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return response.text[:200]
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return response.text[:200]
