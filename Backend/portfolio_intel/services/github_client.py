import base64
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..config import GITHUB_ACCEPT_HEADER, Settings
from ..errors import UpstreamUnavailable
from ..models import GitHubUser, RepositorySummary

logger = logging.getLogger(__name__)

USER_ENDPOINT = "/users/{username}"
USER_REPOS_ENDPOINT = "/users/{username}/repos"


class GitHubClient:
    """
    Thin async wrapper over the GitHub REST API.

    ``get_user`` is the one call allowed to fail the pipeline; every other
    read goes through ``get_optional`` and turns failures into ``None``.
    """

    def __init__(self, settings: Settings, client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        if client is None:
            client = httpx.AsyncClient(base_url=settings.github_api, timeout=settings.request_timeout_seconds)
        client.headers.update(self.headers())
        self._client = client

    def headers(self) -> Dict[str, str]:
        headers = {"Accept": GITHUB_ACCEPT_HEADER, "X-GitHub-Api-Version": "2022-11-28"}
        if self.settings.github_token:
            headers["Authorization"] = f"Bearer {self.settings.github_token}"
        return headers

    async def aclose(self) -> None:
        await self._client.aclose()

    async def get_optional(self, path: str, params: Optional[Dict[str, Any]] = None) -> Optional[Any]:
        try:
            response = await self._client.get(path, params=params)
        except httpx.HTTPError as e:
            logger.debug(f"GET {path} failed: {e}")
            return None
        if response.status_code != 200:
            logger.debug(f"GET {path} -> {response.status_code}")
            return None
        try:
            return response.json()
        except ValueError:
            logger.debug(f"GET {path} returned non-JSON body")
            return None

    # ---------- Lister ----------
    async def get_user(self, username: str) -> GitHubUser:
        path = USER_ENDPOINT.format(username=username)
        try:
            response = await self._client.get(path)
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"GitHub unreachable: {e}") from e

        if response.status_code == 404:
            raise UpstreamUnavailable(f"GitHub user '{username}' not found", status=404)
        if response.status_code == 403:
            raise UpstreamUnavailable("GitHub rate limit reached", status=403)
        if response.status_code != 200:
            raise UpstreamUnavailable(f"GitHub user lookup failed ({response.status_code})", status=response.status_code)
        try:
            payload = response.json()
        except ValueError as e:
            raise UpstreamUnavailable("GitHub returned an unreadable user record") from e
        if not isinstance(payload, dict):
            raise UpstreamUnavailable("GitHub returned an unreadable user record")
        return GitHubUser.from_api(payload)

    async def list_repositories(self, username: str) -> List[RepositorySummary]:
        """
        Newest-updated first, at most ``max_repo_pages`` pages. A failed page
        ends pagination; what was already fetched is the result.
        """
        per_page = self.settings.repos_per_page
        path = USER_REPOS_ENDPOINT.format(username=username)
        repos: List[RepositorySummary] = []

        for page in range(1, self.settings.max_repo_pages + 1):
            chunk = await self.get_optional(
                path,
                {"type": "owner", "sort": "updated", "direction": "desc", "per_page": per_page, "page": page},
            )
            if not isinstance(chunk, list):
                if page > 1:
                    logger.warning(f"Repo page {page} for {username} unavailable; keeping {len(repos)} repos")
                break
            repos.extend(RepositorySummary.from_api(r) for r in chunk if isinstance(r, dict))
            logger.info(f"Page {page}: found {len(chunk)} repositories")
            if len(chunk) < per_page:
                break

        repos.sort(key=lambda r: r.updated_at, reverse=True)
        return repos


def decode_content(payload: Optional[Dict[str, Any]]) -> Optional[str]:
    """Decode a contents-API payload (base64) to text."""
    if not isinstance(payload, dict):
        return None
    content = payload.get("content")
    if not content or payload.get("encoding") != "base64":
        return None
    try:
        return base64.b64decode(content).decode("utf-8", errors="ignore")
    except ValueError:
        return None
