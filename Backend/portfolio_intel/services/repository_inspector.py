import asyncio
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from ..config import Settings
from ..models import RepoSnapshot, RepositorySummary
from .cache import Cache, cached
from .dependency_extractor import DependencyExtractor
from .github_client import GitHubClient, decode_content

logger = logging.getLogger(__name__)

WORKFLOWS_DIR = ".github/workflows"


class RepositoryInspector:
    """
    Collect everything the signal extractor needs for one repository.
    Every sub-fetch is independent and returns None when it fails.
    """

    def __init__(
        self,
        github: GitHubClient,
        settings: Settings,
        cache: Optional[Cache] = None,
        extractor: Optional[DependencyExtractor] = None,
    ):
        self.github = github
        self.settings = settings
        self.cache = cache or Cache()
        self.dependency_extractor = extractor or DependencyExtractor()

    @cached("languages")
    async def fetch_languages(self, repo: RepositorySummary) -> Optional[Dict[str, int]]:
        data = await self.github.get_optional(f"/repos/{repo.full_name}/languages")
        if not isinstance(data, dict):
            return None
        return {str(k): int(v) for k, v in data.items() if isinstance(v, (int, float))}

    @cached("tree")
    async def fetch_tree(self, repo: RepositorySummary) -> Optional[Dict[str, Any]]:
        """Recursive tree: {"paths": [...], "sizes": {...}, "truncated": bool}."""
        data = await self.github.get_optional(
            f"/repos/{repo.full_name}/git/trees/{quote(repo.default_branch, safe='')}",
            {"recursive": "1"},
        )
        if not isinstance(data, dict) or not isinstance(data.get("tree"), list):
            return None
        paths, sizes = [], {}
        for entry in data["tree"]:
            if entry.get("type") != "blob" or not entry.get("path"):
                continue
            paths.append(entry["path"])
            if entry.get("size") is not None:
                sizes[entry["path"]] = entry["size"]
        return {"paths": paths, "sizes": sizes, "truncated": bool(data.get("truncated"))}

    async def fetch_shallow_listing(self, repo: RepositorySummary) -> Optional[Dict[str, Any]]:
        """Root directory listing, used when the tree API is unavailable."""
        data = await self.github.get_optional(f"/repos/{repo.full_name}/contents")
        if not isinstance(data, list):
            return None
        paths, sizes = [], {}
        dirs = set()
        for entry in data:
            name = entry.get("path") or entry.get("name")
            if not name:
                continue
            if entry.get("type") == "dir":
                dirs.add(name)
                paths.append(f"{name}/")
                continue
            paths.append(name)
            if entry.get("size") is not None:
                sizes[name] = entry["size"]

        if ".github" in dirs:
            workflows = await self.github.get_optional(f"/repos/{repo.full_name}/contents/{WORKFLOWS_DIR}")
            if isinstance(workflows, list):
                paths.extend(w["path"] for w in workflows if w.get("path"))
        return {"paths": paths, "sizes": sizes, "truncated": False}

    async def fetch_paths(self, repo: RepositorySummary) -> Optional[Dict[str, Any]]:
        tree = await self.fetch_tree(repo)
        if tree is not None:
            return tree
        logger.debug(f"Tree unavailable for {repo.full_name}; using shallow listing")
        return await self.fetch_shallow_listing(repo)

    @cached("blob")
    async def fetch_file(self, repo: RepositorySummary, path: str) -> Optional[str]:
        payload = await self.github.get_optional(
            f"/repos/{repo.full_name}/contents/{quote(path)}",
            {"ref": repo.default_branch},
        )
        return decode_content(payload)

    @cached("readme")
    async def fetch_readme(self, repo: RepositorySummary) -> Optional[str]:
        return decode_content(await self.github.get_optional(f"/repos/{repo.full_name}/readme"))

    @cached("commits")
    async def fetch_commit_count(self, repo: RepositorySummary) -> Optional[int]:
        """Commits on the most recent page only; an activity proxy."""
        data = await self.github.get_optional(f"/repos/{repo.full_name}/commits", {"per_page": 100})
        if not isinstance(data, list):
            return None
        return len(data)

    def select_manifests(self, paths: List[str], sizes: Dict[str, int]) -> List[str]:
        wanted = [
            p for p in paths
            if self.dependency_extractor.wants(p) and sizes.get(p, 0) <= self.settings.max_file_bytes
        ]
        # shallow paths first: root manifests describe the project best
        wanted.sort(key=lambda p: (p.count("/"), p))
        return wanted[: self.settings.max_manifest_files]

    async def fetch_manifests(self, repo: RepositorySummary, listing: Optional[Dict[str, Any]]) -> Dict[str, str]:
        if not listing:
            return {}
        targets = self.select_manifests(listing.get("paths", []), listing.get("sizes", {}))
        texts = await asyncio.gather(*(self.fetch_file(repo, p) for p in targets))
        return {path: text for path, text in zip(targets, texts) if text}

    async def _collect(self, repo: RepositorySummary) -> RepoSnapshot:
        languages, listing, readme, commits = await asyncio.gather(
            self.fetch_languages(repo),
            self.fetch_paths(repo),
            self.fetch_readme(repo),
            self.fetch_commit_count(repo),
        )
        files = await self.fetch_manifests(repo, listing)
        return RepoSnapshot(
            repo=repo,
            languages=languages,
            paths=listing.get("paths") if listing else None,
            files=files,
            readme=readme,
            commit_count=commits,
            tree_truncated=bool(listing and listing.get("truncated")),
        )

    async def inspect(self, repo: RepositorySummary) -> RepoSnapshot:
        try:
            return await asyncio.wait_for(self._collect(repo), timeout=self.settings.repo_timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(f"Inspection of {repo.full_name} timed out; analysing without it")
            return RepoSnapshot.empty(repo)
