import asyncio
import logging
from datetime import datetime, timezone
from typing import List, Optional

from ..analysis.aggregator import aggregate
from ..analysis.recommendations import derive
from ..config import Settings
from ..models import AnalysisResult, RepoSnapshot, RepositorySummary
from .github_client import GitHubClient
from .repository_inspector import RepositoryInspector

logger = logging.getLogger(__name__)


class GitHubAnalyzer:
    """
    Lister -> Inspector -> Signal Extractor -> Aggregator -> Deriver.

    Each inspection task returns its own ``RepoSnapshot``; the snapshots are
    folded sequentially afterwards, so nothing is shared between tasks.
    """

    def __init__(self, github: GitHubClient, inspector: RepositoryInspector, settings: Settings):
        self.github = github
        self.inspector = inspector
        self.settings = settings

    def select_for_inspection(self, repos: List[RepositorySummary]) -> List[RepositorySummary]:
        recent = sorted(repos, key=lambda r: r.updated_at, reverse=True)
        return recent[: self.settings.inspect_limit]

    async def inspect_in_batches(self, repos: List[RepositorySummary]) -> List[RepoSnapshot]:
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.settings.analysis_deadline_seconds
        batch_size = max(1, self.settings.batch_size)
        snapshots: List[RepoSnapshot] = []

        for start in range(0, len(repos), batch_size):
            if loop.time() >= deadline:
                logger.warning(f"Analysis deadline reached; skipping {len(repos) - start} repositories")
                break
            if start and self.settings.batch_delay_seconds > 0:
                await asyncio.sleep(self.settings.batch_delay_seconds)

            batch = repos[start:start + batch_size]
            results = await asyncio.gather(*(self.inspector.inspect(r) for r in batch))
            snapshots.extend(results)
            logger.info(f"Inspected {len(snapshots)}/{len(repos)} repositories")

        return snapshots

    async def analyze(self, username: str, now: Optional[datetime] = None) -> AnalysisResult:
        now = now or datetime.now(timezone.utc)

        # fails fast: UpstreamUnavailable propagates to the caller
        user = await self.github.get_user(username)
        repos = await self.github.list_repositories(username)
        logger.info(f"{username}: {len(repos)} repositories listed")

        snapshots = await self.inspect_in_batches(self.select_for_inspection(repos))

        agg = aggregate(user, repos, snapshots, now=now, extractor=self.inspector.dependency_extractor)
        recommendations = derive(agg)
        logger.info(
            f"{username}: readiness {recommendations.hiring_readiness} ({recommendations.hiring_level}), "
            f"focus {recommendations.focus_role}"
        )
        return AnalysisResult(aggregate=agg, recommendations=recommendations, analyzed_at=now.isoformat())
