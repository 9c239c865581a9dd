import logging
from typing import Any, Dict, Optional

import redis.asyncio as redis

from ..config import Settings
from .cache import Cache, connect_redis
from .gemini_client import Gemini, NarrativeGenerator
from .github_analyzer import GitHubAnalyzer
from .github_client import GitHubClient
from .profile_store import ProfileStore
from .repository_inspector import RepositoryInspector

logger = logging.getLogger(__name__)


class GitHubProfileService:
    """
    Complete service: analyze repositories -> career narrative -> merge into
    the stored profile. Only the initial user lookup can fail the request.
    """

    def __init__(
        self,
        analyzer: GitHubAnalyzer,
        narrator: NarrativeGenerator,
        store: ProfileStore,
        github: Optional[GitHubClient] = None,
    ):
        self.analyzer = analyzer
        self.narrator = narrator
        self.store = store
        self._github = github

    @classmethod
    async def create(cls, settings: Settings) -> "GitHubProfileService":
        client: Optional[redis.Redis] = await connect_redis(settings.redis_url)
        github = GitHubClient(settings)
        inspector = RepositoryInspector(github, settings, cache=Cache(client=client, ttl=settings.cache_ttl))
        gemini = Gemini(
            api_key=settings.gemini_api_key,
            models=settings.gemini_models,
            timeout=settings.narrative_timeout_seconds,
        )
        if not gemini.available:
            logger.warning("GEMINI_API_KEY not set; narratives will be data-derived")
        return cls(
            analyzer=GitHubAnalyzer(github, inspector, settings),
            narrator=NarrativeGenerator(gemini, max_prompt_chars=settings.max_prompt_chars),
            store=ProfileStore(client),
            github=github,
        )

    async def aclose(self) -> None:
        if self._github:
            await self._github.aclose()

    async def save(self, email: str, analysis: Dict[str, Any], narrative: Dict[str, Any]) -> bool:
        try:
            await self.store.merge(email, {
                "githubUsername": analysis.get("username"),
                "githubAnalysis": analysis,
                "aiRecommendations": narrative,
                "githubAnalyzedAt": analysis.get("analyzedAt"),
            })
            return True
        except (redis.RedisError, OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save analysis for {email}: {e}")
            return False

    async def build_profile(self, username: str, email: Optional[str] = None) -> Dict[str, Any]:
        result = await self.analyzer.analyze(username)
        narrative = await self.narrator.narrate(result)
        analysis = result.as_dict()

        saved = False
        if email:
            saved = await self.save(email, analysis, narrative)

        return {
            "success": True,
            "githubAnalysis": analysis,
            "aiRecommendations": narrative,
            "saved": saved,
        }

    async def get_profile(self, email: str) -> Optional[Dict[str, Any]]:
        return await self.store.get(email)
