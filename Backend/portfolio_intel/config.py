import os
from dataclasses import dataclass, field
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

GITHUB_API = "https://api.github.com"
GITHUB_ACCEPT_HEADER = "application/vnd.github+json"

DEFAULT_GEMINI_MODELS = [
    "gemini-2.5-flash",
    "gemini-2.5-flash-lite",
    "gemini-2.0-flash",
]

DEFAULT_CACHE_TTL = 24 * 3600  # 1 day


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


@dataclass
class Settings:
    github_token: Optional[str] = None
    github_api: str = GITHUB_API
    gemini_api_key: Optional[str] = None
    gemini_models: List[str] = field(default_factory=lambda: list(DEFAULT_GEMINI_MODELS))
    redis_url: Optional[str] = None
    cache_ttl: int = DEFAULT_CACHE_TTL
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    # Lister
    repos_per_page: int = 100
    max_repo_pages: int = 3

    # Inspector
    inspect_limit: int = 10
    batch_size: int = 5
    batch_delay_seconds: float = 1.0
    max_manifest_files: int = 15
    max_file_bytes: int = 500_000

    # Time budgets
    request_timeout_seconds: float = 20.0
    repo_timeout_seconds: float = 30.0
    analysis_deadline_seconds: float = 120.0
    narrative_timeout_seconds: float = 45.0
    max_prompt_chars: int = 6000

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            github_token=os.getenv("GITHUB_TOKEN") or None,
            github_api=os.getenv("GITHUB_API", GITHUB_API),
            gemini_api_key=os.getenv("GEMINI_API_KEY") or None,
            gemini_models=_env_list("GEMINI_MODELS", DEFAULT_GEMINI_MODELS),
            redis_url=os.getenv("REDIS_URL") or None,
            cache_ttl=_env_int("CACHE_TTL", DEFAULT_CACHE_TTL),
            cors_origins=_env_list("CORS_ORIGINS", ["*"]),
            max_repo_pages=_env_int("MAX_REPO_PAGES", 3),
            inspect_limit=_env_int("INSPECT_LIMIT", 10),
            batch_size=_env_int("BATCH_SIZE", 5),
            batch_delay_seconds=_env_float("BATCH_DELAY_SECONDS", 1.0),
            request_timeout_seconds=_env_float("REQUEST_TIMEOUT_SECONDS", 20.0),
            repo_timeout_seconds=_env_float("REPO_TIMEOUT_SECONDS", 30.0),
            analysis_deadline_seconds=_env_float("ANALYSIS_DEADLINE_SECONDS", 120.0),
            narrative_timeout_seconds=_env_float("NARRATIVE_TIMEOUT_SECONDS", 45.0),
        )


settings = Settings.from_env()
