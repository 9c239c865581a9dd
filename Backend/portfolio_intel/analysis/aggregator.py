"""
Fold per-repository snapshots into portfolio metrics and skill scores.

All formulas here are fixed scoring policy. The only clock input is the
``now`` argument, used for account age.
"""
import math
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

from ..models import (
    CommitActivity,
    DetectedSignals,
    GitHubUser,
    PortfolioAggregate,
    PortfolioSignals,
    RepoSnapshot,
    RepositorySummary,
    SkillStrengths,
)
from ..services.dependency_extractor import DependencyExtractor
from .signals import MAJOR_FRONTEND_FRAMEWORKS, extract_signals

TOP_REPOS = 5
MIN_ACCOUNT_AGE_YEARS = 1 / 12


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: int, low: int = 0, high: int = 10) -> int:
    return max(low, min(high, value))


def parse_iso(ts: str) -> Optional[datetime]:
    if not ts:
        return None
    try:
        return datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return None


# ---------- languages ----------
def merge_language_bytes(maps: Iterable[Optional[Dict[str, int]]]) -> Dict[str, int]:
    totals: Dict[str, int] = {}
    for langs in maps:
        for lang, count in (langs or {}).items():
            totals[lang] = totals.get(lang, 0) + int(count or 0)
    return totals


def language_percentages(totals: Dict[str, int]) -> Dict[str, int]:
    """
    Independent half-up rounding per language; the result is not
    normalized and may not sum to exactly 100.
    """
    total = sum(totals.values())
    if total <= 0:
        return {}
    ranked = sorted(totals.items(), key=lambda kv: (-kv[1], kv[0]))
    out: Dict[str, int] = {}
    for lang, count in ranked:
        pct = round_half_up(100 * count / total)
        if pct > 0:
            out[lang] = pct
    return out


# ---------- skill strengths ----------
def frontend_strength(sig: PortfolioSignals, langs: Dict[str, int]) -> int:
    score = 0
    if sig.frameworks & MAJOR_FRONTEND_FRAMEWORKS:
        score += 3
    if langs.get("JavaScript", 0) > 10:
        score += 2
    if langs.get("TypeScript", 0) > 5:
        score += 2
    if "Next.js" in sig.frameworks:
        score += 2
    if sig.avg_readme_score > 5:
        score += 1
    return clamp(score)


def backend_strength(sig: PortfolioSignals, langs: Dict[str, int]) -> int:
    score = 0
    if sig.backend_skills:
        score += 3
    if langs.get("Python", 0) > 10:
        score += 2
    if langs.get("Java", 0) > 10:
        score += 2
    if sig.databases:
        score += 2
    if len(sig.backend_skills) > 1:
        score += 1
    return clamp(score)


def database_strength(sig: PortfolioSignals) -> int:
    score = round_half_up(len(sig.databases) * 2.5)
    if sig.databases & {"PostgreSQL", "MongoDB"}:
        score += 2
    return clamp(score)


def devops_strength(sig: PortfolioSignals) -> int:
    score = 0
    if sig.has_docker:
        score += 3
    if sig.has_ci:
        score += 2
    if sig.cloud_services:
        score += 3
    if "Kubernetes" in sig.build_tools:
        score += 2
    return clamp(score)


def testing_strength(sig: PortfolioSignals) -> int:
    if not sig.readme_count:
        return 0
    if sig.has_tests:
        return 6
    if sig.avg_readme_score > 7:
        return 3
    return 1


def skill_strengths(sig: PortfolioSignals, langs: Dict[str, int]) -> SkillStrengths:
    return SkillStrengths(
        frontend=frontend_strength(sig, langs),
        backend=backend_strength(sig, langs),
        database=database_strength(sig),
        devops=devops_strength(sig),
        testing=testing_strength(sig),
    )


# ---------- activity ----------
def account_age_years(created_at: str, now: datetime) -> float:
    created = parse_iso(created_at)
    if created is None:
        return 0.0
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return max(0.0, (now - created).days / 365.25)


def commit_activity(snapshots: List[RepoSnapshot], repo_count: int, age_years: float) -> CommitActivity:
    counts = [s.commit_count for s in snapshots if s.commit_count]
    total = sum(counts)
    active = len(counts)
    per_week = total / active / 4 if active else 0.0
    repos_per_year = repo_count / max(age_years, MIN_ACCOUNT_AGE_YEARS) if repo_count else 0.0
    consistency = min(10, round_half_up(repos_per_year * 0.5 + per_week * 0.2))
    return CommitActivity(
        total_commits=total,
        active_repos=active,
        avg_commits_per_week=round(per_week, 1),
        consistency_score=consistency,
    )


# ---------- repos ----------
def top_repositories(repos: List[RepositorySummary], limit: int = TOP_REPOS) -> List[Dict]:
    ranked = sorted(repos, key=lambda r: r.updated_at, reverse=True)
    ranked = sorted(ranked, key=lambda r: r.stars, reverse=True)  # stable: ties stay newest-first
    return [
        {
            "name": r.name,
            "description": r.description,
            "stars": r.stars,
            "forks": r.forks,
            "language": r.language,
            "updated": r.updated_at,
            "url": r.url,
        }
        for r in ranked[:limit]
    ]


def detect(snapshot: RepoSnapshot, extractor: DependencyExtractor) -> DetectedSignals:
    return extract_signals(
        snapshot.paths,
        snapshot.files,
        snapshot.readme,
        extractor.dependencies_text(snapshot.files),
    )


def fold_signals(
    snapshots: List[RepoSnapshot],
    extractor: Optional[DependencyExtractor] = None,
) -> Tuple[PortfolioSignals, List[DetectedSignals]]:
    extractor = extractor or DependencyExtractor()
    portfolio = PortfolioSignals()
    per_repo: List[DetectedSignals] = []
    for snap in snapshots:
        signals = detect(snap, extractor)
        per_repo.append(signals)
        portfolio.absorb(signals, has_readme=bool(snap.readme and snap.readme.strip()))
        if snap.repo.homepage.startswith(("http://", "https://")):
            portfolio.has_live_demo = True
    return portfolio, per_repo


def aggregate(
    user: GitHubUser,
    repos: List[RepositorySummary],
    snapshots: List[RepoSnapshot],
    now: Optional[datetime] = None,
    extractor: Optional[DependencyExtractor] = None,
) -> PortfolioAggregate:
    now = now or datetime.now(timezone.utc)
    signals, _ = fold_signals(snapshots, extractor)
    languages = language_percentages(merge_language_bytes(s.languages for s in snapshots))
    age = account_age_years(user.created_at, now)
    activity = commit_activity(snapshots, len(repos), age)

    stats = {
        "publicRepos": user.public_repos or len(repos),
        "followers": user.followers,
        "following": user.following,
        "totalStars": sum(r.stars for r in repos),
        "totalForks": sum(r.forks for r in repos),
        "accountAgeYears": round(age, 1),
        "analyzedRepos": len(snapshots),
    }
    quality = {
        "avgReadmeScore": round(signals.avg_readme_score, 1),
        "reposWithReadme": signals.repos_with_readme,
        "reposWithStars": sum(1 for r in repos if r.stars > 0),
        "reposWithDescription": sum(1 for r in repos if r.description.strip()),
    }

    return PortfolioAggregate(
        username=user.login,
        stats=stats,
        languages=languages,
        signals=signals,
        skill_strengths=skill_strengths(signals, languages),
        commit_activity=activity,
        quality_metrics=quality,
        top_repos=top_repositories(repos),
        analyzed_repos=[s.repo.full_name for s in snapshots],
        repo_count=len(repos),
    )
