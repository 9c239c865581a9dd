from dataclasses import dataclass, field
from typing import Any, Dict, FrozenSet, List, Optional


@dataclass(frozen=True)
class RepositorySummary:
    name: str
    full_name: str
    description: str = ""
    stars: int = 0
    forks: int = 0
    language: Optional[str] = None
    updated_at: str = ""
    url: str = ""
    default_branch: str = "main"
    homepage: str = ""
    fork: bool = False

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "RepositorySummary":
        name = data.get("name") or ""
        owner = (data.get("owner") or {}).get("login") or ""
        return cls(
            name=name,
            full_name=data.get("full_name") or f"{owner}/{name}",
            description=data.get("description") or "",
            stars=int(data.get("stargazers_count") or 0),
            forks=int(data.get("forks_count") or 0),
            language=data.get("language"),
            updated_at=data.get("updated_at") or data.get("pushed_at") or "",
            url=data.get("html_url") or "",
            default_branch=data.get("default_branch") or "main",
            homepage=(data.get("homepage") or "").strip(),
            fork=bool(data.get("fork", False)),
        )


@dataclass(frozen=True)
class GitHubUser:
    login: str
    name: str = ""
    public_repos: int = 0
    followers: int = 0
    following: int = 0
    created_at: str = ""

    @classmethod
    def from_api(cls, data: Dict[str, Any]) -> "GitHubUser":
        return cls(
            login=data.get("login") or "",
            name=data.get("name") or "",
            public_repos=int(data.get("public_repos") or 0),
            followers=int(data.get("followers") or 0),
            following=int(data.get("following") or 0),
            created_at=data.get("created_at") or "",
        )


@dataclass(frozen=True)
class RepoSnapshot:
    """What the inspector could read for one repository. None means absent."""
    repo: RepositorySummary
    languages: Optional[Dict[str, int]] = None
    paths: Optional[List[str]] = None
    files: Dict[str, str] = field(default_factory=dict)
    readme: Optional[str] = None
    commit_count: Optional[int] = None
    tree_truncated: bool = False

    @classmethod
    def empty(cls, repo: RepositorySummary) -> "RepoSnapshot":
        return cls(repo=repo)


@dataclass(frozen=True)
class DetectedSignals:
    frameworks: FrozenSet[str] = frozenset()
    databases: FrozenSet[str] = frozenset()
    cloud_services: FrozenSet[str] = frozenset()
    build_tools: FrozenSet[str] = frozenset()
    frontend_skills: FrozenSet[str] = frozenset()
    backend_skills: FrozenSet[str] = frozenset()
    project_types: FrozenSet[str] = frozenset()
    has_docker: bool = False
    has_ci: bool = False
    has_tests: bool = False
    has_live_demo: bool = False
    readme_score: int = 0


@dataclass
class PortfolioSignals:
    frameworks: set = field(default_factory=set)
    databases: set = field(default_factory=set)
    cloud_services: set = field(default_factory=set)
    build_tools: set = field(default_factory=set)
    frontend_skills: set = field(default_factory=set)
    backend_skills: set = field(default_factory=set)
    project_types: set = field(default_factory=set)
    has_docker: bool = False
    has_ci: bool = False
    has_tests: bool = False
    has_live_demo: bool = False
    readme_total: int = 0
    readme_count: int = 0
    repos_with_readme: int = 0

    def absorb(self, signals: DetectedSignals, has_readme: bool = False) -> None:
        self.frameworks |= signals.frameworks
        self.databases |= signals.databases
        self.cloud_services |= signals.cloud_services
        self.build_tools |= signals.build_tools
        self.frontend_skills |= signals.frontend_skills
        self.backend_skills |= signals.backend_skills
        self.project_types |= signals.project_types
        self.has_docker = self.has_docker or signals.has_docker
        self.has_ci = self.has_ci or signals.has_ci
        self.has_tests = self.has_tests or signals.has_tests
        self.has_live_demo = self.has_live_demo or signals.has_live_demo
        self.readme_total += signals.readme_score
        self.readme_count += 1
        if has_readme:
            self.repos_with_readme += 1

    @property
    def avg_readme_score(self) -> float:
        if not self.readme_count:
            return 0.0
        return self.readme_total / self.readme_count


@dataclass(frozen=True)
class SkillStrengths:
    frontend: int = 0
    backend: int = 0
    database: int = 0
    devops: int = 0
    testing: int = 0

    def as_dict(self) -> Dict[str, int]:
        return {
            "frontend": self.frontend,
            "backend": self.backend,
            "database": self.database,
            "devops": self.devops,
            "testing": self.testing,
        }


@dataclass
class CommitActivity:
    total_commits: int = 0
    active_repos: int = 0
    avg_commits_per_week: float = 0.0
    consistency_score: int = 0

    def as_dict(self) -> Dict[str, Any]:
        return {
            "totalCommits": self.total_commits,
            "activeRepos": self.active_repos,
            "avgCommitsPerWeek": self.avg_commits_per_week,
            "consistencyScore": self.consistency_score,
        }


@dataclass
class PortfolioAggregate:
    """Aggregator output: portfolio-level metrics for one run."""
    username: str
    stats: Dict[str, Any]
    languages: Dict[str, int]
    signals: PortfolioSignals
    skill_strengths: SkillStrengths
    commit_activity: CommitActivity
    quality_metrics: Dict[str, Any]
    top_repos: List[Dict[str, Any]]
    analyzed_repos: List[str]
    repo_count: int = 0


@dataclass
class Recommendations:
    skill_gaps: List[Dict[str, Any]]
    project_recommendations: List[Dict[str, Any]]
    improvement_checklist: List[Dict[str, Any]]
    hiring_readiness: int
    hiring_level: str
    focus_role: str


@dataclass
class AnalysisResult:
    aggregate: PortfolioAggregate
    recommendations: Recommendations
    analyzed_at: str = ""

    def as_dict(self) -> Dict[str, Any]:
        agg = self.aggregate
        sig = agg.signals
        rec = self.recommendations
        return {
            "username": agg.username,
            "stats": agg.stats,
            "languages": agg.languages,
            "frameworks": sorted(sig.frameworks),
            "databases": sorted(sig.databases),
            "cloudServices": sorted(sig.cloud_services),
            "buildTools": sorted(sig.build_tools),
            "frontendSkills": sorted(sig.frontend_skills),
            "backendSkills": sorted(sig.backend_skills),
            "projectTypes": sorted(sig.project_types),
            "hasDocker": sig.has_docker,
            "hasCI": sig.has_ci,
            "hasTests": sig.has_tests,
            "hasLiveDemo": sig.has_live_demo,
            "topRepos": agg.top_repos,
            "qualityMetrics": agg.quality_metrics,
            "commitActivity": agg.commit_activity.as_dict(),
            "skillStrengths": agg.skill_strengths.as_dict(),
            "skillGaps": rec.skill_gaps,
            "projectRecommendations": rec.project_recommendations,
            "improvementChecklist": rec.improvement_checklist,
            "hiringReadiness": rec.hiring_readiness,
            "hiringLevel": rec.hiring_level,
            "focusRole": rec.focus_role,
            "analyzedRepos": agg.analyzed_repos,
            "analyzedAt": self.analyzed_at,
        }
