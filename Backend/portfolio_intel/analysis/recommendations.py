"""
Gap & recommendation rules applied to a ``PortfolioAggregate``.
Pure functions: same aggregate in, same lists and score out.
"""
from typing import Any, Callable, Dict, List, Tuple

from ..models import PortfolioAggregate, Recommendations

TIE_MARGIN = 1

FULL_STACK, FRONTEND, BACKEND = "Full-Stack", "Frontend", "Backend"

MID_LEVEL, JUNIOR, INTERN = "mid-level ready", "junior ready", "intern level"


# ---------- skill gaps ----------
def _gap(skill: str, priority: str, reason: str, current: str, ideal: str) -> Dict[str, str]:
    return {
        "skill": skill,
        "status": "missing",
        "priority": priority,
        "reason": reason,
        "current": current,
        "ideal": ideal,
    }


def skill_gaps(agg: PortfolioAggregate) -> List[Dict[str, str]]:
    sig = agg.signals
    gaps: List[Dict[str, str]] = []

    if not sig.has_docker:
        gaps.append(_gap("Docker", "high",
                         "Containerized projects show you can ship software that runs the same everywhere.",
                         "No Dockerfile found", "At least one containerized project"))
    if not sig.has_ci:
        gaps.append(_gap("CI/CD", "medium",
                         "Automated builds and checks are expected in professional codebases.",
                         "No CI workflows", "GitHub Actions on main projects"))
    if not sig.has_tests:
        gaps.append(_gap("Testing", "high",
                         "Recruiters look for automated tests as a sign of production-quality code.",
                         "No test files", "Unit tests in core projects"))
    if not sig.databases:
        gaps.append(_gap("Database", "critical",
                         "Almost every backend or full-stack role requires working with a database.",
                         "No database usage detected", "SQL or NoSQL database in a project"))
    elif "PostgreSQL" not in sig.databases:
        gaps.append(_gap("PostgreSQL", "medium",
                         "PostgreSQL is the most requested relational database in job postings.",
                         ", ".join(sorted(sig.databases)), "PostgreSQL in at least one project"))
    if not sig.has_live_demo:
        gaps.append(_gap("Live Deployment", "high",
                         "A live demo lets reviewers try your work in seconds.",
                         "No live demo links", "Deployed projects linked from READMEs"))
    if sig.avg_readme_score < 5:
        gaps.append(_gap("Documentation", "medium",
                         "Clear READMEs are the first thing a reviewer reads.",
                         f"Average README score {sig.avg_readme_score:.1f}/10", "README score of 7+"))
    return gaps


# ---------- project recommendations ----------
def focus_role(agg: PortfolioAggregate) -> str:
    strengths = agg.skill_strengths
    if FULL_STACK in agg.signals.project_types:
        return FULL_STACK
    if abs(strengths.frontend - strengths.backend) <= TIE_MARGIN:
        return FULL_STACK
    return FRONTEND if strengths.frontend > strengths.backend else BACKEND


def _pick(options: List[str], known: set, default: str) -> str:
    for option in options:
        if option in known:
            return option
    return default


def _missing_practices(agg: PortfolioAggregate) -> List[str]:
    sig = agg.signals
    items = []
    if not sig.has_docker:
        items.append("Dockerfile and docker-compose setup")
    if not sig.has_ci:
        items.append("GitHub Actions workflow running the tests")
    if not sig.has_tests:
        items.append("Unit and integration tests")
    if not sig.has_live_demo:
        items.append("Live deployment linked in the README")
    return items


def _frontend_projects(agg: PortfolioAggregate) -> List[Dict[str, Any]]:
    fw = _pick(["Next.js", "React", "Vue", "Angular", "Svelte"], agg.signals.frameworks, "React")
    return [
        {
            "title": f"Analytics Dashboard with {fw}",
            "difficulty": "Intermediate",
            "skills": [fw, "TypeScript", "Charting", "REST APIs"],
            "mustInclude": ["Responsive layout", "Loading and error states", "Accessible components"]
            + _missing_practices(agg)[:2],
            "why": f"Shows production-grade {fw} work with real data instead of tutorial clones.",
        },
        {
            "title": "Design System & Component Library",
            "difficulty": "Advanced",
            "skills": [fw, "Storybook", "CSS", "Testing Library"],
            "mustInclude": ["Documented components", "Visual regression or unit tests", "Published package"],
            "why": "Demonstrates reusable UI architecture valued by frontend teams.",
        },
    ]


def _backend_projects(agg: PortfolioAggregate) -> List[Dict[str, Any]]:
    fw = _pick(["Django", "FastAPI", "Flask", "Spring Boot", "NestJS", "Express"], agg.signals.frameworks, "Express")
    db = _pick(["PostgreSQL", "MongoDB", "MySQL"], agg.signals.databases, "PostgreSQL")
    return [
        {
            "title": f"Production REST API with {fw} and {db}",
            "difficulty": "Intermediate",
            "skills": [fw, db, "Authentication", "API design"],
            "mustInclude": ["JWT authentication", "Pagination and validation", "OpenAPI documentation"]
            + _missing_practices(agg)[:2],
            "why": f"A well-tested {fw} service proves you can own a backend end to end.",
        },
        {
            "title": "Background Job & Notification Service",
            "difficulty": "Advanced",
            "skills": [fw, "Redis", "Message queues", "Docker"],
            "mustInclude": ["Retry with backoff", "Structured logging", "Containerized deployment"],
            "why": "Asynchronous processing is a common interview and on-the-job topic.",
        },
    ]


def _full_stack_projects(agg: PortfolioAggregate) -> List[Dict[str, Any]]:
    front = _pick(["Next.js", "React", "Vue", "Angular"], agg.signals.frameworks, "React")
    back = _pick(["Express", "Django", "FastAPI", "Flask", "Spring Boot", "NestJS"], agg.signals.frameworks, "Node.js")
    db = _pick(["PostgreSQL", "MongoDB", "MySQL"], agg.signals.databases, "PostgreSQL")
    return [
        {
            "title": f"SaaS Task Manager ({front} + {back} + {db})",
            "difficulty": "Advanced",
            "skills": [front, back, db, "Authentication"],
            "mustInclude": ["User accounts and roles", "CRUD with a relational schema", "Deployed frontend and API"]
            + _missing_practices(agg)[:2],
            "why": "An end-to-end product is the strongest single signal for full-stack roles.",
        },
        {
            "title": "Real-time Collaboration App",
            "difficulty": "Advanced",
            "skills": [front, "WebSockets", back, "Redis"],
            "mustInclude": ["Live updates over WebSockets", "Optimistic UI", "Load-tested backend"],
            "why": "Real-time features show depth beyond request/response CRUD.",
        },
    ]


_PROJECT_BRANCHES: Dict[str, Callable[[PortfolioAggregate], List[Dict[str, Any]]]] = {
    FULL_STACK: _full_stack_projects,
    FRONTEND: _frontend_projects,
    BACKEND: _backend_projects,
}


def project_recommendations(agg: PortfolioAggregate) -> Tuple[str, List[Dict[str, Any]]]:
    role = focus_role(agg)
    return role, _PROJECT_BRANCHES[role](agg)


# ---------- improvement checklist ----------
CHECKLIST: List[Tuple[str, str, Callable[[PortfolioAggregate], bool]]] = [
    ("Add a detailed README (setup, usage, screenshots) to every project", "High",
     lambda a: a.signals.avg_readme_score >= 7),
    ("Deploy your best project and link the live demo", "High",
     lambda a: a.signals.has_live_demo),
    ("Write automated tests for your main projects", "High",
     lambda a: a.signals.has_tests),
    ("Add a Dockerfile to at least one project", "Medium",
     lambda a: a.signals.has_docker),
    ("Set up a GitHub Actions workflow", "Medium",
     lambda a: a.signals.has_ci),
    ("Use a database in a real project", "Medium",
     lambda a: bool(a.signals.databases)),
    ("Commit consistently (a few times every week)", "Medium",
     lambda a: a.commit_activity.consistency_score >= 7),
    ("Give every repository a one-line description", "Low",
     lambda a: a.repo_count > 0 and a.quality_metrics.get("reposWithDescription", 0) >= a.repo_count),
]


def improvement_checklist(agg: PortfolioAggregate) -> List[Dict[str, str]]:
    return [
        {"item": item, "impact": impact, "status": "done" if done(agg) else "todo"}
        for item, impact, done in CHECKLIST
    ]


# ---------- hiring readiness ----------
READINESS_POINTS: List[Tuple[int, Callable[[PortfolioAggregate], bool]]] = [
    (15, lambda a: a.repo_count >= 5),
    (20, lambda a: FULL_STACK in a.signals.project_types),
    (10, lambda a: a.signals.has_docker),
    (10, lambda a: a.signals.has_tests),
    (10, lambda a: a.signals.has_ci),
    (15, lambda a: a.signals.avg_readme_score >= 7),
    (10, lambda a: a.signals.has_live_demo),
    (10, lambda a: a.commit_activity.consistency_score >= 7),
]


def hiring_readiness(agg: PortfolioAggregate) -> int:
    total = sum(points for points, met in READINESS_POINTS if met(agg))
    return max(0, min(100, total))


def hiring_level(score: int) -> str:
    if score >= 75:
        return MID_LEVEL
    if score >= 50:
        return JUNIOR
    return INTERN


def derive(agg: PortfolioAggregate) -> Recommendations:
    role, projects = project_recommendations(agg)
    score = hiring_readiness(agg)
    return Recommendations(
        skill_gaps=skill_gaps(agg),
        project_recommendations=projects,
        improvement_checklist=improvement_checklist(agg),
        hiring_readiness=score,
        hiring_level=hiring_level(score),
        focus_role=role,
    )
