"""
Signal extraction: turn a repository's file list, fetched manifest text
and README into categorical signals.

Detection is a declarative rule table. Each ``Rule`` pairs a predicate over
normalized ``Evidence`` with the tag it emits, so every heuristic can be
read and tested on its own. ``extract_signals`` is a pure function.
"""
import re
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, Tuple

from ..models import DetectedSignals


@dataclass(frozen=True)
class Evidence:
    paths: Tuple[str, ...]          # lower-cased file paths
    dependency_text: str            # lower-cased dependency blob
    dependencies: FrozenSet[str]    # individual dependency tokens

    @classmethod
    def build(cls, file_list: Iterable[str], dependencies_text: str) -> "Evidence":
        text = (dependencies_text or "").lower()
        return cls(
            paths=tuple(p.lower() for p in file_list or ()),
            dependency_text=text,
            dependencies=frozenset(text.split()),
        )


Predicate = Callable[[Evidence], bool]


@dataclass(frozen=True)
class Rule:
    category: str
    tag: str
    predicate: Predicate


# ---------- predicate builders ----------
def dep(*names: str) -> Predicate:
    """Exact dependency name."""
    return lambda ev: any(n in ev.dependencies for n in names)


def dep_prefix(*prefixes: str) -> Predicate:
    return lambda ev: any(d.startswith(prefixes) for d in ev.dependencies)


def mentions(*needles: str) -> Predicate:
    """Substring anywhere in dependency/config text."""
    return lambda ev: any(n in ev.dependency_text for n in needles)


def path_ends(*suffixes: str) -> Predicate:
    return lambda ev: any(p.endswith(suffixes) for p in ev.paths)


def basename_is(*names: str) -> Predicate:
    return lambda ev: any(p.rsplit("/", 1)[-1] in names for p in ev.paths)


def path_under(*prefixes: str) -> Predicate:
    return lambda ev: any(p.startswith(prefixes) or any(f"/{x}" in p for x in prefixes) for p in ev.paths)


def any_of(*predicates: Predicate) -> Predicate:
    return lambda ev: any(pred(ev) for pred in predicates)


def _is_dockerfile(path: str) -> bool:
    base = path.rsplit("/", 1)[-1]
    return base == "dockerfile" or base.startswith("dockerfile.") or base.endswith(".dockerfile")


has_dockerfile: Predicate = lambda ev: any(_is_dockerfile(p) for p in ev.paths)
has_test_path: Predicate = lambda ev: any("test" in p or "spec" in p for p in ev.paths)

# ---------- rule table ----------
FRONTEND, BACKEND = "frontend", "backend"

# framework tag -> which side of the stack it counts toward
FRAMEWORK_SIDE: Dict[str, str] = {
    "React": FRONTEND,
    "Vue": FRONTEND,
    "Angular": FRONTEND,
    "Next.js": FRONTEND,
    "Svelte": FRONTEND,
    "Tailwind CSS": FRONTEND,
    "React Native": FRONTEND,
    "Flutter": FRONTEND,
    "Express": BACKEND,
    "NestJS": BACKEND,
    "Django": BACKEND,
    "Flask": BACKEND,
    "FastAPI": BACKEND,
    "Spring Boot": BACKEND,
}

MAJOR_FRONTEND_FRAMEWORKS = frozenset({"React", "Vue", "Angular", "Next.js", "Svelte"})
MOBILE_FRAMEWORKS = frozenset({"React Native", "Flutter"})

RULES: List[Rule] = [
    # frameworks
    Rule("framework", "React", any_of(dep("react"), path_ends(".jsx", ".tsx"))),
    Rule("framework", "Vue", any_of(dep("vue", "nuxt"), path_ends(".vue"))),
    Rule("framework", "Angular", dep("@angular/core")),
    Rule("framework", "Next.js", dep("next")),
    Rule("framework", "Svelte", any_of(dep("svelte", "@sveltejs/kit"), path_ends(".svelte"))),
    Rule("framework", "Tailwind CSS", dep("tailwindcss")),
    Rule("framework", "React Native", any_of(dep("react-native", "expo"))),
    Rule("framework", "Flutter", basename_is("pubspec.yaml")),
    Rule("framework", "Express", dep("express")),
    Rule("framework", "NestJS", dep("@nestjs/core")),
    Rule("framework", "Django", any_of(dep("django", "djangorestframework"), basename_is("manage.py"))),
    Rule("framework", "Flask", dep("flask")),
    Rule("framework", "FastAPI", dep("fastapi")),
    Rule("framework", "Spring Boot", any_of(dep_prefix("spring-boot"), mentions("org.springframework.boot"))),
    # databases
    Rule("database", "MySQL", mentions("mysql")),
    Rule("database", "PostgreSQL", any_of(dep("pg"), mentions("postgres", "psycopg"))),
    Rule("database", "SQLite", mentions("sqlite")),
    Rule("database", "MongoDB", mentions("mongo")),
    Rule("database", "Redis", mentions("redis")),
    Rule("database", "Firebase", mentions("firebase")),
    # cloud
    Rule("cloud", "AWS", any_of(mentions("aws-sdk", "@aws-sdk", "boto3", "amazonaws"), dep("aws-amplify"))),
    Rule("cloud", "Cloudinary", mentions("cloudinary")),
    Rule("cloud", "Vercel", any_of(basename_is("vercel.json"), dep("vercel", "@vercel/analytics"))),
    Rule("cloud", "Netlify", any_of(basename_is("netlify.toml"), dep("netlify-cli"))),
    Rule("cloud", "Google Cloud", mentions("google-cloud", "@google-cloud")),
    # build tools
    Rule("build", "Docker", has_dockerfile),
    Rule("build", "Docker Compose", basename_is("docker-compose.yml", "docker-compose.yaml", "compose.yml", "compose.yaml")),
    Rule("build", "Kubernetes", any_of(path_under("k8s/", "kubernetes/", "helm/"), basename_is("chart.yaml", "kustomization.yaml"))),
    Rule("build", "Webpack", dep("webpack")),
    Rule("build", "Vite", dep("vite")),
    Rule("build", "Maven", basename_is("pom.xml")),
    Rule("build", "Gradle", basename_is("build.gradle", "build.gradle.kts")),
    Rule("build", "GitHub Actions", path_under(".github/workflows/")),
]

CI_PREDICATE: Predicate = any_of(
    path_under(".github/workflows/", ".circleci/"),
    basename_is(".gitlab-ci.yml", "jenkinsfile", ".travis.yml"),
)

ML_PREDICATE: Predicate = any_of(
    dep("tensorflow", "torch", "pytorch", "keras", "scikit-learn", "sklearn", "xgboost", "transformers", "lightgbm"),
    dep_prefix("tensorflow", "@tensorflow/"),
)

# ---------- README ----------
_README_CHECKS: List[Tuple[str, Callable[[str, str], bool]]] = [
    ("substantial", lambda raw, low: len(raw) > 200),
    ("install", lambda raw, low: "install" in low or "setup" in low or "getting started" in low),
    ("usage", lambda raw, low: "usage" in low or "how to use" in low),
    ("demo", lambda raw, low: _mentions_demo(low)),
    ("license", lambda raw, low: "license" in low or "licence" in low),
    ("contributing", lambda raw, low: "contribut" in low),
    ("media", lambda raw, low: "![" in raw or "<img" in low or "shields.io" in low),
    ("code", lambda raw, low: "```" in raw),
]

_URL = re.compile(r"https?://[^\s)\]>\"']+")
_BADGE_HOSTS = ("shields.io", "badge", "img.", "/actions/workflows/")


def _mentions_demo(low: str) -> bool:
    if "demo" in low or "live at" in low or "deployed" in low:
        return True
    return any(not any(h in url for h in _BADGE_HOSTS) for url in _URL.findall(low))


def score_readme(readme_text: Optional[str]) -> Tuple[int, bool]:
    """Return (score 0-10, live demo mentioned). Missing README scores 0."""
    if not readme_text or not readme_text.strip():
        return 0, False
    low = readme_text.lower()
    score = sum(1 for _, check in _README_CHECKS if check(readme_text, low))
    return max(0, min(10, score)), _mentions_demo(low)


# ---------- extractor ----------
def extract_signals(
    file_list: Optional[Iterable[str]],
    file_contents: Optional[Dict[str, str]],
    readme_text: Optional[str],
    dependencies_text: Optional[str],
) -> DetectedSignals:
    """
    Evaluate the rule table over one repository.
    ``file_contents`` only matters through ``dependencies_text`` (already
    parsed) and its keys, which count as paths when the tree is missing.
    """
    paths = list(file_list or [])
    if file_contents:
        paths.extend(p for p in file_contents if p not in paths)
    ev = Evidence.build(paths, dependencies_text or "")

    tags: Dict[str, set] = {"framework": set(), "database": set(), "cloud": set(), "build": set()}
    for rule in RULES:
        if rule.predicate(ev):
            tags[rule.category].add(rule.tag)

    frameworks = tags["framework"]
    frontend = {f for f in frameworks if FRAMEWORK_SIDE.get(f) == FRONTEND}
    backend = {f for f in frameworks if FRAMEWORK_SIDE.get(f) == BACKEND}

    project_types = set()
    if frontend or basename_is("index.html")(ev):
        project_types.add("Frontend")
    if backend:
        project_types.add("Backend")
    if frontend and backend:
        project_types.add("Full-Stack")
    if ML_PREDICATE(ev):
        project_types.add("Machine Learning")
    if frameworks & MOBILE_FRAMEWORKS:
        project_types.add("Mobile")

    readme_score, live_demo = score_readme(readme_text)

    return DetectedSignals(
        frameworks=frozenset(frameworks),
        databases=frozenset(tags["database"]),
        cloud_services=frozenset(tags["cloud"]),
        build_tools=frozenset(tags["build"]),
        frontend_skills=frozenset(frontend),
        backend_skills=frozenset(backend),
        project_types=frozenset(project_types),
        has_docker=has_dockerfile(ev),
        has_ci=CI_PREDICATE(ev),
        has_tests=has_test_path(ev),
        has_live_demo=live_demo,
        readme_score=readme_score,
    )
