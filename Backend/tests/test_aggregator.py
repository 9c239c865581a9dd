import json
from datetime import datetime, timezone

import pytest

from portfolio_intel.analysis import aggregator
from portfolio_intel.analysis.aggregator import (
    aggregate,
    commit_activity,
    language_percentages,
    merge_language_bytes,
    skill_strengths,
)
from portfolio_intel.analysis.signals import FRAMEWORK_SIDE
from portfolio_intel.models import GitHubUser, PortfolioSignals, RepoSnapshot, RepositorySummary

NOW = datetime(2026, 10, 1, tzinfo=timezone.utc)


def summary(name, stars=0, updated="2026-09-01T00:00:00Z", **kw):
    return RepositorySummary(name=name, full_name=f"octo/{name}", stars=stars, updated_at=updated, **kw)


def user(created="2022-10-01T00:00:00Z", public_repos=0):
    return GitHubUser(login="octo", created_at=created, public_repos=public_repos)


@pytest.mark.parametrize("totals", [
    {"Python": 1, "JavaScript": 1, "HTML": 1},
    {"Go": 999_999, "Shell": 1},
    {"C": 5, "C++": 5, "Rust": 7, "Zig": 0},
])
def test_percentages_are_bounded_integers_without_zero_entries(totals):
    result = language_percentages(totals)
    for lang, pct in result.items():
        assert isinstance(pct, int)
        assert 0 < pct <= 100
        assert totals[lang] > 0
    assert "Zig" not in result


def test_percentages_may_not_sum_to_100():
    # three equal shares round to 33 each
    assert sum(language_percentages({"A": 1, "B": 1, "C": 1}).values()) == 99


def test_percentages_round_half_up():
    assert language_percentages({"A": 1, "B": 7}) == {"B": 88, "A": 13}


def test_language_bytes_merge_additively():
    merged = merge_language_bytes([{"Python": 10}, None, {"Python": 5, "Go": 1}])
    assert merged == {"Python": 15, "Go": 1}
    assert language_percentages({}) == {}


def test_skill_strengths_clamped_for_maximal_signals():
    sig = PortfolioSignals(
        frameworks=set(FRAMEWORK_SIDE),
        databases={"MySQL", "PostgreSQL", "SQLite", "MongoDB", "Redis", "Firebase"},
        cloud_services={"AWS", "Vercel"},
        build_tools={"Docker", "Kubernetes"},
        frontend_skills={f for f, side in FRAMEWORK_SIDE.items() if side == "frontend"},
        backend_skills={f for f, side in FRAMEWORK_SIDE.items() if side == "backend"},
        has_docker=True, has_ci=True, has_tests=True, has_live_demo=True,
        readme_total=100, readme_count=10,
    )
    langs = {"JavaScript": 40, "TypeScript": 30, "Python": 20, "Java": 11}
    strengths = skill_strengths(sig, langs)
    for value in strengths.as_dict().values():
        assert 0 <= value <= 10
    assert strengths.frontend == 10
    assert strengths.database == 10
    assert strengths.devops == 10
    assert strengths.testing == 6


def test_frontend_formula():
    sig = PortfolioSignals(frameworks={"React"}, frontend_skills={"React"}, readme_total=6, readme_count=1)
    assert skill_strengths(sig, {"JavaScript": 50, "TypeScript": 4}).frontend == 3 + 2 + 1


def test_database_and_testing_formulas():
    sig = PortfolioSignals(databases={"MongoDB"}, readme_total=8, readme_count=1)
    strengths = skill_strengths(sig, {})
    assert strengths.database == 3 + 2  # round(2.5) half-up, plus Mongo bonus
    assert strengths.testing == 3
    assert skill_strengths(PortfolioSignals(readme_count=1), {}).testing == 1


def test_commit_activity_and_consistency():
    snaps = [
        RepoSnapshot(repo=summary("a"), commit_count=40),
        RepoSnapshot(repo=summary("b"), commit_count=0),
        RepoSnapshot(repo=summary("c"), commit_count=None),
        RepoSnapshot(repo=summary("d"), commit_count=24),
    ]
    activity = commit_activity(snaps, repo_count=8, age_years=2.0)
    assert activity.total_commits == 64
    assert activity.active_repos == 2
    assert activity.avg_commits_per_week == 8.0
    # 4 repos/year * 0.5 + 8 * 0.2 = 3.6 -> 4
    assert activity.consistency_score == 4


def test_consistency_is_capped():
    snaps = [RepoSnapshot(repo=summary("a"), commit_count=100)]
    assert commit_activity(snaps, repo_count=300, age_years=0.0).consistency_score == 10


def test_zero_repositories():
    agg = aggregate(user(), [], [], now=NOW)
    assert agg.languages == {}
    assert all(v == 0 for v in agg.skill_strengths.as_dict().values())
    assert agg.commit_activity.consistency_score == 0
    assert agg.top_repos == []


def test_top_repos_sorted_by_stars():
    repos = [
        summary("low", stars=1),
        summary("old-high", stars=9, updated="2025-01-01T00:00:00Z"),
        summary("new-high", stars=9, updated="2026-01-01T00:00:00Z"),
        summary("mid", stars=5),
    ]
    agg = aggregate(user(), repos, [], now=NOW)
    assert [r["name"] for r in agg.top_repos] == ["new-high", "old-high", "mid", "low"]
    assert agg.stats["totalStars"] == 24


def test_aggregate_folds_snapshots():
    react = RepoSnapshot(
        repo=summary("web"),
        languages={"JavaScript": 900, "CSS": 100},
        paths=["package.json", "src/App.jsx"],
        files={"package.json": json.dumps({"dependencies": {"react": "18"}})},
        readme="## Install\nnpm i",
        commit_count=12,
    )
    api = RepoSnapshot(
        repo=summary("api", homepage="https://api.example.com"),
        languages={"Python": 1000},
        paths=["requirements.txt", "Dockerfile", "tests/test_app.py"],
        files={"requirements.txt": "flask\npsycopg2\n"},
        readme=None,
    )
    agg = aggregate(user(), [react.repo, api.repo], [react, api], now=NOW)
    assert agg.languages == {"Python": 50, "JavaScript": 45, "CSS": 5}
    assert {"React", "Flask"} <= agg.signals.frameworks
    assert agg.signals.has_docker and agg.signals.has_tests
    assert agg.signals.has_live_demo  # from homepage
    assert agg.quality_metrics["reposWithReadme"] == 1
    assert agg.analyzed_repos == ["octo/web", "octo/api"]
    assert agg.stats["accountAgeYears"] == pytest.approx(4.0, abs=0.1)


def test_account_age_accepts_naive_now():
    assert aggregator.account_age_years("2025-10-01T00:00:00Z", datetime(2026, 10, 1)) == pytest.approx(1.0, abs=0.01)
