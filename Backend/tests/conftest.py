import base64
import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List

import httpx
import pytest

from portfolio_intel.config import Settings
from portfolio_intel.services.cache import Cache
from portfolio_intel.services.github_client import GitHubClient
from portfolio_intel.services.repository_inspector import RepositoryInspector

API = "https://api.github.com"


def b64(text: str) -> Dict[str, str]:
    return {"content": base64.b64encode(text.encode()).decode(), "encoding": "base64"}


def repo_json(name: str, owner: str = "octo", **extra) -> Dict[str, Any]:
    data = {
        "name": name,
        "full_name": f"{owner}/{name}",
        "owner": {"login": owner},
        "description": extra.pop("description", f"{name} project"),
        "stargazers_count": extra.pop("stars", 0),
        "forks_count": extra.pop("forks", 0),
        "language": extra.pop("language", None),
        "updated_at": extra.pop("updated_at", "2026-09-01T00:00:00Z"),
        "html_url": f"https://github.com/{owner}/{name}",
        "default_branch": "main",
        "homepage": extra.pop("homepage", ""),
        "fork": False,
    }
    data.update(extra)
    return data


class FakeGitHubAPI:
    """Route table for httpx.MockTransport: path -> (status, body) or callable."""

    def __init__(self, routes: Dict[str, Any]):
        self.routes = routes
        self.calls: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"message": "Not Found"})
        if callable(route):
            return route(request)
        status, body = route
        return httpx.Response(status, json=body)

    def paths_called(self) -> List[str]:
        return [c.url.path for c in self.calls]


@pytest.fixture
def settings() -> Settings:
    return Settings(
        github_token="test-token",
        batch_delay_seconds=0,
        repo_timeout_seconds=5,
        analysis_deadline_seconds=30,
    )


@pytest.fixture
def make_github(settings) -> Callable[[Dict[str, Any]], tuple]:
    def factory(routes: Dict[str, Any]):
        api = FakeGitHubAPI(routes)
        client = httpx.AsyncClient(base_url=API, transport=httpx.MockTransport(api.handler))
        return GitHubClient(settings, client=client), api
    return factory


@pytest.fixture
def make_inspector(settings, make_github):
    def factory(routes: Dict[str, Any], cache: Cache = None):
        github, api = make_github(routes)
        return RepositoryInspector(github, settings, cache=cache or Cache()), api
    return factory


def fake_genai_client(replies: List[Any]) -> SimpleNamespace:
    """
    Stand-in for google.genai.Client. Each reply is a string (returned as
    response text) or an exception instance (raised).
    """
    queue = list(replies)
    calls: List[str] = []

    async def generate_content(model, contents, config=None):
        calls.append(model)
        reply = queue.pop(0) if queue else RuntimeError("no reply")
        if isinstance(reply, Exception):
            raise reply
        return SimpleNamespace(text=reply, candidates=[])

    client = SimpleNamespace(aio=SimpleNamespace(models=SimpleNamespace(generate_content=generate_content)))
    client.calls = calls
    return client


VALID_NARRATIVE = json.dumps({
    "strengths": ["React"],
    "careerPaths": [{"role": "Frontend Developer", "match": 80, "reason": "Strong React usage"}],
    "learningPath": ["Learn Docker"],
    "actionItems": ["Deploy a project"],
    "focusAreas": {"immediate": ["Docker"], "shortTerm": ["CI"], "longTerm": ["System design"]},
})
