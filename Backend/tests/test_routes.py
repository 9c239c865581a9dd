import pytest
import redis.asyncio as redis
from fastapi.testclient import TestClient

from main import create_app
from portfolio_intel.api.routes import extract_username
from portfolio_intel.errors import UpstreamUnavailable


class StubService:
    def __init__(self, error=None):
        self.error = error
        self.requests = []
        self.profiles = {"jane@mail.com": {"email": "jane@mail.com", "githubUsername": "octo"}}

    async def build_profile(self, username, email=None):
        self.requests.append((username, email))
        if self.error:
            raise self.error
        return {"success": True, "githubAnalysis": {"username": username}, "aiRecommendations": {}, "saved": False}

    async def get_profile(self, email):
        return self.profiles.get(email)


@pytest.fixture
def client_for():
    def factory(service):
        return TestClient(create_app(service=service))
    return factory


@pytest.mark.parametrize("value, expected", [
    ("octo", "octo"),
    ("  octo ", "octo"),
    ("https://github.com/octo", "octo"),
    ("https://github.com/octo/", "octo"),
    ("github.com/Octo?tab=repositories", "Octo"),
    ("@octo", "octo"),
])
def test_extract_username(value, expected):
    assert extract_username(value) == expected


def test_health(client_for):
    with client_for(StubService()) as client:
        assert client.get("/health").json() == {"ok": True}


def test_analyze_accepts_profile_url(client_for):
    service = StubService()
    with client_for(service) as client:
        response = client.post("/api/analyze-github",
                               json={"githubUsername": "https://github.com/octo", "email": "jane@mail.com"})
    assert response.status_code == 200
    assert response.json()["githubAnalysis"]["username"] == "octo"
    assert service.requests == [("octo", "jane@mail.com")]


def test_blank_username_rejected(client_for):
    service = StubService()
    with client_for(service) as client:
        response = client.post("/api/analyze-github", json={"githubUsername": "   "})
    assert response.status_code == 400
    assert response.json()["success"] is False
    assert service.requests == []


def test_missing_username_is_validation_error(client_for):
    with client_for(StubService()) as client:
        assert client.post("/api/analyze-github", json={}).status_code == 422


def test_unknown_user_maps_to_404(client_for):
    service = StubService(error=UpstreamUnavailable("GitHub user 'ghost' not found", status=404))
    with client_for(service) as client:
        response = client.post("/api/analyze-github", json={"githubUsername": "ghost"})
    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "GitHub user 'ghost' not found"}


def test_upstream_failure_maps_to_502(client_for):
    service = StubService(error=UpstreamUnavailable("GitHub rate limit reached", status=403))
    with client_for(service) as client:
        response = client.post("/api/analyze-github", json={"githubUsername": "octo"})
    assert response.status_code == 502


def test_get_profile(client_for):
    with client_for(StubService()) as client:
        found = client.get("/api/get-profile/jane@mail.com").json()
        missing = client.get("/api/get-profile/nobody@mail.com").json()
    assert found == {"success": True, "exists": True,
                     "profile": {"email": "jane@mail.com", "githubUsername": "octo"}}
    assert missing == {"success": True, "exists": False, "profile": None}


def test_get_profile_store_failure_is_structured(client_for):
    class DownStore(StubService):
        async def get_profile(self, email):
            raise redis.ConnectionError("connection refused")

    with client_for(DownStore()) as client:
        response = client.get("/api/get-profile/jane@mail.com")
    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert body["exists"] is False
    assert body["profile"] is None
