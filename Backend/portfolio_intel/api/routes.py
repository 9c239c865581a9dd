import re
import logging
from typing import Optional

import redis.asyncio as redis
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from ..errors import UpstreamUnavailable

logger = logging.getLogger(__name__)

router = APIRouter()

_PROFILE_URL = re.compile(r"github\.com/([^/?#\s]+)", re.IGNORECASE)


class AnalyzeGithubRequest(BaseModel):
    """Request body for /api/analyze-github."""
    githubUsername: str = Field(..., min_length=1)
    email: Optional[str] = None


def extract_username(value: str) -> str:
    """Accept either a bare username or a profile URL."""
    value = value.strip()
    match = _PROFILE_URL.search(value)
    return (match.group(1) if match else value).strip("/@ ")


@router.get("/health")
async def health():
    return {"ok": True}


@router.post("/api/analyze-github")
async def analyze_github(body: AnalyzeGithubRequest, request: Request):
    """
    Analyze a user's public repositories and return portfolio metrics,
    skill gaps, recommendations and a career narrative. When ``email`` is
    given, the result is merged into that user's stored profile.
    """
    username = extract_username(body.githubUsername)
    if not username:
        return JSONResponse(status_code=400, content={"success": False, "error": "githubUsername is required"})

    service = request.app.state.profile_service
    try:
        return await service.build_profile(username, email=body.email)
    except UpstreamUnavailable as e:
        logger.warning(f"Analysis of {username} aborted: {e}")
        status = 404 if e.not_found else 502
        return JSONResponse(status_code=status, content={"success": False, "error": str(e)})


@router.get("/api/get-profile/{email}")
async def get_profile(email: str, request: Request):
    try:
        profile = await request.app.state.profile_service.get_profile(email)
    except (redis.RedisError, OSError) as e:
        logger.error(f"Profile lookup failed: {e}")
        return JSONResponse(
            status_code=503,
            content={"success": False, "exists": False, "profile": None, "error": "Profile store unavailable"},
        )
    return {"success": True, "exists": profile is not None, "profile": profile}
