import os
import logging
from contextlib import asynccontextmanager
from typing import Optional

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from portfolio_intel.api.routes import router
from portfolio_intel.config import settings
from portfolio_intel.services.github_profile import GitHubProfileService

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)


def create_app(service: Optional[GitHubProfileService] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = service is None
        app.state.profile_service = service or await GitHubProfileService.create(settings)
        yield
        if owned:
            await app.state.profile_service.aclose()

    app = FastAPI(
        title="GitHub Portfolio Intelligence API",
        description="Repository analysis, skill scoring and career guidance for students",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(router)
    return app


app = create_app()

if __name__ == "__main__":
    port = int(os.getenv("PORT", "8000"))
    uvicorn.run("main:app", host="0.0.0.0", port=port)
