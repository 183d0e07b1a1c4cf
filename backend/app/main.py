import logging

from fastapi import FastAPI

from app.agent.orchestrator import default_cache
from app.api.main import api_router
from app.core.config import settings

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
)
# One cache per process, shared by every request through `app.api.deps.get_cache`.
app.state.cache = default_cache()

app.include_router(api_router, prefix=settings.API_V1_STR)
