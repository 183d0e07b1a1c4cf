from fastapi import APIRouter

from app.api.routes import cache, generate, svg, utils

api_router = APIRouter()
api_router.include_router(utils.router, tags=["utils"])
api_router.include_router(generate.router, prefix="/generate", tags=["generate"])
api_router.include_router(svg.router, prefix="/svg", tags=["svg"])
api_router.include_router(cache.router, prefix="/cache", tags=["cache"])
