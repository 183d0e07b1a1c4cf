import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from app.agent.artifacts import LogoBrief
from app.agent.errors import PipelineError, public_error
from app.agent.orchestrator import run_pipeline, run_pipeline_generator, serialize_result
from app.api.deps import CacheDep, LLMClientDep

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post("/stream")
async def generate_logo_stream(payload: LogoBrief, cache: CacheDep, client: LLMClientDep):
    """Start the generation pipeline and stream progress via SSE."""
    return EventSourceResponse(run_pipeline_generator(payload, client=client, cache=cache))


@router.post("/")
async def generate_logo(payload: LogoBrief, cache: CacheDep, client: LLMClientDep):
    """Run the whole pipeline and return the finished logo package."""
    try:
        result = await run_pipeline(payload, client=client, cache=cache)
    except PipelineError as exc:
        logger.error("Logo generation failed: %s", exc.error.message)
        return JSONResponse(status_code=exc.error.status, content={"error": public_error(exc.error)})
    return serialize_result(result)
