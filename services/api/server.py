"""
VideoForge HTTP + SSE Server

FastAPI server that provides:
- POST /api/video/generate - Submit a video generation
- GET /api/video/{id}/stream - SSE stream until the job is terminal
- GET /api/video - Paged gallery of the caller's jobs
- GET/PATCH/DELETE /api/video/{id} - Single job
- GET /api/video/models - Models across every enabled provider key
- GET /api/video/file/{key} - Stored video bytes from R2
- /api/video/schedules - Recurring generation schedules (CRUD)
- GET /api/admin/wavespeed-pricing - Live WaveSpeed pricing (cached 24h)
- GET /health - Health check

Caller identity arrives in the X-User-Id header, set by the auth layer in
front of this service.

Usage:
    # Start server
    python -m uvicorn services.api.server:app --host 0.0.0.0 --port 8765

    # Or via main.py
    python main.py server
"""

import logging
import uuid
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any, Optional

from fastapi import Body, Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, Field

from core.config import get_config
from core.errors import JobNotFoundError, VideoGenerationError
from services.video_generation.best_effort import best_effort
from services.video_generation.handler import SubmitVideoRequest
from services.video_generation.models import validate_prompt
from services.video_generation.schedules import build_new_schedule, build_schedule_updates

from .dependencies import VideoServices, build_services, get_current_user, get_services, require_admin

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 50
DEFAULT_PAGE_SIZE = 20

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


class GenerateVideoRequest(BaseModel):
    """Request to generate a video."""
    prompt: Any = None
    provider: Optional[str] = None
    model: Optional[str] = None
    aspect_ratio: Optional[str] = Field(default=None, alias="aspectRatio")
    duration: Any = None
    resolution: Optional[str] = None
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    message_id: Optional[str] = Field(default=None, alias="messageId")

    def to_submission(self) -> SubmitVideoRequest:
        return SubmitVideoRequest(
            prompt=self.prompt,
            provider=self.provider,
            model=self.model,
            aspect_ratio=self.aspect_ratio,
            duration=self.duration,
            resolution=self.resolution,
            conversation_id=self.conversation_id,
            message_id=self.message_id,
        )


def create_app(services: Optional[VideoServices] = None) -> FastAPI:
    """
    Build the FastAPI app.

    When `services` is given it is used as-is and never closed; otherwise the
    lifespan connects to PostgreSQL, Redis and R2 from the environment.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = services is None
        if owned:
            logger.info("Starting VideoForge server...")
            app.state.services = await build_services(get_config())
        yield
        if owned:
            logger.info("Shutting down VideoForge server...")
            await app.state.services.close()

    app = FastAPI(
        title="VideoForge",
        description="Multi-provider video generation with live progress streaming",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.services = services

    @app.exception_handler(VideoGenerationError)
    async def video_error_handler(request: Request, exc: VideoGenerationError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.message, "error_code": exc.error_code},
        )

    _register_routes(app)
    return app


def _register_routes(app: FastAPI):
    # Static paths are registered before /api/video/{job_id} so they win the match.

    @app.get("/")
    async def root():
        """Root endpoint with API info."""
        return {
            "service": "VideoForge",
            "version": "1.0.0",
            "endpoints": {
                "POST /api/video/generate": "Start video generation",
                "GET /api/video/{id}/stream": "SSE progress stream",
                "GET /api/video": "List generations",
                "GET /api/video/{id}": "Generation details",
                "GET /api/video/models": "Available models",
                "GET /api/video/schedules": "Recurring schedules",
                "GET /health": "Health check",
            },
        }

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "healthy",
            "timestamp": datetime.utcnow().isoformat(),
        }

    @app.post("/api/video/generate")
    async def generate(
        request: GenerateVideoRequest,
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        """
        Submit a video generation.

        Returns immediately; follow progress at /api/video/{id}/stream.
        """
        submission = await services.handler.submit(user_id, request.to_submission())
        return submission.to_dict()

    @app.get("/api/video")
    async def list_videos(
        limit: int = Query(DEFAULT_PAGE_SIZE, ge=0),
        offset: int = Query(0, ge=0),
        status: Optional[str] = Query(None),
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        limit = min(limit or DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE)
        jobs, total = await services.job_store.list_for_user(user_id, limit=limit, offset=offset, status=status)
        return {
            "videos": [job.to_dict() for job in jobs],
            "total": total,
            "limit": limit,
            "offset": offset,
        }

    @app.get("/api/video/models")
    async def list_models(
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        """Models from every enabled provider key, first occurrence of each id wins."""
        seen: set[str] = set()
        models = []
        for _key, key_models in await services.registry.all_enabled_keys_and_models():
            for model in key_models:
                if model.id in seen:
                    continue
                seen.add(model.id)
                models.append(model.to_dict())
        return {"models": models}

    # ------------------------------------------------------------------
    # Schedules
    # ------------------------------------------------------------------

    @app.get("/api/video/schedules")
    async def list_schedules(
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        schedules = await services.schedule_store.list_for_user(user_id)
        return {"schedules": [s.to_dict() for s in schedules]}

    @app.post("/api/video/schedules")
    async def create_schedule(
        body: dict = Body(...),
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        schedule = build_new_schedule(str(uuid.uuid4()), user_id, body)
        await services.schedule_store.insert(schedule)
        return {"success": True, "schedule": schedule.to_dict()}

    @app.get("/api/video/schedules/{schedule_id}")
    async def get_schedule(
        schedule_id: str,
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        schedule = await services.schedule_store.get(schedule_id, user_id)
        if schedule is None:
            raise HTTPException(status_code=404, detail="Schedule not found")
        return schedule.to_dict()

    @app.patch("/api/video/schedules/{schedule_id}")
    async def update_schedule(
        schedule_id: str,
        body: dict = Body(...),
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        if await services.schedule_store.get(schedule_id, user_id) is None:
            raise HTTPException(status_code=404, detail="Schedule not found")
        updates = build_schedule_updates(body)
        await services.schedule_store.update(schedule_id, user_id, updates)
        return {"success": True, "id": schedule_id}

    @app.delete("/api/video/schedules/{schedule_id}")
    async def delete_schedule(
        schedule_id: str,
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        if await services.schedule_store.get(schedule_id, user_id) is None:
            raise HTTPException(status_code=404, detail="Schedule not found")
        await services.schedule_store.delete(schedule_id, user_id)
        return {"success": True, "id": schedule_id}

    # ------------------------------------------------------------------
    # Stored files
    # ------------------------------------------------------------------

    @app.get("/api/video/file/{key:path}")
    async def get_video_file(
        key: str,
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        if services.artifact_store is None or not key.startswith(f"videos/{user_id}/"):
            raise HTTPException(status_code=404, detail="Video not found")

        stored = await services.artifact_store.get(key)
        if stored is None:
            raise HTTPException(status_code=404, detail="Video not found")

        data, content_type = stored
        return Response(
            content=data,
            media_type=content_type,
            headers={"Cache-Control": "private, max-age=3600"},
        )

    # ------------------------------------------------------------------
    # Single job
    # ------------------------------------------------------------------

    async def _owned_job(services: VideoServices, job_id: str, user_id: str):
        job = await services.job_store.get_by_id(job_id, user_id)
        if job is None:
            raise JobNotFoundError("Video generation not found")
        return job

    @app.get("/api/video/{job_id}")
    async def get_video(
        job_id: str,
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        job = await _owned_job(services, job_id, user_id)
        return job.to_dict()

    @app.patch("/api/video/{job_id}")
    async def update_video(
        job_id: str,
        body: dict = Body(...),
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        await _owned_job(services, job_id, user_id)
        if "prompt" not in body:
            raise HTTPException(status_code=400, detail="No valid fields to update")
        prompt = validate_prompt(body["prompt"])
        await services.job_store.update_prompt(job_id, user_id, prompt)
        return {"success": True, "id": job_id}

    @app.delete("/api/video/{job_id}")
    async def delete_video(
        job_id: str,
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        job = await _owned_job(services, job_id, user_id)
        if job.r2_key and services.artifact_store is not None:
            await best_effort(f"delete stored video {job.r2_key}", services.artifact_store.delete(job.r2_key))
        await services.job_store.delete(job_id, user_id)
        return {"success": True, "id": job_id}

    @app.get("/api/video/{job_id}/stream")
    async def stream_video(
        job_id: str,
        user_id: str = Depends(get_current_user),
        services: VideoServices = Depends(get_services),
    ):
        """
        SSE endpoint for generation progress.

        Each event is `data: {json}\\n\\n` with status, progress and, once
        terminal, videoUrl/cost or error. The stream closes after the
        terminal event.

        Usage:
            curl -N -H "X-User-Id: u1" http://localhost:8765/api/video/<id>/stream
        """
        job = await _owned_job(services, job_id, user_id)
        orchestrator = services.orchestrator()

        async def event_stream():
            async for event in orchestrator.stream(job):
                yield event.to_sse()

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers=SSE_HEADERS,
        )

    # ------------------------------------------------------------------
    # Admin
    # ------------------------------------------------------------------

    @app.get("/api/admin/wavespeed-pricing")
    async def wavespeed_pricing(
        refresh: bool = Query(False),
        user_id: str = Depends(require_admin),
        services: VideoServices = Depends(get_services),
    ):
        if services.pricing_cache is None:
            raise HTTPException(status_code=503, detail="Pricing cache not available")
        return await services.pricing_cache.get_pricing(refresh=refresh)


app = create_app()


def run_server(host: str = "0.0.0.0", port: int = 8765):
    """Run the server using uvicorn."""
    import uvicorn
    uvicorn.run(app, host=host, port=port)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%H:%M:%S",
    )
    run_server()
