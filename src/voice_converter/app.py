"""FastAPI application with lifespan, health, recheck, and admin endpoints."""

import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, HTTPException, Request

from voice_converter.config import ConfigurationError, get_settings
from voice_converter.logging_config import configure_logging
from voice_converter.services import clear_state, get_pipeline, get_task_queue
from voice_converter.slack.router import router as slack_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: configure logging on startup, cancel rechecks on shutdown."""
    settings = get_settings()
    configure_logging(settings.log_level)
    app.state.settings = settings
    yield
    get_task_queue().cancel_all()


app = FastAPI(
    title="Slack Voice Converter",
    lifespan=lifespan,
)
app.include_router(slack_router)


async def verify_scheduler(request: Request) -> None:
    """Verify the scheduler secret header for protected endpoints.

    Compares the X-Scheduler-Secret header against the configured secret.
    Raises HTTPException 403 if the header is missing, empty, or mismatched.
    """
    settings = get_settings()
    secret = request.headers.get("X-Scheduler-Secret", "")
    if not settings.scheduler_secret or secret != settings.scheduler_secret:
        raise HTTPException(status_code=403, detail="Invalid scheduler secret")


def _pipeline_or_503():
    try:
        return get_pipeline()
    except ConfigurationError as exc:
        logger.error("Pipeline unavailable: %s", exc)
        raise HTTPException(status_code=503, detail=str(exc))


@app.get("/health")
async def health():
    """Health check endpoint for Cloud Run and local development."""
    return {
        "status": "ok",
        "service": "slack-voice-converter",
        "version": "0.1.0",
    }


@app.post("/transcriptions/{file_id}/recheck")
async def recheck_endpoint(file_id: str, _: None = Depends(verify_scheduler)):
    """Run one transcription recheck, for hosts where in-process timers do not survive."""
    pipeline = _pipeline_or_503()
    await pipeline.recheck(file_id)
    return {"status": "checked", "file_id": file_id}


@app.post("/admin/clear-cache")
async def clear_cache_endpoint(_: None = Depends(verify_scheduler)):
    """Drop dedup markers and pending records, cancel scheduled rechecks."""
    return clear_state()


@app.get("/admin/settings")
async def settings_endpoint(_: None = Depends(verify_scheduler)):
    """Report which settings are present and whether the Slack tokens are valid."""
    settings = get_settings()
    report = {
        "slack_bot_token": bool(settings.slack_bot_token),
        "slack_user_token": bool(settings.slack_user_token),
        "slack_channel_name": settings.slack_channel_name or None,
        "slack_signing_secret": bool(settings.slack_signing_secret),
        "google_service_account": bool(settings.google_service_account_json),
        "external_speech": settings.external_speech,
        "cleanup_target": settings.cleanup_target,
    }
    try:
        pipeline = get_pipeline()
    except ConfigurationError as exc:
        report["tokens"] = None
        report["error"] = str(exc)
        return report
    report["tokens"] = await pipeline.slack.auth_test()
    return report


@app.get("/admin/files/{file_id}/transcription")
async def file_transcription_endpoint(file_id: str, _: None = Depends(verify_scheduler)):
    """Report Slack's transcription state for a file."""
    pipeline = _pipeline_or_503()
    voice_file = await pipeline.slack.get_file_info(file_id)
    if voice_file is None:
        raise HTTPException(status_code=404, detail=f"File {file_id} not found")
    return {
        "file_id": voice_file.id,
        "mimetype": voice_file.mimetype,
        "state": voice_file.transcription_state.value,
        "preview": voice_file.preview.model_dump() if voice_file.preview else None,
        "pending": pipeline.selector.pending.get(file_id),
    }
