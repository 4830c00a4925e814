"""Slack webhook router with signature verification."""

from fastapi import APIRouter, BackgroundTasks, Depends
from fastapi.responses import PlainTextResponse

from voice_converter.slack.handlers import handle_slack_event
from voice_converter.slack.verification import verify_slack_request

router = APIRouter(prefix="", tags=["slack"])

RUNNING = "Slack Voice Converter is running!"


@router.post("/slack/events", response_class=PlainTextResponse)
async def slack_events(
    background_tasks: BackgroundTasks,
    payload: dict = Depends(verify_slack_request),
) -> PlainTextResponse:
    """Receive Slack webhook events.

    Always answers 200 with a plain-text status; the voice memo pipeline
    runs after the response is sent.
    """
    return PlainTextResponse(handle_slack_event(payload, background_tasks))


@router.get("/slack/events", response_class=PlainTextResponse)
async def slack_events_status() -> PlainTextResponse:
    """Plain-text liveness check for the webhook URL."""
    return PlainTextResponse(RUNNING)
