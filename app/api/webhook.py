"""Research service webhook endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, Request
from fastapi.responses import PlainTextResponse
from pydantic import ValidationError

from app.api.deps import get_store, webhook_callback_url
from app.config import get_settings
from app.research.router import get_research_provider
from app.schemas.webhook import TaskRunEvent
from app.services.analysis_store import AnalysisStore
from app.services.webhook import MissingHostnameError, handle_task_run_event, verify_webhook_signature

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/webhook", response_class=PlainTextResponse)
async def receive_webhook(
    request: Request,
    store: AnalysisStore = Depends(get_store),
    webhook_id: str | None = Header(None),
    webhook_timestamp: str | None = Header(None),
    webhook_signature: str | None = Header(None),
):
    """Verify and apply a task run status event.

    Nothing is read from the body or written to the store until the
    signature has been verified.
    """
    if not webhook_id or not webhook_timestamp or not webhook_signature:
        return PlainTextResponse("Missing webhook headers", status_code=400)

    raw_body = await request.body()
    if not verify_webhook_signature(
        get_settings().parallel_webhook_secret,
        webhook_id,
        webhook_timestamp,
        raw_body,
        webhook_signature,
    ):
        logger.warning("Rejected webhook %s: invalid signature", webhook_id)
        return PlainTextResponse("Invalid signature", status_code=401)

    try:
        event = TaskRunEvent.model_validate_json(raw_body.decode("utf-8"))
    except (UnicodeDecodeError, ValidationError) as exc:
        logger.warning("Rejected webhook %s: invalid payload: %s", webhook_id, exc)
        return PlainTextResponse("Invalid payload", status_code=400)

    logger.info(
        "Webhook %s: %s run_id=%s status=%s",
        webhook_id,
        event.type,
        event.data.run_id,
        event.data.status,
    )
    try:
        provider = get_research_provider()
    except ValueError:
        logger.exception("Research provider unavailable for webhook %s", webhook_id)
        provider = None

    try:
        await handle_task_run_event(
            store,
            provider,
            event,
            callback_url=webhook_callback_url(request),
        )
    except MissingHostnameError as exc:
        return PlainTextResponse(str(exc), status_code=400)

    return PlainTextResponse("OK")


@router.api_route("/webhook", methods=["GET", "PUT", "PATCH", "DELETE"], include_in_schema=False)
def webhook_method_not_allowed():
    return PlainTextResponse("Method not allowed", status_code=405)
