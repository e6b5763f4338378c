"""Inbound SMS event routes."""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from smsrelay import db
from smsrelay.models import InboundMessage, InboundRequest, InboundResponse

log = logging.getLogger(__name__)

router = APIRouter(tags=["inbound"])


@router.post("/inbound", response_model=InboundResponse)
async def receive_inbound(req: InboundRequest, request: Request):
    """Accept an inbound SMS. The reply is produced in the background."""
    app = request.app
    msg = InboundMessage.from_request(req)

    # Log to DB first
    message_id = db.log_message(msg)

    admission = app.state.orchestrator.admit(msg)
    if admission.accepted:
        db.update_message(message_id, "processing", admission.reason)
    else:
        db.update_message(message_id, admission.status.value, admission.reason)

    return InboundResponse(
        status=admission.status.value,
        reason=admission.reason,
        fingerprint=admission.fingerprint,
    )


class HealthResponse(BaseModel):
    status: str
    db: str
    llm: str


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Health check endpoint."""
    app = request.app
    db_ok = db.check_db()
    llm_ok = await app.state.llm.check_available()

    return HealthResponse(
        status="healthy" if db_ok else "degraded",
        db="ok" if db_ok else "error",
        llm="ok" if llm_ok else "unavailable",
    )
