"""System status routes."""

import time

from fastapi import APIRouter, Query, Request

from smsrelay import db
from smsrelay.errors import LlmInvocationError
from smsrelay.transports import get_config_warnings

router = APIRouter(tags=["status"])


@router.get("/api/status")
async def status_api(request: Request):
    """JSON API for system status data."""
    app = request.app
    orchestrator = app.state.orchestrator
    tracker = orchestrator.tracker

    # Core services
    core_services = []

    core_services.append({
        "id": "relay",
        "name": "SMS Relay",
        "status": "Healthy",
        "detail": "FastAPI server running",
        "checks": {
            "in_flight": orchestrator.in_flight,
            "processing": tracker.processing_count,
            "completed_remembered": tracker.completed_count,
            "dedup_capacity": tracker.capacity,
            "allowlist": orchestrator.allowlist.summary(),
        }
    })

    try:
        stats = db.get_stats()
        db_status = "Healthy"
        db_detail = f"{stats.get('received', 0)} messages logged"
    except Exception as e:
        db_status = "Unhealthy"
        db_detail = str(e)[:50]
    core_services.append({
        "id": "database",
        "name": "SQLite Database",
        "status": db_status,
        "detail": db_detail,
    })

    # External services
    external_services = []

    llm = app.state.llm
    llm_ok = await llm.check_available()
    external_services.append({
        "id": "llm",
        "name": f"LLM ({llm.name})",
        "status": "Healthy" if llm_ok else "Unhealthy",
        "detail": getattr(llm, "model", ""),
    })

    transport = app.state.transport
    if not transport.is_enabled():
        transport_status = "Disabled"
    elif await transport.check_available():
        transport_status = "Healthy"
    else:
        transport_status = "Unhealthy"
    external_services.append({
        "id": "transport",
        "name": f"SMS transport ({transport.name})",
        "status": transport_status,
        "detail": "Outbound SMS channel",
    })

    return {
        "core": core_services,
        "external": external_services,
        "warnings": get_config_warnings(),
        "allowlist_warnings": list(orchestrator.allowlist.warnings),
    }


@router.get("/api/stats")
async def stats_api():
    """Message counters."""
    return db.get_stats()


@router.get("/api/messages")
async def messages_api(limit: int = Query(50, ge=1, le=500)):
    """Recent inbound messages with their outcome."""
    return db.get_recent_messages(limit)


@router.post("/api/test-llm")
async def test_llm(request: Request):
    """Send a canned prompt to the configured LLM."""
    llm = request.app.state.llm
    start_time = time.time()
    try:
        reply = await llm.reply("Hello")
    except LlmInvocationError as e:
        return {"success": False, "provider": llm.name, "error": str(e)}
    return {
        "success": True,
        "provider": llm.name,
        "reply": reply,
        "duration_ms": int((time.time() - start_time) * 1000),
    }
