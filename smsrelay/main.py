import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from smsrelay import db
from smsrelay.allowlist import AllowList
from smsrelay.config import RelaySettings, apply_env_overrides, load_config
from smsrelay.dedup import DedupTracker
from smsrelay.llm import load_llm_from_config
from smsrelay.models import RelayOutcome, RelayResult
from smsrelay.relay import RelayOrchestrator
from smsrelay.routes import include_all_routes
from smsrelay.state_store import SqliteStateStore
from smsrelay.transports import load_transport_from_config

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(message)s"
)
log = logging.getLogger(__name__)


def record_result(result: RelayResult):
    """Write a finished relay task to message history."""
    report = result.report
    if result.outcome is RelayOutcome.COMPLETED:
        reason = f"sent {report.succeeded}/{report.total} segments"
    else:
        reason = result.error or "failed"
    db.finish_message(
        result.fingerprint,
        result.outcome.value,
        reason,
        reply=result.reply or None,
        segments_sent=report.succeeded if report else 0,
        segments_failed=report.failed if report else 0,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    db.init_db()
    config = apply_env_overrides(load_config())
    app.state.config = config
    app.state.settings = RelaySettings.from_config(config)
    app.state.allowlist = AllowList.from_config(config)

    app.state.tracker = DedupTracker(SqliteStateStore(), capacity=app.state.settings.dedup_capacity)
    app.state.tracker.recover()

    app.state.llm = load_llm_from_config(config.get("llm", {}) or {})
    app.state.transport = load_transport_from_config(config.get("transport", {}) or {})
    app.state.orchestrator = RelayOrchestrator(
        allowlist=app.state.allowlist,
        tracker=app.state.tracker,
        llm=app.state.llm,
        transport=app.state.transport,
        settings=app.state.settings,
        on_finished=record_result,
    )
    log.info(
        f"Relay ready: llm={app.state.llm.name}, transport={app.state.transport.name}, "
        f"allowlist={app.state.allowlist.summary()}"
    )

    yield

    # Shutdown - let in-flight replies finish
    if app.state.orchestrator.in_flight:
        log.info(f"Waiting for {app.state.orchestrator.in_flight} in-flight relay task(s)")
    await app.state.orchestrator.drain()


app = FastAPI(title="SMS Relay", lifespan=lifespan)
include_all_routes(app)
