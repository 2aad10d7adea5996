from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging
import os

from reportbot.api.shortcut import router as shortcut_router
from reportbot.api.telegram import router as telegram_router
from reportbot.core.config import LOG_LEVEL
from reportbot.core.logger import configure_logging
from reportbot.schemas import HealthResponse
from reportbot.services_container import build_services
from reportbot.system_metrics import get_metrics_snapshot

configure_logging(LOG_LEVEL)

app = FastAPI(title="Pupil Report Bot")
logger = logging.getLogger("reportbot.main")


def _get_allowed_origins() -> list[str]:
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    if not raw:
        return ["*"]
    return [item.strip() for item in raw.split(",") if item.strip()]


_allowed_origins = _get_allowed_origins()

app.add_middleware(
    CORSMiddleware,
    allow_origins=_allowed_origins,
    allow_methods=["POST", "OPTIONS", "GET"],
    allow_headers=["Content-Type"],
    allow_credentials=False,
)


@app.on_event("startup")
async def startup_banner():
    if getattr(app.state, "services", None) is None:
        app.state.services = build_services()
    services = app.state.services
    settings = services.pipeline.settings
    logger.info("[SYSTEM] CORS allow_origins=%s", _allowed_origins)
    logger.info(
        "[SYSTEM] model=%s report_format=%s telegram=%s suggest_comments=%s",
        settings.openai_model,
        settings.report_format,
        services.telegram is not None,
        settings.suggest_subject_comments,
    )


@app.on_event("shutdown")
async def shutdown_handler():
    services = getattr(app.state, "services", None)
    if services is not None:
        await services.aclose()
    logger.info("[SYSTEM] shutdown complete")


@app.get("/healthz", response_model=HealthResponse)
async def healthz():
    return HealthResponse(status="ok", service="reportbot")


@app.get("/api/system/metrics")
def system_metrics_route():
    return get_metrics_snapshot()


app.include_router(telegram_router)
app.include_router(shortcut_router)
