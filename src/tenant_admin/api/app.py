"""FastAPI application for the tenant admin back office."""

from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from tenant_admin.api.routes.api_keys import router as api_keys_router
from tenant_admin.api.routes.health import router as health_router
from tenant_admin.api.routes.reports import router as reports_router
from tenant_admin.api.routes.settings import router as settings_router
from tenant_admin.api.routes.tenants import router as tenants_router
from tenant_admin.api.routes.webhooks import router as webhooks_router
from tenant_admin.config.settings import get_settings
from tenant_admin.db.engine import dispose_engine
from tenant_admin.db.session import get_session_factory
from tenant_admin.logging_config import configure_logging
from tenant_admin.reports.jobs import ReportJobQueue

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    configure_logging(json_output=settings.log_json, log_level=settings.log_level)

    queue = ReportJobQueue(
        session_factory=get_session_factory(),
        output_dir=settings.report_output_dir,
        workers=settings.report_workers,
    )
    queue.start()
    app.state.report_queue = queue
    logger.info("api_started", codec_mode=settings.codec_mode)
    try:
        yield
    finally:
        await queue.stop()
        app.state.report_queue = None
        await dispose_engine()
        logger.info("api_stopped")


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    body: dict = {"success": False}
    if isinstance(exc.detail, dict):
        body.update(exc.detail)
    else:
        body["message"] = str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Invalid request", "error": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_failed", path=request.url.path, method=request.method)
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error", "error": str(exc)},
    )


def create_app() -> FastAPI:
    settings = get_settings()
    application = FastAPI(title="Tenant Admin API", version="0.1.0", lifespan=lifespan)

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(HTTPException, http_exception_handler)
    application.add_exception_handler(RequestValidationError, validation_exception_handler)
    application.add_exception_handler(Exception, unhandled_exception_handler)

    application.include_router(health_router)
    # Credential routes share the /settings prefix and must win over /settings/{setting_id}.
    application.include_router(api_keys_router)
    application.include_router(webhooks_router)
    application.include_router(settings_router)
    application.include_router(reports_router)
    application.include_router(tenants_router)
    return application


app = create_app()
