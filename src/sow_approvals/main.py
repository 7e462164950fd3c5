# src/sow_approvals/main.py
"""
FastAPI application for the SOW approval workflow.

Run with:
    uvicorn sow_approvals.main:app --reload

Collaborators are built lazily by the container, so the app starts without
Supabase credentials; /health reports what is configured.
"""

import logging
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError

from . import __version__
from .api.approvals import router as approvals_router
from .api.responses import ErrorCode, error_json_response, success_response
from .api.stages import router as stages_router
from .config import AppConfig, load_config
from .core.container import Container
from .exceptions import WorkflowError

logger = logging.getLogger(__name__)


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def create_app(
    config: Optional[AppConfig] = None,
    container: Optional[Container] = None,
) -> FastAPI:
    """Build the app around a config and (optionally) a pre-wired container."""
    if config is None:
        load_dotenv()
        config = container.config if container else load_config()
    configure_logging(config.log_level)

    app = FastAPI(title="SOW Approval Workflow", version=__version__)
    app.state.container = container or Container(config)

    @app.exception_handler(WorkflowError)
    async def handle_workflow_error(request: Request, exc: WorkflowError):
        response = error_json_response(exc.error_code, exc.message, exc.detail)
        if response.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} failed: {exc.message} ({exc.detail})")
        else:
            logger.info(f"{request.method} {request.url.path} -> {exc.error_code.value}: {exc.message}")
        return response

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        problems = "; ".join(
            f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}"
            for error in exc.errors()
        )
        logger.info(f"{request.method} {request.url.path} -> {ErrorCode.VALIDATION_ERROR.value}: {problems}")
        return error_json_response(ErrorCode.VALIDATION_ERROR, "Request validation failed", problems)

    @app.get("/health")
    def health():
        return success_response({
            "status": "ok",
            "version": __version__,
            "environment": config.environment,
            "supabase_configured": config.supabase.is_configured,
            "slack_configured": config.slack.is_configured,
            "gating": config.workflow.gating,
        })

    app.include_router(approvals_router, prefix=config.api_prefix)
    app.include_router(stages_router, prefix=config.api_prefix)

    logger.info(f"App created (api prefix: {config.api_prefix})")
    return app


app = create_app()
