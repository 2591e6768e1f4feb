import logging
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from app.api.deps import require_user_auth
from app.api.notifications import router as notifications_router
from app.api.strategy_documents import router as strategy_documents_router
from app.config import settings
from app.errors import register_error_handlers
from app.logging import configure_logging
from app.services.blob_storage import StorageService

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not StorageService.is_configured():
        logger.warning("S3 storage is not configured; document generation will fail")
    if not settings.openai_api_key:
        logger.warning("OPENAI_API_KEY is not set; strategy content will use fallback")
    if not (settings.smtp_user and settings.smtp_pass):
        logger.info("SMTP credentials missing; email delivery runs in development mode")
    yield


app = FastAPI(title="Resolve Strategy Documents API", lifespan=lifespan)

configure_logging()
register_error_handlers(app)


def _include_api_router(router, dependencies=None):
    app.include_router(router, dependencies=dependencies)
    app.include_router(router, prefix="/api/v1", dependencies=dependencies)


_include_api_router(
    strategy_documents_router, dependencies=[Depends(require_user_auth)]
)
_include_api_router(notifications_router, dependencies=[Depends(require_user_auth)])


@app.get("/health")
def health_check():
    return {"status": "ok"}


@app.get("/metrics")
def metrics():
    data = generate_latest()
    return Response(content=data, media_type=CONTENT_TYPE_LATEST)
