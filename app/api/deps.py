from functools import lru_cache

from fastapi import Depends

from app.db import SessionLocal
from app.services.auth_dependencies import (
    Principal,
    require_role,
    require_user_auth,
)
from app.services.blob_storage import StorageService
from app.services.content_generator import ContentGenerator
from app.services.delivery import DeliveryNotifier
from app.services.document_renderer import DocumentRenderer
from app.services.document_store import DocumentStore
from app.services.review_workflow import ReviewWorkflow
from app.services.strategy_pipeline import StrategyPipeline

__all__ = [
    "Principal",
    "get_content_generator",
    "get_db",
    "get_document_store",
    "get_notifier",
    "get_pipeline",
    "get_renderer",
    "get_review_workflow",
    "get_storage",
    "require_admin",
    "require_role",
    "require_user_auth",
]

require_admin = require_role("admin")


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Clients are built once per process from settings; tests override these.


@lru_cache
def get_storage() -> StorageService:
    return StorageService.from_settings()


@lru_cache
def get_content_generator() -> ContentGenerator:
    return ContentGenerator.from_settings()


@lru_cache
def get_renderer() -> DocumentRenderer:
    return DocumentRenderer.from_settings()


@lru_cache
def get_notifier() -> DeliveryNotifier:
    return DeliveryNotifier.from_settings()


def get_document_store(storage: StorageService = Depends(get_storage)) -> DocumentStore:
    return DocumentStore(storage)


def get_review_workflow(
    store: DocumentStore = Depends(get_document_store),
    renderer: DocumentRenderer = Depends(get_renderer),
    notifier: DeliveryNotifier = Depends(get_notifier),
) -> ReviewWorkflow:
    return ReviewWorkflow.from_settings(store, renderer, notifier)


def get_pipeline(
    generator: ContentGenerator = Depends(get_content_generator),
    renderer: DocumentRenderer = Depends(get_renderer),
    store: DocumentStore = Depends(get_document_store),
) -> StrategyPipeline:
    return StrategyPipeline(generator, renderer, store)
