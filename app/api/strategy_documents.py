from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from app.api.deps import (
    Principal,
    get_db,
    get_document_store,
    get_pipeline,
    get_review_workflow,
    require_admin,
    require_user_auth,
)
from app.schemas.common import ListResponse
from app.schemas.strategy import (
    DocumentDeliveryRead,
    DocumentReviewUpdate,
    GeneratedDocumentRead,
    SendDocumentRequest,
    SendDocumentResponse,
    StrategyGenerateRequest,
    StrategyGenerateResponse,
)
from app.services.document_store import DocumentStore
from app.services.review_workflow import ReviewWorkflow
from app.services.strategy_pipeline import StrategyPipeline

router = APIRouter(prefix="/strategy-documents", tags=["strategy-documents"])


def _download_path(document_id, file_format: str) -> str:
    return f"/strategy-documents/{document_id}/download?format={file_format}"


@router.post(
    "/generate",
    response_model=StrategyGenerateResponse,
    status_code=status.HTTP_201_CREATED,
)
def generate_strategy(
    payload: StrategyGenerateRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
    pipeline: StrategyPipeline = Depends(get_pipeline),
):
    result = pipeline.generate(
        db,
        principal,
        payload.case_id,
        payload.intake,
        kind=payload.kind,
        include_word=payload.include_word,
    )
    document = result.document
    return {
        "document_id": document.id,
        "status": document.status,
        "is_fallback": result.degraded,
        "pdf_url": _download_path(document.id, "pdf"),
        "word_url": (
            _download_path(document.id, "docx") if document.word_storage_key else None
        ),
    }


@router.get("/pending", response_model=ListResponse[GeneratedDocumentRead])
def list_pending_documents(
    limit: int = Query(default=50, ge=1, le=200),
    offset: int = Query(default=0, ge=0),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    return workflow.list_pending(db, principal, limit=limit, offset=offset)


@router.get("/{document_id}", response_model=GeneratedDocumentRead)
def get_document(
    document_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
    store: DocumentStore = Depends(get_document_store),
):
    return store.fetch(db, document_id, principal)


@router.put("/{document_id}", response_model=GeneratedDocumentRead)
def update_document(
    document_id: str,
    payload: DocumentReviewUpdate,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    return workflow.update(
        db, document_id, principal, content=payload.content, status=payload.status
    )


@router.post("/{document_id}/send", response_model=SendDocumentResponse)
def send_document(
    document_id: str,
    payload: SendDocumentRequest,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    outcome = workflow.send(
        db,
        document_id,
        principal,
        to=payload.to,
        subject=payload.subject,
        body=payload.body,
        include_word=payload.include_word,
    )
    return {
        "document_id": outcome.document.id,
        "status": outcome.document.status,
        "delivery_id": outcome.delivery.id,
        "sent_to": outcome.document.sent_to,
        "sent_at": outcome.document.sent_at,
        "dev_mode": outcome.dev_mode,
    }


@router.get("/{document_id}/download")
def download_document(
    document_id: str,
    file_format: str = Query(default="pdf", alias="format", pattern="^(pdf|docx)$"),
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
    store: DocumentStore = Depends(get_document_store),
):
    stored = store.download(db, document_id, principal, file_format)
    return Response(
        content=stored.data,
        media_type=stored.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{stored.file_name}"'},
    )


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_document(
    document_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_user_auth),
    store: DocumentStore = Depends(get_document_store),
):
    store.delete(db, document_id, principal)


@router.get("/{document_id}/deliveries", response_model=list[DocumentDeliveryRead])
def list_document_deliveries(
    document_id: str,
    db: Session = Depends(get_db),
    principal: Principal = Depends(require_admin),
    workflow: ReviewWorkflow = Depends(get_review_workflow),
):
    return workflow.list_deliveries(db, document_id, principal)
