"""HTTP routes for upload, search and chat."""

import uuid
from typing import Any

from fastapi import APIRouter, Depends, File, Request, UploadFile, status
from fastapi.responses import JSONResponse, PlainTextResponse

from filecabinet import __version__
from filecabinet.config import config
from filecabinet.errors import FileCabinetError
from filecabinet.pipeline import ChatPipeline

from .errors import error_response
from .schemas import (
    ChatMessage,
    ChatRequest,
    ChatResponse,
    ClearHistoryResponse,
    HealthResponse,
    SearchRequest,
    SearchResponse,
    SearchResult,
)

logger = config.get_logger(__name__)

router = APIRouter()

UPLOAD_SUCCESS_MESSAGE = "PDFs uploaded and indexed!"
UPLOAD_ERROR_MESSAGE = "Error uploading PDFs"
CHAT_ERROR_MESSAGE = "An error occurred while processing your chat message."


def get_pipeline(request: Request) -> ChatPipeline:
    """Return the pipeline attached to the application."""  # noqa: DOC201
    return request.app.state.pipeline


def get_session_id(request: Request) -> str:
    """Return the caller's session id, issuing a new one if needed."""  # noqa: DOC201
    session_id = request.session.get("session_id")
    if not session_id:
        session_id = uuid.uuid4().hex
        request.session["session_id"] = session_id
        logger.info("Issued new session %s", session_id)
    return session_id


@router.get("/")
async def root() -> dict[str, Any]:  # noqa: RUF029
    """Describe the service and its endpoints."""  # noqa: DOC201
    return {
        "message": "FileCabinet chat API",
        "version": __version__,
        "endpoints": {
            "POST /": f"Upload up to {config.MAX_UPLOAD_FILES} PDFs (field 'pdf')",
            "POST /search": "Rank stored documents against a query",
            "POST /chat": "Chat using stored documents as context",
            "DELETE /chat/history": "Clear this session's history",
            "GET /health": "Health check",
        },
    }


@router.post("/", response_class=PlainTextResponse)
async def upload_pdfs(
    pdf: list[UploadFile] | None = File(None),  # noqa: B008
    pipeline: ChatPipeline = Depends(get_pipeline),  # noqa: B008
) -> PlainTextResponse:
    """Extract, embed and store uploaded PDFs."""  # noqa: DOC201
    uploads = pdf or []
    try:
        files = [
            (upload.filename or f"upload-{index}.pdf", await upload.read())
            for index, upload in enumerate(uploads, start=1)
        ]
        documents = await pipeline.ingest_pdfs(files)
    except FileCabinetError as e:
        logger.warning("Upload failed: %s", e.message)
        return PlainTextResponse(
            f"{UPLOAD_ERROR_MESSAGE}: {e.message}", status_code=e.status_code
        )

    logger.info("Uploaded %d documents", len(documents))
    return PlainTextResponse(UPLOAD_SUCCESS_MESSAGE)


@router.post("/search", response_model=SearchResponse)
def search(
    payload: SearchRequest,
    pipeline: ChatPipeline = Depends(get_pipeline),  # noqa: B008
) -> SearchResponse:
    """Rank stored documents by similarity to the query."""  # noqa: DOC201
    matches = pipeline.search(payload.query or "")
    return SearchResponse(
        results=[
            SearchResult(
                id=match.item_id,
                filename=match.filename,
                score=match.score,
                full_text=match.text,
            )
            for match in matches
        ]
    )


@router.post("/chat", response_model=ChatResponse)
def chat(
    payload: ChatRequest,
    request: Request,
    pipeline: ChatPipeline = Depends(get_pipeline),  # noqa: B008
) -> ChatResponse | JSONResponse:
    """Answer a chat message within the caller's session."""  # noqa: DOC201
    session_id = get_session_id(request)
    try:
        reply = pipeline.chat(session_id, payload.message or "")
    except FileCabinetError as e:
        if e.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR:
            raise
        logger.error("Error during chat processing: %s (%s)", e.message, e.details)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, CHAT_ERROR_MESSAGE)

    return ChatResponse(
        response=reply.response,
        chat_history=[ChatMessage(**message) for message in reply.history],
    )


@router.delete("/chat/history", response_model=ClearHistoryResponse)
def clear_chat_history(
    request: Request,
    pipeline: ChatPipeline = Depends(get_pipeline),  # noqa: B008
) -> ClearHistoryResponse:
    """Forget this session's in-memory chat history."""  # noqa: DOC201
    pipeline.clear_history(get_session_id(request))
    return ClearHistoryResponse(cleared=True)


@router.get("/health", response_model=HealthResponse)
def health_check(
    pipeline: ChatPipeline = Depends(get_pipeline),  # noqa: B008
) -> HealthResponse:
    """Report store counts."""  # noqa: DOC201
    stats = pipeline.stats()
    return HealthResponse(
        status="healthy",
        documents=stats["documents"],
        chat_turns=stats["chat_turns"],
    )
