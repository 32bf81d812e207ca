"""FastAPI application exposing the Knowledge Hub over HTTP."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from functools import partial
from typing import Any

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, StreamingResponse
from langchain_core.messages import convert_to_messages
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError
from starlette.datastructures import UploadFile

from knowledge_hub.config import settings
from knowledge_hub.exceptions import EmbeddingProviderError, ExtractionError, ValidationError
from knowledge_hub.service import IngestResult, KnowledgeHub

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None) -> None:
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


# ── Request schemas ───────────────────────────────────────────────────
class UploadRequest(BaseModel):
    """JSON ingest payload (text already extracted by the caller)."""

    title: str | None = None
    text: str | None = None
    type: str | None = None
    collection: str | None = None
    tags: list[str] = Field(default_factory=list)
    version: str | None = None


class ChatRequest(BaseModel):
    """Conversation as ``[{"role": ..., "content": ...}, ...]``."""

    messages: list[dict[str, Any]] = Field(default_factory=list)


# ── Dependencies ──────────────────────────────────────────────────────
def get_hub(request: Request) -> KnowledgeHub:
    """Return the process-wide hub built at start-up."""
    hub = getattr(request.app.state, "hub", None)
    if hub is None:
        raise RuntimeError("Knowledge hub not initialised; run the app through its lifespan")
    return hub


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def _parse_tags(raw: str) -> list[str]:
    return [t.strip() for t in raw.split(",") if t.strip()]


def _form_str(form: Any, key: str) -> str | None:
    value = form.get(key)
    return value if isinstance(value, str) and value else None


router = APIRouter()


# ── Routes ────────────────────────────────────────────────────────────
@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check."""
    return {"status": "ok"}


@router.post("/upload")
async def upload(request: Request, hub: KnowledgeHub = Depends(get_hub)) -> Any:
    """Ingest a document from JSON or a multipart form (optionally with a file)."""
    content_type = request.headers.get("content-type", "")

    if "application/json" in content_type:
        try:
            body = UploadRequest.model_validate(await request.json())
        except (PydanticValidationError, ValueError) as exc:
            return _error(400, f"Invalid JSON body: {exc}")
        result: IngestResult = await run_in_threadpool(
            partial(
                hub.ingest,
                body.title,
                body.text,
                collection=body.collection,
                type=body.type,
                tags=body.tags,
                version=body.version,
            )
        )
    elif "multipart/form-data" in content_type:
        form = await request.form()
        upload_file = form.get("file")
        common = {
            "collection": _form_str(form, "collection") or "default",
            "tags": _parse_tags(_form_str(form, "tags") or ""),
            "version": _form_str(form, "version"),
        }
        if isinstance(upload_file, UploadFile):
            data = await upload_file.read()
            result = await run_in_threadpool(
                partial(
                    hub.ingest_file,
                    data,
                    filename=upload_file.filename,
                    mime_type=upload_file.content_type,
                    title=_form_str(form, "title"),
                    type=_form_str(form, "type"),
                    **common,
                )
            )
        else:
            result = await run_in_threadpool(
                partial(
                    hub.ingest,
                    _form_str(form, "title"),
                    _form_str(form, "text"),
                    type=_form_str(form, "type") or "text",
                    **common,
                )
            )
    else:
        return _error(400, "Unsupported content type")

    return {"id": result.document_id, "chunks": result.chunk_count}


@router.get("/search")
async def search(q: str = "", k: int = settings.search_default_k, hub: KnowledgeHub = Depends(get_hub)) -> Any:
    """Semantic search over indexed chunks."""
    if not q.strip():
        return {"results": []}
    results = await run_in_threadpool(hub.search, q, k)
    return {"query": q, "results": [r.model_dump(mode="json", exclude={"index"}) for r in results]}


@router.get("/files")
async def list_files(hub: KnowledgeHub = Depends(get_hub)) -> Any:
    return {"items": [d.model_dump(mode="json") for d in hub.list_documents()]}


@router.get("/files/{doc_id}")
async def get_file(doc_id: str, hub: KnowledgeHub = Depends(get_hub)) -> Any:
    doc = hub.get_document(doc_id)
    if doc is None:
        return _error(404, "Not found")
    item = doc.model_dump(mode="json", exclude={"chunk_ids"})
    item.update(name=doc.title, chunks=doc.chunk_count)
    return {"item": item}


@router.get("/stats")
async def stats(hub: KnowledgeHub = Depends(get_hub)) -> Any:
    return hub.get_stats().model_dump(mode="json")


@router.post("/chat")
async def chat(request: ChatRequest, hub: KnowledgeHub = Depends(get_hub)) -> Any:
    """Retrieval-augmented answer, streamed as plain text."""
    try:
        messages = convert_to_messages(request.messages)
    except (ValueError, NotImplementedError) as exc:
        return _error(400, f"Invalid messages: {exc}")

    prompt = await run_in_threadpool(hub.prepare_chat, messages)
    return StreamingResponse(
        hub.stream_answer(prompt),
        media_type="text/plain; charset=utf-8",
        headers={"Cache-Control": "no-cache"},
    )


# ── Application factory ───────────────────────────────────────────────
def create_app(hub: KnowledgeHub | None = None) -> FastAPI:
    """Build the API.

    The hub is created from settings when the application starts unless
    *hub* injects a pre-built (e.g. test) instance.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # One hub (and one store) per process, shared by every request.
        if app.state.hub is None:
            app.state.hub = KnowledgeHub.from_settings()
            logger.info("Knowledge hub initialised")
        yield
        app.state.hub.close()

    app = FastAPI(
        title="Knowledge Hub API",
        version="0.1.0",
        description="Document ingestion, semantic search and cited RAG chat.",
        lifespan=lifespan,
    )
    app.state.hub = hub
    app.include_router(router)

    @app.exception_handler(ValidationError)
    async def _validation_error(_: Request, exc: ValidationError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(ExtractionError)
    async def _extraction_error(_: Request, exc: ExtractionError) -> JSONResponse:
        return _error(400, str(exc))

    @app.exception_handler(EmbeddingProviderError)
    async def _embedding_error(_: Request, exc: EmbeddingProviderError) -> JSONResponse:
        logger.error("Embedding provider error: %s", exc)
        return _error(502, str(exc))

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)
