"""FastAPI entrypoint for the Piskoqo support chat."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.exception_handlers import request_validation_exception_handler
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from app.constants import ANONYMOUS_USER, FAILURE_REPLY
from app.pipeline import ChatPipeline
from app.settings import RuntimeSettings, clear_settings_cache
from brain.llm_client import ProviderClient
from memory.repository import MemoryRepository

app = FastAPI(title="Piskoqo Support Chat")
logger = logging.getLogger("piskoqo.main")
runtime_settings = RuntimeSettings.load()

llm_client: ProviderClient | None = None
repository: MemoryRepository | None = None
pipeline: ChatPipeline | None = None


def _refresh_settings() -> None:
    global runtime_settings
    runtime_settings = RuntimeSettings.load()


async def _close_clients(client: ProviderClient | None, store: MemoryRepository | None) -> None:
    if client is not None:
        await client.aclose()
    if store is not None:
        store.dispose()


async def _shutdown_clients() -> None:
    """Close the provider client and release database connections."""
    global llm_client, repository, pipeline
    previous = (llm_client, repository)
    llm_client, repository, pipeline = None, None, None
    await _close_clients(*previous)


def _build_clients(settings: RuntimeSettings) -> tuple[ProviderClient, MemoryRepository, ChatPipeline]:
    if not settings.provider_api_key:
        logger.warning("OPENROUTER_API_KEY is not set; provider requests will be unauthenticated.")
    client = ProviderClient(
        settings.provider_base_url,
        api_key=settings.provider_api_key,
        chat_model=settings.chat_model,
        embedding_model=settings.embedding_model,
        timeout=settings.llm_timeout,
        max_retries=settings.llm_max_retries,
    )
    store = MemoryRepository(database_path=settings.database_path)
    chat_pipeline = ChatPipeline(
        client,
        store,
        config=settings.heuristics(),
        telemetry_path=settings.telemetry_path if settings.telemetry_enabled else None,
    )
    return client, store, chat_pipeline


async def _configure_clients() -> None:
    """Build fresh clients, swap them in, then close the ones they replace."""
    global llm_client, repository, pipeline
    settings = runtime_settings
    previous = (llm_client, repository)
    llm_client, repository, pipeline = _build_clients(settings)
    logger.info(
        "Configured provider at %s (chat=%s embedding=%s) with database %s",
        llm_client.base_url,
        settings.chat_model,
        settings.embedding_model,
        settings.database_path,
    )
    await _close_clients(*previous)


class ChatMessage(BaseModel):
    """Schema describing messages posted by the chat UI."""

    user_id: str | None = Field(default=None, description="Caller identifier; defaults to 'anonymous'.")
    message: str | None = Field(default=None, description="Raw user text; normalised server-side.")


class DeleteRequest(BaseModel):
    """Schema for wiping a user's stored conversation."""

    user_id: str | None = Field(default=None, description="Identifier whose turns should be removed.")


class MemoryPayload(BaseModel):
    """Schema describing a memory fragment to index for semantic search."""

    user_id: str = Field(..., min_length=1)
    content: str = Field(..., description="Fragment text; embedded before storage.")


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Keep the chat endpoints' response shapes when the body cannot be parsed."""
    path = request.url.path
    if path == "/api/chat":
        logger.warning("Rejected malformed chat request: %s", exc.errors())
        return JSONResponse(status_code=500, content={"reply": FAILURE_REPLY})
    if path == "/api/chat/delete":
        logger.warning("Rejected malformed delete request: %s", exc.errors())
        return JSONResponse(status_code=500, content={"ok": False})
    return await request_validation_exception_handler(request, exc)


@app.on_event("startup")
async def start_clients() -> None:
    await _configure_clients()


@app.on_event("shutdown")
async def stop_clients() -> None:
    await _shutdown_clients()


@app.get("/ping")
async def ping() -> dict[str, str]:
    """Simple health check endpoint."""
    return {"status": "alive", "app": runtime_settings.app_name}


@app.post("/api/chat")
async def chat(payload: ChatMessage) -> Any:
    """Generate a reply; any pipeline failure yields the generic fallback reply."""
    user_id = payload.user_id or ANONYMOUS_USER
    try:
        if pipeline is None:
            raise RuntimeError("Chat pipeline is not configured")
        result = await pipeline.handle(user_id, payload.message or "")
    except Exception:
        logger.exception("Reply pipeline failed for user '%s'", user_id)
        return JSONResponse(status_code=500, content={"reply": FAILURE_REPLY})
    return result.as_response(runtime_settings.app_name)


@app.post("/api/chat/delete")
async def delete_chat(payload: DeleteRequest) -> Any:
    """Remove every stored turn for the user."""
    if not payload.user_id:
        return JSONResponse(status_code=400, content={"ok": False})
    try:
        if pipeline is None:
            raise RuntimeError("Chat pipeline is not configured")
        deleted = await pipeline.forget(payload.user_id)
    except Exception as exc:
        logger.error("Deleting turns for user '%s' failed: %s", payload.user_id, exc)
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})
    return {"ok": True, "deleted_rows": deleted}


@app.post("/api/memory", status_code=201)
async def add_memory(payload: MemoryPayload) -> Any:
    """Embed and store a memory fragment for the user."""
    if pipeline is None:
        return JSONResponse(status_code=503, content={"ok": False, "error": "Chat pipeline is not configured"})
    try:
        fragment = await pipeline.remember(payload.user_id, payload.content)
    except ValueError as exc:
        return JSONResponse(status_code=400, content={"ok": False, "error": str(exc)})
    except Exception as exc:
        logger.error("Storing memory for user '%s' failed: %s", payload.user_id, exc)
        return JSONResponse(status_code=500, content={"ok": False, "error": str(exc)})
    return {"ok": True, "id": fragment.id}


@app.post("/admin/reload")
async def admin_reload() -> dict[str, Any]:
    """Reload configuration and rebuild clients."""
    clear_settings_cache()
    _refresh_settings()
    await _configure_clients()
    return {
        "provider_base_url": runtime_settings.provider_base_url,
        "chat_model": runtime_settings.chat_model,
        "embedding_model": runtime_settings.embedding_model,
        "llm_timeout": runtime_settings.llm_timeout,
        "database_path": str(runtime_settings.database_path),
    }


__all__ = ["app"]
