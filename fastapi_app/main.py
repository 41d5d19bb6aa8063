from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Dict, List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse, StreamingResponse
from fastapi.concurrency import run_in_threadpool

from agent import ConversationOrchestrator, Settings, build_orchestrator
from agent.errors import NotFoundError, TurnError
from agent.schemas import CreateConversationBody, validate_payload
from backend.speech import OpenAISpeechSynthesizer

from .logging_config import setup_logging

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
# marks an unparseable body; a literal JSON null is a valid payload
INVALID_JSON = object()


async def _json_body(request: Request) -> Any:
    try:
        return await request.json()
    except ValueError:
        return INVALID_JSON


def _invalid_json() -> JSONResponse:
    return JSONResponse({"error": "Invalid JSON body"}, status_code=400)


async def _first_chunk(chunks: AsyncIterator[str]) -> Optional[str]:
    # pulled before the response starts so early upstream errors keep their status
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return None


async def _relay(first: Optional[str], chunks: AsyncIterator[str]) -> AsyncIterator[str]:
    try:
        if first is None:
            return
        yield first
        async for chunk in chunks:
            yield chunk
    finally:
        await chunks.aclose()


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
def create_app(
    orchestrator: Optional[ConversationOrchestrator] = None,
    speech: Optional[OpenAISpeechSynthesizer] = None,
    settings: Optional[Settings] = None,
) -> FastAPI:
    """Build the API. Missing collaborators are built from the environment at startup."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.orchestrator is None:
            resolved = settings or Settings.from_env()
            setup_logging(resolved.log_level)
            app.state.orchestrator = build_orchestrator(resolved)
            app.state.speech = app.state.speech or OpenAISpeechSynthesizer(resolved)
        yield

    app = FastAPI(title="TableTalk Virtual Host API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.state.orchestrator = orchestrator
    app.state.speech = speech or (OpenAISpeechSynthesizer(orchestrator.settings) if orchestrator else None)

    @app.exception_handler(TurnError)
    async def turn_error_handler(_request: Request, exc: TurnError) -> JSONResponse:
        if exc.status_code >= 500:
            logger.error("Request failed: %s", exc.message)
        return JSONResponse(exc.to_api(), status_code=exc.status_code)

    # ---------------- Routes ----------------
    @app.get("/health")
    def health() -> Dict[str, Any]:
        return {"status": "ok", "time": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")}

    @app.get("/api/restaurants/first")
    def first_restaurant(request: Request) -> Dict[str, Any]:
        context = request.app.state.orchestrator.restaurants.first()
        if context is None:
            raise NotFoundError("No restaurant found. Run tools/seed_db.py to populate the database.")
        return context.to_api()

    @app.get("/api/restaurants/{restaurant_id}")
    def get_restaurant(restaurant_id: str, request: Request) -> Dict[str, Any]:
        context = request.app.state.orchestrator.restaurants.load_context(restaurant_id)
        if context is None:
            raise NotFoundError("Restaurant not found")
        return context.to_api()

    @app.get("/api/conversations")
    def list_conversations(request: Request, restaurantId: Optional[str] = None) -> Any:
        if not restaurantId:
            return JSONResponse({"error": "restaurantId is required"}, status_code=400)
        orch = request.app.state.orchestrator
        records = orch.conversations.list_recent(restaurantId, limit=orch.settings.conversation_list_limit)
        return [record.to_api() for record in records]

    @app.post("/api/conversations")
    async def create_conversation(request: Request) -> Any:
        payload = await _json_body(request)
        if payload is INVALID_JSON:
            return _invalid_json()
        body = validate_payload(CreateConversationBody, payload)
        conversation_id = await run_in_threadpool(
            request.app.state.orchestrator.conversations.create, body.restaurantId
        )
        return {"conversationId": conversation_id}

    @app.get("/api/conversations/{conversation_id}/messages")
    def conversation_messages(conversation_id: str, request: Request) -> List[Dict[str, str]]:
        return request.app.state.orchestrator.conversations.history(conversation_id)

    @app.post("/api/chat")
    async def chat(request: Request) -> Any:
        payload = await _json_body(request)
        if payload is INVALID_JSON:
            return _invalid_json()
        orch: ConversationOrchestrator = request.app.state.orchestrator
        turn = await orch.prepare(payload)
        chunks = orch.stream(turn)
        first = await _first_chunk(chunks)
        return StreamingResponse(_relay(first, chunks), media_type="text/plain; charset=utf-8")

    @app.post("/api/tts")
    async def text_to_speech(request: Request) -> Any:
        payload = await _json_body(request)
        text = payload.get("text") if isinstance(payload, dict) else None
        if not text or not isinstance(text, str):
            return PlainTextResponse("Text is required", status_code=400)
        result = await run_in_threadpool(request.app.state.speech.synthesize, text)
        if result.error:
            return JSONResponse({"error": result.error}, status_code=result.status)
        return StreamingResponse(result.chunks, media_type=result.content_type)

    return app


app = create_app()

# Entry for local dev
# uvicorn fastapi_app.main:app --reload --port 8000
