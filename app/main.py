from __future__ import annotations

import json
import logging
import traceback
from typing import Any, AsyncIterator, Dict, List, Optional
from urllib.parse import quote

import httpx
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse

from assistant.agent import (
    ModelFactory,
    check_connectivity,
    complete,
    prepare_conversation,
    start_stream,
)
from assistant.core.errors import MessageValidationError, NICError
from assistant.core.validation import check_credentials, validate_messages
from assistant.titles import generate_title, should_generate_title
from config.settings import Settings, get_settings


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("nic")

TITLE_HEADER = "X-Chat-Title"

app = FastAPI(title="NIC Nutrition Chat", version="1.0.0")

# CORS: allow local frontend during development
settings = get_settings()
if settings.is_development:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[TITLE_HEADER],
    )


def get_model_factory(settings: Settings = Depends(get_settings)) -> ModelFactory:
    return ModelFactory(settings)


async def get_http_client(
    settings: Settings = Depends(get_settings),
) -> AsyncIterator[httpx.AsyncClient]:
    async with httpx.AsyncClient(timeout=settings.fdc_timeout) as client:
        yield client


def _error_response(exc: BaseException, settings: Settings) -> JSONResponse:
    if isinstance(exc, NICError):
        logger.warning("%s (%s): %s", type(exc).__name__, exc.code, exc.message)
        status_code, code = exc.status_code, exc.code
    else:
        logger.exception("Chat processing failed: %s", exc)
        status_code, code = 500, str(getattr(exc, "code", None) or "unknown_error")

    body: Dict[str, Any] = {"error": str(exc) or "Unexpected error", "code": code}
    if settings.expose_error_details:
        body["stack"] = "".join(
            traceback.format_exception(type(exc), exc, exc.__traceback__)
        )
    return JSONResponse(status_code=status_code, content=body)


async def _read_messages(request: Request, settings: Settings) -> List[Dict[str, Any]]:
    check_credentials(settings)
    try:
        body = await request.json()
    except json.JSONDecodeError as exc:
        raise MessageValidationError("Request body must be valid JSON.") from exc
    messages = validate_messages(body)
    logger.info("Incoming chat: messages=%s", len(messages))
    return messages


async def _maybe_title(messages: List[Dict[str, Any]], models: ModelFactory) -> Optional[str]:
    if not should_generate_title(messages):
        return None
    first = next(m["content"] for m in messages if (m.get("role") or "").lower() == "user")
    title = await generate_title(models.titler(), first)
    logger.info("Generated conversation title: %s", title)
    return title


@app.post("/api/chat")
async def chat(
    request: Request,
    settings: Settings = Depends(get_settings),
    models: ModelFactory = Depends(get_model_factory),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    try:
        messages = await _read_messages(request, settings)
        composed = await prepare_conversation(messages, models, client, settings)
        reply = await complete(models.primary(), composed)
        title = await _maybe_title(messages, models)

        logger.info("Model responded with %s chars", len(reply))
        body: Dict[str, Any] = {"message": reply}
        if title:
            body["title"] = title
        return body
    except Exception as e:
        return _error_response(e, settings)


async def _relay(first: str, rest: AsyncIterator[str]) -> AsyncIterator[str]:
    sent = len(first)
    if first:
        yield first
    try:
        async for text in rest:
            sent += len(text)
            yield text
    except Exception:
        # Headers are already sent; the stream just ends early.
        logger.exception("Chat stream failed after %s chars", sent)
        return
    logger.info("Streamed %s chars", sent)


@app.post("/api/chat/stream")
async def chat_stream(
    request: Request,
    settings: Settings = Depends(get_settings),
    models: ModelFactory = Depends(get_model_factory),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    try:
        messages = await _read_messages(request, settings)
        composed = await prepare_conversation(messages, models, client, settings)
        title = await _maybe_title(messages, models)
        # Wait for the first chunk so a failed completion is still a 500
        first, rest = await start_stream(models.primary(), composed)
    except Exception as e:
        return _error_response(e, settings)

    headers = {"Cache-Control": "no-cache", "X-Accel-Buffering": "no"}
    if title:
        headers[TITLE_HEADER] = quote(title)
    return StreamingResponse(
        _relay(first, rest),
        media_type="text/plain; charset=utf-8",
        headers=headers,
    )


@app.get("/api/test")
async def connectivity_test(
    settings: Settings = Depends(get_settings),
    models: ModelFactory = Depends(get_model_factory),
):
    if not settings.google_api_key:
        return JSONResponse(
            status_code=401,
            content={"success": False, "error": "Model provider API key is not configured"},
        )

    try:
        result = await check_connectivity(models.primary())
    except Exception as e:
        logger.exception("Connectivity test failed: %s", e)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Unknown error occurred during API test"},
        )
    return {"success": True, "response": result}


@app.get("/health")
def health():
    return {"status": "ok"}
