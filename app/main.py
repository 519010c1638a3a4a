from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
import logging
from langchain_core.runnables import Runnable
from pydantic import BaseModel, Field

from agent.agent import build_chain, build_payload, run_chain, stream_chain
from agent.core.geojson import strip_structured_block
from agent.core.models import StickyContext, Turn
from agent.core.prompt import NO_RESULTS_DIRECTIVE
from agent.pipeline import MapPipeline, TurnOutcome, build_pipeline
from agent.tools import UpstreamError
from config.settings import get_settings


logging.basicConfig(level=logging.INFO, format="[%(asctime)s] %(levelname)s - %(message)s")
logger = logging.getLogger("mapchat")

app = FastAPI(title="Map Chat Assistant", version="1.0.0")

# CORS: allow local frontend during development
settings = get_settings()
if settings.app_env.lower() in {"dev", "development", "local"}:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

UPSTREAM_FALLBACK = (
    "I couldn't look up places for that just now. Please try again in a moment, "
    "or name a specific area."
)
MODEL_FALLBACK = "Here is what I found on the map."


class ChatRequest(BaseModel):
    query: str = Field(..., description="User's latest message")
    conversation_history: List[Turn] = Field(
        default_factory=list,
        description="Earlier user and assistant turns, oldest first (frontend-managed)",
    )
    session_context: Optional[StickyContext] = Field(
        default=None,
        description="session_context returned by the previous turn, if the client kept it",
    )


def get_pipeline() -> MapPipeline:
    return build_pipeline()


def get_chain() -> Runnable:
    if not get_settings().google_api_key:
        raise HTTPException(
            status_code=500,
            detail="Missing GOOGLE_API_KEY in environment or .env",
        )
    return build_chain()


def _clean_error(exc: Any) -> str:
    return " ".join(str(exc).split())[:500]


def _run_pipeline(pipeline: MapPipeline, req: ChatRequest) -> TurnOutcome:
    logger.info(
        "Incoming turn: query_len=%s history_turns=%s session_context=%s",
        len(req.query or ""),
        len(req.conversation_history),
        req.session_context is not None,
    )
    outcome = pipeline.run_turn(req.query, req.conversation_history, req.session_context)
    logger.info(
        "Resolved via %s: center=%s pois=%s",
        outcome.resolved.source,
        outcome.resolved.center,
        len(outcome.result.pois),
    )
    return outcome


def _structured_body(outcome: TurnOutcome) -> Dict[str, Any]:
    return {
        "feature_collection": outcome.feature_collection,
        "session_context": (
            outcome.session_context.model_dump(mode="json") if outcome.session_context else None
        ),
    }


@app.post("/agent/context")
def context(req: ChatRequest, pipeline: MapPipeline = Depends(get_pipeline)) -> Dict[str, Any]:
    """Resolve the turn and return the map payload without calling the model."""
    try:
        outcome = _run_pipeline(pipeline, req)
    except UpstreamError as exc:
        logger.warning("Upstream lookup failed: %s", exc)
        raise HTTPException(status_code=502, detail=_clean_error(exc))
    return _structured_body(outcome)


@app.post("/agent/chat")
def chat(
    req: ChatRequest,
    chain: Runnable = Depends(get_chain),
    pipeline: MapPipeline = Depends(get_pipeline),
) -> Dict[str, Any]:
    try:
        outcome = _run_pipeline(pipeline, req)
    except UpstreamError as exc:
        # The model is told there is no data; no stale or guessed map is sent.
        logger.warning("Upstream lookup failed: %s", exc)
        result = run_chain(chain, build_payload(req.query, NO_RESULTS_DIRECTIVE, req.conversation_history))
        output_text = strip_structured_block(result.get("output") or "") or UPSTREAM_FALLBACK
        return {"ai_response": output_text, "display_text": output_text, "error": _clean_error(exc)}

    try:
        result = run_chain(chain, build_payload(req.query, outcome.directive, req.conversation_history))
    except Exception as e:
        logger.exception("Chat processing failed: %s", e)
        # Still return the error detail to caller, but full traceback is in server logs
        raise HTTPException(status_code=500, detail=str(e))

    body = _structured_body(outcome)
    output_text = (result.get("output") or "").strip()
    if result.get("error"):
        logger.warning("Model invocation reported error: %s", result["error"])
        body["ai_response"] = output_text or MODEL_FALLBACK
        body["display_text"] = strip_structured_block(body["ai_response"])
        body["error"] = _clean_error(result["error"])
        return body

    logger.info("Model responded with %s chars", len(output_text))
    body["ai_response"] = output_text
    body["display_text"] = strip_structured_block(output_text)
    return body


@app.post("/agent/chat/stream")
def chat_stream(
    req: ChatRequest,
    chain: Runnable = Depends(get_chain),
    pipeline: MapPipeline = Depends(get_pipeline),
) -> StreamingResponse:
    try:
        outcome = _run_pipeline(pipeline, req)
        directive = outcome.directive
    except UpstreamError as exc:
        logger.warning("Upstream lookup failed: %s", exc)
        directive = NO_RESULTS_DIRECTIVE

    payload = build_payload(req.query, directive, req.conversation_history)
    return StreamingResponse(stream_chain(chain, payload), media_type="text/plain; charset=utf-8")


@app.get("/health")
def health():
    return {"status": "ok"}
