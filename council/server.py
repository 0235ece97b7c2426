"""
HTTP service -- run deliberations over JSON or server-sent events.

  GET  /api/health              -- Liveness plus the default model list
  POST /api/deliberate          -- Debate a question, return the result
  POST /api/deliberate/stream   -- Same, streamed as SSE (round/token/done/error)
  POST /api/review              -- Code review by the reviewer triad
  POST /api/decide              -- Weigh two or more options

Every request gets its own Council; only the chat service is shared.
"""

import asyncio
import json
import logging
from collections.abc import AsyncIterator

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field

from config.config_loader import AppConfig
from council.deliberation import Council, CouncilConfig
from council.events import CouncilEvents
from council.models import DeliberationResult, Persona
from council.output import result_to_dict
from council.personas import resolve_catalog
from council.providers.base import ChatService
from council.validation import ValidationError, validate_not_empty, validate_range

logger = logging.getLogger(__name__)


# =============================================================================
# REQUEST MODELS
# =============================================================================


class CouncilRequest(BaseModel):
    """Fields shared by every deliberation request. Omitted values use settings defaults."""

    agents: int | None = Field(None, description="Number of personas")
    rounds: int | None = Field(None, description="Number of deliberation rounds")
    models: list[str] | None = Field(None, description="Models assigned round-robin to personas")


class DeliberateRequest(CouncilRequest):
    question: str = Field("", description="The question to deliberate")


class ReviewRequest(CouncilRequest):
    file_path: str = Field("code", description="Path shown to the reviewers")
    file_content: str = Field("", description="Source code to review")


class DecideRequest(CouncilRequest):
    options: list[str] = Field(default_factory=list, description="At least two options")


# =============================================================================
# HELPERS
# =============================================================================


def sse_event(payload: dict) -> str:
    """Frame one payload as a server-sent event."""
    return f"data: {json.dumps(payload)}\n\n"


class QueueEvents(CouncilEvents):
    """Event sink that turns engine callbacks into SSE payloads on a queue."""

    def __init__(self, queue: asyncio.Queue) -> None:
        self._queue = queue

    def on_round_start(self, round_number: int, persona: Persona) -> None:
        self._queue.put_nowait({"type": "round", "round": round_number, "persona": persona.name})

    def on_token(self, token: str) -> None:
        self._queue.put_nowait({"type": "token", "content": token})


def _build_council(
    request: Request,
    body: CouncilRequest,
    *,
    stream: bool = False,
    events: CouncilEvents | None = None,
) -> Council:
    app_config: AppConfig = request.app.state.config
    defaults = app_config.defaults

    agents = body.agents if body.agents is not None else defaults.agents
    rounds = body.rounds if body.rounds is not None else defaults.rounds
    validate_range(agents, "agents", 1, defaults.max_agents)
    validate_range(rounds, "rounds", 1, defaults.max_rounds)
    models = [m.strip() for m in (body.models or []) if m.strip()] or defaults.models

    config = CouncilConfig(
        agents=agents,
        rounds=rounds,
        models=tuple(models),
        stream=stream,
        events=events or CouncilEvents(),
        personas=request.app.state.persona_catalog,
    )
    return Council(request.app.state.service, config)


async def _respond(coro) -> dict:
    try:
        result: DeliberationResult = await coro
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error("Deliberation error: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return result_to_dict(result)


# =============================================================================
# APP
# =============================================================================


def create_app(config: AppConfig, service: ChatService) -> FastAPI:
    """Build the FastAPI app around a loaded config and a ready chat service."""
    app = FastAPI(title="Council", version="0.1.0")
    app.state.config = config
    app.state.service = service
    app.state.persona_catalog = resolve_catalog(config.personas)

    @app.get("/api/health")
    async def health() -> dict:
        return {"status": "ok", "models": config.defaults.models}

    @app.post("/api/deliberate")
    async def deliberate(body: DeliberateRequest, request: Request) -> dict:
        try:
            council = _build_council(request, body)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return await _respond(council.deliberate(body.question))

    @app.post("/api/deliberate/stream")
    async def deliberate_stream(body: DeliberateRequest, request: Request) -> StreamingResponse:
        """
        Deliberate and stream progress as server-sent events.

        Events (one JSON object per `data:` line):
          - round: a persona's turn is starting
          - token: a chunk of the current turn or of the synthesis
          - done: the full result, always last on success
          - error: the deliberation failed, always last on failure
        """
        queue: asyncio.Queue[dict | None] = asyncio.Queue()
        try:
            question = validate_not_empty(body.question, "question")
            council = _build_council(request, body, stream=True, events=QueueEvents(queue))
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))

        async def run() -> None:
            try:
                result = await council.deliberate(question)
                queue.put_nowait({"type": "done", "result": result_to_dict(result)})
            except Exception as exc:
                logger.error("Streaming error: %s", exc)
                queue.put_nowait({"type": "error", "error": str(exc)})
            finally:
                queue.put_nowait(None)

        async def event_generator() -> AsyncIterator[str]:
            task = asyncio.create_task(run())
            try:
                while True:
                    payload = await queue.get()
                    if payload is None:
                        break
                    yield sse_event(payload)
            finally:
                if not task.done():
                    task.cancel()

        return StreamingResponse(
            event_generator(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.post("/api/review")
    async def review(body: ReviewRequest, request: Request) -> dict:
        try:
            council = _build_council(request, body)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return await _respond(council.review(body.file_path or "code", body.file_content))

    @app.post("/api/decide")
    async def decide(body: DecideRequest, request: Request) -> dict:
        try:
            council = _build_council(request, body)
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=str(e))
        return await _respond(council.decide(body.options))

    return app
