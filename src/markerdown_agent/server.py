"""FastAPI web server exposing the agent chat to the markerdown UI."""

import asyncio
import json
import logging
from dataclasses import asdict
from typing import Optional

from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import StreamingResponse
from pydantic import BaseModel

from .core import AgentSession, Completion, Message
from .orchestrator import AgentOrchestrator
from .summarize import summarize

logger = logging.getLogger(__name__)

app = FastAPI(title="markerdown-agent", version="0.1.0")

# Orchestrator (created on first request)
_orchestrator: AgentOrchestrator | None = None


def _get_orchestrator() -> AgentOrchestrator:
    """Lazily create and cache the orchestrator."""
    global _orchestrator
    if _orchestrator is None:
        _orchestrator = AgentOrchestrator()
        logger.info("Using Claude CLI executable %r", _orchestrator.settings.executable)
    return _orchestrator


class ChatRequest(BaseModel):
    message: str
    working_dir: str
    session_id: Optional[str] = None
    current_file: Optional[str] = None


class SummarizeRequest(BaseModel):
    source_path: str
    output_path: str
    prompt: str
    working_dir: str


def _session_to_dict(session: AgentSession) -> dict:
    """Convert an AgentSession dataclass to a JSON-serializable dict."""
    return {
        "session_id": session.session_id,
        "timestamp": session.timestamp,
        "first_message": session.first_message,
    }


def _message_to_dict(msg: Message) -> dict:
    return {"role": msg.role, "content": msg.content}


def _completion_to_dict(completion: Completion) -> dict:
    return {
        "session_id": completion.session_id,
        "error": completion.visible_error,
        "cancelled": completion.cancelled,
    }


def _require_dir(working_dir: str) -> str:
    if not working_dir.strip():
        raise HTTPException(status_code=400, detail="working_dir is required")
    return working_dir


# ── Routes ───────────────────────────────────────────────────────


@app.post("/api/agent/chat")
async def post_chat(request: ChatRequest):
    """Start an agent turn; completion arrives on /api/agent/events."""
    if not request.message.strip():
        raise HTTPException(status_code=400, detail="message is required")

    # Spawning and the registry write block, so keep them off the event loop.
    session_id = await asyncio.to_thread(
        _get_orchestrator().send_message,
        request.message,
        _require_dir(request.working_dir),
        request.session_id,
        request.current_file,
    )
    return {"session_id": session_id}


@app.post("/api/agent/cancel")
async def post_cancel():
    _get_orchestrator().cancel()
    return {"status": "ok"}


@app.get("/api/agent/state")
async def get_state():
    orchestrator = _get_orchestrator()
    return {"state": orchestrator.state.value, "session_id": orchestrator.in_flight_session}


@app.get("/api/agent/sessions")
async def get_sessions(working_dir: str = Query(..., description="Open folder")):
    """Return this application's chats for a folder, newest first."""
    sessions = _get_orchestrator().list_sessions(_require_dir(working_dir))
    return [_session_to_dict(s) for s in sessions]


@app.get("/api/agent/sessions/{session_id}")
async def get_session_history(session_id: str, working_dir: str = Query(..., description="Open folder")):
    """Replay a chat from the CLI's session log."""
    messages = _get_orchestrator().load_history(_require_dir(working_dir), session_id)
    return {"session_id": session_id, "messages": [_message_to_dict(m) for m in messages]}


@app.get("/api/agent/events")
async def get_events():
    """Stream completion notifications as Server-Sent Events."""
    orchestrator = _get_orchestrator()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue[Completion] = asyncio.Queue()
    unsubscribe = orchestrator.subscribe(lambda c: loop.call_soon_threadsafe(queue.put_nowait, c))

    async def stream():
        try:
            while True:
                completion = await queue.get()
                yield f"event: complete\ndata: {json.dumps(_completion_to_dict(completion))}\n\n"
        finally:
            unsubscribe()

    return StreamingResponse(stream(), media_type="text/event-stream")


@app.post("/api/summarize")
async def post_summarize(request: SummarizeRequest):
    """Run a blocking one-shot summarization in a worker thread."""
    settings = _get_orchestrator().settings
    result = await asyncio.to_thread(
        summarize,
        request.source_path,
        request.output_path,
        request.prompt,
        _require_dir(request.working_dir),
        settings,
    )
    return asdict(result)
