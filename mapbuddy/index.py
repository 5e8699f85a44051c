"""API endpoints for the Map Buddy map, list and chat views."""

import logging
import uuid
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from mapbuddy.config import configure_logging, get_settings
from mapbuddy.models import Event, EventKind, HighlightSet, Message, UserPreferences
from mapbuddy.services.catalog import Catalog, get_catalog
from mapbuddy.services.errors import PreferencesFormatError
from mapbuddy.services.reasoning import validate_credential
from mapbuddy.services.references import render_segments
from mapbuddy.services.session import DiscoverySession, SessionManager, get_session_manager
from mapbuddy.services.storage import (
    StateStore,
    clear_credential,
    clear_preferences,
    get_state_store,
    load_preferences,
    save_credential,
    save_preferences,
)
from mapbuddy.services.temporal import DateResolver

load_dotenv()

# Configure logging from settings (uses LOG_LEVEL env var)
configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    await get_session_manager().close_all()


app = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_settings().cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ChatRequest(BaseModel):
    """Request body for a chat turn."""

    message: str
    session_id: str | None = None


class DateRequest(BaseModel):
    """Request body for changing a session's selected date."""

    date: str


class SelectRequest(BaseModel):
    """Request body for selecting one event from a list or search result."""

    event_id: str
    ttl_seconds: float | None = None


class CredentialRequest(BaseModel):
    """Request body for configuring the reasoning credential."""

    api_key: str


def _serialize_event(event: Event) -> dict[str, Any]:
    return event.model_dump(mode="json")


def _serialize_message(message: Message) -> dict[str, Any]:
    data = message.model_dump(mode="json")
    data["segments"] = render_segments(message.text)
    return data


def _serialize_highlight(highlight: HighlightSet) -> dict[str, Any]:
    return highlight.model_dump(mode="json")


def _serialize_session(session: DiscoverySession) -> dict[str, Any]:
    return {
        "session_id": session.session_id,
        "state": session.conversation.state.value,
        "strategy": session.conversation.matcher.name,
        "selected_date": session.selected_date.isoformat() if session.selected_date else None,
        "messages": [_serialize_message(m) for m in session.conversation.messages],
        "highlight": _serialize_highlight(session.broker.snapshot()),
    }


def _resolve_date(resolver: DateResolver, text: str):
    resolution = resolver.resolve(text)
    if not resolution.success or resolution.day is None:
        raise HTTPException(status_code=400, detail=resolution.question or resolution.explanation)
    return resolution


def _require_session(manager: SessionManager, session_id: str) -> DiscoverySession:
    session = manager.find_session(session_id)
    if session is None:
        raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'")
    return session


@app.get("/")
def root():
    """Root endpoint."""
    return {"status": "ok"}


@app.get("/health")
def health():
    """Health check endpoint."""
    return {"status": "healthy"}


# ============================================================================
# Catalog
# ============================================================================


@app.get("/api/events")
def list_events(
    date: str | None = Query(default=None, description="Day to show, e.g. 'tomorrow' or 2026-10-21"),
    q: str = Query(default="", description="Free-text filter on name and description"),
    kind: list[EventKind] | None = Query(default=None),
    catalog: Catalog = Depends(get_catalog),
):
    """Events visible on a date, optionally filtered by text and kind."""
    resolver = DateResolver(get_settings().user_timezone)
    today = resolver.today()
    if date:
        resolution = _resolve_date(resolver, date)
        day, explanation = resolution.day, resolution.explanation
    else:
        day, explanation = today, "Showing today"

    visible = catalog.visible_on(day, today)
    events = catalog.search(q, kinds=kind, events=visible)
    return {
        "date": day.isoformat(),
        "explanation": explanation,
        "events": [_serialize_event(e) for e in events],
    }


@app.get("/api/events/{event_id}")
def get_event(event_id: str, catalog: Catalog = Depends(get_catalog)):
    event = catalog.get(event_id)
    if event is None:
        raise HTTPException(status_code=404, detail=f"Unknown event '{event_id}'")
    return _serialize_event(event)


# ============================================================================
# Chat sessions
# ============================================================================


@app.post("/api/chat")
async def chat(request: ChatRequest, manager: SessionManager = Depends(get_session_manager)):
    """Run one conversation turn for a session, creating the session if needed."""
    session_id = request.session_id or str(uuid.uuid4())
    session = manager.get_session(session_id)

    reply = await session.conversation.submit(request.message)
    if reply is None:
        logger.info("Chat input ignored for session %s", session_id)

    return {
        "session_id": session_id,
        "accepted": reply is not None,
        "reply": _serialize_message(reply) if reply else None,
        "state": session.conversation.state.value,
        "highlight": _serialize_highlight(session.broker.snapshot()),
    }


@app.get("/api/sessions/{session_id}")
async def get_session(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    return _serialize_session(_require_session(manager, session_id))


@app.put("/api/sessions/{session_id}/date")
async def select_date(
    session_id: str,
    request: DateRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """Change the day a session's list, map and chat operate on."""
    session = manager.get_session(session_id)
    resolution = _resolve_date(session.resolver, request.date)
    session.selected_date = resolution.day
    return {
        "session_id": session_id,
        "date": resolution.day.isoformat(),
        "explanation": resolution.explanation,
        "events": [_serialize_event(e) for e in session.visible_events()],
    }


@app.post("/api/sessions/{session_id}/reset")
async def reset_session(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    session = _require_session(manager, session_id)
    session.conversation.reset()
    return _serialize_session(session)


@app.delete("/api/sessions/{session_id}")
async def close_session(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    if not await manager.close_session(session_id):
        raise HTTPException(status_code=404, detail=f"Unknown session '{session_id}'")
    return {"session_id": session_id, "closed": True}


# ============================================================================
# Map highlight
# ============================================================================


@app.get("/api/highlight/{session_id}")
async def get_highlight(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    session = _require_session(manager, session_id)
    return _serialize_highlight(session.broker.snapshot())


@app.post("/api/highlight/{session_id}/select")
async def select_event(
    session_id: str,
    request: SelectRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """Emphasize one event picked from the list or search view."""
    if request.event_id not in manager.catalog:
        raise HTTPException(status_code=404, detail=f"Unknown event '{request.event_id}'")
    session = manager.get_session(session_id)
    highlight = session.broker.select(request.event_id, request.ttl_seconds)
    return _serialize_highlight(highlight)


@app.delete("/api/highlight/{session_id}")
async def clear_highlight(session_id: str, manager: SessionManager = Depends(get_session_manager)):
    session = _require_session(manager, session_id)
    session.broker.clear()
    return _serialize_highlight(session.broker.snapshot())


# ============================================================================
# Preferences and credential
# ============================================================================


@app.get("/api/preferences")
def get_preferences(store: StateStore = Depends(get_state_store)):
    try:
        preferences = load_preferences(store)
    except PreferencesFormatError as e:
        raise HTTPException(status_code=500, detail=str(e)) from e
    return {
        "preferences": preferences.model_dump(mode="json", by_alias=True) if preferences else None,
        "has_profile": preferences is not None and preferences.is_complete,
    }


@app.put("/api/preferences")
def put_preferences(preferences: UserPreferences, store: StateStore = Depends(get_state_store)):
    save_preferences(store, preferences)
    return {
        "preferences": preferences.model_dump(mode="json", by_alias=True),
        "has_profile": preferences.is_complete,
    }


@app.delete("/api/preferences")
def delete_preferences(store: StateStore = Depends(get_state_store)):
    clear_preferences(store)
    return {"preferences": None, "has_profile": False}


@app.get("/api/credential")
def get_credential_status(manager: SessionManager = Depends(get_session_manager)):
    """Whether delegated matching is available. Never returns the key itself."""
    return {
        "configured": manager.has_credential,
        "strategy": "delegated" if manager.has_credential else "heuristic",
    }


@app.put("/api/credential")
async def put_credential(
    request: CredentialRequest,
    manager: SessionManager = Depends(get_session_manager),
):
    """Validate and store a reasoning credential, then switch open sessions over."""
    api_key = request.api_key.strip()
    if not await validate_credential(api_key, settings=manager.settings, http_client=manager.http_client):
        raise HTTPException(status_code=400, detail="Invalid API key. Please check your OpenRouter API key.")

    save_credential(manager.store, api_key)
    await manager.refresh_matchers()
    return {"configured": True, "strategy": "delegated"}


@app.delete("/api/credential")
async def delete_credential(manager: SessionManager = Depends(get_session_manager)):
    """Forget the stored credential; open sessions fall back to keyword matching."""
    clear_credential(manager.store)
    await manager.refresh_matchers()
    return {
        "configured": manager.has_credential,
        "strategy": "delegated" if manager.has_credential else "heuristic",
    }
