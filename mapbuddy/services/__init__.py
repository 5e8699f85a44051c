"""
Services for the Map Buddy discovery core.

Leaf services are re-exported here. The conversation manager and the session
registry depend on the matchers in ``mapbuddy.agents`` and are imported from
their own modules::

    from mapbuddy.services.conversation import ConversationManager
    from mapbuddy.services.session import get_session_manager

Available Services
------------------
- Catalog: Read-only seed table of events and people
- applies / filter_visible: Recurring-schedule resolution
- DateResolver: Natural language date picker input
- ReferenceTokens: Inline ``[text](event:id)`` scanning
- ReasoningClient: Delegated reasoning over OpenRouter
- HighlightBroker: Time-bounded map emphasis
- State store: Persisted credential and preference slots
"""

from .catalog import SEED_EVENTS, Catalog, get_catalog
from .errors import (
    InvalidCredential,
    MalformedRemoteResponse,
    MissingCredential,
    NetworkFailure,
    PreferencesFormatError,
    RateLimited,
    ReasoningError,
    RemoteServiceError,
)
from .highlight import HighlightBroker
from .reasoning import ReasoningClient, validate_credential
from .references import (
    ReferenceToken,
    ReferenceTokens,
    TextToken,
    extract_event_ids,
    render_segments,
)
from .schedule import applies, filter_visible
from .storage import (
    InMemoryStateStore,
    SQLiteStateStore,
    get_state_store,
    init_state_store,
    load_preferences,
    resolve_credential,
    save_preferences,
)
from .temporal import DateResolution, DateResolver

__all__ = [
    "SEED_EVENTS",
    "Catalog",
    "get_catalog",
    "InvalidCredential",
    "MalformedRemoteResponse",
    "MissingCredential",
    "NetworkFailure",
    "PreferencesFormatError",
    "RateLimited",
    "ReasoningError",
    "RemoteServiceError",
    "HighlightBroker",
    "ReasoningClient",
    "validate_credential",
    "ReferenceToken",
    "ReferenceTokens",
    "TextToken",
    "extract_event_ids",
    "render_segments",
    "applies",
    "filter_visible",
    "InMemoryStateStore",
    "SQLiteStateStore",
    "get_state_store",
    "init_state_store",
    "load_preferences",
    "resolve_credential",
    "save_preferences",
    "DateResolution",
    "DateResolver",
]
