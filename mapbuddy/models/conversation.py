"""Conversation models for the discovery chat."""

import uuid
from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class Role(str, Enum):
    """Author of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"


class ConversationState(str, Enum):
    """Turn state of a conversation session."""

    IDLE = "idle"
    AWAITING_REPLY = "awaiting_reply"
    ERROR = "error"


class Message(BaseModel):
    """A chat message shown in the UI. Never mutated after creation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    role: Role
    text: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    candidate_ids: tuple[str, ...] = ()
    interactive: bool = Field(
        default=False, description="Whether event buttons should render under the message"
    )


class PromptTurn(BaseModel):
    """A prior turn replayed to the reasoning service."""

    model_config = ConfigDict(frozen=True)

    role: Role
    content: str


class MatchResult(BaseModel):
    """Reply text plus the ordered event ids it refers to."""

    model_config = ConfigDict(frozen=True)

    reply: str
    candidate_ids: tuple[str, ...] = ()
