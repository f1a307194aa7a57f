"""Data models for the chat service."""

import datetime
from dataclasses import dataclass, field
from typing import Literal

import numpy as np

MatchKind = Literal["document", "chat_turn"]


def utc_now() -> str:
    """Return the current UTC time as an ISO-8601 string."""  # noqa: DOC201
    return datetime.datetime.now(tz=datetime.UTC).isoformat()


@dataclass(frozen=True, eq=False)
class Document:
    """An uploaded PDF with its extracted text and embedding."""

    id: str
    embedding: np.ndarray
    full_text: str
    filename: str | None = None
    created_at: str = field(default_factory=utc_now)


@dataclass(frozen=True, eq=False)
class ChatTurn:
    """A single chat exchange within a session."""

    session_id: str
    message: str
    response: str
    timestamp: str = field(default_factory=utc_now)
    embedding: np.ndarray | None = None


@dataclass(frozen=True)
class ScoredMatch:
    """A stored item scored against a query embedding."""

    kind: MatchKind
    item_id: str
    text: str
    score: float
    filename: str | None = None


@dataclass
class RetrievalResult:
    """Context assembled from the matches of one query."""

    context: str
    matches: list[ScoredMatch] = field(default_factory=list)

    @property
    def has_context(self) -> bool:
        """Whether any stored item matched the query."""
        return bool(self.context)


@dataclass
class ChatReply:
    """Outcome of a chat request."""

    response: str
    history: list[dict[str, str]]
    matches: list[ScoredMatch] = field(default_factory=list)
