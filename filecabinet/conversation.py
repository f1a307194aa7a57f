"""Chat completion and per-session conversation history."""

from __future__ import annotations

import threading
from collections import OrderedDict, deque
from typing import TYPE_CHECKING

import openai
from openai import OpenAI

from .config import config
from .errors import UpstreamError

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from .models import ChatTurn

logger = config.get_logger(__name__)

CONTEXT_PREFIX = "Here's a matched document excerpt: "


def turns_to_messages(turns: Iterable[ChatTurn]) -> list[dict[str, str]]:
    """Expand chat turns into alternating user/assistant messages.

    Returns:
        Messages in the order the turns happened.
    """
    messages = []
    for turn in turns:
        messages.append({"role": "user", "content": turn.message})
        messages.append({"role": "assistant", "content": turn.response})
    return messages


class ChatResponder:
    """Sends a message with retrieved context to the chat completions API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        """Initialize ChatResponder.

        Args:
            api_key: OpenAI API key. If None, reads from OPENAI_API_KEY.
            model: Chat model name. If None, uses config.CHAT_MODEL.
            timeout: Per-request timeout in seconds. If None, uses
                config.OPENAI_TIMEOUT.
            max_retries: If None, uses config.OPENAI_MAX_RETRIES.
        """
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key or config.get_openai_api_key(),
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
            timeout=timeout if timeout is not None else config.OPENAI_TIMEOUT,
            max_retries=(
                max_retries if max_retries is not None else config.OPENAI_MAX_RETRIES
            ),
        )
        self.model = model or config.CHAT_MODEL

    @staticmethod
    def build_messages(
        message: str,
        context: str,
        history: Sequence[ChatTurn] = (),
    ) -> list[dict[str, str]]:
        """Build the message list sent to the completion API.

        Returns:
            Optional system message with the context, prior turns, then the
            new user message.
        """
        messages: list[dict[str, str]] = []
        if context:
            messages.append({"role": "system", "content": f"{CONTEXT_PREFIX}{context}"})
        messages.extend(turns_to_messages(history))
        messages.append({"role": "user", "content": message})
        return messages

    def respond(
        self,
        message: str,
        context: str,
        history: Sequence[ChatTurn] = (),
    ) -> str:
        """Generate a reply to the message.

        Returns:
            str: The generated text.

        Raises:
            UpstreamError: If the API call fails or the response is malformed.
        """
        messages = self.build_messages(message, context, history)
        logger.info(
            "Requesting completion with %d messages (context: %d chars)",
            len(messages),
            len(context),
        )

        try:
            response = self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                max_tokens=config.CHAT_MAX_TOKENS,
                temperature=config.CHAT_TEMPERATURE,
            )
        except openai.APIError as e:
            logger.exception("Chat completion request failed")
            msg = "Completion API request failed"
            raise UpstreamError(msg, details=str(e)) from e

        choices = getattr(response, "choices", None)
        if not choices:
            logger.error("Unexpected response structure: no choices")
            msg = "Unexpected response structure from completion API"
            raise UpstreamError(msg)

        reply = getattr(choices[0], "message", None)
        content = getattr(reply, "content", None) if reply is not None else None
        if not isinstance(content, str):
            logger.error("Unexpected response structure: no message content")
            msg = "Unexpected response structure from completion API"
            raise UpstreamError(msg)

        return content.strip()


class SessionHistory:
    """Bounded, in-process chat history keyed by session id.

    Each session keeps at most ``max_turns`` turns; once ``max_sessions``
    sessions are tracked the least recently used one is dropped. Durable turns
    live in the document store and can be loaded back with ``load``.
    """

    def __init__(
        self,
        max_turns: int | None = None,
        max_sessions: int | None = None,
    ) -> None:
        """Initialize SessionHistory.

        Args:
            max_turns: Turns kept per session. If None, uses
                config.HISTORY_MAX_TURNS.
            max_sessions: Sessions kept in memory. If None, uses
                config.HISTORY_MAX_SESSIONS.

        Raises:
            ValueError: If either limit is not positive.
        """
        self.max_turns = (
            max_turns if max_turns is not None else config.HISTORY_MAX_TURNS
        )
        self.max_sessions = (
            max_sessions if max_sessions is not None else config.HISTORY_MAX_SESSIONS
        )
        if self.max_turns <= 0 or self.max_sessions <= 0:
            msg = "History limits must be positive"
            raise ValueError(msg)

        self._sessions: OrderedDict[str, deque[ChatTurn]] = OrderedDict()
        self._lock = threading.Lock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    def _touch(self, session_id: str) -> deque[ChatTurn]:
        """Return the session's turns, creating or evicting."""  # noqa: DOC201
        turns = self._sessions.get(session_id)
        if turns is None:
            turns = deque(maxlen=self.max_turns)
            self._sessions[session_id] = turns
            while len(self._sessions) > self.max_sessions:
                evicted, _ = self._sessions.popitem(last=False)
                logger.info("Evicted history for session %s", evicted)
        else:
            self._sessions.move_to_end(session_id)
        return turns

    def has(self, session_id: str) -> bool:
        """Whether the session's history is held in memory."""  # noqa: DOC201
        with self._lock:
            return session_id in self._sessions

    def get(self, session_id: str) -> list[ChatTurn]:
        """Return a snapshot of the session's turns, oldest first."""  # noqa: DOC201
        with self._lock:
            turns = self._sessions.get(session_id)
            if turns is None:
                return []
            self._sessions.move_to_end(session_id)
            return list(turns)

    def append(self, turn: ChatTurn) -> None:
        """Append the newest turn of a session."""
        with self._lock:
            self._touch(turn.session_id).append(turn)

    def load(self, session_id: str, turns: Iterable[ChatTurn]) -> None:
        """Replace the session's history with previously stored turns."""
        with self._lock:
            self._sessions.pop(session_id, None)
            self._touch(session_id).extend(turns)

    def clear(self, session_id: str) -> None:
        """Forget the session's history; it is not reloaded from the store."""
        with self._lock:
            self._sessions.pop(session_id, None)
            self._touch(session_id)
        logger.info("Conversation history cleared for session %s", session_id)

    def as_messages(self, session_id: str) -> list[dict[str, str]]:
        """Return the session's history as role/content messages."""  # noqa: DOC201
        return turns_to_messages(self.get(session_id))
