"""Tests for ChatResponder and SessionHistory."""

import threading
from unittest.mock import Mock, patch

import httpx
import pytest
from openai import APIConnectionError

from filecabinet import ChatResponder, SessionHistory, UpstreamError
from filecabinet.config import config
from filecabinet.conversation import CONTEXT_PREFIX, turns_to_messages


@pytest.mark.parametrize(
    ("init_kwargs", "expected_key", "requires_env_patch"),
    [
        ({"api_key": "test-key"}, "test-key", False),
        ({}, "env-key", True),
    ],
)
def test_chat_responder_initialization(init_kwargs, expected_key, requires_env_patch):
    if requires_env_patch:
        with patch(
            "filecabinet.conversation.config.get_openai_api_key",
            return_value=expected_key,
        ):
            responder = ChatResponder(**init_kwargs)
    else:
        responder = ChatResponder(**init_kwargs)

    assert responder.client.api_key == expected_key
    assert responder.model == config.CHAT_MODEL
    assert responder.client.max_retries == config.OPENAI_MAX_RETRIES


def test_turns_to_messages(chat_turn_factory):
    turns = [chat_turn_factory("Hi", response="Hello"), chat_turn_factory("Bye")]

    assert turns_to_messages(turns) == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
        {"role": "user", "content": "Bye"},
        {"role": "assistant", "content": "Reply to Bye"},
    ]


def test_build_messages_with_context_and_history(chat_turn_factory):
    history = [chat_turn_factory("Earlier question", response="Earlier answer")]

    messages = ChatResponder.build_messages("New question", "Some excerpt", history)

    assert messages == [
        {"role": "system", "content": f"{CONTEXT_PREFIX}Some excerpt"},
        {"role": "user", "content": "Earlier question"},
        {"role": "assistant", "content": "Earlier answer"},
        {"role": "user", "content": "New question"},
    ]


def test_build_messages_without_context():
    messages = ChatResponder.build_messages("Question", "")

    assert messages == [{"role": "user", "content": "Question"}]


def test_respond_success(
    chat_responder, responder_chat_mock_factory, chat_turn_factory
):
    history = [chat_turn_factory("Earlier", response="Before")]

    with responder_chat_mock_factory(
        chat_responder, "  The answer.  \n"
    ) as mock_create:
        result = chat_responder.respond("Question", "Context text", history)

    assert result == "The answer."
    mock_create.assert_called_once_with(
        model=config.CHAT_MODEL,
        messages=ChatResponder.build_messages("Question", "Context text", history),
        max_tokens=config.CHAT_MAX_TOKENS,
        temperature=config.CHAT_TEMPERATURE,
    )


def test_respond_api_error(chat_responder, responder_chat_mock_factory):
    request = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")

    with (
        responder_chat_mock_factory(
            chat_responder, side_effect=APIConnectionError(request=request)
        ) as mock_create,
        pytest.raises(UpstreamError, match="Completion API request failed"),
    ):
        chat_responder.respond("Question", "Context")

    mock_create.assert_called_once()


def test_respond_without_choices(chat_responder):
    with (
        patch.object(
            chat_responder.client.chat.completions,
            "create",
            return_value=Mock(choices=[]),
        ),
        pytest.raises(UpstreamError, match="Unexpected response structure"),
    ):
        chat_responder.respond("Question", "Context")


def test_respond_without_content(chat_responder, responder_chat_mock_factory):
    with (
        responder_chat_mock_factory(chat_responder, None),
        pytest.raises(UpstreamError, match="Unexpected response structure"),
    ):
        chat_responder.respond("Question", "Context")


def test_session_history_defaults():
    history = SessionHistory()

    assert history.max_turns == config.HISTORY_MAX_TURNS
    assert history.max_sessions == config.HISTORY_MAX_SESSIONS
    assert len(history) == 0


@pytest.mark.parametrize(
    ("max_turns", "max_sessions"),
    [(0, 10), (5, 0), (-1, 10)],
)
def test_session_history_rejects_non_positive_limits(max_turns, max_sessions):
    with pytest.raises(ValueError, match="History limits must be positive"):
        SessionHistory(max_turns=max_turns, max_sessions=max_sessions)


def test_session_history_append_and_get(session_history, chat_turn_factory):
    session_history.append(chat_turn_factory("First"))
    session_history.append(chat_turn_factory("Second"))

    turns = session_history.get("session-1")

    assert [turn.message for turn in turns] == ["First", "Second"]
    assert session_history.has("session-1")
    assert not session_history.has("other")
    assert session_history.get("other") == []


def test_session_history_keeps_latest_turns(session_history, chat_turn_factory):
    for i in range(session_history.max_turns + 2):
        session_history.append(chat_turn_factory(f"Question {i}"))

    messages = [turn.message for turn in session_history.get("session-1")]

    assert len(messages) == session_history.max_turns
    assert messages[0] == "Question 2"
    assert messages[-1] == f"Question {session_history.max_turns + 1}"


def test_session_history_isolates_sessions(session_history, chat_turn_factory):
    session_history.append(chat_turn_factory("Alice's question", session_id="a"))
    session_history.append(chat_turn_factory("Bob's question", session_id="b"))

    assert [t.message for t in session_history.get("a")] == ["Alice's question"]
    assert [t.message for t in session_history.get("b")] == ["Bob's question"]


def test_session_history_evicts_least_recently_used(chat_turn_factory):
    history = SessionHistory(max_turns=3, max_sessions=2)
    history.append(chat_turn_factory("one", session_id="a"))
    history.append(chat_turn_factory("two", session_id="b"))
    history.get("a")
    history.append(chat_turn_factory("three", session_id="c"))

    assert len(history) == 2
    assert history.has("a")
    assert not history.has("b")
    assert history.has("c")


def test_session_history_load_replaces_turns(session_history, chat_turn_factory):
    session_history.append(chat_turn_factory("stale"))
    stored = [chat_turn_factory(f"stored {i}") for i in range(3)]

    session_history.load("session-1", stored)

    assert [t.message for t in session_history.get("session-1")] == [
        "stored 0",
        "stored 1",
        "stored 2",
    ]


def test_session_history_load_empty_marks_session(session_history):
    session_history.load("new-session", [])

    assert session_history.has("new-session")
    assert session_history.get("new-session") == []


def test_session_history_clear(session_history, chat_turn_factory):
    session_history.append(chat_turn_factory("First"))

    session_history.clear("session-1")

    assert session_history.get("session-1") == []
    assert session_history.has("session-1")


def test_session_history_as_messages(session_history, chat_turn_factory):
    session_history.append(chat_turn_factory("Hi", response="Hello"))

    assert session_history.as_messages("session-1") == [
        {"role": "user", "content": "Hi"},
        {"role": "assistant", "content": "Hello"},
    ]


def test_session_history_concurrent_appends(chat_turn_factory):
    history = SessionHistory(max_turns=1000, max_sessions=10)
    threads_count = 8
    per_thread = 50

    def worker(index: int) -> None:
        for i in range(per_thread):
            history.append(chat_turn_factory(f"{index}-{i}"))

    threads = [
        threading.Thread(target=worker, args=(i,)) for i in range(threads_count)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(history.get("session-1")) == threads_count * per_thread
