"""Test configuration and fixtures for FileCabinet tests.

This module provides reusable test fixtures organized by functionality:
- Constants and test data
- Mock services and API responses
- EmbeddingService and ChatResponder fixtures
- Document store fixtures
- Pipeline and API client factories
"""

import hashlib
import math
from contextlib import contextmanager
from unittest.mock import Mock, create_autospec, patch

import numpy as np
import pytest
from fastapi.testclient import TestClient

from filecabinet import (
    ChatPipeline,
    ChatResponder,
    ChatTurn,
    Document,
    DocumentStore,
    EmbeddingService,
    SessionHistory,
    ThresholdUnionRetriever,
)
from filecabinet.api import create_app


class TestConstants:
    """Centralized test constants to avoid repetition across test files.

    All test constants are defined here to maintain consistency across
    the test suite and make it easy to update values globally.
    """

    # API Configuration
    TEST_API_KEY = "test-key"
    TEST_OPENAI_MODEL = "text-embedding-3-small"
    TEST_SESSION_SECRET = "test-session-secret"
    DEFAULT_EMBEDDING_DIMENSION = 384

    # Chat Configuration
    TEST_CHAT_RESPONSE = "Test response"
    HISTORY_MAX_TURNS = 5
    HISTORY_MAX_SESSIONS = 10


class MockEmbeddingService:
    """Mock embedding service for testing without API calls.

    Generates deterministic embeddings based on text content hash,
    ensuring consistent test results across runs.
    """

    def __init__(
        self, dimension: int = TestConstants.DEFAULT_EMBEDDING_DIMENSION
    ) -> None:
        """Initialize mock embedding service.

        Args:
            dimension: Dimensionality of generated embeddings.
        """
        self.dimension = dimension
        self.calls: list[str] = []

    def get_embedding(self, text: str) -> np.ndarray:
        """Generate deterministic mock embedding based on text hash."""
        self.calls.append(text)
        seed = int.from_bytes(
            hashlib.sha256(text.lower().encode("utf-8")).digest()[:8],
            byteorder="big",
            signed=False,
        )
        rng = np.random.default_rng(seed)
        embedding = rng.normal(0, 1, self.dimension)
        return (embedding / np.linalg.norm(embedding)).astype(np.float32)


def vector_with_similarity(score: float) -> np.ndarray:
    """Unit vector whose cosine similarity with QUERY_VECTOR equals ``score``."""
    return np.array([score, math.sqrt(1 - score**2)], dtype=np.float64)


QUERY_VECTOR = np.array([1.0, 0.0], dtype=np.float64)


def make_document(doc_id: str, embedding, text: str | None = None) -> Document:
    """Build a Document with the given embedding."""
    return Document(
        id=doc_id,
        embedding=np.asarray(embedding, dtype=np.float64),
        full_text=text if text is not None else f"Text of {doc_id}",
        filename=f"{doc_id}.pdf",
    )


def make_chat_turn(
    message: str,
    embedding=None,
    session_id: str = "session-1",
    response: str | None = None,
) -> ChatTurn:
    """Build a ChatTurn for a session."""
    return ChatTurn(
        session_id=session_id,
        message=message,
        response=response if response is not None else f"Reply to {message}",
        embedding=None if embedding is None else np.asarray(embedding),
    )


def make_pdf(text: str) -> bytes:
    """Build a minimal single-page PDF showing ``text`` in Helvetica."""
    stream = f"BT /F1 12 Tf 72 712 Td ({text}) Tj ET".encode("latin-1")
    objects = [
        b"<< /Type /Catalog /Pages 2 0 R >>",
        b"<< /Type /Pages /Kids [3 0 R] /Count 1 >>",
        b"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
        b"/Contents 4 0 R /Resources << /Font << /F1 5 0 R >> >> >>",
        b"<< /Length %d >>\nstream\n" % len(stream) + stream + b"\nendstream",
        b"<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>",
    ]

    pdf = bytearray(b"%PDF-1.4\n")
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(pdf))
        pdf += b"%d 0 obj\n" % number + body + b"\nendobj\n"

    xref_offset = len(pdf)
    pdf += b"xref\n0 %d\n" % (len(objects) + 1)
    pdf += b"0000000000 65535 f \n"
    for offset in offsets:
        pdf += b"%010d 00000 n \n" % offset
    pdf += b"trailer\n<< /Size %d /Root 1 0 R >>\n" % (len(objects) + 1)
    pdf += b"startxref\n%d\n%%%%EOF\n" % xref_offset
    return bytes(pdf)


def create_mock_openai_response(embeddings: list[list[float]]) -> Mock:
    """Create a mock OpenAI embeddings API response.

    Args:
        embeddings: List of embedding vectors to return.

    Returns:
        Mock object representing OpenAI embeddings API response.
    """
    mock_response = Mock()
    mock_response.data = [Mock(embedding=emb) for emb in embeddings]
    return mock_response


def create_mock_chat_response(content: str | None) -> Mock:
    """Create a mock OpenAI chat completion response.

    Args:
        content: The content for the chat completion response.

    Returns:
        Mock object representing OpenAI chat completion response.
    """
    mock_response = Mock()
    mock_response.choices = [Mock(message=Mock(content=content))]
    return mock_response


@pytest.fixture
def openai_embeddings_api_mock():
    """Patch OpenAI embeddings.create without any pre-configuration."""
    with patch("openai.resources.embeddings.Embeddings.create") as mock_create:
        yield mock_create


@pytest.fixture
def embedding_service_factory():
    """Factory for creating EmbeddingService instances with different configurations."""

    def _create_service(api_key=None, model=None):  # noqa: ANN202
        """Create an EmbeddingService instance.

        Args:
            api_key: API key to use, defaults to TestConstants.TEST_API_KEY
            model: Model to use, defaults to the configured model
        """
        api_key = api_key or TestConstants.TEST_API_KEY

        if model is not None:
            return EmbeddingService(api_key=api_key, model=model)
        return EmbeddingService(api_key=api_key)

    return _create_service


@pytest.fixture
def embedding_service(embedding_service_factory):
    """Default EmbeddingService with test API key for most tests."""
    return embedding_service_factory()


@pytest.fixture
def mock_embedding_service():
    """Fresh MockEmbeddingService that records the texts it embedded."""
    return MockEmbeddingService()


@pytest.fixture
def chat_responder():
    """ChatResponder with a test API key."""
    return ChatResponder(api_key=TestConstants.TEST_API_KEY)


@pytest.fixture
def responder_chat_mock_factory():
    """Factory mock fixture for ChatResponder's client.chat.completions.create."""

    @contextmanager
    def _mock_responder_chat(  # noqa: ANN202
        responder,
        content: str | None = TestConstants.TEST_CHAT_RESPONSE,
        side_effect=None,
    ):
        with patch.object(
            responder.client.chat.completions,
            "create",
        ) as mock_create:
            if side_effect is not None:
                mock_create.side_effect = side_effect
                mock_create.return_value = None
            else:
                mock_create.side_effect = None
                mock_create.return_value = create_mock_chat_response(content)
            yield mock_create

    return _mock_responder_chat


@pytest.fixture
def mock_responder():
    """Autospecced ChatResponder returning a fixed reply."""
    responder = create_autospec(ChatResponder, instance=True)
    responder.respond.return_value = TestConstants.TEST_CHAT_RESPONSE
    return responder


@pytest.fixture
def temp_store(tmp_path) -> DocumentStore:
    """Initialized document store in a temporary directory."""
    store = DocumentStore(db_path=tmp_path / "data" / "test.db")
    store.initialize()
    return store


@pytest.fixture
def session_history():
    """Small SessionHistory so limits are easy to hit."""
    return SessionHistory(
        max_turns=TestConstants.HISTORY_MAX_TURNS,
        max_sessions=TestConstants.HISTORY_MAX_SESSIONS,
    )


@pytest.fixture
def pipeline_factory(temp_store, mock_embedding_service, mock_responder):
    """Factory for ChatPipeline instances wired to test doubles."""

    def _create_pipeline(
        retriever=None,
        embedding_service=None,
        responder=None,
        history=None,
    ) -> ChatPipeline:
        return ChatPipeline(
            store=temp_store,
            embedding_service=embedding_service or mock_embedding_service,
            responder=responder or mock_responder,
            retriever=retriever or ThresholdUnionRetriever(),
            history=history
            if history is not None
            else SessionHistory(
                max_turns=TestConstants.HISTORY_MAX_TURNS,
                max_sessions=TestConstants.HISTORY_MAX_SESSIONS,
            ),
        )

    return _create_pipeline


@pytest.fixture
def pipeline(pipeline_factory):
    """Default pipeline with threshold retrieval."""
    return pipeline_factory()


@pytest.fixture
def api_client_factory():
    """Factory for TestClient instances around a given pipeline."""

    def _create_client(pipeline: ChatPipeline) -> TestClient:
        app = create_app(
            pipeline=pipeline, session_secret=TestConstants.TEST_SESSION_SECRET
        )
        return TestClient(app)

    return _create_client


@pytest.fixture
def api_client(api_client_factory, pipeline):
    """TestClient for the default pipeline."""
    return api_client_factory(pipeline)


@pytest.fixture
def pdf_factory():
    """Factory building minimal PDF bytes for a text."""
    return make_pdf


@pytest.fixture
def document_factory():
    """Factory building Document instances."""
    return make_document


@pytest.fixture
def chat_turn_factory():
    """Factory building ChatTurn instances."""
    return make_chat_turn


@pytest.fixture
def similarity_vector():
    """Factory for 2-d unit vectors with a chosen similarity to ``query_vector``."""
    return vector_with_similarity


@pytest.fixture
def query_vector():
    """Query embedding used with ``similarity_vector``."""
    return QUERY_VECTOR.copy()


@pytest.fixture
def mock_openai_response_factory():
    """Factory for mock embeddings API responses."""
    return create_mock_openai_response


@pytest.fixture
def mock_chat_response_factory():
    """Factory for mock chat completion responses."""
    return create_mock_chat_response
