"""Pipeline orchestrating Upload -> Embed -> Store and Query -> Retrieve -> Respond."""

from __future__ import annotations

import asyncio
import uuid
from typing import TYPE_CHECKING

from .config import config
from .conversation import ChatResponder, SessionHistory
from .document_processing import DocumentLoader
from .embeddings import EmbeddingService
from .errors import ValidationError
from .models import ChatReply, ChatTurn, Document, ScoredMatch
from .retrieval import (
    BestMatchRetriever,
    ThresholdUnionRetriever,
    get_retriever,
    rank_documents,
)
from .storage import DocumentStore

if TYPE_CHECKING:
    import sqlite3
    from collections.abc import Sequence

logger = config.get_logger(__name__)

NO_MATCH_TEMPLATE = "No matches found for '{message}'. Please refine your query."


class ChatPipeline:
    """Wires the embedding client, document store, retriever and responder."""

    def __init__(  # noqa: PLR0913,PLR0917
        self,
        store: DocumentStore | None = None,
        embedding_service: EmbeddingService | None = None,
        responder: ChatResponder | None = None,
        retriever: ThresholdUnionRetriever | BestMatchRetriever | None = None,
        history: SessionHistory | None = None,
        openai_api_key: str | None = None,
    ) -> None:
        """Initialize the pipeline; any component left as None uses config defaults.

        Args:
            store: Document store. Defaults to config.DATABASE_PATH.
            embedding_service: Embedding client.
            responder: Chat completion client.
            retriever: Retrieval policy. Defaults to config.RETRIEVAL_POLICY.
            history: In-process session history.
            openai_api_key: API key for the default OpenAI clients.
        """
        self.store = store or DocumentStore()
        self.embedding_service = embedding_service or EmbeddingService(
            api_key=openai_api_key
        )
        self.responder = responder or ChatResponder(api_key=openai_api_key)
        self.retriever = retriever or get_retriever()
        self.history = history if history is not None else SessionHistory()
        logger.info("Using %s retrieval policy", self.retriever.policy)

    def initialize(self) -> None:
        """Make sure the document store schema exists."""
        self.store.initialize()

    def _prepare_document(self, filename: str, data: bytes) -> Document:
        text = DocumentLoader.extract_text(data, filename)
        embedding = self.embedding_service.get_embedding(text)
        return Document(
            id=str(uuid.uuid4()),
            embedding=embedding,
            full_text=text,
            filename=filename,
        )

    async def ingest_pdfs(self, files: Sequence[tuple[str, bytes]]) -> list[Document]:
        """Extract, embed and store a batch of uploaded PDFs.

        Files are processed concurrently. Nothing is stored unless every file
        succeeds.

        Args:
            files: (filename, content) pairs.

        Returns:
            The stored documents, in the same order as ``files``.

        Raises:
            ValidationError: If the batch is empty or too large.
        """
        if not files:
            msg = "No PDF files were uploaded"
            raise ValidationError(msg)
        if len(files) > config.MAX_UPLOAD_FILES:
            msg = f"At most {config.MAX_UPLOAD_FILES} files can be uploaded at once"
            raise ValidationError(msg)

        logger.info("Processing %d uploaded files", len(files))
        documents = await asyncio.gather(*(
            asyncio.to_thread(self._prepare_document, filename, data)
            for filename, data in files
        ))

        await asyncio.to_thread(self._store_documents, documents)

        logger.info("Stored %d documents", len(documents))
        return list(documents)

    def _store_documents(self, documents: Sequence[Document]) -> None:
        with self.store.connect() as conn:
            self.store.insert_documents(conn, documents)

    def search(self, query: str) -> list[ScoredMatch]:
        """Rank stored documents against a query.

        Returns:
            The closest documents, best first.

        Raises:
            ValidationError: If the query is empty.
        """
        query = (query or "").strip()
        if not query:
            msg = "Invalid query"
            raise ValidationError(msg)

        logger.info("Processing search: %s", query)
        embedding = self.embedding_service.get_embedding(query)

        with self.store.connect() as conn:
            documents = self.store.fetch_documents(conn)

        return rank_documents(embedding, documents)

    def _session_turns(
        self, conn: sqlite3.Connection, session_id: str
    ) -> list[ChatTurn]:
        """Return the session's turns, reloading them on a miss."""  # noqa: DOC201
        if not self.history.has(session_id):
            stored = self.store.fetch_recent_chat_turns(
                conn, session_id, self.history.max_turns
            )
            self.history.load(session_id, stored)
            if stored:
                logger.info(
                    "Restored %d turns for session %s", len(stored), session_id
                )
        return self.history.get(session_id)

    def chat(self, session_id: str, message: str) -> ChatReply:
        """Answer a chat message using retrieved context and session history.

        Returns:
            ChatReply with the response and the updated session history.

        Raises:
            ValidationError: If the message is empty.
        """
        message = (message or "").strip()
        if not message:
            msg = "Message must not be empty"
            raise ValidationError(msg)

        logger.info("Processing chat message for session %s", session_id)
        embedding = self.embedding_service.get_embedding(message)

        with self.store.connect() as conn:
            documents = self.store.fetch_documents(conn)
            chat_turns = self.store.fetch_chat_turns(conn)
            result = self.retriever.retrieve(embedding, documents, chat_turns)

            history = self._session_turns(conn, session_id)

            if result.has_context:
                response = self.responder.respond(message, result.context, history)
            else:
                logger.info("No stored content matched the message")
                response = NO_MATCH_TEMPLATE.format(message=message)

            turn = ChatTurn(
                session_id=session_id,
                message=message,
                response=response,
                embedding=embedding,
            )
            self.store.insert_chat_turn(conn, turn)

        self.history.append(turn)

        return ChatReply(
            response=response,
            history=self.history.as_messages(session_id),
            matches=result.matches,
        )

    def clear_history(self, session_id: str) -> None:
        """Forget the in-memory history of a session; stored turns are kept."""
        self.history.clear(session_id)

    def stats(self) -> dict[str, int]:
        """Return counts of stored documents and chat turns."""  # noqa: DOC201
        with self.store.connect() as conn:
            return {
                "documents": self.store.count_documents(conn),
                "chat_turns": self.store.count_chat_turns(conn),
            }
