"""SQLite document store for uploaded documents and chat turns."""

from __future__ import annotations

import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import TYPE_CHECKING

import numpy as np

from .config import config
from .errors import StorageError
from .models import ChatTurn, Document

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = config.get_logger(__name__)


def _encode_embedding(embedding: np.ndarray) -> tuple[bytes, int]:
    vector = np.asarray(embedding, dtype=np.float32).ravel()
    return vector.tobytes(), int(vector.shape[0])


def _decode_embedding(blob: bytes | None, dimension: int | None) -> np.ndarray | None:
    if blob is None:
        return None
    vector = np.frombuffer(blob, dtype=np.float32)
    if dimension is not None and vector.shape[0] != dimension:
        logger.warning(
            "Stored embedding has %d values, expected %d", vector.shape[0], dimension
        )
    return vector


class DocumentStore:
    """Documents and chat turns persisted in one SQLite database.

    Every caller opens its own connection through ``connect()``; nothing here
    holds a connection between calls.
    """

    def __init__(
        self, db_path: Path | None = None, timeout: float | None = None
    ) -> None:
        """Initialize the store.

        Args:
            db_path: Path to the SQLite database file. If None, uses
                config.DATABASE_PATH.
            timeout: Seconds to wait on a locked database. If None, uses
                config.DATABASE_TIMEOUT.
        """
        self.db_path = Path(db_path if db_path is not None else config.DATABASE_PATH)
        self.timeout = timeout if timeout is not None else config.DATABASE_TIMEOUT

    def initialize(self) -> None:
        """Create the database file, tables and indexes if they don't exist.

        Raises:
            StorageError: If the schema cannot be created.
        """
        try:
            self.db_path.parent.mkdir(exist_ok=True, parents=True)
        except OSError as e:
            msg = f"Cannot create database directory {self.db_path.parent}"
            raise StorageError(msg, details=str(e)) from e

        with self.connect() as conn:
            cursor = conn.cursor()

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS documents (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    id TEXT NOT NULL UNIQUE,
                    filename TEXT,
                    full_text TEXT NOT NULL,
                    embedding BLOB NOT NULL,
                    dimension INTEGER NOT NULL,
                    created_at TEXT NOT NULL
                )
            """)

            cursor.execute("""
                CREATE TABLE IF NOT EXISTS chat_turns (
                    seq INTEGER PRIMARY KEY AUTOINCREMENT,
                    session_id TEXT NOT NULL,
                    message TEXT NOT NULL,
                    response TEXT NOT NULL,
                    timestamp TEXT NOT NULL,
                    embedding BLOB,
                    dimension INTEGER
                )
            """)

            cursor.execute(
                "CREATE INDEX IF NOT EXISTS idx_chat_turns_session "
                "ON chat_turns(session_id, seq DESC)"
            )

        logger.info("Document store ready at %s", self.db_path)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        """Open a connection, committing on success and always closing it.

        Yields:
            An open SQLite connection.

        Raises:
            StorageError: If connecting or any query inside the block fails.
        """
        try:
            conn = sqlite3.connect(str(self.db_path), timeout=self.timeout)
        except sqlite3.Error as e:
            logger.exception("Unable to open document store %s", self.db_path)
            msg = "Could not connect to the document store"
            raise StorageError(msg, details=str(e)) from e

        try:
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.exception("Document store query failed")
            msg = "Document store query failed"
            raise StorageError(msg, details=str(e)) from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    @staticmethod
    def insert_documents(
        conn: sqlite3.Connection, documents: Iterable[Document]
    ) -> int:
        """Insert documents in one batch.

        Returns:
            Number of inserted rows.
        """
        rows = []
        for document in documents:
            blob, dimension = _encode_embedding(document.embedding)
            rows.append((
                document.id,
                document.filename,
                document.full_text,
                blob,
                dimension,
                document.created_at,
            ))

        conn.executemany(
            """
            INSERT INTO documents (
                id, filename, full_text, embedding, dimension, created_at
            )
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            rows,
        )
        logger.info("Inserted %d documents", len(rows))
        return len(rows)

    @staticmethod
    def fetch_documents(conn: sqlite3.Connection) -> list[Document]:
        """Fetch every stored document in insertion order.

        Returns:
            List of documents with their embeddings.
        """
        cursor = conn.execute(
            """
            SELECT id, filename, full_text, embedding, dimension, created_at
            FROM documents
            ORDER BY seq
            """
        )
        documents = []
        for doc_id, filename, full_text, blob, dimension, created_at in cursor:
            embedding = _decode_embedding(blob, dimension)
            documents.append(
                Document(
                    id=doc_id,
                    embedding=embedding,
                    full_text=full_text,
                    filename=filename,
                    created_at=created_at,
                )
            )
        return documents

    @staticmethod
    def count_documents(conn: sqlite3.Connection) -> int:
        """Return the number of stored documents."""  # noqa: DOC201
        (count,) = conn.execute("SELECT COUNT(*) FROM documents").fetchone()
        return int(count)

    @staticmethod
    def insert_chat_turn(conn: sqlite3.Connection, turn: ChatTurn) -> None:
        """Persist a single chat turn."""
        blob, dimension = (
            _encode_embedding(turn.embedding)
            if turn.embedding is not None
            else (None, None)
        )
        conn.execute(
            """
            INSERT INTO chat_turns (
                session_id, message, response, timestamp, embedding, dimension
            )
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (
                turn.session_id,
                turn.message,
                turn.response,
                turn.timestamp,
                blob,
                dimension,
            ),
        )

    @staticmethod
    def _build_turn(row: tuple) -> ChatTurn:
        session_id, message, response, timestamp, blob, dimension = row
        return ChatTurn(
            session_id=session_id,
            message=message,
            response=response,
            timestamp=timestamp,
            embedding=_decode_embedding(blob, dimension),
        )

    def fetch_chat_turns(self, conn: sqlite3.Connection) -> list[ChatTurn]:
        """Fetch every stored chat turn across all sessions, oldest first.

        Returns:
            List of chat turns.
        """
        cursor = conn.execute(
            """
            SELECT session_id, message, response, timestamp, embedding, dimension
            FROM chat_turns
            ORDER BY seq
            """
        )
        return [self._build_turn(row) for row in cursor]

    def fetch_recent_chat_turns(
        self,
        conn: sqlite3.Connection,
        session_id: str,
        limit: int,
    ) -> list[ChatTurn]:
        """Fetch the latest turns of a session.

        Returns:
            Up to ``limit`` turns in chronological order.
        """
        cursor = conn.execute(
            """
            SELECT session_id, message, response, timestamp, embedding, dimension
            FROM chat_turns
            WHERE session_id = ?
            ORDER BY seq DESC
            LIMIT ?
            """,
            (session_id, int(limit)),
        )
        turns = [self._build_turn(row) for row in cursor]
        turns.reverse()
        return turns

    @staticmethod
    def count_chat_turns(conn: sqlite3.Connection) -> int:
        """Return the number of stored chat turns."""  # noqa: DOC201
        (count,) = conn.execute("SELECT COUNT(*) FROM chat_turns").fetchone()
        return int(count)
