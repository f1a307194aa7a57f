"""Similarity-based retrieval and context assembly.

Two policies are available. ``threshold`` collects every document and prior
chat message scoring above a fixed threshold; ``best`` keeps only the single
closest document. Both scan the full corpus for every query.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal, Protocol

import numpy as np

from .config import config
from .errors import NotFoundError
from .models import ChatTurn, Document, RetrievalResult, ScoredMatch
from .similarity import cosine_similarity

if TYPE_CHECKING:
    from collections.abc import Sequence

logger = config.get_logger(__name__)

RetrievalPolicy = Literal["threshold", "best"]


class Retriever(Protocol):
    """Interface shared by the retrieval policies."""

    policy: str

    def retrieve(
        self,
        query_embedding: np.ndarray,
        documents: Sequence[Document],
        chat_turns: Sequence[ChatTurn] = (),
    ) -> RetrievalResult: ...


def _score(query_embedding: np.ndarray, embedding: np.ndarray | None) -> float | None:
    """Score one stored vector, or None if it cannot be compared."""  # noqa: DOC201
    if embedding is None:
        return None
    if np.shape(embedding)[-1] != np.shape(query_embedding)[-1]:
        logger.warning(
            "Skipping stored embedding with dimension %d (query has %d)",
            np.shape(embedding)[-1],
            np.shape(query_embedding)[-1],
        )
        return None
    return cosine_similarity(query_embedding, embedding)


class ThresholdUnionRetriever:
    """Union of every document and chat turn above its similarity threshold."""

    policy = "threshold"

    def __init__(
        self,
        document_threshold: float | None = None,
        chat_threshold: float | None = None,
    ) -> None:
        """Initialize with thresholds.

        Args:
            document_threshold: Minimum (exclusive) score for documents. If None,
                uses config.DOCUMENT_SIMILARITY_THRESHOLD.
            chat_threshold: Minimum (exclusive) score for prior chat turns. If
                None, uses config.CHAT_SIMILARITY_THRESHOLD.
        """
        self.document_threshold = (
            document_threshold
            if document_threshold is not None
            else config.DOCUMENT_SIMILARITY_THRESHOLD
        )
        self.chat_threshold = (
            chat_threshold
            if chat_threshold is not None
            else config.CHAT_SIMILARITY_THRESHOLD
        )

    def retrieve(
        self,
        query_embedding: np.ndarray,
        documents: Sequence[Document],
        chat_turns: Sequence[ChatTurn] = (),
    ) -> RetrievalResult:
        """Collect matching documents, then matching chat messages.

        Chat matches are identified as ``<session_id>:<position>``, the
        position counting that session's turns from zero.

        Returns:
            RetrievalResult whose context is empty when nothing matched.
        """
        matches: list[ScoredMatch] = []

        for document in documents:
            score = _score(query_embedding, document.embedding)
            if score is not None and score > self.document_threshold:
                matches.append(
                    ScoredMatch(
                        kind="document",
                        item_id=document.id,
                        text=document.full_text,
                        score=score,
                        filename=document.filename,
                    )
                )

        positions: dict[str, int] = {}
        for turn in chat_turns:
            position = positions.get(turn.session_id, 0)
            positions[turn.session_id] = position + 1
            score = _score(query_embedding, turn.embedding)
            if score is not None and score > self.chat_threshold:
                matches.append(
                    ScoredMatch(
                        kind="chat_turn",
                        item_id=f"{turn.session_id}:{position}",
                        text=turn.message,
                        score=score,
                    )
                )

        for match in matches:
            logger.info(
                "Matched %s %s with similarity %.4f",
                match.kind,
                match.item_id,
                match.score,
            )

        context = " ".join(match.text for match in matches)
        return RetrievalResult(context=context, matches=matches)


class BestMatchRetriever:
    """The single closest document."""

    policy = "best"

    def retrieve(  # noqa: PLR6301
        self,
        query_embedding: np.ndarray,
        documents: Sequence[Document],
        chat_turns: Sequence[ChatTurn] = (),  # noqa: ARG002
    ) -> RetrievalResult:
        """Pick the document with the highest score; the first one wins ties.

        Returns:
            RetrievalResult holding exactly one match.

        Raises:
            NotFoundError: If there are no comparable documents.
        """
        best: ScoredMatch | None = None

        for document in documents:
            score = _score(query_embedding, document.embedding)
            if score is None:
                continue
            if best is None or score > best.score:
                best = ScoredMatch(
                    kind="document",
                    item_id=document.id,
                    text=document.full_text,
                    score=score,
                    filename=document.filename,
                )

        if best is None:
            msg = "No documents have been uploaded yet"
            raise NotFoundError(msg)

        logger.info("Best match %s with similarity %.4f", best.item_id, best.score)
        return RetrievalResult(context=best.text, matches=[best])


def rank_documents(
    query_embedding: np.ndarray,
    documents: Sequence[Document],
    limit: int | None = None,
) -> list[ScoredMatch]:
    """Score every document and return the closest first.

    Returns:
        Up to ``limit`` matches sorted by descending score; equal scores keep
        insertion order.
    """
    if limit is None:
        limit = config.SEARCH_LIMIT

    scored = []
    for document in documents:
        score = _score(query_embedding, document.embedding)
        if score is None:
            continue
        scored.append(
            ScoredMatch(
                kind="document",
                item_id=document.id,
                text=document.full_text,
                score=score,
                filename=document.filename,
            )
        )

    scored.sort(key=lambda match: match.score, reverse=True)
    return scored[:limit]


def get_retriever(
    policy: RetrievalPolicy | str | None = None,
) -> ThresholdUnionRetriever | BestMatchRetriever:
    """Return a retriever for the configured policy.

    Raises:
        ValueError: If an unsupported policy is requested.
    """
    value = (policy if policy is not None else config.RETRIEVAL_POLICY).lower()

    if value == "threshold":
        return ThresholdUnionRetriever()
    if value == "best":
        return BestMatchRetriever()

    msg = f"Unsupported retrieval policy: {policy}"
    raise ValueError(msg)
