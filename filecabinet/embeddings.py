"""OpenAI embeddings service."""

import numpy as np
import openai
from openai import OpenAI

from .config import config
from .errors import UpstreamError, ValidationError

logger = config.get_logger(__name__)


class EmbeddingService:
    """Handles OpenAI embeddings generation."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        timeout: float | None = None,
        max_retries: int | None = None,
    ) -> None:
        """Initialize the EmbeddingService with OpenAI API key and model.

        Args:
            api_key: OpenAI API key. If None,
                reads from OPENAI_API_KEY environment variable.
            model: Embedding model name. If None, uses config.EMBEDDING_MODEL.
            timeout: Per-request timeout in seconds. If None, uses
                config.OPENAI_TIMEOUT.
            max_retries: Retries on connection errors and retryable statuses.
                If None, uses config.OPENAI_MAX_RETRIES.
        """
        api_key = api_key or config.get_openai_api_key()
        default_headers = config.get_api_headers()
        self.client = OpenAI(
            api_key=api_key,
            base_url=config.OPENAI_BASE_URL,
            default_headers=default_headers or None,
            timeout=timeout if timeout is not None else config.OPENAI_TIMEOUT,
            max_retries=(
                max_retries if max_retries is not None else config.OPENAI_MAX_RETRIES
            ),
        )
        self.model = model or config.EMBEDDING_MODEL
        self.max_input_chars = config.EMBEDDING_MAX_INPUT_CHARS

    def get_embedding(self, text: str) -> np.ndarray:
        """Get embedding for a single text.

        Args:
            text: The input text to generate an embedding for.

        Returns:
            np.ndarray: The embedding vector for the input text.

        Raises:
            ValidationError: If the text is empty.
            UpstreamError: If the API call fails or returns no vector.
        """
        if not text or not text.strip():
            msg = "Cannot embed empty text"
            raise ValidationError(msg)

        if len(text) > self.max_input_chars:
            logger.info(
                "Truncating embedding input from %d to %d characters",
                len(text),
                self.max_input_chars,
            )
            text = text[: self.max_input_chars]

        try:
            response = self.client.embeddings.create(
                model=self.model,
                input=text,
            )
        except openai.APIError as e:
            logger.exception("Error generating embedding")
            msg = "Embedding API request failed"
            raise UpstreamError(msg, details=str(e)) from e

        return self._parse_embedding(response)

    @staticmethod
    def _parse_embedding(response: object) -> np.ndarray:
        """Extract the first vector from an embeddings response.

        Returns:
            np.ndarray: The embedding vector.

        Raises:
            UpstreamError: If the payload has no well-formed vector.
        """
        data = getattr(response, "data", None)
        if not isinstance(data, list) or not data:
            logger.error("Embedding response has no data array")
            msg = "Invalid data from embedding API"
            raise UpstreamError(msg)

        vector = getattr(data[0], "embedding", None)
        if not isinstance(vector, list) or not vector:
            logger.error("Embedding response item has no embedding vector")
            msg = "Invalid data from embedding API"
            raise UpstreamError(msg)

        try:
            return np.asarray(vector, dtype=np.float32)
        except (TypeError, ValueError) as e:
            msg = "Embedding vector is not numeric"
            raise UpstreamError(msg) from e
