"""FileCabinet - chat over uploaded PDFs with similarity-based retrieval."""

from .conversation import ChatResponder, SessionHistory
from .document_processing import DocumentLoader
from .embeddings import EmbeddingService
from .errors import (
    FileCabinetError,
    NotFoundError,
    StorageError,
    UpstreamError,
    ValidationError,
)
from .models import (
    ChatReply,
    ChatTurn,
    Document,
    RetrievalResult,
    ScoredMatch,
)
from .pipeline import ChatPipeline
from .retrieval import (
    BestMatchRetriever,
    ThresholdUnionRetriever,
    get_retriever,
    rank_documents,
)
from .similarity import cosine_similarity
from .storage import DocumentStore

__version__ = "1.0.0"

__all__ = [
    "BestMatchRetriever",
    "ChatPipeline",
    "ChatReply",
    "ChatResponder",
    "ChatTurn",
    "Document",
    "DocumentLoader",
    "DocumentStore",
    "EmbeddingService",
    "FileCabinetError",
    "NotFoundError",
    "RetrievalResult",
    "ScoredMatch",
    "SessionHistory",
    "StorageError",
    "ThresholdUnionRetriever",
    "UpstreamError",
    "ValidationError",
    "__version__",
    "cosine_similarity",
    "get_retriever",
    "rank_documents",
]
