"""Request and response models for the HTTP API."""

from pydantic import BaseModel, ConfigDict, Field


class ErrorResponseModel(BaseModel):
    """Error response model."""

    error: str = Field(..., description="Error message")
    details: str | None = Field(None, description="Additional error details")


class SearchRequest(BaseModel):
    """Body of POST /search."""

    query: str | None = None


class SearchResult(BaseModel):
    """A stored document scored against the query."""

    id: str
    filename: str | None = None
    score: float
    full_text: str


class SearchResponse(BaseModel):
    """Body returned by POST /search."""

    results: list[SearchResult]


class ChatRequest(BaseModel):
    """Body of POST /chat."""

    message: str | None = None


class ChatMessage(BaseModel):
    """One entry of the session chat history."""

    role: str
    content: str


class ChatResponse(BaseModel):
    """Body returned by POST /chat."""

    model_config = ConfigDict(populate_by_name=True)

    response: str
    chat_history: list[ChatMessage] = Field(
        default_factory=list, alias="chatHistory"
    )


class ClearHistoryResponse(BaseModel):
    """Body returned by DELETE /chat/history."""

    cleared: bool


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    documents: int
    chat_turns: int
