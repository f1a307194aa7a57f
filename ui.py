"""Web interface using Streamlit, talking to the FileCabinet HTTP API."""

from __future__ import annotations

from typing import Any

import httpx
import streamlit as st

from filecabinet.config import config

MAX_CONTEXT_PREVIEW_LENGTH = 200
REQUEST_TIMEOUT = 120.0

config.setup_logging()
logger = config.get_logger(__name__)


class SessionState:
    """Centralized session state management."""

    @staticmethod
    def initialize() -> None:
        """Initialize all session state variables."""
        defaults = {
            "api_base_url": config.API_BASE_URL,
            "http_client": None,
            "chat_history": [],
            "search_results": None,
        }

        for key, default_value in defaults.items():
            if key not in st.session_state:
                st.session_state[key] = default_value

    @staticmethod
    def client() -> httpx.Client:
        """Return the browser session's HTTP client.

        One client per browser session keeps the API session cookie, so the
        server sees every chat message from this tab as the same session.

        Returns:
            httpx.Client bound to the configured API base URL.
        """
        client = st.session_state.get("http_client")
        base_url = st.session_state.api_base_url.rstrip("/")
        if client is None or str(client.base_url).rstrip("/") != base_url:
            if client is not None:
                client.close()
            client = httpx.Client(
                base_url=base_url,
                timeout=REQUEST_TIMEOUT,
                headers=config.get_api_headers(),
            )
            st.session_state.http_client = client
        return client

    @staticmethod
    def reset_conversation() -> None:
        """Reset the chat shown in this browser session."""
        st.session_state.chat_history = []
        st.session_state.search_results = None


def error_message(response: httpx.Response) -> str:
    """Extract a readable error from an API response.

    Returns:
        str: The API's error text, or the HTTP status line.
    """
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict) and "error" in body:
        return str(body["error"])
    return f"HTTP {response.status_code}"


def check_health() -> dict[str, Any] | None:
    """Query the API health endpoint.

    Returns:
        The health payload, or None when the API is unreachable or unhealthy.
    """
    try:
        response = SessionState.client().get("/health")
    except httpx.HTTPError:
        logger.exception("Health check failed")
        return None
    if response.status_code != httpx.codes.OK:
        return None
    return response.json()


def upload_documents(uploaded_files: list[Any]) -> bool:
    """Send uploaded PDFs to the API.

    Returns:
        bool: True if the API indexed every file, False otherwise.
    """
    files = [
        ("pdf", (uploaded.name, uploaded.getvalue(), "application/pdf"))
        for uploaded in uploaded_files
    ]
    try:
        with st.spinner(f"Uploading {len(files)} file(s)..."):
            response = SessionState.client().post("/", files=files)
    except httpx.HTTPError as e:
        logger.exception("Document upload failed")
        st.error(f"Failed to reach the API: {e}")
        return False

    if response.status_code != httpx.codes.OK:
        st.error(response.text)
        return False

    st.success(response.text)
    return True


def render_sidebar() -> None:
    """Render the sidebar with API configuration and status."""
    with st.sidebar:
        st.header("Configuration")
        st.session_state.api_base_url = st.text_input(
            "API URL", value=st.session_state.api_base_url
        )

        st.divider()
        st.subheader("System Status")
        health = check_health()
        if health is None:
            st.write("**API:** Unreachable")
        else:
            st.write("**API:** Ready")
            st.write(f"**Documents:** {health['documents']}")
            st.write(f"**Stored chat turns:** {health['chat_turns']}")

        st.divider()
        st.subheader("Conversation")
        if st.button("Clear History", use_container_width=True):
            try:
                SessionState.client().delete("/chat/history")
            except httpx.HTTPError:
                logger.exception("Clearing history failed")
            SessionState.reset_conversation()
            st.success("Conversation cleared!")
            st.rerun()


def render_document_upload() -> None:
    """Render document upload section."""
    st.header("Document Upload")
    uploaded_files = st.file_uploader(
        "Upload PDF documents",
        type=["pdf"],
        accept_multiple_files=True,
        help=f"Up to {config.MAX_UPLOAD_FILES} files per upload",
    )
    if (
        uploaded_files
        and st.button("Upload and Index", use_container_width=True)
        and upload_documents(uploaded_files)
    ):
        st.rerun()


def render_search() -> None:
    """Render the document search section."""
    st.header("Search Documents")
    query = st.text_input("Search query:", placeholder="What are you looking for?")

    if st.button("Search", use_container_width=True) and query.strip():
        try:
            response = SessionState.client().post("/search", json={"query": query})
        except httpx.HTTPError as e:
            logger.exception("Search failed")
            st.error(f"Failed to reach the API: {e}")
            return
        if response.status_code != httpx.codes.OK:
            st.error(f"Search failed: {error_message(response)}")
            return
        st.session_state.search_results = response.json()["results"]

    results = st.session_state.search_results
    if results is None:
        return
    if not results:
        st.info("No documents stored yet.")
        return

    for i, result in enumerate(results):
        with st.expander(
            f"Result {i + 1} - Similarity: {result['score']:.4f} - "
            f"{result.get('filename') or result['id']}",
            expanded=False,
        ):
            text = result["full_text"]
            st.code(
                text[:MAX_CONTEXT_PREVIEW_LENGTH] + "..."
                if len(text) > MAX_CONTEXT_PREVIEW_LENGTH
                else text
            )


def render_chat_interface() -> None:
    """Render the chat interface and this session's history."""
    st.header("Chat With Your Documents")

    for message in st.session_state.chat_history:
        with st.chat_message(message["role"]):
            st.write(message["content"])

    prompt = st.chat_input("Ask anything about your uploaded documents...")
    if not prompt:
        return

    with st.spinner("Processing..."):
        try:
            response = SessionState.client().post("/chat", json={"message": prompt})
        except httpx.HTTPError as e:
            logger.exception("Chat request failed")
            st.error(f"Failed to reach the API: {e}")
            return

    if response.status_code != httpx.codes.OK:
        st.error(f"Failed to process message: {error_message(response)}")
        return

    st.session_state.chat_history = response.json()["chatHistory"]
    st.rerun()


def main() -> None:
    """Main entry point for the Streamlit web application."""
    st.set_page_config(page_title="FileCabinet", layout="wide")

    SessionState.initialize()

    st.title("FileCabinet - Chat With Your PDFs")
    st.markdown("---")

    render_sidebar()
    render_document_upload()
    render_search()
    render_chat_interface()


if __name__ == "__main__":
    main()
