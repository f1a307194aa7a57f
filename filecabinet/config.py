"""Configuration management for the FileCabinet service."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

env_path = Path(__file__).parent.parent / ".env"

if env_path.exists():
    load_dotenv(env_path)


class Config:
    """Application configuration loaded from environment variables."""

    # OpenAI Configuration
    @classmethod
    def get_openai_api_key(cls) -> str:
        """Get OpenAI API key from environment variables.

        Returns:
            OpenAI API key from environment or empty string if not set.
        """
        return os.getenv("OPENAI_API_KEY", "")

    @classmethod
    def get_session_secret(cls) -> str:
        """Get the secret used to sign session cookies.

        Returns:
            Session secret from environment or empty string if not set.
        """
        return os.getenv("SESSION_SECRET", "")

    OPENAI_BASE_URL: str | None = os.getenv("OPENAI_BASE_URL")
    OPENAI_TIMEOUT: float = float(os.getenv("OPENAI_TIMEOUT", "30"))
    OPENAI_MAX_RETRIES: int = int(os.getenv("OPENAI_MAX_RETRIES", "1"))

    # Logging Configuration
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    OPENAI_LOG_LEVEL: str = os.getenv("OPENAI_LOG_LEVEL", "WARNING").upper()

    # Application Settings
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Embedding Configuration
    EMBEDDING_MODEL: str = os.getenv("EMBEDDING_MODEL", "text-embedding-3-small")
    EMBEDDING_MAX_INPUT_CHARS: int = int(
        os.getenv("EMBEDDING_MAX_INPUT_CHARS", "24000")
    )

    # Chat Model Configuration
    CHAT_MODEL: str = os.getenv("CHAT_MODEL", "gpt-4o-mini")
    CHAT_MAX_TOKENS: int = int(os.getenv("CHAT_MAX_TOKENS", "500"))
    CHAT_TEMPERATURE: float = float(os.getenv("CHAT_TEMPERATURE", "0.7"))

    # Document Store Configuration
    DATABASE_PATH: Path = Path(os.getenv("DATABASE_PATH", "data/filecabinet.db"))
    DATABASE_TIMEOUT: float = float(os.getenv("DATABASE_TIMEOUT", "5"))

    # Retrieval Configuration
    RETRIEVAL_POLICY: str = os.getenv("RETRIEVAL_POLICY", "threshold").lower()
    DOCUMENT_SIMILARITY_THRESHOLD: float = float(
        os.getenv("DOCUMENT_SIMILARITY_THRESHOLD", "0.95")
    )
    CHAT_SIMILARITY_THRESHOLD: float = float(
        os.getenv("CHAT_SIMILARITY_THRESHOLD", "0.8")
    )
    SEARCH_LIMIT: int = int(os.getenv("SEARCH_LIMIT", "10"))

    # Upload and Session Limits
    MAX_UPLOAD_FILES: int = int(os.getenv("MAX_UPLOAD_FILES", "12"))
    HISTORY_MAX_TURNS: int = int(os.getenv("HISTORY_MAX_TURNS", "10"))
    HISTORY_MAX_SESSIONS: int = int(os.getenv("HISTORY_MAX_SESSIONS", "1000"))

    # Web UI Configuration
    API_BASE_URL: str = os.getenv("API_BASE_URL", "http://localhost:3000")

    # API Header Configuration
    API_USER_AGENT: str = os.getenv("API_USER_AGENT", "FileCabinet/1.0")
    API_TEST_HEADER_NAME: str | None = os.getenv("API_TEST_HEADER_NAME")
    API_TEST_HEADER_VALUE: str | None = os.getenv("API_TEST_HEADER_VALUE")

    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values.

        Raises:
            ValueError: If OPENAI_API_KEY is not set, or SESSION_SECRET is not
                set in production.
        """
        if not cls.get_openai_api_key():
            msg = (
                "OPENAI_API_KEY is required. Please set it in .env file or environment."
            )
            raise ValueError(msg)
        if cls.is_production() and not cls.get_session_secret():
            msg = "SESSION_SECRET is required in production."
            raise ValueError(msg)

    @classmethod
    def is_development(cls) -> bool:
        """Check if running in development environment.

        Returns:
            True if environment is development.
        """
        return cls.ENVIRONMENT.lower() == "development"

    @classmethod
    def is_production(cls) -> bool:
        """Check if running in production environment.

        Returns:
            True if environment is production.
        """
        return cls.ENVIRONMENT.lower() == "production"

    @classmethod
    def setup_logging(cls) -> None:
        """Setup basic logging configuration.

        Configure logging once at application startup with:
        - Console output for all levels
        - Simple, readable format
        - Configurable level via environment variable
        """
        logging.basicConfig(
            level=getattr(logging, cls.LOG_LEVEL, logging.INFO),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )

        # Configure third-party library log levels via environment variables
        openai_level = getattr(logging, cls.OPENAI_LOG_LEVEL, logging.WARNING)
        logging.getLogger("openai").setLevel(openai_level)
        logging.getLogger("httpx").setLevel(openai_level)
        # Requests are already logged by the app middleware
        logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    @classmethod
    def get_logger(cls, name: str) -> logging.Logger:
        """Get a logger with the specified name.

        Args:
            name: Logger name (typically __name__)

        Returns:
            Logger instance
        """
        return logging.getLogger(name)

    @classmethod
    def get_api_headers(cls) -> dict[str, str]:
        """Build default headers for outbound API calls.

        Returns:
            Mapping of header names to values used on outbound HTTP requests.
        """
        headers: dict[str, str] = {}

        if cls.API_USER_AGENT:
            headers["User-Agent"] = cls.API_USER_AGENT

        if cls.API_TEST_HEADER_NAME and cls.API_TEST_HEADER_VALUE:
            headers[cls.API_TEST_HEADER_NAME] = cls.API_TEST_HEADER_VALUE

        return headers


config = Config()
