# docrelay/config.py
from typing import Literal, Optional, Tuple

from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_INSTRUCTIONS = (
    "You are a course tutor. Use file_search to answer using the uploaded course documents. "
    "If the needed information is not in those files, say you can't find it and suggest "
    "uploading a short summary document."
)


def _split_ids(raw: str) -> Tuple[str, ...]:
    return tuple(part.strip() for part in raw.split(",") if part.strip())


class Settings(BaseSettings):
    # OpenAI
    OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[AnyHttpUrl] = None
    CHAT_MODEL: str = "gpt-4o-mini"

    # Document sources (comma-separated)
    FILE_IDS: str = ""
    VECTOR_STORE_IDS: str = ""

    # Relay behaviour
    RELAY_BACKEND: Literal["responses", "assistants"] = "responses"
    INSTRUCTIONS: str = DEFAULT_INSTRUCTIONS
    MAX_OUTPUT_TOKENS: int = 300
    TEMPERATURE: float = 0.2

    # Timeouts
    LLM_TIMEOUT: float = 30.0
    POLL_INTERVAL: float = 1.2
    RUN_TIMEOUT: float = 60.0

    # App toggles
    CORS_ALLOW_ORIGINS: str = "*"
    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env", case_sensitive=True, frozen=True, extra="ignore"
    )

    @property
    def file_ids(self) -> Tuple[str, ...]:
        return _split_ids(self.FILE_IDS)

    @property
    def vector_store_ids(self) -> Tuple[str, ...]:
        return _split_ids(self.VECTOR_STORE_IDS)

    @property
    def cors_origins(self) -> list[str]:
        return list(_split_ids(self.CORS_ALLOW_ORIGINS))

    def missing(self) -> list[str]:
        """Names of the settings a question cannot be answered without."""
        out: list[str] = []
        if not (self.OPENAI_API_KEY or "").strip():
            out.append("OPENAI_API_KEY")
        if not self.file_ids and not self.vector_store_ids:
            out.append("FILE_IDS|VECTOR_STORE_IDS")
        return out


def get_settings() -> Settings:
    # Re-read on every call so env changes apply without a restart
    return Settings()
