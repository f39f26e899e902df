
from functools import lru_cache
from typing import Optional

from openai import OpenAI

from docrelay.config import Settings


@lru_cache
def _build_client(api_key: str, base_url: Optional[str], timeout: float) -> OpenAI:
    # No network call on construction.
    # max_retries=0: a failed upstream call fails the request, only run status is polled
    return OpenAI(
        api_key=api_key,
        base_url=base_url,
        timeout=timeout,
        max_retries=0,
    )


def get_oai_client(settings: Settings) -> OpenAI:
    base_url = str(settings.OPENAI_BASE_URL) if settings.OPENAI_BASE_URL else None
    return _build_client(settings.OPENAI_API_KEY or "", base_url, settings.LLM_TIMEOUT)
