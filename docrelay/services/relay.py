from __future__ import annotations

import logging

from openai import APIConnectionError, APIStatusError, APITimeoutError

from docrelay.clients import get_oai_client
from docrelay.config import Settings
from docrelay.errors import ClientInputError, ConfigurationError, RelayError, UnexpectedError, UpstreamError
from docrelay.services.backends import AnswerResult, get_backend

log = logging.getLogger(__name__)

EMPTY_ANSWER_HINT = (
    "No answer produced. Check that FILE_IDS / VECTOR_STORE_IDS point at the right documents "
    "(redeploy after changing them), or rephrase the question."
)


def check_config(settings: Settings) -> None:
    if not (settings.OPENAI_API_KEY or "").strip():
        raise ConfigurationError("Missing OPENAI_API_KEY")
    if not settings.file_ids and not settings.vector_store_ids:
        raise ConfigurationError(
            "No files configured",
            detail="Set FILE_IDS and/or VECTOR_STORE_IDS (comma-separated) in the service environment.",
        )


def handle_question(question: object, settings: Settings) -> AnswerResult:
    q = str(question or "").strip()
    if not q:
        raise ClientInputError("No question provided")
    check_config(settings)

    backend = get_backend(settings, get_oai_client(settings))
    log.info("question backend=%s chars=%d", backend.name, len(q))

    try:
        result = backend.answer(q)
    except RelayError:
        raise
    except APIStatusError as e:
        log.warning("upstream_error backend=%s status=%s", backend.name, e.status_code)
        raise UpstreamError(status_code=e.status_code, detail=e.response.text) from e
    except APITimeoutError as e:
        raise UpstreamError(status_code=504, detail="LLM timeout") from e
    except APIConnectionError as e:
        raise UpstreamError(status_code=502, detail=f"Could not reach OpenAI: {e}") from e
    except Exception as e:
        log.exception("unexpected_error backend=%s", backend.name)
        raise UnexpectedError(detail=str(e)) from e

    if not result.answer:
        log.info("empty_answer backend=%s", backend.name)
        return AnswerResult(answer="", sources=[], hint=EMPTY_ANSWER_HINT)
    return result
