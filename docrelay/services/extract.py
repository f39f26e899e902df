"""
Pull plain text and cited file IDs out of OpenAI response objects.

Works on both SDK models and plain dicts, so stubs in tests and raw JSON
payloads go through the same path.
"""
from __future__ import annotations

from typing import Any, Iterable, Iterator, List, Optional


def _get(obj: Any, key: str, default: Any = None) -> Any:
    if obj is None:
        return default
    if isinstance(obj, dict):
        return obj.get(key, default)
    return getattr(obj, key, default)


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def _dedupe(ids: Iterable[Optional[str]]) -> List[str]:
    seen: dict[str, None] = {}
    for i in ids:
        if isinstance(i, str) and i:
            seen.setdefault(i, None)
    return list(seen)


# ---------------------------------------------------------------------------
# Responses endpoint
# ---------------------------------------------------------------------------
def _response_parts(resp: Any) -> Iterator[Any]:
    for item in _as_list(_get(resp, "output")):
        if _get(item, "type") != "message":
            continue
        for part in _as_list(_get(item, "content")):
            yield part


def response_text(resp: Any) -> str:
    direct = _get(resp, "output_text")
    if isinstance(direct, str) and direct.strip():
        return direct.strip()

    texts: list[str] = []
    for part in _response_parts(resp):
        text = _get(part, "text")
        if _get(part, "type") in ("output_text", "text") and isinstance(text, str):
            texts.append(text)
    return "\n".join(texts).strip()


def response_sources(resp: Any) -> List[str]:
    return _dedupe(
        _get(a, "file_id")
        for part in _response_parts(resp)
        for a in _as_list(_get(part, "annotations"))
    )


# ---------------------------------------------------------------------------
# Assistants thread messages
# ---------------------------------------------------------------------------
def first_assistant_message(messages: Any) -> Optional[Any]:
    """First assistant-authored message of a page listed newest-first."""
    data = _get(messages, "data", messages)
    for msg in _as_list(data):
        if _get(msg, "role") == "assistant":
            return msg
    return None


def _text_parts(message: Any) -> Iterator[Any]:
    for part in _as_list(_get(message, "content")):
        if _get(part, "type") == "text":
            yield _get(part, "text")


def message_text(message: Any) -> str:
    texts: list[str] = []
    for text in _text_parts(message):
        value = _get(text, "value")
        if isinstance(value, str):
            texts.append(value)
    return "\n".join(texts).strip()


def message_sources(message: Any) -> List[str]:
    ids: list[Optional[str]] = []
    for text in _text_parts(message):
        for a in _as_list(_get(text, "annotations")):
            citation = _get(a, "file_citation")
            ids.append(_get(citation, "file_id") if citation is not None else _get(a, "file_id"))
    return _dedupe(ids)
