"""
Shared test setup:
- Provide dummy environment variables so Settings() loads a usable config.
- Shared stub builders for the OpenAI client; tests patch them in explicitly.
"""

import os
from types import SimpleNamespace

import httpx
import pytest

# Minimal, valid-looking values for the env the relay reads
DEFAULT_ENV = {
    "OPENAI_API_KEY": "test-key",
    "VECTOR_STORE_IDS": "vs_test",
    "RELAY_BACKEND": "responses",
    "CHAT_MODEL": "mock-chat",
    "LOG_LEVEL": "WARNING",
}

for k, v in DEFAULT_ENV.items():
    os.environ.setdefault(k, v)


def make_settings(**overrides):
    from docrelay.config import Settings

    values = {
        "OPENAI_API_KEY": "test-key",
        "FILE_IDS": "",
        "VECTOR_STORE_IDS": "vs_test",
        "CHAT_MODEL": "mock-chat",
        "POLL_INTERVAL": 1.2,
        "RUN_TIMEOUT": 45.0,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


def upstream_response(status: int, text: str) -> httpx.Response:
    request = httpx.Request("POST", "https://api.openai.com/v1/responses")
    return httpx.Response(status, request=request, text=text)


class Recorder:
    """Callable that records kwargs and returns queued results (or raises them)."""

    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        out = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(out, BaseException):
            raise out
        return out


def assistants_client(statuses, messages=None, last_error=None):
    """Stub exposing the client.beta.* surface the assistants workflow uses."""
    runs = [SimpleNamespace(id="run_1", status=s, last_error=None, usage=None) for s in statuses]
    if last_error is not None:
        runs[-1].last_error = SimpleNamespace(code="server_error", message=last_error)

    stub = SimpleNamespace(
        beta=SimpleNamespace(
            assistants=SimpleNamespace(create=Recorder(SimpleNamespace(id="asst_1"))),
            threads=SimpleNamespace(
                create=Recorder(SimpleNamespace(id="thread_1")),
                runs=SimpleNamespace(
                    create=Recorder(SimpleNamespace(id="run_1", status="queued")),
                    retrieve=Recorder(*runs),
                ),
                messages=SimpleNamespace(list=Recorder(SimpleNamespace(data=messages or []))),
            ),
        )
    )
    return stub


def text_message(role, *texts, file_ids=()):
    annotations = [
        SimpleNamespace(type="file_citation", file_citation=SimpleNamespace(file_id=f)) for f in file_ids
    ]
    content = [
        SimpleNamespace(type="text", text=SimpleNamespace(value=t, annotations=annotations)) for t in texts
    ]
    return SimpleNamespace(role=role, content=content)


@pytest.fixture
def settings():
    return make_settings()
