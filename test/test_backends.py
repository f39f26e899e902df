from types import SimpleNamespace

import pytest

from docrelay.errors import RunFailedError, RunTimeoutError
from docrelay.services.backends import AssistantsBackend, ResponsesBackend, get_backend

from conftest import Recorder, assistants_client, make_settings, text_message


def _responses_client(resp):
    return SimpleNamespace(responses=SimpleNamespace(create=Recorder(resp)))


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
def test_responses_payload_uses_vector_stores_in_file_search_tool():
    settings = make_settings(VECTOR_STORE_IDS="vs_1, vs_2")
    payload = ResponsesBackend(_responses_client(None), settings).build_payload("What is a VLAN?")

    assert payload["input"] == "What is a VLAN?"
    assert payload["tools"] == [{"type": "file_search", "vector_store_ids": ["vs_1", "vs_2"]}]
    assert payload["tool_choice"] == "auto"
    assert payload["model"] == "mock-chat"
    assert payload["max_output_tokens"] == 300
    assert payload["temperature"] == 0.2


def test_responses_payload_sends_file_ids_as_input_files():
    settings = make_settings(VECTOR_STORE_IDS="", FILE_IDS="file_a,file_b")
    payload = ResponsesBackend(_responses_client(None), settings).build_payload("q")

    assert "tools" not in payload
    assert payload["input"] == [
        {
            "role": "user",
            "content": [
                {"type": "input_text", "text": "q"},
                {"type": "input_file", "file_id": "file_a"},
                {"type": "input_file", "file_id": "file_b"},
            ],
        }
    ]


def test_responses_answer_extracts_text_and_sources(settings):
    resp = SimpleNamespace(
        output_text="",
        usage=SimpleNamespace(input_tokens=12, output_tokens=3),
        output=[
            SimpleNamespace(
                type="message",
                content=[
                    SimpleNamespace(
                        type="output_text",
                        text="A",
                        annotations=[SimpleNamespace(type="file_citation", file_id="file_1")],
                    ),
                    SimpleNamespace(type="output_text", text="B", annotations=[]),
                ],
            )
        ],
    )
    client = _responses_client(resp)

    result = ResponsesBackend(client, settings).answer("q")

    assert result.answer == "A\nB"
    assert result.sources == ["file_1"]
    assert len(client.responses.create.calls) == 1


# ---------------------------------------------------------------------------
# Assistants
# ---------------------------------------------------------------------------
def _assistants(client, **overrides):
    return AssistantsBackend(client, make_settings(**overrides), sleep=lambda _: None)


def test_assistants_happy_path_polls_until_completed():
    messages = [
        text_message("assistant", "Subnetting splits a network.", file_ids=("file_9",)),
        text_message("user", "What is subnetting?"),
    ]
    client = assistants_client(["queued", "in_progress", "completed"], messages=messages)

    result = _assistants(client).answer("What is subnetting?")

    assert result.answer == "Subnetting splits a network."
    assert result.sources == ["file_9"]
    assert len(client.beta.threads.runs.retrieve.calls) == 3
    assert client.beta.threads.messages.list.calls == [{"thread_id": "thread_1", "order": "desc", "limit": 10}]


def test_assistants_attach_vector_stores_on_run_not_assistant():
    client = assistants_client(["completed"], messages=[text_message("assistant", "ok")])

    _assistants(client, VECTOR_STORE_IDS="vs_1").answer("q")

    assistant_kwargs = client.beta.assistants.create.calls[0]
    assert "tool_resources" not in assistant_kwargs
    assert assistant_kwargs["tools"] == [{"type": "file_search"}]

    run_kwargs = client.beta.threads.runs.create.calls[0]
    assert run_kwargs["thread_id"] == "thread_1"
    assert run_kwargs["assistant_id"] == "asst_1"
    assert run_kwargs["extra_body"] == {"tool_resources": {"file_search": {"vector_store_ids": ["vs_1"]}}}


def test_assistants_attach_file_ids_to_first_message():
    client = assistants_client(["completed"], messages=[text_message("assistant", "ok")])

    _assistants(client, VECTOR_STORE_IDS="", FILE_IDS="file_a").answer("q")

    (message,) = client.beta.threads.create.calls[0]["messages"]
    assert message["role"] == "user"
    assert message["content"] == "q"
    assert message["attachments"] == [{"file_id": "file_a", "tools": [{"type": "file_search"}]}]
    assert "extra_body" not in client.beta.threads.runs.create.calls[0]


def test_assistants_failed_run_surfaces_last_error():
    client = assistants_client(["queued", "failed"], last_error="boom")

    with pytest.raises(RunFailedError) as exc:
        _assistants(client).answer("q")

    assert "boom" in str(exc.value)
    assert exc.value.detail == "boom"
    assert client.beta.threads.messages.list.calls == []


def test_assistants_failed_run_without_detail_uses_status():
    client = assistants_client(["expired"])

    with pytest.raises(RunFailedError) as exc:
        _assistants(client).answer("q")

    assert exc.value.detail == "expired"


def test_assistants_timeout_when_never_terminal():
    client = assistants_client(["in_progress"])

    with pytest.raises(RunTimeoutError) as exc:
        _assistants(client, POLL_INTERVAL=1.0, RUN_TIMEOUT=5.0).answer("q")

    assert "Timed out" in exc.value.error
    assert len(client.beta.threads.runs.retrieve.calls) == 6


def test_assistants_empty_when_no_assistant_reply():
    client = assistants_client(["completed"], messages=[text_message("user", "q")])

    result = _assistants(client).answer("q")

    assert result.answer == ""
    assert result.sources == []


def test_get_backend_selects_by_setting(settings):
    assert isinstance(get_backend(settings, object()), ResponsesBackend)
    assert isinstance(get_backend(make_settings(RELAY_BACKEND="assistants"), object()), AssistantsBackend)


def test_status_checks_are_bounded_by_run_timeout():
    client = assistants_client(["queued", "completed"], messages=[text_message("assistant", "ok")])

    _assistants(client, LLM_TIMEOUT=30.0, RUN_TIMEOUT=5.0).answer("q")

    timeouts = [call["timeout"] for call in client.beta.threads.runs.retrieve.calls]
    assert len(timeouts) == 2
    assert all(1.0 <= t <= 5.0 for t in timeouts)
