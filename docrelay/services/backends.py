from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, List, Optional, Protocol

from openai import OpenAI

from docrelay.config import Settings
from docrelay.errors import RunFailedError, RunTimeoutError
from docrelay.metrics import RUN_OUTCOMES, RUN_POLLS, LLMCallTimer
from docrelay.services import extract
from docrelay.services.polling import PollTimeout, poll_until

log = logging.getLogger(__name__)

PROVIDER = "openai"

RUN_DONE = frozenset({"completed"})
# "incomplete" is terminal on the API side too; waiting on it would only time out
RUN_FAILED = frozenset({"failed", "cancelled", "expired", "incomplete"})


@dataclass
class AnswerResult:
    answer: str
    sources: List[str] = field(default_factory=list)
    hint: Optional[str] = None


class CompletionBackend(Protocol):
    name: str

    def answer(self, question: str) -> AnswerResult: ...


def _usage(obj: Any) -> tuple[int, int]:
    usage = getattr(obj, "usage", None)
    if usage is None:
        return 0, 0
    # Responses reports input/output tokens, runs report prompt/completion tokens
    pt = getattr(usage, "input_tokens", None) or getattr(usage, "prompt_tokens", None) or 0
    ct = getattr(usage, "output_tokens", None) or getattr(usage, "completion_tokens", None) or 0
    return int(pt), int(ct)


class ResponsesBackend:
    """Single synchronous call to the Responses endpoint with file_search."""

    name = "responses"

    def __init__(self, client: OpenAI, settings: Settings):
        self.client = client
        self.settings = settings

    def build_payload(self, question: str) -> dict:
        s = self.settings
        payload: dict[str, Any] = {
            "model": s.CHAT_MODEL,
            "instructions": s.INSTRUCTIONS,
            "max_output_tokens": s.MAX_OUTPUT_TOKENS,
            "temperature": s.TEMPERATURE,
        }
        if s.vector_store_ids:
            payload["tools"] = [{"type": "file_search", "vector_store_ids": list(s.vector_store_ids)}]
            payload["tool_choice"] = "auto"

        if s.file_ids:
            # file_search only takes vector stores here, raw files go in as input parts
            content: list[dict] = [{"type": "input_text", "text": question}]
            content.extend({"type": "input_file", "file_id": fid} for fid in s.file_ids)
            payload["input"] = [{"role": "user", "content": content}]
        else:
            payload["input"] = question
        return payload

    def answer(self, question: str) -> AnswerResult:
        payload = self.build_payload(question)
        with LLMCallTimer(PROVIDER, self.settings.CHAT_MODEL, "responses.create") as t:
            resp = self.client.responses.create(**payload)
            t.record_success(*_usage(resp))

        return AnswerResult(
            answer=extract.response_text(resp),
            sources=extract.response_sources(resp),
        )


class AssistantsBackend:
    """Assistant + Thread + Run workflow, polling the run until it settles.

    Each call creates a fresh assistant and thread; neither is deleted.
    """

    name = "assistants"

    def __init__(
        self,
        client: OpenAI,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.client = client
        self.settings = settings
        self.sleep = sleep

    def _call(self, operation: str, fn: Callable[..., Any], **kwargs: Any) -> Any:
        with LLMCallTimer(PROVIDER, self.settings.CHAT_MODEL, operation) as t:
            out = fn(**kwargs)
            t.record_success(*_usage(out))
        return out

    def create_assistant(self) -> Any:
        # No tool_resources here: vector stores are attached on the run
        return self._call(
            "assistants.create",
            self.client.beta.assistants.create,
            model=self.settings.CHAT_MODEL,
            instructions=self.settings.INSTRUCTIONS,
            tools=[{"type": "file_search"}],
        )

    def create_thread(self, question: str) -> Any:
        message: dict[str, Any] = {"role": "user", "content": question}
        if self.settings.file_ids:
            message["attachments"] = [
                {"file_id": fid, "tools": [{"type": "file_search"}]} for fid in self.settings.file_ids
            ]
        return self._call("threads.create", self.client.beta.threads.create, messages=[message])

    def create_run(self, thread_id: str, assistant_id: str) -> Any:
        kwargs: dict[str, Any] = {"thread_id": thread_id, "assistant_id": assistant_id}
        if self.settings.vector_store_ids:
            kwargs["extra_body"] = {
                "tool_resources": {
                    "file_search": {"vector_store_ids": list(self.settings.vector_store_ids)}
                }
            }
        return self._call("runs.create", self.client.beta.threads.runs.create, **kwargs)

    def wait_for_run(self, thread_id: str, run_id: str) -> Any:
        model = self.settings.CHAT_MODEL
        deadline = time.monotonic() + self.settings.RUN_TIMEOUT

        def fetch() -> Any:
            # A status check may not outlive the run deadline by more than a second
            remaining = max(deadline - time.monotonic(), 1.0)
            return self._call(
                "runs.retrieve",
                self.client.beta.threads.runs.retrieve,
                thread_id=thread_id,
                run_id=run_id,
                timeout=min(self.settings.LLM_TIMEOUT, remaining),
            )

        def on_poll(run: Any) -> None:
            RUN_POLLS.labels(model).inc()
            log.debug("run_status run_id=%s status=%s", run_id, getattr(run, "status", None))

        try:
            run = poll_until(
                fetch,
                is_done=lambda r: getattr(r, "status", None) in RUN_DONE,
                is_failed=lambda r: getattr(r, "status", None) in RUN_FAILED,
                interval=self.settings.POLL_INTERVAL,
                timeout=self.settings.RUN_TIMEOUT,
                sleep=self.sleep,
                on_poll=on_poll,
            )
        except PollTimeout as e:
            RUN_OUTCOMES.labels(model, "timeout").inc()
            last_status = getattr(e.last, "status", None)
            log.warning("run_timeout run_id=%s checks=%s last_status=%s", run_id, e.attempts, last_status)
            raise RunTimeoutError(detail=f"Run {run_id} still {last_status} after {self.settings.RUN_TIMEOUT:g}s") from e

        status = run.status
        RUN_OUTCOMES.labels(model, status).inc()
        if status in RUN_FAILED:
            last_error = getattr(run, "last_error", None)
            message = getattr(last_error, "message", None) or status
            log.warning("run_failed run_id=%s status=%s", run_id, status)
            raise RunFailedError(detail=message)
        return run

    def answer(self, question: str) -> AnswerResult:
        assistant = self.create_assistant()
        thread = self.create_thread(question)
        run = self.create_run(thread.id, assistant.id)
        log.info("run_started thread_id=%s run_id=%s", thread.id, run.id)

        self.wait_for_run(thread.id, run.id)

        messages = self._call(
            "messages.list",
            self.client.beta.threads.messages.list,
            thread_id=thread.id,
            order="desc",
            limit=10,
        )
        reply = extract.first_assistant_message(messages)
        if reply is None:
            return AnswerResult(answer="")
        return AnswerResult(answer=extract.message_text(reply), sources=extract.message_sources(reply))


def get_backend(settings: Settings, client: OpenAI) -> CompletionBackend:
    if settings.RELAY_BACKEND == "assistants":
        return AssistantsBackend(client, settings)
    return ResponsesBackend(client, settings)
