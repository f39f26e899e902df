# docrelay/metrics.py
from time import perf_counter
from typing import Optional
from prometheus_client import Counter, Histogram

LLM_REQUESTS = Counter(
    "llm_requests_total",
    "Total upstream LLM API calls",
    labelnames=("provider", "model", "operation", "status"),  # status in {"success","error"}
)
LLM_TOKENS = Counter(
    "llm_tokens_total",
    "Total LLM tokens",
    labelnames=("provider", "model", "role"),    # role in {"prompt","completion"}
)
LLM_ERRORS = Counter(
    "llm_errors_total",
    "Total upstream LLM API call errors",
    labelnames=("provider", "model", "operation", "error_type"),
)
LLM_LATENCY = Histogram(
    "llm_request_seconds",
    "Upstream LLM API call latency in seconds",
    labelnames=("provider", "model", "operation"),
    buckets=(0.05, 0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
)
RUN_POLLS = Counter(
    "assistant_run_polls_total",
    "Run status checks issued while waiting for a run to finish",
    labelnames=("model",),
)
RUN_OUTCOMES = Counter(
    "assistant_run_outcomes_total",
    "Final observed run status",
    labelnames=("model", "status"),  # terminal status, or "timeout"
)


class LLMCallTimer:
    """Times one upstream call; exceptions escaping the block count as errors."""

    def __init__(self, provider: str, model: str, operation: str):
        self.provider = provider
        self.model = model
        self.operation = operation
        self._t0: Optional[float] = None
        self._recorded = False

    def __enter__(self):
        self._t0 = perf_counter()
        return self

    def record_success(self, prompt_tokens: int = 0, completion_tokens: int = 0):
        self._recorded = True
        LLM_REQUESTS.labels(self.provider, self.model, self.operation, "success").inc()
        LLM_TOKENS.labels(self.provider, self.model, "prompt").inc(prompt_tokens or 0)
        LLM_TOKENS.labels(self.provider, self.model, "completion").inc(completion_tokens or 0)

    def record_error(self, error_type: str = "exception"):
        self._recorded = True
        LLM_REQUESTS.labels(self.provider, self.model, self.operation, "error").inc()
        LLM_ERRORS.labels(self.provider, self.model, self.operation, error_type).inc()

    def __exit__(self, exc_type, exc, tb):
        if exc_type is not None and not self._recorded:
            self.record_error(exc_type.__name__)
        if self._t0 is not None:
            LLM_LATENCY.labels(self.provider, self.model, self.operation).observe(perf_counter() - self._t0)
        return False
