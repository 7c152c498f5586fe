"""
Read-only analysis layer: asks a chat model for insights about an event.

Nothing here touches files or the store; callers decide what to do with the
text that comes back.
"""
import json
import socket
from dataclasses import dataclass

ANALYST_SYSTEM_PROMPT = (
    "You are an expert software architect. "
    "Analyze events and return concise, actionable insights."
)
TEMPERATURE = 0.2


class AnalystError(RuntimeError):
    """The completion service is not configured or returned nothing usable."""


@dataclass
class LLMResult:
    """Result of an LLM call with token usage."""
    text: str
    input_tokens: int
    output_tokens: int


def _is_retryable(exc):
    """Return True for transient errors that should be retried (rate-limit, timeout, server errors)."""
    from openai import APIConnectionError, APITimeoutError, InternalServerError, RateLimitError
    if isinstance(exc, (RateLimitError, APITimeoutError, APIConnectionError, InternalServerError)):
        return True
    return isinstance(exc, (socket.timeout, TimeoutError, ConnectionError))


def llm_retry():
    """Decorator factory for LLM calls: 5 attempts, exponential backoff 2-60s."""
    from tenacity import retry, retry_if_exception, stop_after_attempt, wait_exponential
    return retry(
        retry=retry_if_exception(_is_retryable),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=2, min=2, max=60),
        reraise=True,
    )


def _client(api_key: str):
    from openai import OpenAI
    return OpenAI(api_key=api_key)


def ask(system: str, user: str, settings, model: str | None = None) -> LLMResult:
    """One chat completion, retried on transient failures."""
    if not settings.openai_api_key:
        raise AnalystError("OPENAI_API_KEY is missing in MLearning env")
    client = _client(settings.openai_api_key)
    messages = ([{"role": "system", "content": system}] if system else []) + [{"role": "user", "content": user}]

    @llm_retry()
    def _invoke():
        return client.chat.completions.create(
            model=model or settings.model,
            temperature=TEMPERATURE,
            messages=messages,
        )

    resp = _invoke()
    if not resp.choices:
        raise AnalystError("Completion service returned no choices")
    text = (resp.choices[0].message.content or "").strip()
    usage = getattr(resp, "usage", None)
    return LLMResult(
        text=text,
        input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        output_tokens=getattr(usage, "completion_tokens", 0) or 0,
    )


def build_event_prompt(summary: str, context: dict | None) -> str:
    return (
        f"Event summary:\n{summary}\n\n"
        f"Context (JSON):\n{json.dumps(context or {}, indent=2, default=str)}\n"
    )


def analyze_event(summary: str, context: dict | None, settings) -> str:
    return ask(ANALYST_SYSTEM_PROMPT, build_event_prompt(summary, context), settings).text
