from __future__ import annotations

import json
import random
import re
import time
from dataclasses import dataclass
from typing import Any

from openai import OpenAI

from ..observability.logging import get_logger
from ..settings import settings

log = get_logger("ai")


class AiError(RuntimeError):
    pass


class AiNotConfigured(AiError):
    pass


class AiUpstreamError(AiError):
    pass


class AiParseError(AiError):
    pass


_CIRCUIT_OPEN_UNTIL: float = 0.0
_CONSECUTIVE_FAILURES: int = 0
_LAST_FAILURE_AT: float = 0.0


def _status_code(exc: Exception) -> int | None:
    for attr in ("status_code", "status", "http_status"):
        v = getattr(exc, attr, None)
        if isinstance(v, int):
            return v
    resp = getattr(exc, "response", None)
    v = getattr(resp, "status_code", None)
    return v if isinstance(v, int) else None


def _is_retryable(exc: Exception) -> bool:
    code = _status_code(exc)
    if code in (408, 409, 425, 429, 500, 502, 503, 504):
        return True
    msg = (str(exc) or "").lower()
    return any(k in msg for k in ("timeout", "timed out", "temporarily unavailable", "connection", "rate limit"))


def _circuit_check() -> None:
    now = time.time()
    if _CIRCUIT_OPEN_UNTIL and now < _CIRCUIT_OPEN_UNTIL:
        raise AiUpstreamError("ai_temporarily_unavailable")


def _circuit_record_success() -> None:
    global _CONSECUTIVE_FAILURES, _LAST_FAILURE_AT, _CIRCUIT_OPEN_UNTIL
    _CONSECUTIVE_FAILURES = 0
    _LAST_FAILURE_AT = 0.0
    _CIRCUIT_OPEN_UNTIL = 0.0


def _circuit_record_failure(exc: Exception) -> None:
    """
    Repeated retryable upstream failures open the circuit for a short while.
    """
    global _CONSECUTIVE_FAILURES, _LAST_FAILURE_AT, _CIRCUIT_OPEN_UNTIL
    if not _is_retryable(exc):
        return
    now = time.time()
    # Spaced-out failures decay the counter.
    if _LAST_FAILURE_AT and (now - _LAST_FAILURE_AT) > 60:
        _CONSECUTIVE_FAILURES = 0
    _LAST_FAILURE_AT = now
    _CONSECUTIVE_FAILURES += 1
    if _CONSECUTIVE_FAILURES >= 5:
        _CIRCUIT_OPEN_UNTIL = now + 15


def _is_model_access_error(e: Exception, *, model: str) -> bool:
    msg = (str(e) or "").lower()
    if not msg:
        return False
    if "model_not_found" in msg or "not have access to model" in msg:
        return True
    return bool(model) and model.lower() in msg and "access" in msg and "model" in msg


def _models_to_try(purpose: str) -> list[str]:
    out: list[str] = []
    primary = str(settings.openai_model_for(purpose) or "").strip()
    if primary:
        out.append(primary)
    base = str(settings.openai_model or "").strip()
    if base and base not in out:
        out.append(base)
    if "gpt-4o-mini" not in out:
        out.append("gpt-4o-mini")
    return out


@dataclass(frozen=True)
class AiMeta:
    purpose: str
    model: str
    attempts: int
    used_response_format: str | None


def _client(*, timeout_s: int = 60) -> Any:
    if not settings.openai_api_key:
        raise AiNotConfigured("OPENAI_API_KEY not configured")
    headers: dict[str, str] = {}
    if settings.openai_project_id and str(settings.openai_project_id).strip():
        headers["OpenAI-Project"] = str(settings.openai_project_id).strip()
    if settings.openai_organization_id and str(settings.openai_organization_id).strip():
        headers["OpenAI-Organization"] = str(settings.openai_organization_id).strip()
    # We do our own retries; keep SDK retries off.
    return OpenAI(
        api_key=settings.openai_api_key,
        max_retries=0,
        timeout=max(5, int(timeout_s or 60)),
        default_headers=headers or None,
    )


def _clip(s: str, max_len: int) -> str:
    s = str(s or "")
    return s if len(s) <= max_len else s[:max_len]


def _normalize_messages(messages: list[dict[str, str]], max_chars: int) -> list[dict[str, str]]:
    # Guard against accidentally sending huge prompts.
    return [
        {"role": str(m.get("role") or "user"), "content": _clip(str(m.get("content") or ""), max_chars)}
        for m in messages or []
    ]


def _extract_first_json_object(text: str) -> str | None:
    if not text:
        return None
    m = re.search(r"\{[\s\S]*\}", text)
    return m.group(0) if m else None


def _should_retry_with_legacy_max_tokens(e: Exception) -> bool:
    msg = (str(e) or "").lower()
    return "unsupported parameter" in msg and "max_completion_tokens" in msg


def _complete(client: Any, kwargs: dict[str, Any], max_tokens: int) -> str:
    try:
        completion = client.chat.completions.create(**(kwargs | {"max_completion_tokens": max_tokens}))
    except Exception as e:
        if not _should_retry_with_legacy_max_tokens(e):
            raise
        completion = client.chat.completions.create(**(kwargs | {"max_tokens": max_tokens}))
    return (completion.choices[0].message.content or "").strip()


def _backoff(attempt: int) -> None:
    time.sleep(min(2.5, 0.3 * (2 ** (attempt - 1)) + random.random() * 0.15))


def _call(
    *,
    kind: str,
    purpose: str,
    messages: list[dict[str, str]],
    max_tokens: int,
    temperature: float,
    retries: int,
    timeout_s: int,
    max_prompt_chars: int,
) -> tuple[Any, AiMeta]:
    if not settings.openai_api_key:
        raise AiNotConfigured("OPENAI_API_KEY not configured")
    _circuit_check()
    max_tokens = int(min(int(max_tokens), int(settings.openai_max_output_tokens_cap or max_tokens)))
    client = _client(timeout_s=timeout_s)
    messages = _normalize_messages(messages, max_prompt_chars)

    last_err: Exception | None = None
    for model in _models_to_try(purpose):
        for attempt in range(1, max(1, int(retries)) + 1):
            kwargs: dict[str, Any] = {"model": model, "messages": messages, "temperature": temperature}
            if kind == "json":
                kwargs["response_format"] = {"type": "json_object"}
            content = ""
            try:
                content = _complete(client, kwargs, max_tokens)
                if not content:
                    raise AiParseError("empty_model_response")
                out: Any = content
                if kind == "json":
                    raw_json = _extract_first_json_object(content) or content
                    try:
                        out = json.loads(raw_json)
                    except ValueError as e:
                        raise AiParseError(f"json_decode_error: {e}") from e
                    if not isinstance(out, dict):
                        raise AiParseError("json_not_an_object")
                _circuit_record_success()
                log.info(
                    "ai_call_ok",
                    purpose=purpose,
                    model=model,
                    attempts=attempt,
                    response_format=f"chat_{kind}",
                )
                return out, AiMeta(purpose=purpose, model=model, attempts=attempt, used_response_format=f"chat_{kind}")
            except Exception as e:
                last_err = e
                _circuit_record_failure(e)
                if _is_model_access_error(e, model=model):
                    log.warning("ai_model_unavailable", purpose=purpose, model=model, error=str(e))
                    # Try next fallback model immediately (no retries).
                    break
                log.warning(
                    f"ai_{kind}_failed",
                    purpose=purpose,
                    model=model,
                    attempt=attempt,
                    error=str(e),
                    content_preview=content[:240] or None,
                    status_code=_status_code(e),
                )
                if attempt < retries:
                    _backoff(attempt)

    if last_err and _is_model_access_error(last_err, model=str(settings.openai_model_for(purpose) or "")):
        raise AiNotConfigured(
            f"Configured OpenAI model is not available for this project (purpose '{purpose}'). "
            f"Check OPENAI_MODEL / OPENAI_MODEL_* overrides."
        )
    raise AiUpstreamError(str(last_err) if last_err else f"ai_{kind}_failed")


def call_text(
    *,
    purpose: str,
    messages: list[dict[str, str]],
    max_tokens: int = 1200,
    temperature: float = 0.4,
    retries: int = 2,
    timeout_s: int = 60,
    max_prompt_chars: int = 220_000,
) -> tuple[str, AiMeta]:
    return _call(
        kind="text",
        purpose=purpose,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        retries=retries,
        timeout_s=timeout_s,
        max_prompt_chars=max_prompt_chars,
    )


def call_json_object(
    *,
    purpose: str,
    messages: list[dict[str, str]],
    max_tokens: int = 3000,
    temperature: float = 0.2,
    retries: int = 2,
    timeout_s: int = 90,
    max_prompt_chars: int = 220_000,
) -> tuple[dict[str, Any], AiMeta]:
    """Call OpenAI in JSON-object mode and return the decoded mapping.

    The shape is deliberately open: summaries are keyed by whatever sections the
    prompt asks for and are rendered generically downstream.
    """
    return _call(
        kind="json",
        purpose=purpose,
        messages=messages,
        max_tokens=max_tokens,
        temperature=temperature,
        retries=retries,
        timeout_s=timeout_s,
        max_prompt_chars=max_prompt_chars,
    )
