"""
OpenAI-backed contract analysis.

Used for the inline-description strategy (raw notice text in, structured
summary out) and, when CHAT_PROVIDER=openai, for assistant turns.
"""

from __future__ import annotations

import json
from typing import Any

from ..errors import AssistantError, GenerationError
from ..modules.chat.schemas import ChatMessage
from .client import AiError, call_json_object, call_text

SUMMARY_SECTIONS: tuple[str, ...] = (
    "read_and_interpret_the_solicitations",
    "extract_all_key_contract_data",
    "identify_and_understand_the_product_service",
    "source_the_product_or_service",
    "find_suitable_and_compliant_suppliers",
    "price_comparison_and_cost_optimization",
    "final_recommendations_and_next_steps",
)

_SUMMARY_SYSTEM = (
    "You are a federal procurement analyst. Analyze the solicitation text you are given "
    "and return ONE JSON object with exactly these top-level keys: "
    + ", ".join(SUMMARY_SECTIONS)
    + ". Each value may be a string, a list, or a nested object. Use plain facts from the "
    "text; write null where the text is silent. No markdown."
)

_CHAT_SYSTEM = (
    "You are a contract assistant helping a small business decide whether and how to bid on "
    "a government opportunity. Ground every answer in the contract summary provided. If the "
    "summary does not contain the answer, say so briefly."
)


def generate_summary_from_text(text: str) -> dict[str, Any]:
    body = str(text or "").strip()
    if not body:
        raise GenerationError("description text is empty")
    try:
        data, _meta = call_json_object(
            purpose="summary_from_text",
            messages=[
                {"role": "system", "content": _SUMMARY_SYSTEM},
                {"role": "user", "content": f"Solicitation text:\n\n{body}"},
            ],
        )
    except AiError as e:
        raise GenerationError(str(e) or "summary generation failed") from e
    return data


def _chat_messages(summary: dict[str, Any], transcript: list[ChatMessage]) -> list[dict[str, str]]:
    out: list[dict[str, str]] = [
        {"role": "system", "content": _CHAT_SYSTEM},
        {
            "role": "system",
            "content": "Contract summary (JSON):\n" + json.dumps(summary, ensure_ascii=False, default=str),
        },
    ]
    for m in transcript:
        out.append({"role": "assistant" if m.role == "agent" else "user", "content": m.content})
    return out


def answer_chat_turn(summary: dict[str, Any], transcript: list[ChatMessage], user_text: str) -> str:
    # `transcript` already ends with the user's message.
    msgs = _chat_messages(summary, transcript)
    if not transcript or transcript[-1].role != "user":
        msgs.append({"role": "user", "content": user_text})
    try:
        out, _meta = call_text(purpose="contract_chat", messages=msgs, max_tokens=900)
    except AiError as e:
        raise AssistantError(str(e) or "assistant unavailable") from e
    return out
