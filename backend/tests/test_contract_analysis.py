from __future__ import annotations

import pytest

from govbid.ai import contract_analysis
from govbid.ai.client import AiMeta, AiUpstreamError
from govbid.errors import AssistantError, GenerationError
from govbid.modules.chat.schemas import ChatMessage

META = AiMeta(purpose="x", model="gpt-4o-mini", attempts=1, used_response_format="chat_text")


def test_summary_from_text_returns_model_mapping(monkeypatch):
    seen = {}

    def fake_call_json_object(*, purpose, messages, **_kw):
        seen["purpose"] = purpose
        seen["messages"] = messages
        return {"read_and_interpret_the_solicitations": "Boots"}, META

    monkeypatch.setattr(contract_analysis, "call_json_object", fake_call_json_object)

    out = contract_analysis.generate_summary_from_text("Boots needed.")

    assert out == {"read_and_interpret_the_solicitations": "Boots"}
    assert seen["purpose"] == "summary_from_text"
    assert "Boots needed." in seen["messages"][-1]["content"]
    for key in contract_analysis.SUMMARY_SECTIONS:
        assert key in seen["messages"][0]["content"]


def test_summary_failures_are_generation_errors(monkeypatch):
    def boom(**_kw):
        raise AiUpstreamError("503")

    monkeypatch.setattr(contract_analysis, "call_json_object", boom)
    with pytest.raises(GenerationError):
        contract_analysis.generate_summary_from_text("Boots needed.")
    with pytest.raises(GenerationError):
        contract_analysis.generate_summary_from_text("   ")


def test_chat_turn_maps_roles_and_grounds_on_summary(monkeypatch):
    seen = {}

    def fake_call_text(*, purpose, messages, **_kw):
        seen["purpose"] = purpose
        seen["messages"] = messages
        return "Due March 1.", META

    monkeypatch.setattr(contract_analysis, "call_text", fake_call_text)
    transcript = [ChatMessage(role="agent", content="Hi"), ChatMessage(role="user", content="When?")]

    out = contract_analysis.answer_chat_turn({"id": "abc", "title": "Boots"}, transcript, "When?")

    assert out == "Due March 1."
    assert seen["purpose"] == "contract_chat"
    assert '"title": "Boots"' in seen["messages"][1]["content"]
    assert [(m["role"], m["content"]) for m in seen["messages"][2:]] == [("assistant", "Hi"), ("user", "When?")]


def test_chat_failures_are_assistant_errors(monkeypatch):
    def boom(**_kw):
        raise AiUpstreamError("503")

    monkeypatch.setattr(contract_analysis, "call_text", boom)
    with pytest.raises(AssistantError):
        contract_analysis.answer_chat_turn({"id": "abc"}, [ChatMessage(role="user", content="hi")], "hi")
