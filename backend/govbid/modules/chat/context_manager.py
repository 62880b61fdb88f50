from __future__ import annotations

import threading
from typing import Callable

from ...errors import AssistantError, ChatTurnInFlightError
from ...observability.logging import get_logger
from ..opportunities.schemas import SummaryDocument
from .schemas import APOLOGY, GREETING, ChatMessage

log = get_logger("chat")

SendChatTurn = Callable[[SummaryDocument, list[ChatMessage], str], str]


class ChatTranscript:
    """
    Append-only conversation about one opportunity, seeded by its summary.

    Message 0 is always the agent greeting. `turn_lock` is held for the whole
    duration of a turn, so `in_flight` is observable state rather than a flag
    someone has to remember to reset.
    """

    def __init__(self, summary: SummaryDocument):
        self.summary = summary
        self._messages: list[ChatMessage] = [ChatMessage(role="agent", content=GREETING)]
        self.turn_lock = threading.Lock()

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return tuple(self._messages)

    @property
    def in_flight(self) -> bool:
        return self.turn_lock.locked()

    def __len__(self) -> int:
        return len(self._messages)

    def _append(self, message: ChatMessage) -> None:
        self._messages.append(message)

    def to_dict(self) -> dict[str, object]:
        return {
            "messages": [m.model_dump() for m in self._messages],
            "inFlight": self.in_flight,
        }


class ChatContextManager:
    def __init__(self, *, send_chat_turn: SendChatTurn, turn_wait_s: float | None = 120.0):
        self._send_chat_turn = send_chat_turn
        # None waits forever, <= 0 rejects immediately when a turn is in flight.
        self._turn_wait_s = turn_wait_s

    def start(self, summary: SummaryDocument) -> ChatTranscript:
        return ChatTranscript(summary)

    def _acquire_turn(self, transcript: ChatTranscript) -> bool:
        wait = self._turn_wait_s
        if wait is None:
            return transcript.turn_lock.acquire()
        if wait <= 0:
            return transcript.turn_lock.acquire(blocking=False)
        return transcript.turn_lock.acquire(timeout=float(wait))

    def send(
        self,
        transcript: ChatTranscript,
        user_text: str,
        *,
        is_current: Callable[[], bool] | None = None,
    ) -> ChatTranscript:
        """
        Run one user turn: append the user message, ask the assistant with the
        full transcript and the seeding summary, append its reply.

        Assistant failures become the apology turn. When `is_current` reports
        the owning view has gone away by the time the reply arrives, the reply
        is dropped instead of appended.
        """
        text = str(user_text or "").strip()
        if not text:
            return transcript

        if not self._acquire_turn(transcript):
            raise ChatTurnInFlightError(str(transcript.summary.get("id") or "") or None)
        try:
            transcript._append(ChatMessage(role="user", content=text))
            history = list(transcript.messages)

            try:
                reply = str(self._send_chat_turn(transcript.summary, history, text) or "").strip()
            except AssistantError as e:
                log.warning(
                    "chat_turn_failed",
                    opportunity_id=transcript.summary.get("id"),
                    turn=len(history),
                    error=str(e),
                )
                reply = ""
            except Exception:
                # A broken collaborator still owes the analyst a reply.
                log.exception(
                    "chat_turn_crashed",
                    opportunity_id=transcript.summary.get("id"),
                    turn=len(history),
                )
                reply = ""
            content = reply or APOLOGY

            if is_current is not None and not is_current():
                log.info("chat_reply_dropped_stale", opportunity_id=transcript.summary.get("id"))
                return transcript

            transcript._append(ChatMessage(role="agent", content=content))
            return transcript
        finally:
            transcript.turn_lock.release()
