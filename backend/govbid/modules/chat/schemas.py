from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

ChatRole = Literal["agent", "user"]

GREETING = "How may I help you? What questions do you have about this contract?"
APOLOGY = "Sorry, I encountered an error. Please try again."


class ChatMessage(BaseModel):
    role: ChatRole
    content: str


class ChatTurnRequest(BaseModel):
    message: str = Field(min_length=1, max_length=8000)
