from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

ChatRole = Literal["system", "user", "assistant"]

SYSTEM_PROMPT = (
    "You are an expert assistant in every area of knowledge. For mathematical formulas you always "
    "use KaTeX notation with $$ delimiters for displayed formulas and $ for inline ones. You generate "
    "Markdown that is 100% compatible with the notes app: tasks, callouts, mermaid diagrams, markmap, etc."
)
CONTEXT_HEADER = "Note context:"
NEW_CONVERSATION_COMMAND = "/new"


@dataclass
class ChatTurn:
    role: ChatRole
    content: str

    def to_dict(self) -> dict:
        return {"role": self.role, "content": self.content}


@dataclass
class TurnPlan:
    """What the panel should do with a submitted message."""

    ignored: bool = False
    reset: bool = False
    command_only: bool = False
    messages: list[dict] = field(default_factory=list)

    @property
    def needs_request(self) -> bool:
        return not self.ignored and not self.command_only


def build_system_content(context_text: str | None) -> str:
    content = SYSTEM_PROMPT
    if context_text and context_text.strip():
        content += f"\n\n{CONTEXT_HEADER}\n{context_text}"
    return content


class Conversation:
    """In-memory transcript of one chat, system turn first."""

    def __init__(self) -> None:
        self._turns: list[ChatTurn] = []

    def __len__(self) -> int:
        return len(self._turns)

    def messages(self) -> list[dict]:
        return [turn.to_dict() for turn in self._turns]

    def clear(self) -> None:
        self._turns = []

    def should_reset(self, user_message: str) -> bool:
        return user_message.strip() == NEW_CONVERSATION_COMMAND or not self._turns

    def reset(self, context_text: str | None = None) -> None:
        self._turns = [ChatTurn("system", build_system_content(context_text))]

    def begin_turn(self, user_message: str, context_text: str | None = None) -> TurnPlan:
        """Apply the reset rule, then append the user turn unless it was ``/new``.

        The note context is only captured when the conversation (re)starts; later
        turns keep the system prompt that was built at that moment.
        """
        trimmed = (user_message or "").strip()
        if not trimmed:
            return TurnPlan(ignored=True)
        plan = TurnPlan()
        if self.should_reset(user_message):
            self.reset(context_text)
            plan.reset = True
            if trimmed == NEW_CONVERSATION_COMMAND:
                plan.command_only = True
                return plan
        self._turns.append(ChatTurn("user", user_message))
        plan.messages = self.messages()
        return plan

    def add_assistant_turn(self, text: str) -> None:
        self._turns.append(ChatTurn("assistant", text))
