from __future__ import annotations

import uuid
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


DEFAULT_TITLE = "New conversation"
PREVIEW_CHARS = 30


class ChatTurn(BaseModel):
    role: str = Field(..., description="'user', 'assistant' or 'system'")
    content: str
    timestamp: datetime = Field(default_factory=datetime.now)


class Conversation(BaseModel):
    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    title: str = DEFAULT_TITLE
    messages: List[ChatTurn] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.now)
    title_generated: bool = False

    def add(self, role: str, content: str) -> ChatTurn:
        turn = ChatTurn(role=role, content=content)
        if role == "user" and not self.messages and not self.title_generated:
            # Temporary title until the server sends one
            self.title = content[:PREVIEW_CHARS] + ("..." if len(content) > PREVIEW_CHARS else "")
        self.messages.append(turn)
        return turn

    def apply_title(self, title: Optional[str]) -> None:
        if title and not self.title_generated:
            self.title = title
            self.title_generated = True

    def payload(self) -> List[Dict[str, str]]:
        return [{"role": m.role, "content": m.content} for m in self.messages]


class ConversationStore:
    """In-memory list of conversations, newest first. Nothing is persisted."""

    def __init__(self) -> None:
        self.conversations: List[Conversation] = []
        self.active_id: Optional[str] = None

    def create(self) -> Conversation:
        conversation = Conversation()
        self.conversations.insert(0, conversation)
        self.active_id = conversation.id
        return conversation

    @property
    def active(self) -> Conversation:
        for conversation in self.conversations:
            if conversation.id == self.active_id:
                return conversation
        return self.create()

    def select(self, index: int) -> Conversation:
        if not 0 <= index < len(self.conversations):
            raise IndexError(f"No conversation #{index + 1}")
        self.active_id = self.conversations[index].id
        return self.conversations[index]
