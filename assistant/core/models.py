from __future__ import annotations

import threading
import time
from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from assistant.core.errors import NotFoundError


TITLE_MAX_CHARS = 30
DEFAULT_CHAT_TITLE = "New Chat"

_id_lock = threading.Lock()
_last_id = 0


def new_id() -> str:
    """Return a millisecond-timestamp id, strictly increasing within the process."""
    global _last_id
    with _id_lock:
        candidate = int(time.time() * 1000)
        if candidate <= _last_id:
            candidate = _last_id + 1
        _last_id = candidate
    return str(candidate)


def utc_timestamp() -> str:
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def derive_title(content: str) -> str:
    if len(content) > TITLE_MAX_CHARS:
        return content[:TITLE_MAX_CHARS] + "..."
    return content


class Message(BaseModel):
    id: str = Field(default_factory=new_id)
    content: str
    sender: Literal["user", "ai"]
    timestamp: str = Field(default_factory=utc_timestamp)


class Chat(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(default_factory=new_id)
    title: str = DEFAULT_CHAT_TITLE
    messages: List[Message] = Field(default_factory=list)
    created_at: str = Field(default_factory=utc_timestamp, alias="createdAt")

    def find_message(self, message_id: str, sender: Optional[str] = None) -> Optional[Message]:
        for message in self.messages:
            if message.id == message_id and (sender is None or message.sender == sender):
                return message
        return None


class UserRecord(BaseModel):
    username: str
    chats: List[Chat] = Field(default_factory=list)

    def find_chat(self, chat_id: str) -> Optional[Chat]:
        for chat in self.chats:
            if chat.id == chat_id:
                return chat
        return None

    def get_chat(self, chat_id: str) -> Chat:
        chat = self.find_chat(chat_id)
        if chat is None:
            raise NotFoundError(f"Chat not found: {chat_id}")
        return chat
