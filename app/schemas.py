from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class LoginRequest(BaseModel):
    username: Optional[str] = Field(None, description="Username to load or create")


class CreateChatRequest(BaseModel):
    title: Optional[str] = Field(None, description="Optional chat title, defaults to 'New Chat'")


class SendMessageRequest(BaseModel):
    message: Optional[str] = Field(None, description="User's latest message")


class ActionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    message_id: Optional[str] = Field(None, alias="messageId", description="Id of the AI message to rewrite")
    action: Optional[str] = Field(None, description="'concise' or 'expand'")
