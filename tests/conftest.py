from __future__ import annotations

from typing import Any, List, Optional

import pytest
from fastapi.testclient import TestClient
from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage
from langchain_core.outputs import ChatGeneration, ChatResult
from pydantic import Field

from app.main import app, get_generation_client, get_store
from assistant.assistant import GenerationClient
from assistant.core.memory import UserStore


class RecordingChatModel(BaseChatModel):
    """Chat model double that records every conversation it is sent."""

    responses: List[str] = Field(default_factory=lambda: ["**Hello** there"])
    calls: List[List[BaseMessage]] = Field(default_factory=list)
    error: Optional[str] = None

    @property
    def _llm_type(self) -> str:
        return "recording-fake"

    def _generate(
        self,
        messages: List[BaseMessage],
        stop: Optional[List[str]] = None,
        run_manager: Any = None,
        **kwargs: Any,
    ) -> ChatResult:
        self.calls.append(list(messages))
        if self.error:
            raise RuntimeError(self.error)
        text = self.responses[min(len(self.calls), len(self.responses)) - 1]
        return ChatResult(generations=[ChatGeneration(message=AIMessage(content=text))])


@pytest.fixture
def fake_llm() -> RecordingChatModel:
    return RecordingChatModel()


@pytest.fixture
def generation_client(fake_llm) -> GenerationClient:
    return GenerationClient(fake_llm)


@pytest.fixture
def store(tmp_path) -> UserStore:
    return UserStore(tmp_path / "data")


@pytest.fixture
def client(store, generation_client):
    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_generation_client] = lambda: (lambda: generation_client)
    yield TestClient(app)
    app.dependency_overrides.clear()
