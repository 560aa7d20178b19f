from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Union

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_core.messages import AIMessage, BaseMessage, HumanMessage
from langchain_google_genai import ChatGoogleGenerativeAI

from assistant.core.errors import GenerationError, InvalidInputError
from assistant.core.formatter import format_response
from assistant.core.models import Message
from config.settings import Settings, get_settings


logger = logging.getLogger("chatbot.assistant")

ACTION_PROMPTS: Dict[str, str] = {
    "concise": "Make this response more concise while keeping the main points:\n\n{content}",
    "expand": "Expand on this response with more details and examples:\n\n{content}",
}
ACTIONS = tuple(ACTION_PROMPTS)

HistoryItem = Union[Message, Mapping[str, Any]]


def build_action_prompt(action: str, content: str) -> str:
    template = ACTION_PROMPTS.get(action)
    if template is None:
        raise InvalidInputError("Invalid action. Use 'concise' or 'expand'.")
    return template.format(content=content)


def _field(item: HistoryItem, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def to_lc_messages(history: Sequence[HistoryItem]) -> List[BaseMessage]:
    messages: List[BaseMessage] = []
    for item in history:
        content = _field(item, "content") or ""
        if _field(item, "sender") == "user":
            messages.append(HumanMessage(content=content))
        else:
            messages.append(AIMessage(content=content))
    return messages


def _reply_text(result: Any) -> str:
    content = getattr(result, "content", result)
    if isinstance(content, str):
        return content
    # Gemini may answer with a list of parts
    parts = []
    for part in content or []:
        if isinstance(part, str):
            parts.append(part)
        elif isinstance(part, dict) and part.get("type", "text") == "text":
            parts.append(part.get("text", ""))
    return "".join(parts)


class GenerationClient:
    """Thin wrapper around a chat model that returns cleaned-up reply text."""

    def __init__(self, llm: BaseChatModel) -> None:
        self.llm = llm

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "GenerationClient":
        settings = settings or get_settings()
        if not settings.gemini_api_key:
            raise GenerationError(
                "GEMINI_API_KEY not set. Please configure it in environment or .env"
            )

        llm = ChatGoogleGenerativeAI(
            model=settings.gemini_model,
            google_api_key=settings.gemini_api_key,
            max_output_tokens=settings.max_output_tokens,
        )
        return cls(llm)

    def _invoke(self, model_input: Union[str, List[BaseMessage]]) -> str:
        try:
            result = self.llm.invoke(model_input)
        except Exception as exc:
            raise GenerationError(f"Failed to generate response: {exc}") from exc
        return format_response(_reply_text(result))

    def generate(self, prompt: str) -> str:
        return self._invoke(prompt)

    def generate_chat(self, history: Sequence[HistoryItem]) -> str:
        """Answer the last turn of ``history`` using the earlier turns as context.

        Earlier turns authored by ``"user"`` become human messages and all
        others become model messages. With no earlier turns the last message
        is sent as a standalone prompt.
        """
        if not history:
            raise InvalidInputError("Chat history is empty")

        context = to_lc_messages(history[:-1])
        last_content = _field(history[-1], "content") or ""
        logger.info("Generating reply: context_turns=%s prompt_len=%s", len(context), len(last_content))

        if context:
            return self._invoke(context + [HumanMessage(content=last_content)])
        return self._invoke(last_content)
