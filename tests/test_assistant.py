import pytest
from langchain_core.language_models.fake_chat_models import FakeListChatModel
from langchain_core.messages import AIMessage, HumanMessage

from assistant.assistant import GenerationClient, _reply_text, build_action_prompt
from assistant.core.errors import GenerationError, InvalidInputError
from assistant.core.models import Message
from config.settings import Settings


def test_generate_returns_formatted_text():
    client = GenerationClient(FakeListChatModel(responses=["# Answer\n\n\n\n**42**"]))
    assert client.generate("What is the answer?") == "Answer\n\n42"


def test_generate_chat_requires_history(generation_client, fake_llm):
    with pytest.raises(InvalidInputError):
        generation_client.generate_chat([])
    assert fake_llm.calls == []


def test_single_message_is_sent_as_standalone_prompt(generation_client, fake_llm):
    reply = generation_client.generate_chat([{"sender": "user", "content": "Hi"}])

    assert reply == "Hello there"
    assert len(fake_llm.calls) == 1
    [sent] = fake_llm.calls[0]
    assert isinstance(sent, HumanMessage)
    assert sent.content == "Hi"


def test_history_is_mapped_to_roles(generation_client, fake_llm):
    history = [
        Message(content="Hi", sender="user"),
        Message(content="Hello!", sender="ai"),
        {"sender": "system", "content": "odd sender"},
        {"sender": "user", "content": "Tell me a joke"},
    ]

    generation_client.generate_chat(history)

    sent = fake_llm.calls[0]
    assert [type(m) for m in sent] == [HumanMessage, AIMessage, AIMessage, HumanMessage]
    assert [m.content for m in sent] == ["Hi", "Hello!", "odd sender", "Tell me a joke"]


def test_last_turn_is_sent_as_user_turn_even_from_ai(generation_client, fake_llm):
    generation_client.generate_chat([
        {"sender": "user", "content": "Hi"},
        {"sender": "ai", "content": "Hello"},
    ])

    assert isinstance(fake_llm.calls[0][-1], HumanMessage)


def test_model_failure_raises_generation_error(generation_client, fake_llm):
    fake_llm.error = "quota exceeded"

    with pytest.raises(GenerationError) as excinfo:
        generation_client.generate_chat([{"sender": "user", "content": "Hi"}])

    assert not isinstance(excinfo.value, InvalidInputError)
    assert isinstance(excinfo.value.__cause__, RuntimeError)


def test_reply_text_flattens_content_parts():
    message = AIMessage(content=[{"type": "text", "text": "Hello "}, "world"])
    assert _reply_text(message) == "Hello world"


def test_build_action_prompt():
    assert build_action_prompt("concise", "Long text").endswith("main points:\n\nLong text")
    assert build_action_prompt("expand", "Short").startswith("Expand on this response")
    with pytest.raises(InvalidInputError):
        build_action_prompt("shorten", "text")


def test_from_settings_requires_api_key():
    settings = Settings()
    settings.gemini_api_key = None

    with pytest.raises(GenerationError):
        GenerationClient.from_settings(settings)


def test_from_settings_passes_model_and_token_cap():
    settings = Settings()
    settings.gemini_api_key = "test-key"
    settings.gemini_model = "gemini-2.0-flash"
    settings.max_output_tokens = 256

    client = GenerationClient.from_settings(settings)

    assert client.llm.max_output_tokens == 256
    assert client.llm.model.endswith("gemini-2.0-flash")


def test_generate_failure_raises_generation_error(fake_llm):
    fake_llm.error = "connection reset"
    client = GenerationClient(fake_llm)

    with pytest.raises(GenerationError) as excinfo:
        client.generate("Hi")
    assert isinstance(excinfo.value.__cause__, RuntimeError)
