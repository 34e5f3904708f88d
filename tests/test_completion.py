"""
Tests for the completion service and LLM plumbing.

Tests cover:
  - ChatCompletionService over an LLMClient (text envelope)
  - ChatCompletionService over a chat model (structured output, text fallback)
  - Request temperature reaching chat models on both paths
  - invoke_llm for both backend kinds
  - create_llm_client provider validation
"""

from typing import List

import pytest
from langchain_core.messages import AIMessage, HumanMessage, SystemMessage
from pydantic import BaseModel, Field

from flowsynth.core.completion import (
    ChatCompletionService,
    CompletionEnvelope,
    CompletionRequest,
    build_system_prompt,
)
from flowsynth.core.extraction import locate_payload
from flowsynth.core.llm_client import LLMClient, create_llm_client
from flowsynth.core.llm_helpers import flatten_messages, invoke_llm
from flowsynth.loop.models import CreatorOutput


# ============================================================================
# Mock Components
# ============================================================================

class MockLLMClient(LLMClient):
    """Synchronous client returning a fixed reply."""

    def __init__(self, reply='{"title": "From client"}'):
        self.model = "mock"
        self.reply = reply
        self.calls = []

    def generate(self, system, user, temperature=0.7, max_tokens=None, **kwargs):
        self.calls.append({"system": system, "user": user, "temperature": temperature})
        return self.reply


class MockStructuredRunnable:
    def __init__(self, parent, schema):
        self.parent = parent
        self.schema = schema

    async def ainvoke(self, messages):
        self.parent.structured_calls.append(messages)
        if self.parent.structured_error:
            raise self.parent.structured_error
        return self.schema(
            title="Structured",
            summary="s",
            result_json="{}",
            html_content="<p></p>",
            confidence=9,
            notes="",
        )


class MockChatModel:
    """Duck-typed LangChain chat model."""

    def __init__(self, reply="```json\n{\"title\": \"From text\"}\n```", structured_error=None):
        self.reply = reply
        self.structured_error = structured_error
        self.structured_calls = []
        self.calls = []

    def with_structured_output(self, schema):
        return MockStructuredRunnable(self, schema)

    async def ainvoke(self, messages):
        self.calls.append(messages)
        return AIMessage(content=self.reply)


class FieldTemperatureChatModel(BaseModel):
    """Chat model that, like LangChain's, holds temperature as a model field."""

    temperature: float = 0.0
    seen: List[float] = Field(default_factory=list)
    fail_structured: bool = False

    def with_structured_output(self, schema):
        model = self

        class Runnable:
            async def ainvoke(self, messages):
                model.seen.append(model.temperature)
                if model.fail_structured:
                    raise ValueError("no tool calling")
                return {"title": "Structured"}

        return Runnable()

    async def ainvoke(self, messages):
        self.seen.append(self.temperature)
        return AIMessage(content='{"title": "Text"}')


def make_request(**overrides):
    fields = {
        "instructions": "You are a Result Creator.",
        "output_schema": CreatorOutput,
        "messages": [HumanMessage(content="Build the result.")],
    }
    fields.update(overrides)
    return CompletionRequest(**fields)


# ============================================================================
# ChatCompletionService
# ============================================================================

class TestChatCompletionService:

    def test_system_prompt_carries_schema(self):
        system = build_system_prompt("You are a judge.", CreatorOutput)
        assert system.startswith("You are a judge.")
        assert "result_json" in system

    @pytest.mark.asyncio
    async def test_llm_client_returns_text_envelope(self):
        client = MockLLMClient()
        service = ChatCompletionService(client, temperature=0.3)

        envelope = await service.complete(make_request())

        assert isinstance(envelope, CompletionEnvelope)
        assert envelope.final_output is None
        assert envelope.model_responses[0].output[0].text == '{"title": "From client"}'
        assert locate_payload(envelope) == {"title": "From client"}
        assert client.calls[0]["temperature"] == 0.3
        assert client.calls[0]["user"] == "Build the result."
        assert "Result Creator" in client.calls[0]["system"]

    @pytest.mark.asyncio
    async def test_request_temperature_wins(self):
        client = MockLLMClient()
        service = ChatCompletionService(client, temperature=0.3)

        await service.complete(make_request(temperature=0.9))

        assert client.calls[0]["temperature"] == 0.9

    @pytest.mark.asyncio
    async def test_chat_model_structured_output(self):
        llm = MockChatModel()

        envelope = await ChatCompletionService(llm).complete(make_request())

        assert isinstance(envelope.final_output, CreatorOutput)
        assert locate_payload(envelope)["title"] == "Structured"
        assert isinstance(llm.structured_calls[0][0], SystemMessage)
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_structured_output_failure_falls_back_to_text(self):
        llm = MockChatModel(structured_error=ValueError("schema rejected"))

        envelope = await ChatCompletionService(llm).complete(make_request())

        assert envelope.final_output is None
        assert locate_payload(envelope) == {"title": "From text"}
        assert len(llm.calls) == 1


    @pytest.mark.asyncio
    async def test_chat_model_samples_at_request_temperature(self):
        llm = FieldTemperatureChatModel()

        await ChatCompletionService(llm).complete(make_request(temperature=0.2))

        assert llm.seen == [0.2]
        assert llm.temperature == 0.0

    @pytest.mark.asyncio
    async def test_text_fallback_keeps_request_temperature(self):
        llm = FieldTemperatureChatModel(fail_structured=True)

        envelope = await ChatCompletionService(llm, temperature=0.7).complete(make_request())

        assert locate_payload(envelope) == {"title": "Text"}
        assert llm.seen == [0.7, 0.7]

    @pytest.mark.asyncio
    async def test_chat_model_without_temperature_field_unchanged(self):
        llm = MockChatModel()

        envelope = await ChatCompletionService(llm).complete(make_request(temperature=0.2))

        assert isinstance(envelope.final_output, CreatorOutput)


# ============================================================================
# invoke_llm
# ============================================================================

class TestInvokeLLM:

    @pytest.mark.asyncio
    async def test_llm_client_default_system(self):
        client = MockLLMClient(reply="hello")

        text = await invoke_llm(client, [HumanMessage(content="Hi")])

        assert text == "hello"
        assert client.calls[0]["system"] == "You are a helpful assistant."

    @pytest.mark.asyncio
    async def test_chat_model_gets_system_message(self):
        llm = MockChatModel(reply="ok")

        text = await invoke_llm(llm, [HumanMessage(content="Hi")], system="Be brief.")

        assert text == "ok"
        assert isinstance(llm.calls[0][0], SystemMessage)
        assert llm.calls[0][0].content == "Be brief."

    def test_flatten_messages(self):
        flat = flatten_messages([HumanMessage(content="Q"), AIMessage(content="A")])
        assert flat == "Q\nAssistant: A"


def test_unknown_provider_rejected():
    with pytest.raises(ValueError, match="Unknown provider"):
        create_llm_client(provider="mistral")
