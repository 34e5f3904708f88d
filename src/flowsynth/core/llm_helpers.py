"""
LLM Helper Functions

Invoke either an ``LLMClient`` or a LangChain chat model with the same
message list.
"""

import asyncio
from typing import Any, List, Optional

from langchain_core.messages import AIMessage, BaseMessage, HumanMessage, SystemMessage

from .llm_client import LLMClient


def is_llm_client(llm: Any) -> bool:
    """Check if llm is an LLMClient instance."""
    return isinstance(llm, LLMClient)


def flatten_messages(messages: List[BaseMessage]) -> str:
    """Collapse conversation turns into a single user prompt."""
    user_parts = []
    for msg in messages:
        if isinstance(msg, HumanMessage):
            user_parts.append(str(msg.content))
        elif isinstance(msg, AIMessage):
            user_parts.append(f"Assistant: {msg.content}")
    return "\n".join(user_parts)


async def invoke_llm(
    llm: Any,
    messages: List[BaseMessage],
    system: Optional[str] = None,
    temperature: Optional[float] = None,
) -> str:
    """
    Unified LLM invocation - works with both LLMClient and LangChain ChatModel.

    Args:
        llm: Either LLMClient or LangChain ChatModel
        messages: List of LangChain messages
        system: Optional system prompt
        temperature: Optional sampling temperature for an LLMClient; chat models
            are copied at the right temperature by ``with_temperature`` first

    Returns:
        Response text content
    """
    if is_llm_client(llm):
        user = flatten_messages(messages)
        system_prompt = system or "You are a helpful assistant."
        kwargs = {} if temperature is None else {"temperature": temperature}

        # LLMClient.generate() is sync; keep the event loop free
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None,
            lambda: llm.generate(system=system_prompt, user=user, **kwargs),
        )

    if system:
        messages = [SystemMessage(content=system), *messages]
    response = await llm.ainvoke(messages)
    return response.content if hasattr(response, "content") else str(response)
