"""
Completion Service

Request/response types for the external completion capability, plus
``ChatCompletionService``, which serves requests with either a LangChain
chat model or an ``LLMClient``.
"""

import json
import logging
from typing import Any, List, Optional, Type

from langchain_core.messages import BaseMessage, SystemMessage
from pydantic import BaseModel, ConfigDict, Field

from .abstractions import ICompletionService
from .llm_helpers import invoke_llm, is_llm_client

logger = logging.getLogger(__name__)


class CompletionRequest(BaseModel):
    """Instruction set, target output shape and conversation turns."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    instructions: str
    output_schema: Type[BaseModel]
    messages: List[BaseMessage] = Field(default_factory=list)
    temperature: Optional[float] = None


class OutputSegment(BaseModel):
    """One text segment of a raw model response."""

    type: str = "output_text"
    text: str = ""


class ModelResponse(BaseModel):
    """Raw model response as a list of output segments."""

    output: List[OutputSegment] = Field(default_factory=list)


class CompletionEnvelope(BaseModel):
    """
    Response envelope produced by in-package completion services.

    Field names match what the payload extractors look for; services that
    only have raw text leave ``final_output`` empty and put the text in
    ``model_responses``.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, protected_namespaces=())

    final_output: Optional[Any] = None
    current_step: Optional[Any] = None
    generated_items: List[Any] = Field(default_factory=list)
    model_responses: List[ModelResponse] = Field(default_factory=list)

    @classmethod
    def from_text(cls, text: str) -> "CompletionEnvelope":
        return cls(model_responses=[ModelResponse(output=[OutputSegment(text=text)])])


def with_temperature(llm: Any, temperature: Optional[float]) -> Any:
    """
    Copy of a LangChain chat model sampling at ``temperature``.

    Chat models carry temperature as a model field, so it is set on a copy
    rather than bound; a binding would not survive ``with_structured_output``.
    Models without the field are returned unchanged.
    """
    if temperature is None or "temperature" not in getattr(type(llm), "model_fields", {}):
        if temperature is not None:
            logger.debug(f"[Completion] {type(llm).__name__} has no temperature field, ignoring {temperature}")
        return llm
    return llm.model_copy(update={"temperature": temperature})


def build_system_prompt(instructions: str, output_schema: Type[BaseModel]) -> str:
    """Instructions followed by the JSON schema the reply must match."""
    schema_json = json.dumps(output_schema.model_json_schema(), indent=2)
    return (
        f"{instructions.strip()}\n\n"
        f"Respond with a single JSON object matching this schema "
        f"(no markdown, no extra text):\n{schema_json}"
    )


class ChatCompletionService(ICompletionService):
    """
    Completion service over an LLMClient or a LangChain chat model.

    Chat models that support ``with_structured_output`` are asked for the
    target schema directly and the result lands in ``final_output``. If that
    fails, or the backend is a plain LLMClient, the raw reply text is
    returned for the extractors to parse.
    """

    def __init__(self, llm: Any, temperature: Optional[float] = None):
        """
        Args:
            llm: LLMClient or LangChain ChatModel
            temperature: Default temperature when the request sets none
        """
        self.llm = llm
        self.temperature = temperature

    @property
    def supports_structured_output(self) -> bool:
        return not is_llm_client(self.llm) and hasattr(self.llm, "with_structured_output")

    async def complete(self, request: CompletionRequest) -> CompletionEnvelope:
        system = build_system_prompt(request.instructions, request.output_schema)
        temperature = request.temperature if request.temperature is not None else self.temperature

        llm = self.llm if is_llm_client(self.llm) else with_temperature(self.llm, temperature)

        if self.supports_structured_output:
            try:
                structured_llm = llm.with_structured_output(request.output_schema)
                output = await structured_llm.ainvoke(
                    [SystemMessage(content=system), *request.messages]
                )
                return CompletionEnvelope(final_output=output)
            except Exception as e:
                logger.info(f"[Completion] with_structured_output failed: {e}, falling back to text")

        text = await invoke_llm(
            llm,
            list(request.messages),
            system=system,
            temperature=temperature,
        )
        logger.debug(f"[Completion] Raw reply: {len(text)} chars")
        return CompletionEnvelope.from_text(text)
