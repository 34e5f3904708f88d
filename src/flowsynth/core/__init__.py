"""Core infrastructure: completion service, payload extraction, config, errors."""

from .abstractions import ICompletionService, IPayloadExtractor
from .agent_base import CompletionAgent
from .completion import (
    ChatCompletionService,
    CompletionEnvelope,
    CompletionRequest,
    ModelResponse,
    OutputSegment,
)
from .config import SynthesisSettings, load_settings
from .extraction import (
    DEFAULT_EXTRACTORS,
    CurrentStepExtractor,
    FinalOutputExtractor,
    GeneratedItemsExtractor,
    ModelResponsesExtractor,
    locate_payload,
)
from .json_repair import extract_json_object, parse_json_object, repair_json
from .llm_client import LLMClient, create_llm_client
from .llm_helpers import invoke_llm, is_llm_client
from .logger import get_logger
from .metrics import MetricsCollector
from .types import (
    CompletionTimeout,
    EvaluationFailure,
    GenerationFailure,
    NodeMetrics,
    NodeStatus,
    OrchestrationCancelled,
    ParseFailure,
    RunStatus,
    SynthesisError,
    TerminalFailure,
)

__all__ = [
    # Completion service
    "ICompletionService",
    "ChatCompletionService",
    "CompletionRequest",
    "CompletionEnvelope",
    "ModelResponse",
    "OutputSegment",
    "LLMClient",
    "create_llm_client",
    "invoke_llm",
    "is_llm_client",
    # Extraction
    "IPayloadExtractor",
    "FinalOutputExtractor",
    "CurrentStepExtractor",
    "GeneratedItemsExtractor",
    "ModelResponsesExtractor",
    "DEFAULT_EXTRACTORS",
    "locate_payload",
    "repair_json",
    "extract_json_object",
    "parse_json_object",
    # Agents
    "CompletionAgent",
    # Config / logging / metrics
    "SynthesisSettings",
    "load_settings",
    "get_logger",
    "MetricsCollector",
    # Types and errors
    "NodeMetrics",
    "NodeStatus",
    "RunStatus",
    "SynthesisError",
    "ParseFailure",
    "GenerationFailure",
    "EvaluationFailure",
    "CompletionTimeout",
    "TerminalFailure",
    "OrchestrationCancelled",
]
