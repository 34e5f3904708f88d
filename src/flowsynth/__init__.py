"""flowsynth: synthesize structured results from collected data with a creator/judge loop."""

from .core import (
    ChatCompletionService,
    CompletionEnvelope,
    CompletionRequest,
    ICompletionService,
    LLMClient,
    ParseFailure,
    GenerationFailure,
    EvaluationFailure,
    CompletionTimeout,
    TerminalFailure,
    OrchestrationCancelled,
    SynthesisError,
    SynthesisSettings,
    create_llm_client,
    get_logger,
    load_settings,
)
from .loop import (
    Candidate,
    EvaluationResult,
    Evaluator,
    Generator,
    IterationRecord,
    OrchestrationOptions,
    OrchestrationResult,
    Orchestrator,
    SubScores,
    create_orchestrator,
    format_feedback,
)

__version__ = "0.1.0"

__all__ = [
    # Loop
    "Orchestrator",
    "create_orchestrator",
    "Generator",
    "Evaluator",
    "format_feedback",
    "Candidate",
    "EvaluationResult",
    "SubScores",
    "IterationRecord",
    "OrchestrationOptions",
    "OrchestrationResult",
    # Completion service
    "ICompletionService",
    "ChatCompletionService",
    "CompletionRequest",
    "CompletionEnvelope",
    "LLMClient",
    "create_llm_client",
    # Config / logging
    "SynthesisSettings",
    "load_settings",
    "get_logger",
    # Errors
    "SynthesisError",
    "ParseFailure",
    "GenerationFailure",
    "EvaluationFailure",
    "CompletionTimeout",
    "TerminalFailure",
    "OrchestrationCancelled",
]
