"""Shared type definitions and the error taxonomy for the synthesis loop."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence


class NodeStatus(str, Enum):
    """Status of an agent call."""

    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"


class RunStatus(str, Enum):
    """States of one orchestration run."""

    INIT = "INIT"
    GENERATING = "GENERATING"
    EVALUATING = "EVALUATING"
    REFINING = "REFINING"
    APPROVED = "APPROVED"
    MAX_ITER_REACHED = "MAX_ITER_REACHED"
    FAILED = "FAILED"
    CANCELLED = "CANCELLED"


@dataclass
class NodeMetrics:
    """Metrics collected during the most recent agent call."""

    name: str
    status: NodeStatus = NodeStatus.PENDING
    duration_ms: float = 0.0
    calls: int = 0
    warnings: List[str] = field(default_factory=list)
    error_message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "status": self.status.value,
            "duration_ms": self.duration_ms,
            "calls": self.calls,
            "warnings": list(self.warnings),
            "error_message": self.error_message,
        }


# =============================================================================
# ERRORS
# =============================================================================

class SynthesisError(Exception):
    """Base class for every error raised by the synthesis core."""


class ParseFailure(SynthesisError):
    """No structured payload could be located in a completion response."""

    def __init__(self, source: str, strategies: Sequence[str]):
        self.source = source
        self.strategies = list(strategies)
        super().__init__(
            f"[{source}] No structured payload found "
            f"(tried: {', '.join(self.strategies) or 'none'})"
        )


class GenerationFailure(SynthesisError):
    """The Generator failed for a reason other than payload parsing."""

    def __init__(self, reason: str, iteration: int):
        self.reason = reason
        self.iteration = iteration
        super().__init__(f"Generation failed at iteration {iteration}: {reason}")


class EvaluationFailure(SynthesisError):
    """The Evaluator failed for a reason other than payload parsing."""

    def __init__(self, reason: str, iteration: int):
        self.reason = reason
        self.iteration = iteration
        super().__init__(f"Evaluation failed at iteration {iteration}: {reason}")


class CompletionTimeout(SynthesisError):
    """A completion call exceeded its configured timeout."""

    def __init__(self, agent: str, timeout: float):
        self.agent = agent
        self.timeout = timeout
        super().__init__(f"[{agent}] Completion call timed out after {timeout:g}s")


class TerminalFailure(SynthesisError):
    """No candidate was produced across all allotted iterations."""

    def __init__(self, message: str, history: Optional[List[Any]] = None):
        self.history = list(history or [])
        super().__init__(message)


class OrchestrationCancelled(SynthesisError):
    """The caller cancelled the run through its cancel event."""

    def __init__(self, iteration: int, history: Optional[List[Any]] = None):
        self.iteration = iteration
        self.history = list(history or [])
        super().__init__(f"Orchestration cancelled before iteration {iteration}")
