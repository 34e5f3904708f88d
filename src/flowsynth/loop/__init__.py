"""
Creator/Judge Loop: Generate-Evaluate-Refine

A bounded workflow that synthesizes a structured result from collected data:
  1. Generate: the creator builds a candidate (data + HTML)
  2. Evaluate: the judge scores it and decides approval
  3. Refine: judge issues become feedback for the next pass

The loop stops at the first candidate that is approved and clears the
threshold, or returns the best candidate once iterations run out.
"""

from .evaluator import Evaluator
from .feedback import format_feedback
from .generator import Generator
from .models import (
    Candidate,
    CreatorOutput,
    EvaluationResult,
    IterationRecord,
    JudgeOutput,
    OrchestrationOptions,
    OrchestrationResult,
    SubScores,
)
from .orchestrator import Orchestrator, create_orchestrator, is_accepted

__all__ = [
    "Orchestrator",
    "create_orchestrator",
    "is_accepted",
    "Generator",
    "Evaluator",
    "format_feedback",
    "Candidate",
    "CreatorOutput",
    "EvaluationResult",
    "IterationRecord",
    "JudgeOutput",
    "OrchestrationOptions",
    "OrchestrationResult",
    "SubScores",
]
