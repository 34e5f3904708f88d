"""Records produced and consumed by the synthesis loop."""

import asyncio
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


DEFAULT_MAX_ITERATIONS = 3
DEFAULT_APPROVAL_THRESHOLD = 8.0


# ============================================================================
# Agent output shapes (what the completion service is asked to return)
# ============================================================================

class CreatorOutput(BaseModel):
    """Flat output shape requested from the Generator's completion call."""

    title: str = Field(description='A title for the result (e.g., "John Doe - Software Engineer Resume")')
    summary: str = Field(description="A brief summary of the generated result (1-2 sentences)")
    result_json: str = Field(
        description=(
            "JSON string containing the structured result data. Structure follows the "
            "flow's output schema."
        )
    )
    html_content: str = Field(
        description="Well-formatted HTML for displaying the result, semantic tags with inline styles"
    )
    confidence: float = Field(description="Confidence score 1-10 for the quality of this result")
    notes: str = Field(description="Notes about the generation process, limitations, or assumptions")


class JudgeOutput(BaseModel):
    """Flat output shape requested from the Evaluator's completion call."""

    approved: bool = Field(description="True only if the result is ready to ship as-is")
    score: float = Field(description="Overall quality score 0-10")
    accuracy_score: float = Field(description="0-10: every fact matches the collected data, nothing invented")
    completeness_score: float = Field(description="0-10: every field the flow's output needs is present")
    formatting_score: float = Field(description="0-10: presentation quality of the HTML")
    issues_json: str = Field(
        description='JSON array of concrete, fixable issues. Example: ["Email missing from header"]. Use "[]" if none'
    )
    feedback: str = Field(description="Actionable prose telling the creator exactly what to change")


# ============================================================================
# Loop records
# ============================================================================

class Candidate(BaseModel):
    """One generated attempt at the target artifact."""

    model_config = ConfigDict(frozen=True)

    title: str = ""
    summary: str = ""
    structured_data: Dict[str, Any] = Field(default_factory=dict)
    rendered_output: str = ""
    confidence: float = Field(default=1.0, ge=1, le=10)
    notes: str = ""
    iteration: int = Field(default=1, ge=1)


class SubScores(BaseModel):
    model_config = ConfigDict(frozen=True)

    accuracy: float = Field(default=0.0, ge=0, le=10)
    completeness: float = Field(default=0.0, ge=0, le=10)
    formatting: float = Field(default=0.0, ge=0, le=10)


class EvaluationResult(BaseModel):
    """Judgment of one Candidate."""

    model_config = ConfigDict(frozen=True)

    approved: bool = False
    score: float = Field(default=0.0, ge=0, le=10)
    sub_scores: SubScores = Field(default_factory=SubScores)
    issues: List[str] = Field(default_factory=list)
    feedback: str = ""
    iteration: int = Field(default=1, ge=1)


class CandidateSummary(BaseModel):
    title: str
    confidence: float


class EvaluationSummary(BaseModel):
    approved: bool
    score: float
    sub_scores: SubScores
    issues: List[str] = Field(default_factory=list)
    feedback: str = ""


class IterationRecord(BaseModel):
    """Outcome of one iteration, successful or not."""

    iteration: int
    candidate: Optional[CandidateSummary] = None
    evaluation: Optional[EvaluationSummary] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    @classmethod
    def success(
        cls,
        iteration: int,
        candidate: Candidate,
        evaluation: EvaluationResult,
    ) -> "IterationRecord":
        return cls(
            iteration=iteration,
            candidate=CandidateSummary(title=candidate.title, confidence=candidate.confidence),
            evaluation=EvaluationSummary(
                approved=evaluation.approved,
                score=evaluation.score,
                sub_scores=evaluation.sub_scores,
                issues=list(evaluation.issues),
                feedback=evaluation.feedback,
            ),
        )

    @classmethod
    def failure(cls, iteration: int, error: BaseException) -> "IterationRecord":
        return cls(iteration=iteration, error=str(error), error_type=type(error).__name__)


class OrchestrationOptions(BaseModel):
    """Caller-supplied policy for one run."""

    model_config = ConfigDict(arbitrary_types_allowed=True, extra="forbid")

    max_iterations: int = Field(default=DEFAULT_MAX_ITERATIONS, ge=1)
    approval_threshold: float = Field(default=DEFAULT_APPROVAL_THRESHOLD, ge=0, le=10)
    call_timeout: Optional[float] = Field(default=None, gt=0)
    cancel_event: Optional[asyncio.Event] = None


class OrchestrationResult(BaseModel):
    """Final outcome of a run, handed to the persistence layer."""

    success: bool = True
    approved: bool
    candidate: Candidate
    quality_score: float
    sub_scores: Optional[SubScores] = None
    iterations: int
    max_iterations_reached: bool = False
    quick_mode: bool = False
    history: List[IterationRecord] = Field(default_factory=list)
    metrics: Dict[str, Any] = Field(default_factory=dict)

    def to_payload(self) -> Dict[str, Any]:
        """Flat dict for storage and API responses."""
        payload: Dict[str, Any] = {
            "success": self.success,
            "approved": self.approved,
            "result": self.candidate.structured_data,
            "html": self.candidate.rendered_output,
            "title": self.candidate.title,
            "summary": self.candidate.summary,
            "quality_score": self.quality_score,
            "iterations": self.iterations,
        }
        if self.quick_mode:
            payload["quick_mode"] = True
            return payload

        sub_scores = self.sub_scores or SubScores()
        payload.update({
            "accuracy_score": sub_scores.accuracy,
            "completeness_score": sub_scores.completeness,
            "formatting_score": sub_scores.formatting,
            "history": [record.model_dump(exclude_none=True) for record in self.history],
        })
        if self.max_iterations_reached:
            payload["max_iterations_reached"] = True
        return payload
