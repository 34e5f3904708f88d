"""
Evaluator (judge agent)

Scores a Candidate on accuracy, completeness and formatting, and makes a
separate ship/no-ship call. Combining the two into an accept decision is
the Orchestrator's job.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

from ..core.abstractions import ICompletionService, IPayloadExtractor
from ..core.agent_base import CompletionAgent, clamp, coerce_number, coerce_text, to_json_block
from ..core.json_repair import repair_json
from ..core.types import EvaluationFailure, ParseFailure
from .models import Candidate, EvaluationResult, JudgeOutput, SubScores
from .prompts import EVALUATION_PROMPT, JUDGE_INSTRUCTIONS

logger = logging.getLogger(__name__)


_TRUE_STRINGS = {"true", "yes", "1", "approved"}


class Evaluator(CompletionAgent):
    """Judge agent: one completion call per evaluation."""

    def __init__(
        self,
        service: ICompletionService,
        extractors: Optional[Sequence[IPayloadExtractor]] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = 0.2,
        instructions: str = JUDGE_INSTRUCTIONS,
    ):
        super().__init__(
            service=service,
            name="Evaluator",
            instructions=instructions,
            output_schema=JudgeOutput,
            extractors=extractors,
            timeout=timeout,
            temperature=temperature,
        )

    def build_prompt(
        self,
        task_spec: Any,
        collected_input: Any,
        candidate: Candidate,
        iteration: int,
    ) -> str:
        return EVALUATION_PROMPT.format(
            task_spec=to_json_block(task_spec),
            collected_input=to_json_block(collected_input),
            iteration=iteration,
            title=candidate.title,
            summary=candidate.summary,
            confidence=f"{candidate.confidence:g}",
            notes=candidate.notes or "(none)",
            structured_data=to_json_block(candidate.structured_data),
            rendered_output=candidate.rendered_output,
        )

    async def evaluate(
        self,
        task_spec: Any,
        collected_input: Any,
        candidate: Candidate,
        iteration: int = 1,
        *,
        timeout: Optional[float] = None,
    ) -> EvaluationResult:
        """
        Evaluate one Candidate.

        Returns:
            EvaluationResult for this iteration

        Raises:
            ParseFailure: If no payload could be located in the response
            EvaluationFailure: For any other failure (transport, timeout)
        """
        prompt = self.build_prompt(task_spec, collected_input, candidate, iteration)
        try:
            payload = await self.request_payload(prompt, timeout)
        except ParseFailure:
            raise
        except Exception as e:
            raise EvaluationFailure(str(e), iteration) from e

        evaluation = self.parse_output(payload, iteration)
        logger.info(
            f"[Evaluator] approved={evaluation.approved} score={evaluation.score:g} "
            f"accuracy={evaluation.sub_scores.accuracy:g} "
            f"completeness={evaluation.sub_scores.completeness:g} "
            f"formatting={evaluation.sub_scores.formatting:g} "
            f"issues={len(evaluation.issues)}"
        )
        return evaluation

    def parse_output(self, payload: Dict[str, Any], iteration: int) -> EvaluationResult:
        return EvaluationResult(
            approved=self._read_approved(payload.get("approved")),
            score=self._read_score(payload, "score"),
            sub_scores=SubScores(
                accuracy=self._read_score(payload, "accuracy_score"),
                completeness=self._read_score(payload, "completeness_score"),
                formatting=self._read_score(payload, "formatting_score"),
            ),
            issues=self._read_issues(payload),
            feedback=coerce_text(payload.get("feedback")),
            iteration=iteration,
        )

    def _read_approved(self, raw: Any) -> bool:
        if isinstance(raw, bool):
            return raw
        if isinstance(raw, (int, float)) and raw in (0, 1):
            return raw == 1
        if isinstance(raw, str):
            return raw.strip().lower() in _TRUE_STRINGS
        if raw is not None:
            self.warn(f"Unexpected approved value {raw!r}, treating as not approved")
        return False

    def _read_score(self, payload: Dict[str, Any], key: str) -> float:
        value = coerce_number(payload.get(key))
        if value is None:
            self.warn(f"Missing or non-numeric {key} {payload.get(key)!r}, using 0")
            return 0.0
        if not 0 <= value <= 10:
            self.warn(f"{key} {value:g} outside 0-10, clamping")
        return clamp(value, 0.0, 10.0)

    def _read_issues(self, payload: Dict[str, Any]) -> List[str]:
        raw = payload.get("issues_json", payload.get("issues"))
        if raw is None or raw == "":
            return []
        if isinstance(raw, str):
            parsed = repair_json(raw)
            if parsed is None:
                self.warn("Failed to parse issues_json")
                return []
            raw = parsed
        if not isinstance(raw, list):
            self.warn(f"issues_json is a {type(raw).__name__}, expected an array")
            return []
        return [coerce_text(issue) for issue in raw if issue not in (None, "")]
