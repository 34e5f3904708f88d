"""
Generator (creator agent)

Builds a Candidate from the flow configuration, the collected input and,
on refinement passes, the judge's feedback.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from ..core.abstractions import ICompletionService, IPayloadExtractor
from ..core.agent_base import CompletionAgent, clamp, coerce_number, coerce_text, to_json_block
from ..core.json_repair import repair_json
from ..core.types import GenerationFailure, ParseFailure
from .models import Candidate, CreatorOutput
from .prompts import CREATOR_INSTRUCTIONS, FIRST_PASS_SECTION, GENERATION_PROMPT, REFINEMENT_SECTION

logger = logging.getLogger(__name__)


class Generator(CompletionAgent):
    """Creator agent: one completion call per Candidate."""

    def __init__(
        self,
        service: ICompletionService,
        extractors: Optional[Sequence[IPayloadExtractor]] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = 0.7,
        instructions: str = CREATOR_INSTRUCTIONS,
    ):
        super().__init__(
            service=service,
            name="Generator",
            instructions=instructions,
            output_schema=CreatorOutput,
            extractors=extractors,
            timeout=timeout,
            temperature=temperature,
        )

    def build_prompt(
        self,
        task_spec: Any,
        collected_input: Any,
        feedback: Optional[str],
        iteration: int,
    ) -> str:
        prompt = GENERATION_PROMPT.format(
            task_spec=to_json_block(task_spec),
            collected_input=to_json_block(collected_input),
        )
        if feedback:
            prompt += REFINEMENT_SECTION.format(iteration=iteration, feedback=feedback)
        else:
            prompt += FIRST_PASS_SECTION.format(iteration=iteration)
        return prompt

    async def generate(
        self,
        task_spec: Any,
        collected_input: Any,
        feedback: Optional[str] = None,
        iteration: int = 1,
        *,
        timeout: Optional[float] = None,
    ) -> Candidate:
        """
        Generate one Candidate.

        Args:
            task_spec: Opaque description of the desired output
            collected_input: Facts the result must be built from
            feedback: Formatted judge feedback from the previous pass
            iteration: 1-based iteration index
            timeout: Per-call timeout override in seconds

        Returns:
            Candidate for this iteration

        Raises:
            ParseFailure: If no payload could be located in the response
            GenerationFailure: For any other failure (transport, timeout)
        """
        prompt = self.build_prompt(task_spec, collected_input, feedback, iteration)
        try:
            payload = await self.request_payload(prompt, timeout)
        except ParseFailure:
            raise
        except Exception as e:
            raise GenerationFailure(str(e), iteration) from e

        candidate = self.parse_output(payload, iteration)
        logger.info(f"[Generator] Candidate '{candidate.title}' (confidence {candidate.confidence:g})")
        return candidate

    def parse_output(self, payload: Dict[str, Any], iteration: int) -> Candidate:
        """
        Turn a located payload into a Candidate.

        Malformed sub-fields fall back to empty defaults and are logged;
        only a missing payload is fatal, and that is raised earlier.
        """
        confidence = coerce_number(payload.get("confidence"))
        if confidence is None:
            self.warn(f"Missing or non-numeric confidence {payload.get('confidence')!r}, using 1")
            confidence = 1.0

        return Candidate(
            title=coerce_text(payload.get("title")),
            summary=coerce_text(payload.get("summary")),
            structured_data=self._parse_result_json(payload.get("result_json")),
            rendered_output=coerce_text(payload.get("html_content")),
            confidence=clamp(confidence, 1.0, 10.0),
            notes=coerce_text(payload.get("notes")),
            iteration=iteration,
        )

    def _parse_result_json(self, raw: Any) -> Dict[str, Any]:
        if raw is None or raw == "":
            return {}
        if isinstance(raw, Mapping):
            return dict(raw)
        if isinstance(raw, str):
            try:
                parsed = json.loads(raw)
            except json.JSONDecodeError as e:
                parsed = repair_json(raw)
                if parsed is None:
                    self.warn(f"Failed to parse result_json: {e}")
                    return {}
            if isinstance(parsed, dict):
                return parsed
            self.warn(f"result_json is a {type(parsed).__name__}, expected an object")
            return {}
        self.warn(f"Unsupported result_json type {type(raw).__name__}")
        return {}
