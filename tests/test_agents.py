"""
Tests for the creator (Generator) and judge (Evaluator) agents.

Tests cover:
  - Prompt construction with and without feedback
  - Payload parsing into Candidate / EvaluationResult
  - Degradation of malformed sub-fields to empty defaults
  - ParseFailure passthrough and Generation/EvaluationFailure wrapping
  - Per-call timeouts
  - Agent metrics
"""

import asyncio
import json

import pytest

from flowsynth.core.abstractions import ICompletionService
from flowsynth.core.completion import CompletionEnvelope
from flowsynth.core.types import (
    CompletionTimeout,
    EvaluationFailure,
    GenerationFailure,
    NodeStatus,
    ParseFailure,
)
from flowsynth.loop.evaluator import Evaluator
from flowsynth.loop.generator import Generator
from flowsynth.loop.models import Candidate, CreatorOutput, JudgeOutput
from flowsynth.loop.orchestrator import Orchestrator


TASK_SPEC = {"name": "Resume Builder", "output_schema": {"name": "string", "skills": ["string"]}}
COLLECTED = {"name": "Jane Smith", "skills": ["Python", "SQL"]}


# ============================================================================
# Mock Components
# ============================================================================

class MockCompletionService(ICompletionService):
    """Returns scripted envelopes in order; Exceptions in the script are raised."""

    def __init__(self, responses=None, delay: float = 0.0):
        self.responses = list(responses or [])
        self.delay = delay
        self.requests = []

    async def complete(self, request):
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        response = self.responses.pop(0) if self.responses else {}
        if isinstance(response, Exception):
            raise response
        return response


def creator_payload(**overrides):
    payload = {
        "title": "Jane Smith - Data Engineer",
        "summary": "Resume for Jane Smith.",
        "result_json": json.dumps({"name": "Jane Smith", "skills": ["Python", "SQL"]}),
        "html_content": "<h1>Jane Smith</h1>",
        "confidence": 8,
        "notes": "All provided data used.",
    }
    payload.update(overrides)
    return payload


def judge_payload(**overrides):
    payload = {
        "approved": True,
        "score": 9,
        "accuracy_score": 10,
        "completeness_score": 8,
        "formatting_score": 9,
        "issues_json": json.dumps(["Skills list lacks proficiency levels"]),
        "feedback": "Add proficiency levels to skills.",
    }
    payload.update(overrides)
    return payload


def make_candidate(**overrides):
    fields = {
        "title": "Jane Smith - Data Engineer",
        "summary": "Resume for Jane Smith.",
        "structured_data": {"name": "Jane Smith"},
        "rendered_output": "<h1>Jane Smith</h1>",
        "confidence": 8,
        "notes": "",
        "iteration": 1,
    }
    fields.update(overrides)
    return Candidate(**fields)


# ============================================================================
# Generator Tests
# ============================================================================

class TestGenerator:
    """Tests for the creator agent."""

    @pytest.mark.asyncio
    async def test_generate_from_final_output(self):
        service = MockCompletionService([{"final_output": creator_payload()}])
        generator = Generator(service)

        candidate = await generator.generate(TASK_SPEC, COLLECTED, None, 1)

        assert candidate.title == "Jane Smith - Data Engineer"
        assert candidate.structured_data == {"name": "Jane Smith", "skills": ["Python", "SQL"]}
        assert candidate.rendered_output == "<h1>Jane Smith</h1>"
        assert candidate.confidence == 8
        assert candidate.iteration == 1
        assert generator.metrics.status == NodeStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_request_carries_instructions_schema_and_data(self):
        service = MockCompletionService([{"final_output": creator_payload()}])
        generator = Generator(service)

        await generator.generate(TASK_SPEC, COLLECTED, None, 1)

        request = service.requests[0]
        assert request.output_schema is CreatorOutput
        assert "Result Creator" in request.instructions
        prompt = request.messages[0].content
        assert "Resume Builder" in prompt
        assert "Jane Smith" in prompt
        assert "This is iteration 1" in prompt
        assert "Judge Feedback" not in prompt

    @pytest.mark.asyncio
    async def test_feedback_is_embedded_on_refinement(self):
        service = MockCompletionService([{"final_output": creator_payload()}])
        generator = Generator(service)

        await generator.generate(TASK_SPEC, COLLECTED, "1. Email missing from header", 2)

        prompt = service.requests[0].messages[0].content
        assert "Judge Feedback (Iteration 2)" in prompt
        assert "1. Email missing from header" in prompt
        assert "accurate to the collected data" in prompt

    @pytest.mark.asyncio
    async def test_fallback_to_text_envelope(self):
        text = "```json\n" + json.dumps(creator_payload(title="From text")) + "\n```"
        service = MockCompletionService([CompletionEnvelope.from_text(text)])

        candidate = await Generator(service).generate(TASK_SPEC, COLLECTED)

        assert candidate.title == "From text"

    @pytest.mark.asyncio
    async def test_malformed_result_json_degrades_to_empty(self):
        service = MockCompletionService([
            {"final_output": creator_payload(result_json="{not valid json")}
        ])
        generator = Generator(service)

        candidate = await generator.generate(TASK_SPEC, COLLECTED)

        assert candidate.structured_data == {}
        assert candidate.title == "Jane Smith - Data Engineer"
        assert any("result_json" in w for w in generator.metrics.warnings)

    @pytest.mark.asyncio
    async def test_result_json_as_object_is_accepted(self):
        service = MockCompletionService([
            {"final_output": creator_payload(result_json={"name": "Jane Smith"})}
        ])

        candidate = await Generator(service).generate(TASK_SPEC, COLLECTED)

        assert candidate.structured_data == {"name": "Jane Smith"}

    @pytest.mark.asyncio
    async def test_confidence_is_clamped_and_defaulted(self):
        service = MockCompletionService([
            {"final_output": creator_payload(confidence=14)},
            {"final_output": creator_payload(confidence="high")},
            {"final_output": creator_payload(confidence="7.5")},
        ])
        generator = Generator(service)

        assert (await generator.generate(TASK_SPEC, COLLECTED)).confidence == 10
        assert (await generator.generate(TASK_SPEC, COLLECTED)).confidence == 1
        assert (await generator.generate(TASK_SPEC, COLLECTED)).confidence == 7.5

    @pytest.mark.asyncio
    async def test_non_finite_confidence_defaults_to_one(self):
        service = MockCompletionService([
            {"final_output": creator_payload(confidence=float("nan"))},
            {"final_output": creator_payload(confidence="inf")},
        ])
        generator = Generator(service)

        assert (await generator.generate(TASK_SPEC, COLLECTED)).confidence == 1
        assert (await generator.generate(TASK_SPEC, COLLECTED)).confidence == 1
        assert any("confidence" in w for w in generator.metrics.warnings)

    @pytest.mark.asyncio
    async def test_missing_text_fields_default_to_empty(self):
        service = MockCompletionService([{"final_output": {"confidence": 5}}])

        candidate = await Generator(service).generate(TASK_SPEC, COLLECTED)

        assert candidate.title == ""
        assert candidate.rendered_output == ""
        assert candidate.structured_data == {}

    @pytest.mark.asyncio
    async def test_no_payload_raises_parse_failure(self):
        service = MockCompletionService([{"final_output": "Sorry, I cannot help with that."}])
        generator = Generator(service)

        with pytest.raises(ParseFailure):
            await generator.generate(TASK_SPEC, COLLECTED)

        assert generator.metrics.status == NodeStatus.FAILED

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        service = MockCompletionService([ConnectionError("connection reset")])

        with pytest.raises(GenerationFailure, match="connection reset") as exc_info:
            await Generator(service).generate(TASK_SPEC, COLLECTED, None, 3)

        assert exc_info.value.iteration == 3
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.asyncio
    async def test_timeout_wrapped(self):
        service = MockCompletionService([{"final_output": creator_payload()}], delay=0.5)

        with pytest.raises(GenerationFailure) as exc_info:
            await Generator(service, timeout=0.01).generate(TASK_SPEC, COLLECTED)

        assert isinstance(exc_info.value.__cause__, CompletionTimeout)

    @pytest.mark.asyncio
    async def test_call_timeout_override(self):
        service = MockCompletionService([{"final_output": creator_payload()}], delay=0.05)
        generator = Generator(service, timeout=0.001)

        candidate = await generator.generate(TASK_SPEC, COLLECTED, timeout=5)

        assert candidate.title


# ============================================================================
# Evaluator Tests
# ============================================================================

class TestEvaluator:
    """Tests for the judge agent."""

    @pytest.mark.asyncio
    async def test_evaluate_parses_scores_and_issues(self):
        service = MockCompletionService([{"final_output": judge_payload()}])

        evaluation = await Evaluator(service).evaluate(TASK_SPEC, COLLECTED, make_candidate(), 2)

        assert evaluation.approved is True
        assert evaluation.score == 9
        assert evaluation.sub_scores.accuracy == 10
        assert evaluation.sub_scores.completeness == 8
        assert evaluation.sub_scores.formatting == 9
        assert evaluation.issues == ["Skills list lacks proficiency levels"]
        assert evaluation.feedback == "Add proficiency levels to skills."
        assert evaluation.iteration == 2

    @pytest.mark.asyncio
    async def test_request_includes_candidate(self):
        service = MockCompletionService([{"final_output": judge_payload()}])

        await Evaluator(service).evaluate(TASK_SPEC, COLLECTED, make_candidate(), 1)

        request = service.requests[0]
        assert request.output_schema is JudgeOutput
        prompt = request.messages[0].content
        assert "<h1>Jane Smith</h1>" in prompt
        assert "Generated Result (Iteration 1)" in prompt

    @pytest.mark.asyncio
    async def test_approval_is_independent_of_score(self):
        service = MockCompletionService([
            {"final_output": judge_payload(approved=False, score=9.5)}
        ])

        evaluation = await Evaluator(service).evaluate(TASK_SPEC, COLLECTED, make_candidate())

        assert evaluation.approved is False
        assert evaluation.score == 9.5

    @pytest.mark.asyncio
    async def test_string_approval_and_out_of_range_scores(self):
        service = MockCompletionService([
            {"final_output": judge_payload(approved="true", score=12, formatting_score=-1)}
        ])

        evaluation = await Evaluator(service).evaluate(TASK_SPEC, COLLECTED, make_candidate())

        assert evaluation.approved is True
        assert evaluation.score == 10
        assert evaluation.sub_scores.formatting == 0

    @pytest.mark.asyncio
    async def test_malformed_issues_degrade_to_empty(self):
        service = MockCompletionService([
            {"final_output": judge_payload(issues_json="[unterminated")}
        ])
        evaluator = Evaluator(service)

        evaluation = await evaluator.evaluate(TASK_SPEC, COLLECTED, make_candidate())

        assert evaluation.issues == []
        assert any("issues_json" in w for w in evaluator.metrics.warnings)

    @pytest.mark.asyncio
    async def test_issues_list_accepted_directly(self):
        service = MockCompletionService([
            {"final_output": judge_payload(issues_json=["Missing email", "Wrong year"])}
        ])

        evaluation = await Evaluator(service).evaluate(TASK_SPEC, COLLECTED, make_candidate())

        assert evaluation.issues == ["Missing email", "Wrong year"]

    @pytest.mark.asyncio
    async def test_missing_scores_default_to_zero(self):
        service = MockCompletionService([{"final_output": {"approved": False, "feedback": "Redo"}}])

        evaluation = await Evaluator(service).evaluate(TASK_SPEC, COLLECTED, make_candidate())

        assert evaluation.score == 0
        assert evaluation.sub_scores.accuracy == 0
        assert evaluation.issues == []

    @pytest.mark.asyncio
    async def test_no_payload_raises_parse_failure(self):
        service = MockCompletionService([{}])

        with pytest.raises(ParseFailure):
            await Evaluator(service).evaluate(TASK_SPEC, COLLECTED, make_candidate())

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self):
        service = MockCompletionService([RuntimeError("rate limited")])

        with pytest.raises(EvaluationFailure, match="rate limited"):
            await Evaluator(service).evaluate(TASK_SPEC, COLLECTED, make_candidate(), 2)

    @pytest.mark.asyncio
    async def test_nan_scores_fall_back_to_zero(self):
        # bare NaN is accepted by json.loads, "nan" by float()
        text = json.dumps(judge_payload(accuracy_score="nan")).replace('"score": 9', '"score": NaN')
        service = MockCompletionService([CompletionEnvelope.from_text(text)])
        evaluator = Evaluator(service)

        evaluation = await evaluator.evaluate(TASK_SPEC, COLLECTED, make_candidate())

        assert evaluation.score == 0
        assert evaluation.sub_scores.accuracy == 0
        assert evaluation.sub_scores.completeness == 8
        assert any(w.startswith("Missing or non-numeric score") for w in evaluator.metrics.warnings)
        assert any("accuracy_score" in w for w in evaluator.metrics.warnings)

    @pytest.mark.asyncio
    async def test_nan_score_is_not_accepted_by_the_loop(self):
        text = json.dumps(judge_payload(approved=True)).replace('"score": 9', '"score": NaN')
        service = MockCompletionService([
            {"final_output": creator_payload()},
            CompletionEnvelope.from_text(text),
        ])
        orchestrator = Orchestrator(Generator(service), Evaluator(service))

        result = await orchestrator.orchestrate(TASK_SPEC, COLLECTED, {"max_iterations": 1})

        assert not result.approved
        assert result.quality_score == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("raw, expected", [(1, True), (0, False), (1.0, True)])
    async def test_numeric_approval_flag(self, raw, expected):
        service = MockCompletionService([{"final_output": judge_payload(approved=raw)}])
        evaluator = Evaluator(service)

        evaluation = await evaluator.evaluate(TASK_SPEC, COLLECTED, make_candidate())

        assert evaluation.approved is expected
        assert not any("approved" in w for w in evaluator.metrics.warnings)

    @pytest.mark.asyncio
    async def test_other_numeric_approval_is_rejected(self):
        service = MockCompletionService([{"final_output": judge_payload(approved=7)}])
        evaluator = Evaluator(service)

        evaluation = await evaluator.evaluate(TASK_SPEC, COLLECTED, make_candidate())

        assert evaluation.approved is False
        assert any("approved" in w for w in evaluator.metrics.warnings)
