"""
Result Orchestrator

Drives the creator/judge loop as a LangGraph state machine:

  GENERATING -> EVALUATING -> APPROVED                  (terminal)
                           -> REFINING -> GENERATING
                           -> MAX_ITER_REACHED          (terminal)
  any failed iteration     -> GENERATING | fall back to best | FAILED

Every run gets its own state dict; the compiled graph holds no run data, so
one Orchestrator can serve concurrent runs.
"""

import logging
import time
from typing import Any, Dict, List, Literal, Mapping, Optional, TypedDict, Union

from langgraph.graph import END, StateGraph

from ..core.config import SynthesisSettings, load_settings
from ..core.completion import ChatCompletionService
from ..core.llm_client import create_llm_client
from ..core.metrics import MetricsCollector
from ..core.types import OrchestrationCancelled, RunStatus, TerminalFailure
from .evaluator import Evaluator
from .feedback import format_feedback
from .generator import Generator
from .models import (
    Candidate,
    EvaluationResult,
    IterationRecord,
    OrchestrationOptions,
    OrchestrationResult,
)

logger = logging.getLogger(__name__)

OptionsLike = Union[OrchestrationOptions, Mapping[str, Any], None]


class RunState(TypedDict):
    """State for one orchestration run."""
    task_spec: Any
    collected_input: Any
    options: OrchestrationOptions
    metrics: MetricsCollector
    iteration: int
    status: RunStatus
    feedback: Optional[str]
    candidate: Optional[Candidate]
    evaluation: Optional[EvaluationResult]
    error: Optional[BaseException]
    best_candidate: Optional[Candidate]
    best_evaluation: Optional[EvaluationResult]
    best_score: Optional[float]
    history: List[IterationRecord]


def is_accepted(evaluation: EvaluationResult, approval_threshold: float) -> bool:
    """The judge approved it AND the score clears the threshold."""
    return evaluation.approved and evaluation.score >= approval_threshold


class Orchestrator:
    """
    Bounded generate-evaluate-refine loop over a Generator and an Evaluator.

    Example:
        orchestrator = Orchestrator(Generator(service), Evaluator(service))
        result = await orchestrator.orchestrate(flow_config, collected_data)
    """

    def __init__(
        self,
        generator: Generator,
        evaluator: Evaluator,
        default_options: OptionsLike = None,
    ):
        """
        Args:
            generator: Creator agent
            evaluator: Judge agent
            default_options: Options used when a run passes none
        """
        self.generator = generator
        self.evaluator = evaluator
        self.default_options = self._coerce_options(default_options, OrchestrationOptions())
        self.graph = self._build_graph()

    # ------------------------------------------------------------------
    # Graph nodes
    # ------------------------------------------------------------------

    async def _generate_node(self, state: RunState) -> Dict[str, Any]:
        iteration = state["iteration"] + 1
        options = state["options"]

        if options.cancel_event is not None and options.cancel_event.is_set():
            logger.info(f"[Orchestrator] Cancelled before iteration {iteration}")
            return {"status": RunStatus.CANCELLED}

        logger.info(f"[Orchestrator] === Iteration {iteration}/{options.max_iterations} ===")
        start = time.perf_counter()
        try:
            candidate = await self.generator.generate(
                state["task_spec"],
                state["collected_input"],
                state["feedback"],
                iteration,
                timeout=options.call_timeout,
            )
        except Exception as e:
            self._record(state, "generate", start, iteration, e)
            logger.exception(f"[Orchestrator] Error in iteration {iteration}: {e}")
            return {
                "iteration": iteration,
                "status": RunStatus.GENERATING,
                "candidate": None,
                "evaluation": None,
                "error": e,
            }

        self._record(state, "generate", start, iteration)
        return {
            "iteration": iteration,
            "status": RunStatus.EVALUATING,
            "candidate": candidate,
            "evaluation": None,
            "error": None,
        }

    async def _evaluate_node(self, state: RunState) -> Dict[str, Any]:
        iteration = state["iteration"]
        start = time.perf_counter()
        try:
            evaluation = await self.evaluator.evaluate(
                state["task_spec"],
                state["collected_input"],
                state["candidate"],
                iteration,
                timeout=state["options"].call_timeout,
            )
        except Exception as e:
            self._record(state, "evaluate", start, iteration, e)
            logger.exception(f"[Orchestrator] Error in iteration {iteration}: {e}")
            return {"error": e}

        self._record(state, "evaluate", start, iteration)
        return {"evaluation": evaluation}

    def _judge_node(self, state: RunState) -> Dict[str, Any]:
        """Record the iteration, track the best candidate, decide what's next."""
        iteration = state["iteration"]
        options = state["options"]
        candidate = state["candidate"]
        evaluation = state["evaluation"]

        update: Dict[str, Any] = {
            "history": state["history"] + [IterationRecord.success(iteration, candidate, evaluation)],
        }

        best_score = state["best_score"]
        if best_score is None or evaluation.score > best_score:
            logger.info(f"[Orchestrator] New best score {evaluation.score:g} at iteration {iteration}")
            update.update({
                "best_candidate": candidate,
                "best_evaluation": evaluation,
                "best_score": evaluation.score,
            })

        if is_accepted(evaluation, options.approval_threshold):
            logger.info(f"[Orchestrator] Result APPROVED at iteration {iteration}")
            update["status"] = RunStatus.APPROVED
        elif iteration < options.max_iterations:
            update["status"] = RunStatus.REFINING
        else:
            update["status"] = RunStatus.MAX_ITER_REACHED
        return update

    def _refine_node(self, state: RunState) -> Dict[str, Any]:
        logger.info("[Orchestrator] Preparing feedback for next iteration")
        return {
            "feedback": format_feedback(state["evaluation"]),
            "status": RunStatus.GENERATING,
        }

    def _recover_node(self, state: RunState) -> Dict[str, Any]:
        """Record a failed iteration and pick the fail-soft path."""
        iteration = state["iteration"]
        update: Dict[str, Any] = {
            "history": state["history"] + [IterationRecord.failure(iteration, state["error"])],
        }

        if state["best_candidate"] is not None:
            logger.info("[Orchestrator] Using best previous result due to error")
            update["status"] = RunStatus.MAX_ITER_REACHED
        elif iteration < state["options"].max_iterations:
            update["status"] = RunStatus.GENERATING
        else:
            update["status"] = RunStatus.FAILED
        return update

    # ------------------------------------------------------------------
    # Routing
    # ------------------------------------------------------------------

    @staticmethod
    def _route_after_generate(state: RunState) -> Literal["evaluate", "recover", "stop"]:
        if state["status"] == RunStatus.CANCELLED:
            return "stop"
        return "recover" if state["error"] is not None else "evaluate"

    @staticmethod
    def _route_after_evaluate(state: RunState) -> Literal["judge", "recover"]:
        return "recover" if state["error"] is not None else "judge"

    @staticmethod
    def _route_after_judge(state: RunState) -> Literal["refine", "stop"]:
        return "refine" if state["status"] == RunStatus.REFINING else "stop"

    @staticmethod
    def _route_after_recover(state: RunState) -> Literal["generate", "stop"]:
        return "generate" if state["status"] == RunStatus.GENERATING else "stop"

    def _build_graph(self):
        builder = StateGraph(RunState)
        builder.add_node("generate", self._generate_node)
        builder.add_node("evaluate", self._evaluate_node)
        builder.add_node("judge", self._judge_node)
        builder.add_node("refine", self._refine_node)
        builder.add_node("recover", self._recover_node)

        builder.set_entry_point("generate")
        builder.add_conditional_edges(
            "generate",
            self._route_after_generate,
            {"evaluate": "evaluate", "recover": "recover", "stop": END},
        )
        builder.add_conditional_edges(
            "evaluate",
            self._route_after_evaluate,
            {"judge": "judge", "recover": "recover"},
        )
        builder.add_conditional_edges(
            "judge",
            self._route_after_judge,
            {"refine": "refine", "stop": END},
        )
        builder.add_edge("refine", "generate")
        builder.add_conditional_edges(
            "recover",
            self._route_after_recover,
            {"generate": "generate", "stop": END},
        )
        return builder.compile()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def orchestrate(
        self,
        task_spec: Any,
        collected_input: Any,
        options: OptionsLike = None,
    ) -> OrchestrationResult:
        """
        Run the loop until a candidate is approved or iterations run out.

        Args:
            task_spec: Opaque description of the desired output
            collected_input: Facts the result must be built from
            options: OrchestrationOptions or a dict of its fields

        Returns:
            OrchestrationResult, approved or best-effort

        Raises:
            TerminalFailure: If no candidate was produced in any iteration
            OrchestrationCancelled: If the cancel event was set
            pydantic.ValidationError: If options are invalid
        """
        if collected_input is None:
            raise ValueError("collected_input is required")

        options = self._coerce_options(options, self.default_options)
        metrics = MetricsCollector()
        metrics.start()

        logger.info("[Orchestrator] Starting creator/judge result generation")
        logger.info(
            f"[Orchestrator] Max iterations: {options.max_iterations}, "
            f"approval threshold: {options.approval_threshold:g}"
        )

        initial: RunState = {
            "task_spec": task_spec,
            "collected_input": collected_input,
            "options": options,
            "metrics": metrics,
            "iteration": 0,
            "status": RunStatus.INIT,
            "feedback": None,
            "candidate": None,
            "evaluation": None,
            "error": None,
            "best_candidate": None,
            "best_evaluation": None,
            "best_score": None,
            "history": [],
        }
        # generate, evaluate, judge, refine per iteration
        config = {"recursion_limit": 4 * options.max_iterations + 4}
        final = await self.graph.ainvoke(initial, config=config)
        metrics.stop()

        return self._build_result(final, options, metrics)

    async def quick_generate(self, task_spec: Any, collected_input: Any) -> OrchestrationResult:
        """
        Single generation pass with no judge.

        Returns:
            Approved OrchestrationResult scored by the creator's own confidence
        """
        if collected_input is None:
            raise ValueError("collected_input is required")

        logger.info("[Orchestrator] Quick generation (single iteration, no judge)")
        metrics = MetricsCollector()
        metrics.start()
        start = time.perf_counter()
        try:
            candidate = await self.generator.generate(
                task_spec,
                collected_input,
                None,
                1,
                timeout=self.default_options.call_timeout,
            )
        except Exception as e:
            metrics.record("generate", (time.perf_counter() - start) * 1000, "error", {"error": str(e)})
            raise
        else:
            metrics.record("generate", (time.perf_counter() - start) * 1000, "success", {"iteration": 1})
        finally:
            metrics.stop()

        return OrchestrationResult(
            success=True,
            approved=True,
            candidate=candidate,
            quality_score=candidate.confidence,
            iterations=1,
            quick_mode=True,
            metrics=metrics.get_summary(),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _coerce_options(options: OptionsLike, defaults: OrchestrationOptions) -> OrchestrationOptions:
        if options is None:
            return defaults
        if isinstance(options, OrchestrationOptions):
            return options
        merged = defaults.model_dump(exclude={"cancel_event"})
        merged["cancel_event"] = defaults.cancel_event
        merged.update(dict(options))
        return OrchestrationOptions(**merged)

    @staticmethod
    def _record(
        state: RunState,
        phase: str,
        start: float,
        iteration: int,
        error: Optional[BaseException] = None,
    ) -> None:
        duration = (time.perf_counter() - start) * 1000
        details: Dict[str, Any] = {"iteration": iteration}
        if error is not None:
            details["error"] = str(error)
        state["metrics"].record(phase, duration, "error" if error else "success", details)

    def _build_result(
        self,
        final: Dict[str, Any],
        options: OrchestrationOptions,
        metrics: MetricsCollector,
    ) -> OrchestrationResult:
        status = final["status"]
        history = final["history"]

        if status == RunStatus.CANCELLED:
            raise OrchestrationCancelled(final["iteration"] + 1, history)

        if status == RunStatus.APPROVED:
            evaluation = final["evaluation"]
            return OrchestrationResult(
                success=True,
                approved=True,
                candidate=final["candidate"],
                quality_score=evaluation.score,
                sub_scores=evaluation.sub_scores,
                iterations=final["iteration"],
                max_iterations_reached=False,
                history=history,
                metrics=metrics.get_summary(),
            )

        best_candidate = final["best_candidate"]
        if best_candidate is None:
            last_error = final["error"]
            logger.error("[Orchestrator] Failed to generate result after all iterations")
            raise TerminalFailure(
                f"Failed to generate result after {options.max_iterations} iterations"
                + (f": {last_error}" if last_error is not None else ""),
                history,
            ) from last_error

        best_score = final["best_score"]
        logger.info(f"[Orchestrator] Max iterations reached, returning best result (score {best_score:g})")
        return OrchestrationResult(
            success=True,
            approved=best_score >= options.approval_threshold,
            candidate=best_candidate,
            quality_score=best_score,
            sub_scores=final["best_evaluation"].sub_scores,
            iterations=options.max_iterations,
            max_iterations_reached=True,
            history=history,
            metrics=metrics.get_summary(),
        )


def create_orchestrator(
    settings: Optional[SynthesisSettings] = None,
    llm: Any = None,
) -> Orchestrator:
    """
    Wire an Orchestrator from configuration.

    Args:
        settings: Settings (loaded from the environment when None)
        llm: LLMClient or LangChain chat model; built from settings when None

    Returns:
        Orchestrator with a shared completion service
    """
    settings = settings or load_settings()
    if llm is None:
        kwargs = {"request_timeout": settings.call_timeout}
        if settings.provider == "ollama":
            kwargs["base_url"] = settings.ollama_base_url
        llm = create_llm_client(provider=settings.provider, model=settings.model, **kwargs)

    service = ChatCompletionService(llm)
    return Orchestrator(
        generator=Generator(
            service,
            timeout=settings.call_timeout,
            temperature=settings.generator_temperature,
        ),
        evaluator=Evaluator(
            service,
            timeout=settings.call_timeout,
            temperature=settings.evaluator_temperature,
        ),
        default_options=OrchestrationOptions(
            max_iterations=settings.max_iterations,
            approval_threshold=settings.approval_threshold,
            call_timeout=settings.call_timeout,
        ),
    )
