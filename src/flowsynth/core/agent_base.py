"""
Completion Agent Base

Shared machinery for agents that call the completion service and read a
structured payload back:
- request construction from a prompt
- per-call timeout
- timing/metrics
- payload location through the extraction strategies

Subclasses build the prompt and turn the payload into their own record.
"""

import asyncio
import json
import logging
import math
import time
from typing import Any, Dict, Optional, Sequence, Type

from langchain_core.messages import HumanMessage
from pydantic import BaseModel

from .abstractions import ICompletionService, IPayloadExtractor
from .completion import CompletionRequest
from .extraction import locate_payload
from .types import CompletionTimeout, NodeMetrics, NodeStatus

logger = logging.getLogger(__name__)


def to_json_block(value: Any) -> str:
    """Pretty-print a value as a fenced JSON block for prompts."""
    return f"```json\n{json.dumps(value, indent=2, default=str, ensure_ascii=False)}\n```"


class CompletionAgent:
    """
    Base for agents backed by the completion service.

    Example:
        class SummaryAgent(CompletionAgent):
            async def summarize(self, text):
                payload = await self.request_payload(f"Summarize: {text}")
                return payload["summary"]
    """

    def __init__(
        self,
        service: ICompletionService,
        name: str,
        instructions: str,
        output_schema: Type[BaseModel],
        extractors: Optional[Sequence[IPayloadExtractor]] = None,
        timeout: Optional[float] = None,
        temperature: Optional[float] = None,
    ):
        """
        Args:
            service: Completion service to call
            name: Agent identifier for logging
            instructions: Instruction set sent with every request
            output_schema: Target output shape
            extractors: Ordered payload extraction strategies
            timeout: Default per-call timeout in seconds (None = no limit)
            temperature: Sampling temperature passed with the request
        """
        self.service = service
        self.name = name
        self.instructions = instructions
        self.output_schema = output_schema
        self.extractors = extractors
        self.timeout = timeout
        self.temperature = temperature
        self.metrics = NodeMetrics(name=name)

    def build_request(self, prompt: str) -> CompletionRequest:
        return CompletionRequest(
            instructions=self.instructions,
            output_schema=self.output_schema,
            messages=[HumanMessage(content=prompt)],
            temperature=self.temperature,
        )

    async def call_service(self, prompt: str, timeout: Optional[float] = None) -> Any:
        """
        Send one request and return the raw envelope.

        Raises:
            CompletionTimeout: If the call exceeded the timeout
        """
        limit = self.timeout if timeout is None else timeout
        request = self.build_request(prompt)
        if limit is None:
            return await self.service.complete(request)
        try:
            return await asyncio.wait_for(self.service.complete(request), timeout=limit)
        except asyncio.TimeoutError:
            raise CompletionTimeout(self.name, limit)

    async def request_payload(
        self,
        prompt: str,
        timeout: Optional[float] = None,
    ) -> Dict[str, Any]:
        """
        Call the service and locate the structured payload.

        Returns:
            Payload dict

        Raises:
            ParseFailure: If no payload could be located
            CompletionTimeout: If the call exceeded the timeout
        """
        start = time.perf_counter()
        self.metrics.status = NodeStatus.RUNNING
        self.metrics.calls += 1
        self.metrics.warnings = []
        self.metrics.error_message = None

        try:
            envelope = await self.call_service(prompt, timeout)
            payload = locate_payload(envelope, self.extractors, source=self.name)
            self.metrics.status = NodeStatus.SUCCESS
            return payload
        except Exception as e:
            self.metrics.status = NodeStatus.FAILED
            self.metrics.error_message = str(e)
            raise
        finally:
            self.metrics.duration_ms = (time.perf_counter() - start) * 1000
            logger.info(f"[{self.name}] Complete ({self.metrics.duration_ms:.1f}ms)")

    def warn(self, message: str) -> None:
        """Log a degraded field and keep it on the call metrics."""
        logger.warning(f"[{self.name}] {message}")
        self.metrics.warnings.append(message)

    def get_metrics(self) -> Dict[str, Any]:
        """Metrics of the most recent call."""
        return self.metrics.to_dict()


# =============================================================================
# FIELD COERCION - lenient readers for payload fields
# =============================================================================

def coerce_number(value: Any) -> Optional[float]:
    """Read a number from a payload field; None if it is not a finite number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    # NaN and infinities parse as floats but are not scores
    return number if math.isfinite(number) else None


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


def coerce_text(value: Any) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
