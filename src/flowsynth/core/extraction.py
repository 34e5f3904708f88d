"""
Payload Extraction Strategies

Completion envelopes are heterogeneous: depending on the backend and on how
a run ended, the structured output sits in a different place. Each strategy
below checks one location; ``locate_payload`` tries them in order.

Envelope fields are read from mappings or attributes alike, so SDK result
objects, plain dicts and ``CompletionEnvelope`` all work.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel

from .abstractions import IPayloadExtractor
from .json_repair import parse_json_object
from .types import ParseFailure

logger = logging.getLogger(__name__)


def read_field(obj: Any, name: str) -> Any:
    """Read ``name`` from a mapping key or an attribute; None when absent."""
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(name)
    return getattr(obj, name, None)


def coerce_payload(value: Any) -> Optional[Dict[str, Any]]:
    """Turn a candidate payload value into a dict, or None if it is not one."""
    if value is None:
        return None
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, Mapping):
        return dict(value)
    if isinstance(value, str):
        return parse_json_object(value)
    return None


class FinalOutputExtractor(IPayloadExtractor):
    """Primary location: the envelope's final structured output."""

    @property
    def name(self) -> str:
        return "final_output"

    def extract(self, envelope: Any) -> Optional[Dict[str, Any]]:
        return coerce_payload(read_field(envelope, "final_output"))


class CurrentStepExtractor(IPayloadExtractor):
    """Secondary location: the output of the current execution step."""

    STEP_FIELDS = ("current_step", "_current_step")

    @property
    def name(self) -> str:
        return "current_step"

    def _find_step(self, envelope: Any) -> Any:
        state = read_field(envelope, "state")
        for holder in (envelope, state):
            for field_name in self.STEP_FIELDS:
                step = read_field(holder, field_name)
                if step is not None:
                    return step
        return None

    def extract(self, envelope: Any) -> Optional[Dict[str, Any]]:
        step = self._find_step(envelope)
        output = read_field(step, "output")
        if output is None:
            return None
        payload = coerce_payload(output)
        if payload is None and isinstance(output, str):
            logger.warning("[Extraction] current_step output is not parseable JSON")
        return payload


class GeneratedItemsExtractor(IPayloadExtractor):
    """Scan generated message items from the newest backwards."""

    ITEM_TYPE = "message_output_item"

    @property
    def name(self) -> str:
        return "generated_items"

    def extract(self, envelope: Any) -> Optional[Dict[str, Any]]:
        items = read_field(envelope, "generated_items")
        if not isinstance(items, Sequence) or isinstance(items, str):
            return None

        for item in reversed(items):
            if read_field(item, "type") != self.ITEM_TYPE:
                continue
            content = read_field(read_field(item, "raw_item"), "content")
            if not content or not isinstance(content, Sequence):
                continue
            text = read_field(content[0], "text")
            if not text:
                continue
            payload = parse_json_object(text)
            if payload is not None:
                return payload
            logger.warning("[Extraction] Skipping unparseable generated item")
        return None


class ModelResponsesExtractor(IPayloadExtractor):
    """Scan the text segments of the last raw model response."""

    @property
    def name(self) -> str:
        return "model_responses"

    def extract(self, envelope: Any) -> Optional[Dict[str, Any]]:
        responses = read_field(envelope, "model_responses")
        if not responses:
            responses = read_field(read_field(envelope, "state"), "model_responses")
        if not responses or not isinstance(responses, Sequence):
            return None

        segments = read_field(responses[-1], "output")
        if not isinstance(segments, Sequence) or isinstance(segments, str):
            return None

        for segment in segments:
            text = read_field(segment, "text")
            if not text:
                continue
            payload = parse_json_object(text)
            if payload is not None:
                return payload
            logger.warning("[Extraction] Skipping unparseable model response segment")
        return None


DEFAULT_EXTRACTORS: List[IPayloadExtractor] = [
    FinalOutputExtractor(),
    CurrentStepExtractor(),
    GeneratedItemsExtractor(),
    ModelResponsesExtractor(),
]


def locate_payload(
    envelope: Any,
    extractors: Optional[Sequence[IPayloadExtractor]] = None,
    source: str = "completion",
) -> Dict[str, Any]:
    """
    Locate the structured payload in a completion envelope.

    Args:
        envelope: Completion response envelope
        extractors: Ordered strategies (defaults to DEFAULT_EXTRACTORS)
        source: Caller name for logs and the error message

    Returns:
        Payload dict from the first strategy that found one

    Raises:
        ParseFailure: If every strategy came up empty
    """
    extractors = DEFAULT_EXTRACTORS if extractors is None else extractors
    tried = []
    for extractor in extractors:
        tried.append(extractor.name)
        payload = extractor.extract(envelope)
        if payload is not None:
            if len(tried) > 1:
                logger.info(f"[{source}] Payload located via fallback '{extractor.name}'")
            return payload

    logger.error(f"[{source}] No output found in completion response")
    raise ParseFailure(source, tried)
