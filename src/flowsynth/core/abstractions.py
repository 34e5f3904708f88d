"""
Core Abstractions

Interfaces the synthesis loop depends on, so agents never bind to a concrete
completion backend or a particular response envelope layout.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional


# ============================================================================
# Completion Service (Dependency Inversion Principle)
# ============================================================================

class ICompletionService(ABC):
    """
    Abstract interface for the external completion capability.

    A request carries an instruction set, the target output shape and the
    conversation turns. The response is an implementation-defined envelope;
    callers locate the structured payload in it with payload extractors.
    """

    @abstractmethod
    async def complete(self, request: Any) -> Any:
        """
        Run one completion.

        Args:
            request: CompletionRequest

        Returns:
            Response envelope (mapping or object)
        """
        pass


# ============================================================================
# Payload Extraction Strategy (Open/Closed Principle)
# ============================================================================

class IPayloadExtractor(ABC):
    """
    Strategy interface for locating a structured payload in an envelope.

    Each extractor knows one place a payload can live. Extractors are tried
    in order and the first one that returns a dict wins, so new envelope
    layouts are supported by adding a strategy, not by editing callers.
    """

    @abstractmethod
    def extract(self, envelope: Any) -> Optional[Dict[str, Any]]:
        """
        Look for a payload.

        Args:
            envelope: Completion response envelope

        Returns:
            Payload dict, or None if this strategy found nothing parseable
        """
        pass

    @property
    @abstractmethod
    def name(self) -> str:
        """Strategy identifier."""
        pass
