"""
Provider clients for the completion service.

Each client wraps one vendor SDK behind ``LLMClient.generate`` and asks the
provider for a JSON reply where the API supports it. SDKs are optional
extras and are imported when a client is constructed.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Literal, Optional
import importlib
import os


DEFAULT_MAX_TOKENS = 4096

Provider = Literal["openai", "anthropic", "ollama"]


def _require(module: str, extra: str) -> Any:
    """Import an optional SDK or explain which extra provides it."""
    try:
        return importlib.import_module(module)
    except ImportError as e:
        raise ImportError(f"{module} is not installed. Install with: pip install 'flowsynth[{extra}]'") from e


class LLMClient(ABC):
    """Synchronous text-in, text-out model client.

    ``invoke_llm`` runs ``generate`` in an executor so the event loop stays
    free while the provider works.
    """

    model: str
    json_mode: bool = True

    @abstractmethod
    def generate(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> str:
        """Return the model's reply text for one system/user exchange."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r})"


class OpenAIClient(LLMClient):
    """Chat Completions API. JSON mode sets ``response_format=json_object``."""

    def __init__(
        self,
        model: str = "gpt-4o",
        api_key: Optional[str] = None,
        json_mode: bool = True,
        request_timeout: Optional[float] = None,
    ):
        openai = _require("openai", "openai")
        self.model = model
        self.json_mode = json_mode
        client_kwargs: Dict[str, Any] = {"api_key": api_key or os.getenv("OPENAI_API_KEY")}
        if request_timeout is not None:
            client_kwargs["timeout"] = request_timeout
        self.client = openai.OpenAI(**client_kwargs)

    def generate(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> str:
        messages: List[Dict[str, str]] = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        if self.json_mode:
            kwargs.setdefault("response_format", {"type": "json_object"})

        completion = self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            temperature=temperature,
            max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
            **kwargs,
        )
        # content is None when the model refuses
        return completion.choices[0].message.content or ""


class AnthropicClient(LLMClient):
    """Messages API. Claude has no JSON mode; the system prompt carries the schema."""

    json_mode = False

    def __init__(
        self,
        model: str = "claude-3-5-sonnet-20241022",
        api_key: Optional[str] = None,
        request_timeout: Optional[float] = None,
    ):
        anthropic = _require("anthropic", "anthropic")
        self.model = model
        client_kwargs: Dict[str, Any] = {"api_key": api_key or os.getenv("ANTHROPIC_API_KEY")}
        if request_timeout is not None:
            client_kwargs["timeout"] = request_timeout
        self.client = anthropic.Anthropic(**client_kwargs)

    def generate(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> str:
        message = self.client.messages.create(
            model=self.model,
            system=system,
            messages=[{"role": "user", "content": user}],
            temperature=temperature,
            max_tokens=max_tokens or DEFAULT_MAX_TOKENS,
            **kwargs,
        )
        text_blocks = [block.text for block in message.content if getattr(block, "type", "") == "text"]
        return "".join(text_blocks)


class OllamaClient(LLMClient):
    """Local Ollama server, ``format="json"`` when JSON mode is on."""

    def __init__(
        self,
        model: str = "qwen2.5:14b",
        base_url: Optional[str] = None,
        json_mode: bool = True,
        request_timeout: Optional[float] = None,
    ):
        ollama = _require("ollama", "ollama")
        self.model = model
        self.json_mode = json_mode
        host = base_url or os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
        client_kwargs: Dict[str, Any] = {"host": host}
        if request_timeout is not None:
            client_kwargs["timeout"] = request_timeout
        self.client = ollama.Client(**client_kwargs)

    def generate(
        self,
        system: str,
        user: str,
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        **kwargs,
    ) -> str:
        options: Dict[str, Any] = {"temperature": temperature}
        if max_tokens is not None:
            options["num_predict"] = max_tokens
        options.update(kwargs.pop("options", {}))
        if self.json_mode:
            kwargs.setdefault("format", "json")

        reply = self.client.generate(
            model=self.model,
            system=system,
            prompt=user,
            options=options,
            stream=False,
            **kwargs,
        )
        return reply["response"]


# ============================================================
# Factory
# ============================================================

DEFAULT_MODELS: Dict[str, str] = {
    "openai": "gpt-4o",
    "anthropic": "claude-3-5-sonnet-20241022",
    "ollama": "qwen2.5:14b",
}

_CLIENTS = {
    "openai": OpenAIClient,
    "anthropic": AnthropicClient,
    "ollama": OllamaClient,
}


def create_llm_client(
    provider: Provider = "openai",
    model: Optional[str] = None,
    **kwargs,
) -> LLMClient:
    """Build the client for ``provider``, using its default model when none is given.

    Usage:
        llm = create_llm_client(provider="ollama", base_url="http://gpu-box:11434")
        service = ChatCompletionService(llm)
    """
    key = provider.lower().strip()
    if key not in _CLIENTS:
        raise ValueError(f"Unknown provider: {provider} (expected one of {', '.join(_CLIENTS)})")
    return _CLIENTS[key](model=model or DEFAULT_MODELS[key], **kwargs)
