"""
Configuration

Settings come from the environment, optionally seeded from a .env file.
"""

import os
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator


class SynthesisSettings(BaseModel):
    """Runtime settings for the synthesis loop and its completion backend."""

    provider: Literal["openai", "anthropic", "ollama"] = "openai"
    model: Optional[str] = None
    ollama_base_url: str = "http://localhost:11434"
    max_iterations: int = Field(default=3, ge=1)
    approval_threshold: float = Field(default=8.0, ge=0, le=10)
    call_timeout: Optional[float] = Field(default=120.0, gt=0)
    generator_temperature: float = Field(default=0.7, ge=0, le=2)
    evaluator_temperature: float = Field(default=0.2, ge=0, le=2)

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value):
        return value.lower().strip() if isinstance(value, str) else value

    @field_validator("call_timeout", mode="before")
    @classmethod
    def _disable_timeout(cls, value):
        # "0" or "none" turns the per-call timeout off
        if isinstance(value, str) and value.strip().lower() in ("", "0", "none", "off"):
            return None
        if value == 0:
            return None
        return value


ENV_VARS = {
    "provider": "LLM_PROVIDER",
    "model": "LLM_MODEL",
    "ollama_base_url": "OLLAMA_BASE_URL",
    "max_iterations": "SYNTH_MAX_ITERATIONS",
    "approval_threshold": "SYNTH_APPROVAL_THRESHOLD",
    "call_timeout": "SYNTH_CALL_TIMEOUT",
    "generator_temperature": "SYNTH_GENERATOR_TEMPERATURE",
    "evaluator_temperature": "SYNTH_EVALUATOR_TEMPERATURE",
}


def load_settings(env_file: Optional[str] = None) -> SynthesisSettings:
    """
    Build settings from environment variables.

    Args:
        env_file: Optional .env path; the default lookup is used when None.
            Variables already set in the environment win over the file.

    Returns:
        Validated SynthesisSettings

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value
    """
    load_dotenv(env_file)
    values = {}
    for field_name, env_var in ENV_VARS.items():
        raw = os.getenv(env_var)
        if raw is not None:
            values[field_name] = raw
    return SynthesisSettings(**values)
