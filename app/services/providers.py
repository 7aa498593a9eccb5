"""LLM provider availability, read from the environment on each call."""

import os
from dataclasses import dataclass
from typing import List, Tuple


@dataclass(frozen=True)
class ProviderDefinition:
    name: str
    required_env: Tuple[str, ...]
    models_env: str


PROVIDER_DEFINITIONS: List[ProviderDefinition] = [
    ProviderDefinition("openai", ("OPENAI_API_KEY",), "OPENAI_MODELS"),
    ProviderDefinition("anthropic", ("ANTHROPIC_API_KEY",), "ANTHROPIC_MODELS"),
    ProviderDefinition("gemini", ("GEMINI_API_KEY",), "GEMINI_MODELS"),
    ProviderDefinition("mistral", ("MISTRAL_API_KEY",), "MISTRAL_MODELS"),
    ProviderDefinition(
        "watsonx",
        ("WATSONX_API_KEY", "WATSONX_URL", "WATSONX_PROJECT_ID"),
        "WATSONX_MODELS",
    ),
]


def parse_models(env_name: str) -> List[str]:
    raw = os.getenv(env_name, "").strip()
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


def is_configured(definition: ProviderDefinition) -> bool:
    """Every required variable must be set to a non-blank value."""
    return all(os.getenv(name, "").strip() for name in definition.required_env)


def list_providers() -> dict:
    """{name: {configured, models}} for each known provider, in table order."""
    return {
        definition.name: {
            "configured": is_configured(definition),
            "models": parse_models(definition.models_env),
        }
        for definition in PROVIDER_DEFINITIONS
    }
