"""LLM integration for optional vintage narratives.

Narratives are descriptive only; they never affect scores.
"""

from src.shared.llm.narrative import (
    LLMNarrator,
    TemplateNarrator,
    VintageNarrator,
    create_narrator,
)
from src.shared.llm.openrouter import OpenRouterClient, OpenRouterConfig, create_openrouter_client

__all__ = [
    # OpenRouter client
    "OpenRouterClient",
    "OpenRouterConfig",
    "create_openrouter_client",
    # Narrators
    "VintageNarrator",
    "TemplateNarrator",
    "LLMNarrator",
    "create_narrator",
]
