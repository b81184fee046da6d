"""LLM providers — Protocol interface, prompt builders and the OpenAI adapter."""

from adlab.providers.openai_provider import OpenAIAdProvider
from adlab.providers.protocol import AdCopyProvider, Completion, CompletionParams, PromptSpec

__all__ = [
    "AdCopyProvider",
    "Completion",
    "CompletionParams",
    "OpenAIAdProvider",
    "PromptSpec",
]
