# ─────────────────────────────────────────────────────────────────────────────
# Provider Protocol — runtime_checkable interface for LLM adapters
# ─────────────────────────────────────────────────────────────────────────────
# The pipeline only depends on this Protocol, so tests swap in a fake and the
# OpenAI adapter can be replaced without touching the admission/caching code.
# ─────────────────────────────────────────────────────────────────────────────

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass(frozen=True)
class CompletionParams:
    """Per-endpoint sampling parameters (configured, not hardwired)."""

    temperature: float
    max_tokens: int


@dataclass(frozen=True)
class PromptSpec:
    system: str
    user: str
    params: CompletionParams


@dataclass(frozen=True)
class Completion:
    """Raw provider text plus usage; parsing happens in the resolver."""

    text: str
    model: str
    total_tokens: int | None = None


@runtime_checkable
class AdCopyProvider(Protocol):
    """Generates ad copy and grades ads from a prompt spec."""

    @property
    def name(self) -> str: ...

    async def generate(self, spec: PromptSpec) -> Completion: ...

    async def analyze(self, spec: PromptSpec) -> Completion: ...

    async def close(self) -> None: ...
