"""Ordered strategy execution shared by every media operation.

A strategy is one concrete request shape against one provider. Strategies
run strictly in order; the first success wins. When every strategy fails the
caller receives a single `FallbackExhausted` carrying each attempt, so the
whole chain is reported once with one aggregate category.
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Sequence

from ..errors import ErrorCategory, aggregate_category, categorize
from ..providers.base import ProviderResponse


@dataclass(frozen=True)
class Strategy:
    name: str
    provider: str
    parameters: Mapping[str, Any]
    call: Callable[[], ProviderResponse]


@dataclass
class PipelineAttempt:
    strategy: str
    provider: str
    parameters: Mapping[str, Any]
    outcome: str
    latency_ms: float
    category: ErrorCategory | None = None
    error: str | None = None


@dataclass
class FallbackResult:
    response: ProviderResponse
    strategy: Strategy
    attempts: list[PipelineAttempt] = field(default_factory=list)


class FallbackExhausted(RuntimeError):
    def __init__(self, operation: str, attempts: Sequence[PipelineAttempt]) -> None:
        self.operation = operation
        self.attempts = list(attempts)
        self.category = aggregate_category(
            attempt.category for attempt in self.attempts if attempt.category is not None
        )
        detail = "; ".join(f"{attempt.strategy}: {attempt.error}" for attempt in self.attempts)
        super().__init__(f"All {len(self.attempts)} {operation} attempts failed ({detail})")


AttemptListener = Callable[[PipelineAttempt], None]


def run_with_fallback(
    operation: str,
    strategies: Sequence[Strategy],
    *,
    on_attempt: AttemptListener | None = None,
) -> FallbackResult:
    attempts: list[PipelineAttempt] = []
    for strategy in strategies:
        start = time.monotonic()
        try:
            response = strategy.call()
        except Exception as exc:
            attempt = PipelineAttempt(
                strategy=strategy.name,
                provider=strategy.provider,
                parameters=dict(strategy.parameters),
                outcome="failed",
                latency_ms=(time.monotonic() - start) * 1000.0,
                category=categorize(exc),
                error=str(exc),
            )
            attempts.append(attempt)
            if on_attempt is not None:
                on_attempt(attempt)
            continue
        attempt = PipelineAttempt(
            strategy=strategy.name,
            provider=strategy.provider,
            parameters=dict(strategy.parameters),
            outcome="success",
            latency_ms=(time.monotonic() - start) * 1000.0,
        )
        attempts.append(attempt)
        if on_attempt is not None:
            on_attempt(attempt)
        return FallbackResult(response=response, strategy=strategy, attempts=attempts)
    raise FallbackExhausted(operation, attempts)
