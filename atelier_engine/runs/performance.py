"""In-memory latency tracking that degrades chat configuration when slow."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

SLOW_MEAN_LATENCY_MS = 5000.0
PERFORMANCE_CONTEXT_SIZE = 6
PERFORMANCE_MAX_TOKENS = 800


@dataclass(frozen=True)
class PerformanceSample:
    latency_ms: float
    success: bool
    operation: str = "call"


@dataclass
class PerformanceMonitor:
    samples: list[PerformanceSample] = field(default_factory=list)
    performance_mode: bool = False
    on_performance_mode: Callable[[float], None] | None = None

    def track(self, latency_ms: float, success: bool, operation: str = "call") -> PerformanceSample:
        sample = PerformanceSample(latency_ms=float(latency_ms), success=success, operation=operation)
        self.samples.append(sample)
        mean = self.mean_latency_ms()
        if not self.performance_mode and mean > SLOW_MEAN_LATENCY_MS:
            self.performance_mode = True
            if self.on_performance_mode is not None:
                self.on_performance_mode(mean)
        return sample

    def mean_latency_ms(self) -> float:
        if not self.samples:
            return 0.0
        return sum(sample.latency_ms for sample in self.samples) / len(self.samples)

    def success_rate(self) -> float:
        if not self.samples:
            return 1.0
        return sum(1 for sample in self.samples if sample.success) / len(self.samples)

    def context_size_cap(self) -> int | None:
        return PERFORMANCE_CONTEXT_SIZE if self.performance_mode else None

    def max_tokens(self, default: int) -> int:
        return min(default, PERFORMANCE_MAX_TOKENS) if self.performance_mode else default
