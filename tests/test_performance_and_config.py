from __future__ import annotations

import pytest

from atelier_engine.config import EngineConfig
from atelier_engine.runs.performance import PerformanceMonitor


def test_performance_mode_triggers_once_on_slow_mean() -> None:
    triggered: list[float] = []
    monitor = PerformanceMonitor(on_performance_mode=triggered.append)
    monitor.track(1000, True)
    assert not monitor.performance_mode
    assert monitor.context_size_cap() is None
    assert monitor.max_tokens(1500) == 1500

    monitor.track(12000, True)
    monitor.track(9000, False)

    assert monitor.performance_mode
    assert len(triggered) == 1
    assert triggered[0] == pytest.approx(6500.0)
    assert monitor.context_size_cap() == 6
    assert monitor.max_tokens(1500) == 800
    assert monitor.success_rate() == pytest.approx(2 / 3)


def test_config_from_env(monkeypatch) -> None:
    monkeypatch.setenv("ATELIER_MODE", "math")
    monkeypatch.setenv("ATELIER_MAX_TOKENS", "900")
    monkeypatch.setenv("ATELIER_AUDIO", "0")
    monkeypatch.delenv("ATELIER_DRYRUN", raising=False)

    config = EngineConfig.from_env()

    assert config.mode == "math"
    assert config.max_tokens == 900
    assert config.audio_enabled is False
    assert config.text_provider == "venice"
    assert config.generators == ("venice", "openai")


def test_config_dryrun_routes_every_capability(monkeypatch) -> None:
    monkeypatch.delenv("ATELIER_MODE", raising=False)
    config = EngineConfig.from_env(dryrun=True)
    assert config.dryrun
    assert config.generators == ("dryrun",)
    assert {config.text_provider, config.editor, config.upscaler, config.speech_provider} == {"dryrun"}


def test_config_rejects_unknown_mode(monkeypatch) -> None:
    monkeypatch.setenv("ATELIER_MODE", "poetry")
    with pytest.raises(ValueError):
        EngineConfig.from_env()
