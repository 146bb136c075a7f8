"""Environment-driven engine configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from .chat.command_registry import MODES
from .chat.context_window import DEFAULT_TOKEN_BUDGET
from .media.pipeline import DEFAULT_STYLE
from .utils import getenv_flag, getenv_float


@dataclass
class EngineConfig:
    mode: str = "general"
    text_model: str = "default"
    image_style: str = DEFAULT_STYLE
    max_tokens: int = 1500
    temperature: float = 0.7
    context_token_budget: int = DEFAULT_TOKEN_BUDGET
    audio_enabled: bool = True
    dryrun: bool = False
    text_provider: str = "venice"
    generators: tuple[str, ...] = ("venice", "openai")
    editor: str = "venice"
    upscaler: str = "venice"
    speech_provider: str = "venice"

    @classmethod
    def from_env(cls, *, dryrun: bool | None = None, mode: str | None = None) -> "EngineConfig":
        use_dryrun = getenv_flag("ATELIER_DRYRUN", False) if dryrun is None else dryrun
        config = cls(
            mode=mode or os.getenv("ATELIER_MODE") or "general",
            text_model=os.getenv("ATELIER_TEXT_MODEL") or "default",
            image_style=os.getenv("ATELIER_IMAGE_STYLE") or DEFAULT_STYLE,
            max_tokens=int(getenv_float("ATELIER_MAX_TOKENS", 1500)),
            temperature=getenv_float("ATELIER_TEMPERATURE", 0.7),
            context_token_budget=int(getenv_float("ATELIER_CONTEXT_TOKENS", DEFAULT_TOKEN_BUDGET)),
            audio_enabled=getenv_flag("ATELIER_AUDIO", True),
            dryrun=use_dryrun,
        )
        if config.mode not in MODES:
            raise ValueError(f"Unknown mode '{config.mode}'. Expected one of: {', '.join(MODES)}.")
        if use_dryrun:
            config.use_dryrun()
        return config

    def use_dryrun(self) -> None:
        self.dryrun = True
        self.text_provider = "dryrun"
        self.generators = ("dryrun",)
        self.editor = "dryrun"
        self.upscaler = "dryrun"
        self.speech_provider = "dryrun"
