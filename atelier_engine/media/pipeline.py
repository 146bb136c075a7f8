"""Media operations: generate, enhance, edit, upscale, and photo mode."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Sequence

from ..errors import ErrorCategory, ProviderError
from ..providers.base import EditRequest, ImageRequest, ProviderRegistry, UpscaleRequest
from ..runs.events import EventWriter
from ..runs.performance import PerformanceMonitor
from .artifacts import read_media
from .fallback import (
    FallbackExhausted,
    FallbackResult,
    PipelineAttempt,
    Strategy,
    run_with_fallback,
)
from .params import (
    RELAXED_EDIT,
    STANDARD_EDIT,
    EditParameters,
    clamp_edit,
    edit_parameters_for,
    wants_edit,
    wants_upscale,
)

DEFAULT_STYLE = "Photographic"
NEGATIVE_PROMPT = "blurry, low quality, distorted, amateur, poor composition, low resolution"
PROMPT_SUFFIX = "high quality, professional photography, detailed, sharp focus"
UPSCALE_PROMPT = "enhance quality, improve details, sharpen"


@dataclass
class MediaResult:
    image_ref: str
    operation: str
    strategy: str
    provider: str
    width: int | None = None
    height: int | None = None
    attempts: list[PipelineAttempt] = field(default_factory=list)


@dataclass
class PhotoOutcome:
    image_ref: str
    generated: MediaResult
    applied: str | None = None
    parameters: EditParameters | None = None
    note: str | None = None
    note_category: ErrorCategory | None = None

    @property
    def upscaled(self) -> bool:
        return self.applied == "upscale"


def decorate_prompt(prompt: str, style: str | None) -> str:
    if style:
        return f"{prompt}, {style} style, {PROMPT_SUFFIX}"
    return f"{prompt}, {PROMPT_SUFFIX}"


class MediaPipeline:
    def __init__(
        self,
        registry: ProviderRegistry,
        *,
        out_dir: str,
        events: EventWriter | None = None,
        monitor: PerformanceMonitor | None = None,
        generators: Sequence[str] = ("venice", "openai"),
        editor: str = "venice",
        upscaler: str = "venice",
        style: str = DEFAULT_STYLE,
    ) -> None:
        self.registry = registry
        self.out_dir = out_dir
        self.events = events
        self.monitor = monitor
        self.generators = tuple(generators)
        self.editor = editor
        self.upscaler = upscaler
        self.style = style

    def generate(self, prompt: str, style: str | None = None) -> MediaResult:
        style = style or self.style
        request = ImageRequest(
            prompt=decorate_prompt(prompt, style),
            negative_prompt=NEGATIVE_PROMPT,
            style_preset=style,
            out_dir=self.out_dir,
        )
        strategies = [
            Strategy(
                name=f"generate:{name}",
                provider=name,
                parameters={"width": request.width, "height": request.height, "steps": request.steps},
                call=lambda name=name: self._provider(name, "generate").generate(request),
            )
            for name in self.generators
        ]
        return self._run("generate", strategies)

    def enhance(self, source_ref: str | None, prompt: str) -> MediaResult:
        """Edit, then upscale-with-prompt, then a relaxed edit; nothing further."""
        image = self._source_bytes(source_ref)
        strategies = [
            self._edit_strategy("edit:standard", image, prompt, STANDARD_EDIT),
            Strategy(
                name="upscale:enhance",
                provider=self.upscaler,
                parameters={"scale": 1, "enhance": True},
                call=lambda: self._provider(self.upscaler, "upscale").upscale(
                    UpscaleRequest(image=image, scale=1, enhance=True, enhance_prompt=prompt, out_dir=self.out_dir)
                ),
            ),
            self._edit_strategy("edit:relaxed", image, prompt, RELAXED_EDIT),
        ]
        return self._run("enhance", strategies)

    def edit(self, source_ref: str | None, prompt: str, params: EditParameters | None = None) -> MediaResult:
        image = self._source_bytes(source_ref)
        params = params or edit_parameters_for(prompt)
        return self._run("edit", [self._edit_strategy("edit:heuristic", image, prompt, params)])

    def upscale(self, source_ref: str | None, scale: int = 2, prompt: str = UPSCALE_PROMPT) -> MediaResult:
        image = self._source_bytes(source_ref)
        request = UpscaleRequest(image=image, scale=scale, enhance=True, enhance_prompt=prompt, out_dir=self.out_dir)
        strategy = Strategy(
            name=f"upscale:{scale}x",
            provider=self.upscaler,
            parameters={"scale": scale, "enhance": True},
            call=lambda: self._provider(self.upscaler, "upscale").upscale(request),
        )
        return self._run("upscale", [strategy])

    def photo(self, prompt: str, previous_image: str | None = None, style: str | None = None) -> PhotoOutcome:
        generated = self.generate(prompt, style)
        outcome = PhotoOutcome(image_ref=generated.image_ref, generated=generated)
        if wants_edit(prompt) and previous_image:
            params = edit_parameters_for(prompt)
            outcome.parameters = params
            try:
                edited = self.edit(previous_image, prompt, params)
            except (FallbackExhausted, ProviderError) as exc:
                outcome.note_category = exc.category
                outcome.note = "Generated new image (editing failed)"
            else:
                outcome.image_ref = edited.image_ref
                outcome.applied = "edit"
        elif wants_upscale(prompt):
            try:
                upscaled = self.upscale(generated.image_ref, scale=2)
            except (FallbackExhausted, ProviderError) as exc:
                outcome.note_category = exc.category
                outcome.note = "Original image generated (upscaling failed)"
            else:
                outcome.image_ref = upscaled.image_ref
                outcome.applied = "upscale"
        return outcome

    def _edit_strategy(self, name: str, image: bytes, prompt: str, params: EditParameters) -> Strategy:
        params = clamp_edit(params)
        request = EditRequest(
            prompt=prompt,
            image=image,
            strength=params.strength,
            guidance_scale=params.guidance_scale,
            num_inference_steps=params.num_inference_steps,
            out_dir=self.out_dir,
        )
        return Strategy(
            name=name,
            provider=self.editor,
            parameters=params.as_dict(),
            call=lambda: self._provider(self.editor, "edit").edit(request),
        )

    def _source_bytes(self, source_ref: str | None) -> bytes:
        if not source_ref:
            raise ProviderError(ErrorCategory.NO_SELECTION, "No source image for this operation.")
        return read_media(source_ref)

    def _provider(self, name: str, capability: str) -> Any:
        provider = self.registry.get(name)
        if provider is None or not callable(getattr(provider, capability, None)):
            raise ProviderError(
                ErrorCategory.NOT_CONFIGURED,
                f"No provider '{name}' available for capability '{capability}'.",
                provider=name,
            )
        return provider

    def _run(self, operation: str, strategies: Sequence[Strategy]) -> MediaResult:
        try:
            result = run_with_fallback(operation, strategies, on_attempt=self._record_attempt)
        except FallbackExhausted as exc:
            if self.events is not None:
                self.events.emit(
                    "media_fallback_exhausted",
                    operation=operation,
                    category=exc.category.value,
                    attempts=[attempt.strategy for attempt in exc.attempts],
                )
            raise
        return _to_media_result(operation, result)

    def _record_attempt(self, attempt: PipelineAttempt) -> None:
        if self.monitor is not None:
            self.monitor.track(attempt.latency_ms, attempt.outcome == "success", operation=attempt.strategy)
        if self.events is not None:
            self.events.emit(
                "media_attempt",
                strategy=attempt.strategy,
                provider=attempt.provider,
                parameters=attempt.parameters,
                outcome=attempt.outcome,
                latency_ms=round(attempt.latency_ms, 1),
                category=attempt.category.value if attempt.category else None,
                error=attempt.error,
            )


def _to_media_result(operation: str, result: FallbackResult) -> MediaResult:
    artifact = result.response.results[0]
    return MediaResult(
        image_ref=str(artifact.image_path),
        operation=operation,
        strategy=result.strategy.name,
        provider=result.strategy.provider,
        width=artifact.width,
        height=artifact.height,
        attempts=result.attempts,
    )
