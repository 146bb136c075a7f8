"""Keyword heuristics that map free-text prompts to media parameters."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class EditParameters:
    strength: float
    guidance_scale: float
    num_inference_steps: int

    def as_dict(self) -> dict[str, float | int]:
        return {
            "strength": self.strength,
            "guidance_scale": self.guidance_scale,
            "num_inference_steps": self.num_inference_steps,
        }

    def describe(self) -> str:
        """Short wording used in edit confirmations ("dramatic", "high-quality")."""
        if self.strength <= 0.4:
            strength_text = "subtle"
        elif self.strength >= 0.8:
            strength_text = "dramatic"
        else:
            strength_text = "moderate"
        quality_text = "high-quality" if self.num_inference_steps >= 25 else "standard"
        return f"Applied {strength_text} changes with {quality_text} processing"


STANDARD_EDIT = EditParameters(strength=0.7, guidance_scale=8.0, num_inference_steps=20)
RELAXED_EDIT = EditParameters(strength=0.5, guidance_scale=5.0, num_inference_steps=15)

# Each dimension is a first-match-wins cascade: (keywords, value), then default.
STRENGTH_RULES: tuple[tuple[tuple[str, ...], float], ...] = (
    (("subtle", "slight"), 0.3),
    (("dramatic", "major"), 0.9),
)
GUIDANCE_RULES: tuple[tuple[tuple[str, ...], float], ...] = (
    (("precise", "detailed"), 12.0),
    (("creative", "artistic"), 5.0),
)
STEPS_RULES: tuple[tuple[tuple[str, ...], int], ...] = (
    (("high quality", "detailed"), 30),
)

UPSCALE_CUES = ("upscale", "enhance", "high quality", "4k", "hd")
EDIT_CUES = (
    "edit",
    "modify",
    "change",
    "colorize",
    "transform",
    "inpaint",
    "remove",
    "replace",
    "add",
    "adjust",
    "enhance",
    "fix",
    "correct",
)
ENHANCE_VERBS = ("enhance", "improve", "modify", "change", "edit", "fix", "adjust")


def contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    lowered = text.lower()
    return any(keyword in lowered for keyword in keywords)


def _first_match(text: str, rules, default):
    for keywords, value in rules:
        if contains_any(text, keywords):
            return value
    return default


def edit_parameters_for(prompt: str) -> EditParameters:
    return EditParameters(
        strength=_first_match(prompt, STRENGTH_RULES, STANDARD_EDIT.strength),
        guidance_scale=_first_match(prompt, GUIDANCE_RULES, STANDARD_EDIT.guidance_scale),
        num_inference_steps=_first_match(prompt, STEPS_RULES, STANDARD_EDIT.num_inference_steps),
    )


def wants_upscale(prompt: str) -> bool:
    return contains_any(prompt, UPSCALE_CUES)


def wants_edit(prompt: str) -> bool:
    return contains_any(prompt, EDIT_CUES)


def clamp_edit(params: EditParameters) -> EditParameters:
    return EditParameters(
        strength=max(0.0, min(1.0, params.strength)),
        guidance_scale=max(1.0, min(20.0, params.guidance_scale)),
        num_inference_steps=int(max(1, min(50, params.num_inference_steps))),
    )
