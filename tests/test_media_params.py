from __future__ import annotations

from atelier_engine.media.params import (
    EditParameters,
    RELAXED_EDIT,
    STANDARD_EDIT,
    clamp_edit,
    edit_parameters_for,
    wants_edit,
    wants_upscale,
)


def test_defaults_without_cues() -> None:
    assert edit_parameters_for("make the sky purple") == STANDARD_EDIT


def test_dramatic_raises_strength() -> None:
    params = edit_parameters_for("a dramatic change to the sky")
    assert params.strength == 0.9
    assert params.guidance_scale == 8.0
    assert params.num_inference_steps == 20


def test_first_keyword_group_wins_per_dimension() -> None:
    params = edit_parameters_for("subtle but dramatic, creative yet precise")
    assert params.strength == 0.3
    assert params.guidance_scale == 12.0


def test_detailed_raises_guidance_and_steps() -> None:
    params = edit_parameters_for("Detailed stonework")
    assert params.guidance_scale == 12.0
    assert params.num_inference_steps == 30


def test_relaxed_edit_constants() -> None:
    assert RELAXED_EDIT == EditParameters(strength=0.5, guidance_scale=5.0, num_inference_steps=15)


def test_clamp_edit_bounds() -> None:
    clamped = clamp_edit(EditParameters(strength=1.4, guidance_scale=0.2, num_inference_steps=90))
    assert clamped == EditParameters(strength=1.0, guidance_scale=1.0, num_inference_steps=50)


def test_cues() -> None:
    assert wants_upscale("make it 4K")
    assert not wants_upscale("a quiet lake")
    assert wants_edit("remove the car")
    assert not wants_edit("a quiet lake")


def test_describe_wording() -> None:
    assert EditParameters(0.9, 8.0, 30).describe() == "Applied dramatic changes with high-quality processing"
    assert EditParameters(0.3, 8.0, 20).describe() == "Applied subtle changes with standard processing"
