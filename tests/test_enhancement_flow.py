from __future__ import annotations

from atelier_engine.chat import enhancement
from atelier_engine.chat.enhancement import (
    CANCELLED_MESSAGE,
    IDLE,
    RESTATE_MESSAGE,
    describe_enhancement,
    request,
    respond,
)


def test_request_awaits_confirmation_without_executing() -> None:
    transition = request(IDLE, "enhance the lighting")
    assert transition.state.awaiting_confirmation
    assert transition.state.phase == "AwaitingConfirmation"
    assert transition.execute_prompt is None
    assert "Enhancement Request Confirmation" in (transition.message or "")
    assert "Improve overall lighting" in (transition.message or "")


def test_proceed_executes_pending_prompt_and_returns_to_idle() -> None:
    pending = request(IDLE, "enhance the lighting").state
    transition = respond(pending, "proceed", "yes")
    assert transition.state == IDLE
    assert transition.execute_prompt == "enhance the lighting"


def test_cancel_clears_pending_request() -> None:
    pending = request(IDLE, "enhance the lighting").state
    transition = respond(pending, "cancel", "no")
    assert transition.state == IDLE
    assert transition.message == CANCELLED_MESSAGE
    assert transition.execute_prompt is None


def test_modify_then_restated_request_needs_new_confirmation() -> None:
    pending = request(IDLE, "enhance the lighting").state
    modified = respond(pending, "modify", "different please")
    assert modified.state.awaiting_confirmation
    assert modified.state.pending is not None and modified.state.pending.prompt is None
    assert "enhance the lighting" in (modified.message or "")

    restated = respond(modified.state, "unclear", " make the sky moodier ")
    assert restated.execute_prompt is None
    assert restated.state.pending is not None
    assert restated.state.pending.prompt == "make the sky moodier"

    done = respond(restated.state, "proceed", "yes")
    assert done.execute_prompt == "make the sky moodier"


def test_proceed_without_a_restated_prompt_asks_again() -> None:
    modified = respond(request(IDLE, "fix colors").state, "modify", "change").state
    transition = respond(modified, "proceed", "yes")
    assert transition.state == modified
    assert transition.message == RESTATE_MESSAGE
    assert transition.execute_prompt is None


def test_unclear_answer_reprompts_and_keeps_state() -> None:
    pending = request(IDLE, "enhance the lighting").state
    transition = respond(pending, "unclear", "what do you think?")
    assert transition.state == pending
    assert transition.execute_prompt is None
    assert "enhance the lighting" in (transition.message or "")


def test_respond_while_idle_is_a_no_op() -> None:
    transition = respond(IDLE, "proceed", "yes")
    assert transition.state == IDLE
    assert transition.message is None
    assert transition.execute_prompt is None


def test_describe_enhancement_cascade() -> None:
    assert "lighting" in describe_enhancement("Brighten it up, more bright")
    assert "black and white" in describe_enhancement("make it black and white")
    assert "composition" in describe_enhancement("better balance")
    assert describe_enhancement("something else") == enhancement._GENERIC
