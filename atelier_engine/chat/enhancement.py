"""Propose/confirm workflow guarding edits of a selected image.

States are `Idle` (no pending request) and `AwaitingConfirmation` (a pending
request exists). A pending request whose prompt is `None` has been through
"modify" and waits for the user to restate it. Transitions are pure: each
returns the next state and the assistant text to show, and names the prompt
to execute when the user confirms.
"""

from __future__ import annotations

from dataclasses import dataclass

from .intent_schema import ConfirmationResponse


@dataclass(frozen=True)
class EnhancementRequest:
    prompt: str | None
    awaiting_confirmation: bool = True


@dataclass(frozen=True)
class EnhancementState:
    pending: EnhancementRequest | None = None

    @property
    def awaiting_confirmation(self) -> bool:
        return self.pending is not None and self.pending.awaiting_confirmation

    @property
    def phase(self) -> str:
        return "AwaitingConfirmation" if self.awaiting_confirmation else "Idle"


IDLE = EnhancementState()


@dataclass(frozen=True)
class Transition:
    state: EnhancementState
    message: str | None
    execute_prompt: str | None = None


_DESCRIPTIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("lighting", "bright"),
        "• Improve overall lighting and brightness\n"
        "• Enhance shadows and highlights\n"
        "• Make the image more well-lit and balanced",
    ),
    (
        ("color", "vibrant"),
        "• Enhance color saturation and vibrancy\n"
        "• Improve color balance and contrast\n"
        "• Make colors more vivid and appealing",
    ),
    (
        ("professional", "polish"),
        "• Apply professional photo editing techniques\n"
        "• Improve overall image quality and refinement\n"
        "• Add professional polish and finish",
    ),
    (
        ("detail", "sharp"),
        "• Enhance fine details and sharpness\n"
        "• Improve image resolution and clarity\n"
        "• Add more definition to important elements",
    ),
)
_MONOCHROME = (
    "• Convert to black and white\n"
    "• Optimize contrast and tonal range\n"
    "• Create a classic monochrome look"
)
_LATER_DESCRIPTIONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ("vibrant", "lively"),
        "• Increase color vibrancy and energy\n"
        "• Make the image more dynamic and lively\n"
        "• Enhance visual impact",
    ),
    (
        ("composition", "balance"),
        "• Improve overall composition and balance\n"
        "• Enhance visual flow and arrangement\n"
        "• Optimize framing and positioning",
    ),
)
_GENERIC = (
    "• Apply general image enhancement\n"
    "• Improve overall quality and appeal\n"
    "• Optimize based on your specific request"
)


def describe_enhancement(prompt: str) -> str:
    lowered = prompt.lower()
    for keywords, text in _DESCRIPTIONS:
        if any(keyword in lowered for keyword in keywords):
            return text
    if "black" in lowered and "white" in lowered:
        return _MONOCHROME
    for keywords, text in _LATER_DESCRIPTIONS:
        if any(keyword in lowered for keyword in keywords):
            return text
    return _GENERIC


def confirmation_message(prompt: str) -> str:
    return (
        "🤖 **Enhancement Request Confirmation**\n\n"
        f"**Your Request:** \"{prompt}\"\n\n"
        f"**What I'll do:**\n{describe_enhancement(prompt)}\n\n"
        "**Options:**\n"
        "• **\"proceed\"** or **\"yes\"** - Generate the enhancement\n"
        "• **\"no\"** or **\"cancel\"** - Cancel the enhancement\n"
        "• **\"change\"** or **\"modify\"** - Modify your request\n"
        "• **\"suggest\"** - Get alternative enhancement ideas\n\n"
        "Should I proceed with this enhancement?"
    )


CANCELLED_MESSAGE = (
    "❌ **Enhancement Cancelled**\n\n"
    "I've cancelled the enhancement request. You can:\n"
    "• Try a different enhancement request\n"
    "• Type \"suggest\" for enhancement ideas\n"
    "• Type \"analyze\" for image analysis\n"
    "• Select a different image\n\n"
    "What would you like to do?"
)


def modify_message(previous_prompt: str | None) -> str:
    current = f"**Current request:** \"{previous_prompt}\"\n\n" if previous_prompt else ""
    return (
        "🔄 **Modify Enhancement Request**\n\n"
        "Please tell me what you'd like to change about the enhancement request.\n\n"
        f"{current}"
        "**Examples:**\n"
        "• \"Make it more subtle\"\n"
        "• \"Make it more dramatic\"\n"
        "• \"Focus on the background instead\"\n"
        "• \"Try a different approach\"\n\n"
        "What would you like to modify?"
    )


def reprompt_message(prompt: str) -> str:
    return (
        f"I'm still waiting on your answer for \"{prompt}\".\n\n"
        "Reply **\"proceed\"** to run it, **\"cancel\"** to drop it, or **\"modify\"** to restate it."
    )


RESTATE_MESSAGE = "Please describe the enhancement you'd like, then I'll confirm it with you before running it."

SUGGESTIONS_MESSAGE = (
    "💡 **Enhancement Ideas for Your Image**\n\n"
    "**🎨 Visual Improvements:**\n"
    "• \"Enhance the lighting\" - Make it brighter and more balanced\n"
    "• \"Improve the colors\" - Make colors more vibrant and appealing\n"
    "• \"Add more detail\" - Enhance sharpness and clarity\n"
    "• \"Make it more professional\" - Apply professional photo editing\n\n"
    "**🎭 Style Transformations:**\n"
    "• \"Convert to black and white\" - Create a classic monochrome look\n"
    "• \"Make it more vibrant\" - Increase color energy and impact\n"
    "• \"Improve the composition\" - Better balance and arrangement\n"
    "• \"Add a vintage effect\" - Give it a retro, nostalgic feel\n\n"
    "**🌟 Advanced Enhancements:**\n"
    "• \"Enhance the background\" - Improve background details\n"
    "• \"Improve the foreground\" - Make main subjects stand out\n"
    "• \"Add depth of field\" - Create more dramatic focus\n\n"
    "**💬 How to Use:**\n"
    "Just tell me what you want to enhance, and I'll ask for confirmation before proceeding!"
)


def request(state: EnhancementState, prompt: str) -> Transition:
    """Start (or replace) the single pending request."""
    return Transition(
        state=EnhancementState(pending=EnhancementRequest(prompt=prompt)),
        message=confirmation_message(prompt),
    )


def respond(state: EnhancementState, response: ConfirmationResponse, raw: str) -> Transition:
    if not state.awaiting_confirmation or state.pending is None:
        return Transition(state=state, message=None)
    prompt = state.pending.prompt
    if prompt is None and response in ("proceed", "unclear"):
        if response == "proceed":
            return Transition(state=state, message=RESTATE_MESSAGE)
        return request(state, raw.strip())
    if response == "proceed":
        return Transition(state=IDLE, message=None, execute_prompt=prompt)
    if response == "cancel":
        return Transition(state=IDLE, message=CANCELLED_MESSAGE)
    if response == "modify":
        return Transition(
            state=EnhancementState(pending=EnhancementRequest(prompt=None)),
            message=modify_message(prompt),
        )
    return Transition(state=state, message=reprompt_message(prompt or ""))
