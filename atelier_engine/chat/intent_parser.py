"""Classify user input into exactly one command.

The table below is ordered and first-match-wins. Matching is a
case-insensitive substring test, so "go" also matches "good" and "no" also
matches "know".
"""

from __future__ import annotations

from typing import Callable

from .command_registry import (
    ANALYZE_KEYWORDS,
    CANCEL_SELECTION_KEYWORDS,
    DECLINE_KEYWORDS,
    ENHANCE_KEYWORDS,
    MODIFY_KEYWORDS,
    PROCEED_KEYWORDS,
    RESET_KEYWORDS,
    SELECT_KEYWORDS,
    SUGGEST_KEYWORDS,
)
from .intent_schema import (
    AnalyzeImage,
    CancelSelection,
    Chat,
    Command,
    ConfirmationResponse,
    ConfirmEnhancement,
    GeneratePhoto,
    IntentState,
    RequestEnhancement,
    ResetSelection,
    SelectImage,
    Suggest,
)


def _has(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def classify_confirmation(text: str) -> ConfirmationResponse:
    lowered = text.lower()
    if _has(lowered, PROCEED_KEYWORDS):
        return "proceed"
    if _has(lowered, DECLINE_KEYWORDS):
        return "cancel"
    if _has(lowered, MODIFY_KEYWORDS):
        return "modify"
    return "unclear"


Rule = tuple[Callable[[str, IntentState], bool], Callable[[str], Command]]

INTENT_RULES: tuple[Rule, ...] = (
    (lambda low, s: _has(low, SELECT_KEYWORDS), lambda raw: SelectImage(raw)),
    (lambda low, s: s.selection_mode and _has(low, CANCEL_SELECTION_KEYWORDS), lambda raw: CancelSelection(raw)),
    (lambda low, s: s.has_selection and _has(low, ANALYZE_KEYWORDS), lambda raw: AnalyzeImage(raw)),
    (lambda low, s: s.has_selection and _has(low, RESET_KEYWORDS), lambda raw: ResetSelection(raw)),
    (
        lambda low, s: s.has_selection and _has(low, ENHANCE_KEYWORDS),
        lambda raw: RequestEnhancement(raw, prompt=raw.strip()),
    ),
    (
        lambda low, s: s.awaiting_confirmation,
        lambda raw: ConfirmEnhancement(raw, response=classify_confirmation(raw)),
    ),
    (lambda low, s: _has(low, SUGGEST_KEYWORDS), lambda raw: Suggest(raw)),
    (lambda low, s: s.photo_mode, lambda raw: GeneratePhoto(raw, prompt=raw.strip())),
)


def parse_intent(text: str, state: IntentState) -> Command:
    lowered = text.lower()
    for predicate, build in INTENT_RULES:
        if predicate(lowered, state):
            command = build(text)
            if isinstance(command, GeneratePhoto) and state.has_upload and _has(lowered, ENHANCE_KEYWORDS):
                return GeneratePhoto(text, prompt=command.prompt, enhance_upload=True)
            return command
    return Chat(text, prompt=text.strip())
