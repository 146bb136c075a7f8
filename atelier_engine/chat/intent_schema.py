"""Command variants produced by the intent parser."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

ConfirmationResponse = Literal["proceed", "cancel", "modify", "unclear"]


@dataclass(frozen=True)
class IntentState:
    selection_mode: bool = False
    has_selection: bool = False
    awaiting_confirmation: bool = False
    photo_mode: bool = False
    has_upload: bool = False


@dataclass(frozen=True)
class SelectImage:
    raw: str


@dataclass(frozen=True)
class CancelSelection:
    raw: str


@dataclass(frozen=True)
class AnalyzeImage:
    raw: str


@dataclass(frozen=True)
class ResetSelection:
    raw: str


@dataclass(frozen=True)
class RequestEnhancement:
    raw: str
    prompt: str


@dataclass(frozen=True)
class ConfirmEnhancement:
    raw: str
    response: ConfirmationResponse


@dataclass(frozen=True)
class Suggest:
    raw: str


@dataclass(frozen=True)
class GeneratePhoto:
    raw: str
    prompt: str
    enhance_upload: bool = False


@dataclass(frozen=True)
class Chat:
    raw: str
    prompt: str


Command = Union[
    SelectImage,
    CancelSelection,
    AnalyzeImage,
    ResetSelection,
    RequestEnhancement,
    ConfirmEnhancement,
    Suggest,
    GeneratePhoto,
    Chat,
]
