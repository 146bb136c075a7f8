"""Keyword tables for intent classification and chat-loop slash commands."""

from __future__ import annotations

from dataclasses import dataclass


SELECT_KEYWORDS: tuple[str, ...] = ("select image", "choose image")
CANCEL_SELECTION_KEYWORDS: tuple[str, ...] = ("cancel",)
ANALYZE_KEYWORDS: tuple[str, ...] = ("analyze",)
RESET_KEYWORDS: tuple[str, ...] = ("reset",)
ENHANCE_KEYWORDS: tuple[str, ...] = ("enhance", "improve", "modify", "change", "edit", "fix", "adjust")
SUGGEST_KEYWORDS: tuple[str, ...] = ("suggest",)

PROCEED_KEYWORDS: tuple[str, ...] = ("proceed", "yes", "go", "ok")
DECLINE_KEYWORDS: tuple[str, ...] = ("no", "cancel", "stop")
MODIFY_KEYWORDS: tuple[str, ...] = ("change", "modify", "different")

MODES: tuple[str, ...] = ("general", "programming", "math", "photo")


@dataclass(frozen=True)
class SlashCommand:
    command: str
    action: str
    arg_kind: str
    help: str


SLASH_COMMANDS: tuple[SlashCommand, ...] = (
    SlashCommand("select", "select", "none", "enter image selection mode"),
    SlashCommand("pick", "pick", "raw", "select image number N from the conversation"),
    SlashCommand("mode", "set_mode", "raw", "switch mode (general, programming, math, photo)"),
    SlashCommand("new", "new_chat", "none", "start a new conversation"),
    SlashCommand("upload", "upload", "single_path", "attach an image file"),
    SlashCommand("record", "record", "none", "start microphone capture"),
    SlashCommand("stop", "stop_recording", "none", "stop capture and send the transcript"),
    SlashCommand("audio", "set_audio", "raw", "turn spoken responses on or off"),
    SlashCommand("snapshot", "snapshot", "none", "write the session snapshot"),
    SlashCommand("help", "help", "none", "show this help"),
)

SLASH_COMMAND_MAP = {spec.command: spec for spec in SLASH_COMMANDS}
